from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.core.sentinels import FileSentinelStore


def test_arm_creates_lock_file(tmp_path):
    sentinels = FileSentinelStore(tmp_path)

    path = sentinels.arm("shop-a")

    assert path == tmp_path / "reprocessing_shop-a.lock"
    assert path.exists()
    assert sentinels.is_armed("shop-a")


def test_disarm_reports_whether_a_marker_was_removed(tmp_path):
    sentinels = FileSentinelStore(tmp_path)
    sentinels.arm("shop-a")

    assert sentinels.disarm("shop-a") is True
    assert sentinels.disarm("shop-a") is False
    assert not sentinels.is_armed("shop-a")


def test_keys_are_sanitised_into_the_root(tmp_path):
    sentinels = FileSentinelStore(tmp_path)

    path = sentinels.path_for("../shop a/b")

    assert path.parent == tmp_path
    assert path.name == "reprocessing_.._shop_a_b.lock"


def test_arming_twice_is_harmless(tmp_path):
    sentinels = FileSentinelStore(tmp_path / "nested")

    sentinels.arm("shop-a")
    sentinels.arm("shop-a")

    assert sentinels.is_armed("shop-a")
