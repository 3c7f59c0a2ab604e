from __future__ import annotations

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.domain import JobState
from catalog_backend.infrastructure import InMemoryJobStateRepository, JobStoreError


def test_unknown_key_reads_as_idle():
    store = InMemoryJobStateRepository()

    record = store.get_state("shop-a")

    assert record.state is JobState.IDLE
    assert record.to_status() == {"state": "idle", "progress": 0, "done": 0, "total": 0}
    assert record.logs == []


def test_entering_running_resets_previous_run():
    store = InMemoryJobStateRepository()
    store.set_state("shop-a", JobState.RUNNING, 0, 0, 4)
    store.append_log("shop-a", "first run")
    store.set_state("shop-a", JobState.ERROR, 50, 2, 4, error="boom")

    record = store.set_state("shop-a", JobState.RUNNING, 0, 0, 3)

    assert record.logs == []
    assert record.error is None
    assert record.finished_at is None
    assert record.started_at is not None


def test_progress_updates_keep_logs_of_current_run():
    store = InMemoryJobStateRepository()
    store.set_state("shop-a", JobState.RUNNING, 0, 0, 2)
    store.append_log("shop-a", "run started")

    store.set_state("shop-a", JobState.RUNNING, 50, 1, 2)
    record = store.set_state("shop-a", JobState.DONE, 100, 2, 2)

    assert len(record.logs) == 1
    assert record.logs[0].endswith("run started")
    assert record.finished_at is not None


def test_values_are_clamped():
    store = InMemoryJobStateRepository()

    record = store.set_state("shop-a", JobState.RUNNING, 140, -1, -5)

    assert record.progress == 100
    assert record.done == 0
    assert record.total == 0


def test_get_state_returns_a_snapshot():
    store = InMemoryJobStateRepository()
    store.set_state("shop-a", JobState.RUNNING, 0, 0, 1)
    store.append_log("shop-a", "hello")

    snapshot = store.get_state("shop-a")
    snapshot.logs.append("tampered")

    assert len(store.get_state("shop-a").logs) == 1


def test_keys_are_independent():
    store = InMemoryJobStateRepository()
    store.set_state("shop-a", JobState.RUNNING, 10, 1, 10)

    assert store.get_state("shop-b").state is JobState.IDLE
    assert store.get_state("shop-a").to_dict()["db_name"] == "shop-a"


def test_unknown_state_raises_store_error():
    store = InMemoryJobStateRepository()

    with pytest.raises(JobStoreError, match="unknown job state"):
        store.set_state("shop-a", "paused")
