"""Filesystem markers used to signal cancellation across processes.

A marker's presence means a reprocessing run may keep going; removing it
asks the run to stop at its next checkpoint.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Protocol

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class CancellationSentinel(Protocol):
    def arm(self, resource_key: str) -> object: ...

    def is_armed(self, resource_key: str) -> bool: ...

    def disarm(self, resource_key: str) -> bool: ...


class FileSentinelStore:
    """Cancellation sentinels stored as lock files under ``root``."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, resource_key: str) -> Path:
        safe_key = _UNSAFE_CHARS.sub("_", resource_key)
        return self._root / f"reprocessing_{safe_key}.lock"

    def arm(self, resource_key: str) -> Path:
        path = self.path_for(resource_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        return path

    def is_armed(self, resource_key: str) -> bool:
        return self.path_for(resource_key).exists()

    def disarm(self, resource_key: str) -> bool:
        """Remove the marker; returns ``False`` if it was already gone."""

        try:
            self.path_for(resource_key).unlink()
        except FileNotFoundError:
            return False
        return True
