"""Infrastructure layer for job status persistence."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Protocol

from catalog_backend.domain import JobRecord, JobState

logger = logging.getLogger(__name__)


class JobStoreError(RuntimeError):
    """Raised when job status cannot be read or written."""


class JobStateRepository(Protocol):
    """Persistence contract for the per-store job record."""

    def set_state(
        self,
        resource_key: str,
        state: JobState,
        progress: int = 0,
        done: int = 0,
        total: int = 0,
        *,
        error: str | None = None,
    ) -> JobRecord: ...

    def get_state(self, resource_key: str) -> JobRecord: ...

    def append_log(self, resource_key: str, message: str) -> None: ...

    def reset(self) -> None: ...


class InMemoryJobStateRepository:
    """Keeps the latest job record per resource key in memory."""

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}

    def set_state(
        self,
        resource_key: str,
        state: JobState,
        progress: int = 0,
        done: int = 0,
        total: int = 0,
        *,
        error: str | None = None,
    ) -> JobRecord:
        try:
            state = JobState(state)
        except ValueError as exc:
            raise JobStoreError(f"unknown job state: {state!r}") from exc
        now = datetime.now(timezone.utc)
        record = self._records.get(resource_key)
        if record is None:
            record = JobRecord(resource_key=resource_key)
            self._records[resource_key] = record

        if state is JobState.RUNNING and record.state is not JobState.RUNNING:
            record.logs = []
            record.error = None
            record.started_at = now
            record.finished_at = None
        if state.is_terminal:
            record.finished_at = now
        if error is not None:
            record.error = error

        record.state = state
        record.progress = max(0, min(100, int(progress)))
        record.done = max(0, int(done))
        record.total = max(0, int(total))
        record.updated_at = now

        logger.info("job state updated: %s -> %s (%s%%)", resource_key, state.value, record.progress)
        return replace(record, logs=list(record.logs))

    def get_state(self, resource_key: str) -> JobRecord:
        record = self._records.get(resource_key)
        if record is None:
            return JobRecord(resource_key=resource_key)
        return replace(record, logs=list(record.logs))

    def append_log(self, resource_key: str, message: str) -> None:
        record = self._records.get(resource_key)
        if record is None:
            record = JobRecord(resource_key=resource_key)
            self._records[resource_key] = record
        stamp = datetime.now(timezone.utc).isoformat(timespec="seconds")
        record.logs.append(f"[{stamp}] {message}")

    def reset(self) -> None:
        self._records.clear()
