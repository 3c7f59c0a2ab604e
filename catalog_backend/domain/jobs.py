"""Domain entities for background job tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in {JobState.DONE, JobState.ERROR, JobState.STOPPED}


@dataclass(slots=True)
class JobRecord:
    """Current status of the one job tracked per resource key.

    Only the latest snapshot is kept; ``logs`` covers the current run.
    """

    resource_key: str
    state: JobState = JobState.IDLE
    progress: int = 0
    done: int = 0
    total: int = 0
    logs: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    updated_at: datetime | None = None
    error: str | None = None

    def to_status(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "progress": self.progress,
            "done": self.done,
            "total": self.total,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "db_name": self.resource_key,
            **self.to_status(),
            "logs": list(self.logs),
            "started_at": _isoformat(self.started_at),
            "finished_at": _isoformat(self.finished_at),
            "updated_at": _isoformat(self.updated_at),
            "error": self.error,
        }


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
