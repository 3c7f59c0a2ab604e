"""Domain entities for onboarded stores."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping


def _parse_timestamp(value: Any, default: datetime) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return default
    else:
        return default
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(slots=True)
class PotentialCategoryObservation:
    """A candidate soft category mined from search queries."""

    term: str
    count: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None
    example_queries: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(
        cls,
        term: str,
        data: Mapping[str, Any] | None,
        *,
        now: datetime | None = None,
    ) -> "PotentialCategoryObservation":
        now = now or datetime.now(timezone.utc)
        data = data or {}
        try:
            count = int(data.get("count") or 0)
        except (TypeError, ValueError):
            count = 0
        queries = data.get("example_queries", data.get("exampleQueries")) or []
        return cls(
            term=term,
            count=count,
            first_seen=_parse_timestamp(data.get("first_seen", data.get("firstSeen")), now),
            last_seen=_parse_timestamp(data.get("last_seen", data.get("lastSeen")), now),
            example_queries=[str(query) for query in queries],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "term": self.term,
            "count": self.count,
            "first_seen": self.first_seen.isoformat() if self.first_seen else None,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "example_queries": list(self.example_queries),
        }


@dataclass(slots=True)
class StoreConfiguration:
    """Stored onboarding configuration of one store, keyed by owner email."""

    email: str
    db_name: str
    platform: str | None = None
    api_key: str | None = None
    credentials: dict[str, Any] = field(default_factory=dict)
    categories: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    soft_categories: list[str] = field(default_factory=list)
    potential_soft_categories: dict[str, PotentialCategoryObservation] = field(default_factory=dict)
    sync_mode: str | None = None
    context: str | None = None
    explain: bool = False
    onboarding_complete: bool = False
    trial_started_at: datetime | None = None
    trial_status: str | None = None
    updated_at: datetime | None = None

    @property
    def first_time(self) -> bool:
        return not self.onboarding_complete

    def to_public_dict(self) -> dict[str, Any]:
        """Serialise without credential secrets."""

        return {
            "email": self.email,
            "db_name": self.db_name,
            "platform": self.platform,
            "categories": list(self.categories),
            "type": list(self.types),
            "soft_categories": list(self.soft_categories),
            "sync_mode": self.sync_mode,
            "context": self.context,
            "explain": self.explain,
            "onboarding_complete": self.onboarding_complete,
            "trial_started_at": self.trial_started_at.isoformat() if self.trial_started_at else None,
            "trial_status": self.trial_status,
        }
