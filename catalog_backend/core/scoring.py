"""Deterministic ranking of potential soft categories.

Used whenever the remote ranking oracle is unavailable or fails. The score
blends usage (50%), recency (30%) and persistence (20%):

* ``recency = max(0, 100 - days_since(last_seen))``
* ``persistence = min(100, days_between(first_seen, last_seen) * 2)``
* ``total = 0.5 * count + 0.3 * recency + 0.2 * persistence``

Days are fractional. Ties keep input order.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from catalog_backend.domain import PotentialCategoryObservation

SECONDS_PER_DAY = 86400.0

COUNT_WEIGHT = 0.5
RECENCY_WEIGHT = 0.3
PERSISTENCE_WEIGHT = 0.2


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    term: str
    count: int
    recency_score: float
    persistence_score: float
    total_score: float


def _days(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def score_candidate(observation: PotentialCategoryObservation, now: datetime) -> ScoredCandidate:
    last_seen = observation.last_seen or now
    first_seen = observation.first_seen or now

    recency = max(0.0, 100.0 - _days(last_seen, now))
    persistence = min(100.0, _days(first_seen, last_seen) * 2)
    total = (
        observation.count * COUNT_WEIGHT
        + recency * RECENCY_WEIGHT
        + persistence * PERSISTENCE_WEIGHT
    )
    return ScoredCandidate(
        term=observation.term,
        count=observation.count,
        recency_score=recency,
        persistence_score=persistence,
        total_score=total,
    )


def rank_candidates(
    observations: Iterable[PotentialCategoryObservation],
    existing: Iterable[str],
    *,
    max_terms: int = 5,
    now: datetime | None = None,
) -> list[ScoredCandidate]:
    """Score candidates not already active and return the best ``max_terms``."""

    now = now or datetime.now(timezone.utc)
    active = set(existing)
    scored = [score_candidate(item, now) for item in observations if item.term not in active]
    # sorted() is stable, so equal scores keep their input order
    scored = sorted(scored, key=lambda item: item.total_score, reverse=True)
    return scored[: max(0, max_terms)]


def select_terms(
    observations: Iterable[PotentialCategoryObservation],
    existing: Iterable[str],
    *,
    max_terms: int = 5,
    now: datetime | None = None,
) -> list[str]:
    return [item.term for item in rank_candidates(observations, existing, max_terms=max_terms, now=now)]
