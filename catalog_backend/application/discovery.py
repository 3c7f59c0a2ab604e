"""Daily discovery of new soft categories.

For every store with mined potential categories the engine picks the best
new terms, merges them into the store's active soft categories and starts
a soft-categories-only reprocessing pass. Stores are handled one at a time
with a fixed pause in between to stay within the ranking oracle's rate
limits.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Awaitable, Callable, Iterable, Sequence

from catalog_backend.core.scoring import rank_candidates
from catalog_backend.core.settings import Settings
from catalog_backend.core.validation import JobAlreadyRunningError
from catalog_backend.domain import JobState, PotentialCategoryObservation, StoreConfiguration
from catalog_backend.infrastructure import RankingOracle, StoreRepository, get_ranking_oracle

from .jobs import JobService, get_job_service
from .stores import get_store_repository

logger = logging.getLogger(__name__)

SUCCESS = "success"
SKIPPED = "skipped"
ERROR = "error"


@dataclass(slots=True)
class StoreDiscoveryResult:
    db_name: str
    email: str
    status: str
    reason: str | None = None
    selected_terms: list[str] = field(default_factory=list)
    previous_count: int = 0
    new_count: int = 0
    selection_source: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "db_name": self.db_name,
            "email": self.email,
            "status": self.status,
            "reason": self.reason,
            "selected_terms": list(self.selected_terms),
            "previous_count": self.previous_count,
            "new_count": self.new_count,
            "selection_source": self.selection_source,
            "error": self.error,
        }


@dataclass(slots=True)
class DiscoverySummary:
    started_at: datetime
    finished_at: datetime | None = None
    results: list[StoreDiscoveryResult] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for item in self.results if item.status == status)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return round((self.finished_at - self.started_at).total_seconds(), 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "total": self.total,
            "success": self._count(SUCCESS),
            "skipped": self._count(SKIPPED),
            "error": self._count(ERROR),
            "results": [item.to_dict() for item in self.results],
        }


def merge_categories(existing: Iterable[str], new_terms: Iterable[str]) -> list[str]:
    """Order-preserving set union; never drops an existing term."""

    merged: list[str] = []
    seen: set[str] = set()
    for term in [*existing, *new_terms]:
        if term not in seen:
            seen.add(term)
            merged.append(term)
    return merged


def sanitise_selection(selected: Iterable[Any], existing: Iterable[str], max_terms: int) -> list[str]:
    """Keep distinct, non-empty strings that are not active categories yet."""

    active = set(existing)
    cleaned: list[str] = []
    for term in selected:
        if not isinstance(term, str):
            continue
        term = term.strip()
        if not term or term in active or term in cleaned:
            continue
        cleaned.append(term)
        if len(cleaned) >= max_terms:
            break
    return cleaned


class CategoryDiscoveryEngine:
    """Scans stores for potential categories and promotes the best ones."""

    def __init__(
        self,
        repository: StoreRepository,
        job_service: JobService,
        *,
        oracle: RankingOracle | None = None,
        max_terms: int = 5,
        delay_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._repository = repository
        self._job_service = job_service
        self._oracle = oracle
        self._max_terms = max_terms
        self._delay_seconds = delay_seconds
        self._sleep = sleep

    @property
    def oracle(self) -> RankingOracle:
        return self._oracle or get_ranking_oracle()

    async def run(self) -> DiscoverySummary:
        summary = DiscoverySummary(started_at=datetime.now(timezone.utc))
        logger.info("category discovery started")

        stores = self._repository.list_with_potential_categories()
        logger.info("found %d stores with potential soft categories", len(stores))

        for store in stores:
            try:
                result = await self.process_store(store)
            except Exception as exc:
                logger.exception("category discovery failed for %s", store.db_name)
                result = StoreDiscoveryResult(
                    db_name=store.db_name,
                    email=store.email,
                    status=ERROR,
                    error=str(exc) or exc.__class__.__name__,
                    previous_count=len(store.soft_categories),
                    new_count=len(store.soft_categories),
                )
            summary.results.append(result)
            await self._sleep(self._delay_seconds)

        summary.finished_at = datetime.now(timezone.utc)
        payload = summary.to_dict()
        logger.info(
            "category discovery completed in %ss: %d stores, %d successful, %d skipped, %d errors",
            payload["duration_seconds"],
            payload["total"],
            payload["success"],
            payload["skipped"],
            payload["error"],
        )
        for item in summary.results:
            if item.status == SUCCESS:
                logger.info(
                    "%s: added %s (%d -> %d)",
                    item.db_name,
                    ", ".join(item.selected_terms),
                    item.previous_count,
                    item.new_count,
                )
        return summary

    async def process_store(self, store: StoreConfiguration) -> StoreDiscoveryResult:
        existing = list(store.soft_categories)
        result = StoreDiscoveryResult(
            db_name=store.db_name,
            email=store.email,
            status=SKIPPED,
            previous_count=len(existing),
            new_count=len(existing),
        )

        if not store.potential_soft_categories:
            result.reason = "no_potential_categories"
            return result

        if self._job_service.job_store.get_state(store.db_name).state is JobState.RUNNING:
            logger.info("skipping %s: a job is already running", store.db_name)
            result.reason = "job_running"
            return result

        candidates = [
            observation
            for term, observation in store.potential_soft_categories.items()
            if term not in existing
        ]
        logger.info(
            "%s: %d active soft categories, %d potential, %d new",
            store.db_name,
            len(existing),
            len(store.potential_soft_categories),
            len(candidates),
        )
        if not candidates:
            result.reason = "no_new_terms"
            return result

        selected, source = await self.select_terms(candidates, existing)
        result.selection_source = source
        if not selected:
            result.reason = "no_suitable_terms"
            return result

        merged = merge_categories(existing, selected)
        try:
            await self._job_service.start_incremental_soft_categories(
                store,
                selected,
                persist=partial(self._repository.update_soft_categories, store.email, merged),
            )
        except JobAlreadyRunningError:
            logger.info("skipping %s: a job started while terms were being selected", store.db_name)
            result.reason = "job_running"
            return result

        result.status = SUCCESS
        result.selected_terms = selected
        result.new_count = len(merged)
        return result

    async def select_terms(
        self,
        candidates: Sequence[PotentialCategoryObservation],
        existing: Sequence[str],
    ) -> tuple[list[str], str]:
        oracle = self.oracle
        if oracle.available:
            try:
                raw = await oracle.rank(candidates, existing, self._max_terms)
            except Exception as exc:
                logger.warning("ranking oracle failed, using fallback scoring: %s", exc)
            else:
                selected = sanitise_selection(raw, existing, self._max_terms)
                if len(selected) != len(raw):
                    logger.info("discarded %d invalid oracle selections", len(raw) - len(selected))
                return selected, "oracle"
        else:
            logger.info("ranking oracle unavailable, using fallback scoring")

        ranked = rank_candidates(candidates, existing, max_terms=self._max_terms)
        for item in ranked:
            logger.info(
                '"%s": score=%.2f (count=%d, recency=%.1f, persistence=%.1f)',
                item.term,
                item.total_score,
                item.count,
                item.recency_score,
                item.persistence_score,
            )
        return [item.term for item in ranked], "fallback"


def configure_discovery_engine(settings: Settings) -> CategoryDiscoveryEngine:
    """Build the discovery engine over the process-wide store and job service."""

    return CategoryDiscoveryEngine(
        get_store_repository(),
        get_job_service(),
        max_terms=settings.discovery_max_terms,
        delay_seconds=settings.discovery_delay_seconds,
    )

