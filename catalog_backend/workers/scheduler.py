"""Daily scheduling of category discovery using APScheduler."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from catalog_backend.application.discovery import DiscoverySummary

logger = logging.getLogger(__name__)

DISCOVERY_JOB_ID = "daily_category_discovery"


class DiscoveryScheduler:
    """Fires category discovery once a day and on demand.

    Manual and scheduled runs are not deduplicated against each other.
    """

    def __init__(
        self,
        run_discovery: Callable[[], Awaitable["DiscoverySummary"]],
        *,
        hour: int = 2,
        minute: int = 0,
        timezone_name: str = "UTC",
    ) -> None:
        self._run_discovery = run_discovery
        self._hour = hour
        self._minute = minute
        self._timezone_name = timezone_name
        self._scheduler = AsyncIOScheduler(timezone=timezone_name)
        self._active_runs = 0
        self._last_run: dict[str, Any] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._started = False

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        self._scheduler.add_job(
            self._run_in_background,
            trigger=CronTrigger(hour=self._hour, minute=self._minute, timezone=self._timezone_name),
            args=["schedule"],
            id=DISCOVERY_JOB_ID,
            name="Daily category discovery",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        self._started = True
        logger.info(
            "category discovery scheduled daily at %02d:%02d %s, next run %s",
            self._hour,
            self._minute,
            self._timezone_name,
            self.next_run_at(),
        )

    def shutdown(self) -> None:
        if self._started:
            # shutdown is queued on the event loop, so running may still read True
            self._scheduler.shutdown(wait=False)
            self._started = False
            logger.info("discovery scheduler shut down")
        for task in list(self._tasks):
            task.cancel()

    @property
    def scheduled(self) -> bool:
        return self._started and self._scheduler.get_job(DISCOVERY_JOB_ID) is not None

    def next_run_at(self) -> datetime | None:
        job = self._scheduler.get_job(DISCOVERY_JOB_ID)
        return getattr(job, "next_run_time", None) if job is not None else None

    # ------------------------------------------------------------------
    # runs
    # ------------------------------------------------------------------
    async def run_once(self, triggered_by: str = "manual") -> "DiscoverySummary":
        started_at = datetime.now(timezone.utc)
        self._active_runs += 1
        logger.info("category discovery triggered by %s", triggered_by)
        try:
            summary = await self._run_discovery()
        except Exception as exc:
            self._last_run = {
                "triggered_by": triggered_by,
                "started_at": started_at.isoformat(),
                "finished_at": datetime.now(timezone.utc).isoformat(),
                "status": "error",
                "error": str(exc) or exc.__class__.__name__,
            }
            raise
        finally:
            self._active_runs -= 1

        self._last_run = {"triggered_by": triggered_by, "status": "completed", **summary.to_dict()}
        return summary

    async def _run_in_background(self, triggered_by: str) -> None:
        try:
            await self.run_once(triggered_by)
        except Exception:
            logger.exception("category discovery run triggered by %s failed", triggered_by)

    def trigger_now(self, triggered_by: str = "manual") -> dict[str, Any]:
        """Start a run without waiting for it and acknowledge immediately."""

        task = asyncio.create_task(self._run_in_background(triggered_by), name="category-discovery")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return {
            "message": "Category discovery started in background",
            "status": "running",
            "triggered_by": triggered_by,
            "triggered_at": datetime.now(timezone.utc).isoformat(),
        }

    async def wait_for_background_runs(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def status(self) -> dict[str, Any]:
        next_run = self.next_run_at()
        return {
            "status": "ok",
            "scheduled": self.scheduled,
            "running": self._active_runs > 0,
            "next_run_at": next_run.isoformat() if next_run else None,
            "last_run": self._last_run,
        }
