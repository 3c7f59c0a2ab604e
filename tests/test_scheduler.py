from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.application import DiscoverySummary
from catalog_backend.workers.scheduler import DISCOVERY_JOB_ID, DiscoveryScheduler


class FakeDiscovery:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def __call__(self) -> DiscoverySummary:
        self.calls += 1
        if self.error is not None:
            raise self.error
        now = datetime.now(timezone.utc)
        return DiscoverySummary(started_at=now, finished_at=now)


@pytest.mark.asyncio()
async def test_trigger_now_acknowledges_and_runs_in_background():
    discovery = FakeDiscovery()
    scheduler = DiscoveryScheduler(discovery)

    ack = scheduler.trigger_now("owner@example.com")

    assert ack["status"] == "running"
    assert ack["triggered_by"] == "owner@example.com"
    await scheduler.wait_for_background_runs()
    assert discovery.calls == 1
    status = scheduler.status()
    assert status["running"] is False
    assert status["scheduled"] is False
    assert status["last_run"]["status"] == "completed"
    assert status["last_run"]["total"] == 0


@pytest.mark.asyncio()
async def test_failed_run_is_recorded_and_reraised():
    scheduler = DiscoveryScheduler(FakeDiscovery(error=RuntimeError("store listing failed")))

    with pytest.raises(RuntimeError):
        await scheduler.run_once("manual")

    last_run = scheduler.status()["last_run"]
    assert last_run["status"] == "error"
    assert last_run["error"] == "store listing failed"
    assert scheduler.status()["running"] is False


@pytest.mark.asyncio()
async def test_background_failures_are_swallowed_after_logging():
    scheduler = DiscoveryScheduler(FakeDiscovery(error=RuntimeError("boom")))

    scheduler.trigger_now()
    await scheduler.wait_for_background_runs()

    assert scheduler.status()["last_run"]["status"] == "error"


@pytest.mark.asyncio()
async def test_start_registers_daily_job():
    scheduler = DiscoveryScheduler(FakeDiscovery(), hour=2, minute=0, timezone_name="UTC")

    scheduler.start()
    try:
        assert scheduler.scheduled is True
        next_run = scheduler.next_run_at()
        assert next_run is not None
        assert (next_run.hour, next_run.minute) == (2, 0)
        assert scheduler.status()["next_run_at"] == next_run.isoformat()
        assert scheduler._scheduler.get_job(DISCOVERY_JOB_ID).max_instances == 1
    finally:
        scheduler.shutdown()

    assert scheduler.scheduled is False
    assert scheduler.status()["scheduled"] is False
