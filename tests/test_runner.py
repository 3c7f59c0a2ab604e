from __future__ import annotations

from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.core.sentinels import FileSentinelStore
from catalog_backend.core.validation import JobAlreadyRunningError
from catalog_backend.domain import JobState
from catalog_backend.infrastructure import InMemoryJobStateRepository, JobStoreError
from catalog_backend.workers.runner import JobRunner


class UnreadableSentinels(FileSentinelStore):
    def is_armed(self, resource_key: str) -> bool:
        raise OSError("permission denied")


class FailingProgressStore(InMemoryJobStateRepository):
    """Rejects the second running write, i.e. the first progress update."""

    def __init__(self) -> None:
        super().__init__()
        self.running_writes = 0

    def set_state(self, key, state, progress=0, done=0, total=0, *, error=None):
        if state is JobState.RUNNING:
            self.running_writes += 1
            if self.running_writes == 2:
                raise JobStoreError("job store unavailable")
        return super().set_state(key, state, progress, done, total, error=error)


@pytest.fixture()
def sentinels(tmp_path):
    return FileSentinelStore(tmp_path)


@pytest.fixture()
def runner(sentinels):
    return JobRunner(InMemoryJobStateRepository(), sentinels)


def _items(count: int) -> list[dict]:
    return [{"id": f"p{index}"} for index in range(count)]


@pytest.mark.asyncio()
async def test_items_run_in_order_to_completion(runner, sentinels):
    seen: list[str] = []

    async def process_one(item):
        seen.append(item["id"])

    record = await runner.run("shop-a", _items(3), process_one)

    assert seen == ["p0", "p1", "p2"]
    assert record.state is JobState.DONE
    assert (record.progress, record.done, record.total) == (100, 3, 3)
    assert not sentinels.is_armed("shop-a")
    assert any("run finished: 3 of 3 items processed, 0 failed" in line for line in record.logs)


@pytest.mark.asyncio()
async def test_stop_takes_effect_at_next_checkpoint(runner, sentinels):
    seen: list[str] = []

    async def process_one(item):
        seen.append(item["id"])
        if item["id"] == "p1":
            assert runner.request_stop("shop-a") is True

    record = await runner.run("shop-a", _items(5), process_one)

    assert seen == ["p0", "p1"]
    assert record.state is JobState.STOPPED
    assert (record.progress, record.done, record.total) == (40, 2, 5)
    assert record.finished_at is not None
    assert runner.request_stop("shop-a") is False


@pytest.mark.asyncio()
async def test_item_failures_are_logged_and_skipped(runner):
    async def process_one(item):
        if item["id"] == "p1":
            raise RuntimeError("classifier unavailable")

    record = await runner.run("shop-a", _items(3), process_one)

    assert record.state is JobState.DONE
    assert record.done == 3
    assert any("item p1 failed: classifier unavailable" in line for line in record.logs)
    assert any("2 of 3 items processed, 1 failed" in line for line in record.logs)


@pytest.mark.asyncio()
async def test_failure_ends_run_in_error_when_not_skipping(sentinels):
    job_store = InMemoryJobStateRepository()
    runner = JobRunner(job_store, sentinels, continue_on_item_error=False)

    async def process_one(item):
        if item["id"] == "p2":
            raise RuntimeError("database offline")

    with pytest.raises(RuntimeError, match="database offline"):
        await runner.run("shop-a", _items(4), process_one)

    record = job_store.get_state("shop-a")
    assert record.state is JobState.ERROR
    assert record.error == "database offline"
    assert (record.done, record.total) == (2, 4)
    assert record.progress == 50
    assert not sentinels.is_armed("shop-a")


@pytest.mark.asyncio()
async def test_unreadable_sentinel_does_not_stop_the_run(tmp_path):
    runner = JobRunner(InMemoryJobStateRepository(), UnreadableSentinels(tmp_path))
    seen: list[str] = []

    async def process_one(item):
        seen.append(item["id"])

    record = await runner.run("shop-a", _items(2), process_one)

    assert seen == ["p0", "p1"]
    assert record.state is JobState.DONE


@pytest.mark.asyncio()
async def test_second_start_is_rejected_while_running(runner, sentinels):
    record = await runner.prepare("shop-a", 2)
    assert record.state is JobState.RUNNING
    assert sentinels.is_armed("shop-a")

    with pytest.raises(JobAlreadyRunningError):
        await runner.prepare("shop-a", 2)

    async def process_one(item):
        return None

    await runner.execute("shop-a", _items(2), process_one)
    again = await runner.prepare("shop-a", 1)
    assert again.state is JobState.RUNNING
    assert again.total == 1


@pytest.mark.asyncio()
async def test_empty_run_finishes_immediately(runner):
    async def process_one(item):  # pragma: no cover - never called
        raise AssertionError("no items expected")

    record = await runner.run("shop-a", [], process_one)

    assert record.state is JobState.DONE
    assert (record.progress, record.done, record.total) == (100, 0, 0)


def test_stop_without_a_run_is_a_no_op(runner):
    assert runner.request_stop("shop-z") is False
    assert runner.job_store.get_state("shop-z").state is JobState.IDLE


@pytest.mark.asyncio()
async def test_job_store_failure_ends_the_run(sentinels):
    job_store = FailingProgressStore()
    runner = JobRunner(job_store, sentinels)
    seen: list[str] = []

    async def process_one(item):
        seen.append(item["id"])

    with pytest.raises(JobStoreError, match="job store unavailable"):
        await runner.run("shop-a", _items(3), process_one)

    assert seen == ["p0"]
    assert not sentinels.is_armed("shop-a")
    record = job_store.get_state("shop-a")
    assert record.state is JobState.ERROR
    assert record.error == "job store unavailable"
    assert record.done == 1


@pytest.mark.asyncio()
async def test_finished_runs_release_their_lock(runner):
    async def process_one(item):
        return None

    await runner.run("shop-a", _items(2), process_one)
    assert "shop-a" not in runner._locks

    await runner.prepare("shop-b", 1)
    runner.release("shop-b", RuntimeError("catalog write failed"))

    assert "shop-b" not in runner._locks
    record = runner.job_store.get_state("shop-b")
    assert record.state is JobState.ERROR
    assert record.error == "catalog write failed"
    again = await runner.prepare("shop-b", 1)
    assert again.state is JobState.RUNNING
