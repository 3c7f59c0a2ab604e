from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable

from catalog_backend.core.sentinels import CancellationSentinel
from catalog_backend.core.validation import JobAlreadyRunningError
from catalog_backend.domain import JobRecord, JobState
from catalog_backend.infrastructure import JobStateRepository

logger = logging.getLogger(__name__)

ProcessOne = Callable[[dict[str, Any]], Awaitable[Any]]


def _percent(done: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, (done * 100) // total)


def _item_id(item: Any, index: int) -> str:
    if isinstance(item, dict):
        for key in ("id", "_id", "sku", "name"):
            if item.get(key) is not None:
                return str(item[key])
    return f"#{index + 1}"


class JobRunner:
    """Runs one reprocessing pass per store with cooperative cancellation.

    ``prepare`` arms the store's sentinel and marks the job ``running``;
    ``execute`` walks the items in order and checks the sentinel before each
    one. A removed sentinel ends the run as ``stopped`` at the next
    checkpoint, an uncaught failure ends it as ``error``.
    """

    def __init__(
        self,
        job_store: JobStateRepository,
        sentinels: CancellationSentinel,
        *,
        continue_on_item_error: bool = True,
    ) -> None:
        self._job_store = job_store
        self._sentinels = sentinels
        self._continue_on_item_error = continue_on_item_error
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def job_store(self) -> JobStateRepository:
        return self._job_store

    def _lock_for(self, resource_key: str) -> asyncio.Lock:
        lock = self._locks.get(resource_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[resource_key] = lock
        return lock

    async def prepare(self, resource_key: str, total: int) -> JobRecord:
        async with self._lock_for(resource_key):
            current = self._job_store.get_state(resource_key)
            if current.state is JobState.RUNNING:
                raise JobAlreadyRunningError(resource_key)

            self._sentinels.arm(resource_key)
            try:
                record = self._job_store.set_state(resource_key, JobState.RUNNING, 0, 0, total)
                self._job_store.append_log(resource_key, f"run started with {total} items")
            except Exception:
                logger.exception("could not mark %s as running", resource_key)
                self._safe_disarm(resource_key)
                raise
            logger.info("run prepared for %s (%d items)", resource_key, total)
            return record

    async def execute(
        self,
        resource_key: str,
        work_items: Iterable[dict[str, Any]],
        process_one: ProcessOne,
        *,
        continue_on_item_error: bool | None = None,
    ) -> JobRecord:
        items = list(work_items)
        total = len(items)
        skip_failures = self._continue_on_item_error if continue_on_item_error is None else continue_on_item_error
        done = 0
        failed = 0

        try:
            for index, item in enumerate(items):
                await asyncio.sleep(0)
                if not self._checkpoint(resource_key):
                    logger.info("stop requested for %s before item %d of %d", resource_key, index + 1, total)
                    self._job_store.append_log(resource_key, f"stopped before item {index + 1} of {total}")
                    return self._job_store.set_state(
                        resource_key, JobState.STOPPED, _percent(index, total), index, total
                    )

                try:
                    await process_one(item)
                except Exception as exc:
                    failed += 1
                    item_id = _item_id(item, index)
                    logger.warning("item %s failed for %s: %s", item_id, resource_key, exc)
                    self._job_store.append_log(resource_key, f"item {item_id} failed: {exc}")
                    if not skip_failures:
                        raise

                done = index + 1
                self._job_store.set_state(resource_key, JobState.RUNNING, _percent(done, total), done, total)

            self._job_store.append_log(
                resource_key, f"run finished: {total - failed} of {total} items processed, {failed} failed"
            )
            record = self._job_store.set_state(resource_key, JobState.DONE, 100, total, total)
            logger.info("run completed for %s (%d failed)", resource_key, failed)
            return record
        except Exception as exc:
            logger.exception("run failed for %s after %d of %d items", resource_key, done, total)
            self._record_failure(resource_key, exc, done, total)
            raise
        finally:
            self._safe_disarm(resource_key)
            self._drop_lock(resource_key)

    async def run(
        self,
        resource_key: str,
        work_items: Iterable[dict[str, Any]],
        process_one: ProcessOne,
        *,
        continue_on_item_error: bool | None = None,
    ) -> JobRecord:
        items = list(work_items)
        await self.prepare(resource_key, len(items))
        return await self.execute(
            resource_key, items, process_one, continue_on_item_error=continue_on_item_error
        )

    def release(self, resource_key: str, exc: Exception) -> None:
        """Give up a prepared run that will not be executed."""

        logger.warning("run for %s abandoned before start: %s", resource_key, exc)
        self._record_failure(resource_key, exc, 0, self._job_store.get_state(resource_key).total)
        self._safe_disarm(resource_key)
        self._drop_lock(resource_key)

    def request_stop(self, resource_key: str) -> bool:
        """Remove the sentinel; ``False`` means the run had already stopped or finished."""

        removed = self._sentinels.disarm(resource_key)
        if removed:
            logger.info("stop signal sent for %s", resource_key)
            self._job_store.append_log(resource_key, "stop requested")
        return removed

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _checkpoint(self, resource_key: str) -> bool:
        try:
            return self._sentinels.is_armed(resource_key)
        except OSError as exc:
            # an unreadable sentinel must not abort the batch
            logger.warning("cannot read stop sentinel for %s, continuing: %s", resource_key, exc)
            return True

    def _record_failure(self, resource_key: str, exc: Exception, done: int, total: int) -> None:
        message = str(exc) or exc.__class__.__name__
        try:
            self._job_store.append_log(resource_key, f"run failed: {message}")
            self._job_store.set_state(
                resource_key, JobState.ERROR, _percent(done, total), done, total, error=message
            )
        except Exception:
            logger.exception("could not record failure state for %s", resource_key)

    def _drop_lock(self, resource_key: str) -> None:
        lock = self._locks.get(resource_key)
        if lock is not None and not lock.locked():
            del self._locks[resource_key]

    def _safe_disarm(self, resource_key: str) -> None:
        try:
            self._sentinels.disarm(resource_key)
        except OSError as exc:
            logger.warning("could not remove stop sentinel for %s: %s", resource_key, exc)
