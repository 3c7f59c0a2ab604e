"""Application service for reprocessing jobs."""
from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable

from catalog_backend.core.schema import PipelineOptions, ReprocessRequest
from catalog_backend.core.sentinels import FileSentinelStore
from catalog_backend.core.settings import Settings, load_settings
from catalog_backend.core.validation import ValidationError
from catalog_backend.domain import JobRecord, StoreConfiguration
from catalog_backend.infrastructure import (
    InMemoryJobStateRepository,
    JobStateRepository,
    PipelineContext,
    get_classification_pipeline,
    get_product_catalog,
)
from catalog_backend.workers.runner import JobRunner

logger = logging.getLogger(__name__)


class JobService:
    """Starts, observes and stops the reprocessing job of each store."""

    def __init__(self, runner: JobRunner) -> None:
        self._runner = runner
        self._tasks: dict[str, asyncio.Task[JobRecord]] = {}

    @property
    def runner(self) -> JobRunner:
        return self._runner

    @property
    def job_store(self) -> JobStateRepository:
        return self._runner.job_store

    # ------------------------------------------------------------------
    # starting runs
    # ------------------------------------------------------------------
    async def start_reprocess(self, request: ReprocessRequest) -> JobRecord:
        if not request.db_name or request.categories is None:
            raise ValidationError("Missing required data")

        context = PipelineContext(
            db_name=request.db_name,
            categories=list(request.categories),
            types=list(request.types or []),
            soft_categories=list(request.soft_categories or []),
            incremental_soft_categories=list(request.incremental_soft_categories or []),
        )
        items = await get_product_catalog().list_products(
            request.db_name,
            target_category=request.target_category,
            missing_soft_category_only=request.missing_soft_category_only,
        )
        return await self._launch(context, items, request.pipeline_options())

    async def start_incremental_soft_categories(
        self,
        store: StoreConfiguration,
        new_terms: list[str],
        *,
        persist: Callable[[], StoreConfiguration] | None = None,
    ) -> JobRecord:
        """Recompute soft categories only, leaving embeddings and the other stages untouched.

        ``persist`` runs after the store's job has been claimed, so merged
        terms are never saved unless their soft-category pass will run. If it
        fails the claim is released and the error re-raised.
        """

        items = await get_product_catalog().list_products(store.db_name)
        record = await self._runner.prepare(store.db_name, len(items))
        if persist is not None:
            try:
                store = persist()
            except Exception as exc:
                self._runner.release(store.db_name, exc)
                raise

        context = PipelineContext(
            db_name=store.db_name,
            categories=list(store.categories),
            types=list(store.types),
            soft_categories=list(store.soft_categories),
            incremental_soft_categories=list(new_terms),
            sync_mode=store.sync_mode,
        )
        self._spawn(context, items, PipelineOptions.soft_categories_only())
        return record

    async def start_sync(self, store: StoreConfiguration) -> JobRecord:
        context = PipelineContext(
            db_name=store.db_name,
            categories=list(store.categories),
            types=list(store.types),
            soft_categories=list(store.soft_categories),
            sync_mode=store.sync_mode,
        )
        items = await get_product_catalog().list_products(store.db_name)
        return await self._launch(context, items, PipelineOptions())

    async def _launch(
        self,
        context: PipelineContext,
        items: list[dict[str, Any]],
        options: PipelineOptions,
    ) -> JobRecord:
        record = await self._runner.prepare(context.db_name, len(items))
        self._spawn(context, items, options)
        return record

    def _spawn(
        self,
        context: PipelineContext,
        items: list[dict[str, Any]],
        options: PipelineOptions,
    ) -> None:
        logger.info(
            "starting run for %s with stages %s", context.db_name, ", ".join(options.enabled_stages())
        )
        process_one = partial(self._process_item, options=options, context=context)
        task = asyncio.create_task(
            self._runner.execute(context.db_name, items, process_one),
            name=f"reprocess:{context.db_name}",
        )
        self._tasks[context.db_name] = task
        task.add_done_callback(partial(self._forget_task, context.db_name))

    @staticmethod
    async def _process_item(item: dict[str, Any], *, options: PipelineOptions, context: PipelineContext) -> Any:
        return await get_classification_pipeline().process(item, options, context)

    def _forget_task(self, resource_key: str, task: asyncio.Task[JobRecord]) -> None:
        if self._tasks.get(resource_key) is task:
            del self._tasks[resource_key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("background run for %s ended with an error: %s", resource_key, task.exception())

    # ------------------------------------------------------------------
    # observing and stopping
    # ------------------------------------------------------------------
    def get_status(self, resource_key: str) -> dict[str, Any]:
        return self.job_store.get_state(resource_key).to_status()

    def get_logs(self, resource_key: str) -> dict[str, Any]:
        return self.job_store.get_state(resource_key).to_dict()

    def stop(self, resource_key: str) -> dict[str, Any]:
        stopped = self._runner.request_stop(resource_key)
        message = "Stop signal sent." if stopped else "Process already stopped or finished."
        return {"db_name": resource_key, "stopped": stopped, "message": message}

    async def wait_for(self, resource_key: str) -> JobRecord:
        """Await the background run of a store, if any, and return its record."""

        task = self._tasks.get(resource_key)
        if task is not None:
            try:
                await task
            except Exception:
                logger.debug("awaited run for %s raised", resource_key, exc_info=True)
        return self.job_store.get_state(resource_key)


_job_store = InMemoryJobStateRepository()
_service: JobService | None = None


def configure_job_service(settings: Settings) -> JobService:
    """Build the process-wide job service from ``settings``."""

    global _service
    runner = JobRunner(
        _job_store,
        FileSentinelStore(settings.sentinel_root),
        continue_on_item_error=settings.continue_on_item_error,
    )
    _service = JobService(runner)
    return _service


def get_job_service() -> JobService:
    """Return the singleton job service for the process."""

    if _service is None:
        return configure_job_service(load_settings())
    return _service


def get_job_runner() -> JobRunner:
    return get_job_service().runner


def reset_job_state() -> None:
    """Reset the in-memory job store (used in tests)."""

    _job_store.reset()
