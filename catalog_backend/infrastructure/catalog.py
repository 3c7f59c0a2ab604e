"""Product catalog and classification pipeline hooks.

The product fetching and classification pipelines are provided by separate
services. This module defines the contracts the job runner depends on,
with an in-memory catalog and a no-op pipeline used when nothing else is
configured. An integration only needs to call ``configure_product_catalog``
or ``configure_classification_pipeline`` during application start-up.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from catalog_backend.core.schema import PipelineOptions


@dataclass(slots=True)
class PipelineContext:
    """Store-level classification vocabulary handed to every item."""

    db_name: str
    categories: list[str] = field(default_factory=list)
    types: list[str] = field(default_factory=list)
    soft_categories: list[str] = field(default_factory=list)
    incremental_soft_categories: list[str] = field(default_factory=list)
    sync_mode: str | None = None


class ProductCatalog(Protocol):
    """Source of the work items a reprocessing run iterates over."""

    async def list_products(
        self,
        db_name: str,
        *,
        target_category: str | None = None,
        missing_soft_category_only: bool = False,
    ) -> list[dict[str, Any]]: ...


class ClassificationPipeline(Protocol):
    """Processes one product with the enabled pipeline stages."""

    async def process(
        self,
        item: dict[str, Any],
        options: PipelineOptions,
        context: PipelineContext,
    ) -> dict[str, Any]: ...


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class InMemoryProductCatalog:
    """Products kept per store in memory."""

    def __init__(self) -> None:
        self._products: dict[str, list[dict[str, Any]]] = {}

    def add_products(self, db_name: str, products: list[dict[str, Any]]) -> None:
        self._products.setdefault(db_name, []).extend(dict(item) for item in products)

    async def list_products(
        self,
        db_name: str,
        *,
        target_category: str | None = None,
        missing_soft_category_only: bool = False,
    ) -> list[dict[str, Any]]:
        items = list(self._products.get(db_name, []))
        if target_category:
            items = [item for item in items if target_category in _as_list(item.get("category"))]
        if missing_soft_category_only:
            items = [item for item in items if not _as_list(item.get("softCategory"))]
        return items

    def reset(self) -> None:
        self._products.clear()


class NoOpClassificationPipeline:
    """Fallback pipeline used when no classifier is configured."""

    async def process(
        self,
        item: dict[str, Any],
        options: PipelineOptions,
        context: PipelineContext,
    ) -> dict[str, Any]:  # pragma: no cover - trivial
        return {
            "id": item.get("id"),
            "status": "skipped",
            "reason": "classification pipeline not configured",
            "stages": options.enabled_stages(),
        }


_catalog: ProductCatalog = InMemoryProductCatalog()
_pipeline: ClassificationPipeline = NoOpClassificationPipeline()


def configure_product_catalog(catalog: ProductCatalog) -> None:
    global _catalog
    _catalog = catalog


def get_product_catalog() -> ProductCatalog:
    return _catalog


def configure_classification_pipeline(pipeline: ClassificationPipeline) -> None:
    """Install the pipeline used to process each product."""

    global _pipeline
    _pipeline = pipeline


def get_classification_pipeline() -> ClassificationPipeline:
    return _pipeline
