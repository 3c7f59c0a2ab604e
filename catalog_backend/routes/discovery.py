from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from catalog_backend.domain import StoreConfiguration
from catalog_backend.routes.deps import require_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/soft-category-agent", tags=["discovery"])


@router.post("/run")
async def run_discovery(request: Request, store: StoreConfiguration = Depends(require_store)) -> dict:
    """Trigger category discovery out of band; the run continues after the response."""
    logger.info("manual category discovery requested by %s", store.email)
    scheduler = request.app.state.discovery_scheduler
    return scheduler.trigger_now(triggered_by=store.email or "manual")


@router.get("/status")
async def get_discovery_status(request: Request, store: StoreConfiguration = Depends(require_store)) -> dict:
    return request.app.state.discovery_scheduler.status()
