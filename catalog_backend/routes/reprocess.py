from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from catalog_backend.application import get_job_service
from catalog_backend.core.schema import ReprocessRequest, StopRequest
from catalog_backend.core.validation import JobAlreadyRunningError, ValidationError
from catalog_backend.domain import StoreConfiguration
from catalog_backend.routes.deps import ensure_own_store, require_store

router = APIRouter(prefix="/reprocess", tags=["reprocess"])


@router.post("")
async def start_reprocess(payload: ReprocessRequest, store: StoreConfiguration = Depends(require_store)) -> dict:
    """Start reprocessing a store's products in the background."""
    if not payload.db_name or payload.categories is None:
        raise HTTPException(status_code=400, detail="Missing required data")
    ensure_own_store(store, payload.db_name)

    service = get_job_service()
    try:
        record = await service.start_reprocess(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except JobAlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return {**record.to_status(), "message": "Reprocessing started in background"}


@router.post("/stop")
async def stop_reprocess(payload: StopRequest, store: StoreConfiguration = Depends(require_store)) -> dict:
    if not payload.db_name:
        raise HTTPException(status_code=400, detail="dbName is required")
    db_name = ensure_own_store(store, payload.db_name)
    return get_job_service().stop(db_name)


@router.get("/status")
async def get_reprocess_status(
    db_name: str | None = Query(default=None, alias="dbName"),
    store: StoreConfiguration = Depends(require_store),
) -> dict:
    return get_job_service().get_status(ensure_own_store(store, db_name))


@router.get("/logs")
async def get_reprocess_logs(
    db_name: str | None = Query(default=None, alias="dbName"),
    store: StoreConfiguration = Depends(require_store),
) -> dict:
    return get_job_service().get_logs(ensure_own_store(store, db_name))
