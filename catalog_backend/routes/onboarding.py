from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from catalog_backend.application import OnboardingService, get_job_service, get_store_repository
from catalog_backend.core.schema import OnboardingRequest
from catalog_backend.core.validation import CredentialError, JobAlreadyRunningError, ValidationError
from catalog_backend.domain import StoreConfiguration
from catalog_backend.routes.deps import optional_store

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.post("")
async def onboard_store(
    payload: OnboardingRequest,
    identity: StoreConfiguration | None = Depends(optional_store),
) -> dict:
    """Save a store's platform configuration and start its first sync."""
    service = OnboardingService(get_store_repository(), get_job_service())
    try:
        result = await service.onboard(payload, identity)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except CredentialError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid credentials: {exc}") from exc
    except JobAlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return result.to_dict()


@router.get("/status")
async def get_onboarding_status(db_name: str | None = Query(default=None, alias="dbName")) -> dict:
    if not db_name:
        raise HTTPException(status_code=400, detail="dbName is required")
    return get_job_service().get_status(db_name)
