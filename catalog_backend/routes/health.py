from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from catalog_backend.infrastructure import get_ranking_oracle

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    scheduler = request.app.state.discovery_scheduler
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "ranking_oracle": "configured" if get_ranking_oracle().available else "fallback",
            "scheduler": "scheduled" if scheduler.scheduled else "manual-only",
        },
    }
