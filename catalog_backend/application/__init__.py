"""Application services."""

from .discovery import (
    CategoryDiscoveryEngine,
    DiscoverySummary,
    StoreDiscoveryResult,
    configure_discovery_engine,
)
from .jobs import JobService, configure_job_service, get_job_runner, get_job_service, reset_job_state
from .onboarding import OnboardingResult, OnboardingService
from .stores import get_store_repository, reset_store_state, resolve_identity, try_resolve_identity

__all__ = [
    "CategoryDiscoveryEngine",
    "DiscoverySummary",
    "JobService",
    "OnboardingResult",
    "OnboardingService",
    "StoreDiscoveryResult",
    "configure_discovery_engine",
    "configure_job_service",
    "get_job_runner",
    "get_job_service",
    "get_store_repository",
    "reset_job_state",
    "reset_store_state",
    "resolve_identity",
    "try_resolve_identity",
]
