"""Onboarding and re-onboarding of stores."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from catalog_backend.core.schema import OnboardingRequest
from catalog_backend.core.validation import (
    PLATFORM_CREDENTIAL_FIELDS,
    CredentialError,
    JobAlreadyRunningError,
    require_fields,
    require_platform_credentials,
    validate_platform,
)
from catalog_backend.domain import JobRecord, StoreConfiguration
from catalog_backend.infrastructure import StoreRepository, get_credential_validator

from .jobs import JobService

logger = logging.getLogger(__name__)

FIRST_TIME_REQUIRED = ("user_email", "db_name", "platform", "categories", "types")

# request field -> store field; credentials are handled separately
STORE_FIELDS = {
    "db_name": "db_name",
    "platform": "platform",
    "categories": "categories",
    "types": "types",
    "soft_categories": "soft_categories",
    "sync_mode": "sync_mode",
    "context": "context",
    "explain": "explain",
}

CREDENTIAL_MESSAGES = {
    "shopify": "Unable to connect to Shopify. Please check your domain and access token.",
    "woocommerce": "Unable to connect to WooCommerce. Please check your URL, consumer key, and consumer secret.",
}


@dataclass(slots=True)
class OnboardingResult:
    store: StoreConfiguration
    job: JobRecord
    is_new_trial: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "state": self.job.state.value,
            "db_name": self.store.db_name,
            "is_new_trial": self.is_new_trial,
            "store": self.store.to_public_dict(),
        }


def _stored_values(store: StoreConfiguration) -> dict[str, Any]:
    values: dict[str, Any] = {"user_email": store.email}
    for request_field, store_field in STORE_FIELDS.items():
        value = getattr(store, store_field)
        if value is not None:
            values[request_field] = value
    values.update({key: value for key, value in store.credentials.items() if value is not None})
    return values


class OnboardingService:
    """Validates, merges and persists a store's configuration, then starts its sync."""

    def __init__(self, repository: StoreRepository, job_service: JobService) -> None:
        self._repository = repository
        self._job_service = job_service

    def resolve_values(
        self,
        payload: OnboardingRequest,
        identity: StoreConfiguration | None,
    ) -> dict[str, Any]:
        """Combine the request with the stored configuration.

        Without an identity the request must be complete. With one, stored
        values are defaults and any field present in the request replaces
        them, lists included.
        """

        provided = {key: value for key, value in payload.model_dump(exclude_unset=True).items() if value is not None}
        if identity is None:
            require_fields(provided, FIRST_TIME_REQUIRED)
            return provided

        merged = {**_stored_values(identity), **provided}
        merged["user_email"] = identity.email
        return merged

    async def onboard(
        self,
        payload: OnboardingRequest,
        identity: StoreConfiguration | None = None,
    ) -> OnboardingResult:
        values = self.resolve_values(payload, identity)
        require_fields(values, ("user_email", "db_name"))
        platform = validate_platform(values.get("platform"))

        credentials = {name: values.get(name) for name in PLATFORM_CREDENTIAL_FIELDS[platform]}
        require_platform_credentials(platform, credentials)
        if not await get_credential_validator().validate(platform, credentials):
            raise CredentialError(CREDENTIAL_MESSAGES[platform])

        email = str(values["user_email"])
        existing = self._repository.find_by_email(email)
        is_new_trial = existing is None or existing.first_time

        now = datetime.now(timezone.utc)
        updates: dict[str, Any] = {
            store_field: values[request_field]
            for request_field, store_field in STORE_FIELDS.items()
            if request_field in values
        }
        updates.update(
            {
                "credentials": credentials,
                "onboarding_complete": True,
                "updated_at": now,
            }
        )
        store = self._repository.upsert(
            email,
            updates,
            set_if_absent={"trial_started_at": now, "trial_status": "active"},
        )
        logger.info(
            "store %s onboarded for %s (%s, new trial: %s)",
            store.db_name,
            email,
            "re-onboarding" if identity else "first-time",
            is_new_trial,
        )

        try:
            job = await self._job_service.start_sync(store)
        except JobAlreadyRunningError:
            logger.warning("sync for %s not started: a job is already running", store.db_name)
            job = self._job_service.job_store.get_state(store.db_name)
        return OnboardingResult(store=store, job=job, is_new_trial=is_new_trial)
