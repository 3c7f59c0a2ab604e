"""Process-wide access to store configurations."""
from __future__ import annotations

import logging

from catalog_backend.core.validation import AuthenticationError
from catalog_backend.domain import StoreConfiguration
from catalog_backend.infrastructure import InMemoryStoreRepository, StoreRepository

logger = logging.getLogger(__name__)

_repository = InMemoryStoreRepository()


def get_store_repository() -> StoreRepository:
    """Return the singleton store repository for the process."""

    return _repository


def resolve_identity(api_key: str | None) -> StoreConfiguration:
    if not api_key:
        raise AuthenticationError("API key required")
    store = _repository.find_by_api_key(api_key)
    if store is None:
        logger.info("rejected unknown API key")
        raise AuthenticationError("Invalid API key")
    return store


def try_resolve_identity(api_key: str | None) -> StoreConfiguration | None:
    if not api_key:
        return None
    return _repository.find_by_api_key(api_key)


def reset_store_state() -> None:
    """Reset the in-memory store (used in tests)."""

    _repository.reset()
