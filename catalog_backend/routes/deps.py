from __future__ import annotations

from fastapi import Header, HTTPException, Query

from catalog_backend.application import resolve_identity, try_resolve_identity
from catalog_backend.core.validation import AuthenticationError
from catalog_backend.domain import StoreConfiguration


def require_store(
    x_api_key: str | None = Header(default=None),
    api_key: str | None = Query(default=None),
) -> StoreConfiguration:
    """Resolve the calling store from its API key or reject with 401."""
    try:
        return resolve_identity(x_api_key or api_key)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def optional_store(
    x_api_key: str | None = Header(default=None),
    api_key: str | None = Query(default=None),
) -> StoreConfiguration | None:
    return try_resolve_identity(x_api_key or api_key)


def ensure_own_store(store: StoreConfiguration, db_name: str | None) -> str:
    if db_name and db_name != store.db_name:
        raise HTTPException(status_code=403, detail="db_name does not belong to this API key")
    return db_name or store.db_name
