"""Infrastructure layer for store configuration persistence."""
from __future__ import annotations

import copy
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Protocol

from catalog_backend.domain import PotentialCategoryObservation, StoreConfiguration

MAX_EXAMPLE_QUERIES = 5

_STORE_FIELDS = {item.name for item in fields(StoreConfiguration)}


class StoreRepository(Protocol):
    """Persistence contract for onboarded store configurations."""

    def find_by_email(self, email: str) -> StoreConfiguration | None: ...

    def find_by_api_key(self, api_key: str) -> StoreConfiguration | None: ...

    def find_by_db_name(self, db_name: str) -> StoreConfiguration | None: ...

    def upsert(
        self,
        email: str,
        updates: dict[str, Any],
        *,
        set_if_absent: dict[str, Any] | None = None,
    ) -> StoreConfiguration: ...

    def list_with_potential_categories(self) -> list[StoreConfiguration]: ...

    def update_soft_categories(self, email: str, soft_categories: list[str]) -> StoreConfiguration: ...

    def record_observation(
        self,
        email: str,
        term: str,
        *,
        query: str | None = None,
        seen_at: datetime | None = None,
    ) -> PotentialCategoryObservation: ...

    def reset(self) -> None: ...


class InMemoryStoreRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._stores: dict[str, StoreConfiguration] = {}

    # ------------------------------------------------------------------
    # internal helpers
    # ------------------------------------------------------------------
    def _require(self, email: str) -> StoreConfiguration:
        store = self._stores.get(email)
        if store is None:
            raise KeyError(email)
        return store

    @staticmethod
    def _check_fields(values: dict[str, Any]) -> None:
        unknown = set(values) - _STORE_FIELDS
        if unknown:
            raise ValueError(f"unknown store fields: {', '.join(sorted(unknown))}")

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def find_by_email(self, email: str) -> StoreConfiguration | None:
        store = self._stores.get(email)
        return copy.deepcopy(store) if store else None

    def find_by_api_key(self, api_key: str) -> StoreConfiguration | None:
        for store in self._stores.values():
            if store.api_key and store.api_key == api_key:
                return copy.deepcopy(store)
        return None

    def find_by_db_name(self, db_name: str) -> StoreConfiguration | None:
        for store in self._stores.values():
            if store.db_name == db_name:
                return copy.deepcopy(store)
        return None

    def list_with_potential_categories(self) -> list[StoreConfiguration]:
        return [copy.deepcopy(store) for store in self._stores.values() if store.potential_soft_categories]

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    def upsert(
        self,
        email: str,
        updates: dict[str, Any],
        *,
        set_if_absent: dict[str, Any] | None = None,
    ) -> StoreConfiguration:
        """Set only the given fields; ``set_if_absent`` never overwrites a value."""

        self._check_fields(updates)
        self._check_fields(set_if_absent or {})

        store = self._stores.get(email)
        if store is None:
            store = StoreConfiguration(email=email, db_name=str(updates.get("db_name") or ""))
            self._stores[email] = store

        for key, value in updates.items():
            setattr(store, key, copy.deepcopy(value))
        for key, value in (set_if_absent or {}).items():
            if getattr(store, key) is None:
                setattr(store, key, copy.deepcopy(value))
        return copy.deepcopy(store)

    def update_soft_categories(self, email: str, soft_categories: list[str]) -> StoreConfiguration:
        store = self._require(email)
        store.soft_categories = list(soft_categories)
        store.updated_at = datetime.now(timezone.utc)
        return copy.deepcopy(store)

    def record_observation(
        self,
        email: str,
        term: str,
        *,
        query: str | None = None,
        seen_at: datetime | None = None,
    ) -> PotentialCategoryObservation:
        store = self._require(email)
        seen_at = seen_at or datetime.now(timezone.utc)
        observation = store.potential_soft_categories.get(term)
        if observation is None:
            observation = PotentialCategoryObservation(term=term, first_seen=seen_at, last_seen=seen_at)
            store.potential_soft_categories[term] = observation
        observation.count += 1
        if observation.first_seen is None or seen_at < observation.first_seen:
            observation.first_seen = seen_at
        if observation.last_seen is None or seen_at > observation.last_seen:
            observation.last_seen = seen_at
        if query and query not in observation.example_queries and len(observation.example_queries) < MAX_EXAMPLE_QUERIES:
            observation.example_queries.append(query)
        return copy.deepcopy(observation)

    def reset(self) -> None:
        self._stores.clear()
