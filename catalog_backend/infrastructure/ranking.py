"""Ranking oracle hooks.

The oracle picks the best new soft categories among mined candidates. It
is advisory only: callers must validate its answer and fall back to the
local scorer when it is unavailable or fails.
"""
from __future__ import annotations

from typing import Protocol, Sequence

from catalog_backend.domain import PotentialCategoryObservation


class RankingOracleError(RuntimeError):
    """Raised when the ranking oracle cannot produce a selection."""


class RankingOracle(Protocol):
    """Contract for ranking integrations."""

    @property
    def available(self) -> bool: ...

    async def rank(
        self,
        candidates: Sequence[PotentialCategoryObservation],
        existing_categories: Sequence[str],
        max_terms: int,
    ) -> list[str]:
        """Return at most ``max_terms`` selected terms."""


class UnavailableRankingOracle:
    """Placeholder used when no oracle is configured."""

    @property
    def available(self) -> bool:
        return False

    async def rank(
        self,
        candidates: Sequence[PotentialCategoryObservation],
        existing_categories: Sequence[str],
        max_terms: int,
    ) -> list[str]:
        raise RankingOracleError("ranking oracle not configured")


_oracle: RankingOracle = UnavailableRankingOracle()


def configure_ranking_oracle(oracle: RankingOracle) -> None:
    """Install the oracle used by category discovery."""

    global _oracle
    _oracle = oracle


def get_ranking_oracle() -> RankingOracle:
    return _oracle
