from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from catalog_backend.core.scoring import rank_candidates, score_candidate, select_terms
from catalog_backend.domain import PotentialCategoryObservation

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _observation(term: str, count: int, first_days_ago: float, last_days_ago: float) -> PotentialCategoryObservation:
    return PotentialCategoryObservation(
        term=term,
        count=count,
        first_seen=NOW - timedelta(days=first_days_ago),
        last_seen=NOW - timedelta(days=last_days_ago),
    )


def test_score_blends_usage_recency_and_persistence():
    popular = score_candidate(_observation("A", 10, 10, 0), NOW)
    recent = score_candidate(_observation("B", 3, 3, 3), NOW)

    assert popular.recency_score == pytest.approx(100.0)
    assert popular.persistence_score == pytest.approx(20.0)
    assert popular.total_score == pytest.approx(39.0)
    assert recent.recency_score == pytest.approx(97.0)
    assert recent.persistence_score == pytest.approx(0.0)
    assert recent.total_score == pytest.approx(30.6)


def test_scores_are_bounded():
    stale = score_candidate(_observation("old", 1, 400, 200), NOW)

    assert stale.recency_score == 0.0
    assert stale.persistence_score == 100.0


def test_fractional_days_are_used():
    scored = score_candidate(_observation("half", 0, 0.5, 0.5), NOW)

    assert scored.recency_score == pytest.approx(99.5)


def test_rank_orders_by_score_and_respects_limit():
    observations = [
        _observation("B", 3, 3, 3),
        _observation("A", 10, 10, 0),
        _observation("C", 1, 90, 90),
    ]

    ranked = rank_candidates(observations, [], max_terms=2, now=NOW)

    assert [item.term for item in ranked] == ["A", "B"]


def test_rank_excludes_active_terms():
    observations = [_observation("A", 10, 10, 0), _observation("B", 3, 3, 3)]

    assert select_terms(observations, ["A"], now=NOW) == ["B"]


def test_ties_keep_input_order():
    observations = [_observation(term, 4, 2, 1) for term in ("x", "y", "z")]

    assert select_terms(observations, [], now=NOW) == ["x", "y", "z"]
