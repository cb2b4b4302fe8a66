from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from rosterlab.evaluation.metrics import (
    consistency_metric,
    depth_metric,
    fairness_metric,
    role_balance_metric,
    top_candidate_threshold,
)
from rosterlab.evaluation.scoring import (
    WORST_SCORE,
    ScoringWeights,
    balance_summary,
    group_strength,
    group_strengths,
    score_assignment,
)
from rosterlab.optimization.pool import CandidatePool
from rosterlab.optimization.slots import Slot
from tests.rosters import toy_candidates

WEIGHTS = {"A": 1.0, "B": 1.0}


def _build_rating():
    return CandidatePool(toy_candidates()).rating


def _naive():
    return [[Slot("A1", "A"), Slot("B1", "B")], [Slot("A2", "A"), Slot("B2", "B")]]


def _balanced():
    return [[Slot("A1", "A"), Slot("B2", "B")], [Slot("A2", "A"), Slot("B1", "B")]]


def test_group_strength_is_weighted_mean():
    rating = _build_rating()
    group = [Slot("A1", "A"), Slot("B1", "B")]
    assert group_strength(group, rating, WEIGHTS) == pytest.approx(1875.0)
    weighted = group_strength(group, rating, {"A": 3.0, "B": 1.0})
    assert weighted == pytest.approx((1900 * 3 + 1850) / 4)
    assert math.isnan(group_strength([], rating, WEIGHTS))
    assert group_strengths(_balanced(), rating, WEIGHTS) == [1825.0, 1775.0]


def test_score_is_spread_plus_weighted_std_dev():
    rating = _build_rating()
    assert score_assignment(_naive(), rating, WEIGHTS) == pytest.approx(150 + 75 * 0.5)
    assert score_assignment(_balanced(), rating, WEIGHTS) == pytest.approx(50 + 25 * 0.5)
    assert score_assignment(_balanced(), rating, WEIGHTS) < score_assignment(_naive(), rating, WEIGHTS)


def test_empty_structures_score_worst():
    rating = _build_rating()
    assert score_assignment([], rating, WEIGHTS) == WORST_SCORE
    assert score_assignment([[Slot("A1", "A")], []], rating, WEIGHTS) == WORST_SCORE


def test_secondary_penalties_are_additive():
    rating = _build_rating()
    base = score_assignment(_naive(), rating, WEIGHTS)
    with_balance = score_assignment(
        _naive(), rating, WEIGHTS, ScoringWeights(role_balance_weight=1.0)
    )
    assert with_balance == pytest.approx(base + role_balance_metric(_naive(), rating, WEIGHTS))
    with_consistency = score_assignment(
        _naive(), rating, WEIGHTS, ScoringWeights(consistency_weight=2.0), {"A": 1, "B": 1}
    )
    assert with_consistency > base


def test_scoring_weights_validation():
    with pytest.raises(ValidationError):
        ScoringWeights(variance_weight=-1)
    with pytest.raises(ValidationError):
        ScoringWeights(top_fraction=0)


def test_balance_summary_details():
    rating = _build_rating()
    summary = balance_summary(
        _naive(), rating, WEIGHTS, composition={"A": 1, "B": 1}, detailed=True
    )
    assert summary.spread == pytest.approx(150.0)
    assert summary.std_dev == pytest.approx(75.0)
    assert summary.average == pytest.approx(1800.0)
    assert summary.maximum == pytest.approx(1875.0)
    assert summary.minimum == pytest.approx(1725.0)
    assert summary.fairness is not None and summary.consistency is not None
    payload = summary.to_dict()
    assert set(payload) >= {"spread", "std_dev", "average", "per_group_strength", "fairness"}

    plain = balance_summary(_naive(), rating, WEIGHTS)
    assert plain.fairness is None and "fairness" not in plain.to_dict()
    assert balance_summary([], rating, WEIGHTS).spread == 0.0


def test_fairness_counts_top_candidates_per_group():
    rating = _build_rating()
    threshold, top_ids = top_candidate_threshold(_naive(), rating, WEIGHTS, 0.5)
    assert top_ids == {"A1", "B1"}
    assert threshold == pytest.approx(1850.0)
    naive = fairness_metric(_naive(), rating, WEIGHTS, 0.5)
    assert naive.per_group == [2, 0]
    assert naive.score == pytest.approx(100.0)
    balanced = fairness_metric(_balanced(), rating, WEIGHTS, 0.5)
    assert balanced.per_group == [1, 1]
    assert balanced.score == 0.0


def test_consistency_and_role_balance():
    rating = _build_rating()
    naive = consistency_metric(_naive(), {"A": 1, "B": 1}, rating, WEIGHTS)
    assert naive.details["A"].range == pytest.approx(200.0)
    assert naive.details["B"].variance == pytest.approx(2500.0)
    assert naive.weighted_variance == pytest.approx((10000.0 + 2500.0) / 2)
    assert role_balance_metric(_naive(), rating, WEIGHTS) == pytest.approx(300.0)


def test_depth_metric_rewards_even_backups():
    pool = CandidatePool(
        [{"id": index, "roles": ["A"], "ratings": {"A": 1500 + index * 10}} for index in range(4)]
    )
    even = [[Slot(0, "A"), Slot(3, "A")], [Slot(1, "A"), Slot(2, "A")]]
    uneven = [[Slot(2, "A"), Slot(3, "A")], [Slot(0, "A"), Slot(1, "A")]]
    composition = {"A": 2}
    assert depth_metric(even, composition, pool.rating, {"A": 1.0}) > depth_metric(
        uneven, composition, pool.rating, {"A": 1.0}
    )
