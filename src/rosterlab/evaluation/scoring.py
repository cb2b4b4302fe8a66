"""Scalar quality score for an assignment (lower is better)."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from pydantic import BaseModel, field_validator

from rosterlab.core.types import RoleCode
from rosterlab.evaluation.metrics import (
    ConsistencyMetric,
    FairnessMetric,
    RatingLookup,
    consistency_metric,
    fairness_metric,
    role_balance_metric,
)
from rosterlab.optimization.slots import Group

WORST_SCORE = math.inf


class ScoringWeights(BaseModel):
    """Weights of the score components.

    Attributes
    ----------
    variance_weight:
        Multiplier on the population standard deviation of group strengths.
    role_balance_weight:
        Multiplier on the summed per-role spread of aggregate weighted ratings. ``0`` disables it.
    fairness_weight:
        Multiplier on the top-candidate distribution penalty. ``0`` disables it.
    consistency_weight:
        Multiplier on the per-role cross-group variance penalty. ``0`` disables it.
    top_fraction:
        Share of placed candidates treated as "top" by the fairness metric.
    """

    variance_weight: float = 0.5
    role_balance_weight: float = 0.0
    fairness_weight: float = 0.0
    consistency_weight: float = 0.0
    top_fraction: float = 0.2

    @field_validator("variance_weight", "role_balance_weight", "fairness_weight", "consistency_weight")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Score weights must be non-negative")
        return value

    @field_validator("top_fraction")
    @classmethod
    def _fraction(cls, value: float) -> float:
        if not 0 < value <= 1:
            raise ValueError("top_fraction must be in (0, 1]")
        return value


def group_strength(
    group: Sequence, rating: RatingLookup, role_weights: Mapping[RoleCode, float]
) -> float:
    """Role-weighted mean rating of one group; ``nan`` for an empty group."""
    total = 0.0
    weight_sum = 0.0
    for slot in group:
        weight = role_weights.get(slot.role, 1.0)
        total += rating(slot.candidate_id, slot.role) * weight
        weight_sum += weight
    if weight_sum <= 0:
        return math.nan
    return total / weight_sum


def group_strengths(
    assignment: Sequence[Group], rating: RatingLookup, role_weights: Mapping[RoleCode, float]
) -> list[float]:
    return [group_strength(group, rating, role_weights) for group in assignment]


@dataclass(slots=True)
class BalanceSummary:
    """Spread statistics over per-group strengths."""

    spread: float
    std_dev: float
    average: float
    per_group_strength: list[float] = field(default_factory=list)
    fairness: FairnessMetric | None = None
    consistency: ConsistencyMetric | None = None
    role_balance: float | None = None

    @property
    def maximum(self) -> float:
        return max(self.per_group_strength) if self.per_group_strength else 0.0

    @property
    def minimum(self) -> float:
        return min(self.per_group_strength) if self.per_group_strength else 0.0

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "spread": self.spread,
            "std_dev": self.std_dev,
            "average": self.average,
            "per_group_strength": list(self.per_group_strength),
        }
        if self.fairness is not None:
            payload["fairness"] = self.fairness.score
        if self.consistency is not None:
            payload["consistency"] = self.consistency.score
        if self.role_balance is not None:
            payload["role_balance"] = self.role_balance
        return payload


def _spread_stats(strengths: Sequence[float]) -> tuple[float, float, float]:
    average = sum(strengths) / len(strengths)
    variance = sum((value - average) ** 2 for value in strengths) / len(strengths)
    return max(strengths) - min(strengths), math.sqrt(variance), average


def balance_summary(
    assignment: Sequence[Group],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
    *,
    composition: Mapping[RoleCode, int] | None = None,
    detailed: bool = False,
    top_fraction: float = 0.2,
) -> BalanceSummary:
    """Compute spread / std-dev / average of group strengths, optionally with secondary metrics."""
    strengths = [value for value in group_strengths(assignment, rating, role_weights) if not math.isnan(value)]
    if not strengths:
        return BalanceSummary(spread=0.0, std_dev=0.0, average=0.0, per_group_strength=[])
    spread, std_dev, average = _spread_stats(strengths)
    summary = BalanceSummary(
        spread=spread, std_dev=std_dev, average=average, per_group_strength=strengths
    )
    if detailed:
        summary.fairness = fairness_metric(assignment, rating, role_weights, top_fraction)
        summary.role_balance = role_balance_metric(assignment, rating, role_weights)
        if composition is not None:
            summary.consistency = consistency_metric(assignment, composition, rating, role_weights)
    return summary


def score_assignment(
    assignment: Sequence[Group],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
    weights: ScoringWeights | None = None,
    composition: Mapping[RoleCode, int] | None = None,
) -> float:
    """Return ``spread + std_dev * variance_weight`` plus any enabled secondary penalties.

    Structurally empty input (no groups, or any empty group) scores :data:`WORST_SCORE`.
    """
    if not assignment:
        return WORST_SCORE
    params = weights or _DEFAULT_WEIGHTS
    strengths: list[float] = []
    for group in assignment:
        if not group:
            return WORST_SCORE
        total = 0.0
        weight_sum = 0.0
        for slot in group:
            weight = role_weights.get(slot.role, 1.0)
            total += rating(slot.candidate_id, slot.role) * weight
            weight_sum += weight
        if weight_sum <= 0:
            return WORST_SCORE
        strengths.append(total / weight_sum)
    spread, std_dev, _ = _spread_stats(strengths)
    score = spread + std_dev * params.variance_weight
    if params.role_balance_weight:
        score += role_balance_metric(assignment, rating, role_weights) * params.role_balance_weight
    if params.fairness_weight:
        fairness = fairness_metric(assignment, rating, role_weights, params.top_fraction)
        score += fairness.score * params.fairness_weight
    if params.consistency_weight:
        roles = composition or {slot.role: 1 for group in assignment for slot in group}
        consistency = consistency_metric(assignment, roles, rating, role_weights)
        score += consistency.score * params.consistency_weight
    return score


_DEFAULT_WEIGHTS = ScoringWeights()


__all__ = [
    "WORST_SCORE",
    "ScoringWeights",
    "BalanceSummary",
    "group_strength",
    "group_strengths",
    "balance_summary",
    "score_assignment",
]
