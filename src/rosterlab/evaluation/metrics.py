"""Secondary balance metrics: fairness, consistency, role balance and depth.

All metrics read ratings through a ``(candidate_id, role) -> rating`` lookup so slot and resolved
assignments share one implementation. Lower is better except for :func:`depth_metric`.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

from rosterlab.core.types import CandidateId, RoleCode
from rosterlab.optimization.slots import Group

RatingLookup = Callable[[CandidateId, RoleCode], float]


def _population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


@dataclass(slots=True)
class FairnessMetric:
    """Distribution of top-rated candidates across groups."""

    score: float
    top_count: int
    per_group: list[int] = field(default_factory=list)
    ideal_per_group: float = 0.0
    threshold: float = 0.0
    variance: float = 0.0


@dataclass(slots=True)
class RoleSpreadDetail:
    variance: float
    std_dev: float
    average: float
    minimum: float
    maximum: float
    weight: float

    @property
    def range(self) -> float:
        return self.maximum - self.minimum


@dataclass(slots=True)
class ConsistencyMetric:
    """Per-role cross-group variance of average rating."""

    score: float
    weighted_variance: float
    details: dict[RoleCode, RoleSpreadDetail] = field(default_factory=dict)


def top_candidate_threshold(
    assignment: Sequence[Group],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
    top_fraction: float = 0.2,
) -> tuple[float, set[CandidateId]]:
    """Return the weighted rating cut-off and ids of the top ``top_fraction`` of placed candidates."""
    weighted = sorted(
        (
            (rating(slot.candidate_id, slot.role) * role_weights.get(slot.role, 1.0), slot.candidate_id)
            for group in assignment
            for slot in group
        ),
        key=lambda item: item[0],
        reverse=True,
    )
    if not weighted:
        return 0.0, set()
    top_count = max(1, math.ceil(len(weighted) * top_fraction))
    top = weighted[:top_count]
    return top[-1][0], {candidate_id for _, candidate_id in top}


def fairness_metric(
    assignment: Sequence[Group],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
    top_fraction: float = 0.2,
) -> FairnessMetric:
    group_count = len(assignment)
    if group_count == 0 or not any(assignment):
        return FairnessMetric(score=0.0, top_count=0)
    threshold, top_ids = top_candidate_threshold(assignment, rating, role_weights, top_fraction)
    per_group = [sum(1 for slot in group if slot.candidate_id in top_ids) for group in assignment]
    ideal = len(top_ids) / group_count
    variance = sum((count - ideal) ** 2 for count in per_group) / group_count
    return FairnessMetric(
        score=math.sqrt(variance) * 100.0,
        top_count=len(top_ids),
        per_group=per_group,
        ideal_per_group=ideal,
        threshold=threshold,
        variance=variance,
    )


def role_averages(
    assignment: Sequence[Group], role: RoleCode, rating: RatingLookup
) -> list[float]:
    """Average rating at ``role`` per group (0 for groups without that role)."""
    averages: list[float] = []
    for group in assignment:
        values = [rating(slot.candidate_id, role) for slot in group if slot.role == role]
        averages.append(sum(values) / len(values) if values else 0.0)
    return averages


def consistency_metric(
    assignment: Sequence[Group],
    composition: Mapping[RoleCode, int],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
) -> ConsistencyMetric:
    if not assignment:
        return ConsistencyMetric(score=0.0, weighted_variance=0.0)
    details: dict[RoleCode, RoleSpreadDetail] = {}
    for role, required in composition.items():
        if not required:
            continue
        averages = role_averages(assignment, role, rating)
        variance = _population_variance(averages)
        details[role] = RoleSpreadDetail(
            variance=variance,
            std_dev=math.sqrt(variance),
            average=sum(averages) / len(averages),
            minimum=min(averages),
            maximum=max(averages),
            weight=role_weights.get(role, 1.0),
        )
    total_weight = sum(role_weights.get(role, 1.0) for role in composition) or 1.0
    weighted_variance = (
        sum(detail.variance * detail.weight for detail in details.values()) / total_weight
    )
    return ConsistencyMetric(
        score=math.sqrt(weighted_variance),
        weighted_variance=weighted_variance,
        details=details,
    )


def role_balance_metric(
    assignment: Sequence[Group],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
) -> float:
    """Sum over roles of the max-min spread of each group's weighted rating total at that role."""
    totals: dict[RoleCode, list[float]] = {}
    group_count = len(assignment)
    for index, group in enumerate(assignment):
        for slot in group:
            per_group = totals.setdefault(slot.role, [0.0] * group_count)
            per_group[index] += rating(slot.candidate_id, slot.role) * role_weights.get(slot.role, 1.0)
    return sum(max(values) - min(values) for values in totals.values())


def depth_metric(
    assignment: Sequence[Group],
    composition: Mapping[RoleCode, int],
    rating: RatingLookup,
    role_weights: Mapping[RoleCode, float],
) -> float:
    """Average backup strength minus ten times its cross-group standard deviation (higher is better)."""
    if not assignment:
        return 0.0
    depths: list[float] = []
    for group in assignment:
        depth_sum = 0.0
        role_total = 0
        for role in composition:
            values = sorted(
                (rating(slot.candidate_id, role) for slot in group if slot.role == role),
                reverse=True,
            )
            if len(values) <= 1:
                continue
            backups = values[1:]
            depth_sum += sum(backups) / len(backups) * role_weights.get(role, 1.0)
            role_total += 1
        depths.append(depth_sum / role_total if role_total else 0.0)
    average = sum(depths) / len(depths)
    return average - math.sqrt(_population_variance(depths)) * 10.0


__all__ = [
    "RatingLookup",
    "FairnessMetric",
    "ConsistencyMetric",
    "RoleSpreadDetail",
    "top_candidate_threshold",
    "fairness_metric",
    "consistency_metric",
    "role_averages",
    "role_balance_metric",
    "depth_metric",
]
