"""Presentation helpers for resolved assignments."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

import pandas as pd

from rosterlab.core.types import CandidateId
from rosterlab.optimization.pool import ResolvedAssignment, ResolvedGroup, ResolvedSlot
from rosterlab.roster.contract.models import ActivityConfig, Candidate


def resolved_strength(group: Sequence[ResolvedSlot], role_weights: Mapping[str, float]) -> float:
    """Role-weighted mean rating of a resolved group (0 for an empty group)."""
    weight_sum = sum(role_weights.get(slot.role, 1.0) for slot in group)
    if weight_sum <= 0:
        return 0.0
    return sum(slot.rating * role_weights.get(slot.role, 1.0) for slot in group) / weight_sum


@dataclass(slots=True)
class RoleStatistics:
    count: int
    average_rating: float
    total_rating: float


@dataclass(slots=True)
class GroupStatistics:
    group_number: int
    size: int
    strength: float
    roles: dict[str, RoleStatistics] = field(default_factory=dict)


def sort_groups_by_strength(
    groups: ResolvedAssignment, role_weights: Mapping[str, float]
) -> ResolvedAssignment:
    """Strongest group first."""
    return sorted(groups, key=lambda group: resolved_strength(group, role_weights), reverse=True)


def sort_group_by_role(group: ResolvedGroup, display_order: Sequence[str]) -> ResolvedGroup:
    """Order slots by the activity's display order, strongest first within a role."""
    rank = {role: index for index, role in enumerate(display_order)}
    return sorted(group, key=lambda slot: (rank.get(slot.role, len(rank)), -slot.rating))


def organize_groups(groups: ResolvedAssignment, activity: ActivityConfig) -> ResolvedAssignment:
    ordered = sort_groups_by_strength(groups, activity.role_weights)
    return [sort_group_by_role(group, activity.role_display_order) for group in ordered]


def unassigned_candidates(
    groups: ResolvedAssignment, candidates: Iterable[Candidate]
) -> list[Candidate]:
    placed: set[CandidateId] = {slot.candidate_id for group in groups for slot in group}
    return [candidate for candidate in candidates if candidate.id not in placed]


def group_statistics(
    groups: ResolvedAssignment, role_weights: Mapping[str, float]
) -> list[GroupStatistics]:
    statistics: list[GroupStatistics] = []
    for index, group in enumerate(groups):
        ratings: dict[str, list[float]] = {}
        for slot in group:
            ratings.setdefault(slot.role, []).append(slot.rating)
        statistics.append(
            GroupStatistics(
                group_number=index + 1,
                size=len(group),
                strength=resolved_strength(group, role_weights),
                roles={
                    role: RoleStatistics(
                        count=len(values),
                        average_rating=round(sum(values) / len(values)),
                        total_rating=round(sum(values)),
                    )
                    for role, values in ratings.items()
                },
            )
        )
    return statistics


def to_dataframe(
    groups: ResolvedAssignment, activity: ActivityConfig | None = None
) -> pd.DataFrame:
    """Flatten groups into one row per placed candidate."""
    rows = [
        {
            "group": index + 1,
            "candidate_id": slot.candidate_id,
            "name": slot.candidate.name,
            "role": slot.role,
            "role_name": activity.display_name(slot.role) if activity else slot.role,
            "rating": slot.rating,
        }
        for index, group in enumerate(groups)
        for slot in group
    ]
    columns = ["group", "candidate_id", "name", "role", "role_name", "rating"]
    return pd.DataFrame(rows, columns=columns)


__all__ = [
    "RoleStatistics",
    "GroupStatistics",
    "resolved_strength",
    "sort_groups_by_strength",
    "sort_group_by_role",
    "organize_groups",
    "unassigned_candidates",
    "group_statistics",
    "to_dataframe",
]
