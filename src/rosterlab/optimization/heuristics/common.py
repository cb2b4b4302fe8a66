"""Shared problem context and helpers for the search algorithms."""

from __future__ import annotations

import asyncio
import logging
import math
import random as _random
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from rosterlab.core.diagnostics import WarningTracker
from rosterlab.core.types import RoleCode, active_roles, group_size
from rosterlab.evaluation.scoring import WORST_SCORE, group_strength, score_assignment
from rosterlab.optimization.heuristics.config import AdaptiveParameters
from rosterlab.optimization.pool import CandidatePool
from rosterlab.optimization.seeds import random_seed, specialist_first_seed
from rosterlab.optimization.slots import (
    Assignment,
    Group,
    clone_assignment,
    has_duplicate_candidate_ids,
    is_complete,
)
from rosterlab.roster.contract.models import ActivityConfig

logger = logging.getLogger(__name__)

PHASE_EXPLORATION = "exploration"
PHASE_EXPLOITATION = "exploitation"
PHASE_DIVERSIFICATION = "diversification"


@dataclass(frozen=True, slots=True)
class ProblemContext:
    """Read-only bundle shared by every algorithm during one optimization call.

    Attributes
    ----------
    composition:
        Required slot count per role in every group.
    group_count:
        Number of groups to build.
    pool:
        Candidate registry; the only source of ratings.
    role_weights:
        Multiplier per role used when aggregating group strength.
    params:
        Scoring weights and operator knobs.
    role_order:
        Priority order of roles for the seed generators (empty keeps composition order).
    deadline:
        ``time.monotonic()`` value after which algorithms return their best-so-far.
    warnings:
        Per-call warning de-duplication; each key is logged at most once per context.
    """

    composition: Mapping[RoleCode, int]
    group_count: int
    pool: CandidatePool
    role_weights: Mapping[RoleCode, float]
    params: AdaptiveParameters = field(default_factory=AdaptiveParameters)
    role_order: tuple[RoleCode, ...] = ()
    deadline: float | None = None
    warnings: WarningTracker = field(default_factory=lambda: WarningTracker(reset_interval=None))

    @classmethod
    def build(
        cls,
        composition: Mapping[RoleCode, int],
        group_count: int,
        pool: CandidatePool,
        *,
        activity: ActivityConfig | None = None,
        params: AdaptiveParameters | None = None,
        time_limit: float | None = None,
    ) -> ProblemContext:
        composition = {role: int(count) for role, count in composition.items() if count and count > 0}
        if activity is not None:
            role_weights = {role: activity.weight_for(role) for role in composition}
            role_order = tuple(activity.priority_order(composition))
        else:
            role_weights = {role: 1.0 for role in composition}
            role_order = tuple(composition)
        deadline = time.monotonic() + time_limit if time_limit else None
        return cls(
            composition=composition,
            group_count=group_count,
            pool=pool,
            role_weights=role_weights,
            params=params or AdaptiveParameters(),
            role_order=role_order,
            deadline=deadline,
        )

    @property
    def roles(self) -> list[RoleCode]:
        return active_roles(self.composition)

    @property
    def group_size(self) -> int:
        return group_size(self.composition)

    @property
    def total_slots(self) -> int:
        return self.group_size * self.group_count

    def rating(self, candidate_id: Any, role: RoleCode) -> float:
        return self.pool.rating(candidate_id, role)

    def weight(self, role: RoleCode) -> float:
        return self.role_weights.get(role, 1.0)

    def score(self, assignment: Sequence[Group]) -> float:
        return score_assignment(
            assignment, self.pool.rating, self.role_weights, self.params, self.composition
        )

    def strength(self, group: Group) -> float:
        return group_strength(group, self.pool.rating, self.role_weights)

    def strengths(self, assignment: Sequence[Group]) -> list[float]:
        return [self.strength(group) for group in assignment]

    def is_complete(self, assignment: Sequence[Group]) -> bool:
        return is_complete(assignment, self.composition, self.group_count)

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def random_assignment(self, rng: _random.Random) -> Assignment:
        return random_seed(
            self.composition, self.group_count, self.pool, rng=rng, role_order=self.role_order
        )

    def fallback_assignment(self, rng: _random.Random | None = None) -> Assignment:
        return specialist_first_seed(
            self.composition,
            self.group_count,
            self.pool,
            rng is not None,
            rng=rng,
            role_order=self.role_order,
        )


@dataclass(slots=True)
class SolverResult:
    """Best assignment found by one algorithm plus its run statistics."""

    assignment: Assignment
    score: float
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return bool(self.stats.get("complete", False))


async def checkpoint(problem: ProblemContext) -> bool:
    """Yield to the event loop; return ``True`` once the deadline has passed."""
    await asyncio.sleep(0)
    return problem.expired()


def finalize_result(
    problem: ProblemContext,
    assignment: Assignment,
    score: float | None,
    stats: dict[str, Any],
) -> SolverResult:
    """Attach the shared bookkeeping fields every algorithm reports."""
    if score is None or math.isnan(score):
        score = problem.score(assignment)
    if has_duplicate_candidate_ids(assignment):
        raise RuntimeError(f"{stats.get('algorithm', 'solver')} produced a duplicate candidate")
    stats.setdefault("best_score", float(score))
    stats["complete"] = problem.is_complete(assignment)
    stats["deadline_hit"] = problem.expired()
    return SolverResult(assignment=assignment, score=float(score), stats=stats)


def best_of(problem: ProblemContext, assignments: Sequence[Assignment]) -> tuple[Assignment, float]:
    """Clone and return the lowest-scoring assignment; complete assignments win over partial ones."""
    best: Assignment | None = None
    best_key = (True, WORST_SCORE)
    for assignment in assignments:
        score = problem.score(assignment)
        key = (not problem.is_complete(assignment), score)
        if best is None or key < best_key:
            best = assignment
            best_key = key
    if best is None:
        raise ValueError("best_of() requires at least one assignment")
    return clone_assignment(best), best_key[1]


__all__ = [
    "PHASE_EXPLORATION",
    "PHASE_EXPLOITATION",
    "PHASE_DIVERSIFICATION",
    "ProblemContext",
    "SolverResult",
    "checkpoint",
    "finalize_result",
    "best_of",
]
