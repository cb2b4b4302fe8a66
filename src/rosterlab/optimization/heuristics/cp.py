"""Constraint backtracking construction with an all-different used-set check."""

from __future__ import annotations

import logging
import math
import random as _random
from dataclasses import dataclass, field

from rosterlab.core.types import CandidateId, RoleCode
from rosterlab.optimization.heuristics.common import (
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import BacktrackingConfig
from rosterlab.optimization.slots import Assignment, Slot, empty_assignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SlotVariable:
    """One ``(group, role, slot-within-role)`` position to fill."""

    group: int
    role: RoleCode
    index: int
    domain: tuple[CandidateId, ...]


@dataclass(frozen=True, slots=True)
class Found:
    assignment: Assignment


@dataclass(frozen=True, slots=True)
class NotFound:
    reason: str


BacktrackOutcome = Found | NotFound

EXHAUSTED = "search space exhausted"
DEADLINE = "deadline reached"


@dataclass(slots=True)
class SearchCounters:
    backtracks: int = 0
    conflicts: int = 0
    steps: int = 0
    attempts: list[dict[str, int | str]] = field(default_factory=list)


def build_variables(problem: ProblemContext) -> list[SlotVariable]:
    variables: list[SlotVariable] = []
    for group in range(problem.group_count):
        for role in problem.roles:
            domain = problem.pool.eligible_ids(role)
            for index in range(problem.composition[role]):
                variables.append(SlotVariable(group=group, role=role, index=index, domain=domain))
    return variables


async def backtrack(
    problem: ProblemContext,
    variables: list[SlotVariable],
    max_backtracks: int,
    counters: SearchCounters,
    yield_every: int,
) -> BacktrackOutcome:
    """Depth-first search over ``variables`` in the given order.

    Iterative rather than recursive so large rosters never hit the interpreter's recursion limit.
    Gives up with :class:`NotFound` once ``max_backtracks`` is exceeded, the search space is
    exhausted, or the deadline passes.
    """
    total = len(variables)
    cursor = [0] * total
    chosen: list[CandidateId | None] = [None] * total
    used: set[CandidateId] = set()
    backtracks = 0
    depth = 0
    while depth < total:
        if depth < 0:
            counters.backtracks += backtracks
            return NotFound(EXHAUSTED)
        if backtracks > max_backtracks:
            counters.backtracks += backtracks
            return NotFound(f"backtrack budget of {max_backtracks} exceeded")
        counters.steps += 1
        if counters.steps % yield_every == 0 and await checkpoint(problem):
            counters.backtracks += backtracks
            return NotFound(DEADLINE)

        variable = variables[depth]
        previous = chosen[depth]
        if previous is not None:
            used.discard(previous)
            chosen[depth] = None
            backtracks += 1

        while cursor[depth] < len(variable.domain):
            candidate_id = variable.domain[cursor[depth]]
            cursor[depth] += 1
            if candidate_id in used:
                counters.conflicts += 1
                continue
            chosen[depth] = candidate_id
            used.add(candidate_id)
            break

        if chosen[depth] is None:
            cursor[depth] = 0
            depth -= 1
        else:
            depth += 1

    counters.backtracks += backtracks
    assignment = empty_assignment(problem.group_count)
    for variable, candidate_id in zip(variables, chosen):
        assignment[variable.group].append(Slot(candidate_id, variable.role))
    return Found(assignment)


async def solve_backtracking(
    problem: ProblemContext,
    *,
    config: BacktrackingConfig | None = None,
    seed: int = 42,
) -> SolverResult:
    """Run up to ``config.attempts`` searches, reshuffling the variable order after the first.

    Every completed assignment is scored and the best kept. If none completes, the specialist-first
    seed is substituted and ``stats["fallback"]`` is set.
    """
    config = config or BacktrackingConfig()
    rng = _random.Random(seed)
    variables = build_variables(problem)
    counters = SearchCounters()
    best: Assignment | None = None
    best_score = math.inf
    improvements = 0

    for attempt in range(config.attempts):
        if attempt > 0:
            rng.shuffle(variables)
        outcome = await backtrack(
            problem, variables, config.max_backtracks, counters, config.yield_every
        )
        if isinstance(outcome, Found):
            score = problem.score(outcome.assignment)
            counters.attempts.append({"attempt": attempt, "status": "found"})
            if score < best_score:
                best = outcome.assignment
                best_score = score
                improvements += 1
            continue
        counters.attempts.append({"attempt": attempt, "status": outcome.reason})
        if outcome.reason in (EXHAUSTED, DEADLINE):
            break

    stats = {
        "algorithm": "backtracking",
        "iterations": counters.steps,
        "attempts": counters.attempts,
        "backtracks": counters.backtracks,
        "conflicts": counters.conflicts,
        "improvements": improvements,
        "fallback": best is None,
    }
    if best is None:
        problem.warnings.warn(
            logger,
            "backtracking:fallback",
            "Backtracking found no assignment after %d backtracks; using the specialist-first seed",
            counters.backtracks,
        )
        best = problem.fallback_assignment()
        best_score = problem.score(best)
    return finalize_result(problem, best, best_score, stats)


__all__ = [
    "SlotVariable",
    "Found",
    "NotFound",
    "BacktrackOutcome",
    "build_variables",
    "backtrack",
    "solve_backtracking",
]
