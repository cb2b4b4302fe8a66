"""Hill-climbing polish pass."""

from __future__ import annotations

import logging
import random as _random

from rosterlab.optimization.heuristics.common import (
    PHASE_EXPLOITATION,
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import LocalSearchConfig
from rosterlab.optimization.heuristics.registry import (
    OperatorContext,
    OperatorRegistry,
    OperatorStats,
    perturb,
)
from rosterlab.optimization.slots import Assignment, clone_assignment

logger = logging.getLogger(__name__)


async def solve_local_search(
    problem: ProblemContext,
    initial: Assignment,
    *,
    config: LocalSearchConfig | None = None,
    seed: int = 42,
    registry: OperatorRegistry | None = None,
    record_history: bool = False,
) -> SolverResult:
    """Accept a neighbour only when it strictly lowers the score.

    With ``record_history`` the accepted-current score after every iteration is kept in
    ``stats["history"]``; the sequence is non-increasing.
    """
    config = config or LocalSearchConfig()
    rng = _random.Random(seed)
    registry = registry or OperatorRegistry.from_defaults()
    adaptive = registry.get("adaptive_swap")

    current = clone_assignment(initial)
    current_score = problem.score(current)
    initial_score = current_score
    improvements = 0
    history: list[float] = [current_score] if record_history else []
    operator_stats: OperatorStats = {}
    iteration = 0

    for iteration in range(1, config.iterations + 1):
        neighbor = clone_assignment(current)
        context = OperatorContext(
            problem=problem,
            assignment=neighbor,
            rng=rng,
            phase=PHASE_EXPLOITATION,
            progress=iteration / config.iterations,
        )
        if rng.random() < config.adaptive_probability:
            adaptive.apply(context)
        else:
            perturb(context, algorithm="local_search", registry=registry, stats=operator_stats)
        score = problem.score(neighbor)
        if score < current_score:
            current = neighbor
            current_score = score
            improvements += 1
        if record_history:
            history.append(current_score)
        if iteration % config.yield_every == 0 and await checkpoint(problem):
            break

    stats = {
        "algorithm": "local_search",
        "iterations": iteration,
        "initial_score": float(initial_score),
        "improvements": improvements,
        "operators_stats": operator_stats,
    }
    if record_history:
        stats["history"] = history
    logger.debug("local_search: %.3f -> %.3f", initial_score, current_score)
    return finalize_result(problem, current, current_score, stats)


__all__ = ["solve_local_search"]
