"""Simulated annealing with stagnation-triggered reheating."""

from __future__ import annotations

import logging
import math
import random as _random

from rosterlab.optimization.heuristics.common import (
    PHASE_EXPLOITATION,
    PHASE_EXPLORATION,
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import AnnealingConfig
from rosterlab.optimization.heuristics.registry import (
    OperatorContext,
    OperatorRegistry,
    OperatorStats,
    perturb,
)
from rosterlab.optimization.slots import Assignment, clone_assignment

logger = logging.getLogger(__name__)


def accept_probability(delta: float, temperature: float) -> float:
    """Metropolis criterion: 1 for improvements, ``exp(-delta / T)`` otherwise."""
    if delta < 0:
        return 1.0
    if temperature <= 0:
        return 0.0
    return math.exp(-delta / temperature)


async def solve_annealing(
    problem: ProblemContext,
    initial: Assignment,
    *,
    config: AnnealingConfig | None = None,
    seed: int = 42,
    registry: OperatorRegistry | None = None,
) -> SolverResult:
    """Run simulated annealing from ``initial``.

    The temperature decays geometrically; after ``reheat_iterations`` iterations without a new best it
    is raised back to ``reheat_temperature``. The adaptive-swap share grows as the run cools
    (``0.3 + 0.5 * (1 - T / T0)``), the rest of the moves come from the universal mix.
    """
    config = config or AnnealingConfig()
    rng = _random.Random(seed)
    registry = registry or OperatorRegistry.from_defaults()
    adaptive = registry.get("adaptive_swap")

    current = clone_assignment(initial)
    current_score = problem.score(current)
    best = clone_assignment(current)
    best_score = current_score
    initial_score = current_score
    temperature = config.initial_temperature

    accepted = 0
    improvements = 0
    reheats = 0
    stagnation = 0
    operator_stats: OperatorStats = {}
    iteration = 0

    for iteration in range(1, config.iterations + 1):
        neighbor = clone_assignment(current)
        relative = temperature / config.initial_temperature
        context = OperatorContext(
            problem=problem,
            assignment=neighbor,
            rng=rng,
            phase=PHASE_EXPLORATION if relative > 0.5 else PHASE_EXPLOITATION,
            progress=iteration / config.iterations,
            temperature=relative,
        )
        if rng.random() < 0.3 + (1 - relative) * 0.5:
            adaptive.apply(context)
        else:
            perturb(context, algorithm="annealing", registry=registry, stats=operator_stats)

        neighbor_score = problem.score(neighbor)
        delta = neighbor_score - current_score
        if delta < 0 or rng.random() < accept_probability(delta, temperature):
            current = neighbor
            current_score = neighbor_score
            accepted += 1
            if current_score < best_score:
                best = clone_assignment(current)
                best_score = current_score
                improvements += 1
                stagnation = 0
            else:
                stagnation += 1
        else:
            stagnation += 1

        temperature = max(config.min_temperature, temperature * config.cooling_rate)
        if stagnation > config.reheat_iterations:
            temperature = config.reheat_temperature
            stagnation = 0
            reheats += 1

        if iteration % config.yield_every == 0 and await checkpoint(problem):
            break

    stats = {
        "algorithm": "annealing",
        "iterations": iteration,
        "initial_score": float(initial_score),
        "accepted_moves": accepted,
        "acceptance_rate": accepted / iteration if iteration else 0.0,
        "improvements": improvements,
        "reheats": reheats,
        "final_temperature": temperature,
        "operators_stats": operator_stats,
    }
    logger.debug("annealing: best_score=%.3f reheats=%d", best_score, reheats)
    return finalize_result(problem, best, best_score, stats)


__all__ = ["solve_annealing", "accept_probability"]
