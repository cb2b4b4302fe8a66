"""Tabu Search heuristic built on top of the operator registry."""

from __future__ import annotations

import logging
import random as _random
from collections import deque
from collections.abc import Sequence

from rosterlab.optimization.heuristics.common import (
    PHASE_DIVERSIFICATION,
    PHASE_EXPLOITATION,
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import TabuConfig
from rosterlab.optimization.heuristics.registry import (
    OperatorContext,
    OperatorRegistry,
    OperatorStats,
    apply_swaps,
    perturb,
)
from rosterlab.optimization.slots import Assignment, clone_assignment, hash_assignment

logger = logging.getLogger(__name__)

Move = tuple[float, str, Assignment]


def _neighborhood(
    problem: ProblemContext,
    current: Assignment,
    registry: OperatorRegistry,
    rng: _random.Random,
    config: TabuConfig,
    stagnation: int,
    progress: float,
    operator_stats: OperatorStats,
) -> list[Move]:
    adaptive_probability = (
        config.stagnating_adaptive_probability
        if stagnation > config.stagnation_threshold
        else config.adaptive_probability
    )
    stagnating = stagnation > config.stagnation_threshold
    adaptive = registry.get("adaptive_swap")
    neighbors: list[Move] = []
    for _ in range(config.neighborhood_size):
        neighbor = clone_assignment(current)
        context = OperatorContext(
            problem=problem,
            assignment=neighbor,
            rng=rng,
            phase=PHASE_DIVERSIFICATION if stagnating else PHASE_EXPLOITATION,
            progress=progress,
        )
        if rng.random() < adaptive_probability:
            applied = adaptive.apply(context)
            entry = operator_stats.setdefault(adaptive.name, {"proposals": 0.0, "applied": 0.0})
            entry["proposals"] += 1
            entry["applied"] += 1 if applied else 0
        else:
            perturb(
                context,
                algorithm="tabu",
                registry=registry,
                stats=operator_stats,
                stagnating=stagnating,
            )
        neighbors.append((problem.score(neighbor), hash_assignment(neighbor), neighbor))
    neighbors.sort(key=lambda item: item[0])
    return neighbors


def select_move(
    neighbors: Sequence[Move], tabu: set[str] | frozenset[str], best_score: float
) -> tuple[Move | None, bool]:
    """Pick the best admissible neighbour from a score-sorted batch.

    Returns ``(move, aspirated)``. A tabu neighbour is admissible only when it beats ``best_score``.
    ``(None, False)`` means every neighbour is tabu and none qualifies; the search stays put.
    """
    for move in neighbors:
        score, key, _ = move
        if key not in tabu:
            return move, False
        if score < best_score:
            return move, True
    return None, False


async def solve_tabu(
    problem: ProblemContext,
    initial: Assignment,
    *,
    config: TabuConfig | None = None,
    seed: int = 42,
    registry: OperatorRegistry | None = None,
) -> SolverResult:
    """Run Tabu Search from ``initial``.

    Parameters
    ----------
    problem : ProblemContext
        Shared read-only problem description.
    initial : Assignment
        Starting assignment (cloned).
    config : TabuConfig | None
        Tenure, neighbourhood size, diversification and restart settings.
    seed : int, default=42
        RNG seed that controls neighbourhood sampling and diversification.
    registry : OperatorRegistry | None
        Operators used to build neighbours (defaults to the universal mix).

    Returns
    -------
    SolverResult
        Best assignment with ``iterations``, ``improvements``, ``aspirations``, ``diversifications``
        and ``restarts`` counters.
    """
    config = config or TabuConfig()
    rng = _random.Random(seed)
    registry = registry or OperatorRegistry.from_defaults()

    current = clone_assignment(initial)
    current_score = problem.score(current)
    best = clone_assignment(current)
    best_score = current_score
    initial_score = current_score

    tabu_queue: deque[str] = deque()
    tabu_set: set[str] = set()

    def remember(key: str) -> None:
        if key in tabu_set:
            return
        tabu_queue.append(key)
        tabu_set.add(key)
        while len(tabu_queue) > config.tenure:
            tabu_set.discard(tabu_queue.popleft())

    remember(hash_assignment(current))
    stagnation = 0
    improvements = 0
    aspirations = 0
    diversifications = 0
    restarts = 0
    operator_stats: OperatorStats = {}
    iteration = 0

    for iteration in range(1, config.iterations + 1):
        progress = iteration / config.iterations
        neighbors = _neighborhood(
            problem, current, registry, rng, config, stagnation, progress, operator_stats
        )
        chosen, aspirated = select_move(neighbors, tabu_set, best_score)
        if chosen is None:
            stagnation += 1
        else:
            if aspirated:
                aspirations += 1
            current_score, key, current = chosen
            remember(key)
            if current_score < best_score:
                best = clone_assignment(current)
                best_score = current_score
                improvements += 1
                stagnation = 0
            else:
                stagnation += 1

        if iteration % config.diversification_interval == 0:
            current = clone_assignment(best)
            swaps = max(3, len(current[0]) // 2) if current else 3
            apply_swaps(OperatorContext(problem=problem, assignment=current, rng=rng), swaps, registry)
            current_score = problem.score(current)
            keep = config.tenure // 2
            while len(tabu_queue) > keep:
                tabu_set.discard(tabu_queue.popleft())
            stagnation = 0
            diversifications += 1
        elif stagnation > config.restart_stagnation:
            current = clone_assignment(best)
            apply_swaps(
                OperatorContext(problem=problem, assignment=current, rng=rng),
                config.restart_perturbations,
                registry,
            )
            current_score = problem.score(current)
            stagnation = 0
            restarts += 1

        if iteration % config.yield_every == 0 and await checkpoint(problem):
            break

    stats = {
        "algorithm": "tabu",
        "iterations": iteration,
        "initial_score": float(initial_score),
        "improvements": improvements,
        "aspirations": aspirations,
        "diversifications": diversifications,
        "restarts": restarts,
        "tabu_tenure": config.tenure,
        "tabu_size": len(tabu_queue),
        "operators_stats": operator_stats,
    }
    logger.debug("tabu: best_score=%.3f after %d iterations", best_score, iteration)
    return finalize_result(problem, best, best_score, stats)


async def solve_tabu_multistart(
    problem: ProblemContext,
    starts: Sequence[Assignment],
    *,
    config: TabuConfig | None = None,
    seed: int = 42,
) -> SolverResult:
    """Run :func:`solve_tabu` once per start assignment and keep the best outcome."""
    if not starts:
        raise ValueError("solve_tabu_multistart() requires at least one start assignment")
    rng = _random.Random(seed)
    best = await solve_tabu(problem, starts[0], config=config, seed=rng.randrange(2**31))
    runs: list[dict[str, float]] = [{"start": 0, "best_score": best.score}]
    for index, start in enumerate(starts[1:], 1):
        if problem.expired():
            break
        result = await solve_tabu(problem, start, config=config, seed=rng.randrange(2**31))
        runs.append({"start": index, "best_score": result.score})
        if (not result.complete, result.score) < (not best.complete, best.score):
            best = result
    stats = dict(best.stats)
    stats.update({"algorithm": "tabu", "starts": len(runs), "runs": runs})
    return SolverResult(assignment=best.assignment, score=best.score, stats=stats)


__all__ = ["select_move", "solve_tabu", "solve_tabu_multistart"]
