"""Sequential genetic -> tabu -> local search pipeline."""

from __future__ import annotations

import logging
import random as _random
from collections.abc import Sequence

from rosterlab.optimization.heuristics.common import ProblemContext, SolverResult, finalize_result
from rosterlab.optimization.heuristics.config import HybridConfig
from rosterlab.optimization.heuristics.ga import solve_genetic
from rosterlab.optimization.heuristics.local_search import solve_local_search
from rosterlab.optimization.heuristics.tabu import solve_tabu
from rosterlab.optimization.slots import Assignment

logger = logging.getLogger(__name__)


async def solve_hybrid(
    problem: ProblemContext,
    seeds: Sequence[Assignment],
    *,
    config: HybridConfig | None = None,
    seed: int = 42,
) -> SolverResult:
    """Explore with a short genetic run, intensify its winner with tabu, then hill-climb."""
    config = config or HybridConfig()
    rng = _random.Random(seed)
    stages: dict[str, dict[str, float]] = {}

    genetic = await solve_genetic(problem, seeds, config=config.genetic, seed=rng.randrange(2**31))
    stages["genetic"] = {"best_score": genetic.score}
    best = genetic
    if not problem.expired():
        tabu = await solve_tabu(problem, best.assignment, config=config.tabu, seed=rng.randrange(2**31))
        stages["tabu"] = {"best_score": tabu.score}
        if tabu.score <= best.score:
            best = tabu
    if not problem.expired():
        polished = await solve_local_search(
            problem, best.assignment, config=config.local_search, seed=rng.randrange(2**31)
        )
        stages["local_search"] = {"best_score": polished.score}
        if polished.score <= best.score:
            best = polished

    logger.debug("hybrid: stages=%s", stages)
    stats = {"algorithm": "hybrid", "stages": stages}
    return finalize_result(problem, best.assignment, best.score, stats)


__all__ = ["solve_hybrid"]
