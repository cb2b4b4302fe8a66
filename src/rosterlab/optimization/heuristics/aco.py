"""Ant-colony construction of slot assignments."""

from __future__ import annotations

import logging
import math
import random as _random

import numpy as np

from rosterlab.core.types import DEFAULT_RATING, CandidateId
from rosterlab.optimization.heuristics.common import (
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import AntColonyConfig
from rosterlab.optimization.slots import Assignment, Slot, clone_assignment, empty_assignment

logger = logging.getLogger(__name__)


class PheromoneTrail:
    """Pheromone level per ``(candidate, group)`` pair backed by a dense matrix."""

    def __init__(self, candidate_ids: list[CandidateId], group_count: int, initial: float) -> None:
        self.index = {candidate_id: row for row, candidate_id in enumerate(candidate_ids)}
        self.levels = np.full((len(candidate_ids), group_count), initial, dtype=float)

    def row(self, candidate_ids: list[CandidateId], group: int) -> np.ndarray:
        rows = [self.index[candidate_id] for candidate_id in candidate_ids]
        return self.levels[rows, group]

    def evaporate(self, rate: float) -> None:
        self.levels *= 1.0 - rate

    def deposit(self, assignment: Assignment, amount: float) -> None:
        for group_index, group in enumerate(assignment):
            for slot in group:
                row = self.index.get(slot.candidate_id)
                if row is not None:
                    self.levels[row, group_index] += amount


def _roulette(weights: np.ndarray, rng: _random.Random) -> int:
    total = float(weights.sum())
    if not math.isfinite(total) or total <= 0:
        return rng.randrange(len(weights))
    cumulative = np.cumsum(weights / total)
    position = int(np.searchsorted(cumulative, rng.random(), side="left"))
    return min(position, len(weights) - 1)


def construct_ant_solution(
    problem: ProblemContext,
    trail: PheromoneTrail,
    rng: _random.Random,
    config: AntColonyConfig,
) -> Assignment:
    """Build one assignment from scratch, scarcest role first."""
    pool = problem.pool
    groups = empty_assignment(problem.group_count)
    used: set[CandidateId] = set()
    order = sorted(
        problem.roles,
        key=lambda role: len(pool.eligible_ids(role))
        / (problem.composition[role] * problem.group_count),
    )
    for role in order:
        needed = problem.composition[role]
        available = sorted(
            (candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used),
            key=pool.role_count,
        )
        heuristic = np.array(
            [pool.rating(candidate_id, role) / DEFAULT_RATING for candidate_id in available],
            dtype=float,
        )
        for group_index in range(problem.group_count):
            for _ in range(needed):
                if not available:
                    break
                weights = trail.row(available, group_index) ** config.alpha * heuristic**config.beta
                pick = _roulette(weights, rng)
                candidate_id = available.pop(pick)
                heuristic = np.delete(heuristic, pick)
                groups[group_index].append(Slot(candidate_id, role))
                used.add(candidate_id)
    return groups


async def solve_ant_colony(
    problem: ProblemContext,
    *,
    config: AntColonyConfig | None = None,
    seed: int = 42,
) -> SolverResult:
    """Run the ant colony; only complete constructions are scored and reinforced.

    When no ant ever completes an assignment (pool shortage) the specialist-first seed is returned
    and ``stats["fallback"]`` is set.
    """
    config = config or AntColonyConfig()
    rng = _random.Random(seed)
    trail = PheromoneTrail(problem.pool.ids(), problem.group_count, config.initial_pheromone)

    best: Assignment | None = None
    best_score = math.inf
    improvements = 0
    complete_solutions = 0
    iteration = 0

    for iteration in range(1, config.iterations + 1):
        solutions: list[tuple[float, Assignment]] = []
        for _ in range(config.ant_count):
            solution = construct_ant_solution(problem, trail, rng, config)
            if not problem.is_complete(solution):
                continue
            score = problem.score(solution)
            solutions.append((score, solution))
            if score < best_score:
                best = clone_assignment(solution)
                best_score = score
                improvements += 1
        complete_solutions += len(solutions)

        trail.evaporate(config.evaporation_rate)
        for score, solution in solutions:
            trail.deposit(solution, config.pheromone_deposit / (1 + score))
        if best is not None:
            trail.deposit(best, config.pheromone_deposit * config.elitist_weight / (1 + best_score))

        if iteration % config.yield_every == 0 and await checkpoint(problem):
            break

    stats = {
        "algorithm": "ant_colony",
        "iterations": iteration,
        "ants": config.ant_count,
        "improvements": improvements,
        "complete_solutions": complete_solutions,
        "fallback": best is None,
    }
    if best is None:
        problem.warnings.warn(
            logger,
            "ant_colony:fallback",
            "Ant colony never completed an assignment; using the specialist-first seed",
        )
        best = problem.fallback_assignment()
        best_score = problem.score(best)
    logger.debug("ant_colony: best_score=%.3f", best_score)
    return finalize_result(problem, best, best_score, stats)


__all__ = ["PheromoneTrail", "construct_ant_solution", "solve_ant_colony"]
