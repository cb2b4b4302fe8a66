"""Evolutionary population search over slot assignments."""

from __future__ import annotations

import logging
import math
import random as _random
from collections.abc import Sequence

from rosterlab.optimization.heuristics.common import (
    PHASE_DIVERSIFICATION,
    PHASE_EXPLOITATION,
    PHASE_EXPLORATION,
    ProblemContext,
    SolverResult,
    checkpoint,
    finalize_result,
)
from rosterlab.optimization.heuristics.config import GeneticConfig
from rosterlab.optimization.heuristics.registry import (
    OperatorContext,
    OperatorRegistry,
    OperatorStats,
    perturb,
)
from rosterlab.optimization.slots import (
    Assignment,
    Slot,
    assignment_difference,
    clone_assignment,
    validate_all_groups_composition,
)

logger = logging.getLogger(__name__)


Rank = tuple[bool, float]


def _rank(problem: ProblemContext, individual: Assignment) -> Rank:
    """Incomplete individuals always rank behind complete ones."""
    return (not problem.is_complete(individual), problem.score(individual))


def _tournament(
    scored: Sequence[tuple[Rank, Assignment]], size: int, rng: _random.Random
) -> Assignment:
    best = scored[rng.randrange(len(scored))]
    for _ in range(size - 1):
        entry = scored[rng.randrange(len(scored))]
        if entry[0] < best[0]:
            best = entry
    return best[1]


def crossover(
    problem: ProblemContext,
    parent_a: Assignment,
    parent_b: Assignment,
    rng: _random.Random,
) -> Assignment:
    """Slice-point recombination.

    Groups ``[0, k)`` come from ``parent_a``; the candidates of ``parent_b`` not yet placed are then
    distributed over groups ``[k, end)``, least flexible first. Each is placed at its own role when a
    group still has quota, else at another eligible role with quota, else in the smallest group that is
    not yet full. The last step can break composition; callers validate the child.
    """
    composition = problem.composition
    group_total = problem.group_size
    child: Assignment = [[] for _ in parent_a]
    slice_point = rng.randrange(len(parent_a)) if parent_a else 0
    used = set()
    for index in range(slice_point):
        child[index] = [Slot(slot.candidate_id, slot.role) for slot in parent_a[index]]
        used.update(slot.candidate_id for slot in parent_a[index])

    remaining = [slot for group in parent_b for slot in group if slot.candidate_id not in used]
    remaining.sort(key=lambda slot: problem.pool.role_count(slot.candidate_id))

    def open_group(role: str) -> int | None:
        needed = composition.get(role, 0)
        if not needed:
            return None
        for index in range(slice_point, len(child)):
            if sum(1 for slot in child[index] if slot.role == role) < needed:
                return index
        return None

    for slot in remaining:
        target = open_group(slot.role)
        role = slot.role
        if target is None:
            candidate = problem.pool.get(slot.candidate_id)
            for alternate in candidate.roles if candidate else ():
                if alternate == slot.role:
                    continue
                target = open_group(alternate)
                if target is not None:
                    role = alternate
                    break
        if target is None:
            open_sizes = [
                (len(child[index]), index)
                for index in range(slice_point, len(child))
                if len(child[index]) < group_total
            ]
            if open_sizes:
                target = min(open_sizes)[1]
        if target is not None:
            child[target].append(Slot(slot.candidate_id, role))
    return child


def _is_diverse(
    child: Assignment,
    population: Sequence[Assignment],
    rng: _random.Random,
    config: GeneticConfig,
) -> bool:
    if not population or config.diversity_sample == 0:
        return True
    threshold = sum(len(group) for group in child) * config.min_difference_fraction
    sample = min(config.diversity_sample, len(population))
    closest = min(
        assignment_difference(child, population[rng.randrange(len(population))])
        for _ in range(sample)
    )
    return closest >= threshold


def _phase(stagnation: int, progress: float) -> str:
    if stagnation > 10:
        return PHASE_DIVERSIFICATION
    if progress < 0.3:
        return PHASE_EXPLORATION
    return PHASE_EXPLOITATION


async def solve_genetic(
    problem: ProblemContext,
    seeds: Sequence[Assignment],
    *,
    config: GeneticConfig | None = None,
    seed: int = 42,
    registry: OperatorRegistry | None = None,
) -> SolverResult:
    """Run the genetic algorithm starting from ``seeds``.

    Parameters
    ----------
    problem : ProblemContext
        Shared read-only problem description.
    seeds : Sequence[Assignment]
        Starting individuals; cloned, never mutated. The population is topped up with random
        assignments up to ``config.population_size``.
    config : GeneticConfig | None
        Population, rate and stagnation settings (defaults when ``None``).
    seed : int, default=42
        RNG seed controlling selection, crossover and mutation.
    registry : OperatorRegistry | None
        Mutation operators (defaults to the universal mix).

    Returns
    -------
    SolverResult
        Best individual seen across all generations plus ``iterations`` (generations run), ``improvements``,
        ``restarts`` and per-operator statistics.
    """
    config = config or GeneticConfig()
    rng = _random.Random(seed)
    population = [clone_assignment(individual) for individual in seeds]
    while len(population) < config.population_size:
        population.append(problem.random_assignment(rng))
    population = population[: max(config.population_size, len(seeds))]

    best = clone_assignment(population[0])
    best_rank: Rank = (True, math.inf)
    stagnation = 0
    improvements = 0
    restarts = 0
    children_rejected = 0
    operator_stats: OperatorStats = {}
    generation = 0
    logger.debug("genetic: population=%d generations=%d", len(population), config.generations)

    for generation in range(config.generations):
        scored = sorted(
            ((_rank(problem, individual), individual) for individual in population),
            key=lambda item: item[0],
        )
        if scored[0][0] < best_rank:
            best_rank = scored[0][0]
            best = clone_assignment(scored[0][1])
            stagnation = 0
            improvements += 1
        else:
            stagnation += 1

        progress = generation / config.generations
        phase = _phase(stagnation, progress)
        elites = min(config.elitism_count, len(scored))
        offspring = [clone_assignment(individual) for _, individual in scored[:elites]]
        while len(offspring) < config.population_size:
            parent = _tournament(scored, config.tournament_size, rng)
            if rng.random() < config.crossover_rate:
                other = _tournament(scored, config.tournament_size, rng)
                child = crossover(problem, parent, other, rng)
                valid = validate_all_groups_composition(child, problem.composition).valid
                if valid and _is_diverse(child, offspring, rng, config):
                    offspring.append(child)
                else:
                    children_rejected += 1
                    offspring.append(problem.random_assignment(rng))
            else:
                offspring.append(clone_assignment(parent))

        stagnating = stagnation > 10
        mutation_rate = min(0.5, config.mutation_rate * 2) if stagnating else config.mutation_rate
        swaps = 3 if stagnating else 1
        for individual in offspring[elites:]:
            if rng.random() >= mutation_rate:
                continue
            context = OperatorContext(
                problem=problem, assignment=individual, rng=rng, phase=phase, progress=progress
            )
            for _ in range(swaps):
                perturb(
                    context,
                    algorithm="genetic",
                    registry=registry,
                    stats=operator_stats,
                    stagnating=stagnating,
                )

        if stagnation >= config.max_stagnation:
            replaced = math.ceil(len(offspring) / 2)
            for index in range(len(offspring) - replaced, len(offspring)):
                offspring[index] = problem.random_assignment(rng)
            stagnation = 0
            restarts += 1

        population = offspring
        if generation % config.yield_every == 0 and await checkpoint(problem):
            break

    for individual in population:
        rank = _rank(problem, individual)
        if rank < best_rank:
            best_rank = rank
            best = clone_assignment(individual)

    stats = {
        "algorithm": "genetic",
        "iterations": generation + 1,
        "generations": generation + 1,
        "improvements": improvements,
        "restarts": restarts,
        "children_rejected": children_rejected,
        "population_size": config.population_size,
        "operators_stats": operator_stats,
    }
    best_score = best_rank[1]
    logger.debug("genetic: best_score=%.3f after %d generations", best_score, generation + 1)
    return finalize_result(problem, best, best_score, stats)


__all__ = ["solve_genetic", "crossover"]
