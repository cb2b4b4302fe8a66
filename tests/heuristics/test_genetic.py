from __future__ import annotations

import asyncio
import random

from rosterlab.optimization.heuristics.config import GeneticConfig
from rosterlab.optimization.heuristics.ga import crossover, solve_genetic
from rosterlab.optimization.seeds import generate_initial_seeds
from rosterlab.optimization.slots import has_duplicate_candidate_ids, used_candidate_ids
from tests.rosters import build_problem, build_volleyball_problem


def _build_seeds(problem, seed=1):
    return generate_initial_seeds(
        problem.composition,
        problem.group_count,
        problem.pool,
        rng=random.Random(seed),
        role_order=problem.role_order,
    )


def test_genetic_finds_toy_optimum():
    problem = build_problem()
    config = GeneticConfig(population_size=8, generations=20, elitism_count=1)
    result = asyncio.run(solve_genetic(problem, _build_seeds(problem), config=config, seed=3))
    assert result.complete
    strengths = problem.strengths(result.assignment)
    assert max(strengths) - min(strengths) <= 50 + 1e-9
    assert result.stats["generations"] == 20
    assert result.stats["iterations"] == 20
    assert result.stats["algorithm"] == "genetic"


def test_genetic_result_is_valid_on_volleyball_roster():
    problem = build_volleyball_problem()
    seeds = _build_seeds(problem)
    config = GeneticConfig(population_size=10, generations=25, elitism_count=2, max_stagnation=5)
    result = asyncio.run(solve_genetic(problem, seeds, config=config, seed=8))
    assert not has_duplicate_candidate_ids(result.assignment)
    assert result.complete
    complete = [problem.score(seed) for seed in seeds if problem.is_complete(seed)]
    assert result.score <= min(complete) + 1e-9
    assert {"improvements", "restarts", "children_rejected"} <= set(result.stats)


def test_seeds_are_not_mutated():
    problem = build_volleyball_problem()
    seeds = _build_seeds(problem)
    snapshot = [[(slot.candidate_id, slot.role) for slot in group] for group in seeds[0]]
    asyncio.run(
        solve_genetic(problem, seeds, config=GeneticConfig(population_size=6, generations=5, elitism_count=1))
    )
    assert [[(slot.candidate_id, slot.role) for slot in group] for group in seeds[0]] == snapshot


def test_crossover_never_duplicates():
    problem = build_volleyball_problem(count=21, group_count=3)
    seeds = _build_seeds(problem, seed=4)
    rng = random.Random(2)
    for _ in range(25):
        parent_a, parent_b = rng.sample(seeds, 2)
        child = crossover(problem, parent_a, parent_b, rng)
        assert len(child) == 3
        assert not has_duplicate_candidate_ids(child)
        assert used_candidate_ids(child) <= set(problem.pool.ids())


def test_genetic_accepts_single_entrant_tournaments():
    problem = build_problem()
    config = GeneticConfig(population_size=6, generations=10, elitism_count=1, tournament_size=1)
    result = asyncio.run(solve_genetic(problem, _build_seeds(problem), config=config, seed=2))
    assert result.complete
    assert result.stats["iterations"] == 10
