from __future__ import annotations

import random

import pytest

from rosterlab.optimization.pool import CandidatePool
from rosterlab.optimization.seeds import (
    SEED_GENERATORS,
    balanced_seed,
    generate_initial_seeds,
    greedy_seed,
    snake_draft_seed,
    specialist_first_seed,
)
from rosterlab.optimization.slots import has_duplicate_candidate_ids, is_complete
from rosterlab.roster.contract.models import ActivityConfig, Candidate
from tests.rosters import TOY_COMPOSITION, toy_candidates, volleyball_candidates


def _build_multi_role_pool() -> CandidatePool:
    return CandidatePool(
        [
            Candidate(id="x", roles=("A", "B"), ratings={"A": 1800, "B": 1800}),
            Candidate(id="a1", roles=("A",), ratings={"A": 1600}),
            Candidate(id="a2", roles=("A",), ratings={"A": 1500}),
            Candidate(id="b1", roles=("B",), ratings={"B": 1550}),
        ]
    )


@pytest.mark.parametrize("name", sorted(SEED_GENERATORS))
def test_every_generator_fills_toy_roster(name):
    pool = CandidatePool(toy_candidates())
    generator = SEED_GENERATORS[name]
    for randomize in (False, True):
        assignment = generator(TOY_COMPOSITION, 2, pool, randomize, rng=random.Random(5))
        assert len(assignment) == 2
        assert is_complete(assignment, TOY_COMPOSITION, 2)


@pytest.mark.parametrize("name", sorted(SEED_GENERATORS))
def test_multi_role_candidate_used_at_most_once(name):
    pool = _build_multi_role_pool()
    composition = {"A": 1, "B": 1}
    for seed in range(10):
        assignment = SEED_GENERATORS[name](composition, 2, pool, True, rng=random.Random(seed))
        assert not has_duplicate_candidate_ids(assignment)
        placements = [slot for group in assignment for slot in group if slot.candidate_id == "x"]
        assert len(placements) <= 1


def test_specialist_first_keeps_generalist_for_scarce_role():
    pool = _build_multi_role_pool()
    assignment = specialist_first_seed({"A": 1, "B": 1}, 2, pool)
    assert is_complete(assignment, {"A": 1, "B": 1}, 2)
    roles = {slot.candidate_id: slot.role for group in assignment for slot in group}
    assert roles["x"] == "B"
    assert set(roles) == {"x", "a1", "a2", "b1"}


def test_greedy_stacks_strongest_in_first_group():
    pool = CandidatePool(toy_candidates())
    assignment = greedy_seed(TOY_COMPOSITION, 2, pool)
    assert {slot.candidate_id for slot in assignment[0]} == {"A1", "B1"}


def test_balanced_deals_round_robin():
    pool = CandidatePool(
        [Candidate(id=index, roles=("A",), ratings={"A": 2000 - index * 100}) for index in range(4)]
    )
    assignment = balanced_seed({"A": 2}, 2, pool)
    assert [[slot.candidate_id for slot in group] for group in assignment] == [[0, 2], [1, 3]]


def test_snake_draft_reverses_direction():
    pool = CandidatePool(
        [Candidate(id=index, roles=("A",), ratings={"A": 2000 - index * 100}) for index in range(4)]
    )
    assignment = snake_draft_seed({"A": 2}, 2, pool)
    assert [[slot.candidate_id for slot in group] for group in assignment] == [[0, 3], [1, 2]]


def test_shortage_leaves_slots_empty_without_duplicates():
    pool = CandidatePool([Candidate(id=index, roles=("A",)) for index in range(3)])
    for name, generator in SEED_GENERATORS.items():
        assignment = generator({"A": 2}, 2, pool, True, rng=random.Random(1))
        assert sum(len(group) for group in assignment) == 3, name
        assert not has_duplicate_candidate_ids(assignment)


def test_generate_initial_seeds_batch():
    activity = ActivityConfig.volleyball()
    composition = dict(activity.default_composition)
    pool = CandidatePool(volleyball_candidates())
    seeds = generate_initial_seeds(
        composition,
        2,
        pool,
        rng=random.Random(11),
        role_order=activity.priority_order(composition),
    )
    assert len(seeds) == 6
    for assignment in seeds:
        assert len(assignment) == 2
        assert not has_duplicate_candidate_ids(assignment)
    assert is_complete(seeds[0], composition, 2)
    assert is_complete(seeds[1], composition, 2)


def test_deterministic_generators_repeat():
    pool = CandidatePool(volleyball_candidates())
    composition = dict(ActivityConfig.volleyball().default_composition)
    first = specialist_first_seed(composition, 2, pool)
    second = specialist_first_seed(composition, 2, pool)
    assert first == second
