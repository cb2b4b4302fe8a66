from __future__ import annotations

import pytest

from rosterlab.core.errors import DuplicateCandidateIdError, MissingCandidateIdError
from rosterlab.core.types import DEFAULT_RATING
from rosterlab.optimization.pool import CandidatePool, ResolvedSlot
from rosterlab.optimization.slots import Slot
from rosterlab.roster.contract.models import Candidate


def _build_pool() -> CandidatePool:
    return CandidatePool(
        [
            Candidate(id=1, name="Ana", roles=("S",), ratings={"S": 1700}),
            Candidate(id=2, name="Ben", roles=("S", "OPP"), ratings={"S": 1500, "OPP": 1650}),
            {"id": 3, "name": "Cleo", "positions": ["OPP"], "ratings": {"OPP": 1600}},
            {"id": 4, "name": "Dev", "roles": "OH|MB", "ratings": {"OH": 0}},
        ]
    )


def test_pool_indexes_candidates_by_role():
    pool = _build_pool()
    assert len(pool) == 4
    assert pool.ids() == [1, 2, 3, 4]
    assert pool.eligible_ids("S") == (1, 2)
    assert pool.eligible_ids("OPP") == (2, 3)
    assert pool.eligible_ids("L") == ()
    assert set(pool.roles()) == {"S", "OPP", "OH", "MB"}
    assert 3 in pool and 99 not in pool


def test_pool_accepts_positions_alias_and_pipe_separated_roles():
    pool = _build_pool()
    assert pool.get(3).roles == ("OPP",)
    assert pool.get(4).roles == ("OH", "MB")


def test_rating_lookup_falls_back_to_default():
    pool = _build_pool()
    assert pool.rating(2, "OPP") == 1650
    assert pool.rating(4, "OH") == DEFAULT_RATING
    assert pool.rating(4, "MB") == DEFAULT_RATING
    assert pool.rating(99, "S") == DEFAULT_RATING


def test_specialist_flags():
    pool = _build_pool()
    assert pool.is_specialist(1)
    assert not pool.is_specialist(2)
    assert pool.role_count(2) == 2
    assert pool.can_fill(2, "OPP")
    assert not pool.can_fill(1, "OPP")
    assert not pool.can_fill(99, "S")


def test_missing_identifier_is_fatal():
    with pytest.raises(MissingCandidateIdError):
        CandidatePool([{"name": "Nobody", "roles": ["S"]}])
    with pytest.raises(MissingCandidateIdError):
        CandidatePool([{"id": "   ", "roles": ["S"]}])


def test_duplicate_identifier_is_fatal():
    with pytest.raises(DuplicateCandidateIdError) as excinfo:
        CandidatePool(
            [
                Candidate(id=7, roles=("S",)),
                Candidate(id=7, roles=("OPP",)),
            ]
        )
    assert excinfo.value.candidate_id == 7


def test_resolve_expands_slots():
    pool = _build_pool()
    resolved = pool.resolve(Slot(2, "OPP"))
    assert isinstance(resolved, ResolvedSlot)
    assert resolved.candidate.name == "Ben"
    assert resolved.candidate_id == 2
    assert resolved.rating == 1650
    with pytest.raises(KeyError):
        pool.resolve(Slot(42, "S"))


def test_resolve_is_idempotent():
    pool = _build_pool()
    assignment = [[Slot(1, "S"), Slot(3, "OPP")], [Slot(2, "S"), Slot(4, "OH")]]
    first = pool.resolve_assignment(assignment)
    second = pool.resolve_assignment(assignment)
    assert first == second
    assert [[slot.candidate_id for slot in group] for group in first] == [[1, 3], [2, 4]]
