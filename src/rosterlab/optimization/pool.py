"""Immutable candidate registry shared by every search algorithm."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from rosterlab.core.errors import DuplicateCandidateIdError, MissingCandidateIdError
from rosterlab.core.types import DEFAULT_RATING, CandidateId, RoleCode
from rosterlab.optimization.slots import Assignment, Group, Slot
from rosterlab.roster.contract.models import Candidate


@dataclass(frozen=True, slots=True)
class ResolvedSlot:
    """A slot expanded back into the pool's candidate record."""

    candidate: Candidate
    role: RoleCode
    rating: float

    @property
    def candidate_id(self) -> CandidateId:
        return self.candidate.id


ResolvedGroup = list[ResolvedSlot]
ResolvedAssignment = list[ResolvedGroup]


def _coerce_candidate(record: Candidate | Mapping[str, Any], index: int) -> Candidate:
    if isinstance(record, Candidate):
        return record
    candidate_id = record.get("id")
    if candidate_id is None or (isinstance(candidate_id, str) and not candidate_id.strip()):
        raise MissingCandidateIdError(index)
    payload = dict(record)
    if "roles" not in payload and "positions" in payload:
        payload["roles"] = payload.pop("positions")
    return Candidate.model_validate(payload)


class CandidatePool:
    """Single source of truth for candidate data during one optimization call.

    The pool maps identifiers to :class:`Candidate` records and keeps a secondary index from
    role code to the ordered list of eligible identifiers. Nothing is added or removed after
    construction.
    """

    __slots__ = ("_candidates", "_by_role", "_ratings")

    def __init__(self, candidates: Iterable[Candidate | Mapping[str, Any]] = ()) -> None:
        by_id: dict[CandidateId, Candidate] = {}
        by_role: dict[RoleCode, list[CandidateId]] = {}
        ratings: dict[tuple[CandidateId, RoleCode], float] = {}
        for index, record in enumerate(candidates):
            if not isinstance(record, Candidate) and getattr(record, "get", None) is None:
                raise MissingCandidateIdError(index)
            candidate = _coerce_candidate(record, index)
            if candidate.id in by_id:
                raise DuplicateCandidateIdError(candidate.id)
            by_id[candidate.id] = candidate
            for role in candidate.roles:
                by_role.setdefault(role, []).append(candidate.id)
            for role, rating in candidate.ratings.items():
                if rating:
                    ratings[(candidate.id, role)] = float(rating)
        self._candidates: Mapping[CandidateId, Candidate] = MappingProxyType(by_id)
        self._by_role: Mapping[RoleCode, tuple[CandidateId, ...]] = MappingProxyType(
            {role: tuple(ids) for role, ids in by_role.items()}
        )
        self._ratings = ratings

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._candidates.values())

    def __contains__(self, candidate_id: object) -> bool:
        return candidate_id in self._candidates

    def get(self, candidate_id: CandidateId) -> Candidate | None:
        return self._candidates.get(candidate_id)

    def ids(self) -> list[CandidateId]:
        return list(self._candidates)

    def eligible_ids(self, role: RoleCode) -> tuple[CandidateId, ...]:
        """Return identifiers of every candidate eligible for ``role`` (multi-role included)."""
        return self._by_role.get(role, ())

    def roles(self) -> list[RoleCode]:
        return list(self._by_role)

    def role_count(self, candidate_id: CandidateId) -> int:
        """Number of roles the candidate can fill (1 for unknown ids)."""
        candidate = self._candidates.get(candidate_id)
        return len(candidate.roles) if candidate else 1

    def is_specialist(self, candidate_id: CandidateId) -> bool:
        return self.role_count(candidate_id) == 1

    def can_fill(self, candidate_id: CandidateId, role: RoleCode) -> bool:
        candidate = self._candidates.get(candidate_id)
        return candidate is not None and role in candidate.roles

    def rating(self, candidate_id: CandidateId, role: RoleCode) -> float:
        """Rating of ``candidate_id`` at ``role``; ``DEFAULT_RATING`` when unknown."""
        return self._ratings.get((candidate_id, role), DEFAULT_RATING)

    def resolve(self, slot: Slot) -> ResolvedSlot:
        candidate = self._candidates.get(slot.candidate_id)
        if candidate is None:
            raise KeyError(f"Candidate {slot.candidate_id!r} not found in pool")
        return ResolvedSlot(
            candidate=candidate,
            role=slot.role,
            rating=self.rating(slot.candidate_id, slot.role),
        )

    def resolve_group(self, group: Group) -> ResolvedGroup:
        return [self.resolve(slot) for slot in group]

    def resolve_assignment(self, assignment: Sequence[Group] | Assignment) -> ResolvedAssignment:
        return [self.resolve_group(group) for group in assignment]


__all__ = [
    "CandidatePool",
    "ResolvedSlot",
    "ResolvedGroup",
    "ResolvedAssignment",
]
