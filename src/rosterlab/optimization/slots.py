"""Slot-based assignment representation and the operations over it.

An assignment is ``list[list[Slot]]``: one inner list per group, one :class:`Slot` per
``(candidate_id, role)`` pair. Search never touches candidate records; it reads ratings through the
:class:`~rosterlab.optimization.pool.CandidatePool` and mutates assignments only through
:func:`swap_slots`, which exchanges two existing slots and therefore cannot introduce a duplicate.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from rosterlab.core.types import CandidateId, RoleCode


@dataclass(slots=True)
class Slot:
    """Reference to a candidate placed at a role."""

    candidate_id: CandidateId
    role: RoleCode

    def token(self) -> str:
        return f"{self.candidate_id}:{self.role}"


Group = list[Slot]
Assignment = list[Group]


@dataclass(slots=True)
class CompositionReport:
    """Outcome of a role-composition check."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


def empty_assignment(group_count: int) -> Assignment:
    return [[] for _ in range(group_count)]


def clone_assignment(assignment: Sequence[Group]) -> Assignment:
    """Return a new assignment with new groups holding new slots of identical values."""
    return [[Slot(slot.candidate_id, slot.role) for slot in group] for group in assignment]


def has_duplicate_candidate_ids(assignment: Iterable[Group]) -> bool:
    seen: set[CandidateId] = set()
    for group in assignment:
        for slot in group:
            if slot.candidate_id in seen:
                return True
            seen.add(slot.candidate_id)
    return False


def used_candidate_ids(assignment: Iterable[Group]) -> set[CandidateId]:
    return {slot.candidate_id for group in assignment for slot in group}


def unused_candidate_ids(
    assignment: Iterable[Group], all_ids: Iterable[CandidateId]
) -> list[CandidateId]:
    used = used_candidate_ids(assignment)
    return [candidate_id for candidate_id in all_ids if candidate_id not in used]


def role_counts(group: Iterable[Slot]) -> Counter[RoleCode]:
    return Counter(slot.role for slot in group)


def validate_group_composition(
    group: Iterable[Slot], composition: Mapping[RoleCode, int]
) -> CompositionReport:
    """Compare per-role slot counts of one group with the required quota.

    Both shortfalls/excesses for roles in ``composition`` and slots for roles outside it are reported.
    """
    counts = role_counts(group)
    errors: list[str] = []
    for role, required in composition.items():
        actual = counts.get(role, 0)
        if actual != (required or 0):
            errors.append(f"Role {role}: expected {required}, got {actual}")
    for role, actual in counts.items():
        if role not in composition:
            errors.append(f"Role {role}: unexpected role with {actual} slot(s)")
    return CompositionReport(valid=not errors, errors=errors)


def validate_all_groups_composition(
    assignment: Sequence[Group], composition: Mapping[RoleCode, int]
) -> CompositionReport:
    errors: list[str] = []
    for index, group in enumerate(assignment):
        report = validate_group_composition(group, composition)
        errors.extend(f"Group {index + 1}: {error}" for error in report.errors)
    return CompositionReport(valid=not errors, errors=errors)


def is_complete(
    assignment: Sequence[Group], composition: Mapping[RoleCode, int], group_count: int
) -> bool:
    """Duplicate-free, ``group_count`` groups, every quota met exactly."""
    return (
        len(assignment) == group_count
        and not has_duplicate_candidate_ids(assignment)
        and validate_all_groups_composition(assignment, composition).valid
    )


def hash_assignment(assignment: Iterable[Group]) -> str:
    """Canonical key that ignores slot order within groups and the order of groups."""
    return "|".join(
        sorted(",".join(sorted(slot.token() for slot in group)) for group in assignment)
    )


def swap_slots(
    assignment: Assignment, group_a: int, slot_a: int, group_b: int, slot_b: int
) -> None:
    """Exchange two slots in place. The only mutation primitive used by search."""
    first = assignment[group_a][slot_a]
    assignment[group_a][slot_a] = assignment[group_b][slot_b]
    assignment[group_b][slot_b] = first


def find_slots_by_role(group: Sequence[Slot], role: RoleCode) -> list[int]:
    return [index for index, slot in enumerate(group) if slot.role == role]


def find_slot_by_candidate(group: Sequence[Slot], candidate_id: CandidateId) -> int:
    for index, slot in enumerate(group):
        if slot.candidate_id == candidate_id:
            return index
    return -1


def assignment_difference(first: Sequence[Group], second: Sequence[Group]) -> int:
    """Count candidates of ``first`` that sit in a different group index in ``second``."""
    differences = 0
    for index, group in enumerate(first):
        other = {slot.candidate_id for slot in second[index]} if index < len(second) else set()
        differences += sum(1 for slot in group if slot.candidate_id not in other)
    return differences


__all__ = [
    "Slot",
    "Group",
    "Assignment",
    "CompositionReport",
    "empty_assignment",
    "clone_assignment",
    "has_duplicate_candidate_ids",
    "used_candidate_ids",
    "unused_candidate_ids",
    "role_counts",
    "validate_group_composition",
    "validate_all_groups_composition",
    "is_complete",
    "hash_assignment",
    "swap_slots",
    "find_slots_by_role",
    "find_slot_by_candidate",
    "assignment_difference",
]
