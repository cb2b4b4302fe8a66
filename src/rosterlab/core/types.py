"""Shared type aliases and constants."""

from __future__ import annotations

from collections.abc import Mapping

CandidateId = int | str
RoleCode = str
Composition = Mapping[RoleCode, int]

DEFAULT_RATING = 1500.0  # rating used when a candidate has none for a role


def group_size(composition: Composition) -> int:
    """Return the number of slots in one group."""
    return sum(count for count in composition.values() if count and count > 0)


def active_roles(composition: Composition) -> list[RoleCode]:
    """Roles with a positive quota, in composition order."""
    return [role for role, count in composition.items() if count and count > 0]


__all__ = [
    "CandidateId",
    "RoleCode",
    "Composition",
    "DEFAULT_RATING",
    "group_size",
    "active_roles",
]
