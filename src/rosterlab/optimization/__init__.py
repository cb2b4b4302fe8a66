"""Slot assignment representation, candidate pool and seed generators."""

from .pool import CandidatePool, ResolvedSlot
from .seeds import generate_initial_seeds
from .slots import Assignment, Group, Slot

__all__ = [
    "CandidatePool",
    "ResolvedSlot",
    "Slot",
    "Group",
    "Assignment",
    "generate_initial_seeds",
]
