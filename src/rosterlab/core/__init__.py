"""Core utilities shared across rosterlab modules."""

from .diagnostics import WarningTracker
from .errors import (
    AllAlgorithmsFailedError,
    DuplicateCandidateIdError,
    MissingCandidateIdError,
    RosterValidationError,
    RosterValueError,
)
from .types import DEFAULT_RATING, CandidateId, Composition, RoleCode

__all__ = [
    "RosterValueError",
    "MissingCandidateIdError",
    "DuplicateCandidateIdError",
    "RosterValidationError",
    "AllAlgorithmsFailedError",
    "WarningTracker",
    "CandidateId",
    "Composition",
    "RoleCode",
    "DEFAULT_RATING",
]
