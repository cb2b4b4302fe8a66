"""Common rosterlab exceptions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class RosterValueError(ValueError):
    """Raised when rosterlab detects invalid user-provided data."""


class MissingCandidateIdError(RosterValueError):
    """Raised when a candidate record has no identifier."""

    def __init__(self, index: int | None = None) -> None:
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"Candidate{where} must have an id")
        self.index = index


class DuplicateCandidateIdError(RosterValueError):
    """Raised when two candidate records share an identifier."""

    def __init__(self, candidate_id: Any) -> None:
        super().__init__(f"Duplicate candidate id: {candidate_id!r}")
        self.candidate_id = candidate_id


class RosterValidationError(RosterValueError):
    """Raised when a request is rejected by :func:`rosterlab.roster.validation.validate_request`."""

    def __init__(self, report: Any) -> None:
        messages = [issue.message for issue in getattr(report, "errors", [])]
        super().__init__(", ".join(messages) or "Invalid roster request")
        self.report = report


class AllAlgorithmsFailedError(RuntimeError):
    """Raised when every ensemble member fails."""

    def __init__(self, failures: Mapping[str, BaseException]) -> None:
        detail = "; ".join(f"{name}: {exc!r}" for name, exc in failures.items())
        super().__init__(f"All optimization algorithms failed ({detail})")
        self.failures = dict(failures)


__all__ = [
    "RosterValueError",
    "MissingCandidateIdError",
    "DuplicateCandidateIdError",
    "RosterValidationError",
    "AllAlgorithmsFailedError",
]
