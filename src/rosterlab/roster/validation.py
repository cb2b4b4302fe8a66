"""Pre-flight checks on a roster request before it reaches the optimizer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from rosterlab.roster.contract.models import ActivityConfig, Candidate


@dataclass(slots=True)
class ValidationIssue:
    message: str
    role: str | None = None
    index: int | None = None
    needed: int | None = None
    available: int | None = None


@dataclass(slots=True)
class ValidationReport:
    """Errors block optimization; warnings only limit its freedom."""

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    total_needed: int = 0
    total_available: int = 0

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def surplus(self) -> int:
        return self.total_available - self.total_needed

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": [issue.message for issue in self.errors],
            "warnings": [issue.message for issue in self.warnings],
            "total_needed": self.total_needed,
            "total_available": self.total_available,
            "surplus": self.surplus,
        }


def _roles_of(candidate: Candidate | Mapping[str, Any]) -> Sequence[str]:
    if isinstance(candidate, Candidate):
        return candidate.roles
    roles = candidate.get("roles", candidate.get("positions")) or ()
    if isinstance(roles, str):
        return [part.strip() for part in roles.split("|") if part.strip()]
    return list(roles)


def validate_request(
    composition: Mapping[str, int],
    group_count: int,
    candidates: Sequence[Candidate | Mapping[str, Any]],
    activity: ActivityConfig | None = None,
) -> ValidationReport:
    """Check that the pool can fill ``group_count`` groups of ``composition``."""
    report = ValidationReport(total_available=len(candidates))
    if group_count < 1:
        report.errors.append(ValidationIssue(f"Group count must be at least 1, got {group_count}"))
        return report

    eligible: dict[str, int] = {}
    for candidate in candidates:
        for role in set(_roles_of(candidate)):
            eligible[role] = eligible.get(role, 0) + 1

    for role, count in composition.items():
        if not count or count <= 0:
            continue
        needed = count * group_count
        available = eligible.get(role, 0)
        report.total_needed += needed
        label = activity.display_name(role) if activity else role
        if available < needed:
            report.errors.append(
                ValidationIssue(
                    f"Not enough {label}s: need {needed}, have {available}",
                    role=role,
                    needed=needed,
                    available=available,
                )
            )
        elif available == needed:
            report.warnings.append(
                ValidationIssue(
                    f"Exactly enough {label}s available ({available}), no flexibility for optimization",
                    role=role,
                    needed=needed,
                    available=available,
                )
            )

    if report.total_available < report.total_needed:
        report.errors.append(
            ValidationIssue(
                f"Not enough total candidates: need {report.total_needed}, have {report.total_available}",
                needed=report.total_needed,
                available=report.total_available,
            )
        )
    if 0 < report.surplus < group_count:
        report.warnings.append(
            ValidationIssue(
                f"Only {report.surplus} extra candidates available, limited optimization flexibility"
            )
        )
    return report


def validate_candidates(records: Iterable[Mapping[str, Any]]) -> ValidationReport:
    """Structural checks on raw candidate records (before model parsing)."""
    report = ValidationReport()
    for index, record in enumerate(records):
        report.total_available += 1
        label = record.get("name") or index
        candidate_id = record.get("id")
        if candidate_id is None or (isinstance(candidate_id, str) and not candidate_id.strip()):
            report.errors.append(
                ValidationIssue(f"Candidate at index {index} missing required field: id", index=index)
            )
        if not record.get("name"):
            report.warnings.append(ValidationIssue(f"Candidate at index {index} missing name", index=index))
        if not _roles_of(record):
            report.errors.append(
                ValidationIssue(f"Candidate {label} has no roles defined", index=index)
            )
        if not isinstance(record.get("ratings"), Mapping) or not record.get("ratings"):
            report.warnings.append(
                ValidationIssue(f"Candidate {label} has no ratings defined", index=index)
            )
    return report


def validate_activity_config(config: ActivityConfig) -> list[str]:
    """Return problems with an activity configuration (empty when usable)."""
    problems: list[str] = []
    if not config.role_names:
        problems.append("Activity config role_names must be non-empty")
    if not config.role_display_order:
        problems.append("Activity config role_display_order must be non-empty")
    if not config.default_composition:
        problems.append("Activity config default_composition must be non-empty")
    unknown = [role for role in config.role_display_order if config.role_names and role not in config.role_names]
    if unknown:
        problems.append(f"Activity config display order names unknown roles: {', '.join(unknown)}")
    return problems


__all__ = [
    "ValidationIssue",
    "ValidationReport",
    "validate_request",
    "validate_candidates",
    "validate_activity_config",
]
