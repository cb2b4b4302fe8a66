"""Balanced, role-aware group assignment driven by a metaheuristic ensemble."""

from rosterlab.core.errors import (
    AllAlgorithmsFailedError,
    DuplicateCandidateIdError,
    MissingCandidateIdError,
    RosterValidationError,
    RosterValueError,
)
from rosterlab.optimization.heuristics.config import EnsembleSettings
from rosterlab.optimization.service import (
    OptimizationResult,
    optimize,
    optimize_async,
    optimize_request,
)
from rosterlab.roster.contract.models import ActivityConfig, Candidate, RosterRequest
from rosterlab.roster.io.loaders import load_roster

__version__ = "0.3.0"

__all__ = [
    "__version__",
    "ActivityConfig",
    "Candidate",
    "RosterRequest",
    "EnsembleSettings",
    "OptimizationResult",
    "optimize",
    "optimize_async",
    "optimize_request",
    "load_roster",
    "RosterValueError",
    "MissingCandidateIdError",
    "DuplicateCandidateIdError",
    "RosterValidationError",
    "AllAlgorithmsFailedError",
]
