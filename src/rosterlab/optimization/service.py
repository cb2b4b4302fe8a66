"""Public optimization entry points."""

from __future__ import annotations

import asyncio
import logging
import random as _random
from collections.abc import Mapping, Sequence
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from rosterlab.core.errors import RosterValidationError
from rosterlab.evaluation.organizer import (
    organize_groups,
    sort_groups_by_strength,
    to_dataframe,
    unassigned_candidates,
)
from rosterlab.evaluation.scoring import BalanceSummary, balance_summary
from rosterlab.optimization.ensemble import run_ensemble
from rosterlab.optimization.heuristics.common import ProblemContext
from rosterlab.optimization.heuristics.config import EnsembleSettings
from rosterlab.optimization.pool import CandidatePool, ResolvedAssignment
from rosterlab.optimization.seeds import generate_initial_seeds
from rosterlab.roster.contract.models import ActivityConfig, Candidate, RosterRequest
from rosterlab.roster.validation import (
    ValidationReport,
    validate_activity_config,
    validate_request,
)
from rosterlab.telemetry import RunTelemetryLogger

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OptimizationResult:
    """Outcome of :func:`optimize`.

    ``groups`` are resolved (full candidate records) and, when an activity is supplied, ordered
    strongest first with slots in the activity's display order.
    """

    groups: ResolvedAssignment
    balance: BalanceSummary
    unassigned_candidates: list[Candidate]
    algorithm_used: str
    statistics: dict[str, Any]
    validation: ValidationReport
    score: float
    seed: int
    activity: ActivityConfig | None = None
    telemetry_run_id: str | None = None
    failures: dict[str, str] = field(default_factory=dict)
    fallback_used: bool = False
    composition_errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """``False`` when the returned groups do not meet the role composition."""
        return not self.composition_errors

    def to_dataframe(self) -> pd.DataFrame:
        return to_dataframe(self.groups, self.activity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [
                [
                    {
                        "id": slot.candidate_id,
                        "name": slot.candidate.name,
                        "role": slot.role,
                        "rating": slot.rating,
                    }
                    for slot in group
                ]
                for group in self.groups
            ],
            "balance": self.balance.to_dict(),
            "unassigned_candidates": [candidate.id for candidate in self.unassigned_candidates],
            "algorithm_used": self.algorithm_used,
            "score": self.score,
            "seed": self.seed,
            "validation": self.validation.to_dict(),
            "failures": dict(self.failures),
            "fallback_used": self.fallback_used,
            "composition_errors": list(self.composition_errors),
        }


def _config_snapshot(settings: EnsembleSettings) -> dict[str, Any]:
    return {
        "enabled": list(settings.enabled),
        "tabu_starts": settings.tabu_starts,
        "time_limit": settings.time_limit,
        "genetic_generations": settings.genetic.generations,
        "tabu_iterations": settings.tabu.iterations,
        "annealing_iterations": settings.annealing.iterations,
        "ant_colony_iterations": settings.ant_colony.iterations,
        "backtracking_budget": settings.backtracking.max_backtracks,
        "local_search_iterations": settings.local_search.iterations,
    }


async def optimize_async(
    composition: Mapping[str, int],
    group_count: int,
    candidates: Sequence[Candidate | Mapping[str, Any]],
    *,
    activity: ActivityConfig | None = None,
    settings: EnsembleSettings | None = None,
    seed: int | None = None,
    telemetry_log: str | Path | None = None,
    telemetry_context: Mapping[str, Any] | None = None,
) -> OptimizationResult:
    """Split ``candidates`` into ``group_count`` balanced groups of ``composition``.

    Parameters
    ----------
    composition:
        Required count per role in every group.
    group_count:
        Number of groups.
    candidates:
        :class:`Candidate` models or plain mappings (``roles`` or ``positions`` accepted).
    activity:
        Role names, display order, weights and seed priority. Without it every role weighs 1.0.
    settings:
        Ensemble members and budgets (:class:`EnsembleSettings` defaults when ``None``).
    seed:
        Master RNG seed; ``None`` draws one, recorded in the result.
    telemetry_log:
        Optional JSONL path receiving a run record.
    telemetry_context:
        Extra fields merged into the telemetry ``context``.

    Raises
    ------
    RosterValidationError
        The pool cannot fill the requested groups.
    MissingCandidateIdError, DuplicateCandidateIdError
        Malformed candidate records.
    AllAlgorithmsFailedError
        Every ensemble member raised.
    """
    settings = settings or EnsembleSettings()
    report = validate_request(composition, group_count, candidates, activity)
    if not report.is_valid:
        raise RosterValidationError(report)
    for warning in report.warnings:
        logger.warning(warning.message)
    if activity is not None:
        for problem_text in validate_activity_config(activity):
            logger.debug(problem_text)

    pool = CandidatePool(candidates)
    seed = seed if seed is not None else _random.randrange(2**31)
    rng = _random.Random(seed)
    problem = ProblemContext.build(
        composition,
        group_count,
        pool,
        activity=activity,
        params=settings.adaptive,
        time_limit=settings.time_limit,
    )

    telemetry: RunTelemetryLogger | None = None
    if telemetry_log:
        context_payload = {
            "group_count": group_count,
            "candidate_count": len(pool),
            "composition": dict(problem.composition),
            **dict(telemetry_context or {}),
        }
        telemetry = RunTelemetryLogger(
            log_path=Path(telemetry_log),
            solver="ensemble",
            roster=activity.name if activity else None,
            roster_path=context_payload.pop("roster_path", None),
            seed=seed,
            config=_config_snapshot(settings),
            context=context_payload,
            step_interval=1,
        )

    with telemetry if telemetry else nullcontext() as run_logger:
        seeds = generate_initial_seeds(
            problem.composition, group_count, pool, rng=rng, role_order=problem.role_order
        )
        outcome = await run_ensemble(problem, seeds, settings, seed=rng.randrange(2**31))

        resolved = pool.resolve_assignment(outcome.assignment)
        if activity is not None:
            groups = organize_groups(resolved, activity)
        else:
            groups = sort_groups_by_strength(resolved, problem.role_weights)
        balance = balance_summary(
            groups,
            pool.rating,
            problem.role_weights,
            composition=problem.composition,
            detailed=True,
            top_fraction=settings.adaptive.top_fraction,
        )
        unassigned = unassigned_candidates(groups, pool)

        if run_logger and telemetry:
            best_so_far = float("inf")
            for step, (name, score) in enumerate(outcome.statistics.get("scores", {}).items(), 1):
                best_so_far = min(best_so_far, score)
                run_logger.log_step(step=step, algorithm=name, score=score, best_score=best_so_far)
            run_logger.finalize(
                status="ok" if outcome.valid else "incomplete",
                metrics={"score": outcome.score, **balance.to_dict()},
                extra={
                    "winner": outcome.winner,
                    "algorithm_used": outcome.algorithm_used,
                    "failures": outcome.failures,
                    "fallback_used": outcome.fallback_used,
                    "composition_errors": outcome.composition_errors,
                    "unassigned": len(unassigned),
                },
            )

    logger.info(
        "Optimized %d groups with %s (spread %.2f)",
        group_count,
        outcome.algorithm_used,
        balance.spread,
    )
    if outcome.composition_errors:
        logger.warning(
            "Returning groups that break the role composition (fallback_used=%s): %s",
            outcome.fallback_used,
            "; ".join(outcome.composition_errors),
        )
    return OptimizationResult(
        groups=groups,
        balance=balance,
        unassigned_candidates=unassigned,
        algorithm_used=outcome.algorithm_used,
        statistics=outcome.statistics,
        validation=report,
        score=outcome.score,
        seed=seed,
        activity=activity,
        telemetry_run_id=telemetry.run_id if telemetry else None,
        failures=outcome.failures,
        fallback_used=outcome.fallback_used,
        composition_errors=outcome.composition_errors,
    )


def optimize(
    composition: Mapping[str, int],
    group_count: int,
    candidates: Sequence[Candidate | Mapping[str, Any]],
    **kwargs: Any,
) -> OptimizationResult:
    """Synchronous wrapper around :func:`optimize_async` (runs its own event loop)."""
    return asyncio.run(optimize_async(composition, group_count, candidates, **kwargs))


def optimize_request(
    request: RosterRequest,
    *,
    settings: EnsembleSettings | None = None,
    **kwargs: Any,
) -> OptimizationResult:
    """Optimize a loaded :class:`RosterRequest`; its ``settings`` section seeds the ensemble settings."""
    if settings is None and request.settings:
        settings = EnsembleSettings.model_validate(request.settings)
    return optimize(
        request.composition,
        request.group_count,
        request.candidates,
        activity=request.activity,
        settings=settings,
        **kwargs,
    )


__all__ = ["OptimizationResult", "optimize", "optimize_async", "optimize_request"]
