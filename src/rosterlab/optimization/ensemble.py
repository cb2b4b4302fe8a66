"""Run several search algorithms side by side, keep the best, polish it with local search."""

from __future__ import annotations

import asyncio
import logging
import random as _random
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from typing import Any

from rosterlab.core.errors import AllAlgorithmsFailedError
from rosterlab.optimization.heuristics.aco import solve_ant_colony
from rosterlab.optimization.heuristics.common import ProblemContext, SolverResult
from rosterlab.optimization.heuristics.config import EnsembleSettings
from rosterlab.optimization.heuristics.cp import solve_backtracking
from rosterlab.optimization.heuristics.ga import solve_genetic
from rosterlab.optimization.heuristics.hybrid import solve_hybrid
from rosterlab.optimization.heuristics.local_search import solve_local_search
from rosterlab.optimization.heuristics.sa import solve_annealing
from rosterlab.optimization.heuristics.tabu import solve_tabu_multistart
from rosterlab.optimization.slots import (
    Assignment,
    clone_assignment,
    has_duplicate_candidate_ids,
    validate_all_groups_composition,
)

logger = logging.getLogger(__name__)

ALGORITHM_LABELS: dict[str, str] = {
    "genetic": "Genetic Algorithm",
    "tabu": "Tabu Search",
    "annealing": "Simulated Annealing",
    "ant_colony": "Ant Colony",
    "backtracking": "Constraint Backtracking",
    "hybrid": "Hybrid",
}


@dataclass(slots=True)
class EnsembleOutcome:
    """Polished winner of an ensemble run."""

    assignment: Assignment
    score: float
    winner: str
    algorithm_used: str
    statistics: dict[str, Any] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    fallback_used: bool = False
    composition_errors: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.composition_errors


def _members(
    problem: ProblemContext,
    seeds: Sequence[Assignment],
    settings: EnsembleSettings,
    rng: _random.Random,
) -> dict[str, Awaitable[SolverResult]]:
    def pick() -> Assignment:
        return clone_assignment(seeds[rng.randrange(len(seeds))])

    def member_seed() -> int:
        return rng.randrange(2**31)

    members: dict[str, Awaitable[SolverResult]] = {}
    for name in settings.enabled:
        if name == "genetic":
            members[name] = solve_genetic(
                problem, seeds, config=settings.genetic, seed=member_seed()
            )
        elif name == "tabu":
            starts = [pick() for _ in range(min(settings.tabu_starts, len(seeds)))]
            members[name] = solve_tabu_multistart(
                problem, starts, config=settings.tabu, seed=member_seed()
            )
        elif name == "annealing":
            members[name] = solve_annealing(
                problem, pick(), config=settings.annealing, seed=member_seed()
            )
        elif name == "ant_colony":
            members[name] = solve_ant_colony(problem, config=settings.ant_colony, seed=member_seed())
        elif name == "backtracking":
            members[name] = solve_backtracking(
                problem, config=settings.backtracking, seed=member_seed()
            )
        elif name == "hybrid":
            members[name] = solve_hybrid(problem, seeds, config=settings.hybrid, seed=member_seed())
    return members


def final_composition_errors(problem: ProblemContext, assignment: Assignment) -> list[str]:
    """Everything that keeps ``assignment`` from being a complete roster; empty when it is one."""
    errors = list(validate_all_groups_composition(assignment, problem.composition).errors)
    if len(assignment) != problem.group_count:
        errors.append(f"expected {problem.group_count} group(s), got {len(assignment)}")
    if has_duplicate_candidate_ids(assignment):
        errors.append("a candidate is placed more than once")
    return errors


async def run_ensemble(
    problem: ProblemContext,
    seeds: Sequence[Assignment],
    settings: EnsembleSettings | None = None,
    *,
    seed: int = 42,
) -> EnsembleOutcome:
    """Run the enabled algorithms concurrently on one event loop and polish the winner.

    Parameters
    ----------
    problem : ProblemContext
        Shared read-only problem description.
    seeds : Sequence[Assignment]
        Initial assignments; each member receives its own clones.
    settings : EnsembleSettings | None
        Enabled members and their budgets.
    seed : int, default=42
        Master seed from which every member's seed is drawn.

    Returns
    -------
    EnsembleOutcome
        Polished assignment, the winning member, per-member statistics and recorded failures.

    Raises
    ------
    AllAlgorithmsFailedError
        Every enabled member raised.
    """
    if not seeds:
        raise ValueError("run_ensemble() requires at least one seed assignment")
    settings = settings or EnsembleSettings()
    rng = _random.Random(seed)
    members = _members(problem, seeds, settings, rng)
    logger.debug("ensemble: running %s", ", ".join(members))

    outcomes = await asyncio.gather(*members.values(), return_exceptions=True)
    results: dict[str, SolverResult] = {}
    failures: dict[str, BaseException] = {}
    for name, outcome in zip(members, outcomes):
        if isinstance(outcome, Exception):
            failures[name] = outcome
            problem.warnings.warn(
                logger, f"ensemble:failed:{name}", "%s failed: %r", ALGORITHM_LABELS[name], outcome
            )
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[name] = outcome
    if not results:
        raise AllAlgorithmsFailedError(failures)

    winner = min(results, key=lambda name: (not results[name].complete, results[name].score))
    statistics: dict[str, Any] = {name: result.stats for name, result in results.items()}
    statistics["failures"] = {name: repr(exc) for name, exc in failures.items()}
    statistics["scores"] = {name: result.score for name, result in results.items()}

    polished = await solve_local_search(
        problem, results[winner].assignment, config=settings.local_search, seed=rng.randrange(2**31)
    )
    statistics["local_search"] = polished.stats
    assignment, score = polished.assignment, polished.score
    fallback_used = False

    if not problem.is_complete(assignment):
        problem.warnings.warn(
            logger,
            "ensemble:invalid_composition",
            "Polished assignment violates the role composition; rebuilding from the specialist-first seed",
        )
        fallback_used = True
        base = problem.fallback_assignment()
        refined = await solve_local_search(
            problem, base, config=settings.local_search, seed=rng.randrange(2**31)
        )
        if problem.is_complete(refined.assignment):
            assignment, score = refined.assignment, refined.score
        else:
            assignment, score = base, problem.score(base)

    composition_errors = final_composition_errors(problem, assignment)
    if composition_errors:
        problem.warnings.warn(
            logger,
            "ensemble:composition_unresolved",
            "Returned assignment still violates the role composition (%d issue(s)): %s",
            len(composition_errors),
            "; ".join(composition_errors),
        )
    statistics["fallback_used"] = fallback_used
    statistics["composition_errors"] = composition_errors

    label = f"{ALGORITHM_LABELS[winner]} + Local Search"
    logger.debug("ensemble: winner=%s score=%.3f", winner, score)
    return EnsembleOutcome(
        assignment=assignment,
        score=score,
        winner=winner,
        algorithm_used=label,
        statistics=statistics,
        failures={name: repr(exc) for name, exc in failures.items()},
        fallback_used=fallback_used,
        composition_errors=composition_errors,
    )


__all__ = ["ALGORITHM_LABELS", "EnsembleOutcome", "final_composition_errors", "run_ensemble"]
