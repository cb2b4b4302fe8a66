"""Perturbation operators and the registry the search algorithms draw them from.

Every operator mutates ``context.assignment`` in place through :func:`swap_slots` only, so no
sequence of operator calls can introduce a duplicate candidate or change a group's role counts.
``apply`` returns ``True`` when a swap was performed and ``False`` for a no-op (fewer than two groups,
no shared role, no improving exchange, ...).
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from random import Random
from typing import TYPE_CHECKING, Protocol

from rosterlab.core.types import RoleCode
from rosterlab.evaluation.metrics import consistency_metric, fairness_metric, role_averages
from rosterlab.optimization.slots import Assignment, find_slots_by_role, swap_slots

if TYPE_CHECKING:
    from rosterlab.optimization.heuristics.common import ProblemContext

OperatorStats = dict[str, dict[str, float]]


@dataclass(slots=True)
class OperatorContext:
    """Execution context passed to perturbation operators."""

    problem: ProblemContext
    assignment: Assignment
    rng: Random
    phase: str = "exploration"
    progress: float = 0.0
    temperature: float = 1.0


class Operator(Protocol):
    """Interface for perturbation operators."""

    name: str
    weight: float

    def apply(self, context: OperatorContext) -> bool:
        """Mutate the assignment in place; return ``False`` if no move was possible."""


def _two_groups(context: OperatorContext) -> tuple[int, int] | None:
    count = len(context.assignment)
    if count < 2:
        return None
    first, second = context.rng.sample(range(count), 2)
    return first, second


def _weight_sum(context: OperatorContext, group_index: int) -> float:
    return sum(context.problem.weight(slot.role) for slot in context.assignment[group_index])


def _extreme_slot(
    context: OperatorContext, group_index: int, indices: list[int], role: RoleCode, highest: bool
) -> int:
    group = context.assignment[group_index]
    key = lambda index: context.problem.rating(group[index].candidate_id, role)  # noqa: E731
    return max(indices, key=key) if highest else min(indices, key=key)


@dataclass(slots=True)
class BasicSwapOperator:
    """Exchange a random same-role slot between two random groups."""

    name: str = "basic_swap"
    weight: float = 1.0

    def apply(self, context: OperatorContext) -> bool:
        pair = _two_groups(context)
        roles = context.problem.roles
        if pair is None or not roles:
            return False
        first, second = pair
        role = context.rng.choice(roles)
        slots_a = find_slots_by_role(context.assignment[first], role)
        slots_b = find_slots_by_role(context.assignment[second], role)
        if not slots_a or not slots_b:
            return False
        swap_slots(
            context.assignment,
            first,
            context.rng.choice(slots_a),
            second,
            context.rng.choice(slots_b),
        )
        return True


@dataclass(slots=True)
class AdaptiveSwapOperator:
    """Move the best candidate of the strongest group against the worst of the weakest group.

    Only commits when the exchange narrows the strongest/weakest gap; otherwise falls back to a
    basic swap. Applies with ``strong_weak_swap_probability``.
    """

    name: str = "adaptive_swap"
    weight: float = 1.0
    fallback: BasicSwapOperator = field(default_factory=BasicSwapOperator)

    def _targeted(self, context: OperatorContext) -> bool:
        problem = context.problem
        assignment = context.assignment
        if len(assignment) < 2 or not problem.roles:
            return False
        if context.rng.random() >= problem.params.strong_weak_swap_probability:
            return False
        strengths = problem.strengths(assignment)
        ranked = sorted(
            (index for index, value in enumerate(strengths) if not math.isnan(value)),
            key=strengths.__getitem__,
            reverse=True,
        )
        if len(ranked) < 2:
            return False
        strong, weak = ranked[0], ranked[-1]
        if strong == weak:
            return False
        role = context.rng.choice(problem.roles)
        strong_slots = find_slots_by_role(assignment[strong], role)
        weak_slots = find_slots_by_role(assignment[weak], role)
        if not strong_slots or not weak_slots:
            return False
        strong_index = _extreme_slot(context, strong, strong_slots, role, highest=True)
        weak_index = _extreme_slot(context, weak, weak_slots, role, highest=False)
        strong_rating = problem.rating(assignment[strong][strong_index].candidate_id, role)
        weak_rating = problem.rating(assignment[weak][weak_index].candidate_id, role)
        if strong_rating <= weak_rating:
            return False
        shift = (strong_rating - weak_rating) * problem.weight(role)
        current_gap = strengths[strong] - strengths[weak]
        strong_after = strengths[strong] - shift / _weight_sum(context, strong)
        weak_after = strengths[weak] + shift / _weight_sum(context, weak)
        if abs(strong_after - weak_after) >= current_gap:
            return False
        swap_slots(assignment, strong, strong_index, weak, weak_index)
        return True

    def apply(self, context: OperatorContext) -> bool:
        if self._targeted(context):
            return True
        return self.fallback.apply(context)


@dataclass(slots=True)
class CrossGroupSwapOperator:
    """Same-role swap restricted to roles present in both chosen groups."""

    name: str = "cross_group_swap"
    weight: float = 1.0

    def apply(self, context: OperatorContext) -> bool:
        pair = _two_groups(context)
        if pair is None:
            return False
        first, second = pair
        group_a = context.assignment[first]
        group_b = context.assignment[second]
        if not group_a or not group_b:
            return False
        roles_b = {slot.role for slot in group_b}
        common = list(dict.fromkeys(slot.role for slot in group_a if slot.role in roles_b))
        if not common:
            return False
        role = context.rng.choice(common)
        swap_slots(
            context.assignment,
            first,
            context.rng.choice(find_slots_by_role(group_a, role)),
            second,
            context.rng.choice(find_slots_by_role(group_b, role)),
        )
        return True


@dataclass(slots=True)
class IntraGroupSwapOperator:
    """Reorder two same-role slots inside one group (strength-neutral)."""

    name: str = "intra_group_swap"
    weight: float = 1.0

    def apply(self, context: OperatorContext) -> bool:
        if not context.assignment:
            return False
        group_index = context.rng.randrange(len(context.assignment))
        group = context.assignment[group_index]
        if len(group) < 2:
            return False
        role = context.rng.choice(list(dict.fromkeys(slot.role for slot in group)))
        indices = find_slots_by_role(group, role)
        if len(indices) < 2:
            return False
        first, second = context.rng.sample(indices, 2)
        swap_slots(context.assignment, group_index, first, group_index, second)
        return True


@dataclass(slots=True)
class FairnessSwapOperator:
    """Move a top-rated candidate from the group holding the most top candidates to the one holding fewest."""

    name: str = "fairness_swap"
    weight: float = 0.0

    def apply(self, context: OperatorContext) -> bool:
        problem = context.problem
        assignment = context.assignment
        if len(assignment) < 2:
            return False
        fairness = fairness_metric(
            assignment, problem.rating, problem.role_weights, problem.params.top_fraction
        )
        if not fairness.per_group:
            return False
        order = sorted(range(len(assignment)), key=lambda index: -fairness.per_group[index])
        richest, poorest = order[0], order[-1]
        if fairness.per_group[richest] - fairness.per_group[poorest] < 2:
            return False

        def weighted(group_index: int, slot_index: int) -> float:
            slot = assignment[group_index][slot_index]
            return problem.rating(slot.candidate_id, slot.role) * problem.weight(slot.role)

        for top_index, slot in enumerate(assignment[richest]):
            if weighted(richest, top_index) < fairness.threshold:
                continue
            for partner_index in find_slots_by_role(assignment[poorest], slot.role):
                if weighted(poorest, partner_index) < fairness.threshold:
                    swap_slots(assignment, richest, top_index, poorest, partner_index)
                    return True
        return False


@dataclass(slots=True)
class ConsistencySwapOperator:
    """Exchange the best and worst holders of the role whose cross-group average varies most."""

    name: str = "consistency_swap"
    weight: float = 0.0

    def apply(self, context: OperatorContext) -> bool:
        problem = context.problem
        assignment = context.assignment
        if len(assignment) < 2:
            return False
        consistency = consistency_metric(
            assignment, problem.composition, problem.rating, problem.role_weights
        )
        if not consistency.details:
            return False
        role = max(consistency.details, key=lambda code: consistency.details[code].variance)
        averages = role_averages(assignment, role, problem.rating)
        order = sorted(range(len(assignment)), key=lambda index: -averages[index])
        strong, weak = order[0], order[-1]
        strong_slots = find_slots_by_role(assignment[strong], role)
        weak_slots = find_slots_by_role(assignment[weak], role)
        if strong == weak or not strong_slots or not weak_slots:
            return False
        swap_slots(
            assignment,
            strong,
            _extreme_slot(context, strong, strong_slots, role, highest=True),
            weak,
            _extreme_slot(context, weak, weak_slots, role, highest=False),
        )
        return True


@dataclass(slots=True)
class WeaknessSwapOperator:
    """Shore up the weakest role of the weakest group with the strong group's second-best holder."""

    name: str = "weakness_swap"
    weight: float = 0.0

    def apply(self, context: OperatorContext) -> bool:
        problem = context.problem
        assignment = context.assignment
        roles = problem.roles
        if len(assignment) < 2 or not roles:
            return False
        weaknesses: list[tuple[float, int, RoleCode]] = []
        for group_index, group in enumerate(assignment):
            ranked: list[tuple[float, float, RoleCode]] = []
            for role in roles:
                values = [problem.rating(slot.candidate_id, role) for slot in group if slot.role == role]
                average = sum(values) / len(values) if values else 0.0
                ranked.append((average * problem.weight(role), average, role))
            _, average, role = min(ranked, key=lambda item: item[0])
            weaknesses.append((average, group_index, role))
        weaknesses.sort(key=lambda item: item[0])
        _, weak, role = weaknesses[0]
        _, strong, _ = weaknesses[-1]
        if weak == strong:
            return False
        weak_slots = find_slots_by_role(assignment[weak], role)
        strong_slots = find_slots_by_role(assignment[strong], role)
        if not weak_slots or not strong_slots:
            return False
        weak_index = _extreme_slot(context, weak, weak_slots, role, highest=False)
        strong_slots.sort(
            key=lambda index: problem.rating(assignment[strong][index].candidate_id, role),
            reverse=True,
        )
        strong_index = strong_slots[1] if len(strong_slots) > 1 else strong_slots[0]
        weak_rating = problem.rating(assignment[weak][weak_index].candidate_id, role)
        strong_rating = problem.rating(assignment[strong][strong_index].candidate_id, role)
        if strong_rating <= weak_rating:
            return False
        swap_slots(assignment, weak, weak_index, strong, strong_index)
        return True


@dataclass(slots=True)
class ChainSwapOperator:
    """Rotate one same-role slot through three groups."""

    name: str = "chain_swap"
    weight: float = 0.0

    def apply(self, context: OperatorContext) -> bool:
        assignment = context.assignment
        roles = context.problem.roles
        if len(assignment) < 3 or not roles:
            return False
        groups = context.rng.sample(range(len(assignment)), 3)
        role = context.rng.choice(roles)
        picks: list[int] = []
        for group_index in groups:
            indices = find_slots_by_role(assignment[group_index], role)
            if not indices:
                return False
            picks.append(context.rng.choice(indices))
        # g0 <- g2, g1 <- g0, g2 <- g1
        swap_slots(assignment, groups[0], picks[0], groups[1], picks[1])
        swap_slots(assignment, groups[0], picks[0], groups[2], picks[2])
        return True


@dataclass(slots=True)
class PairedSwapOperator:
    """Exchange two different roles between the same two groups at once."""

    name: str = "paired_swap"
    weight: float = 0.0

    def apply(self, context: OperatorContext) -> bool:
        roles = context.problem.roles
        pair = _two_groups(context)
        if pair is None or len(roles) < 2:
            return False
        first, second = pair
        role_a, role_b = context.rng.sample(roles, 2)
        moves: list[tuple[int, int]] = []
        for role in (role_a, role_b):
            slots_a = find_slots_by_role(context.assignment[first], role)
            slots_b = find_slots_by_role(context.assignment[second], role)
            if not slots_a or not slots_b:
                return False
            moves.append((context.rng.choice(slots_a), context.rng.choice(slots_b)))
        for index_a, index_b in moves:
            swap_slots(context.assignment, first, index_a, second, index_b)
        return True


class OperatorRegistry:
    """Container for perturbation operators with enable/weight controls."""

    def __init__(self) -> None:
        self._operators: dict[str, Operator] = {}
        self._weights: dict[str, float] = {}

    def register(self, operator: Operator) -> None:
        """Register or replace an operator."""
        self._operators[operator.name] = operator
        self._weights.setdefault(operator.name, operator.weight)

    def get(self, name: str) -> Operator:
        """Return an operator by name."""
        try:
            return self._operators[name]
        except KeyError as exc:
            raise KeyError(f"Operator '{name}' is not registered") from exc

    def names(self) -> list[str]:
        return list(self._operators.keys())

    def weights(self) -> dict[str, float]:
        return {name: self._weights.get(name, op.weight) for name, op in self._operators.items()}

    def enabled(self) -> Iterable[Operator]:
        """Yield operators whose registry weight is > 0."""
        for name, operator in self._operators.items():
            if self._weights.get(name, operator.weight) > 0:
                yield operator

    def configure(self, weights: Mapping[str, float]) -> None:
        """Update registry weights (0 disables) for a subset of operators."""
        for name, weight in weights.items():
            self.get(name)
            self._weights[name] = max(0.0, float(weight))

    def choose(self, rng: Random) -> Operator | None:
        """Roulette-wheel pick among enabled operators."""
        weighted = [(op, self._weights.get(op.name, op.weight)) for op in self.enabled()]
        if not weighted:
            return None
        pick = rng.random() * sum(weight for _, weight in weighted)
        cumulative = 0.0
        for op, weight in weighted:
            cumulative += weight
            if pick < cumulative:
                return op
        return weighted[-1][0]

    @classmethod
    def from_defaults(cls, operators: Iterable[Operator] | None = None) -> OperatorRegistry:
        """Registry of the universal dispatcher: four basic operators at equal weight."""
        registry = cls()
        if operators is None:
            operators = (
                BasicSwapOperator(),
                AdaptiveSwapOperator(),
                CrossGroupSwapOperator(),
                IntraGroupSwapOperator(),
            )
        for op in operators:
            registry.register(op)
        return registry

    @classmethod
    def targeted(cls) -> OperatorRegistry:
        """Registry of the targeted operators dispatched by :func:`intelligent_swap`."""
        return cls.from_defaults(
            (
                FairnessSwapOperator(),
                ConsistencySwapOperator(),
                WeaknessSwapOperator(),
                ChainSwapOperator(),
                PairedSwapOperator(),
            )
        )


def _record(stats: OperatorStats | None, name: str, applied: bool) -> None:
    if stats is None:
        return
    entry = stats.setdefault(name, {"proposals": 0.0, "applied": 0.0})
    entry["proposals"] += 1
    if applied:
        entry["applied"] += 1


def universal_swap(
    context: OperatorContext,
    registry: OperatorRegistry | None = None,
    stats: OperatorStats | None = None,
) -> bool:
    """Apply one operator drawn from ``registry`` (default: 25/25/25/25 basic mix)."""
    op = (registry or OperatorRegistry.from_defaults()).choose(context.rng)
    if op is None:
        return False
    applied = op.apply(context)
    _record(stats, op.name, applied)
    return applied


def intelligent_thresholds(phase: str, progress: float, temperature: float) -> tuple[float, ...]:
    """Cumulative cut-offs for fairness / consistency / weakness / chain (remainder: paired)."""
    if phase == "exploitation" or progress > 0.7:
        return (0.35, 0.60, 0.80, 0.90)
    if phase == "diversification" or temperature > 0.5:
        return (0.15, 0.25, 0.35, 0.60)
    return (0.25, 0.45, 0.60, 0.75)


def intelligent_swap(
    context: OperatorContext,
    stats: OperatorStats | None = None,
    targeted: OperatorRegistry | None = None,
) -> bool:
    """Phase-aware dispatcher over the targeted operators, with their fallbacks.

    ``targeted`` defaults to a fresh :meth:`OperatorRegistry.targeted`; the dispatch plan picks
    operators by name, so registry weights do not apply here.
    """
    targeted = targeted or OperatorRegistry.targeted()
    fairness, consistency, weakness, chain = intelligent_thresholds(
        context.phase, context.progress, context.temperature
    )
    draw = context.rng.random()
    if draw < fairness:
        plan = ("fairness_swap", "weakness_swap")
    elif draw < consistency:
        plan = ("consistency_swap", "paired_swap")
    elif draw < weakness:
        plan = ("weakness_swap",)
    elif draw < chain:
        plan = ("chain_swap",)
    else:
        plan = ("paired_swap",)
    for name in plan:
        applied = targeted.get(name).apply(context)
        _record(stats, name, applied)
        if applied:
            return True
    return False


def intelligent_swap_probability(
    algorithm: str,
    progress: float = 0.0,
    stagnating: bool = False,
    temperature: float = 1.0,
    phase: str = "exploration",
) -> float:
    """Share of moves that go through :func:`intelligent_swap` for a given algorithm."""
    if algorithm == "genetic":
        return 0.5 if stagnating else 0.7 + progress * 0.15
    if algorithm == "tabu":
        return 0.7 if stagnating else 0.8 + progress * 0.1
    if algorithm == "annealing":
        return 0.6 + (1 - min(temperature, 1.0)) * 0.3
    if algorithm == "hybrid":
        return 0.65 if phase == "exploration" else 0.85
    if algorithm == "local_search":
        return 0.9
    return 0.75


def perturb(
    context: OperatorContext,
    *,
    algorithm: str = "default",
    registry: OperatorRegistry | None = None,
    stats: OperatorStats | None = None,
    stagnating: bool = False,
) -> bool:
    """One move: targeted when intelligent swaps are enabled and the draw says so, else universal."""
    if context.problem.params.intelligent_swaps:
        probability = intelligent_swap_probability(
            algorithm, context.progress, stagnating, context.temperature, context.phase
        )
        if context.rng.random() < probability and intelligent_swap(context, stats):
            return True
    return universal_swap(context, registry, stats)


def apply_swaps(
    context: OperatorContext,
    count: int,
    registry: OperatorRegistry | None = None,
) -> int:
    """Apply ``count`` universal swaps; return how many changed the assignment."""
    return sum(1 for _ in range(count) if universal_swap(context, registry))


__all__ = [
    "OperatorContext",
    "Operator",
    "OperatorStats",
    "OperatorRegistry",
    "BasicSwapOperator",
    "AdaptiveSwapOperator",
    "CrossGroupSwapOperator",
    "IntraGroupSwapOperator",
    "FairnessSwapOperator",
    "ConsistencySwapOperator",
    "WeaknessSwapOperator",
    "ChainSwapOperator",
    "PairedSwapOperator",
    "universal_swap",
    "intelligent_thresholds",
    "intelligent_swap",
    "intelligent_swap_probability",
    "perturb",
    "apply_swaps",
]
