"""Initial assignment construction heuristics.

Every generator returns a duplicate-free assignment with ``group_count`` groups. When the pool holds
enough eligible candidates every group is filled to its quota; shortages are a validation concern and
simply leave slots empty here.
"""

from __future__ import annotations

import random as _random
from collections.abc import Callable, Mapping, Sequence

from rosterlab.core.types import CandidateId, RoleCode, active_roles
from rosterlab.optimization.pool import CandidatePool
from rosterlab.optimization.slots import Assignment, Slot, empty_assignment

SeedGenerator = Callable[..., Assignment]

SPECIALIST_JITTER = 15.0
GREEDY_JITTER = 25.0
BALANCED_JITTER = 20.0
SNAKE_JITTER = 15.0
SCARCITY_MAX_ITERATIONS = 200
SNAKE_MAX_ROUNDS = 100


def _rng(rng: _random.Random | None) -> _random.Random:
    return rng if rng is not None else _random.Random()


def _role_order(
    composition: Mapping[RoleCode, int],
    role_order: Sequence[RoleCode] | None,
) -> list[RoleCode]:
    roles = active_roles(composition)
    if not role_order:
        return roles
    ordered = [role for role in role_order if role in roles]
    ordered.extend(role for role in roles if role not in ordered)
    return ordered


def _by_rating(
    ids: list[CandidateId],
    role: RoleCode,
    pool: CandidatePool,
    rng: _random.Random,
    jitter: float,
    randomize: bool,
) -> list[CandidateId]:
    def key(candidate_id: CandidateId) -> float:
        rating = pool.rating(candidate_id, role)
        if randomize:
            rating += rng.uniform(-jitter, jitter)
        return -rating

    return sorted(ids, key=key)


def _count_role(group: list[Slot], role: RoleCode) -> int:
    return sum(1 for slot in group if slot.role == role)


def _block_fill(
    groups: Assignment,
    role: RoleCode,
    needed: int,
    ordered_ids: list[CandidateId],
    used: set[CandidateId],
) -> None:
    position = 0
    for group in groups:
        for _ in range(needed):
            if position >= len(ordered_ids):
                return
            candidate_id = ordered_ids[position]
            group.append(Slot(candidate_id, role))
            used.add(candidate_id)
            position += 1


def _scarcity(
    composition: Mapping[RoleCode, int],
    groups: Assignment,
    pool: CandidatePool,
    used: set[CandidateId],
) -> dict[RoleCode, float]:
    scarcity: dict[RoleCode, float] = {}
    for role, needed in composition.items():
        if not needed or needed <= 0:
            continue
        remaining = sum(max(0, needed - _count_role(group, role)) for group in groups)
        if remaining == 0:
            continue
        available = sum(1 for candidate_id in pool.eligible_ids(role) if candidate_id not in used)
        scarcity[role] = available / remaining
    return scarcity


def specialist_first_seed(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    randomize: bool = False,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> Assignment:
    """Place single-role candidates first, then fill the scarcest role with the least flexible candidates.

    Phase 1 distributes specialists of each role round-robin, strongest first. Phase 2 repeatedly
    recomputes scarcity (remaining eligible / remaining slots) and serves the scarcest role first,
    preferring candidates with fewer eligible roles so generalists stay available for later roles.
    """
    rng = _rng(rng)
    groups = empty_assignment(group_count)
    used: set[CandidateId] = set()
    roles = _role_order(composition, role_order)

    for role in roles:
        needed = composition[role]
        specialists = [
            candidate_id
            for candidate_id in pool.eligible_ids(role)
            if candidate_id not in used and pool.is_specialist(candidate_id)
        ]
        queue = _by_rating(specialists, role, pool, rng, SPECIALIST_JITTER, randomize)
        position = 0
        for _ in range(needed):
            for group in groups:
                if position >= len(queue):
                    break
                if _count_role(group, role) < needed:
                    group.append(Slot(queue[position], role))
                    used.add(queue[position])
                    position += 1

    for _ in range(SCARCITY_MAX_ITERATIONS):
        progress = False
        scarcity = _scarcity(composition, groups, pool, used)
        for role in sorted(scarcity, key=scarcity.__getitem__):
            needed = composition[role]
            available = [candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used]
            if not available:
                continue
            jitter = {
                candidate_id: rng.uniform(-SPECIALIST_JITTER, SPECIALIST_JITTER) if randomize else 0.0
                for candidate_id in available
            }
            available.sort(
                key=lambda candidate_id: (
                    pool.role_count(candidate_id),
                    -(pool.rating(candidate_id, role) + jitter[candidate_id]),
                )
            )
            for group in groups:
                if not available:
                    break
                if _count_role(group, role) < needed:
                    candidate_id = available.pop(0)
                    group.append(Slot(candidate_id, role))
                    used.add(candidate_id)
                    progress = True
        if not progress:
            break
    return groups


def _ordered_roles(
    composition: Mapping[RoleCode, int],
    role_order: Sequence[RoleCode] | None,
    randomize: bool,
    rng: _random.Random,
) -> list[RoleCode]:
    roles = _role_order(composition, role_order)
    if randomize:
        rng.shuffle(roles)
    return roles


def greedy_seed(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    randomize: bool = False,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> Assignment:
    """Fill each role's quota group by group, strongest candidates first."""
    rng = _rng(rng)
    groups = empty_assignment(group_count)
    used: set[CandidateId] = set()
    for role in _ordered_roles(composition, role_order, randomize, rng):
        available = [candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used]
        ordered = _by_rating(available, role, pool, rng, GREEDY_JITTER, randomize)
        _block_fill(groups, role, composition[role], ordered, used)
    return groups


def balanced_seed(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    randomize: bool = False,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> Assignment:
    """Deal candidates of each role round-robin across groups, strongest first."""
    rng = _rng(rng)
    groups = empty_assignment(group_count)
    used: set[CandidateId] = set()
    for role in _ordered_roles(composition, role_order, randomize, rng):
        available = [candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used]
        ordered = _by_rating(available, role, pool, rng, BALANCED_JITTER, randomize)
        offset = rng.randrange(group_count) if randomize and group_count else 0
        position = 0
        for _ in range(composition[role]):
            for step in range(group_count):
                if position >= len(ordered):
                    break
                group = groups[(step + offset) % group_count]
                group.append(Slot(ordered[position], role))
                used.add(ordered[position])
                position += 1
    return groups


def snake_draft_seed(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    randomize: bool = False,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> Assignment:
    """Round-robin that reverses direction every round; specialists are drafted first."""
    rng = _rng(rng)
    groups = empty_assignment(group_count)
    used: set[CandidateId] = set()
    for role in _ordered_roles(composition, role_order, randomize, rng):
        needed = composition[role]
        available = [candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used]
        jitter = {
            candidate_id: rng.uniform(-SNAKE_JITTER, SNAKE_JITTER) if randomize else 0.0
            for candidate_id in available
        }
        ordered = sorted(
            available,
            key=lambda candidate_id: (
                0 if pool.is_specialist(candidate_id) else 1,
                -(pool.rating(candidate_id, role) + jitter[candidate_id]),
            ),
        )
        position = 0
        draft_round = 1 if randomize and rng.random() > 0.5 else 0
        rounds = 0
        while position < len(ordered) and rounds < SNAKE_MAX_ROUNDS:
            if all(_count_role(group, role) >= needed for group in groups):
                break
            indices = range(group_count - 1, -1, -1) if draft_round % 2 else range(group_count)
            for index in indices:
                if position >= len(ordered):
                    break
                if _count_role(groups[index], role) < needed:
                    groups[index].append(Slot(ordered[position], role))
                    used.add(ordered[position])
                    position += 1
            draft_round += 1
            rounds += 1
    return groups


def random_seed(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    randomize: bool = True,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> Assignment:
    """Shuffle each role's eligible candidates and block-fill groups in order."""
    rng = _rng(rng)
    groups = empty_assignment(group_count)
    used: set[CandidateId] = set()
    for role in _role_order(composition, role_order):
        available = [candidate_id for candidate_id in pool.eligible_ids(role) if candidate_id not in used]
        rng.shuffle(available)
        _block_fill(groups, role, composition[role], available, used)
    return groups


SEED_GENERATORS: dict[str, SeedGenerator] = {
    "specialist_first": specialist_first_seed,
    "greedy": greedy_seed,
    "balanced": balanced_seed,
    "snake_draft": snake_draft_seed,
    "random": random_seed,
}


def generate_initial_seeds(
    composition: Mapping[RoleCode, int],
    group_count: int,
    pool: CandidatePool,
    *,
    rng: _random.Random | None = None,
    role_order: Sequence[RoleCode] | None = None,
) -> list[Assignment]:
    """Return the diversified starting batch handed to the search algorithms.

    Order: specialist-first (deterministic), specialist-first (randomized), greedy, balanced,
    snake draft (all randomized) and pure random.
    """
    rng = _rng(rng)
    kwargs = {"rng": rng, "role_order": role_order}
    return [
        specialist_first_seed(composition, group_count, pool, False, **kwargs),
        specialist_first_seed(composition, group_count, pool, True, **kwargs),
        greedy_seed(composition, group_count, pool, True, **kwargs),
        balanced_seed(composition, group_count, pool, True, **kwargs),
        snake_draft_seed(composition, group_count, pool, True, **kwargs),
        random_seed(composition, group_count, pool, **kwargs),
    ]


__all__ = [
    "SeedGenerator",
    "SEED_GENERATORS",
    "specialist_first_seed",
    "greedy_seed",
    "balanced_seed",
    "snake_draft_seed",
    "random_seed",
    "generate_initial_seeds",
]
