from __future__ import annotations

import asyncio
import logging

import pytest

from rosterlab import (
    ActivityConfig,
    Candidate,
    EnsembleSettings,
    RosterRequest,
    RosterValidationError,
    optimize,
    optimize_async,
    optimize_request,
)
from rosterlab.core.errors import DuplicateCandidateIdError
from rosterlab.telemetry import read_jsonl
from tests.rosters import TOY_COMPOSITION, toy_candidates, volleyball_candidates


def _quick(*enabled: str) -> EnsembleSettings:
    settings = EnsembleSettings.quick()
    if enabled:
        settings = settings.model_copy(update={"enabled": list(enabled)})
    return settings


def test_optimize_balances_toy_roster():
    result = optimize(TOY_COMPOSITION, 2, toy_candidates(), settings=_quick(), seed=11)
    pairs = sorted(sorted(slot.candidate_id for slot in group) for group in result.groups)
    assert pairs == [["A1", "B2"], ["A2", "B1"]]
    assert result.balance.spread == pytest.approx(50.0)
    assert result.unassigned_candidates == []
    assert result.seed == 11
    assert result.algorithm_used.endswith("+ Local Search")
    assert result.validation.is_valid
    # exactly-enough pools are reported, not rejected
    assert result.validation.warnings


def test_optimize_rejects_short_pool():
    candidates = toy_candidates()[:3]
    with pytest.raises(RosterValidationError) as excinfo:
        optimize(TOY_COMPOSITION, 2, candidates, settings=_quick())
    messages = [issue.message for issue in excinfo.value.report.errors]
    assert any("Not enough Bs" in message for message in messages)


def test_optimize_rejects_duplicate_ids():
    candidates = toy_candidates() + [Candidate(id="A1", roles=("A",), ratings={"A": 1500})]
    with pytest.raises(DuplicateCandidateIdError):
        optimize(TOY_COMPOSITION, 2, candidates, settings=_quick("tabu"))


def test_multi_role_candidates_are_placed_once():
    activity = ActivityConfig.volleyball()
    candidates = volleyball_candidates(18)
    result = optimize(
        dict(activity.default_composition),
        2,
        candidates,
        activity=activity,
        settings=_quick("tabu", "backtracking"),
        seed=5,
    )
    placed = [slot.candidate_id for group in result.groups for slot in group]
    assert len(placed) == len(set(placed)) == 14
    assert {candidate.id for candidate in result.unassigned_candidates}.isdisjoint(placed)
    assert len(result.unassigned_candidates) == 4
    for group in result.groups:
        assert sorted(slot.role for slot in group) == sorted(
            role for role, count in activity.default_composition.items() for _ in range(count)
        )
        # display order: setter first, libero last
        assert group[0].role == "S"
        assert group[-1].role == "L"
    strengths = result.balance.per_group_strength
    assert strengths[0] >= strengths[1]


def test_same_seed_reproduces_result():
    activity = ActivityConfig.volleyball()
    kwargs = dict(activity=activity, settings=_quick("tabu", "annealing"), seed=99)
    first = optimize(dict(activity.default_composition), 2, volleyball_candidates(18), **kwargs)
    second = optimize(dict(activity.default_composition), 2, volleyball_candidates(18), **kwargs)
    assert first.to_dict()["groups"] == second.to_dict()["groups"]
    assert first.score == second.score


def test_result_exports():
    result = optimize(
        TOY_COMPOSITION,
        2,
        [candidate.model_dump() for candidate in toy_candidates()],
        settings=_quick("tabu"),
        seed=1,
    )
    frame = result.to_dataframe()
    assert list(frame.columns) == ["group", "candidate_id", "name", "role", "role_name", "rating"]
    assert len(frame) == 4
    assert sorted(frame["group"].unique().tolist()) == [1, 2]

    payload = result.to_dict()
    assert payload["seed"] == 1
    assert payload["validation"]["is_valid"] is True
    assert payload["balance"]["spread"] == pytest.approx(result.balance.spread)
    assert {"fairness", "consistency", "role_balance"} <= set(payload["balance"])
    assert sum(len(group) for group in payload["groups"]) == 4


def test_telemetry_records_run_and_steps(tmp_path):
    log_path = tmp_path / "telemetry" / "runs.jsonl"
    result = optimize(
        TOY_COMPOSITION,
        2,
        toy_candidates(),
        settings=_quick("tabu", "backtracking"),
        seed=3,
        telemetry_log=log_path,
        telemetry_context={"roster_path": "toy.yaml"},
    )
    records = read_jsonl(log_path)
    assert len(records) == 1
    run = records[0]
    assert run["record_type"] == "run"
    assert run["run_id"] == result.telemetry_run_id
    assert run["solver"] == "ensemble"
    assert run["status"] == "ok"
    assert run["seed"] == 3
    assert run["roster_path"] == "toy.yaml"
    assert run["context"]["candidate_count"] == 4
    assert "roster_path" not in run["context"]
    assert run["config"]["enabled"] == ["tabu", "backtracking"]
    assert run["metrics"]["spread"] == pytest.approx(result.balance.spread)
    assert run["extra"]["algorithm_used"] == result.algorithm_used

    steps = read_jsonl(log_path.parent / "steps" / f"{result.telemetry_run_id}.jsonl")
    assert [step["algorithm"] for step in steps] == ["tabu", "backtracking"]
    assert steps[-1]["best_score"] == min(step["score"] for step in steps)


def test_optimize_request_uses_request_settings():
    request = RosterRequest(
        composition=TOY_COMPOSITION,
        group_count=2,
        candidates=toy_candidates(),
        settings={"enabled": ["backtracking"], "local_search": {"iterations": 50}},
    )
    result = optimize_request(request, seed=4)
    assert result.algorithm_used == "Constraint Backtracking + Local Search"
    assert set(result.statistics["scores"]) == {"backtracking"}


def test_optimize_async_runs_inside_event_loop():
    async def runner():
        return await optimize_async(
            TOY_COMPOSITION, 2, toy_candidates(), settings=_quick("annealing"), seed=8
        )

    result = asyncio.run(runner())
    assert len(result.groups) == 2
    assert result.balance.spread <= 150


def test_optimize_flags_roster_that_cannot_meet_composition(tmp_path, caplog):
    candidates = [
        Candidate(id="X", roles=("A", "C"), ratings={"A": 1600, "C": 1500}),
        Candidate(id="Y", roles=("B",), ratings={"B": 1700}),
        Candidate(id="Z", roles=("B",), ratings={"B": 1650}),
    ]
    log_path = tmp_path / "runs.jsonl"
    with caplog.at_level(logging.WARNING, logger="rosterlab.optimization.service"):
        result = optimize(
            {"A": 1, "B": 1, "C": 1},
            1,
            candidates,
            settings=_quick("tabu", "backtracking"),
            seed=2,
            telemetry_log=log_path,
        )
    assert result.validation.is_valid
    assert result.fallback_used
    assert not result.is_valid
    assert result.composition_errors
    payload = result.to_dict()
    assert payload["fallback_used"] is True
    assert payload["composition_errors"] == result.composition_errors
    assert any("break the role composition" in record.getMessage() for record in caplog.records)
    run = read_jsonl(log_path)[0]
    assert run["status"] == "incomplete"
    assert run["extra"]["composition_errors"] == result.composition_errors


def test_optimize_reports_valid_roster():
    result = optimize(TOY_COMPOSITION, 2, toy_candidates(), settings=_quick("tabu"), seed=5)
    assert result.is_valid
    assert not result.fallback_used
    assert result.to_dict()["composition_errors"] == []
