from __future__ import annotations

from rosterlab.roster.contract.models import ActivityConfig
from rosterlab.roster.validation import (
    validate_activity_config,
    validate_candidates,
    validate_request,
)
from tests.rosters import TOY_COMPOSITION, toy_candidates, volleyball_candidates


def test_exact_fit_is_valid_with_warnings():
    report = validate_request(TOY_COMPOSITION, 2, toy_candidates())
    assert report.is_valid
    assert report.total_needed == 4
    assert report.surplus == 0
    assert {issue.role for issue in report.warnings} == {"A", "B"}


def test_role_shortage_uses_display_names():
    activity = ActivityConfig.volleyball()
    candidates = [candidate for candidate in volleyball_candidates(18) if "L" not in candidate.roles]
    report = validate_request(dict(activity.default_composition), 2, candidates, activity)
    assert not report.is_valid
    libero = [issue for issue in report.errors if issue.role == "L"]
    assert libero and libero[0].message == "Not enough Liberos: need 2, have 0"
    assert libero[0].needed == 2


def test_total_shortage_is_reported():
    candidates = [
        {"id": 1, "roles": ["A", "B"]},
        {"id": 2, "positions": "A|B"},
        {"id": 3, "roles": ["A", "B"]},
    ]
    report = validate_request(TOY_COMPOSITION, 2, candidates)
    # each role has three eligible candidates but only three people exist for four slots
    assert [issue.role for issue in report.errors] == [None]
    assert report.errors[0].message == "Not enough total candidates: need 4, have 3"


def test_small_surplus_warning():
    candidates = toy_candidates() + [{"id": "X", "roles": ["A"]}]
    report = validate_request(TOY_COMPOSITION, 2, candidates)
    assert report.is_valid
    assert report.surplus == 1
    assert any("1 extra candidates" in issue.message for issue in report.warnings)


def test_group_count_must_be_positive():
    report = validate_request(TOY_COMPOSITION, 0, toy_candidates())
    assert not report.is_valid
    assert report.to_dict()["errors"] == ["Group count must be at least 1, got 0"]


def test_zero_quota_roles_are_ignored():
    report = validate_request({"A": 1, "B": 1, "C": 0}, 2, toy_candidates())
    assert report.is_valid
    assert all(issue.role != "C" for issue in report.warnings)


def test_validate_candidates_records():
    report = validate_candidates(
        [
            {"id": 1, "name": "Ana", "roles": ["S"], "ratings": {"S": 1700}},
            {"id": " ", "name": "Ben", "roles": ["S"], "ratings": {"S": 1600}},
            {"id": 3, "roles": [], "ratings": {}},
        ]
    )
    messages = [issue.message for issue in report.errors]
    assert "Candidate at index 1 missing required field: id" in messages
    assert "Candidate 2 has no roles defined" in messages
    warnings = [issue.message for issue in report.warnings]
    assert "Candidate at index 2 missing name" in warnings
    assert "Candidate 2 has no ratings defined" in warnings
    assert report.total_available == 3


def test_activity_config_checks():
    assert validate_activity_config(ActivityConfig.volleyball()) == []
    problems = validate_activity_config(ActivityConfig())
    assert "Activity config role_names must be non-empty" in problems
    assert "Activity config default_composition must be non-empty" in problems
    mismatched = ActivityConfig(role_names={"A": "Alpha"}, role_display_order=["A", "Z"])
    assert any("unknown roles: Z" in problem for problem in validate_activity_config(mismatched))
