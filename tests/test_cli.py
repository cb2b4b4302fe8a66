from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from rosterlab.cli.main import app
from rosterlab.telemetry import read_jsonl
from tests.cli import CliRunner, cli_text

runner = CliRunner()
EXAMPLES = Path(__file__).resolve().parents[1] / "examples"
VOLLEYBALL = str(EXAMPLES / "volleyball.yaml")


def test_validate_example_roster():
    result = runner.invoke(app, ["validate", VOLLEYBALL])
    assert result.exit_code == 0, cli_text(result)
    text = cli_text(result)
    assert "Roster: Volleyball" in text
    assert "Roster is valid." in text


def test_validate_reports_shortage():
    result = runner.invoke(app, ["validate", VOLLEYBALL, "--groups", "3"])
    assert result.exit_code == 1
    assert "Not enough" in cli_text(result)


def test_validate_missing_file(tmp_path):
    result = runner.invoke(app, ["validate", str(tmp_path / "absent.yaml")])
    assert result.exit_code != 0


def test_optimize_writes_csv(tmp_path):
    out = tmp_path / "groups.csv"
    result = runner.invoke(
        app,
        ["optimize", VOLLEYBALL, "--preset", "quick", "-a", "tabu", "--seed", "7", "--out", str(out)],
    )
    assert result.exit_code == 0, cli_text(result)
    text = cli_text(result)
    assert "Tabu Search + Local Search" in text
    assert "Groups written to" in text
    frame = pd.read_csv(out)
    assert len(frame) == 14
    assert frame["candidate_id"].is_unique
    assert sorted(frame["group"].unique().tolist()) == [1, 2]


def test_optimize_writes_json_and_telemetry(tmp_path):
    out = tmp_path / "groups.json"
    log_path = tmp_path / "runs.jsonl"
    result = runner.invoke(
        app,
        [
            "optimize",
            VOLLEYBALL,
            "--preset",
            "quick",
            "--algorithm",
            "annealing,backtracking",
            "--role-weight",
            "S=1.5",
            "--seed",
            "3",
            "--out",
            str(out),
            "--telemetry-log",
            str(log_path),
        ],
    )
    assert result.exit_code == 0, cli_text(result)
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["seed"] == 3
    assert len(payload["groups"]) == 2
    assert len(payload["unassigned_candidates"]) == 2
    record = read_jsonl(log_path)[0]
    assert record["roster_path"] == VOLLEYBALL
    assert record["config"]["enabled"] == ["annealing", "backtracking"]
    assert (tmp_path / "steps" / f"{record['run_id']}.jsonl").exists()


def test_optimize_csv_roster_with_activity():
    result = runner.invoke(
        app,
        [
            "optimize",
            str(EXAMPLES / "players.csv"),
            "--activity",
            "volleyball",
            "--preset",
            "quick",
            "-a",
            "backtracking",
            "--seed",
            "1",
        ],
    )
    assert result.exit_code == 0, cli_text(result)
    assert "Constraint Backtracking + Local Search" in cli_text(result)


def test_optimize_insufficient_roster_exits_with_report():
    result = runner.invoke(app, ["optimize", VOLLEYBALL, "--groups", "3", "--preset", "quick"])
    assert result.exit_code == 1
    assert "Not enough total candidates" in cli_text(result)


@pytest.mark.parametrize(
    "extra",
    [
        ["--algorithm", "gradient"],
        ["--role-weight", "S"],
        ["--role-weight", "S=-1"],
        ["--preset", "turbo"],
    ],
)
def test_optimize_rejects_bad_options(extra):
    result = runner.invoke(app, ["optimize", VOLLEYBALL, *extra])
    assert result.exit_code == 2


@pytest.mark.slow
def test_optimize_with_file_settings():
    result = runner.invoke(app, ["optimize", VOLLEYBALL, "--seed", "11"])
    assert result.exit_code == 0, cli_text(result)
    assert "+ Local Search" in cli_text(result)
