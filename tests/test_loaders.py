from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from rosterlab.roster.io import load_roster

EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def test_load_volleyball_example():
    request = load_roster(EXAMPLES / "volleyball.yaml")
    assert request.activity.name == "Volleyball"
    assert request.composition == {"S": 1, "OPP": 1, "OH": 2, "MB": 2, "L": 1}
    assert request.group_count == 2
    assert len(request.candidates) == 16
    assert request.candidates[1].roles == ("S", "OPP")
    assert request.settings["tabu_starts"] == 2


def test_load_csv_with_builtin_activity():
    request = load_roster(EXAMPLES / "players.csv", activity="volleyball")
    assert request.activity.name == "Volleyball"
    assert len(request.candidates) == 14
    ben = request.candidates[1]
    assert ben.id == 2
    assert ben.roles == ("S", "OPP")
    assert ben.ratings == {"S": 1540.0, "OPP": 1610.0}


def _build_roster(tmp_path: Path, payload: dict, name: str = "roster.yaml") -> Path:
    path = tmp_path / name
    if path.suffix == ".json":
        path.write_text(json.dumps(payload), encoding="utf-8")
    else:
        path.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return path


def test_custom_activity_and_candidates_csv(tmp_path):
    (tmp_path / "people.csv").write_text(
        "id,name,roles,rating_A,rating_B\n"
        "1,One,A,1600,\n"
        "2,Two,A|B,1500,1550\n"
        "3,Three,B,,1700\n",
        encoding="utf-8",
    )
    path = _build_roster(
        tmp_path,
        {
            "activity": {"name": "Quiz", "role_names": {"A": "Captain", "B": "Member"}},
            "composition": {"A": 1, "B": 1},
            "group_count": 1,
            "candidates_csv": "people.csv",
            "candidates": [{"id": 4, "roles": "B", "ratings": {"B": 1400}}],
        },
    )
    request = load_roster(path)
    assert request.activity.display_name("A") == "Captain"
    assert request.activity.role_weights == {"A": 1.0, "B": 1.0}
    assert [candidate.id for candidate in request.candidates] == [1, 2, 3, 4]
    assert request.candidates[2].ratings == {"B": 1700.0}
    assert request.group_count == 1


def test_json_roster_with_preset_override(tmp_path):
    path = _build_roster(
        tmp_path,
        {
            "activity": {"preset": "volleyball", "role_weights": {"S": 2.0}},
            "group_count": 3,
            "candidates": [{"id": "x", "roles": ["S"]}],
        },
        name="roster.json",
    )
    request = load_roster(path)
    assert request.activity.name == "Volleyball"
    assert request.activity.weight_for("S") == 2.0
    assert request.composition["MB"] == 2
    assert request.candidates[0].rating_for("S") == 1500.0


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_roster(tmp_path / "absent.yaml")


def test_unknown_activity(tmp_path):
    path = _build_roster(tmp_path, {"activity": "curling", "candidates": []})
    with pytest.raises(ValueError, match="Unknown activity 'curling'"):
        load_roster(path)


def test_top_level_must_be_mapping(tmp_path):
    path = tmp_path / "roster.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_roster(path)


def test_csv_requires_roles_column(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("id,name\n1,One\n", encoding="utf-8")
    with pytest.raises(ValueError, match="missing columns: roles"):
        load_roster(path)
