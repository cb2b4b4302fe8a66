from __future__ import annotations

import pytest
from pydantic import ValidationError

from rosterlab.optimization.heuristics.config import (
    DEFAULT_ENABLED,
    AdaptiveParameters,
    AnnealingConfig,
    AntColonyConfig,
    BacktrackingConfig,
    EnsembleSettings,
    GeneticConfig,
)
from rosterlab.roster.contract.models import ActivityConfig, Candidate, RosterRequest


def test_default_settings():
    settings = EnsembleSettings()
    assert settings.enabled == list(DEFAULT_ENABLED)
    assert "hybrid" not in settings.enabled
    assert settings.time_limit is None
    assert settings.adaptive.variance_weight == 0.5


def test_enabled_names_are_normalised():
    settings = EnsembleSettings(enabled=[" Tabu", "tabu", "ANNEALING"])
    assert settings.enabled == ["tabu", "annealing"]


@pytest.mark.parametrize(
    "payload",
    [
        {"enabled": ["gradient_descent"]},
        {"enabled": []},
        {"tabu_starts": 0},
        {"time_limit": 0},
    ],
)
def test_invalid_settings(payload):
    with pytest.raises(ValidationError):
        EnsembleSettings.model_validate(payload)


def test_presets():
    quick = EnsembleSettings.preset("Quick")
    assert quick.genetic.generations < EnsembleSettings().genetic.generations
    assert quick.tabu_starts == 2
    assert EnsembleSettings.preset("default") == EnsembleSettings()
    with pytest.raises(ValueError):
        EnsembleSettings.preset("turbo")


def test_nested_settings_from_mapping():
    settings = EnsembleSettings.model_validate(
        {"annealing": {"iterations": 500}, "adaptive": {"fairness_weight": 2.0}}
    )
    assert settings.annealing.iterations == 500
    assert settings.annealing.cooling_rate == AnnealingConfig().cooling_rate
    assert settings.adaptive.fairness_weight == 2.0


def test_solver_config_validators():
    with pytest.raises(ValidationError, match="elitism_count"):
        GeneticConfig(population_size=3, elitism_count=3)
    with pytest.raises(ValidationError):
        GeneticConfig(mutation_rate=1.5)
    with pytest.raises(ValidationError):
        AnnealingConfig(cooling_rate=1.0)
    with pytest.raises(ValidationError):
        AntColonyConfig(evaporation_rate=0.0)
    with pytest.raises(ValidationError):
        AdaptiveParameters(strong_weak_swap_probability=-0.1)
    with pytest.raises(ValidationError):
        AdaptiveParameters(top_fraction=0)


def test_backtracking_attempts_scale_with_budget():
    assert BacktrackingConfig(max_backtracks=100).attempts == 1
    assert BacktrackingConfig(max_backtracks=10_000).attempts == 3
    assert BacktrackingConfig(max_backtracks=100_000, max_attempts=5).attempts == 5


def test_candidate_model():
    candidate = Candidate(id=4.0, roles="S | OPP | S", ratings={"S": 1600, "OPP": 0})
    assert candidate.id == 4
    assert candidate.roles == ("S", "OPP")
    assert candidate.rating_for("OPP") == 1500.0
    assert candidate.rating_for("L") == 1500.0
    assert not candidate.is_specialist
    with pytest.raises(ValidationError):
        Candidate(id="", roles=["S"])
    with pytest.raises(ValidationError):
        Candidate(id=1, roles=[])
    with pytest.raises(ValidationError):
        Candidate(id=1, roles=["S"], ratings={"S": -1})


def test_activity_config_defaults():
    activity = ActivityConfig(default_composition={"A": 2, "B": 1}, role_weights={"A": 1.5})
    assert activity.role_display_order == ["A", "B"]
    assert activity.weight_for("B") == 1.0
    assert activity.priority_order({"A": 2, "B": 0, "C": 1}) == ["A", "C"]
    volleyball = ActivityConfig.volleyball()
    assert volleyball.priority_order(volleyball.default_composition) == ["MB", "S", "L", "OPP", "OH"]
    with pytest.raises(ValidationError):
        ActivityConfig(role_weights={"A": 0})


def test_request_defaults_composition_from_activity():
    request = RosterRequest(activity=ActivityConfig.volleyball())
    assert request.composition == {"S": 1, "OPP": 1, "OH": 2, "MB": 2, "L": 1}
    custom = RosterRequest(composition={"X": 1})
    assert custom.activity.weight_for("X") == 1.0
