"""Tunable parameters for the search algorithms and the ensemble."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from rosterlab.evaluation.scoring import ScoringWeights

ALGORITHM_NAMES: tuple[str, ...] = (
    "genetic",
    "tabu",
    "annealing",
    "ant_colony",
    "backtracking",
    "hybrid",
)
DEFAULT_ENABLED: tuple[str, ...] = ("genetic", "tabu", "annealing", "ant_colony", "backtracking")


def _positive_int(value: int) -> int:
    if value < 1:
        raise ValueError("must be >= 1")
    return value


def _unit_interval(value: float) -> float:
    if not 0 <= value <= 1:
        raise ValueError("must be in [0, 1]")
    return value


class AdaptiveParameters(ScoringWeights):
    """Scoring weights plus the knobs the perturbation operators read at runtime."""

    strong_weak_swap_probability: float = 0.6
    intelligent_swaps: bool = False

    @field_validator("strong_weak_swap_probability")
    @classmethod
    def _probability(cls, value: float) -> float:
        return _unit_interval(value)

    def scoring_weights(self) -> ScoringWeights:
        return ScoringWeights(
            variance_weight=self.variance_weight,
            role_balance_weight=self.role_balance_weight,
            fairness_weight=self.fairness_weight,
            consistency_weight=self.consistency_weight,
            top_fraction=self.top_fraction,
        )


class GeneticConfig(BaseModel):
    population_size: int = 25
    generations: int = 350
    mutation_rate: float = 0.25
    crossover_rate: float = 0.75
    elitism_count: int = 3
    tournament_size: int = 3
    max_stagnation: int = 25
    diversity_sample: int = 5
    min_difference_fraction: float = 0.2
    yield_every: int = 5

    @field_validator("population_size", "generations", "tournament_size", "max_stagnation", "yield_every")
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)

    @field_validator("mutation_rate", "crossover_rate", "min_difference_fraction")
    @classmethod
    def _rates(cls, value: float) -> float:
        return _unit_interval(value)

    @field_validator("elitism_count", "diversity_sample")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be non-negative")
        return value

    @model_validator(mode="after")
    def _elites_fit(self) -> "GeneticConfig":
        if self.elitism_count >= self.population_size:
            raise ValueError("elitism_count must be smaller than population_size")
        return self


class TabuConfig(BaseModel):
    tenure: int = 120
    iterations: int = 1500
    neighborhood_size: int = 20
    diversification_interval: int = 300
    restart_stagnation: int = 500
    restart_perturbations: int = 5
    adaptive_probability: float = 0.6
    stagnating_adaptive_probability: float = 0.4
    stagnation_threshold: int = 100
    yield_every: int = 100

    @field_validator(
        "tenure",
        "iterations",
        "neighborhood_size",
        "diversification_interval",
        "restart_stagnation",
        "stagnation_threshold",
        "yield_every",
    )
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)

    @field_validator("adaptive_probability", "stagnating_adaptive_probability")
    @classmethod
    def _rates(cls, value: float) -> float:
        return _unit_interval(value)


class AnnealingConfig(BaseModel):
    initial_temperature: float = 1500.0
    cooling_rate: float = 0.9965
    iterations: int = 30_000
    reheat_temperature: float = 700.0
    reheat_iterations: int = 6_000
    min_temperature: float = 1e-6
    yield_every: int = 1000

    @field_validator("initial_temperature", "reheat_temperature", "min_temperature")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("temperature must be positive")
        return value

    @field_validator("cooling_rate")
    @classmethod
    def _cooling(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("cooling_rate must be in (0, 1)")
        return value

    @field_validator("iterations", "reheat_iterations", "yield_every")
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)


class AntColonyConfig(BaseModel):
    ant_count: int = 20
    iterations: int = 100
    alpha: float = 1.0
    beta: float = 2.0
    evaporation_rate: float = 0.1
    pheromone_deposit: float = 100.0
    elitist_weight: float = 2.0
    initial_pheromone: float = 1.0
    yield_every: int = 5

    @field_validator("ant_count", "iterations", "yield_every")
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)

    @field_validator("evaporation_rate")
    @classmethod
    def _evaporation(cls, value: float) -> float:
        if not 0 < value < 1:
            raise ValueError("evaporation_rate must be in (0, 1)")
        return value

    @field_validator("alpha", "beta", "pheromone_deposit", "elitist_weight")
    @classmethod
    def _non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must be non-negative")
        return value

    @field_validator("initial_pheromone")
    @classmethod
    def _pheromone(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("initial_pheromone must be positive")
        return value


class BacktrackingConfig(BaseModel):
    max_backtracks: int = 10_000
    max_attempts: int = 3
    yield_every: int = 500

    @field_validator("max_backtracks", "max_attempts", "yield_every")
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)

    @property
    def attempts(self) -> int:
        """Number of attempts: one per 4000 backtracks of budget, capped at ``max_attempts``."""
        return max(1, min(self.max_attempts, -(-self.max_backtracks // 4000)))


class LocalSearchConfig(BaseModel):
    iterations: int = 4000
    adaptive_probability: float = 0.7
    yield_every: int = 500

    @field_validator("iterations", "yield_every")
    @classmethod
    def _counts(cls, value: int) -> int:
        return _positive_int(value)

    @field_validator("adaptive_probability")
    @classmethod
    def _rates(cls, value: float) -> float:
        return _unit_interval(value)


class HybridConfig(BaseModel):
    """Budgets of the sequential genetic -> tabu -> local search pipeline."""

    genetic: GeneticConfig = Field(
        default_factory=lambda: GeneticConfig(generations=120, population_size=20)
    )
    tabu: TabuConfig = Field(default_factory=lambda: TabuConfig(iterations=600))
    local_search: LocalSearchConfig = Field(default_factory=lambda: LocalSearchConfig(iterations=1500))


class EnsembleSettings(BaseModel):
    """Which algorithms the ensemble runs and with which budgets."""

    enabled: list[str] = Field(default_factory=lambda: list(DEFAULT_ENABLED))
    tabu_starts: int = 3
    time_limit: float | None = None
    adaptive: AdaptiveParameters = Field(default_factory=AdaptiveParameters)
    genetic: GeneticConfig = Field(default_factory=GeneticConfig)
    tabu: TabuConfig = Field(default_factory=TabuConfig)
    annealing: AnnealingConfig = Field(default_factory=AnnealingConfig)
    ant_colony: AntColonyConfig = Field(default_factory=AntColonyConfig)
    backtracking: BacktrackingConfig = Field(default_factory=BacktrackingConfig)
    local_search: LocalSearchConfig = Field(default_factory=LocalSearchConfig)
    hybrid: HybridConfig = Field(default_factory=HybridConfig)

    @field_validator("enabled")
    @classmethod
    def _known_algorithms(cls, value: list[str]) -> list[str]:
        normalized = [name.strip().lower() for name in value]
        unknown = sorted(set(normalized) - set(ALGORITHM_NAMES))
        if unknown:
            raise ValueError(f"Unknown algorithms requested: {', '.join(unknown)}")
        if not normalized:
            raise ValueError("At least one algorithm must be enabled")
        return list(dict.fromkeys(normalized))

    @field_validator("tabu_starts")
    @classmethod
    def _starts(cls, value: int) -> int:
        return _positive_int(value)

    @field_validator("time_limit")
    @classmethod
    def _time_limit(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("time_limit must be positive")
        return value

    @classmethod
    def quick(cls) -> "EnsembleSettings":
        """Reduced budgets for tests and interactive previews."""
        return cls(
            tabu_starts=2,
            genetic=GeneticConfig(population_size=12, generations=40, elitism_count=2),
            tabu=TabuConfig(iterations=300, neighborhood_size=10, diversification_interval=100),
            annealing=AnnealingConfig(iterations=4000, reheat_iterations=1500),
            ant_colony=AntColonyConfig(ant_count=8, iterations=15),
            backtracking=BacktrackingConfig(max_backtracks=2000),
            local_search=LocalSearchConfig(iterations=800),
            hybrid=HybridConfig(
                genetic=GeneticConfig(population_size=10, generations=20, elitism_count=2),
                tabu=TabuConfig(iterations=150, neighborhood_size=8),
                local_search=LocalSearchConfig(iterations=300),
            ),
        )

    @classmethod
    def preset(cls, name: str) -> "EnsembleSettings":
        key = name.strip().lower()
        if key == "quick":
            return cls.quick()
        if key == "default":
            return cls()
        raise ValueError(f"Unknown preset '{name}' (expected 'quick' or 'default')")


__all__ = [
    "ALGORITHM_NAMES",
    "DEFAULT_ENABLED",
    "AdaptiveParameters",
    "GeneticConfig",
    "TabuConfig",
    "AnnealingConfig",
    "AntColonyConfig",
    "BacktrackingConfig",
    "LocalSearchConfig",
    "HybridConfig",
    "EnsembleSettings",
]
