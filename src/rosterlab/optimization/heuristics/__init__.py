"""Search algorithms over slot assignments."""

from .aco import solve_ant_colony
from .common import ProblemContext, SolverResult
from .config import (
    AdaptiveParameters,
    AnnealingConfig,
    AntColonyConfig,
    BacktrackingConfig,
    EnsembleSettings,
    GeneticConfig,
    HybridConfig,
    LocalSearchConfig,
    TabuConfig,
)
from .cp import Found, NotFound, solve_backtracking
from .ga import solve_genetic
from .hybrid import solve_hybrid
from .local_search import solve_local_search
from .registry import OperatorContext, OperatorRegistry
from .sa import solve_annealing
from .tabu import solve_tabu, solve_tabu_multistart

__all__ = [
    "ProblemContext",
    "SolverResult",
    "OperatorContext",
    "OperatorRegistry",
    "AdaptiveParameters",
    "GeneticConfig",
    "TabuConfig",
    "AnnealingConfig",
    "AntColonyConfig",
    "BacktrackingConfig",
    "LocalSearchConfig",
    "HybridConfig",
    "EnsembleSettings",
    "Found",
    "NotFound",
    "solve_genetic",
    "solve_tabu",
    "solve_tabu_multistart",
    "solve_annealing",
    "solve_ant_colony",
    "solve_backtracking",
    "solve_local_search",
    "solve_hybrid",
]
