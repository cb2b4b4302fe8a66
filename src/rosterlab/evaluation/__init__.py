"""Assignment scoring and balance metrics."""

from .metrics import (
    ConsistencyMetric,
    FairnessMetric,
    consistency_metric,
    depth_metric,
    fairness_metric,
    role_balance_metric,
)
from .scoring import (
    WORST_SCORE,
    BalanceSummary,
    ScoringWeights,
    balance_summary,
    group_strength,
    group_strengths,
    score_assignment,
)

__all__ = [
    "WORST_SCORE",
    "BalanceSummary",
    "ScoringWeights",
    "balance_summary",
    "group_strength",
    "group_strengths",
    "score_assignment",
    "FairnessMetric",
    "ConsistencyMetric",
    "fairness_metric",
    "consistency_metric",
    "role_balance_metric",
    "depth_metric",
]
