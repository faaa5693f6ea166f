"""Evaluation metrics and prediction-set combination.

Only the metrics are re-exported here; import ``qa.evaluation`` directly
(it depends on ``ml``, which itself depends on ``qa.metrics``).
"""

from src.volatility_core.qa.metrics import (
    RegressionMetrics,
    compute_regression_metrics,
    r2_score_strict,
    root_mean_squared_error,
)

__all__ = [
    "RegressionMetrics",
    "compute_regression_metrics",
    "r2_score_strict",
    "root_mean_squared_error",
]
