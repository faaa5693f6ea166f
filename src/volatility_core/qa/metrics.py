"""Regression accuracy metrics.

- RMSE = sqrt(mean squared error)
- R² = 1 - SS_res / SS_tot (NaN when the target is constant, SS_tot = 0)
- MAE = mean absolute error
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

import numpy as np
from sklearn.metrics import mean_absolute_error, mean_squared_error


@dataclass(frozen=True)
class RegressionMetrics:
    """Held-out accuracy of one predictor.

    Attributes:
        rmse: Root mean squared error
        r2: Coefficient of determination (NaN if undefined)
        mae: Mean absolute error
        n_samples: Number of evaluated records
    """

    rmse: float
    r2: float
    mae: float
    n_samples: int

    def to_dict(self) -> dict[str, float | int]:
        return asdict(self)


def root_mean_squared_error(y_true, y_pred) -> float:
    """Root mean squared error of predictions."""
    return math.sqrt(float(mean_squared_error(y_true, y_pred)))


def r2_score_strict(y_true, y_pred) -> float:
    """R² = 1 - SS_res/SS_tot, NaN when SS_tot is zero.

    Unlike sklearn's r2_score, a constant target does not get mapped to 0.0
    or 1.0; the value is reported as undefined.
    """
    y_true = np.asarray(y_true, dtype="float64")
    y_pred = np.asarray(y_pred, dtype="float64")
    ss_res = float(np.sum((y_true - y_pred) ** 2))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    if ss_tot == 0.0:
        return float("nan")
    return 1.0 - ss_res / ss_tot


def compute_regression_metrics(y_true, y_pred) -> RegressionMetrics:
    """Compute RMSE, R² and MAE for paired observations and predictions.

    Args:
        y_true: Observed target values
        y_pred: Predicted values (same length)

    Returns:
        RegressionMetrics

    Raises:
        ValueError: If inputs are empty or have different lengths
    """
    y_true = np.asarray(y_true, dtype="float64")
    y_pred = np.asarray(y_pred, dtype="float64")
    if len(y_true) != len(y_pred):
        raise ValueError(
            f"y_true and y_pred must have same length. Got {len(y_true)} and {len(y_pred)}"
        )
    if len(y_true) == 0:
        raise ValueError("Cannot compute metrics on zero samples")

    return RegressionMetrics(
        rmse=root_mean_squared_error(y_true, y_pred),
        r2=r2_score_strict(y_true, y_pred),
        mae=float(mean_absolute_error(y_true, y_pred)),
        n_samples=len(y_true),
    )
