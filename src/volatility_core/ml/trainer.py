"""Model Trainer: fits one model family, optionally after a grid search.

A ``TrainedModel`` is immutable once returned. It owns its fitted estimator
and records the hyperparameters it was fitted with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from src.volatility_core.config.constants import DEFAULT_N_FOLDS, DEFAULT_SEED, MIN_VARIANCE, ModelFamily
from src.volatility_core.errors import ConfigurationError, DataError
from src.volatility_core.ml.grid_search import GridSearchResult, run_grid_search
from src.volatility_core.ml.models import as_model_family, create_estimator, min_train_samples
from src.volatility_core.ml.splitting import Fold, kfold_partitions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    """A fitted model of one family.

    Attributes:
        family: Model family
        estimator: Fitted sklearn estimator
        params: Hyperparameters used for the final fit
        feature_names: Feature columns, in the order the estimator expects
        grid_search: Grid search outcome (None if no grid was supplied)
    """

    family: ModelFamily
    estimator: Any
    params: dict[str, Any]
    feature_names: tuple[str, ...]
    grid_search: GridSearchResult | None = field(default=None, compare=False)

    def predict(self, X: pd.DataFrame | np.ndarray) -> np.ndarray:
        """Predict the target for the rows of X."""
        return self.estimator.predict(_as_matrix(X, self.feature_names))


def _as_matrix(X: pd.DataFrame | np.ndarray, feature_names: tuple[str, ...]) -> np.ndarray:
    if isinstance(X, pd.DataFrame):
        missing = [c for c in feature_names if c not in X.columns]
        if missing:
            raise DataError(
                f"Missing feature columns: {missing}. Available: {list(X.columns)}"
            )
        return X[list(feature_names)].to_numpy(dtype="float64")

    arr = np.asarray(X, dtype="float64")
    if arr.ndim != 2 or arr.shape[1] != len(feature_names):
        raise DataError(
            f"Expected a 2-D array with {len(feature_names)} columns, got shape {arr.shape}"
        )
    return arr


def validate_training_data(X: pd.DataFrame, y: pd.Series | np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Validate a feature frame and target before fitting.

    Returns:
        Tuple (X matrix, y vector) as float64 arrays

    Raises:
        ConfigurationError: If X has no feature columns
        DataError: If lengths differ, or X or y contain missing values
    """
    if X.shape[1] == 0:
        raise ConfigurationError("Cannot fit a model with no feature columns")
    if len(X) != len(y):
        raise DataError(f"Length mismatch: X has {len(X)} rows, y has {len(y)} rows")

    X_arr = X.to_numpy(dtype="float64")
    y_arr = np.asarray(y, dtype="float64")

    if not np.isfinite(X_arr).all():
        bad = [c for c, ok in zip(X.columns, np.isfinite(X_arr).all(axis=0)) if not ok]
        raise DataError(f"Feature columns contain missing or non-finite values: {bad}")
    if not np.isfinite(y_arr).all():
        raise DataError("Target contains missing or non-finite values")

    return X_arr, y_arr


def check_fold_sizes(folds: list[Fold], family: ModelFamily, n_features: int) -> None:
    """Raise ConfigurationError if any fold cannot fit the family."""
    required = min_train_samples(family, n_features)
    smallest = min(len(f.train_idx) for f in folds)
    if smallest < required:
        raise ConfigurationError(
            f"Smallest fold has {smallest} train records; {family.value} needs {required}. "
            f"Reduce n_folds (currently {len(folds)}) or supply more records."
        )


def fit_model(
    X: pd.DataFrame,
    y: pd.Series | np.ndarray,
    family: ModelFamily | str,
    param_grid: dict[str, list[Any]] | None = None,
    n_folds: int = DEFAULT_N_FOLDS,
    seed: int = DEFAULT_SEED,
    max_workers: int = 1,
) -> TrainedModel:
    """Fit one model family on the train set.

    With a grid, the combination with the lowest mean validation RMSE across
    n_folds folds is selected and then refit on all of X.

    Args:
        X: Train features (one column per feature)
        y: Train target
        family: Model family tag
        param_grid: Optional hyperparameter grid
        n_folds: Cross-validation folds for the grid search
        seed: Seed for fold assignment and tree models
        max_workers: Worker processes for the grid search

    Returns:
        TrainedModel

    Raises:
        ConfigurationError: If there are no feature columns, the grid is empty,
            or a fold is too small for the family
        DataError: If X or y contain missing values
    """
    family = as_model_family(family)
    X_arr, y_arr = validate_training_data(X, y)
    feature_names = tuple(str(c) for c in X.columns)

    constant = [c for c, v in zip(feature_names, X_arr.var(axis=0)) if v < MIN_VARIANCE]
    if constant:
        logger.warning(f"Fitting {family.value} with zero-variance features: {constant}")

    required = min_train_samples(family, len(feature_names))
    if len(X_arr) < required:
        raise ConfigurationError(
            f"{family.value} needs at least {required} train records, got {len(X_arr)}"
        )

    grid_result = None
    params: dict[str, Any] = {}
    if param_grid is not None:
        folds = kfold_partitions(len(X_arr), n_folds, seed)
        check_fold_sizes(folds, family, len(feature_names))
        grid_result = run_grid_search(
            X_arr, y_arr, family, param_grid, n_folds, seed, max_workers=max_workers, folds=folds
        )
        params = grid_result.best_params

    estimator = create_estimator(family, params, seed)
    estimator.fit(X_arr, y_arr)
    logger.info(
        f"Fitted {family.value} on {len(X_arr)} records x {len(feature_names)} features"
        + (f" with {params}" if params else "")
    )

    return TrainedModel(
        family=family,
        estimator=estimator,
        params=dict(params),
        feature_names=feature_names,
        grid_search=grid_result,
    )
