"""Cross-validated hyperparameter grid search.

Each combination of the grid is fitted on every fold's training portion and
scored on that fold's validation portion by RMSE. The combination with the
lowest mean validation RMSE wins; ties go to the combination enumerated first.

With max_workers > 1 the sweep runs in a ProcessPoolExecutor scoped to this
call: workers receive read-only copies of the train arrays and fold indices,
return one list of fold scores per combination, and the caller reduces the
results in enumeration order.
"""

from __future__ import annotations

import itertools
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import pandas as pd

from src.volatility_core.config.constants import ModelFamily
from src.volatility_core.errors import ConfigurationError
from src.volatility_core.ml.models import as_model_family, create_estimator
from src.volatility_core.ml.splitting import Fold, kfold_partitions
from src.volatility_core.qa.metrics import root_mean_squared_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridSearchResult:
    """Outcome of a grid search.

    Attributes:
        best_params: Selected hyperparameter combination
        best_score: Mean validation RMSE of the selected combination
        cv_results: One row per combination (grid order): combination_index,
            params, mean_rmse, std_rmse, fold_rmse
    """

    best_params: dict[str, Any]
    best_score: float
    cv_results: pd.DataFrame


def expand_param_grid(grid: dict[str, Sequence[Any]] | None) -> list[dict[str, Any]]:
    """Expand a grid to its combinations in enumeration order.

    Keys vary in insertion order, the last key fastest (itertools.product).

    Args:
        grid: Mapping hyperparameter name -> candidate values

    Returns:
        List of parameter dicts

    Raises:
        ConfigurationError: If the grid or any value list is empty
    """
    if not grid:
        raise ConfigurationError("Hyperparameter grid must not be empty")

    empty = [k for k, values in grid.items() if len(list(values)) == 0]
    if empty:
        raise ConfigurationError(f"Hyperparameter grid has empty value lists: {empty}")

    keys = list(grid.keys())
    return [
        dict(zip(keys, combo))
        for combo in itertools.product(*(list(grid[k]) for k in keys))
    ]


def score_combination(
    family: ModelFamily,
    params: dict[str, Any],
    X: np.ndarray,
    y: np.ndarray,
    folds: Sequence[Fold],
    seed: int,
) -> list[float]:
    """Fit one combination on every fold and return the validation RMSEs.

    Module-level so that it can be pickled into worker processes.
    """
    scores = []
    for fold in folds:
        estimator = create_estimator(family, params, seed)
        estimator.fit(X[fold.train_idx], y[fold.train_idx])
        y_pred = estimator.predict(X[fold.valid_idx])
        scores.append(root_mean_squared_error(y[fold.valid_idx], y_pred))
    return scores


def _score_serial(family, combinations, X, y, folds, seed) -> list[list[float]]:
    return [score_combination(family, params, X, y, folds, seed) for params in combinations]


def _score_parallel(family, combinations, X, y, folds, seed, max_workers) -> list[list[float]]:
    results: list[list[float] | None] = [None] * len(combinations)

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(score_combination, family, params, X, y, list(folds), seed): idx
            for idx, params in enumerate(combinations)
        }
        for future in as_completed(future_to_index):
            # Stored by position so the reduction below sees grid order
            results[future_to_index[future]] = future.result()

    return [r for r in results if r is not None]


def run_grid_search(
    X: np.ndarray,
    y: np.ndarray,
    family: ModelFamily | str,
    grid: dict[str, Sequence[Any]],
    n_folds: int,
    seed: int,
    max_workers: int = 1,
    folds: Sequence[Fold] | None = None,
) -> GridSearchResult:
    """Select the hyperparameters with the lowest mean validation RMSE.

    Args:
        X: Feature matrix of the train set
        y: Target vector of the train set
        family: Model family
        grid: Hyperparameter grid
        n_folds: Number of cross-validation folds
        seed: Seed for fold assignment and tree families
        max_workers: Worker processes (1 = serial)
        folds: Precomputed folds over the rows of X (overrides n_folds)

    Returns:
        GridSearchResult

    Raises:
        ConfigurationError: If the grid is empty or n_folds exceeds the record count
    """
    family = as_model_family(family)
    combinations = expand_param_grid(grid)

    X = np.asarray(X, dtype="float64")
    y = np.asarray(y, dtype="float64")
    if folds is None:
        folds = kfold_partitions(len(X), n_folds, seed)
    if not folds:
        raise ConfigurationError("Grid search requires at least one fold")
    n_workers = min(max_workers, len(combinations))

    logger.info(
        f"Grid search {family.value}: {len(combinations)} combinations x {len(folds)} folds "
        f"({'serial' if n_workers <= 1 else f'{n_workers} workers'})"
    )

    if n_workers <= 1:
        fold_scores = _score_serial(family, combinations, X, y, folds, seed)
    else:
        fold_scores = _score_parallel(family, combinations, X, y, folds, seed, n_workers)

    best_idx = 0
    best_score = float("inf")
    rows = []
    for idx, (params, scores) in enumerate(zip(combinations, fold_scores)):
        mean_rmse = float(np.mean(scores))
        rows.append(
            {
                "combination_index": idx,
                "params": params,
                "mean_rmse": mean_rmse,
                "std_rmse": float(np.std(scores)),
                "fold_rmse": scores,
            }
        )
        if mean_rmse < best_score:
            best_idx, best_score = idx, mean_rmse

    best_params = combinations[best_idx]
    logger.info(f"Grid search {family.value}: best params {best_params} (RMSE={best_score:.6f})")

    return GridSearchResult(
        best_params=dict(best_params),
        best_score=best_score,
        cv_results=pd.DataFrame(rows),
    )
