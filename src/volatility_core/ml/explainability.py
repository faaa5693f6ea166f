"""Variable importance for fitted predictors.

Two views are provided:

- Model importance: absolute linear coefficients or tree
  ``feature_importances_``. For ensemble and stacked predictors, each
  member's importances are normalised to sum to one and averaged (weighted by
  the absolute stacking coefficients for stacked predictors).
- Permutation importance: increase in test RMSE when one feature is shuffled,
  via ``sklearn.inspection.permutation_importance``. Works for every
  predictor variant.
"""
from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, RegressorMixin
from sklearn.inspection import permutation_importance

from src.volatility_core.errors import DataError
from src.volatility_core.ml.predictors import (
    EnsemblePredictor,
    FittedPredictor,
    SingleModelPredictor,
    StackedPredictor,
)
from src.volatility_core.qa.metrics import root_mean_squared_error

logger = logging.getLogger(__name__)


def compute_model_feature_importance(
    model: Any,
    feature_names: list[str] | tuple[str, ...],
) -> pd.DataFrame:
    """
    Compute feature importance from a fitted sklearn estimator.

    Supports:
    - LinearRegression: absolute coefficients (direction = sign of coefficient)
    - RandomForestRegressor / GradientBoostingRegressor: feature_importances_

    Args:
        model: Fitted estimator with coef_ or feature_importances_
        feature_names: Feature names in training order

    Returns:
        DataFrame with columns feature, importance, raw_value, direction,
        sorted by importance descending

    Raises:
        ValueError: If the model exposes neither attribute or dimensions disagree
    """
    if hasattr(model, "coef_"):
        raw_values = np.asarray(model.coef_, dtype="float64").ravel()
        importance_scores = np.abs(raw_values)
        directions = np.sign(raw_values).astype(int).astype(object)
    elif hasattr(model, "feature_importances_"):
        raw_values = np.asarray(model.feature_importances_, dtype="float64")
        importance_scores = raw_values.copy()
        directions = np.full(len(raw_values), None, dtype=object)  # Trees have no direction
    else:
        raise ValueError(
            f"Model {type(model).__name__} does not have coef_ or feature_importances_ attribute."
        )

    if len(feature_names) != len(importance_scores):
        raise ValueError(
            f"len(feature_names)={len(feature_names)} does not match model dimensions="
            f"{len(importance_scores)}. Ensure feature_names matches the training order."
        )

    df = pd.DataFrame({
        "feature": list(feature_names),
        "importance": importance_scores,
        "raw_value": raw_values,
        "direction": directions,
    })
    return df.sort_values("importance", ascending=False, kind="mergesort").reset_index(drop=True)


def _normalised(importance: pd.DataFrame) -> pd.Series:
    s = importance.set_index("feature")["importance"]
    total = s.sum()
    return s / total if total > 0 else s * 0.0


def compute_predictor_feature_importance(predictor: FittedPredictor) -> pd.DataFrame:
    """Model importance for any predictor variant.

    Returns:
        DataFrame with columns feature, importance (sorted descending). For a
        single model the raw importances are returned unchanged together with
        raw_value and direction.
    """
    if isinstance(predictor, SingleModelPredictor):
        return compute_model_feature_importance(
            predictor.model.estimator, predictor.feature_names
        )

    if isinstance(predictor, StackedPredictor):
        weights = np.abs(np.asarray(predictor.meta_model.coef_, dtype="float64"))
        if weights.sum() == 0:
            weights = np.ones(len(predictor.members))
    elif isinstance(predictor, EnsemblePredictor):
        weights = np.ones(len(predictor.members))
    else:
        raise TypeError(f"Unsupported predictor type: {type(predictor).__name__}")

    weights = weights / weights.sum()
    combined = pd.Series(0.0, index=list(predictor.feature_names))
    for member, w in zip(predictor.members, weights):
        member_imp = compute_model_feature_importance(member.estimator, member.feature_names)
        combined = combined.add(_normalised(member_imp) * w, fill_value=0.0)

    df = combined.rename("importance").rename_axis("feature").reset_index()
    return df.sort_values("importance", ascending=False, kind="mergesort").reset_index(drop=True)


class _PredictorRegressor(RegressorMixin, BaseEstimator):
    """Exposes a fitted predictor through the sklearn estimator interface.

    fit is a no-op; the wrapped predictor is already fitted.
    """

    def __init__(self, predictor: FittedPredictor | None = None):
        self.predictor = predictor

    def fit(self, X, y=None):
        self.is_fitted_ = True
        return self

    def predict(self, X):
        if not isinstance(X, pd.DataFrame):
            X = pd.DataFrame(X, columns=list(self.predictor.feature_names))
        return self.predictor.predict(X)


def _neg_rmse(estimator, X, y) -> float:
    return -root_mean_squared_error(y, estimator.predict(X))


def compute_permutation_importance(
    predictor: FittedPredictor,
    X: pd.DataFrame,
    y: pd.Series | np.ndarray,
    n_repeats: int = 5,
    seed: int | None = None,
) -> pd.DataFrame:
    """
    Permutation importance of a fitted predictor on held-out records.

    Importance is the mean increase in RMSE when a feature's values are
    shuffled across records.

    Args:
        predictor: Fitted predictor (any variant)
        X: Feature DataFrame (columns must include the predictor's features)
        y: Target values for the rows of X
        n_repeats: Shuffles per feature
        seed: Seed for the shuffles

    Returns:
        DataFrame with columns feature, importance_mean, importance_std,
        importance_median, sorted by importance_mean descending

    Raises:
        DataError: If X is empty or lengths differ
    """
    if X.empty or len(X.columns) == 0:
        raise DataError("X DataFrame is empty or has no columns")
    if len(y) != len(X):
        raise DataError(f"Length mismatch: X has {len(X)} rows, y has {len(y)} rows")

    features = list(predictor.feature_names)
    X_feat = X[features]
    estimator = _PredictorRegressor(predictor).fit(X_feat, y)

    result = permutation_importance(
        estimator,
        X_feat,
        np.asarray(y, dtype="float64"),
        scoring=_neg_rmse,
        n_repeats=n_repeats,
        random_state=seed,
        n_jobs=1,
    )

    df = pd.DataFrame({
        "feature": features,
        "importance_mean": result.importances_mean,
        "importance_std": result.importances_std,
        "importance_median": np.median(result.importances, axis=1),
    })
    logger.debug(f"Permutation importance over {len(X_feat)} records, {n_repeats} repeats")
    return df.sort_values("importance_mean", ascending=False, kind="mergesort").reset_index(drop=True)
