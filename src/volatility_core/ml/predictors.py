"""Polymorphic "fit predictor" capability.

One entry point, ``fit_predictor``, covers every predictor variant:

- linear / random_forest / gradient_boosting: a single ``TrainedModel``
- ensemble: unweighted arithmetic mean of two or more base models
- stacked: second-stage linear regression of the target on base-model
  predictions

The stacked variant fits its second stage on out-of-fold predictions over the
train set only. Each base model is then refit on the whole train set for
inference, so test records never reach the second-stage fit.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

import numpy as np
import pandas as pd
from sklearn.linear_model import LinearRegression

from src.volatility_core.config.constants import ModelFamily, PredictorKind
from src.volatility_core.config.run_config import RunConfig, ensure_run_config
from src.volatility_core.errors import ConfigurationError, DataError
from src.volatility_core.ml.models import create_estimator
from src.volatility_core.ml.splitting import kfold_partitions
from src.volatility_core.ml.trainer import (
    TrainedModel,
    check_fold_sizes,
    fit_model,
    validate_training_data,
)

logger = logging.getLogger(__name__)


class FittedPredictor(ABC):
    """A fitted predictor: feature vectors -> predicted volatility."""

    kind: PredictorKind

    @property
    @abstractmethod
    def feature_names(self) -> tuple[str, ...]:
        ...

    @abstractmethod
    def predict(self, X: pd.DataFrame) -> np.ndarray:
        ...

    @property
    def variant(self) -> str:
        """Trained-state label: single, ensemble or stacked."""
        return self.kind.value if self.kind.is_composite else "single"

    def describe(self) -> dict[str, Any]:
        return {"kind": self.kind.value, "variant": self.variant, "features": list(self.feature_names)}


class SingleModelPredictor(FittedPredictor):
    def __init__(self, model: TrainedModel):
        self.model = model
        self.kind = PredictorKind(model.family.value)

    @property
    def feature_names(self) -> tuple[str, ...]:
        return self.model.feature_names

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.model.predict(X)

    def describe(self) -> dict[str, Any]:
        info = super().describe()
        info["params"] = self.model.params
        return info


class _CompositePredictor(FittedPredictor):
    def __init__(self, members: Sequence[TrainedModel]):
        if len(members) < 2:
            raise ConfigurationError(
                f"{type(self).__name__} requires at least two base models, got {len(members)}"
            )
        self.members = tuple(members)

    @property
    def feature_names(self) -> tuple[str, ...]:
        return self.members[0].feature_names

    def member_predictions(self, X: pd.DataFrame) -> pd.DataFrame:
        """Predictions of each base model, one column per family."""
        return pd.DataFrame(
            {m.family.value: m.predict(X) for m in self.members},
            index=X.index if isinstance(X, pd.DataFrame) else None,
        )

    def describe(self) -> dict[str, Any]:
        info = super().describe()
        info["members"] = {m.family.value: m.params for m in self.members}
        return info


class EnsemblePredictor(_CompositePredictor):
    """Unweighted arithmetic mean of the base models' predictions."""

    kind = PredictorKind.ENSEMBLE

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.member_predictions(X).to_numpy().mean(axis=1)


class StackedPredictor(_CompositePredictor):
    """Second-stage linear regression on the base models' predictions.

    Attributes:
        members: Base models refit on the full train set
        meta_model: Second-stage LinearRegression, fit on out-of-fold train predictions
    """

    kind = PredictorKind.STACKED

    def __init__(self, members: Sequence[TrainedModel], meta_model: LinearRegression):
        super().__init__(members)
        self.meta_model = meta_model

    @property
    def coefficients(self) -> dict[str, float]:
        return {
            m.family.value: float(c) for m, c in zip(self.members, self.meta_model.coef_)
        }

    @property
    def intercept(self) -> float:
        return float(self.meta_model.intercept_)

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        return self.meta_model.predict(self.member_predictions(X).to_numpy())

    def describe(self) -> dict[str, Any]:
        info = super().describe()
        info["coefficients"] = self.coefficients
        info["intercept"] = self.intercept
        return info


def fit_stacking_regressor(base_matrix: np.ndarray, y: np.ndarray) -> LinearRegression:
    """Fit the second-stage regression of y on base-model predictions.

    Args:
        base_matrix: (n_records, n_models) base predictions
        y: Target values for the same records

    Returns:
        Fitted LinearRegression

    Raises:
        DataError: If shapes disagree or inputs contain missing values
    """
    base_matrix = np.asarray(base_matrix, dtype="float64")
    y = np.asarray(y, dtype="float64")
    if base_matrix.ndim != 2 or len(base_matrix) != len(y):
        raise DataError(
            f"Stacking inputs disagree: base predictions {base_matrix.shape}, target {y.shape}"
        )
    if not (np.isfinite(base_matrix).all() and np.isfinite(y).all()):
        raise DataError("Stacking inputs contain missing or non-finite values")

    return LinearRegression().fit(base_matrix, y)


def out_of_fold_predictions(
    X: np.ndarray,
    y: np.ndarray,
    members: Sequence[TrainedModel],
    n_folds: int,
    seed: int,
) -> np.ndarray:
    """Out-of-fold predictions of each member over the train set.

    Each member is refit with its selected hyperparameters on every fold's
    training portion and predicts that fold's validation portion.

    Returns:
        (n_records, n_members) matrix
    """
    folds = kfold_partitions(len(X), n_folds, seed)
    oof = np.full((len(X), len(members)), np.nan)

    for j, member in enumerate(members):
        check_fold_sizes(folds, member.family, X.shape[1])
        for fold in folds:
            estimator = create_estimator(member.family, member.params, seed)
            estimator.fit(X[fold.train_idx], y[fold.train_idx])
            oof[fold.valid_idx, j] = estimator.predict(X[fold.valid_idx])

    return oof


def _resolve_base_models(config: RunConfig) -> list[ModelFamily]:
    # Keep first occurrence order
    return list(dict.fromkeys(config.base_models))


def fit_predictor(
    kind: PredictorKind | str,
    X: pd.DataFrame,
    y: pd.Series | np.ndarray,
    config: RunConfig | dict | None = None,
) -> FittedPredictor:
    """Fit a predictor of the requested kind on the train set.

    Args:
        kind: Predictor variant
        X: Train features
        y: Train target
        config: Run configuration (seed, folds, grids, base models, workers)

    Returns:
        FittedPredictor

    Raises:
        ConfigurationError: For unknown kinds, fewer than two base models for
            composite kinds, empty grids, or folds too small for a family
        DataError: If X or y contain missing values
    """
    config = ensure_run_config(config)
    try:
        kind = PredictorKind(kind)
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported predictor kind: {kind}. Must be one of: {[k.value for k in PredictorKind]}"
        ) from e

    def _fit(family: ModelFamily) -> TrainedModel:
        return fit_model(
            X,
            y,
            family,
            param_grid=config.grid_for(family),
            n_folds=config.n_folds,
            seed=config.seed,
            max_workers=config.max_workers,
        )

    if not kind.is_composite:
        return SingleModelPredictor(_fit(ModelFamily(kind.value)))

    families = _resolve_base_models(config)
    if len(families) < 2:
        raise ConfigurationError(
            f"{kind.value} predictor requires at least two distinct base models, got {families}"
        )
    members = [_fit(family) for family in families]

    if kind is PredictorKind.ENSEMBLE:
        logger.info(f"Ensemble of {[f.value for f in families]}")
        return EnsemblePredictor(members)

    X_arr, y_arr = validate_training_data(X, y)
    oof = out_of_fold_predictions(X_arr, y_arr, members, config.n_folds, config.seed)
    meta_model = fit_stacking_regressor(oof, y_arr)
    predictor = StackedPredictor(members, meta_model)
    logger.info(
        f"Stacked {[f.value for f in families]}: coefficients={predictor.coefficients}, "
        f"intercept={predictor.intercept:.6f}"
    )
    return predictor
