"""Evaluator: held-out predictions, metrics and prediction-set combination.

A ``PredictionSet`` pairs records, identified by (date, symbol), with one
predictor's output. Sets from different predictors are combined by inner join
on that identity, either by unweighted mean (ensemble) or by a second-stage
linear regression (stacking). The stacking regression is fit on train-set
predictions only and then applied to the test-set predictions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd

from src.volatility_core.data.schema import DATE_COL, KEY_COLS, SYMBOL_COL, TARGET_COL
from src.volatility_core.errors import ConfigurationError, DataError
from src.volatility_core.ml.predictors import FittedPredictor, fit_stacking_regressor
from src.volatility_core.qa.metrics import RegressionMetrics, compute_regression_metrics
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)

_KEYS = list(KEY_COLS)
PREDICTION_COLS = [*_KEYS, "y_true", "y_pred"]


@dataclass
class PredictionSet:
    """Records paired with one predictor's scalar predictions.

    Attributes:
        frame: DataFrame with columns date, symbol, y_true, y_pred
        name: Label of the producing predictor
    """

    frame: pd.DataFrame
    name: str = "prediction"

    def __post_init__(self) -> None:
        ensure_cols(self.frame, PREDICTION_COLS)
        self.frame = self.frame[PREDICTION_COLS].reset_index(drop=True)
        dupes = self.frame.duplicated(subset=_KEYS)
        if dupes.any():
            sample = self.frame.loc[dupes, _KEYS].head(5).to_dict("records")
            raise DataError(
                f"PredictionSet '{self.name}' has {int(dupes.sum())} duplicate (date, symbol) "
                f"records, e.g. {sample}"
            )

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def y_true(self) -> np.ndarray:
        return self.frame["y_true"].to_numpy(dtype="float64")

    @property
    def y_pred(self) -> np.ndarray:
        return self.frame["y_pred"].to_numpy(dtype="float64")

    @property
    def residuals(self) -> np.ndarray:
        return self.y_true - self.y_pred

    def metrics(self) -> RegressionMetrics:
        return compute_regression_metrics(self.y_true, self.y_pred)


@dataclass
class StackingResult:
    """Stacked test predictions plus the fitted second-stage weights.

    Attributes:
        predictions: Stacked PredictionSet over the test records
        coefficients: Second-stage coefficient per input set name
        intercept: Second-stage intercept
    """

    predictions: PredictionSet
    coefficients: dict[str, float] = field(default_factory=dict)
    intercept: float = 0.0


def predict_records(
    predictor: FittedPredictor,
    records: pd.DataFrame,
    target_col: str = TARGET_COL,
    name: str | None = None,
) -> PredictionSet:
    """Predict every record and pair the result with its target value.

    Raises:
        DataError: If key, target or feature columns are missing or incomplete
    """
    features = list(predictor.feature_names)
    ensure_cols(records, _KEYS + [target_col] + features)

    incomplete = records[features + [target_col]].isna().any(axis=1)
    if incomplete.any():
        raise DataError(
            f"{int(incomplete.sum())} records have missing feature or target values; "
            "drop them before predicting"
        )

    frame = pd.DataFrame(
        {
            DATE_COL: records[DATE_COL].to_numpy(),
            SYMBOL_COL: records[SYMBOL_COL].to_numpy(),
            "y_true": records[target_col].to_numpy(dtype="float64"),
            "y_pred": predictor.predict(records[features]),
        }
    )
    return PredictionSet(frame, name=name or predictor.kind.value)


def evaluate_predictor(
    predictor: FittedPredictor,
    test: pd.DataFrame,
    target_col: str = TARGET_COL,
) -> tuple[PredictionSet, RegressionMetrics]:
    """Predict the test set and compute RMSE, R² and MAE."""
    predictions = predict_records(predictor, test, target_col)
    metrics = predictions.metrics()
    logger.info(
        f"Evaluated {predictions.name} on {metrics.n_samples} records: "
        f"RMSE={metrics.rmse:.6f}, R2={metrics.r2:.4f}, MAE={metrics.mae:.6f}"
    )
    return predictions, metrics


def _align_prediction_sets(sets: Sequence[PredictionSet]) -> pd.DataFrame:
    """Inner-join prediction sets on (date, symbol).

    Returns:
        DataFrame with key columns, y_true and one prediction column per set
        (pred_0, pred_1, ...), ordered like the first set

    Raises:
        DataError: If y_true disagrees between sets for a shared record
    """
    aligned = sets[0].frame.rename(columns={"y_pred": "pred_0"})
    for i, s in enumerate(sets[1:], start=1):
        other = s.frame.rename(columns={"y_true": f"y_true_{i}", "y_pred": f"pred_{i}"})
        aligned = aligned.merge(other, on=_KEYS, how="inner", sort=False)
        mismatch = ~np.isclose(aligned["y_true"], aligned[f"y_true_{i}"], rtol=1e-9, atol=0.0)
        if mismatch.any():
            raise DataError(
                f"Prediction sets '{sets[0].name}' and '{s.name}' disagree on y_true for "
                f"{int(mismatch.sum())} shared records"
            )
        aligned = aligned.drop(columns=[f"y_true_{i}"])

    dropped = max(len(s) for s in sets) - len(aligned)
    if dropped > 0:
        logger.warning(f"Inner join of {len(sets)} prediction sets dropped {dropped} unmatched records")
    return aligned


def _require_two(sets: Sequence[PredictionSet], what: str) -> None:
    if len(sets) < 2:
        raise ConfigurationError(f"{what} requires at least two prediction sets, got {len(sets)}")


def ensemble_prediction_sets(
    sets: Sequence[PredictionSet],
    name: str = "ensemble",
) -> PredictionSet:
    """Combine prediction sets by unweighted arithmetic mean per record.

    Raises:
        ConfigurationError: If fewer than two sets are given
        DataError: If y_true disagrees between sets
    """
    _require_two(sets, "Ensembling")
    aligned = _align_prediction_sets(sets)
    pred_cols = [f"pred_{i}" for i in range(len(sets))]

    frame = aligned[_KEYS + ["y_true"]].copy()
    frame["y_pred"] = aligned[pred_cols].to_numpy(dtype="float64").mean(axis=1)
    return PredictionSet(frame, name=name)


def stack_prediction_sets(
    train_sets: Sequence[PredictionSet],
    test_sets: Sequence[PredictionSet],
    name: str = "stacked",
) -> StackingResult:
    """Stack prediction sets with a second-stage linear regression.

    The regression of y_true on the base predictions is fit on the train sets
    only and applied to the test sets. train_sets[i] and test_sets[i] must
    come from the same base model.

    Args:
        train_sets: Base-model predictions over train records (ideally out-of-fold)
        test_sets: Base-model predictions over test records
        name: Label of the stacked PredictionSet

    Returns:
        StackingResult

    Raises:
        ConfigurationError: If fewer than two sets or unequal counts are given
        DataError: If y_true disagrees between sets or train and test share records
    """
    _require_two(train_sets, "Stacking")
    if len(train_sets) != len(test_sets):
        raise ConfigurationError(
            f"Stacking needs one train and one test set per base model, got "
            f"{len(train_sets)} train and {len(test_sets)} test sets"
        )

    train = _align_prediction_sets(train_sets)
    test = _align_prediction_sets(test_sets)

    overlap = train[_KEYS].merge(test[_KEYS], on=_KEYS, how="inner")
    if not overlap.empty:
        raise DataError(
            f"Stacking train and test predictions share {len(overlap)} records"
        )

    pred_cols = [f"pred_{i}" for i in range(len(train_sets))]
    meta = fit_stacking_regressor(train[pred_cols].to_numpy(), train["y_true"].to_numpy())

    frame = test[_KEYS + ["y_true"]].copy()
    frame["y_pred"] = meta.predict(test[pred_cols].to_numpy(dtype="float64"))

    coefficients = {s.name: float(c) for s, c in zip(train_sets, meta.coef_)}
    logger.info(f"Stacked {len(train_sets)} prediction sets: coefficients={coefficients}")
    return StackingResult(
        predictions=PredictionSet(frame, name=name),
        coefficients=coefficients,
        intercept=float(meta.intercept_),
    )
