"""Tests for regression metrics and prediction-set combination."""

from __future__ import annotations

import math
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core.errors import ConfigurationError, DataError
from src.volatility_core.ml.predictors import fit_predictor
from src.volatility_core.qa.evaluation import (
    PredictionSet,
    ensemble_prediction_sets,
    evaluate_predictor,
    predict_records,
    stack_prediction_sets,
)
from src.volatility_core.qa.metrics import compute_regression_metrics, r2_score_strict

pytestmark = pytest.mark.unit


def _prediction_set(symbols, y_true, y_pred, name="p", date="2023-12-29") -> PredictionSet:
    return PredictionSet(
        pd.DataFrame(
            {
                "date": pd.Timestamp(date),
                "symbol": list(symbols),
                "y_true": np.asarray(y_true, dtype=float),
                "y_pred": np.asarray(y_pred, dtype=float),
            }
        ),
        name=name,
    )


def test_regression_metrics_known_values():
    m = compute_regression_metrics([1.0, 2.0, 3.0, 4.0], [1.0, 2.0, 3.0, 6.0])

    assert m.rmse == pytest.approx(1.0)  # sqrt(4 / 4)
    assert m.mae == pytest.approx(0.5)
    assert m.r2 == pytest.approx(1.0 - 4.0 / 5.0)
    assert m.n_samples == 4
    assert set(m.to_dict()) == {"rmse", "r2", "mae", "n_samples"}


def test_r2_undefined_for_constant_target():
    assert math.isnan(r2_score_strict([2.0, 2.0, 2.0], [1.0, 2.0, 3.0]))
    m = compute_regression_metrics([2.0, 2.0], [2.0, 2.0])
    assert math.isnan(m.r2)
    assert m.rmse == 0.0


def test_metrics_input_validation():
    with pytest.raises(ValueError):
        compute_regression_metrics([1.0, 2.0], [1.0])
    with pytest.raises(ValueError):
        compute_regression_metrics([], [])


def test_prediction_set_rejects_duplicate_identity():
    with pytest.raises(DataError, match="duplicate"):
        _prediction_set(["A", "A"], [1.0, 2.0], [1.0, 2.0])


def test_prediction_set_requires_columns():
    with pytest.raises(DataError, match="Missing columns"):
        PredictionSet(pd.DataFrame({"symbol": ["A"], "y_pred": [1.0]}))


def test_ensemble_is_mean_per_record_after_inner_join():
    a = _prediction_set(["A", "B", "C"], [1.0, 2.0, 3.0], [1.2, 2.4, 2.0], name="a")
    b = _prediction_set(["C", "B", "D"], [3.0, 2.0, 9.0], [4.0, 1.6, 9.5], name="b")

    combined = ensemble_prediction_sets([a, b])

    assert combined.frame["symbol"].tolist() == ["B", "C"]
    np.testing.assert_allclose(combined.y_pred, [2.0, 3.0])
    np.testing.assert_allclose(combined.y_true, [2.0, 3.0])


def test_ensemble_three_sets():
    sets = [_prediction_set(["A"], [1.0], [v], name=str(v)) for v in (1.0, 2.0, 6.0)]
    assert ensemble_prediction_sets(sets).y_pred.tolist() == [3.0]


def test_ensemble_mismatched_truth_raises():
    a = _prediction_set(["A", "B"], [1.0, 2.0], [1.0, 2.0])
    b = _prediction_set(["A", "B"], [1.0, 2.5], [1.0, 2.0])
    with pytest.raises(DataError, match="disagree on y_true"):
        ensemble_prediction_sets([a, b])


def test_ensemble_requires_two_sets():
    a = _prediction_set(["A"], [1.0], [1.0])
    with pytest.raises(ConfigurationError, match="at least two"):
        ensemble_prediction_sets([a])


def test_identity_includes_date():
    a = _prediction_set(["A"], [1.0], [1.0], date="2023-01-31")
    b = _prediction_set(["A"], [1.0], [3.0], date="2023-02-28")
    combined = ensemble_prediction_sets([a, b])
    assert len(combined) == 0


def _stack_inputs(test_pred_offset: float = 0.0):
    rng = np.random.default_rng(8)
    y_train = rng.normal(0.3, 0.05, 40)
    y_test = rng.normal(0.3, 0.05, 10)
    train_symbols = [f"T{i}" for i in range(40)]
    test_symbols = [f"V{i}" for i in range(10)]

    train_sets = [
        _prediction_set(train_symbols, y_train, y_train + rng.normal(0, 0.01, 40), name="rf"),
        _prediction_set(train_symbols, y_train, 0.5 * y_train + 0.1, name="gb"),
    ]
    test_sets = [
        _prediction_set(test_symbols, y_test, y_test + test_pred_offset, name="rf"),
        _prediction_set(test_symbols, y_test, 0.5 * y_test + 0.1 - test_pred_offset, name="gb"),
    ]
    return train_sets, test_sets


def test_stacking_fits_on_train_sets_only():
    train_sets, test_sets = _stack_inputs()
    result = stack_prediction_sets(train_sets, test_sets)

    _, perturbed_test = _stack_inputs(test_pred_offset=5.0)
    perturbed = stack_prediction_sets(train_sets, perturbed_test)

    assert list(result.coefficients) == ["rf", "gb"]
    assert result.coefficients == pytest.approx(perturbed.coefficients)
    assert result.intercept == pytest.approx(perturbed.intercept)
    assert len(result.predictions) == 10
    assert result.predictions.name == "stacked"


def test_stacking_validation():
    train_sets, test_sets = _stack_inputs()
    with pytest.raises(ConfigurationError, match="at least two"):
        stack_prediction_sets(train_sets[:1], test_sets[:1])
    with pytest.raises(ConfigurationError, match="one train and one test set"):
        stack_prediction_sets(train_sets, test_sets + test_sets[:1])
    with pytest.raises(DataError, match="share"):
        stack_prediction_sets(train_sets, train_sets)


def test_predict_and_evaluate_records(linear_dataset):
    features = ["f1", "f2", "f3"]
    train, test = linear_dataset.iloc[:100], linear_dataset.iloc[100:]
    predictor = fit_predictor("linear", train[features], train["vol_1y"])

    predictions, metrics = evaluate_predictor(predictor, test)

    assert predictions.name == "linear"
    assert predictions.frame["symbol"].tolist() == test["symbol"].tolist()
    assert metrics.n_samples == 20
    assert metrics.r2 > 0.9
    assert metrics.rmse < 0.02
    np.testing.assert_allclose(predictions.residuals, predictions.y_true - predictions.y_pred)


def test_predict_records_rejects_incomplete_rows(linear_dataset):
    features = ["f1", "f2", "f3"]
    predictor = fit_predictor("linear", linear_dataset[features], linear_dataset["vol_1y"])
    test = linear_dataset.iloc[:5].copy()
    test.loc[test.index[0], "f2"] = np.nan

    with pytest.raises(DataError, match="missing feature or target values"):
        predict_records(predictor, test)
