"""Tests for the predictor variants and variable importance."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core.config.constants import PredictorKind
from src.volatility_core.config.run_config import RunConfig
from src.volatility_core.errors import ConfigurationError, DataError
from src.volatility_core.ml.explainability import (
    compute_model_feature_importance,
    compute_permutation_importance,
    compute_predictor_feature_importance,
)
from src.volatility_core.ml.predictors import (
    EnsemblePredictor,
    SingleModelPredictor,
    StackedPredictor,
    fit_predictor,
    fit_stacking_regressor,
    out_of_fold_predictions,
)
from src.volatility_core.ml.trainer import fit_model

pytestmark = pytest.mark.unit

FEATURES = ["f1", "f2", "f3"]
COMPOSITE_CONFIG = RunConfig(
    base_models=["linear", "gradient_boosting"],
    n_folds=4,
    seed=3,
    param_grids={"gradient_boosting": {"n_estimators": [30], "max_depth": [2]}},
)


@pytest.fixture
def train_test(linear_dataset):
    train = linear_dataset.iloc[:90]
    test = linear_dataset.iloc[90:]
    return train[FEATURES], train["vol_1y"], test[FEATURES], test["vol_1y"]


@pytest.mark.parametrize("kind", ["linear", "random_forest", "gradient_boosting"])
def test_single_model_variants(train_test, kind):
    X, y, X_test, _ = train_test
    predictor = fit_predictor(kind, X, y, {"seed": 1})

    assert isinstance(predictor, SingleModelPredictor)
    assert predictor.kind is PredictorKind(kind)
    assert predictor.variant == "single"
    assert predictor.feature_names == tuple(FEATURES)
    assert predictor.predict(X_test).shape == (len(X_test),)


def test_ensemble_prediction_is_mean_of_base_models(train_test):
    X, y, X_test, _ = train_test
    predictor = fit_predictor("ensemble", X, y, COMPOSITE_CONFIG)

    assert isinstance(predictor, EnsemblePredictor)
    assert predictor.variant == "ensemble"
    linear, boosted = predictor.members
    expected = (linear.predict(X_test) + boosted.predict(X_test)) / 2.0
    np.testing.assert_allclose(predictor.predict(X_test), expected, rtol=0, atol=1e-12)


def test_stacked_second_stage_fit_on_out_of_fold_predictions(train_test):
    X, y, X_test, _ = train_test
    predictor = fit_predictor("stacked", X, y, COMPOSITE_CONFIG)

    assert isinstance(predictor, StackedPredictor)
    assert predictor.variant == "stacked"
    assert list(predictor.coefficients) == ["linear", "gradient_boosting"]

    oof = out_of_fold_predictions(
        X.to_numpy(dtype="float64"),
        y.to_numpy(dtype="float64"),
        predictor.members,
        COMPOSITE_CONFIG.n_folds,
        COMPOSITE_CONFIG.seed,
    )
    assert np.isfinite(oof).all()
    meta = fit_stacking_regressor(oof, y.to_numpy())
    np.testing.assert_allclose(list(predictor.coefficients.values()), meta.coef_)
    assert predictor.intercept == pytest.approx(meta.intercept_)

    # The target is linear, so the linear member should carry most of the weight
    assert predictor.coefficients["linear"] > predictor.coefficients["gradient_boosting"]

    member_preds = predictor.member_predictions(X_test).to_numpy()
    np.testing.assert_allclose(predictor.predict(X_test), meta.predict(member_preds))


def test_stacked_members_are_refit_on_full_train_set(train_test):
    X, y, _, _ = train_test
    predictor = fit_predictor("stacked", X, y, COMPOSITE_CONFIG)
    direct = fit_model(X, y, "linear")
    np.testing.assert_allclose(predictor.members[0].estimator.coef_, direct.estimator.coef_)


def test_composite_needs_two_distinct_base_models(train_test):
    X, y, _, _ = train_test
    with pytest.raises(ConfigurationError, match="at least two distinct base models"):
        fit_predictor("ensemble", X, y, {"base_models": ["linear", "linear"]})

    single = fit_model(X, y, "linear")
    with pytest.raises(ConfigurationError):
        EnsemblePredictor([single])


def test_unknown_predictor_kind(train_test):
    X, y, _, _ = train_test
    with pytest.raises(ConfigurationError, match="Unsupported predictor kind"):
        fit_predictor("svm", X, y)


def test_fit_stacking_regressor_validates_inputs():
    with pytest.raises(DataError):
        fit_stacking_regressor(np.ones((3, 2)), np.ones(4))
    with pytest.raises(DataError):
        fit_stacking_regressor(np.array([[1.0, np.nan], [2.0, 3.0]]), np.ones(2))


def test_describe(train_test):
    X, y, _, _ = train_test
    info = fit_predictor("stacked", X, y, COMPOSITE_CONFIG).describe()
    assert info["kind"] == "stacked"
    assert info["members"]["gradient_boosting"] == {"n_estimators": 30, "max_depth": 2}
    assert set(info["coefficients"]) == {"linear", "gradient_boosting"}


def test_model_feature_importance_linear_directions(train_test):
    X, y, _, _ = train_test
    model = fit_model(X, y, "linear")
    df = compute_model_feature_importance(model.estimator, model.feature_names)

    assert list(df.columns) == ["feature", "importance", "raw_value", "direction"]
    assert df["feature"].tolist()[:2] == ["f1", "f2"]
    directions = dict(zip(df["feature"], df["direction"]))
    assert directions["f1"] == 1
    assert directions["f2"] == -1


def test_model_feature_importance_errors():
    with pytest.raises(ValueError, match="coef_ or feature_importances_"):
        compute_model_feature_importance(object(), ["a"])

    class _Fake:
        coef_ = np.array([1.0, 2.0])

    with pytest.raises(ValueError, match="does not match"):
        compute_model_feature_importance(_Fake(), ["a"])


@pytest.mark.parametrize("kind", ["ensemble", "stacked"])
def test_composite_feature_importance_is_normalised(train_test, kind):
    X, y, _, _ = train_test
    predictor = fit_predictor(kind, X, y, COMPOSITE_CONFIG)
    df = compute_predictor_feature_importance(predictor)

    assert set(df["feature"]) == set(FEATURES)
    assert df["importance"].sum() == pytest.approx(1.0)
    assert df["feature"].iloc[0] == "f1"


def test_permutation_importance_ranks_driving_feature_first(train_test):
    X, y, X_test, y_test = train_test
    predictor = fit_predictor("linear", X, y)

    df = compute_permutation_importance(predictor, X_test, y_test, n_repeats=5, seed=0)

    assert list(df.columns) == ["feature", "importance_mean", "importance_std", "importance_median"]
    assert df["feature"].iloc[0] == "f1"
    assert df["importance_mean"].iloc[0] > 0


def test_permutation_importance_stacked(train_test):
    X, y, X_test, y_test = train_test
    predictor = fit_predictor("stacked", X, y, COMPOSITE_CONFIG)
    df = compute_permutation_importance(predictor, X_test, y_test, n_repeats=3, seed=0)
    assert set(df["feature"]) == set(FEATURES)


def test_permutation_importance_validates_inputs(train_test):
    X, y, X_test, y_test = train_test
    predictor = fit_predictor("linear", X, y)
    with pytest.raises(DataError, match="Length mismatch"):
        compute_permutation_importance(predictor, X_test, y_test.iloc[:-1])
    with pytest.raises(DataError, match="empty"):
        compute_permutation_importance(predictor, X_test.iloc[:0], y_test.iloc[:0])
