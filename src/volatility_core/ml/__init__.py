"""Model training, predictors and explainability."""

from src.volatility_core.ml.grid_search import GridSearchResult, expand_param_grid, run_grid_search
from src.volatility_core.ml.models import create_estimator, min_train_samples
from src.volatility_core.ml.predictors import (
    EnsemblePredictor,
    FittedPredictor,
    SingleModelPredictor,
    StackedPredictor,
    fit_predictor,
    fit_stacking_regressor,
)
from src.volatility_core.ml.splitting import DatasetSplit, Fold, kfold_partitions, split_dataset
from src.volatility_core.ml.trainer import TrainedModel, fit_model

__all__ = [
    "DatasetSplit",
    "EnsemblePredictor",
    "FittedPredictor",
    "Fold",
    "GridSearchResult",
    "SingleModelPredictor",
    "StackedPredictor",
    "TrainedModel",
    "create_estimator",
    "expand_param_grid",
    "fit_model",
    "fit_predictor",
    "fit_stacking_regressor",
    "kfold_partitions",
    "min_train_samples",
    "run_grid_search",
    "split_dataset",
]
