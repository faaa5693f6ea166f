"""Pipeline orchestration for one volatility-prediction run.

Stages advance strictly forward:

    LOADED -> SCREENED -> SPLIT -> TRAINED (single | ensemble | stacked) -> EVALUATED

Each step may only be invoked from its predecessor stage; a fresh run starts
over with a new ``VolatilityPipeline``. Every stochastic step takes its seed
from the ``RunConfig`` passed in at construction.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pandas as pd

from src.volatility_core.config.run_config import RunConfig, ensure_run_config
from src.volatility_core.data.cleaning import (
    MissingValueReport,
    drop_incomplete_records,
    require_complete_records,
)
from src.volatility_core.errors import PipelineStateError
from src.volatility_core.ml.explainability import (
    compute_permutation_importance,
    compute_predictor_feature_importance,
)
from src.volatility_core.ml.predictors import FittedPredictor, fit_predictor
from src.volatility_core.ml.splitting import DatasetSplit, split_dataset
from src.volatility_core.qa.evaluation import PredictionSet, evaluate_predictor
from src.volatility_core.qa.metrics import RegressionMetrics
from src.volatility_core.screening.screener import ScreeningResult, screen_features
from src.volatility_core.utils.random_state import set_global_seed
from src.volatility_core.utils.timing import timed_step

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    LOADED = "loaded"
    SCREENED = "screened"
    SPLIT = "split"
    TRAINED = "trained"
    EVALUATED = "evaluated"


@dataclass
class PipelineResult:
    """Everything one run produced.

    Attributes:
        config: Run configuration
        features: Feature columns the predictor was trained on
        screening: Screening diagnostics
        split: Train/test partition of the modeling records
        predictor: Fitted predictor
        predictions: Test-set PredictionSet
        metrics: Test-set RMSE / R² / MAE
        feature_importance: Model importance (feature, importance)
        permutation_importance: Test-set permutation importance (None if disabled)
        missing_report: Records dropped for missing values before modeling
        timings: Per-stage timing records
    """

    config: RunConfig
    features: list[str]
    screening: ScreeningResult
    split: DatasetSplit
    predictor: FittedPredictor
    predictions: PredictionSet
    metrics: RegressionMetrics
    feature_importance: pd.DataFrame
    permutation_importance: pd.DataFrame | None = None
    missing_report: MissingValueReport | None = None
    timings: dict[str, Any] = field(default_factory=dict)

    def summary(self) -> dict[str, Any]:
        """JSON-friendly run summary."""
        return {
            "config": self.config.model_dump(mode="json"),
            "features": list(self.features),
            "n_train": self.split.n_train,
            "n_test": self.split.n_test,
            "predictor": self.predictor.describe(),
            "metrics": self.metrics.to_dict(),
            "screening": self.screening.to_dict(),
            "missing": self.missing_report.to_dict() if self.missing_report else None,
            "timings_ms": {k: v["duration_ms"] for k, v in self.timings.items()},
        }


class VolatilityPipeline:
    """Stateful driver for Loaded -> Screened -> Split -> Trained -> Evaluated.

    Example:
        >>> pipeline = VolatilityPipeline(df, RunConfig(model="stacked"))
        >>> pipeline.screen()
        >>> pipeline.split()
        >>> pipeline.train()
        >>> metrics = pipeline.evaluate()
    """

    def __init__(self, dataset: pd.DataFrame, config: RunConfig | dict | None = None):
        self.dataset = dataset
        self.config = ensure_run_config(config)
        self.stage = PipelineStage.LOADED
        self.timings: dict[str, Any] = {}

        self.screening: ScreeningResult | None = None
        self.features: list[str] = []
        self.model_data: pd.DataFrame | None = None
        self.missing_report: MissingValueReport | None = None
        self.data_split: DatasetSplit | None = None
        self.predictor: FittedPredictor | None = None
        self.variant: str | None = None
        self.predictions: PredictionSet | None = None
        self.metrics: RegressionMetrics | None = None
        self.feature_importance: pd.DataFrame | None = None
        self.permutation_importance: pd.DataFrame | None = None

        set_global_seed(self.config.seed)

    def _check(self, expected: PipelineStage, step: str) -> None:
        if self.stage is not expected:
            raise PipelineStateError(
                f"Cannot {step}: pipeline is in stage '{self.stage.value}', "
                f"expected '{expected.value}'"
            )

    def screen(self) -> ScreeningResult:
        """Screen candidate features and prepare the modeling records."""
        self._check(PipelineStage.LOADED, "screen")
        cfg = self.config

        with timed_step("screen", self.timings, logger):
            self.screening = screen_features(
                self.dataset,
                target_col=cfg.target_col,
                features=cfg.feature_cols,
                vif_threshold=cfg.vif_threshold,
                min_abs_correlation=cfg.min_abs_correlation,
                drop_missing=cfg.drop_missing,
            )
            # Explicit feature_cols override the screened selection
            self.features = (
                list(cfg.feature_cols) if cfg.feature_cols else list(self.screening.selected_features)
            )

            columns = self.features + [cfg.target_col]
            if cfg.drop_missing:
                self.model_data, self.missing_report = drop_incomplete_records(self.dataset, columns)
            else:
                self.model_data = require_complete_records(self.dataset, columns)
                self.missing_report = MissingValueReport(len(self.dataset), len(self.dataset))

        self.stage = PipelineStage.SCREENED
        return self.screening

    def split(self) -> DatasetSplit:
        """Partition the modeling records into train and test."""
        self._check(PipelineStage.SCREENED, "split")
        with timed_step("split", self.timings, logger):
            self.data_split = split_dataset(
                self.model_data, self.config.train_fraction, self.config.seed
            )
        self.stage = PipelineStage.SPLIT
        return self.data_split

    def train(self) -> FittedPredictor:
        """Fit the configured predictor variant on the train set.

        Raises:
            ConfigurationError: If screening left no features, or the config
                cannot be satisfied by the train set
        """
        self._check(PipelineStage.SPLIT, "train")
        train = self.data_split.train
        with timed_step("train", self.timings, logger, meta={"model": self.config.model.value}):
            self.predictor = fit_predictor(
                self.config.model,
                train[self.features],
                train[self.config.target_col],
                self.config,
            )
        self.variant = self.predictor.variant
        self.stage = PipelineStage.TRAINED
        logger.info(f"Pipeline trained ({self.variant}): {self.predictor.kind.value}")
        return self.predictor

    def evaluate(self) -> RegressionMetrics:
        """Predict the test set, compute metrics and variable importance."""
        self._check(PipelineStage.TRAINED, "evaluate")
        cfg = self.config
        test = self.data_split.test

        with timed_step("evaluate", self.timings, logger):
            self.predictions, self.metrics = evaluate_predictor(self.predictor, test, cfg.target_col)
            self.feature_importance = compute_predictor_feature_importance(self.predictor)

        if cfg.permutation_repeats > 0:
            with timed_step("permutation_importance", self.timings, logger):
                self.permutation_importance = compute_permutation_importance(
                    self.predictor,
                    test[self.features],
                    test[cfg.target_col],
                    n_repeats=cfg.permutation_repeats,
                    seed=cfg.seed,
                )

        self.stage = PipelineStage.EVALUATED
        return self.metrics

    def result(self) -> PipelineResult:
        """Collect the outputs of a fully evaluated run."""
        self._check(PipelineStage.EVALUATED, "collect results")
        return PipelineResult(
            config=self.config,
            features=list(self.features),
            screening=self.screening,
            split=self.data_split,
            predictor=self.predictor,
            predictions=self.predictions,
            metrics=self.metrics,
            feature_importance=self.feature_importance,
            permutation_importance=self.permutation_importance,
            missing_report=self.missing_report,
            timings=dict(self.timings),
        )


def run_pipeline(
    dataset: pd.DataFrame,
    config: RunConfig | dict | None = None,
) -> PipelineResult:
    """Run screen -> split -> train -> evaluate on a loaded dataset.

    Args:
        dataset: Loaded dataset
        config: Run configuration (dict, RunConfig or None for defaults)

    Returns:
        PipelineResult

    Raises:
        ConfigurationError: Invalid config, or no features left after screening
        DataError: Missing columns, or missing values with drop_missing disabled
    """
    pipeline = VolatilityPipeline(dataset, config)
    logger.info(
        f"Running pipeline: model={pipeline.config.model.value}, seed={pipeline.config.seed}, "
        f"{len(dataset)} records"
    )
    pipeline.screen()
    pipeline.split()
    pipeline.train()
    pipeline.evaluate()
    return pipeline.result()
