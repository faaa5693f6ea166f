"""Central constants and enums for the volatility pipeline.

This module contains the default values used throughout the system so that
config models, the trainer and the CLI agree on them.
"""

from __future__ import annotations

from enum import Enum


class ModelFamily(str, Enum):
    """Base regression model families (fitted by scikit-learn)."""

    LINEAR = "linear"
    RANDOM_FOREST = "random_forest"
    GRADIENT_BOOSTING = "gradient_boosting"


class PredictorKind(str, Enum):
    """Variants of the "fit predictor" capability."""

    LINEAR = "linear"
    RANDOM_FOREST = "random_forest"
    GRADIENT_BOOSTING = "gradient_boosting"
    ENSEMBLE = "ensemble"  # Unweighted mean of base models
    STACKED = "stacked"  # Second-stage linear regression on base predictions

    @property
    def is_composite(self) -> bool:
        return self in (PredictorKind.ENSEMBLE, PredictorKind.STACKED)


# Default run parameters
DEFAULT_SEED = 42
DEFAULT_TRAIN_FRACTION = 0.8  # 80/20 train/test split
DEFAULT_N_FOLDS = 5
DEFAULT_TARGET_COL = "vol_1y"
DEFAULT_BASE_MODELS = (ModelFamily.RANDOM_FOREST, ModelFamily.GRADIENT_BOOSTING)

# Screening
MIN_VARIANCE = 1e-12  # Below this a feature counts as constant
