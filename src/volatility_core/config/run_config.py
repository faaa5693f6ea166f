"""Run configuration for a single pipeline invocation.

``RunConfig`` replaces ambient global state (seed reused across cells, ad hoc
worker pools) with one explicit, validated object passed into every pipeline
invocation. It uses extra="forbid" so unknown keys are rejected.

Example YAML config:
    seed: 42
    train_fraction: 0.8
    n_folds: 5
    model: stacked
    base_models: [random_forest, gradient_boosting]
    max_workers: 4
    vif_threshold: 10.0
    param_grids:
      random_forest:
        n_estimators: [100, 300]
        max_depth: [null, 8]
      gradient_boosting:
        learning_rate: [0.05, 0.1]
        n_estimators: [200]
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.volatility_core.config.constants import (
    DEFAULT_BASE_MODELS,
    DEFAULT_N_FOLDS,
    DEFAULT_SEED,
    DEFAULT_TARGET_COL,
    DEFAULT_TRAIN_FRACTION,
    ModelFamily,
    PredictorKind,
)
from src.volatility_core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RunConfig(BaseModel):
    """Configuration for one pipeline run.

    Attributes:
        seed: Seed for splitting, fold assignment and tree models
        train_fraction: Fraction of records in the train set, in (0, 1)
        n_folds: Number of cross-validation folds (grid search, stacking)
        model: Predictor variant to fit
        base_models: Base model families for ensemble/stacked predictors
        param_grids: Optional hyperparameter grid per model family
        max_workers: Worker processes for grid search (1 = serial)
        target_col: Name of the target column
        feature_cols: Explicit feature set (None = use screened features)
        drop_missing: Drop records with missing values before modeling
            (False = fail with DataError instead)
        vif_threshold: Iteratively drop features whose VIF exceeds this value
        min_abs_correlation: Drop features with |r| to the target below this value
        permutation_repeats: Repeats for permutation importance (0 = skip)
    """

    seed: int = Field(default=DEFAULT_SEED, description="Random seed")
    train_fraction: float = Field(
        default=DEFAULT_TRAIN_FRACTION, description="Train split fraction in (0, 1)"
    )
    n_folds: int = Field(default=DEFAULT_N_FOLDS, description="Cross-validation folds")
    model: PredictorKind = Field(default=PredictorKind.LINEAR, description="Predictor variant")
    base_models: list[ModelFamily] = Field(
        default_factory=lambda: list(DEFAULT_BASE_MODELS),
        description="Base model families for ensemble/stacked predictors",
    )
    param_grids: dict[ModelFamily, dict[str, list[Any]]] = Field(
        default_factory=dict, description="Hyperparameter grid per model family"
    )
    max_workers: int = Field(default=1, ge=1, description="Grid search worker processes")
    target_col: str = Field(default=DEFAULT_TARGET_COL, description="Target column")
    feature_cols: list[str] | None = Field(default=None, description="Explicit feature set")
    drop_missing: bool = Field(default=True, description="Drop incomplete records")
    vif_threshold: float | None = Field(default=None, description="Maximum accepted VIF")
    min_abs_correlation: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Minimum |r| with the target"
    )
    permutation_repeats: int = Field(default=0, ge=0, description="Permutation importance repeats")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("train_fraction")
    @classmethod
    def validate_train_fraction(cls, v: float) -> float:
        """Validate that the split fraction lies strictly inside (0, 1)."""
        if not 0.0 < v < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {v}")
        return v

    @field_validator("n_folds")
    @classmethod
    def validate_n_folds(cls, v: int) -> int:
        """Validate that at least two folds are requested."""
        if v < 2:
            raise ValueError(f"n_folds must be >= 2, got {v}")
        return v

    @field_validator("vif_threshold")
    @classmethod
    def validate_vif_threshold(cls, v: float | None) -> float | None:
        """VIF is >= 1 by construction, so a threshold must exceed 1."""
        if v is not None and v <= 1.0:
            raise ValueError(f"vif_threshold must be > 1, got {v}")
        return v

    @model_validator(mode="after")
    def validate_base_models(self) -> "RunConfig":
        """Composite predictors need at least two distinct base models."""
        if self.model.is_composite and len(set(self.base_models)) < 2:
            raise ValueError(
                f"model '{self.model.value}' requires at least two distinct base_models, "
                f"got {[m.value for m in self.base_models]}"
            )
        return self

    def grid_for(self, family: ModelFamily) -> dict[str, list[Any]] | None:
        """Return the hyperparameter grid configured for a model family (or None)."""
        return self.param_grids.get(family)


def ensure_run_config(config: dict[str, Any] | RunConfig | None) -> RunConfig:
    """Ensure config is a RunConfig instance.

    Args:
        config: Dict, RunConfig, or None (defaults to RunConfig())

    Returns:
        RunConfig instance (never None)

    Raises:
        ConfigurationError: If the dict has invalid values or unknown keys
    """
    if config is None:
        return RunConfig()
    if isinstance(config, RunConfig):
        return config
    try:
        return RunConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid run configuration: {e}") from e


def load_run_config(path: Path | str) -> RunConfig:
    """Load and validate a run configuration from YAML or JSON.

    Args:
        path: Path to a .yaml/.yml or .json file

    Returns:
        Validated RunConfig instance

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigurationError: If the file type is unsupported or the config is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Run config file not found: {path}")

    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8") as f:
        if suffix in {".yml", ".yaml"}:
            raw = yaml.safe_load(f)
        elif suffix == ".json":
            raw = json.load(f)
        else:
            raise ConfigurationError(
                f"Unsupported config file extension: {path.suffix}. "
                "Supported: .yaml, .yml, .json"
            )

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Run config root must be a mapping/object, got {type(raw).__name__}"
        )

    config = ensure_run_config(raw)
    logger.info(f"Loaded run config from {path}: model={config.model.value}, seed={config.seed}")
    return config
