"""Variance inflation factors for multicollinearity screening.

VIF_j = 1 / (1 - R²_j), where R²_j comes from regressing feature j on all
other features plus an intercept. Two situations make VIF undefined and are
excluded before the auxiliary regressions run:

- zero variance: the feature is constant on the working subset
- aliasing: the feature is an exact linear combination of earlier features

A VIF that still comes out non-finite (e.g. more features than records) is
raised as NumericError for that feature only and reported as "undefined".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.stats.outliers_influence import variance_inflation_factor

from src.volatility_core.config.constants import MIN_VARIANCE
from src.volatility_core.errors import NumericError
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)

EXCLUDED_ZERO_VARIANCE = "zero_variance"
EXCLUDED_ALIASED = "aliased"
EXCLUDED_UNDEFINED = "undefined"


@dataclass(frozen=True)
class VifResult:
    """VIF scores and exclusions.

    Attributes:
        vif: Series named "vif" indexed by feature (finite values only)
        excluded: Mapping feature -> reason for features without a VIF
    """

    vif: pd.Series
    excluded: dict[str, str] = field(default_factory=dict)


def find_zero_variance_features(df: pd.DataFrame, features: Sequence[str]) -> list[str]:
    """Return the features that are constant on df."""
    features = list(features)
    ensure_cols(df, features)
    variances = df[features].astype("float64").var(ddof=0)
    return [f for f in features if not (variances[f] > MIN_VARIANCE)]


def find_aliased_features(df: pd.DataFrame, features: Sequence[str]) -> list[str]:
    """Return features in perfect linear dependence on earlier features.

    Features are visited in order; a feature is aliased when adding its
    standardized column to the already-kept columns does not raise the rank
    of the design. Zero-variance features are skipped (never returned).

    Args:
        df: Dataset DataFrame (complete records)
        features: Candidate feature names, in priority order

    Returns:
        List of aliased feature names (in input order)
    """
    features = list(features)
    zero_variance = set(find_zero_variance_features(df, features))
    candidates = [f for f in features if f not in zero_variance]
    if not candidates:
        return []

    X = df[candidates].to_numpy(dtype="float64")
    X = (X - X.mean(axis=0)) / X.std(axis=0)

    kept: list[int] = []
    aliased: list[str] = []
    rank = 0
    for j, name in enumerate(candidates):
        new_rank = int(np.linalg.matrix_rank(X[:, kept + [j]]))
        if new_rank > rank:
            kept.append(j)
            rank = new_rank
        else:
            aliased.append(name)

    if aliased:
        logger.info(f"Aliased features (perfect linear dependence): {aliased}")
    return aliased


def _vif_for_column(exog: np.ndarray, idx: int, name: str) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        value = float(variance_inflation_factor(exog, idx))
    if not np.isfinite(value):
        raise NumericError(
            f"VIF undefined for '{name}': auxiliary regression is degenerate (VIF={value})"
        )
    return value


def compute_vif(df: pd.DataFrame, features: Sequence[str]) -> VifResult:
    """Compute the VIF of each feature against all other features.

    Args:
        df: Dataset DataFrame (complete records)
        features: Feature column names

    Returns:
        VifResult with finite VIFs and the excluded features with their reason
    """
    features = list(features)
    ensure_cols(df, features)
    excluded: dict[str, str] = {}

    for f in find_zero_variance_features(df, features):
        excluded[f] = EXCLUDED_ZERO_VARIANCE
    remaining = [f for f in features if f not in excluded]

    for f in find_aliased_features(df, remaining):
        excluded[f] = EXCLUDED_ALIASED
    remaining = [f for f in remaining if f not in excluded]

    values: dict[str, float] = {}
    if remaining:
        exog = sm.add_constant(df[remaining].to_numpy(dtype="float64"), has_constant="add")
        for idx, name in enumerate(remaining, start=1):
            try:
                values[name] = _vif_for_column(exog, idx, name)
            except NumericError as e:
                logger.warning(str(e))
                excluded[name] = EXCLUDED_UNDEFINED

    if excluded:
        logger.info(f"VIF excluded {len(excluded)} features: {excluded}")

    return VifResult(
        vif=pd.Series(values, name="vif", dtype="float64"),
        excluded=excluded,
    )
