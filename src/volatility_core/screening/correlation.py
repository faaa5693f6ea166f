"""Pearson correlation of candidate features with the target."""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from src.volatility_core.config.constants import MIN_VARIANCE
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)


def compute_target_correlations(
    df: pd.DataFrame,
    features: Sequence[str],
    target_col: str,
) -> pd.Series:
    """Compute the Pearson correlation of each feature with the target.

    Correlation is undefined for a constant feature (or a constant target);
    such features are reported with 0.0.

    Args:
        df: Dataset DataFrame (complete records)
        features: Feature column names
        target_col: Target column name

    Returns:
        Series named "correlation" indexed by feature, ordered by absolute
        correlation descending (ties keep the input order)
    """
    features = list(features)
    ensure_cols(df, features + [target_col])

    y = df[target_col].astype("float64")
    target_constant = len(y) < 2 or float(y.var(ddof=0)) <= MIN_VARIANCE
    if target_constant:
        logger.warning(
            f"Target '{target_col}' is constant over {len(y)} records; "
            "all correlations reported as 0.0"
        )

    values: list[float] = []
    for col in features:
        x = df[col].astype("float64")
        if target_constant or float(x.var(ddof=0)) <= MIN_VARIANCE:
            values.append(0.0)
            continue
        r = float(np.corrcoef(x.to_numpy(), y.to_numpy())[0, 1])
        values.append(r if np.isfinite(r) else 0.0)

    order = sorted(range(len(features)), key=lambda i: -abs(values[i]))
    return pd.Series(
        [values[i] for i in order],
        index=[features[i] for i in order],
        name="correlation",
        dtype="float64",
    )
