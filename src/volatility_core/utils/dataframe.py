"""DataFrame utility functions (shared across layers)."""

from __future__ import annotations

import pandas as pd

from src.volatility_core.errors import DataError


def ensure_cols(df: pd.DataFrame, cols: list[str]) -> pd.DataFrame:
    """Ensure required columns exist in DataFrame.

    Args:
        df: Input DataFrame
        cols: List of required column names

    Returns:
        DataFrame with validated columns

    Raises:
        DataError: If any required column is missing
    """
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise DataError(f"Missing columns: {missing} | available={df.columns.tolist()}")
    return df
