"""Dataset loading for the volatility pipeline.

Reads the pre-built cross-sectional dataset (CSV or Parquet), normalizes
column names and types, and validates the columns the pipeline depends on.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import pandas as pd

from src.volatility_core.data.schema import (
    CATEGORICAL_COLS,
    COMPANY_COL,
    DATE_COL,
    SYMBOL_COL,
    TARGET_COL,
)
from src.volatility_core.errors import DataError
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".csv", ".parquet"}

# Share of non-missing values that must parse as numbers for a column to be numeric
MIN_NUMERIC_FRACTION = 0.5


def normalize_column_name(name: str) -> str:
    """Convert a raw column header to snake_case.

    Example:
        >>> normalize_column_name("Market Cap")
        'market_cap'
        >>> normalize_column_name("Price-to-Book")
        'price_to_book'
    """
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    s = re.sub(r"[^0-9a-zA-Z]+", "_", s)
    return s.strip("_").lower()


def coerce_dataset_types(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce dataset columns to their expected types.

    - date: datetime64 (unparseable values become NaT)
    - symbol, company_name, categorical attributes: pandas string dtype
    - other columns: float64 when at least MIN_NUMERIC_FRACTION of their
      non-missing values parse as numbers (the rest become NaN), otherwise
      pandas string dtype

    Args:
        df: Raw dataset DataFrame (snake_case columns)

    Returns:
        DataFrame with coerced types
    """
    df = df.copy()
    text_cols = {SYMBOL_COL, COMPANY_COL, *CATEGORICAL_COLS}

    df[DATE_COL] = pd.to_datetime(df[DATE_COL], errors="coerce")
    for col in df.columns:
        if col == DATE_COL:
            continue
        if col in text_cols:
            df[col] = df[col].astype("string")
            continue

        numeric = pd.to_numeric(df[col], errors="coerce")
        present = int(df[col].notna().sum())
        if present and numeric.notna().sum() < MIN_NUMERIC_FRACTION * present:
            logger.info(f"Column '{col}' is mostly non-numeric; keeping it as text")
            df[col] = df[col].astype("string")
        else:
            df[col] = numeric.astype("float64")
    return df


def load_dataset(
    path: Path | str,
    target_col: str = TARGET_COL,
) -> pd.DataFrame:
    """Load the volatility dataset from CSV or Parquet.

    Args:
        path: Path to the dataset file (.csv or .parquet)
        target_col: Name of target column (must be present)

    Returns:
        DataFrame in load order with snake_case columns and coerced types

    Raises:
        FileNotFoundError: If the file does not exist
        DataError: If the suffix is unsupported, required columns are missing or
            the target column is not numeric
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Dataset file not found: {p}")

    suffix = p.suffix.lower()
    if suffix not in _SUPPORTED_SUFFIXES:
        raise DataError(
            f"Unsupported dataset file extension: {p.suffix}. Supported: .csv, .parquet"
        )

    df = pd.read_csv(p) if suffix == ".csv" else pd.read_parquet(p)
    df.columns = [normalize_column_name(c) for c in df.columns]

    if df.columns.duplicated().any():
        dupes = df.columns[df.columns.duplicated()].tolist()
        raise DataError(f"Duplicate columns after normalization: {dupes}")

    ensure_cols(df, [DATE_COL, SYMBOL_COL, target_col])
    df = coerce_dataset_types(df).reset_index(drop=True)
    if not pd.api.types.is_float_dtype(df[target_col]):
        raise DataError(f"Target column {target_col!r} is not numeric (dtype={df[target_col].dtype})")

    logger.info(
        f"Loaded dataset {p.name}: {len(df)} records, {df[SYMBOL_COL].nunique()} symbols, "
        f"{len(df.columns)} columns"
    )
    return df
