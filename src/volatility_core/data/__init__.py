"""Dataset schema, loading and cleaning."""
from __future__ import annotations

from src.volatility_core.data.cleaning import (
    MissingValueReport,
    drop_incomplete_records,
    require_complete_records,
)
from src.volatility_core.data.loader import load_dataset
from src.volatility_core.data.schema import KEY_COLS, TARGET_COL, numeric_feature_columns
from src.volatility_core.data.synthetic import make_synthetic_dataset

__all__ = [
    "KEY_COLS",
    "TARGET_COL",
    "MissingValueReport",
    "drop_incomplete_records",
    "load_dataset",
    "make_synthetic_dataset",
    "numeric_feature_columns",
    "require_complete_records",
]
