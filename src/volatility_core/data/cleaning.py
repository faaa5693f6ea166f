"""Missing-value handling for the volatility dataset.

Records with missing values cannot be used to fit the models. Rather than
dropping them silently before every fit, dropping happens in one place, is
logged, and is reported back to the caller so the bias it may introduce stays
visible (e.g. emissions or ESG coverage missing for whole sectors).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import pandas as pd

from src.volatility_core.errors import DataError
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MissingValueReport:
    """Summary of records dropped because of missing values.

    Attributes:
        n_records_before: Number of records before dropping
        n_records_after: Number of records after dropping
        missing_by_column: Missing-value count per inspected column (only columns with > 0)
    """

    n_records_before: int
    n_records_after: int
    missing_by_column: dict[str, int] = field(default_factory=dict)

    @property
    def n_dropped(self) -> int:
        return self.n_records_before - self.n_records_after

    @property
    def drop_fraction(self) -> float:
        if self.n_records_before == 0:
            return 0.0
        return self.n_dropped / self.n_records_before

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (JSON-serializable)."""
        return {
            "n_records_before": self.n_records_before,
            "n_records_after": self.n_records_after,
            "n_dropped": self.n_dropped,
            "drop_fraction": self.drop_fraction,
            "missing_by_column": dict(self.missing_by_column),
        }


def _missing_counts(df: pd.DataFrame, columns: Sequence[str]) -> dict[str, int]:
    counts = df[list(columns)].isna().sum()
    return {col: int(n) for col, n in counts.items() if n > 0}


def drop_incomplete_records(
    df: pd.DataFrame,
    columns: Sequence[str],
) -> tuple[pd.DataFrame, MissingValueReport]:
    """Drop records with a missing value in any of the given columns.

    Args:
        df: Dataset DataFrame
        columns: Columns that must be complete

    Returns:
        Tuple of (clean DataFrame in original order, MissingValueReport)

    Raises:
        DataError: If any of the columns is missing from df
    """
    ensure_cols(df, list(columns))
    missing = _missing_counts(df, columns)

    mask = df[list(columns)].notna().all(axis=1)
    clean = df.loc[mask]
    report = MissingValueReport(
        n_records_before=len(df),
        n_records_after=len(clean),
        missing_by_column=missing,
    )

    if report.n_dropped > 0:
        logger.warning(
            f"Dropped {report.n_dropped} of {report.n_records_before} records "
            f"({report.drop_fraction:.1%}) with missing values; by column: {missing}"
        )
    return clean, report


def require_complete_records(df: pd.DataFrame, columns: Sequence[str]) -> pd.DataFrame:
    """Fail if any record has a missing value in the given columns.

    Args:
        df: Dataset DataFrame
        columns: Columns that must be complete

    Returns:
        df unchanged

    Raises:
        DataError: If columns are absent or contain missing values
    """
    ensure_cols(df, list(columns))
    missing = _missing_counts(df, columns)
    if missing:
        raise DataError(
            f"Records with missing values found (drop_missing disabled): {missing}"
        )
    return df
