"""Column schema for the S&P 500 volatility dataset.

One row is one (date, symbol) record with financial attributes, categorical
attributes and macro attributes. The target is the one-year trailing
volatility ``vol_1y``.
"""

from __future__ import annotations

import pandas as pd

DATE_COL = "date"
SYMBOL_COL = "symbol"
COMPANY_COL = "company_name"
TARGET_COL = "vol_1y"
SECTOR_COL = "sector"

# Natural record identity
KEY_COLS = (DATE_COL, SYMBOL_COL)

ID_COLS = (DATE_COL, SYMBOL_COL, COMPANY_COL)

FINANCIAL_COLS = (
    "close",
    "realized_vol",
    "revenue",
    "market_cap",
    "analyst_rating_mean",
    "price_to_book",
    "debt_to_equity",
    "profit_margin",
    "dividend_yield",
    "esg_score",
    "scope_1_emissions",
    "scope_2_emissions",
    "scope_3_emissions",
)

CATEGORICAL_COLS = ("hq_country", "country_risk", SECTOR_COL)

MACRO_COLS = (
    "return",
    "fwd_return",
    "inflation",
    "gdp_growth",
    "unemployment",
    "fed_funds_rate",
)

ALL_COLS = ID_COLS + FINANCIAL_COLS + CATEGORICAL_COLS + MACRO_COLS + (TARGET_COL,)


def numeric_feature_columns(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
) -> list[str]:
    """Return the candidate feature set of a dataset.

    Features are the numeric columns of ``df`` that are neither identifiers,
    categorical attributes nor the target. Columns with no values at all are
    skipped. Column order follows ``df``.

    Args:
        df: Dataset DataFrame
        target_col: Name of target column (excluded)

    Returns:
        List of feature column names
    """
    excluded = set(ID_COLS) | set(CATEGORICAL_COLS) | {target_col}
    return [
        col
        for col in df.columns
        if col not in excluded
        and pd.api.types.is_numeric_dtype(df[col])
        and not pd.api.types.is_bool_dtype(df[col])
        and df[col].notna().any()
    ]
