"""Deterministic synthetic dataset with the full volatility schema.

Used by tests, the CLI ``make_sample`` command and examples. The target is a
noisy linear function of realized volatility, leverage, size and sector so
that every model family has signal to find.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from src.volatility_core.data.schema import ALL_COLS, TARGET_COL

logger = logging.getLogger(__name__)

SECTORS = (
    "Information Technology",
    "Health Care",
    "Financials",
    "Energy",
    "Utilities",
    "Consumer Staples",
)
SECTOR_VOL_PREMIUM = {
    "Information Technology": 0.04,
    "Health Care": 0.02,
    "Financials": 0.03,
    "Energy": 0.06,
    "Utilities": -0.03,
    "Consumer Staples": -0.02,
}
COUNTRIES = (("United States", "low"), ("Ireland", "low"), ("Netherlands", "low"), ("Bermuda", "medium"))


def make_synthetic_dataset(
    n_symbols: int = 50,
    n_dates: int = 4,
    seed: int = 42,
    missing_fraction: float = 0.0,
) -> pd.DataFrame:
    """Build a synthetic (date, symbol) panel.

    Args:
        n_symbols: Number of distinct symbols
        n_dates: Number of month-end dates per symbol
        seed: Seed for the generator
        missing_fraction: Fraction of ESG/emissions values set to NaN

    Returns:
        DataFrame with all schema columns, n_symbols * n_dates rows, ordered by
        date then symbol
    """
    rng = np.random.default_rng(seed)
    dates = pd.date_range("2022-01-31", periods=n_dates, freq="ME")
    symbols = [f"SYM{i:03d}" for i in range(n_symbols)]

    sector_of = {s: SECTORS[i % len(SECTORS)] for i, s in enumerate(symbols)}
    country_of = {s: COUNTRIES[i % len(COUNTRIES)] for i, s in enumerate(symbols)}
    log_cap = {s: rng.normal(24.0, 1.2) for s in symbols}

    macro = pd.DataFrame(
        {
            "date": dates,
            "inflation": rng.normal(0.04, 0.01, n_dates),
            "gdp_growth": rng.normal(0.02, 0.005, n_dates),
            "unemployment": rng.normal(0.045, 0.004, n_dates),
            "fed_funds_rate": rng.normal(0.03, 0.01, n_dates),
        }
    )

    rows = []
    for date in dates:
        for symbol in symbols:
            sector = sector_of[symbol]
            country, risk = country_of[symbol]
            realized_vol = abs(rng.normal(0.28, 0.08))
            debt_to_equity = abs(rng.normal(1.0, 0.5))
            market_cap = float(np.exp(log_cap[symbol] + rng.normal(0.0, 0.05)))
            close = abs(rng.normal(150.0, 60.0)) + 5.0
            rows.append(
                {
                    "date": date,
                    "symbol": symbol,
                    "company_name": f"{symbol} Corp",
                    "close": close,
                    "realized_vol": realized_vol,
                    "revenue": market_cap * abs(rng.normal(0.3, 0.1)),
                    "market_cap": market_cap,
                    "analyst_rating_mean": float(np.clip(rng.normal(2.2, 0.5), 1.0, 5.0)),
                    "price_to_book": abs(rng.normal(4.0, 2.0)),
                    "debt_to_equity": debt_to_equity,
                    "profit_margin": rng.normal(0.12, 0.06),
                    "dividend_yield": abs(rng.normal(0.018, 0.01)),
                    "esg_score": rng.normal(22.0, 6.0),
                    "scope_1_emissions": abs(rng.normal(2e5, 1e5)),
                    "scope_2_emissions": abs(rng.normal(1e5, 5e4)),
                    "scope_3_emissions": abs(rng.normal(1e6, 4e5)),
                    "hq_country": country,
                    "country_risk": risk,
                    "sector": sector,
                    "return": rng.normal(0.01, 0.07),
                    "fwd_return": rng.normal(0.01, 0.07),
                    TARGET_COL: (
                        0.05
                        + 0.8 * realized_vol
                        + 0.03 * debt_to_equity
                        - 0.01 * (log_cap[symbol] - 24.0)
                        + SECTOR_VOL_PREMIUM[sector]
                        + rng.normal(0.0, 0.01)
                    ),
                }
            )

    df = pd.DataFrame(rows).merge(macro, on="date", how="left")
    df = df[list(ALL_COLS)]

    if missing_fraction > 0.0:
        for col in ("esg_score", "scope_1_emissions", "scope_2_emissions", "scope_3_emissions"):
            mask = rng.random(len(df)) < missing_fraction
            df.loc[mask, col] = np.nan

    logger.debug(f"Built synthetic dataset: {len(df)} records, seed={seed}")
    return df
