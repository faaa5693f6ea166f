"""Pytest configuration and shared fixtures for the volatility pipeline tests."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core.config.settings import reset_settings
from src.volatility_core.data.synthetic import make_synthetic_dataset


def _panel(n_records: int, columns: dict[str, np.ndarray]) -> pd.DataFrame:
    """One-date panel with unique symbols plus the given numeric columns."""
    df = pd.DataFrame(
        {
            "date": pd.Timestamp("2023-12-29"),
            "symbol": [f"SYM{i:03d}" for i in range(n_records)],
        }
    )
    for name, values in columns.items():
        df[name] = np.asarray(values, dtype="float64")
    return df


@pytest.fixture
def synthetic_dataset() -> pd.DataFrame:
    """Deterministic synthetic panel: 30 symbols x 4 month-ends = 120 records."""
    return make_synthetic_dataset(n_symbols=30, n_dates=4, seed=7)


@pytest.fixture
def perfect_dataset() -> pd.DataFrame:
    """100 records where feature ``x`` determines the target exactly (r = 1.0).

    ``z`` is an independent noise feature.
    """
    rng = np.random.default_rng(0)
    x = rng.uniform(0.1, 0.6, 100)
    return _panel(
        100,
        {
            "x": x,
            "z": rng.normal(0.0, 1.0, 100),
            "vol_1y": 0.05 + 1.5 * x,
        },
    )


@pytest.fixture
def constant_features_dataset() -> pd.DataFrame:
    """50 records whose feature values are identical constants."""
    rng = np.random.default_rng(1)
    return _panel(
        50,
        {
            "a": np.full(50, 3.0),
            "b": np.full(50, -1.25),
            "vol_1y": rng.uniform(0.1, 0.5, 50),
        },
    )


@pytest.fixture
def linear_dataset() -> pd.DataFrame:
    """120 records with a noisy linear target in three features."""
    rng = np.random.default_rng(3)
    f1 = rng.normal(0.0, 1.0, 120)
    f2 = rng.normal(0.0, 1.0, 120)
    f3 = rng.normal(0.0, 1.0, 120)
    return _panel(
        120,
        {
            "f1": f1,
            "f2": f2,
            "f3": f3,
            "vol_1y": 0.3 + 0.1 * f1 - 0.05 * f2 + rng.normal(0.0, 0.01, 120),
        },
    )


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    """Point output and log directories at a temp dir for every test."""
    monkeypatch.setenv("VOLCORE_OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("VOLCORE_LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("VOLCORE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("VOLCORE_DEFAULT_DATASET_FILE", str(tmp_path / "data" / "sp500_volatility.csv"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo setup_logging() calls made by CLI tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
