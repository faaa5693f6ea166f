"""Tests for dataset loading, missing-value handling and the synthetic sample."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core.data.cleaning import drop_incomplete_records, require_complete_records
from src.volatility_core.data.loader import load_dataset, normalize_column_name
from src.volatility_core.data.schema import ALL_COLS, numeric_feature_columns
from src.volatility_core.data.synthetic import make_synthetic_dataset
from src.volatility_core.errors import DataError

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Market Cap", "market_cap"),
        ("Price-to-Book", "price_to_book"),
        ("vol_1y", "vol_1y"),
        ("  Scope 1 Emissions ", "scope_1_emissions"),
        ("debtToEquity", "debt_to_equity"),
    ],
)
def test_normalize_column_name(raw, expected):
    assert normalize_column_name(raw) == expected


def test_load_csv_normalizes_and_coerces(tmp_path: Path):
    raw = pd.DataFrame(
        {
            "Date": ["2023-01-31", "2023-01-31", "2023-02-28"],
            "Symbol": ["AAA", "BBB", "AAA"],
            "Market Cap": ["1.5e9", "2.0e9", "n/a"],
            "Sector": ["Energy", "Utilities", "Energy"],
            "vol_1y": [0.2, 0.3, 0.25],
        }
    )
    path = tmp_path / "dataset.csv"
    raw.to_csv(path, index=False)

    df = load_dataset(path)

    assert list(df.columns) == ["date", "symbol", "market_cap", "sector", "vol_1y"]
    assert pd.api.types.is_datetime64_any_dtype(df["date"])
    assert df["market_cap"].dtype == "float64"
    assert np.isnan(df.loc[2, "market_cap"])
    assert df["sector"].tolist() == ["Energy", "Utilities", "Energy"]
    # Load order preserved
    assert df["symbol"].tolist() == ["AAA", "BBB", "AAA"]


def test_load_parquet_roundtrip(tmp_path: Path, synthetic_dataset):
    pytest.importorskip("pyarrow")
    path = tmp_path / "dataset.parquet"
    synthetic_dataset.to_parquet(path, index=False)

    df = load_dataset(path)

    assert len(df) == len(synthetic_dataset)
    assert np.allclose(df["vol_1y"], synthetic_dataset["vol_1y"])


def test_load_missing_target_column(tmp_path: Path):
    path = tmp_path / "no_target.csv"
    pd.DataFrame({"date": ["2023-01-31"], "symbol": ["AAA"], "close": [1.0]}).to_csv(path, index=False)

    with pytest.raises(DataError, match="vol_1y"):
        load_dataset(path)


def test_load_errors(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_dataset(tmp_path / "missing.csv")

    bad = tmp_path / "data.xlsx"
    bad.write_bytes(b"")
    with pytest.raises(DataError, match="Unsupported dataset file extension"):
        load_dataset(bad)

    dupes = tmp_path / "dupes.csv"
    dupes.write_text("date,symbol,Vol 1y,vol_1y\n2023-01-31,AAA,0.1,0.2\n", encoding="utf-8")
    with pytest.raises(DataError, match="Duplicate columns"):
        load_dataset(dupes)


def test_drop_incomplete_records_reports_drops(caplog):
    df = pd.DataFrame(
        {
            "a": [1.0, np.nan, 3.0, 4.0],
            "b": [1.0, 2.0, np.nan, np.nan],
            "c": [np.nan, np.nan, np.nan, np.nan],  # not inspected
        }
    )

    with caplog.at_level("WARNING"):
        clean, report = drop_incomplete_records(df, ["a", "b"])

    assert clean.index.tolist() == [0]
    assert report.n_records_before == 4
    assert report.n_records_after == 1
    assert report.n_dropped == 3
    assert report.drop_fraction == pytest.approx(0.75)
    assert report.missing_by_column == {"a": 1, "b": 2}
    assert "Dropped 3 of 4 records" in caplog.text


def test_drop_incomplete_records_no_missing():
    df = pd.DataFrame({"a": [1.0, 2.0]})
    clean, report = drop_incomplete_records(df, ["a"])
    assert len(clean) == 2
    assert report.n_dropped == 0
    assert report.to_dict()["missing_by_column"] == {}


def test_require_complete_records():
    df = pd.DataFrame({"a": [1.0, np.nan]})
    with pytest.raises(DataError, match="missing values"):
        require_complete_records(df, ["a"])
    with pytest.raises(DataError):
        require_complete_records(df, ["zzz"])

    ok = pd.DataFrame({"a": [1.0, 2.0]})
    assert require_complete_records(ok, ["a"]) is ok


def test_synthetic_dataset_shape_and_determinism():
    df1 = make_synthetic_dataset(n_symbols=10, n_dates=3, seed=5)
    df2 = make_synthetic_dataset(n_symbols=10, n_dates=3, seed=5)
    df3 = make_synthetic_dataset(n_symbols=10, n_dates=3, seed=6)

    assert len(df1) == 30
    assert list(df1.columns) == list(ALL_COLS)
    assert not df1.duplicated(subset=["date", "symbol"]).any()
    pd.testing.assert_frame_equal(df1, df2)
    assert not np.allclose(df1["vol_1y"], df3["vol_1y"])


def test_synthetic_missing_fraction():
    df = make_synthetic_dataset(n_symbols=40, n_dates=4, seed=1, missing_fraction=0.2)
    assert df["esg_score"].isna().any()
    assert not df["realized_vol"].isna().any()


def test_numeric_feature_columns_excludes_ids_categoricals_and_target(synthetic_dataset):
    features = numeric_feature_columns(synthetic_dataset)

    for col in ("date", "symbol", "company_name", "sector", "hq_country", "country_risk", "vol_1y"):
        assert col not in features
    assert "realized_vol" in features
    assert "fed_funds_rate" in features


def test_load_keeps_unlisted_text_columns_as_text(tmp_path: Path, synthetic_dataset):
    raw = synthetic_dataset.copy()
    raw["exchange"] = "NYSE"
    raw["Headquarters Country"] = np.where(np.arange(len(raw)) % 2 == 0, "US", "IE")
    path = tmp_path / "with_text.csv"
    raw.to_csv(path, index=False)

    df = load_dataset(path)

    assert df["exchange"].dtype == "string"
    assert df["headquarters_country"].dtype == "string"
    assert df["exchange"].eq("NYSE").all()
    features = numeric_feature_columns(df)
    assert "exchange" not in features
    assert "headquarters_country" not in features
    assert "realized_vol" in features


def test_load_rejects_non_numeric_target(tmp_path: Path):
    raw = pd.DataFrame(
        {
            "date": ["2023-01-31", "2023-01-31"],
            "symbol": ["AAA", "BBB"],
            "vol_1y": ["high", "low"],
        }
    )
    path = tmp_path / "text_target.csv"
    raw.to_csv(path, index=False)

    with pytest.raises(DataError, match="not numeric"):
        load_dataset(path)


def test_numeric_feature_columns_skips_empty_columns(synthetic_dataset):
    df = synthetic_dataset.copy()
    df["all_missing"] = np.nan

    assert "all_missing" not in numeric_feature_columns(df)
