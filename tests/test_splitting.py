"""Tests for train/test splitting and k-fold partitioning."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core.errors import ConfigurationError
from src.volatility_core.ml.splitting import kfold_partitions, split_dataset

pytestmark = pytest.mark.unit


def _records(n: int) -> pd.DataFrame:
    return pd.DataFrame({"symbol": [f"S{i}" for i in range(n)], "value": np.arange(n, dtype=float)})


@pytest.mark.parametrize("n", [10, 37, 100])
@pytest.mark.parametrize("fraction", [0.1, 0.5, 0.8, 0.95])
def test_split_partitions_dataset(n, fraction):
    df = _records(n)
    split = split_dataset(df, fraction, seed=3)

    train_ids = set(split.train.index)
    test_ids = set(split.test.index)
    assert split.n_train + split.n_test == n
    assert train_ids.isdisjoint(test_ids)
    assert train_ids | test_ids == set(df.index)


def test_split_same_seed_same_partition():
    df = _records(50)
    a = split_dataset(df, 0.8, seed=42)
    b = split_dataset(df, 0.8, seed=42)

    assert a.train.index.tolist() == b.train.index.tolist()
    assert a.test.index.tolist() == b.test.index.tolist()


def test_split_different_seed_different_partition():
    df = _records(50)
    a = split_dataset(df, 0.8, seed=1)
    b = split_dataset(df, 0.8, seed=2)
    assert a.test.index.tolist() != b.test.index.tolist()


def test_split_preserves_load_order():
    split = split_dataset(_records(30), 0.7, seed=0)
    assert split.train.index.is_monotonic_increasing
    assert split.test.index.is_monotonic_increasing


def test_split_sizes_80_20():
    split = split_dataset(_records(100), 0.8, seed=0)
    assert split.n_train == 80
    assert split.n_test == 20


@pytest.mark.parametrize("fraction", [0.0, 1.0, -0.1, 1.2])
def test_split_rejects_fraction_outside_open_interval(fraction):
    with pytest.raises(ConfigurationError, match="train_fraction"):
        split_dataset(_records(10), fraction, seed=0)


def test_split_rejects_fraction_leaving_empty_side():
    with pytest.raises(ConfigurationError):
        split_dataset(_records(3), 0.2, seed=0)
    with pytest.raises(ConfigurationError):
        split_dataset(_records(1), 0.5, seed=0)


@pytest.mark.parametrize("n, k", [(10, 2), (23, 5), (100, 7)])
def test_kfold_covers_train_with_disjoint_balanced_folds(n, k):
    folds = kfold_partitions(n, k, seed=9)

    assert len(folds) == k
    valid = [set(f.valid_idx.tolist()) for f in folds]
    sizes = [len(v) for v in valid]
    assert max(sizes) - min(sizes) <= 1
    assert set().union(*valid) == set(range(n))
    assert sum(sizes) == n
    for fold in folds:
        assert set(fold.train_idx.tolist()).isdisjoint(fold.valid_idx.tolist())
        assert len(fold.train_idx) + len(fold.valid_idx) == n


def test_kfold_deterministic():
    a = kfold_partitions(40, 4, seed=5)
    b = kfold_partitions(40, 4, seed=5)
    for fa, fb in zip(a, b):
        assert np.array_equal(fa.valid_idx, fb.valid_idx)


def test_kfold_rejects_invalid_fold_counts():
    with pytest.raises(ConfigurationError, match="n_folds must be >= 2"):
        kfold_partitions(10, 1, seed=0)
    with pytest.raises(ConfigurationError, match="exceeds the number of records"):
        kfold_partitions(4, 5, seed=0)
