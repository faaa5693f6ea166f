"""Reproducible train/test and k-fold partitioning.

Both partitions are driven by an explicit seed: the same seed and fraction
always yield the same partition, and no record ever appears in both subsets.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import KFold, train_test_split

from src.volatility_core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetSplit:
    """Disjoint train/test partition of a dataset.

    Attributes:
        train: Train records (load order preserved)
        test: Test records (load order preserved)
        train_fraction: Requested train fraction
        seed: Seed used for the partition
    """

    train: pd.DataFrame
    test: pd.DataFrame
    train_fraction: float
    seed: int

    @property
    def n_train(self) -> int:
        return len(self.train)

    @property
    def n_test(self) -> int:
        return len(self.test)


@dataclass(frozen=True)
class Fold:
    """One cross-validation fold, as positional indices into the train set."""

    train_idx: np.ndarray
    valid_idx: np.ndarray


def split_dataset(df: pd.DataFrame, train_fraction: float, seed: int) -> DatasetSplit:
    """Partition records into train (fraction p) and test (fraction 1 - p).

    Args:
        df: Dataset DataFrame
        train_fraction: Fraction of records in the train set, in (0, 1)
        seed: Seed for the shuffle

    Returns:
        DatasetSplit with disjoint train/test frames

    Raises:
        ConfigurationError: If the fraction is outside (0, 1) or either side would be empty
    """
    if not 0.0 < train_fraction < 1.0:
        raise ConfigurationError(f"train_fraction must be in (0, 1), got {train_fraction}")

    n = len(df)
    n_train = math.floor(train_fraction * n)
    if n_train < 1 or n_train >= n:
        raise ConfigurationError(
            f"train_fraction={train_fraction} leaves an empty train or test set for {n} records"
        )

    positions = np.arange(n)
    train_pos, test_pos = train_test_split(
        positions, train_size=train_fraction, random_state=seed, shuffle=True
    )
    train_pos = np.sort(train_pos)
    test_pos = np.sort(test_pos)

    logger.info(
        f"Split {n} records into {len(train_pos)} train / {len(test_pos)} test (seed={seed})"
    )
    return DatasetSplit(
        train=df.iloc[train_pos],
        test=df.iloc[test_pos],
        train_fraction=train_fraction,
        seed=seed,
    )


def kfold_partitions(n_records: int, n_folds: int, seed: int) -> list[Fold]:
    """Partition positions 0..n_records-1 into k shuffled folds.

    Validation folds are disjoint, differ in size by at most one record and
    together cover every position.

    Args:
        n_records: Number of train records
        n_folds: Number of folds (k)
        seed: Seed for the shuffle

    Returns:
        List of k Fold objects

    Raises:
        ConfigurationError: If n_folds < 2 or n_folds > n_records
    """
    if n_folds < 2:
        raise ConfigurationError(f"n_folds must be >= 2, got {n_folds}")
    if n_folds > n_records:
        raise ConfigurationError(
            f"n_folds={n_folds} exceeds the number of records ({n_records})"
        )

    kfold = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    return [
        Fold(train_idx=train_idx, valid_idx=valid_idx)
        for train_idx, valid_idx in kfold.split(np.arange(n_records))
    ]
