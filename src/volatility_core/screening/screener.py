"""Feature screening: target correlation plus VIF-based feature selection.

Workflow:
    1. Pick candidate features (numeric, non-identifier, non-target columns)
    2. Drop records with missing values in the candidates or target
    3. Correlate each candidate with the target
    4. Compute VIFs, excluding zero-variance and aliased features
    5. Optionally remove the highest-VIF feature until all VIFs are below a threshold
    6. Optionally remove features weakly correlated with the target

Screening runs on the whole loaded dataset, before the train/test split, so
the feature selection also sees the records that later form the test set.
Model fitting, fold scoring and stacking use train records only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import pandas as pd

from src.volatility_core.data.cleaning import (
    MissingValueReport,
    drop_incomplete_records,
    require_complete_records,
)
from src.volatility_core.data.schema import TARGET_COL, numeric_feature_columns
from src.volatility_core.errors import DataError
from src.volatility_core.screening.correlation import compute_target_correlations
from src.volatility_core.screening.vif import compute_vif
from src.volatility_core.utils.dataframe import ensure_cols

logger = logging.getLogger(__name__)

EXCLUDED_HIGH_VIF = "high_vif"
EXCLUDED_LOW_CORRELATION = "low_correlation"


@dataclass
class ScreeningResult:
    """Outcome of feature screening.

    Attributes:
        target_col: Target column name
        correlations: Pearson r per candidate feature, ordered by |r| descending
        vif: VIF per feature with a defined VIF (first pass, all candidates)
        excluded: Mapping feature -> exclusion reason
        selected_features: Selected FeatureSet, in correlation order
        missing_report: Records dropped for missing values before screening
    """

    target_col: str
    correlations: pd.Series
    vif: pd.Series
    excluded: dict[str, str] = field(default_factory=dict)
    selected_features: list[str] = field(default_factory=list)
    missing_report: MissingValueReport | None = None

    def to_frame(self) -> pd.DataFrame:
        """One row per candidate feature: feature, correlation, vif, status."""
        rows = []
        for feature, r in self.correlations.items():
            rows.append(
                {
                    "feature": feature,
                    "correlation": float(r),
                    "vif": float(self.vif[feature]) if feature in self.vif.index else None,
                    "status": "selected"
                    if feature in self.selected_features
                    else self.excluded.get(feature, "excluded"),
                }
            )
        return pd.DataFrame(rows, columns=["feature", "correlation", "vif", "status"])

    def to_dict(self) -> dict[str, Any]:
        return {
            "target_col": self.target_col,
            "selected_features": list(self.selected_features),
            "excluded": dict(self.excluded),
            "missing": self.missing_report.to_dict() if self.missing_report else None,
        }


def _prune_high_vif(
    df: pd.DataFrame,
    vif: pd.Series,
    threshold: float,
    excluded: dict[str, str],
) -> list[str]:
    """Iteratively drop the highest-VIF feature until all VIFs <= threshold."""
    current = vif
    while not current.empty and float(current.max()) > threshold:
        worst = str(current.idxmax())
        logger.info(f"Dropping '{worst}' (VIF={current[worst]:.2f} > {threshold})")
        excluded[worst] = EXCLUDED_HIGH_VIF
        remaining = [f for f in current.index if f != worst]
        result = compute_vif(df, remaining)
        for f, reason in result.excluded.items():
            excluded.setdefault(f, reason)
        current = result.vif
    return list(current.index)


def screen_features(
    df: pd.DataFrame,
    target_col: str = TARGET_COL,
    features: Sequence[str] | None = None,
    vif_threshold: float | None = None,
    min_abs_correlation: float = 0.0,
    drop_missing: bool = True,
) -> ScreeningResult:
    """Screen candidate features by target correlation and multicollinearity.

    Args:
        df: Dataset DataFrame
        target_col: Target column name
        features: Candidate features (None = all numeric non-identifier columns)
        vif_threshold: Optional maximum VIF of a selected feature
        min_abs_correlation: Minimum |r| with the target of a selected feature
        drop_missing: Drop incomplete records (False = raise DataError)

    Returns:
        ScreeningResult

    Raises:
        DataError: If columns are missing, non-numeric, or no records remain
    """
    if features is None:
        features = numeric_feature_columns(df, target_col)
    features = [f for f in features if f != target_col]
    ensure_cols(df, features + [target_col])

    non_numeric = [
        c for c in features + [target_col] if not pd.api.types.is_numeric_dtype(df[c])
    ]
    if non_numeric:
        raise DataError(f"Non-numeric columns cannot be screened: {non_numeric}")
    if not features:
        raise DataError("No candidate feature columns to screen")

    columns = features + [target_col]
    if drop_missing:
        clean, missing_report = drop_incomplete_records(df, columns)
    else:
        clean = require_complete_records(df, columns)
        missing_report = MissingValueReport(len(df), len(df))
    if clean.empty:
        raise DataError("No complete records left to screen")

    correlations = compute_target_correlations(clean, features, target_col)
    vif_result = compute_vif(clean, features)
    excluded = dict(vif_result.excluded)

    if vif_threshold is not None:
        kept = _prune_high_vif(clean, vif_result.vif, vif_threshold, excluded)
    else:
        kept = list(vif_result.vif.index)

    for f in kept:
        if abs(float(correlations[f])) < min_abs_correlation:
            excluded[f] = EXCLUDED_LOW_CORRELATION

    selected = [f for f in correlations.index if f in kept and f not in excluded]

    if not selected:
        logger.warning(
            f"Screening selected no features from {len(features)} candidates; "
            f"exclusions: {excluded}"
        )
    else:
        logger.info(
            f"Screening selected {len(selected)}/{len(features)} features "
            f"(top: {selected[:5]})"
        )

    return ScreeningResult(
        target_col=target_col,
        correlations=correlations,
        vif=vif_result.vif,
        excluded=excluded,
        selected_features=selected,
        missing_report=missing_report,
    )
