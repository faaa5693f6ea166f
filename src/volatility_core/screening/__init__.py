"""Feature screening (target correlation, variance inflation factors)."""
from __future__ import annotations

from src.volatility_core.screening.correlation import compute_target_correlations
from src.volatility_core.screening.screener import ScreeningResult, screen_features
from src.volatility_core.screening.vif import (
    VifResult,
    compute_vif,
    find_aliased_features,
    find_zero_variance_features,
)

__all__ = [
    "ScreeningResult",
    "VifResult",
    "compute_target_correlations",
    "compute_vif",
    "find_aliased_features",
    "find_zero_variance_features",
    "screen_features",
]
