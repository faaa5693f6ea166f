"""Export of run metrics and tables.

JSON files use deterministic key ordering (sorted alphabetically) and
normalized float values (NaN/inf converted to null), so repeated runs with the
same seed produce byte-identical files.
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from src.volatility_core.qa.evaluation import PredictionSet
from src.volatility_core.qa.metrics import RegressionMetrics
from src.volatility_core.screening.screener import ScreeningResult


def export_metrics_json(
    metrics: RegressionMetrics | dict[str, Any],
    output_path: Path | str,
) -> Path:
    """Export metrics (or any nested summary dict) to a JSON file.

    Args:
        metrics: RegressionMetrics instance or JSON-like dict
        output_path: Path to output JSON file (parent dirs are created)

    Returns:
        Path to written JSON file

    Raises:
        RuntimeError: If the file cannot be written
        ValueError: If the payload cannot be serialized
    """
    output_path = Path(output_path)
    payload = metrics.to_dict() if isinstance(metrics, RegressionMetrics) else metrics
    payload = _normalize(payload)

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except (IOError, OSError) as exc:
        raise RuntimeError(f"Failed to create output directory for metrics JSON: {output_path.parent}") from exc

    try:
        with output_path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, ensure_ascii=False)
    except (IOError, OSError) as exc:
        raise RuntimeError(f"Failed to write metrics JSON to {output_path}") from exc
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Failed to serialize metrics to JSON: {output_path}") from exc

    return output_path


def _normalize(value: Any) -> Any:
    """Recursively convert a payload to JSON-safe types (NaN/inf -> None)."""
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        return _normalize_float(float(value))
    if isinstance(value, (pd.Timestamp,)):
        return value.isoformat()
    return value


def _normalize_float(value: float | None) -> float | None:
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _write_csv(df: pd.DataFrame, output_path: Path | str) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    return output_path


def write_screening_report_csv(screening: ScreeningResult, output_path: Path | str) -> Path:
    """Write one row per candidate feature: feature, correlation, vif, status."""
    return _write_csv(screening.to_frame(), output_path)


def write_predictions_csv(predictions: PredictionSet, output_path: Path | str) -> Path:
    """Write test predictions with residuals (date, symbol, y_true, y_pred, residual)."""
    df = predictions.frame.copy()
    df["residual"] = predictions.residuals
    return _write_csv(df, output_path)


def write_feature_importance_csv(importance: pd.DataFrame, output_path: Path | str) -> Path:
    return _write_csv(importance, output_path)
