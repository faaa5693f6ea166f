"""Run reports: metrics/tables export and diagnostic plots."""

from src.volatility_core.reports.metrics_export import (
    export_metrics_json,
    write_feature_importance_csv,
    write_predictions_csv,
    write_screening_report_csv,
)

__all__ = [
    "export_metrics_json",
    "write_feature_importance_csv",
    "write_predictions_csv",
    "write_screening_report_csv",
]
