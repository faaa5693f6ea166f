"""Diagnostic charts for a pipeline run.

All charts are written as PNG files with the non-interactive Agg backend.
matplotlib is imported lazily so the rest of the package works without it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from src.volatility_core.data.schema import SECTOR_COL
from src.volatility_core.qa.evaluation import PredictionSet

if TYPE_CHECKING:
    from src.volatility_core.pipeline.orchestrator import PipelineResult

logger = logging.getLogger(__name__)


def _pyplot():
    # Import matplotlib only when needed (lazy import)
    try:
        import matplotlib
    except ImportError:
        raise ImportError(
            "matplotlib is required for diagnostic plots. Install with: pip install matplotlib"
        )
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    return plt


def _save(fig, output_path: Path | str) -> Path:
    plt = _pyplot()
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    logger.info(f"Saved plot to {output_path}")
    return output_path


def _barh(values: pd.Series, title: str, xlabel: str, output_path, color="steelblue", threshold=None):
    plt = _pyplot()
    values = values.iloc[::-1]  # largest at the top
    fig, ax = plt.subplots(figsize=(8, max(3.0, 0.35 * len(values) + 1.5)))
    ax.barh([str(i) for i in values.index], values.to_numpy(dtype="float64"), color=color)
    if threshold is not None:
        ax.axvline(threshold, color="firebrick", linestyle="--", linewidth=1, label=f"threshold={threshold}")
        ax.legend(loc="lower right", fontsize=9)
    ax.set_xlabel(xlabel, fontsize=11)
    ax.set_title(title, fontsize=13, fontweight="bold")
    ax.grid(True, axis="x", alpha=0.3)
    return _save(fig, output_path)


def plot_correlation_bar(correlations: pd.Series, output_path: Path | str) -> Path:
    """Bar chart of Pearson r with the target, one bar per feature."""
    colors = ["seagreen" if r >= 0 else "indianred" for r in correlations.iloc[::-1]]
    return _barh(correlations, "Correlation with target", "Pearson r", output_path, color=colors)


def plot_vif_bar(vif: pd.Series, output_path: Path | str, threshold: float | None = None) -> Path:
    """Bar chart of variance inflation factors."""
    return _barh(
        vif.sort_values(ascending=False), "Variance inflation factors", "VIF", output_path,
        threshold=threshold,
    )


def plot_importance_bar(importance: pd.DataFrame, output_path: Path | str, top_n: int = 20) -> Path:
    """Bar chart of variable importance (columns feature, importance or importance_mean)."""
    col = "importance" if "importance" in importance.columns else "importance_mean"
    values = importance.set_index("feature")[col].head(top_n)
    return _barh(values, "Variable importance", col, output_path)


def plot_predicted_vs_actual(predictions: PredictionSet, output_path: Path | str) -> Path:
    """Scatter of predicted vs. actual volatility with the identity line."""
    plt = _pyplot()
    y_true, y_pred = predictions.y_true, predictions.y_pred

    fig, ax = plt.subplots(figsize=(7, 7))
    ax.scatter(y_true, y_pred, s=14, alpha=0.6, color="steelblue")
    lo = float(np.nanmin([y_true.min(), y_pred.min()]))
    hi = float(np.nanmax([y_true.max(), y_pred.max()]))
    ax.plot([lo, hi], [lo, hi], "k--", linewidth=1, label="Perfect prediction")
    ax.set_xlabel("Actual volatility", fontsize=11)
    ax.set_ylabel("Predicted volatility", fontsize=11)
    ax.set_title(f"Predicted vs. actual ({predictions.name})", fontsize=13, fontweight="bold")
    ax.legend(loc="best", fontsize=9)
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path)


def plot_residual_histogram(predictions: PredictionSet, output_path: Path | str, bins: int = 30) -> Path:
    plt = _pyplot()
    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(predictions.residuals, bins=bins, color="slategray", edgecolor="white")
    ax.axvline(0.0, color="black", linestyle="--", linewidth=1)
    ax.set_xlabel("Residual (actual - predicted)", fontsize=11)
    ax.set_ylabel("Records", fontsize=11)
    ax.set_title("Residual distribution", fontsize=13, fontweight="bold")
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path)


def plot_sector_pie(dataset: pd.DataFrame, output_path: Path | str, sector_col: str = SECTOR_COL) -> Path:
    """Pie chart of record counts per sector."""
    plt = _pyplot()
    counts = dataset[sector_col].fillna("Unknown").value_counts()
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.pie(counts.to_numpy(), labels=[str(s) for s in counts.index], autopct="%1.1f%%", startangle=90)
    ax.set_title("Records by sector", fontsize=13, fontweight="bold")
    ax.axis("equal")
    return _save(fig, output_path)


def write_diagnostic_plots(
    result: "PipelineResult",
    dataset: pd.DataFrame | None,
    output_dir: Path | str,
) -> dict[str, Path]:
    """Write every diagnostic chart of a run.

    Args:
        result: Finished pipeline run
        dataset: Loaded dataset (for the sector pie; skipped if None or no sector column)
        output_dir: Directory for the PNG files

    Returns:
        Mapping chart name -> written path
    """
    output_dir = Path(output_dir)
    paths: dict[str, Path] = {}

    paths["correlation"] = plot_correlation_bar(result.screening.correlations, output_dir / "correlation.png")
    if not result.screening.vif.empty:
        paths["vif"] = plot_vif_bar(
            result.screening.vif, output_dir / "vif.png", threshold=result.config.vif_threshold
        )
    paths["predicted_vs_actual"] = plot_predicted_vs_actual(result.predictions, output_dir / "predicted_vs_actual.png")
    paths["residuals"] = plot_residual_histogram(result.predictions, output_dir / "residuals.png")
    if not result.feature_importance.empty:
        paths["importance"] = plot_importance_bar(result.feature_importance, output_dir / "importance.png")
    if result.permutation_importance is not None and not result.permutation_importance.empty:
        paths["permutation_importance"] = plot_importance_bar(
            result.permutation_importance, output_dir / "permutation_importance.png"
        )
    if dataset is not None and SECTOR_COL in dataset.columns:
        paths["sector"] = plot_sector_pie(dataset, output_dir / "sector.png")

    logger.info(f"Wrote {len(paths)} diagnostic plots to {output_dir}")
    return paths
