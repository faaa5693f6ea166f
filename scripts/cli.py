# scripts/cli.py
"""Central CLI for the volatility pipeline.

Subcommands:
- make_sample: Write a synthetic sample dataset
- screen: Feature screening report (correlations, VIFs, selection)
- run: Full pipeline run (screen, split, train, evaluate, report)
- info: Show project information

Usage:
    python scripts/cli.py make_sample --output data/sample.csv
    python scripts/cli.py screen --data data/sample.csv --vif-threshold 10
    python scripts/cli.py run --data data/sample.csv --model stacked --max-workers 4
    python scripts/cli.py run --data data/sample.csv --config configs/stacked.yaml
    python scripts/cli.py info
    python scripts/cli.py --version
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from src.volatility_core import __version__
from src.volatility_core.config.constants import PredictorKind
from src.volatility_core.config.run_config import ensure_run_config, load_run_config
from src.volatility_core.config.settings import get_settings
from src.volatility_core.errors import VolatilityCoreError
from src.volatility_core.logging_config import generate_run_id, setup_logging

logger = logging.getLogger(__name__)


def _resolve(path: Path | None, default: Path) -> Path:
    if path is None:
        return default
    return path if path.is_absolute() else ROOT / path


def info_subcommand(args: argparse.Namespace) -> int:
    """Show project information subcommand.

    Args:
        args: Parsed command-line arguments (unused)

    Returns:
        Exit code (always 0)
    """
    settings = get_settings()
    print("=" * 60)
    print("Volatility Core - Project Information")
    print("=" * 60)
    print()
    print(f"Version: {__version__}")
    print(f"Python:  {sys.version.split()[0]}")
    print()
    print("Main Subcommands:")
    print("  make_sample  - Write a synthetic sample dataset")
    print("  screen       - Feature screening report (correlations, VIFs)")
    print("  run          - Full pipeline run (screen, split, train, evaluate, report)")
    print("  info         - Show this information")
    print()
    print("Predictor variants:")
    print(f"  {', '.join(k.value for k in PredictorKind)}")
    print()
    print("Directories (override with VOLCORE_* environment variables):")
    print(f"  data:    {settings.data_dir}")
    print(f"  output:  {settings.output_dir}")
    print(f"  logs:    {settings.logs_dir}")
    print()
    print("For detailed help on a subcommand:")
    print("  python scripts/cli.py <subcommand> --help")
    print()
    return 0


def make_sample_subcommand(args: argparse.Namespace) -> int:
    """Write a synthetic dataset to CSV or Parquet."""
    from src.volatility_core.data.synthetic import make_synthetic_dataset

    output = _resolve(args.output, get_settings().default_dataset_file)
    try:
        df = make_synthetic_dataset(
            n_symbols=args.n_symbols,
            n_dates=args.n_dates,
            seed=args.seed,
            missing_fraction=args.missing_fraction,
        )
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.suffix.lower() == ".parquet":
            df.to_parquet(output, index=False)
        else:
            df.to_csv(output, index=False)
    except (VolatilityCoreError, ValueError) as e:
        logger.error(f"Failed to create sample dataset: {e}")
        return 1

    logger.info(f"Wrote {len(df)} records to {output}")
    print(f"Sample dataset written: {output} ({len(df)} records)")
    return 0


def screen_subcommand(args: argparse.Namespace) -> int:
    """Screen features of a dataset and write the screening report."""
    from src.volatility_core.data.loader import load_dataset
    from src.volatility_core.reports.metrics_export import (
        export_metrics_json,
        write_screening_report_csv,
    )
    from src.volatility_core.screening.screener import screen_features

    settings = get_settings()
    data_file = _resolve(args.data, settings.default_dataset_file)
    output_dir = _resolve(args.output_dir, settings.output_dir / "screening")

    try:
        df = load_dataset(data_file, target_col=args.target)
        result = screen_features(
            df,
            target_col=args.target,
            vif_threshold=args.vif_threshold,
            min_abs_correlation=args.min_abs_correlation,
            drop_missing=not args.no_drop_missing,
        )
        report_path = write_screening_report_csv(result, output_dir / "screening.csv")
        export_metrics_json(result.to_dict(), output_dir / "screening.json")
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except VolatilityCoreError as e:
        logger.error(f"Screening failed: {e}")
        return 1

    print(result.to_frame().to_string(index=False))
    print()
    print(f"Selected features ({len(result.selected_features)}): {result.selected_features}")
    print(f"Report: {report_path}")
    return 0


def _build_run_config(args: argparse.Namespace):
    """Merge an optional config file with command-line overrides."""
    base: dict[str, Any] = {}
    if args.config is not None:
        base = load_run_config(_resolve(args.config, args.config)).model_dump()

    overrides = {
        "model": args.model,
        "seed": args.seed,
        "train_fraction": args.train_fraction,
        "n_folds": args.n_folds,
        "max_workers": args.max_workers,
        "target_col": args.target,
        "vif_threshold": args.vif_threshold,
        "permutation_repeats": args.permutation_repeats,
    }
    base.update({k: v for k, v in overrides.items() if v is not None})
    if args.no_drop_missing:
        base["drop_missing"] = False
    return ensure_run_config(base)


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the full pipeline and write metrics, predictions and plots.

    Returns:
        Exit code (0 = success, 1 = error)
    """
    from src.volatility_core.data.loader import load_dataset
    from src.volatility_core.pipeline.orchestrator import run_pipeline
    from src.volatility_core.reports.metrics_export import (
        export_metrics_json,
        write_feature_importance_csv,
        write_predictions_csv,
        write_screening_report_csv,
    )
    from src.volatility_core.utils.timing import write_timings_json

    settings = get_settings()
    run_id = generate_run_id(prefix="run")
    setup_logging(run_id=run_id, level=args.log_level)

    data_file = _resolve(args.data, settings.default_dataset_file)
    output_dir = _resolve(args.output_dir, settings.output_dir / run_id)

    try:
        config = _build_run_config(args)
        df = load_dataset(data_file, target_col=config.target_col)
        result = run_pipeline(df, config)

        export_metrics_json(result.metrics, output_dir / "metrics.json")
        export_metrics_json(result.summary(), output_dir / "summary.json")
        write_predictions_csv(result.predictions, output_dir / "predictions.csv")
        write_screening_report_csv(result.screening, output_dir / "screening.csv")
        write_feature_importance_csv(result.feature_importance, output_dir / "importance.csv")
        if result.permutation_importance is not None:
            write_feature_importance_csv(
                result.permutation_importance, output_dir / "permutation_importance.csv"
            )
        write_timings_json(result.timings, output_dir / "timings.json", job_name=run_id)

        if not args.no_plots:
            from src.volatility_core.reports.plots import write_diagnostic_plots

            write_diagnostic_plots(result, df, output_dir / "plots")
    except FileNotFoundError as e:
        logger.error(str(e))
        return 1
    except VolatilityCoreError as e:
        logger.error(f"Pipeline run failed: {type(e).__name__}: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Run interrupted by user")
        return 1

    m = result.metrics
    print(f"Run {run_id}: {result.predictor.kind.value} on {len(result.features)} features")
    print(f"  RMSE={m.rmse:.6f}  R2={m.r2:.4f}  MAE={m.mae:.6f}  (n={m.n_samples})")
    print(f"  Outputs: {output_dir}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        description="Volatility Core - Central CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a sample dataset
  python scripts/cli.py make_sample --output data/sample.csv

  # Screen features
  python scripts/cli.py screen --data data/sample.csv --vif-threshold 10

  # Run a stacked predictor with a parallel grid search
  python scripts/cli.py run --data data/sample.csv --config configs/stacked.yaml --max-workers 4

  # Show version
  python scripts/cli.py --version
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Subcommand to run", required=True)

    # info
    info_parser = subparsers.add_parser("info", help="Show project information")
    info_parser.set_defaults(func=info_subcommand)

    # make_sample
    sample_parser = subparsers.add_parser(
        "make_sample",
        help="Write a synthetic sample dataset",
        description="Generates a synthetic S&P 500-style cross-sectional dataset.",
    )
    sample_parser.add_argument(
        "--output", type=Path, default=None, metavar="FILE",
        help="Output file (.csv or .parquet, default: settings.default_dataset_file)",
    )
    sample_parser.add_argument("--n-symbols", type=int, default=50, help="Number of symbols (default: 50)")
    sample_parser.add_argument("--n-dates", type=int, default=4, help="Number of month-end dates (default: 4)")
    sample_parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    sample_parser.add_argument(
        "--missing-fraction", type=float, default=0.0,
        help="Fraction of feature cells set to missing (default: 0.0)",
    )
    sample_parser.set_defaults(func=make_sample_subcommand)

    # screen
    screen_parser = subparsers.add_parser(
        "screen",
        help="Feature screening report",
        description="Correlates candidate features with the target and computes VIFs.",
    )
    screen_parser.add_argument("--data", type=Path, default=None, metavar="FILE", help="Dataset file")
    screen_parser.add_argument("--target", type=str, default="vol_1y", help="Target column (default: vol_1y)")
    screen_parser.add_argument("--vif-threshold", type=float, default=None, help="Maximum VIF of a selected feature")
    screen_parser.add_argument(
        "--min-abs-correlation", type=float, default=0.0, help="Minimum |r| with the target (default: 0.0)"
    )
    screen_parser.add_argument(
        "--no-drop-missing", action="store_true", help="Fail on missing values instead of dropping records"
    )
    screen_parser.add_argument("--output-dir", type=Path, default=None, metavar="DIR", help="Output directory")
    screen_parser.set_defaults(func=screen_subcommand)

    # run
    run_parser = subparsers.add_parser(
        "run",
        help="Full pipeline run",
        description="Screens features, splits, trains the configured predictor and evaluates it.",
    )
    run_parser.add_argument("--data", type=Path, default=None, metavar="FILE", help="Dataset file")
    run_parser.add_argument(
        "--config", type=Path, default=None, metavar="FILE", help="Run config file (.yaml or .json)"
    )
    run_parser.add_argument(
        "--model", type=str, default=None, choices=[k.value for k in PredictorKind], help="Predictor variant"
    )
    run_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    run_parser.add_argument("--train-fraction", type=float, default=None, help="Train split fraction in (0, 1)")
    run_parser.add_argument("--n-folds", type=int, default=None, help="Cross-validation folds")
    run_parser.add_argument("--max-workers", type=int, default=None, help="Grid search worker processes")
    run_parser.add_argument("--target", type=str, default=None, help="Target column")
    run_parser.add_argument("--vif-threshold", type=float, default=None, help="Maximum VIF of a selected feature")
    run_parser.add_argument(
        "--permutation-repeats", type=int, default=None, help="Permutation importance repeats (0 = skip)"
    )
    run_parser.add_argument(
        "--no-drop-missing", action="store_true", help="Fail on missing values instead of dropping records"
    )
    run_parser.add_argument("--no-plots", action="store_true", help="Skip diagnostic plots")
    run_parser.add_argument("--output-dir", type=Path, default=None, metavar="DIR", help="Output directory")
    run_parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    run_parser.set_defaults(func=run_subcommand)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for central CLI.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command != "run":
        setup_logging(run_id=generate_run_id(prefix=args.command), level="INFO")

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
