# tests/test_cli.py
"""Tests for central CLI (scripts/cli.py)."""

from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

import pandas as pd
import pytest
import yaml

# Add repo root to path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

pytestmark = pytest.mark.smoke


def test_cli_parser_creation():
    """Test that argument parser has all subcommands."""
    from scripts.cli import create_parser

    parser = create_parser()
    help_text = parser.format_help()
    for command in ("make_sample", "screen", "run", "info"):
        assert command in help_text


def test_cli_run_arguments_parse():
    from scripts.cli import create_parser

    args = create_parser().parse_args(
        ["run", "--data", "x.csv", "--model", "stacked", "--max-workers", "2", "--no-plots"]
    )
    assert args.command == "run"
    assert args.model == "stacked"
    assert args.max_workers == 2
    assert args.no_plots is True
    assert args.seed is None


def test_cli_rejects_unknown_model():
    from scripts.cli import create_parser

    with pytest.raises(SystemExit):
        create_parser().parse_args(["run", "--model", "svm"])


def test_cli_version():
    """Test --version via subprocess."""
    result = subprocess.run(
        [sys.executable, str(ROOT / "scripts" / "cli.py"), "--version"],
        cwd=str(ROOT),
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0
    assert "0.1.0" in result.stdout


def test_cli_info(capsys):
    from scripts.cli import main

    assert main(["info"]) == 0
    assert "make_sample" in capsys.readouterr().out


def test_cli_make_sample_screen_and_run(tmp_path: Path, capsys):
    from scripts.cli import main

    data_file = tmp_path / "sample.csv"
    assert main(["make_sample", "--output", str(data_file), "--n-symbols", "20", "--n-dates", "4"]) == 0
    assert len(pd.read_csv(data_file)) == 80

    screen_dir = tmp_path / "screen"
    assert main(["screen", "--data", str(data_file), "--output-dir", str(screen_dir)]) == 0
    assert (screen_dir / "screening.csv").exists()
    assert "selected_features" in json.loads((screen_dir / "screening.json").read_text(encoding="utf-8"))

    config_file = tmp_path / "run.yaml"
    config_file.write_text(yaml.safe_dump({"model": "linear", "seed": 3}), encoding="utf-8")
    run_dir = tmp_path / "run"
    exit_code = main(
        [
            "run",
            "--data", str(data_file),
            "--config", str(config_file),
            "--train-fraction", "0.75",
            "--no-plots",
            "--output-dir", str(run_dir),
        ]
    )
    assert exit_code == 0

    for name in ("metrics.json", "summary.json", "predictions.csv", "screening.csv", "importance.csv", "timings.json"):
        assert (run_dir / name).exists(), name

    summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["config"]["seed"] == 3
    assert summary["config"]["train_fraction"] == 0.75
    assert summary["n_test"] == 20
    assert "RMSE=" in capsys.readouterr().out


def test_cli_run_missing_dataset_returns_error(tmp_path: Path):
    from scripts.cli import main

    assert main(["run", "--data", str(tmp_path / "missing.csv"), "--no-plots"]) == 1


def test_cli_run_invalid_config_returns_error(tmp_path: Path):
    from scripts.cli import main
    from src.volatility_core.data.synthetic import make_synthetic_dataset

    data_file = tmp_path / "sample.csv"
    make_synthetic_dataset(n_symbols=5, n_dates=2).to_csv(data_file, index=False)

    assert main(["run", "--data", str(data_file), "--train-fraction", "1.5", "--no-plots"]) == 1
