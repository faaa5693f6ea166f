# src/volatility_core/logging_config.py
"""Central logging configuration for the volatility pipeline.

This module provides a centralized logging setup that:
- Configures console and file handlers
- Tags every file record with the Run-ID of the pipeline invocation
- Creates one log file per run in the logs directory

Usage:
    >>> from src.volatility_core.logging_config import generate_run_id, setup_logging
    >>> setup_logging(run_id=generate_run_id("run"), level="INFO")
    >>> import logging
    >>> logger = logging.getLogger(__name__)
    >>> logger.info("Pipeline started")
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Literal
from uuid import uuid4


class RunIDFilter(logging.Filter):
    """Filter to add Run-ID to all log records."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id  # type: ignore[attr-defined]
        return True


def setup_logging(
    run_id: str | None = None,
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    log_dir: Path | str | None = None,
) -> Path:
    """Setup centralized logging configuration with console and file handlers.

    Args:
        run_id: Optional Run-ID for tracking execution runs. If None, generates
            a timestamp-based ID (run_YYYYMMDD_HHMMSS).
        level: Logging level (DEBUG, INFO, WARNING, ERROR), default: INFO
        log_dir: Optional log directory path. If None, uses Settings.logs_dir.

    Returns:
        Path to the log file of this run

    Side effects:
        - Creates the log directory if it doesn't exist
        - Replaces the root logger's handlers (console + file)
    """
    if run_id is None:
        run_id = f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    if log_dir is None:
        from src.volatility_core.config.settings import get_settings

        log_dir = get_settings().logs_dir
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"{run_id}.log"
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    # Console: [LEVEL] message; file: timestamp | level | logger | run_id | message
    console_formatter = logging.Formatter("[%(levelname)s] %(message)s")
    file_formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)-30s | [%(run_id)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(console_formatter)

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(file_formatter)
    file_handler.addFilter(RunIDFilter(run_id))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        handler.close()
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info(
        f"Logging initialized: Run-ID={run_id}, Level={level}, Log file={log_file}"
    )
    return log_file


def generate_run_id(prefix: str = "run") -> str:
    """Generate a unique Run-ID.

    Args:
        prefix: Optional prefix for the Run-ID (default: "run")

    Returns:
        Run-ID string in format: {prefix}_{YYYYMMDD}_{HHMMSS}_{uuid4_short}

    Example:
        >>> generate_run_id("screen")
        'screen_20250115_143022_a1b2c3d4'
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    uuid_short = uuid4().hex[:8]
    return f"{prefix}_{timestamp}_{uuid_short}"
