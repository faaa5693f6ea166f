"""Timing utilities for profiling pipeline stages.

Stage timings are collected into a plain dictionary that ends up in
``PipelineResult.timings`` and can be written to JSON next to the run metrics.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@contextmanager
def timed_step(
    name: str,
    timings: dict[str, Any],
    logger_instance: logging.Logger | None = None,
    meta: dict[str, Any] | None = None,
):
    """Context manager to time a code block and record timing data.

    Records start timestamp, end timestamp, and duration (in milliseconds)
    in the provided timings dictionary under the given step name.

    Args:
        name: Step name (e.g., "screen", "train")
        timings: Dictionary to store timing data (will be mutated)
        logger_instance: Optional logger instance to log step start/end
        meta: Optional dictionary of metadata to include in timing record

    Example:
        >>> timings = {}
        >>> with timed_step("screen", timings, logger):
        ...     result = screen_features(df, "vol_1y")
        >>> print(timings["screen"]["duration_ms"])
        12.5
    """
    log = logger_instance or logger

    start_ts = time.perf_counter()
    start_iso = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime())
    log.debug(f"[TIMING] Step '{name}' started at {start_iso}")

    try:
        yield
    finally:
        end_ts = time.perf_counter()
        end_iso = time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime())
        duration_ms = (end_ts - start_ts) * 1000.0

        timing_record: dict[str, Any] = {
            "start_ts": start_iso,
            "end_ts": end_iso,
            "duration_ms": duration_ms,
        }
        if meta:
            timing_record["meta"] = meta

        timings[name] = timing_record
        log.debug(f"[TIMING] Step '{name}' completed in {duration_ms:.2f}ms")


def write_timings_json(
    timings: dict[str, Any],
    output_path: Path,
    job_name: str | None = None,
) -> Path:
    """Write timing data to a JSON file.

    Args:
        timings: Dictionary of timing data (from timed_step calls)
        output_path: Path to write JSON file
        job_name: Optional job name for the output

    Returns:
        Path to written JSON file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    durations = [step.get("duration_ms", 0.0) for step in timings.values()]
    output_data: dict[str, Any] = {
        "steps": timings,
        "summary": {
            "total_steps": len(timings),
            "total_duration_ms": sum(durations),
            "max_duration_ms": max(durations) if durations else 0.0,
        },
    }
    if job_name:
        output_data["job_name"] = job_name

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(output_data, f, indent=2, ensure_ascii=False)

    logger.info(f"Timings written to {output_path}")
    return output_path
