"""Configuration package for volatility_core.

This package provides:
- `constants.py`: Enums and default values
- `run_config.py`: Per-run configuration (RunConfig)
- `settings.py`: Pydantic Settings-based directory configuration
"""
from __future__ import annotations

from src.volatility_core.config.constants import ModelFamily, PredictorKind
from src.volatility_core.config.run_config import RunConfig, ensure_run_config, load_run_config
from src.volatility_core.config.settings import Settings, get_settings, reset_settings

__all__ = [
    "ModelFamily",
    "PredictorKind",
    "RunConfig",
    "ensure_run_config",
    "load_run_config",
    "Settings",
    "get_settings",
    "reset_settings",
]
