"""Utility modules for volatility_core."""

from src.volatility_core.utils.random_state import set_global_seed
from src.volatility_core.utils.timing import timed_step, write_timings_json

__all__ = ["timed_step", "write_timings_json", "set_global_seed"]
