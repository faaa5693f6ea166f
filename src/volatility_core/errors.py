"""Exception hierarchy for the volatility pipeline.

Propagation policy:
    - DataError raised for single records during screening is handled locally
      by dropping the record; elsewhere it surfaces to the caller.
    - ConfigurationError aborts the run immediately.
    - NumericError aborts only the affected diagnostic (e.g. one feature's VIF).
    - PipelineStateError signals a step invoked out of order.
"""
from __future__ import annotations


class VolatilityCoreError(Exception):
    """Base class for all errors raised by volatility_core."""
    pass


class DataError(VolatilityCoreError, ValueError):
    """Raised for missing or malformed columns and records with missing values."""
    pass


class ConfigurationError(VolatilityCoreError, ValueError):
    """Raised for invalid run configuration.

    Examples: empty hyperparameter grid, split fraction outside (0, 1),
    fold count exceeding the record count.
    """
    pass


class NumericError(VolatilityCoreError, ArithmeticError):
    """Raised when a diagnostic is numerically undefined.

    Examples: zero-variance feature feeding VIF, degenerate auxiliary
    regression with a non-invertible design matrix.
    """
    pass


class PipelineStateError(VolatilityCoreError, RuntimeError):
    """Raised when a pipeline step is invoked from the wrong stage."""
    pass
