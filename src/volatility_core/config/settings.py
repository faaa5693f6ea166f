"""Central settings configuration using Pydantic Settings.

Directory layout for inputs, outputs and logs. Values can be overridden via
environment variables with the VOLCORE_ prefix (e.g. VOLCORE_OUTPUT_DIR).

Usage:
    >>> from src.volatility_core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.output_dir)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# config/settings.py -> config -> volatility_core -> src -> repo root
_BASE_DIR = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Central settings for the volatility pipeline.

    Attributes:
        base_dir: Repository root directory
        data_dir: Directory for input datasets
        output_dir: Directory for metrics, predictions and plots
        logs_dir: Directory for per-run log files
        default_dataset_file: Dataset loaded by the CLI when no path is given
    """

    base_dir: Path = Field(default=_BASE_DIR, description="Repository root directory")
    data_dir: Path = Field(
        default=_BASE_DIR / "data", description="Directory for input datasets"
    )
    output_dir: Path = Field(
        default=_BASE_DIR / "output",
        description="Directory for metrics, predictions and plots",
    )
    logs_dir: Path = Field(
        default=_BASE_DIR / "logs", description="Directory for log files"
    )
    default_dataset_file: Path = Field(
        default=_BASE_DIR / "data" / "sp500_volatility.csv",
        description="Dataset loaded when no explicit path is given",
    )

    model_config = SettingsConfigDict(
        env_prefix="VOLCORE_",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings, resolving unset directories relative to base_dir."""
        if "base_dir" in kwargs:
            base = Path(kwargs["base_dir"]).resolve()
            kwargs.setdefault("data_dir", base / "data")
            kwargs.setdefault("output_dir", base / "output")
            kwargs.setdefault("logs_dir", base / "logs")
            kwargs.setdefault("default_dataset_file", base / "data" / "sp500_volatility.csv")
        super().__init__(**kwargs)

    def model_post_init(self, __context) -> None:
        """Resolve all paths to absolute paths."""
        self.base_dir = self.base_dir.resolve()
        self.data_dir = self.data_dir.resolve()
        self.output_dir = self.output_dir.resolve()
        self.logs_dir = self.logs_dir.resolve()
        self.default_dataset_file = self.default_dataset_file.resolve()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance (cached after first call)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
