"""Configuration management using Pydantic Settings.

This module provides centralized configuration for the ranking engine,
supporting environment variables and .env file loading. Training defaults
live here so that batch runs and ad-hoc CLI calls agree on them.

Example:
    >>> from gshl_rank.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.min_sample_size)
    50
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables take precedence over .env file values.

    Attributes:
        db_path: Path to the SQLite row store.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory for log files.
        model_dir: Directory for versioned ranking models.
        min_sample_size: Minimum lines per model key before a key is trained.
        outlier_threshold: Z-score beyond which composite scores are trimmed.
        smoothing_factor: Exponential smoothing alpha for cross-season weights.
        use_adaptive_weights: Whether to scale weights by outcome correlation.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Row store
    db_path: str = Field(
        default="data/gshl.db",
        alias="GSHL_DB_PATH",
        description="Path to SQLite row store file",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    log_dir: str = Field(
        default="logs",
        alias="LOG_DIR",
        description="Directory for log files",
    )

    # Model storage
    model_dir: str = Field(
        default="data/models",
        alias="MODEL_DIR",
        description="Directory for versioned ranking models",
    )

    # Training
    min_sample_size: int = Field(
        default=50,
        alias="MIN_SAMPLE_SIZE",
        ge=1,
        description="Minimum stat lines required to train a model key",
    )
    outlier_threshold: float = Field(
        default=4.0,
        alias="OUTLIER_THRESHOLD",
        gt=0.0,
        description="Z-score threshold for composite outlier trimming",
    )
    smoothing_factor: float = Field(
        default=0.3,
        alias="SMOOTHING_FACTOR",
        ge=0.0,
        le=1.0,
        description="Exponential smoothing alpha for cross-season weights",
    )
    use_adaptive_weights: bool = Field(
        default=False,
        alias="USE_ADAPTIVE_WEIGHTS",
        description="Scale category weights by correlation with outcomes",
    )

    @field_validator("db_path", "log_dir", "model_dir")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Ensure path strings are valid."""
        if not v or v.isspace():
            raise ValueError("Path cannot be empty or whitespace")
        return v

    @property
    def db_path_obj(self) -> Path:
        """Return database path as Path object."""
        return Path(self.db_path)

    @property
    def model_dir_obj(self) -> Path:
        """Return model directory as Path object."""
        return Path(self.model_dir)

    @property
    def log_dir_obj(self) -> Path:
        """Return log directory as Path object."""
        return Path(self.log_dir)

    def ensure_directories(self) -> None:
        """Create required directories if they don't exist."""
        self.db_path_obj.parent.mkdir(parents=True, exist_ok=True)
        self.model_dir_obj.mkdir(parents=True, exist_ok=True)
        self.log_dir_obj.mkdir(parents=True, exist_ok=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
