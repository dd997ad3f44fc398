# src/photocull/config/settings.py
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for analysis constants, batch fan-out, record store
selection and logging. Every field can be overridden with a
``PHOTOCULL_``-prefixed environment variable.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from photocull.logging.handlers import parse_size


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PHOTOCULL_",
        extra="ignore",
    )

    # === Batch orchestration ===
    chunk_size: int = 10
    item_timeout_seconds: float | None = None

    # === Metric calibration ===
    sharpness_divisor: float = 500.0
    contrast_divisor: float = 64.0
    max_analysis_dimension: int = 800

    # === Classification ===
    accept_threshold: float = 75.0
    reject_threshold: float = 50.0

    # === Duplicate detection ===
    similarity_threshold: float = 85.0

    # === Record store ===
    store_backend: Literal["memory", "sqlite"] = "memory"
    store_path: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("chunk_size", "max_analysis_dimension")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("sharpness_divisor", "contrast_divisor")
    @classmethod
    def validate_positive_divisor(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("calibration divisor must be > 0")
        return v

    @field_validator("item_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("item_timeout_seconds must be > 0 when set")
        return v

    @field_validator("accept_threshold", "reject_threshold", "similarity_threshold")
    @classmethod
    def validate_percentage(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError("must be within [0, 100]")
        return v

    @field_validator("log_rotation")
    @classmethod
    def validate_log_rotation(cls, v: str) -> str:
        parse_size(v)
        return v

    @field_validator("log_retention")
    @classmethod
    def validate_log_retention(cls, v: int) -> int:
        if v < 0:
            raise ValueError("log_retention must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.reject_threshold >= self.accept_threshold:
            errors.append("REJECT_THRESHOLD must be < ACCEPT_THRESHOLD")

        if self.store_backend == "sqlite" and self.store_path is None:
            errors.append("STORE_BACKEND=sqlite requires STORE_PATH")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-batch config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
