# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for every tunable of the detection flow: radii,
accuracy bounds, timeouts, retry schedule, cache sizing and privacy toggles.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Detection radii (meters) ===
    max_detection_radius_m: float = 500.0
    high_confidence_radius_m: float = 50.0
    medium_confidence_radius_m: float = 150.0

    # === Positioning accuracy (meters) ===
    accuracy_threshold_m: float = 20.0
    min_accuracy_m: float = 100.0

    # === Timing ===
    detection_timeout_s: float = 10.0
    corroboration_timeout_s: float = 2.0
    cache_lookup_budget_ms: int = 100
    observation_staleness_s: float = 60.0
    permission_request_timeout_s: float = 10.0
    result_reuse_window_s: float = 5.0

    # === Retry ===
    retry_schedule: str = "1,2,5"

    # === Cache ===
    cache_backend: Literal["json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.sitesense/cache")
    cache_redis_url: str = ""
    cache_retention_days: int = 30
    cache_max_entries: int = 100

    # === Privacy ===
    allow_wifi_fingerprinting: bool = True
    allow_location_caching: bool = True
    anonymize_location_data: bool = True
    fingerprint_salt: str = ""

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("cache_max_entries", "cache_retention_days")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("retry_schedule")
    @classmethod
    def validate_retry_schedule(cls, v: str) -> str:  # noqa: N805
        try:
            delays = [float(p) for p in v.split(",") if p.strip()]
        except ValueError as e:
            raise ValueError(f"retry_schedule must be comma-separated seconds: {v!r}") from e
        if any(d < 0 for d in delays):
            raise ValueError("retry_schedule delays must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if not (
            0
            < self.high_confidence_radius_m
            <= self.medium_confidence_radius_m
            <= self.max_detection_radius_m
        ):
            errors.append(
                "radii must satisfy 0 < HIGH_CONFIDENCE_RADIUS_M <= "
                "MEDIUM_CONFIDENCE_RADIUS_M <= MAX_DETECTION_RADIUS_M"
            )

        if not 0 < self.accuracy_threshold_m <= self.min_accuracy_m:
            errors.append("ACCURACY_THRESHOLD_M must be > 0 and <= MIN_ACCURACY_M")

        for name in (
            "detection_timeout_s",
            "corroboration_timeout_s",
            "permission_request_timeout_s",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be > 0")

        if self.corroboration_timeout_s > self.detection_timeout_s:
            errors.append("CORROBORATION_TIMEOUT_S must be <= DETECTION_TIMEOUT_S")

        if self.cache_lookup_budget_ms <= 0:
            errors.append("CACHE_LOOKUP_BUDGET_MS must be > 0")

        if self.result_reuse_window_s < 0:
            errors.append("RESULT_REUSE_WINDOW_S must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def retry_schedule_list(self) -> list[float]:
        """Parse comma-separated backoff delays (seconds)."""
        return [float(p.strip()) for p in self.retry_schedule.split(",") if p.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-session config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
