"""
Logging and rate limit configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .base import LogFormat, LogLevel


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: LogLevel = "INFO"
    format: LogFormat = "text"
    log_file: Path | None = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        valid_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.level not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        valid_formats = ("text", "json")
        if self.format not in valid_formats:
            raise ValueError(f"Invalid log format: {self.format}. Must be one of {valid_formats}")
        if self.log_file and isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)


@dataclass
class RateLimitConfig:
    """Per-plan execution quotas."""

    enabled: bool = True
    free_daily: int = 5
    free_monthly: int = 20
    paid_monthly: int = 200
    contact_email: str = "sales@fixo.dev"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.free_daily <= 0:
            raise ValueError("free_daily must be positive")
        if self.free_monthly < self.free_daily:
            raise ValueError("free_monthly must be >= free_daily")
        if self.paid_monthly <= 0:
            raise ValueError("paid_monthly must be positive")


__all__ = ["LoggingConfig", "RateLimitConfig"]
