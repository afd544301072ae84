"""
Configuration Management

Centralized configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Config:
    """Application configuration."""

    # Environment
    ENVIRONMENT = os.environ.get("STROMCOLLECT_ENV", "development")

    # Data directories
    DATA_DIR = Path(os.environ.get("STROMCOLLECT_DATA_DIR", "./data"))
    DATABASE_PATH = Path(
        os.environ.get("STROMCOLLECT_DB", str(DATA_DIR / "collections.db"))
    )
    # Empty string disables the event log
    EVENT_LOG = os.environ.get("STROMCOLLECT_EVENT_LOG", str(DATA_DIR / "events.jsonl"))

    # Export
    EXPORT_DIR = Path(os.environ.get("STROMCOLLECT_EXPORT_DIR", "./exports"))
    EXPORT_PREFIX = os.environ.get("STROMCOLLECT_EXPORT_PREFIX", "StromCollect_Export")

    # Logging
    LOG_LEVEL = os.environ.get("STROMCOLLECT_LOG_LEVEL", "INFO")
    LOG_JSON = os.environ.get("STROMCOLLECT_LOG_JSON", "false").lower() == "true"

    @classmethod
    def validate(cls):
        """Validate configuration and raise errors for unusable values."""
        if cls.LOG_LEVEL.upper() not in _LOG_LEVELS:
            raise ValueError(
                f"STROMCOLLECT_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}, "
                f"got {cls.LOG_LEVEL!r}"
            )
        if not cls.EXPORT_PREFIX.strip():
            raise ValueError("STROMCOLLECT_EXPORT_PREFIX must not be empty")

    @classmethod
    def event_log_path(cls):
        """Return the event log path, or None when the log is disabled."""
        return Path(cls.EVENT_LOG) if cls.EVENT_LOG else None


def get_config() -> Config:
    """Get validated configuration."""
    Config.validate()
    return Config
