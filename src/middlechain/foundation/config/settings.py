"""Settings for chains and logging, read from MIDDLECHAIN_* variables.

Values come from the process environment or a local `.env` file and are
validated by pydantic-settings. `get_settings()` caches a single instance.

Example:
    >>> from middlechain.foundation.config import get_settings
    >>> get_settings().performance_monitoring
    False
    >>> get_settings().logging.level
    'INFO'

    # MIDDLECHAIN_PERFORMANCE_MONITORING=true enables stats on new chains
    # MIDDLECHAIN_LOG_LEVEL=debug is accepted and upper-cased
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Level and output format for the middlechain log handler."""

    model_config = SettingsConfigDict(
        env_prefix="MIDDLECHAIN_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "text"

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class MiddlewareSettings(BaseSettings):
    """Root settings for middlechain.

    Loads configuration from environment variables with MIDDLECHAIN_ prefix.

    Example environment variables:
        MIDDLECHAIN_PERFORMANCE_MONITORING=true
        MIDDLECHAIN_CONTINUE_ON_ERROR=false
        MIDDLECHAIN_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="MIDDLECHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    performance_monitoring: bool = Field(default=False, description="Record per-handler stats on new chains")
    continue_on_error: bool = Field(default=True, description="Reserved; does not alter dispatch")

    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> MiddlewareSettings:
    """Get the global settings instance (cached)."""
    return MiddlewareSettings()


def clear_settings_cache() -> None:
    """Drop the cached settings so the next `get_settings()` re-reads the environment."""
    get_settings.cache_clear()
