"""Configuration management using Pydantic Settings."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

from http_lifecycle.schemas import DEFAULT_ATTEMPTS, DEFAULT_TIMEOUT_MS

USER_AGENT = "http-lifecycle/0.1"


class Settings(BaseSettings):
    """Application settings loaded from ``HTTP_LIFECYCLE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_LIFECYCLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "http-lifecycle"
    app_env: str = "development"
    debug: bool = False

    # Request defaults
    default_attempts: int = DEFAULT_ATTEMPTS
    default_timeout_ms: int = DEFAULT_TIMEOUT_MS
    disable_cache: bool = True

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
