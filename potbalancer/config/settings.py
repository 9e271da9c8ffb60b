"""
Configuration Management for Pot Balancer

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Per-account balancing settings (target balance, pot, dry run) are NOT here;
they live in account storage because each connected account has its own.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MonzoSettings(BaseSettings):
    """Monzo API client configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONZO_",
        extra="ignore"
    )

    client_id: str = Field(
        ...,
        description="OAuth client ID of the Monzo developer app"
    )
    client_secret: str = Field(
        ...,
        description="OAuth client secret of the Monzo developer app"
    )
    api_base_url: str = Field(
        default="https://api.monzo.com",
        description="Base URL of the Monzo API"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        ge=1.0,
        le=60.0,
        description="Timeout for a single HTTP request"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a request that fails at the transport level"
    )

    @field_validator('api_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class StorageSettings(BaseSettings):
    """Account storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    database_path: str = Field(
        default="pot_balancer.db",
        description="Path to the SQLite database holding users and accounts"
    )


class CorrectionSettings(BaseSettings):
    """Balance correction behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="CORRECTION_",
        extra="ignore"
    )

    lookup_missing_amount: bool = Field(
        default=True,
        description=(
            "Fetch the transaction when a webhook carries no amount, "
            "instead of falling back to the balance-diff path"
        )
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        description="Minimum level for emitted log events"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Only accept level names the logging module knows."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def monzo(self) -> MonzoSettings:
        return MonzoSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def correction(self) -> CorrectionSettings:
        return CorrectionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus an
    "<name>_error" entry for each section that failed to load.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("monzo", "storage", "correction", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
