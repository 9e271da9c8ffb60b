"""Configuration package."""

from potbalancer.config.settings import (
    AppSettings,
    CorrectionSettings,
    MonzoSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CorrectionSettings",
    "MonzoSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
