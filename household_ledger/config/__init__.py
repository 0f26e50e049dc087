"""Configuration package."""

from household_ledger.config.settings import (
    PREVIEW_STATE_FILENAME,
    AppSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "PREVIEW_STATE_FILENAME",
    "AppSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
