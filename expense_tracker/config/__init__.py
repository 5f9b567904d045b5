"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    ReportSettings,
    Settings,
    StorageSettings,
    get_settings,
    resolve_timezone,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "ReportSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "resolve_timezone",
    "validate_all_settings",
]
