"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each concern gets its own settings class with an env prefix, and the
root Settings object loads them lazily so a partially configured
environment (e.g. no Google Sheets credentials) still starts.
"""

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from tzlocal import get_localzone

from expense_tracker.log import get_logger

logger = get_logger(__name__)


def _env_config(prefix: str = "") -> SettingsConfigDict:
    """Environment variables first, then a .env file in the working directory."""
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class StorageSettings(BaseSettings):
    """Record store backend selection."""

    model_config = _env_config("STORAGE_")

    backend: str = Field(
        default="sqlite",
        pattern="^(sqlite|sheets|memory)$",
        description="Which record store to use"
    )
    sqlite_path: str = Field(
        default="data/expenses.db",
        description="Path of the SQLite database file"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = _env_config("GOOGLE_SHEETS_")

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet holding expense rows"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing file is only logged; it may be mounted after startup."""
        if not Path(v).exists():
            logger.warning("sheets_credentials_missing", credentials_path=v)
        return v


class ReportSettings(BaseSettings):
    """Reporting and export configuration."""

    model_config = _env_config("REPORT_")

    default_period_days: int = Field(
        default=7,
        ge=1,
        le=366,
        description="Report window length used when none is chosen"
    )
    period_options: str = Field(
        default="7,14,30,90",
        description="Comma-separated list of selectable report periods"
    )
    timezone: str = Field(
        default="",
        description="IANA timezone used for day boundaries (empty = system local)"
    )
    currency_symbol: str = Field(
        default="₹",
        max_length=5,
        description="Symbol shown in text reports and share summaries"
    )
    export_dir: str = Field(
        default="exports",
        description="Directory where exported reports are written"
    )
    export_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=30.0,
        description="Artificial delay before each export (demo of slow exports)"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA names early instead of at report time."""
        v = v.strip()
        if v:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError):
                raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def period_options_list(self) -> list[int]:
        """Get selectable periods as a sorted list of ints."""
        options = {int(p) for p in self.period_options.split(",") if p.strip()}
        options.add(self.default_period_days)
        return sorted(options)

    @property
    def tz(self) -> tzinfo:
        """Timezone used for calendar-day bucketing."""
        return resolve_timezone(self.timezone)


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = _env_config()

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for application logs"
    )

    # Entry form
    notes_max_length: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum length of the notes field"
    )
    default_category: str = Field(
        default="Staff",
        description="Category preselected in the entry form"
    )
    expense_categories: str = Field(
        default="Staff,Travel,Food,Utility,Office Supplies,Marketing,Other",
        description="Comma-separated list of suggested categories"
    )

    @property
    def categories_list(self) -> list[str]:
        """Get suggested categories as a list."""
        return [c.strip() for c in self.expense_categories.split(",") if c.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = _env_config()

    # Note: These are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def report(self) -> ReportSettings:
        return ReportSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


def resolve_timezone(name: Optional[str] = None) -> tzinfo:
    """
    Resolve a timezone name to a tzinfo.

    An empty name means the machine's local zone as a full IANA zone,
    so dates on the far side of a DST change still land on their own
    calendar day.
    """
    if name:
        return ZoneInfo(name)
    return get_localzone()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Check each settings group for the settings page.

    Returns {group: True/False} plus "{group}_error" messages.
    Google Sheets is only checked when it is the selected backend;
    otherwise "google_sheets" is None.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for name in ("storage", "report", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    backend = settings.storage.backend if results["storage"] else None
    if backend != "sheets":
        results["google_sheets"] = None
        return results

    try:
        settings.google_sheets
        results["google_sheets"] = True
    except ValueError as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    return results
