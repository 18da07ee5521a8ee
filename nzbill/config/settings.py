"""
Configuration Management for NzBill

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    bills_sheet_name: str = Field(
        default="Bills",
        description="Name of the sheet for bill instances"
    )
    recurring_sheet_name: str = Field(
        default="RecurringExpenses",
        description="Name of the sheet for recurring expense templates"
    )
    profiles_sheet_name: str = Field(
        default="Profiles",
        description="Name of the sheet for user profiles"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format"
    )

    # Localization
    currency_symbol: str = Field(
        default="฿",
        description="Symbol of the single configured currency"
    )
    default_language: Literal["th", "en"] = Field(
        default="th",
        description="Language used for generated labels"
    )

    # Bill defaults
    default_reminder_days: int = Field(
        default=3,
        ge=0,
        le=31,
        description="Days before the due date to remind the user"
    )
    upcoming_window_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="How far ahead a bill counts as upcoming"
    )
    starting_balance: Decimal = Field(
        default=Decimal("5000"),
        description="Cash balance for a newly created profile"
    )

    # Input validation thresholds
    max_bill_amount: Decimal = Field(
        default=Decimal("1000000"),
        description="Maximum amount accepted for a bill or template"
    )
    max_name_length: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Maximum length of a bill or template name"
    )
    max_decimal_places: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Maximum decimal places in an entered amount"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
