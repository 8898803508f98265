"""
Configuration Management for Savings Duel

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, including the
contest itself (participant names, monthly goals, handicap). Nothing in
the engine hardcodes those values, so tests and alternate contests can
swap them without code changes.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ContestSettings(BaseSettings):
    """Who is competing, their goals, and the handicap."""

    model_config = SettingsConfigDict(
        env_prefix="CONTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    participant_a_name: str = Field(
        default="Sota",
        min_length=1,
        description="Display name of participant A (the handicapped side)"
    )
    participant_b_name: str = Field(
        default="Renma",
        min_length=1,
        description="Display name of participant B"
    )
    goal_a: Decimal = Field(
        default=Decimal("80000"),
        gt=0,
        description="Monthly spending goal for participant A"
    )
    goal_b: Decimal = Field(
        default=Decimal("120000"),
        gt=0,
        description="Monthly spending goal for participant B"
    )
    handicap: Decimal = Field(
        default=Decimal("1.5"),
        gt=0,
        description="Multiplier applied to A's total before comparing with B's"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet holding one row per date"
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

    # Identity of this client when writing
    writer_id: Optional[str] = Field(
        default=None,
        description="Opaque id stamped on slots this client writes"
    )

    # Where the chosen participant is remembered on this device
    preference_path: str = Field(
        default=".savings_duel/participant.json",
        description="Local file holding this device's participant choice"
    )

    # Synchronization
    poll_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=300.0,
        description="How often a polling subscription re-reads the store"
    )

    # Validation thresholds
    max_expense_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for a second look"
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
    def contest(self) -> ContestSettings:
        return ContestSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each failing section.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "contest": lambda: settings.contest,
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
