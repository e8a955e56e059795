"""
Configuration Management for Duo Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The two participants, the category list and the storage backend are
deployment facts, not code. Everything is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from duoledger.models.records import Category


DEFAULT_AVATAR_URL = "https://ui-avatars.com/api/?name=User&background=random"

DEFAULT_CATEGORIES = [
    Category(name="Food", icon="🍙"),
    Category(name="Daily goods", icon="🧻"),
    Category(name="Rent & utilities", icon="🏠"),
    Category(name="Dining out", icon="🍽️"),
    Category(name="Transport", icon="🚃"),
    Category(name="Other", icon="🐈"),
]

DEFAULT_SETTLEMENT_METHODS = ["Cash", "PayPay", "LINE Pay", "Bank transfer", "Other"]


class LedgerSettings(BaseSettings):
    """
    Ledger configuration.

    Exactly two participants are configured. Any other identity is
    rejected by the participant directory before it reaches the ledger.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # The pair
    participant_a_email: str = Field(
        ...,
        description="Email identity of the first participant"
    )
    participant_a_name: str = Field(
        default="",
        description="Display name of the first participant"
    )
    participant_a_avatar: str = Field(
        default=DEFAULT_AVATAR_URL,
        description="Avatar URL of the first participant"
    )
    participant_b_email: str = Field(
        ...,
        description="Email identity of the second participant"
    )
    participant_b_name: str = Field(
        default="",
        description="Display name of the second participant"
    )
    participant_b_avatar: str = Field(
        default=DEFAULT_AVATAR_URL,
        description="Avatar URL of the second participant"
    )

    # Categories
    categories: list[Category] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        description="Configured categories, as a JSON list of {name, icon}"
    )
    fallback_category: str = Field(
        default="Other",
        description="Category used when none is configured"
    )
    fallback_category_icon: str = Field(
        default="🐈",
        description="Icon shown for categories that no longer exist"
    )

    # Settlements
    settlement_methods: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SETTLEMENT_METHODS),
        description="Labels offered for settlement methods"
    )

    # Budget (0 = not set)
    monthly_budget: int = Field(
        default=0,
        ge=0,
        description="Monthly spending target in the smallest currency unit"
    )

    # Date handling
    date_normalize_hour: int = Field(
        default=12,
        ge=0,
        le=23,
        description="Hour of day every record date is pinned to"
    )

    # Sanity thresholds (warnings only)
    max_amount: int = Field(
        default=10_000_000,
        gt=0,
        description="Amount above which a submission is flagged for review"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a record date can be"
    )

    @field_validator('participant_a_email', 'participant_b_email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Identities are compared case-insensitively."""
        v = v.strip().lower()
        if not v:
            raise ValueError("Participant email must not be empty")
        return v

    @model_validator(mode='after')
    def validate_pair(self) -> 'LedgerSettings':
        """The two configured participants must be different people."""
        if self.participant_a_email == self.participant_b_email:
            raise ValueError("The two participants must have different emails")
        return self


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
    records_sheet_name: str = Field(
        default="Records",
        description="Name of the sheet for expense and settlement records"
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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return v


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
    # (e.g. running without Google Sheets).

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the failures.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
