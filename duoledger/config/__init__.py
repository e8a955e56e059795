"""Configuration package."""

from duoledger.config.settings import (
    DEFAULT_AVATAR_URL,
    DEFAULT_CATEGORIES,
    DEFAULT_SETTLEMENT_METHODS,
    AppSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_AVATAR_URL",
    "DEFAULT_CATEGORIES",
    "DEFAULT_SETTLEMENT_METHODS",
    "AppSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
