"""Configuration package."""

from shopledger.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    SessionSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
