"""Configuration package."""

from mindfulpay.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LimitSettings,
    PaymentSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LimitSettings",
    "PaymentSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
