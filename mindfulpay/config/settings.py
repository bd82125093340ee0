"""
Configuration Management for MindfulPay

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Limits, storage backend and UPI hand-off details are read once
and validated at startup, so a typo in a limit fails loudly.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


FailurePolicy = Literal["fail_open", "fail_closed"]
DuplicateLimitPolicy = Literal["reject", "first_match", "most_recent", "most_restrictive"]
StorageBackend = Literal["memory", "json_file", "google_sheets"]


class LimitSettings(BaseSettings):
    """Global spending limits and policy switches."""

    model_config = SettingsConfigDict(
        env_prefix="LIMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    daily_limit: Optional[Decimal] = Field(
        default=Decimal("5000"),
        gt=0,
        description="Maximum total expense per calendar day (None = unlimited)"
    )
    monthly_limit: Optional[Decimal] = Field(
        default=Decimal("50000"),
        gt=0,
        description="Maximum total expense per calendar month (None = unlimited)"
    )
    duplicate_limit_policy: DuplicateLimitPolicy = Field(
        default="reject",
        description="How to treat several limits for the same (category, period)"
    )
    blocklist_failure_policy: FailurePolicy = Field(
        default="fail_open",
        description="Whether an unreadable blocklist lets payments through"
    )
    override_rechecks_blocklist: bool = Field(
        default=False,
        description="If True, emergency override cannot bypass a vendor block"
    )


class StorageSettings(BaseSettings):
    """Key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: StorageBackend = Field(
        default="json_file",
        description="Which key-value backend to use"
    )
    data_dir: str = Field(
        default=".mindfulpay",
        description="Directory for the json_file backend"
    )
    key_prefix: str = Field(
        default="mindfulpay_",
        description="Prefix for every record key"
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
    records_sheet_name: str = Field(
        default="Records",
        description="Name of the sheet holding key/value rows"
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


class PaymentSettings(BaseSettings):
    """UPI hand-off configuration."""

    model_config = SettingsConfigDict(
        env_prefix="UPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    scheme: str = Field(
        default="upi",
        description="URI scheme understood by UPI apps"
    )
    currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="ISO currency code sent as `cu`"
    )
    default_note: str = Field(
        default="MindfulPay payment",
        description="Note used when the user leaves it empty"
    )
    max_payment_amount: Decimal = Field(
        default=Decimal("1000000"),
        gt=0,
        description="Amounts above this are flagged for a second look"
    )
    emergency_tag: str = Field(
        default="emergency",
        description="Tag attached to transactions recorded via override"
    )

    @field_validator('scheme')
    @classmethod
    def lowercase_scheme(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator('currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.strip().upper()


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
    def limits(self) -> LimitSettings:
        return LimitSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def payments(self) -> PaymentSettings:
        return PaymentSettings()

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
    Google Sheets is only required when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    for name in ("limits", "storage", "payments", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    if results["storage"] and settings.storage.backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
