"""
Configuration Management for the Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Nothing in the ledger reads the environment directly; it receives its
store, limits and labels from these objects.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finance_tracker.models.transaction import DEFAULT_CATEGORIES


class StorageSettings(BaseSettings):
    """Blob store and audit trail configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(file|memory)$",
        description="Blob store backend"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding the snapshot and audit files"
    )
    snapshot_key: str = Field(
        default="financeTrackerData",
        min_length=1,
        max_length=100,
        description="Key the ledger snapshot is stored under"
    )
    # Browsers give local storage roughly 5 MiB per origin
    max_blob_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=1024,
        description="Largest value the store will accept"
    )
    audit_enabled: bool = Field(
        default=True,
        description="Persist audit events to a JSON-lines file"
    )
    audit_log_filename: str = Field(
        default="audit.jsonl",
        description="Audit file name inside data_dir"
    )

    @field_validator('snapshot_key')
    @classmethod
    def validate_snapshot_key(cls, v: str) -> str:
        """Keys become file names, so path separators are not allowed."""
        if "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError(f"Invalid snapshot key: {v!r}")
        return v

    @property
    def audit_log_path(self) -> Path:
        return self.data_dir / self.audit_log_filename


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

    # Presentation
    product_name: str = Field(
        default="personal-finance-tracker",
        min_length=1,
        description="Used as the prefix of exported CSV file names"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol shown in front of formatted amounts"
    )
    display_limit: int = Field(
        default=20,
        ge=1,
        le=500,
        description="How many transactions the list view shows"
    )
    default_categories: str = Field(
        default=",".join(DEFAULT_CATEGORIES),
        description="Comma-separated list of categories offered by the add form"
    )

    @property
    def categories_list(self) -> list[str]:
        """Get default categories as a list."""
        return [
            category.strip()
            for category in self.default_categories.split(",")
            if category.strip()
        ]


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

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()


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

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries describing failures. Used by the settings page.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    try:
        storage = settings.storage
        results["storage"] = True
        if storage.backend == "file" and storage.data_dir.exists() and not storage.data_dir.is_dir():
            results["storage"] = False
            results["storage_error"] = f"{storage.data_dir} exists and is not a directory"
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    return results
