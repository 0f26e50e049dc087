"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger core itself never reads the environment; the store and the
storage backends receive their settings from get_settings() at
construction time, so tests can pass explicit settings instead.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PREVIEW_STATE_FILENAME = "state.preview.json"


class StorageSettings(BaseSettings):
    """Snapshot file storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".household-ledger",
        description="Directory holding the snapshot file"
    )
    state_filename: str = Field(
        default="state.json",
        min_length=1,
        description="Snapshot file name inside data_dir"
    )
    preview_mode: bool = Field(
        default=False,
        description="Use a separate preview snapshot so real data is never touched"
    )

    # Autosave
    autosave_delay_ms: int = Field(
        default=500,
        ge=0,
        le=60000,
        description="Idle delay after the last mutation before the snapshot is written"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed snapshot write is attempted"
    )

    @field_validator('state_filename')
    @classmethod
    def validate_state_filename(cls, v: str) -> str:
        """Filename only, no directory components."""
        if Path(v).name != v:
            raise ValueError(f"state_filename must be a bare file name, got: {v}")
        return v

    @property
    def state_path(self) -> Path:
        """Resolved path of the snapshot file."""
        filename = PREVIEW_STATE_FILENAME if self.preview_mode else self.state_filename
        return self.data_dir / filename

    @property
    def autosave_delay_seconds(self) -> float:
        return self.autosave_delay_ms / 1000.0


class AppSettings(BaseSettings):
    """
    Main ledger settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Calendar
    timezone: Optional[str] = Field(
        default=None,
        description="IANA zone used for day/month boundaries (None = system local time)"
    )

    # Limits
    max_accounts: Optional[int] = Field(
        default=4,
        ge=1,
        description="Maximum number of accounts (None = unlimited)"
    )
    large_amount_warning: float = Field(
        default=100_000_000.0,
        gt=0,
        description="Amounts at or above this are flagged for review"
    )

    # Defaults for a fresh ledger
    default_app_title: str = Field(
        default="Bank Management",
        description="Title used when no snapshot exists yet"
    )
    default_person_name: str = Field(
        default="",
        description="Display name used when no snapshot exists yet"
    )

    log_level: str = Field(
        default="INFO",
        description="Log level for the ledger loggers"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        """Reject unknown zone names early instead of at the first date filter."""
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        """Configured zone, or None for system local time."""
        return ZoneInfo(self.timezone) if self.timezone else None


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
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    return results
