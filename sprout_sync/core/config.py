"""
Application configuration models and helpers.

Centralizes settings management so the cron endpoint, the command-line runner
and the reconciliation engine share a consistent configuration surface.
"""

from datetime import date, timedelta
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SproutSettings(BaseSettings):
    """Configuration required for reading analytics from Sprout Social."""

    model_config = SettingsConfigDict(populate_by_name=True)

    customer_id: str = Field(..., validation_alias="SPROUT_CUSTOMER_ID")
    api_token: str = Field(..., validation_alias="SPROUT_API_TOKEN")
    base_url: AnyHttpUrl = Field(
        "https://api.sproutsocial.com/v1",
        validation_alias="SPROUT_API_BASE_URL",
    )
    request_timeout_seconds: float = Field(30.0, validation_alias="SPROUT_TIMEOUT")


class GoogleSettings(BaseSettings):
    """Configuration required for interacting with Google Drive and Sheets."""

    model_config = SettingsConfigDict(populate_by_name=True)

    service_account_file: Optional[Path] = Field(
        None,
        validation_alias="GOOGLE_SERVICE_ACCOUNT_FILE",
        description="Path to a service account key file.",
    )
    credentials_json: Optional[str] = Field(
        None,
        validation_alias="GOOGLE_CREDENTIALS_JSON",
        description="Inline service account key, used when no file is mounted.",
    )
    drive_folder_ids: Annotated[tuple[str, ...], NoDecode] = Field(
        ...,
        validation_alias="GOOGLE_DRIVE_FOLDER_IDS",
        description="Folders that each hold one spreadsheet per group.",
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ),
        validation_alias="GOOGLE_SCOPES",
    )

    @field_validator("drive_folder_ids", "scopes", mode="before")
    @classmethod
    def _split_values(cls, value):
        """Support providing lists as a comma-separated string."""
        return _split_csv(value)

    @field_validator("drive_folder_ids")
    @classmethod
    def _require_folder(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("At least one Drive folder id is required.")
        return value

    @model_validator(mode="after")
    def _require_credentials(self) -> "GoogleSettings":
        if not self.service_account_file and not self.credentials_json:
            raise ValueError(
                "Set GOOGLE_SERVICE_ACCOUNT_FILE or GOOGLE_CREDENTIALS_JSON."
            )
        return self


class SyncSettings(BaseSettings):
    """Tunables for the reconciliation cycle."""

    model_config = SettingsConfigDict(populate_by_name=True)

    title_prefix: str = Field("Sprout Analytics", validation_alias="SYNC_TITLE_PREFIX")
    title_timezone: str = Field("UTC", validation_alias="SYNC_TITLE_TIMEZONE")
    start_date: Optional[date] = Field(None, validation_alias="SYNC_START_DATE")
    end_date: Optional[date] = Field(None, validation_alias="SYNC_END_DATE")
    lookback_days: int = Field(1, ge=1, validation_alias="SYNC_LOOKBACK_DAYS")
    success_delay_seconds: float = Field(60.0, ge=0, validation_alias="SYNC_SUCCESS_DELAY")
    failure_delay_seconds: float = Field(30.0, ge=0, validation_alias="SYNC_FAILURE_DELAY")
    max_retries: int = Field(7, ge=0, validation_alias="SYNC_MAX_RETRIES")
    initial_retry_delay_seconds: float = Field(
        8.0, ge=0, validation_alias="SYNC_INITIAL_RETRY_DELAY"
    )
    max_retry_delay_seconds: float = Field(
        900.0, ge=0, validation_alias="SYNC_MAX_RETRY_DELAY"
    )
    refresh_threshold_seconds: int = Field(
        3600,
        ge=0,
        validation_alias="SYNC_REFRESH_THRESHOLD",
        description="Reauthorize when the token expires within this window.",
    )

    @model_validator(mode="after")
    def _check_window(self) -> "SyncSettings":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("SYNC_START_DATE must not be after SYNC_END_DATE.")
        return self

    def reporting_window(self, today: date | None = None) -> tuple[date, date]:
        """Return the inclusive (start, end) reporting window for a run."""
        today = today or date.today()
        end = self.end_date or today - timedelta(days=1)
        start = self.start_date or end - timedelta(days=self.lookback_days - 1)
        return start, end


class AppSettings(BaseSettings):
    """Root settings object for the sync service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    cron_secret: Optional[str] = Field(
        None,
        validation_alias="CRON_SECRET",
        description="Bearer token required by the sync trigger endpoint when set.",
    )
    sprout: SproutSettings = Field(default_factory=SproutSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GoogleSettings",
    "SproutSettings",
    "SyncSettings",
    "get_settings",
]
