"""Expose dependency helpers for FastAPI routers and scripts."""

from .clients import (
    build_sync_runner,
    get_drive_client,
    get_sheets_client,
    get_sprout_client,
    get_sync_runner,
)
from .config import (
    CronSecretDependency,
    get_app_settings,
    require_cron_secret,
)

__all__ = [
    "CronSecretDependency",
    "build_sync_runner",
    "get_app_settings",
    "get_drive_client",
    "get_sheets_client",
    "get_sprout_client",
    "get_sync_runner",
    "require_cron_secret",
]
