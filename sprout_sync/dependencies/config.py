"""
FastAPI dependencies for settings and trigger authorization.
"""

import hmac
from functools import lru_cache
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException

from sprout_sync.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def require_cron_secret(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """Reject trigger calls without ``Bearer <CRON_SECRET>`` when a secret is configured."""
    secret = settings.cron_secret
    if not secret:
        return
    if not authorization or not hmac.compare_digest(authorization, f"Bearer {secret}"):
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Invalid or missing cron credentials.",
        )


CronSecretDependency = Depends(require_cron_secret)

__all__ = [
    "CronSecretDependency",
    "get_app_settings",
    "require_cron_secret",
]
