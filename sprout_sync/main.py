"""
FastAPI application entrypoint for the analytics sync service.
"""

from __future__ import annotations

from fastapi import FastAPI

from sprout_sync import __version__
from sprout_sync.api.routes import router as api_router
from sprout_sync.core.config import get_settings
from sprout_sync.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Sprout Analytics Sync",
        version=__version__,
        description="Cron trigger for syncing Sprout Social group analytics to Google Sheets.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
