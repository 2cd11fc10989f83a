"""
Factory functions that assemble the sync engine from settings.
"""

from datetime import datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from sprout_sync.clients import (
    GoogleDriveClient,
    GoogleSheetsClient,
    ServiceAccountAuthorizer,
    SproutClient,
)
from sprout_sync.core.config import AppSettings, get_settings
from sprout_sync.services import (
    CredentialSession,
    ReconciliationOrchestrator,
    RetryPolicy,
    SchedulingPolicy,
    SyncRunner,
)
from sprout_sync.services.formatters import required_metrics
from sprout_sync.services.sync_runner import NO_DELAY
from sprout_sync.utils.backoff import BackoffExecutor


@lru_cache()
def _settings() -> AppSettings:
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sprout_client() -> SproutClient:
    """Provide the Sprout Social API client."""
    return SproutClient(_settings().sprout, metrics=required_metrics())


@lru_cache()
def get_drive_client() -> GoogleDriveClient:
    """Provide Google Drive client instance."""
    return GoogleDriveClient()


@lru_cache()
def get_sheets_client() -> GoogleSheetsClient:
    """Provide Google Sheets client instance."""
    return GoogleSheetsClient()


def build_sync_runner(
    settings: AppSettings | None = None,
    *,
    folder_ids: list[str] | None = None,
    throttle: bool = True,
) -> SyncRunner:
    """Assemble a runner with its own credential session."""
    settings = settings or _settings()
    sync = settings.sync
    tz = ZoneInfo(sync.title_timezone)

    session = CredentialSession(
        ServiceAccountAuthorizer(settings.google),
        refresh_threshold=timedelta(seconds=sync.refresh_threshold_seconds),
    )
    orchestrator = ReconciliationOrchestrator(
        drive_client=get_drive_client(),
        sheets_client=get_sheets_client(),
        analytics_source=get_sprout_client(),
        session=session,
        executor=BackoffExecutor(session=session, max_delay=sync.max_retry_delay_seconds),
        retry_policy=RetryPolicy(
            max_retries=sync.max_retries,
            initial_delay=sync.initial_retry_delay_seconds,
        ),
        title_prefix=sync.title_prefix,
        clock=lambda: datetime.now(tz),
    )
    policy = SchedulingPolicy(
        success_delay=sync.success_delay_seconds,
        failure_delay=sync.failure_delay_seconds,
    )
    return SyncRunner(
        metadata_source=get_sprout_client(),
        orchestrator=orchestrator,
        folder_ids=folder_ids or list(settings.google.drive_folder_ids),
        window=sync.reporting_window(datetime.now(tz).date()),
        policy=policy if throttle else NO_DELAY,
    )


def get_sync_runner() -> SyncRunner:
    """FastAPI dependency returning a freshly assembled runner."""
    return build_sync_runner()


__all__ = [
    "build_sync_runner",
    "get_drive_client",
    "get_sheets_client",
    "get_sprout_client",
    "get_sync_runner",
]
