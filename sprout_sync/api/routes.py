"""
FastAPI routes for triggering and monitoring sync runs.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends

from sprout_sync.core.errors import FatalGroupError
from sprout_sync.dependencies import CronSecretDependency, get_sync_runner
from sprout_sync.services import SyncRunner

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


async def _run_in_background(runner: SyncRunner) -> None:
    try:
        summary = await runner.run()
    except FatalGroupError as exc:
        logger.error("Sync run aborted: %s", exc)
        return
    except Exception:  # pragma: no cover - logged for operators
        logger.exception("Unexpected failure during sync run")
        return
    logger.info("%s", summary.render())


@router.post(
    "/sync",
    status_code=HTTPStatus.ACCEPTED,
    dependencies=[CronSecretDependency],
)
async def trigger_sync(
    background_tasks: BackgroundTasks,
    runner: Annotated[SyncRunner, Depends(get_sync_runner)],
) -> dict:
    """Schedule a full sync run; used by the daily cron."""
    background_tasks.add_task(_run_in_background, runner)
    return {"status": "scheduled"}
