"""
Drive a full sync run: fetch, group, then reconcile each group in turn.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, List, Protocol, Sequence

from sprout_sync.core.errors import AuthFailure, FatalGroupError
from sprout_sync.schemas import Group, Profile, SyncSummary
from sprout_sync.services.grouping import resolve_groups
from sprout_sync.services.reconciliation import ReconciliationOrchestrator

logger = logging.getLogger(__name__)


class MetadataSource(Protocol):
    async def fetch_groups(self) -> List[Group]: ...

    async def fetch_profiles(self) -> List[Profile]: ...


@dataclass(frozen=True)
class SchedulingPolicy:
    """Pause between groups to stay under the Google API quota."""

    success_delay: float = 60.0
    failure_delay: float = 30.0

    def delay_after(self, succeeded: bool) -> float:
        return self.success_delay if succeeded else self.failure_delay


NO_DELAY = SchedulingPolicy(success_delay=0.0, failure_delay=0.0)


class SyncRunner:
    """Reconcile every non-empty group bucket, one after another."""

    def __init__(
        self,
        *,
        metadata_source: MetadataSource,
        orchestrator: ReconciliationOrchestrator,
        folder_ids: Sequence[str],
        window: tuple[date, date],
        policy: SchedulingPolicy = SchedulingPolicy(),
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._metadata = metadata_source
        self._orchestrator = orchestrator
        self._folder_ids = list(folder_ids)
        self._window = window
        self._policy = policy
        self._sleep = sleep

    async def run(self) -> SyncSummary:
        summary = SyncSummary(started_at=datetime.now(timezone.utc))
        start, end = self._window
        logger.info("Starting sync for %s to %s", start.isoformat(), end.isoformat())

        try:
            await self._orchestrator.session.ensure_fresh()
        except AuthFailure as exc:
            logger.error("Google credentials could not be verified, continuing: %s", exc)

        groups = await self._metadata.fetch_groups()
        if not groups:
            raise FatalGroupError("No customer groups returned; nothing to sync.")
        profiles = await self._metadata.fetch_profiles()
        if not profiles:
            raise FatalGroupError("No profiles returned; nothing to sync.")

        buckets = resolve_groups(profiles, groups)
        pending = []
        for bucket in buckets.values():
            if bucket.profiles:
                pending.append(bucket)
            else:
                logger.info("Skipping group %s: no profiles", bucket.group_name)

        for index, bucket in enumerate(pending):
            succeeded = True
            for folder_id in self._folder_ids:
                result = await self._orchestrator.reconcile(
                    bucket.group_name,
                    bucket.profiles,
                    folder_id=folder_id,
                    start=start,
                    end=end,
                    group_id=bucket.group_id,
                )
                summary.results.append(result)
                succeeded = succeeded and result.succeeded

            if index < len(pending) - 1:
                delay = self._policy.delay_after(succeeded)
                if delay > 0:
                    logger.info("Waiting %.0fs before the next group", delay)
                    await self._sleep(delay)

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Sync finished: %s succeeded, %s failed",
            len(summary.succeeded),
            len(summary.failed),
        )
        for failed in summary.failed:
            logger.error("Group %s failed: %s", failed.group_name, failed.error)
        return summary


__all__ = ["MetadataSource", "NO_DELAY", "SchedulingPolicy", "SyncRunner"]
