"""
Per-group reconciliation of Sprout analytics into one Google spreadsheet.

A cycle walks ``START -> LOCATE -> RENAME_EXISTING | CREATE_NEW ->
ENSURE_SUBSECTIONS -> MERGE_DATA -> WRITE_SUBSECTIONS -> DONE``; any step may
end the cycle in ``FAILED``. Every Drive and Sheets call goes through the
backoff executor, and every mutating step first asks the credential session
to refresh its token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, TYPE_CHECKING

from sprout_sync.core.errors import AuthFailure, FatalGroupError, LocateFailure, ResolutionError
from sprout_sync.schemas import (
    AnalyticsDataPoint,
    DocumentListing,
    GroupSyncResult,
    NetworkType,
    Profile,
    TargetDocument,
)
from sprout_sync.services.document_locator import DocumentLocator
from sprout_sync.services.formatters import FORMATTERS, NetworkFormatter, row_key
from sprout_sync.services.grouping import partition_by_network
from sprout_sync.utils.backoff import BackoffExecutor, ErrorClass, classify_error

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from sprout_sync.services.credential_session import CredentialSession

logger = logging.getLogger(__name__)

Row = List[Any]


class CycleState(str, Enum):
    START = "start"
    LOCATE = "locate"
    RENAME_EXISTING = "rename_existing"
    CREATE_NEW = "create_new"
    ENSURE_SUBSECTIONS = "ensure_subsections"
    MERGE_DATA = "merge_data"
    WRITE_SUBSECTIONS = "write_subsections"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 7
    initial_delay: float = 8.0


class AnalyticsSource(Protocol):
    async def fetch_analytics(
        self, profile_ids: Sequence[int], start: date, end: date
    ) -> List[AnalyticsDataPoint]: ...


class DocumentStore(Protocol):
    """The Drive and Sheets operations a cycle needs."""

    async def list_documents(self, *, session, container_id: str, name_pattern: str) -> List[DocumentListing]: ...

    async def rename_document(self, *, session, document_id: str, title: str) -> None: ...

    async def move_document(self, *, session, document_id: str, container_id: str) -> None: ...


class SpreadsheetStore(Protocol):
    async def create_document(self, *, session, title: str) -> str: ...

    async def get_subsection_titles(self, *, session, document_id: str) -> List[str]: ...

    async def add_subsection(self, *, session, document_id: str, title: str) -> None: ...

    async def fetch_rows(self, *, session, document_id: str, subsection: str) -> List[Row]: ...

    async def write_rows(
        self, *, session, document_id: str, subsection: str, start_row: int, rows: List[Row]
    ) -> int: ...


def dedupe_data_points(points: Sequence[AnalyticsDataPoint]) -> List[AnalyticsDataPoint]:
    """Keep the first point seen for each (profile, day)."""
    unique: Dict[tuple[int, date], AnalyticsDataPoint] = {}
    for point in points:
        unique.setdefault(point.key, point)
    return list(unique.values())


def _resolve_profile(point: AnalyticsDataPoint, profiles_by_id: Dict[int, Profile]) -> Profile:
    profile = profiles_by_id.get(point.profile_id)
    if profile is None:
        raise ResolutionError(f"No profile {point.profile_id} in this group")
    if profile.network is NetworkType.UNMAPPED:
        raise ResolutionError(
            f"Profile {profile.id} has unsupported network type {profile.network_type!r}"
        )
    return profile


def merge_data_points(
    points: Sequence[AnalyticsDataPoint],
    profiles: Sequence[Profile],
    formatters: Dict[NetworkType, NetworkFormatter] = FORMATTERS,
) -> Dict[NetworkType, List[Row]]:
    """Turn raw points into formatted rows grouped by network, one per (profile, day)."""
    profiles_by_id: Dict[int, Profile] = {}
    for profile in profiles:
        profiles_by_id.setdefault(profile.id, profile)

    rows: Dict[NetworkType, List[Row]] = {}
    for point in dedupe_data_points(points):
        try:
            profile = _resolve_profile(point, profiles_by_id)
        except ResolutionError as exc:
            logger.warning("Dropping data point for %s: %s", point.reporting_date, exc)
            continue

        formatter = formatters.get(profile.network)
        row = formatter.format(point, profile) if formatter else None
        if row is None:
            logger.warning(
                "No row generated for %s profile %s on %s",
                profile.network.value,
                profile.name,
                point.reporting_date,
            )
            continue
        rows.setdefault(profile.network, []).append(row)
    return rows


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationOrchestrator:
    """Create or update the canonical spreadsheet for one group at a time."""

    def __init__(
        self,
        *,
        drive_client: DocumentStore,
        sheets_client: SpreadsheetStore,
        analytics_source: AnalyticsSource,
        session: "CredentialSession",
        executor: BackoffExecutor,
        retry_policy: RetryPolicy = RetryPolicy(),
        title_prefix: str = "Sprout Analytics",
        clock: Callable[[], datetime] = _utcnow,
        formatters: Dict[NetworkType, NetworkFormatter] = FORMATTERS,
        locator: Optional[DocumentLocator] = None,
    ) -> None:
        self._drive = drive_client
        self._sheets = sheets_client
        self._analytics = analytics_source
        self._session = session
        self._executor = executor
        self._retry = retry_policy
        self._title_prefix = title_prefix
        self._clock = clock
        self._formatters = formatters
        self._locator = locator or DocumentLocator(drive_client)

    @property
    def session(self) -> "CredentialSession":
        return self._session

    def base_pattern(self, group_name: str) -> str:
        return f"{self._title_prefix} - {group_name}"

    def build_title(self, base_pattern: str) -> str:
        stamp = self._clock().strftime("%Y-%m-%d %H:%M")
        return f"{base_pattern} - Last Updated {stamp}"

    async def reconcile(
        self,
        group_name: str,
        profiles: Sequence[Profile],
        *,
        folder_id: str,
        start: date,
        end: date,
        group_id: str = "",
    ) -> GroupSyncResult:
        """Run one cycle; failures are captured on the result instead of raised."""
        result = GroupSyncResult(
            group_id=group_id,
            group_name=group_name,
            folder_id=folder_id,
            profile_count=len(profiles),
        )
        context = {"group": group_name, "folder_id": folder_id}
        logger.info("Reconciling group %s (%s profiles)", group_name, len(profiles), extra=context)
        try:
            await self._run_cycle(result, profiles, folder_id=folder_id, start=start, end=end)
        except Exception as exc:
            result.document_id = None
            result.error = str(exc) or exc.__class__.__name__
            self._transition(CycleState.FAILED, group_name)
            logger.exception("Reconciliation failed for group %s", group_name, extra=context)
        return result

    async def _run_cycle(
        self,
        result: GroupSyncResult,
        profiles: Sequence[Profile],
        *,
        folder_id: str,
        start: date,
        end: date,
    ) -> None:
        group_name = result.group_name
        self._transition(CycleState.START, group_name)

        document = await self._locate_or_create(group_name, folder_id)
        result.document_id = document.id

        self._transition(CycleState.ENSURE_SUBSECTIONS, group_name)
        partitions = partition_by_network(profiles)
        ready = await self._ensure_subsections(document, partitions)

        self._transition(CycleState.MERGE_DATA, group_name)
        profile_ids = list(dict.fromkeys(profile.id for profile in profiles))
        points = await self._analytics.fetch_analytics(profile_ids, start, end)
        if not points:
            raise FatalGroupError(
                f"No analytics data for group {group_name} between {start} and {end}"
            )
        rows_by_network = merge_data_points(points, profiles, self._formatters)
        if not rows_by_network:
            raise FatalGroupError(f"No usable analytics rows for group {group_name}")

        self._transition(CycleState.WRITE_SUBSECTIONS, group_name)
        written, failed = await self._write_subsections(document, rows_by_network, ready)
        result.rows_written = written
        result.failed_subsections = failed
        if failed and len(failed) == len(rows_by_network):
            raise FatalGroupError(f"Every sheet write failed for group {group_name}")

        self._transition(CycleState.DONE, group_name)
        logger.info(
            "Completed group %s: %s rows written to %s",
            group_name,
            written,
            document.url,
        )

    async def _locate_or_create(self, group_name: str, folder_id: str) -> TargetDocument:
        base_pattern = self.base_pattern(group_name)
        title = self.build_title(base_pattern)

        self._transition(CycleState.LOCATE, group_name)
        await self._pre_refresh("locate")
        try:
            existing = await self._executor.execute(
                lambda: self._locator.locate(base_pattern, folder_id, session=self._session),
                max_retries=self._retry.max_retries,
                initial_delay=self._retry.initial_delay,
                label=f"locating spreadsheet {base_pattern!r}",
            )
        except LocateFailure as exc:
            if classify_error(exc) is ErrorClass.AUTH:
                raise FatalGroupError(
                    f"Could not search for {base_pattern!r} without valid credentials: {exc}"
                ) from exc
            logger.warning("Lookup failed after retries, treating as not found: %s", exc)
            existing = None

        if existing is not None:
            self._transition(CycleState.RENAME_EXISTING, group_name)
            logger.info("Found existing spreadsheet %r (%s)", existing.name, existing.id)
            await self._pre_refresh("rename")
            await self._executor.execute(
                lambda: self._drive.rename_document(
                    session=self._session, document_id=existing.id, title=title
                ),
                max_retries=self._retry.max_retries,
                initial_delay=self._retry.initial_delay,
                label=f"renaming spreadsheet {existing.id}",
            )
            return TargetDocument(id=existing.id, title=title, base_pattern=base_pattern)

        self._transition(CycleState.CREATE_NEW, group_name)
        logger.info("No existing spreadsheet found, creating %r", title)
        await self._pre_refresh("create")
        document_id = await self._executor.execute(
            lambda: self._sheets.create_document(session=self._session, title=title),
            max_retries=self._retry.max_retries,
            initial_delay=self._retry.initial_delay,
            label=f"creating spreadsheet {title!r}",
        )
        if not document_id:
            raise FatalGroupError(f"Spreadsheet creation returned no id for {title!r}")

        await self._pre_refresh("move")
        await self._executor.execute(
            lambda: self._drive.move_document(
                session=self._session, document_id=document_id, container_id=folder_id
            ),
            max_retries=self._retry.max_retries,
            initial_delay=self._retry.initial_delay,
            label=f"moving spreadsheet {document_id} to folder {folder_id}",
        )
        return TargetDocument(id=document_id, title=title, base_pattern=base_pattern)

    async def _ensure_subsections(
        self,
        document: TargetDocument,
        partitions: Dict[NetworkType, List[Profile]],
    ) -> set[NetworkType]:
        """Make sure each non-empty network has a tab with headers; return the ready ones."""
        wanted = [
            network
            for network, members in partitions.items()
            if members and network in self._formatters
        ]
        if not wanted:
            return set()

        existing = set(
            await self._executor.execute(
                lambda: self._sheets.get_subsection_titles(
                    session=self._session, document_id=document.id
                ),
                max_retries=self._retry.max_retries,
                initial_delay=self._retry.initial_delay,
                label=f"listing tabs of {document.id}",
            )
            or []
        )

        ready: set[NetworkType] = set()
        for network in wanted:
            sheet_title = network.sheet_title
            try:
                if sheet_title not in existing:
                    await self._pre_refresh(f"adding tab {sheet_title}")
                    await self._executor.execute(
                        lambda: self._sheets.add_subsection(
                            session=self._session, document_id=document.id, title=sheet_title
                        ),
                        max_retries=self._retry.max_retries,
                        initial_delay=self._retry.initial_delay,
                        label=f"creating tab {sheet_title!r}",
                        tolerate_existing=True,
                    )
                await self._pre_refresh(f"writing {sheet_title} headers")
                await self._executor.execute(
                    lambda: self._sheets.write_rows(
                        session=self._session,
                        document_id=document.id,
                        subsection=sheet_title,
                        start_row=1,
                        rows=[self._formatters[network].headers],
                    ),
                    max_retries=self._retry.max_retries,
                    initial_delay=self._retry.initial_delay,
                    label=f"writing {sheet_title!r} headers",
                )
            except Exception:
                logger.exception("Could not prepare tab %s in %s", sheet_title, document.id)
                continue
            ready.add(network)
        return ready

    async def _write_subsections(
        self,
        document: TargetDocument,
        rows_by_network: Dict[NetworkType, List[Row]],
        ready: set[NetworkType],
    ) -> tuple[int, List[str]]:
        failed: List[str] = []
        networks: List[NetworkType] = []
        for network in rows_by_network:
            if network in ready:
                networks.append(network)
            else:
                logger.warning("Tab %s was not created, skipping its rows", network.sheet_title)
                failed.append(network.sheet_title)

        if not networks:
            return 0, failed

        await self._pre_refresh("writing rows")
        outcomes = await asyncio.gather(
            *(
                self._write_subsection(document, network, rows_by_network[network])
                for network in networks
            ),
            return_exceptions=True,
        )

        written = 0
        for network, outcome in zip(networks, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Writing %s rows to %s failed: %s",
                    network.sheet_title,
                    document.id,
                    outcome,
                )
                failed.append(network.sheet_title)
                continue
            written += outcome
        return written, failed

    async def _write_subsection(
        self, document: TargetDocument, network: NetworkType, rows: List[Row]
    ) -> int:
        sheet_title = network.sheet_title
        existing_rows = (
            await self._executor.execute(
                lambda: self._sheets.fetch_rows(
                    session=self._session, document_id=document.id, subsection=sheet_title
                ),
                max_retries=self._retry.max_retries,
                initial_delay=self._retry.initial_delay,
                label=f"reading {sheet_title!r} rows",
            )
            or []
        )
        existing_keys = {row_key(row) for row in existing_rows[1:]}
        fresh = [row for row in rows if row_key(row) not in existing_keys]
        if not fresh:
            logger.info("%s already holds every row for this window", sheet_title)
            return 0

        start_row = max(len(existing_rows), 1) + 1
        await self._executor.execute(
            lambda: self._sheets.write_rows(
                session=self._session,
                document_id=document.id,
                subsection=sheet_title,
                start_row=start_row,
                rows=fresh,
            ),
            max_retries=self._retry.max_retries,
            initial_delay=self._retry.initial_delay,
            label=f"writing {len(fresh)} rows to {sheet_title!r}",
        )
        logger.info("Wrote %s rows to %s", len(fresh), sheet_title)
        return len(fresh)

    async def _pre_refresh(self, step: str) -> None:
        try:
            await self._session.ensure_fresh()
        except AuthFailure as exc:
            logger.warning(
                "Could not refresh credentials before %s, proceeding with existing token: %s",
                step,
                exc,
            )

    @staticmethod
    def _transition(state: CycleState, group_name: str) -> None:
        logger.debug("Group %s -> %s", group_name, state.value)


__all__ = [
    "AnalyticsSource",
    "CycleState",
    "ReconciliationOrchestrator",
    "RetryPolicy",
    "dedupe_data_points",
    "merge_data_points",
]
