"""
Find the existing spreadsheet for a group inside a Drive folder.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol, TYPE_CHECKING

from sprout_sync.core.errors import LocateFailure
from sprout_sync.schemas import DocumentListing

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from sprout_sync.services.credential_session import CredentialSession

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = " - "


class DocumentLister(Protocol):
    async def list_documents(
        self, *, session: "CredentialSession", container_id: str, name_pattern: str
    ) -> List[DocumentListing]: ...


def belongs_to_pattern(name: str, base_pattern: str) -> bool:
    """
    True when ``name`` is ``base_pattern`` itself or ``base_pattern`` followed by
    a `` - `` suffix.

    Drive only offers substring matching, so ``Sprout Analytics - Sales`` would
    otherwise also match ``Sprout Analytics - Sales EMEA - Last Updated ...``.
    """
    return name == base_pattern or name.startswith(base_pattern + TITLE_SEPARATOR)


def _modified_key(listing: DocumentListing) -> datetime:
    if listing.modified_time is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if listing.modified_time.tzinfo is None:
        return listing.modified_time.replace(tzinfo=timezone.utc)
    return listing.modified_time


def select_most_recent(listings: List[DocumentListing]) -> Optional[DocumentListing]:
    """Pick the most recently modified listing; ties go to the earlier entry."""
    chosen: Optional[DocumentListing] = None
    for listing in listings:
        if chosen is None or _modified_key(listing) > _modified_key(chosen):
            chosen = listing
    return chosen


class DocumentLocator:
    """Look up a group's spreadsheet by its stable base title."""

    def __init__(self, drive_client: DocumentLister) -> None:
        self._drive = drive_client

    async def locate(
        self,
        base_pattern: str,
        container_id: str,
        *,
        session: "CredentialSession",
    ) -> Optional[DocumentListing]:
        """Return the matching spreadsheet, or ``None`` when the folder has none."""
        try:
            listings = await self._drive.list_documents(
                session=session,
                container_id=container_id,
                name_pattern=base_pattern,
            )
        except Exception as exc:
            raise LocateFailure(
                f"Could not search folder {container_id} for {base_pattern!r}: {exc}"
            ) from exc

        matches = [listing for listing in listings if belongs_to_pattern(listing.name, base_pattern)]
        if len(matches) > 1:
            logger.warning(
                "Found %s spreadsheets matching %r in folder %s; using the most recent",
                len(matches),
                base_pattern,
                container_id,
            )
        return select_most_recent(matches)


__all__ = [
    "DocumentLocator",
    "TITLE_SEPARATOR",
    "belongs_to_pattern",
    "select_most_recent",
]
