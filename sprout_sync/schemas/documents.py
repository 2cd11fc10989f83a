"""
Pydantic models describing spreadsheets in Drive and the outcome of a sync run.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


SPREADSHEET_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{document_id}/edit"


class DocumentListing(BaseModel):
    """A file returned by a Drive ``files.list`` query."""

    id: str
    name: str
    modified_time: Optional[datetime] = None


class TargetDocument(BaseModel):
    """The canonical spreadsheet for one group in one folder."""

    id: str
    title: str
    base_pattern: str

    @property
    def url(self) -> str:
        return SPREADSHEET_URL_TEMPLATE.format(document_id=self.id)


class AccessToken(BaseModel):
    """A bearer token and the instant it stops being accepted."""

    token: str
    expires_at: Optional[datetime] = None


class GroupSyncResult(BaseModel):
    """Outcome of one reconciliation cycle."""

    group_id: str
    group_name: str
    folder_id: str
    profile_count: int
    document_id: Optional[str] = None
    rows_written: int = 0
    failed_subsections: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.document_id is not None

    @property
    def spreadsheet_url(self) -> Optional[str]:
        if not self.succeeded:
            return None
        return SPREADSHEET_URL_TEMPLATE.format(document_id=self.document_id)


class SyncSummary(BaseModel):
    """Aggregated results for a whole run."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    results: List[GroupSyncResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[GroupSyncResult]:
        return [result for result in self.results if result.succeeded]

    @property
    def failed(self) -> List[GroupSyncResult]:
        return [result for result in self.results if not result.succeeded]

    def render(self) -> str:
        """Human-readable report listing only the groups that synced."""
        lines = [f"Synced {len(self.succeeded)} spreadsheet(s):"]
        for result in self.succeeded:
            lines.append(
                f"- {result.group_name} ({result.profile_count} profiles): "
                f"{result.spreadsheet_url}"
            )
        return "\n".join(lines)


__all__ = [
    "AccessToken",
    "DocumentListing",
    "GroupSyncResult",
    "SPREADSHEET_URL_TEMPLATE",
    "SyncSummary",
    "TargetDocument",
]
