"""Google Sheets client wrapper for the per-group analytics spreadsheets."""

from __future__ import annotations

import asyncio
from typing import Any, List, TYPE_CHECKING

from googleapiclient.discovery import build

from sprout_sync.core.errors import TransientApiError

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from sprout_sync.services.credential_session import CredentialSession


def _a1(subsection: str, cell: str) -> str:
    escaped = subsection.replace("'", "''")
    return f"'{escaped}'!{cell}"


class GoogleSheetsClient:
    """Create spreadsheets, manage their tabs and write rows."""

    async def create_document(self, *, session: "CredentialSession", title: str) -> str:
        """Create an empty spreadsheet and return its id."""
        credentials = session.credentials

        def _execute_create() -> str:
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            created = (
                service.spreadsheets()
                .create(body={"properties": {"title": title}}, fields="spreadsheetId")
                .execute()
            )
            return created["spreadsheetId"]

        return await asyncio.to_thread(_execute_create)

    async def get_subsection_titles(
        self, *, session: "CredentialSession", document_id: str
    ) -> List[str]:
        """Return the titles of every tab in the spreadsheet."""
        credentials = session.credentials

        def _execute_get() -> List[str]:
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            response = (
                service.spreadsheets()
                .get(spreadsheetId=document_id, fields="sheets.properties.title")
                .execute()
            )
            return [
                sheet["properties"]["title"]
                for sheet in response.get("sheets", [])
                if sheet.get("properties", {}).get("title")
            ]

        return await asyncio.to_thread(_execute_get)

    async def add_subsection(
        self, *, session: "CredentialSession", document_id: str, title: str
    ) -> None:
        """Add a tab; the API rejects the request when the title is taken."""
        credentials = session.credentials

        def _execute_add() -> None:
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            service.spreadsheets().batchUpdate(
                spreadsheetId=document_id,
                body={"requests": [{"addSheet": {"properties": {"title": title}}}]},
            ).execute()

        await asyncio.to_thread(_execute_add)

    async def fetch_rows(
        self, *, session: "CredentialSession", document_id: str, subsection: str
    ) -> List[List[Any]]:
        """
        Return every populated row of a tab, header included.

        Values come back unformatted so dates arrive as serial day numbers
        regardless of the spreadsheet locale.
        """
        credentials = session.credentials

        def _execute_fetch() -> List[List[Any]]:
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            response = (
                service.spreadsheets()
                .values()
                .get(
                    spreadsheetId=document_id,
                    range=_a1(subsection, "A:E"),
                    valueRenderOption="UNFORMATTED_VALUE",
                    dateTimeRenderOption="SERIAL_NUMBER",
                    majorDimension="ROWS",
                )
                .execute()
            )
            return response.get("values", [])

        return await asyncio.to_thread(_execute_fetch)

    async def write_rows(
        self,
        *,
        session: "CredentialSession",
        document_id: str,
        subsection: str,
        start_row: int,
        rows: List[List[Any]],
    ) -> int:
        """Write ``rows`` starting at ``start_row`` in one request; return rows updated."""
        credentials = session.credentials

        def _execute_write() -> int:
            service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
            result = (
                service.spreadsheets()
                .values()
                .update(
                    spreadsheetId=document_id,
                    range=_a1(subsection, f"A{start_row}"),
                    valueInputOption="USER_ENTERED",
                    body={"values": rows},
                )
                .execute()
            )
            updated = int(result.get("updatedRows", len(rows)))
            if updated < len(rows):
                raise TransientApiError(
                    f"Sheets updated {updated} of {len(rows)} rows in {subsection!r}"
                )
            return updated

        return await asyncio.to_thread(_execute_write)


__all__ = ["GoogleSheetsClient"]
