"""Google Drive client wrapper."""

from __future__ import annotations

import asyncio
from typing import List, TYPE_CHECKING

from googleapiclient.discovery import build

from sprout_sync.schemas import DocumentListing

if TYPE_CHECKING:  # pragma: no cover - type hints only
    from sprout_sync.services.credential_session import CredentialSession

SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveClient:
    """Find, rename and file spreadsheets inside Drive folders."""

    async def list_documents(
        self,
        *,
        session: "CredentialSession",
        container_id: str,
        name_pattern: str,
    ) -> List[DocumentListing]:
        """List live spreadsheets in a folder whose name contains ``name_pattern``."""
        credentials = session.credentials
        query = (
            f"name contains '{_escape_query_value(name_pattern)}' "
            f"and '{_escape_query_value(container_id)}' in parents "
            f"and mimeType = '{SPREADSHEET_MIME_TYPE}' "
            "and trashed = false"
        )

        def _execute_list() -> List[DocumentListing]:
            service = build("drive", "v3", credentials=credentials, cache_discovery=False)
            listings: List[DocumentListing] = []
            page_token = None
            while True:
                response = (
                    service.files()
                    .list(
                        q=query,
                        fields="nextPageToken, files(id, name, modifiedTime)",
                        orderBy="modifiedTime desc",
                        spaces="drive",
                        pageToken=page_token,
                        supportsAllDrives=True,
                        includeItemsFromAllDrives=True,
                    )
                    .execute()
                )
                for item in response.get("files", []):
                    listings.append(
                        DocumentListing(
                            id=item["id"],
                            name=item.get("name", ""),
                            modified_time=item.get("modifiedTime"),
                        )
                    )
                page_token = response.get("nextPageToken")
                if not page_token:
                    return listings

        return await asyncio.to_thread(_execute_list)

    async def rename_document(
        self, *, session: "CredentialSession", document_id: str, title: str
    ) -> None:
        """Change a file's display name; its id and links are unaffected."""
        credentials = session.credentials

        def _execute_rename() -> None:
            service = build("drive", "v3", credentials=credentials, cache_discovery=False)
            service.files().update(
                fileId=document_id,
                body={"name": title},
                fields="id, name",
                supportsAllDrives=True,
            ).execute()

        await asyncio.to_thread(_execute_rename)

    async def move_document(
        self, *, session: "CredentialSession", document_id: str, container_id: str
    ) -> None:
        """Make ``container_id`` the file's only parent folder."""
        credentials = session.credentials

        def _execute_move() -> None:
            service = build("drive", "v3", credentials=credentials, cache_discovery=False)
            current = (
                service.files()
                .get(fileId=document_id, fields="parents", supportsAllDrives=True)
                .execute()
            )
            previous = [parent for parent in current.get("parents", []) if parent != container_id]
            if container_id in current.get("parents", []) and not previous:
                return
            service.files().update(
                fileId=document_id,
                addParents=container_id,
                removeParents=",".join(previous),
                fields="id, parents",
                supportsAllDrives=True,
            ).execute()

        await asyncio.to_thread(_execute_move)


__all__ = ["GoogleDriveClient", "SPREADSHEET_MIME_TYPE"]
