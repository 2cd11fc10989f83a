"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from sprout_sync.core.errors import AlreadyExistsError
from sprout_sync.schemas import DocumentListing


class InMemoryDocumentStore:
    """Drive and Sheets stand-in keeping spreadsheets in a dict.

    Queue an exception under ``failures[op]`` (or ``failures["write:<tab>"]``)
    to make the next matching call raise it.
    """

    def __init__(self) -> None:
        self.documents: Dict[str, Dict[str, Any]] = {}
        self.failures: Dict[str, List[Exception]] = {}
        self.calls: List[str] = []
        self._next_id = 0
        self._tick = datetime(2024, 12, 1, tzinfo=timezone.utc)

    def _touch(self) -> datetime:
        self._tick += timedelta(minutes=1)
        return self._tick

    def _record(self, *keys: str) -> None:
        self.calls.append(keys[0])
        for key in keys:
            queued = self.failures.get(key)
            if queued:
                raise queued.pop(0)

    def seed(
        self,
        name: str,
        folder_id: str,
        *,
        modified: Optional[datetime] = None,
        tabs: Optional[Dict[str, List[List[Any]]]] = None,
    ) -> str:
        self._next_id += 1
        document_id = f"doc-{self._next_id}"
        self.documents[document_id] = {
            "name": name,
            "folder": folder_id,
            "modified": modified or self._touch(),
            "tabs": tabs if tabs is not None else {"Sheet1": []},
        }
        return document_id

    def tab(self, document_id: str, title: str) -> List[List[Any]]:
        return self.documents[document_id]["tabs"][title]

    async def list_documents(
        self, *, session, container_id: str, name_pattern: str
    ) -> List[DocumentListing]:
        self._record("list")
        listings = [
            DocumentListing(id=doc_id, name=doc["name"], modified_time=doc["modified"])
            for doc_id, doc in self.documents.items()
            if doc["folder"] == container_id and name_pattern in doc["name"]
        ]
        return sorted(listings, key=lambda item: item.modified_time, reverse=True)

    async def rename_document(self, *, session, document_id: str, title: str) -> None:
        self._record("rename")
        self.documents[document_id]["name"] = title
        self.documents[document_id]["modified"] = self._touch()

    async def move_document(self, *, session, document_id: str, container_id: str) -> None:
        self._record("move")
        self.documents[document_id]["folder"] = container_id

    async def create_document(self, *, session, title: str) -> str:
        self._record("create")
        return self.seed(title, "root")

    async def get_subsection_titles(self, *, session, document_id: str) -> List[str]:
        self._record("tabs")
        return list(self.documents[document_id]["tabs"])

    async def add_subsection(self, *, session, document_id: str, title: str) -> None:
        self._record("add_tab", f"add_tab:{title}")
        tabs = self.documents[document_id]["tabs"]
        if title in tabs:
            raise AlreadyExistsError(f'A sheet with the name "{title}" already exists.')
        tabs[title] = []

    async def fetch_rows(
        self, *, session, document_id: str, subsection: str
    ) -> List[List[Any]]:
        self._record("fetch", f"fetch:{subsection}")
        return [list(row) for row in self.documents[document_id]["tabs"][subsection]]

    async def write_rows(
        self,
        *,
        session,
        document_id: str,
        subsection: str,
        start_row: int,
        rows: List[List[Any]],
    ) -> int:
        self._record("write", f"write:{subsection}")
        target = self.documents[document_id]["tabs"][subsection]
        for offset, row in enumerate(rows):
            index = start_row - 1 + offset
            while len(target) <= index:
                target.append([])
            target[index] = list(row)
        self.documents[document_id]["modified"] = self._touch()
        return len(rows)


class StubSession:
    credentials = "stub-credentials"

    def __init__(self) -> None:
        self.refreshes = 0
        self.forced = 0

    async def ensure_fresh(self, *, force: bool = False) -> None:
        self.refreshes += 1
        if force:
            self.forced += 1


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def session() -> StubSession:
    return StubSession()


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()
