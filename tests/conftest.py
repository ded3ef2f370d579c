"""
Shared pytest fixtures for daypage tests.

Provides in-memory stores so most tests never touch SQLite, plus a
Notebook on tmp_path for the end-to-end paths.
"""

from typing import Any, Optional

import pytest

from daypage.api import Notebook
from daypage.backend import MemoryBlobStore, MemoryStore
from daypage.config import StoreConfig
from daypage.repository import EntryRepository
from daypage.types import Entry, Journal, Tag


class FailingStore(MemoryStore):
    """Durable store whose writes can be switched off."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        super().__init__(initial)
        self.fail = False

    def save(self, key: str, value: Any) -> bool:
        if self.fail:
            self.save_calls += 1
            return False
        return super().save(key, value)


class FailingBlobStore(MemoryBlobStore):
    """Image store that refuses every write."""

    async def put(self, id: str, data: bytes) -> bool:
        return False


def make_entry(
    id: str,
    date: str = "2026-03-01",
    *,
    journal_id: str = "default",
    title: str = "",
    body: str = "",
    tags: Optional[list] = None,
    created_at: str = "2026-03-01T09:00:00.000Z",
    updated_at: Optional[str] = None,
    image_ref: Optional[str] = None,
) -> Entry:
    """Build an entry with fixed timestamps."""
    tag_objs = []
    for i, t in enumerate(tags or []):
        if isinstance(t, Tag):
            tag_objs.append(t)
        else:
            tag_objs.append(Tag(id=f"{id}-t{i}", text=t))
    return Entry(
        id=id,
        journal_id=journal_id,
        date=date,
        title=title,
        body=body,
        image_ref=image_ref,
        tags=tag_objs,
        created_at=created_at,
        updated_at=updated_at or created_at,
    )


def make_journal(id: str, name: str) -> Journal:
    return Journal(id=id, name=name,
                   created_at="2026-01-01T00:00:00.000Z",
                   updated_at="2026-01-01T00:00:00.000Z")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def repo():
    """An empty repository with only the default journal."""
    return EntryRepository()


@pytest.fixture
def notebook(tmp_path, memory_store, blob_store):
    """Notebook over in-memory stores."""
    config = StoreConfig(path=tmp_path, backend="memory")
    nb = Notebook(config=config, durable_store=memory_store, blob_store=blob_store)
    yield nb
    nb.close()


@pytest.fixture
def local_notebook(tmp_path):
    """Notebook over the real SQLite stores in tmp_path."""
    nb = Notebook(tmp_path)
    yield nb
    nb.close()
