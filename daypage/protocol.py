"""
Protocol definitions for the notebook and its storage collaborators.

Defines interface contracts at two levels:
- NotebookProtocol: the public API consumed by the CLI (or any front end)
- DurableStoreProtocol / BlobStoreProtocol: storage backends
  (SQLite locally, in-memory for tests, plugins via entry points)
"""

from typing import Any, Optional, Protocol, runtime_checkable

from .types import Entry, Journal, OpResult


@runtime_checkable
class DurableStoreProtocol(Protocol):
    """
    Whole-value key-value persistence.

    ``load`` returns None for missing or corrupt data; ``save`` reports
    failure through its return value. Neither raises.
    """

    def load(self, key: str) -> Any: ...

    def save(self, key: str, value: Any) -> bool: ...

    def close(self) -> None: ...


@runtime_checkable
class BlobStoreProtocol(Protocol):
    """Async image storage keyed by the ids referenced from ``Entry.image_ref``."""

    async def put(self, id: str, data: bytes) -> bool: ...

    async def get(self, id: str) -> Optional[bytes]: ...

    async def delete(self, id: str) -> bool: ...

    def close(self) -> None: ...


@runtime_checkable
class NotebookProtocol(Protocol):
    """
    The public interface for journal operations.

    Implemented by:
    - Notebook (local store)
    """

    # -- Entries --

    def create_entry(self, journal_id: Optional[str] = None, date: Optional[str] = None) -> Entry: ...

    def update_entry(self, id: str, patch: dict[str, Any]) -> OpResult: ...

    def delete_entry(self, id: str) -> OpResult: ...

    def get_entry(self, id: str) -> Optional[Entry]: ...

    def sorted_entries(self, journal_id: Optional[str] = None) -> list[Entry]: ...

    def entries_on_date(self, journal_id: Optional[str], date: str) -> list[Entry]: ...

    # -- Search --

    def run_query(self, raw_query: str, active_journal_id: Optional[str] = None) -> Any: ...

    # -- Journals --

    def journals(self) -> list[Journal]: ...

    def create_journal(self, name: str) -> OpResult: ...

    def rename_journal(self, id: str, name: str) -> OpResult: ...

    def delete_journal(self, id: str) -> OpResult: ...

    def set_active_journal(self, id: str) -> str: ...

    # -- Bulk --

    def export_data(self) -> dict: ...

    def import_data(self, payload: Any) -> OpResult: ...

    def close(self) -> None: ...
