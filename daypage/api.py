"""
Core API for the journal.

``Notebook`` wires the pieces together:
- EntryRepository: entries, journals and the current selection
- DirtyTracker: unsaved-change state of the open entry
- SearchEngine: scoped free-text search and the tag index
- a durable store for the two collections and an async image store

Every repository mutation is persisted immediately. A failed write keeps
the change in memory and is reported through ``last_save_ok`` and the
result message rather than raised.
"""

import logging
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from .config import StoreConfig, get_config_dir, get_default_store_path, load_or_create_config
from .days import DayGroup, MonthView, day_group, month_grid
from .dirty import DirtyTracker
from .document_store import ENTRIES_KEY, JOURNALS_KEY
from .migrations import (
    decode_image_payload,
    encode_image_payload,
    journals_from_entries,
    migrate_legacy_images,
    normalize_entry,
)
from .query import SCOPE_ACTIVE
from .repository import ENTRIES, JOURNALS, EntryRepository
from .search import QueryResult, SearchEngine, TagRecord
from .types import Entry, Journal, OpResult, OpStatus, generate_id, utc_now

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "daypage-export"
EXPORT_VERSION = 1

SESSION_ONLY_NOTE = "storage unavailable, changes are visible this session only"

_EDITABLE_FIELDS = ("date", "title", "body")
_MEDIA_FIELDS = ("tags", "image_ref", "imageRef")


def _split_journal_payload(raw: Any) -> tuple[Optional[list], Optional[str]]:
    """(journal list or None, active id or None) from a stored or imported payload."""
    if isinstance(raw, list):
        return raw, None
    if not isinstance(raw, Mapping):
        return None, None
    journals = raw.get("journals")
    if journals is None:
        journals = raw.get("notebooks")
    active = raw.get("activeJournalId") or raw.get("activeNotebookId")
    return (
        journals if isinstance(journals, list) else None,
        active if isinstance(active, str) else None,
    )


def _entry_records(raw: Any) -> list[Entry]:
    if not isinstance(raw, list):
        return []
    return [normalize_entry(item) for item in raw if isinstance(item, Mapping)]


class Notebook:
    """
    A local journal: entries grouped into journals, with photos and tags.

    Example:
        with Notebook() as nb:
            entry = nb.create_entry()
            nb.update_entry(entry.id, {"title": "First day"})
            nb.run_query("first")
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        durable_store=None,
        blob_store=None,
    ) -> None:
        """
        Open (or create) a journal store.

        Args:
            store_path: Store directory. Uses the default if not specified.
            config: Pre-loaded StoreConfig (skips filesystem config discovery).
            durable_store: Injected durable store (skips backend creation).
            blob_store: Injected image store (skips backend creation).
        """
        # --- Config resolution ---
        if config is not None:
            self._config: StoreConfig = config
            self._store_path = config.path if config.path else Path(".")
        else:
            if store_path is not None:
                self._store_path = Path(store_path).resolve()
                config_dir = self._store_path
            else:
                config_dir = get_config_dir()

            self._config = load_or_create_config(config_dir)

            if store_path is None:
                self._store_path = get_default_store_path(self._config)

        # --- Persistent operations log ---
        from .logging_config import configure_ops_log
        self._ops_log_handler = configure_ops_log(self._store_path)

        # --- Storage backends (injected or factory-created) ---
        self._durable = durable_store
        self._blobs = blob_store
        if durable_store is None or blob_store is None:
            from .backend import create_stores
            bundle = create_stores(
                replace(self._config, path=self._store_path),
                durable=durable_store is None,
                blobs=blob_store is None,
            )
            if durable_store is None:
                self._durable = bundle.durable_store
            if blob_store is None:
                self._blobs = bundle.blob_store

        self._save_failed = False
        self._repo = EntryRepository(on_change=self._persist)
        self._tracker = DirtyTracker()
        self._search = SearchEngine(
            self._repo,
            max_entry_results=self._config.search.max_entry_results,
            max_tag_results=self._config.search.max_tag_results,
        )
        self.load_all()

    @property
    def store_path(self) -> Path:
        return self._store_path

    @property
    def config(self) -> StoreConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _persist(self, kind: str) -> None:
        if kind == ENTRIES:
            ok = self._durable.save(ENTRIES_KEY, self._repo.entries_payload())
        elif kind == JOURNALS:
            ok = self._durable.save(JOURNALS_KEY, self._repo.journals_payload())
        else:
            return
        if not ok:
            self._save_failed = True
            logger.warning("Could not persist %s; %s", kind, SESSION_ONLY_NOTE)

    @property
    def last_save_ok(self) -> bool:
        """False when the most recent operation could not be written to storage."""
        return not self._save_failed

    def _begin(self) -> None:
        self._save_failed = False

    def _finish(self, result: OpResult) -> OpResult:
        """Append the session-only note to a successful result whose write failed."""
        if result.ok and self._save_failed:
            message = f"{result.message} ({SESSION_ONLY_NOTE})" if result.message else SESSION_ONLY_NOTE
            return replace(result, message=message)
        return result

    def load_all(self) -> None:
        """
        Load both collections from the durable store.

        Stored records of any vintage are normalized; if that changed
        anything the upgraded form is written back. Missing or corrupt
        data loads as an empty journal. Inline legacy images stay pending
        until :meth:`migrate_images` runs.
        """
        raw_entries = self._durable.load(ENTRIES_KEY)
        raw_journals = self._durable.load(JOURNALS_KEY)

        entries = _entry_records(raw_entries)
        journal_list, active_id = _split_journal_payload(raw_journals)
        if journal_list is None:
            journal_list = [j.to_dict() for j in journals_from_entries(entries)]

        self._begin()
        self._repo.replace_all(entries, journal_list, active_id)
        self._tracker.snapshot(None)

        if raw_entries is not None and raw_entries != self._repo.entries_payload():
            logger.info("Upgrading stored entries to the current format")
            self._persist(ENTRIES)
        if raw_journals is not None and raw_journals != self._repo.journals_payload():
            logger.info("Upgrading stored journals to the current format")
            self._persist(JOURNALS)

        logger.debug("Loaded %d entries in %d journals",
                     len(self._repo.entries), len(self._repo.journals))

    async def migrate_images(self) -> int:
        """
        Move inline images from old data into the image store.

        Entries whose move fails keep their inline payload (it stays
        persisted) and are retried next time.

        Returns:
            Number of images moved
        """
        pending = self._repo.pending_images()
        if not pending:
            return 0
        migrated = await migrate_legacy_images(pending, self._blobs)
        if not migrated:
            return 0
        self._begin()
        self._repo.apply_image_refs({e.id: e.image_ref for e in pending if e.image_ref})
        return migrated

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def create_entry(self, journal_id: Optional[str] = None, date: Optional[str] = None) -> Entry:
        """Create an empty entry (unknown journal = active, invalid date = today)."""
        self._begin()
        entry = self._repo.create(journal_id, date)
        logger.info("Created entry %s in journal %s", entry.id, entry.journal_id)
        return entry

    def new_entry(self, journal_id: Optional[str] = None, date: Optional[str] = None) -> Entry:
        """Create an entry and open it in the editor as unsaved."""
        entry = self.create_entry(journal_id, date)
        self._repo.select_entry(entry.id)
        self._tracker.snapshot(entry)
        self._tracker.mark_new()
        return entry

    def update_entry(self, id: str, patch: dict[str, Any]) -> OpResult:
        self._begin()
        result = self._repo.update(id, patch)
        if result.ok:
            logger.info("Updated entry %s (%s)", id, ", ".join(sorted(patch)))
            if id == self._repo.current_entry_id:
                self._tracker.saved_fields(result.value, patch)
                if any(k in patch for k in _MEDIA_FIELDS):
                    self._tracker.mark_media_changed()
            elif self._repo.current_entry_id is None:
                self._tracker.snapshot(None)
        return self._finish(result)

    def delete_entry(self, id: str) -> OpResult:
        """
        Delete an entry. Its image is not released; see :meth:`purge_entry`.

        If the entry was open the editor is closed; nothing else is opened.
        """
        was_open = id == self._repo.current_entry_id
        self._begin()
        result = self._repo.delete(id)
        if result.ok:
            logger.info("Deleted entry %s", id)
            if was_open:
                self._tracker.snapshot(None)
        return self._finish(result)

    async def purge_entry(self, id: str) -> OpResult:
        """Delete an entry and release its image."""
        result = self.delete_entry(id)
        if result.ok and result.value.image_ref:
            if not await self._blobs.delete(result.value.image_ref):
                logger.warning("Image %s of deleted entry %s was not released",
                               result.value.image_ref, id)
        return result

    def get_entry(self, id: str) -> Optional[Entry]:
        return self._repo.get_entry(id)

    def sorted_entries(self, journal_id: Optional[str] = None) -> list[Entry]:
        return self._repo.sorted_entries(journal_id)

    def entries_on_date(self, journal_id: Optional[str], date: str) -> list[Entry]:
        return self._repo.entries_on_date(journal_id, date)

    def day_group(self, date: str, journal_id: Optional[str] = None) -> DayGroup:
        if journal_id is None:
            journal_id = self._repo.active_journal_id
        return day_group(self._repo.entries_for(journal_id), date)

    def month_view(
        self,
        year: int,
        month: int,
        journal_id: Optional[str] = None,
        *,
        selected: Optional[str] = None,
        today_iso: Optional[str] = None,
    ) -> MonthView:
        """Month grid marking the days that have entries in a journal."""
        if journal_id is None:
            journal_id = self._repo.active_journal_id
        if selected is None:
            current = self._repo.current_entry()
            selected = current.date if current else None
        return month_grid(year, month, self._repo.entries_for(journal_id),
                          today_iso=today_iso, selected=selected)

    # -------------------------------------------------------------------------
    # Editor session
    # -------------------------------------------------------------------------

    def current_entry(self) -> Optional[Entry]:
        return self._repo.current_entry()

    def open_entry(self, id: str, *, discard: bool = False) -> OpResult:
        """
        Open an entry in the editor, switching journals if needed.

        Refused with INVALID while the open entry has unsaved changes,
        unless ``discard`` is set.
        """
        if id != self._repo.current_entry_id and self._tracker.is_dirty() and not discard:
            return OpResult.invalid("Unsaved changes")
        result = self._repo.select_entry(id)
        if result.ok:
            self._tracker.snapshot(result.value)
        return result

    def close_entry(self) -> None:
        self._repo.clear_selection()
        self._tracker.snapshot(None)

    def edit_current(self, **fields: Optional[str]) -> OpResult:
        """
        Stage editor values for the open entry (date, title, body).

        Nothing is written until :meth:`save_current`.
        """
        if self._repo.current_entry_id is None:
            return OpResult.not_found("No entry open")
        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            return OpResult.invalid(f"Unknown field: {sorted(unknown)[0]}")
        self._tracker.update_fields(**fields)
        return OpResult.success(value=self._tracker.is_dirty())

    def save_current(self) -> OpResult:
        """Write the staged text fields of the open entry."""
        current = self._repo.current_entry()
        if current is None:
            return OpResult.not_found("No entry open")
        live = self._tracker.live_values()
        patch = {} if live is None else {
            "date": live.date or current.date,
            "title": live.title,
            "body": live.body,
        }
        self._begin()
        result = self._repo.update(current.id, patch)
        if result.ok:
            self._tracker.commit(result.value)
            logger.info("Saved entry %s", current.id)
        return self._finish(result)

    def is_dirty(self) -> bool:
        return self._tracker.is_dirty()

    @property
    def tracker(self) -> DirtyTracker:
        return self._tracker

    def _step(self, offset: int, discard: bool) -> OpResult:
        current_id = self._repo.current_entry_id
        if current_id is None:
            return OpResult.not_found("No entry open")
        prev_id, next_id = self._repo.neighbors(current_id)
        target = prev_id if offset < 0 else next_id
        if target is None:
            return OpResult.not_found("No more entries")
        return self.open_entry(target, discard=discard)

    def previous_entry(self, *, discard: bool = False) -> OpResult:
        return self._step(-1, discard)

    def next_entry(self, *, discard: bool = False) -> OpResult:
        return self._step(1, discard)

    def _media_changed(self, entry_id: str) -> None:
        if entry_id == self._repo.current_entry_id:
            self._tracker.mark_media_changed()

    # -------------------------------------------------------------------------
    # Photos (write-through)
    # -------------------------------------------------------------------------

    async def set_image(self, entry_id: str, data: bytes) -> OpResult:
        """Store an image for an entry, replacing and releasing any previous one."""
        entry = self._repo.get_entry(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")
        image_id = generate_id()
        if not await self._blobs.put(image_id, data):
            return OpResult(OpStatus.STORAGE_FAILED, "Could not store image")
        self._begin()
        result = self._repo.update(entry_id, {"image_ref": image_id})
        if not result.ok:
            await self._blobs.delete(image_id)
            return result
        if entry.image_ref and entry.image_ref != image_id:
            await self._blobs.delete(entry.image_ref)
        self._media_changed(entry_id)
        logger.info("Set image %s on entry %s (%d bytes)", image_id, entry_id, len(data))
        return self._finish(replace(result, message="Photo saved"))

    async def get_image(self, entry_id: str) -> Optional[bytes]:
        """Image bytes for an entry, or None (including not-yet-migrated inline images)."""
        entry = self._repo.get_entry(entry_id)
        if entry is None:
            return None
        if entry.image_ref:
            return await self._blobs.get(entry.image_ref)
        if entry.legacy_image is not None:
            return decode_image_payload(entry.legacy_image)
        return None

    async def remove_image(self, entry_id: str) -> OpResult:
        entry = self._repo.get_entry(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")
        if not entry.image_ref and entry.legacy_image is None:
            return OpResult.success("No photo", entry)
        self._begin()
        result = self._repo.update(entry_id, {"image_ref": None})
        if result.ok and entry.image_ref:
            await self._blobs.delete(entry.image_ref)
        self._media_changed(entry_id)
        logger.info("Removed image from entry %s", entry_id)
        return self._finish(replace(result, message="Photo removed"))

    # -------------------------------------------------------------------------
    # Tags (write-through)
    # -------------------------------------------------------------------------

    def _tag_op(self, entry_id: str, result: OpResult) -> OpResult:
        if result.ok:
            self._media_changed(entry_id)
        return self._finish(result)

    def add_tag(
        self,
        entry_id: str,
        text: str,
        color: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> OpResult:
        self._begin()
        return self._tag_op(entry_id, self._repo.add_tag(entry_id, text, color, x, y))

    def edit_tag(
        self,
        entry_id: str,
        tag_id: str,
        text: Optional[str] = None,
        color: Optional[str] = None,
    ) -> OpResult:
        self._begin()
        return self._tag_op(entry_id, self._repo.edit_tag(entry_id, tag_id, text, color))

    def place_tag(self, entry_id: str, tag_id: str, x: float, y: float) -> OpResult:
        self._begin()
        return self._tag_op(entry_id, self._repo.place_tag(entry_id, tag_id, x, y))

    def unplace_tag(self, entry_id: str, tag_id: str) -> OpResult:
        self._begin()
        return self._tag_op(entry_id, self._repo.unplace_tag(entry_id, tag_id))

    def remove_tag(self, entry_id: str, tag_id: str) -> OpResult:
        self._begin()
        return self._tag_op(entry_id, self._repo.remove_tag(entry_id, tag_id))

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def run_query(self, raw_query: str, active_journal_id: Optional[str] = None) -> QueryResult:
        return self._search.run_query(raw_query, active_journal_id)

    def browse_tags(
        self,
        fragment: str = "",
        scope: str = SCOPE_ACTIVE,
        journal_id: Optional[str] = None,
    ) -> QueryResult:
        return self._search.browse_tags(fragment, scope, journal_id)

    def entries_with_tag(
        self,
        tag: "TagRecord | str",
        scope: str = SCOPE_ACTIVE,
        journal_id: Optional[str] = None,
    ) -> QueryResult:
        return self._search.entries_with_tag(tag, scope, journal_id)

    # -------------------------------------------------------------------------
    # Journals
    # -------------------------------------------------------------------------

    def journals(self) -> list[Journal]:
        return list(self._repo.journals)

    def active_journal(self) -> Journal:
        return self._repo.active_journal()

    def find_journal(self, name_or_id: str) -> Optional[Journal]:
        """Look a journal up by id, then by name (case-insensitive)."""
        return self._repo.get_journal(name_or_id) or self._repo.find_journal_by_name(name_or_id)

    def count_entries(self, journal_id: str) -> int:
        return self._repo.count_entries(journal_id)

    def create_journal(self, name: str) -> OpResult:
        self._begin()
        result = self._repo.create_journal(name)
        if result.ok:
            logger.info("Created journal %s (%s)", result.value.id, result.value.name)
        return self._finish(result)

    def rename_journal(self, id: str, name: str) -> OpResult:
        self._begin()
        return self._finish(self._repo.rename_journal(id, name))

    def delete_journal(self, id: str) -> OpResult:
        """Delete a journal and its entries. Images are not released; see :meth:`purge_journal`."""
        self._begin()
        result = self._repo.delete_journal(id)
        if result.ok and self._repo.current_entry_id is None:
            self._tracker.snapshot(None)
        return self._finish(result)

    async def purge_journal(self, id: str) -> OpResult:
        """Delete a journal, its entries and their images."""
        result = self.delete_journal(id)
        if result.ok:
            for entry in result.value:
                if entry.image_ref and not await self._blobs.delete(entry.image_ref):
                    logger.warning("Image %s of deleted entry %s was not released",
                                   entry.image_ref, entry.id)
        return result

    def set_active_journal(self, id: str) -> str:
        """Switch journals; an open entry from another journal is closed."""
        self._begin()
        active = self._repo.set_active_journal(id)
        if self._repo.current_entry_id is None:
            self._tracker.snapshot(None)
        return active

    # -------------------------------------------------------------------------
    # Import / Export
    # -------------------------------------------------------------------------

    def export_data(self) -> dict:
        """
        Export every entry and journal as a single dict.

        Images are referenced by id only; see :meth:`export_with_images`.
        """
        journals = self._repo.journals_payload()
        return {
            "format": EXPORT_FORMAT,
            "version": EXPORT_VERSION,
            "exportedAt": utc_now(),
            "entries": self._repo.entries_payload(),
            "journals": journals["journals"],
            "activeJournalId": journals["activeJournalId"],
        }

    async def export_with_images(self) -> dict:
        """Like :meth:`export_data`, with each image inlined as ``imageData``."""
        data = self.export_data()
        for item in data["entries"]:
            ref = item.get("imageRef")
            if not ref:
                continue
            blob = await self._blobs.get(ref)
            if blob is None:
                logger.warning("Image %s missing from store; exported by reference only", ref)
                continue
            item["imageData"] = encode_image_payload(blob)
            item["imageRef"] = None
        return data

    def import_data(self, payload: Any) -> OpResult:
        """
        Replace all entries and journals with imported data.

        Accepts a bare list of entries or a bundle with ``entries`` and
        optionally ``journals`` and ``activeJournalId``. A payload without
        entries is rejected and nothing changes. Inline images come in
        pending; run :meth:`migrate_images` afterwards.

        Returns:
            OpResult whose value is ``{"entries", "journals", "pending_images"}``
        """
        if isinstance(payload, Mapping):
            fmt = payload.get("format")
            if fmt is not None and fmt != EXPORT_FORMAT:
                return OpResult.invalid(f"Invalid export format (expected '{EXPORT_FORMAT}')")
            version = payload.get("version", EXPORT_VERSION)
            if isinstance(version, int) and version > EXPORT_VERSION:
                return OpResult.invalid(
                    f"Export format version {version} is not supported "
                    f"(this version supports up to {EXPORT_VERSION})"
                )
            entries = _entry_records(payload.get("entries"))
            journal_list, active_id = _split_journal_payload(payload)
        else:
            entries = _entry_records(payload)
            journal_list, active_id = None, None

        if not entries:
            return OpResult.invalid("Nothing to import: no entries found")

        if journal_list is None:
            known = self._repo.journals
            journal_list = [j.to_dict() for j in journals_from_entries(entries, known)]

        self._begin()
        self._repo.replace_all(entries, journal_list, active_id, persist=True)
        self._tracker.snapshot(None)

        ordered = self._repo.sorted_entries()
        if ordered:
            self.open_entry(ordered[-1].id, discard=True)

        stats = {
            "entries": len(self._repo.entries),
            "journals": len(self._repo.journals),
            "pending_images": len(self._repo.pending_images()),
        }
        logger.info("Imported %d entries into %d journals", stats["entries"], stats["journals"])
        return self._finish(OpResult.success("Import complete", stats))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the stores and detach the operations log."""
        if getattr(self, "_durable", None) is not None:
            self._durable.close()
            self._durable = None
        if getattr(self, "_blobs", None) is not None:
            self._blobs.close()
            self._blobs = None

        # Remove ops log handler to avoid handler accumulation
        if getattr(self, "_ops_log_handler", None):
            logging.getLogger("daypage").removeHandler(self._ops_log_handler)
            self._ops_log_handler.close()
            self._ops_log_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass  # Suppress errors during garbage collection
