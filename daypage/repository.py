"""
Entry repository: the single owner of entries, journals and the active
selection.

All mutation goes through methods here so that invariants hold after
every call:

- journals are never empty
- every entry's ``journal_id`` names an existing journal
- ``current_entry_id``, when set, names an entry in the active journal
- tag ids are unique within an entry
- every mutation refreshes ``updated_at``

Read methods hand out copies; callers cannot reach the live records.
Operations on unknown ids return an :class:`OpResult` with ``NOT_FOUND``
rather than raising.

After each mutation the ``on_change`` callback is invoked with
``"entries"`` or ``"journals"`` so the owner can persist the affected
collection.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

from .migrations import default_journal, normalize_journals, normalize_tag
from .types import (
    DEFAULT_JOURNAL_ID,
    DEFAULT_TAG_TEXT,
    TAG_COLORS,
    Entry,
    Journal,
    OpResult,
    Tag,
    clamp_percent,
    clean_display_text,
    generate_id,
    is_valid_date,
    normalize_journal_name,
    today,
    utc_now,
)

logger = logging.getLogger(__name__)

ENTRIES = "entries"
JOURNALS = "journals"

# Fields accepted by update(); "journalId"/"imageRef" are stored-form aliases
_PATCH_ALIASES = {
    "date": "date",
    "title": "title",
    "body": "body",
    "tags": "tags",
    "journal_id": "journal_id",
    "journalId": "journal_id",
    "image_ref": "image_ref",
    "imageRef": "image_ref",
}


def chronological_key(entry: Entry) -> tuple[str, str, str, str]:
    """
    Sort key for navigation order.

    ``created_at`` outranks ``updated_at`` so that editing and re-saving
    an entry never moves it among same-day entries; ``id`` makes the
    order total.
    """
    return (entry.date or "", entry.created_at or "", entry.updated_at or "", entry.id or "")


class EntryRepository:
    """
    In-memory entries and journals with invariant-preserving mutations.

    Example:
        repo = EntryRepository()
        entry = repo.create()
        repo.update(entry.id, {"title": "Hello"})
        repo.sorted_entries()
    """

    def __init__(self, on_change: Optional[Callable[[str], None]] = None):
        self._entries: list[Entry] = []
        self._journals: list[Journal] = [default_journal()]
        self._active_journal_id: str = DEFAULT_JOURNAL_ID
        self._current_entry_id: Optional[str] = None
        self._on_change = on_change

    def _changed(self, *kinds: str) -> None:
        if self._on_change is None:
            return
        for kind in kinds:
            self._on_change(kind)

    def _find(self, entry_id: Optional[str]) -> Optional[Entry]:
        if not entry_id:
            return None
        for e in self._entries:
            if e.id == entry_id:
                return e
        return None

    def _find_journal(self, journal_id: Optional[str]) -> Optional[Journal]:
        if not journal_id:
            return None
        for j in self._journals:
            if j.id == journal_id:
                return j
        return None

    def _fallback_journal_id(self) -> str:
        """Where orphaned entries go: the default journal, else the first one."""
        if self._find_journal(DEFAULT_JOURNAL_ID) is not None:
            return DEFAULT_JOURNAL_ID
        return self._journals[0].id

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    @property
    def active_journal_id(self) -> str:
        return self._active_journal_id

    @property
    def current_entry_id(self) -> Optional[str]:
        return self._current_entry_id

    @property
    def entries(self) -> tuple[Entry, ...]:
        """All entries (copies), in storage order."""
        return tuple(e.copy() for e in self._entries)

    @property
    def journals(self) -> tuple[Journal, ...]:
        return tuple(Journal(**vars(j)) for j in self._journals)

    def get_entry(self, entry_id: str) -> Optional[Entry]:
        entry = self._find(entry_id)
        return entry.copy() if entry else None

    def get_journal(self, journal_id: str) -> Optional[Journal]:
        journal = self._find_journal(journal_id)
        return Journal(**vars(journal)) if journal else None

    def active_journal(self) -> Journal:
        journal = self._find_journal(self._active_journal_id)
        return Journal(**vars(journal or self._journals[0]))

    def find_journal_by_name(self, name: str) -> Optional[Journal]:
        """Case- and whitespace-insensitive journal lookup."""
        norm = normalize_journal_name(name)
        if not norm:
            return None
        for j in self._journals:
            if j.norm_name == norm:
                return Journal(**vars(j))
        return None

    def entries_for(self, journal_id: Optional[str] = None) -> list[Entry]:
        """Entries of one journal (``None`` = all journals), storage order."""
        return [
            e.copy() for e in self._entries
            if journal_id is None or e.journal_id == journal_id
        ]

    def count_entries(self, journal_id: str) -> int:
        return sum(1 for e in self._entries if e.journal_id == journal_id)

    def sorted_entries(self, journal_id: Optional[str] = None) -> list[Entry]:
        """
        Entries of a journal in chronological navigation order.

        Args:
            journal_id: Journal to list; defaults to the active journal
        """
        if journal_id is None:
            journal_id = self._active_journal_id
        return sorted(self.entries_for(journal_id), key=chronological_key)

    def entries_on_date(self, journal_id: Optional[str], date: str) -> list[Entry]:
        """Entries of a journal on one calendar date, in navigation order."""
        return [e for e in self.sorted_entries(journal_id) if e.date == date]

    def current_entry(self) -> Optional[Entry]:
        return self.get_entry(self._current_entry_id) if self._current_entry_id else None

    def neighbors(self, entry_id: str) -> tuple[Optional[str], Optional[str]]:
        """Ids of the previous and next entries in the entry's journal."""
        entry = self._find(entry_id)
        if entry is None:
            return None, None
        ordered = self.sorted_entries(entry.journal_id)
        ids = [e.id for e in ordered]
        idx = ids.index(entry_id)
        prev_id = ids[idx - 1] if idx > 0 else None
        next_id = ids[idx + 1] if idx < len(ids) - 1 else None
        return prev_id, next_id

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def set_active_journal(self, journal_id: Optional[str]) -> str:
        """
        Make a journal active; unknown ids fall back to the first journal.

        Returns:
            The id that is now active
        """
        journal = self._find_journal(journal_id) or self._journals[0]
        self._active_journal_id = journal.id
        current = self._find(self._current_entry_id)
        if current is not None and current.journal_id != journal.id:
            self._current_entry_id = None
        self._changed(JOURNALS)
        return journal.id

    def select_entry(self, entry_id: str) -> OpResult:
        """Make an entry current, switching to its journal if needed."""
        entry = self._find(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")
        if entry.journal_id != self._active_journal_id:
            self._active_journal_id = entry.journal_id
            self._changed(JOURNALS)
        self._current_entry_id = entry.id
        return OpResult.success(value=entry.copy())

    def clear_selection(self) -> None:
        self._current_entry_id = None

    # -------------------------------------------------------------------------
    # Entry Mutations
    # -------------------------------------------------------------------------

    def create(self, journal_id: Optional[str] = None, date: Optional[str] = None) -> Entry:
        """
        Append a new empty entry. The new entry is not selected.

        Args:
            journal_id: Owning journal; unknown or None means the active journal
            date: YYYY-MM-DD; invalid or None means today
        """
        if self._find_journal(journal_id) is None:
            journal_id = self._active_journal_id
        now = utc_now()
        entry = Entry(
            id=self._new_entry_id(),
            journal_id=journal_id,
            date=date if is_valid_date(date) else today(),
            created_at=now,
            updated_at=now,
        )
        self._entries.append(entry)
        self._changed(ENTRIES)
        return entry.copy()

    def _new_entry_id(self) -> str:
        new_id = generate_id()
        while self._find(new_id) is not None:
            new_id = generate_id()
        return new_id

    def update(self, entry_id: str, patch: Mapping[str, Any]) -> OpResult:
        """
        Apply a field patch to an entry. All-or-nothing.

        Accepted keys: date, title, body, tags, journal_id, image_ref
        (``journalId``/``imageRef`` also accepted).
        """
        entry = self._find(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")

        changes: dict[str, Any] = {}
        for key, value in patch.items():
            field_name = _PATCH_ALIASES.get(key)
            if field_name is None:
                return OpResult.invalid(f"Unknown field: {key}")
            if field_name == "date":
                if not is_valid_date(value):
                    return OpResult.invalid(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
            elif field_name in ("title", "body"):
                if value is None:
                    value = ""
                if not isinstance(value, str):
                    return OpResult.invalid(f"{field_name} must be text")
            elif field_name == "journal_id":
                if self._find_journal(value) is None:
                    return OpResult.invalid(f"Journal not found: {value}")
            elif field_name == "image_ref":
                if value is not None and not (isinstance(value, str) and value):
                    return OpResult.invalid("image_ref must be a non-empty string or None")
            elif field_name == "tags":
                if not isinstance(value, list):
                    return OpResult.invalid("tags must be a list")
                seen: set[str] = set()
                value = [t for t in (normalize_tag(v, seen) for v in value) if t is not None]
            changes[field_name] = value

        for field_name, value in changes.items():
            setattr(entry, field_name, value)
        if "image_ref" in changes:
            # An explicit image replaces any inline payload still waiting to move
            entry.legacy_image = None
        entry.updated_at = utc_now()

        if entry.id == self._current_entry_id and entry.journal_id != self._active_journal_id:
            self._current_entry_id = None
        self._changed(ENTRIES)
        return OpResult.success("Entry saved", entry.copy())

    def delete(self, entry_id: str) -> OpResult:
        """
        Remove an entry.

        The removed entry is returned in ``value``; its image (if any) is
        now the caller's to release. If it was current the selection is
        cleared; choosing what to show next is up to the caller.
        """
        entry = self._find(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")
        self._entries.remove(entry)
        if self._current_entry_id == entry_id:
            self._current_entry_id = None
        self._changed(ENTRIES)
        return OpResult.success("Entry deleted", entry)

    # -------------------------------------------------------------------------
    # Tag Mutations (write-through)
    # -------------------------------------------------------------------------

    def _tag_target(self, entry_id: str, tag_id: str) -> tuple[Optional[Entry], Optional[Tag], Optional[OpResult]]:
        entry = self._find(entry_id)
        if entry is None:
            return None, None, OpResult.not_found(f"Entry not found: {entry_id}")
        tag = entry.tag(tag_id)
        if tag is None:
            return entry, None, OpResult.not_found(f"Tag not found: {tag_id}")
        return entry, tag, None

    def _touch(self, entry: Entry) -> None:
        entry.updated_at = utc_now()
        self._changed(ENTRIES)

    def add_tag(
        self,
        entry_id: str,
        text: str,
        color: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
    ) -> OpResult:
        """
        Add a tag to an entry. Tags start unplaced unless both x and y are given.

        Blank text becomes ``"Tag"``; color defaults to the first palette color.
        """
        entry = self._find(entry_id)
        if entry is None:
            return OpResult.not_found(f"Entry not found: {entry_id}")
        if color is None:
            color = TAG_COLORS[0]
        if color not in TAG_COLORS:
            return OpResult.invalid(f"Unknown tag color: {color}")
        tag_id = generate_id()
        while entry.tag(tag_id) is not None:
            tag_id = generate_id()
        tag = Tag(id=tag_id, text=clean_display_text(text) or DEFAULT_TAG_TEXT, color=color)
        if x is not None and y is not None:
            tag.x, tag.y = clamp_percent(x), clamp_percent(y)
        entry.tags.append(tag)
        self._touch(entry)
        return OpResult.success("Tag created", Tag(**vars(tag)))

    def edit_tag(
        self,
        entry_id: str,
        tag_id: str,
        text: Optional[str] = None,
        color: Optional[str] = None,
    ) -> OpResult:
        entry, tag, err = self._tag_target(entry_id, tag_id)
        if err:
            return err
        if color is not None and color not in TAG_COLORS:
            return OpResult.invalid(f"Unknown tag color: {color}")
        if text is not None:
            tag.text = clean_display_text(text) or DEFAULT_TAG_TEXT
        if color is not None:
            tag.color = color
        self._touch(entry)
        return OpResult.success("Tag updated", Tag(**vars(tag)))

    def place_tag(self, entry_id: str, tag_id: str, x: float, y: float) -> OpResult:
        """Position a tag on the entry's image (percentages, clamped to 0-100)."""
        entry, tag, err = self._tag_target(entry_id, tag_id)
        if err:
            return err
        tag.x, tag.y = clamp_percent(x), clamp_percent(y)
        self._touch(entry)
        return OpResult.success("Tag placed", Tag(**vars(tag)))

    def unplace_tag(self, entry_id: str, tag_id: str) -> OpResult:
        entry, tag, err = self._tag_target(entry_id, tag_id)
        if err:
            return err
        tag.x = tag.y = None
        self._touch(entry)
        return OpResult.success("Tag unplaced", Tag(**vars(tag)))

    def remove_tag(self, entry_id: str, tag_id: str) -> OpResult:
        entry, tag, err = self._tag_target(entry_id, tag_id)
        if err:
            return err
        entry.tags.remove(tag)
        self._touch(entry)
        return OpResult.success("Tag deleted", tag)

    # -------------------------------------------------------------------------
    # Journal Mutations
    # -------------------------------------------------------------------------

    def _validate_journal_name(self, name: str, exclude_id: Optional[str] = None) -> Optional[OpResult]:
        norm = normalize_journal_name(name)
        if not norm:
            return OpResult.invalid("Journal name required")
        for j in self._journals:
            if j.id != exclude_id and j.norm_name == norm:
                return OpResult.invalid("That journal name already exists")
        return None

    def create_journal(self, name: str) -> OpResult:
        """Create a journal. Names must be non-empty and unique (case-insensitive)."""
        err = self._validate_journal_name(name)
        if err:
            return err
        now = utc_now()
        journal_id = generate_id()
        while self._find_journal(journal_id) is not None:
            journal_id = generate_id()
        journal = Journal(id=journal_id, name=clean_display_text(name),
                          created_at=now, updated_at=now)
        self._journals.append(journal)
        self._changed(JOURNALS)
        return OpResult.success("Journal created", Journal(**vars(journal)))

    def rename_journal(self, journal_id: str, name: str) -> OpResult:
        journal = self._find_journal(journal_id)
        if journal is None:
            return OpResult.not_found(f"Journal not found: {journal_id}")
        err = self._validate_journal_name(name, exclude_id=journal_id)
        if err:
            return err
        journal.name = clean_display_text(name)
        journal.updated_at = utc_now()
        self._changed(JOURNALS)
        return OpResult.success("Journal renamed", Journal(**vars(journal)))

    def delete_journal(self, journal_id: str) -> OpResult:
        """
        Delete a journal and every entry in it.

        The default journal can only be deleted when it is the last one,
        and a fresh default journal then takes its place. The removed
        entries are returned in ``value`` so the caller can release their
        images.
        """
        journal = self._find_journal(journal_id)
        if journal is None:
            return OpResult.not_found(f"Journal not found: {journal_id}")
        if journal_id == DEFAULT_JOURNAL_ID and len(self._journals) > 1:
            return OpResult.invalid(f"The {journal.name!r} journal cannot be deleted")

        removed = [e for e in self._entries if e.journal_id == journal_id]
        self._entries = [e for e in self._entries if e.journal_id != journal_id]
        self._journals.remove(journal)
        if not self._journals:
            self._journals.append(default_journal())

        if self._find(self._current_entry_id) is None:
            self._current_entry_id = None
        if self._active_journal_id == journal_id:
            self._active_journal_id = self._journals[0].id
        logger.info("Deleted journal %s with %d entries", journal_id, len(removed))
        self._changed(ENTRIES, JOURNALS)
        return OpResult.success("Journal deleted", removed)

    # -------------------------------------------------------------------------
    # Bulk
    # -------------------------------------------------------------------------

    def replace_all(
        self,
        entries: Iterable[Entry],
        journals: Iterable[Any],
        active_journal_id: Optional[str] = None,
        *,
        persist: bool = False,
    ) -> None:
        """
        Swap in a complete new state (load, import).

        Journals are normalized (never empty); entries pointing at a
        missing journal are moved to the default journal; duplicate entry
        ids are re-issued. Selection is reset.
        """
        self._journals = normalize_journals(list(journals))
        known = {j.id for j in self._journals}
        fallback = self._fallback_journal_id()

        new_entries: list[Entry] = []
        seen_ids: set[str] = set()
        for entry in entries:
            entry = entry.copy()
            if entry.journal_id not in known:
                logger.info("Entry %s referenced missing journal %s; moved to %s",
                            entry.id, entry.journal_id, fallback)
                entry.journal_id = fallback
            if entry.id in seen_ids:
                old_id = entry.id
                entry.id = generate_id()
                while entry.id in seen_ids:
                    entry.id = generate_id()
                logger.info("Duplicate entry id %s re-issued as %s", old_id, entry.id)
            seen_ids.add(entry.id)
            new_entries.append(entry)
        self._entries = new_entries

        self._current_entry_id = None
        journal = self._find_journal(active_journal_id) or self._journals[0]
        self._active_journal_id = journal.id
        if persist:
            self._changed(ENTRIES, JOURNALS)

    def pending_images(self) -> list[Entry]:
        """Entries still carrying an inline image that has not been moved out."""
        return [e.copy() for e in self._entries if e.legacy_image is not None and not e.image_ref]

    def apply_image_refs(self, refs: Mapping[str, str]) -> int:
        """
        Record images moved into the image store (entry id -> image id).

        Not a user edit, so ``updated_at`` is left alone.
        """
        applied = 0
        for entry_id, image_ref in refs.items():
            entry = self._find(entry_id)
            if entry is None or entry.image_ref:
                continue
            entry.image_ref = image_ref
            entry.legacy_image = None
            applied += 1
        if applied:
            self._changed(ENTRIES)
        return applied

    def entries_payload(self) -> list[dict]:
        """Stored form of the entry collection."""
        return [e.to_dict() for e in self._entries]

    def journals_payload(self) -> dict:
        """Stored form of the journal collection plus the active journal id."""
        return {
            "journals": [j.to_dict() for j in self._journals],
            "activeJournalId": self._active_journal_id,
        }
