"""
Unsaved-change tracking for the entry being edited.

Two independent flags:

- text: date/title/body are staged in the editor until an explicit save,
  so this flag is "live values differ from the last saved snapshot".
- media: photo and tag edits are written through immediately, so this
  flag only records "something changed since the editor opened" to keep
  the save control enabled.

``is_dirty()`` is the OR of both. The tracker never reads from a UI; the
front end pushes live values in with :meth:`DirtyTracker.update_fields`.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .types import Entry


@dataclass(frozen=True)
class Snapshot:
    """The staged text fields of an entry."""
    date: str = ""
    title: str = ""
    body: str = ""

    @classmethod
    def of(cls, entry: Entry) -> "Snapshot":
        return cls(date=entry.date or "", title=entry.title or "", body=entry.body or "")


class DirtyTracker:
    """Decides whether the save action is enabled for the open entry."""

    def __init__(self):
        self._snapshot: Optional[Snapshot] = None
        self._live: Optional[Snapshot] = None
        self._media_dirty = False

    def snapshot(self, entry: Optional[Entry]) -> None:
        """Start tracking an entry as just loaded/saved. ``None`` stops tracking."""
        if entry is None:
            self._snapshot = None
            self._live = None
        else:
            self._snapshot = Snapshot.of(entry)
            self._live = self._snapshot
        self._media_dirty = False

    def mark_new(self) -> None:
        """Treat the open entry as unsaved even though nothing was typed yet."""
        if self._live is None:
            self._live = Snapshot()
        self._snapshot = None
        self._media_dirty = False

    def update_fields(
        self,
        date: Optional[str] = None,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> None:
        """Record current editor values; omitted fields keep their live value."""
        live = self._live or self._snapshot or Snapshot()
        changes = {
            k: v for k, v in (("date", date), ("title", title), ("body", body))
            if v is not None
        }
        self._live = replace(live, **changes)

    def mark_media_changed(self) -> None:
        self._media_dirty = True

    @property
    def text_dirty(self) -> bool:
        if self._live is None:
            return False
        # Live values without a snapshot: a brand-new entry
        if self._snapshot is None:
            return True
        return self._live != self._snapshot

    @property
    def media_dirty(self) -> bool:
        return self._media_dirty

    def is_dirty(self) -> bool:
        return self.text_dirty or self._media_dirty

    def live_values(self) -> Optional[Snapshot]:
        return self._live

    def saved_fields(self, entry: Entry, fields) -> None:
        """
        Record that some text fields of the open entry were written directly.

        Only those fields take the saved value, in both the snapshot and the
        live values; other staged edits and the media flag are left alone.
        """
        names = [f for f in ("date", "title", "body") if f in fields]
        if not names:
            return
        saved = {f: getattr(Snapshot.of(entry), f) for f in names}
        if self._snapshot is not None:
            self._snapshot = replace(self._snapshot, **saved)
        if self._live is not None:
            self._live = replace(self._live, **saved)

    def commit(self, entry: Optional[Entry] = None) -> None:
        """Mark everything as saved: re-snapshot and clear both flags."""
        if entry is not None:
            self._snapshot = Snapshot.of(entry)
        elif self._live is not None:
            self._snapshot = self._live
        self._live = self._snapshot
        self._media_dirty = False
