"""
Data types for the journal.

Entries, tags and journals are plain dataclasses. Their stored form uses
the camelCase keys of the on-disk format (``journalId``, ``imageRef``,
``createdAt`` ...); conversion lives in ``to_dict()`` here and in
``migrations.normalize_*`` on the way back in.
"""

import random
import re
import string
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import date as _date
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional


DEFAULT_JOURNAL_ID = "default"
DEFAULT_JOURNAL_NAME = "Journal"
DEFAULT_TAG_TEXT = "Tag"

# Fixed tag palette; the first color is the default
TAG_COLORS = (
    "#2563eb",
    "#16a34a",
    "#dc2626",
    "#d97706",
    "#7c3aed",
    "#0f766e",
)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WHITESPACE_RE = re.compile(r"\s+")
_ID_ALPHABET = string.digits + string.ascii_lowercase

_clock_lock = threading.Lock()
_last_ts: Optional[datetime] = None


def utc_now() -> str:
    """Current UTC timestamp: YYYY-MM-DDTHH:MM:SS.mmmZ.

    Never returns a value earlier than the previous call in this process;
    a repeat of the same millisecond is bumped forward by one millisecond
    so that create-then-edit always yields createdAt <= updatedAt and
    consecutive creations sort in creation order.
    """
    global _last_ts
    with _clock_lock:
        now = datetime.now(timezone.utc)
        now = now.replace(microsecond=(now.microsecond // 1000) * 1000)
        if _last_ts is not None and now <= _last_ts:
            now = _last_ts + timedelta(milliseconds=1)
        _last_ts = now
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def today() -> str:
    """Today's date in the local timezone (YYYY-MM-DD).

    Uses local date components, not UTC, so an evening entry in a
    negative-offset timezone does not land on tomorrow.
    """
    return _date.today().strftime("%Y-%m-%d")


def is_valid_date(value: Any) -> bool:
    """True for a real calendar date in YYYY-MM-DD form."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, rem = divmod(n, 36)
        out.append(_ID_ALPHABET[rem])
    return "".join(reversed(out))


def generate_id() -> str:
    """Collision-resistant id: base-36 milliseconds, dash, 6 random chars."""
    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"{_base36(millis)}-{suffix}"


def clean_display_text(raw: Any) -> str:
    """Trim and collapse internal whitespace, keeping the original case."""
    if raw is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(raw).strip())


def normalize_tag_text(raw: Any) -> str:
    """Normalized tag key: trimmed, whitespace collapsed, casefolded."""
    return clean_display_text(raw).casefold()


def normalize_journal_name(raw: Any) -> str:
    """Normalized journal name used for uniqueness and ``journal:`` lookup."""
    return clean_display_text(raw).casefold()


def clamp_percent(value: float) -> float:
    return min(100.0, max(0.0, float(value)))


@dataclass
class Tag:
    """
    A colored label on an entry.

    ``x``/``y`` are percentage coordinates on the entry's image. Both are
    None until the tag is placed; an unplaced tag still shows in tag
    listings and is indexed for search.
    """
    id: str
    text: str
    color: str = TAG_COLORS[0]
    x: Optional[float] = None
    y: Optional[float] = None

    @property
    def placed(self) -> bool:
        return isinstance(self.x, (int, float)) and isinstance(self.y, (int, float))

    @property
    def norm(self) -> str:
        return normalize_tag_text(self.text)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "color": self.color,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class Entry:
    """
    A single journal page.

    Attributes:
        id: Opaque identifier, immutable after creation
        journal_id: Owning journal (``"default"`` unless moved)
        date: Calendar date YYYY-MM-DD, user-editable
        title: May be empty
        body: May be empty
        image_ref: Key into the image store, or None
        tags: Ordered tags with unique ids
        created_at: ISO timestamp, never changes
        updated_at: ISO timestamp, refreshed on every mutation
        legacy_image: Inline image payload from old data still waiting to
            be moved into the image store. Serialized as ``imageData`` only
            while pending so a failed move never loses the picture.
    """
    id: str
    journal_id: str = DEFAULT_JOURNAL_ID
    date: str = ""
    title: str = ""
    body: str = ""
    image_ref: Optional[str] = None
    tags: list[Tag] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    legacy_image: Optional[str] = field(default=None, repr=False)

    def tag(self, tag_id: str) -> Optional[Tag]:
        for t in self.tags:
            if t.id == tag_id:
                return t
        return None

    def tag_texts(self) -> list[str]:
        return [t.text for t in self.tags if t.text]

    def copy(self) -> "Entry":
        return replace(self, tags=[replace(t) for t in self.tags])

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "journalId": self.journal_id,
            "date": self.date,
            "title": self.title,
            "body": self.body,
            "imageRef": self.image_ref,
            "tags": [t.to_dict() for t in self.tags],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.legacy_image is not None:
            d["imageData"] = self.legacy_image
        return d


@dataclass
class Journal:
    """A named collection of entries."""
    id: str
    name: str = DEFAULT_JOURNAL_NAME
    created_at: str = ""
    updated_at: str = ""

    @property
    def norm_name(self) -> str:
        return normalize_journal_name(self.name)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class OpStatus(str, Enum):
    """Outcome of a repository or API operation."""
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    STORAGE_FAILED = "storage_failed"


@dataclass(frozen=True)
class OpResult:
    """
    Result value for operations that can fail without raising.

    ``message`` is a short user-facing status line; ``value`` carries the
    affected object (new entry, removed entries, renamed journal ...).
    """
    status: OpStatus
    message: str = ""
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status is OpStatus.OK

    @classmethod
    def success(cls, message: str = "", value: Any = None) -> "OpResult":
        return cls(OpStatus.OK, message, value)

    @classmethod
    def not_found(cls, message: str) -> "OpResult":
        return cls(OpStatus.NOT_FOUND, message)

    @classmethod
    def invalid(cls, message: str) -> "OpResult":
        return cls(OpStatus.INVALID, message)
