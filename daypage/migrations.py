"""
Normalization of stored records into the current entry/journal shape.

Stored data may come from any earlier version of the app, a hand-edited
export, or a partially-written blob. Everything here is total: a record
that cannot be interpreted is treated as absent and filled with defaults.
Normalizing an already-normalized record returns an equal record.

Legacy shapes handled:
- ``notebookId`` (old name for ``journalId``), missing -> ``"default"``
- ``imageId`` (old name for ``imageRef``)
- inline ``imageData`` or ``attachments[0] = {type: "image", data}``,
  which must move into the image store (see :func:`migrate_legacy_images`)
- missing ``createdAt`` / ``updatedAt``
- tags stored as bare strings
"""

import base64
import binascii
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional
from urllib.parse import unquote

from .types import (
    DEFAULT_JOURNAL_ID,
    DEFAULT_JOURNAL_NAME,
    TAG_COLORS,
    Entry,
    Journal,
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

IMPORTED_JOURNAL_NAME = "Imported Journal"


def _str_or_none(value: Any) -> Optional[str]:
    """Non-empty string, or None for anything else."""
    if isinstance(value, str) and value:
        return value
    return None


def _text(value: Any) -> str:
    """String field with scalar coercion; non-scalars are absent."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _coord(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:  # NaN
        return None
    return clamp_percent(value)


def _timestamps(raw: Mapping) -> tuple[str, str]:
    """Resolve (createdAt, updatedAt): each falls back to the other, then now."""
    created = _str_or_none(raw.get("createdAt"))
    updated = _str_or_none(raw.get("updatedAt"))
    if created is None and updated is None:
        now = utc_now()
        return now, now
    if created is None:
        created = updated
    if updated is None:
        updated = created
    if updated < created:
        updated = created
    return created, updated


def _date(value: Any) -> str:
    if is_valid_date(value):
        return value
    # Tolerate a full timestamp where a date was expected
    if isinstance(value, str) and len(value) > 10 and is_valid_date(value[:10]):
        return value[:10]
    return today()


def _legacy_image(raw: Mapping) -> Optional[str]:
    """Inline image payload from pre-image-store records, if any."""
    data = _str_or_none(raw.get("imageData"))
    if data:
        return data
    attachments = raw.get("attachments")
    if isinstance(attachments, list) and attachments:
        first = attachments[0]
        if isinstance(first, Mapping) and first.get("type") == "image":
            return _str_or_none(first.get("data"))
    return None


def normalize_tag(raw: Any, seen_ids: Optional[set] = None) -> Optional[Tag]:
    """
    Normalize one stored tag. Returns None for values that are not tags.

    A bare string becomes an unplaced tag with that text. Coordinates are
    kept only when both are numbers; a half-placed tag becomes unplaced.
    """
    if isinstance(raw, Tag):
        raw = raw.to_dict()
    if isinstance(raw, str):
        raw = {"text": raw}
    if not isinstance(raw, Mapping):
        return None

    tag_id = _str_or_none(raw.get("id"))
    if tag_id is None or (seen_ids is not None and tag_id in seen_ids):
        tag_id = generate_id()
        while seen_ids is not None and tag_id in seen_ids:
            tag_id = generate_id()
    if seen_ids is not None:
        seen_ids.add(tag_id)

    color = raw.get("color")
    if color not in TAG_COLORS:
        color = TAG_COLORS[0]

    x = _coord(raw.get("x"))
    y = _coord(raw.get("y"))
    if x is None or y is None:
        x = y = None

    return Tag(id=tag_id, text=_text(raw.get("text")), color=color, x=x, y=y)


def normalize_entry(raw: Any) -> Entry:
    """
    Normalize a stored entry of unknown vintage into an :class:`Entry`.

    Never raises. Non-mapping input yields a fresh empty entry.
    """
    if isinstance(raw, Entry):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    journal_id = (
        _str_or_none(raw.get("journalId"))
        or _str_or_none(raw.get("notebookId"))
        or DEFAULT_JOURNAL_ID
    )
    image_ref = _str_or_none(raw.get("imageRef")) or _str_or_none(raw.get("imageId"))
    legacy_image = None if image_ref else _legacy_image(raw)

    raw_tags = raw.get("tags")
    tags: list[Tag] = []
    if isinstance(raw_tags, list):
        seen: set[str] = set()
        for item in raw_tags:
            tag = normalize_tag(item, seen)
            if tag is not None:
                tags.append(tag)

    created_at, updated_at = _timestamps(raw)

    return Entry(
        id=_str_or_none(raw.get("id")) or generate_id(),
        journal_id=journal_id,
        date=_date(raw.get("date")),
        title=_text(raw.get("title")),
        body=_text(raw.get("body")),
        image_ref=image_ref,
        tags=tags,
        created_at=created_at,
        updated_at=updated_at,
        legacy_image=legacy_image,
    )


def normalize_journal(raw: Any) -> Journal:
    """Normalize a stored journal. Empty names become ``"Journal"``."""
    if isinstance(raw, Journal):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}
    created_at, updated_at = _timestamps(raw)
    return Journal(
        id=_str_or_none(raw.get("id")) or generate_id(),
        name=clean_display_text(_text(raw.get("name"))) or DEFAULT_JOURNAL_NAME,
        created_at=created_at,
        updated_at=updated_at,
    )


def default_journal() -> Journal:
    now = utc_now()
    return Journal(id=DEFAULT_JOURNAL_ID, name=DEFAULT_JOURNAL_NAME,
                   created_at=now, updated_at=now)


def _unique_name(name: str, taken: set[str]) -> str:
    if normalize_journal_name(name) not in taken:
        return name
    n = 2
    while normalize_journal_name(f"{name} ({n})") in taken:
        n += 1
    return f"{name} ({n})"


def normalize_journals(raw: Any) -> list[Journal]:
    """
    Normalize a stored journal list.

    The result is never empty and always contains the ``"default"``
    journal (entries from before journals existed point at it). Duplicate
    ids are dropped; duplicate names get a numeric suffix. A default
    journal added here yields its name to any stored journal that
    already uses it.
    """
    items = raw if isinstance(raw, list) else []
    journals: list[Journal] = []
    seen_ids: set[str] = set()
    for item in items:
        if not isinstance(item, (Mapping, Journal)):
            continue
        journal = normalize_journal(item)
        if journal.id in seen_ids:
            continue
        seen_ids.add(journal.id)
        journals.append(journal)

    taken: set[str] = set()
    for journal in journals:
        unique = _unique_name(journal.name, taken)
        if unique != journal.name:
            logger.info("Renamed duplicate journal %s to %r", journal.id, unique)
            journal.name = unique
        taken.add(journal.norm_name)

    if DEFAULT_JOURNAL_ID not in seen_ids:
        restored = default_journal()
        restored.name = _unique_name(restored.name, taken)
        journals.insert(0, restored)
    return journals


def journals_from_entries(entries: Iterable[Entry], known: Iterable[Journal] = ()) -> list[Journal]:
    """
    Build a journal list for an entry-only import.

    One journal per distinct ``journal_id``; names of already-known
    journals are reused, unknown ones are named ``"Imported Journal"``.
    The default journal comes first, the rest sorted by name.
    """
    known_by_id = {j.id: j for j in known}
    ids = {e.journal_id or DEFAULT_JOURNAL_ID for e in entries}
    ids.add(DEFAULT_JOURNAL_ID)

    result = []
    for jid in ids:
        existing = known_by_id.get(jid)
        if existing is not None:
            name = existing.name
        elif jid == DEFAULT_JOURNAL_ID:
            name = DEFAULT_JOURNAL_NAME
        else:
            name = IMPORTED_JOURNAL_NAME
        result.append(normalize_journal({"id": jid, "name": name}))

    result.sort(key=lambda j: (j.id != DEFAULT_JOURNAL_ID, j.name.casefold(), j.id))
    return normalize_journals([j.to_dict() for j in result])


def decode_image_payload(payload: str) -> bytes:
    """
    Decode an inline image payload into bytes.

    ``data:<mime>;base64,<data>`` URLs are base64-decoded, other ``data:``
    URLs are percent-decoded; anything else is stored as UTF-8 text.
    """
    if payload.startswith("data:") and "," in payload:
        header, data = payload.split(",", 1)
        if header.endswith(";base64"):
            try:
                return base64.b64decode(data, validate=False)
            except (binascii.Error, ValueError):
                logger.warning("Undecodable base64 image payload; storing raw text")
                return payload.encode("utf-8")
        return unquote(data).encode("utf-8")
    return payload.encode("utf-8")


IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
)


def sniff_image_type(data: bytes) -> str:
    """Media type of an image from its leading bytes, for data URLs."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    for signature, media_type in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return media_type
    return "application/octet-stream"


def encode_image_payload(data: bytes) -> str:
    """Inverse of :func:`decode_image_payload` for binary images."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{sniff_image_type(data)};base64,{encoded}"


async def migrate_legacy_images(entries: Iterable[Entry], blob_store) -> int:
    """
    Move inline legacy images into the image store.

    For each entry with a pending ``legacy_image`` the payload is stored
    under a fresh id and ``image_ref`` is set. An entry whose store write
    fails keeps its legacy payload and is retried on the next load.

    Returns:
        Number of entries migrated
    """
    migrated = 0
    for entry in entries:
        if entry.legacy_image is None or entry.image_ref:
            continue
        image_id = generate_id()
        data = decode_image_payload(entry.legacy_image)
        if not await blob_store.put(image_id, data):
            logger.warning("Image migration failed for entry %s", entry.id)
            continue
        entry.image_ref = image_id
        entry.legacy_image = None
        migrated += 1
    if migrated:
        logger.info("Migrated %d inline images to the image store", migrated)
    return migrated
