"""
Scoped search and tag index over the entry repository.

Two modes, chosen by :func:`daypage.query.parse_query`:

- entries: case-insensitive substring match on title, body and tag texts,
  most recently updated first
- tags: an aggregated index of distinct tags in scope, optionally filtered
  by a fragment; picking a record drills down to the entries carrying that
  exact normalized tag

Both modes cap the returned items and report the true total so the caller
can say "showing N of M" instead of silently dropping results.

The engine only reads from the repository.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from .config import DEFAULT_MAX_ENTRY_RESULTS, DEFAULT_MAX_TAG_RESULTS
from .query import (
    MODE_ENTRIES,
    MODE_TAGS,
    SCOPE_ACTIVE,
    SCOPE_ALL,
    SCOPE_JOURNAL,
    ParsedQuery,
    parse_query,
)
from .types import Entry, clean_display_text, normalize_tag_text

logger = logging.getLogger(__name__)

# Result statuses
STATUS_RESULTS = "results"
STATUS_NO_RESULTS = "no_results"
STATUS_EMPTY = "empty"
STATUS_JOURNAL_NOT_FOUND = "journal_not_found"


@dataclass
class TagRecord:
    """
    One distinct tag in the index.

    Attributes:
        norm: Normalized text (trimmed, whitespace collapsed, casefolded)
        display: First non-empty original spelling seen
        entry_count: Entries carrying the tag, each counted once
        occurrence_count: Total tag instances
        color: First color seen
    """
    norm: str
    display: str
    entry_count: int = 0
    occurrence_count: int = 0
    color: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "norm": self.norm,
            "display": self.display,
            "entryCount": self.entry_count,
            "occurrenceCount": self.occurrence_count,
            "color": self.color,
        }


@dataclass
class QueryResult:
    """
    Outcome of a search.

    ``items`` holds entries (entries mode) or :class:`TagRecord` (tags
    mode), truncated to ``limit``; ``total_count`` is the untruncated
    count.
    """
    status: str
    mode: str
    scope: str
    target: Optional[str] = None          # journal id searched (active/journal scope)
    target_name: Optional[str] = None     # name as typed for journal: scope
    query: str = ""
    items: list[Any] = field(default_factory=list)
    total_count: int = 0
    truncated: bool = False
    limit: int = 0

    @property
    def journal_not_found(self) -> bool:
        return self.status == STATUS_JOURNAL_NOT_FOUND

    def limit_notice(self) -> Optional[str]:
        """User-facing note when results were capped, else None."""
        if not self.truncated:
            return None
        return (
            f"Showing first {self.limit} of {self.total_count}. "
            "Refine your search to narrow results."
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "mode": self.mode,
            "scope": self.scope,
            "target": self.target,
            "targetName": self.target_name,
            "query": self.query,
            "items": [i.to_dict() for i in self.items],
            "totalCount": self.total_count,
            "truncated": self.truncated,
        }


def build_tag_index(entries: Iterable[Entry]) -> list[TagRecord]:
    """
    Aggregate the tags of an entry set into distinct records.

    Tags whose text normalizes to the same key collapse into one record.
    An entry that carries the same tag twice counts once toward
    ``entry_count`` and twice toward ``occurrence_count``.

    Returns:
        Records sorted by entry_count descending, then display text
    """
    by_norm: dict[str, TagRecord] = {}
    for entry in entries:
        seen_in_entry: set[str] = set()
        for tag in entry.tags:
            norm = normalize_tag_text(tag.text)
            if not norm:
                continue
            display = clean_display_text(tag.text)
            rec = by_norm.get(norm)
            if rec is None:
                rec = by_norm[norm] = TagRecord(norm=norm, display=display or norm,
                                                color=tag.color or None)
            if not rec.color and tag.color:
                rec.color = tag.color
            rec.occurrence_count += 1
            if norm not in seen_in_entry:
                rec.entry_count += 1
                seen_in_entry.add(norm)

    return sorted(
        by_norm.values(),
        key=lambda r: (-r.entry_count, r.display.casefold(), r.norm),
    )


def filter_tag_index(index: Iterable[TagRecord], fragment: str) -> list[TagRecord]:
    """Records whose normalized text or display contains the fragment."""
    frag = normalize_tag_text(fragment)
    if not frag:
        return list(index)
    return [
        r for r in index
        if frag in r.norm or frag in normalize_tag_text(r.display)
    ]


def entry_matches(entry: Entry, needle: str) -> bool:
    """Case-insensitive substring match over title, body and tag texts."""
    needle = needle.casefold()
    if not needle:
        return False
    haystack = " ".join([entry.title or "", entry.body or "", *entry.tag_texts()])
    return needle in haystack.casefold()


def entry_has_tag(entry: Entry, tag_norm: str) -> bool:
    return any(normalize_tag_text(t.text) == tag_norm for t in entry.tags)


def recency_sorted(entries: Iterable[Entry]) -> list[Entry]:
    """Most recently updated first; equal timestamps fall back to id order."""
    by_id = sorted(entries, key=lambda e: e.id)
    return sorted(by_id, key=lambda e: e.updated_at or "", reverse=True)


class SearchEngine:
    """
    Runs parsed queries against an :class:`EntryRepository`.

    Args:
        repository: Source of entries and journals (read only)
        max_entry_results: Cap for entry results
        max_tag_results: Cap for tag-browse results
    """

    def __init__(
        self,
        repository,
        max_entry_results: int = DEFAULT_MAX_ENTRY_RESULTS,
        max_tag_results: int = DEFAULT_MAX_TAG_RESULTS,
    ):
        self._repo = repository
        self.max_entry_results = max_entry_results
        self.max_tag_results = max_tag_results

    def _resolve_scope(
        self, parsed: ParsedQuery, active_journal_id: Optional[str]
    ) -> tuple[Optional[str], bool]:
        """Map a parsed scope to (journal id or None for all, found)."""
        if parsed.scope == SCOPE_ALL:
            return None, True
        if parsed.scope == SCOPE_JOURNAL:
            journal = self._repo.find_journal_by_name(parsed.target_name or "")
            if journal is None:
                return None, False
            return journal.id, True
        if active_journal_id is None or self._repo.get_journal(active_journal_id) is None:
            active_journal_id = self._repo.active_journal_id
        return active_journal_id, True

    def _entries_in_scope(self, scope: str, journal_id: Optional[str]) -> list[Entry]:
        if scope == SCOPE_ALL:
            return self._repo.entries_for(None)
        if journal_id is None:
            return []
        return self._repo.entries_for(journal_id)

    def _cap(self, result: QueryResult, items: list, limit: int) -> QueryResult:
        result.total_count = len(items)
        result.limit = limit
        result.truncated = len(items) > limit
        result.items = items[:limit]
        if result.status not in (STATUS_EMPTY, STATUS_JOURNAL_NOT_FOUND):
            result.status = STATUS_RESULTS if items else STATUS_NO_RESULTS
        return result

    def run_query(self, raw_query: Optional[str], active_journal_id: Optional[str] = None) -> QueryResult:
        """
        Parse and execute a query.

        Args:
            raw_query: The query as typed
            active_journal_id: Journal for the default scope; the
                repository's active journal when omitted

        Returns:
            QueryResult with status ``journal_not_found`` when a
            ``journal:`` name matches nothing (checked before anything
            else), ``empty`` when there is nothing to search for, and
            ``results``/``no_results`` otherwise
        """
        parsed = parse_query(raw_query)
        journal_id, found = self._resolve_scope(parsed, active_journal_id)
        mode = parsed.mode
        limit = self.max_tag_results if mode == MODE_TAGS else self.max_entry_results

        result = QueryResult(
            status=STATUS_RESULTS,
            mode=mode,
            scope=parsed.scope,
            target=journal_id,
            target_name=parsed.target_name,
            query=parsed.fragment if mode == MODE_TAGS else parsed.text,
            limit=limit,
        )

        if not found:
            logger.debug("Journal not found for query %r", parsed.raw)
            result.status = STATUS_JOURNAL_NOT_FOUND
            return result

        if mode == MODE_TAGS:
            return self.browse_tags(parsed.fragment, parsed.scope, journal_id, result=result)

        if parsed.is_empty:
            result.status = STATUS_EMPTY
            return result

        pool = self._entries_in_scope(parsed.scope, journal_id)
        matches = recency_sorted(e for e in pool if entry_matches(e, parsed.text))
        return self._cap(result, matches, self.max_entry_results)

    def browse_tags(
        self,
        fragment: str = "",
        scope: str = SCOPE_ACTIVE,
        journal_id: Optional[str] = None,
        *,
        result: Optional[QueryResult] = None,
    ) -> QueryResult:
        """Tag index for a scope, filtered by fragment substring."""
        if scope != SCOPE_ALL and journal_id is None:
            journal_id = self._repo.active_journal_id
        if result is None:
            result = QueryResult(status=STATUS_RESULTS, mode=MODE_TAGS, scope=scope,
                                 target=journal_id, query=fragment)
        index = build_tag_index(self._entries_in_scope(scope, journal_id))
        return self._cap(result, filter_tag_index(index, fragment), self.max_tag_results)

    def entries_with_tag(
        self,
        tag: "TagRecord | str",
        scope: str = SCOPE_ACTIVE,
        journal_id: Optional[str] = None,
    ) -> QueryResult:
        """
        Drill down from a tag record to the entries carrying it.

        Matches the exact normalized tag (not a substring) and uses the
        same recency order as free-text search.
        """
        norm = tag.norm if isinstance(tag, TagRecord) else normalize_tag_text(tag)
        if scope != SCOPE_ALL and journal_id is None:
            journal_id = self._repo.active_journal_id
        result = QueryResult(status=STATUS_RESULTS, mode=MODE_ENTRIES, scope=scope,
                             target=journal_id, query=f"#{norm}")
        if not norm:
            result.status = STATUS_EMPTY
            return result
        pool = self._entries_in_scope(scope, journal_id)
        matches = recency_sorted(e for e in pool if entry_has_tag(e, norm))
        return self._cap(result, matches, self.max_entry_results)
