"""
Search query parsing.

A raw query is turned into a :class:`ParsedQuery` by a fixed sequence of
small rules, each a pure function from one parse state to the next:

1. ``journal:<name>`` / ``journal:"Two Words"`` / ``journal:'x'``
2. ``scope:all`` anywhere in the query
3. a leading ``all:`` prefix
4. tag-browse detection on what remains: ``tag:``, ``tags:``, ``#``

Scope precedence is journal > all > active: a ``journal:`` qualifier wins
even when ``scope:all`` is also present.
"""

import re
from dataclasses import dataclass, replace
from typing import Callable, Optional

SCOPE_ACTIVE = "active"
SCOPE_JOURNAL = "journal"
SCOPE_ALL = "all"

MODE_ENTRIES = "entries"
MODE_TAGS = "tags"

_JOURNAL_RE = re.compile(
    r"""\s*\bjournal:(?:"([^"]+)"|'([^']+)'|(\S+))\s*""",
    re.IGNORECASE,
)
_SCOPE_ALL_RE = re.compile(r"\s*\bscope:all\b\s*", re.IGNORECASE)

_BROWSE_ALL = frozenset({"tag:", "tags:", "#", "tag:*", "tags:*"})
_TAG_PREFIXES = ("tag:", "tags:")


@dataclass(frozen=True)
class ParsedQuery:
    """
    A query split into scope and mode.

    Attributes:
        raw: The query as typed
        scope: "active", "journal" or "all"
        target_name: Journal name from ``journal:<name>`` (journal scope only)
        mode: "entries" (free text) or "tags" (tag browse)
        fragment: Tag filter text in tag mode ("" = all tags)
        text: Free-text needle in entries mode ("" = empty query)
    """
    raw: str
    scope: str = SCOPE_ACTIVE
    target_name: Optional[str] = None
    mode: str = MODE_ENTRIES
    fragment: str = ""
    text: str = ""

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to search for (only scope tokens, or blank)."""
        return self.mode == MODE_ENTRIES and not self.text


@dataclass(frozen=True)
class ParseState:
    """Intermediate state threaded through the parser rules."""
    remainder: str
    journal_name: Optional[str] = None
    scope_all: bool = False
    mode: str = MODE_ENTRIES
    fragment: str = ""


def _strip_token(pattern: re.Pattern, text: str) -> str:
    return pattern.sub(" ", text, count=1).strip()


def extract_journal(state: ParseState) -> ParseState:
    """Rule 1: pull out the first ``journal:<name>`` qualifier."""
    m = _JOURNAL_RE.search(state.remainder)
    if not m:
        return state
    name = (m.group(1) or m.group(2) or m.group(3) or "").strip()
    return replace(
        state,
        remainder=_strip_token(_JOURNAL_RE, state.remainder),
        journal_name=name,
    )


def extract_scope_all(state: ParseState) -> ParseState:
    """Rule 2: ``scope:all`` anywhere widens the scope to every journal."""
    if not _SCOPE_ALL_RE.search(state.remainder):
        return state
    remainder = _SCOPE_ALL_RE.sub(" ", state.remainder).strip()
    return replace(state, remainder=remainder, scope_all=True)


def extract_all_prefix(state: ParseState) -> ParseState:
    """Rule 3: a leading ``all:`` widens the scope to every journal."""
    if not state.remainder.lower().startswith("all:"):
        return state
    return replace(state, remainder=state.remainder[4:].strip(), scope_all=True)


def detect_tag_mode(state: ParseState) -> ParseState:
    """Rule 4: ``tag:``/``tags:``/``#`` switch to tag browsing."""
    raw = state.remainder.strip()
    lower = raw.lower()
    if lower in _BROWSE_ALL:
        return replace(state, mode=MODE_TAGS, fragment="")
    for prefix in _TAG_PREFIXES:
        if lower.startswith(prefix):
            return replace(state, mode=MODE_TAGS, fragment=raw[len(prefix):].strip())
    if raw.startswith("#"):
        return replace(state, mode=MODE_TAGS, fragment=raw[1:].strip())
    return state


RULES: tuple[Callable[[ParseState], ParseState], ...] = (
    extract_journal,
    extract_scope_all,
    extract_all_prefix,
    detect_tag_mode,
)


def parse_query(raw: Optional[str]) -> ParsedQuery:
    """
    Parse a raw search string.

    Examples:
        >>> parse_query('journal:"Work" scope:all budget').scope
        'journal'
        >>> parse_query("all:#trip").mode
        'tags'
    """
    raw = (raw or "").strip()
    state = ParseState(remainder=raw)
    for rule in RULES:
        state = rule(state)

    if state.journal_name is not None:
        scope = SCOPE_JOURNAL
    elif state.scope_all:
        scope = SCOPE_ALL
    else:
        scope = SCOPE_ACTIVE

    return ParsedQuery(
        raw=raw,
        scope=scope,
        target_name=state.journal_name,
        mode=state.mode,
        fragment=state.fragment,
        text=state.remainder.strip() if state.mode == MODE_ENTRIES else "",
    )
