"""
Daypage

A local, single-user journal: dated entries grouped into journals, each
with an optional photo and colored tags, plus scoped free-text search and
a tag index.

Quick Start:
    from daypage import Notebook

    nb = Notebook()  # uses ~/.daypage/
    entry = nb.create_entry()
    nb.update_entry(entry.id, {"title": "Harbour walk"})
    results = nb.run_query("harbour")

CLI Usage:
    daypage new --title "Harbour walk" --tag trip
    daypage search "journal:Travel #trip"
    daypage calendar --month 2026-10

Environment Variables:
    DAYPAGE_STORE_PATH  - Override default store location
    DAYPAGE_CONFIG      - Override the config directory
    DAYPAGE_VERBOSE     - Set to 1 for debug logging on stderr

The store is initialized automatically on first use. Configuration is persisted
in a TOML file within the store directory.
"""

from .api import Notebook
from .search import QueryResult, TagRecord
from .types import Entry, Journal, OpResult, OpStatus, Tag

__version__ = "0.1.0"
__all__ = [
    "Notebook",
    "Entry",
    "Journal",
    "Tag",
    "OpResult",
    "OpStatus",
    "QueryResult",
    "TagRecord",
]
