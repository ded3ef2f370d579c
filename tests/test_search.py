"""Tests for scoped search and the tag index."""

import pytest

from daypage.query import MODE_ENTRIES, MODE_TAGS, SCOPE_ALL, SCOPE_JOURNAL
from daypage.repository import EntryRepository
from daypage.search import (
    STATUS_EMPTY,
    STATUS_JOURNAL_NOT_FOUND,
    STATUS_NO_RESULTS,
    STATUS_RESULTS,
    SearchEngine,
    build_tag_index,
    entry_matches,
    filter_tag_index,
    recency_sorted,
)
from daypage.types import TAG_COLORS, Tag
from tests.conftest import make_entry, make_journal


def _ts(n: int) -> str:
    return f"2026-03-01T10:00:{n:02d}.000Z"


@pytest.fixture
def engine():
    """Two journals: default (active) and Work."""
    repo = EntryRepository()
    repo.replace_all(
        [
            make_entry("d1", title="Harbour walk", body="windy", tags=["Trip", "blue "],
                       created_at=_ts(1), updated_at=_ts(5)),
            make_entry("d2", title="Groceries", body="eggs", tags=[" BLUE", "proj-home"],
                       created_at=_ts(2), updated_at=_ts(6)),
            make_entry("w1", journal_id="work", title="Budget", body="Q3 harbour plan",
                       tags=["project", "Blue", "blue"], created_at=_ts(3), updated_at=_ts(7)),
        ],
        [make_journal("default", "Journal"), make_journal("work", "Work Notes")],
        "default",
    )
    return SearchEngine(repo)


class TestTagIndex:

    def test_normalized_keys_collapse(self):
        entries = [
            make_entry("1", tags=["Blue "]),
            make_entry("2", tags=["blue"]),
            make_entry("3", tags=[" BLUE"]),
        ]
        index = build_tag_index(entries)
        assert len(index) == 1
        rec = index[0]
        assert rec.norm == "blue"
        assert rec.display == "Blue"
        assert rec.entry_count == 3
        assert rec.occurrence_count == 3

    def test_entry_counted_once(self):
        index = build_tag_index([make_entry("1", tags=["Blue", "blue"])])
        assert (index[0].entry_count, index[0].occurrence_count) == (1, 2)

    def test_sorted_by_count_then_display(self):
        entries = [
            make_entry("1", tags=["zebra", "apple"]),
            make_entry("2", tags=["zebra", "Mango"]),
        ]
        assert [r.display for r in build_tag_index(entries)] == ["zebra", "apple", "Mango"]

    def test_blank_tags_skipped(self):
        assert build_tag_index([make_entry("1", tags=["  "])]) == []

    def test_first_color_kept(self):
        entries = [
            make_entry("1", tags=[Tag(id="a", text="x", color=TAG_COLORS[3])]),
            make_entry("2", tags=[Tag(id="b", text="X", color=TAG_COLORS[1])]),
        ]
        assert build_tag_index(entries)[0].color == TAG_COLORS[3]

    def test_filter(self):
        index = build_tag_index([make_entry("1", tags=["project", "proj-home", "trip"])])
        assert [r.norm for r in filter_tag_index(index, " PROJ")] == ["proj-home", "project"]
        assert len(filter_tag_index(index, "")) == 3


class TestMatching:

    def test_title_body_and_tags(self):
        entry = make_entry("1", title="Harbour", body="windy day", tags=["Lisbon"])
        assert entry_matches(entry, "HARB")
        assert entry_matches(entry, "day")
        assert entry_matches(entry, "lisbon")
        assert not entry_matches(entry, "porto")
        assert not entry_matches(entry, "")

    def test_recency_ties_by_id(self):
        entries = [make_entry("b", updated_at=_ts(1)), make_entry("a", updated_at=_ts(1)),
                   make_entry("c", updated_at=_ts(2))]
        assert [e.id for e in recency_sorted(entries)] == ["c", "a", "b"]


class TestRunQuery:

    def test_active_scope(self, engine):
        result = engine.run_query("harbour")
        assert result.status == STATUS_RESULTS
        assert [e.id for e in result.items] == ["d1"]

    def test_all_scope_recency(self, engine):
        result = engine.run_query("all: harbour")
        assert result.scope == SCOPE_ALL
        assert [e.id for e in result.items] == ["w1", "d1"]

    def test_journal_scope(self, engine):
        result = engine.run_query('journal:"work notes" harbour')
        assert result.scope == SCOPE_JOURNAL
        assert result.target == "work"
        assert [e.id for e in result.items] == ["w1"]

    def test_explicit_active_journal(self, engine):
        assert [e.id for e in engine.run_query("budget", "work").items] == ["w1"]

    def test_no_results(self, engine):
        assert engine.run_query("volcano").status == STATUS_NO_RESULTS

    def test_empty(self, engine):
        assert engine.run_query("   ").status == STATUS_EMPTY
        assert engine.run_query("scope:all").status == STATUS_EMPTY

    def test_journal_not_found_wins(self, engine):
        """An unknown journal is reported even for an empty query or a tag browse."""
        for raw in ("journal:Nope harbour", "journal:Nope", "journal:Nope #blue"):
            result = engine.run_query(raw)
            assert result.status == STATUS_JOURNAL_NOT_FOUND
            assert result.journal_not_found
            assert result.target_name == "Nope"
            assert result.items == []


class TestTagBrowse:

    def test_browse_active(self, engine):
        result = engine.run_query("#")
        assert result.mode == MODE_TAGS
        assert [(r.display, r.entry_count) for r in result.items] == [
            ("blue", 2), ("proj-home", 1), ("Trip", 1),
        ]

    def test_fragment_across_journals(self, engine):
        """#proj in all scope lists every tag containing "proj"."""
        result = engine.run_query("all:#proj")
        assert [r.norm for r in result.items] == ["proj-home", "project"]

    def test_drill_down_exact(self, engine):
        index = engine.run_query("scope:all tag:blue").items
        blue = index[0]
        assert blue.norm == "blue"
        assert blue.entry_count == 3
        drill = engine.entries_with_tag(blue, SCOPE_ALL)
        assert drill.mode == MODE_ENTRIES
        assert [e.id for e in drill.items] == ["w1", "d2", "d1"]

    def test_drill_down_is_not_substring(self, engine):
        result = engine.entries_with_tag("proj", SCOPE_ALL)
        assert result.status == STATUS_NO_RESULTS

    def test_drill_down_blank(self, engine):
        assert engine.entries_with_tag("  ").status == STATUS_EMPTY


class TestCaps:

    def test_entry_cap(self):
        repo = EntryRepository()
        repo.replace_all(
            [make_entry(f"e{i:02d}", title="note", created_at=_ts(i)) for i in range(12)],
            [make_journal("default", "Journal")],
        )
        result = SearchEngine(repo, max_entry_results=5).run_query("note")
        assert len(result.items) == 5
        assert result.total_count == 12
        assert result.truncated
        assert result.limit_notice() == (
            "Showing first 5 of 12. Refine your search to narrow results."
        )

    def test_tag_cap(self):
        repo = EntryRepository()
        repo.replace_all([make_entry("1", tags=[f"t{i}" for i in range(8)])],
                         [make_journal("default", "Journal")])
        result = SearchEngine(repo, max_tag_results=3).run_query("#")
        assert len(result.items) == 3
        assert result.total_count == 8

    def test_no_notice_when_not_capped(self, engine):
        result = engine.run_query("harbour")
        assert not result.truncated
        assert result.limit_notice() is None

    def test_to_dict(self, engine):
        d = engine.run_query("#blue").to_dict()
        assert d["mode"] == "tags"
        assert d["items"][0]["norm"] == "blue"
        assert d["totalCount"] == 1
