"""Tests for the entry repository and its invariants."""

from daypage.repository import EntryRepository, chronological_key
from daypage.types import DEFAULT_JOURNAL_ID, TAG_COLORS, OpStatus, today
from tests.conftest import make_entry, make_journal


def _seed(repo, entries, journals=(), active=None):
    journals = [make_journal(DEFAULT_JOURNAL_ID, "Journal"), *journals]
    repo.replace_all(entries, journals, active)


class TestOrdering:

    def test_same_day_ordered_by_creation(self, repo):
        """Two entries on one day: the older-created one comes first even if edited later."""
        first = make_entry("1", "2026-03-01", created_at="2026-03-01T09:00:00.000Z",
                           updated_at="2026-03-02T10:00:00.000Z")
        second = make_entry("2", "2026-03-01", created_at="2026-03-01T11:00:00.000Z")
        _seed(repo, [second, first])
        assert [e.id for e in repo.sorted_entries()] == ["1", "2"]

    def test_created_then_two_on_earlier_date(self, repo):
        """Entry 1 is created, then entry 2 dated earlier: order is [2, 1]."""
        one = repo.create(date="2026-03-05")
        two = repo.create(date="2026-03-04")
        assert [e.id for e in repo.sorted_entries()] == [two.id, one.id]

    def test_key_is_total(self):
        a = make_entry("a", created_at="x", updated_at="x")
        b = make_entry("b", created_at="x", updated_at="x")
        assert chronological_key(a) < chronological_key(b)

    def test_editing_does_not_reorder(self, repo):
        a = repo.create(date="2026-03-01")
        b = repo.create(date="2026-03-01")
        repo.update(a.id, {"title": "edited"})
        assert [e.id for e in repo.sorted_entries()] == [a.id, b.id]

    def test_entries_on_date(self, repo):
        _seed(repo, [make_entry("1", "2026-03-01"), make_entry("2", "2026-03-02")])
        assert [e.id for e in repo.entries_on_date(None, "2026-03-02")] == ["2"]

    def test_neighbors(self, repo):
        _seed(repo, [make_entry("1", "2026-03-01"), make_entry("2", "2026-03-02"),
                     make_entry("3", "2026-03-03")])
        assert repo.neighbors("2") == ("1", "3")
        assert repo.neighbors("1") == (None, "2")
        assert repo.neighbors("missing") == (None, None)


class TestCreateUpdate:

    def test_create_defaults(self, repo):
        entry = repo.create()
        assert entry.date == today()
        assert entry.journal_id == DEFAULT_JOURNAL_ID
        assert entry.created_at == entry.updated_at
        assert repo.current_entry_id is None

    def test_create_unknown_journal_uses_active(self, repo):
        assert repo.create("nope").journal_id == DEFAULT_JOURNAL_ID

    def test_update_fields(self, repo):
        entry = repo.create()
        result = repo.update(entry.id, {"title": "Hi", "body": "There", "date": "2026-01-01"})
        assert result.ok
        saved = repo.get_entry(entry.id)
        assert (saved.title, saved.body, saved.date) == ("Hi", "There", "2026-01-01")
        assert saved.updated_at > entry.updated_at

    def test_update_is_all_or_nothing(self, repo):
        entry = repo.create()
        result = repo.update(entry.id, {"title": "kept?", "date": "2026-13-01"})
        assert result.status is OpStatus.INVALID
        assert repo.get_entry(entry.id).title == ""

    def test_update_unknown_entry(self, repo):
        assert repo.update("missing", {"title": "x"}).status is OpStatus.NOT_FOUND

    def test_update_unknown_field(self, repo):
        entry = repo.create()
        assert repo.update(entry.id, {"mood": "sunny"}).status is OpStatus.INVALID

    def test_move_to_unknown_journal(self, repo):
        entry = repo.create()
        assert repo.update(entry.id, {"journal_id": "nope"}).status is OpStatus.INVALID

    def test_moving_current_entry_clears_selection(self, repo):
        work = repo.create_journal("Work").value
        entry = repo.create()
        repo.select_entry(entry.id)
        assert repo.update(entry.id, {"journalId": work.id}).ok
        assert repo.current_entry_id is None
        assert repo.get_entry(entry.id).journal_id == work.id

    def test_reads_are_copies(self, repo):
        entry = repo.create()
        copy = repo.get_entry(entry.id)
        copy.title = "changed outside"
        assert repo.get_entry(entry.id).title == ""
        repo.entries[0].tags.append("junk")
        assert repo.get_entry(entry.id).tags == []


class TestDelete:

    def test_delete_only_entry(self, repo):
        entry = repo.create()
        repo.select_entry(entry.id)
        result = repo.delete(entry.id)
        assert result.ok
        assert result.value.id == entry.id
        assert repo.entries == ()
        assert repo.current_entry_id is None
        assert len(repo.journals) == 1

    def test_delete_missing(self, repo):
        assert repo.delete("nope").status is OpStatus.NOT_FOUND


class TestSelection:

    def test_select_switches_journal(self, repo):
        work = repo.create_journal("Work").value
        entry = repo.create(work.id)
        assert repo.active_journal_id == DEFAULT_JOURNAL_ID
        assert repo.select_entry(entry.id).ok
        assert repo.active_journal_id == work.id
        assert repo.current_entry().id == entry.id

    def test_select_missing(self, repo):
        assert repo.select_entry("nope").status is OpStatus.NOT_FOUND

    def test_switching_journal_clears_foreign_selection(self, repo):
        work = repo.create_journal("Work").value
        entry = repo.create()
        repo.select_entry(entry.id)
        repo.set_active_journal(work.id)
        assert repo.current_entry_id is None

    def test_unknown_active_falls_back(self, repo):
        assert repo.set_active_journal("nope") == DEFAULT_JOURNAL_ID


class TestTags:

    def test_add_defaults(self, repo):
        entry = repo.create()
        tag = repo.add_tag(entry.id, "   ").value
        assert tag.text == "Tag"
        assert tag.color == TAG_COLORS[0]
        assert not tag.placed

    def test_add_placed_and_clamped(self, repo):
        entry = repo.create()
        tag = repo.add_tag(entry.id, "sea", TAG_COLORS[2], x=120, y=-1).value
        assert (tag.x, tag.y) == (100.0, 0.0)

    def test_unknown_color(self, repo):
        entry = repo.create()
        assert repo.add_tag(entry.id, "a", "#000000").status is OpStatus.INVALID

    def test_edit_place_unplace_remove(self, repo):
        entry = repo.create()
        tag = repo.add_tag(entry.id, "a").value
        assert repo.edit_tag(entry.id, tag.id, text=" Beach  day ", color=TAG_COLORS[1]).ok
        assert repo.place_tag(entry.id, tag.id, 10, 20).ok
        stored = repo.get_entry(entry.id).tag(tag.id)
        assert (stored.text, stored.color, stored.x, stored.y) == ("Beach day", TAG_COLORS[1], 10.0, 20.0)
        assert repo.unplace_tag(entry.id, tag.id).ok
        assert not repo.get_entry(entry.id).tag(tag.id).placed
        assert repo.remove_tag(entry.id, tag.id).ok
        assert repo.get_entry(entry.id).tags == []

    def test_tag_ops_refresh_updated_at(self, repo):
        entry = repo.create()
        repo.add_tag(entry.id, "a")
        assert repo.get_entry(entry.id).updated_at > entry.updated_at

    def test_missing_tag(self, repo):
        entry = repo.create()
        assert repo.remove_tag(entry.id, "nope").status is OpStatus.NOT_FOUND

    def test_patched_tags_get_unique_ids(self, repo):
        entry = repo.create()
        result = repo.update(entry.id, {"tags": [{"id": "x", "text": "a"}, {"id": "x", "text": "b"}]})
        assert len({t.id for t in result.value.tags}) == 2


class TestJournals:

    def test_create_validation(self, repo):
        assert repo.create_journal("  ").message == "Journal name required"
        assert repo.create_journal("journal").message == "That journal name already exists"
        assert repo.create_journal("Work").ok

    def test_rename_same_name_other_case(self, repo):
        work = repo.create_journal("Work").value
        assert repo.rename_journal(work.id, "WORK").ok
        assert repo.get_journal(work.id).name == "WORK"

    def test_rename_to_taken_name(self, repo):
        work = repo.create_journal("Work").value
        assert repo.rename_journal(work.id, " journal ").status is OpStatus.INVALID

    def test_find_by_name(self, repo):
        work = repo.create_journal("Work Notes").value
        assert repo.find_journal_by_name("  work   notes").id == work.id
        assert repo.find_journal_by_name("") is None

    def test_delete_cascades(self, repo):
        work = repo.create_journal("Work").value
        kept = repo.create()
        gone = repo.create(work.id)
        repo.select_entry(gone.id)
        result = repo.delete_journal(work.id)
        assert [e.id for e in result.value] == [gone.id]
        assert [e.id for e in repo.entries] == [kept.id]
        assert repo.active_journal_id == DEFAULT_JOURNAL_ID
        assert repo.current_entry_id is None

    def test_delete_last_journal_recreates_default(self, repo):
        repo.create()
        result = repo.delete_journal(DEFAULT_JOURNAL_ID)
        assert result.ok
        assert [j.id for j in repo.journals] == [DEFAULT_JOURNAL_ID]
        assert repo.entries == ()

    def test_default_kept_while_others_exist(self, repo):
        repo.create_journal("Work")
        entry = repo.create()
        result = repo.delete_journal(DEFAULT_JOURNAL_ID)
        assert result.status is OpStatus.INVALID
        assert repo.get_journal(DEFAULT_JOURNAL_ID) is not None
        assert repo.get_entry(entry.id) is not None

    def test_journals_never_empty_after_replace(self, repo):
        repo.replace_all([], [])
        assert len(repo.journals) == 1


class TestReplaceAll:

    def test_orphans_move_to_default(self, repo):
        _seed(repo, [make_entry("1", journal_id="gone")])
        assert repo.get_entry("1").journal_id == DEFAULT_JOURNAL_ID

    def test_duplicate_ids_reissued(self, repo):
        _seed(repo, [make_entry("1", title="a"), make_entry("1", title="b")])
        ids = [e.id for e in repo.entries]
        assert ids[0] == "1"
        assert len(set(ids)) == 2

    def test_active_from_payload(self, repo):
        _seed(repo, [], [make_journal("w", "Work")], active="w")
        assert repo.active_journal_id == "w"
        assert repo.journals_payload()["activeJournalId"] == "w"


class TestOnChange:

    def test_mutations_notify(self):
        kinds = []
        repo = EntryRepository(on_change=kinds.append)
        entry = repo.create()
        repo.update(entry.id, {"title": "x"})
        repo.create_journal("Work")
        assert kinds == ["entries", "entries", "journals"]

    def test_failed_ops_do_not_notify(self):
        kinds = []
        repo = EntryRepository(on_change=kinds.append)
        repo.update("missing", {"title": "x"})
        repo.create_journal("")
        assert kinds == []

    def test_replace_all_silent_unless_asked(self):
        kinds = []
        repo = EntryRepository(on_change=kinds.append)
        repo.replace_all([], [])
        assert kinds == []
        repo.replace_all([], [], persist=True)
        assert kinds == ["entries", "journals"]


class TestPendingImages:

    def test_apply_image_refs(self, repo):
        entry = make_entry("1")
        entry.legacy_image = "abc"
        _seed(repo, [entry])
        assert [e.id for e in repo.pending_images()] == ["1"]
        before = repo.get_entry("1").updated_at
        assert repo.apply_image_refs({"1": "img"}) == 1
        stored = repo.get_entry("1")
        assert stored.image_ref == "img"
        assert stored.legacy_image is None
        assert stored.updated_at == before
        assert repo.pending_images() == []
