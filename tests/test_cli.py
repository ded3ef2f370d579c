"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from daypage.cli import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli(runner, tmp_path, monkeypatch):
    """Invoke the CLI against a store in tmp_path."""
    monkeypatch.delenv("DAYPAGE_STORE_PATH", raising=False)

    def invoke(*args, input=None):
        return runner.invoke(app, ["--store", str(tmp_path), *args], input=input)

    return invoke


def _new(cli, *args) -> str:
    result = cli("new", *args)
    assert result.exit_code == 0, result.output
    return result.output.strip().splitlines()[-1]


class TestEntries:

    def test_new_and_show(self, cli):
        entry_id = _new(cli, "--date", "2026-03-01", "--title", "Harbour walk", "--tag", "trip")
        result = cli("show", entry_id)
        assert result.exit_code == 0
        assert "title: Harbour walk" in result.output
        assert "date: 2026-03-01" in result.output
        assert "trip" in result.output

    def test_new_json(self, cli):
        result = cli("--json", "new", "--title", "x")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["title"] == "x"
        assert data["journalId"] == "default"

    def test_new_bad_date(self, cli):
        result = cli("new", "--date", "2026-13-01")
        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_list_in_order(self, cli):
        later = _new(cli, "--date", "2026-03-02", "--title", "second")
        earlier = _new(cli, "--date", "2026-03-01", "--title", "first")
        lines = cli("list").output.strip().splitlines()
        assert [line.split()[0] for line in lines] == [earlier, later]

    def test_edit(self, cli):
        entry_id = _new(cli, "--title", "before")
        assert cli("edit", entry_id, "--title", "after").exit_code == 0
        assert "title: after" in cli("show", entry_id).output

    def test_edit_nothing(self, cli):
        entry_id = _new(cli)
        assert cli("edit", entry_id).exit_code == 1

    def test_delete(self, cli):
        entry_id = _new(cli, "--title", "doomed")
        assert cli("delete", entry_id, "--yes").exit_code == 0
        result = cli("show", entry_id)
        assert result.exit_code == 1
        assert "Entry not found" in result.output

    def test_delete_declined(self, cli):
        entry_id = _new(cli)
        cli("delete", entry_id, input="n\n")
        assert cli("show", entry_id).exit_code == 0


class TestSearch:

    def test_free_text(self, cli):
        entry_id = _new(cli, "--title", "Harbour walk")
        _new(cli, "--title", "Groceries")
        result = cli("search", "harbour")
        assert result.exit_code == 0
        assert entry_id in result.output
        assert "Groceries" not in result.output

    def test_unknown_journal(self, cli):
        result = cli("search", "journal:Nope", "x")
        assert result.exit_code == 1
        assert "No journal named 'Nope'" in result.output

    def test_tags(self, cli):
        _new(cli, "--tag", "Blue ")
        _new(cli, "--tag", " BLUE", "--tag", "proj")
        result = cli("tags")
        assert "Blue  (2)" in result.output
        assert "proj  (1)" in result.output

    def test_tag_browse_json(self, cli):
        _new(cli, "--tag", "project")
        result = cli("--json", "search", "#proj")
        data = json.loads(result.output)
        assert data["mode"] == "tags"
        assert data["items"][0]["norm"] == "project"

    def test_tagged(self, cli):
        entry_id = _new(cli, "--tag", "Sea")
        result = cli("tagged", "sea")
        assert entry_id in result.output


class TestJournals:

    def test_create_use_list(self, cli):
        assert cli("journal", "create", "Work").exit_code == 0
        assert cli("journal", "use", "work").output.strip() == "Work"
        lines = cli("journal", "list").output.strip().splitlines()
        assert any(line.startswith("*") and "Work" in line for line in lines)

    def test_duplicate_name(self, cli):
        cli("journal", "create", "Work")
        result = cli("journal", "create", "WORK")
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_new_in_journal_and_scoped_search(self, cli):
        cli("journal", "create", "Work Notes")
        entry_id = _new(cli, "--journal", "work notes", "--title", "Budget")
        assert cli("search", "budget").exit_code == 0
        assert entry_id not in cli("search", "budget").output
        assert entry_id in cli("search", 'journal:"Work Notes"', "budget").output

    def test_delete_journal(self, cli):
        cli("journal", "create", "Work")
        entry_id = _new(cli, "--journal", "Work")
        assert cli("journal", "delete", "Work", "--yes").exit_code == 0
        assert cli("show", entry_id).exit_code == 1

    def test_default_journal_kept(self, cli):
        cli("journal", "create", "Work")
        result = cli("journal", "delete", "Journal", "--yes")
        assert result.exit_code == 1
        assert "cannot be deleted" in result.output


class TestTagsAndPhotos:

    def test_tag_lifecycle(self, cli):
        entry_id = _new(cli)
        tag_id = cli("tag", "add", entry_id, "sea").output.strip()
        assert cli("tag", "place", entry_id, tag_id, "150", "20").exit_code == 0
        assert "@ 100,20" in cli("show", entry_id).output
        assert cli("tag", "remove", entry_id, tag_id).exit_code == 0
        assert "tags:" not in cli("show", entry_id).output

    def test_bad_color(self, cli):
        entry_id = _new(cli)
        result = cli("tag", "add", entry_id, "x", "--color", "pink")
        assert result.exit_code == 1

    def test_photo_round_trip(self, cli, tmp_path):
        entry_id = _new(cli)
        src = tmp_path / "in.jpg"
        src.write_bytes(b"\xff\xd8image")
        assert cli("photo", "set", entry_id, str(src)).exit_code == 0
        out = tmp_path / "out.jpg"
        assert cli("photo", "get", entry_id, str(out)).exit_code == 0
        assert out.read_bytes() == b"\xff\xd8image"
        assert cli("photo", "remove", entry_id).exit_code == 0
        assert cli("photo", "get", entry_id, str(out)).exit_code == 1


class TestCalendar:

    def test_day(self, cli):
        first = _new(cli, "--date", "2026-03-01")
        second = _new(cli, "--date", "2026-03-01")
        lines = cli("day", "2026-03-01").output.strip().splitlines()
        assert [line.split()[0] for line in lines] == [first, second]

    def test_month(self, cli):
        _new(cli, "--date", "2026-10-15")
        result = cli("calendar", "--month", "2026-10")
        assert result.exit_code == 0
        assert "October 2026" in result.output
        assert "15*" in result.output

    def test_month_offset(self, cli):
        result = cli("calendar", "--month", "2026-12", "--offset", "1")
        assert "January 2027" in result.output

    def test_bad_month(self, cli):
        assert cli("calendar", "--month", "2026-13").exit_code == 1


class TestData:

    def test_export_import(self, cli, tmp_path, runner):
        entry_id = _new(cli, "--title", "Keep me")
        export = tmp_path / "export.json"
        assert cli("data", "export", str(export)).exit_code == 0
        data = json.loads(export.read_text())
        assert data["format"] == "daypage-export"

        other = tmp_path / "other"
        result = runner.invoke(app, ["--store", str(other), "data", "import", str(export), "--yes"])
        assert result.exit_code == 0, result.output
        shown = runner.invoke(app, ["--store", str(other), "show", entry_id])
        assert "title: Keep me" in shown.output

    def test_import_empty_rejected(self, cli, tmp_path):
        empty = tmp_path / "empty.json"
        empty.write_text("[]")
        result = cli("data", "import", str(empty), "--yes")
        assert result.exit_code == 1
        assert "no entries" in result.output

    def test_import_not_json(self, cli, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")
        assert cli("data", "import", str(bad), "--yes").exit_code == 1


class TestMisc:

    def test_config(self, cli, tmp_path):
        result = cli("config")
        assert result.exit_code == 0
        assert "backend: local" in result.output

    def test_summary_without_command(self, cli):
        _new(cli, "--title", "latest")
        result = cli()
        assert result.exit_code == 0
        assert "Journal: 1 entries" in result.output
