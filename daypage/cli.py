"""
CLI interface for the journal.

Usage:
    daypage new --title "Harbour walk" --tag trip
    daypage search "journal:Work budget"
    daypage tags proj
    daypage calendar --month 2026-10
"""

import asyncio
import json
import os
import re
import sys
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import Notebook
from .days import WEEKDAY_LABELS, shift_month
from .logging_config import configure_quiet_mode, enable_debug_mode
from .query import MODE_TAGS, SCOPE_ACTIVE, SCOPE_ALL, SCOPE_JOURNAL
from .search import STATUS_EMPTY, STATUS_NO_RESULTS, QueryResult
from .types import TAG_COLORS, Entry, OpResult, is_valid_date, today

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


# Configure quiet mode by default
# Set DAYPAGE_VERBOSE=1 to enable debug mode via environment
if os.environ.get("DAYPAGE_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"daypage {version('daypage')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="daypage",
    help="A local journal with photos, tags and scoped search.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="DAYPAGE_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """A local journal with photos, tags and scoped search."""
    # Without a subcommand, summarize the active journal
    if ctx.invoked_subcommand is None:
        nb = _get_notebook(None)
        journal = nb.active_journal()
        ordered = nb.sorted_entries()
        latest = ordered[-1] if ordered else None
        if _get_json_output():
            typer.echo(json.dumps({
                "journal": journal.to_dict(),
                "entryCount": len(ordered),
                "latest": latest.to_dict() if latest else None,
            }, indent=2))
            return
        typer.echo(f"{journal.name}: {len(ordered)} entries")
        if latest:
            typer.echo(_entry_line(latest))


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        envvar="DAYPAGE_STORE_PATH",
        help="Path to the store directory (default: ~/.daypage/)"
    )
]

JournalOption = Annotated[
    Optional[str],
    typer.Option(
        "--journal", "-j",
        help="Journal name or id (default: the active journal)"
    )
]

AllOption = Annotated[
    bool,
    typer.Option(
        "--all", "-a",
        help="Across all journals"
    )
]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _get_notebook(store: Optional[Path]) -> Notebook:
    """Open the journal store, handling errors gracefully."""
    import atexit

    actual_store = store if store is not None else _get_store_override()
    try:
        nb = Notebook(actual_store)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    atexit.register(nb.close)
    # Inline images from older data move into the image store on first use
    asyncio.run(nb.migrate_images())
    return nb


def _fail(message: str) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _check(result: OpResult) -> OpResult:
    """Exit 1 with the result's message unless it succeeded."""
    if not result.ok:
        _fail(result.message or result.status.value)
    return result


def _status(result: OpResult) -> None:
    if result.message and not _get_json_output():
        typer.echo(result.message, err=True)


def _resolve_journal(nb: Notebook, name_or_id: Optional[str]) -> Optional[str]:
    if name_or_id is None:
        return None
    journal = nb.find_journal(name_or_id)
    if journal is None:
        _fail(f"No journal named {name_or_id!r}")
    return journal.id


def _require_entry(nb: Notebook, entry_id: str) -> Entry:
    entry = nb.get_entry(entry_id)
    if entry is None:
        _fail(f"Entry not found: {entry_id}")
    return entry


def _entry_line(entry: Entry) -> str:
    title = entry.title or "(untitled)"
    line = f"{entry.id}  {entry.date}  {title}"
    texts = entry.tag_texts()
    if texts:
        line += "  " + " ".join(f"#{t}" for t in texts)
    return line


def _render_entry(entry: Entry, journal_name: str) -> str:
    lines = [
        f"id: {entry.id}",
        f"journal: {journal_name}",
        f"date: {entry.date}",
        f"title: {entry.title}",
        f"created: {entry.created_at}",
        f"updated: {entry.updated_at}",
    ]
    if entry.image_ref:
        lines.append(f"photo: {entry.image_ref}")
    elif entry.legacy_image is not None:
        lines.append("photo: (inline, not yet moved to the image store)")
    if entry.tags:
        lines.append("tags:")
        for tag in entry.tags:
            where = f" @ {tag.x:g},{tag.y:g}" if tag.placed else ""
            lines.append(f"  - {tag.id}  {tag.text}  {tag.color}{where}")
    lines.append("---")
    lines.append(entry.body)
    return "\n".join(lines)


def _echo_entries(entries: list[Entry]) -> None:
    if _get_json_output():
        typer.echo(json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False))
        return
    for entry in entries:
        typer.echo(_entry_line(entry))


def _echo_result(result: QueryResult) -> None:
    if _get_json_output():
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if result.status == STATUS_EMPTY:
        typer.echo("Nothing to search for", err=True)
        return
    if result.status == STATUS_NO_RESULTS:
        typer.echo("No results", err=True)
        return
    if result.mode == MODE_TAGS:
        for rec in result.items:
            typer.echo(f"{rec.display}  ({rec.entry_count})")
    else:
        for entry in result.items:
            typer.echo(_entry_line(entry))
    notice = result.limit_notice()
    if notice:
        typer.echo(notice, err=True)


def _scope(all_journals: bool, journal_id: Optional[str]) -> str:
    if all_journals:
        return SCOPE_ALL
    return SCOPE_JOURNAL if journal_id else SCOPE_ACTIVE


# -----------------------------------------------------------------------------
# Entries
# -----------------------------------------------------------------------------

@app.command()
def new(
    journal: JournalOption = None,
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="YYYY-MM-DD (default: today)")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Entry title")] = None,
    body: Annotated[Optional[str], typer.Option("--body", "-b", help="Entry text ('-' reads stdin)")] = None,
    tag: Annotated[Optional[list[str]], typer.Option("--tag", help="Tag text (repeatable)")] = None,
    store: StoreOption = None,
):
    """Create an entry."""
    nb = _get_notebook(store)
    journal_id = _resolve_journal(nb, journal)
    if date is not None and not is_valid_date(date):
        _fail(f"Invalid date: {date!r} (expected YYYY-MM-DD)")
    if body == "-":
        body = sys.stdin.read()

    entry = nb.create_entry(journal_id, date)
    patch = {k: v for k, v in (("title", title), ("body", body)) if v is not None}
    if patch:
        entry = _check(nb.update_entry(entry.id, patch)).value
    for text in tag or []:
        _check(nb.add_tag(entry.id, text))
    entry = nb.get_entry(entry.id)

    if _get_json_output():
        typer.echo(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(entry.id)


@app.command("list")
def list_entries(
    journal: JournalOption = None,
    all_journals: AllOption = False,
    store: StoreOption = None,
):
    """List entries in chronological order."""
    nb = _get_notebook(store)
    if all_journals:
        entries = []
        for j in nb.journals():
            entries.extend(nb.sorted_entries(j.id))
    else:
        entries = nb.sorted_entries(_resolve_journal(nb, journal))
    _echo_entries(entries)


@app.command()
def show(
    id: Annotated[str, typer.Argument(help="Entry id")],
    store: StoreOption = None,
):
    """Show an entry."""
    nb = _get_notebook(store)
    entry = _require_entry(nb, id)
    if _get_json_output():
        typer.echo(json.dumps(entry.to_dict(), indent=2, ensure_ascii=False))
        return
    journal = nb.find_journal(entry.journal_id)
    typer.echo(_render_entry(entry, journal.name if journal else entry.journal_id))


@app.command()
def edit(
    id: Annotated[str, typer.Argument(help="Entry id")],
    date: Annotated[Optional[str], typer.Option("--date", "-d", help="YYYY-MM-DD")] = None,
    title: Annotated[Optional[str], typer.Option("--title", "-t")] = None,
    body: Annotated[Optional[str], typer.Option("--body", "-b", help="Entry text ('-' reads stdin)")] = None,
    journal: Annotated[Optional[str], typer.Option("--journal", "-j", help="Move to this journal")] = None,
    store: StoreOption = None,
):
    """Change an entry's date, title, body or journal."""
    nb = _get_notebook(store)
    if body == "-":
        body = sys.stdin.read()
    patch = {k: v for k, v in (("date", date), ("title", title), ("body", body)) if v is not None}
    if journal is not None:
        patch["journal_id"] = _resolve_journal(nb, journal)
    if not patch:
        _fail("Nothing to change (use --date, --title, --body or --journal)")
    result = _check(nb.update_entry(id, patch))
    _status(result)
    if _get_json_output():
        typer.echo(json.dumps(result.value.to_dict(), indent=2, ensure_ascii=False))


@app.command()
def delete(
    id: Annotated[str, typer.Argument(help="Entry id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    store: StoreOption = None,
):
    """Delete an entry and its photo."""
    nb = _get_notebook(store)
    entry = _require_entry(nb, id)
    if not yes and not typer.confirm(f"Delete {entry.title or 'untitled entry'} ({entry.date})?"):
        raise typer.Exit(0)
    _status(_check(asyncio.run(nb.purge_entry(id))))


# -----------------------------------------------------------------------------
# Search
# -----------------------------------------------------------------------------

@app.command()
def search(
    query: Annotated[list[str], typer.Argument(
        help="Text to find; 'journal:Name', 'scope:all', 'all:' and 'tag:'/'#' are understood"
    )],
    journal: Annotated[Optional[str], typer.Option(
        "--journal", "-j", help="Journal to treat as active for this search"
    )] = None,
    store: StoreOption = None,
):
    """Search entries, or browse tags with tag:/#."""
    nb = _get_notebook(store)
    raw = " ".join(query)
    result = nb.run_query(raw, _resolve_journal(nb, journal))
    if result.journal_not_found:
        _fail(f"No journal named {result.target_name!r}")
    _echo_result(result)


@app.command()
def tags(
    fragment: Annotated[Optional[str], typer.Argument(help="Only tags containing this text")] = None,
    journal: JournalOption = None,
    all_journals: AllOption = False,
    store: StoreOption = None,
):
    """List distinct tags with the number of entries carrying each."""
    nb = _get_notebook(store)
    journal_id = _resolve_journal(nb, journal)
    _echo_result(nb.browse_tags(fragment or "", _scope(all_journals, journal_id), journal_id))


@app.command()
def tagged(
    tag: Annotated[str, typer.Argument(help="Tag text (matched exactly, ignoring case and spacing)")],
    journal: JournalOption = None,
    all_journals: AllOption = False,
    store: StoreOption = None,
):
    """List entries carrying a tag, most recently updated first."""
    nb = _get_notebook(store)
    journal_id = _resolve_journal(nb, journal)
    _echo_result(nb.entries_with_tag(tag, _scope(all_journals, journal_id), journal_id))


# -----------------------------------------------------------------------------
# Calendar
# -----------------------------------------------------------------------------

@app.command()
def day(
    date: Annotated[str, typer.Argument(help="YYYY-MM-DD")],
    journal: JournalOption = None,
    store: StoreOption = None,
):
    """Entries written on one day."""
    nb = _get_notebook(store)
    group = nb.day_group(date, _resolve_journal(nb, journal))
    if not group.entries and not _get_json_output():
        typer.echo(f"No entries on {date}", err=True)
        return
    _echo_entries(group.entries)


@app.command()
def calendar(
    month: Annotated[Optional[str], typer.Option("--month", "-m", help="YYYY-MM (default: this month)")] = None,
    offset: Annotated[int, typer.Option("--offset", help="Months before (-) or after (+) --month")] = 0,
    journal: JournalOption = None,
    store: StoreOption = None,
):
    """Month grid; days with entries are marked with '*'."""
    if month is None:
        month = today()[:7]
    m = _MONTH_PATTERN.match(month)
    if not m or not 1 <= int(m.group(2)) <= 12:
        _fail(f"Invalid month: {month!r} (expected YYYY-MM)")
    year, mon = shift_month(int(m.group(1)), int(m.group(2)), offset)

    nb = _get_notebook(store)
    view = nb.month_view(year, mon, _resolve_journal(nb, journal))

    if _get_json_output():
        typer.echo(json.dumps({
            "year": view.year,
            "month": view.month,
            "label": view.label,
            "datesWithEntries": [d.date for d in view.days if d.has_entry],
        }, indent=2))
        return

    typer.echo(view.label)
    typer.echo(" ".join(f"{w:>3}" for w in WEEKDAY_LABELS))
    for week in view.weeks():
        cells = []
        for cell in week:
            if cell is None:
                cells.append("   ")
            else:
                cells.append(f"{cell.day:>2}{'*' if cell.has_entry else ' '}")
        typer.echo(" ".join(cells).rstrip())


# -----------------------------------------------------------------------------
# Photos
# -----------------------------------------------------------------------------

photo_app = typer.Typer(
    name="photo",
    help="Attach, fetch or remove an entry's photo.",
    rich_markup_mode=None,
)
app.add_typer(photo_app)


@photo_app.command("set")
def photo_set(
    id: Annotated[str, typer.Argument(help="Entry id")],
    file: Annotated[Path, typer.Argument(help="Image file")],
    store: StoreOption = None,
):
    """Attach a photo, replacing any existing one."""
    if not file.is_file():
        _fail(f"file not found: {file}")
    nb = _get_notebook(store)
    _status(_check(asyncio.run(nb.set_image(id, file.read_bytes()))))


@photo_app.command("get")
def photo_get(
    id: Annotated[str, typer.Argument(help="Entry id")],
    output: Annotated[str, typer.Argument(help="Output file path (use '-' for stdout)")],
    store: StoreOption = None,
):
    """Write an entry's photo to a file."""
    nb = _get_notebook(store)
    _require_entry(nb, id)
    data = asyncio.run(nb.get_image(id))
    if data is None:
        _fail(f"Entry {id} has no photo")
    if output == "-":
        sys.stdout.buffer.write(data)
        sys.stdout.flush()
    else:
        Path(output).write_bytes(data)
        typer.echo(f"Wrote {len(data)} bytes to {output}", err=True)


@photo_app.command("remove")
def photo_remove(
    id: Annotated[str, typer.Argument(help="Entry id")],
    store: StoreOption = None,
):
    """Remove an entry's photo."""
    nb = _get_notebook(store)
    _status(_check(asyncio.run(nb.remove_image(id))))


# -----------------------------------------------------------------------------
# Tags
# -----------------------------------------------------------------------------

tag_app = typer.Typer(
    name="tag",
    help="Add, change, place or remove tags on an entry.",
    rich_markup_mode=None,
)
app.add_typer(tag_app)

ColorOption = Annotated[
    Optional[str],
    typer.Option("--color", "-c", help=f"One of {', '.join(TAG_COLORS)}")
]


def _echo_tag(result: OpResult) -> None:
    tag = result.value
    if _get_json_output():
        typer.echo(json.dumps(tag.to_dict(), indent=2, ensure_ascii=False))
    else:
        _status(result)


@tag_app.command("add")
def tag_add(
    id: Annotated[str, typer.Argument(help="Entry id")],
    text: Annotated[str, typer.Argument(help="Tag text")],
    color: ColorOption = None,
    x: Annotated[Optional[float], typer.Option("--x", help="Horizontal position on the photo (0-100)")] = None,
    y: Annotated[Optional[float], typer.Option("--y", help="Vertical position on the photo (0-100)")] = None,
    store: StoreOption = None,
):
    """Add a tag; it stays unplaced unless --x and --y are given."""
    nb = _get_notebook(store)
    result = _check(nb.add_tag(id, text, color, x, y))
    if _get_json_output():
        _echo_tag(result)
    else:
        typer.echo(result.value.id)


@tag_app.command("edit")
def tag_edit(
    id: Annotated[str, typer.Argument(help="Entry id")],
    tag_id: Annotated[str, typer.Argument(help="Tag id")],
    text: Annotated[Optional[str], typer.Option("--text", help="New tag text")] = None,
    color: ColorOption = None,
    store: StoreOption = None,
):
    """Change a tag's text or color."""
    nb = _get_notebook(store)
    _echo_tag(_check(nb.edit_tag(id, tag_id, text, color)))


@tag_app.command("place")
def tag_place(
    id: Annotated[str, typer.Argument(help="Entry id")],
    tag_id: Annotated[str, typer.Argument(help="Tag id")],
    x: Annotated[float, typer.Argument(help="Horizontal position (0-100)")],
    y: Annotated[float, typer.Argument(help="Vertical position (0-100)")],
    store: StoreOption = None,
):
    """Position a tag on the photo."""
    nb = _get_notebook(store)
    _echo_tag(_check(nb.place_tag(id, tag_id, x, y)))


@tag_app.command("unplace")
def tag_unplace(
    id: Annotated[str, typer.Argument(help="Entry id")],
    tag_id: Annotated[str, typer.Argument(help="Tag id")],
    store: StoreOption = None,
):
    """Take a tag off the photo, keeping it on the entry."""
    nb = _get_notebook(store)
    _echo_tag(_check(nb.unplace_tag(id, tag_id)))


@tag_app.command("remove")
def tag_remove(
    id: Annotated[str, typer.Argument(help="Entry id")],
    tag_id: Annotated[str, typer.Argument(help="Tag id")],
    store: StoreOption = None,
):
    """Delete a tag."""
    nb = _get_notebook(store)
    _echo_tag(_check(nb.remove_tag(id, tag_id)))


# -----------------------------------------------------------------------------
# Journals
# -----------------------------------------------------------------------------

journal_app = typer.Typer(
    name="journal",
    help="Create, rename, delete or switch journals.",
    rich_markup_mode=None,
)
app.add_typer(journal_app)


@journal_app.command("list")
def journal_list(store: StoreOption = None):
    """List journals; the active one is marked with '*'."""
    nb = _get_notebook(store)
    active = nb.active_journal().id
    journals = nb.journals()
    if _get_json_output():
        typer.echo(json.dumps([
            {**j.to_dict(), "active": j.id == active, "entryCount": nb.count_entries(j.id)}
            for j in journals
        ], indent=2, ensure_ascii=False))
        return
    for j in journals:
        marker = "*" if j.id == active else " "
        typer.echo(f"{marker} {j.id}  {j.name}  ({nb.count_entries(j.id)})")


@journal_app.command("create")
def journal_create(
    name: Annotated[str, typer.Argument(help="Journal name")],
    use: Annotated[bool, typer.Option("--use", help="Make it the active journal")] = False,
    store: StoreOption = None,
):
    """Create a journal."""
    nb = _get_notebook(store)
    result = _check(nb.create_journal(name))
    if use:
        nb.set_active_journal(result.value.id)
    typer.echo(result.value.id)


@journal_app.command("rename")
def journal_rename(
    journal: Annotated[str, typer.Argument(help="Journal name or id")],
    name: Annotated[str, typer.Argument(help="New name")],
    store: StoreOption = None,
):
    """Rename a journal."""
    nb = _get_notebook(store)
    _status(_check(nb.rename_journal(_resolve_journal(nb, journal), name)))


@journal_app.command("delete")
def journal_delete(
    journal: Annotated[str, typer.Argument(help="Journal name or id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    store: StoreOption = None,
):
    """Delete a journal with all of its entries and photos."""
    nb = _get_notebook(store)
    journal_id = _resolve_journal(nb, journal)
    count = nb.count_entries(journal_id)
    if not yes and not typer.confirm(
        f"Delete journal {nb.find_journal(journal_id).name!r} and its {count} entries?"
    ):
        raise typer.Exit(0)
    result = _check(asyncio.run(nb.purge_journal(journal_id)))
    _status(result)


@journal_app.command("use")
def journal_use(
    journal: Annotated[str, typer.Argument(help="Journal name or id")],
    store: StoreOption = None,
):
    """Make a journal the active one."""
    nb = _get_notebook(store)
    active = nb.set_active_journal(_resolve_journal(nb, journal))
    if not nb.last_save_ok:
        typer.echo("Storage unavailable, the change is visible this session only", err=True)
    typer.echo(nb.find_journal(active).name)


# -----------------------------------------------------------------------------
# Data Management
# -----------------------------------------------------------------------------

data_app = typer.Typer(
    name="data",
    help="Data management: export, import.",
    rich_markup_mode=None,
)
app.add_typer(data_app)


@data_app.command("export")
def data_export(
    output: Annotated[str, typer.Argument(
        help="Output file path (use '-' for stdout)"
    )],
    images: Annotated[bool, typer.Option(
        "--images", help="Inline photos into the export"
    )] = False,
    store: StoreOption = None,
):
    """Export entries and journals to JSON for backup or migration."""
    nb = _get_notebook(store)
    data = asyncio.run(nb.export_with_images()) if images else nb.export_data()
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output == "-":
        typer.echo(text)
        return
    Path(output).write_text(text + "\n", encoding="utf-8")
    typer.echo(
        f"Exported {len(data['entries'])} entries in {len(data['journals'])} journals to {output}",
        err=True,
    )


@data_app.command("import")
def data_import(
    file: Annotated[str, typer.Argument(help="JSON export file to import")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Don't ask for confirmation")] = False,
    store: StoreOption = None,
):
    """Replace all entries and journals with an export file."""
    if file == "-":
        text = sys.stdin.read()
    else:
        path = Path(file)
        if not path.exists():
            _fail(f"file not found: {file}")
        text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        _fail(f"not valid JSON: {e}")

    nb = _get_notebook(store)
    if not yes and not typer.confirm(
        "This replaces all existing entries and journals. Continue?"
    ):
        raise typer.Exit(0)
    stats = _check(nb.import_data(data)).value
    moved = asyncio.run(nb.migrate_images())
    typer.echo(
        f"Imported {stats['entries']} entries into {stats['journals']} journals"
        + (f", moved {moved} photos into the image store" if moved else ""),
        err=True,
    )


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

@app.command()
def config(store: StoreOption = None):
    """Show configuration."""
    from .config import CONFIG_FILENAME

    nb = _get_notebook(store)
    cfg = nb.config
    info = {
        "file": str(cfg.path / CONFIG_FILENAME),
        "store": str(nb.store_path),
        "backend": cfg.backend,
        "max_entry_results": cfg.search.max_entry_results,
        "max_tag_results": cfg.search.max_tag_results,
    }
    if _get_json_output():
        typer.echo(json.dumps(info, indent=2))
        return
    for key, value in info.items():
        typer.echo(f"{key}: {value}")


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="daypage CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
