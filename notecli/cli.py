"""
CLI interface for notecli.

Usage:
    notecli add "Trip Plan" "Excited about the vacation in Paris"
    notecli list
    notecli read "Trip Plan"
    notecli search paris
    notecli analytics
"""

import json
import os
import shutil
import sys
from dataclasses import asdict
from pathlib import Path
from typing import NoReturn, Optional

import typer
from typing_extensions import Annotated

from .analytics import compute_analytics, writing_patterns
from .analyzers import complexity, sentence_count, word_frequency
from .config import get_default_store_path, get_encryption_key
from .errors import NoteStoreError, NotFoundError
from .logging_config import configure_quiet_mode, enable_debug_mode
from .note_store import SEARCH_FIELDS, NoteStore
from .types import Record, parse_utc_timestamp

# Width of the separator rules in detailed output
RULE_WIDTH = 60


def _output_width() -> int:
    """Terminal width for preview truncation. Use generous default when not a TTY."""
    if not sys.stdout.isatty():
        return 200
    return shutil.get_terminal_size((120, 24)).columns


# Configure quiet mode by default
# Set NOTECLI_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NOTECLI_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"notecli {version('notecli')}")
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
    if value is not None:
        _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="notecli",
    help="Notes with encryption, backups and content analysis.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
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
        envvar="NOTECLI_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Notes with encryption, backups and content analysis."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

StoreOption = Annotated[
    Optional[Path],
    typer.Option(
        "--store", "-s",
        help="Path to the store directory (default: ~/.notecli/)"
    )
]

TagOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--tag", "-t",
        help="Tag (repeatable)"
    )
]


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _get_store(store: Optional[Path]) -> NoteStore:
    """Open the note store, exiting with a clean message on failure."""
    path = store or _get_store_override() or get_default_store_path()
    try:
        return NoteStore(path, encryption_key=get_encryption_key())
    except (NoteStoreError, ValueError, RuntimeError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _fail(e: Exception) -> NoReturn:
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(1)


def _require(store: NoteStore, title: str) -> Record:
    note = store.find(title=title)
    if note is None:
        typer.echo(f'Note "{title}" not found.', err=True)
        raise typer.Exit(1)
    return note


def _format_date(ts: str) -> str:
    return parse_utc_timestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def _format_note_line(note: Record) -> str:
    tags = f"  [{', '.join(note.tags)}]" if note.tags else ""
    return f"{note.id}  {note.title}  ({note.category}){tags}"


def _preview(body: str, width: int) -> str:
    flat = " ".join(body.split())
    return flat if len(flat) <= width else flat[:width - 3] + "..."


def _render_note(note: Record) -> str:
    lines = [
        note.title,
        "=" * min(RULE_WIDTH, max(len(note.title), 3)),
        "",
        note.body,
        "",
        f"Category: {note.category}",
    ]
    if note.tags:
        lines.append(f"Tags: {', '.join(note.tags)}")
    lines.append(f"Created: {_format_date(note.created_at)}")
    if note.updated_at != note.created_at:
        lines.append(f"Updated: {_format_date(note.updated_at)}")
    if note.annotation is not None:
        a = note.annotation
        lines.append(f"Words: {a.word_count} (~{a.reading_time} min read)")
        lines.append(f"Mood: {a.sentiment.label} ({a.sentiment.score})")
        if a.summary:
            lines.append(f"Summary: {a.summary}")
    return "\n".join(lines)


def _echo_notes(notes: list[Record]) -> None:
    if _get_json_output():
        typer.echo(json.dumps([n.to_dict() for n in notes], indent=2))
        return
    for note in notes:
        typer.echo(_format_note_line(note))


def _bar(count: int, total: int) -> str:
    return "#" * round(count / total * 25) if total else ""


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def add(
    title: Annotated[str, typer.Argument(help="Note title (unique)")],
    body: Annotated[str, typer.Argument(help="Note text")],
    category: Annotated[Optional[str], typer.Option(
        "--category", "-c",
        help="Category (default: suggested from content)"
    )] = None,
    tag: TagOption = None,
    quick: Annotated[bool, typer.Option(
        "--quick", "-q",
        help="Quick note: tagged quick-note in 'Quick Notes'"
    )] = False,
    no_infer: Annotated[bool, typer.Option(
        "--no-infer",
        help="Don't generate tags or suggest a category"
    )] = False,
    encrypt: Annotated[Optional[bool], typer.Option(
        "--encrypt/--no-encrypt",
        help="Encrypt note bodies on disk (default: store setting)"
    )] = None,
    store: StoreOption = None,
):
    """
    Add a note.

    \b
    Examples:
        notecli add "Standup" "Project meeting moved to 10am"
        notecli add "Idea" "Try the new cafe" -t food --quick
    """
    tags = list(tag) if tag else None
    if quick:
        tags = [*(tags or []), "quick-note"]
        category = category or "Quick Notes"

    with _get_store(store) as ns:
        try:
            note = ns.add(title, body, category=category, tags=tags,
                          infer=not no_infer, encrypt=encrypt)
            similar = ns.similar(note.id, limit=2)
        except NoteStoreError as e:
            _fail(e)

    if _get_json_output():
        typer.echo(json.dumps(note.to_dict(), indent=2))
        return
    typer.echo(f'Note "{note.title}" created ({note.id}).')
    typer.echo(f"Category: {note.category}")
    if note.tags:
        typer.echo(f"Tags: {', '.join(note.tags)}")
    if note.annotation is not None:
        typer.echo(f"Words: {note.annotation.word_count} (~{note.annotation.reading_time} min read)")
        typer.echo(f"Mood: {note.annotation.sentiment.label}")
    if similar:
        typer.echo("Similar notes:")
        for other in similar:
            typer.echo(f"  - {other.title}")


@app.command("list")
def list_notes(
    category: Annotated[Optional[str], typer.Option(
        "--category", "-c",
        help="Only notes in this category"
    )] = None,
    tag: TagOption = None,
    limit: Annotated[int, typer.Option(
        "--limit", "-n",
        help="Maximum notes to show"
    )] = 50,
    store: StoreOption = None,
):
    """List notes, newest first."""
    with _get_store(store) as ns:
        try:
            notes = ns.load()
        except NoteStoreError as e:
            _fail(e)

    if category:
        notes = [n for n in notes if n.category.casefold() == category.casefold()]
    if tag:
        notes = [n for n in notes if all(t in n.tags for t in tag)]
    notes = sorted(notes, key=lambda n: n.id, reverse=True)[:limit]

    if not notes and not _get_json_output():
        typer.echo("No notes found.")
        return
    _echo_notes(notes)


@app.command()
def read(
    title: Annotated[str, typer.Argument(help="Note title")],
    store: StoreOption = None,
):
    """Show a note."""
    with _get_store(store) as ns:
        try:
            note = _require(ns, title)
        except NoteStoreError as e:
            _fail(e)
    if _get_json_output():
        typer.echo(json.dumps(note.to_dict(), indent=2))
    else:
        typer.echo(_render_note(note))


@app.command()
def update(
    id: Annotated[int, typer.Argument(help="Note id")],
    title: Annotated[Optional[str], typer.Option("--title", help="New title")] = None,
    body: Annotated[Optional[str], typer.Option("--body", "-b", help="New text")] = None,
    category: Annotated[Optional[str], typer.Option("--category", "-c", help="New category")] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-t",
        help="Replace tags (repeatable)"
    )] = None,
    store: StoreOption = None,
):
    """Change a note's title, text, category or tags."""
    with _get_store(store) as ns:
        try:
            note = ns.update(id, title=title, body=body, category=category,
                             tags=list(tag) if tag else None)
        except NoteStoreError as e:
            _fail(e)
    if _get_json_output():
        typer.echo(json.dumps(note.to_dict(), indent=2))
    else:
        typer.echo(f'Note "{note.title}" updated.')


@app.command()
def remove(
    title: Annotated[str, typer.Argument(help="Note title")],
    store: StoreOption = None,
):
    """Remove a note (a backup of the collection is kept)."""
    with _get_store(store) as ns:
        try:
            removed = ns.remove(_require(ns, title).id)
        except NotFoundError:
            typer.echo(f'Note "{title}" not found.', err=True)
            raise typer.Exit(1)
        except NoteStoreError as e:
            _fail(e)
    typer.echo(f'Note "{removed.title}" removed.')


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Text to look for")],
    field: Annotated[Optional[list[str]], typer.Option(
        "--field", "-f",
        help=f"Field to search (repeatable; one of: {', '.join(SEARCH_FIELDS)})"
    )] = None,
    case_sensitive: Annotated[bool, typer.Option(
        "--case-sensitive", "-C",
        help="Match case exactly"
    )] = False,
    store: StoreOption = None,
):
    """Search notes by substring."""
    with _get_store(store) as ns:
        try:
            notes = ns.search(query, fields=tuple(field) if field else SEARCH_FIELDS,
                              case_sensitive=case_sensitive)
        except NoteStoreError as e:
            _fail(e)

    if _get_json_output():
        _echo_notes(notes)
        return
    if not notes:
        typer.echo(f'No notes found containing "{query}".')
        return
    typer.echo(f'Found {len(notes)} note(s) containing "{query}":')
    width = max(20, _output_width() - 4)
    for note in sorted(notes, key=lambda n: n.id, reverse=True):
        typer.echo(f"  {note.title}")
        typer.echo(f"    {_preview(note.body, width)}")


@app.command()
def analyze(
    title: Annotated[str, typer.Argument(help="Note title")],
    similar: Annotated[bool, typer.Option(
        "--similar",
        help="Also list similar notes"
    )] = False,
    store: StoreOption = None,
):
    """Show the content analysis of a note."""
    with _get_store(store) as ns:
        try:
            note = _require(ns, title)
            related = ns.similar(note.id, limit=5) if similar else []
        except NoteStoreError as e:
            _fail(e)
        annotator = ns.annotator

    a = note.annotation
    sentiment = a.sentiment
    topics = a.topics
    tags = annotator.generate_tags(note.body, 10)
    category = annotator.suggest_category(note.body)
    summary = annotator.generate_summary(note.body, 150)
    sentences = sentence_count(note.body)

    if _get_json_output():
        typer.echo(json.dumps({
            "id": note.id,
            "sentiment": sentiment.to_dict(),
            "topics": topics.to_dict(),
            "suggestedTags": tags,
            "suggestedCategory": category,
            "summary": summary,
            "wordCount": a.word_count,
            "sentences": sentences,
            "readingTime": a.reading_time,
            "complexity": complexity(note.body),
            "similar": [n.id for n in related],
        }, indent=2))
        return

    typer.echo(f'Analysis for "{note.title}"')
    typer.echo("=" * RULE_WIDTH)
    typer.echo(f"Mood: {sentiment.label} (score {sentiment.score}, "
               f"{sentiment.comparative:.3f} comparative)")
    typer.echo(f"Positive words: {len(sentiment.positive)}  "
               f"Negative words: {len(sentiment.negative)}")
    for label, values in (("People", topics.people), ("Places", topics.places),
                          ("Organizations", topics.organizations),
                          ("Topics", topics.topics)):
        if values:
            typer.echo(f"{label}: {', '.join(values)}")
    typer.echo(f"Suggested tags: {', '.join(tags)}")
    typer.echo(f"Suggested category: {category}")
    typer.echo(f'Summary: "{summary}"')
    typer.echo(f"Words: {a.word_count}  Sentences: {sentences}  "
               f"Reading time: ~{a.reading_time} min")
    typer.echo(f"Complexity: {complexity(note.body)}")
    common = word_frequency(note.body).most_common(5)
    if common:
        typer.echo("Most used words: " + ", ".join(f"{w} ({n})" for w, n in common))
    if similar:
        if related:
            typer.echo("Similar notes:")
            for other in related:
                typer.echo(f"  - {other.title} ({other.category})")
        else:
            typer.echo("No similar notes found.")


@app.command()
def analytics(
    store: StoreOption = None,
):
    """Show statistics for the whole collection."""
    with _get_store(store) as ns:
        try:
            snapshot = compute_analytics(ns.load())
        except NoteStoreError as e:
            _fail(e)

    if _get_json_output():
        typer.echo(json.dumps(snapshot.to_dict(), indent=2))
        return
    if not snapshot.total_notes:
        typer.echo("No notes yet.")
        return

    total = snapshot.total_notes
    typer.echo(f"Total notes: {total}")
    typer.echo(f"Total words: {snapshot.total_words}")
    typer.echo(f"This week: {snapshot.notes_this_week}  This month: {snapshot.notes_this_month}")
    typer.echo(f"Total reading time: ~{snapshot.total_reading_time} min")
    wc = snapshot.word_counts
    typer.echo(f"Note length: min {wc.min}, max {wc.max}, median {wc.median}, "
               f"average {wc.average:.1f} words")

    typer.echo("\nCategories:")
    for name, count in sorted(snapshot.categories.items(), key=lambda kv: -kv[1]):
        typer.echo(f"  {name:<15} {count:>3} {_bar(count, total)}")
    if snapshot.tags:
        typer.echo("\nPopular tags:")
        for name, count in sorted(snapshot.tags.items(), key=lambda kv: -kv[1])[:10]:
            typer.echo(f"  #{name} ({count})")

    typer.echo("\nActivity by hour:")
    busiest = max(snapshot.hours.values())
    for hour, count in snapshot.hours.items():
        if count:
            typer.echo(f"  {hour:02d}:00 {count:>3} {_bar(count, busiest)}")


@app.command()
def insights(
    store: StoreOption = None,
):
    """Show writing patterns across all notes."""
    with _get_store(store) as ns:
        try:
            patterns = writing_patterns(ns.load(), ns.annotator)
        except NoteStoreError as e:
            _fail(e)

    if patterns is None:
        typer.echo("No notes available for analysis.")
        return
    if _get_json_output():
        typer.echo(json.dumps(asdict(patterns), indent=2))
        return

    typer.echo(f"Average note length: {patterns.average_length} words")
    trend = patterns.sentiment_trend
    typer.echo(f"Average sentiment: {sum(trend) / len(trend):.2f}")
    typer.echo(f"Sentiment trend: {' '.join(str(s) for s in trend)}")
    if patterns.common_nouns:
        typer.echo("Common topics: " + ", ".join(
            f"{noun} ({count})" for noun, count in patterns.common_nouns.items()
        ))


@app.command()
def backups(
    store: StoreOption = None,
):
    """List backup snapshots, newest first."""
    with _get_store(store) as ns:
        paths = list(reversed(ns.list_backups()))
    if _get_json_output():
        typer.echo(json.dumps([str(p) for p in paths]))
        return
    if not paths:
        typer.echo("No backups yet.")
        return
    for p in paths:
        typer.echo(p.name)


@app.command()
def mcp(
    store: StoreOption = None,
):
    """Start MCP stdio server for AI agent integration."""
    path = store or _get_store_override()
    if path is not None:
        os.environ["NOTECLI_STORE_PATH"] = str(path)
    from .mcp import main as mcp_main
    mcp_main()


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
        log_path = log_exception(e, context="notecli CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
