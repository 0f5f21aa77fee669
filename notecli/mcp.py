"""
MCP stdio server for notecli: note-taking tools for AI agents.

Exposes NoteStore operations as MCP tools so local agents can add,
search and analyze notes without HTTP infrastructure.

Usage:
    notecli mcp                           # stdio server (via CLI)
    claude --mcp-server notecli="notecli mcp"

All NoteStore calls are serialized through a single asyncio.Lock.
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from .analytics import compute_analytics
from .config import get_encryption_key
from .errors import NoteStoreError
from .note_store import SEARCH_FIELDS, NoteStore
from .types import Record

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "notecli",
    instructions=(
        "Personal notes with automatic tagging, categories and sentiment. "
        "Add, read, search and update notes; analyze one note or the whole collection."
    ),
)

_store: Optional[NoteStore] = None
_lock = asyncio.Lock()


def _get_store() -> NoteStore:
    """Lazy-init NoteStore (respects NOTECLI_STORE_PATH and NOTECLI_ENCRYPTION_KEY).

    Must be called inside ``async with _lock``.
    """
    global _store
    if _store is None:
        import os
        store_path = os.environ.get("NOTECLI_STORE_PATH")
        _store = NoteStore(
            Path(store_path) if store_path else None,
            encryption_key=get_encryption_key(),
        )
    return _store


def _render(note: Record) -> str:
    return json.dumps(note.to_dict(), indent=2, ensure_ascii=False)


def _render_list(notes: list[Record]) -> str:
    return "\n".join(
        f"{n.id}  {n.title}  ({n.category})"
        + (f"  [{', '.join(n.tags)}]" if n.tags else "")
        for n in notes
    )


# ---------------------------------------------------------------------------
# Tool annotations
# ---------------------------------------------------------------------------

_READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
_WRITE = ToolAnnotations(destructiveHint=False, idempotentHint=False)
_DESTRUCTIVE = ToolAnnotations(destructiveHint=True, idempotentHint=False)


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "Create a note. Tags and category are inferred from the text when omitted."
    ),
    annotations=_WRITE,
)
async def note_add(
    title: Annotated[str, Field(description="Unique title (case-insensitive).")],
    body: Annotated[str, Field(description="Note text.")],
    category: Annotated[Optional[str], Field(
        description="Category. Suggested from the text if omitted.",
    )] = None,
    tags: Annotated[Optional[list[str]], Field(
        description="Tags (letters, digits, _ and -). Generated if omitted.",
    )] = None,
) -> str:
    """Create a note."""
    async with _lock:
        store = _get_store()
        try:
            note = store.add(title, body, category=category, tags=tags)
        except NoteStoreError as e:
            return f"Error: {e}"
    return f"Created: {note.id} {note.title} ({note.category}) [{', '.join(note.tags)}]"


@mcp.tool(
    description="Retrieve a note by id or by exact title, with its analysis.",
    annotations=_READ_ONLY,
)
async def note_get(
    id: Annotated[Optional[int], Field(description="Note id.")] = None,
    title: Annotated[Optional[str], Field(description="Exact title (case-insensitive).")] = None,
) -> str:
    """Retrieve a note."""
    async with _lock:
        store = _get_store()
        try:
            note = store.find(id=id, title=title)
        except NoteStoreError as e:
            return f"Error: {e}"
    if note is None:
        return f"Not found: {id if id is not None else title}"
    return _render(note)


@mcp.tool(
    description="List notes, newest first, optionally filtered by category.",
    annotations=_READ_ONLY,
)
async def note_list(
    category: Annotated[Optional[str], Field(description="Only this category.")] = None,
    limit: Annotated[int, Field(description="Maximum notes to return.")] = 20,
) -> str:
    """List notes."""
    async with _lock:
        store = _get_store()
        try:
            notes = store.load()
        except NoteStoreError as e:
            return f"Error: {e}"
    if category:
        notes = [n for n in notes if n.category.casefold() == category.casefold()]
    notes = sorted(notes, key=lambda n: n.id, reverse=True)[:limit]
    if not notes:
        return "No notes found."
    return _render_list(notes)


@mcp.tool(
    description=(
        "Find notes containing a substring in their title, body or tags."
    ),
    annotations=_READ_ONLY,
)
async def note_search(
    query: Annotated[str, Field(description="Text to look for.")],
    fields: Annotated[Optional[list[str]], Field(
        description=f"Fields to search, any of {list(SEARCH_FIELDS)} (default: all).",
    )] = None,
    case_sensitive: Annotated[bool, Field(description="Match case exactly.")] = False,
) -> str:
    """Search notes."""
    async with _lock:
        store = _get_store()
        try:
            notes = store.search(
                query,
                fields=tuple(fields) if fields else SEARCH_FIELDS,
                case_sensitive=case_sensitive,
            )
        except NoteStoreError as e:
            return f"Error: {e}"
    if not notes:
        return "No results found."
    return _render_list(notes)


@mcp.tool(
    description="Change a note's title, text, category or tags. Omitted fields are kept.",
    annotations=_WRITE,
)
async def note_update(
    id: Annotated[int, Field(description="Note id.")],
    title: Annotated[Optional[str], Field(description="New title.")] = None,
    body: Annotated[Optional[str], Field(description="New text.")] = None,
    category: Annotated[Optional[str], Field(description="New category.")] = None,
    tags: Annotated[Optional[list[str]], Field(description="Replacement tags.")] = None,
) -> str:
    """Update a note."""
    async with _lock:
        store = _get_store()
        try:
            note = store.update(id, title=title, body=body, category=category, tags=tags)
        except NoteStoreError as e:
            return f"Error: {e}"
    return f"Updated: {note.id} {note.title}"


@mcp.tool(
    description="Delete a note. The previous collection is kept as a backup.",
    annotations=_DESTRUCTIVE,
)
async def note_remove(
    id: Annotated[int, Field(description="Note id.")],
) -> str:
    """Delete a note."""
    async with _lock:
        store = _get_store()
        try:
            note = store.remove(id)
        except NoteStoreError as e:
            return f"Error: {e}"
    return f"Removed: {note.id} {note.title}"


@mcp.tool(
    description=(
        "Analyze a note: sentiment, entities, suggested tags and category, "
        "summary, and the most similar other notes."
    ),
    annotations=_READ_ONLY,
)
async def note_analyze(
    id: Annotated[int, Field(description="Note id.")],
    similar: Annotated[int, Field(description="How many similar notes to include.")] = 3,
) -> str:
    """Analyze a note."""
    async with _lock:
        store = _get_store()
        try:
            note = store.find(id=id)
            if note is None:
                return f"Not found: {id}"
            related = store.similar(id, limit=similar) if similar > 0 else []
        except NoteStoreError as e:
            return f"Error: {e}"
        annotator = store.annotator
        result = {
            "id": note.id,
            "title": note.title,
            "annotation": note.annotation.to_dict() if note.annotation else None,
            "suggestedTags": annotator.generate_tags(note.body, 10),
            "suggestedCategory": annotator.suggest_category(note.body),
            "summary": annotator.generate_summary(note.body, 150),
            "similar": [{"id": n.id, "title": n.title} for n in related],
        }
    return json.dumps(result, indent=2, ensure_ascii=False)


@mcp.tool(
    description="Collection statistics: counts, word totals, categories, tags, activity by hour.",
    annotations=_READ_ONLY,
)
async def note_analytics() -> str:
    """Collection statistics."""
    async with _lock:
        store = _get_store()
        try:
            snapshot = compute_analytics(store.load())
        except NoteStoreError as e:
            return f"Error: {e}"
    return json.dumps(snapshot.to_dict(), indent=2)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP stdio server."""
    import os
    import signal
    # The stdin reader shields its blocking readline from cancellation,
    # so a plain Ctrl+C would not stop the server.
    signal.signal(signal.SIGINT, lambda *_: os._exit(130))
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
