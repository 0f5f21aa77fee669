"""
Shared pytest fixtures for notecli tests.

Every store lives under tmp_path; nothing touches ~/.notecli.
"""

from datetime import datetime, timezone

import pytest

from notecli.analyzers import LexiconAnnotator
from notecli.note_store import NoteStore
from notecli.types import Record

TEST_KEY = "correct horse battery staple"

# Fixed "now" for analytics: Wednesday 2026-03-18 12:00 UTC
FIXED_NOW = datetime(2026, 3, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep environment overrides from leaking into tests."""
    monkeypatch.delenv("NOTECLI_ENCRYPTION_KEY", raising=False)
    monkeypatch.delenv("NOTECLI_VERBOSE", raising=False)
    monkeypatch.setenv("NOTECLI_STORE_PATH", str(tmp_path / "default-store"))


@pytest.fixture
def annotator():
    return LexiconAnnotator()


@pytest.fixture
def store(tmp_path):
    """A plaintext store with no key."""
    ns = NoteStore(tmp_path / "store")
    yield ns
    ns.close()


@pytest.fixture
def encrypted_store(tmp_path):
    """A store holding an encryption key."""
    ns = NoteStore(tmp_path / "store", encryption_key=TEST_KEY)
    yield ns
    ns.close()


def at(iso: str) -> str:
    """Canonical stored timestamp for a UTC ISO date/time string."""
    dt = datetime.fromisoformat(iso)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def make_record(id=1, title=None, body="Some words here", category="General",
                tags=(), created="2026-03-18T09:00:00", annotation=None):
    """Build a Record without going through a store."""
    created = at(created)
    return Record(
        id=id,
        title=title or f"Note {id}",
        body=body,
        category=category,
        tags=tuple(tags),
        created_at=created,
        updated_at=created,
        annotation=annotation,
    )
