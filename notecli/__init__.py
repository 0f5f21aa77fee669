"""
notecli

A note store with at-rest encryption, automatic backups, and deterministic
content analysis (sentiment, topics, tags, category, summary, similarity).

Quick Start:
    from notecli import NoteStore

    store = NoteStore(Path("~/.notecli").expanduser())
    note = store.add("Trip Plan", "Excited about the amazing vacation in Paris")
    store.search("paris")

CLI Usage:
    notecli add "Trip Plan" "Excited about the vacation"
    notecli search paris
    notecli analytics

Default Store:
    ~/.notecli/ (created automatically).
    Override with NOTECLI_STORE_PATH or an explicit path argument.

Environment Variables:
    NOTECLI_STORE_PATH       - Override default store location
    NOTECLI_ENCRYPTION_KEY   - Key used to encrypt/decrypt note bodies
    NOTECLI_VERBOSE          - Set to 1 for debug logging
"""

from .errors import (
    CorruptCollectionError,
    DecryptionError,
    DuplicateTitleError,
    NoteStoreError,
    NotFoundError,
    StorageUnavailable,
    StorageWriteError,
    ValidationError,
)
from .note_store import NoteStore
from .types import Annotation, EncryptionState, Record, Sentiment, Topics

__version__ = "2.0.0"
__all__ = [
    "NoteStore",
    "Record",
    "Annotation",
    "Sentiment",
    "Topics",
    "EncryptionState",
    "NoteStoreError",
    "ValidationError",
    "DuplicateTitleError",
    "NotFoundError",
    "StorageUnavailable",
    "StorageWriteError",
    "CorruptCollectionError",
    "DecryptionError",
]
