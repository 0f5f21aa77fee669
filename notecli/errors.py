"""
Error types and error logging for notecli.

The store raises the exceptions below; the CLI logs full stack traces
for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class NoteStoreError(Exception):
    """Base class for all errors raised by the note store."""


class ValidationError(NoteStoreError, ValueError):
    """A title, body, category or tag violates the record constraints."""


class DuplicateTitleError(NoteStoreError, ValueError):
    """A note with the same title (case-insensitive) already exists."""

    def __init__(self, title: str):
        super().__init__(f"Note with title {title!r} already exists")
        self.title = title


class NotFoundError(NoteStoreError, LookupError):
    """No note with the requested id."""

    def __init__(self, id: int):
        super().__init__(f"Note not found: {id}")
        self.id = id


class StorageError(NoteStoreError, OSError):
    """The storage medium failed."""


class StorageUnavailable(StorageError):
    """The collection exists but cannot be read."""


class StorageWriteError(StorageError):
    """Writing the collection or a backup snapshot failed."""


class CorruptCollectionError(NoteStoreError, ValueError):
    """The persisted collection cannot be parsed."""


class DecryptionError(NoteStoreError, ValueError):
    """A note body could not be decrypted (wrong key or corrupted ciphertext)."""


def _error_log_path() -> Path:
    """Resolve error log path, respecting NOTECLI_STORE_PATH."""
    store = os.environ.get("NOTECLI_STORE_PATH")
    if store:
        return Path(store) / "notecli-errors.log"
    return Path.home() / ".notecli" / "notecli-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}]")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(exc)))
    except OSError:
        pass  # Can't write error log, don't crash over it
    return log_path
