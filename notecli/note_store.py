"""
Note store backed by a single JSON file.

The note store is the source of truth for:
- Note identity (time-derived integer IDs, never reused)
- Titles (unique, case-insensitive), bodies, categories, tags
- Timestamps
- Annotations (derived from bodies, recomputed whenever a body changes)

Every mutating write first copies the current collection file into the
backup directory, then writes the new collection to a temporary file and
atomically replaces the old one. A failed write leaves the previous
collection intact.
"""

import json
import logging
import os
import re
import shutil
import tempfile
import threading
import time
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .analyzers import annotate, find_similar
from .config import StoreConfig, get_default_store_path, load_or_create_config
from .crypto import FernetCipher, decrypt_record, encrypt_record
from .errors import (
    CorruptCollectionError,
    DuplicateTitleError,
    NotFoundError,
    StorageUnavailable,
    StorageWriteError,
    ValidationError,
)
from .logging_config import configure_ops_log, remove_ops_log
from .providers.base import TextAnnotator, get_registry
from .types import (
    DEFAULT_CATEGORY,
    Record,
    advance_timestamp,
    normalize_tags,
    utc_now,
    validate_body,
    validate_category,
    validate_title,
)

logger = logging.getLogger(__name__)

NOTES_FILENAME = "notes.json"
BACKUP_DIRNAME = "backups"
BACKUP_PREFIX = "notes-backup-"

SEARCH_FIELDS = ("title", "body", "tags")

_BACKUP_NAME_RE = re.compile(r"^notes-backup-(?P<stamp>.+Z)(?:-(?P<n>\d+))?\.json$")


class _ReadWriteLock:
    """
    Readers-writer lock for a single process.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so writes are not starved.
    Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _casefold_title(title: str) -> str:
    return title.strip().casefold()


def _backup_sort_key(path: Path) -> tuple[str, int]:
    m = _BACKUP_NAME_RE.match(path.name)
    if m is None:
        return (path.name, 0)
    return (m.group("stamp"), int(m.group("n") or 0))


class NoteStore:
    """
    JSON-file store for notes, with backups and optional encryption.

    One instance is created by the hosting process (CLI, MCP server) and
    passed to whatever needs it. All mutations are serialized by an
    in-process readers-writer lock; reads may run concurrently with each
    other but never overlap a write.

    Storage layout under ``store_path``:
        notes.json          the collection (JSON array of notes)
        backups/            one snapshot of notes.json per write
        notecli.toml        configuration
        notecli-ops.log     operations log
    """

    def __init__(
        self,
        store_path: Optional[Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        encryption_key: Optional[str] = None,
        annotator: Optional[TextAnnotator] = None,
    ):
        """
        Args:
            store_path: Store directory (default: NOTECLI_STORE_PATH or ~/.notecli)
            config: Store configuration (default: loaded or created in store_path)
            encryption_key: Key for encrypting/decrypting bodies, supplied by the host
            annotator: TextAnnotator (default: the one named in the config)
        """
        self._store_path = Path(store_path) if store_path else get_default_store_path()
        try:
            self._store_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailable(f"Cannot create store at {self._store_path}: {e}") from e

        self._config = config or load_or_create_config(self._store_path)
        self._cipher = FernetCipher(encryption_key) if encryption_key else None
        self._annotator = annotator or get_registry().create_annotator(
            self._config.annotator.name, self._config.annotator.params,
        )
        self._lock = _ReadWriteLock()
        self._id_lock = threading.Lock()
        self._last_id = 0
        self._collection_encrypted = False
        self._ops_log_handler = configure_ops_log(self._store_path)
        logger.debug("Opened note store at %s", self._store_path)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._store_path

    @property
    def notes_path(self) -> Path:
        return self._store_path / NOTES_FILENAME

    @property
    def backup_dir(self) -> Path:
        return self._store_path / BACKUP_DIRNAME

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def annotator(self) -> TextAnnotator:
        return self._annotator

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def load(self) -> list[Record]:
        """
        Read the whole collection.

        Encrypted bodies are decrypted before being returned. A missing
        collection file reads as an empty collection.

        Raises:
            StorageUnavailable: The file exists but cannot be read
            CorruptCollectionError: The file is not a valid collection
            DecryptionError: A body cannot be decrypted (no partial result)
        """
        with self._lock.read():
            return self._load_unlocked()

    def find(self, *, id: Optional[int] = None, title: Optional[str] = None) -> Optional[Record]:
        """
        Find a note by exact id or case-insensitive exact title.

        Returns:
            The note, or None if nothing matches
        """
        if id is None and title is None:
            raise ValidationError("Specify an id or a title")
        with self._lock.read():
            records = self._load_unlocked()
        if id is not None:
            return next((r for r in records if r.id == id), None)
        wanted = _casefold_title(title)
        return next((r for r in records if _casefold_title(r.title) == wanted), None)

    def search(
        self,
        query: str,
        *,
        fields: Sequence[str] = SEARCH_FIELDS,
        case_sensitive: bool = False,
    ) -> list[Record]:
        """
        Substring search across the given fields.

        Tags are searched as one space-joined string. Results keep
        collection order.
        """
        unknown = [f for f in fields if f not in SEARCH_FIELDS]
        if unknown:
            raise ValidationError(
                f"Unknown search field(s): {', '.join(unknown)}. "
                f"Allowed: {', '.join(SEARCH_FIELDS)}"
            )
        needle = query if case_sensitive else query.lower()

        def _matches(record: Record) -> bool:
            for name in fields:
                value = " ".join(record.tags) if name == "tags" else getattr(record, name)
                if not case_sensitive:
                    value = value.lower()
                if needle in value:
                    return True
            return False

        with self._lock.read():
            records = self._load_unlocked()
        return [r for r in records if _matches(r)]

    def similar(self, id: int, limit: Optional[int] = None) -> list[Record]:
        """
        Notes most similar to note ``id``.

        Raises:
            NotFoundError: No note with that id
        """
        with self._lock.read():
            records = self._load_unlocked()
        target = next((r for r in records if r.id == id), None)
        if target is None:
            raise NotFoundError(id)
        return find_similar(
            target, records,
            limit=limit if limit is not None else self._config.similar_limit,
            annotator=self._annotator,
        )

    def list_backups(self) -> list[Path]:
        """Backup snapshots, oldest first."""
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(f"{BACKUP_PREFIX}*.json"), key=_backup_sort_key)

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def save(self, records: Iterable[Record], *, encrypt: Optional[bool] = None) -> None:
        """
        Replace the whole collection.

        Backs up the current file (if any), then atomically replaces it.

        Args:
            records: The complete new collection, plaintext bodies
            encrypt: Encrypt bodies on disk. None uses the store default
                (configured, or on if the collection is already encrypted).

        Raises:
            ValidationError: A record breaks a field rule, duplicate ids/titles,
                or encryption without a key
            StorageWriteError: Backup or write failed; the old file is intact
        """
        records = list(records)
        self._check_collection(records)
        with self._lock.write():
            if encrypt is None:
                self._collection_encrypted = self._stored_encrypted_unlocked()
            self._write_unlocked(records, self._effective_encrypt(encrypt))

    def add(
        self,
        title: str,
        body: str,
        *,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        infer: bool = True,
        encrypt: Optional[bool] = None,
    ) -> Record:
        """
        Create a note.

        Args:
            title: Unique title (case-insensitive)
            body: Note text, stored exactly as given
            category: Category; inferred from the body when omitted and ``infer``
            tags: Tags; generated from the body when omitted and ``infer``
            infer: Fill in missing category/tags from the content
            encrypt: Encrypt bodies on disk (None: store default)

        Returns:
            The stored Record

        Raises:
            ValidationError: Invalid title, body, category or tags
            DuplicateTitleError: A note with this title exists
        """
        title = validate_title(title)
        validate_body(body)
        if category is not None:
            category = validate_category(category)
        if tags is not None:
            tags = normalize_tags(tags)

        with self._lock.write():
            records = self._load_unlocked()
            wanted = _casefold_title(title)
            if any(_casefold_title(r.title) == wanted for r in records):
                raise DuplicateTitleError(title)

            if tags is None:
                tags = normalize_tags(self._annotator.generate_tags(body)) if infer else ()
            if category is None:
                category = self._annotator.suggest_category(body) if infer else DEFAULT_CATEGORY

            now = utc_now()
            record = Record(
                id=self._next_id(records),
                title=title,
                body=body,
                category=category,
                tags=tags,
                created_at=now,
                updated_at=now,
                annotation=self._annotate(body),
            )
            self._write_unlocked([*records, record], self._effective_encrypt(encrypt))

        logger.info("Added note %d %r (category=%s)", record.id, record.title, record.category)
        return record

    def update(
        self,
        id: int,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        encrypt: Optional[bool] = None,
    ) -> Record:
        """
        Change fields of an existing note.

        The annotation is recomputed when the body changes. ``created_at``
        is preserved; ``updated_at`` always advances.

        Raises:
            ValidationError: Invalid field values
            NotFoundError: No note with that id
            DuplicateTitleError: The new title belongs to another note
        """
        if title is not None:
            title = validate_title(title)
        if body is not None:
            validate_body(body)
        if category is not None:
            category = validate_category(category)
        if tags is not None:
            tags = normalize_tags(tags)

        with self._lock.write():
            records = self._load_unlocked()
            index = next((i for i, r in enumerate(records) if r.id == id), None)
            if index is None:
                raise NotFoundError(id)
            current = records[index]

            changes: dict = {"updated_at": advance_timestamp(current.updated_at)}
            if title is not None and title != current.title:
                wanted = _casefold_title(title)
                if any(r.id != id and _casefold_title(r.title) == wanted for r in records):
                    raise DuplicateTitleError(title)
                changes["title"] = title
            if body is not None and body != current.body:
                changes["body"] = body
                changes["annotation"] = self._annotate(body)
                logger.debug("Body changed, re-annotating note %d", id)
            if category is not None:
                changes["category"] = category
            if tags is not None:
                changes["tags"] = tags

            updated = current.with_changes(**changes)
            records[index] = updated
            self._write_unlocked(records, self._effective_encrypt(encrypt))

        logger.info("Updated note %d (%s)", id, ", ".join(sorted(changes)))
        return updated

    def remove(self, id: int) -> Record:
        """
        Delete a note.

        Returns:
            The removed Record, so callers can confirm or undo

        Raises:
            NotFoundError: No note with that id (nothing is written)
        """
        with self._lock.write():
            records = self._load_unlocked()
            removed = next((r for r in records if r.id == id), None)
            if removed is None:
                raise NotFoundError(id)
            remaining = [r for r in records if r.id != id]
            self._write_unlocked(remaining, self._effective_encrypt(None))

        logger.info("Removed note %d %r", removed.id, removed.title)
        return removed

    # -------------------------------------------------------------------------
    # Internals (callers hold the lock)
    # -------------------------------------------------------------------------

    def _annotate(self, body: str):
        return annotate(body, self._annotator, self._config.summary_length)

    def _effective_encrypt(self, encrypt: Optional[bool]) -> bool:
        if encrypt is not None:
            return encrypt
        return self._config.encrypt or self._collection_encrypted

    def _next_id(self, records: Sequence[Record]) -> int:
        """Millisecond timestamp, bumped past every id seen so far."""
        with self._id_lock:
            floor = max([self._last_id, *(r.id for r in records)])
            new_id = max(time.time_ns() // 1_000_000, floor + 1)
            self._last_id = new_id
            return new_id

    @staticmethod
    def _check_collection(records: Sequence[Record]) -> None:
        ids: set[int] = set()
        titles: set[str] = set()
        for record in records:
            validate_title(record.title)
            validate_body(record.body)
            validate_category(record.category)
            normalize_tags(record.tags)
            if record.id in ids:
                raise ValidationError(f"Duplicate note id: {record.id}")
            title = _casefold_title(record.title)
            if title in titles:
                raise DuplicateTitleError(record.title)
            ids.add(record.id)
            titles.add(title)

    def _load_unlocked(self) -> list[Record]:
        try:
            raw = self.notes_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._collection_encrypted = False
            return []
        except OSError as e:
            raise StorageUnavailable(f"Cannot read {self.notes_path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CorruptCollectionError(f"{self.notes_path} is not valid UTF-8") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptCollectionError(f"{self.notes_path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise CorruptCollectionError(
                f"{self.notes_path} must contain a JSON array, got {type(data).__name__}"
            )
        try:
            stored = [Record.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptCollectionError(f"{self.notes_path} has a malformed note: {e}") from e

        # Decrypt everything before returning anything
        records = [self._fresh_annotation(decrypt_record(r, self._cipher)) for r in stored]

        self._collection_encrypted = any(r.encrypted for r in stored)
        if stored:
            with self._id_lock:
                self._last_id = max(self._last_id, *(r.id for r in stored))
        return records

    def _stored_encrypted_unlocked(self) -> bool:
        """Whether the collection file on disk holds encrypted bodies."""
        try:
            data = json.loads(self.notes_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.warning("Cannot inspect %s before save: %s", self.notes_path.name, e)
            return self._collection_encrypted
        return isinstance(data, list) and any(
            isinstance(item, dict) and item.get("encrypted") is True for item in data
        )

    def _fresh_annotation(self, record: Record) -> Record:
        """Recompute a missing or stale annotation."""
        if record.annotation is not None and record.annotation.matches(record.body):
            return record
        if record.annotation is not None:
            logger.info("Stale annotation on note %d, recomputing", record.id)
        return record.with_changes(annotation=self._annotate(record.body))

    def _backup_unlocked(self) -> Optional[Path]:
        """Copy the current collection file into the backup directory."""
        if not self.notes_path.exists():
            return None
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            path = self.backup_dir / f"{BACKUP_PREFIX}{stamp}.json"
            n = 0
            while path.exists():
                n += 1
                path = self.backup_dir / f"{BACKUP_PREFIX}{stamp}-{n}.json"
            shutil.copy2(self.notes_path, path)
        except OSError as e:
            raise StorageWriteError(f"Backup failed, nothing written: {e}") from e
        logger.info("Backup created: %s", path.name)
        self._prune_backups()
        return path

    def _prune_backups(self) -> None:
        retention = self._config.backup_retention
        if retention <= 0:
            return
        backups = self.list_backups()
        for old in backups[:max(0, len(backups) - retention)]:
            try:
                old.unlink()
                logger.info("Pruned backup %s", old.name)
            except OSError as e:
                logger.warning("Could not prune backup %s: %s", old.name, e)

    def _write_unlocked(self, records: Sequence[Record], encrypt: bool) -> None:
        if encrypt and self._cipher is None:
            raise ValidationError("Encryption requested but no encryption key is configured")
        if encrypt:
            payload = [encrypt_record(r, self._cipher).to_dict() for r in records]
        else:
            payload = [r.to_dict() for r in records]
        text = json.dumps(payload, indent=2, ensure_ascii=False)

        self._backup_unlocked()

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".notes-", suffix=".tmp", dir=self._store_path,
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.notes_path)
        except OSError as e:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
            raise StorageWriteError(f"Cannot write {self.notes_path}: {e}") from e

        self._collection_encrypted = encrypt
        logger.info("Saved %d notes (encrypted=%s)", len(records), encrypt)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Detach the operations log."""
        if self._ops_log_handler is not None:
            remove_ops_log(self._ops_log_handler)
            self._ops_log_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"NoteStore({str(self._store_path)!r})"
