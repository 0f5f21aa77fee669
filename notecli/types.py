"""
Data types for the note store.
"""

import hashlib
import math
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, Optional

from .errors import ValidationError


MAX_TITLE_LENGTH = 200
MAX_BODY_LENGTH = 100_000
MAX_CATEGORY_LENGTH = 50
MAX_TAGS = 20
MAX_TAG_LENGTH = 50
DEFAULT_CATEGORY = "General"

# Reading speed used for reading-time estimates
WORDS_PER_MINUTE = 200

_TAG_RE = re.compile(r'^[A-Za-z0-9_-]{1,50}$')

SENTIMENT_LABELS = ("very_negative", "negative", "neutral", "positive", "very_positive")


def utc_now() -> str:
    """Current UTC timestamp as ISO-8601 with offset and microseconds."""
    return datetime.now(timezone.utc).isoformat()


def parse_utc_timestamp(ts: str) -> datetime:
    """Parse a stored timestamp string to a timezone-aware UTC datetime.

    Accepts the canonical format as well as 'Z' suffixes and naive
    timestamps, which are taken to be UTC.
    """
    ts = ts.replace("Z", "+00:00")
    dt = datetime.fromisoformat(ts)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def local_hour(utc_iso: str) -> int:
    """Hour of day (0-23) of a stored timestamp in the local timezone."""
    return parse_utc_timestamp(utc_iso).astimezone().hour


def advance_timestamp(previous: str) -> str:
    """A timestamp strictly later than ``previous``.

    Normally the current time; bumped by one microsecond when the clock
    has not moved past ``previous`` (fast successive writes, clock skew).
    """
    now = datetime.now(timezone.utc)
    prev = parse_utc_timestamp(previous)
    if now <= prev:
        now = prev + timedelta(microseconds=1)
    return now.isoformat()


def content_hash(text: str) -> str:
    """SHA-256 of a note body, used to detect stale annotations."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def count_words(text: str) -> int:
    """Whitespace-token count."""
    return len(text.split())


def reading_time(word_count: int) -> int:
    """Estimated reading time in whole minutes."""
    return math.ceil(word_count / WORDS_PER_MINUTE)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_title(title: str) -> str:
    """Validate a title and return it stripped."""
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title must be a non-empty string")
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return title


def validate_body(body: str) -> str:
    """Validate a body. The body is stored exactly as given, whitespace included."""
    if not isinstance(body, str) or not body:
        raise ValidationError("Body must be a non-empty string")
    if len(body) > MAX_BODY_LENGTH:
        raise ValidationError(f"Body must be at most {MAX_BODY_LENGTH} characters")
    return body


def validate_category(category: str) -> str:
    if not isinstance(category, str) or not category.strip():
        raise ValidationError("Category must be a non-empty string")
    category = category.strip()
    if len(category) > MAX_CATEGORY_LENGTH:
        raise ValidationError(f"Category must be at most {MAX_CATEGORY_LENGTH} characters")
    return category


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """Validate tags and drop duplicates, keeping first-seen order."""
    result: list[str] = []
    for tag in tags:
        if not isinstance(tag, str) or not _TAG_RE.match(tag):
            raise ValidationError(
                f"Tag must be 1-{MAX_TAG_LENGTH} characters "
                f"(allowed: A-Z, a-z, 0-9, _, -): {tag!r}"
            )
        if tag not in result:
            result.append(tag)
    if len(result) > MAX_TAGS:
        raise ValidationError(f"At most {MAX_TAGS} tags allowed, got {len(result)}")
    return tuple(result)


def is_valid_tag(tag: str) -> bool:
    return bool(_TAG_RE.match(tag))


# ---------------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------------

class EncryptionState(Enum):
    """Whether a record's body is plaintext or ciphertext."""
    PLAIN = "plain"
    ENCRYPTED = "encrypted"


@dataclass(frozen=True)
class Sentiment:
    """Lexicon sentiment of a text."""
    score: int = 0
    comparative: float = 0.0
    label: str = "neutral"
    positive: tuple[str, ...] = ()
    negative: tuple[str, ...] = ()
    tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "comparative": self.comparative,
            "label": self.label,
            "positive": list(self.positive),
            "negative": list(self.negative),
            "tokens": self.tokens,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Sentiment":
        return cls(
            score=int(d["score"]),
            comparative=float(d["comparative"]),
            label=str(d["label"]),
            positive=tuple(d.get("positive", ())),
            negative=tuple(d.get("negative", ())),
            tokens=int(d.get("tokens", 0)),
        )


@dataclass(frozen=True)
class Topics:
    """Entities and part-of-speech style extractions from a text."""
    people: tuple[str, ...] = ()
    places: tuple[str, ...] = ()
    organizations: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    nouns: tuple[str, ...] = ()
    verbs: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "people": list(self.people),
            "places": list(self.places),
            "organizations": list(self.organizations),
            "topics": list(self.topics),
            "nouns": list(self.nouns),
            "verbs": list(self.verbs),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Topics":
        return cls(**{k: tuple(d.get(k, ())) for k in (
            "people", "places", "organizations", "topics", "nouns", "verbs",
        )})


@dataclass(frozen=True)
class Annotation:
    """
    Derived analysis of a note body.

    Always computed from the body; never edited by hand. ``content_hash``
    identifies the body it was computed from.
    """
    sentiment: Sentiment
    topics: Topics
    word_count: int
    reading_time: int
    content_hash: str
    summary: Optional[str] = None

    def matches(self, body: str) -> bool:
        """True if this annotation was computed from ``body``."""
        return self.content_hash == content_hash(body)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "sentiment": self.sentiment.to_dict(),
            "topics": self.topics.to_dict(),
            "wordCount": self.word_count,
            "readingTime": self.reading_time,
            "contentHash": self.content_hash,
        }
        if self.summary is not None:
            d["summary"] = self.summary
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Annotation":
        return cls(
            sentiment=Sentiment.from_dict(d["sentiment"]),
            topics=Topics.from_dict(d["topics"]),
            word_count=int(d["wordCount"]),
            reading_time=int(d["readingTime"]),
            content_hash=str(d["contentHash"]),
            summary=d.get("summary"),
        )


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclass(frozen=True, eq=False)
class Record:
    """
    A single note.

    This is a read-only snapshot. To modify a note, use NoteStore.update()
    which returns a new Record with updated values.

    Attributes:
        id: Time-derived identifier, never reused
        title: Unique (case-insensitive) title
        body: Note text; plaintext unless ``encryption`` is ENCRYPTED
        category: Free-form category, "General" by default
        tags: Ordered set of tags (order kept for display only)
        created_at: ISO timestamp when created
        updated_at: ISO timestamp of the last mutation
        annotation: Analysis of ``body``, if computed
        encryption: Whether ``body`` holds ciphertext
    """
    id: int
    title: str
    body: str
    category: str = DEFAULT_CATEGORY
    tags: tuple[str, ...] = ()
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    annotation: Optional[Annotation] = None
    encryption: EncryptionState = EncryptionState.PLAIN

    @property
    def encrypted(self) -> bool:
        return self.encryption is EncryptionState.ENCRYPTED

    @property
    def word_count(self) -> int:
        if self.annotation is not None:
            return self.annotation.word_count
        return count_words(self.body)

    def _key(self) -> tuple:
        return (
            self.id, self.title, self.body, self.category, frozenset(self.tags),
            self.created_at, self.updated_at, self.annotation, self.encryption,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self.id)

    def with_changes(self, **changes: Any) -> "Record":
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize to the persisted JSON shape."""
        d: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "body": self.body,
            "category": self.category,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "encrypted": self.encrypted,
        }
        if self.annotation is not None:
            d["annotation"] = self.annotation.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Record":
        """Deserialize from the persisted JSON shape.

        Raises:
            ValueError, KeyError, TypeError: If the dict is malformed
        """
        if not isinstance(d, dict):
            raise TypeError(f"Record must be an object, got {type(d).__name__}")
        id = d["id"]
        if isinstance(id, bool) or not isinstance(id, int):
            raise TypeError(f"Record id must be an integer: {id!r}")
        title, body = d["title"], d["body"]
        if not isinstance(title, str) or not isinstance(body, str):
            raise TypeError(f"Record {id}: title and body must be strings")
        annotation = d.get("annotation")
        return cls(
            id=id,
            title=title,
            body=body,
            category=d.get("category") or DEFAULT_CATEGORY,
            tags=tuple(d.get("tags") or ()),
            created_at=d["createdAt"],
            updated_at=d.get("updatedAt") or d["createdAt"],
            annotation=Annotation.from_dict(annotation) if annotation else None,
            encryption=(EncryptionState.ENCRYPTED if d.get("encrypted")
                        else EncryptionState.PLAIN),
        )

    def __str__(self) -> str:
        return f"{self.id}: {self.title}"
