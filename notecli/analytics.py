"""
Corpus statistics over a note collection.

Every function here is a pure reduction over a list of records; nothing
is cached and nothing is written. ``analytics_for(store)`` is the only
entry point that touches storage, and it only reads.
"""

import math
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from .analyzers import default_annotator
from .types import WORDS_PER_MINUTE, Record, local_hour, parse_utc_timestamp

TOP_NOUNS = 10


@dataclass(frozen=True)
class WordCountStats:
    min: int = 0
    max: int = 0
    average: float = 0.0
    median: int = 0


@dataclass(frozen=True)
class WritingPatterns:
    """
    Writing habits across a corpus.

    Attributes:
        average_length: Mean words per note, rounded
        sentiment_trend: Sentiment scores ordered by creation time
        common_nouns: Up to 10 most frequent nouns with their counts
    """
    average_length: int
    sentiment_trend: list[int] = field(default_factory=list)
    common_nouns: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AnalyticsSnapshot:
    """Corpus-wide statistics, computed on demand and never persisted."""
    total_notes: int
    total_words: int
    total_reading_time: int
    notes_this_week: int
    notes_this_month: int
    categories: dict[str, int]
    tags: dict[str, int]
    word_counts: WordCountStats
    hours: dict[int, int]

    def to_dict(self) -> dict:
        return asdict(self)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def total_words(records: Sequence[Record]) -> int:
    return sum(r.word_count for r in records)


def notes_in_window(records: Sequence[Record], days: float, now: Optional[datetime] = None) -> int:
    """Count notes created within the trailing ``days`` before ``now``."""
    cutoff = _now(now) - timedelta(days=days)
    return sum(1 for r in records if parse_utc_timestamp(r.created_at) >= cutoff)


def notes_this_month(records: Sequence[Record], now: Optional[datetime] = None) -> int:
    """Count notes created in the current calendar month (local time)."""
    current = _now(now).astimezone()
    count = 0
    for r in records:
        created = parse_utc_timestamp(r.created_at).astimezone()
        if (created.year, created.month) == (current.year, current.month):
            count += 1
    return count


def category_histogram(records: Sequence[Record]) -> dict[str, int]:
    return dict(Counter(r.category for r in records))


def tag_histogram(records: Sequence[Record]) -> dict[str, int]:
    return dict(Counter(tag for r in records for tag in r.tags))


def word_count_stats(records: Sequence[Record]) -> WordCountStats:
    """
    Min, max, mean and median words per note.

    The median is the middle element of the sorted counts, or the
    lower-middle one for an even number of notes.
    """
    counts = sorted(r.word_count for r in records)
    if not counts:
        return WordCountStats()
    return WordCountStats(
        min=counts[0],
        max=counts[-1],
        average=sum(counts) / len(counts),
        median=counts[(len(counts) - 1) // 2],
    )


def hour_of_day_histogram(records: Sequence[Record]) -> dict[int, int]:
    """Notes created in each local-time hour, all 24 hours present."""
    hours = {hour: 0 for hour in range(24)}
    for r in records:
        hours[local_hour(r.created_at)] += 1
    return hours


def writing_patterns(records: Sequence[Record], annotator=None) -> Optional[WritingPatterns]:
    """
    Average length, sentiment trend and most common nouns.

    Returns None for an empty collection.
    """
    if not records:
        return None
    annotator = annotator or default_annotator()

    ordered = sorted(records, key=lambda r: parse_utc_timestamp(r.created_at))
    trend: list[int] = []
    nouns: Counter = Counter()
    for r in ordered:
        annotation = r.annotation if r.annotation and r.annotation.matches(r.body) else None
        if annotation is not None:
            trend.append(annotation.sentiment.score)
            nouns.update(annotation.topics.nouns)
        else:
            trend.append(annotator.analyze_sentiment(r.body).score)
            nouns.update(annotator.extract_topics(r.body).nouns)

    return WritingPatterns(
        average_length=round(total_words(records) / len(records)),
        sentiment_trend=trend,
        common_nouns=dict(nouns.most_common(TOP_NOUNS)),
    )


def compute_analytics(records: Sequence[Record], now: Optional[datetime] = None) -> AnalyticsSnapshot:
    """Bundle every corpus statistic into one snapshot."""
    words = total_words(records)
    return AnalyticsSnapshot(
        total_notes=len(records),
        total_words=words,
        total_reading_time=math.ceil(words / WORDS_PER_MINUTE),
        notes_this_week=notes_in_window(records, 7, now),
        notes_this_month=notes_this_month(records, now),
        categories=category_histogram(records),
        tags=tag_histogram(records),
        word_counts=word_count_stats(records),
        hours=hour_of_day_histogram(records),
    )


def analytics_for(store, now: Optional[datetime] = None) -> AnalyticsSnapshot:
    """Load the store's collection and compute its snapshot.

    Store read errors propagate unchanged.
    """
    return compute_analytics(store.load(), now)
