"""
Deterministic text analysis for notes.

LexiconAnnotator (default) scores sentiment against fixed word lists,
extracts entities from capitalization, gazetteers and a few grammar
cues, and derives tags, a category and an extractive summary.

No models, no network: identical text always gives identical output.
"""

import logging
import re
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import NamedTuple, Optional

from . import lexicon
from .providers.base import TextAnnotator, get_registry
from .types import (
    Annotation,
    Record,
    Sentiment,
    Topics,
    content_hash,
    count_words,
    is_valid_tag,
    reading_time,
)

logger = logging.getLogger(__name__)

# Bodies longer than this (characters) get a summary in their annotation
SUMMARY_MIN_LENGTH = 200

# Candidates scoring at or below this are not considered similar.
# Tunable; kept at 0.1 so a single shared noun is not enough.
SIMILARITY_THRESHOLD = 0.1

MAX_POS_RESULTS = 10

_SENTIMENT_TOKEN_RE = re.compile(r"[a-z0-9']+")
_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]*")
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_NON_WORD_RE = re.compile(r"[^\w\s]")


class _Word(NamedTuple):
    text: str
    start: int
    end: int

    @property
    def lower(self) -> str:
        return self.text.lower()

    @property
    def capitalized(self) -> bool:
        return self.text[0].isupper()


def _dedupe(items: Iterable[str]) -> tuple[str, ...]:
    """Drop duplicates, first occurrence wins."""
    return tuple(dict.fromkeys(items))


def _sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(text) if s.strip()]


def _sentiment_label(score: int) -> str:
    if score > 2:
        return "very_positive"
    if score > 0:
        return "positive"
    if score < -2:
        return "very_negative"
    if score < 0:
        return "negative"
    return "neutral"


def _length_bucket(word_count: int) -> str:
    if word_count < lexicon.SHORT_WORD_LIMIT:
        return "short"
    if word_count > lexicon.LONG_WORD_LIMIT:
        return "long"
    return "medium"


# ---------------------------------------------------------------------------
# Entity extraction
# ---------------------------------------------------------------------------

def _adjacent(text: str, left: _Word, right: _Word, allow_period: bool = False) -> bool:
    """True if only whitespace (or a single period) separates two words."""
    gap = text[left.end:right.start]
    if allow_period and gap.startswith("."):
        gap = gap[1:]
    return not gap.strip()


def _capitalized_run(text: str, words: Sequence[_Word], i: int, limit: int = 4) -> list[_Word]:
    """Consecutive capitalized non-stopwords starting at ``i``."""
    run = [words[i]]
    j = i + 1
    while (
        j < len(words)
        and len(run) < limit
        and words[j].capitalized
        and words[j].lower not in lexicon.STOPWORDS
        and _adjacent(text, words[j - 1], words[j])
    ):
        run.append(words[j])
        j += 1
    return run


def _place_phrase(text: str, words: Sequence[_Word], i: int) -> int:
    """Length of the multi-word place starting at ``i`` (0 if none)."""
    for phrase in lexicon.PLACE_PHRASES:
        n = len(phrase)
        window = words[i:i + n]
        if len(window) < n or not window[0].capitalized:
            continue
        if tuple(w.lower for w in window) != phrase:
            continue
        if all(_adjacent(text, window[k], window[k + 1]) for k in range(n - 1)):
            return n
    return 0


def _surname(text: str, words: Sequence[_Word], i: int) -> Optional[_Word]:
    """The capitalized word after ``words[i]`` if it can be a surname."""
    if i + 1 >= len(words):
        return None
    nxt = words[i + 1]
    low = nxt.lower
    if (
        nxt.capitalized
        and _adjacent(text, words[i], nxt)
        and low not in lexicon.STOPWORDS
        and low not in lexicon.PLACES
        and low not in lexicon.ORGANIZATIONS
        and low not in lexicon.ORGANIZATION_SUFFIXES
    ):
        return nxt
    return None


def _entity_mentions(text: str) -> list[tuple[str, str]]:
    """Scan text for (kind, name) entity mentions in order of appearance."""
    words = [_Word(m.group(), m.start(), m.end()) for m in _WORD_RE.finditer(text)]
    mentions: list[tuple[str, str]] = []
    i = 0
    while i < len(words):
        word = words[i]
        low = word.lower
        if not word.capitalized or low in lexicon.STOPWORDS:
            i += 1
            continue

        n = _place_phrase(text, words, i)
        if n:
            mentions.append(("places", " ".join(w.text for w in words[i:i + n])))
            i += n
            continue

        run = _capitalized_run(text, words, i)
        if len(run) > 1 and run[-1].lower in lexicon.ORGANIZATION_SUFFIXES:
            mentions.append(("organizations", " ".join(w.text for w in run)))
            i += len(run)
            continue
        if low in lexicon.ORGANIZATIONS:
            mentions.append(("organizations", word.text))
            i += 1
            continue

        if low in lexicon.HONORIFICS and i + 1 < len(words):
            nxt = words[i + 1]
            if nxt.capitalized and _adjacent(text, word, nxt, allow_period=True):
                name = [nxt]
                last = _surname(text, words, i + 1)
                if last is not None:
                    name.append(last)
                mentions.append(("people", " ".join(w.text for w in name)))
                i += 1 + len(name)
                continue

        if low in lexicon.FIRST_NAMES:
            last = _surname(text, words, i)
            name = word.text if last is None else f"{word.text} {last.text}"
            mentions.append(("people", name))
            i += 1 if last is None else 2
            continue

        if low in lexicon.PLACES:
            mentions.append(("places", word.text))
            i += 1
            continue

        if i > 0 and words[i - 1].lower in lexicon.PLACE_PREPOSITIONS \
                and _adjacent(text, words[i - 1], word):
            mentions.append(("places", " ".join(w.text for w in run)))
            i += len(run)
            continue

        i += 1
    return mentions


# ---------------------------------------------------------------------------
# Part of speech
# ---------------------------------------------------------------------------

def _part_of_speech(low: str) -> Optional[str]:
    """Classify a lowercase word as "noun", "verb", or None (other)."""
    if len(low) <= 2 or not low.isalpha() or low in lexicon.STOPWORDS:
        return None
    if low in lexicon.NOUN_EXCEPTIONS:
        return "noun"
    if low in lexicon.VERBS:
        return "verb"
    if len(low) > 4 and low.endswith(("ing", "ed")):
        return "verb"
    if low.endswith("ly"):
        return None
    if low in lexicon.ADJECTIVES or low.endswith(lexicon.ADJECTIVE_SUFFIXES):
        return None
    if (low in lexicon.POSITIVE_WORDS or low in lexicon.NEGATIVE_WORDS) \
            and low.endswith(("y", "ent", "ant", "al", "ic")):
        return None
    return "noun"


# ---------------------------------------------------------------------------
# LexiconAnnotator
# ---------------------------------------------------------------------------

class LexiconAnnotator:
    """
    Word-list and heuristic implementation of TextAnnotator.

    Category rules are checked in the fixed order of
    ``lexicon.CATEGORY_RULES``; the first match wins.
    """

    def analyze_sentiment(self, text: str) -> Sentiment:
        tokens = _SENTIMENT_TOKEN_RE.findall((text or "").lower())
        score = 0
        positive: list[str] = []
        negative: list[str] = []
        for i, token in enumerate(tokens):
            if token in lexicon.POSITIVE_WORDS:
                weight = 1
                positive.append(token)
            elif token in lexicon.NEGATIVE_WORDS:
                weight = -1
                negative.append(token)
            else:
                continue
            if i > 0 and tokens[i - 1] in lexicon.INTENSIFIERS:
                weight *= 2
            score += weight
        return Sentiment(
            score=score,
            comparative=score / len(tokens) if tokens else 0.0,
            label=_sentiment_label(score),
            positive=tuple(positive),
            negative=tuple(negative),
            tokens=len(tokens),
        )

    def extract_topics(self, text: str) -> Topics:
        text = text or ""
        mentions = _entity_mentions(text)
        by_kind: dict[str, list[str]] = {"people": [], "places": [], "organizations": []}
        for kind, name in mentions:
            by_kind[kind].append(name)

        nouns: list[str] = []
        verbs: list[str] = []
        for m in _WORD_RE.finditer(text):
            low = m.group().lower()
            pos = _part_of_speech(low)
            if pos == "noun":
                nouns.append(low)
            elif pos == "verb":
                verbs.append(low)

        return Topics(
            people=_dedupe(by_kind["people"]),
            places=_dedupe(by_kind["places"]),
            organizations=_dedupe(by_kind["organizations"]),
            topics=_dedupe(name for _, name in mentions),
            nouns=_dedupe(nouns)[:MAX_POS_RESULTS],
            verbs=_dedupe(verbs)[:MAX_POS_RESULTS],
        )

    def generate_tags(self, text: str, max_tags: int = 5) -> list[str]:
        text = text or ""
        if not count_words(text):
            return []
        topics = self.extract_topics(text)
        sentiment = self.analyze_sentiment(text)

        tags: list[str] = []
        for topic in (*topics.topics, *topics.nouns):
            if 2 < len(topic) < 15:
                tag = "-".join(topic.lower().split())
                if is_valid_tag(tag):
                    tags.append(tag)
        tags.append(sentiment.label)
        tags.append(_length_bucket(count_words(text)))
        for kind in ("people", "places", "organizations"):
            if getattr(topics, kind):
                tags.append(kind)
        return list(_dedupe(tags))[:max_tags]

    def suggest_category(self, text: str) -> str:
        lower = (text or "").lower()
        topics = self.extract_topics(text)
        for category, keywords in lexicon.CATEGORY_RULES:
            trigger = lexicon.CATEGORY_ENTITY_TRIGGERS.get(category)
            if trigger and getattr(topics, trigger):
                return category
            if any(keyword in lower for keyword in keywords):
                return category
        return "General"

    def generate_summary(self, text: str, max_length: int = 100) -> str:
        text = text or ""
        sentences = _sentences(text)
        if len(sentences) <= 1:
            return text[:max_length] + ("..." if len(text) > max_length else "")

        summary = sentences[0]
        for sentence in sentences[1:]:
            if len(summary) >= max_length:
                break
            if len(summary) + len(sentence) < max_length:
                summary += ". " + sentence
        return summary + ("..." if len(text) > len(summary) else "")


get_registry().register_annotator("lexicon", LexiconAnnotator)


# ---------------------------------------------------------------------------
# Annotation and similarity
# ---------------------------------------------------------------------------

_default_annotator: Optional[LexiconAnnotator] = None


def default_annotator() -> LexiconAnnotator:
    global _default_annotator
    if _default_annotator is None:
        _default_annotator = LexiconAnnotator()
    return _default_annotator


def annotate(
    text: str,
    annotator: Optional[TextAnnotator] = None,
    summary_length: int = 100,
) -> Annotation:
    """
    Build the annotation stored with a note body.

    Args:
        text: The note body
        annotator: TextAnnotator to use (default: LexiconAnnotator)
        summary_length: Target summary length for long bodies

    Returns:
        Annotation tied to ``text`` by its content hash
    """
    annotator = annotator or default_annotator()
    words = count_words(text)
    summary = None
    if len(text) > SUMMARY_MIN_LENGTH:
        summary = annotator.generate_summary(text, summary_length)
    return Annotation(
        sentiment=annotator.analyze_sentiment(text),
        topics=annotator.extract_topics(text),
        word_count=words,
        reading_time=reading_time(words),
        content_hash=content_hash(text),
        summary=summary,
    )


def _topics_of(record: Record, annotator: TextAnnotator) -> Topics:
    if record.annotation is not None and record.annotation.matches(record.body):
        return record.annotation.topics
    return annotator.extract_topics(record.body)


def similarity_score(
    target: Record,
    candidate: Record,
    annotator: Optional[TextAnnotator] = None,
) -> float:
    """Weighted overlap of category, tags, nouns, people and places."""
    annotator = annotator or default_annotator()
    t_topics = _topics_of(target, annotator)
    c_topics = _topics_of(candidate, annotator)

    score = 0.0
    if candidate.category == target.category:
        score += 0.3
    score += 0.2 * len(set(target.tags) & set(candidate.tags))
    score += 0.1 * sum(1 for n in t_topics.nouns if n in c_topics.nouns)
    score += 0.2 * sum(1 for p in t_topics.people if p in c_topics.people)
    score += 0.2 * sum(1 for p in t_topics.places if p in c_topics.places)
    return score


def find_similar(
    target: Record,
    candidates: Iterable[Record],
    limit: int = 3,
    annotator: Optional[TextAnnotator] = None,
) -> list[Record]:
    """
    Rank candidates by similarity to ``target``.

    The target itself (same id) is skipped. Candidates scoring at or below
    SIMILARITY_THRESHOLD are dropped; the rest are sorted by descending
    score, ties keeping candidate order.
    """
    scored = []
    for candidate in candidates:
        if candidate.id == target.id:
            continue
        score = similarity_score(target, candidate, annotator)
        if score > SIMILARITY_THRESHOLD:
            scored.append((score, candidate))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [candidate for _, candidate in scored[:limit]]


# ---------------------------------------------------------------------------
# Writing statistics
# ---------------------------------------------------------------------------

def word_frequency(text: str) -> Counter:
    """Frequency of words longer than 3 characters, punctuation stripped."""
    words = _NON_WORD_RE.sub("", text.lower()).split()
    return Counter(w for w in words if len(w) > 3)


def sentence_count(text: str) -> int:
    return len(_sentences(text))


def complexity(text: str) -> str:
    """Simple / Moderate / Complex from average words per sentence."""
    sentences = sentence_count(text)
    if not sentences:
        return "Simple"
    avg = round(count_words(text) / sentences)
    if avg > 20:
        return "Complex"
    if avg > 15:
        return "Moderate"
    return "Simple"
