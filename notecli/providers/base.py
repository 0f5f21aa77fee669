"""
Base provider protocols.

These define the interfaces that concrete providers must implement.
Using Protocol for structural subtyping - no explicit inheritance required.
"""

from typing import Protocol, runtime_checkable

from ..types import Sentiment, Topics


# -----------------------------------------------------------------------------
# Text Annotation
# -----------------------------------------------------------------------------

@runtime_checkable
class TextAnnotator(Protocol):
    """
    Derives structured annotations from note text.

    Implementations must be deterministic: identical input always yields
    identical output. The note store relies on this to recompute an
    annotation whenever a body changes. Implementations must not raise
    for empty or malformed text.

    Example implementation:
        class ShoutingAnnotator(LexiconAnnotator):
            def suggest_category(self, text: str) -> str:
                return "Urgent" if text.isupper() else super().suggest_category(text)

        get_registry().register_annotator("shouting", ShoutingAnnotator)
    """

    def analyze_sentiment(self, text: str) -> Sentiment:
        """
        Score the sentiment of text.

        Returns:
            Sentiment with score, comparative score, label and matches
        """
        ...

    def extract_topics(self, text: str) -> Topics:
        """
        Extract people, places, organizations, topics, nouns and verbs.

        All lists are deduplicated in order of first occurrence.
        """
        ...

    def generate_tags(self, text: str, max_tags: int = 5) -> list[str]:
        """Suggest up to ``max_tags`` tags, in discovery order."""
        ...

    def suggest_category(self, text: str) -> str:
        """Suggest a category name ("General" when nothing matches)."""
        ...

    def generate_summary(self, text: str, max_length: int = 100) -> str:
        """Extractive summary of roughly ``max_length`` characters."""
        ...


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

class ProviderRegistry:
    """
    Registry for discovering and instantiating providers.

    Providers are registered by name and can be instantiated from configuration.
    This allows the store configuration (TOML) to specify providers by name
    rather than requiring code changes.

    Example:
        registry = ProviderRegistry()
        registry.register_annotator("lexicon", LexiconAnnotator)

        # Later, from config:
        annotator = registry.create_annotator("lexicon")
    """

    def __init__(self):
        self._annotators: dict[str, type] = {}
        self._lazy_loaded = False

    def _ensure_providers_loaded(self) -> None:
        """Lazily load the built-in provider modules."""
        if self._lazy_loaded:
            return

        self._lazy_loaded = True

        # Importing registers the built-in annotators
        from .. import analyzers  # noqa: F401

    def register_annotator(self, name: str, provider_class: type) -> None:
        """Register a text annotator class."""
        self._annotators[name] = provider_class

    def available_annotators(self) -> list[str]:
        self._ensure_providers_loaded()
        return sorted(self._annotators)

    def create_annotator(self, name: str, params: dict | None = None) -> TextAnnotator:
        """Create a text annotator instance."""
        self._ensure_providers_loaded()
        if name not in self._annotators:
            available = ", ".join(sorted(self._annotators)) or "none"
            raise ValueError(
                f"Unknown annotator: '{name}'. "
                f"Available annotators: {available}."
            )
        try:
            return self._annotators[name](**(params or {}))
        except TypeError as e:
            raise RuntimeError(
                f"Failed to create annotator '{name}': {e}"
            ) from e


# Global registry instance
_registry = ProviderRegistry()


def get_registry() -> ProviderRegistry:
    """Get the global provider registry."""
    return _registry
