"""
Provider interfaces for note analysis.

Annotators turn note text into sentiment, topics, tags, categories and
summaries. They are configured by name in the store configuration and
created through the registry.
"""

from .base import (
    ProviderRegistry,
    TextAnnotator,
    get_registry,
)

__all__ = [
    "ProviderRegistry",
    "TextAnnotator",
    "get_registry",
]
