"""Single-writer extraction of embedded jars."""

from .cache import ExtractionCache, ExtractionKey

__all__ = ["ExtractionCache", "ExtractionKey"]
