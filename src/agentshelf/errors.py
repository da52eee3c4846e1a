"""Exceptions raised by the catalog, index parser, and template helpers."""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base class for prompt-library errors."""


class TopicNotFoundError(CatalogError, KeyError):
    """Raised when a topic has no registered document."""

    def __init__(self, topic: str, available: list[str] | None = None) -> None:
        self.topic = topic
        self.available = sorted(available or [])
        listing = ", ".join(self.available) or "(none)"
        super().__init__(f"Unknown topic '{topic}'. Available: {listing}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return str(self.args[0])


class IndexParseError(CatalogError):
    """Raised when an index file has no usable catalog table."""


class MissingPlaceholderError(CatalogError, ValueError):
    """Raised by a strict template fill when placeholders are left unfilled."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Unfilled placeholders: {', '.join(self.missing)}")
