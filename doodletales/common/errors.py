"""
Exception hierarchy shared by every DoodleTales component.
"""

from __future__ import annotations


class DoodleTalesError(Exception):
    """Base class for all errors raised by the package."""


class ExternalServiceError(DoodleTalesError):
    """
    Raised when a remote provider (text, vision, image, or speech) fails.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    status:
        HTTP status code reported by the provider, when known.
    retryable:
        Whether the failure is a transient capacity error worth retrying.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.retryable = retryable


class MalformedResponseError(ExternalServiceError):
    """The provider answered, but not in the shape the caller requires."""

    def __init__(self, message: str, *, raw: str | None = None) -> None:
        super().__init__(message, status=None, retryable=False)
        self.raw = raw


class GenerationError(DoodleTalesError):
    """A pipeline step could not produce its result."""


class DrawingParseError(GenerationError):
    """The child's drawing could not be turned into a structured description."""


class StoryGenerationError(GenerationError):
    """No page text could be generated; fatal for a story."""


class BookConversionError(GenerationError):
    """A book could not be converted; fatal for the conversion request."""


class NarrationError(DoodleTalesError):
    """Timed narration could not be synthesized."""


class StorageError(DoodleTalesError):
    """A blob could not be written to storage."""


class DocumentParseError(DoodleTalesError):
    """An uploaded document could not be read as text."""
