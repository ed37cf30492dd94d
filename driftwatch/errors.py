"""
Error Taxonomy

  - ValidationError:       malformed input. Rejected immediately, never retried.
  - ProviderError:         an AI call failed or timed out. Recovered locally.
  - ParseError:            an AI response was not the JSON shape we asked for.
                           Recovered locally, the turn is discarded.
  - InsufficientDataError: an expected operating mode (e.g. a debate with
                           fewer than two providers). Surfaced as a skipped
                           result by the engines, never raised to callers
                           of the assessor.
  - StoreError:            the score store failed. Propagates to the caller.

Keyword and document classification have no error states.
"""

from __future__ import annotations

from typing import Optional


class DriftWatchError(Exception):
    """Base class for all engine errors."""


class ValidationError(DriftWatchError):
    """Raised when a request is malformed (missing category, bad window...)."""


class ProviderError(DriftWatchError):
    """Raised when an AI provider call fails, times out, or is unavailable."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class ParseError(DriftWatchError):
    """Raised when an AI response cannot be turned into the expected JSON shape."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class InsufficientDataError(DriftWatchError):
    """Raised internally when an operation lacks the inputs it needs."""


class StoreError(DriftWatchError):
    """Raised when the score store cannot be read or written. Always propagates."""
