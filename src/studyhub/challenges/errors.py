"""Challenge error types, mapped to HTTP status codes by the routers."""

from __future__ import annotations


class ChallengeNotFoundError(LookupError):
    """Challenge or completion does not exist (404)."""


class ChallengeStateError(ValueError):
    """A business rule rejected the operation (400)."""


class ContentGenerationError(RuntimeError):
    """The content generator failed or returned unusable output."""
