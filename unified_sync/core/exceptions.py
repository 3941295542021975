"""Error types raised inside the sync engine."""

from __future__ import annotations

from typing import Optional


class SyncEngineError(Exception):
    """Base class for all sync engine errors."""


class IntegrationError(SyncEngineError):
    """The integration platform could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchTimeoutError(SyncEngineError):
    """A page fetch or a single record's processing exceeded its time budget."""


class InvalidSignatureError(SyncEngineError):
    """Webhook body does not match the signature header."""


class UnknownProviderError(SyncEngineError):
    """No configuration exists for the requested provider."""


class EnrichmentError(SyncEngineError):
    """Document download or summarization failed."""
