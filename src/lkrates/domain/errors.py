# src/lkrates/domain/errors.py
"""
Domain Errors - Scraping and Admission Exceptions

This module defines the exception taxonomy shared by extractors, the retry
wrapper, the scraping service and the admission gate.

Files that USE this module:
- lkrates.adapters.extractors.* (raise FetchError, ExtractionError, ValidationError)
- lkrates.application.retry (folds attempt failures into results)
- lkrates.application.scraping_service (UnknownSourceError, PersistenceError)
- lkrates.shared.rate_limiter (StoreUnavailableError, AdmissionDenied)

Files that this module USES:
- None (pure domain layer)
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from lkrates.domain.models import RateLimitResult


class DomainError(Exception):
    """Base exception for domain errors."""
    pass


class ScrapeError(DomainError):
    """Base class for failures of a single extraction attempt."""

    def __init__(self, message: str, source_id: Optional[str] = None):
        super().__init__(message)
        self.source_id = source_id


class FetchError(ScrapeError):
    """Raised when a source cannot be reached, times out or answers with a non-success status."""
    pass


class ExtractionError(ScrapeError):
    """Raised when content was retrieved but the expected rate pattern is missing."""
    pass


class ValidationError(ScrapeError):
    """Raised when extracted rates fall outside domain bounds or violate the spread rule."""
    pass


class UnknownSourceError(DomainError):
    """Raised when a caller references a source id that is not registered."""

    def __init__(self, source_id: str):
        super().__init__(f"No extractor registered for source: {source_id}")
        self.source_id = source_id


class PersistenceError(DomainError):
    """Raised when a storage write fails."""
    pass


class StoreUnavailableError(DomainError):
    """Raised when the admission gate's shared window store cannot be reached."""
    pass


class AdmissionDenied(DomainError):
    """Raised by AdmissionGate.enforce when the sliding window is full."""

    def __init__(self, result: "RateLimitResult"):
        super().__init__(f"Rate limit exceeded, retry after {result.retry_after}s")
        self.result = result
