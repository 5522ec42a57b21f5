# src/lkrates/domain/__init__.py
"""
Domain Layer - Pure Business Objects

This package contains domain models, validation rules and errors.
No dependencies on infrastructure or external systems.
"""

from lkrates.domain.models import (
    AdmissionState,
    BatchLogEntry,
    BatchResult,
    ExchangeRateSample,
    ExtractionAttemptResult,
    QuotaStatus,
    RateLimitResult,
    USD_LKR,
    WindowSnapshot,
)
from lkrates.domain.errors import (
    AdmissionDenied,
    DomainError,
    ExtractionError,
    FetchError,
    PersistenceError,
    ScrapeError,
    StoreUnavailableError,
    UnknownSourceError,
    ValidationError,
)
from lkrates.domain.validation import validate_rate, validate_sample, validate_spread

__all__ = [
    "ExchangeRateSample",
    "ExtractionAttemptResult",
    "BatchResult",
    "BatchLogEntry",
    "AdmissionState",
    "WindowSnapshot",
    "RateLimitResult",
    "QuotaStatus",
    "USD_LKR",
    "DomainError",
    "ScrapeError",
    "FetchError",
    "ExtractionError",
    "ValidationError",
    "UnknownSourceError",
    "PersistenceError",
    "StoreUnavailableError",
    "AdmissionDenied",
    "validate_rate",
    "validate_spread",
    "validate_sample",
]
