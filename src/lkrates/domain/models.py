# src/lkrates/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains the data shapes passed between extractors, the retry
wrapper, the scraping service, persistence and the admission gate:
- Exchange rate samples (one observation from one source)
- Extraction attempt results and batch results
- Admission (rate limit) state and decisions

Files that USE this module:
- lkrates.application.* (all services use domain models)
- lkrates.adapters.* (adapters create and persist domain models)
- lkrates.shared.rate_limiter (AdmissionState, RateLimitResult, QuotaStatus)
- tests.* (tests use domain models for test data)

Files that this module USES:
- lkrates.domain.validation (rule checks behind ExchangeRateSample.create)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from collections import deque  # Ordered admission instants for the in-memory window
from dataclasses import dataclass, field  # Decorator for creating data classes
from datetime import datetime, timedelta, timezone  # Date/time utilities for timestamps
from decimal import Decimal  # Exact decimal arithmetic for rates
from typing import Any, Deque, Dict, Optional, Sequence  # Type hints

from lkrates.domain.validation import sample_problems

USD_LKR = "USD/LKR"


def _decimal_or_none(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


@dataclass(frozen=True)
class ExchangeRateSample:
    """
    One observation of a currency pair from one source at one instant.

    Attributes:
        source_id: Stable short code of the bank/source (e.g. "combank")
        currency_pair: Always "USD/LKR" for now
        buying_rate: Currency buying rate
        selling_rate: Currency selling rate
        telegraphic_buying_rate: Telegraphic transfer buying rate
        indicative_rate: Reference rate, typically central-bank published
        observed_at: When the rate was read from the source (UTC)
        is_valid: Outcome of domain validation
        source_url: URL the data was scraped from
    """
    source_id: str
    observed_at: datetime
    is_valid: bool
    currency_pair: str = USD_LKR
    buying_rate: Optional[Decimal] = None
    selling_rate: Optional[Decimal] = None
    telegraphic_buying_rate: Optional[Decimal] = None
    indicative_rate: Optional[Decimal] = None
    source_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.is_valid:
            return
        problems = sample_problems(
            self.buying_rate, self.selling_rate, self.telegraphic_buying_rate, self.indicative_rate
        )
        if problems:
            raise ValueError(
                f"Sample from {self.source_id} marked valid but {'; '.join(problems)}"
            )

    @classmethod
    def create(
        cls,
        source_id: str,
        buying_rate: Optional[Decimal] = None,
        selling_rate: Optional[Decimal] = None,
        telegraphic_buying_rate: Optional[Decimal] = None,
        indicative_rate: Optional[Decimal] = None,
        source_url: Optional[str] = None,
        observed_at: Optional[datetime] = None,
    ) -> ExchangeRateSample:
        """
        Build a sample and compute is_valid from the domain rules.

        Invalid samples are still returned; callers decide whether to reject them.
        """
        problems = sample_problems(
            buying_rate, selling_rate, telegraphic_buying_rate, indicative_rate
        )
        return cls(
            source_id=source_id,
            observed_at=observed_at or datetime.now(timezone.utc),
            is_valid=not problems,
            buying_rate=buying_rate,
            selling_rate=selling_rate,
            telegraphic_buying_rate=telegraphic_buying_rate,
            indicative_rate=indicative_rate,
            source_url=source_url,
        )

    @property
    def spread(self) -> Optional[Decimal]:
        if self.buying_rate is None or self.selling_rate is None:
            return None
        return abs(self.selling_rate - self.buying_rate)

    def to_json(self) -> Dict[str, Any]:
        """
        Convert to a JSON-serializable dictionary.

        Rates are written as strings to keep their exact decimal value.
        """
        return {
            "source_id": self.source_id,
            "currency_pair": self.currency_pair,
            "buying_rate": _decimal_or_none(self.buying_rate),
            "selling_rate": _decimal_or_none(self.selling_rate),
            "telegraphic_buying_rate": _decimal_or_none(self.telegraphic_buying_rate),
            "indicative_rate": _decimal_or_none(self.indicative_rate),
            "observed_at": self.observed_at.isoformat(),
            "is_valid": self.is_valid,
            "source_url": self.source_url,
        }

    @staticmethod
    def from_json(data: Dict[str, Any]) -> ExchangeRateSample:
        """
        Create a sample from a dictionary produced by to_json.

        Raises:
            KeyError, ValueError: If required fields are missing or malformed
        """
        def _dec(key: str) -> Optional[Decimal]:
            raw = data.get(key)
            return Decimal(str(raw)) if raw is not None else None

        observed_at = datetime.fromisoformat(str(data["observed_at"]).replace("Z", "+00:00"))
        return ExchangeRateSample(
            source_id=data["source_id"],
            currency_pair=data.get("currency_pair", USD_LKR),
            buying_rate=_dec("buying_rate"),
            selling_rate=_dec("selling_rate"),
            telegraphic_buying_rate=_dec("telegraphic_buying_rate"),
            indicative_rate=_dec("indicative_rate"),
            observed_at=observed_at,
            is_valid=bool(data["is_valid"]),
            source_url=data.get("source_url"),
        )


@dataclass(frozen=True)
class ExtractionAttemptResult:
    """
    Outcome of one retry-wrapped extraction.

    Attributes:
        source_id: Source the extraction ran against ("unknown" for catastrophic failures)
        succeeded: Whether any attempt produced a valid sample
        sample: The sample (present iff succeeded)
        error_message: Last failure message (present iff not succeeded)
        attempt_count: Number of attempts actually made
        elapsed: Wall time spent across all attempts and backoff delays
        persistence_error: Set when the sample was extracted but could not be stored
    """
    source_id: str
    succeeded: bool
    attempt_count: int
    elapsed: timedelta
    sample: Optional[ExchangeRateSample] = None
    error_message: Optional[str] = None
    persistence_error: Optional[str] = None

    @property
    def elapsed_ms(self) -> int:
        return int(self.elapsed.total_seconds() * 1000)

    def to_json(self) -> Dict[str, Any]:
        return {
            "source_id": self.source_id,
            "succeeded": self.succeeded,
            "sample": self.sample.to_json() if self.sample else None,
            "error_message": self.error_message,
            "attempt_count": self.attempt_count,
            "elapsed_ms": self.elapsed_ms,
            "persistence_error": self.persistence_error,
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Outcome of one orchestration run across all or selected sources.

    per_source_results is kept in source registration order.
    """
    started_at: datetime
    total_sources: int
    succeeded_count: int
    failed_count: int
    per_source_results: tuple[ExtractionAttemptResult, ...]
    total_elapsed: timedelta

    @classmethod
    def from_results(
        cls,
        started_at: datetime,
        results: Sequence[ExtractionAttemptResult],
        total_elapsed: timedelta,
    ) -> BatchResult:
        succeeded = sum(1 for r in results if r.succeeded)
        return cls(
            started_at=started_at,
            total_sources=len(results),
            succeeded_count=succeeded,
            failed_count=len(results) - succeeded,
            per_source_results=tuple(results),
            total_elapsed=total_elapsed,
        )

    @property
    def total_elapsed_ms(self) -> int:
        return int(self.total_elapsed.total_seconds() * 1000)

    def to_json(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "total_sources": self.total_sources,
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
            "total_elapsed_ms": self.total_elapsed_ms,
            "per_source_results": [r.to_json() for r in self.per_source_results],
        }


@dataclass(frozen=True)
class BatchLogEntry:
    """Summary record written once per batch by the scraping service."""
    job_id: str
    status: str  # "success", "partial", "failed"
    rates_found: int
    error_message: Optional[str]
    execution_time_ms: int
    scraped_at: datetime

    @classmethod
    def from_batch(cls, batch: BatchResult) -> BatchLogEntry:
        if batch.failed_count == 0:
            status = "success"
        elif batch.succeeded_count == 0:
            status = "failed"
        else:
            status = "partial"
        return cls(
            job_id=f"batch_{int(batch.started_at.timestamp() * 1000)}",
            status=status,
            rates_found=batch.succeeded_count,
            error_message=f"{batch.failed_count} sources failed" if batch.failed_count else None,
            execution_time_ms=batch.total_elapsed_ms,
            scraped_at=batch.started_at,
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "status": self.status,
            "rates_found": self.rates_found,
            "error_message": self.error_message,
            "execution_time_ms": self.execution_time_ms,
            "scraped_at": self.scraped_at.isoformat(),
        }


@dataclass
class AdmissionState:
    """
    Sliding window of recent admissions for one logical key.

    Attributes:
        key: Store key (prefix + identifier)
        window_ms: Window length in milliseconds
        max_requests: Admissions allowed per window
        timestamps: Admission instants (epoch ms), oldest first
    """
    key: str
    window_ms: int
    max_requests: int
    timestamps: Deque[int] = field(default_factory=deque)

    def prune(self, now_ms: int) -> None:
        """Drop admissions older than the window start."""
        window_start = now_ms - self.window_ms
        while self.timestamps and self.timestamps[0] < window_start:
            self.timestamps.popleft()


@dataclass(frozen=True)
class WindowSnapshot:
    """What a window store saw for one key: in-window count before any insert and the oldest instant."""
    count: int
    oldest_ms: Optional[int]
    admitted: bool = False


@dataclass(frozen=True)
class RateLimitResult:
    """
    Admission decision plus quota metadata.

    Attributes:
        allowed: Whether the request was admitted
        limit: Maximum requests per window
        remaining: Admissions left in the current window
        reset_time: Unix timestamp (seconds) when the window frees a slot
        retry_after: Seconds to wait before retrying (only when rejected)
    """
    allowed: bool
    limit: int
    remaining: int
    reset_time: int
    retry_after: Optional[int] = None


@dataclass(frozen=True)
class QuotaStatus:
    """Read-only quota probe result."""
    limit: int
    remaining: int
    reset_time: int
