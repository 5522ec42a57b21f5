# src/lkrates/adapters/persistence/base.py
"""
Persistence Interface consumed by the scraping service.

Files that USE this module:
- lkrates.application.scraping_service (depends on RateRepository only)
- lkrates.adapters.persistence.file_store (JsonlRateStore implements it)
"""
from __future__ import annotations

from typing import Protocol

from lkrates.domain.models import BatchLogEntry, ExchangeRateSample


class RateRepository(Protocol):
    """
    Append-only sink for samples and batch summaries.

    Implementations must accept concurrent independent inserts from several
    sources at once and raise PersistenceError on failure.
    """

    def save_sample(self, sample: ExchangeRateSample) -> None:
        ...

    def save_batch_log(self, entry: BatchLogEntry) -> None:
        ...
