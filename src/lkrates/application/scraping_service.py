# src/lkrates/application/scraping_service.py
"""
Scraping Service - Concurrent Orchestration Across Sources

This service runs the retry-wrapped extractor of one source, or of every
registered source concurrently, persists each successful sample and writes
one batch summary per scrape_all call.

Partial success is a normal outcome: a failing source never aborts or delays
the others, and nothing a single source does escapes scrape_all as an
exception. Only an unknown source id passed to scrape_one is raised.

Files that USE this module:
- lkrates.application.trigger_service (runs scrapes for the trigger endpoint)
- lkrates.app (CLI entry point)

Files that this module USES:
- lkrates.adapters.extractors.registry (SourceRegistry)
- lkrates.adapters.persistence.base (RateRepository protocol)
- lkrates.application.retry (run_with_retry, RetryPolicy)
- lkrates.domain.models (BatchResult, BatchLogEntry, ExtractionAttemptResult)
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import List

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.adapters.extractors.registry import SourceRegistry
from lkrates.adapters.persistence.base import RateRepository
from lkrates.application.retry import RetryPolicy, Sleep, run_with_retry
from lkrates.domain.models import BatchLogEntry, BatchResult, ExtractionAttemptResult

log = logging.getLogger(__name__)

UNKNOWN_SOURCE_ID = "unknown"


class ScrapingService:
    """Orchestrates extractions and persists their outcomes."""

    def __init__(self, registry: SourceRegistry, repository: RateRepository, sleep: Sleep = asyncio.sleep):
        """
        Args:
            registry: Registered extractors, in result order
            repository: Sink for samples and batch logs
            sleep: Backoff sleep handed to the retry wrapper
        """
        self.registry = registry
        self.repository = repository
        self._sleep = sleep

    def available_sources(self) -> List[str]:
        return self.registry.source_ids

    def has_source(self, source_id: str) -> bool:
        return source_id in self.registry

    async def scrape_one(self, source_id: str) -> ExtractionAttemptResult:
        """
        Extract and persist one source.

        Args:
            source_id: Registered source id

        Returns:
            ExtractionAttemptResult; a storage failure is reported in
            persistence_error and does not clear succeeded

        Raises:
            UnknownSourceError: If source_id is not registered
        """
        extractor = self.registry.get(source_id)
        return await self._extract_and_persist(extractor)

    async def scrape_all(self) -> BatchResult:
        """
        Scrape every registered source concurrently.

        Returns:
            BatchResult with one result per source in registration order
        """
        started_at = datetime.now(timezone.utc)
        t0 = time.monotonic()
        extractors = list(self.registry)
        log.info("Starting batch over %d source(s): %s",
                 len(extractors), ", ".join(e.source_id for e in extractors))

        outcomes = await asyncio.gather(
            *(self._extract_and_persist(e) for e in extractors),
            return_exceptions=True,
        )

        results: List[ExtractionAttemptResult] = []
        for extractor, outcome in zip(extractors, outcomes):
            if isinstance(outcome, BaseException):
                log.error("Unhandled error while scraping %s: %r", extractor.source_id, outcome)
                outcome = ExtractionAttemptResult(
                    source_id=UNKNOWN_SOURCE_ID,
                    succeeded=False,
                    attempt_count=0,
                    elapsed=timedelta(0),
                    error_message=f"{extractor.source_id}: {type(outcome).__name__}: {outcome}",
                )
            results.append(outcome)

        batch = BatchResult.from_results(
            started_at=started_at,
            results=results,
            total_elapsed=timedelta(seconds=time.monotonic() - t0),
        )
        log.info("Batch finished: %d/%d succeeded in %dms",
                 batch.succeeded_count, batch.total_sources, batch.total_elapsed_ms)
        await self._write_batch_log(batch)
        return batch

    async def _extract_and_persist(self, extractor: SourceExtractor) -> ExtractionAttemptResult:
        policy = RetryPolicy(max_attempts=extractor.max_attempts, base_delay_ms=extractor.base_delay_ms)
        result = await run_with_retry(extractor.source_id, extractor.attempt_extraction, policy, sleep=self._sleep)
        if not result.succeeded or result.sample is None:
            return result

        try:
            await asyncio.to_thread(self.repository.save_sample, result.sample)
        except Exception as e:
            log.error("[%s] Extracted sample could not be saved: %s", extractor.source_id, e)
            return dataclasses.replace(result, persistence_error=str(e) or type(e).__name__)
        log.debug("[%s] Sample saved", extractor.source_id)
        return result

    async def _write_batch_log(self, batch: BatchResult) -> None:
        entry = BatchLogEntry.from_batch(batch)
        try:
            await asyncio.to_thread(self.repository.save_batch_log, entry)
        except Exception as e:
            log.error("Failed to write batch log %s: %s", entry.job_id, e)
