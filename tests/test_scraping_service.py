# tests/test_scraping_service.py
"""
Scraping Service Tests - Concurrent Orchestration

This module tests scrape_one and scrape_all: partial success, result
ordering, batch completeness, persistence failures and catastrophic errors.

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- lkrates.application.scraping_service (ScrapingService)
- lkrates.adapters.extractors.registry (SourceRegistry)
- unittest.mock (patch for simulating a crash outside the retry wrapper)
- pytest (testing framework)
"""
import asyncio
from unittest.mock import patch

import pytest

from lkrates.adapters.extractors.registry import SourceRegistry
from lkrates.application.retry import run_with_retry
from lkrates.application.scraping_service import ScrapingService
from lkrates.domain.errors import FetchError, UnknownSourceError


def _registry(*extractors):
    registry = SourceRegistry()
    for extractor in extractors:
        registry.register(extractor)
    return registry


class TestScrapeAll:
    async def test_one_success_two_failures(self, stub_extractor, make_sample, repository, no_sleep):
        good = stub_extractor("combank", [make_sample("combank")])
        down = stub_extractor("ndb", [FetchError("Timeout after 15s", "ndb")])
        bogus = stub_extractor("sampath", [make_sample("sampath", buying_rate="50", selling_rate="52")])
        service = ScrapingService(_registry(good, down, bogus), repository, sleep=no_sleep)

        batch = await service.scrape_all()

        assert batch.total_sources == 3
        assert batch.succeeded_count == 1
        assert batch.failed_count == 2
        by_id = {r.source_id: r for r in batch.per_source_results}
        assert by_id["combank"].succeeded is True
        assert by_id["ndb"].attempt_count == 3
        assert by_id["ndb"].error_message == "Timeout after 15s"
        assert by_id["sampath"].succeeded is False
        assert down.calls == 3

        assert [s.source_id for s in repository.samples] == ["combank"]
        assert len(repository.batch_logs) == 1
        entry = repository.batch_logs[0]
        assert entry.status == "partial"
        assert entry.rates_found == 1
        assert entry.error_message == "2 sources failed"

    async def test_results_follow_registration_order(self, stub_extractor, make_sample, repository, no_sleep):
        slow = stub_extractor("combank", [make_sample("combank")], delay=0.05)
        fast = stub_extractor("ndb", [make_sample("ndb")])
        fastest = stub_extractor("cbsl", [make_sample("cbsl")])
        service = ScrapingService(_registry(slow, fast, fastest), repository, sleep=no_sleep)

        batch = await service.scrape_all()

        assert [r.source_id for r in batch.per_source_results] == ["combank", "ndb", "cbsl"]
        # Completion order differs from result order
        assert [s.source_id for s in repository.samples][-1] == "combank"

    async def test_sources_run_concurrently(self, stub_extractor, make_sample, repository, no_sleep):
        extractors = [stub_extractor(f"s{i}", [make_sample(f"s{i}")], delay=0.1) for i in range(5)]
        service = ScrapingService(_registry(*extractors), repository, sleep=no_sleep)

        loop = asyncio.get_running_loop()
        t0 = loop.time()
        await service.scrape_all()
        assert loop.time() - t0 < 0.4

    async def test_all_failing_still_complete(self, stub_extractor, repository, no_sleep):
        extractors = [stub_extractor(f"s{i}", [FetchError("down")]) for i in range(4)]
        service = ScrapingService(_registry(*extractors), repository, sleep=no_sleep)

        batch = await service.scrape_all()

        assert len(batch.per_source_results) == 4
        assert batch.succeeded_count + batch.failed_count == 4
        assert batch.succeeded_count == 0
        assert repository.batch_logs[0].status == "failed"

    async def test_batch_log_failure_is_not_raised(self, stub_extractor, make_sample, make_repository, no_sleep):
        repository = make_repository(fail_batch_log=True)
        service = ScrapingService(_registry(stub_extractor("cbsl", [make_sample("cbsl")])), repository, sleep=no_sleep)

        batch = await service.scrape_all()

        assert batch.succeeded_count == 1
        assert repository.samples

    async def test_catastrophic_error_becomes_unknown_result(self, stub_extractor, make_sample, repository, no_sleep):
        async def crash_for_ndb(source_id, operation, policy, sleep):
            if source_id == "ndb":
                raise RuntimeError("extractor vanished")
            return await run_with_retry(source_id, operation, policy, sleep=sleep)

        service = ScrapingService(
            _registry(stub_extractor("combank", [make_sample("combank")]),
                      stub_extractor("ndb", [make_sample("ndb")])),
            repository,
            sleep=no_sleep,
        )
        with patch("lkrates.application.scraping_service.run_with_retry", side_effect=crash_for_ndb):
            batch = await service.scrape_all()

        assert batch.total_sources == 2
        assert batch.per_source_results[0].source_id == "combank"
        failed = batch.per_source_results[1]
        assert failed.source_id == "unknown"
        assert failed.succeeded is False
        assert "ndb" in failed.error_message
        assert "extractor vanished" in failed.error_message
        assert len(repository.batch_logs) == 1


class TestScrapeOne:
    async def test_persists_successful_sample(self, stub_extractor, make_sample, repository, no_sleep):
        service = ScrapingService(_registry(stub_extractor("sampath", [make_sample("sampath")])),
                                  repository, sleep=no_sleep)
        result = await service.scrape_one("sampath")
        assert result.succeeded is True
        assert result.persistence_error is None
        assert repository.samples == [result.sample]
        # scrape_one writes no batch log
        assert repository.batch_logs == []

    async def test_unknown_source_raises(self, repository):
        service = ScrapingService(SourceRegistry(), repository)
        with pytest.raises(UnknownSourceError) as exc_info:
            await service.scrape_one("hnb")
        assert exc_info.value.source_id == "hnb"

    async def test_persistence_failure_keeps_success(self, stub_extractor, make_sample, make_repository, no_sleep):
        repository = make_repository(fail_samples=True)
        service = ScrapingService(_registry(stub_extractor("cbsl", [make_sample("cbsl")])),
                                  repository, sleep=no_sleep)

        result = await service.scrape_one("cbsl")

        assert result.succeeded is True
        assert result.sample is not None
        assert result.persistence_error == "disk full"

    async def test_failed_extraction_is_not_persisted(self, stub_extractor, repository, no_sleep):
        service = ScrapingService(_registry(stub_extractor("ndb", [FetchError("down")], max_attempts=2)),
                                  repository, sleep=no_sleep)
        result = await service.scrape_one("ndb")
        assert result.succeeded is False
        assert result.attempt_count == 2
        assert repository.samples == []

    async def test_uses_extractor_backoff(self, stub_extractor, repository, no_sleep):
        extractor = stub_extractor("combank", [FetchError("down")], base_delay_ms=2000)
        service = ScrapingService(_registry(extractor), repository, sleep=no_sleep)
        await service.scrape_one("combank")
        assert no_sleep.calls == [2.0, 4.0]

    def test_available_sources(self, stub_extractor, repository, make_sample):
        service = ScrapingService(
            _registry(stub_extractor("ndb", [make_sample()]), stub_extractor("cbsl", [make_sample()])),
            repository,
        )
        assert service.available_sources() == ["ndb", "cbsl"]
        assert service.has_source("cbsl")
        assert not service.has_source("hnb")
