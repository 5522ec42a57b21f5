# tests/conftest.py
"""
Shared Test Fixtures

Stub extractors, an in-memory repository, a controllable clock and a
recording sleep used across the test modules.

Files that USE this module:
- pytest (fixtures are injected into tests by name)

Files that this module USES:
- lkrates.adapters.extractors.base (SourceExtractor for stub extractors)
- lkrates.domain.models (ExchangeRateSample)
- lkrates.domain.errors (PersistenceError)
"""
import asyncio
from decimal import Decimal
from typing import List

import pytest

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.domain.errors import PersistenceError
from lkrates.domain.models import BatchLogEntry, ExchangeRateSample


def _dec(value):
    return Decimal(str(value)) if value is not None else None


def build_sample(source_id="combank", buying_rate="297.50", selling_rate="304.00",
                 telegraphic_buying_rate=None, indicative_rate=None):
    return ExchangeRateSample.create(
        source_id=source_id,
        buying_rate=_dec(buying_rate),
        selling_rate=_dec(selling_rate),
        telegraphic_buying_rate=_dec(telegraphic_buying_rate),
        indicative_rate=_dec(indicative_rate),
        source_url=f"https://{source_id}.example/rates",
    )


class StubExtractor(SourceExtractor):
    """Extractor that replays a fixed list of outcomes (samples or exceptions)."""

    def __init__(self, source_id, outcomes, delay=0.0, max_attempts=3, base_delay_ms=1):
        super().__init__(url=f"https://{source_id}.example/rates",
                         max_attempts=max_attempts, base_delay_ms=base_delay_ms)
        self.source_id = source_id
        self._outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0

    async def attempt_extraction(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        outcome = self._outcomes[min(self.calls, len(self._outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class MemoryRepository:
    """RateRepository keeping everything in lists."""

    def __init__(self, fail_samples=False, fail_batch_log=False):
        self.samples: List[ExchangeRateSample] = []
        self.batch_logs: List[BatchLogEntry] = []
        self.fail_samples = fail_samples
        self.fail_batch_log = fail_batch_log

    def save_sample(self, sample):
        if self.fail_samples:
            raise PersistenceError("disk full")
        self.samples.append(sample)

    def save_batch_log(self, entry):
        if self.fail_batch_log:
            raise PersistenceError("disk full")
        self.batch_logs.append(entry)


class FakeClock:
    """Callable returning a Unix time in seconds that tests advance by hand."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays and returns at once."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def make_sample():
    return build_sample


@pytest.fixture
def stub_extractor():
    return StubExtractor


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def no_sleep():
    return RecordingSleep()


@pytest.fixture
def make_repository():
    return MemoryRepository
