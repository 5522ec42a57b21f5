# tests/test_models.py
"""
Domain Model Tests - Samples, Results and Batch Summaries

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- lkrates.domain.models (ExchangeRateSample, ExtractionAttemptResult, BatchResult, BatchLogEntry, AdmissionState)
- pytest (testing framework)
"""
from collections import deque
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from lkrates.domain.models import (
    AdmissionState,
    BatchLogEntry,
    BatchResult,
    ExchangeRateSample,
    ExtractionAttemptResult,
    USD_LKR,
)


def _result(source_id, succeeded):
    return ExtractionAttemptResult(
        source_id=source_id,
        succeeded=succeeded,
        attempt_count=1 if succeeded else 3,
        elapsed=timedelta(milliseconds=250),
        error_message=None if succeeded else "HTTP 503",
    )


class TestExchangeRateSample:
    def test_create_valid(self, make_sample):
        sample = make_sample(telegraphic_buying_rate="297.50")
        assert sample.is_valid is True
        assert sample.currency_pair == USD_LKR
        assert sample.observed_at.tzinfo is not None
        assert sample.spread == Decimal("6.50")

    def test_create_invalid_is_still_constructed(self):
        sample = ExchangeRateSample.create(source_id="ndb")
        assert sample.is_valid is False
        assert sample.spread is None

    def test_marked_valid_without_rates_rejected(self):
        with pytest.raises(ValueError, match="no rate fields populated"):
            ExchangeRateSample(source_id="ndb", observed_at=datetime.now(timezone.utc), is_valid=True)

    def test_marked_valid_out_of_range_rejected(self):
        with pytest.raises(ValueError, match="outside"):
            ExchangeRateSample(
                source_id="ndb",
                observed_at=datetime.now(timezone.utc),
                is_valid=True,
                buying_rate=Decimal("650.00"),
                selling_rate=Decimal("655.00"),
            )

    def test_marked_invalid_may_hold_bad_rates(self):
        sample = ExchangeRateSample(
            source_id="ndb",
            observed_at=datetime.now(timezone.utc),
            is_valid=False,
            buying_rate=Decimal("650.00"),
        )
        assert sample.buying_rate == Decimal("650.00")

    def test_is_immutable(self, make_sample):
        sample = make_sample()
        with pytest.raises(Exception):
            sample.buying_rate = Decimal("1")

    def test_json_keeps_exact_decimals(self, make_sample):
        sample = make_sample(buying_rate="297.5000", indicative_rate="301.2345")
        data = sample.to_json()
        assert data["buying_rate"] == "297.5000"
        assert data["telegraphic_buying_rate"] is None

        restored = ExchangeRateSample.from_json(data)
        assert restored == sample

    def test_from_json_requires_source(self):
        with pytest.raises(KeyError):
            ExchangeRateSample.from_json({"observed_at": "2024-01-01T00:00:00+00:00", "is_valid": True})


class TestBatchResult:
    def test_counts(self):
        started = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)
        results = [_result("combank", True), _result("ndb", False), _result("sampath", False)]
        batch = BatchResult.from_results(started, results, timedelta(seconds=4.2))
        assert batch.total_sources == 3
        assert batch.succeeded_count == 1
        assert batch.failed_count == 2
        assert [r.source_id for r in batch.per_source_results] == ["combank", "ndb", "sampath"]
        assert batch.total_elapsed_ms == 4200

    def test_to_json(self):
        started = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)
        batch = BatchResult.from_results(started, [_result("cbsl", True)], timedelta(seconds=1))
        data = batch.to_json()
        assert data["succeeded_count"] == 1
        assert data["per_source_results"][0]["source_id"] == "cbsl"


class TestBatchLogEntry:
    started = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)

    def _entry(self, *outcomes):
        results = [_result(f"s{i}", ok) for i, ok in enumerate(outcomes)]
        return BatchLogEntry.from_batch(BatchResult.from_results(self.started, results, timedelta(seconds=2)))

    def test_success(self):
        entry = self._entry(True, True)
        assert entry.status == "success"
        assert entry.error_message is None
        assert entry.rates_found == 2

    def test_partial(self):
        entry = self._entry(True, False, False)
        assert entry.status == "partial"
        assert entry.error_message == "2 sources failed"

    def test_failed(self):
        assert self._entry(False, False).status == "failed"

    def test_job_id_uses_epoch_millis(self):
        entry = self._entry(True)
        assert entry.job_id == f"batch_{int(self.started.timestamp() * 1000)}"
        assert entry.execution_time_ms == 2000


class TestAdmissionState:
    def test_prune_drops_entries_before_window(self):
        state = AdmissionState(key="k", window_ms=1000, max_requests=5,
                               timestamps=deque([1000, 1500, 2100, 2900]))
        state.prune(now_ms=3000)
        assert list(state.timestamps) == [2100, 2900]

    def test_prune_keeps_entry_at_window_start(self):
        state = AdmissionState(key="k", window_ms=1000, max_requests=5, timestamps=deque([2000]))
        state.prune(now_ms=3000)
        assert list(state.timestamps) == [2000]
