# tests/test_retry.py
"""
Retry Wrapper Tests - Attempt Counting, Backoff and Failure Folding

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- lkrates.application.retry (run_with_retry, RetryPolicy)
- lkrates.domain.errors (FetchError, ExtractionError)
- pytest (testing framework)
"""
import pytest

from lkrates.application.retry import RetryPolicy, run_with_retry
from lkrates.domain.errors import ExtractionError, FetchError


def _operation(outcomes):
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        outcome = outcomes[min(calls["n"], len(outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return op, calls


class TestRetryPolicy:
    def test_linear_delay(self):
        policy = RetryPolicy(max_attempts=3, base_delay_ms=2000)
        assert policy.delay_after(1) == 2.0
        assert policy.delay_after(2) == 4.0


class TestRunWithRetry:
    async def test_always_failing_reports_all_attempts(self, no_sleep):
        op, calls = _operation([FetchError("HTTP 503 from https://x", "ndb")])
        result = await run_with_retry("ndb", op, RetryPolicy(3, 1000), sleep=no_sleep)

        assert result.succeeded is False
        assert result.attempt_count == 3
        assert result.sample is None
        assert result.error_message == "HTTP 503 from https://x"
        assert calls["n"] == 3
        # No sleep after the last attempt
        assert no_sleep.calls == [1.0, 2.0]

    async def test_fails_twice_then_succeeds(self, no_sleep, make_sample):
        sample = make_sample()
        op, calls = _operation([FetchError("timeout"), ExtractionError("no table"), sample])
        result = await run_with_retry("combank", op, RetryPolicy(3, 2000), sleep=no_sleep)

        assert result.succeeded is True
        assert result.attempt_count == 3
        assert result.sample is sample
        assert result.error_message is None
        assert no_sleep.calls == [2.0, 4.0]

    async def test_first_success_stops(self, no_sleep, make_sample):
        op, calls = _operation([make_sample()])
        result = await run_with_retry("sampath", op, sleep=no_sleep)
        assert result.succeeded is True
        assert result.attempt_count == 1
        assert calls["n"] == 1
        assert no_sleep.calls == []

    async def test_invalid_sample_counts_as_failure(self, no_sleep, make_sample):
        op, _ = _operation([make_sample(buying_rate="50", selling_rate="52")])
        result = await run_with_retry("cbsl", op, RetryPolicy(3, 1000), sleep=no_sleep)
        assert result.succeeded is False
        assert result.attempt_count == 3
        assert "outside" in result.error_message

    async def test_last_error_is_kept(self, no_sleep):
        op, _ = _operation([FetchError("first"), ExtractionError("second"), FetchError("third")])
        result = await run_with_retry("ndb", op, sleep=no_sleep)
        assert result.error_message == "third"

    async def test_untyped_exception_is_contained(self, no_sleep):
        op, _ = _operation([RuntimeError("boom")])
        result = await run_with_retry("ndb", op, RetryPolicy(2, 10), sleep=no_sleep)
        assert result.succeeded is False
        assert result.attempt_count == 2
        assert result.error_message == "RuntimeError: boom"

    async def test_single_attempt_never_sleeps(self, no_sleep):
        op, _ = _operation([FetchError("down")])
        result = await run_with_retry("ndb", op, RetryPolicy(1, 5000), sleep=no_sleep)
        assert result.attempt_count == 1
        assert no_sleep.calls == []

    async def test_elapsed_is_measured(self, no_sleep, make_sample):
        op, _ = _operation([make_sample()])
        result = await run_with_retry("ndb", op, sleep=no_sleep)
        assert result.elapsed.total_seconds() >= 0
        assert result.elapsed_ms >= 0
