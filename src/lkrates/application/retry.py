# src/lkrates/application/retry.py
"""
Retry Wrapper - Bounded Retries Around One Extraction

run_with_retry turns a single-attempt extraction into a uniform
ExtractionAttemptResult. It never raises: every attempt failure is logged
and folded into the result, and only the last failure's message is kept.

Backoff is linear and deterministic: the delay before retry n is
n * base_delay_ms, and there is no delay after the final attempt.

Files that USE this module:
- lkrates.application.scraping_service (wraps every extractor call)

Files that this module USES:
- lkrates.domain.models (ExchangeRateSample, ExtractionAttemptResult)
- lkrates.domain.validation (validate_sample re-checks every returned sample)
- lkrates.domain.errors (ScrapeError)
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from lkrates.domain.errors import ScrapeError
from lkrates.domain.models import ExchangeRateSample, ExtractionAttemptResult
from lkrates.domain.validation import validate_sample

log = logging.getLogger(__name__)

ExtractionOperation = Callable[[], Awaitable[ExchangeRateSample]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt limit and linear backoff base for one source."""
    max_attempts: int = 3
    base_delay_ms: int = 1000

    def delay_after(self, attempt_number: int) -> float:
        """Seconds to wait after failed attempt number attempt_number (1-based)."""
        return attempt_number * self.base_delay_ms / 1000


def _describe(exc: BaseException) -> str:
    if isinstance(exc, ScrapeError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


async def run_with_retry(
    source_id: str,
    operation: ExtractionOperation,
    policy: Optional[RetryPolicy] = None,
    sleep: Sleep = asyncio.sleep,
) -> ExtractionAttemptResult:
    """
    Run operation until it yields a valid sample or attempts run out.

    Args:
        source_id: Source id recorded on the result and in log lines
        operation: Zero-argument coroutine function making one attempt
        policy: Attempt limit and backoff base (defaults to 3 x 1000ms)
        sleep: Awaitable sleep, injectable so tests do not wait

    Returns:
        ExtractionAttemptResult with attempt_count equal to the attempts made
    """
    policy = policy or RetryPolicy()
    max_attempts = max(1, policy.max_attempts)
    started = time.monotonic()
    last_error = "no attempt made"

    for attempt in range(1, max_attempts + 1):
        try:
            sample = await operation()
            validate_sample(sample)
        except Exception as e:
            last_error = _describe(e)
            log.warning("[%s] Attempt %d/%d failed: %s", source_id, attempt, max_attempts, last_error)
            if attempt < max_attempts:
                delay = policy.delay_after(attempt)
                log.debug("[%s] Retrying in %.1fs", source_id, delay)
                await sleep(delay)
            continue

        elapsed = timedelta(seconds=time.monotonic() - started)
        log.info("[%s] Succeeded on attempt %d/%d", source_id, attempt, max_attempts)
        return ExtractionAttemptResult(
            source_id=source_id,
            succeeded=True,
            attempt_count=attempt,
            elapsed=elapsed,
            sample=sample,
        )

    elapsed = timedelta(seconds=time.monotonic() - started)
    log.error("[%s] All %d attempts failed, last error: %s", source_id, max_attempts, last_error)
    return ExtractionAttemptResult(
        source_id=source_id,
        succeeded=False,
        attempt_count=max_attempts,
        elapsed=elapsed,
        error_message=last_error,
    )
