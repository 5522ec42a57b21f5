# src/lkrates/adapters/formatting/formatter.py
"""
Summary Formatter - Plain-text Rendering of Scrape Results

This module renders attempt and batch results as plain text for the CLI and
for log lines.

Files that USE this module:
- lkrates.app (prints the batch summary after a CLI run)
- tests.test_formatter (unit tests)

Files that this module USES:
- lkrates.domain.models (ExchangeRateSample, ExtractionAttemptResult, BatchResult)
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional

from lkrates.domain.models import BatchResult, ExchangeRateSample, ExtractionAttemptResult


def _fmt_rate(value: Optional[Decimal]) -> str:
    """Two decimal places, or N/A when the source does not publish the rate."""
    if value is None:
        return "N/A"
    return f"{value:.2f}"


def _fmt_elapsed(ms: int) -> str:
    """
    Format a duration for humans.

    Examples: 850 -> "850ms", 4210 -> "4.2s", 125000 -> "2m 5s"
    """
    if ms < 1000:
        return f"{ms}ms"
    seconds = ms / 1000
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def format_sample(sample: ExchangeRateSample) -> str:
    """
    One line per sample, e.g.
    "USD/LKR buy 297.50 | sell 304.00 | TT buy 297.50 | indicative N/A"
    """
    return (
        f"{sample.currency_pair} buy {_fmt_rate(sample.buying_rate)}"
        f" | sell {_fmt_rate(sample.selling_rate)}"
        f" | TT buy {_fmt_rate(sample.telegraphic_buying_rate)}"
        f" | indicative {_fmt_rate(sample.indicative_rate)}"
    )


def format_attempt_result(result: ExtractionAttemptResult) -> str:
    """
    Format one source's outcome as a single line.

    Args:
        result: Retry-wrapped extraction outcome

    Returns:
        "[OK] combank ..." or "[FAIL] ndb ..." with attempt count and timing
    """
    attempts = f"{result.attempt_count} attempt{'s' if result.attempt_count != 1 else ''}"
    timing = f"{attempts}, {_fmt_elapsed(result.elapsed_ms)}"
    if result.succeeded and result.sample is not None:
        line = f"[OK]   {result.source_id:<8} {format_sample(result.sample)} ({timing})"
        if result.persistence_error:
            line += f" [not saved: {result.persistence_error}]"
        return line
    return f"[FAIL] {result.source_id:<8} {result.error_message or 'unknown error'} ({timing})"


def format_results(results: Iterable[ExtractionAttemptResult]) -> str:
    return "\n".join(format_attempt_result(r) for r in results)


def format_batch_summary(batch: BatchResult) -> str:
    """
    Format a whole batch: a header line followed by one line per source.

    Args:
        batch: Result of ScrapingService.scrape_all

    Returns:
        Multi-line plain text
    """
    lines: List[str] = [
        f"Scrape at {batch.started_at.strftime('%Y-%m-%d %H:%M UTC')}: "
        f"{batch.succeeded_count}/{batch.total_sources} sources succeeded "
        f"in {_fmt_elapsed(batch.total_elapsed_ms)}"
    ]
    if batch.per_source_results:
        lines.append(format_results(batch.per_source_results))
    return "\n".join(lines)
