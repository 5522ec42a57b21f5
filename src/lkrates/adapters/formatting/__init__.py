# src/lkrates/adapters/formatting/__init__.py
"""Plain-text formatting of scrape results."""

from lkrates.adapters.formatting.formatter import (
    format_attempt_result,
    format_batch_summary,
    format_results,
    format_sample,
)

__all__ = ["format_attempt_result", "format_batch_summary", "format_results", "format_sample"]
