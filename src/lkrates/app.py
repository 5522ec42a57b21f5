# src/lkrates/app.py
"""
Application Entry Point - Composition Root and CLI

This module wires the registry, repository, admission gate, scraping service
and trigger service from settings, and provides the `lkrates` command that
runs one scrape from the command line.

Files that USE this module:
- pyproject.toml (console script lkrates = lkrates.app:main)
- An HTTP layer embedding the trigger endpoint (build_application)

Files that this module USES:
- lkrates.shared.logging_conf (setup_logging for logging configuration)
- lkrates.config (settings for configuration management)
- lkrates.adapters.extractors.registry (build_default_registry)
- lkrates.adapters.persistence (JsonlRateStore, RedisWindowStore)
- lkrates.application (ScrapingService, TriggerService)
- lkrates.adapters.formatting (format_batch_summary, format_results)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import argparse  # Command-line argument parsing
import asyncio  # Event loop for the async services
import logging  # Standard library for logging messages and errors
import sys  # System-specific parameters and functions for exit codes
from dataclasses import dataclass  # Container for the wired services
from typing import TYPE_CHECKING, List, Optional, Sequence

from lkrates.adapters.extractors.registry import SourceRegistry, build_default_registry
from lkrates.adapters.formatting.formatter import format_batch_summary, format_results
from lkrates.adapters.persistence.file_store import JsonlRateStore
from lkrates.adapters.persistence.redis_store import RedisWindowStore
from lkrates.application.scraping_service import ScrapingService
from lkrates.application.trigger_service import TriggerService
from lkrates.shared.logging_conf import setup_logging  # Configure logging with file rotation
from lkrates.shared.rate_limiter import AdmissionGate, InMemoryWindowStore, RateLimitConfig, WindowStore
from lkrates.shared.validators import parse_source_list

if TYPE_CHECKING:
    from lkrates.config.settings import Settings

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ALL_FAILED = 1
EXIT_USAGE = 2


def build_window_store(settings: "Settings") -> WindowStore:
    """Redis-backed store when REDIS_URL is set, otherwise a single-process store."""
    if settings.uses_redis:
        log.info("Admission gate backed by Redis")
        return RedisWindowStore.from_url(settings.redis_url)
    log.info("REDIS_URL not set, admission gate uses the in-memory store (single process only)")
    return InMemoryWindowStore()


@dataclass
class Application:
    """Process-scoped services, created once at startup and closed at shutdown."""
    registry: SourceRegistry
    repository: JsonlRateStore
    window_store: WindowStore
    gate: AdmissionGate
    service: ScrapingService
    trigger: TriggerService

    async def aclose(self) -> None:
        """Finish background scrapes, then release the window store connection."""
        await self.trigger.drain()
        close = getattr(self.window_store, "close", None)
        if close is not None:
            await close()


def build_application(settings: "Settings", window_store: Optional[WindowStore] = None) -> Application:
    """
    Wire every service from settings.

    Args:
        settings: Loaded Settings
        window_store: Override the admission gate store (tests pass an in-memory one)

    Returns:
        Application holding the wired services
    """
    registry = build_default_registry(settings)
    repository = JsonlRateStore(settings.data_dir)
    store = window_store if window_store is not None else build_window_store(settings)
    gate = AdmissionGate(
        store,
        RateLimitConfig(
            max_requests=settings.rate_limit_max_requests,
            window_ms=settings.rate_limit_window_ms,
            key_prefix=settings.rate_limit_key_prefix,
        ),
    )
    service = ScrapingService(registry, repository)
    trigger = TriggerService(gate, service, trigger_key=settings.trigger_key)
    return Application(
        registry=registry,
        repository=repository,
        window_store=store,
        gate=gate,
        service=service,
        trigger=trigger,
    )


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lkrates",
        description="Scrape USD/LKR exchange rates from Sri Lankan bank websites.",
    )
    parser.add_argument(
        "sources",
        nargs="*",
        metavar="SOURCE",
        help="Source ids to scrape (default: every enabled source)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL",
    )
    return parser.parse_args(argv)


async def run_cli(app: Application, sources: List[str]) -> int:
    """
    Run one scrape and print the summary.

    Returns:
        Process exit code: 0 if any source succeeded, 1 if all failed, 2 on unknown source
    """
    unknown = [s for s in sources if not app.service.has_source(s)]
    if unknown:
        print(
            f"Unknown source(s): {', '.join(unknown)}. "
            f"Available: {', '.join(app.service.available_sources())}",
            file=sys.stderr,
        )
        return EXIT_USAGE

    if sources:
        results = await asyncio.gather(*(app.service.scrape_one(s) for s in sources))
        print(format_results(results))
        succeeded = any(r.succeeded for r in results)
    else:
        batch = await app.service.scrape_all()
        print(format_batch_summary(batch))
        succeeded = batch.succeeded_count > 0
    return EXIT_OK if succeeded else EXIT_ALL_FAILED


async def _main_async(settings: "Settings", sources: List[str]) -> int:
    app = build_application(settings)
    try:
        return await run_cli(app, sources)
    finally:
        await app.aclose()


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Run a scrape from the command line.

    This function:
    1. Sets up logging from settings (or --log-level)
    2. Builds the application
    3. Scrapes the listed sources, or all enabled sources
    4. Prints the summary and exits with 0, 1 or 2
    """
    args = _parse_args(argv)

    # Import settings here so --help works even with a broken .env
    from lkrates.config import settings

    setup_logging(
        level=args.log_level or settings.log_level,
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
        log_to_stdout=settings.log_stdout,
    )

    sources = parse_source_list(",".join(args.sources))
    try:
        code = asyncio.run(_main_async(settings, sources))
    except KeyboardInterrupt:
        log.info("Scrape interrupted by user")
        code = EXIT_ALL_FAILED
    sys.exit(code)


if __name__ == "__main__":
    main()
