# src/lkrates/application/__init__.py
"""
Application Layer - Business Logic Services

This package contains the retry wrapper, the scraping orchestrator and the
trigger endpoint logic.
"""

from lkrates.application.retry import RetryPolicy, run_with_retry
from lkrates.application.scraping_service import ScrapingService
from lkrates.application.trigger_service import TriggerRequest, TriggerResponse, TriggerService

__all__ = [
    "RetryPolicy",
    "run_with_retry",
    "ScrapingService",
    "TriggerRequest",
    "TriggerResponse",
    "TriggerService",
]
