# src/lkrates/adapters/extractors/base.py
"""
Base Source Extractor

This module provides the base class every bank extractor derives from. An
extractor makes exactly ONE attempt at reading the USD/LKR quote from its
source and either returns a valid ExchangeRateSample or raises a typed error:

- FetchError: transport failure, timeout or non-success status
- ExtractionError: content arrived but the expected pattern is missing
- ValidationError: numbers were found but fail the domain rules

Retrying is the caller's job (lkrates.application.retry).

Files that USE this module:
- lkrates.adapters.extractors.sampath (JSON API extractor)
- lkrates.adapters.extractors.cbsl (static HTML extractor)
- lkrates.adapters.extractors.browser (DynamicTableExtractor extends SourceExtractor)
- lkrates.adapters.extractors.registry (registry of SourceExtractor instances)

Files that this module USES:
- lkrates.domain.models (ExchangeRateSample)
- lkrates.domain.validation (sample_problems, to_decimal)
- lkrates.domain.errors (FetchError, ExtractionError, ValidationError)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import asyncio  # Run blocking HTTP calls off the event loop
import logging  # Standard library for logging messages
import re  # Regular expressions for numeric tokens
from abc import ABC, abstractmethod  # Abstract base classes for defining interfaces
from decimal import Decimal  # Exact decimal rates
from typing import Any, Optional  # Type hints

import requests  # HTTP library for making web requests

from lkrates.domain.errors import ExtractionError, FetchError, ValidationError
from lkrates.domain.models import ExchangeRateSample
from lkrates.domain.validation import sample_problems, to_decimal

log = logging.getLogger(__name__)  # Create logger for this module

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

# A rate-looking token: digits with optional thousands separators and decimals
_NUMBER_TOKEN = re.compile(r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?")


class SourceExtractor(ABC):
    """
    Base class for single-attempt rate extractors.

    Subclasses set source_id/display_name and implement attempt_extraction.
    """

    source_id: str = "unknown"
    display_name: str = "Unknown source"

    def __init__(
        self,
        url: str,
        timeout: int = 15,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Initialize base extractor.

        Args:
            url: URL to scrape
            timeout: Fetch/navigation timeout in seconds
            max_attempts: Attempts the retry wrapper should make for this source
            base_delay_ms: Linear backoff base for the retry wrapper
            user_agent: User-Agent header sent to the source
        """
        self.url = url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.user_agent = user_agent

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source_id={self.source_id!r}, url={self.url!r})"

    @abstractmethod
    async def attempt_extraction(self) -> ExchangeRateSample:
        """
        Make one attempt at reading the rate.

        Returns:
            A valid ExchangeRateSample

        Raises:
            FetchError, ExtractionError, ValidationError
        """
        raise NotImplementedError

    def _get(self, accept: str) -> requests.Response:
        headers = {"User-Agent": self.user_agent, "Accept": accept}
        try:
            log.info("[%s] Fetching %s", self.source_id, self.url)
            resp = requests.get(self.url, timeout=self.timeout, headers=headers)
            resp.raise_for_status()
            return resp
        except requests.exceptions.Timeout as e:
            raise FetchError(f"Timeout after {self.timeout}s for {self.url}", self.source_id) from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise FetchError(f"HTTP {status} from {self.url}", self.source_id) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request failed for {self.url}: {e}", self.source_id) from e

    async def _fetch_text(self) -> str:
        """
        Fetch the page body as text without blocking the event loop.

        Raises:
            FetchError: If the request fails, times out or returns a non-2xx status
        """
        resp = await asyncio.to_thread(self._get, "text/html,application/xhtml+xml")
        return resp.text

    async def _fetch_json(self) -> Any:
        """
        Fetch and decode a JSON response.

        Raises:
            FetchError: If the request fails
            ExtractionError: If the body is not valid JSON
        """
        resp = await asyncio.to_thread(self._get, "application/json")
        try:
            return resp.json()
        except ValueError as e:
            raise ExtractionError(f"Invalid JSON from {self.url}: {e}", self.source_id) from e

    @staticmethod
    def _parse_rate(text: Any) -> Optional[Decimal]:
        """
        Parse a single rate from text such as "297.50", "1,297.50" or " 304 ".

        Returns:
            Decimal or None if the text holds no number
        """
        if text is None:
            return None
        if isinstance(text, (int, float, Decimal)) and not isinstance(text, bool):
            return to_decimal(text)
        match = _NUMBER_TOKEN.search(str(text))
        if not match:
            return None
        return to_decimal(match.group(0))

    def _build_sample(
        self,
        buying_rate: Optional[Decimal] = None,
        selling_rate: Optional[Decimal] = None,
        telegraphic_buying_rate: Optional[Decimal] = None,
        indicative_rate: Optional[Decimal] = None,
    ) -> ExchangeRateSample:
        """
        Validate extracted rates and wrap them in a sample.

        Raises:
            ExtractionError: If no rate was extracted at all
            ValidationError: If any rate or the spread breaks the domain rules
        """
        rates = (buying_rate, selling_rate, telegraphic_buying_rate, indicative_rate)
        if all(r is None for r in rates):
            raise ExtractionError(f"No USD/LKR rates found at {self.url}", self.source_id)

        problems = sample_problems(*rates)
        if problems:
            log.error("[%s] Validation failed: %s", self.source_id, "; ".join(problems))
            raise ValidationError(
                f"Invalid rates from {self.source_id}: {'; '.join(problems)}", self.source_id
            )

        sample = ExchangeRateSample.create(
            source_id=self.source_id,
            buying_rate=buying_rate,
            selling_rate=selling_rate,
            telegraphic_buying_rate=telegraphic_buying_rate,
            indicative_rate=indicative_rate,
            source_url=self.url,
        )
        log.info(
            "[%s] Extracted buying=%s selling=%s telegraphic=%s indicative=%s",
            self.source_id, buying_rate, selling_rate, telegraphic_buying_rate, indicative_rate,
        )
        return sample
