# src/lkrates/adapters/extractors/cbsl.py
"""
Central Bank of Sri Lanka Extractor (static HTML)

The CBSL home page is server-rendered and shows the day's TT buy/sell quotes
for USD/LKR in an "economy snapshot" block. Extraction reads the page text and
takes the first rate-shaped number after each anchor phrase.

Files that USE this module:
- lkrates.adapters.extractors.registry (registers CBSLExtractor as "cbsl")

Files that this module USES:
- lkrates.adapters.extractors.base (SourceExtractor base class)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

import logging  # Standard library for logging messages
import re  # Regular expressions for anchor phrases
from decimal import Decimal
from typing import Optional, Tuple

from bs4 import BeautifulSoup  # HTML parsing library for extracting data from web pages

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.domain.errors import ExtractionError
from lkrates.domain.models import ExchangeRateSample

log = logging.getLogger(__name__)

_RATE = r"(\d{2,3}\.\d{2,4})"
TT_BUY_PATTERN = re.compile(r"TT\s*Buy[\s\S]{0,50}?" + _RATE, re.I)
TT_SELL_PATTERN = re.compile(r"TT\s*Sell[\s\S]{0,50}?" + _RATE, re.I)
USD_LKR_SECTION_PATTERN = re.compile(
    r"Exchange\s+Rate\s+USD\s*/\s*LKR[\s\S]{0,300}?" + _RATE + r"[\s\S]{0,100}?" + _RATE, re.I
)
INDICATIVE_PATTERN = re.compile(r"Indicative\s+Rate[\s\S]{0,80}?" + _RATE, re.I)


class CBSLExtractor(SourceExtractor):
    """
    Extractor for cbsl.gov.lk.

    CBSL publishes TT buy/sell rather than cash rates; the TT buy quote is
    used for both the buying and telegraphic buying roles.
    """

    source_id = "cbsl"
    display_name = "Central Bank of Sri Lanka"

    @staticmethod
    def _page_text(html: str) -> str:
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        return soup.get_text(" ", strip=True)

    @staticmethod
    def _first(pattern: re.Pattern, text: str) -> Optional[Decimal]:
        """Parse the number after an anchor; bounds are left to _build_sample."""
        match = pattern.search(text)
        if not match:
            return None
        return SourceExtractor._parse_rate(match.group(1))

    def _parse_tt_rates(self, text: str) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """
        Find TT buy/sell, falling back to the "Exchange Rate USD/LKR" block.

        The fallback is only consulted when neither TT anchor is on the page.
        It lists the two quotes without labels; the lower one is taken as buy.
        """
        buy = self._first(TT_BUY_PATTERN, text)
        sell = self._first(TT_SELL_PATTERN, text)
        if buy is not None or sell is not None:
            return buy, sell

        match = USD_LKR_SECTION_PATTERN.search(text)
        if match:
            first = self._parse_rate(match.group(1))
            second = self._parse_rate(match.group(2))
            log.debug("[%s] Using USD/LKR section fallback: %s / %s", self.source_id, first, second)
            return min(first, second), max(first, second)
        return None, None

    def parse_html(self, html: str) -> ExchangeRateSample:
        """
        Parse the CBSL home page.

        Raises:
            ExtractionError: If no TT quote, fallback block or indicative rate is present
            ValidationError: If any quote found fails the domain rules
        """
        text = self._page_text(html)
        buy, sell = self._parse_tt_rates(text)
        indicative = self._first(INDICATIVE_PATTERN, text)
        if buy is None and sell is None and indicative is None:
            raise ExtractionError(
                f"TT Buy/Sell anchors not found on {self.url} ({len(text)} chars of text)", self.source_id
            )
        return self._build_sample(
            buying_rate=buy,
            selling_rate=sell,
            telegraphic_buying_rate=buy,
            indicative_rate=indicative,
        )

    async def attempt_extraction(self) -> ExchangeRateSample:
        html = await self._fetch_text()
        return self.parse_html(html)
