# src/lkrates/adapters/extractors/browser.py
"""
Browser Automation for JavaScript-rendered Rate Tables

Some banks render their rate tables client-side, so a plain HTTP fetch only
sees an empty shell. This module drives headless Chromium through Playwright:
navigate, wait for the network to go idle, let client-side rendering settle,
scroll to trigger lazy content, then scan every table row for the target
currency and hand the cell texts back to Python.

The browser is owned by a single extraction attempt: BrowserSession launches
it on entry and closes it on every exit path.

Files that USE this module:
- lkrates.adapters.extractors.combank (CommercialBankExtractor)
- lkrates.adapters.extractors.ndb (NDBBankExtractor)
- lkrates.adapters.extractors.registry (BrowserOptions from settings)

Files that this module USES:
- lkrates.adapters.extractors.base (SourceExtractor base class)
- playwright.async_api (Chromium automation)
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from playwright.async_api import Browser, Error as PlaywrightError, Page, Playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from lkrates.adapters.extractors.base import DEFAULT_USER_AGENT, SourceExtractor
from lkrates.domain.errors import ExtractionError, FetchError
from lkrates.domain.models import ExchangeRateSample

log = logging.getLogger(__name__)

DEFAULT_LAUNCH_ARGS = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
)

# Runs inside the page. Returns every table row whose text mentions one of
# the keywords and none of the excludes, with its trimmed cell texts.
ROW_SCAN_SCRIPT = r"""
({ keywords, excludes }) => {
    const rows = [];
    document.querySelectorAll('table').forEach((table, tableIndex) => {
        table.querySelectorAll('tr').forEach((row, rowIndex) => {
            const text = (row.textContent || '').replace(/\s+/g, ' ').trim();
            const lower = text.toLowerCase();
            if (!keywords.some((k) => lower.includes(k))) return;
            if (excludes.some((k) => lower.includes(k))) return;
            const cells = Array.from(row.querySelectorAll('td, th'))
                .map((cell) => (cell.textContent || '').trim());
            rows.push({ table: tableIndex, row: rowIndex, text, cells });
        });
    });
    return rows;
}
"""


@dataclass(frozen=True)
class BrowserOptions:
    """Chromium launch options shared by all browser-based extractors."""
    headless: bool = True
    executable_path: Optional[str] = None
    settle_ms: int = 2000
    launch_args: Tuple[str, ...] = DEFAULT_LAUNCH_ARGS


class BrowserSession:
    """
    Async context manager yielding a fresh page in a freshly launched browser.

    Usage:
        async with BrowserSession(options, user_agent, "ndb") as page:
            await page.goto(url)
    """

    def __init__(self, options: BrowserOptions, user_agent: str = DEFAULT_USER_AGENT, source_id: str = "unknown"):
        self.options = options
        self.user_agent = user_agent
        self.source_id = source_id
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    async def __aenter__(self) -> Page:
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.options.headless,
                executable_path=self.options.executable_path or None,
                args=list(self.options.launch_args),
            )
            context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": 1280, "height": 720},
                locale="en-US",
            )
            return await context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise FetchError(f"Browser launch failed: {e}", self.source_id) from e

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright; safe to call more than once."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                log.warning("[%s] Error closing browser: %s", self.source_id, e)
            self._browser = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                log.warning("[%s] Error stopping Playwright: %s", self.source_id, e)
            self._playwright = None


class DynamicTableExtractor(SourceExtractor):
    """
    Base class for sources whose rate table only exists after JavaScript runs.

    Subclasses describe how to recognize the currency row (row_keywords,
    row_excludes), how to pull rate tokens out of its cells (cell_tokens) and
    which token index maps to which rate role (assign_roles).
    """

    row_keywords: Tuple[str, ...] = ("usd",)
    row_excludes: Tuple[str, ...] = ()
    wait_for_selector: Optional[str] = "table"
    selector_timeout_ms: int = 10_000
    wait_until: str = "networkidle"

    def __init__(
        self,
        url: str,
        timeout: int = 30,
        max_attempts: int = 3,
        base_delay_ms: int = 1000,
        user_agent: str = DEFAULT_USER_AGENT,
        browser_options: Optional[BrowserOptions] = None,
    ):
        super().__init__(url, timeout, max_attempts, base_delay_ms, user_agent)
        self.browser_options = browser_options or BrowserOptions()

    @abstractmethod
    def cell_tokens(self, cells: Sequence[str]) -> List[Decimal]:
        """Rate-range numbers found in a row's cells, in column order."""
        raise NotImplementedError

    @abstractmethod
    def assign_roles(self, tokens: Sequence[Decimal]) -> Optional[Dict[str, Decimal]]:
        """Map tokens to sample fields by position, or None if the row is too short."""
        raise NotImplementedError

    def rates_from_rows(self, rows: Sequence[Dict[str, Any]]) -> Dict[str, Decimal]:
        """
        Pick the first candidate row whose tokens fill the source's layout.

        Raises:
            ExtractionError: If no row matches or none has enough tokens
        """
        if not rows:
            raise ExtractionError(
                f"No row mentioning {'/'.join(self.row_keywords)} in any table at {self.url}", self.source_id
            )
        for row in rows:
            tokens = self.cell_tokens(row.get("cells") or [])
            roles = self.assign_roles(tokens)
            if roles:
                log.debug("[%s] Row %s/%s tokens=%s", self.source_id, row.get("table"), row.get("row"), tokens)
                return roles
        raise ExtractionError(
            f"Found {len(rows)} candidate row(s) at {self.url} but none had enough rate columns "
            f"(first row: {rows[0].get('text', '')[:120]!r})",
            self.source_id,
        )

    async def _settle(self, page: Page) -> None:
        settle = self.browser_options.settle_ms / 1000
        if settle:
            await asyncio.sleep(settle)
        await page.evaluate("() => window.scrollTo(0, document.body.scrollHeight)")
        if settle:
            await asyncio.sleep(settle)
        await page.evaluate("() => window.scrollTo(0, 0)")

    async def _collect_rows(self) -> List[Dict[str, Any]]:
        """
        Load the page in a browser and return the candidate currency rows.

        Raises:
            FetchError: If the browser cannot launch or navigation fails/times out
            ExtractionError: If the table never appears or the in-page scan fails
        """
        async with BrowserSession(self.browser_options, self.user_agent, self.source_id) as page:
            log.info("[%s] Navigating to %s", self.source_id, self.url)
            try:
                await page.goto(self.url, wait_until=self.wait_until, timeout=self.timeout * 1000)
            except PlaywrightTimeoutError as e:
                raise FetchError(f"Navigation timeout after {self.timeout}s for {self.url}", self.source_id) from e
            except PlaywrightError as e:
                raise FetchError(f"Navigation failed for {self.url}: {e}", self.source_id) from e

            try:
                if self.wait_for_selector:
                    await page.wait_for_selector(self.wait_for_selector, timeout=self.selector_timeout_ms)
                await self._settle(page)
                rows = await page.evaluate(
                    ROW_SCAN_SCRIPT,
                    {"keywords": list(self.row_keywords), "excludes": list(self.row_excludes)},
                )
            except PlaywrightTimeoutError as e:
                raise ExtractionError(
                    f"'{self.wait_for_selector}' did not appear within {self.selector_timeout_ms}ms", self.source_id
                ) from e
            except PlaywrightError as e:
                raise ExtractionError(f"In-page row scan failed: {e}", self.source_id) from e
        return list(rows or [])

    async def attempt_extraction(self) -> ExchangeRateSample:
        rows = await self._collect_rows()
        log.debug("[%s] %d candidate row(s)", self.source_id, len(rows))
        return self._build_sample(**self.rates_from_rows(rows))
