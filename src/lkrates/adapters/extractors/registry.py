# src/lkrates/adapters/extractors/registry.py
"""
Source Registry - Ordered Map of Source Id to Extractor

Adding a source means registering another SourceExtractor here; nothing
downstream branches on source id strings. Iteration order is registration
order, which is also the order of per-source results in a batch.

Files that USE this module:
- lkrates.application.scraping_service (looks up and iterates extractors)
- lkrates.app (build_default_registry from settings)

Files that this module USES:
- lkrates.adapters.extractors.* (concrete extractors)
- lkrates.config.settings (Settings type for per-source configuration)
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Iterator, List, Type

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.adapters.extractors.browser import BrowserOptions, DynamicTableExtractor
from lkrates.adapters.extractors.cbsl import CBSLExtractor
from lkrates.adapters.extractors.combank import CommercialBankExtractor
from lkrates.adapters.extractors.ndb import NDBBankExtractor
from lkrates.adapters.extractors.sampath import SampathBankExtractor
from lkrates.domain.errors import UnknownSourceError

if TYPE_CHECKING:
    from lkrates.config.settings import Settings

log = logging.getLogger(__name__)

EXTRACTOR_CLASSES: Dict[str, Type[SourceExtractor]] = {
    cls.source_id: cls
    for cls in (CommercialBankExtractor, NDBBankExtractor, SampathBankExtractor, CBSLExtractor)
}


class SourceRegistry:
    """Insertion-ordered registry of extractors keyed by source id."""

    def __init__(self):
        self._extractors: Dict[str, SourceExtractor] = {}

    def register(self, extractor: SourceExtractor) -> None:
        """
        Add an extractor under its source_id.

        Raises:
            ValueError: If the id is already registered
        """
        if extractor.source_id in self._extractors:
            raise ValueError(f"Source already registered: {extractor.source_id}")
        self._extractors[extractor.source_id] = extractor
        log.debug("Registered source %s (%s)", extractor.source_id, type(extractor).__name__)

    def get(self, source_id: str) -> SourceExtractor:
        """
        Raises:
            UnknownSourceError: If source_id is not registered
        """
        try:
            return self._extractors[source_id]
        except KeyError:
            raise UnknownSourceError(source_id) from None

    @property
    def source_ids(self) -> List[str]:
        return list(self._extractors)

    def __iter__(self) -> Iterator[SourceExtractor]:
        return iter(list(self._extractors.values()))

    def __len__(self) -> int:
        return len(self._extractors)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._extractors


def build_default_registry(settings: "Settings") -> SourceRegistry:
    """
    Build the registry for every enabled source using settings.

    Each source reads <id>_url, <id>_timeout_seconds, <id>_max_attempts and
    <id>_base_delay_ms; browser sources also get the shared BrowserOptions.
    An unset per-source timeout falls back to http_timeout_seconds.
    """
    browser_options = BrowserOptions(
        headless=settings.browser_headless,
        executable_path=settings.chrome_executable_path,
        settle_ms=settings.browser_settle_ms,
    )
    registry = SourceRegistry()
    for source_id in settings.enabled_source_ids:
        cls = EXTRACTOR_CLASSES[source_id]
        timeout = getattr(settings, f"{source_id}_timeout_seconds")
        kwargs = dict(
            url=getattr(settings, f"{source_id}_url"),
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            max_attempts=getattr(settings, f"{source_id}_max_attempts"),
            base_delay_ms=getattr(settings, f"{source_id}_base_delay_ms"),
            user_agent=settings.user_agent,
        )
        if issubclass(cls, DynamicTableExtractor):
            kwargs["browser_options"] = browser_options
        registry.register(cls(**kwargs))
    log.info("Source registry: %s", ", ".join(registry.source_ids))
    return registry
