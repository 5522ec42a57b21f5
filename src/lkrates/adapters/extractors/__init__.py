# src/lkrates/adapters/extractors/__init__.py
"""
Source Extractors

One single-attempt extractor per bank source, plus the registry that maps
source ids to them.
"""

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.adapters.extractors.browser import BrowserOptions, BrowserSession, DynamicTableExtractor
from lkrates.adapters.extractors.cbsl import CBSLExtractor
from lkrates.adapters.extractors.combank import CommercialBankExtractor
from lkrates.adapters.extractors.ndb import NDBBankExtractor
from lkrates.adapters.extractors.registry import SourceRegistry, build_default_registry
from lkrates.adapters.extractors.sampath import SampathBankExtractor

__all__ = [
    "SourceExtractor",
    "BrowserOptions",
    "BrowserSession",
    "DynamicTableExtractor",
    "CBSLExtractor",
    "CommercialBankExtractor",
    "NDBBankExtractor",
    "SampathBankExtractor",
    "SourceRegistry",
    "build_default_registry",
]
