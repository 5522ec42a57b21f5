# src/lkrates/adapters/extractors/ndb.py
"""
NDB Bank Extractor (browser)

Files that USE this module:
- lkrates.adapters.extractors.registry (registers NDBBankExtractor as "ndb")

Files that this module USES:
- lkrates.adapters.extractors.browser (DynamicTableExtractor base class)
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from lkrates.adapters.extractors.browser import DynamicTableExtractor
from lkrates.domain.validation import MAX_RATE, MIN_RATE, to_decimal

_RATE_IN_CELL = re.compile(r"(\d{2,3}\.\d{2})")


class NDBBankExtractor(DynamicTableExtractor):
    """
    Extractor for ndbbank.com exchange rates.

    Table columns for the US Dollar row:
        [0] currency buying      [1] currency selling
        [2] demand draft buying  [3] demand draft selling
        [4] telegraphic buying   [5] telegraphic selling
    All six must be present; a shorter row means the layout changed.
    """

    source_id = "ndb"
    display_name = "NDB Bank"

    row_keywords = ("us dollar", "u.s. dollar", "usd")

    def cell_tokens(self, cells: Sequence[str]) -> List[Decimal]:
        tokens: List[Decimal] = []
        for cell in cells:
            match = _RATE_IN_CELL.search(cell)
            if not match:
                continue
            value = to_decimal(match.group(1))
            if value is not None and MIN_RATE <= value <= MAX_RATE:
                tokens.append(value)
        return tokens

    def assign_roles(self, tokens: Sequence[Decimal]) -> Optional[Dict[str, Decimal]]:
        if len(tokens) < 6:
            return None
        return {
            "buying_rate": tokens[0],
            "selling_rate": tokens[1],
            "telegraphic_buying_rate": tokens[4],
        }
