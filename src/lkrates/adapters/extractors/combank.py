# src/lkrates/adapters/extractors/combank.py
"""
Commercial Bank of Ceylon Extractor (browser)

Files that USE this module:
- lkrates.adapters.extractors.registry (registers CommercialBankExtractor as "combank")

Files that this module USES:
- lkrates.adapters.extractors.browser (DynamicTableExtractor base class)
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from lkrates.adapters.extractors.browser import DynamicTableExtractor
from lkrates.domain.validation import MAX_RATE, MIN_RATE, to_decimal

_WHOLE_NUMBER_CELL = re.compile(r"^\d+(?:\.\d+)?$")


class CommercialBankExtractor(DynamicTableExtractor):
    """
    Extractor for combank.lk rates & tariff page.

    The USD row has six rate columns:
        [0] currency buying   [1] currency selling
        [2] cheques buying    [3] cheques selling
        [4] telegraphic buying [5] telegraphic selling
    Rows with only two numeric cells are read as currency buying/selling.
    """

    source_id = "combank"
    display_name = "Commercial Bank of Ceylon"

    row_keywords = ("usd", "us dollar", "united states")

    def cell_tokens(self, cells: Sequence[str]) -> List[Decimal]:
        # Only cells that are a bare number; text cells like "USD 1" are skipped
        tokens: List[Decimal] = []
        for cell in cells:
            clean = cell.replace(",", "").strip()
            if not _WHOLE_NUMBER_CELL.match(clean):
                continue
            value = to_decimal(clean)
            if value is not None and MIN_RATE <= value <= MAX_RATE:
                tokens.append(value)
        return tokens

    def assign_roles(self, tokens: Sequence[Decimal]) -> Optional[Dict[str, Decimal]]:
        if len(tokens) >= 6:
            return {
                "buying_rate": tokens[0],
                "selling_rate": tokens[1],
                "telegraphic_buying_rate": tokens[4],
            }
        if len(tokens) >= 2:
            return {"buying_rate": tokens[0], "selling_rate": tokens[1]}
        return None
