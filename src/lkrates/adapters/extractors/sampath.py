# src/lkrates/adapters/extractors/sampath.py
"""
Sampath Bank Extractor (JSON API)

The Sampath Bank rates page is rendered from a JSON endpoint, so this
extractor skips the browser and reads the endpoint directly.

Files that USE this module:
- lkrates.adapters.extractors.registry (registers SampathBankExtractor as "sampath")

Files that this module USES:
- lkrates.adapters.extractors.base (SourceExtractor base class)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from lkrates.adapters.extractors.base import SourceExtractor
from lkrates.domain.errors import ExtractionError
from lkrates.domain.models import ExchangeRateSample

log = logging.getLogger(__name__)


class SampathBankExtractor(SourceExtractor):
    """
    Extractor for the sampath.lk exchange rate endpoint.

    Observed response layout:
        {"success": true,
         "data": [{"CurrCode": "USD", "CurrName": "U.S. Dollar",
                   "TTBUY": "297.50", "ODBUY": "295.8699", "TTSEL": "304.00"}, ...]}

    The page publishes T/T buying, O/D (on-demand draft) buying and T/T
    selling; T/T buying fills both the buying and telegraphic buying roles,
    T/T selling is the selling rate and O/D buying is not stored.
    """

    source_id = "sampath"
    display_name = "Sampath Bank"

    currency_code = "USD"
    code_field = "CurrCode"
    field_roles = {
        "buying_rate": "TTBUY",
        "selling_rate": "TTSEL",
        "telegraphic_buying_rate": "TTBUY",
    }

    def _records(self, payload: Any) -> List[Dict[str, Any]]:
        if isinstance(payload, dict):
            payload = payload.get("data", payload.get("rates"))
        if not isinstance(payload, list):
            raise ExtractionError(
                f"Unexpected response shape from {self.url}: {type(payload).__name__}", self.source_id
            )
        return [r for r in payload if isinstance(r, dict)]

    def _find_record(self, records: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        for record in records:
            code = str(record.get(self.code_field, "")).strip().upper()
            if code == self.currency_code:
                return record
        return None

    async def attempt_extraction(self) -> ExchangeRateSample:
        payload = await self._fetch_json()
        records = self._records(payload)
        record = self._find_record(records)
        if record is None:
            raise ExtractionError(
                f"No {self.currency_code} record among {len(records)} rates at {self.url}", self.source_id
            )

        rates = {role: self._parse_rate(record.get(field)) for role, field in self.field_roles.items()}
        missing = [self.field_roles[role] for role, value in rates.items() if value is None]
        if missing:
            raise ExtractionError(
                f"{self.currency_code} record missing {', '.join(sorted(set(missing)))}", self.source_id
            )
        return self._build_sample(**rates)
