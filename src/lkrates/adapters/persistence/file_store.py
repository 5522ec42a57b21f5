# src/lkrates/adapters/persistence/file_store.py
"""
File Store - JSON-lines Persistence for Rate Samples and Batch Logs

This module stores exchange rate samples and batch summaries as append-only
JSON-lines files. Appends are serialized with a lock so concurrent sources
never interleave partial lines; nothing is ever rewritten in place, so
corrections are new samples, not updates.

Files that USE this module:
- lkrates.app (default repository for the scraping service)
- tests.test_file_store (unit tests)

Files that this module USES:
- lkrates.domain.models (ExchangeRateSample, BatchLogEntry)
- lkrates.domain.errors (PersistenceError)
"""
from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from lkrates.domain.errors import PersistenceError
from lkrates.domain.models import BatchLogEntry, ExchangeRateSample

log = logging.getLogger(__name__)

SAMPLES_FILE = "exchange_rates.jsonl"
BATCH_LOG_FILE = "scrape_logs.jsonl"


class JsonlRateStore:
    """RateRepository backed by two JSON-lines files in a data directory."""

    def __init__(self, data_dir: Union[str, Path]):
        """
        Args:
            data_dir: Directory for the data files (created on first write)
        """
        self.data_dir = Path(data_dir)
        self.samples_path = self.data_dir / SAMPLES_FILE
        self.batch_log_path = self.data_dir / BATCH_LOG_FILE
        self._lock = threading.Lock()

    def _append(self, path: Path, record: Dict[str, Any]) -> None:
        try:
            line = json.dumps(record, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to serialize record for {path.name}: {e}") from e

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    f.flush()
                    os.fsync(f.fileno())  # Ensure data is written to disk
            except OSError as e:
                raise PersistenceError(f"Failed to write {path}: {e}") from e

    def save_sample(self, sample: ExchangeRateSample) -> None:
        """
        Append one sample.

        Raises:
            PersistenceError: If the record cannot be serialized or written
        """
        self._append(self.samples_path, sample.to_json())
        log.debug("Saved sample for %s to %s", sample.source_id, self.samples_path)

    def save_batch_log(self, entry: BatchLogEntry) -> None:
        """
        Append one batch summary.

        Raises:
            PersistenceError: If the record cannot be serialized or written
        """
        self._append(self.batch_log_path, entry.to_json())

    def _read_lines(self, path: Path) -> Iterator[Dict[str, Any]]:
        if not path.exists():
            return
        with path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError as e:
                    log.warning("Skipping corrupt line %d in %s: %s", lineno, path, e)

    def load_samples(self, source_id: Optional[str] = None, include_invalid: bool = False) -> List[ExchangeRateSample]:
        """
        Read stored samples in insertion order.

        Args:
            source_id: Only return samples from this source
            include_invalid: Also return samples flagged invalid (excluded by default)

        Returns:
            List of ExchangeRateSample
        """
        samples: List[ExchangeRateSample] = []
        for data in self._read_lines(self.samples_path):
            try:
                sample = ExchangeRateSample.from_json(data)
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                log.warning("Skipping malformed sample record: %s", e)
                continue
            if source_id and sample.source_id != source_id:
                continue
            if not include_invalid and not sample.is_valid:
                continue
            samples.append(sample)
        return samples

    def load_batch_logs(self) -> List[Dict[str, Any]]:
        """Read stored batch summaries as dictionaries, oldest first."""
        return list(self._read_lines(self.batch_log_path))
