# src/lkrates/adapters/persistence/__init__.py
"""
Persistence Adapters

Storage for rate samples and batch logs, plus the shared window store
backing the admission gate.
"""

from lkrates.adapters.persistence.base import RateRepository
from lkrates.adapters.persistence.file_store import JsonlRateStore
from lkrates.adapters.persistence.redis_store import RedisWindowStore

__all__ = ["RateRepository", "JsonlRateStore", "RedisWindowStore"]
