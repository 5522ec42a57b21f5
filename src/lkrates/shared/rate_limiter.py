# src/lkrates/shared/rate_limiter.py
"""
Rate Limiter - Admission Gate for Scrape Triggers

This module implements the sliding-window admission gate that decides whether
an external trigger may start a scrape. The window bookkeeping (prune, count,
conditional insert) is delegated to a WindowStore so it can live in a shared
store (Redis) when several processes accept triggers, or in memory for a
single process.

When the store cannot be reached the gate fails open: scraping is low-risk,
so availability wins over strict quota enforcement.

Files that USE this module:
- lkrates.application.trigger_service (check_limit / get_status around each trigger)
- lkrates.app (builds the gate with the configured store)
- lkrates.adapters.persistence.redis_store (implements WindowStore)

Files that this module USES:
- lkrates.domain.models (AdmissionState, WindowSnapshot, RateLimitResult, QuotaStatus)
- lkrates.domain.errors (StoreUnavailableError, AdmissionDenied)
"""
from __future__ import annotations

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from lkrates.domain.errors import AdmissionDenied, StoreUnavailableError
from lkrates.domain.models import AdmissionState, QuotaStatus, RateLimitResult, WindowSnapshot

log = logging.getLogger(__name__)

# Errors treated as a store outage; raw socket errors from third-party stores included
_STORE_OUTAGES = (StoreUnavailableError, OSError, asyncio.TimeoutError)


@dataclass(frozen=True)
class RateLimitConfig:
    """Configuration for rate limiting."""
    max_requests: int
    window_ms: int
    key_prefix: str = "scraping_api:"


class WindowStore(Protocol):
    """
    Storage for per-key sliding windows. Each method is atomic per key.

    Implementations should raise StoreUnavailableError when the backend is
    unreachable; the gate also treats OSError and timeouts as an outage.
    """

    async def admit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> WindowSnapshot:
        """Prune, count and insert now_ms if count < max_requests."""
        ...

    async def peek(self, key: str, now_ms: int, window_ms: int) -> WindowSnapshot:
        """Prune and count without inserting."""
        ...

    async def clear(self, key: str) -> None:
        ...


class InMemoryWindowStore:
    """
    Single-process window store.

    Suitable for development and tests; it does not coordinate across
    processes, so use RedisWindowStore when more than one worker accepts triggers.
    """

    def __init__(self):
        self._states: Dict[str, AdmissionState] = {}
        self._lock = asyncio.Lock()

    def _state(self, key: str, window_ms: int, max_requests: int) -> AdmissionState:
        state = self._states.get(key)
        if state is None:
            state = AdmissionState(key=key, window_ms=window_ms, max_requests=max_requests)
            self._states[key] = state
        else:
            state.window_ms = window_ms
            state.max_requests = max_requests
        return state

    async def admit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> WindowSnapshot:
        async with self._lock:
            state = self._state(key, window_ms, max_requests)
            state.prune(now_ms)
            count = len(state.timestamps)
            admitted = count < max_requests
            if admitted:
                state.timestamps.append(now_ms)
            oldest = state.timestamps[0] if state.timestamps else None
            return WindowSnapshot(count=count, oldest_ms=oldest, admitted=admitted)

    async def peek(self, key: str, now_ms: int, window_ms: int) -> WindowSnapshot:
        async with self._lock:
            state = self._states.get(key)
            if state is None:
                return WindowSnapshot(count=0, oldest_ms=None)
            state.window_ms = window_ms
            state.prune(now_ms)
            oldest = state.timestamps[0] if state.timestamps else None
            return WindowSnapshot(count=len(state.timestamps), oldest_ms=oldest)

    async def clear(self, key: str) -> None:
        async with self._lock:
            self._states.pop(key, None)


class AdmissionGate:
    """Sliding-window admission gate with fail-open semantics."""

    def __init__(
        self,
        store: WindowStore,
        config: RateLimitConfig,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the gate.

        Args:
            store: Window store holding the admission instants
            config: Window length, limit and key prefix
            clock: Returns the current Unix time in seconds (injectable for tests)
        """
        self.store = store
        self.config = config
        self._clock = clock

    @property
    def limit(self) -> int:
        return self.config.max_requests

    def _key(self, identifier: str) -> str:
        return f"{self.config.key_prefix}{identifier}"

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _reset_time(self, oldest_ms: Optional[int], now_ms: int) -> int:
        anchor = oldest_ms if oldest_ms is not None else now_ms
        return math.ceil((anchor + self.config.window_ms) / 1000)

    async def check_limit(self, identifier: str) -> RateLimitResult:
        """
        Check if a request is allowed and record it when it is.

        Args:
            identifier: Logical key (e.g. "scraping_trigger")

        Returns:
            RateLimitResult; never raises for store outages (fails open)
        """
        now_ms = self._now_ms()
        key = self._key(identifier)
        try:
            snap = await self.store.admit(key, now_ms, self.config.window_ms, self.config.max_requests)
        except _STORE_OUTAGES as e:
            log.error("Rate limiter store unavailable for %s, failing open: %s", key, e)
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - 1),
                reset_time=self._reset_time(None, now_ms),
            )

        reset_time = self._reset_time(snap.oldest_ms, now_ms)
        if snap.admitted:
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - snap.count - 1),
                reset_time=reset_time,
            )

        oldest_ms = snap.oldest_ms if snap.oldest_ms is not None else now_ms
        retry_after_ms = oldest_ms + self.config.window_ms - now_ms
        retry_after = max(0, math.ceil(retry_after_ms / 1000))
        log.warning("Rate limit exceeded for %s (%d/%d in window), retry after %ds",
                    key, snap.count, self.limit, retry_after)
        return RateLimitResult(
            allowed=False,
            limit=self.limit,
            remaining=0,
            reset_time=reset_time,
            retry_after=retry_after,
        )

    async def get_status(self, identifier: str) -> QuotaStatus:
        """
        Report remaining quota without consuming it.

        Args:
            identifier: Logical key

        Returns:
            QuotaStatus; reports a full quota when the store is unreachable
        """
        now_ms = self._now_ms()
        key = self._key(identifier)
        try:
            snap = await self.store.peek(key, now_ms, self.config.window_ms)
        except _STORE_OUTAGES as e:
            log.error("Rate limiter store unavailable for status of %s: %s", key, e)
            return QuotaStatus(limit=self.limit, remaining=self.limit,
                               reset_time=self._reset_time(None, now_ms))
        return QuotaStatus(
            limit=self.limit,
            remaining=max(0, self.limit - snap.count),
            reset_time=self._reset_time(snap.oldest_ms, now_ms),
        )

    async def enforce(self, identifier: str) -> RateLimitResult:
        """
        Like check_limit, but raise when the request is rejected.

        Raises:
            AdmissionDenied: If the window is full
        """
        result = await self.check_limit(identifier)
        if not result.allowed:
            raise AdmissionDenied(result)
        return result

    async def reset(self, identifier: str) -> None:
        """Forget every admission recorded for identifier."""
        await self.store.clear(self._key(identifier))
