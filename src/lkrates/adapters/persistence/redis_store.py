# src/lkrates/adapters/persistence/redis_store.py
"""
Redis Window Store - Shared Sliding Window for the Admission Gate

Each logical key is a Redis sorted set whose members are admission instants
(scored by epoch milliseconds). Admission runs as an optimistic transaction:
WATCH the key, read the in-window members, then MULTI/EXEC the prune and the
conditional insert. A concurrent writer invalidates the WATCH and the whole
unit is retried, so no caller acts on a half-applied update.

Files that USE this module:
- lkrates.app (build_window_store picks this store when REDIS_URL is set)

Files that this module USES:
- lkrates.shared.rate_limiter (WindowStore protocol this class implements)
- lkrates.domain.models (WindowSnapshot)
- lkrates.domain.errors (StoreUnavailableError)
"""
from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from lkrates.domain.errors import StoreUnavailableError
from lkrates.domain.models import WindowSnapshot

log = logging.getLogger(__name__)

# Optimistic transaction retries before giving up on a hot key
MAX_WATCH_RETRIES = 16


def _oldest(members: List[Tuple[object, float]]) -> Optional[int]:
    return int(members[0][1]) if members else None


class RedisWindowStore:
    """Sorted-set window store shared by every process pointing at the same Redis."""

    def __init__(self, client: Redis):
        """
        Args:
            client: redis.asyncio client (decode_responses may be on or off)
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str, connect_timeout: float = 5.0) -> RedisWindowStore:
        client = Redis.from_url(
            url,
            socket_connect_timeout=connect_timeout,
            socket_timeout=connect_timeout,
        )
        return cls(client)

    async def admit(self, key: str, now_ms: int, window_ms: int, max_requests: int) -> WindowSnapshot:
        window_start = now_ms - window_ms
        member = f"{now_ms}-{uuid.uuid4().hex}"
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                for _ in range(MAX_WATCH_RETRIES):
                    try:
                        await pipe.watch(key)
                        members = await pipe.zrangebyscore(key, window_start, "+inf", withscores=True)
                        count = len(members)
                        admitted = count < max_requests

                        pipe.multi()
                        pipe.zremrangebyscore(key, "-inf", f"({window_start}")
                        if admitted:
                            pipe.zadd(key, {member: now_ms})
                        pipe.pexpire(key, window_ms)
                        await pipe.execute()

                        oldest = _oldest(members)
                        if admitted and oldest is None:
                            oldest = now_ms
                        return WindowSnapshot(count=count, oldest_ms=oldest, admitted=admitted)
                    except WatchError:
                        log.debug("Concurrent update on %s, retrying window transaction", key)
                        continue
        except RedisError as e:
            raise StoreUnavailableError(f"Redis error on {key}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Redis unreachable for {key}: {e}") from e
        raise StoreUnavailableError(f"Gave up on {key} after {MAX_WATCH_RETRIES} concurrent updates")

    async def peek(self, key: str, now_ms: int, window_ms: int) -> WindowSnapshot:
        window_start = now_ms - window_ms
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", f"({window_start}")
                pipe.zrangebyscore(key, window_start, "+inf", withscores=True)
                _, members = await pipe.execute()
        except RedisError as e:
            raise StoreUnavailableError(f"Redis error on {key}: {e}") from e
        except OSError as e:
            raise StoreUnavailableError(f"Redis unreachable for {key}: {e}") from e
        return WindowSnapshot(count=len(members), oldest_ms=_oldest(members))

    async def clear(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except (RedisError, OSError) as e:
            raise StoreUnavailableError(f"Redis error clearing {key}: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
