"""
Rate limiting — per client address, per operation class.

Built on the async API of the ``limits`` package (the engine behind slowapi)
so counters can live in memory or in Redis without blocking the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
import weakref

from limits import RateLimitItem, parse
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string

logger = logging.getLogger(__name__)

REGISTER = "register"
LOGIN = "login"


class RateLimiter:
    """Fixed-window counters keyed by ``(operation, client address)``.

    ``check`` peeks without consuming quota; ``record`` counts one attempt
    and reports whether it still fits inside the window. When disabled
    every decision is "allow".

    ``serialize`` hands out one lock per key. Callers that check, do slow
    work, then record (failed logins) hold it for the whole sequence.
    """

    def __init__(
        self,
        rules: dict[str, str],
        storage_uri: str = "memory://",
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._items: dict[str, RateLimitItem] = {op: parse(limit) for op, limit in rules.items()}
        self._storage = _async_storage(storage_uri)
        self._limiter = FixedWindowRateLimiter(self._storage)
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def serialize(self, operation: str, client: str) -> asyncio.Lock:
        key = (operation, client)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def check(self, operation: str, client: str) -> bool:
        if not self.enabled:
            return True
        return await self._limiter.test(self._items[operation], operation, client)

    async def record(self, operation: str, client: str) -> bool:
        if not self.enabled:
            return True
        allowed = await self._limiter.hit(self._items[operation], operation, client)
        if not allowed:
            logger.warning("Rate limit exceeded for %s from %s", operation, client)
        return allowed

    async def retry_after(self, operation: str, client: str) -> int:
        """Seconds until the current window for this key resets."""
        stats = await self._limiter.get_window_stats(self._items[operation], operation, client)
        return max(1, math.ceil(stats.reset_time - time.time()))

    async def reset(self) -> None:
        await self._storage.reset()


def _async_storage(uri: str):
    if uri.startswith("redis"):
        # redis-py rather than coredis, same client library as the revocation registry
        return storage_from_string(f"async+{uri}", implementation="redispy")
    if not uri.startswith("async+"):
        uri = f"async+{uri}"
    return storage_from_string(uri)
