"""
Revocation registry — tokens invalidated by logout before their natural expiry.

Entries only need to outlive the token they revoke; once the token's own
``exp`` has passed, expiry verification rejects it first.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

logger = logging.getLogger(__name__)

_REDIS_PREFIX = "rm:revoked:"


class RevocationRegistry(Protocol):
    async def revoke(self, token_id: str, ttl_seconds: int) -> None: ...

    async def is_revoked(self, token_id: str) -> bool: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class MemoryRevocationRegistry:
    """Process-local registry. Does not survive restarts or span instances."""

    def __init__(self, clock=time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def revoke(self, token_id: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        async with self._lock:
            self._purge_expired()
            self._entries[token_id] = self._clock() + ttl_seconds

    async def is_revoked(self, token_id: str) -> bool:
        async with self._lock:
            expires = self._entries.get(token_id)
            if expires is None:
                return False
            if expires <= self._clock():
                del self._entries[token_id]
                return False
            return True

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)

    def _purge_expired(self) -> None:
        now = self._clock()
        stale = [key for key, expires in self._entries.items() if expires <= now]
        for key in stale:
            del self._entries[key]

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()


class RedisRevocationRegistry:
    """Shared registry for multi-instance deployments; Redis expires the keys."""

    def __init__(self, client) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisRevocationRegistry":
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url))

    async def revoke(self, token_id: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        await self._client.set(f"{_REDIS_PREFIX}{token_id}", "1", ex=ttl_seconds)

    async def is_revoked(self, token_id: str) -> bool:
        return bool(await self._client.exists(f"{_REDIS_PREFIX}{token_id}"))

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


def build_revocation_registry(backend: str, redis_url: str) -> RevocationRegistry:
    if backend == "redis":
        logger.info("Revocation registry backed by Redis")
        return RedisRevocationRegistry.from_url(redis_url)
    return MemoryRevocationRegistry()
