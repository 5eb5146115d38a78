"""Key-value cache store with Redis backend and in-memory fallback.

Values are stored as serialized text; the cache-aside accessor owns
(de)serialization. Every entry carries its own TTL.

Graceful degradation: if Redis is unavailable, uses a cachetools.TLRUCache
in-memory with per-entry expiry. With the fallback disabled, Redis failures
raise CacheStoreError instead.
"""

import fnmatch
import logging
import math
import time
from typing import Any, Callable, NamedTuple

from cachetools import TLRUCache
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class CacheStoreError(Exception):
    """Raised when no backend can serve a cache operation."""


class _MemoryEntry(NamedTuple):
    value: str
    expires_at: float


def _entry_expiry(key: str, entry: _MemoryEntry, now: float) -> float:
    return entry.expires_at


class CacheStore:
    """Async key-value store with Redis primary and in-memory fallback."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        fallback: bool = True,
        fallback_maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
        client: Any = None,
    ):
        self._redis_url = redis_url
        self._redis = client
        self._fallback_enabled = fallback
        self._timer = timer
        self._memory: TLRUCache = TLRUCache(
            maxsize=fallback_maxsize, ttu=_entry_expiry, timer=timer,
        )

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> bool:
        """Connect to Redis. Returns True on success."""
        try:
            import redis.asyncio as aioredis

            self._redis = aioredis.from_url(
                self._redis_url,
                decode_responses=True,
                socket_connect_timeout=3,
                socket_timeout=5,
            )
            await self._redis.ping()
            return True
        except (RedisError, OSError) as e:
            logger.warning("Redis connection failed — using in-memory fallback: %s", str(e)[:100])
            self._redis = None
            return False

    async def disconnect(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def ping(self) -> bool:
        if not self._redis:
            return False
        try:
            return bool(await self._redis.ping())
        except (RedisError, OSError):
            return False

    def _degrade(self, op: str, key: str, error: Exception | None = None):
        """Log a Redis failure and decide whether the memory fallback may serve it."""
        if error is not None:
            logger.warning("Redis %s error | key=%s | %s", op, key[:60], str(error)[:100])
        if not self._fallback_enabled:
            reason = str(error)[:100] if error else "Redis not connected"
            raise CacheStoreError(f"cache {op} failed for {key[:60]}: {reason}")

    async def get(self, key: str) -> str | None:
        """Read raw value. Returns None on miss."""
        if self._redis:
            try:
                return await self._redis.get(key)
            except (RedisError, OSError) as e:
                self._degrade("GET", key, e)
        else:
            self._degrade("GET", key)

        entry = self._memory.get(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str, ttl: int) -> bool:
        """Write with TTL (seconds). A rewrite replaces value and TTL."""
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        written = False
        if self._redis:
            try:
                await self._redis.setex(key, ttl, value)
                written = True
            except (RedisError, OSError) as e:
                self._degrade("SET", key, e)
        else:
            self._degrade("SET", key)

        # Always write to in-memory fallback too
        if self._fallback_enabled:
            self._memory[key] = _MemoryEntry(value, self._timer() + ttl)
            written = True
        return written

    async def delete(self, key: str) -> bool:
        """Delete one key. Returns True if it existed."""
        existed = False
        if self._redis:
            try:
                existed = bool(await self._redis.delete(key))
            except (RedisError, OSError) as e:
                self._degrade("DEL", key, e)
        else:
            self._degrade("DEL", key)

        if self._memory.pop(key, None) is not None:
            existed = True
        return existed

    async def ttl(self, key: str) -> int | None:
        """Remaining TTL in seconds; None if absent, -1 if the key never expires."""
        if self._redis:
            try:
                remaining = await self._redis.ttl(key)
                if remaining == -2:
                    return None
                return remaining
            except (RedisError, OSError) as e:
                self._degrade("TTL", key, e)
        else:
            self._degrade("TTL", key)

        entry = self._memory.get(key)
        if entry is None:
            return None
        return max(0, math.ceil(entry.expires_at - self._timer()))

    def _memory_keys(self, pattern: str) -> list[str]:
        self._memory.expire()
        return [k for k in list(self._memory.keys()) if k in self._memory and fnmatch.fnmatchcase(k, pattern)]

    async def _scan(self, pattern: str) -> list[str]:
        keys = []
        async for key in self._redis.scan_iter(match=pattern, count=100):
            keys.append(key)
        return keys

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern. Returns number deleted."""
        deleted = 0
        redis_ok = False
        if self._redis:
            try:
                keys = await self._scan(pattern)
                if keys:
                    deleted = await self._redis.delete(*keys)
                redis_ok = True
            except (RedisError, OSError) as e:
                self._degrade("SCAN", pattern, e)
        else:
            self._degrade("SCAN", pattern)

        memory_keys = self._memory_keys(pattern)
        for key in memory_keys:
            self._memory.pop(key, None)
        if not redis_ok:
            deleted = len(memory_keys)

        logger.info("Cache invalidated %d keys matching '%s'", deleted, pattern)
        return deleted

    async def count(self, pattern: str) -> int:
        """Number of live keys matching a glob pattern."""
        if self._redis:
            try:
                return len(await self._scan(pattern))
            except (RedisError, OSError) as e:
                self._degrade("SCAN", pattern, e)
        else:
            self._degrade("SCAN", pattern)
        return len(self._memory_keys(pattern))
