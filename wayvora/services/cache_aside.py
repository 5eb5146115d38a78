"""Cache-aside accessor used by every upstream-fetch path.

Read path fails open: store errors and undecodable payloads are a miss.
Write path never raises: a failed cache write is logged and reported as False
so the request that produced the value still completes.

Empty or negative upstream results never pass the cacheability gate, so a
transient upstream gap cannot pin a false "no results" for a TTL window.
"""

import json
import logging
from typing import Any, Awaitable, Callable

from wayvora.services import cache_keys
from wayvora.services.cache import CacheStore, CacheStoreError
from wayvora.services.ttl_policy import TTLClass, TTLPolicy

logger = logging.getLogger(__name__)


def _has_elements(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("elements"))


def _non_empty_list(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _resolvable_place(value: Any) -> bool:
    return isinstance(value, dict) and "error" not in value and bool(value.get("display_name"))


def _non_blank_text(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return bool(value)


CACHEABLE: dict[TTLClass, Callable[[Any], bool]] = {
    TTLClass.POI: _has_elements,
    TTLClass.GEOCODING: lambda v: _non_empty_list(v) or _resolvable_place(v),
    TTLClass.DERIVED_FACT: _non_blank_text,
    TTLClass.TRAVEL_TIPS: _non_blank_text,
    TTLClass.RECOMMENDATIONS: _non_blank_text,
    TTLClass.USER_SNAPSHOT: lambda v: v is not None,
}


def is_cacheable(ttl_class: TTLClass, value: Any) -> bool:
    """Class-specific "worth caching" predicate."""
    return CACHEABLE[TTLClass(ttl_class)](value)


class CacheAccessor:
    """get-or-miss / set-with-ttl over a CacheStore, keyed by TTL class."""

    def __init__(self, store: CacheStore, policy: TTLPolicy):
        self._store = store
        self._policy = policy

    @property
    def policy(self) -> TTLPolicy:
        return self._policy

    async def read(self, key: str) -> Any | None:
        """Cached value for ``key`` or None."""
        try:
            raw = await self._store.get(key)
        except CacheStoreError as e:
            logger.warning("Cache read failed | key=%s | %s", key[:60], str(e)[:200])
            return None

        if raw is None:
            logger.debug("Cache MISS | key=%s", key[:60])
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Cache payload undecodable | key=%s | %s", key[:60], str(e)[:100])
            return None

        logger.info("Cache HIT | key=%s", key[:60])
        return value

    async def write(self, key: str, value: Any, ttl_class: TTLClass) -> bool:
        """Store ``value`` with the policy TTL of ``ttl_class``. Returns success."""
        ttl = self._policy.ttl_for(ttl_class)
        try:
            serialized = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Cache SET skipped, value not serializable | key=%s | %s", key[:60], str(e)[:200])
            return False

        try:
            ok = await self._store.set(key, serialized, ttl)
        except CacheStoreError as e:
            logger.warning("Cache write failed | key=%s | %s", key[:60], str(e)[:200])
            return False

        if ok:
            logger.info("Cache SET | key=%s | ttl=%ds", key[:60], ttl)
        return ok

    async def write_if_cacheable(self, key: str, value: Any, ttl_class: TTLClass) -> bool:
        """Apply the cacheability gate, then write. False when gated out."""
        if not is_cacheable(ttl_class, value):
            logger.info("Cache SET skipped, empty %s result | key=%s", TTLClass(ttl_class).value, key[:60])
            return False
        return await self.write(key, value, ttl_class)

    async def remaining_ttl(self, key: str) -> int | None:
        try:
            return await self._store.ttl(key)
        except CacheStoreError as e:
            logger.warning("Cache TTL probe failed | key=%s | %s", key[:60], str(e)[:200])
            return None

    async def is_fresh(self, key: str, ttl_class: TTLClass, min_fraction: float) -> bool:
        """Present with at least ``min_fraction`` of the class TTL remaining."""
        remaining = await self.remaining_ttl(key)
        if remaining is None:
            return False
        if remaining < 0:
            # no expiry set
            return True
        return remaining >= self._policy.min_fresh_ttl(ttl_class, min_fraction)

    async def get_or_fetch(
        self,
        key: str,
        ttl_class: TTLClass,
        fetch: Callable[[], Awaitable[Any]],
    ) -> tuple[Any, bool]:
        """Return ``(value, hit)``. On miss, fetch, gate and populate."""
        cached = await self.read(key)
        if cached is not None:
            return cached, True

        value = await fetch()
        await self.write_if_cacheable(key, value, ttl_class)
        return value, False

    async def invalidate(self, pattern: str) -> int:
        try:
            return await self._store.delete_pattern(pattern)
        except CacheStoreError as e:
            logger.warning("Cache invalidate failed | pattern=%s | %s", pattern, str(e)[:200])
            return 0

    async def clear(self, data_class: str | None = None) -> int:
        """Delete every key, or every key of one data class."""
        return await self.invalidate(cache_keys.namespace_pattern(data_class))

    async def invalidate_user(self, user_id: str) -> int:
        """Drop the personalized snapshots of one user."""
        deleted = 0
        for key in cache_keys.user_keys(user_id):
            try:
                if await self._store.delete(key):
                    deleted += 1
            except CacheStoreError as e:
                logger.warning("Cache delete failed | key=%s | %s", key, str(e)[:200])
        return deleted

    async def stats(self) -> dict:
        """Key counts per data class."""
        breakdown: dict[str, int] = {}
        for data_class in cache_keys.DATA_CLASSES:
            try:
                breakdown[data_class] = await self._store.count(cache_keys.namespace_pattern(data_class))
            except CacheStoreError as e:
                logger.warning("Cache stats failed | class=%s | %s", data_class, str(e)[:200])
                breakdown[data_class] = 0
        return {"total": sum(breakdown.values()), "breakdown": breakdown}

    async def healthy(self) -> bool:
        return await self._store.ping()
