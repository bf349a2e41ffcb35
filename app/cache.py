"""Redis-backed cache of short code to original URL.

Entries are a disposable view of store rows: ``slug:<code> -> original_url``
with a fixed TTL refreshed on every write. A missing key is a normal miss,
not an error; Redis failures are re-raised as :class:`CacheError` so callers
can decide whether to recover or surface them.

How to Use
===========
::
    cache = LinkCache(redis_client, ttl_seconds=86_400)
    await cache.set("ab3F9", "https://example.com/a")
    await cache.get("ab3F9")       # "https://example.com/a"
    await cache.delete("ab3F9")
"""

import redis.asyncio as redis
from prometheus_client import Counter
from redis.exceptions import RedisError

from app.errors import CacheError

__all__ = ["DEFAULT_CACHE_TTL_SECONDS", "LinkCache"]

DEFAULT_CACHE_TTL_SECONDS = 86_400  # 24 hours

REDIS_OPERATIONS_TOTAL = Counter(
    "url_shortener_redis_operations_total",
    "Total Redis operations",
)


class LinkCache:
    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS, prefix: str = "slug"):
        self._client = client
        self._ttl_seconds = ttl_seconds
        self._prefix = prefix

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def key_for(self, short_code: str) -> str:
        return f"{self._prefix}:{short_code}"

    async def get(self, short_code: str) -> str | None:
        try:
            value = await self._client.get(self.key_for(short_code))
        except RedisError as exc:
            raise CacheError(f"Cache lookup failed for '{short_code}': {exc}") from exc
        REDIS_OPERATIONS_TOTAL.inc()
        return value

    async def set(self, short_code: str, original_url: str) -> None:
        try:
            await self._client.set(self.key_for(short_code), original_url, ex=self._ttl_seconds)
        except RedisError as exc:
            raise CacheError(f"Cache write failed for '{short_code}': {exc}") from exc
        REDIS_OPERATIONS_TOTAL.inc()

    async def delete(self, *short_codes: str) -> int:
        if not short_codes:
            return 0
        try:
            removed = await self._client.delete(*(self.key_for(code) for code in short_codes))
        except RedisError as exc:
            raise CacheError(f"Cache delete failed for {list(short_codes)}: {exc}") from exc
        REDIS_OPERATIONS_TOTAL.inc()
        return removed

    async def ping(self) -> None:
        try:
            await self._client.ping()
        except RedisError as exc:
            raise CacheError(f"Cache ping failed: {exc}") from exc
