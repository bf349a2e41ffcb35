"""Resolver: short code to redirect target, with cache-aside reads.

Flow Diagram — resolve()
========================
::
    ┌──────────────┐
    │ resolve(slug)│
    └──────┬───────┘
           ▼
    ┌──────────────┐   hit    ┌──────────────┐
    │ GET slug:code│ ───────▶ │ publish click│──▶ PERMANENT (308)
    └──────┬───────┘          └──────────────┘
           │ miss / cache error
           ▼
    ┌──────────────┐   none
    │ SELECT by    │ ───────▶ NotFoundError (no click, no fill)
    │ short_code   │
    └──────┬───────┘
           │ found
           ▼
    ┌──────────────┐          ┌──────────────┐
    │ SET slug:code│ ───────▶ │ publish click│──▶ TEMPORARY (307)
    └──────┬───────┘          └──────────────┘
           │ error
           ▼
      InternalError (no click)

Key Behaviours
===============
- Exactly one click event per successful resolution, none for a failed one.
- A cache read failure degrades to the store path.
- A cache fill failure on the store path fails the resolution.
- The click event is submitted without awaiting its delivery.
"""

import logging
import time
from dataclasses import dataclass

from prometheus_client import Counter, Histogram

from app.cache import LinkCache
from app.enums import CacheStatus, RedirectKind, RequestStatus
from app.errors import CacheError, InternalError, NotFoundError, ShortenerError
from app.kafka import ClickEventPublisher
from app.store import LinkStore

__all__ = ["RedirectTarget", "Resolver"]

REDIRECT_REQUESTS_TOTAL = Counter(
    "url_shortener_redirect_requests_total",
    "Total redirect requests",
    ["status", "cached"],
)
REDIRECT_DURATION = Histogram(
    "url_shortener_redirect_duration_seconds",
    "Time taken to resolve short codes",
    ["cached"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5],
)


@dataclass(frozen=True)
class RedirectTarget:
    url: str
    kind: RedirectKind

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class Resolver:
    def __init__(
        self,
        store: LinkStore,
        cache: LinkCache,
        publisher: ClickEventPublisher,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._store = store
        self._cache = cache
        self._publisher = publisher
        self._logger = logger or logging.getLogger("urlshortener.resolver")

    async def resolve(self, slug: str) -> RedirectTarget:
        """Resolve ``slug`` to its original URL and record one click.

        Raises:
            NotFoundError: ``slug`` is unknown to both the cache and the store.
            StoreError: The store lookup failed on the fallback path.
            InternalError: The store row was found but could not be cached.
        """
        start_time = time.perf_counter()

        cached_url = await self._read_cache(slug)
        if cached_url is not None:
            self._publisher.publish(slug)
            self._record(start_time, RequestStatus.SUCCESS, CacheStatus.HIT)
            self._logger.info(f"Cache hit for `{slug}`")
            return RedirectTarget(url=cached_url, kind=RedirectKind.PERMANENT)

        try:
            link = await self._store.find_by_code(slug)
            if link is None:
                raise NotFoundError(f"Short code '{slug}' not found")
            await self._fill_cache(slug, link.original_url)
        except NotFoundError:
            self._record(start_time, RequestStatus.NOT_FOUND, CacheStatus.MISS)
            self._logger.warning(f"Short code not found: {slug}")
            raise
        except ShortenerError:
            self._record(start_time, RequestStatus.ERROR, CacheStatus.MISS)
            raise

        self._publisher.publish(slug)
        self._record(start_time, RequestStatus.SUCCESS, CacheStatus.MISS)
        self._logger.info(f"Cache miss for `{slug}`, served from database")
        return RedirectTarget(url=link.original_url, kind=RedirectKind.TEMPORARY)

    async def _read_cache(self, slug: str) -> str | None:
        try:
            return await self._cache.get(slug)
        except CacheError as exc:
            self._logger.warning(f"Cache read failed for `{slug}`, falling back to database: {exc}")
            return None

    async def _fill_cache(self, slug: str, original_url: str) -> None:
        try:
            await self._cache.set(slug, original_url)
        except CacheError as exc:
            self._logger.error(f"Cache fill failed for `{slug}`: {exc}")
            raise InternalError(f"Short code '{slug}' resolved but could not be cached") from exc

    @staticmethod
    def _record(start_time: float, status: RequestStatus, cached: CacheStatus) -> None:
        REDIRECT_DURATION.labels(cached=cached).observe(time.perf_counter() - start_time)
        REDIRECT_REQUESTS_TOTAL.labels(status=status, cached=cached).inc()
