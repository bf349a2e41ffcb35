"""Link registry: issuing and deleting short links.

The store is the source of truth and is always written first; the cache
entry is a mirror written (or removed) afterwards. There is no transaction
spanning both, so a cache failure after a committed store write leaves a
short inconsistency window that the resolver's store fallback heals.

Flow Diagram — create()
=======================
::
    ┌─────────────┐
    │ create(url) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ nanoid code │──── empty ───▶ CodeGenerationError
    │ (5 chars)   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ INSERT row  │──── unique ──▶ CodeCollisionError
    │ clicks = 0  │     violation
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ SET slug:   │──── error ───▶ InternalError
    │ code (TTL)  │     (row stays committed)
    └──────┬──────┘
           ▼
      ShortLink

Flow Diagram — delete()
=======================
::
    ┌─────────────┐
    │ delete(url) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ DELETE rows │──── 0 rows ──▶ NotFoundError
    │ by url      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ DEL slug:   │──── error ───▶ InternalError
    │ <each code> │
    └──────┬──────┘
           ▼
      success=True

Key Behaviours
===============
- One URL may back several codes; delete removes all of them and invalidates
  the cache key of every removed code.
- Collisions are not retried; they surface as ``CodeCollisionError``.
"""

import logging
import time

from nanoid import generate
from prometheus_client import Counter, Histogram

from app.cache import LinkCache
from app.enums import RequestStatus
from app.errors import CacheError, CodeGenerationError, InternalError, NotFoundError, ShortenerError
from app.models import ShortLink
from app.store import LinkStore

__all__ = ["ALPHABET", "DEFAULT_CODE_LENGTH", "LinkRegistry", "generate_short_code"]

ALPHABET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_CODE_LENGTH = 5

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "url_shortener_creation_requests_total",
    "Total short link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "url_shortener_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
LINK_DELETION_REQUESTS_TOTAL = Counter(
    "url_shortener_deletion_requests_total",
    "Total short link deletion requests",
    ["status"],
)


def generate_short_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Draw ``length`` characters uniformly from the alphanumeric alphabet.

    Raises:
        CodeGenerationError: The generator returned an empty or short result.
    """
    code = generate(ALPHABET, length) if length > 0 else ""
    if not code or len(code) != length:
        raise CodeGenerationError(f"Short code generation produced {code!r} for length {length}")
    return code


class LinkRegistry:
    """Creates and deletes short links against the store and the cache."""

    def __init__(
        self,
        store: LinkStore,
        cache: LinkCache,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        code_length: int = DEFAULT_CODE_LENGTH,
    ):
        self._store = store
        self._cache = cache
        self._logger = logger or logging.getLogger("urlshortener.registry")
        self._code_length = code_length

    async def create(self, original_url: str) -> ShortLink:
        """Issue a new short code for ``original_url``.

        Returns:
            ShortLink: The committed row, including id, code and created_at.

        Raises:
            CodeGenerationError: Degenerate random code.
            CodeCollisionError: The code already exists in the store.
            StoreError: The insert failed.
            InternalError: The row was committed but the cache mirror failed.
        """
        start_time = time.perf_counter()
        try:
            short_code = generate_short_code(self._code_length)
            link = await self._store.insert(original_url, short_code)
            await self._mirror_to_cache(link)
        except ShortenerError as exc:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short link creation failed for {original_url}: {exc}")
            raise

        duration = time.perf_counter() - start_time
        LINK_CREATION_DURATION.observe(duration)
        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Short link created: {link.short_code} -> {original_url} in {duration:.3f}s")
        return link

    async def delete(self, original_url: str) -> bool:
        """Delete every short link pointing at ``original_url``.

        Raises:
            NotFoundError: No row matched; nothing was changed.
            StoreError: The delete failed.
            InternalError: Rows were deleted but cache invalidation failed.
        """
        try:
            deleted = await self._store.delete_by_url(original_url)
            if deleted.count == 0:
                raise NotFoundError(f"No short link points at {original_url}")
            await self._invalidate_cache(deleted.short_codes)
        except NotFoundError:
            LINK_DELETION_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND).inc()
            self._logger.warning(f"Delete requested for unknown URL: {original_url}")
            raise
        except ShortenerError as exc:
            LINK_DELETION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Short link deletion failed for {original_url}: {exc}")
            raise

        LINK_DELETION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Deleted {deleted.count} short link(s) for {original_url}: {deleted.short_codes}")
        return True

    async def get_link(self, short_code: str) -> ShortLink:
        """Read a link straight from the store, so ``click_count`` is current."""
        link = await self._store.find_by_code(short_code)
        if link is None:
            raise NotFoundError(f"Short code '{short_code}' not found")
        return link

    async def _mirror_to_cache(self, link: ShortLink) -> None:
        try:
            await self._cache.set(link.short_code, link.original_url)
        except CacheError as exc:
            self._logger.error(f"Link {link.short_code} stored but not cached: {exc}")
            raise InternalError(f"Short link {link.short_code} was stored but could not be cached") from exc

    async def _invalidate_cache(self, short_codes: list[str]) -> None:
        try:
            await self._cache.delete(*short_codes)
        except CacheError as exc:
            raise InternalError(f"Cache invalidation failed for {short_codes}") from exc
