"""Durable store adapter for short links.

``LinkStore`` wraps the shared ``async_sessionmaker`` and exposes the handful
of primitives the registry, resolver and click aggregator need. Every call
opens its own session, so one instance can be shared by all concurrent
request tasks. SQLAlchemy failures are re-raised as :class:`StoreError`.

Operations
==========
::
    insert(original_url, short_code)   INSERT ... RETURNING id, created_at
    find_by_code(short_code)           SELECT ... WHERE short_code = :code
    delete_by_url(original_url)        DELETE ... WHERE original_url = :url RETURNING short_code
    increment_clicks(short_code)       UPDATE ... SET click_count = click_count + 1
    ping()                             SELECT 1
"""

from dataclasses import dataclass, field

from prometheus_client import Counter
from sqlalchemy import delete, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.errors import CodeCollisionError, StoreError
from app.models import ShortLink

__all__ = ["DeletedLinks", "LinkStore"]

DATABASE_READS_TOTAL = Counter(
    "url_shortener_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "url_shortener_database_writes_total",
    "Total database write operations",
)


@dataclass
class DeletedLinks:
    """Outcome of a delete: affected row count and the codes that were removed."""

    count: int = 0
    short_codes: list[str] = field(default_factory=list)


class LinkStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def insert(self, original_url: str, short_code: str) -> ShortLink:
        """Insert a new row and return it with its server-assigned id and timestamp.

        Raises:
            CodeCollisionError: ``short_code`` already exists.
            StoreError: Any other persistence failure.
        """
        async with self._sessions() as session:
            link = ShortLink(original_url=original_url, short_code=short_code, click_count=0)
            session.add(link)
            try:
                await session.commit()
                DATABASE_WRITES_TOTAL.inc()
                await session.refresh(link)
            except IntegrityError as exc:
                await session.rollback()
                raise CodeCollisionError(short_code) from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Failed to insert short link '{short_code}': {exc}") from exc
            return link

    async def find_by_code(self, short_code: str) -> ShortLink | None:
        async with self._sessions() as session:
            try:
                result = await session.execute(select(ShortLink).where(ShortLink.short_code == short_code))
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to look up '{short_code}': {exc}") from exc
            DATABASE_READS_TOTAL.inc()
            return result.scalar_one_or_none()

    async def delete_by_url(self, original_url: str) -> DeletedLinks:
        """Delete every row pointing at ``original_url``; codes come from the same statement."""
        async with self._sessions() as session:
            try:
                result = await session.execute(
                    delete(ShortLink).where(ShortLink.original_url == original_url).returning(ShortLink.short_code)
                )
                short_codes = list(result.scalars().all())
                await session.commit()
                DATABASE_WRITES_TOTAL.inc()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Failed to delete links for '{original_url}': {exc}") from exc
            return DeletedLinks(count=len(short_codes), short_codes=short_codes)

    async def increment_clicks(self, short_code: str, delta: int = 1) -> int:
        """Atomically add ``delta`` to ``click_count``; returns the affected row count."""
        async with self._sessions() as session:
            try:
                result = await session.execute(
                    update(ShortLink)
                    .where(ShortLink.short_code == short_code)
                    .values(click_count=ShortLink.click_count + delta)
                )
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(f"Failed to increment clicks for '{short_code}': {exc}") from exc
            DATABASE_WRITES_TOTAL.inc()
            return result.rowcount

    async def ping(self) -> None:
        async with self._sessions() as session:
            try:
                await session.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                raise StoreError(f"Database ping failed: {exc}") from exc
