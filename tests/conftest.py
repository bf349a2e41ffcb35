"""Shared pytest fixtures for component, worker and API tests.

The durable store runs on SQLite through aiosqlite (same SQLAlchemy models),
the cache on fakeredis, and Kafka is replaced by recording fakes.
"""

import logging
from pathlib import Path
from types import SimpleNamespace
from typing import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.cache import LinkCache
from app.config import Settings, get_settings
from app.database import Base
from app.dependencies import get_service_manager
from app.kafka import ClickEventPublisher
from app.main import app
from app.registry import LinkRegistry
from app.resolver import Resolver
from app.store import LinkStore

CLICK_TOPIC = "url_clicks"


class RecordingProducer:
    """Stands in for ``AIOKafkaProducer``; records every ``send_and_wait`` call."""

    def __init__(self, fail_with: Exception | None = None):
        self.sent: list[tuple[str, bytes, bytes | None]] = []
        self.fail_with = fail_with
        self.stopped = False

    async def send_and_wait(self, topic: str, value: bytes, key: bytes | None = None) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append((topic, value, key))

    async def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("urlshortener.tests")


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory: async_sessionmaker[AsyncSession]) -> LinkStore:
    return LinkStore(session_factory)


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[redis.Redis, None]:
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def cache(redis_client: redis.Redis) -> LinkCache:
    return LinkCache(redis_client)


@pytest.fixture
def producer() -> RecordingProducer:
    return RecordingProducer()


@pytest.fixture
def failing_producer() -> RecordingProducer:
    return RecordingProducer(fail_with=RuntimeError("broker unavailable"))


@pytest.fixture
def publisher(producer: RecordingProducer, logger: logging.Logger) -> ClickEventPublisher:
    return ClickEventPublisher(CLICK_TOPIC, producer=producer, logger=logger)


@pytest.fixture
def registry(store: LinkStore, cache: LinkCache, logger: logging.Logger) -> LinkRegistry:
    return LinkRegistry(store, cache, logger=logger)


@pytest.fixture
def resolver(
    store: LinkStore,
    cache: LinkCache,
    publisher: ClickEventPublisher,
    logger: logging.Logger,
) -> Resolver:
    return Resolver(store, cache, publisher, logger=logger)


@pytest.fixture
def service_manager(
    settings: Settings,
    logger: logging.Logger,
    store: LinkStore,
    cache: LinkCache,
    publisher: ClickEventPublisher,
) -> SimpleNamespace:
    return SimpleNamespace(settings=settings, logger=logger, store=store, cache=cache, publisher=publisher)


@pytest_asyncio.fixture
async def client(service_manager: SimpleNamespace) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_service_manager() -> SimpleNamespace:
        return service_manager

    app.dependency_overrides[get_service_manager] = override_get_service_manager

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await service_manager.publisher.flush()
    app.dependency_overrides.clear()
