"""Dependency injection with a singleton service manager.

The service manager owns every process-wide resource (Redis client, link
store, cache adapter and Kafka publisher) so requests only pay for a
lightweight context and the component objects built on top of it.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from app.cache import LinkCache
from app.config import Settings, get_settings
from app.database import async_session
from app.kafka import ClickEventPublisher
from app.registry import LinkRegistry
from app.resolver import Resolver
from app.store import LinkStore


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources."""

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    settings: Settings
    logger: logging.Logger
    redis_client: redis.Redis
    store: LinkStore
    cache: LinkCache
    publisher: ClickEventPublisher

    def __new__(cls) -> "ServiceManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Initialize shared resources once at startup."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = self._setup_logger()
            self.redis_client = redis.from_url(self.settings.REDIS_URL, encoding="utf-8", decode_responses=True)
            self.store = LinkStore(async_session)
            self.cache = LinkCache(
                self.redis_client,
                ttl_seconds=self.settings.CACHE_TTL_SECONDS,
                prefix=self.settings.CACHE_KEY_PREFIX,
            )
            self.publisher = await ClickEventPublisher.start(self.settings, self.logger)
            self._initialized = True
            self.logger.info(f"Service manager initialized (click events enabled: {self.publisher.enabled})")

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("urlshortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.setLevel(self.settings.LOG_LEVEL)
        return logger

    async def cleanup(self) -> None:
        """Flush pending click events and release shared resources at shutdown."""
        if not self._initialized:
            return
        await self.publisher.stop()
        await self.redis_client.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request tracking on top of the shared service manager.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger carrying this request's context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        service_manager=manager,
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_link_registry(ctx: RequestContext = Depends(get_request_context)) -> LinkRegistry:
    manager = ctx.service_manager
    return LinkRegistry(
        manager.store,
        manager.cache,
        logger=ctx.logger,
        code_length=ctx.settings.SHORT_CODE_LENGTH,
    )


def get_resolver(ctx: RequestContext = Depends(get_request_context)) -> Resolver:
    manager = ctx.service_manager
    return Resolver(manager.store, manager.cache, manager.publisher, logger=ctx.logger)
