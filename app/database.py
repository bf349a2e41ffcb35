"""Database engine and session factory for the link store.

This module provides the SQLAlchemy async engine, the shared session factory
used by :class:`app.store.LinkStore`, and table lifecycle helpers. PostgreSQL
(asyncpg) is the production backend.

Flow Diagram — Store Handle
===========================
::
    ┌─────────────┐
    │  Process    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ init_db()   │
    │ create_all  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ LinkStore(  │
    │ async_      │
    │ session)    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close_db()  │
    │ dispose     │
    └─────────────┘

Key Behaviours
===============
- The engine is created at import time but connects lazily.
- One session is opened per Store operation and closed right after.
- Tables are created on startup; there is no separate migration step.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

__all__ = ["Base", "async_session", "engine", "init_db", "close_db"]

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    pool_size=settings.DATABASE_POOL_SIZE,
    max_overflow=settings.DATABASE_MAX_OVERFLOW,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
