"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Engine and session factory are created lazily on first use (get_db /
get_db_transactional / transactional_session) so import does not trigger
Settings validation.

Writes go through transactional_session(): it commits on success, rolls back
on exception, and applies cache invalidations queued by PostCommitInvalidator
only after the commit.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from academy.core.config import get_settings
from academy.infrastructure.persistence.post_commit import (
    discard_post_commit,
    run_post_commit,
)

logger = logging.getLogger(__name__)

# Set by _ensure_engine() on first use; avoids get_settings() at import time.
engine: Any = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def _ensure_engine() -> async_sessionmaker[AsyncSession]:
    """Create engine and AsyncSessionLocal on first use."""
    global engine, AsyncSessionLocal
    if AsyncSessionLocal is not None:
        return AsyncSessionLocal
    settings = get_settings()
    connect_args: dict[str, Any] = {}
    if settings.database_url.startswith("postgresql+asyncpg"):
        connect_args["command_timeout"] = settings.db_command_timeout
    engine = create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        connect_args=connect_args,
    )
    logger.debug("Database engine created (pool_size=%s)", settings.db_pool_size)
    # No autoflush: repositories flush explicitly before running invalidation hooks.
    AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    return AsyncSessionLocal


def get_engine() -> Any:
    """The process engine, created on first use (tracing instruments it at startup)."""
    _ensure_engine()
    return engine


async def dispose_engine() -> None:
    """Dispose the engine (lifespan shutdown). No-op when never created."""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    AsyncSessionLocal = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


@asynccontextmanager
async def transactional_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Session in a transaction; queued invalidations run only after COMMIT."""
    factory = session_factory or _ensure_engine()
    async with factory() as session:
        try:
            async with session.begin():
                yield session
        except BaseException:
            discard_post_commit(session)
            raise
        await run_post_commit(session)


async def get_db():
    """Database session dependency for read operations.

    Does not commit; use get_db_transactional for writes.
    Yields a session and closes it on exit.
    """
    factory = _ensure_engine()
    async with factory() as session:
        yield session


async def get_db_transactional():
    """Database session dependency for write operations.

    Begins a transaction, commits on success, rolls back on exception, then
    applies post-commit cache invalidations.
    Use for POST, PUT, PATCH, DELETE endpoints.
    """
    async with transactional_session() as session:
        yield session
