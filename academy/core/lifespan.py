"""Application lifespan: startup and shutdown.

Single place for startup/shutdown logic. Used by main.py; no business logic
here, only wiring of infrastructure (tracing, cache connect, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from academy.core.config import get_settings
from academy.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup: logging, tracing (if enabled), Redis cache (if enabled). A cache
    that cannot connect leaves the app running on the database alone.
    Shutdown: cache disconnect, SQL engine dispose, span flush.
    """
    settings = get_settings()
    setup_logging(settings)

    from academy.infrastructure.persistence import database

    # ---- Startup ----
    if settings.telemetry_enabled:
        from academy.shared.telemetry.tracing import Tracing, set_tracing

        tracing = Tracing(settings)
        if tracing.setup() is not None:
            tracing.instrument(database.get_engine())
            set_tracing(tracing)

    if settings.redis_enabled:
        from academy.infrastructure.cache.redis_cache import CacheService

        cache = CacheService(settings=settings)
        await cache.connect()
        app.state.cache = cache
    else:
        app.state.cache = None
        logger.info("Redis cache disabled; reads go to the database")

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.disconnect()
        logger.info("Cache disconnected")

    await database.dispose_engine()

    if settings.telemetry_enabled:
        from academy.shared.telemetry.tracing import get_tracing, set_tracing

        tracing = get_tracing()
        if tracing is not None:
            tracing.shutdown()
            set_tracing(None)
