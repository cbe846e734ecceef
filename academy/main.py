"""FastAPI application entry point.

Wiring only: lifespan, exception handlers, request tracing (when enabled), health check. Resource routes are
mounted by the HTTP layer that consumes academy.api.dependencies.

Settings are loaded inside create_app() so that tests can set env (and
optionally clear get_settings cache) before calling create_app().
"""

from fastapi import FastAPI, Request

from academy.core.config import get_settings
from academy.core.exception_handlers import register_exception_handlers
from academy.core.lifespan import create_lifespan


def create_app() -> FastAPI:
    """Build and return the FastAPI application. Settings are resolved here (deferred from import)."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    register_exception_handlers(app)

    if settings.telemetry_enabled:
        from academy.shared.telemetry.tracing import instrument_app

        instrument_app(app)

    @app.get("/health", tags=["health"])
    def health_check(request: Request) -> dict[str, str]:
        """Liveness check; reports whether the cache is serving."""
        cache = getattr(request.app.state, "cache", None)
        cache_status = "up" if cache is not None and cache.is_available() else "down"
        return {"status": "ok", "cache": cache_status}

    return app
