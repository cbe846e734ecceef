"""OpenTelemetry tracing, opt-in via settings.telemetry_enabled.

Spans cover HTTP requests (FastAPI), SQL statements (SQLAlchemy) and cache
commands (redis), so a slow grade batch shows whether time went to the
database or to cache reads and invalidation. Exporters: console, otlp, none.
"""

from __future__ import annotations

import logging
import threading

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

from academy.core.config import Settings

logger = logging.getLogger(__name__)

# Health checks and API docs are not traced.
_EXCLUDED_URLS = "/health,/docs,/openapi.json"


class Tracing:
    """Tracer provider of the process plus the instrumentations bound to it."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.tracer_provider: TracerProvider | None = None

    def _exporter(self) -> SpanExporter | None:
        exporter_type = self.settings.telemetry_exporter
        if exporter_type == "otlp":
            endpoint = self.settings.telemetry_otlp_endpoint
            logger.info("Using OTLP span exporter: %s", endpoint)
            return OTLPSpanExporter(endpoint=endpoint, insecure=endpoint.startswith("http://"))
        if exporter_type == "console":
            return ConsoleSpanExporter()
        return None

    def setup(self) -> TracerProvider | None:
        """Build and install the global tracer provider. Failures leave tracing off."""
        settings = self.settings
        try:
            provider = TracerProvider(
                resource=Resource(
                    attributes={
                        SERVICE_NAME: settings.app_name,
                        SERVICE_VERSION: settings.app_version,
                        "deployment.environment": settings.telemetry_environment,
                    }
                ),
                sampler=TraceIdRatioBased(settings.telemetry_sample_rate),
            )
            exporter = self._exporter()
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
        except Exception as e:
            logger.exception("Failed to initialize tracing: %s", e)
            return None
        self.tracer_provider = provider
        logger.info(
            "Tracing initialized: service=%s, exporter=%s, sample_rate=%s",
            settings.app_name,
            settings.telemetry_exporter,
            settings.telemetry_sample_rate,
        )
        return provider

    def instrument(self, engine: AsyncEngine | None = None) -> None:
        """Trace SQL statements (when an engine is given) and Redis commands."""
        provider = self.tracer_provider
        if provider is None:
            return
        try:
            if engine is not None:
                SQLAlchemyInstrumentor().instrument(
                    engine=engine.sync_engine, tracer_provider=provider
                )
            if self.settings.redis_enabled:
                RedisInstrumentor().instrument(tracer_provider=provider)
        except Exception as e:
            logger.exception("Failed to instrument database and cache clients: %s", e)

    def shutdown(self) -> None:
        """Flush pending spans and stop exporting."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
        except Exception as e:
            logger.exception("Error during tracing shutdown: %s", e)
        self.tracer_provider = None
        logger.info("Tracing shutdown complete")


def instrument_app(app: FastAPI) -> None:
    """Trace requests. Runs in create_app(): middleware cannot be added once the
    app has started, and spans go to whichever provider the lifespan installs."""
    try:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=_EXCLUDED_URLS)
    except Exception as e:
        logger.exception("Failed to instrument FastAPI: %s", e)


_tracing: Tracing | None = None
_tracing_lock = threading.RLock()


def get_tracing() -> Tracing | None:
    """Tracing set up at startup, if any."""
    with _tracing_lock:
        return _tracing


def set_tracing(tracing: Tracing | None) -> None:
    global _tracing
    with _tracing_lock:
        _tracing = tracing


def get_tracer(name: str) -> trace.Tracer:
    """Tracer for custom spans, e.g. get_tracer(__name__)."""
    return trace.get_tracer(name)
