"""Opt-in OpenTelemetry tracing: settings validation, provider setup, lifespan."""

import pytest
from opentelemetry.sdk.trace import TracerProvider

from academy.core.config import Settings, get_settings
from academy.core.lifespan import create_lifespan
from academy.main import create_app
from academy.shared.telemetry.tracing import Tracing, get_tracing

BASE = {"database_url": "postgresql+asyncpg://x/y", "secret_key": "s"}


def test_tracing_is_off_by_default():
    assert Settings(**BASE).telemetry_enabled is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"telemetry_exporter": "zipkin"},
        {"telemetry_exporter": "otlp"},
        {"telemetry_sample_rate": 1.5},
    ],
)
def test_settings_reject_bad_tracing_options(overrides):
    with pytest.raises(ValueError):
        Settings(**BASE, **overrides)


def test_otlp_exporter_accepts_endpoint():
    settings = Settings(
        **BASE, telemetry_exporter="otlp", telemetry_otlp_endpoint="http://collector:4317"
    )
    assert settings.telemetry_otlp_endpoint == "http://collector:4317"


def test_setup_builds_provider_with_service_resource():
    tracing = Tracing(Settings(**BASE, telemetry_exporter="none", telemetry_sample_rate=0.5))

    provider = tracing.setup()

    assert isinstance(provider, TracerProvider)
    assert provider.resource.attributes["service.name"] == "academy"
    assert provider.resource.attributes["deployment.environment"] == "development"
    tracing.shutdown()
    assert tracing.tracer_provider is None


def test_instrument_and_shutdown_are_noops_before_setup():
    tracing = Tracing(Settings(**BASE, telemetry_exporter="none"))
    tracing.instrument()
    tracing.shutdown()
    assert tracing.tracer_provider is None


async def test_lifespan_leaves_tracing_off_when_disabled(app, settings):
    assert settings.telemetry_enabled is False
    async with create_lifespan(app):
        assert get_tracing() is None
    assert get_tracing() is None


def test_create_app_traces_requests_when_enabled(monkeypatch):
    monkeypatch.setenv("TELEMETRY_ENABLED", "true")
    monkeypatch.setenv("TELEMETRY_EXPORTER", "none")
    get_settings.cache_clear()
    try:
        app = create_app()
    finally:
        get_settings.cache_clear()
    assert getattr(app, "_is_instrumented_by_opentelemetry", False) is True


def test_create_app_leaves_requests_untraced_by_default(app):
    assert not getattr(app, "_is_instrumented_by_opentelemetry", False)
