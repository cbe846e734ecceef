"""Logging setup and opt-in OpenTelemetry tracing.

Tracing lives in academy.shared.telemetry.tracing and is imported only when
settings.telemetry_enabled is set.
"""

from academy.shared.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
