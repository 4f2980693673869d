"""Logging and tracing for gwconf.

Logs go through structlog with trace context injected; spans are created
through the OpenTelemetry API, which is a no-op until an SDK is configured
by the embedding application.
"""

from __future__ import annotations

from gwconf_core.telemetry.logging import add_trace_context, configure_logging
from gwconf_core.telemetry.tracing import create_span, get_tracer, sanitize_error_message

__all__ = [
    "add_trace_context",
    "configure_logging",
    "create_span",
    "get_tracer",
    "sanitize_error_message",
]
