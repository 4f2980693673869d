"""OpenTelemetry spans for conformance runs.

create_span() wraps setup, each test execution and report generation.
Exceptions escaping a span mark it as errored with a sanitized message:
cluster errors can echo bearer tokens or kubeconfig credentials.
"""

from __future__ import annotations

import re
import threading
from collections.abc import Generator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer

TRACER_NAME = "gwconf"

_SENSITIVE_PATTERN = re.compile(
    r"(bearer\s+|token\s*[=:]\s*|password\s*[=:]\s*|client-key-data\s*[=:]\s*)\S+",
    re.IGNORECASE,
)
_URL_CREDENTIAL_PATTERN = re.compile(r"://[^@/\s]+:[^@/\s]+@")

_tracer: Tracer | None = None
_lock = threading.Lock()


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """Redact credentials from an error message and truncate it.

    Example:
        >>> sanitize_error_message("401: Authorization: Bearer abc.def")
        '401: Authorization: Bearer <REDACTED>'
    """
    sanitized = _URL_CREDENTIAL_PATTERN.sub("://<REDACTED>@", msg)
    sanitized = _SENSITIVE_PATTERN.sub(lambda m: m.group(1) + "<REDACTED>", sanitized)
    return sanitized[:max_length]


def get_tracer() -> Tracer:
    """Return the process-wide gwconf tracer, creating it on first use."""
    global _tracer
    if _tracer is None:
        with _lock:
            if _tracer is None:
                _tracer = trace.get_tracer(TRACER_NAME)
    return _tracer


@contextmanager
def create_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[Span, None, None]:
    """Create a span as a context manager.

    Args:
        name: Span name (e.g. ``gwconf.test``).
        attributes: Attributes set on the span; None values are dropped.

    Yields:
        The active span.
    """
    with get_tracer().start_as_current_span(
        name,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as e:
            sanitized = sanitize_error_message(str(e))
            span.set_status(Status(StatusCode.ERROR, sanitized))
            span.set_attribute("exception.type", type(e).__name__)
            span.set_attribute("exception.message", sanitized)
            raise


__all__ = ["create_span", "get_tracer", "sanitize_error_message"]
