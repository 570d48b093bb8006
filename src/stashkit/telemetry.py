"""OpenTelemetry span helpers for storage operations.

Spans go through the OpenTelemetry API. Without an SDK configured by the
host application the global tracer is a no-op, so the engine pays almost
nothing for them.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

_tracer = trace.get_tracer("stashkit")


def start_storage_span(operation: str, attributes: dict[str, Any] | None = None) -> Any:
    """Start a span named ``stashkit.<operation>``.

    Returns a context manager yielding the span.
    """
    return _tracer.start_as_current_span(f"stashkit.{operation}", attributes=attributes)
