"""OpenTelemetry tracing helpers.

The API package only emits spans when an SDK/exporter is installed and
configured by the deployment; otherwise the global tracer provider is a no-op.

PII and Sensitive Data Guidance:
--------------------------------
- NEVER put submitted URLs, page content or draft values in span attributes
- Use correlation IDs to link traces without embedding sensitive content
- Prefer structured logging with the project's StructuredLogger
  (core/error_handler.py) which automatically redacts sensitive keys
- Safe attributes: provider tag, extraction method, recursion depth,
  number of fields sent to the inference backend
"""

from __future__ import annotations

from opentelemetry import trace


def get_tracer(name: str) -> trace.Tracer:
    """Get an OpenTelemetry tracer for custom instrumentation.

    Args:
        name: The name of the tracer, typically __name__ of the calling module.

    Example:
        from core.observability import get_tracer

        tracer = get_tracer(__name__)

        async def extract(url: str) -> ImportResult:
            with tracer.start_as_current_span("url_import.extract") as span:
                span.set_attribute("url_import.provider", "website")
                ...

    WARNING: Never add user content or PII to span attributes!
    """
    return trace.get_tracer(name)
