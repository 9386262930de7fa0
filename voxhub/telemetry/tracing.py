from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from voxhub.telemetry.logging import get_logger

_configured = False
_ATTRIBUTE_PREFIX = "voxhub."


def configure_tracing(service_name: str, endpoint: str | None) -> None:
    global _configured
    if _configured or endpoint is None:
        return

    resource = Resource.create({SERVICE_NAME: service_name})
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    trace.set_tracer_provider(provider)
    get_logger(__name__).info("tracing.enabled", endpoint=endpoint, service_name=service_name)
    _configured = True


def get_tracer(name: str) -> trace.Tracer:
    """Tracer bound to whatever provider is installed; a no-op one until tracing is configured."""
    return trace.get_tracer(name)


@contextmanager
def session_span(tracer: trace.Tracer, name: str, client_id: str, **attributes: Any) -> Iterator[trace.Span]:
    """Span for one unit of session work.

    Attributes are namespaced under ``voxhub.``; ``None`` values are skipped.
    An exception leaving the block is recorded on the span and re-raised.
    """
    with tracer.start_as_current_span(name, record_exception=False, set_status_on_exception=False) as span:
        span.set_attribute(f"{_ATTRIBUTE_PREFIX}client_id", client_id)
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"{_ATTRIBUTE_PREFIX}{key}", value)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            raise


def mark_failed(span: trace.Span, kind: str, message: str) -> None:
    """Flags a span whose work ended in a reported session failure."""
    span.set_attribute(f"{_ATTRIBUTE_PREFIX}failure", kind)
    span.set_status(Status(StatusCode.ERROR, message))


__all__ = ["configure_tracing", "get_tracer", "mark_failed", "session_span"]
