"""
OpenTelemetry spans for the task pipeline.

Spans are no-ops until setup_tracing() installs a provider, which the app
factory does only when OTEL_TRACING_ENABLED=true. The OTLP exporter reads its
endpoint from the standard OTEL_EXPORTER_OTLP_ENDPOINT variable.
"""
import os
import logging
from typing import Optional, Dict, Any
from contextlib import contextmanager

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from flowtask import __version__

logger = logging.getLogger(__name__)

SERVICE_NAME = "flowtask-service"

_provider: Optional[TracerProvider] = None


def tracing_enabled() -> bool:
    return os.getenv("OTEL_TRACING_ENABLED", "false").lower() == "true"


def setup_tracing() -> None:
    """Install a tracer provider exporting over OTLP. Repeated calls are ignored."""
    global _provider
    if _provider is not None:
        return

    _provider = TracerProvider(resource=Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": __version__,
    }))
    _provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter()))
    trace.set_tracer_provider(_provider)
    logger.info("OpenTelemetry tracing initialized")


def instrument_fastapi(app) -> None:
    FastAPIInstrumentor.instrument_app(app)


def instrument_httpx() -> None:
    HTTPXClientInstrumentor().instrument()


def get_tracer() -> trace.Tracer:
    return trace.get_tracer("flowtask")


@contextmanager
def trace_span(name: str, attributes: Optional[Dict[str, Any]] = None):
    """
    Run a block inside a span; None-valued attributes are skipped.

    Example:
        with trace_span("task.detail", {"flow.project_id": project_id}):
            post = await fetcher.fetch(...)
    """
    with get_tracer().start_as_current_span(name, record_exception=False) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                _set_attribute(span, key, value)
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    _set_attribute(trace.get_current_span(), key, value)


def add_span_event(name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
    """Record an event on the current span."""
    trace.get_current_span().add_event(name, attributes or {})


def _set_attribute(span, key: str, value: Any) -> None:
    if not isinstance(value, (str, int, float, bool)):
        value = str(value)
    span.set_attribute(key, value)
