"""OpenTelemetry tracing: provider setup and per-request server spans."""

from __future__ import annotations

import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager

import structlog
from opentelemetry import propagate, trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.trace import Span, SpanKind

from . import __version__
from .config import TracingSettings

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)


def setup_tracing(settings: TracingSettings) -> bool:
    """Install an OTLP/HTTP tracer provider.

    Nothing is installed when tracing is disabled in settings or when
    ``OTEL_TRACES_EXPORTER`` is ``none``; spans are then no-ops.

    Returns:
        True if a provider was installed.
    """
    if not settings.enabled:
        logger.info("tracing_disabled")
        return False

    exporter_name = os.getenv("OTEL_TRACES_EXPORTER", "otlp").lower()
    if exporter_name in {"none", ""}:
        logger.info("tracing_exporter_disabled")
        return False

    resource = Resource.create(
        {"service.name": settings.service_name, "service.version": __version__}
    )
    provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.sample_ratio)),
    )
    # None lets the exporter fall back to OTEL_EXPORTER_OTLP_* variables
    exporter = OTLPSpanExporter(endpoint=settings.endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    logger.info(
        "tracing_configured",
        service_name=settings.service_name,
        endpoint=settings.endpoint or "env",
        sample_ratio=settings.sample_ratio,
    )
    return True


def extract_trace_context(headers: Mapping[str, str] | None) -> Context | None:
    """Pick up a caller's trace context (``traceparent``) from request headers."""
    if not headers:
        return None
    return propagate.extract(headers)


@contextmanager
def server_span(method: str, path: str, headers: Mapping[str, str] | None) -> Iterator[Span]:
    """Open a SERVER span for one HTTP request, parented on the caller's context."""
    with tracer.start_as_current_span(
        f"{method} {path}",
        context=extract_trace_context(headers),
        kind=SpanKind.SERVER,
    ) as span:
        span.set_attribute("http.request.method", method)
        span.set_attribute("url.path", path)
        yield span
