"""OpenTelemetry tracing for statements and migrations.

The engine opens a ``kvsql.statement`` span for every executed statement and
a ``kvsql.migration`` span, nested inside it, for every structural upgrade.
Until setup_tracing() runs, spans come from the API's no-op tracer.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)

from kvsql import __version__
from kvsql.domain.errors import EngineError

INSTRUMENTATION_NAME = "kvsql"

# Attribute naming the EngineError subclass that failed a span
ERROR_ATTRIBUTE = "kvsql.error"

_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "kvsql",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """Install a tracer provider for engine spans.

    Args:
        service_name: ``service.name`` resource attribute
        otlp_endpoint: OTLP gRPC collector, e.g. "http://localhost:4317";
            spans are not exported over OTLP when None
        console_export: Print each finished span to stdout as well

    Returns:
        The tracer used by trace_span()
    """
    global _tracer

    provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name, SERVICE_VERSION: __version__})
    )
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    # Bind to this provider, not the global one, which can only be set once
    _tracer = provider.get_tracer(INSTRUMENTATION_NAME, __version__)
    return _tracer


def get_tracer() -> trace.Tracer:
    """The engine tracer; the global provider's tracer before setup_tracing()."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(INSTRUMENTATION_NAME, __version__)
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run the block inside a span.

    Attributes whose value is None are left off. An EngineError leaving the
    block sets the span status to ERROR and stores the error class name under
    ``kvsql.error`` before propagating.
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except EngineError as e:
            span.set_attribute(ERROR_ATTRIBUTE, type(e).__name__)
            raise
