"""Infrastructure layer - cross-cutting concerns."""

from kvsql.infrastructure.config import Config, get_config
from kvsql.infrastructure.logging import get_logger, setup_logging
from kvsql.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from kvsql.infrastructure.tracing import get_tracer, setup_tracing, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
