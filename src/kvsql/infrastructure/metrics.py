"""Prometheus metrics for the query engine."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

from kvsql import __version__


class MetricsRegistry:
    """Registry of all query engine metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Statement metrics
        self.statements_total = Counter(
            "kvsql_statements_total",
            "Total number of statements executed",
            ["statement_type", "status"],  # status: success, error
            registry=self._registry,
        )

        self.statement_latency_seconds = Histogram(
            "kvsql_statement_latency_seconds",
            "Statement latency in seconds",
            ["statement_type"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=self._registry,
        )

        # Migration metrics
        self.migrations_total = Counter(
            "kvsql_migrations_total",
            "Total number of structural migrations applied",
            ["kind"],  # create_table, drop_table, rename_table, materialize_rows, initialize
            registry=self._registry,
        )

        self.store_version = Gauge(
            "kvsql_store_version",
            "Current version of the key-value store",
            registry=self._registry,
        )

        self.tables = Gauge(
            "kvsql_tables",
            "Number of tables in the catalog",
            registry=self._registry,
        )

        # Engine info
        self.info = Info(
            "kvsql_engine",
            "Query engine information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def describe_engine(self, backend: str, where_semantics: str) -> None:
        """Publish the engine version and settings as the kvsql_engine info metric."""
        self.info.info(
            {"version": __version__, "backend": backend, "where_semantics": where_semantics}
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    # Start HTTP server for Prometheus scraping
    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
