"""Unit tests for tracing spans."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from kvsql.application import DatabaseEngine
from kvsql.domain.errors import SchemaError, TableNotFoundError
from kvsql.infrastructure import tracing
from kvsql.infrastructure.tracing import ERROR_ATTRIBUTE, get_tracer, setup_tracing, trace_span


@pytest.fixture
def exporter(monkeypatch: pytest.MonkeyPatch) -> InMemorySpanExporter:
    """Route engine spans to an in-memory exporter."""
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("test"))
    return span_exporter


@pytest.mark.unit
class TestTraceSpan:
    """Tests for trace_span."""

    def test_attributes_skip_none(self, exporter: InMemorySpanExporter) -> None:
        with trace_span("work", {"table.name": "t", "missing": None}):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "work"
        assert dict(span.attributes) == {"table.name": "t"}

    def test_engine_error_marks_span(self, exporter: InMemorySpanExporter) -> None:
        with pytest.raises(SchemaError):
            with trace_span("work"):
                raise SchemaError("bad")

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes[ERROR_ATTRIBUTE] == "SchemaError"

    def test_other_errors_propagate_without_engine_attribute(
        self, exporter: InMemorySpanExporter
    ) -> None:
        with pytest.raises(KeyError):
            with trace_span("work"):
                raise KeyError("k")

        (span,) = exporter.get_finished_spans()
        assert ERROR_ATTRIBUTE not in span.attributes

    def test_setup_tracing_replaces_tracer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(tracing, "_tracer", None)

        tracer = setup_tracing(service_name="kvsql-test")

        assert get_tracer() is tracer


@pytest.mark.unit
class TestEngineSpans:
    """Spans emitted by DatabaseEngine."""

    def test_statement_and_migration_spans(self, exporter: InMemorySpanExporter) -> None:
        with DatabaseEngine(seed_demo_data=False) as db:
            db.execute_statement("CREATE TABLE t (id INTEGER)")

        spans = {s.name: s for s in exporter.get_finished_spans()}
        statement = spans["kvsql.statement"]
        migration = spans["kvsql.migration"]
        assert statement.attributes["statement.type"] == "create_table"
        assert migration.attributes["migration.kind"] == "create_table"
        assert migration.attributes["table.name"] == "t"
        assert migration.parent.span_id == statement.context.span_id

    def test_failed_statement_span(self, exporter: InMemorySpanExporter) -> None:
        with DatabaseEngine(seed_demo_data=False) as db:
            with pytest.raises(TableNotFoundError):
                db.execute_statement("SELECT * FROM missing")

        (span,) = exporter.get_finished_spans()
        assert span.attributes["statement.type"] == "select"
        assert span.attributes[ERROR_ATTRIBUTE] == "TableNotFoundError"
        assert span.status.status_code == StatusCode.ERROR
