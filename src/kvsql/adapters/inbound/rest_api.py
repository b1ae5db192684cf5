"""REST API adapter for the query engine.

This module provides a FastAPI-based REST API over a DatabaseEngine. It is
the process surface an editor or schema browser talks to.

Endpoints:
    GET  /health               - Health check
    GET  /schema               - Tables and their columns
    POST /execute              - Execute one SQL statement
    POST /execute/script       - Execute ;-separated statements in order
    POST /tables/{name}/rename - Rename a table
    POST /import               - Create a table from pasted tabular data

Engine errors are returned as HTTP 400 with ``{"error": <kind>, "message": ...}``.

Usage:
    from kvsql.adapters.inbound.rest_api import create_app
    from kvsql.application import DatabaseEngine

    app = create_app(DatabaseEngine())
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 8000

References:
    - FastAPI documentation: https://fastapi.tiangolo.com/
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from kvsql import __version__
from kvsql.domain.entities import StatementResult, Table
from kvsql.domain.errors import EngineError
from kvsql.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from kvsql.application import DatabaseEngine

logger = get_logger("rest_api")


class SQLRequest(BaseModel):
    """Request model for SQL execution."""

    sql: str = Field(..., min_length=1, description="SQL text to execute")


class SQLResponse(BaseModel):
    """Response model for SQL execution."""

    columns: list[str] = Field(default_factory=list, description="Column names")
    rows: list[list[Any]] = Field(default_factory=list, description="Rows aligned to columns")
    schema_changed: bool = Field(False, description="Whether the schema should be reloaded")


class ColumnModel(BaseModel):
    name: str
    type: str


class TableModel(BaseModel):
    """A table in the schema response."""

    name: str
    columns: list[ColumnModel]


class RenameRequest(BaseModel):
    new_name: str = Field(..., min_length=1, description="New table name")


class ImportRequest(BaseModel):
    """Pasted tabular data: a header line plus one line per row."""

    table_name: str = Field("", description="Table name; 'new_table' when blank")
    data: str = Field(..., description="Tab- or comma-separated text")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error kind, e.g. SchemaError")
    message: str = Field(..., description="Human-readable message")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    store_version: int = Field(..., description="Current store version")


def _result_to_response(result: StatementResult) -> SQLResponse:
    return SQLResponse(
        columns=result.columns,
        rows=result.rows,
        schema_changed=result.schema_changed,
    )


def _table_to_model(table: Table) -> TableModel:
    return TableModel(
        name=table.name,
        columns=[ColumnModel(name=c.name, type=c.type) for c in table.columns],
    )


def create_app(db: DatabaseEngine) -> FastAPI:
    """Create a FastAPI application for the query engine.

    Args:
        db: The engine to use. It is initialized on first request if needed.

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="kvsql API",
        description="SQL over a versioned key-value store",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        body = ErrorResponse(error=type(exc).__name__, message=str(exc))
        return JSONResponse(status_code=400, content=body.model_dump())

    # Engine calls block, so handlers are plain functions run in the threadpool

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy" if db.is_initialized else "starting",
            version=__version__,
            store_version=db.version,
        )

    @app.get("/schema", response_model=list[TableModel], tags=["Schema"])
    def get_schema() -> list[TableModel]:
        """List every table with its ordered columns."""
        return [_table_to_model(t) for t in db.get_schema()]

    @app.post(
        "/execute",
        response_model=SQLResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["SQL"],
    )
    def execute_sql(request: SQLRequest) -> SQLResponse:
        """Execute a single SQL statement."""
        return _result_to_response(db.execute_statement(request.sql))

    @app.post(
        "/execute/script",
        response_model=list[SQLResponse],
        responses={400: {"model": ErrorResponse}},
        tags=["SQL"],
    )
    def execute_script(request: SQLRequest) -> list[SQLResponse]:
        """Execute statements in order, stopping at the first error."""
        return [_result_to_response(r) for r in db.execute_script(request.sql)]

    @app.post(
        "/tables/{name}/rename",
        response_model=list[TableModel],
        responses={400: {"model": ErrorResponse}},
        tags=["Schema"],
    )
    def rename_table(name: str, request: RenameRequest) -> list[TableModel]:
        """Rename a table and return the updated schema."""
        db.rename_table(name, request.new_name)
        return [_table_to_model(t) for t in db.get_schema()]

    @app.post(
        "/import",
        response_model=list[SQLResponse],
        responses={400: {"model": ErrorResponse}},
        tags=["Schema"],
    )
    def import_data(request: ImportRequest) -> list[SQLResponse]:
        """Create a table from pasted data and insert its rows."""
        return [_result_to_response(r) for r in db.import_data(request.table_name, request.data)]

    return app


def run_server(
    db: DatabaseEngine,
    host: str = "0.0.0.0",
    port: int = 8000,
) -> None:
    """Run the REST API server.

    Args:
        db: The query engine.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(db)
    db.initialize()
    logger.info("server_starting", host=host, port=port, store=db.store.name)
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        db.close()


def main() -> None:
    """Start the server with settings from the environment."""
    from kvsql.application import DatabaseEngine
    from kvsql.infrastructure import get_config, setup_logging, setup_metrics, setup_tracing

    config = get_config()
    obs = config.observability
    setup_logging(level=obs.log_level, log_format=obs.log_format)
    setup_tracing(service_name=obs.otel_service_name, otlp_endpoint=obs.otel_endpoint)
    metrics = setup_metrics(port=config.server.metrics_port)
    metrics.describe_engine(config.storage.backend, config.engine.where_semantics)

    db = DatabaseEngine.from_config(config, metrics=metrics)
    run_server(db, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
