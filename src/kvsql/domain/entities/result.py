"""Tabular results returned by every statement."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kvsql.domain.value_objects import Value


@dataclass
class QueryResult:
    """Column names plus rows aligned to them by position."""

    columns: list[str] = field(default_factory=list)
    rows: list[list[Value]] = field(default_factory=list)

    @classmethod
    def status(cls, message: str) -> QueryResult:
        """Single-cell result used by statements that return no data."""
        return cls(columns=["status"], rows=[[message]])

    def as_dicts(self) -> list[dict[str, Any]]:
        """Rows keyed by column name."""
        return [dict(zip(self.columns, row)) for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class StatementResult(QueryResult):
    """Result of ``DatabaseEngine.execute_statement``.

    ``schema_changed`` is True for DDL, telling callers to reload the schema.
    """

    schema_changed: bool = False

    @classmethod
    def from_query(cls, result: QueryResult, schema_changed: bool = False) -> StatementResult:
        return cls(columns=result.columns, rows=result.rows, schema_changed=schema_changed)
