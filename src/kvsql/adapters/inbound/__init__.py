"""Inbound adapters for the query engine.

Inbound adapters handle incoming requests and convert them to
internal domain operations.

Exports:
    SQL Parser:
        - SQLParser: Parser that converts SQL text to statement objects
        - Statement and its six subclasses
        - parse_where_clause: Single-equality WHERE recognizer
        - split_statements: Split a script on top-level semicolons

The REST API lives in ``kvsql.adapters.inbound.rest_api`` and is imported
from there, since it depends on the application layer.
"""

from kvsql.adapters.inbound.sql_parser import (
    CreateTable,
    CreateTableAsSelect,
    Delete,
    DropTable,
    Insert,
    Select,
    SelectExpression,
    SQLParser,
    Statement,
    StatementType,
    WherePredicate,
    parse_where_clause,
    split_statements,
)

__all__ = [
    "SQLParser",
    "StatementType",
    "Statement",
    "CreateTableAsSelect",
    "CreateTable",
    "DropTable",
    "Select",
    "Insert",
    "Delete",
    "SelectExpression",
    "WherePredicate",
    "parse_where_clause",
    "split_statements",
]
