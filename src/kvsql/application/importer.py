"""Turn pasted tabular data into CREATE TABLE and INSERT statements.

The first line holds the headers, every further line one row. Cells are
tab-separated when the text contains a tab, comma-separated otherwise.
Column types are inferred from the first data row only.

Usage:
    headers, rows = parse_pasted_data("id,name\\n1,Alice\\n2,Bob")
    statements = build_import_statements("people", headers, rows)
    engine.execute_script(";\\n".join(statements))
"""

from __future__ import annotations

import re
from typing import Sequence

from kvsql.domain.errors import ParseError
from kvsql.domain.value_objects import ColumnType, format_literal, parse_number

DEFAULT_TABLE_NAME = "new_table"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_name(name: str, default: str | None = None) -> str:
    """Trim, replace whitespace runs with ``_`` and lower-case."""
    normalized = _WHITESPACE_RE.sub("_", name.strip()).lower()
    if not normalized and default is not None:
        return default
    return normalized


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def infer_cell_type(cell: str) -> str:
    """REAL for a number with a decimal point, INTEGER for other numbers, else TEXT."""
    if cell and parse_number(cell) is not None:
        return ColumnType.REAL.value if "." in cell else ColumnType.INTEGER.value
    return ColumnType.TEXT.value


def parse_pasted_data(text: str) -> tuple[list[str], list[list[str]]]:
    """Split pasted text into normalized headers and trimmed data rows.

    Raises:
        ParseError: If there is no header row plus at least one data row.
    """
    lines = [line for line in text.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        raise ParseError("Please provide at least a header row and one data row.")

    delimiter = "\t" if "\t" in text else ","
    headers = [normalize_name(h) for h in lines[0].split(delimiter)]
    rows = [[cell.strip() for cell in line.split(delimiter)] for line in lines[1:]]
    return headers, rows


def _format_cell(cell: str, column_type: str) -> str:
    if column_type == ColumnType.TEXT.value:
        return format_literal(cell)
    if not cell:
        return "NULL"
    if parse_number(cell) is None:
        return format_literal(cell)
    return cell


def build_import_statements(
    table_name: str,
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
) -> list[str]:
    """Generate the statements that create and fill a table.

    Args:
        table_name: Table name; normalized, ``new_table`` when blank
        headers: Column names; normalized
        rows: Data rows as cell text, aligned with ``headers``

    Returns:
        One CREATE TABLE statement followed by one INSERT per row, without
        terminators.
    """
    name = _quote_identifier(normalize_name(table_name, DEFAULT_TABLE_NAME))
    columns = [normalize_name(h) for h in headers]
    if not columns or not all(columns):
        raise ParseError("Every column needs a non-empty header.")

    first_row = rows[0] if rows else []
    types = [
        infer_cell_type(first_row[i].strip() if i < len(first_row) else "")
        for i in range(len(columns))
    ]

    column_defs = ",\n".join(
        f"  {_quote_identifier(col)} {col_type}" for col, col_type in zip(columns, types)
    )
    statements = [f"CREATE TABLE {name} (\n{column_defs}\n)"]

    column_list = ", ".join(_quote_identifier(col) for col in columns)
    for row in rows:
        cells = [row[i].strip() if i < len(row) else "" for i in range(len(columns))]
        values = ", ".join(_format_cell(cell, t) for cell, t in zip(cells, types))
        statements.append(f"INSERT INTO {name} ({column_list}) VALUES ({values})")
    return statements
