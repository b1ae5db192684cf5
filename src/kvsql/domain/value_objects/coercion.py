"""Conversion between SQL literal text and stored values.

Stored values are plain Python scalars: ``None``, ``bool``, ``int``,
``float`` and ``str``. Column types are declarative only, so coercion never
consults a column definition; the literal's own shape decides its type.

Rules for ``parse_literal``:
    - ``'...'`` or ``"..."``  -> str (a doubled quote character is a literal quote)
    - ``NULL`` (any case)     -> None
    - a complete number       -> int when written without a decimal point and whole, else float
    - anything else           -> the trimmed text, as an opaque string
"""

from __future__ import annotations

import math
import re
from enum import Enum
from typing import Union

Value = Union[None, bool, int, float, str]

_INTEGER_RE = re.compile(r"^[+-]?\d+$")
_REAL_RE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$")

QUOTE_CHARS = ("'", '"')


class ColumnType(str, Enum):
    """Column types the engine knows by name.

    Any other upper-cased type name is accepted verbatim in a column
    definition; this enum only names the ones the engine produces itself.
    """

    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    VARCHAR = "VARCHAR"
    CHAR = "CHAR"
    NUMERIC = "NUMERIC"


def unquote(text: str) -> str | None:
    """Strip one pair of matching quotes and collapse doubled inner quotes.

    Returns None when ``text`` is not a quoted span.
    """
    if len(text) >= 2 and text[0] in QUOTE_CHARS and text[-1] == text[0]:
        quote = text[0]
        return text[1:-1].replace(quote * 2, quote)
    return None


def parse_number(text: str) -> int | float | None:
    """Parse ``text`` as a number, or return None if it is not one entirely."""
    if _INTEGER_RE.match(text):
        return int(text)
    if _REAL_RE.match(text):
        number = float(text)
        # "1e3" is a whole number written without a decimal point
        if "." not in text and number.is_integer():
            return int(number)
        return number
    return None


def parse_literal(text: str) -> Value:
    """Convert SQL literal text to a stored value.

    Args:
        text: Literal text as written in the statement.

    Returns:
        The coerced value.

    Example:
        >>> parse_literal("'O''Brien'")
        "O'Brien"
        >>> parse_literal("42"), parse_literal("4.5"), parse_literal("null")
        (42, 4.5, None)
    """
    trimmed = text.strip()

    quoted = unquote(trimmed)
    if quoted is not None:
        return quoted

    if trimmed.upper() == "NULL":
        return None

    number = parse_number(trimmed)
    if number is not None:
        return number

    return trimmed


def format_literal(value: Value) -> str:
    """Render a stored value as SQL literal text.

    Strings are single-quoted with embedded single quotes doubled, so
    ``parse_literal(format_literal(v)) == v`` for every finite value.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value):
            return repr(value)
        # inf/nan have no numeric literal form
        return format_literal(str(value))
    return "'" + str(value).replace("'", "''") + "'"


def infer_column_type(value: Value) -> str:
    """Infer a declarative column type from a coerced literal."""
    if isinstance(value, bool):
        return ColumnType.TEXT.value
    if isinstance(value, int):
        return ColumnType.INTEGER.value
    if isinstance(value, float):
        return ColumnType.REAL.value
    return ColumnType.TEXT.value
