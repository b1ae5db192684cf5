"""Statement recognizer for the engine's SQL dialect.

Raw statement text is tokenized with sqlglot's tokenizer and then parsed by
a small recursive-descent parser into one of six statement dataclasses.
Keywords match case-insensitively while identifiers and literals keep their
case. A trailing ``;`` is ignored.

Supported statements:
    - CREATE TABLE name (col type, ...)
    - CREATE TABLE name AS SELECT <literal AS alias>, ... [UNION ALL SELECT <literal>, ...]*
    - DROP TABLE name
    - SELECT <cols|*> FROM table [WHERE col = literal]
    - INSERT INTO table (cols) VALUES (vals)
    - DELETE FROM table [WHERE col = literal]

Table and column names may be double-quoted or backticked. In value
position a double-quoted span is a string, like a single-quoted one.

A WHERE clause is recognized only as a single ``identifier = literal``
equality with a quoted string or a number. Any other clause (AND/OR,
ranges, other operators) is treated as absent; see parse_where_clause.

References:
    - sqlglot tokenizer: https://sqlglot.com/sqlglot/tokens.html
"""

from __future__ import annotations

import re
from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar

from sqlglot.errors import TokenError
from sqlglot.tokens import Token, Tokenizer, TokenType

from kvsql.domain.entities import Column, Table
from kvsql.domain.errors import (
    ColumnCountMismatchError,
    ParseError,
    SchemaError,
    UnsupportedStatementError,
)
from kvsql.domain.value_objects import (
    Value,
    format_literal,
    infer_column_type,
    parse_literal,
)

_WORD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


class StatementType(Enum):
    """Types of supported statements."""

    CREATE_TABLE_AS_SELECT = "create_table_as_select"
    CREATE_TABLE = "create_table"
    DROP_TABLE = "drop_table"
    SELECT = "select"
    INSERT = "insert"
    DELETE = "delete"


@dataclass(frozen=True)
class WherePredicate:
    """A single ``column = literal`` predicate."""

    column: str
    value: Value

    def __str__(self) -> str:
        return f"{self.column} = {format_literal(self.value)}"


@dataclass(frozen=True)
class SelectExpression:
    """One item of a literal SELECT list, e.g. ``'x' AS name``."""

    value: Value
    alias: str | None = None
    text: str = ""


@dataclass(frozen=True)
class Statement(ABC):
    """Base class for parsed statements."""

    statement_type: ClassVar[StatementType]
    # DDL changes which containers exist and so needs a migration
    is_ddl: ClassVar[bool] = False


@dataclass(frozen=True)
class CreateTableAsSelect(Statement):
    """CREATE TABLE name AS SELECT ... [UNION ALL SELECT ...]*

    The first part names and types the columns; every part contributes one
    row. Counts and aliases are validated by the parser.
    """

    statement_type: ClassVar[StatementType] = StatementType.CREATE_TABLE_AS_SELECT
    is_ddl: ClassVar[bool] = True

    table_name: str
    select_parts: tuple[tuple[SelectExpression, ...], ...]

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(
            Column(name=str(expr.alias), type=infer_column_type(expr.value))
            for expr in self.select_parts[0]
        )

    @property
    def table(self) -> Table:
        return Table(name=self.table_name, columns=self.columns)

    @property
    def rows(self) -> list[dict[str, Value]]:
        names = [c.name for c in self.columns]
        return [
            {name: expr.value for name, expr in zip(names, part)}
            for part in self.select_parts
        ]


@dataclass(frozen=True)
class CreateTable(Statement):
    """CREATE TABLE name (col type, ...)"""

    statement_type: ClassVar[StatementType] = StatementType.CREATE_TABLE
    is_ddl: ClassVar[bool] = True

    table_name: str
    columns: tuple[Column, ...] = field(default_factory=tuple)

    @property
    def table(self) -> Table:
        return Table(name=self.table_name, columns=self.columns)


@dataclass(frozen=True)
class DropTable(Statement):
    """DROP TABLE name"""

    statement_type: ClassVar[StatementType] = StatementType.DROP_TABLE
    is_ddl: ClassVar[bool] = True

    table_name: str


@dataclass(frozen=True)
class Select(Statement):
    """SELECT <cols|*> FROM table [WHERE ...]"""

    statement_type: ClassVar[StatementType] = StatementType.SELECT

    columns: tuple[str, ...]
    table_name: str
    where: WherePredicate | None = None
    where_text: str | None = None

    @property
    def is_star(self) -> bool:
        return self.columns == ("*",)


@dataclass(frozen=True)
class Insert(Statement):
    """INSERT INTO table (cols) VALUES (vals)"""

    statement_type: ClassVar[StatementType] = StatementType.INSERT

    table_name: str
    columns: tuple[str, ...]
    values: tuple[Value, ...]


@dataclass(frozen=True)
class Delete(Statement):
    """DELETE FROM table [WHERE ...]"""

    statement_type: ClassVar[StatementType] = StatementType.DELETE

    table_name: str
    where: WherePredicate | None = None
    where_text: str | None = None


class _StudioTokenizer(Tokenizer):
    """Default sqlglot tokenizer that also accepts backticked identifiers."""

    QUOTES = ["'"]
    IDENTIFIERS = ['"', "`"]


def _tokenize(sql: str) -> list[Token]:
    try:
        return _StudioTokenizer().tokenize(sql)
    except TokenError as e:
        raise ParseError(f"Could not tokenize statement: {e}", sql) from e


def _render(tokens: list[Token]) -> str:
    """Rebuild readable SQL text from tokens, for messages and clause text."""
    out = ""
    prev: list[str] = []
    for tok in tokens:
        if tok.token_type == TokenType.STRING:
            text = format_literal(tok.text)
        elif tok.token_type == TokenType.IDENTIFIER:
            text = '"' + tok.text.replace('"', '""') + '"'
        else:
            text = tok.text
        # a sign directly after an operator or opening binds to the number
        is_sign = bool(prev) and prev[-1] in ("-", "+") and (
            len(prev) == 1 or prev[-2] in ("=", "(", ",")
        )
        if out and not is_sign and text not in (",", ")") and prev[-1] != "(":
            out += " "
        out += text
        prev.append(text)
    return out


def _is_word(tok: Token) -> bool:
    if tok.token_type == TokenType.STRING:
        return False
    return tok.token_type in (TokenType.VAR, TokenType.IDENTIFIER) or bool(
        _WORD_RE.match(tok.text)
    )


def _parse_predicate(tokens: list[Token]) -> WherePredicate | None:
    """Match exactly ``identifier = literal`` or return None."""
    if len(tokens) < 3 or not _is_word(tokens[0]) or tokens[1].text != "=":
        return None
    column = tokens[0].text
    rest = tokens[2:]

    if len(rest) == 1 and rest[0].token_type in (TokenType.STRING, TokenType.IDENTIFIER):
        return WherePredicate(column=column, value=rest[0].text)

    sign = ""
    if len(rest) == 2 and rest[0].text in ("-", "+"):
        sign = rest[0].text
        rest = rest[1:]
    if len(rest) == 1 and rest[0].token_type == TokenType.NUMBER:
        value = parse_literal(sign + rest[0].text)
        if isinstance(value, (int, float)):
            return WherePredicate(column=column, value=value)
    return None


def parse_where_clause(text: str | None) -> WherePredicate | None:
    """Recognize a WHERE clause consisting of one equality predicate.

    Args:
        text: Clause text without the WHERE keyword.

    Returns:
        The predicate, or None when the text is empty or has any other shape
        (compound predicates, ranges, non-equality operators, bare words).

    Example:
        >>> parse_where_clause("id = 1")
        WherePredicate(column='id', value=1)
        >>> parse_where_clause("id = 1 AND name = 'x'") is None
        True
    """
    if not text or not text.strip():
        return None
    try:
        tokens = _tokenize(text)
    except ParseError:
        return None
    return _parse_predicate(tokens)


def split_statements(script: str) -> list[str]:
    """Split a script on ``;`` outside quotes and comments.

    Comments are dropped. Returns the non-empty statements, stripped,
    without their terminators.
    """
    statements: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0
    n = len(script)
    while i < n:
        ch = script[i]
        if quote is not None:
            current.append(ch)
            if ch == quote:
                if i + 1 < n and script[i + 1] == quote:
                    current.append(script[i + 1])
                    i += 1
                else:
                    quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
            current.append(ch)
        elif script.startswith("--", i):
            end = script.find("\n", i)
            i = n if end == -1 else end
            continue
        elif script.startswith("/*", i):
            end = script.find("*/", i + 2)
            current.append(" ")
            i = n if end == -1 else end + 2
            continue
        elif ch == ";":
            statements.append("".join(current))
            current = []
        else:
            current.append(ch)
        i += 1
    statements.append("".join(current))

    return [s.strip() for s in statements if s.strip()]


class _TokenStream:
    """Cursor over a statement's tokens."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def peek(self) -> Token | None:
        return None if self.at_end() else self._tokens[self._pos]

    def peek_text(self) -> str:
        tok = self.peek()
        # multi-word keywords (e.g. UNION ALL) may arrive as one token
        return "" if tok is None else " ".join(tok.text.split()).upper()

    def advance(self) -> Token:
        tok = self.peek()
        if tok is None:
            raise ParseError("Unexpected end of statement.")
        self._pos += 1
        return tok

    def match(self, *words: str) -> bool:
        """Consume the next token if its text is one of ``words``."""
        if self.peek_text() in words and not self._is_quoted():
            self._pos += 1
            return True
        return False

    def _is_quoted(self) -> bool:
        tok = self.peek()
        return tok is not None and tok.token_type in (TokenType.STRING, TokenType.IDENTIFIER)

    def expect(self, word: str, context: str) -> Token:
        if self.peek_text() != word or self._is_quoted():
            raise ParseError(
                f'Invalid {context} syntax: expected "{word}" near "{self.remaining_text() or "end of statement"}".',
                self.remaining_text(),
            )
        return self.advance()

    def remaining(self) -> list[Token]:
        return self._tokens[self._pos :]

    def remaining_text(self) -> str:
        return _render(self.remaining())

    def consume_rest(self) -> list[Token]:
        rest = self.remaining()
        self._pos = len(self._tokens)
        return rest


class SQLParser:
    """Recursive-descent parser for the supported statement subset.

    Example:
        >>> parser = SQLParser()
        >>> parser.parse("SELECT * FROM users WHERE id = 1")
        Select(columns=('*',), table_name='users', where=WherePredicate(column='id', value=1), where_text='id = 1')
    """

    def parse(self, sql: str) -> Statement:
        """Parse one statement.

        Args:
            sql: Statement text, optionally terminated by ``;``.

        Returns:
            The parsed statement.

        Raises:
            UnsupportedStatementError: If the leading keyword is not supported.
            ParseError: If the text does not follow the statement's grammar.
            SchemaError: If a CREATE TABLE AS SELECT lacks aliases or its
                UNION ALL parts disagree on the column count.
        """
        tokens = _tokenize(sql)
        while tokens and tokens[-1].token_type == TokenType.SEMICOLON:
            tokens.pop()
        if not tokens:
            raise ParseError("Empty SQL statement")
        if any(t.token_type == TokenType.SEMICOLON for t in tokens):
            raise ParseError("Multiple statements not supported", sql.strip())

        stream = _TokenStream(tokens)
        leading = tokens[0].text
        keyword = leading.upper()

        if keyword == "CREATE" and self._second_is(tokens, "TABLE"):
            return self._parse_create(stream)
        if keyword == "DROP" and self._second_is(tokens, "TABLE"):
            return self._parse_drop(stream)
        if keyword == "SELECT":
            return self._parse_select(stream)
        if keyword == "INSERT" and self._second_is(tokens, "INTO"):
            return self._parse_insert(stream)
        if keyword == "DELETE" and self._second_is(tokens, "FROM"):
            return self._parse_delete(stream)
        raise UnsupportedStatementError(leading)

    @staticmethod
    def _second_is(tokens: list[Token], word: str) -> bool:
        return len(tokens) > 1 and tokens[1].text.upper() == word

    def _identifier(self, stream: _TokenStream, what: str, context: str) -> str:
        tok = stream.peek()
        if tok is None:
            raise ParseError(f"Invalid {context} syntax: missing {what}.")
        if tok.token_type == TokenType.STRING or _is_word(tok):
            stream.advance()
            return tok.text
        raise ParseError(
            f'Invalid {context} syntax: expected {what} near "{stream.remaining_text()}".',
            stream.remaining_text(),
        )

    def _expect_end(self, stream: _TokenStream, context: str) -> None:
        if not stream.at_end():
            rest = stream.remaining_text()
            raise ParseError(f'Invalid {context} syntax near "{rest}".', rest)

    def _literal(self, stream: _TokenStream, context: str) -> tuple[Value, str]:
        """Parse one literal value, returning it with its rendered text."""
        tok = stream.peek()
        if tok is None:
            raise ParseError(f"Invalid {context} syntax: missing value.")

        if tok.token_type in (TokenType.STRING, TokenType.IDENTIFIER):
            stream.advance()
            return tok.text, _render([tok])

        if tok.text in ("-", "+"):
            stream.advance()
            number = stream.peek()
            if number is None or number.token_type != TokenType.NUMBER:
                raise ParseError(
                    f'Invalid {context} syntax: expected a number after "{tok.text}".',
                    stream.remaining_text(),
                )
            stream.advance()
            return parse_literal(tok.text + number.text), tok.text + number.text

        if tok.token_type == TokenType.NUMBER or tok.token_type == TokenType.NULL or _is_word(tok):
            stream.advance()
            return parse_literal(tok.text), tok.text

        raise ParseError(
            f'Invalid {context} syntax: unexpected "{tok.text}".', stream.remaining_text()
        )

    def _parse_create(self, stream: _TokenStream) -> Statement:
        stream.expect("CREATE", "CREATE TABLE")
        stream.expect("TABLE", "CREATE TABLE")
        table_name = self._identifier(stream, "a table name", "CREATE TABLE")

        if stream.match("AS"):
            return self._parse_create_as_select(stream, table_name)

        stream.expect("(", "CREATE TABLE")
        columns: list[Column] = []
        if not stream.match(")"):
            while True:
                columns.append(self._column_def(stream))
                if stream.match(")"):
                    break
                stream.expect(",", "CREATE TABLE")
        self._expect_end(stream, "CREATE TABLE")
        return CreateTable(table_name=table_name, columns=tuple(columns))

    def _column_def(self, stream: _TokenStream) -> Column:
        name = self._identifier(stream, "a column name", "CREATE TABLE")
        tok = stream.peek()
        if tok is None or tok.text in (",", ")") or not _is_word(tok):
            raise ParseError(
                f'Invalid CREATE TABLE syntax: column "{name}" has no type.', name
            )
        type_name = stream.advance().text.upper()

        # Type parameters, e.g. VARCHAR(255) or NUMERIC(10, 2)
        if stream.peek_text() == "(":
            stream.advance()
            params: list[str] = []
            while not stream.match(")"):
                tok = stream.advance()
                if tok.text != ",":
                    params.append(tok.text)
            type_name += f"({', '.join(params)})"

        # Column constraints (PRIMARY KEY, NOT NULL, ...) carry no meaning here
        depth = 0
        while not stream.at_end():
            text = stream.peek_text()
            if depth == 0 and text in (",", ")"):
                break
            if text == "(":
                depth += 1
            elif text == ")":
                depth -= 1
            stream.advance()

        return Column(name=name, type=type_name)

    def _select_list(self, stream: _TokenStream) -> tuple[SelectExpression, ...]:
        expressions: list[SelectExpression] = []
        while True:
            value, text = self._literal(stream, "CREATE TABLE AS")
            alias = None
            if stream.match("AS"):
                alias = self._identifier(stream, "an alias", "CREATE TABLE AS")
                text = f"{text} AS {alias}"
            expressions.append(SelectExpression(value=value, alias=alias, text=text))
            if not stream.match(","):
                return tuple(expressions)

    def _parse_create_as_select(self, stream: _TokenStream, table_name: str) -> Statement:
        parts: list[tuple[SelectExpression, ...]] = []
        while True:
            stream.expect("SELECT", "CREATE TABLE AS")
            parts.append(self._select_list(stream))
            if stream.at_end():
                break
            if stream.match("UNION ALL"):
                continue
            if not stream.match("UNION"):
                rest = stream.remaining_text()
                raise ParseError(
                    "CREATE TABLE AS supports only literal SELECT lists joined by "
                    f'UNION ALL; unexpected "{rest}".',
                    rest,
                )
            stream.expect("ALL", "CREATE TABLE AS")

        first = parts[0]
        for expr in first:
            if expr.alias is None:
                raise SchemaError(
                    "The first SELECT in a CREATE TABLE AS statement must use "
                    f'aliases (AS) for all columns. Invalid definition: "{expr.text}"'
                )
        for part in parts[1:]:
            if len(part) != len(first):
                raise ColumnCountMismatchError(expected=len(first), actual=len(part))

        return CreateTableAsSelect(table_name=table_name, select_parts=tuple(parts))

    def _parse_drop(self, stream: _TokenStream) -> Statement:
        stream.expect("DROP", "DROP TABLE")
        stream.expect("TABLE", "DROP TABLE")
        table_name = self._identifier(stream, "a table name", "DROP TABLE")
        self._expect_end(stream, "DROP TABLE")
        return DropTable(table_name=table_name)

    def _where(self, stream: _TokenStream) -> tuple[WherePredicate | None, str | None]:
        if stream.at_end():
            return None, None
        stream.expect("WHERE", "WHERE")
        clause = stream.consume_rest()
        if not clause:
            raise ParseError("Invalid WHERE syntax: missing condition.", "WHERE")
        return _parse_predicate(clause), _render(clause)

    def _parse_select(self, stream: _TokenStream) -> Statement:
        context = "SELECT"
        stream.expect("SELECT", context)
        columns: list[str] = []
        if stream.match("*"):
            columns.append("*")
        else:
            while True:
                columns.append(self._identifier(stream, "a column name", context))
                if not stream.match(","):
                    break
        stream.expect("FROM", context)
        table_name = self._identifier(stream, "a table name", context)
        where, where_text = self._where(stream)
        return Select(
            columns=tuple(columns), table_name=table_name, where=where, where_text=where_text
        )

    def _parse_insert(self, stream: _TokenStream) -> Statement:
        context = "INSERT"
        stream.expect("INSERT", context)
        stream.expect("INTO", context)
        table_name = self._identifier(stream, "a table name", context)

        stream.expect("(", context)
        columns: list[str] = []
        while True:
            columns.append(self._identifier(stream, "a column name", context))
            if stream.match(")"):
                break
            stream.expect(",", context)

        stream.expect("VALUES", context)
        stream.expect("(", context)
        values: list[Value] = []
        while True:
            values.append(self._literal(stream, context)[0])
            if stream.match(")"):
                break
            stream.expect(",", context)
        self._expect_end(stream, context)

        return Insert(table_name=table_name, columns=tuple(columns), values=tuple(values))

    def _parse_delete(self, stream: _TokenStream) -> Statement:
        context = "DELETE"
        stream.expect("DELETE", context)
        stream.expect("FROM", context)
        table_name = self._identifier(stream, "a table name", context)
        where, where_text = self._where(stream)
        return Delete(table_name=table_name, where=where, where_text=where_text)
