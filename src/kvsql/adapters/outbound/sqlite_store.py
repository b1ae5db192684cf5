"""SQLite-backed key-value store adapter.

Implements KeyValueStore on a single SQLite database file, used purely as
an embedded transactional storage engine.

File layout:
    _containers(name, key_path, auto_increment, key_generator)
    _records(container, record_key, value)   -- value is the JSON record

The store version is kept in ``PRAGMA user_version``. An upgrade runs inside
one ``BEGIN IMMEDIATE`` transaction together with the version bump and is
rolled back as a whole if the callback raises.

``record_key`` is declared without a type, so SQLite keeps integers, reals
and text as given. Integers and reals compare numerically and sort before
text, the same key order the in-memory adapter uses.

Usage:
    store = SqliteKeyValueStore("/path/to/studio.db")
    conn = store.open()
"""

from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from kvsql.adapters.outbound.keys import resolve_key, validate_key
from kvsql.domain.errors import EngineError, StorageError
from kvsql.ports.outbound import ContainerSpec, Key, Record, UpgradeCallback

_SCHEMA_DDL = (
    """
    CREATE TABLE IF NOT EXISTS _containers (
        name TEXT PRIMARY KEY,
        key_path TEXT NOT NULL,
        auto_increment INTEGER NOT NULL,
        key_generator INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS _records (
        container TEXT NOT NULL,
        record_key NOT NULL,
        value TEXT NOT NULL,
        PRIMARY KEY (container, record_key)
    ) WITHOUT ROWID
    """,
)


def _encode(record: Record) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))


def _decode(value: str) -> Record:
    return json.loads(value)


class _SqliteHandle:
    """Record operations over one sqlite3 connection."""

    def __init__(self, conn: sqlite3.Connection, version: int) -> None:
        self._conn = conn
        self._version = version
        self._closed = False

    @property
    def version(self) -> int:
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("The connection is closed.")

    @contextmanager
    def _atomic(self) -> Iterator[sqlite3.Connection]:
        """Group statements into one transaction unless one is already open."""
        self._check_open()
        conn = self._conn
        if conn.in_transaction:
            yield conn
            return
        conn.execute("BEGIN")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def _execute(self, sql: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        self._check_open()
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(f"SQLite error: {e}") from e

    def _spec_row(self, name: str) -> tuple[ContainerSpec, int]:
        row = self._execute(
            "SELECT key_path, auto_increment, key_generator FROM _containers WHERE name = ?",
            (name,),
        ).fetchone()
        if row is None:
            raise StorageError(f'No container named "{name}".')
        key_path, auto_increment, generator = row
        return ContainerSpec(name=name, key_path=key_path, auto_increment=bool(auto_increment)), generator

    def container_names(self) -> list[str]:
        rows = self._execute("SELECT name FROM _containers ORDER BY name").fetchall()
        return [r[0] for r in rows]

    def has_container(self, name: str) -> bool:
        row = self._execute("SELECT 1 FROM _containers WHERE name = ?", (name,)).fetchone()
        return row is not None

    def container_spec(self, name: str) -> ContainerSpec:
        return self._spec_row(name)[0]

    def get(self, container: str, key: Key) -> Record | None:
        self._spec_row(container)
        row = self._execute(
            "SELECT value FROM _records WHERE container = ? AND record_key = ?",
            (container, validate_key(key)),
        ).fetchone()
        return _decode(row[0]) if row is not None else None

    def get_all(self, container: str) -> list[Record]:
        self._spec_row(container)
        rows = self._execute(
            "SELECT value FROM _records WHERE container = ? ORDER BY record_key",
            (container,),
        ).fetchall()
        return [_decode(r[0]) for r in rows]

    def _write(self, container: str, record: Record, replace: bool) -> Key:
        verb = "INSERT OR REPLACE" if replace else "INSERT"
        try:
            with self._atomic() as conn:
                spec, generator = self._spec_row(container)
                record = dict(record)
                key, new_generator = resolve_key(spec, record, generator)
                conn.execute(
                    f"{verb} INTO _records (container, record_key, value) VALUES (?, ?, ?)",
                    (container, key, _encode(record)),
                )
                if new_generator != generator:
                    conn.execute(
                        "UPDATE _containers SET key_generator = ? WHERE name = ?",
                        (new_generator, container),
                    )
        except sqlite3.IntegrityError as e:
            raise StorageError(
                f'Key {record.get(spec.key_path)!r} already exists in container "{container}".'
            ) from e
        except (sqlite3.Error, OverflowError, TypeError, ValueError) as e:
            raise StorageError(f'Write to "{container}" failed: {e}') from e
        return key

    def add(self, container: str, record: Record) -> Key:
        return self._write(container, record, replace=False)

    def put(self, container: str, record: Record) -> Key:
        return self._write(container, record, replace=True)

    def delete(self, container: str, key: Key) -> bool:
        self._spec_row(container)
        cursor = self._execute(
            "DELETE FROM _records WHERE container = ? AND record_key = ?",
            (container, validate_key(key)),
        )
        return cursor.rowcount > 0


class SqliteConnection(_SqliteHandle):
    """Connection to a SqliteKeyValueStore."""

    def __init__(self, store: SqliteKeyValueStore, conn: sqlite3.Connection, version: int) -> None:
        super().__init__(conn, version)
        self._store = store

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._conn.close()
            self._store._release(self)


class _SqliteUpgradeTransaction(_SqliteHandle):
    """Upgrade handle sharing the upgrading connection's open transaction."""

    def __init__(self, conn: sqlite3.Connection, old_version: int, new_version: int) -> None:
        super().__init__(conn, new_version)
        self._old_version = old_version

    @property
    def old_version(self) -> int:
        return self._old_version

    def create_container(
        self, name: str, key_path: str, auto_increment: bool = False
    ) -> ContainerSpec:
        if self.has_container(name):
            raise StorageError(f'A container named "{name}" already exists.')
        self._execute(
            "INSERT INTO _containers (name, key_path, auto_increment) VALUES (?, ?, ?)",
            (name, key_path, int(auto_increment)),
        )
        return ContainerSpec(name=name, key_path=key_path, auto_increment=auto_increment)

    def delete_container(self, name: str) -> None:
        self._spec_row(name)
        self._execute("DELETE FROM _records WHERE container = ?", (name,))
        self._execute("DELETE FROM _containers WHERE name = ?", (name,))

    def close(self) -> None:
        self._closed = True


class SqliteKeyValueStore:
    """SQLite file implementation of KeyValueStore.

    Attributes:
        path: Database file location
    """

    def __init__(self, path: str | Path, name: str | None = None) -> None:
        self._path = Path(path)
        self._name = name or self._path.stem
        self._connections: set[SqliteConnection] = set()
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def path(self) -> Path:
        return self._path

    @property
    def open_connections(self) -> int:
        """Number of connections not yet closed."""
        return len(self._connections)

    def _connect(self) -> sqlite3.Connection:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # Autocommit mode; transactions are opened explicitly
            return sqlite3.connect(
                str(self._path), isolation_level=None, check_same_thread=False
            )
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Cannot open store at {self._path}: {e}") from e

    @staticmethod
    def _read_version(conn: sqlite3.Connection) -> int:
        return int(conn.execute("PRAGMA user_version").fetchone()[0])

    def current_version(self) -> int:
        if not self._path.exists():
            return 0
        conn = self._connect()
        try:
            return self._read_version(conn)
        finally:
            conn.close()

    def open(
        self,
        version: int | None = None,
        upgrade: UpgradeCallback | None = None,
    ) -> SqliteConnection:
        with self._lock:
            conn = self._connect()
            try:
                current = self._read_version(conn)
                target = version if version is not None else max(current, 1)
                if target < current:
                    raise StorageError(
                        f"Requested version {target} is lower than the current version {current}."
                    )
                if target > current:
                    self._upgrade(conn, current, target, upgrade)
            except BaseException:
                conn.close()
                raise

            connection = SqliteConnection(self, conn, target)
            self._connections.add(connection)
            return connection

    def _upgrade(
        self,
        conn: sqlite3.Connection,
        current: int,
        target: int,
        upgrade: UpgradeCallback | None,
    ) -> None:
        if self._connections:
            raise StorageError(
                f"Cannot upgrade to version {target} while "
                f"{len(self._connections)} connection(s) are open."
            )

        txn = _SqliteUpgradeTransaction(conn, old_version=current, new_version=target)
        try:
            conn.execute("BEGIN IMMEDIATE")
            for ddl in _SCHEMA_DDL:
                conn.execute(ddl)
            if upgrade is not None:
                upgrade(txn)
            # PRAGMA does not accept bound parameters
            conn.execute(f"PRAGMA user_version = {int(target)}")
            conn.execute("COMMIT")
        except BaseException as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            if isinstance(e, (EngineError, KeyboardInterrupt, SystemExit)):
                raise
            raise StorageError(f"Upgrade to version {target} failed: {e}") from e
        finally:
            txn.close()

    def _release(self, connection: SqliteConnection) -> None:
        with self._lock:
            self._connections.discard(connection)
