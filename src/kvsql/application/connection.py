"""Connection ownership for one engine.

The ConnectionManager holds at most one live connection to the store. It is
opened on first use and only closed and reopened while a migration runs.
A re-entrant lock serializes statements with migrations: a statement that
arrives while the connection is closed for an upgrade waits for the reopen.

Usage:
    manager = ConnectionManager(store)
    with manager.session() as conn:
        conn.get_all("employees")
    manager.upgrade(CreateTableMigration(table))
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from kvsql.domain.errors import StorageError
from kvsql.infrastructure.logging import get_logger
from kvsql.ports.outbound import KeyValueStore, StoreConnection, UpgradeCallback

logger = get_logger("connection")


class ConnectionManager:
    """Owns the live connection to a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._connection: StoreConnection | None = None
        self._lock = threading.RLock()

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def version(self) -> int:
        """Version of the live connection, or of the store when closed."""
        with self._lock:
            if self.is_open:
                return self._connection.version
            return self._store.current_version()

    def initialize(self, bootstrap: UpgradeCallback | None = None) -> bool:
        """Open the store, creating it first if it does not exist.

        Args:
            bootstrap: Upgrade run only when the store is being created

        Returns:
            True if the store was created by this call.
        """
        with self._lock:
            if self.is_open:
                return False
            fresh = self._store.current_version() == 0
            self._connection = self._store.open(upgrade=bootstrap if fresh else None)
            logger.info(
                "store_opened",
                store=self._store.name,
                version=self._connection.version,
                created=fresh,
            )
            return fresh

    def connection(self) -> StoreConnection:
        """The live connection, opening the store at its current version if needed."""
        with self._lock:
            if not self.is_open:
                self._connection = self._store.open()
                logger.debug(
                    "store_reconnected", store=self._store.name, version=self._connection.version
                )
            return self._connection

    @contextmanager
    def session(self) -> Iterator[StoreConnection]:
        """Hold the lock for the duration of one statement."""
        with self._lock:
            yield self.connection()

    def upgrade(self, apply: UpgradeCallback) -> int:
        """Run ``apply`` inside an upgrade to the next store version.

        The live connection is closed first because the store refuses to
        upgrade while connections are open. On success the connection opened
        by the upgrade becomes the live one. On failure the store is left at
        its previous version and the next statement reconnects.

        Returns:
            The new store version.
        """
        with self._lock:
            self._close_connection()
            from_version = self._store.current_version()
            to_version = from_version + 1
            try:
                self._connection = self._store.open(to_version, apply)
            except StorageError:
                logger.warning(
                    "store_upgrade_failed",
                    store=self._store.name,
                    from_version=from_version,
                    to_version=to_version,
                )
                raise
            return to_version

    def _close_connection(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._close_connection()
                logger.info("store_closed", store=self._store.name)
