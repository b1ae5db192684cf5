"""In-memory key-value store adapter.

A simple in-memory implementation of KeyValueStore for testing and
development. Data is not persisted across restarts.

Upgrades run against a deep copy of the store state. The copy replaces the
live state only when the upgrade callback returns normally, so a failed
upgrade leaves containers, records and version untouched.

Usage:
    store = InMemoryKeyValueStore()
    conn = store.open(1, lambda txn: txn.create_container("t", "id", True))
    conn.add("t", {"name": "a"})   # -> 1
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field

from kvsql.adapters.outbound.keys import key_order, resolve_key, validate_key
from kvsql.domain.errors import EngineError, StorageError
from kvsql.ports.outbound import (
    ContainerSpec,
    Key,
    Record,
    UpgradeCallback,
)


@dataclass
class _Container:
    spec: ContainerSpec
    records: dict[Key, Record] = field(default_factory=dict)
    key_generator: int = 1


@dataclass
class _State:
    version: int = 0
    containers: dict[str, _Container] = field(default_factory=dict)


class _MemoryHandle:
    """Record operations over one state snapshot."""

    def __init__(self, version: int) -> None:
        self._version = version
        self._closed = False

    def _state(self) -> _State:
        raise NotImplementedError

    def _container(self, name: str) -> _Container:
        self._check_open()
        container = self._state().containers.get(name)
        if container is None:
            raise StorageError(f'No container named "{name}".')
        return container

    def _check_open(self) -> None:
        if self._closed:
            raise StorageError("The connection is closed.")

    @property
    def version(self) -> int:
        return self._version

    @property
    def closed(self) -> bool:
        return self._closed

    def container_names(self) -> list[str]:
        self._check_open()
        return sorted(self._state().containers)

    def has_container(self, name: str) -> bool:
        self._check_open()
        return name in self._state().containers

    def container_spec(self, name: str) -> ContainerSpec:
        return self._container(name).spec

    def get(self, container: str, key: Key) -> Record | None:
        records = self._container(container).records
        record = records.get(validate_key(key))
        return dict(record) if record is not None else None

    def get_all(self, container: str) -> list[Record]:
        records = self._container(container).records
        return [dict(records[k]) for k in sorted(records, key=key_order)]

    def add(self, container: str, record: Record) -> Key:
        target = self._container(container)
        record = dict(record)
        key, generator = resolve_key(target.spec, record, target.key_generator)
        if key in target.records:
            raise StorageError(
                f'Key {key!r} already exists in container "{container}".'
            )
        target.records[key] = record
        target.key_generator = generator
        return key

    def put(self, container: str, record: Record) -> Key:
        target = self._container(container)
        record = dict(record)
        key, generator = resolve_key(target.spec, record, target.key_generator)
        target.records[key] = record
        target.key_generator = generator
        return key

    def delete(self, container: str, key: Key) -> bool:
        records = self._container(container).records
        return records.pop(validate_key(key), None) is not None


class InMemoryConnection(_MemoryHandle):
    """Connection to an InMemoryKeyValueStore."""

    def __init__(self, store: InMemoryKeyValueStore) -> None:
        super().__init__(store._state.version)
        self._store = store

    def _state(self) -> _State:
        return self._store._state

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._store._release(self)


class _MemoryUpgradeTransaction(_MemoryHandle):
    """Upgrade handle working on a private copy of the state."""

    def __init__(self, working: _State, old_version: int, new_version: int) -> None:
        super().__init__(new_version)
        self._working = working
        self._old_version = old_version

    def _state(self) -> _State:
        return self._working

    @property
    def old_version(self) -> int:
        return self._old_version

    def create_container(
        self, name: str, key_path: str, auto_increment: bool = False
    ) -> ContainerSpec:
        self._check_open()
        if name in self._working.containers:
            raise StorageError(f'A container named "{name}" already exists.')
        spec = ContainerSpec(name=name, key_path=key_path, auto_increment=auto_increment)
        self._working.containers[name] = _Container(spec=spec)
        return spec

    def delete_container(self, name: str) -> None:
        self._container(name)
        del self._working.containers[name]

    def close(self) -> None:
        self._closed = True


class InMemoryKeyValueStore:
    """In-memory implementation of KeyValueStore.

    Thread Safety:
        Opening and closing connections is serialized by an internal lock.
        Record operations assume a single writer, as the engine guarantees.
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._state = _State()
        self._connections: set[InMemoryConnection] = set()
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def open_connections(self) -> int:
        """Number of connections not yet closed."""
        return len(self._connections)

    def current_version(self) -> int:
        return self._state.version

    def open(
        self,
        version: int | None = None,
        upgrade: UpgradeCallback | None = None,
    ) -> InMemoryConnection:
        with self._lock:
            current = self._state.version
            target = version if version is not None else max(current, 1)
            if target < current:
                raise StorageError(
                    f"Requested version {target} is lower than the current version {current}."
                )

            if target > current:
                self._upgrade(current, target, upgrade)

            connection = InMemoryConnection(self)
            self._connections.add(connection)
            return connection

    def _upgrade(self, current: int, target: int, upgrade: UpgradeCallback | None) -> None:
        if self._connections:
            raise StorageError(
                f"Cannot upgrade to version {target} while "
                f"{len(self._connections)} connection(s) are open."
            )

        working = copy.deepcopy(self._state)
        txn = _MemoryUpgradeTransaction(working, old_version=current, new_version=target)
        try:
            if upgrade is not None:
                upgrade(txn)
        except EngineError:
            raise
        except Exception as e:
            raise StorageError(f"Upgrade to version {target} failed: {e}") from e
        finally:
            txn.close()

        working.version = target
        self._state = working

    def _release(self, connection: InMemoryConnection) -> None:
        with self._lock:
            self._connections.discard(connection)
