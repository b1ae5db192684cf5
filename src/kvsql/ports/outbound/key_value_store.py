"""Key-value store port for table storage.

This outbound port defines the contract for a versioned store made of named
containers. Each container holds records (dicts) keyed by one field of the
record, its key path. The model follows embedded object stores:

- A store has an integer version, 0 before it is first created.
- Creating or deleting containers is only legal inside a version upgrade.
  An upgrade is requested by opening the store at a higher version with an
  upgrade callback. The callback's changes and the version bump commit
  together, or not at all if the callback raises.
- An upgrade cannot start while another connection to the store is open.
- Outside upgrades a connection can read, add, overwrite and delete records
  in existing containers.

Keys are ints, floats or strings. Numbers sort before strings and 1 == 1.0.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Union

Key = Union[int, float, str]
Record = dict[str, Any]


@dataclass(frozen=True)
class ContainerSpec:
    """Structure of one container.

    Attributes:
        name: Container name (unique within the store)
        key_path: Record field holding the key
        auto_increment: Whether the store generates keys for records without one
    """

    name: str
    key_path: str
    auto_increment: bool = False


class StoreConnection(Protocol):
    """An open connection to a key-value store.

    Every operation runs to completion (or raises StorageError) before it
    returns. Operations on one connection are applied in call order.
    """

    @property
    @abstractmethod
    def version(self) -> int:
        """Store version this connection was opened at."""
        ...

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether close() has been called."""
        ...

    @abstractmethod
    def container_names(self) -> list[str]:
        """Return the names of all containers, sorted."""
        ...

    @abstractmethod
    def has_container(self, name: str) -> bool:
        """Check whether a container exists."""
        ...

    @abstractmethod
    def container_spec(self, name: str) -> ContainerSpec:
        """Return the structure of a container.

        Raises:
            StorageError: If the container does not exist.
        """
        ...

    @abstractmethod
    def get(self, container: str, key: Key) -> Record | None:
        """Return the record stored under ``key``, or None."""
        ...

    @abstractmethod
    def get_all(self, container: str) -> list[Record]:
        """Return every record in the container, in key order."""
        ...

    @abstractmethod
    def add(self, container: str, record: Record) -> Key:
        """Insert a new record.

        On an auto-incrementing container a record without a key is given
        the next generated key, which is also written into the record.

        Returns:
            The record's key.

        Raises:
            StorageError: If the key already exists, is missing or is invalid.
        """
        ...

    @abstractmethod
    def put(self, container: str, record: Record) -> Key:
        """Insert or overwrite a record. Returns its key."""
        ...

    @abstractmethod
    def delete(self, container: str, key: Key) -> bool:
        """Delete the record under ``key``. Returns True if one existed."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Further operations raise StorageError."""
        ...


class UpgradeTransaction(StoreConnection, Protocol):
    """The handle passed to an upgrade callback.

    Supports everything a connection does plus structural changes. All work
    done through it commits together with the new version number.
    """

    @property
    @abstractmethod
    def old_version(self) -> int:
        """Version before the upgrade (0 for a new store)."""
        ...

    @abstractmethod
    def create_container(
        self, name: str, key_path: str, auto_increment: bool = False
    ) -> ContainerSpec:
        """Create an empty container.

        Raises:
            StorageError: If a container with this name exists.
        """
        ...

    @abstractmethod
    def delete_container(self, name: str) -> None:
        """Delete a container and all of its records.

        Raises:
            StorageError: If the container does not exist.
        """
        ...


UpgradeCallback = Callable[[UpgradeTransaction], None]


class KeyValueStore(Protocol):
    """A named, versioned key-value store."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name."""
        ...

    @abstractmethod
    def current_version(self) -> int:
        """Return the committed version, 0 if the store was never created."""
        ...

    @abstractmethod
    def open(
        self,
        version: int | None = None,
        upgrade: UpgradeCallback | None = None,
    ) -> StoreConnection:
        """Open a connection, upgrading first if ``version`` is higher.

        Args:
            version: Version to open at. None means the current version, or 1
                for a store that does not exist yet.
            upgrade: Called with an UpgradeTransaction when the requested
                version is higher than the committed one.

        Returns:
            An open connection at the requested version.

        Raises:
            StorageError: If the version is lower than the committed one, if
                other connections are open during an upgrade, or if the
                upgrade fails. Engine errors raised by the callback propagate
                unchanged. A failed upgrade leaves the store untouched.
        """
        ...
