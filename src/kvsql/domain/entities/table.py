"""Table definitions held by the schema catalog.

A table's first column is its storage key. This is purely positional;
there is no explicit PRIMARY KEY flag, and a table without columns has no
usable key.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class Column:
    """A column definition. ``type`` is metadata and is never enforced."""

    name: str
    type: str

    def to_record(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Column:
        return cls(name=str(data["name"]), type=str(data.get("type", "TEXT")))


@dataclass(frozen=True)
class Table:
    """A named, ordered list of columns."""

    name: str
    columns: tuple[Column, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any sequence of columns but store a tuple
        if not isinstance(self.columns, tuple):
            object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def primary_key(self) -> str | None:
        """Name of the key column, or None for a table with no columns."""
        if not self.columns:
            return None
        return self.columns[0].name

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def renamed(self, new_name: str) -> Table:
        """Return a copy under a new name with the same columns."""
        return replace(self, name=new_name)

    def to_record(self) -> dict[str, Any]:
        """Serialize for the catalog container."""
        return {"name": self.name, "columns": [c.to_record() for c in self.columns]}

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Table:
        """Deserialize a catalog record."""
        return cls(
            name=str(data["name"]),
            columns=tuple(Column.from_record(c) for c in data.get("columns", [])),
        )


Schema = list[Table]
