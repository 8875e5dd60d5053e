"""Snapshot: the persisted form of a whole database.

A snapshot is the only unit of durability. Its document layout is::

    {
        "name": "<database name>",
        "version": "1.0",
        "timestamp": "2024-01-15T09:30:00.000Z",
        "tables": [
            {
                "name": "<table>",
                "schema": {"name": ..., "columns": [...], "rowCount": N},
                "rows": [{...}, ...]
            }
        ]
    }

Parsing is lenient at table granularity: ``Snapshot.from_dict`` rejects a
document whose envelope is unusable, while ``TableSnapshot.from_dict``
rejects a single table so the caller can skip it and keep the others.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from tabular_store.domain.entities.column import format_timestamp
from tabular_store.domain.value_objects import Row


SNAPSHOT_VERSION = "1.0"


class MalformedSnapshotError(ValueError):
    """Persisted snapshot data cannot be interpreted."""
    pass


@dataclass
class TableSnapshot:
    """Schema and full row set of one table."""

    name: str
    schema: dict[str, Any]
    rows: list[Row] = field(default_factory=list)

    @property
    def columns(self) -> list[dict[str, Any]]:
        return self.schema.get("columns", [])

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "schema": self.schema, "rows": self.rows}

    @classmethod
    def from_dict(cls, data: Any) -> TableSnapshot:
        """Parse one table entry.

        Raises:
            MalformedSnapshotError: If the entry lacks a name, a column list
                or has a non-list row set.
        """
        if not isinstance(data, Mapping):
            raise MalformedSnapshotError(f"Table entry is not an object: {type(data).__name__}")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedSnapshotError("Table entry has no name")

        schema = data.get("schema")
        if not isinstance(schema, Mapping) or not isinstance(schema.get("columns"), list):
            raise MalformedSnapshotError(f"Table '{name}' has no column list")
        if not all(isinstance(c, Mapping) for c in schema["columns"]):
            raise MalformedSnapshotError(f"Table '{name}' has a non-object column entry")

        rows = data.get("rows", [])
        if rows is None:
            rows = []
        if not isinstance(rows, list):
            raise MalformedSnapshotError(f"Table '{name}' rows are not a list")

        return cls(name=name, schema=dict(schema), rows=list(rows))


@dataclass
class Snapshot:
    """Point-in-time serialization of a database."""

    name: str
    tables: list[TableSnapshot] = field(default_factory=list)
    version: str = SNAPSHOT_VERSION
    timestamp: str = field(
        default_factory=lambda: format_timestamp(datetime.now(timezone.utc))
    )

    @property
    def table_names(self) -> list[str]:
        return [table.name for table in self.tables]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "timestamp": self.timestamp,
            "tables": [table.to_dict() for table in self.tables],
        }

    @classmethod
    def from_dict(cls, data: Any) -> tuple[Snapshot, list[tuple[Any, MalformedSnapshotError]]]:
        """Parse a snapshot document.

        Returns:
            The snapshot holding every well-formed table, and a list of
            (raw entry, error) pairs for the tables that were skipped.

        Raises:
            MalformedSnapshotError: If the document itself is not a snapshot.
        """
        if not isinstance(data, Mapping):
            raise MalformedSnapshotError(f"Snapshot is not an object: {type(data).__name__}")

        raw_tables = data.get("tables")
        if not isinstance(raw_tables, list):
            raise MalformedSnapshotError("Snapshot has no table list")

        tables: list[TableSnapshot] = []
        skipped: list[tuple[Any, MalformedSnapshotError]] = []
        for entry in raw_tables:
            try:
                tables.append(TableSnapshot.from_dict(entry))
            except MalformedSnapshotError as e:
                skipped.append((entry, e))

        snapshot = cls(
            name=str(data.get("name", "")),
            tables=tables,
            version=str(data.get("version", SNAPSHOT_VERSION)),
            timestamp=str(data.get("timestamp", "")),
        )
        return snapshot, skipped
