"""Database port: the surface the request-handling layer calls.

Inbound adapters (the REST API) depend on this protocol rather than on the
concrete Database, translating transport inputs into column definitions,
row mappings and predicates.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from tabular_store.domain.entities import Snapshot, Table


class DuplicateTableError(Exception):
    """A table with the requested name already exists."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table '{table_name}' already exists")


class TableNotFoundError(KeyError):
    """No table with the requested name exists."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(table_name)

    def __str__(self) -> str:
        return f"Table '{self.table_name}' not found"


@runtime_checkable
class DatabasePort(Protocol):
    """Protocol for a registry of named tables with snapshot persistence."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Database name; also the snapshot key."""
        ...

    @abstractmethod
    def create_table(self, name: str, columns: Sequence[Mapping[str, Any]]) -> Table:
        """Create and register a table, then schedule a snapshot.

        Args:
            name: Table name.
            columns: Ordered ``{name, type, primaryKey?, unique?}`` definitions.

        Raises:
            DuplicateTableError: If the name is taken.
            SchemaError: If a column definition is invalid.
        """
        ...

    @abstractmethod
    def drop_table(self, name: str) -> bool:
        """Remove a table; returns whether it existed."""
        ...

    @abstractmethod
    def get_table(self, name: str) -> Table | None:
        """Return the named table, or None."""
        ...

    @abstractmethod
    def require_table(self, name: str) -> Table:
        """Return the named table.

        Raises:
            TableNotFoundError: If no such table exists.
        """
        ...

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Names of all tables in creation order."""
        ...

    @abstractmethod
    def to_snapshot(self) -> Snapshot:
        """Build the full persisted representation of the current state."""
        ...

    @abstractmethod
    def get_info(self) -> dict[str, Any]:
        """Summary of tables, row counts and storage."""
        ...

    @abstractmethod
    def get_storage_info(self) -> dict[str, Any]:
        """Details of the persisted snapshot file."""
        ...

    @abstractmethod
    def get_queue_status(self) -> dict[str, Any]:
        """Pending snapshot writes and initialization state."""
        ...
