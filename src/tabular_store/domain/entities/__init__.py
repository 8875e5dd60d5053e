"""Domain entities for the table store.

Exports:
    Column:
        - Column: Field definition with validation and coercion
        - SchemaError: Invalid table or column definition

    Table:
        - Table: Row store with secondary indexes and CRUD
        - Predicate: Row filter signature

    Snapshot:
        - Snapshot, TableSnapshot: Persisted database representation
        - MalformedSnapshotError: Unreadable snapshot data
"""

from tabular_store.domain.entities.column import Column, SchemaError, format_timestamp
from tabular_store.domain.entities.snapshot import (
    SNAPSHOT_VERSION,
    MalformedSnapshotError,
    Snapshot,
    TableSnapshot,
)
from tabular_store.domain.entities.table import Predicate, Table

__all__ = [
    "Column",
    "SchemaError",
    "format_timestamp",
    "Table",
    "Predicate",
    "Snapshot",
    "TableSnapshot",
    "MalformedSnapshotError",
    "SNAPSHOT_VERSION",
]
