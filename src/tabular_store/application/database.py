"""Database - registry of named tables with write-behind snapshots.

The Database owns its tables, listens for their committed mutations and
turns each one into a full snapshot handed to the persistence queue. On
construction it restores whatever snapshot its store holds under the
database name.

Usage:
    from tabular_store.application import Database

    with Database("shop", data_dir="/path/to/data") as db:
        users = db.create_table("users", [
            {"name": "id", "type": "INTEGER", "primaryKey": True},
            {"name": "email", "type": "STRING", "unique": True},
        ])
        users.insert({"id": 1, "email": "a@x.com"})

Restoration:
    - Missing snapshot: start empty.
    - Undecodable snapshot: log an error and start empty.
    - A malformed table entry is skipped with a warning; the rest load.
    - A row that no longer validates is skipped with a warning.
    Restored rows go through the non-notifying insert path, so restoration
    never enqueues a snapshot of its own.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Mapping, Sequence

from tabular_store.adapters.outbound.file_snapshot_store import FileSnapshotStore
from tabular_store.application.persistence_queue import PersistenceJob, PersistenceQueue
from tabular_store.domain.entities import (
    Column,
    MalformedSnapshotError,
    SchemaError,
    Snapshot,
    Table,
    TableSnapshot,
)
from tabular_store.infrastructure.config import Config
from tabular_store.infrastructure.logging import get_logger
from tabular_store.infrastructure.metrics import MetricsRegistry, get_metrics
from tabular_store.infrastructure.tracing import trace_span
from tabular_store.ports.inbound.database_port import DuplicateTableError, TableNotFoundError
from tabular_store.ports.outbound.snapshot_store import SnapshotStore, SyncMode


logger = get_logger(__name__)


class Database:
    """Registry of tables, persisted as a whole on every change.

    Thread Safety:
        Table registration is guarded by a registry lock. Each table guards
        its own rows. Snapshot writes happen on the queue's worker thread.
    """

    def __init__(
        self,
        name: str = "default",
        data_dir: str | Path | None = None,
        *,
        store: SnapshotStore | None = None,
        queue: PersistenceQueue | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        """Create the database and restore its snapshot, if any.

        Args:
            name: Database name; also the snapshot key.
            data_dir: Directory for the snapshot file. Ignored when a store
                is given.
            store: Snapshot store to use instead of a FileSnapshotStore.
            queue: Persistence queue to use; built over the store if None.
            metrics: Metrics registry (defaults to the global one).

        Raises:
            ValueError: If neither data_dir nor store is given.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Database name must be a non-empty string")
        if store is None:
            if data_dir is None:
                raise ValueError("Either data_dir or store is required")
            store = FileSnapshotStore(data_dir)

        self._name = name
        self._store = store
        self._metrics = metrics or get_metrics()
        self._queue = queue or PersistenceQueue(store, metrics=self._metrics)

        self._tables: dict[str, Table] = {}
        self._registry_lock = threading.RLock()
        self._initializing = False
        self._closed = False

        self._restore()

    @classmethod
    def from_config(cls, config: Config, metrics: MetricsRegistry | None = None) -> Database:
        """Wire a file-backed database from configuration."""
        metrics = metrics or get_metrics()
        store = FileSnapshotStore(
            config.storage.data_dir,
            sync_mode=SyncMode(config.storage.sync_mode),
        )
        queue = PersistenceQueue(
            store,
            max_retries=config.persistence.max_retries,
            backoff_base=config.persistence.backoff_base_seconds,
            metrics=metrics,
        )
        return cls(config.storage.database_name, store=store, queue=queue, metrics=metrics)

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def queue(self) -> PersistenceQueue:
        return self._queue

    @property
    def is_initializing(self) -> bool:
        return self._initializing

    # =========================================================================
    # Table registry
    # =========================================================================

    def create_table(
        self,
        name: str,
        columns: Sequence[Mapping[str, Any] | Column],
    ) -> Table:
        """Create and register a table, then schedule a snapshot.

        Args:
            name: Table name.
            columns: Column definitions (``{name, type, primaryKey?, ...}``)
                or Column instances.

        Returns:
            The new, empty table.

        Raises:
            DuplicateTableError: If the name is taken.
            SchemaError: If a column definition is invalid.
        """
        with self._registry_lock:
            if name in self._tables:
                raise DuplicateTableError(name)
            parsed = [
                column if isinstance(column, Column) else Column.from_definition(column)
                for column in columns
            ]
            table = Table(name, parsed, listener=self)
            self._tables[name] = table
            self._metrics.tables.set(len(self._tables))

        logger.info(
            "table_created",
            table=name,
            columns=[column.name for column in parsed],
            primary_key=table.primary_key,
        )
        self._schedule_save()
        return table

    def drop_table(self, name: str) -> bool:
        """Remove a table and schedule a snapshot.

        Returns:
            True if the table existed.
        """
        with self._registry_lock:
            table = self._tables.pop(name, None)
            self._metrics.tables.set(len(self._tables))
        if table is None:
            return False

        table.listener = None
        logger.info("table_dropped", table=name, rows=table.row_count)
        self._schedule_save()
        return True

    def get_table(self, name: str) -> Table | None:
        with self._registry_lock:
            return self._tables.get(name)

    def require_table(self, name: str) -> Table:
        """Return the named table.

        Raises:
            TableNotFoundError: If no such table exists.
        """
        table = self.get_table(name)
        if table is None:
            raise TableNotFoundError(name)
        return table

    def list_tables(self) -> list[str]:
        with self._registry_lock:
            return list(self._tables)

    def __contains__(self, name: object) -> bool:
        with self._registry_lock:
            return name in self._tables

    def _table_list(self) -> list[Table]:
        with self._registry_lock:
            return list(self._tables.values())

    # =========================================================================
    # Change notification and persistence
    # =========================================================================

    def on_table_changed(self, table_name: str, operation: str, rows_affected: int) -> None:
        """Count the mutation and schedule a snapshot."""
        self._metrics.mutations_total.labels(operation=operation).inc()
        self._metrics.rows_affected_total.labels(operation=operation).inc(rows_affected)
        logger.debug(
            "table_changed",
            table=table_name,
            operation=operation,
            rows_affected=rows_affected,
        )
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self._initializing:
            return
        try:
            payload = self.to_snapshot().to_dict()
        except Exception:
            # The mutation is already committed; do not raise into the caller
            logger.exception("snapshot_build_failed", database=self._name)
            return
        self._queue.enqueue(PersistenceJob(self._name, payload))

    def to_snapshot(self) -> Snapshot:
        """Build the full persisted representation of the current state."""
        return Snapshot(
            name=self._name,
            tables=[table.to_snapshot() for table in self._table_list()],
        )

    def save_now(self) -> bool:
        """Write a snapshot synchronously, bypassing the queue.

        Returns:
            True if the snapshot was written. Failures are logged.
        """
        try:
            with trace_span("snapshot.save_now", {"snapshot.destination": self._name}):
                self._store.write(self._name, self.to_snapshot().to_dict())
        except Exception as e:
            logger.error("snapshot_save_now_failed", database=self._name, error=str(e))
            return False

        logger.info("snapshot_saved_now", database=self._name)
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every scheduled snapshot has been written or dropped."""
        return self._queue.flush(timeout)

    def close(self, timeout: float | None = None) -> None:
        """Drain pending snapshots, then stop the persistence worker."""
        if self._closed:
            return
        self._closed = True
        if not self._queue.flush(timeout):
            logger.warning(
                "database_close_timeout",
                database=self._name,
                pending=self._queue.get_queue_length(),
            )
        self._queue.close(timeout)
        logger.info("database_closed", database=self._name)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # =========================================================================
    # Restoration
    # =========================================================================

    def _restore(self) -> None:
        self._initializing = True
        try:
            with trace_span("database.restore", {"database.name": self._name}):
                self._load_snapshot()
        finally:
            self._initializing = False
        self._metrics.tables.set(len(self._tables))

    def _load_snapshot(self) -> None:
        try:
            document = self._store.read(self._name)
            if document is None:
                logger.info(
                    "database_created_empty",
                    database=self._name,
                    location=self._store.location(self._name),
                )
                return
            snapshot, skipped = Snapshot.from_dict(document)
        except (MalformedSnapshotError, OSError) as e:
            logger.error(
                "snapshot_unreadable",
                database=self._name,
                location=self._store.location(self._name),
                error=str(e),
            )
            return

        for entry, error in skipped:
            logger.warning(
                "snapshot_table_skipped",
                database=self._name,
                table=entry.get("name") if isinstance(entry, Mapping) else None,
                error=str(error),
            )

        total_rows = 0
        for table_snapshot in snapshot.tables:
            total_rows += self._restore_table(table_snapshot)

        self._metrics.restored_rows_total.inc(total_rows)
        logger.info(
            "database_restored",
            database=self._name,
            tables=len(self._tables),
            rows=total_rows,
        )

    def _restore_table(self, table_snapshot: TableSnapshot) -> int:
        name = table_snapshot.name
        if name in self._tables:
            logger.warning("snapshot_table_skipped", database=self._name, table=name,
                           error="duplicate table name")
            return 0

        try:
            table = Table(name, [Column.from_definition(c) for c in table_snapshot.columns])
        except SchemaError as e:
            logger.warning("snapshot_table_skipped", database=self._name, table=name, error=str(e))
            return 0

        restored = 0
        for position, row in enumerate(table_snapshot.rows):
            if not isinstance(row, Mapping):
                logger.warning("snapshot_row_skipped", table=name, position=position,
                               errors=["Row is not an object"])
                continue
            result = table.restore_row(row)
            if not result.success:
                logger.warning("snapshot_row_skipped", table=name, position=position,
                               errors=result.errors)
                continue
            restored += 1

        table.listener = self
        self._tables[name] = table
        return restored

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_info(self) -> dict[str, Any]:
        """Summary of tables, row counts and storage."""
        schemas = [table.get_schema() for table in self._table_list()]
        return {
            "name": self._name,
            "tables": schemas,
            "tableCount": len(schemas),
            "totalRows": sum(schema["rowCount"] for schema in schemas),
            "storage": {
                "type": type(self._store).__name__,
                "path": self._store.location(self._name),
                "queueLength": self._queue.get_queue_length(),
            },
        }

    def get_storage_info(self) -> dict[str, Any]:
        """Details of the persisted snapshot."""
        details = dict(self._store.describe(self._name))
        details["queueLength"] = self._queue.get_queue_length()
        return details

    def get_queue_status(self) -> dict[str, Any]:
        return {
            "queueLength": self._queue.get_queue_length(),
            "isInitializing": self._initializing,
            "processing": self._queue.is_processing,
        }

    def __repr__(self) -> str:
        return f"Database(name={self._name!r}, tables={self.list_tables()!r})"
