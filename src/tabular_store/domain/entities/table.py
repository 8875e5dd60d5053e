"""Table entity: ordered row store with unique secondary indexes.

Rows live in a dense list; a row's position is its list index. Every
primary-key or unique column has a SecondaryIndex mapping coerced values to
positions. The invariants maintained across every mutation are:

    - each index reflects exactly the current (non-null) column values
    - a primary-key/unique value maps to at most one position
    - required columns never hold None
    - positions stay dense; deleting a row renumbers every later position

Concurrency:
    Mutations hold the table's write lock for the whole validate, mutate,
    re-index sequence. Reads hold the read lock for their scan. The change
    listener is invoked after the write lock has been released.

    Predicates run under the lock and must not call back into the same table.

Usage:
    table = Table("users", [
        Column("id", DataType.INTEGER, primary_key=True),
        Column("email", DataType.STRING, unique=True),
    ])
    table.insert({"id": 1, "email": "a@example.com"})
    table.update({"email": "b@example.com"}, lambda row: row["id"] == 1)
    table.find_by_index("email", "b@example.com")
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Mapping, Sequence

from tabular_store.domain.entities.column import Column, SchemaError
from tabular_store.domain.entities.snapshot import TableSnapshot
from tabular_store.domain.services import ReadWriteLock, SecondaryIndex
from tabular_store.domain.value_objects import (
    DeleteResult,
    InsertResult,
    Row,
    RowPosition,
    UpdateResult,
    ValidationResult,
)
from tabular_store.ports.inbound.change_listener import TableChangeListener


Predicate = Callable[[Mapping[str, Any]], bool]
"""Opaque row filter supplied by the caller. Receives a read-only row view."""


class Table:
    """A named, schema-enforced collection of rows."""

    def __init__(
        self,
        name: str,
        columns: Sequence[Column],
        primary_key: str | None = None,
        listener: TableChangeListener | None = None,
    ) -> None:
        """Initialize an empty table.

        Args:
            name: Table name.
            columns: Ordered column definitions; names must be unique.
            primary_key: Primary-key column name. Defaults to the first
                column flagged ``primary_key``.
            listener: Receives a notification per committed mutation.

        Raises:
            SchemaError: On duplicate column names or an unknown primary key.
        """
        if not isinstance(name, str) or not name:
            raise SchemaError("Table name must be a non-empty string")

        self._name = name
        self._columns: tuple[Column, ...] = tuple(columns)
        self._by_name: dict[str, Column] = {}
        for column in self._columns:
            if column.name in self._by_name:
                raise SchemaError(f"Duplicate column '{column.name}' in table '{name}'")
            self._by_name[column.name] = column

        if primary_key is None:
            primary_key = next((c.name for c in self._columns if c.primary_key), None)
        elif primary_key not in self._by_name:
            raise SchemaError(f"Primary key '{primary_key}' is not a column of '{name}'")
        self._primary_key = primary_key

        self._rows: list[Row] = []
        self._indexes: dict[str, SecondaryIndex] = {
            column.name: SecondaryIndex(column.name)
            for column in self._columns
            if column.indexed
        }
        self._lock = ReadWriteLock()
        self._listener = listener

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def columns(self) -> tuple[Column, ...]:
        return self._columns

    @property
    def primary_key(self) -> str | None:
        return self._primary_key

    @property
    def indexed_columns(self) -> list[str]:
        return list(self._indexes)

    @property
    def row_count(self) -> int:
        with self._lock.read_locked():
            return len(self._rows)

    @property
    def listener(self) -> TableChangeListener | None:
        return self._listener

    @listener.setter
    def listener(self, listener: TableChangeListener | None) -> None:
        self._listener = listener

    def get_column(self, name: str) -> Column | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return self.row_count

    def __repr__(self) -> str:
        return f"Table({self._name!r}, columns={len(self._columns)}, rows={len(self._rows)})"

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_row(
        self,
        data: Mapping[str, Any],
        exclude_position: RowPosition | None = None,
    ) -> ValidationResult:
        """Check a candidate row against every column constraint.

        Args:
            data: Candidate row.
            exclude_position: Position of the row being updated; it is not
                counted as a uniqueness conflict with itself.

        Returns:
            A ValidationResult listing every violation found.
        """
        with self._lock.read_locked():
            return self._validate(data, exclude_position)

    def _validate(
        self,
        data: Mapping[str, Any],
        exclude_position: RowPosition | None,
    ) -> ValidationResult:
        errors: list[str] = []

        for column in self._columns:
            value = data.get(column.name)

            if value is None:
                if column.required:
                    errors.append(f"Column '{column.name}' is required")
                continue

            if not column.validate(value):
                errors.append(
                    f"Invalid value for column '{column.name}'. "
                    f"Expected {column.data_type.value}, got {type(value).__name__}"
                )
                continue

            if column.indexed:
                coerced = column.serialize(value)
                if self._indexes[column.name].conflicts(coerced, exclude_position):
                    errors.append(
                        f"Duplicate value for unique column '{column.name}': {value}"
                    )

        return ValidationResult(valid=not errors, errors=errors)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def insert(self, data: Mapping[str, Any]) -> InsertResult:
        """Validate and append a row.

        All-or-nothing: on any violation nothing is stored. Columns missing
        from ``data`` receive their declared default; keys that name no
        column are ignored.

        Returns:
            InsertResult with a copy of the stored row, or the errors.
        """
        result = self._insert(data)
        if result.success:
            self._notify("insert", 1)
        return result

    def restore_row(self, data: Mapping[str, Any]) -> InsertResult:
        """Insert without notifying the listener. Used when loading snapshots."""
        return self._insert(data)

    def _insert(self, data: Mapping[str, Any]) -> InsertResult:
        # Defaults take part in validation so a defaulted unique column
        # cannot introduce a duplicate.
        candidate = {
            column.name: data[column.name] if column.name in data else column.default
            for column in self._columns
        }

        with self._lock.write_locked():
            validation = self._validate(candidate, None)
            if not validation.valid:
                return InsertResult(success=False, errors=validation.errors)

            row: Row = {
                column.name: column.serialize(candidate[column.name])
                for column in self._columns
            }

            position = RowPosition(len(self._rows))
            self._rows.append(row)
            for column_name, index in self._indexes.items():
                index.add(row[column_name], position)

            return InsertResult(success=True, row=dict(row))

    def update(
        self,
        updates: Mapping[str, Any],
        predicate: Predicate | None = None,
    ) -> UpdateResult:
        """Apply column updates to every row matching predicate.

        Matching rows are collected first; each is then revalidated and
        applied independently. A row that fails validation is skipped and
        reported, the others are still updated.

        Args:
            updates: Column name -> new value. Unknown columns are ignored.
            predicate: Row filter; all rows when omitted.

        Returns:
            UpdateResult with the affected count and per-row errors.
        """
        errors: list[str] = []
        affected = 0

        with self._lock.write_locked():
            applicable = {k: v for k, v in updates.items() if k in self._by_name}
            candidates = [
                RowPosition(position)
                for position, row in enumerate(self._rows)
                if predicate is None or predicate(MappingProxyType(row))
            ]

            for position in candidates:
                current = self._rows[position]
                candidate = {**current, **applicable}

                validation = self._validate(candidate, position)
                if not validation.valid:
                    errors.append(f"Row at index {position}: {', '.join(validation.errors)}")
                    continue

                updated = dict(current)
                for column_name, value in applicable.items():
                    updated[column_name] = self._by_name[column_name].serialize(value)

                changed = [
                    (column_name, current[column_name], updated[column_name])
                    for column_name in self._indexes
                    if current[column_name] != updated[column_name]
                ]
                for column_name, old_value, _ in changed:
                    self._indexes[column_name].remove(old_value, position)
                self._rows[position] = updated
                for column_name, _, new_value in changed:
                    self._indexes[column_name].add(new_value, position)

                affected += 1

        if affected:
            self._notify("update", affected)

        return UpdateResult(success=not errors, rows_affected=affected, errors=errors)

    def delete(self, predicate: Predicate | None = None) -> DeleteResult:
        """Remove every row matching predicate (all rows when omitted).

        Rows are removed highest position first. After each single removal
        every index is renumbered, so the positions still pending removal
        (all lower) remain valid.
        """
        with self._lock.write_locked():
            positions = [
                RowPosition(position)
                for position, row in enumerate(self._rows)
                if predicate is None or predicate(MappingProxyType(row))
            ]

            for position in sorted(positions, reverse=True):
                row = self._rows[position]
                for column_name, index in self._indexes.items():
                    index.remove(row[column_name], position)
                del self._rows[position]
                for index in self._indexes.values():
                    index.shift_after(position)

        if positions:
            self._notify("delete", len(positions))

        return DeleteResult(success=True, rows_affected=len(positions))

    def rebuild_indexes(self) -> None:
        """Recompute every secondary index from the current rows."""
        with self._lock.write_locked():
            for index in self._indexes.values():
                index.rebuild(self._rows)

    def _notify(self, operation: str, rows_affected: int) -> None:
        if self._listener is not None:
            self._listener.on_table_changed(self._name, operation, rows_affected)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def select(self, predicate: Predicate | None = None) -> list[Row]:
        """Return copies of every row matching predicate, in table order.

        This is always a linear scan; indexes serve only find_by_index.
        """
        with self._lock.read_locked():
            return [
                dict(row)
                for row in self._rows
                if predicate is None or predicate(MappingProxyType(row))
            ]

    def all_rows(self) -> list[Row]:
        return self.select()

    def find_by_index(self, column_name: str, value: Any) -> list[Row]:
        """Look up rows through a secondary index.

        The probe value is coerced like a stored value, so ``"7"`` finds the
        row whose INTEGER key is ``7``.

        Returns:
            Copies of the matching rows; empty if the column is not indexed.
        """
        index = self._indexes.get(column_name)
        if index is None:
            return []

        column = self._by_name[column_name]
        probe = column.serialize(value) if value is not None and column.validate(value) else value

        with self._lock.read_locked():
            return [dict(self._rows[position]) for position in index.lookup(probe)]

    def index_entries(self, column_name: str) -> dict[Any, list[RowPosition]]:
        """Copy of one index's value -> positions mapping (empty if unindexed)."""
        index = self._indexes.get(column_name)
        if index is None:
            return {}
        with self._lock.read_locked():
            return index.entries()

    def get_schema(self) -> dict[str, Any]:
        """Structural copy of the schema: ``{name, columns, rowCount}``."""
        with self._lock.read_locked():
            return {
                "name": self._name,
                "columns": [column.to_definition() for column in self._columns],
                "rowCount": len(self._rows),
            }

    def to_snapshot(self) -> TableSnapshot:
        """Schema and rows captured under one read lock, so they agree."""
        with self._lock.read_locked():
            return TableSnapshot(
                name=self._name,
                schema={
                    "name": self._name,
                    "columns": [column.to_definition() for column in self._columns],
                    "rowCount": len(self._rows),
                },
                rows=[dict(row) for row in self._rows],
            )
