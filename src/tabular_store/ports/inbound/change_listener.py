"""Observer port through which a table reports committed mutations.

A table holds no reference to the database that owns it. Instead the owner
registers a listener; the table calls it once per committed mutation
(insert, update affecting at least one row, delete removing at least one row),
after its write lock has been released.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TableChangeListener(Protocol):
    """Receives change notifications from tables."""

    def on_table_changed(self, table_name: str, operation: str, rows_affected: int) -> None:
        """Handle a committed mutation.

        Args:
            table_name: Name of the table that changed.
            operation: One of ``insert``, ``update``, ``delete``.
            rows_affected: Number of rows the mutation touched (>= 1).
        """
        ...
