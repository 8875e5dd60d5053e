"""Hash-based secondary index over one column.

The index maps a column's coerced value to the set of row positions that
currently hold it. Positions within a value's set carry no order; lookups
return them sorted so results follow table order. Null values are never
indexed, so a unique column may hold any number of nulls.

The index stores positions rather than row references, which means every
physical removal from the owning table must be followed by
``shift_after(removed)`` to keep the remaining positions valid.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping

from tabular_store.domain.value_objects import RowPosition


class SecondaryIndex:
    """Value -> row positions mapping for a primary-key or unique column."""

    def __init__(self, column_name: str) -> None:
        self._column_name = column_name
        self._entries: dict[Any, set[RowPosition]] = {}

    @property
    def column_name(self) -> str:
        return self._column_name

    def add(self, value: Any, position: RowPosition) -> None:
        """Record that the row at position holds value."""
        if value is None:
            return
        self._entries.setdefault(value, set()).add(position)

    def remove(self, value: Any, position: RowPosition) -> None:
        """Forget that the row at position holds value. Missing entries are ignored."""
        if value is None:
            return
        positions = self._entries.get(value)
        if positions is None:
            return
        positions.discard(position)
        if not positions:
            del self._entries[value]

    def lookup(self, value: Any) -> list[RowPosition]:
        """Return the sorted positions holding value (empty if none)."""
        if value is None:
            return []
        try:
            positions = self._entries.get(value)
        except TypeError:
            # Unhashable probe values can never have been indexed
            return []
        return sorted(positions) if positions else []

    def conflicts(self, value: Any, exclude: RowPosition | None = None) -> list[RowPosition]:
        """Positions other than ``exclude`` that already hold value."""
        return [p for p in self.lookup(value) if p != exclude]

    def shift_after(self, removed: RowPosition) -> None:
        """Renumber after the row at ``removed`` was physically deleted.

        Every recorded position greater than ``removed`` moves down by one.
        The caller must already have removed the deleted row's own entry.
        """
        for value, positions in self._entries.items():
            if any(p > removed for p in positions):
                self._entries[value] = {
                    RowPosition(p - 1) if p > removed else p for p in positions
                }

    def rebuild(self, rows: Iterable[Mapping[str, Any]]) -> None:
        """Discard all entries and re-index rows from scratch."""
        self._entries.clear()
        for position, row in enumerate(rows):
            self.add(row.get(self._column_name), RowPosition(position))

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> dict[Any, list[RowPosition]]:
        """Return a copy of the mapping with sorted position lists."""
        return {value: sorted(positions) for value, positions in self._entries.items()}

    def __contains__(self, value: Any) -> bool:
        return bool(self.lookup(value))

    def __len__(self) -> int:
        """Number of distinct indexed values."""
        return len(self._entries)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._entries))

    def __repr__(self) -> str:
        return f"SecondaryIndex({self._column_name!r}, values={len(self._entries)})"
