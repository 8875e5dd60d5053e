"""Column data types and row-position identifiers."""

from __future__ import annotations

from enum import Enum
from typing import Any, NewType


RowPosition = NewType("RowPosition", int)
"""Dense, zero-based position of a row within its table. Used as index payload."""

Row = dict[str, Any]
"""A row: ordered mapping from column name to its coerced value."""


class DataType(Enum):
    """Closed set of column types.

    The enum value is the spelling used in column definitions and snapshots.
    """

    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"

    @classmethod
    def parse(cls, value: Any) -> DataType:
        """Resolve a type name (case-insensitive) or DataType into a DataType.

        Raises:
            ValueError: If the name is not a recognized type.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValueError(f"Unrecognized column type: {value!r}")
