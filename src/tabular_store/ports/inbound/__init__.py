"""Inbound ports - APIs offered to callers of the table store.

Exports:
    - DatabasePort: Table registry with snapshot persistence
    - TableChangeListener: Observer receiving table mutation notifications
    - DuplicateTableError, TableNotFoundError: Registry errors
"""

from tabular_store.ports.inbound.change_listener import TableChangeListener
from tabular_store.ports.inbound.database_port import (
    DatabasePort,
    DuplicateTableError,
    TableNotFoundError,
)

__all__ = [
    "DatabasePort",
    "TableChangeListener",
    "DuplicateTableError",
    "TableNotFoundError",
]
