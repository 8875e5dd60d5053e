"""Application layer for the table store.

The application layer wires tables to persistence.

Exports:
    Database:
        - Database: Table registry with snapshot restore and write-behind saves
    Persistence:
        - PersistenceQueue: Single-writer FIFO of snapshot writes with retries
        - PersistenceJob: One pending snapshot write
"""

from tabular_store.application.database import Database
from tabular_store.application.persistence_queue import PersistenceJob, PersistenceQueue

__all__ = [
    "Database",
    "PersistenceQueue",
    "PersistenceJob",
]
