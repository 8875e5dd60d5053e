"""Domain services supporting the table entity.

Exports:
    - SecondaryIndex: Value -> row positions mapping for unique columns
    - ReadWriteLock: Shared/exclusive lock serializing table mutations
"""

from tabular_store.domain.services.rw_lock import ReadWriteLock
from tabular_store.domain.services.secondary_index import SecondaryIndex

__all__ = [
    "ReadWriteLock",
    "SecondaryIndex",
]
