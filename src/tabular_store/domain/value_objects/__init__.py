"""Value objects for the table store domain.

Exports:
    Types:
        - DataType: Closed set of column types
        - RowPosition: Dense zero-based row position
        - Row: Column name -> value mapping

    Results:
        - ValidationResult, InsertResult, UpdateResult, DeleteResult
        - ValidationError: Raised from a failed InsertResult on request
"""

from tabular_store.domain.value_objects.data_type import DataType, Row, RowPosition
from tabular_store.domain.value_objects.results import (
    DeleteResult,
    InsertResult,
    UpdateResult,
    ValidationError,
    ValidationResult,
)

__all__ = [
    "DataType",
    "Row",
    "RowPosition",
    "ValidationResult",
    "InsertResult",
    "UpdateResult",
    "DeleteResult",
    "ValidationError",
]
