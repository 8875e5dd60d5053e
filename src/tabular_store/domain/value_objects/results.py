"""Result types returned by table operations.

Validation and constraint failures are reported through these values rather
than raised, so callers can reject a request without unwinding.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tabular_store.domain.value_objects.data_type import Row


class ValidationError(Exception):
    """A row violated one or more column constraints.

    Attributes:
        errors: One human-readable message per violation found.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a candidate row."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class InsertResult:
    """Outcome of an insert.

    Attributes:
        success: Whether the row was stored.
        row: Copy of the stored row (None on failure).
        errors: Validation messages (empty on success).
    """

    success: bool
    row: Row | None = None
    errors: list[str] = field(default_factory=list)

    def raise_for_errors(self) -> Row:
        """Return the stored row or raise ValidationError."""
        if not self.success or self.row is None:
            raise ValidationError(self.errors)
        return self.row


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an update. Partial success is allowed."""

    success: bool
    rows_affected: int
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class DeleteResult:
    """Outcome of a delete."""

    success: bool
    rows_affected: int
