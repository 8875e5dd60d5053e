"""Column definitions: type domain, constraints and value coercion.

A column validates candidate values against its declared type and coerces
accepted values into their canonical stored form:

    INTEGER  -> int
    FLOAT    -> float
    STRING   -> str
    BOOLEAN  -> bool
    DATE     -> ISO-8601 UTC string, e.g. "2024-01-15T09:30:00.000Z"

Null (None) is accepted iff the column is nullable and is stored as None.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Mapping

from tabular_store.domain.value_objects import DataType


class SchemaError(ValueError):
    """A table or column definition is invalid."""
    pass


_BOOLEAN_STRINGS = {"true": True, "false": False}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_number(value: Any) -> float | int | None:
    """Return the numeric reading of value, or None if it has none."""
    if _is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _as_finite_float(number: float | int | None) -> float | None:
    """Return number as a finite float, or None if it has no such reading."""
    if number is None:
        return None
    try:
        result = float(number)
    except OverflowError:
        return None
    return result if math.isfinite(result) else None


def _parse_date(value: Any) -> datetime | None:
    """Return value as an aware UTC datetime, or None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # The UTC instant falls outside years 1..9999
        return None


def format_timestamp(moment: datetime) -> str:
    """Format an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = moment.astimezone(timezone.utc)
    return moment.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


@dataclass(frozen=True)
class Column:
    """A single field of a table.

    Attributes:
        name: Column name, unique within its table.
        data_type: Declared type.
        primary_key: Row identity column; implies a unique, non-null index.
        unique: Values must not repeat across rows.
        nullable: Whether None is an accepted value.
        default: Stored as-is when an insert omits the column.
    """

    name: str
    data_type: DataType
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True
    default: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise SchemaError("Column name must be a non-empty string")

    @property
    def indexed(self) -> bool:
        """Whether the column gets a maintained secondary index."""
        return self.primary_key or self.unique

    @property
    def required(self) -> bool:
        return self.primary_key or not self.nullable

    def validate(self, value: Any) -> bool:
        """Check whether value belongs to this column's domain.

        Never raises; returns False for anything unacceptable.
        """
        if value is None:
            return not self.required

        if self.data_type is DataType.INTEGER:
            number = _parse_number(value)
            if number is None:
                return False
            return isinstance(number, int) or (math.isfinite(number) and number.is_integer())

        if self.data_type is DataType.FLOAT:
            number = _parse_number(value)
            if number is None:
                return False
            return _as_finite_float(number) is not None

        if self.data_type is DataType.STRING:
            return isinstance(value, str)

        if self.data_type is DataType.BOOLEAN:
            if isinstance(value, bool):
                return True
            if isinstance(value, int):
                return value in (0, 1)
            return isinstance(value, str) and value in _BOOLEAN_STRINGS

        if self.data_type is DataType.DATE:
            return _parse_date(value) is not None

        return False

    def serialize(self, value: Any) -> Any:
        """Coerce an accepted value into its canonical stored form."""
        if value is None:
            return None

        if self.data_type is DataType.INTEGER:
            number = _parse_number(value)
            return int(number) if number is not None else int(value)

        if self.data_type is DataType.FLOAT:
            number = _as_finite_float(_parse_number(value))
            if number is None:
                raise ValueError(f"Cannot coerce {value!r} to FLOAT")
            return number

        if self.data_type is DataType.BOOLEAN:
            if isinstance(value, str) and value in _BOOLEAN_STRINGS:
                return _BOOLEAN_STRINGS[value]
            return bool(value)

        if self.data_type is DataType.STRING:
            return str(value)

        if self.data_type is DataType.DATE:
            parsed = _parse_date(value)
            if parsed is None:
                raise ValueError(f"Cannot coerce {value!r} to DATE")
            return format_timestamp(parsed)

        return value

    @classmethod
    def from_definition(cls, definition: Mapping[str, Any]) -> Column:
        """Build a column from an external definition.

        Accepts ``{name, type, primaryKey?, unique?, nullable?, defaultValue?}``.

        Raises:
            SchemaError: If the name is missing or the type is unrecognized.
        """
        name = definition.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaError(f"Column definition is missing a name: {dict(definition)!r}")

        try:
            data_type = DataType.parse(definition.get("type"))
        except ValueError as e:
            raise SchemaError(f"Column '{name}': {e}") from e

        nullable = definition.get("nullable")
        return cls(
            name=name,
            data_type=data_type,
            primary_key=bool(definition.get("primaryKey", False)),
            unique=bool(definition.get("unique", False)),
            nullable=True if nullable is None else bool(nullable),
            default=definition.get("defaultValue"),
        )

    def to_definition(self) -> dict[str, Any]:
        """Return the external (snapshot) form of this column."""
        return {
            "name": self.name,
            "type": self.data_type.value,
            "primaryKey": self.primary_key,
            "unique": self.unique,
            "nullable": self.nullable,
            "defaultValue": self.default,
        }
