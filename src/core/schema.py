"""Ordered, typed column definitions for tabular rows.

A schema is an immutable tuple of columns. Rows flowing through sources,
stages, and trainers are plain tuples laid out in schema order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Mapping, Sequence

from core.errors import SchemaError

Row = tuple[object, ...]


class ColumnType(str, Enum):
    """Value type carried by one column."""

    FLOAT = "float"
    INT = "int"
    STRING = "string"
    BOOL = "bool"
    VECTOR = "vector"
    KEY = "key"


NUMERIC_TYPES = (ColumnType.FLOAT, ColumnType.INT, ColumnType.BOOL, ColumnType.KEY)


@dataclass(frozen=True)
class Column:
    """One named, typed column.

    Attributes:
        name: Column name, unique within a schema.
        type: Column value type.
        key_values: Vocabulary for KEY columns; key ``k`` maps to
            ``key_values[k - 1]`` and key 0 is the missing key.
    """

    name: str
    type: ColumnType
    key_values: tuple[object, ...] | None = None

    @property
    def key_count(self) -> int:
        """Number of non-missing keys for KEY columns."""
        return len(self.key_values or ())

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"name": self.name, "type": self.type.value}
        if self.key_values is not None:
            payload["key_values"] = list(self.key_values)
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Column":
        raw_key_values = payload.get("key_values")
        key_values = tuple(raw_key_values) if isinstance(raw_key_values, list) else None
        return cls(
            name=str(payload["name"]),
            type=ColumnType(str(payload["type"])),
            key_values=key_values,
        )


@dataclass(frozen=True)
class Schema:
    """Ordered column definitions with unique names."""

    columns: tuple[Column, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for column in self.columns:
            if column.name in seen:
                raise SchemaError(
                    f"Duplicate column name '{column.name}' in schema. "
                    "Column names must be unique."
                )
            seen.add(column.name)

    @classmethod
    def of(cls, *pairs: tuple[str, ColumnType]) -> "Schema":
        """Build a schema from ``(name, type)`` pairs."""
        return cls(columns=tuple(Column(name, column_type) for name, column_type in pairs))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self.columns)

    def __contains__(self, name: object) -> bool:
        return any(column.name == name for column in self.columns)

    def index_of(self, name: str) -> int:
        """Return the position of a column.

        Raises:
            SchemaError: If the column is absent.
        """
        for index, column in enumerate(self.columns):
            if column.name == name:
                return index
        raise SchemaError(
            f"Column '{name}' not found. Available columns: {', '.join(self.names) or 'none'}."
        )

    def column(self, name: str) -> Column:
        return self.columns[self.index_of(name)]

    def require(
        self,
        names: Iterable[str],
        stage_name: str,
        allowed_types: Sequence[ColumnType] | None = None,
    ) -> None:
        """Check that columns exist and optionally have an allowed type.

        Args:
            names: Column names the stage reads.
            stage_name: Stage identifier used in error messages.
            allowed_types: Optional accepted column types.

        Raises:
            SchemaError: On the first missing or mistyped column.
        """
        for name in names:
            if name not in self:
                raise SchemaError(
                    f"Stage '{stage_name}' requires input column '{name}', "
                    f"but the schema only has: {', '.join(self.names) or 'none'}."
                )
            column = self.column(name)
            if allowed_types is not None and column.type not in allowed_types:
                expected = ", ".join(item.value for item in allowed_types)
                raise SchemaError(
                    f"Stage '{stage_name}' cannot read column '{name}' of type "
                    f"'{column.type.value}'. Expected one of: {expected}."
                )

    def with_column(self, column: Column) -> "Schema":
        """Append a column, or replace a same-named column in place."""
        if column.name not in self:
            return Schema(columns=self.columns + (column,))
        replaced = tuple(column if item.name == column.name else item for item in self.columns)
        return Schema(columns=replaced)

    def to_payload(self) -> list[dict[str, object]]:
        return [column.to_payload() for column in self.columns]

    @classmethod
    def from_payload(cls, payload: Sequence[Mapping[str, object]]) -> "Schema":
        return cls(columns=tuple(Column.from_payload(item) for item in payload))


def write_column(schema: Schema, row: Row, name: str, value: object) -> Row:
    """Return a new row with one column written.

    The column is replaced in place when it exists in ``schema`` and
    appended otherwise, mirroring :meth:`Schema.with_column`.
    """
    if name in schema:
        index = schema.index_of(name)
        return row[:index] + (value,) + row[index + 1 :]
    return row + (value,)


def row_as_mapping(schema: Schema, row: Row) -> dict[str, object]:
    """Pair a row's values with their column names."""
    return dict(zip(schema.names, row))
