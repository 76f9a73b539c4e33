"""Typed record definitions mapped onto schema rows.

Records are frozen dataclasses describing one example. A field can expose a
different column name through ``column_field``; prediction records are
separate dataclasses that add derived fields such as ``PredictedLabel``.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from typing import Any, Mapping, TypeVar, Union

import numpy as np

from core.errors import SchemaError
from core.schema import Column, ColumnType, Row, Schema

COLUMN_NAME_METADATA_KEY = "tabflow_column"
RecordT = TypeVar("RecordT")

_SCALAR_TYPES: dict[type, ColumnType] = {
    float: ColumnType.FLOAT,
    int: ColumnType.INT,
    str: ColumnType.STRING,
    bool: ColumnType.BOOL,
}


def column_field(column_name: str, default: Any = None) -> Any:
    """Declare a dataclass field stored under a different column name."""
    return dataclasses.field(default=default, metadata={COLUMN_NAME_METADATA_KEY: column_name})


def column_name_for(field: dataclasses.Field) -> str:
    """Return the column name a dataclass field maps to."""
    return str(field.metadata.get(COLUMN_NAME_METADATA_KEY, field.name))


def record_schema(record_type: type) -> Schema:
    """Derive a schema from a record dataclass.

    Args:
        record_type: Dataclass type whose fields are float, int, str, bool,
            or ``tuple[float, ...]`` (optionally ``| None``).

    Returns:
        Schema in field declaration order.

    Raises:
        SchemaError: If the type is not a dataclass or a field type is unsupported.
    """
    if not dataclasses.is_dataclass(record_type):
        raise SchemaError(
            f"Record type {record_type!r} must be a dataclass to derive a schema."
        )
    hints = typing.get_type_hints(record_type)
    columns = []
    for field in dataclasses.fields(record_type):
        column_type = _column_type_for_hint(hints[field.name], record_type, field.name)
        columns.append(Column(column_name_for(field), column_type))
    return Schema(columns=tuple(columns))


def record_to_row(record: object, schema: Schema) -> Row:
    """Lay out a record's values in schema order.

    Columns the record does not carry are filled with ``None`` so a model
    can score records that omit label columns.
    """
    values = record_values(record)
    return tuple(_coerce_input(values.get(column.name), column) for column in schema)


def record_values(record: object) -> dict[str, object]:
    """Return a record's values keyed by column name."""
    if isinstance(record, Mapping):
        return {str(key): value for key, value in record.items()}
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return {
            column_name_for(field): getattr(record, field.name)
            for field in dataclasses.fields(record)
        }
    raise SchemaError(
        f"Cannot read record of type {type(record).__name__}. "
        "Pass a dataclass instance or a column-name mapping."
    )


def row_to_record(record_type: type[RecordT], schema: Schema, row: Row) -> RecordT:
    """Build a record instance from an output row.

    Fields whose column is absent from the schema keep their defaults.
    """
    values = dict(zip(schema.names, row))
    kwargs: dict[str, object] = {}
    for field in dataclasses.fields(record_type):  # type: ignore[arg-type]
        column_name = column_name_for(field)
        if column_name in values:
            kwargs[field.name] = to_python_value(values[column_name])
    return record_type(**kwargs)


def to_python_value(value: object) -> object:
    """Convert numpy scalars and vectors into plain Python values."""
    if isinstance(value, np.ndarray):
        return tuple(float(item) for item in value.tolist())
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def _coerce_input(value: object, column: Column) -> object:
    if value is None:
        return None
    if column.type == ColumnType.VECTOR:
        return np.asarray(value, dtype=np.float32)
    if column.type == ColumnType.FLOAT:
        return float(value)  # type: ignore[arg-type]
    return value


def _column_type_for_hint(hint: Any, record_type: type, field_name: str) -> ColumnType:
    hint = _strip_optional(hint)
    if hint in _SCALAR_TYPES:
        return _SCALAR_TYPES[hint]
    origin = typing.get_origin(hint)
    if origin in (tuple, list):
        item_types = [item for item in typing.get_args(hint) if item is not Ellipsis]
        if all(item in (float, int) for item in item_types):
            return ColumnType.VECTOR
    raise SchemaError(
        f"Unsupported type {hint!r} for field '{field_name}' of {record_type.__name__}. "
        "Use float, int, str, bool, or tuple[float, ...]."
    )


def _strip_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is Union or origin is types.UnionType:
        non_null = [item for item in typing.get_args(hint) if item is not type(None)]
        if len(non_null) == 1:
            return non_null[0]
    return hint
