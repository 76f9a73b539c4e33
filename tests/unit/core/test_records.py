"""Unit tests for record dataclass mapping."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest

from core.errors import SchemaError
from core.records import (
    column_field,
    record_schema,
    record_to_row,
    record_values,
    row_to_record,
    to_python_value,
)
from core.schema import ColumnType, Schema


@dataclass(frozen=True)
class _Review:
    text: str | None = column_field("SentimentText")
    label: bool | None = column_field("Label")
    weight: float | None = None


@dataclass(frozen=True)
class _Scored:
    score: tuple[float, ...] | None = column_field("Score")
    predicted: int | None = column_field("PredictedLabel")


@dataclass(frozen=True)
class _Unsupported:
    payload: dict | None = None


def test_record_schema_uses_column_names_and_types() -> None:
    """Derived schemas should follow field order and column_field names."""
    schema = record_schema(_Review)

    assert schema.names == ("SentimentText", "Label", "weight")
    assert [column.type for column in schema] == [
        ColumnType.STRING,
        ColumnType.BOOL,
        ColumnType.FLOAT,
    ]


def test_record_schema_maps_tuples_to_vectors() -> None:
    """Float tuples should become vector columns."""
    assert record_schema(_Scored).column("Score").type == ColumnType.VECTOR


def test_record_schema_rejects_unsupported_field() -> None:
    """Unsupported field types should raise a schema error."""
    with pytest.raises(SchemaError, match="payload"):
        record_schema(_Unsupported)


def test_record_to_row_fills_absent_columns_with_none() -> None:
    """Columns the record does not carry should be None."""
    schema = Schema.of(("SentimentText", ColumnType.STRING), ("Extra", ColumnType.FLOAT))

    row = record_to_row(_Review(text="good"), schema)

    assert row == ("good", None)


def test_record_values_accepts_mappings() -> None:
    """Mapping records should be read by key."""
    assert record_values({"a": 1}) == {"a": 1}


def test_record_values_rejects_other_objects() -> None:
    """Plain objects are neither dataclasses nor mappings."""
    with pytest.raises(SchemaError):
        record_values(object())


def test_row_to_record_converts_numpy_values() -> None:
    """Prediction fields should hold plain Python values."""
    schema = Schema.of(("Score", ColumnType.VECTOR), ("PredictedLabel", ColumnType.KEY))

    record = row_to_record(_Scored, schema, (np.asarray([0.25, 0.75]), np.int64(2)))

    assert record == _Scored(score=(0.25, 0.75), predicted=2)


def test_to_python_value_converts_numpy_bool() -> None:
    """numpy booleans should become Python booleans."""
    assert to_python_value(np.bool_(True)) is True
