"""Unit tests for delimited text loading."""

from __future__ import annotations

import math
from pathlib import Path

import pytest

from core.errors import FormatError, NotFoundError, SchemaError
from core.schema import ColumnType, Schema
from ingest.text_loader import TextColumn, load_text, parse_fields
from tests.fixture_paths import fixture_path

_IRIS_SCHEMA = Schema.of(
    ("SepalLength", ColumnType.FLOAT),
    ("SepalWidth", ColumnType.FLOAT),
    ("PetalLength", ColumnType.FLOAT),
    ("PetalWidth", ColumnType.FLOAT),
    ("FlowerType", ColumnType.STRING),
)


def test_load_text_reads_typed_rows() -> None:
    """Every line should become one typed row."""
    source = load_text(fixture_path("data/iris.data"), _IRIS_SCHEMA, delimiter=",")

    rows = source.rows()

    assert len(rows) == 36 and rows[0] == (5.1, 3.5, 1.4, 0.2, "Iris-setosa")


def test_load_text_is_restartable() -> None:
    """Each pass should reread the file and yield the same rows."""
    source = load_text(fixture_path("data/iris.data"), _IRIS_SCHEMA, delimiter=",")

    assert source.rows() == source.rows()


def test_load_text_missing_file_raises_not_found(tmp_path: Path) -> None:
    """A missing file should raise NotFoundError naming the path."""
    with pytest.raises(NotFoundError, match="absent.tsv"):
        load_text(tmp_path / "absent.tsv", _IRIS_SCHEMA)


def test_load_text_short_row_names_line() -> None:
    """A row with too few fields should fail the load, naming file and line."""
    with pytest.raises(FormatError, match="iris_short_row.data:2"):
        load_text(fixture_path("data/iris_short_row.data"), _IRIS_SCHEMA, delimiter=",")


def test_load_text_bad_value_names_column() -> None:
    """An unparsable number should report the column and raw value."""
    with pytest.raises(FormatError, match="column 'SepalWidth'.*'abc'"):
        load_text(fixture_path("data/iris_bad_value.data"), _IRIS_SCHEMA, delimiter=",")


def test_load_text_explicit_columns_skip_header_and_extra_fields() -> None:
    """Positional text columns should ignore trailing fields such as timestamps."""
    columns = (
        TextColumn("userId", ColumnType.FLOAT, 0),
        TextColumn("Label", ColumnType.FLOAT, 2),
    )

    rows = load_text(
        fixture_path("data/ratings.csv"), columns, has_header=True, delimiter=","
    ).rows()

    assert rows[0] == (6.0, 4.0) and len(rows) == 42


def test_load_text_parses_bool_tokens(tmp_path: Path) -> None:
    """Boolean columns should accept 1/0 and true/false."""
    data_path = tmp_path / "flags.tsv"
    data_path.write_text("a\t1\nb\tfalse\n", encoding="utf-8")
    schema = Schema.of(("Text", ColumnType.STRING), ("Label", ColumnType.BOOL))

    assert load_text(data_path, schema).rows() == [("a", True), ("b", False)]


def test_load_text_empty_float_is_nan(tmp_path: Path) -> None:
    """Empty float fields should read as NaN."""
    data_path = tmp_path / "values.tsv"
    data_path.write_text("\tx\n", encoding="utf-8")
    schema = Schema.of(("Value", ColumnType.FLOAT), ("Name", ColumnType.STRING))

    value, _ = load_text(data_path, schema).rows()[0]

    assert math.isnan(value)


def test_parse_fields_converts_by_column_type() -> None:
    """Field text should be parsed with the column's type."""
    parsed = parse_fields(_IRIS_SCHEMA, {"SepalLength": "5.1", "FlowerType": "Iris-setosa"})

    assert parsed == {"SepalLength": 5.1, "FlowerType": "Iris-setosa"}


def test_parse_fields_rejects_unknown_name() -> None:
    """Unknown field names should list the accepted columns."""
    with pytest.raises(SchemaError, match="Available: SepalLength"):
        parse_fields(_IRIS_SCHEMA, {"Petals": "3"})


def test_parse_fields_rejects_bad_value() -> None:
    """Unparsable field values should raise a format error."""
    with pytest.raises(FormatError, match="PetalWidth"):
        parse_fields(_IRIS_SCHEMA, {"PetalWidth": "wide"})
