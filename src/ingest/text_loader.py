"""Delimited text loading for tabular sources.

This module reads delimiter-separated files into typed rows. A file is
validated in full when loaded; any malformed row aborts the load rather
than being skipped, so splits over the loaded rows stay reproducible.
"""

from __future__ import annotations

import csv
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping, Sequence

from core.constants import DEFAULT_TEXT_DELIMITER, FALSE_TOKENS, TRUE_TOKENS
from core.errors import FormatError, NotFoundError, SchemaError
from core.logging_config import get_logger
from core.schema import Column, ColumnType, Row, Schema
from ingest.tabular_source import TabularSource

_LOGGER = get_logger(__name__)
_LOADABLE_TYPES = (ColumnType.FLOAT, ColumnType.INT, ColumnType.STRING, ColumnType.BOOL)


@dataclass(frozen=True)
class TextColumn:
    """One loaded column and the zero-based field it is read from.

    Attributes:
        name: Column name in the resulting schema.
        type: Parsed value type.
        index: Field position inside each delimited line.
    """

    name: str
    type: ColumnType
    index: int


def load_text(
    path: str | Path,
    columns: Schema | Sequence[TextColumn],
    has_header: bool = False,
    delimiter: str = DEFAULT_TEXT_DELIMITER,
    allow_quoting: bool = False,
) -> TabularSource:
    """Load a delimited text file as a tabular source.

    Args:
        path: Input file path.
        columns: Either a schema (fields read positionally, exact field count)
            or explicit text columns (extra trailing fields are ignored).
        has_header: Whether the first line is a header row.
        delimiter: Field separator character.
        allow_quoting: Whether double quotes group fields.

    Returns:
        A source that reopens the file on every pass.

    Raises:
        NotFoundError: If the file does not exist.
        FormatError: If any row has the wrong field count or an unparsable value.
        SchemaError: If a column type cannot be loaded from text.
    """
    file_path = Path(path).expanduser().resolve()
    if not file_path.is_file():
        raise NotFoundError(
            f"Failed to load data at {file_path}: file does not exist. "
            "Provide an existing delimited text file."
        )
    text_columns, exact_width = _resolve_text_columns(columns)
    schema = Schema(columns=tuple(Column(column.name, column.type) for column in text_columns))
    reader_options = _ReaderOptions(file_path, has_header, delimiter, allow_quoting)

    def produce() -> Iterator[Row]:
        return _read_rows(reader_options, text_columns, exact_width)

    row_count = sum(1 for _ in produce())
    _LOGGER.info("source_loaded", path=str(file_path), row_count=row_count, columns=schema.names)
    return TabularSource(schema, produce, str(file_path))


def parse_fields(schema: Schema, fields: Mapping[str, str]) -> dict[str, object]:
    """Parse ``NAME=VALUE`` style text fields against a schema.

    Args:
        schema: Schema naming the accepted columns.
        fields: Raw text value per column name.

    Returns:
        Column-name mapping of parsed values.

    Raises:
        SchemaError: If a name is not a loadable column of the schema.
        FormatError: If a value cannot be parsed.
    """
    parsed: dict[str, object] = {}
    for name, raw_value in fields.items():
        if name not in schema or schema.column(name).type not in _LOADABLE_TYPES:
            raise SchemaError(
                f"Unknown input field '{name}'. Available: {', '.join(_loadable_names(schema))}."
            )
        column = TextColumn(name, schema.column(name).type, 0)
        parsed[name] = _parse_value("field", column, raw_value)
    return parsed


def _loadable_names(schema: Schema) -> list[str]:
    return [column.name for column in schema.columns if column.type in _LOADABLE_TYPES]


@dataclass(frozen=True)
class _ReaderOptions:
    file_path: Path
    has_header: bool
    delimiter: str
    allow_quoting: bool


def _resolve_text_columns(
    columns: Schema | Sequence[TextColumn],
) -> tuple[tuple[TextColumn, ...], int | None]:
    if isinstance(columns, Schema):
        text_columns = tuple(
            TextColumn(column.name, column.type, index) for index, column in enumerate(columns)
        )
        exact_width: int | None = len(text_columns)
    else:
        text_columns = tuple(columns)
        exact_width = None
    for column in text_columns:
        if column.type not in _LOADABLE_TYPES:
            raise SchemaError(
                f"Column '{column.name}' of type '{column.type.value}' cannot be loaded "
                "from text. Use float, int, string, or bool columns."
            )
    return text_columns, exact_width


def _read_rows(
    options: _ReaderOptions,
    text_columns: tuple[TextColumn, ...],
    exact_width: int | None,
) -> Iterator[Row]:
    quoting = csv.QUOTE_MINIMAL if options.allow_quoting else csv.QUOTE_NONE
    min_width = max((column.index for column in text_columns), default=-1) + 1
    try:
        with options.file_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.reader(handle, delimiter=options.delimiter, quoting=quoting)
            for line_number, fields in enumerate(reader, 1):
                if line_number == 1 and options.has_header:
                    continue
                if not fields or all(not item.strip() for item in fields):
                    continue
                _check_width(options.file_path, line_number, len(fields), exact_width, min_width)
                yield tuple(
                    _parse_value(f"{options.file_path}:{line_number}", column, fields[column.index])
                    for column in text_columns
                )
    except OSError as error:
        raise NotFoundError(
            f"Failed to read data at {options.file_path}: {error}. "
            "Check the file exists and is readable."
        ) from error


def _check_width(
    file_path: Path,
    line_number: int,
    field_count: int,
    exact_width: int | None,
    min_width: int,
) -> None:
    if exact_width is not None and field_count != exact_width:
        raise FormatError(
            f"Invalid row at {file_path}:{line_number}: expected {exact_width} fields, "
            f"found {field_count}. Fix the row or the delimiter."
        )
    if field_count < min_width:
        raise FormatError(
            f"Invalid row at {file_path}:{line_number}: expected at least {min_width} fields, "
            f"found {field_count}. Fix the row or the delimiter."
        )


def _parse_value(location: str, column: TextColumn, raw_value: str) -> object:
    """Parse one field into the column's type.

    Raises:
        FormatError: If the field cannot be parsed.
    """
    value = raw_value.strip()
    if column.type == ColumnType.STRING:
        return raw_value
    if column.type == ColumnType.FLOAT:
        if not value:
            return math.nan
        return _convert(location, column, value, float)
    if column.type == ColumnType.INT:
        return _convert(location, column, value, int)
    normalized = value.lower()
    if normalized in TRUE_TOKENS:
        return True
    if normalized in FALSE_TOKENS:
        return False
    raise FormatError(
        f"Invalid value at {location} column '{column.name}': "
        f"expected bool, got '{raw_value}'."
    )


def _convert(
    location: str,
    column: TextColumn,
    value: str,
    converter: type,
) -> object:
    try:
        return converter(value)
    except ValueError as error:
        raise FormatError(
            f"Invalid value at {location} column '{column.name}': "
            f"expected {column.type.value}, got '{value}'."
        ) from error
