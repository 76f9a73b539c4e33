"""Value-to-key and key-to-value conversions.

``MapValueToKey`` builds a vocabulary over the values seen during fit and
replaces each value with a small integer key (1-based, in order of first
occurrence). Values never seen during fit map to the reserved missing key 0.
``MapKeyToValue`` reverses the mapping using the vocabulary carried by the
key column's schema entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from core.config import TabflowConfig
from core.constants import MISSING_KEY
from core.errors import SchemaError
from core.logging_config import get_logger
from core.schema import Column, ColumnType, Row, Schema, write_column
from ingest.tabular_source import TabularSource
from transforms.base import FittedStage, RowMapper, TransformStage, is_missing

_LOGGER = get_logger(__name__)
_KEYABLE_TYPES = (ColumnType.STRING, ColumnType.INT, ColumnType.FLOAT, ColumnType.BOOL)


@dataclass(frozen=True)
class MapValueToKey(TransformStage):
    """Map categorical values onto vocabulary keys."""

    output_column: str
    input_column: str | None = None

    kind = "map_value_to_key"

    @property
    def source_column(self) -> str:
        return self.input_column or self.output_column

    @property
    def input_columns(self) -> tuple[str, ...]:
        return (self.source_column,)

    @property
    def output_columns(self) -> tuple[str, ...]:
        return (self.output_column,)

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input_columns, self.name, _KEYABLE_TYPES)
        return schema.with_column(Column(self.output_column, ColumnType.KEY))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedValueToKey":
        index = source.schema.index_of(self.source_column)
        vocabulary: dict[object, None] = {}
        for row in source:
            value = row[index]
            if is_missing(value) or value in vocabulary:
                continue
            vocabulary[value] = None
        _LOGGER.info(
            "vocabulary_built",
            stage=self.name,
            input_column=self.source_column,
            key_count=len(vocabulary),
        )
        return FittedValueToKey(
            output_column=self.output_column,
            input_column=self.source_column,
            vocabulary=tuple(vocabulary),
        )


@dataclass(frozen=True)
class FittedValueToKey(FittedStage):
    """Frozen value vocabulary."""

    output_column: str
    input_column: str
    vocabulary: tuple[object, ...]

    kind = "map_value_to_key"

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column(self.output_column, ColumnType.KEY, self.vocabulary))

    def bind(self, schema: Schema) -> RowMapper:
        index = schema.index_of(self.input_column)
        lookup = {value: key for key, value in enumerate(self.vocabulary, 1)}
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            value = row[index]
            key = MISSING_KEY if is_missing(value) else lookup.get(value, MISSING_KEY)
            return write_column(schema, row, output_column, key)

        return map_row

    def to_state(self) -> dict[str, Any]:
        return {
            "output_column": self.output_column,
            "input_column": self.input_column,
            "vocabulary": list(self.vocabulary),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedValueToKey":
        return cls(
            output_column=str(state["output_column"]),
            input_column=str(state["input_column"]),
            vocabulary=tuple(state["vocabulary"]),
        )


@dataclass(frozen=True)
class MapKeyToValue(TransformStage):
    """Map vocabulary keys back onto their original values."""

    output_column: str
    input_column: str | None = None

    kind = "map_key_to_value"

    @property
    def source_column(self) -> str:
        return self.input_column or self.output_column

    @property
    def input_columns(self) -> tuple[str, ...]:
        return (self.source_column,)

    @property
    def output_columns(self) -> tuple[str, ...]:
        return (self.output_column,)

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input_columns, self.name, (ColumnType.KEY,))
        key_column = schema.column(self.source_column)
        value_type = _value_type(key_column.key_values or ())
        return schema.with_column(Column(self.output_column, value_type))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedKeyToValue":
        key_column = source.schema.column(self.source_column)
        if key_column.key_values is None:
            raise SchemaError(
                f"Stage '{self.name}' needs a vocabulary on key column '{self.source_column}', "
                "but none was captured. Place it after the stage that produces the keys."
            )
        return FittedKeyToValue(
            output_column=self.output_column,
            input_column=self.source_column,
            vocabulary=key_column.key_values,
        )


@dataclass(frozen=True)
class FittedKeyToValue(FittedStage):
    """Frozen key-to-value lookup."""

    output_column: str
    input_column: str
    vocabulary: tuple[object, ...]

    kind = "map_key_to_value"

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column(self.output_column, _value_type(self.vocabulary)))

    def bind(self, schema: Schema) -> RowMapper:
        index = schema.index_of(self.input_column)
        vocabulary = self.vocabulary
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            key = row[index]
            value = None
            if isinstance(key, int) and 0 < key <= len(vocabulary):
                value = vocabulary[key - 1]
            return write_column(schema, row, output_column, value)

        return map_row

    def to_state(self) -> dict[str, Any]:
        return {
            "output_column": self.output_column,
            "input_column": self.input_column,
            "vocabulary": list(self.vocabulary),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedKeyToValue":
        return cls(
            output_column=str(state["output_column"]),
            input_column=str(state["input_column"]),
            vocabulary=tuple(state["vocabulary"]),
        )


def _value_type(vocabulary: tuple[object, ...]) -> ColumnType:
    """Infer the value type of a vocabulary from its entries."""
    if vocabulary and all(isinstance(item, bool) for item in vocabulary):
        return ColumnType.BOOL
    if vocabulary and all(isinstance(item, int) for item in vocabulary):
        return ColumnType.INT
    if vocabulary and all(isinstance(item, (int, float)) for item in vocabulary):
        return ColumnType.FLOAT
    return ColumnType.STRING
