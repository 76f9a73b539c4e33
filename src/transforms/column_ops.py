"""Stateless column operations: concatenate, copy, and cache checkpoints."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from core.config import TabflowConfig
from core.schema import Column, ColumnType, NUMERIC_TYPES, Row, Schema, write_column
from ingest.tabular_source import TabularSource
from transforms.base import FittedStage, RowMapper, TransformStage

_CONCATENABLE_TYPES = NUMERIC_TYPES + (ColumnType.VECTOR,)


@dataclass(frozen=True)
class Concatenate(TransformStage):
    """Join scalar and vector columns into one feature vector, in declared order."""

    output_column: str
    sources: tuple[str, ...]

    kind = "concatenate"

    @classmethod
    def of(cls, output_column: str, *sources: str) -> "Concatenate":
        return cls(output_column=output_column, sources=tuple(sources))

    @property
    def input_columns(self) -> tuple[str, ...]:
        return self.sources

    @property
    def output_columns(self) -> tuple[str, ...]:
        return (self.output_column,)

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input_columns, self.name, _CONCATENABLE_TYPES)
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedConcatenate":
        self.output_schema(source.schema)
        return FittedConcatenate(
            output_column=self.output_column,
            input_columns=self.input_columns,
        )


@dataclass(frozen=True)
class FittedConcatenate(FittedStage):
    output_column: str
    input_columns: tuple[str, ...]

    kind = "concatenate"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input_columns, self.kind, _CONCATENABLE_TYPES)
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def bind(self, schema: Schema) -> RowMapper:
        schema.require(self.input_columns, self.kind, _CONCATENABLE_TYPES)
        parts = tuple(
            (schema.index_of(name), schema.column(name).type == ColumnType.VECTOR)
            for name in self.input_columns
        )
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            pieces = [
                np.asarray(row[index], dtype=np.float32).ravel()
                if is_vector
                else np.asarray([_as_float(row[index])], dtype=np.float32)
                for index, is_vector in parts
            ]
            return write_column(schema, row, output_column, np.concatenate(pieces))

        return map_row

    def to_state(self) -> dict[str, Any]:
        return {"output_column": self.output_column, "input_columns": list(self.input_columns)}

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedConcatenate":
        return cls(
            output_column=str(state["output_column"]),
            input_columns=tuple(state["input_columns"]),
        )


@dataclass(frozen=True)
class CopyColumn(TransformStage):
    """Duplicate a column under a new name, replacing any existing column."""

    output_column: str
    input_column: str

    kind = "copy_column"

    @property
    def input_columns(self) -> tuple[str, ...]:
        return (self.input_column,)

    @property
    def output_columns(self) -> tuple[str, ...]:
        return (self.output_column,)

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(self.input_columns, self.name)
        return _copy_schema(schema, self.input_column, self.output_column)

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedCopyColumn":
        return FittedCopyColumn(output_column=self.output_column, input_column=self.input_column)


@dataclass(frozen=True)
class FittedCopyColumn(FittedStage):
    output_column: str
    input_column: str

    kind = "copy_column"

    def output_schema(self, schema: Schema) -> Schema:
        return _copy_schema(schema, self.input_column, self.output_column)

    def bind(self, schema: Schema) -> RowMapper:
        index = schema.index_of(self.input_column)
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            return write_column(schema, row, output_column, row[index])

        return map_row

    def to_state(self) -> dict[str, Any]:
        return {"output_column": self.output_column, "input_column": self.input_column}

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedCopyColumn":
        return cls(
            output_column=str(state["output_column"]),
            input_column=str(state["input_column"]),
        )


@dataclass(frozen=True)
class CacheCheckpoint(TransformStage):
    """Marker allowing rows produced so far to be materialized once and reused."""

    kind = "cache_checkpoint"

    @property
    def input_columns(self) -> tuple[str, ...]:
        return ()

    @property
    def output_columns(self) -> tuple[str, ...]:
        return ()

    def output_schema(self, schema: Schema) -> Schema:
        return schema

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedCacheCheckpoint":
        return FittedCacheCheckpoint()


@dataclass(frozen=True)
class FittedCacheCheckpoint(FittedStage):
    kind = "cache_checkpoint"

    def output_schema(self, schema: Schema) -> Schema:
        return schema

    def bind(self, schema: Schema) -> RowMapper:
        return _identity

    def to_state(self) -> dict[str, Any]:
        return {}

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedCacheCheckpoint":
        return cls()


def _copy_schema(schema: Schema, input_column: str, output_column: str) -> Schema:
    source_column = schema.column(input_column)
    return schema.with_column(
        Column(output_column, source_column.type, source_column.key_values)
    )


def _as_float(value: object) -> float:
    if value is None:
        return math.nan
    return float(value)  # type: ignore[arg-type]


def _identity(row: Row) -> Row:
    return row
