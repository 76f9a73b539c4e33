"""One-hot encoding of categorical columns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np
from sklearn.preprocessing import OneHotEncoder

from core.config import TabflowConfig
from core.schema import Column, ColumnType, Row, Schema, write_column
from ingest.tabular_source import TabularSource
from transforms.base import FittedStage, RowMapper, TransformStage, is_missing

_ENCODABLE_TYPES = (ColumnType.STRING, ColumnType.INT, ColumnType.FLOAT, ColumnType.BOOL)


@dataclass(frozen=True)
class OneHotEncoding(TransformStage):
    """Encode a categorical column as an indicator vector.

    The vector has one slot per fit-time category, in sorted order, after
    slot 0, which is set for missing values and values never seen during fit.
    """

    output_column: str
    input_column: str | None = None

    kind = "one_hot_encoding"

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
        schema.require(self.input_columns, self.name, _ENCODABLE_TYPES)
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedOneHot":
        index = source.schema.index_of(self.source_column)
        values = [row[index] for row in source if not is_missing(row[index])]
        encoder = None
        if values:
            encoder = _new_encoder("auto").fit(_as_column(values))
        return FittedOneHot(
            output_column=self.output_column,
            input_column=self.source_column,
            encoder=encoder,
        )


@dataclass(frozen=True, eq=False)
class FittedOneHot(FittedStage):
    """Fitted scikit-learn encoder; None when fit saw no values."""

    output_column: str
    input_column: str
    encoder: OneHotEncoder | None

    kind = "one_hot_encoding"

    @property
    def categories(self) -> tuple[object, ...]:
        if self.encoder is None:
            return ()
        return tuple(self.encoder.categories_[0].tolist())

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def bind(self, schema: Schema) -> RowMapper:
        index = schema.index_of(self.input_column)
        encoder = self.encoder
        width = len(self.categories)
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            value = row[index]
            if encoder is None or is_missing(value):
                indicators = np.zeros(width, dtype=np.float32)
            else:
                indicators = encoder.transform(_as_column((value,)))[0]
            unseen = np.float32(0.0 if indicators.any() else 1.0)
            vector = np.concatenate(([unseen], indicators)).astype(np.float32)
            return write_column(schema, row, output_column, vector)

        return map_row

    def to_state(self) -> dict[str, Any]:
        return {
            "output_column": self.output_column,
            "input_column": self.input_column,
            "encoder": self.encoder,
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedOneHot":
        encoder = state.get("encoder")
        if encoder is None and state.get("categories"):
            # Earlier artifacts stored the category list in slot order.
            categories = _as_column(state["categories"])
            encoder = _new_encoder([categories.ravel()]).fit(categories)
        return cls(
            output_column=str(state["output_column"]),
            input_column=str(state["input_column"]),
            encoder=encoder,
        )


def _new_encoder(categories: Any) -> OneHotEncoder:
    return OneHotEncoder(
        categories=categories,
        handle_unknown="ignore",
        sparse_output=False,
        dtype=np.float32,
    )


def _as_column(values: Sequence[object]) -> np.ndarray:
    return np.asarray(list(values), dtype=object).reshape(-1, 1)
