"""Free-text featurization.

Text is hashed into word uni/bi-gram and character tri-gram count vectors
with scikit-learn's ``HashingVectorizer``, optionally re-weighted by
inverse document frequencies captured at fit time, and L2-normalized into
one fixed-length dense vector.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np
from scipy import sparse
from sklearn.feature_extraction.text import HashingVectorizer, TfidfTransformer

from core.config import TabflowConfig
from core.constants import DEFAULT_CHAR_HASH_FEATURES, DEFAULT_WORD_HASH_FEATURES
from core.logging_config import get_logger
from core.schema import Column, ColumnType, Row, Schema, write_column
from ingest.tabular_source import TabularSource
from transforms.base import FittedStage, RowMapper, TransformStage

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FeaturizeText(TransformStage):
    """Turn a text column into a normalized numeric vector."""

    output_column: str
    input_column: str | None = None
    word_features: int = DEFAULT_WORD_HASH_FEATURES
    char_features: int = DEFAULT_CHAR_HASH_FEATURES
    use_idf: bool = False

    kind = "featurize_text"

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
        schema.require(self.input_columns, self.name, (ColumnType.STRING,))
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedTextFeaturizer":
        idf_weights = None
        if self.use_idf:
            index = source.schema.index_of(self.source_column)
            texts = [_as_text(row[index]) for row in source]
            counts = _hash_counts(texts, self.word_features, self.char_features)
            transformer = TfidfTransformer(norm=None, smooth_idf=True).fit(counts)
            idf_weights = transformer.idf_.astype(np.float32)
            _LOGGER.info("term_statistics_captured", stage=self.name, document_count=len(texts))
        return FittedTextFeaturizer(
            output_column=self.output_column,
            input_column=self.source_column,
            word_features=self.word_features,
            char_features=self.char_features,
            idf_weights=idf_weights,
        )


@dataclass(frozen=True, eq=False)
class FittedTextFeaturizer(FittedStage):
    """Frozen text hashing parameters and optional idf weights."""

    output_column: str
    input_column: str
    word_features: int
    char_features: int
    idf_weights: np.ndarray | None = field(default=None)

    kind = "featurize_text"

    @property
    def dimension(self) -> int:
        return self.word_features + self.char_features

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column(self.output_column, ColumnType.VECTOR))

    def bind(self, schema: Schema) -> RowMapper:
        index = schema.index_of(self.input_column)
        output_column = self.output_column

        def map_row(row: Row) -> Row:
            return write_column(schema, row, output_column, self.featurize(_as_text(row[index])))

        return map_row

    def featurize(self, text: str) -> np.ndarray:
        """Featurize one document into a dense float32 vector."""
        counts = _hash_counts([text], self.word_features, self.char_features)
        vector = np.asarray(counts.todense(), dtype=np.float32).ravel()
        if self.idf_weights is not None:
            vector = vector * self.idf_weights
        norm = float(np.linalg.norm(vector))
        if norm > 0.0:
            vector = vector / norm
        return vector.astype(np.float32)

    def to_state(self) -> dict[str, Any]:
        return {
            "output_column": self.output_column,
            "input_column": self.input_column,
            "word_features": self.word_features,
            "char_features": self.char_features,
            "idf_weights": self.idf_weights,
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedTextFeaturizer":
        idf_weights = state.get("idf_weights")
        return cls(
            output_column=str(state["output_column"]),
            input_column=str(state["input_column"]),
            word_features=int(state["word_features"]),
            char_features=int(state["char_features"]),
            idf_weights=None if idf_weights is None else np.asarray(idf_weights, np.float32),
        )


def _hash_counts(texts: list[str], word_features: int, char_features: int) -> sparse.csr_matrix:
    word_vectorizer = HashingVectorizer(
        n_features=word_features,
        ngram_range=(1, 2),
        alternate_sign=False,
        norm=None,
        lowercase=True,
    )
    char_vectorizer = HashingVectorizer(
        n_features=char_features,
        analyzer="char_wb",
        ngram_range=(3, 3),
        alternate_sign=False,
        norm=None,
        lowercase=True,
    )
    return sparse.hstack(
        [word_vectorizer.transform(texts), char_vectorizer.transform(texts)],
        format="csr",
    )


def _as_text(value: object) -> str:
    return "" if value is None else str(value)
