"""Unit tests for text featurization."""

from __future__ import annotations

import numpy as np

from core.config import TabflowConfig
from core.schema import ColumnType, Schema
from ingest.tabular_source import from_rows
from transforms.text_featurizer import FeaturizeText, FittedTextFeaturizer

_SCHEMA = Schema.of(("Text", ColumnType.STRING))
_TEXTS = [("great food",), ("terrible service",), ("great service",)]


def _fit(use_idf: bool = False) -> FittedTextFeaturizer:
    stage = FeaturizeText(
        output_column="Features",
        input_column="Text",
        word_features=64,
        char_features=64,
        use_idf=use_idf,
    )
    return stage.fit(from_rows(_SCHEMA, _TEXTS), TabflowConfig())


def test_featurize_produces_fixed_width_unit_vectors() -> None:
    """Every document should map to an L2-normalized vector of the same width."""
    fitted = _fit()

    vectors = [fitted.featurize(text) for text in ("great food", "a much longer review text")]

    assert all(vector.shape == (128,) for vector in vectors)
    assert np.allclose([np.linalg.norm(vector) for vector in vectors], 1.0, atol=1e-5)


def test_featurize_unseen_and_empty_text() -> None:
    """Unseen words still hash; empty text maps to the zero vector."""
    fitted = _fit()

    assert np.linalg.norm(fitted.featurize("zzzz qqqq")) > 0
    assert not fitted.featurize("").any()


def test_featurize_is_deterministic() -> None:
    """The same text should always produce the same vector."""
    fitted = _fit(use_idf=True)

    assert np.array_equal(fitted.featurize("great food"), fitted.featurize("great food"))


def test_idf_weights_are_captured_at_fit() -> None:
    """IDF mode should keep one weight per hashed feature."""
    fitted = _fit(use_idf=True)

    assert fitted.idf_weights is not None and fitted.idf_weights.shape == (128,)


def test_bind_writes_vector_column() -> None:
    """The bound mapper should append the feature vector."""
    fitted = _fit()
    output_schema = fitted.output_schema(_SCHEMA)

    row = fitted.bind(_SCHEMA)(("great food",))

    assert output_schema.column("Features").type == ColumnType.VECTOR and row[1].shape == (128,)


def test_state_round_trip_featurizes_identically() -> None:
    """A rebuilt featurizer should produce identical vectors."""
    fitted = _fit(use_idf=True)

    restored = FittedTextFeaturizer.from_state(fitted.to_state())

    assert np.array_equal(restored.featurize("great service"), fitted.featurize("great service"))
