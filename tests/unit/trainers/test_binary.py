"""Unit tests for the logistic regression binary trainer."""

from __future__ import annotations

import numpy as np
import pytest

from core.config import TabflowConfig
from core.errors import TrainerError
from core.schema import ColumnType, Schema
from ingest.tabular_source import TabularSource, from_rows
from trainers.binary import FittedLogisticRegression, LogisticRegressionBinaryTrainer

_SCHEMA = Schema.of(("Label", ColumnType.BOOL), ("Features", ColumnType.VECTOR))


def _source(labels: tuple[bool, ...] = (True, False)) -> TabularSource:
    rows = []
    for label in labels:
        base = 2.0 if label else -2.0
        for offset in range(8):
            rows.append((label, np.asarray([base + 0.1 * offset, base], dtype=np.float32)))
    rows.append((None, np.asarray([0.0, 0.0], dtype=np.float32)))
    return from_rows(_SCHEMA, rows)


def test_fit_scores_margin_probability_and_decision() -> None:
    """Scored rows should carry consistent margin, probability, and decision."""
    fitted = LogisticRegressionBinaryTrainer().fit(_source(), TabflowConfig())
    score_row = fitted.bind(_SCHEMA)

    _, _, score, probability, predicted = score_row(
        (None, np.asarray([2.0, 2.0], dtype=np.float32))
    )

    assert score > 0 and probability > 0.5 and predicted is True


def test_fit_skips_rows_without_label() -> None:
    """Rows with a missing label should be left out of training."""
    fitted = LogisticRegressionBinaryTrainer().fit(_source(), TabflowConfig())

    assert fitted.diagnostics.row_count == 16


def test_fit_single_class_raises() -> None:
    """Training needs both positive and negative rows."""
    with pytest.raises(TrainerError, match="both positive and negative"):
        LogisticRegressionBinaryTrainer().fit(_source(labels=(True,)), TabflowConfig())


def test_output_schema_adds_three_columns() -> None:
    """Binary scoring should add Score, Probability, and PredictedLabel."""
    schema = LogisticRegressionBinaryTrainer().output_schema(_SCHEMA)

    assert schema.names[-3:] == ("Score", "Probability", "PredictedLabel")


def test_state_round_trip_scores_identically() -> None:
    """A rebuilt trainer should reproduce the same probability."""
    fitted = LogisticRegressionBinaryTrainer().fit(_source(), TabflowConfig())
    restored = FittedLogisticRegression.from_state(fitted.to_state())
    row = (None, np.asarray([0.5, -0.5], dtype=np.float32))

    assert restored.bind(_SCHEMA)(row)[3] == fitted.bind(_SCHEMA)(row)[3]


def test_score_fills_missing_feature() -> None:
    """A record with a missing measurement still gets a probability."""
    fitted = LogisticRegressionBinaryTrainer().fit(_source(), TabflowConfig())

    _, _, score, probability, predicted = fitted.bind(_SCHEMA)(
        (None, np.asarray([2.0, np.nan], dtype=np.float32))
    )

    assert np.isfinite(score)
    assert 0.0 <= probability <= 1.0
    assert predicted is (probability > 0.5)
