"""Unit tests for the boosted tree regression trainer."""

from __future__ import annotations

import math

import numpy as np
import pytest

from core.config import TabflowConfig
from core.errors import SchemaError, TrainerError
from core.schema import ColumnType, Schema
from ingest.tabular_source import TabularSource, from_rows
from trainers.regression import FastTreeRegressionTrainer, FittedFastTree

_SCHEMA = Schema.of(("Label", ColumnType.FLOAT), ("Features", ColumnType.VECTOR))


def _source(with_missing: bool = False) -> TabularSource:
    rows = [
        (2.0 * value + 1.0, np.asarray([value], dtype=np.float32))
        for value in np.linspace(0.0, 10.0, 40)
    ]
    if with_missing:
        rows.append((math.nan, np.asarray([3.0], dtype=np.float32)))
        rows.append((None, np.asarray([4.0], dtype=np.float32)))
    return from_rows(_SCHEMA, rows)


def test_fit_approximates_linear_target() -> None:
    """Boosted trees should track a simple monotone target."""
    trainer = FastTreeRegressionTrainer(min_leaf_rows=2)
    fitted = trainer.fit(_source(), TabflowConfig())

    score = fitted.bind(_SCHEMA)((None, np.asarray([5.0], dtype=np.float32)))[2]

    assert score == pytest.approx(11.0, abs=1.0)


def test_fit_skips_missing_targets() -> None:
    """NaN and None targets should not count as training rows."""
    fitted = FastTreeRegressionTrainer(min_leaf_rows=2).fit(_source(True), TabflowConfig())

    assert fitted.diagnostics.row_count == 40


def test_fit_without_targets_raises() -> None:
    """A source with no usable target cannot be fit."""
    source = from_rows(_SCHEMA, [(None, np.asarray([1.0], dtype=np.float32))])

    with pytest.raises(TrainerError, match="no rows"):
        FastTreeRegressionTrainer().fit(source, TabflowConfig())


def test_fit_is_deterministic_for_seed() -> None:
    """The same seed should yield the same predictions."""
    row = (None, np.asarray([7.3], dtype=np.float32))
    first = FastTreeRegressionTrainer(min_leaf_rows=2).fit(_source(), TabflowConfig(seed=9))
    second = FastTreeRegressionTrainer(min_leaf_rows=2).fit(_source(), TabflowConfig(seed=9))

    assert first.bind(_SCHEMA)(row)[2] == second.bind(_SCHEMA)(row)[2]


def test_fit_and_score_fill_missing_features_with_training_median() -> None:
    """A NaN feature is scored as if it held the training median."""
    rows = list(_source())
    rows.append((3.0, np.asarray([math.nan], dtype=np.float32)))
    fitted = FastTreeRegressionTrainer(min_leaf_rows=2).fit(
        from_rows(_SCHEMA, rows), TabflowConfig()
    )
    score_row = fitted.bind(_SCHEMA)

    missing = score_row((None, np.asarray([math.nan], dtype=np.float32)))[2]
    absent_vector = score_row((None, None))[2]
    median = score_row((None, np.asarray([5.0], dtype=np.float32)))[2]

    assert fitted.diagnostics.row_count == 41
    assert missing == pytest.approx(median)
    assert absent_vector == pytest.approx(median)


def test_score_rejects_feature_width_change() -> None:
    """Scoring with a different feature width raises a schema error."""
    fitted = FastTreeRegressionTrainer(min_leaf_rows=2).fit(_source(), TabflowConfig())

    with pytest.raises(SchemaError, match="fit on 1 features"):
        fitted.bind(_SCHEMA)((None, np.asarray([1.0, 2.0], dtype=np.float32)))


def test_state_round_trip_keeps_imputer() -> None:
    """Restored trainers should fill missing features the same way."""
    fitted = FastTreeRegressionTrainer(min_leaf_rows=2).fit(_source(), TabflowConfig())
    restored = FittedFastTree.from_state(fitted.to_state())
    row = (None, np.asarray([math.nan], dtype=np.float32))

    assert restored.bind(_SCHEMA)(row)[2] == fitted.bind(_SCHEMA)(row)[2]
