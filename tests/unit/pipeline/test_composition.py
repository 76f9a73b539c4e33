"""Unit tests for pipeline composition and fit."""

from __future__ import annotations

from typing import Iterator

import pytest

from core.config import TabflowConfig
from core.errors import SchemaError, TrainerError
from core.schema import ColumnType, Row, Schema
from ingest.tabular_source import TabularSource, from_rows
from pipeline.composition import Pipeline
from trainers.multiclass import MaximumEntropyMulticlassTrainer
from transforms.column_ops import Concatenate
from transforms.value_key import MapKeyToValue, MapValueToKey

_SCHEMA = Schema.of(
    ("Label", ColumnType.STRING),
    ("x", ColumnType.FLOAT),
    ("y", ColumnType.FLOAT),
)
_ROWS = [
    ("low", 0.0, 0.1),
    ("low", 0.2, 0.0),
    ("low", 0.1, 0.3),
    ("high", 5.0, 5.1),
    ("high", 5.2, 4.9),
    ("high", 4.8, 5.0),
]


class _CountingSource(TabularSource):
    """Source that records how many full passes were requested."""

    def __init__(self, rows: list[Row]) -> None:
        self.passes = 0
        super().__init__(_SCHEMA, self._produce, "counting")
        self._rows = rows

    def _produce(self) -> Iterator[Row]:
        self.passes += 1
        return iter(self._rows)


def _pipeline() -> Pipeline:
    return (
        Pipeline.of(MapValueToKey("Label"), Concatenate.of("Features", "x", "y"))
        .with_trainer(MaximumEntropyMulticlassTrainer())
        .append(MapKeyToValue("PredictedLabel"))
    )


def test_fit_scores_and_maps_key_back_to_value() -> None:
    """A fitted pipeline should return the original label value."""
    model = _pipeline().fit(from_rows(_SCHEMA, _ROWS), TabflowConfig())

    scored = dict(zip(model.output_schema.names, model.transform_row(("", 5.0, 5.0))))

    assert scored["PredictedLabel"] == "high"


def test_append_after_trainer_adds_post_stage() -> None:
    """Stages appended after the trainer should run on scored rows."""
    pipeline = _pipeline()

    assert len(pipeline.stages) == 2
    assert len(pipeline.post_stages) == 1


def test_output_schema_names_failing_stage() -> None:
    """Static validation should name the stage with the missing input."""
    pipeline = Pipeline.of(Concatenate.of("Features", "x", "z"))

    with pytest.raises(SchemaError, match="concatenate:Features"):
        pipeline.output_schema(_SCHEMA)


def test_fit_validates_before_reading_rows() -> None:
    """A broken column chain should fail before any row is read."""
    source = _CountingSource(_ROWS)
    pipeline = Pipeline.of(MapValueToKey("Label"), Concatenate.of("Features", "missing"))

    with pytest.raises(SchemaError):
        pipeline.fit(source, TabflowConfig())

    assert source.passes == 0


def test_fit_propagates_trainer_failure() -> None:
    """Degenerate training data should raise instead of producing a model."""
    rows = [row for row in _ROWS if row[0] == "low"]

    with pytest.raises(TrainerError):
        _pipeline().fit(from_rows(_SCHEMA, rows), TabflowConfig())


def test_fit_is_deterministic_for_seed() -> None:
    """Two fits with the same seed and data should score identically."""
    first = _pipeline().fit(from_rows(_SCHEMA, _ROWS), TabflowConfig(seed=11))
    second = _pipeline().fit(from_rows(_SCHEMA, _ROWS), TabflowConfig(seed=11))
    row = ("", 2.5, 2.4)

    first_score = first.transform_row(row)[first.output_schema.index_of("Score")]
    second_score = second.transform_row(row)[second.output_schema.index_of("Score")]

    assert first_score.tolist() == second_score.tolist()


def test_fingerprint_tracks_definition() -> None:
    """Equal definitions should share a fingerprint and changes should alter it."""
    changed = Pipeline.of(MapValueToKey("Label"), Concatenate.of("Features", "y", "x"))

    assert _pipeline().fingerprint() == _pipeline().fingerprint()
    assert changed.fingerprint() != _pipeline().fingerprint()


def test_cache_checkpoint_avoids_rereading_source() -> None:
    """Stages after a checkpoint should read the materialized rows."""
    pipeline = Pipeline.of(
        MapValueToKey("Label"),
        Concatenate.of("Features", "x", "y"),
    ).append_cache_checkpoint().append(MapValueToKey("xKey", "x")).append(
        MapValueToKey("yKey", "y")
    )
    cached_source = _CountingSource(_ROWS)
    uncached_source = _CountingSource(_ROWS)

    pipeline.fit(cached_source, TabflowConfig(cache_rows=True))
    pipeline.fit(uncached_source, TabflowConfig(cache_rows=False))

    assert cached_source.passes < uncached_source.passes


def test_transform_only_pipeline_has_no_task() -> None:
    """A pipeline without a trainer should still fit into a model."""
    model = Pipeline.of(MapValueToKey("Label")).fit(from_rows(_SCHEMA, _ROWS))

    assert model.task is None
    assert model.diagnostics is None
    assert model.transform_row(("high", 0.0, 0.0))[0] == 2
