"""Unit tests for concatenate, copy, and cache checkpoint stages."""

from __future__ import annotations

import numpy as np
import pytest

from core.config import TabflowConfig
from core.errors import SchemaError
from core.schema import ColumnType, Schema
from ingest.tabular_source import from_rows
from transforms.column_ops import CacheCheckpoint, Concatenate, CopyColumn

_SCHEMA = Schema.of(
    ("a", ColumnType.FLOAT),
    ("v", ColumnType.VECTOR),
    ("b", ColumnType.INT),
    ("s", ColumnType.STRING),
)
_ROW = (1.5, np.asarray([2.0, 3.0], dtype=np.float32), 4, "x")


def test_concatenate_joins_in_declared_order() -> None:
    """Scalars and vectors should be flattened in the declared source order."""
    stage = Concatenate.of("Features", "b", "v", "a")
    fitted = stage.fit(from_rows(_SCHEMA, [_ROW]), TabflowConfig())

    row = fitted.bind(_SCHEMA)(_ROW)

    assert np.array_equal(row[-1], np.asarray([4.0, 2.0, 3.0, 1.5], dtype=np.float32))


def test_concatenate_missing_scalar_becomes_nan() -> None:
    """A missing scalar should not change the output width."""
    fitted = Concatenate.of("Features", "a", "b").fit(from_rows(_SCHEMA, []), TabflowConfig())

    row = fitted.bind(_SCHEMA)((None, _ROW[1], 4, "x"))

    assert row[-1].shape == (2,) and np.isnan(row[-1][0])


def test_concatenate_rejects_string_source() -> None:
    """Strings cannot be concatenated into a numeric vector."""
    with pytest.raises(SchemaError, match="'s'"):
        Concatenate.of("Features", "a", "s").output_schema(_SCHEMA)


def test_concatenate_missing_source_names_stage() -> None:
    """A missing source should name the stage in the error."""
    with pytest.raises(SchemaError, match="concatenate:Features"):
        Concatenate.of("Features", "missing").output_schema(_SCHEMA)


def test_copy_column_replaces_existing_target() -> None:
    """Copying onto an existing name should replace it in place."""
    stage = CopyColumn(output_column="a", input_column="b")
    fitted = stage.fit(from_rows(_SCHEMA, []), TabflowConfig())

    output_schema = fitted.output_schema(_SCHEMA)
    row = fitted.bind(_SCHEMA)(_ROW)

    assert output_schema.names == _SCHEMA.names and output_schema.column("a").type == ColumnType.INT
    assert row[0] == 4


def test_cache_checkpoint_is_identity() -> None:
    """A checkpoint should leave schema and rows unchanged."""
    fitted = CacheCheckpoint().fit(from_rows(_SCHEMA, []), TabflowConfig())

    assert fitted.output_schema(_SCHEMA) == _SCHEMA and fitted.bind(_SCHEMA)(_ROW) is _ROW
