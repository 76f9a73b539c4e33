"""Unit tests for the k-means clustering trainer."""

from __future__ import annotations

import numpy as np
import pytest

from core.config import TabflowConfig
from core.errors import TrainerError
from core.schema import ColumnType, Schema
from ingest.tabular_source import TabularSource, from_rows
from trainers.clustering import KMeansTrainer

_SCHEMA = Schema.of(("Features", ColumnType.VECTOR))


def _source() -> TabularSource:
    rows = []
    for center in ((0.0, 0.0), (10.0, 10.0), (0.0, 10.0)):
        for offset in range(5):
            point = np.asarray(center, dtype=np.float32) + np.float32(0.1 * offset)
            rows.append((point,))
    return from_rows(_SCHEMA, rows)


def test_fit_assigns_each_blob_its_own_cluster() -> None:
    """Points from separate blobs should land in distinct clusters."""
    fitted = KMeansTrainer(cluster_count=3).fit(_source(), TabflowConfig())
    score_row = fitted.bind(_SCHEMA)

    clusters = {
        score_row((np.asarray(center, dtype=np.float32),))[2]
        for center in ((0.0, 0.0), (10.0, 10.0), (0.0, 10.0))
    }

    assert clusters == {1, 2, 3}


def test_score_holds_squared_distance_per_centroid() -> None:
    """Score should list one squared distance per centroid, nearest at the predicted id."""
    fitted = KMeansTrainer(cluster_count=3).fit(_source(), TabflowConfig())

    _, distances, cluster = fitted.bind(_SCHEMA)((np.asarray([0.2, 0.2], dtype=np.float32),))

    assert distances.shape == (3,)
    assert int(np.argmin(distances)) + 1 == cluster


def test_output_schema_declares_cluster_keys() -> None:
    """PredictedLabel should be a key over cluster ids."""
    schema = KMeansTrainer(cluster_count=4).output_schema(_SCHEMA)

    assert schema.column("PredictedLabel").key_values == (1, 2, 3, 4)


def test_fit_with_fewer_rows_than_clusters_raises() -> None:
    """k-means needs at least one row per cluster."""
    source = from_rows(_SCHEMA, [(np.asarray([1.0, 1.0], dtype=np.float32),)])

    with pytest.raises(TrainerError, match="at least 3 rows"):
        KMeansTrainer(cluster_count=3).fit(source, TabflowConfig())


def test_fit_is_deterministic_for_seed() -> None:
    """Centroids should not change between fits with the same seed."""
    first = KMeansTrainer().fit(_source(), TabflowConfig(seed=5))
    second = KMeansTrainer().fit(_source(), TabflowConfig(seed=5))

    assert np.array_equal(first.centroids, second.centroids)


def test_missing_features_use_training_medians() -> None:
    """NaN features in fit and scoring are replaced by per-feature medians."""
    rows = list(_source()) + [(np.asarray([np.nan, 10.0], dtype=np.float32),)]
    fitted = KMeansTrainer(cluster_count=3).fit(from_rows(_SCHEMA, rows), TabflowConfig())
    score_row = fitted.bind(_SCHEMA)

    _, distances, cluster = score_row((np.asarray([np.nan, np.nan], dtype=np.float32),))
    expected = score_row((np.asarray([0.0, 10.0], dtype=np.float32),))[2]

    assert np.isfinite(distances).all()
    assert cluster == expected
