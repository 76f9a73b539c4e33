"""Iris flower clustering and classification.

Both pipelines share the same preprocessing: the flower type becomes the
key label and the four measurements are concatenated into the features.
The clustering pipeline ignores the label while fitting and only uses it
to report mutual information against the found clusters.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.records import column_field, record_schema
from ingest.tabular_source import TabularSource
from ingest.text_loader import load_text
from pipeline.composition import Pipeline
from trainers.clustering import KMeansTrainer
from trainers.multiclass import MaximumEntropyMulticlassTrainer
from transforms.column_ops import Concatenate
from transforms.value_key import MapKeyToValue, MapValueToKey

IRIS_TEST_FRACTION = 0.1


@dataclass(frozen=True)
class IrisData:
    sepal_length: float | None = column_field("SepalLength")
    sepal_width: float | None = column_field("SepalWidth")
    petal_length: float | None = column_field("PetalLength")
    petal_width: float | None = column_field("PetalWidth")
    flower_type: str | None = column_field("FlowerType")


@dataclass(frozen=True)
class ClusterPrediction:
    expected_flower_type_id: int | None = column_field("Label")
    predicted_cluster_id: int | None = column_field("PredictedLabel")
    distances: tuple[float, ...] | None = column_field("Score")


@dataclass(frozen=True)
class MulticlassPrediction:
    expected_flower_type_id: int | None = column_field("Label")
    predicted_flower_type_id: int | None = column_field("PredictedLabel")
    predicted_flower_type: str | None = column_field("PredictedFlowerType")
    scores: tuple[float, ...] | None = column_field("Score")


IRIS_SCHEMA = record_schema(IrisData)

SETOSA = IrisData(sepal_length=5.1, sepal_width=3.5, petal_length=1.4, petal_width=0.2)


def load(path: str | Path) -> TabularSource:
    """Load the comma-separated iris file, which has no header row."""
    return load_text(path, IRIS_SCHEMA, delimiter=",")


def _preprocessing() -> Pipeline:
    return Pipeline.of(
        MapValueToKey(output_column="Label", input_column="FlowerType"),
        Concatenate.of("Features", "SepalLength", "SepalWidth", "PetalLength", "PetalWidth"),
    ).append_cache_checkpoint()


def build_clustering_pipeline(cluster_count: int = 3) -> Pipeline:
    return (
        _preprocessing()
        .with_trainer(KMeansTrainer(feature_column="Features", cluster_count=cluster_count))
        .append(MapKeyToValue(output_column="ExpectedFlowerType", input_column="Label"))
    )


def build_multiclass_pipeline() -> Pipeline:
    return (
        _preprocessing()
        .with_trainer(
            MaximumEntropyMulticlassTrainer(label_column="Label", feature_column="Features")
        )
        .append(MapKeyToValue(output_column="ExpectedFlowerType", input_column="Label"))
        .append(MapKeyToValue(output_column="PredictedFlowerType", input_column="PredictedLabel"))
    )
