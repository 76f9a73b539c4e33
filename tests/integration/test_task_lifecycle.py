"""Integration tests for the train, evaluate, and predict lifecycle of every sample."""

from __future__ import annotations

import pytest

from core.config import TabflowConfig
from core.types import EvaluateTaskOptions, PredictTaskOptions, TrainTaskOptions
from evaluate.reporting import metrics_lines
from samples.registry import resolve_sample_task
from samples.task_client import TabflowClient
from tests.fixture_paths import fixture_path

_DATA_FILES = {
    "iris": "data/iris.data",
    "iris_multiclass": "data/iris.data",
    "issues": "data/issues.tsv",
    "movies": "data/ratings.csv",
    "sentiment": "data/sentiment.tsv",
    "taxi": "data/taxi.csv",
}


@pytest.mark.parametrize("task_name", sorted(_DATA_FILES))
def test_sample_task_lifecycle(task_name: str, config: TabflowConfig) -> None:
    """Each sample should train, evaluate its saved model, and score its samples."""
    client = TabflowClient(config)
    data_path = str(fixture_path(_DATA_FILES[task_name]))
    task = resolve_sample_task(task_name)

    trained = client.train(
        TrainTaskOptions(task=task_name, data_path=data_path, model_path=f"{task_name}.zip")
    )
    metrics = client.evaluate(
        EvaluateTaskOptions(task=task_name, model_path=trained.model_path, data_path=data_path)
    )
    predicted = client.predict(PredictTaskOptions(task=task_name, model_path=trained.model_path))

    assert type(metrics) is type(trained.metrics)
    assert metrics.row_count > 0
    assert len(predicted.predictions) == len(task.sample_records)
    assert all(isinstance(item, task.prediction_type) for item in predicted.predictions)


def test_retraining_with_same_seed_is_reproducible(config: TabflowConfig) -> None:
    """Two runs with one seed should split and score identically."""
    data_path = str(fixture_path("data/sentiment.tsv"))
    client = TabflowClient(config)

    first = client.train(TrainTaskOptions("sentiment", data_path, "first.zip"))
    second = client.train(TrainTaskOptions("sentiment", data_path, "second.zip"))

    assert metrics_lines(first.metrics) == metrics_lines(second.metrics)
    assert first.test_row_count == second.test_row_count == 8
