"""Unit tests for the sample task registry."""

from __future__ import annotations

import pytest

from samples import iris
from samples.registry import available_sample_tasks, resolve_sample_task


def test_available_sample_tasks_are_sorted() -> None:
    """Every sample should be registered under a stable name."""
    names = available_sample_tasks()

    assert names == ("iris", "iris_multiclass", "issues", "movies", "sentiment", "taxi")


def test_resolve_sample_task_returns_registered_task() -> None:
    """Known names should resolve to the sample's definition."""
    task = resolve_sample_task("iris_multiclass")

    assert task.record_type is iris.IrisData
    assert task.prediction_type is iris.MulticlassPrediction
    assert task.test_fraction == iris.IRIS_TEST_FRACTION


def test_only_movies_recommends() -> None:
    """Only the rating sample should carry a recommendation rule."""
    tasks = [resolve_sample_task(name) for name in available_sample_tasks()]

    assert [task.name for task in tasks if task.recommend is not None] == ["movies"]


def test_resolve_unknown_sample_task_lists_available() -> None:
    """Unknown names should list the registered tasks."""
    with pytest.raises(ValueError, match="Available: iris, iris_multiclass"):
        resolve_sample_task("mnist")
