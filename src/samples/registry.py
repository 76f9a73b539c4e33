"""Sample task registry used by the CLI and run specs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from core.types import RecommendationPolicy
from ingest.tabular_source import TabularSource
from pipeline.composition import Pipeline
from samples import iris, issues, movies, sentiment, taxi


@dataclass(frozen=True)
class SampleTask:
    """Everything needed to train, evaluate, and query one sample.

    Attributes:
        name: Registry key.
        record_type: Input record dataclass.
        prediction_type: Prediction record dataclass.
        load: Reads a data file of this sample's layout.
        build_pipeline: Returns the untrained pipeline.
        test_fraction: Share held out when no separate test file is given.
        sample_records: Records scored when no fields are supplied.
        recommend: Optional yes/no decision over one prediction.
    """

    name: str
    record_type: type
    prediction_type: type
    load: Callable[[str | Path], TabularSource]
    build_pipeline: Callable[[], Pipeline]
    test_fraction: float | None = None
    sample_records: tuple[object, ...] = ()
    recommend: Callable[[Any, RecommendationPolicy], bool] | None = None


_SAMPLE_TASKS: dict[str, SampleTask] = {
    task.name: task
    for task in (
        SampleTask(
            name="issues",
            record_type=issues.GitHubIssue,
            prediction_type=issues.IssuePrediction,
            load=issues.load,
            build_pipeline=issues.build_pipeline,
            sample_records=issues.SAMPLE_ISSUES,
        ),
        SampleTask(
            name="iris",
            record_type=iris.IrisData,
            prediction_type=iris.ClusterPrediction,
            load=iris.load,
            build_pipeline=iris.build_clustering_pipeline,
            test_fraction=iris.IRIS_TEST_FRACTION,
            sample_records=(iris.SETOSA,),
        ),
        SampleTask(
            name="iris_multiclass",
            record_type=iris.IrisData,
            prediction_type=iris.MulticlassPrediction,
            load=iris.load,
            build_pipeline=iris.build_multiclass_pipeline,
            test_fraction=iris.IRIS_TEST_FRACTION,
            sample_records=(iris.SETOSA,),
        ),
        SampleTask(
            name="movies",
            record_type=movies.MovieRating,
            prediction_type=movies.MovieRatingPrediction,
            load=movies.load,
            build_pipeline=movies.build_pipeline,
            sample_records=(movies.SAMPLE_RATING,),
            recommend=movies.recommend,
        ),
        SampleTask(
            name="sentiment",
            record_type=sentiment.SentimentData,
            prediction_type=sentiment.SentimentPrediction,
            load=sentiment.load,
            build_pipeline=sentiment.build_pipeline,
            test_fraction=sentiment.SENTIMENT_TEST_FRACTION,
            sample_records=sentiment.SAMPLE_STATEMENTS,
        ),
        SampleTask(
            name="taxi",
            record_type=taxi.TaxiTrip,
            prediction_type=taxi.TaxiTripFarePrediction,
            load=taxi.load,
            build_pipeline=taxi.build_pipeline,
            sample_records=(taxi.SAMPLE_TRIP,),
        ),
    )
}


def available_sample_tasks() -> tuple[str, ...]:
    return tuple(sorted(_SAMPLE_TASKS))


def resolve_sample_task(name: str) -> SampleTask:
    """Return the sample task registered under ``name``.

    Raises:
        ValueError: If no sample task has that name.
    """
    if name not in _SAMPLE_TASKS:
        raise ValueError(
            f"Unknown sample task '{name}'. Available: {', '.join(available_sample_tasks())}."
        )
    return _SAMPLE_TASKS[name]
