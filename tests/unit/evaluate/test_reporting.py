"""Unit tests for printable metric and prediction lines."""

from __future__ import annotations

import math
from dataclasses import dataclass

from core.records import column_field
from core.types import ConvergenceWarning, RegressionMetrics, TrainingDiagnostics
from evaluate.reporting import diagnostics_lines, metrics_lines, prediction_lines


@dataclass(frozen=True)
class _Prediction:
    label: str
    score: float


@dataclass(frozen=True)
class _RenamedPrediction:
    predicted_flower_type: str = column_field("PredictedFlowerType")


def test_metrics_lines_follow_field_order() -> None:
    """Every metric field should print once, in declaration order."""
    metrics = RegressionMetrics(
        root_mean_squared_error=1.5,
        r_squared=math.nan,
        mean_absolute_error=1.25,
        mean_squared_error=2.25,
        row_count=4,
    )

    lines = metrics_lines(metrics)

    assert lines == (
        "root_mean_squared_error=1.5",
        "r_squared=nan",
        "mean_absolute_error=1.25",
        "mean_squared_error=2.25",
        "row_count=4",
    )


def test_diagnostics_lines_include_warnings() -> None:
    """Convergence flags should print after the trainer summary."""
    warning = ConvergenceWarning(trainer_kind="kmeans", iterations=3, message="not done")
    diagnostics = TrainingDiagnostics(
        trainer_kind="kmeans",
        row_count=10,
        iterations=3,
        converged=False,
        convergence_warnings=(warning,),
    )

    lines = diagnostics_lines(diagnostics)

    assert lines == ("trainer_kind=kmeans", "converged=false", "convergence_warning=not done")


def test_diagnostics_lines_empty_without_trainer() -> None:
    """Transform-only models have no diagnostics to print."""
    assert diagnostics_lines(None) == ()


def test_prediction_lines_format_records_and_recommendations() -> None:
    """Prediction records should print one line per field plus the decision."""
    predictions = [_Prediction(label="yes", score=0.123456789), {"PredictedLabel": True}]

    lines = prediction_lines(predictions, recommended=(False, True))

    assert lines == (
        "prediction[0].label=yes",
        "prediction[0].score=0.123457",
        "prediction[0].recommended=false",
        "prediction[1].PredictedLabel=true",
        "prediction[1].recommended=true",
    )


def test_prediction_lines_join_sequences_and_mark_missing() -> None:
    """Vectors should join with commas and None should print as a dash."""
    lines = prediction_lines([{"Score": [0.5, 0.25], "Label": None}])

    assert lines == ("prediction[0].Score=0.5,0.25", "prediction[0].Label=-")


def test_prediction_lines_use_field_names_for_renamed_columns() -> None:
    """Records print their field names even when mapped to another column."""
    lines = prediction_lines([_RenamedPrediction(predicted_flower_type="Iris-setosa")])

    assert lines == ("prediction[0].predicted_flower_type=Iris-setosa",)
