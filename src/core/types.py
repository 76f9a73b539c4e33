"""Shared typed models.

This module defines immutable data models used by trainers, the
evaluator, the model store, and the scoring engine to keep interfaces
explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal, Mapping, Union

from core.constants import DEFAULT_RECOMMENDATION_THRESHOLD

TrainingTask = Literal["multiclass", "binary", "regression", "recommendation", "clustering"]
SUPPORTED_TRAINING_TASKS: tuple[TrainingTask, ...] = (
    "multiclass",
    "binary",
    "regression",
    "recommendation",
    "clustering",
)


@dataclass(frozen=True)
class ConvergenceWarning:
    """Non-fatal flag raised when a trainer exhausts its iteration budget.

    Attributes:
        trainer_kind: Registry kind of the trainer that emitted the flag.
        iterations: Iterations actually run.
        message: Human-readable description from the backend.
    """

    trainer_kind: str
    iterations: int
    message: str


@dataclass(frozen=True)
class TrainingDiagnostics:
    """Summary of one trainer fit.

    Attributes:
        trainer_kind: Registry kind of the fitted trainer.
        row_count: Number of rows the trainer consumed.
        iterations: Iterations run by the backend.
        converged: False when any convergence warning was captured.
        convergence_warnings: Captured non-fatal convergence flags.
    """

    trainer_kind: str
    row_count: int
    iterations: int
    converged: bool = True
    convergence_warnings: tuple[ConvergenceWarning, ...] = ()


@dataclass(frozen=True)
class MulticlassMetrics:
    """Multiclass classification quality figures.

    Attributes:
        micro_accuracy: Correct predictions over all rows.
        macro_accuracy: Mean per-class accuracy over classes in the test labels.
        log_loss: Mean negative log-probability of the true class.
        log_loss_reduction: ``1 - log_loss / ln(class_count)``.
        per_class_log_loss: Mean log-loss per label key, in key order.
        row_count: Evaluated row count.
    """

    micro_accuracy: float
    macro_accuracy: float
    log_loss: float
    log_loss_reduction: float
    per_class_log_loss: tuple[float, ...]
    row_count: int


@dataclass(frozen=True)
class BinaryMetrics:
    """Calibrated binary classification quality figures."""

    accuracy: float
    area_under_roc_curve: float
    f1_score: float
    positive_precision: float
    positive_recall: float
    log_loss: float
    log_loss_reduction: float
    row_count: int


@dataclass(frozen=True)
class RegressionMetrics:
    """Regression quality figures."""

    root_mean_squared_error: float
    r_squared: float
    mean_absolute_error: float
    mean_squared_error: float
    row_count: int


@dataclass(frozen=True)
class ClusteringMetrics:
    """Clustering quality figures.

    Attributes:
        average_distance: Mean squared distance to the assigned centroid.
        davies_bouldin_index: Davies-Bouldin index of the assignments.
        normalized_mutual_information: NMI against reference labels, when present.
        row_count: Evaluated row count.
    """

    average_distance: float
    davies_bouldin_index: float
    normalized_mutual_information: float | None
    row_count: int


Metrics = Union[MulticlassMetrics, BinaryMetrics, RegressionMetrics, ClusteringMetrics]


@dataclass(frozen=True)
class RecommendationPolicy:
    """Caller-supplied decision rule turning a predicted rating into a yes/no.

    Attributes:
        threshold: Ratings strictly above this value are recommended.
        rounding: Decimal places applied to the score before comparison.
    """

    threshold: float = DEFAULT_RECOMMENDATION_THRESHOLD
    rounding: int | None = 1

    def is_recommended(self, score: float) -> bool:
        compared = round(score, self.rounding) if self.rounding is not None else score
        return compared > self.threshold


@dataclass(frozen=True)
class ModelManifest:
    """Self-describing header of a persisted model artifact.

    Attributes:
        format_version: Artifact layout version.
        created_at: UTC save time.
        input_schema: Serialized schema of the rows the model reads.
        output_schema: Serialized schema of scored rows; absent before version 2.
        stage_kinds: Kinds of the fitted stages applied before the trainer.
        trainer_kind: Kind of the fitted trainer, if any.
        post_stage_kinds: Kinds of the fitted stages applied after the trainer.
        fingerprint: Hash of the pipeline definition that produced the model.
        parameters_sha256: Checksum of the parameters entry; absent before version 2.
    """

    format_version: int
    created_at: datetime
    input_schema: tuple[dict[str, object], ...]
    output_schema: tuple[dict[str, object], ...] | None
    stage_kinds: tuple[str, ...]
    trainer_kind: str | None
    post_stage_kinds: tuple[str, ...]
    fingerprint: str
    parameters_sha256: str | None


@dataclass(frozen=True)
class TrainTaskOptions:
    """Options for training one sample task.

    Attributes:
        task: Sample task name.
        data_path: Training data file.
        model_path: Artifact destination, relative paths resolve under model_root.
        test_data_path: Optional separate evaluation file.
        test_fraction: Split share used when no test file is given; falls
            back to the task's own default.
    """

    task: str
    data_path: str
    model_path: str
    test_data_path: str | None = None
    test_fraction: float | None = None


@dataclass(frozen=True)
class TrainTaskResult:
    """Summary of one training run."""

    model_path: str
    train_row_count: int
    test_row_count: int
    metrics: Metrics
    diagnostics: TrainingDiagnostics | None


@dataclass(frozen=True)
class EvaluateTaskOptions:
    """Options for evaluating a saved sample model."""

    task: str
    model_path: str
    data_path: str


@dataclass(frozen=True)
class PredictTaskOptions:
    """Options for scoring records with a saved sample model.

    Attributes:
        task: Sample task name.
        model_path: Saved artifact path.
        fields: Raw ``NAME=VALUE`` text values for one record; the task's
            sample records are scored when omitted.
        threshold: Recommendation threshold for rating tasks.
    """

    task: str
    model_path: str
    fields: Mapping[str, str] | None = None
    threshold: float | None = None


@dataclass(frozen=True)
class PredictTaskResult:
    """Predictions in input order, with optional recommendation decisions."""

    predictions: tuple[Any, ...]
    recommended: tuple[bool, ...] | None = None
