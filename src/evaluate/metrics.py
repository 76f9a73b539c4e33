"""Quality metrics for trained models.

Each evaluator scores the full test source through the model and
aggregates exact statistics over every row. ``evaluate`` picks the
evaluator matching the model's trainer task.
"""

from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any

import numpy as np
from sklearn.metrics import (
    davies_bouldin_score,
    f1_score,
    normalized_mutual_info_score,
    precision_score,
    recall_score,
    roc_auc_score,
)

from core.constants import LOG_LOSS_EPSILON, MISSING_KEY
from core.errors import TrainerError
from core.logging_config import get_logger
from core.schema import ColumnType, Row
from core.types import (
    BinaryMetrics,
    ClusteringMetrics,
    Metrics,
    MulticlassMetrics,
    RegressionMetrics,
)
from ingest.tabular_source import TabularSource
from pipeline.model import Model

_LOGGER = get_logger(__name__)


def evaluate(model: Model, source: TabularSource, **columns: str) -> Metrics:
    """Evaluate ``model`` on ``source`` with the metrics of its task.

    Args:
        model: Trained model.
        source: Test rows carrying the label columns the model was fit on.
        **columns: Column-name overrides forwarded to the task evaluator.

    Returns:
        Task-specific metrics record.

    Raises:
        TrainerError: If the model has no trainer.
    """
    task = model.task
    if task == "multiclass":
        return evaluate_multiclass(model, source, **columns)
    if task == "binary":
        return evaluate_binary(model, source, **columns)
    if task in ("regression", "recommendation"):
        return evaluate_regression(model, source, **columns)
    if task == "clustering":
        return evaluate_clustering(model, source, **columns)
    raise TrainerError(
        "Cannot evaluate a model without a trainer. Add a trainer to the pipeline before fitting."
    )


def evaluate_multiclass(
    model: Model,
    source: TabularSource,
    label_column: str = "Label",
    score_column: str = "Score",
) -> MulticlassMetrics:
    """Compute micro/macro accuracy and log-loss for a multiclass model.

    The predicted class of a row is the highest-scoring key. Rows whose
    label is the missing key are skipped.
    """
    scored = model.transform(source)
    schema = scored.schema
    schema.require((label_column,), "evaluate_multiclass", (ColumnType.KEY,))
    schema.require((score_column,), "evaluate_multiclass", (ColumnType.VECTOR,))
    class_count = schema.column(label_column).key_count
    label_index = schema.index_of(label_column)
    score_index = schema.index_of(score_column)

    labels: list[int] = []
    predictions: list[int] = []
    losses: list[float] = []
    for row in scored:
        label = row[label_index]
        if label is None or int(label) == MISSING_KEY:  # type: ignore[call-overload]
            continue
        key = int(label)  # type: ignore[call-overload]
        scores = np.asarray(row[score_index], dtype=np.float64)
        labels.append(key)
        predictions.append(int(np.argmax(scores)) + 1)
        probability = scores[key - 1] if key <= len(scores) else 0.0
        losses.append(-math.log(min(max(probability, LOG_LOSS_EPSILON), 1.0)))

    label_array = np.asarray(labels, dtype=np.int64)
    correct = np.asarray(predictions, dtype=np.int64) == label_array
    loss_array = np.asarray(losses, dtype=np.float64)
    per_class_recall = [float(correct[label_array == key].mean()) for key in np.unique(label_array)]
    per_class_log_loss = tuple(
        float(loss_array[label_array == key].mean()) if np.any(label_array == key) else math.nan
        for key in range(1, class_count + 1)
    )
    log_loss = _mean(loss_array)
    baseline = math.log(class_count) if class_count > 1 else math.nan
    metrics = MulticlassMetrics(
        micro_accuracy=_mean(correct),
        macro_accuracy=float(np.mean(per_class_recall)) if per_class_recall else math.nan,
        log_loss=log_loss,
        log_loss_reduction=1.0 - log_loss / baseline,
        per_class_log_loss=per_class_log_loss,
        row_count=len(labels),
    )
    _log_metrics("multiclass", scored.origin, metrics)
    return metrics


def evaluate_binary(
    model: Model,
    source: TabularSource,
    label_column: str = "Label",
    score_column: str = "Score",
    probability_column: str = "Probability",
    predicted_column: str = "PredictedLabel",
) -> BinaryMetrics:
    """Compute accuracy, AUC, F1, and log-loss for a binary classifier.

    AUC is NaN when the test labels hold a single class.
    """
    scored = model.transform(source)
    schema = scored.schema
    schema.require((label_column, predicted_column), "evaluate_binary", (ColumnType.BOOL,))
    schema.require((score_column, probability_column), "evaluate_binary", (ColumnType.FLOAT,))
    indexes = tuple(
        schema.index_of(name)
        for name in (label_column, score_column, probability_column, predicted_column)
    )
    columns = _collect(scored, indexes, skip_missing_at=0)
    labels = np.asarray(columns[0], dtype=bool)
    scores = np.asarray(columns[1], dtype=np.float64)
    probabilities = np.clip(
        np.asarray(columns[2], dtype=np.float64), LOG_LOSS_EPSILON, 1.0 - LOG_LOSS_EPSILON
    )
    predictions = np.asarray(columns[3], dtype=bool)

    both_classes = labels.size > 0 and 0 < int(labels.sum()) < labels.size
    auc = float(roc_auc_score(labels, scores)) if both_classes else math.nan
    losses = -np.where(labels, np.log(probabilities), np.log(1.0 - probabilities))
    log_loss = _mean(losses)
    prior_entropy = _binary_entropy(float(labels.mean())) if labels.size else math.nan
    metrics = BinaryMetrics(
        accuracy=_mean(predictions == labels),
        area_under_roc_curve=auc,
        f1_score=float(f1_score(labels, predictions, zero_division=0.0)),
        positive_precision=float(precision_score(labels, predictions, zero_division=0.0)),
        positive_recall=float(recall_score(labels, predictions, zero_division=0.0)),
        log_loss=log_loss,
        log_loss_reduction=(1.0 - log_loss / prior_entropy) if prior_entropy > 0 else math.nan,
        row_count=int(labels.size),
    )
    _log_metrics("binary", scored.origin, metrics)
    return metrics


def evaluate_regression(
    model: Model,
    source: TabularSource,
    label_column: str = "Label",
    score_column: str = "Score",
) -> RegressionMetrics:
    """Compute RMSE, R-squared, MAE, and MSE.

    Rows with a missing or NaN label are skipped. R-squared is NaN when the
    labels have no variance.
    """
    scored = model.transform(source)
    schema = scored.schema
    schema.require((label_column,), "evaluate_regression", (ColumnType.FLOAT, ColumnType.INT))
    schema.require((score_column,), "evaluate_regression", (ColumnType.FLOAT,))
    columns = _collect(
        scored,
        (schema.index_of(label_column), schema.index_of(score_column)),
        skip_missing_at=0,
    )
    labels = np.asarray(columns[0], dtype=np.float64)
    scores = np.asarray(columns[1], dtype=np.float64)
    present = ~np.isnan(labels)
    labels, scores = labels[present], scores[present]
    residuals = labels - scores
    squared_error = _mean(residuals**2)
    total_sum_of_squares = float(np.sum((labels - labels.mean()) ** 2)) if labels.size else 0.0
    r_squared = (
        1.0 - float(np.sum(residuals**2)) / total_sum_of_squares
        if total_sum_of_squares > 0
        else math.nan
    )
    metrics = RegressionMetrics(
        root_mean_squared_error=math.sqrt(squared_error) if labels.size else math.nan,
        r_squared=r_squared,
        mean_absolute_error=_mean(np.abs(residuals)),
        mean_squared_error=squared_error,
        row_count=int(labels.size),
    )
    _log_metrics("regression", scored.origin, metrics)
    return metrics


def evaluate_clustering(
    model: Model,
    source: TabularSource,
    label_column: str = "Label",
    score_column: str = "Score",
    predicted_column: str = "PredictedLabel",
    features_column: str = "Features",
) -> ClusteringMetrics:
    """Compute centroid distance, Davies-Bouldin index, and optional NMI.

    NMI is computed only when ``label_column`` exists and every row has a
    reference label; otherwise it is None. The Davies-Bouldin index skips
    rows with a missing feature.
    """
    scored = model.transform(source)
    schema = scored.schema
    schema.require((score_column, features_column), "evaluate_clustering", (ColumnType.VECTOR,))
    schema.require((predicted_column,), "evaluate_clustering", (ColumnType.KEY,))
    has_reference = label_column in schema
    names = (features_column, score_column, predicted_column) + (
        (label_column,) if has_reference else ()
    )
    columns = _collect(scored, tuple(schema.index_of(name) for name in names))
    row_count = len(columns[0])
    if row_count == 0:
        metrics = ClusteringMetrics(math.nan, math.nan, None, 0)
        _log_metrics("clustering", scored.origin, metrics)
        return metrics
    features = np.vstack([np.asarray(item, dtype=np.float64).ravel() for item in columns[0]])
    distances = np.vstack([np.asarray(item, dtype=np.float64).ravel() for item in columns[1]])
    assignments = np.asarray(columns[2], dtype=np.int64)
    complete = np.isfinite(features).all(axis=1)
    davies_bouldin = _davies_bouldin(features[complete], assignments[complete])
    nmi = None
    if has_reference and all(_is_present(value) for value in columns[3]):
        nmi = float(normalized_mutual_info_score([str(value) for value in columns[3]], assignments))
    metrics = ClusteringMetrics(
        average_distance=float(distances.min(axis=1).mean()),
        davies_bouldin_index=davies_bouldin,
        normalized_mutual_information=nmi,
        row_count=row_count,
    )
    _log_metrics("clustering", scored.origin, metrics)
    return metrics


def _collect(
    source: TabularSource,
    indexes: tuple[int, ...],
    skip_missing_at: int | None = None,
) -> list[list[Any]]:
    """Gather selected columns into lists, optionally skipping rows missing one value."""
    columns: list[list[Any]] = [[] for _ in indexes]
    for row in source:
        if skip_missing_at is not None and row[indexes[skip_missing_at]] is None:
            continue
        _append_row(columns, indexes, row)
    return columns


def _append_row(columns: list[list[Any]], indexes: tuple[int, ...], row: Row) -> None:
    for column, index in zip(columns, indexes):
        column.append(row[index])


def _mean(values: np.ndarray) -> float:
    return float(np.mean(values)) if values.size else math.nan


def _binary_entropy(positive_rate: float) -> float:
    if positive_rate <= 0.0 or positive_rate >= 1.0:
        return 0.0
    return -(
        positive_rate * math.log(positive_rate)
        + (1.0 - positive_rate) * math.log(1.0 - positive_rate)
    )


def _is_present(value: object) -> bool:
    return value is not None and not (isinstance(value, float) and math.isnan(value))


def _log_metrics(task: str, origin: str, metrics: Metrics) -> None:
    _LOGGER.info("evaluation_completed", task=task, origin=origin, **asdict(metrics))


def _davies_bouldin(features: np.ndarray, assignments: np.ndarray) -> float:
    """Davies-Bouldin index over rows with every feature present."""
    populated = len(np.unique(assignments))
    if not 1 < populated < len(assignments):
        return math.nan
    return float(davies_bouldin_score(features, assignments))
