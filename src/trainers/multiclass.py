"""Maximum-entropy multiclass classification trainer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from sklearn.impute import SimpleImputer
from sklearn.linear_model import LogisticRegression

from core.config import TabflowConfig
from core.constants import DEFAULT_MAXENT_ITERATIONS, MISSING_KEY
from core.errors import TrainerError
from core.logging_config import get_logger
from core.schema import Column, ColumnType, Row, Schema
from core.types import ConvergenceWarning, TrainingDiagnostics
from ingest.tabular_source import TabularSource
from trainers.base import (
    FittedTrainer,
    Trainer,
    build_diagnostics,
    capture_convergence,
    diagnostics_from_state,
    diagnostics_to_state,
    feature_matrix,
    feature_row,
    fit_imputer,
    write_outputs,
)
from transforms.base import RowMapper

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class MaximumEntropyMulticlassTrainer(Trainer):
    """Multinomial logistic regression over a key label column.

    Attributes:
        label_column: KEY column holding the class of each row.
        feature_column: VECTOR column holding the features.
        iterations: Solver iteration budget.
        regularization: Inverse of scikit-learn's ``C``.
        score_column: Output probability vector column.
        predicted_column: Output predicted key column.
    """

    label_column: str = "Label"
    feature_column: str = "Features"
    iterations: int = DEFAULT_MAXENT_ITERATIONS
    regularization: float = 1.0
    score_column: str = "Score"
    predicted_column: str = "PredictedLabel"

    kind = "maximum_entropy"
    task = "multiclass"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require((self.label_column,), self.name, (ColumnType.KEY,))
        schema.require((self.feature_column,), self.name, (ColumnType.VECTOR,))
        return _scored_schema(
            schema,
            schema.column(self.label_column).key_values,
            self.score_column,
            self.predicted_column,
        )

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedMaximumEntropy":
        schema = source.schema
        self.output_schema(schema)
        label_index = schema.index_of(self.label_column)
        all_rows = source.rows()
        rows = [row for row in all_rows if _is_labeled(row[label_index])]
        dropped = len(all_rows) - len(rows)
        if dropped:
            _LOGGER.info("unlabeled_rows_dropped", trainer=self.kind, dropped=dropped)
        labels = np.asarray([int(row[label_index]) for row in rows], dtype=np.int64)
        if len(np.unique(labels)) < 2:
            raise TrainerError(
                f"Trainer '{self.kind}' needs at least two label classes, "
                f"found {len(np.unique(labels))} across {len(rows)} labeled rows."
            )
        features = feature_matrix(rows, schema.index_of(self.feature_column), self.kind)
        imputer, features = fit_imputer(features)
        estimator = LogisticRegression(
            C=1.0 / self.regularization,
            max_iter=self.iterations,
            random_state=config.seed,
        )
        captured: list[ConvergenceWarning] = []
        with capture_convergence(self.kind, captured):
            estimator.fit(features, labels)
        return FittedMaximumEntropy(
            label_column=self.label_column,
            feature_column=self.feature_column,
            score_column=self.score_column,
            predicted_column=self.predicted_column,
            label_values=schema.column(self.label_column).key_values or (),
            estimator=estimator,
            imputer=imputer,
            fit_diagnostics=build_diagnostics(
                self.kind, len(rows), int(np.max(estimator.n_iter_)), captured
            ),
        )


@dataclass(frozen=True, eq=False)
class FittedMaximumEntropy(FittedTrainer):
    """Frozen multinomial model scoring one probability per label key."""

    label_column: str
    feature_column: str
    score_column: str
    predicted_column: str
    label_values: tuple[object, ...]
    estimator: LogisticRegression
    fit_diagnostics: TrainingDiagnostics
    imputer: SimpleImputer | None = None

    kind = "maximum_entropy"
    task = "multiclass"

    @property
    def diagnostics(self) -> TrainingDiagnostics:
        return self.fit_diagnostics

    def output_schema(self, schema: Schema) -> Schema:
        return _scored_schema(schema, self.label_values, self.score_column, self.predicted_column)

    def bind(self, schema: Schema) -> RowMapper:
        feature_index = schema.index_of(self.feature_column)
        estimator = self.estimator
        slots = np.asarray(estimator.classes_, dtype=np.int64) - 1
        width = max(len(self.label_values), int(slots.max()) + 1)
        outputs = (self.score_column, self.predicted_column)
        imputer = self.imputer

        def score_row(row: Row) -> Row:
            features = feature_row(row, feature_index, imputer, self.kind)
            probabilities = estimator.predict_proba(features)[0]
            score = np.zeros(width, dtype=np.float64)
            score[slots] = probabilities
            predicted = int(np.argmax(score)) + 1
            return write_outputs(schema, row, tuple(zip(outputs, (score, predicted))))

        return score_row

    def to_state(self) -> dict[str, Any]:
        return {
            "label_column": self.label_column,
            "feature_column": self.feature_column,
            "score_column": self.score_column,
            "predicted_column": self.predicted_column,
            "label_values": list(self.label_values),
            "estimator": self.estimator,
            "imputer": self.imputer,
            "diagnostics": diagnostics_to_state(self.fit_diagnostics),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedMaximumEntropy":
        return cls(
            label_column=str(state["label_column"]),
            feature_column=str(state["feature_column"]),
            score_column=str(state["score_column"]),
            predicted_column=str(state["predicted_column"]),
            label_values=tuple(state["label_values"]),
            estimator=state["estimator"],
            imputer=state.get("imputer"),
            fit_diagnostics=diagnostics_from_state(state["diagnostics"]),
        )


def _scored_schema(
    schema: Schema,
    label_values: tuple[object, ...] | None,
    score_column: str,
    predicted_column: str,
) -> Schema:
    scored = schema.with_column(Column(score_column, ColumnType.VECTOR))
    return scored.with_column(Column(predicted_column, ColumnType.KEY, label_values))


def _is_labeled(value: object) -> bool:
    return value is not None and int(value) != MISSING_KEY  # type: ignore[call-overload]
