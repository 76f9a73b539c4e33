"""Calibrated binary classification with logistic regression."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from sklearn.impute import SimpleImputer
from sklearn.linear_model import LogisticRegression

from core.config import TabflowConfig
from core.constants import DEFAULT_DECISION_THRESHOLD, DEFAULT_LOGISTIC_ITERATIONS
from core.errors import TrainerError
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

_OUTPUT_COLUMNS = ("Score", "Probability", "PredictedLabel")


@dataclass(frozen=True)
class LogisticRegressionBinaryTrainer(Trainer):
    """Binary classifier producing a margin, a probability, and a decision.

    Rows whose label is missing are skipped during fit.
    """

    label_column: str = "Label"
    feature_column: str = "Features"
    iterations: int = DEFAULT_LOGISTIC_ITERATIONS
    regularization: float = 1.0

    kind = "logistic_regression"
    task = "binary"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require((self.label_column,), self.name, (ColumnType.BOOL,))
        schema.require((self.feature_column,), self.name, (ColumnType.VECTOR,))
        return _scored_schema(schema)

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedLogisticRegression":
        schema = source.schema
        self.output_schema(schema)
        label_index = schema.index_of(self.label_column)
        rows = [row for row in source if row[label_index] is not None]
        labels = np.asarray([bool(row[label_index]) for row in rows], dtype=bool)
        if len(np.unique(labels)) < 2:
            raise TrainerError(
                f"Trainer '{self.kind}' needs both positive and negative labels, "
                f"found {len(np.unique(labels))} class(es) across {len(rows)} rows."
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
        return FittedLogisticRegression(
            feature_column=self.feature_column,
            estimator=estimator,
            imputer=imputer,
            fit_diagnostics=build_diagnostics(
                self.kind, len(rows), int(np.max(estimator.n_iter_)), captured
            ),
        )


@dataclass(frozen=True, eq=False)
class FittedLogisticRegression(FittedTrainer):
    feature_column: str
    estimator: LogisticRegression
    fit_diagnostics: TrainingDiagnostics
    threshold: float = DEFAULT_DECISION_THRESHOLD
    imputer: SimpleImputer | None = None

    kind = "logistic_regression"
    task = "binary"

    @property
    def diagnostics(self) -> TrainingDiagnostics:
        return self.fit_diagnostics

    def output_schema(self, schema: Schema) -> Schema:
        return _scored_schema(schema)

    def bind(self, schema: Schema) -> RowMapper:
        feature_index = schema.index_of(self.feature_column)
        estimator = self.estimator
        positive_index = list(estimator.classes_).index(True)
        threshold = self.threshold
        imputer = self.imputer

        def score_row(row: Row) -> Row:
            features = feature_row(row, feature_index, imputer, self.kind)
            margin = float(estimator.decision_function(features)[0])
            probability = float(estimator.predict_proba(features)[0][positive_index])
            values = (margin, probability, probability > threshold)
            return write_outputs(schema, row, tuple(zip(_OUTPUT_COLUMNS, values)))

        return score_row

    def to_state(self) -> dict[str, Any]:
        return {
            "feature_column": self.feature_column,
            "estimator": self.estimator,
            "threshold": self.threshold,
            "imputer": self.imputer,
            "diagnostics": diagnostics_to_state(self.fit_diagnostics),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedLogisticRegression":
        return cls(
            feature_column=str(state["feature_column"]),
            estimator=state["estimator"],
            threshold=float(state.get("threshold", DEFAULT_DECISION_THRESHOLD)),
            imputer=state.get("imputer"),
            fit_diagnostics=diagnostics_from_state(state["diagnostics"]),
        )


def _scored_schema(schema: Schema) -> Schema:
    return (
        schema.with_column(Column("Score", ColumnType.FLOAT))
        .with_column(Column("Probability", ColumnType.FLOAT))
        .with_column(Column("PredictedLabel", ColumnType.BOOL))
    )
