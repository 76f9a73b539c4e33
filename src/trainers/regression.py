"""Gradient-boosted decision tree regression trainer."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from sklearn.ensemble import GradientBoostingRegressor
from sklearn.impute import SimpleImputer

from core.config import TabflowConfig
from core.constants import (
    DEFAULT_TREE_COUNT,
    DEFAULT_TREE_LEARNING_RATE,
    DEFAULT_TREE_LEAVES,
    DEFAULT_TREE_MIN_LEAF_ROWS,
)
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

_LABEL_TYPES = (ColumnType.FLOAT, ColumnType.INT)


@dataclass(frozen=True)
class FastTreeRegressionTrainer(Trainer):
    """Boosted regression trees predicting a numeric label.

    Attributes:
        label_column: FLOAT or INT target column; rows with a missing or NaN
            target are skipped.
        feature_column: VECTOR column holding the features.
        tree_count: Number of boosting stages.
        leaves_per_tree: Maximum leaf count per tree.
        min_leaf_rows: Minimum rows per leaf.
        learning_rate: Shrinkage applied to each tree.
    """

    label_column: str = "Label"
    feature_column: str = "Features"
    tree_count: int = DEFAULT_TREE_COUNT
    leaves_per_tree: int = DEFAULT_TREE_LEAVES
    min_leaf_rows: int = DEFAULT_TREE_MIN_LEAF_ROWS
    learning_rate: float = DEFAULT_TREE_LEARNING_RATE

    kind = "fast_tree"
    task = "regression"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require((self.label_column,), self.name, _LABEL_TYPES)
        schema.require((self.feature_column,), self.name, (ColumnType.VECTOR,))
        return schema.with_column(Column("Score", ColumnType.FLOAT))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedFastTree":
        schema = source.schema
        self.output_schema(schema)
        label_index = schema.index_of(self.label_column)
        rows = [row for row in source if _has_target(row[label_index])]
        if not rows:
            raise TrainerError(
                f"Trainer '{self.kind}' found no rows with a numeric "
                f"'{self.label_column}' value to fit on."
            )
        labels = np.asarray([float(row[label_index]) for row in rows], dtype=np.float64)
        features = feature_matrix(rows, schema.index_of(self.feature_column), self.kind)
        imputer, features = fit_imputer(features)
        estimator = GradientBoostingRegressor(
            n_estimators=self.tree_count,
            learning_rate=self.learning_rate,
            max_leaf_nodes=self.leaves_per_tree,
            min_samples_leaf=self.min_leaf_rows,
            random_state=config.seed,
        )
        captured: list[ConvergenceWarning] = []
        with capture_convergence(self.kind, captured):
            estimator.fit(features, labels)
        return FittedFastTree(
            feature_column=self.feature_column,
            estimator=estimator,
            imputer=imputer,
            fit_diagnostics=build_diagnostics(
                self.kind, len(rows), int(estimator.n_estimators_), captured
            ),
        )


@dataclass(frozen=True, eq=False)
class FittedFastTree(FittedTrainer):
    feature_column: str
    estimator: GradientBoostingRegressor
    fit_diagnostics: TrainingDiagnostics
    imputer: SimpleImputer | None = None

    kind = "fast_tree"
    task = "regression"

    @property
    def diagnostics(self) -> TrainingDiagnostics:
        return self.fit_diagnostics

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column("Score", ColumnType.FLOAT))

    def bind(self, schema: Schema) -> RowMapper:
        feature_index = schema.index_of(self.feature_column)
        estimator = self.estimator
        imputer = self.imputer

        def score_row(row: Row) -> Row:
            features = feature_row(row, feature_index, imputer, self.kind)
            score = float(estimator.predict(features)[0])
            return write_outputs(schema, row, (("Score", score),))

        return score_row

    def to_state(self) -> dict[str, Any]:
        return {
            "feature_column": self.feature_column,
            "estimator": self.estimator,
            "imputer": self.imputer,
            "diagnostics": diagnostics_to_state(self.fit_diagnostics),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedFastTree":
        return cls(
            feature_column=str(state["feature_column"]),
            estimator=state["estimator"],
            imputer=state.get("imputer"),
            fit_diagnostics=diagnostics_from_state(state["diagnostics"]),
        )


def _has_target(value: object) -> bool:
    if value is None:
        return False
    return not math.isnan(float(value))  # type: ignore[arg-type]
