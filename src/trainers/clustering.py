"""K-means clustering trainer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from sklearn.cluster import KMeans
from sklearn.impute import SimpleImputer

from core.config import TabflowConfig
from core.constants import DEFAULT_KMEANS_CLUSTERS, DEFAULT_KMEANS_ITERATIONS
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

_KMEANS_RESTARTS = 10


@dataclass(frozen=True)
class KMeansTrainer(Trainer):
    """Partition feature vectors into ``cluster_count`` clusters.

    Scoring emits the 1-based id of the nearest centroid as a key column and
    the squared distance to every centroid as the score vector.
    """

    feature_column: str = "Features"
    cluster_count: int = DEFAULT_KMEANS_CLUSTERS
    iterations: int = DEFAULT_KMEANS_ITERATIONS

    kind = "kmeans"
    task = "clustering"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require((self.feature_column,), self.name, (ColumnType.VECTOR,))
        return _scored_schema(schema, self.cluster_count)

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedKMeans":
        schema = source.schema
        self.output_schema(schema)
        rows = source.rows()
        if len(rows) < self.cluster_count:
            raise TrainerError(
                f"Trainer '{self.kind}' needs at least {self.cluster_count} rows "
                f"to form {self.cluster_count} clusters, got {len(rows)}."
            )
        features = feature_matrix(rows, schema.index_of(self.feature_column), self.kind)
        imputer, features = fit_imputer(features)
        estimator = KMeans(
            n_clusters=self.cluster_count,
            max_iter=self.iterations,
            n_init=_KMEANS_RESTARTS,
            random_state=config.seed,
        )
        captured: list[ConvergenceWarning] = []
        with capture_convergence(self.kind, captured):
            estimator.fit(features)
        return FittedKMeans(
            feature_column=self.feature_column,
            centroids=np.asarray(estimator.cluster_centers_, dtype=np.float64),
            imputer=imputer,
            fit_diagnostics=build_diagnostics(
                self.kind, len(rows), int(estimator.n_iter_), captured
            ),
        )


@dataclass(frozen=True, eq=False)
class FittedKMeans(FittedTrainer):
    feature_column: str
    centroids: np.ndarray
    fit_diagnostics: TrainingDiagnostics
    imputer: SimpleImputer | None = None

    kind = "kmeans"
    task = "clustering"

    @property
    def diagnostics(self) -> TrainingDiagnostics:
        return self.fit_diagnostics

    def output_schema(self, schema: Schema) -> Schema:
        return _scored_schema(schema, len(self.centroids))

    def bind(self, schema: Schema) -> RowMapper:
        feature_index = schema.index_of(self.feature_column)
        centroids = self.centroids
        imputer = self.imputer

        def score_row(row: Row) -> Row:
            point = feature_row(row, feature_index, imputer, self.kind).ravel()
            distances = np.sum((centroids - point) ** 2, axis=1).astype(np.float32)
            cluster = int(np.argmin(distances)) + 1
            return write_outputs(
                schema, row, (("Score", distances), ("PredictedLabel", cluster))
            )

        return score_row

    def to_state(self) -> dict[str, Any]:
        return {
            "feature_column": self.feature_column,
            "centroids": self.centroids,
            "imputer": self.imputer,
            "diagnostics": diagnostics_to_state(self.fit_diagnostics),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedKMeans":
        return cls(
            feature_column=str(state["feature_column"]),
            centroids=np.asarray(state["centroids"], dtype=np.float64),
            imputer=state.get("imputer"),
            fit_diagnostics=diagnostics_from_state(state["diagnostics"]),
        )


def _scored_schema(schema: Schema, cluster_count: int) -> Schema:
    cluster_ids = tuple(range(1, cluster_count + 1))
    return schema.with_column(Column("Score", ColumnType.VECTOR)).with_column(
        Column("PredictedLabel", ColumnType.KEY, cluster_ids)
    )
