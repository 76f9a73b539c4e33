"""Matrix factorization over sparse explicit ratings.

Each (row key, column key) pair is modelled as
``global_mean + row_bias + column_bias + <row_factor, column_factor>``.
Parameters are learned with seeded mini-batch gradient descent. Index 0 of
every parameter table is the missing key and stays at zero, so unseen users
or items fall back to the global mean plus whatever bias is known.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from core.config import TabflowConfig
from core.constants import (
    DEFAULT_MF_ITERATIONS,
    DEFAULT_MF_LEARNING_RATE,
    DEFAULT_MF_RANK,
    DEFAULT_MF_REGULARIZATION,
    DEFAULT_MF_TOLERANCE,
    MISSING_KEY,
)
from core.errors import TrainerError
from core.logging_config import get_logger
from core.schema import Column, ColumnType, Row, Schema
from core.types import ConvergenceWarning, TrainingDiagnostics
from ingest.tabular_source import TabularSource
from trainers.base import (
    FittedTrainer,
    Trainer,
    build_diagnostics,
    diagnostics_from_state,
    diagnostics_to_state,
    write_outputs,
)
from transforms.base import RowMapper

_LOGGER = get_logger(__name__)
_INITIAL_FACTOR_SCALE = 0.1
_DEFAULT_BATCH_SIZE = 256


@dataclass(frozen=True)
class MatrixFactorizationTrainer(Trainer):
    """Learn latent factors for two key columns from numeric ratings.

    Attributes:
        row_index_column: KEY column indexing matrix rows (for example users).
        column_index_column: KEY column indexing matrix columns (for example items).
        label_column: FLOAT or INT rating column.
        iterations: Training epochs.
        rank: Latent factor dimension.
        learning_rate: Gradient step size.
        regularization: L2 penalty on factors and biases.
        tolerance: Training RMSE change below which training stops early.
        batch_size: Ratings per gradient step.
    """

    row_index_column: str
    column_index_column: str
    label_column: str = "Label"
    iterations: int = DEFAULT_MF_ITERATIONS
    rank: int = DEFAULT_MF_RANK
    learning_rate: float = DEFAULT_MF_LEARNING_RATE
    regularization: float = DEFAULT_MF_REGULARIZATION
    tolerance: float = DEFAULT_MF_TOLERANCE
    batch_size: int = _DEFAULT_BATCH_SIZE

    kind = "matrix_factorization"
    task = "recommendation"

    def output_schema(self, schema: Schema) -> Schema:
        schema.require(
            (self.row_index_column, self.column_index_column), self.name, (ColumnType.KEY,)
        )
        schema.require((self.label_column,), self.name, (ColumnType.FLOAT, ColumnType.INT))
        return schema.with_column(Column("Score", ColumnType.FLOAT))

    def fit(self, source: TabularSource, config: TabflowConfig) -> "FittedMatrixFactorization":
        schema = source.schema
        self.output_schema(schema)
        row_index = schema.index_of(self.row_index_column)
        column_index = schema.index_of(self.column_index_column)
        label_index = schema.index_of(self.label_column)
        triples = [
            (int(row[row_index]), int(row[column_index]), float(row[label_index]))
            for row in source
            if _is_usable(row[row_index], row[column_index], row[label_index])
        ]
        if not triples:
            raise TrainerError(
                f"Trainer '{self.kind}' found no rating rows with known "
                f"'{self.row_index_column}' and '{self.column_index_column}' keys."
            )
        row_keys = np.asarray([item[0] for item in triples], dtype=np.int64)
        column_keys = np.asarray([item[1] for item in triples], dtype=np.int64)
        ratings = np.asarray([item[2] for item in triples], dtype=np.float64)
        row_count = max(schema.column(self.row_index_column).key_count, int(row_keys.max())) + 1
        column_count = (
            max(schema.column(self.column_index_column).key_count, int(column_keys.max())) + 1
        )

        rng = np.random.default_rng(config.seed)
        tables = _FactorTables.initialize(
            rng, row_count, column_count, self.rank, float(ratings.mean())
        )
        previous_rmse = math.inf
        converged = False
        epochs_run = 0
        for _ in range(self.iterations):
            epochs_run += 1
            order = rng.permutation(len(ratings))
            for start in range(0, len(order), self.batch_size):
                batch = order[start : start + self.batch_size]
                tables.step(
                    row_keys[batch],
                    column_keys[batch],
                    ratings[batch],
                    self.learning_rate,
                    self.regularization,
                )
            rmse = tables.rmse(row_keys, column_keys, ratings)
            _LOGGER.debug("factorization_epoch", epoch=epochs_run, rmse=rmse)
            if abs(previous_rmse - rmse) < self.tolerance:
                converged = True
                break
            previous_rmse = rmse

        captured: list[ConvergenceWarning] = []
        if not converged:
            captured.append(
                ConvergenceWarning(
                    trainer_kind=self.kind,
                    iterations=epochs_run,
                    message=(
                        f"Training RMSE still moved by more than {self.tolerance} after "
                        f"{epochs_run} iterations. Raise iterations to train further."
                    ),
                )
            )
        return FittedMatrixFactorization(
            row_index_column=self.row_index_column,
            column_index_column=self.column_index_column,
            global_mean=tables.global_mean,
            row_bias=tables.row_bias,
            column_bias=tables.column_bias,
            row_factors=tables.row_factors,
            column_factors=tables.column_factors,
            fit_diagnostics=build_diagnostics(self.kind, len(ratings), epochs_run, captured),
        )


class _FactorTables:
    """Mutable parameter tables used only while fitting."""

    def __init__(
        self,
        global_mean: float,
        row_factors: np.ndarray,
        column_factors: np.ndarray,
    ) -> None:
        self.global_mean = global_mean
        self.row_factors = row_factors
        self.column_factors = column_factors
        self.row_bias = np.zeros(row_factors.shape[0])
        self.column_bias = np.zeros(column_factors.shape[0])

    @classmethod
    def initialize(
        cls,
        rng: np.random.Generator,
        row_count: int,
        column_count: int,
        rank: int,
        global_mean: float,
    ) -> "_FactorTables":
        row_factors = rng.normal(0.0, _INITIAL_FACTOR_SCALE, (row_count, rank))
        column_factors = rng.normal(0.0, _INITIAL_FACTOR_SCALE, (column_count, rank))
        row_factors[MISSING_KEY] = 0.0
        column_factors[MISSING_KEY] = 0.0
        return cls(global_mean, row_factors, column_factors)

    def predict(self, row_keys: np.ndarray, column_keys: np.ndarray) -> np.ndarray:
        return (
            self.global_mean
            + self.row_bias[row_keys]
            + self.column_bias[column_keys]
            + np.sum(self.row_factors[row_keys] * self.column_factors[column_keys], axis=1)
        )

    def step(
        self,
        row_keys: np.ndarray,
        column_keys: np.ndarray,
        ratings: np.ndarray,
        learning_rate: float,
        regularization: float,
    ) -> None:
        """Apply one averaged gradient step for a mini-batch of ratings."""
        errors = ratings - self.predict(row_keys, column_keys)
        user_factors = self.row_factors[row_keys]
        item_factors = self.column_factors[column_keys]
        user_bias = self.row_bias[row_keys]
        item_bias = self.column_bias[column_keys]
        _apply_step(
            self.row_factors,
            row_keys,
            errors[:, None] * item_factors - regularization * user_factors,
            learning_rate,
        )
        _apply_step(
            self.column_factors,
            column_keys,
            errors[:, None] * user_factors - regularization * item_factors,
            learning_rate,
        )
        _apply_step(self.row_bias, row_keys, errors - regularization * user_bias, learning_rate)
        _apply_step(
            self.column_bias, column_keys, errors - regularization * item_bias, learning_rate
        )

    def rmse(self, row_keys: np.ndarray, column_keys: np.ndarray, ratings: np.ndarray) -> float:
        residuals = ratings - self.predict(row_keys, column_keys)
        return float(np.sqrt(np.mean(residuals**2)))


@dataclass(frozen=True, eq=False)
class FittedMatrixFactorization(FittedTrainer):
    """Frozen factor tables indexed by key."""

    row_index_column: str
    column_index_column: str
    global_mean: float
    row_bias: np.ndarray
    column_bias: np.ndarray
    row_factors: np.ndarray
    column_factors: np.ndarray
    fit_diagnostics: TrainingDiagnostics

    kind = "matrix_factorization"
    task = "recommendation"

    @property
    def diagnostics(self) -> TrainingDiagnostics:
        return self.fit_diagnostics

    def output_schema(self, schema: Schema) -> Schema:
        return schema.with_column(Column("Score", ColumnType.FLOAT))

    def predict(self, row_key: int, column_key: int) -> float:
        """Predict the rating of one key pair; out-of-range keys act as missing."""
        if not 0 < row_key < len(self.row_bias):
            row_key = MISSING_KEY
        if not 0 < column_key < len(self.column_bias):
            column_key = MISSING_KEY
        return float(
            self.global_mean
            + self.row_bias[row_key]
            + self.column_bias[column_key]
            + np.dot(self.row_factors[row_key], self.column_factors[column_key])
        )

    def bind(self, schema: Schema) -> RowMapper:
        row_index = schema.index_of(self.row_index_column)
        column_index = schema.index_of(self.column_index_column)

        def score_row(row: Row) -> Row:
            score = self.predict(_as_key(row[row_index]), _as_key(row[column_index]))
            return write_outputs(schema, row, (("Score", score),))

        return score_row

    def to_state(self) -> dict[str, Any]:
        return {
            "row_index_column": self.row_index_column,
            "column_index_column": self.column_index_column,
            "global_mean": self.global_mean,
            "row_bias": self.row_bias,
            "column_bias": self.column_bias,
            "row_factors": self.row_factors,
            "column_factors": self.column_factors,
            "diagnostics": diagnostics_to_state(self.fit_diagnostics),
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedMatrixFactorization":
        return cls(
            row_index_column=str(state["row_index_column"]),
            column_index_column=str(state["column_index_column"]),
            global_mean=float(state["global_mean"]),
            row_bias=np.asarray(state["row_bias"], dtype=np.float64),
            column_bias=np.asarray(state["column_bias"], dtype=np.float64),
            row_factors=np.asarray(state["row_factors"], dtype=np.float64),
            column_factors=np.asarray(state["column_factors"], dtype=np.float64),
            fit_diagnostics=diagnostics_from_state(state["diagnostics"]),
        )


def _apply_step(
    table: np.ndarray, keys: np.ndarray, gradients: np.ndarray, learning_rate: float
) -> None:
    """Add averaged per-key gradients into ``table`` in place."""
    accumulated = np.zeros_like(table)
    np.add.at(accumulated, keys, gradients)
    counts = np.bincount(keys, minlength=table.shape[0]).astype(np.float64)
    counts = np.maximum(counts, 1.0)
    if table.ndim == 2:
        counts = counts[:, None]
    table += learning_rate * accumulated / counts


def _as_key(value: object) -> int:
    if value is None:
        return MISSING_KEY
    return int(value)  # type: ignore[call-overload]


def _is_usable(row_key: object, column_key: object, rating: object) -> bool:
    if row_key is None or column_key is None or rating is None:
        return False
    if int(row_key) == MISSING_KEY or int(column_key) == MISSING_KEY:  # type: ignore[call-overload]
        return False
    return not math.isnan(float(rating))  # type: ignore[arg-type]
