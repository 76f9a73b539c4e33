"""Trainer and fitted-trainer contracts.

A ``Trainer`` is the untrained, immutable terminal step of a pipeline. Its
``fit`` consumes fully transformed rows and returns a ``FittedTrainer``
whose row mapping reads only frozen parameters, so one fitted trainer can
score rows from many threads at once.
"""

from __future__ import annotations

import warnings
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import asdict, is_dataclass
from typing import Any, ClassVar, Iterator, Mapping, Sequence

import numpy as np
from sklearn.exceptions import ConvergenceWarning as SklearnConvergenceWarning
from sklearn.impute import SimpleImputer

from core.config import TabflowConfig
from core.errors import SchemaError
from core.logging_config import get_logger
from core.schema import Row, Schema
from core.types import ConvergenceWarning, TrainingDiagnostics, TrainingTask
from ingest.tabular_source import TabularSource
from transforms.base import RowMapper

_LOGGER = get_logger(__name__)


class FittedTrainer(ABC):
    """Frozen learned parameters plus their scoring step."""

    kind: ClassVar[str]
    task: ClassVar[TrainingTask]

    @property
    @abstractmethod
    def diagnostics(self) -> TrainingDiagnostics:
        """Summary of the fit that produced this trainer."""

    @abstractmethod
    def output_schema(self, schema: Schema) -> Schema:
        """Return the schema produced by scoring rows laid out by ``schema``."""

    @abstractmethod
    def bind(self, schema: Schema) -> RowMapper:
        """Return a pure row scorer for rows laid out by ``schema``."""

    @abstractmethod
    def to_state(self) -> dict[str, Any]:
        """Return the learned parameters for persistence."""

    @classmethod
    @abstractmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedTrainer":
        """Rebuild a fitted trainer from persisted parameters."""


class Trainer(ABC):
    """Untrained learning algorithm with a fixed fit/score contract."""

    kind: ClassVar[str]
    task: ClassVar[TrainingTask]

    @property
    def name(self) -> str:
        return f"trainer:{self.kind}"

    @abstractmethod
    def output_schema(self, schema: Schema) -> Schema:
        """Validate required columns and return the scored schema.

        Raises:
            SchemaError: If a required column is absent or mistyped.
        """

    @abstractmethod
    def fit(self, source: TabularSource, config: TabflowConfig) -> FittedTrainer:
        """Fit parameters on ``source`` with ``config.seed`` for determinism."""

    def describe(self) -> dict[str, object]:
        payload: dict[str, object] = {"kind": self.kind}
        if is_dataclass(self):
            payload.update(asdict(self))
        return payload


def write_outputs(schema: Schema, row: Row, outputs: Sequence[tuple[str, object]]) -> Row:
    """Write several output columns in order, appending or replacing each.

    ``schema`` is the layout of ``row``; columns appended by earlier outputs
    are tracked so later outputs land in the right position.
    """
    current_names = list(schema.names)
    values = list(row)
    for name, value in outputs:
        if name in current_names:
            values[current_names.index(name)] = value
        else:
            current_names.append(name)
            values.append(value)
    return tuple(values)


def feature_matrix(rows: Sequence[Row], index: int, trainer_name: str) -> np.ndarray:
    """Stack a vector column into a dense float matrix.

    Raises:
        SchemaError: If rows carry vectors of different lengths.
    """
    vectors = [np.asarray(row[index], dtype=np.float64).ravel() for row in rows]
    widths = {vector.shape[0] for vector in vectors}
    if len(widths) > 1:
        raise SchemaError(
            f"Trainer '{trainer_name}' received feature vectors of different lengths: "
            f"{sorted(widths)}. Every row must produce the same feature width."
        )
    return np.vstack(vectors) if vectors else np.zeros((0, 0))


def fit_imputer(features: np.ndarray) -> tuple[SimpleImputer, np.ndarray]:
    """Learn per-feature medians that stand in for missing (NaN) features.

    Features that are missing on every training row are filled with zero.

    Returns:
        The fitted imputer and the training matrix with gaps filled.
    """
    imputer = SimpleImputer(strategy="median", keep_empty_features=True)
    return imputer, imputer.fit_transform(features)


def feature_row(
    row: Row,
    index: int,
    imputer: SimpleImputer | None = None,
    trainer_name: str = "trainer",
) -> np.ndarray:
    """Reshape one row's feature vector into a single-row matrix.

    With an imputer, a missing vector or missing entries are filled with
    the training medians.

    Raises:
        SchemaError: If the vector width differs from the training width.
    """
    value = row[index]
    if imputer is None:
        return np.asarray(value, dtype=np.float64).reshape(1, -1)
    width = int(imputer.n_features_in_)
    if value is None:
        features = np.full((1, width), np.nan)
    else:
        features = np.asarray(value, dtype=np.float64).reshape(1, -1)
    if features.shape[1] != width:
        raise SchemaError(
            f"Trainer '{trainer_name}' was fit on {width} features but received "
            f"{features.shape[1]}. Score rows with the training feature layout."
        )
    return imputer.transform(features)


@contextmanager
def capture_convergence(kind: str, captured: list[ConvergenceWarning]) -> Iterator[None]:
    """Convert scikit-learn convergence warnings into flagged results."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", SklearnConvergenceWarning)
        yield
    for item in caught:
        if issubclass(item.category, SklearnConvergenceWarning):
            captured.append(
                ConvergenceWarning(trainer_kind=kind, iterations=0, message=str(item.message))
            )
        else:
            warnings.warn_explicit(item.message, item.category, item.filename, item.lineno)


def build_diagnostics(
    kind: str,
    row_count: int,
    iterations: int,
    captured: Sequence[ConvergenceWarning],
) -> TrainingDiagnostics:
    """Assemble diagnostics and log any convergence flags."""
    flags = tuple(
        ConvergenceWarning(trainer_kind=kind, iterations=iterations, message=item.message)
        for item in captured
    )
    for flag in flags:
        _LOGGER.warning(
            "convergence_warning",
            trainer=kind,
            iterations=iterations,
            message=flag.message,
        )
    return TrainingDiagnostics(
        trainer_kind=kind,
        row_count=row_count,
        iterations=iterations,
        converged=not flags,
        convergence_warnings=flags,
    )


def diagnostics_to_state(diagnostics: TrainingDiagnostics) -> dict[str, Any]:
    return asdict(diagnostics)


def diagnostics_from_state(state: Mapping[str, Any]) -> TrainingDiagnostics:
    flags = tuple(ConvergenceWarning(**item) for item in state.get("convergence_warnings", ()))
    return TrainingDiagnostics(
        trainer_kind=str(state["trainer_kind"]),
        row_count=int(state["row_count"]),
        iterations=int(state["iterations"]),
        converged=bool(state.get("converged", True)),
        convergence_warnings=flags,
    )
