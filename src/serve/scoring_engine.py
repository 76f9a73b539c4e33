"""Single-record and batch inference over a trained model.

The engine lays each input record out in the model's input schema, runs it
through the fitted chain, and reads the scored row back into a prediction
record. Batch scoring runs exactly the same per-row chain, so a batch
result always equals scoring each record on its own.
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, TypeVar, overload

from core.records import record_to_row, row_to_record, to_python_value
from core.schema import Row
from pipeline.model import Model

PredictionT = TypeVar("PredictionT")


class ScoringEngine(Generic[PredictionT]):
    """Reusable, thread-safe scorer bound to one model.

    The engine holds no mutable state, so one instance can be shared by
    many threads.
    """

    def __init__(self, model: Model, prediction_type: type[PredictionT] | None = None) -> None:
        """Initialize a scoring engine.

        Args:
            model: Trained model.
            prediction_type: Dataclass whose fields are read from the scored
                columns; predictions are column-name dicts when omitted.
        """
        self._model = model
        self._prediction_type = prediction_type

    @property
    def model(self) -> Model:
        return self._model

    def score_one(self, record: object) -> Any:
        """Score one input record.

        Args:
            record: Input dataclass instance or column-name mapping. Columns
                the record does not carry, such as labels, are left empty.

        Returns:
            Prediction record, or a dict of output column values.
        """
        row = record_to_row(record, self._model.input_schema)
        return self._build_prediction(self._model.transform_row(row))

    def score_batch(self, records: Iterable[object]) -> list[Any]:
        """Score records in order; element ``i`` equals ``score_one(records[i])``."""
        return [self.score_one(record) for record in records]

    def _build_prediction(self, scored: Row) -> Any:
        schema = self._model.output_schema
        if self._prediction_type is None:
            return {name: to_python_value(value) for name, value in zip(schema.names, scored)}
        return row_to_record(self._prediction_type, schema, scored)


@overload
def score_one(model: Model, record: object) -> dict[str, Any]: ...


@overload
def score_one(model: Model, record: object, prediction_type: type[PredictionT]) -> PredictionT: ...


def score_one(model: Model, record: object, prediction_type: type | None = None) -> Any:
    """Score one record with a one-off engine."""
    return ScoringEngine(model, prediction_type).score_one(record)


def score_batch(
    model: Model,
    records: Iterable[object],
    prediction_type: type | None = None,
) -> list[Any]:
    """Score many records with a one-off engine."""
    return ScoringEngine(model, prediction_type).score_batch(records)
