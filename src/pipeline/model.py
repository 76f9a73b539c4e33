"""Trained, immutable models.

A model is the fitted stage chain, the fitted trainer, and any fitted
post-trainer stages, bound once to the input schema they were fit on.
Scoring reads only frozen parameters, so one model can serve many threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from core.errors import SchemaError
from core.schema import Row, Schema
from core.types import TrainingDiagnostics, TrainingTask
from ingest.tabular_source import TabularSource
from trainers.base import FittedTrainer
from transforms.base import FittedStage, RowMapper


@dataclass(frozen=True, eq=False)
class Model:
    """Fitted pipeline ready for evaluation, persistence, and scoring.

    Attributes:
        input_schema: Schema of the rows the model was fit on.
        fitted_stages: Fitted transform stages applied before the trainer.
        fitted_trainer: Fitted trainer, or None for transform-only pipelines.
        fitted_post_stages: Fitted stages applied to scored rows.
        fingerprint: Hash of the untrained pipeline definition.
        output_schema: Schema of rows produced by ``transform``.
    """

    input_schema: Schema
    fitted_stages: tuple[FittedStage, ...]
    fitted_trainer: FittedTrainer | None = None
    fitted_post_stages: tuple[FittedStage, ...] = ()
    fingerprint: str = ""
    output_schema: Schema = field(init=False)
    _row_mapper: RowMapper = field(init=False, repr=False)

    def __post_init__(self) -> None:
        schema = self.input_schema
        mappers: list[RowMapper] = []
        for step in self.steps:
            mappers.append(step.bind(schema))
            schema = step.output_schema(schema)
        object.__setattr__(self, "output_schema", schema)
        object.__setattr__(self, "_row_mapper", _compose(mappers))

    @property
    def steps(self) -> tuple[FittedStage | FittedTrainer, ...]:
        trainer: tuple[FittedTrainer, ...] = (
            (self.fitted_trainer,) if self.fitted_trainer is not None else ()
        )
        return self.fitted_stages + trainer + self.fitted_post_stages

    @property
    def task(self) -> TrainingTask | None:
        return self.fitted_trainer.task if self.fitted_trainer is not None else None

    @property
    def diagnostics(self) -> TrainingDiagnostics | None:
        return self.fitted_trainer.diagnostics if self.fitted_trainer is not None else None

    def transform_row(self, row: Row) -> Row:
        """Score one row laid out by ``input_schema``."""
        return self._row_mapper(row)

    def transform(self, source: TabularSource) -> TabularSource:
        """Lazily score every row of ``source``.

        Source columns are matched to the model's input columns by name, so
        extra or reordered columns are accepted.

        Raises:
            SchemaError: If ``source`` lacks an input column the model reads.
        """
        align = _aligner(source.schema, self.input_schema)
        row_mapper = self._row_mapper
        return source.map_rows(
            self.output_schema,
            lambda row: row_mapper(align(row)),
            f"scored({source.origin})",
        )


def _compose(mappers: Sequence[RowMapper]) -> RowMapper:
    chain = tuple(mappers)

    def map_row(row: Row) -> Row:
        for mapper in chain:
            row = mapper(row)
        return row

    return map_row


def _aligner(source_schema: Schema, input_schema: Schema) -> RowMapper:
    if source_schema.names == input_schema.names:
        return _identity
    missing = [name for name in input_schema.names if name not in source_schema]
    if missing:
        raise SchemaError(
            f"Source is missing model input column(s): {', '.join(missing)}. "
            f"Source columns: {', '.join(source_schema.names) or 'none'}."
        )
    indexes = tuple(source_schema.index_of(name) for name in input_schema.names)

    def align(row: Row) -> Row:
        return tuple(row[index] for index in indexes)

    return align


def _identity(row: Row) -> Row:
    return row
