"""Untrained pipeline definitions and the fit operation.

``Pipeline.fit`` is all-or-nothing: the whole column chain is validated
before any stage learns anything, stages are then fit in declared order on
the previous stage's output, and any failure propagates without producing
a model.
"""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass, replace

from core.config import TabflowConfig
from core.constants import HASH_ALGORITHM
from core.logging_config import get_logger
from core.schema import Schema
from ingest.tabular_source import TabularSource
from pipeline.model import Model
from trainers.base import Trainer
from transforms.base import FittedStage, TransformStage
from transforms.column_ops import CacheCheckpoint

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class Pipeline:
    """Ordered transform stages with an optional terminal trainer.

    Attributes:
        stages: Stages applied before the trainer.
        trainer: Terminal trainer, or None for a transform-only pipeline.
        post_stages: Stages applied to scored rows, such as mapping a
            predicted key back to its label value.
    """

    stages: tuple[TransformStage, ...] = ()
    trainer: Trainer | None = None
    post_stages: tuple[TransformStage, ...] = ()

    @classmethod
    def of(cls, *stages: TransformStage) -> "Pipeline":
        return cls(stages=tuple(stages))

    def append(self, stage: TransformStage) -> "Pipeline":
        """Return a new pipeline with ``stage`` added after the current tail.

        Stages appended after the trainer run on scored rows.
        """
        if self.trainer is None:
            return replace(self, stages=self.stages + (stage,))
        return replace(self, post_stages=self.post_stages + (stage,))

    def append_cache_checkpoint(self) -> "Pipeline":
        return self.append(CacheCheckpoint())

    def with_trainer(self, trainer: Trainer) -> "Pipeline":
        return replace(self, trainer=trainer)

    def output_schema(self, input_schema: Schema) -> Schema:
        """Validate the whole column chain without reading any rows.

        Raises:
            SchemaError: Naming the first stage whose input column is missing.
        """
        schema = input_schema
        for stage in self.stages:
            schema = stage.output_schema(schema)
        if self.trainer is not None:
            schema = self.trainer.output_schema(schema)
        for stage in self.post_stages:
            schema = stage.output_schema(schema)
        return schema

    def fingerprint(self) -> str:
        """Return a stable hash of the pipeline definition."""
        payload = {
            "stages": [stage.describe() for stage in self.stages],
            "trainer": self.trainer.describe() if self.trainer is not None else None,
            "post_stages": [stage.describe() for stage in self.post_stages],
        }
        normalized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
        hash_builder = hashlib.new(HASH_ALGORITHM)
        hash_builder.update(normalized.encode("utf-8"))
        return hash_builder.hexdigest()

    def fit(self, source: TabularSource, config: TabflowConfig | None = None) -> Model:
        """Fit every stage and the trainer on ``source``.

        Args:
            source: Training rows.
            config: Runtime config; defaults to ``TabflowConfig()``.

        Returns:
            Trained immutable model.

        Raises:
            SchemaError: If the column chain is invalid.
            TrainerError: If the training data is degenerate.
        """
        resolved_config = config or TabflowConfig()
        self.output_schema(source.schema)
        started_at = time.perf_counter()
        _LOGGER.info(
            "pipeline_fit_started",
            origin=source.origin,
            stage_count=len(self.stages) + len(self.post_stages),
            trainer=self.trainer.kind if self.trainer is not None else None,
            seed=resolved_config.seed,
        )
        current, fitted_stages = _fit_stages(self.stages, source, resolved_config)
        fitted_trainer = None
        fitted_post_stages: tuple[FittedStage, ...] = ()
        if self.trainer is not None:
            fitted_trainer = self.trainer.fit(current, resolved_config)
            diagnostics = fitted_trainer.diagnostics
            _LOGGER.info(
                "trainer_fitted",
                trainer=self.trainer.kind,
                row_count=diagnostics.row_count,
                iterations=diagnostics.iterations,
                converged=diagnostics.converged,
            )
            scored = current.map_rows(
                fitted_trainer.output_schema(current.schema),
                fitted_trainer.bind(current.schema),
                f"{self.trainer.name}({current.origin})",
            )
            _, fitted_post_stages = _fit_stages(self.post_stages, scored, resolved_config)
        model = Model(
            input_schema=source.schema,
            fitted_stages=fitted_stages,
            fitted_trainer=fitted_trainer,
            fitted_post_stages=fitted_post_stages,
            fingerprint=self.fingerprint(),
        )
        _LOGGER.info(
            "pipeline_fit_completed",
            origin=source.origin,
            fingerprint=model.fingerprint,
            elapsed_seconds=round(time.perf_counter() - started_at, 3),
        )
        return model


def _fit_stages(
    stages: tuple[TransformStage, ...],
    source: TabularSource,
    config: TabflowConfig,
) -> tuple[TabularSource, tuple[FittedStage, ...]]:
    """Fit stages in order, each on the rows produced by the previous one."""
    current = source
    fitted_stages: list[FittedStage] = []
    for stage in stages:
        fitted = stage.fit(current, config)
        fitted_stages.append(fitted)
        if isinstance(stage, CacheCheckpoint):
            if config.cache_rows:
                current = current.cached()
        else:
            current = current.map_rows(
                fitted.output_schema(current.schema),
                fitted.bind(current.schema),
                f"{stage.name}({current.origin})",
            )
        _LOGGER.info("stage_fitted", stage=stage.name)
    return current, tuple(fitted_stages)
