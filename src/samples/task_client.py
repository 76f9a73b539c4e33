"""Python SDK for sample task workflows.

This module exposes high-level train, evaluate, and predict APIs over the
sample task registry, backed by the pipeline, evaluator, model store, and
scoring engine.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.config import TabflowConfig
from core.logging_config import get_logger
from core.run_spec_execution import execute_run_spec_file
from core.types import (
    EvaluateTaskOptions,
    Metrics,
    PredictTaskOptions,
    PredictTaskResult,
    RecommendationPolicy,
    TrainTaskOptions,
    TrainTaskResult,
)
from evaluate.metrics import evaluate
from ingest.tabular_source import TabularSource, split
from ingest.text_loader import parse_fields
from samples.registry import SampleTask, resolve_sample_task
from serve.scoring_engine import ScoringEngine
from store.model_store import load_model, save_model

_LOGGER = get_logger(__name__)


class TabflowClient:
    """Primary SDK entry point for sample task workflows."""

    def __init__(self, config: TabflowConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or TabflowConfig.from_env()

    @property
    def config(self) -> TabflowConfig:
        return self._config

    def with_seed(self, seed: int) -> "TabflowClient":
        """Return a client with a different random seed."""
        return TabflowClient(replace(self._config, seed=seed))

    def with_model_root(self, model_root: str) -> "TabflowClient":
        """Return a client that anchors relative model paths elsewhere."""
        resolved_root = Path(model_root).expanduser().resolve()
        return TabflowClient(replace(self._config, model_root=resolved_root))

    def train(self, options: TrainTaskOptions) -> TrainTaskResult:
        """Fit a sample task's pipeline, evaluate it, and save the model.

        Metrics come from the separate test file when one is given, else
        from a held-out split of the training data. Tasks without a split
        fraction are evaluated on their training rows.

        Args:
            options: Training options.

        Returns:
            Saved model path, metrics, and fit diagnostics.

        Raises:
            ValueError: If the task name is unknown.
            TabflowError: If loading, fitting, or saving fails.
        """
        task = resolve_sample_task(options.task)
        train_source, test_source = self._training_sources(task, options)
        model = task.build_pipeline().fit(train_source, self._config)
        evaluation_source = test_source if test_source is not None else train_source
        metrics = evaluate(model, evaluation_source)
        model_path = save_model(model, options.model_path, self._config)
        _LOGGER.info(
            "task_trained",
            task=task.name,
            model_path=str(model_path),
            held_out=test_source is not None,
        )
        return TrainTaskResult(
            model_path=str(model_path),
            train_row_count=train_source.count(),
            test_row_count=test_source.count() if test_source is not None else 0,
            metrics=metrics,
            diagnostics=model.diagnostics,
        )

    def evaluate(self, options: EvaluateTaskOptions) -> Metrics:
        """Evaluate a saved model against a data file of the task's layout.

        Raises:
            ValueError: If the task name is unknown.
            TabflowError: If loading or evaluation fails.
        """
        task = resolve_sample_task(options.task)
        model, _ = load_model(options.model_path, self._config)
        return evaluate(model, task.load(options.data_path))

    def predict(self, options: PredictTaskOptions) -> PredictTaskResult:
        """Score one field record, or the task's sample records, with a saved model.

        Raises:
            ValueError: If the task name is unknown.
            TabflowError: If loading, field parsing, or scoring fails.
        """
        task = resolve_sample_task(options.task)
        model, input_schema = load_model(options.model_path, self._config)
        if options.fields is not None:
            records: tuple[object, ...] = (parse_fields(input_schema, options.fields),)
        else:
            records = task.sample_records
        engine = ScoringEngine(model, task.prediction_type)
        predictions = tuple(engine.score_batch(records))
        if task.recommend is None:
            return PredictTaskResult(predictions=predictions)
        policy = (
            RecommendationPolicy()
            if options.threshold is None
            else RecommendationPolicy(threshold=options.threshold)
        )
        recommended = tuple(task.recommend(prediction, policy) for prediction in predictions)
        return PredictTaskResult(predictions=predictions, recommended=recommended)

    def run_spec(self, spec_file: str) -> tuple[str, ...]:
        """Execute a YAML run-spec file.

        Args:
            spec_file: Path to YAML run spec.

        Returns:
            Printable output lines from all executed steps.
        """
        return execute_run_spec_file(self, spec_file)

    def _training_sources(
        self,
        task: SampleTask,
        options: TrainTaskOptions,
    ) -> tuple[TabularSource, TabularSource | None]:
        source = task.load(options.data_path)
        if options.test_data_path is not None:
            return source, task.load(options.test_data_path)
        test_fraction = (
            options.test_fraction if options.test_fraction is not None else task.test_fraction
        )
        if test_fraction is None:
            return source, None
        return split(source, test_fraction, self._config.seed)
