"""Shared run-spec execution engine for CLI and SDK workflows.

Steps run in file order against one client, and each step's printable
``key=value`` lines are collected in the same format the matching CLI
command prints. A failing step stops the run and propagates its error.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol

from core.logging_config import get_logger
from core.run_spec import RunSpec, RunSpecCommand, load_run_spec
from core.run_spec_option_builders import (
    build_evaluate_options_for_run_spec,
    build_predict_options_for_run_spec,
    build_train_options_for_run_spec,
)
from core.types import (
    EvaluateTaskOptions,
    Metrics,
    PredictTaskOptions,
    PredictTaskResult,
    TrainTaskOptions,
    TrainTaskResult,
)
from evaluate.reporting import diagnostics_lines, metrics_lines, prediction_lines

_LOGGER = get_logger(__name__)


class RunSpecClient(Protocol):
    """Client API contract required by run-spec execution."""

    def with_seed(self, seed: int) -> Any: ...

    def with_model_root(self, model_root: str) -> Any: ...

    def train(self, options: TrainTaskOptions) -> TrainTaskResult: ...

    def evaluate(self, options: EvaluateTaskOptions) -> Metrics: ...

    def predict(self, options: PredictTaskOptions) -> PredictTaskResult: ...


StepRunner = Callable[[RunSpecClient, Mapping[str, object], str | None], tuple[str, ...]]


def execute_run_spec_file(client: RunSpecClient, spec_file: str) -> tuple[str, ...]:
    """Load and execute a run-spec file, returning printable output lines."""
    return execute_run_spec(client, load_run_spec(spec_file))


def execute_run_spec(client: RunSpecClient, spec: RunSpec) -> tuple[str, ...]:
    """Execute a parsed run spec after applying its seed and model-root defaults."""
    if spec.defaults.seed is not None:
        client = client.with_seed(spec.defaults.seed)
    if spec.defaults.model_root:
        client = client.with_model_root(spec.defaults.model_root)
    output_lines: list[str] = []
    for number, step in enumerate(spec.steps, start=1):
        _LOGGER.info("run_spec_step_started", step=number, command=step.command)
        runner = _STEP_RUNNERS[step.command]
        output_lines.extend(runner(client, step.args, spec.defaults.task))
    return tuple(output_lines)


def train_result_lines(result: TrainTaskResult) -> tuple[str, ...]:
    """Format a training result the same way for CLI and run-spec output."""
    return (
        f"model_path={result.model_path}",
        f"train_row_count={result.train_row_count}",
        f"test_row_count={result.test_row_count}",
        *diagnostics_lines(result.diagnostics),
        *metrics_lines(result.metrics),
    )


def _run_train(
    client: RunSpecClient, args: Mapping[str, object], default_task: str | None
) -> tuple[str, ...]:
    return train_result_lines(client.train(build_train_options_for_run_spec(args, default_task)))


def _run_evaluate(
    client: RunSpecClient, args: Mapping[str, object], default_task: str | None
) -> tuple[str, ...]:
    options = build_evaluate_options_for_run_spec(args, default_task)
    return metrics_lines(client.evaluate(options))


def _run_predict(
    client: RunSpecClient, args: Mapping[str, object], default_task: str | None
) -> tuple[str, ...]:
    result = client.predict(build_predict_options_for_run_spec(args, default_task))
    return prediction_lines(result.predictions, result.recommended)


_STEP_RUNNERS: dict[RunSpecCommand, StepRunner] = {
    "train": _run_train,
    "evaluate": _run_evaluate,
    "predict": _run_predict,
}
