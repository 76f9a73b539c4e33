"""Option builders for run-spec step execution.

This module converts run-spec step arguments into typed task options,
falling back to the spec-level default task.
"""

from __future__ import annotations

from typing import Mapping

from core.errors import TabflowRunSpecError
from core.run_spec_fields import (
    optional_float,
    optional_string,
    optional_text_mapping,
    required_string,
)
from core.types import EvaluateTaskOptions, PredictTaskOptions, TrainTaskOptions


def build_train_options_for_run_spec(
    args: Mapping[str, object],
    default_task: str | None,
) -> TrainTaskOptions:
    """Build train options from run-spec step arguments."""
    return TrainTaskOptions(
        task=_resolve_task(args, default_task, "train"),
        data_path=required_string(args, "data"),
        model_path=required_string(args, "model_path"),
        test_data_path=optional_string(args, "test_data"),
        test_fraction=optional_float(args, "test_fraction"),
    )


def build_evaluate_options_for_run_spec(
    args: Mapping[str, object],
    default_task: str | None,
) -> EvaluateTaskOptions:
    """Build evaluate options from run-spec step arguments."""
    return EvaluateTaskOptions(
        task=_resolve_task(args, default_task, "evaluate"),
        model_path=required_string(args, "model_path"),
        data_path=required_string(args, "data"),
    )


def build_predict_options_for_run_spec(
    args: Mapping[str, object],
    default_task: str | None,
) -> PredictTaskOptions:
    """Build predict options from run-spec step arguments."""
    return PredictTaskOptions(
        task=_resolve_task(args, default_task, "predict"),
        model_path=required_string(args, "model_path"),
        fields=optional_text_mapping(args, "fields"),
        threshold=optional_float(args, "threshold"),
    )


def _resolve_task(args: Mapping[str, object], default_task: str | None, command: str) -> str:
    task = optional_string(args, "task")
    if task:
        return task
    if default_task:
        return default_task
    raise TabflowRunSpecError(
        f"Run-spec command '{command}' requires task. "
        "Set 'task' on the step or in top-level defaults."
    )
