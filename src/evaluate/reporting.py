"""Printable ``key=value`` lines for metrics and predictions.

The CLI and run-spec execution share these formatters so both entry
points print identical output for the same result.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
import math
from typing import Any, Sequence

from core.types import Metrics, TrainingDiagnostics


def metrics_lines(metrics: Metrics) -> tuple[str, ...]:
    """Format one metrics record, one field per line."""
    return tuple(
        f"{field.name}={_format_value(getattr(metrics, field.name))}" for field in fields(metrics)
    )


def diagnostics_lines(diagnostics: TrainingDiagnostics | None) -> tuple[str, ...]:
    if diagnostics is None:
        return ()
    lines = [
        f"trainer_kind={diagnostics.trainer_kind}",
        f"converged={str(diagnostics.converged).lower()}",
    ]
    for warning in diagnostics.convergence_warnings:
        lines.append(f"convergence_warning={warning.message}")
    return tuple(lines)


def prediction_lines(
    predictions: Sequence[Any],
    recommended: Sequence[bool] | None = None,
) -> tuple[str, ...]:
    """Format predictions as ``prediction[i].<name>=value`` lines.

    Prediction records print their dataclass field names; column mappings
    print their column names.
    """
    lines: list[str] = []
    for index, prediction in enumerate(predictions):
        values = prediction if isinstance(prediction, dict) else _prediction_values(prediction)
        for name, value in values.items():
            lines.append(f"prediction[{index}].{name}={_format_value(value)}")
        if recommended is not None:
            lines.append(f"prediction[{index}].recommended={str(recommended[index]).lower()}")
    return tuple(lines)


def _prediction_values(prediction: object) -> dict[str, object]:
    if is_dataclass(prediction):
        return {field.name: getattr(prediction, field.name) for field in fields(prediction)}
    return {"value": prediction}


def _format_value(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return "nan" if math.isnan(value) else f"{value:.6g}"
    if isinstance(value, (list, tuple)):
        return ",".join(_format_value(item) for item in value)
    return str(value)
