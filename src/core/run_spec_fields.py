"""Type-safe field parsing helpers for run-spec execution.

This module centralizes primitive parsing so run-spec executors can stay
concise and produce consistent validation errors across CLI and SDK flows.
"""

from __future__ import annotations

from typing import Mapping

from core.errors import TabflowRunSpecError


def required_string(args: Mapping[str, object], field_name: str) -> str:
    """Read a required string field from a run-spec step."""
    value = optional_string(args, field_name)
    if value is None:
        raise TabflowRunSpecError(f"Run-spec step is missing required field '{field_name}'.")
    return value


def optional_string(args: Mapping[str, object], field_name: str) -> str | None:
    """Read an optional string field from a run-spec step."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    raise TabflowRunSpecError(f"Run-spec field '{field_name}' must be a string when provided.")


def optional_int(args: Mapping[str, object], field_name: str) -> int | None:
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise TabflowRunSpecError(f"Run-spec field '{field_name}' must be an integer when provided.")


def optional_float(args: Mapping[str, object], field_name: str) -> float | None:
    """Read an optional numeric field from a run-spec step."""
    value = args.get(field_name)
    if value is None:
        return None
    if isinstance(value, bool):
        raise TabflowRunSpecError(f"Run-spec field '{field_name}' must be numeric.")
    if isinstance(value, (int, float)):
        return float(value)
    raise TabflowRunSpecError(f"Run-spec field '{field_name}' must be numeric.")


def optional_text_mapping(args: Mapping[str, object], field_name: str) -> dict[str, str] | None:
    """Read an optional mapping of scalar values, rendered as text.

    YAML scalars are normalized the way they would be typed on the command
    line, so ``6`` becomes ``"6"`` and ``true`` becomes ``"true"``.
    """
    value = args.get(field_name)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TabflowRunSpecError(f"Run-spec field '{field_name}' must be a mapping.")
    text_mapping: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or isinstance(item, (Mapping, list)):
            raise TabflowRunSpecError(
                f"Run-spec field '{field_name}' must map column names to scalar values."
            )
        text_mapping[key] = _scalar_text(item)
    return text_mapping


def _scalar_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
