"""Tabflow CLI entry points.

This module exposes train, evaluate, predict, and run-spec commands over
the sample tasks. It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from cli.run_spec_command import add_run_spec_command, run_run_spec_command
from core.config import TabflowConfig
from core.run_spec_execution import train_result_lines
from core.types import EvaluateTaskOptions, PredictTaskOptions, TrainTaskOptions
from evaluate.reporting import metrics_lines, prediction_lines
from samples.registry import available_sample_tasks
from samples.task_client import TabflowClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="tabflow", description="Tabflow sample task CLI")
    parser.add_argument("--seed", type=int, help="Override TABFLOW_SEED for this command")
    parser.add_argument("--model-root", help="Override TABFLOW_MODEL_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_train_command(subparsers)
    _add_evaluate_command(subparsers)
    _add_predict_command(subparsers)
    add_run_spec_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Tabflow CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    client = _build_client(args.seed, args.model_root)
    if args.command == "train":
        return _run_train_command(client, args)
    if args.command == "evaluate":
        return _run_evaluate_command(client, args)
    if args.command == "predict":
        return _run_predict_command(client, args, parser)
    if args.command == "run-spec":
        return run_run_spec_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(seed: int | None, model_root: str | None) -> TabflowClient:
    """Build SDK client with optional seed and model-root overrides."""
    config = TabflowConfig.from_env()
    if seed is not None:
        config = replace(config, seed=seed)
    if model_root:
        config = replace(config, model_root=Path(model_root).expanduser().resolve())
    return TabflowClient(config)


def _run_train_command(client: TabflowClient, args: argparse.Namespace) -> int:
    options = TrainTaskOptions(
        task=args.task,
        data_path=args.data,
        model_path=args.model_path,
        test_data_path=args.test_data,
        test_fraction=args.test_fraction,
    )
    _print_lines(train_result_lines(client.train(options)))
    return 0


def _run_evaluate_command(client: TabflowClient, args: argparse.Namespace) -> int:
    options = EvaluateTaskOptions(task=args.task, model_path=args.model_path, data_path=args.data)
    _print_lines(metrics_lines(client.evaluate(options)))
    return 0


def _run_predict_command(
    client: TabflowClient,
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
) -> int:
    """Handle predict command.

    Args:
        client: SDK client.
        args: Parsed CLI args.
        parser: Parser used to report malformed ``--field`` values.

    Returns:
        Exit code.
    """
    fields = _parse_field_arguments(args.field, parser) if args.field else None
    options = PredictTaskOptions(
        task=args.task,
        model_path=args.model_path,
        fields=fields,
        threshold=args.threshold,
    )
    result = client.predict(options)
    _print_lines(prediction_lines(result.predictions, result.recommended))
    return 0


def _parse_field_arguments(
    raw_fields: Sequence[str],
    parser: argparse.ArgumentParser,
) -> dict[str, str]:
    fields: dict[str, str] = {}
    for raw_field in raw_fields:
        name, separator, value = raw_field.partition("=")
        if not separator or not name.strip():
            parser.error(f"Invalid --field '{raw_field}'. Use NAME=VALUE.")
        fields[name.strip()] = value
    return fields


def _print_lines(lines: Sequence[str]) -> None:
    for line in lines:
        print(line)


def _add_train_command(subparsers: Any) -> None:
    """Register train subcommand."""
    parser = subparsers.add_parser("train", help="Fit a sample task pipeline and save the model")
    _add_task_argument(parser)
    parser.add_argument("--data", required=True, help="Training data file")
    parser.add_argument("--model-path", required=True, help="Model artifact destination")
    held_out = parser.add_mutually_exclusive_group()
    held_out.add_argument("--test-data", help="Separate evaluation data file")
    held_out.add_argument(
        "--test-fraction",
        type=float,
        help="Share of training rows held out for evaluation",
    )


def _add_evaluate_command(subparsers: Any) -> None:
    """Register evaluate subcommand."""
    parser = subparsers.add_parser("evaluate", help="Evaluate a saved model on a data file")
    _add_task_argument(parser)
    parser.add_argument("--model-path", required=True, help="Saved model artifact")
    parser.add_argument("--data", required=True, help="Evaluation data file")


def _add_predict_command(subparsers: Any) -> None:
    """Register predict subcommand."""
    parser = subparsers.add_parser("predict", help="Score a record with a saved model")
    _add_task_argument(parser)
    parser.add_argument("--model-path", required=True, help="Saved model artifact")
    parser.add_argument(
        "--field",
        action="append",
        metavar="NAME=VALUE",
        help="Input column value; repeat per column. Scores the task's samples when omitted",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Recommendation threshold for rating tasks",
    )


def _add_task_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--task",
        required=True,
        choices=available_sample_tasks(),
        help="Sample task name",
    )
