"""Run-spec CLI command wiring.

The run-spec subcommand either executes every step through the SDK client
or, with ``--check``, only validates the file and lists the planned steps.
"""

from __future__ import annotations

import argparse
from typing import Any

from core.run_spec import RunSpec, load_run_spec
from samples.task_client import TabflowClient


def add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser(
        "run-spec",
        help="Run a declarative YAML workflow of train, evaluate, and predict steps",
    )
    parser.add_argument("spec_file", help="Path to YAML run-spec file")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the run spec and print its steps without running them",
    )


def run_run_spec_command(client: TabflowClient, args: argparse.Namespace) -> int:
    """Handle run-spec command invocation."""
    if args.check:
        output_lines = plan_lines(load_run_spec(args.spec_file))
    else:
        output_lines = client.run_spec(args.spec_file)
    for line in output_lines:
        print(line)
    return 0


def plan_lines(spec: RunSpec) -> tuple[str, ...]:
    """Describe each step as ``step[i]=command task=name``."""
    lines = []
    for index, step in enumerate(spec.steps):
        task = spec.step_task(step) or "-"
        lines.append(f"step[{index}]={step.command} task={task}")
    return tuple(lines)
