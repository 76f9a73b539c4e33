"""Unit tests for run-spec CLI execution."""

from __future__ import annotations

from pathlib import Path

import pytest

from cli.main import main
from core.errors import TabflowRunSpecError
from core.types import (
    EvaluateTaskOptions,
    PredictTaskOptions,
    PredictTaskResult,
    RegressionMetrics,
    TrainTaskOptions,
    TrainTaskResult,
)
from samples.task_client import TabflowClient
from tests.fixture_paths import fixture_path

_METRICS = RegressionMetrics(
    root_mean_squared_error=0.5,
    r_squared=0.9,
    mean_absolute_error=0.25,
    mean_squared_error=0.25,
    row_count=3,
)


def test_cli_run_spec_routes_steps_to_client(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Run-spec command should route each step to SDK operations."""
    captured: dict[str, object] = {}

    def _fake_train(self: TabflowClient, options: TrainTaskOptions) -> TrainTaskResult:
        captured["seed"] = self.config.seed
        captured["train"] = (options.task, options.data_path, options.model_path)
        return TrainTaskResult(
            model_path="iris.zip",
            train_row_count=3,
            test_row_count=0,
            metrics=_METRICS,
            diagnostics=None,
        )

    def _fake_evaluate(self: TabflowClient, options: EvaluateTaskOptions) -> RegressionMetrics:
        captured["evaluate"] = (options.task, options.model_path)
        return _METRICS

    def _fake_predict(self: TabflowClient, options: PredictTaskOptions) -> PredictTaskResult:
        captured["fields"] = options.fields
        return PredictTaskResult(predictions=({"Score": 1.5},))

    monkeypatch.setattr(TabflowClient, "train", _fake_train)
    monkeypatch.setattr(TabflowClient, "evaluate", _fake_evaluate)
    monkeypatch.setattr(TabflowClient, "predict", _fake_predict)
    exit_code = main(["run-spec", str(fixture_path("run_spec/valid_pipeline.yaml"))])
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output[:3] == ["model_path=iris.zip", "train_row_count=3", "test_row_count=0"]
    assert output[-1] == "prediction[0].Score=1.5"
    assert captured == {
        "seed": 7,
        "train": ("iris_multiclass", "tests/fixtures/data/iris.data", "iris.zip"),
        "evaluate": ("iris_multiclass", "iris.zip"),
        "fields": {
            "SepalLength": "5.1",
            "SepalWidth": "3.5",
            "PetalLength": "1.4",
            "PetalWidth": "0.2",
        },
    }


def test_cli_run_spec_trains_and_predicts_end_to_end(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """A real run spec should train, evaluate, and predict under model_root."""
    spec_path = tmp_path / "taxi.yaml"
    spec_path.write_text(
        "\n".join(
            [
                "version: 1",
                "defaults:",
                f"  model_root: {tmp_path / 'models'}",
                "  task: taxi",
                "steps:",
                "  - command: train",
                f"    data: {fixture_path('data/taxi.csv')}",
                "    model_path: taxi.zip",
                "  - command: predict",
                "    model_path: taxi.zip",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    exit_code = main(["run-spec", str(spec_path)])
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert (tmp_path / "models" / "taxi.zip").is_file()
    assert output[-1].startswith("prediction[0].fare_amount=")


def test_cli_run_spec_missing_task_raises_error() -> None:
    """Run-spec should fail when a step has no task and no default task."""
    with pytest.raises(TabflowRunSpecError, match="requires task"):
        main(["run-spec", str(fixture_path("run_spec/missing_task.yaml"))])


def test_cli_run_spec_check_lists_steps_without_running(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """The check flag should validate and list steps without calling the client."""

    def _fail_train(self: TabflowClient, options: TrainTaskOptions) -> TrainTaskResult:
        raise AssertionError("train should not run in check mode")

    monkeypatch.setattr(TabflowClient, "train", _fail_train)
    exit_code = main(["run-spec", "--check", str(fixture_path("run_spec/valid_pipeline.yaml"))])
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output == [
        "step[0]=train task=iris_multiclass",
        "step[1]=evaluate task=iris_multiclass",
        "step[2]=predict task=iris_multiclass",
    ]
