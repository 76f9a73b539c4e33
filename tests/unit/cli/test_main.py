"""Unit tests for CLI command handling."""

from __future__ import annotations

from pathlib import Path

import pytest

from cli.main import main
from core.types import PredictTaskOptions, PredictTaskResult
from samples.movies import MovieRatingPrediction
from samples.task_client import TabflowClient
from tests.fixture_paths import fixture_path

_IRIS = str(fixture_path("data/iris.data"))


def _train_iris(model_root: Path) -> int:
    return main(
        [
            "--model-root",
            str(model_root),
            "train",
            "--task",
            "iris_multiclass",
            "--data",
            _IRIS,
            "--model-path",
            "iris.zip",
        ]
    )


def test_cli_train_prints_counts_and_metrics(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """CLI train should print the artifact path, row counts, and metrics."""
    exit_code = _train_iris(tmp_path)
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert output[:3] == [
        f"model_path={tmp_path.resolve() / 'iris.zip'}",
        "train_row_count=32",
        "test_row_count=4",
    ]
    assert any(line.startswith("micro_accuracy=") for line in output)


def test_cli_evaluate_prints_metrics(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """CLI evaluate should print one line per metric."""
    _train_iris(tmp_path)
    _ = capsys.readouterr()
    args = [
        "--model-root",
        str(tmp_path),
        "evaluate",
        "--task",
        "iris_multiclass",
        "--model-path",
        "iris.zip",
        "--data",
        _IRIS,
    ]

    exit_code = main(args)
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0 and output[-1] == "row_count=36"


def test_cli_predict_scores_fields(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """CLI predict should parse --field values and print prediction lines."""
    _train_iris(tmp_path)
    _ = capsys.readouterr()
    args = [
        "--model-root",
        str(tmp_path),
        "predict",
        "--task",
        "iris_multiclass",
        "--model-path",
        "iris.zip",
        "--field",
        "SepalLength=5.1",
        "--field",
        "SepalWidth=3.5",
        "--field",
        "PetalLength=1.4",
        "--field",
        "PetalWidth=0.2",
    ]

    exit_code = main(args)
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert "prediction[0].predicted_flower_type=Iris-setosa" in output


def test_cli_predict_passes_threshold_and_prints_decision(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Predict should forward the threshold and print the recommendation."""
    captured: dict[str, object] = {}

    def _fake_predict(self: TabflowClient, options: PredictTaskOptions) -> PredictTaskResult:
        captured["fields"] = options.fields
        captured["threshold"] = options.threshold
        return PredictTaskResult(
            predictions=(MovieRatingPrediction(label=None, score=4.25),),
            recommended=(True,),
        )

    monkeypatch.setattr(TabflowClient, "predict", _fake_predict)
    args = [
        "predict",
        "--task",
        "movies",
        "--model-path",
        "movies.zip",
        "--field",
        "userId=6",
        "--field",
        "movieId=10",
        "--threshold",
        "4",
    ]

    exit_code = main(args)
    output = capsys.readouterr().out.strip().splitlines()

    assert exit_code == 0
    assert captured == {"fields": {"userId": "6", "movieId": "10"}, "threshold": 4.0}
    assert output == [
        "prediction[0].label=-",
        "prediction[0].score=4.25",
        "prediction[0].recommended=true",
    ]


def test_cli_predict_rejects_malformed_field() -> None:
    """A --field without '=' should be a usage error."""
    with pytest.raises(SystemExit) as error:
        main(["predict", "--task", "movies", "--model-path", "m.zip", "--field", "userId"])

    assert error.value.code == 2


def test_cli_rejects_unknown_task() -> None:
    """Task choices should come from the sample registry."""
    with pytest.raises(SystemExit):
        main(["train", "--task", "mnist", "--data", _IRIS, "--model-path", "m.zip"])


def test_cli_train_test_data_and_fraction_are_exclusive() -> None:
    """A test file and a test fraction cannot be combined."""
    args = [
        "train",
        "--task",
        "iris",
        "--data",
        _IRIS,
        "--model-path",
        "m.zip",
        "--test-data",
        _IRIS,
        "--test-fraction",
        "0.2",
    ]

    with pytest.raises(SystemExit):
        main(args)
