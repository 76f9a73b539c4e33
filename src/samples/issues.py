"""GitHub issue area classification."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.records import column_field, record_schema
from ingest.tabular_source import TabularSource
from ingest.text_loader import load_text
from pipeline.composition import Pipeline
from trainers.multiclass import MaximumEntropyMulticlassTrainer
from transforms.column_ops import Concatenate
from transforms.text_featurizer import FeaturizeText
from transforms.value_key import MapKeyToValue, MapValueToKey


@dataclass(frozen=True)
class GitHubIssue:
    issue_id: str | None = column_field("ID")
    area: str | None = column_field("Area")
    title: str | None = column_field("Title")
    description: str | None = column_field("Description")


@dataclass(frozen=True)
class IssuePrediction:
    area: str | None = column_field("PredictedLabel")


ISSUE_SCHEMA = record_schema(GitHubIssue)

SAMPLE_ISSUES = (
    GitHubIssue(
        title="WebSockets communication is slow in my machine",
        description=(
            "The WebSockets communication used under the covers by SignalR looks like "
            "is going slow in my development machine.."
        ),
    ),
    GitHubIssue(
        title="Entity Framework crashes",
        description="When connecting to the database, EF is crashing",
    ),
)


def load(path: str | Path) -> TabularSource:
    """Load a tab-separated issue file with a header row."""
    return load_text(path, ISSUE_SCHEMA, has_header=True)


def build_pipeline() -> Pipeline:
    """Featurize title and description and predict the issue area."""
    return (
        Pipeline.of(
            MapValueToKey(output_column="Label", input_column="Area"),
            FeaturizeText(output_column="TitleFeaturized", input_column="Title"),
            FeaturizeText(output_column="DescriptionFeaturized", input_column="Description"),
            Concatenate.of("Features", "TitleFeaturized", "DescriptionFeaturized"),
        )
        .append_cache_checkpoint()
        .with_trainer(
            MaximumEntropyMulticlassTrainer(label_column="Label", feature_column="Features")
        )
        .append(MapKeyToValue(output_column="PredictedLabel"))
    )
