"""Restaurant review sentiment classification."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.records import column_field, record_schema
from ingest.tabular_source import TabularSource
from ingest.text_loader import load_text
from pipeline.composition import Pipeline
from trainers.binary import LogisticRegressionBinaryTrainer
from transforms.text_featurizer import FeaturizeText

SENTIMENT_TEST_FRACTION = 0.2


@dataclass(frozen=True)
class SentimentData:
    sentiment_text: str | None = column_field("SentimentText")
    sentiment: bool | None = column_field("Label")


@dataclass(frozen=True)
class SentimentPrediction:
    sentiment_text: str | None = column_field("SentimentText")
    prediction: bool | None = column_field("PredictedLabel")
    probability: float | None = column_field("Probability")
    score: float | None = column_field("Score")


SENTIMENT_SCHEMA = record_schema(SentimentData)

SAMPLE_STATEMENTS = (
    SentimentData(sentiment_text="This was a horrible meal"),
    SentimentData(sentiment_text="I love this spaghetti."),
)


def load(path: str | Path) -> TabularSource:
    """Load a tab-separated review file without a header row."""
    return load_text(path, SENTIMENT_SCHEMA)


def build_pipeline() -> Pipeline:
    return Pipeline.of(
        FeaturizeText(output_column="Features", input_column="SentimentText"),
    ).with_trainer(LogisticRegressionBinaryTrainer(label_column="Label", feature_column="Features"))
