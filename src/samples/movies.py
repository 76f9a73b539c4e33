"""Movie rating prediction and recommendation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from core.records import column_field
from core.schema import ColumnType
from core.types import RecommendationPolicy
from ingest.tabular_source import TabularSource
from ingest.text_loader import TextColumn, load_text
from pipeline.composition import Pipeline
from trainers.matrix_factorization import MatrixFactorizationTrainer
from transforms.value_key import MapValueToKey

MOVIE_ITERATIONS = 20
MOVIE_RANK = 100

# Rating files carry a trailing timestamp field that is not read.
MOVIE_COLUMNS = (
    TextColumn("userId", ColumnType.FLOAT, 0),
    TextColumn("movieId", ColumnType.FLOAT, 1),
    TextColumn("Label", ColumnType.FLOAT, 2),
)


@dataclass(frozen=True)
class MovieRating:
    user_id: float | None = column_field("userId")
    movie_id: float | None = column_field("movieId")
    label: float | None = column_field("Label")


@dataclass(frozen=True)
class MovieRatingPrediction:
    label: float | None = column_field("Label")
    score: float | None = column_field("Score")


SAMPLE_RATING = MovieRating(user_id=6, movie_id=10)


def load(path: str | Path) -> TabularSource:
    """Load a comma-separated rating file with a header row."""
    return load_text(path, MOVIE_COLUMNS, has_header=True, delimiter=",")


def build_pipeline(iterations: int = MOVIE_ITERATIONS, rank: int = MOVIE_RANK) -> Pipeline:
    """Encode users and movies as keys and factorize the rating matrix."""
    return Pipeline.of(
        MapValueToKey(output_column="userIdEncoded", input_column="userId"),
        MapValueToKey(output_column="movieIdEncoded", input_column="movieId"),
    ).with_trainer(
        MatrixFactorizationTrainer(
            row_index_column="userIdEncoded",
            column_index_column="movieIdEncoded",
            label_column="Label",
            iterations=iterations,
            rank=rank,
        )
    )


def recommend(prediction: MovieRatingPrediction, policy: RecommendationPolicy) -> bool:
    """Apply a caller-supplied threshold to a predicted rating."""
    if prediction.score is None:
        return False
    return policy.is_recommended(prediction.score)
