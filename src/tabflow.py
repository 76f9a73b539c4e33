"""Public SDK surface for Tabflow.

This module provides a stable import path for library users.
It re-exports the pipeline building blocks, lifecycle functions, and the
sample task client.
"""

from __future__ import annotations

from core.config import TabflowConfig
from core.records import column_field, record_schema
from core.schema import Column, ColumnType, Schema
from core.types import (
    BinaryMetrics,
    ClusteringMetrics,
    ConvergenceWarning,
    EvaluateTaskOptions,
    MulticlassMetrics,
    PredictTaskOptions,
    PredictTaskResult,
    RecommendationPolicy,
    RegressionMetrics,
    TrainingDiagnostics,
    TrainTaskOptions,
    TrainTaskResult,
)
from evaluate.metrics import (
    evaluate,
    evaluate_binary,
    evaluate_clustering,
    evaluate_multiclass,
    evaluate_regression,
)
from ingest.tabular_source import TabularSource, from_records, from_rows, split
from ingest.text_loader import TextColumn, load_text
from pipeline.composition import Pipeline
from pipeline.model import Model
from samples.task_client import TabflowClient
from serve.scoring_engine import ScoringEngine, score_batch, score_one
from store.model_store import load_model, save_model
from trainers.binary import LogisticRegressionBinaryTrainer
from trainers.clustering import KMeansTrainer
from trainers.matrix_factorization import MatrixFactorizationTrainer
from trainers.multiclass import MaximumEntropyMulticlassTrainer
from trainers.regression import FastTreeRegressionTrainer
from transforms.column_ops import CacheCheckpoint, Concatenate, CopyColumn
from transforms.one_hot import OneHotEncoding
from transforms.text_featurizer import FeaturizeText
from transforms.value_key import MapKeyToValue, MapValueToKey

__all__ = [
    "BinaryMetrics",
    "CacheCheckpoint",
    "ClusteringMetrics",
    "Column",
    "ColumnType",
    "Concatenate",
    "ConvergenceWarning",
    "CopyColumn",
    "EvaluateTaskOptions",
    "FastTreeRegressionTrainer",
    "FeaturizeText",
    "KMeansTrainer",
    "LogisticRegressionBinaryTrainer",
    "MapKeyToValue",
    "MapValueToKey",
    "MatrixFactorizationTrainer",
    "MaximumEntropyMulticlassTrainer",
    "Model",
    "MulticlassMetrics",
    "OneHotEncoding",
    "Pipeline",
    "PredictTaskOptions",
    "PredictTaskResult",
    "RecommendationPolicy",
    "RegressionMetrics",
    "Schema",
    "ScoringEngine",
    "TabflowClient",
    "TabflowConfig",
    "TabularSource",
    "TextColumn",
    "TrainTaskOptions",
    "TrainTaskResult",
    "TrainingDiagnostics",
    "column_field",
    "evaluate",
    "evaluate_binary",
    "evaluate_clustering",
    "evaluate_multiclass",
    "evaluate_regression",
    "from_records",
    "from_rows",
    "load_model",
    "load_text",
    "record_schema",
    "save_model",
    "score_batch",
    "score_one",
    "split",
]
