"""Core constants used across Tabflow modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_MODEL_ROOT = Path(".tabflow") / "models"
DEFAULT_RANDOM_SEED = 0
HASH_ALGORITHM = "sha256"
MISSING_KEY = 0
DEFAULT_TEXT_DELIMITER = "\t"
TRUE_TOKENS = ("1", "true", "yes")
FALSE_TOKENS = ("0", "false", "no")
MIN_TEST_FRACTION = 1e-6
DEFAULT_TEST_FRACTION = 0.1
DEFAULT_WORD_HASH_FEATURES = 2**12
DEFAULT_CHAR_HASH_FEATURES = 2**12
DEFAULT_DECISION_THRESHOLD = 0.5
LOG_LOSS_EPSILON = 1e-15
DEFAULT_MAXENT_ITERATIONS = 200
DEFAULT_LOGISTIC_ITERATIONS = 200
DEFAULT_TREE_COUNT = 100
DEFAULT_TREE_LEAVES = 20
DEFAULT_TREE_MIN_LEAF_ROWS = 10
DEFAULT_TREE_LEARNING_RATE = 0.2
DEFAULT_MF_ITERATIONS = 20
DEFAULT_MF_RANK = 8
DEFAULT_MF_LEARNING_RATE = 0.1
DEFAULT_MF_REGULARIZATION = 0.1
DEFAULT_MF_TOLERANCE = 1e-4
DEFAULT_KMEANS_CLUSTERS = 3
DEFAULT_KMEANS_ITERATIONS = 300
DEFAULT_RECOMMENDATION_THRESHOLD = 3.5
MODEL_FORMAT_VERSION = 2
SUPPORTED_MODEL_FORMAT_VERSIONS = (1, 2)
MODEL_MANIFEST_ENTRY = "manifest.json"
MODEL_PARAMETERS_ENTRY = "parameters.joblib"
MODEL_FILE_SUFFIX = ".zip"
