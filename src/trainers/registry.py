"""Closed registry of trainer variants keyed by kind."""

from __future__ import annotations

from core.errors import CorruptArtifactError
from trainers.base import FittedTrainer, Trainer
from trainers.binary import FittedLogisticRegression, LogisticRegressionBinaryTrainer
from trainers.clustering import FittedKMeans, KMeansTrainer
from trainers.matrix_factorization import FittedMatrixFactorization, MatrixFactorizationTrainer
from trainers.multiclass import FittedMaximumEntropy, MaximumEntropyMulticlassTrainer
from trainers.regression import FastTreeRegressionTrainer, FittedFastTree

_TRAINER_REGISTRY: dict[str, type[Trainer]] = {
    trainer_type.kind: trainer_type
    for trainer_type in (
        MaximumEntropyMulticlassTrainer,
        LogisticRegressionBinaryTrainer,
        FastTreeRegressionTrainer,
        MatrixFactorizationTrainer,
        KMeansTrainer,
    )
}

_FITTED_TRAINER_REGISTRY: dict[str, type[FittedTrainer]] = {
    fitted_type.kind: fitted_type
    for fitted_type in (
        FittedMaximumEntropy,
        FittedLogisticRegression,
        FittedFastTree,
        FittedMatrixFactorization,
        FittedKMeans,
    )
}


def available_trainer_kinds() -> tuple[str, ...]:
    return tuple(sorted(_TRAINER_REGISTRY))


def resolve_trainer(kind: str) -> type[Trainer]:
    """Return the trainer class registered for ``kind``.

    Raises:
        ValueError: If no trainer is registered under ``kind``.
    """
    if kind not in _TRAINER_REGISTRY:
        raise ValueError(
            f"No trainer registered for '{kind}'. Available: {', '.join(available_trainer_kinds())}"
        )
    return _TRAINER_REGISTRY[kind]


def resolve_fitted_trainer(kind: str) -> type[FittedTrainer]:
    """Return the fitted trainer class for ``kind`` found in a model artifact.

    Raises:
        CorruptArtifactError: If the artifact names an unknown trainer kind.
    """
    if kind not in _FITTED_TRAINER_REGISTRY:
        raise CorruptArtifactError(
            f"Unknown trainer kind '{kind}' in model artifact. "
            f"Available: {', '.join(sorted(_FITTED_TRAINER_REGISTRY))}."
        )
    return _FITTED_TRAINER_REGISTRY[kind]
