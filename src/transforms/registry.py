"""Fitted stage registry used to rebuild stages from model artifacts."""

from __future__ import annotations

from core.errors import CorruptArtifactError
from transforms.base import FittedStage
from transforms.column_ops import FittedCacheCheckpoint, FittedConcatenate, FittedCopyColumn
from transforms.one_hot import FittedOneHot
from transforms.text_featurizer import FittedTextFeaturizer
from transforms.value_key import FittedKeyToValue, FittedValueToKey

_FITTED_STAGE_REGISTRY: dict[str, type[FittedStage]] = {
    stage_type.kind: stage_type
    for stage_type in (
        FittedValueToKey,
        FittedKeyToValue,
        FittedTextFeaturizer,
        FittedOneHot,
        FittedConcatenate,
        FittedCopyColumn,
        FittedCacheCheckpoint,
    )
}


def resolve_fitted_stage(kind: str) -> type[FittedStage]:
    """Return the fitted stage class registered for ``kind``.

    Raises:
        CorruptArtifactError: If no stage is registered under ``kind``.
    """
    if kind not in _FITTED_STAGE_REGISTRY:
        available = ", ".join(sorted(_FITTED_STAGE_REGISTRY))
        raise CorruptArtifactError(
            f"Unknown stage kind '{kind}' in model artifact. Available: {available}."
        )
    return _FITTED_STAGE_REGISTRY[kind]
