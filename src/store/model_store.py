"""Versioned single-file model artifacts.

An artifact is one zip file holding a JSON manifest (format version,
schemas, stage kinds, checksum) and a joblib payload with every fitted
stage and trainer state. Loading validates structure before rebuilding the
model, so a damaged or foreign file fails loudly instead of scoring wrong.
"""

from __future__ import annotations

import hashlib
import io
import json
import os
import pickle
import zipfile
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

import joblib

from core.config import TabflowConfig
from core.constants import (
    HASH_ALGORITHM,
    MODEL_FORMAT_VERSION,
    MODEL_MANIFEST_ENTRY,
    MODEL_PARAMETERS_ENTRY,
    SUPPORTED_MODEL_FORMAT_VERSIONS,
)
from core.errors import (
    CorruptArtifactError,
    ModelStoreError,
    NotFoundError,
    SchemaError,
    VersionError,
)
from core.logging_config import get_logger
from core.schema import Schema
from core.types import ModelManifest
from pipeline.model import Model
from trainers.base import FittedTrainer
from trainers.registry import resolve_fitted_trainer
from transforms.base import FittedStage
from transforms.registry import resolve_fitted_stage

_LOGGER = get_logger(__name__)


def save_model(
    model: Model,
    destination: str | Path,
    config: TabflowConfig | None = None,
) -> Path:
    """Write ``model`` as one artifact file.

    Args:
        model: Trained model.
        destination: Artifact path; relative paths resolve under
            ``config.model_root``.
        config: Runtime config; defaults to ``TabflowConfig()``.

    Returns:
        Resolved artifact path.

    Raises:
        ModelStoreError: If the artifact cannot be written.
    """
    resolved_config = config or TabflowConfig()
    artifact_path = resolved_config.resolve_model_path(destination)
    parameters = _dump_parameters(model)
    manifest = ModelManifest(
        format_version=MODEL_FORMAT_VERSION,
        created_at=datetime.now(timezone.utc),
        input_schema=tuple(model.input_schema.to_payload()),
        output_schema=tuple(model.output_schema.to_payload()),
        stage_kinds=tuple(stage.kind for stage in model.fitted_stages),
        trainer_kind=model.fitted_trainer.kind if model.fitted_trainer is not None else None,
        post_stage_kinds=tuple(stage.kind for stage in model.fitted_post_stages),
        fingerprint=model.fingerprint,
        parameters_sha256=_checksum(parameters),
    )
    temporary_path = artifact_path.with_name(f".{artifact_path.name}.tmp")
    try:
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(temporary_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(MODEL_MANIFEST_ENTRY, _manifest_to_json(manifest))
            archive.writestr(MODEL_PARAMETERS_ENTRY, parameters)
        os.replace(temporary_path, artifact_path)
    except OSError as error:
        raise ModelStoreError(
            f"Failed to write model artifact to {artifact_path}: {error}. "
            "Check that the directory is writable."
        ) from error
    finally:
        temporary_path.unlink(missing_ok=True)
    _LOGGER.info(
        "model_saved",
        path=str(artifact_path),
        format_version=manifest.format_version,
        trainer=manifest.trainer_kind,
        stage_count=len(manifest.stage_kinds) + len(manifest.post_stage_kinds),
        fingerprint=manifest.fingerprint,
    )
    return artifact_path


def load_model(
    source: str | Path,
    config: TabflowConfig | None = None,
) -> tuple[Model, Schema]:
    """Read a model artifact written by ``save_model``.

    Args:
        source: Artifact path; relative paths resolve under ``config.model_root``.
        config: Runtime config; defaults to ``TabflowConfig()``.

    Returns:
        ``(model, input_schema)``.

    Raises:
        NotFoundError: If the artifact does not exist.
        CorruptArtifactError: If the artifact is structurally invalid.
        VersionError: If the artifact format version is unsupported.
    """
    resolved_config = config or TabflowConfig()
    artifact_path = resolved_config.resolve_model_path(source)
    if not artifact_path.is_file():
        raise NotFoundError(
            f"Model artifact not found at {artifact_path}. "
            "Train and save a model first or check the path."
        )
    manifest_bytes, parameters = _read_entries(artifact_path)
    manifest = _parse_manifest(manifest_bytes, artifact_path)
    if manifest.parameters_sha256 is not None and manifest.parameters_sha256 != _checksum(
        parameters
    ):
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} failed its parameters checksum. "
            "The file was modified or truncated after it was saved."
        )
    payload = _load_parameters(parameters, artifact_path)
    fitted_stages = _restore_stages(payload, "stages", manifest.stage_kinds, artifact_path)
    fitted_post_stages = _restore_stages(
        payload, "post_stages", manifest.post_stage_kinds, artifact_path
    )
    fitted_trainer = _restore_trainer(payload, manifest.trainer_kind, artifact_path)
    try:
        model = Model(
            input_schema=Schema.from_payload(manifest.input_schema),
            fitted_stages=fitted_stages,
            fitted_trainer=fitted_trainer,
            fitted_post_stages=fitted_post_stages,
            fingerprint=manifest.fingerprint,
        )
    except (SchemaError, KeyError, ValueError) as error:
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} does not describe a consistent column chain: {error}"
        ) from error
    if manifest.output_schema is not None and _normalized(
        model.output_schema.to_payload()
    ) != _normalized(list(manifest.output_schema)):
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} stores an output schema that does not match "
            "the one produced by its fitted stages."
        )
    _LOGGER.info(
        "model_loaded",
        path=str(artifact_path),
        format_version=manifest.format_version,
        trainer=manifest.trainer_kind,
        fingerprint=manifest.fingerprint,
    )
    return model, model.input_schema


def _dump_parameters(model: Model) -> bytes:
    payload: dict[str, Any] = {
        "stages": [_stage_entry(stage) for stage in model.fitted_stages],
        "trainer": _stage_entry(model.fitted_trainer) if model.fitted_trainer is not None else None,
        "post_stages": [_stage_entry(stage) for stage in model.fitted_post_stages],
    }
    buffer = io.BytesIO()
    joblib.dump(payload, buffer)
    return buffer.getvalue()


def _stage_entry(stage: FittedStage | FittedTrainer) -> dict[str, Any]:
    return {"kind": stage.kind, "state": stage.to_state()}


def _manifest_to_json(manifest: ModelManifest) -> str:
    manifest_dict = asdict(manifest)
    manifest_dict["created_at"] = manifest.created_at.isoformat()
    return json.dumps(manifest_dict, indent=2) + "\n"


def _checksum(data: bytes) -> str:
    hash_builder = hashlib.new(HASH_ALGORITHM)
    hash_builder.update(data)
    return hash_builder.hexdigest()


def _read_entries(artifact_path: Path) -> tuple[bytes, bytes]:
    """Read the manifest and parameters entries.

    Raises:
        CorruptArtifactError: If the file is not a zip or lacks an entry.
    """
    try:
        with zipfile.ZipFile(artifact_path) as archive:
            names = set(archive.namelist())
            for entry in (MODEL_MANIFEST_ENTRY, MODEL_PARAMETERS_ENTRY):
                if entry not in names:
                    raise CorruptArtifactError(
                        f"Model artifact {artifact_path} is missing its '{entry}' entry."
                    )
            return archive.read(MODEL_MANIFEST_ENTRY), archive.read(MODEL_PARAMETERS_ENTRY)
    except zipfile.BadZipFile as error:
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} is not a readable zip archive: {error}. "
            "Re-save the model."
        ) from error


def _parse_manifest(manifest_bytes: bytes, artifact_path: Path) -> ModelManifest:
    """Decode and validate the manifest entry.

    Version 1 manifests keep the input schema under ``schema`` and carry no
    output schema or checksum.

    Raises:
        CorruptArtifactError: If the manifest is not valid JSON or misses fields.
        VersionError: If the format version is not supported.
    """
    try:
        payload = json.loads(manifest_bytes.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise CorruptArtifactError(
            f"Failed to parse manifest of model artifact {artifact_path}: {error}."
        ) from error
    if not isinstance(payload, dict):
        raise CorruptArtifactError(
            f"Manifest of model artifact {artifact_path} must be a JSON object."
        )
    version = payload.get("format_version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise CorruptArtifactError(
            f"Manifest of model artifact {artifact_path} has no integer format_version."
        )
    if version not in SUPPORTED_MODEL_FORMAT_VERSIONS:
        supported = ", ".join(str(item) for item in SUPPORTED_MODEL_FORMAT_VERSIONS)
        raise VersionError(
            f"Model artifact {artifact_path} uses format version {version}. "
            f"Supported versions: {supported}."
        )
    try:
        schema_key = "schema" if version == 1 else "input_schema"
        output_schema = payload.get("output_schema") if version >= 2 else None
        return ModelManifest(
            format_version=version,
            created_at=datetime.fromisoformat(str(payload["created_at"])),
            input_schema=tuple(payload[schema_key]),
            output_schema=tuple(output_schema) if output_schema is not None else None,
            stage_kinds=tuple(str(kind) for kind in payload["stage_kinds"]),
            trainer_kind=str(payload["trainer_kind"]) if payload.get("trainer_kind") else None,
            post_stage_kinds=tuple(str(kind) for kind in payload.get("post_stage_kinds", ())),
            fingerprint=str(payload.get("fingerprint", "")),
            parameters_sha256=payload.get("parameters_sha256") if version >= 2 else None,
        )
    except (KeyError, TypeError, ValueError) as error:
        raise CorruptArtifactError(
            f"Manifest of model artifact {artifact_path} is incomplete: {error!r}."
        ) from error


def _load_parameters(parameters: bytes, artifact_path: Path) -> dict[str, Any]:
    try:
        payload = joblib.load(io.BytesIO(parameters))
    except (pickle.UnpicklingError, EOFError, ValueError, AttributeError, ImportError) as error:
        raise CorruptArtifactError(
            f"Failed to read parameters of model artifact {artifact_path}: {error}."
        ) from error
    if not isinstance(payload, dict):
        raise CorruptArtifactError(
            f"Parameters of model artifact {artifact_path} must be a mapping of stage states."
        )
    return payload


def _restore_stages(
    payload: dict[str, Any],
    key: str,
    expected_kinds: Sequence[str],
    artifact_path: Path,
) -> tuple[FittedStage, ...]:
    entries = payload.get(key) or []
    kinds = tuple(str(entry.get("kind")) for entry in entries)
    if kinds != tuple(expected_kinds):
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} lists {key} {list(expected_kinds)} in its manifest "
            f"but stores {list(kinds)}."
        )
    return tuple(_restore_entry(entry, resolve_fitted_stage, artifact_path) for entry in entries)


def _restore_trainer(
    payload: dict[str, Any],
    expected_kind: str | None,
    artifact_path: Path,
) -> FittedTrainer | None:
    entry = payload.get("trainer")
    stored_kind = str(entry.get("kind")) if entry else None
    if stored_kind != expected_kind:
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} names trainer '{expected_kind}' in its manifest "
            f"but stores '{stored_kind}'."
        )
    if entry is None:
        return None
    return _restore_entry(entry, resolve_fitted_trainer, artifact_path)


def _restore_entry(entry: dict[str, Any], resolve: Any, artifact_path: Path) -> Any:
    fitted_type = resolve(str(entry["kind"]))
    try:
        return fitted_type.from_state(entry["state"])
    except (KeyError, TypeError, ValueError) as error:
        raise CorruptArtifactError(
            f"Model artifact {artifact_path} holds invalid '{entry['kind']}' parameters: {error!r}."
        ) from error


def _normalized(schema_payload: list[dict[str, object]]) -> Any:
    return json.loads(json.dumps(schema_payload))
