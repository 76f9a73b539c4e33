"""Runtime configuration model for Tabflow.

This module owns all environment variable parsing and validation.
Fit, save, and load receive a typed config value instead of raw env reads,
so independent pipelines never share process-wide settings.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_MODEL_ROOT, DEFAULT_RANDOM_SEED, FALSE_TOKENS, TRUE_TOKENS
from core.errors import TabflowConfigError


@dataclass(frozen=True)
class TabflowConfig:
    """Validated runtime configuration.

    Attributes:
        seed: Seed for splits and every trainer's randomness.
        model_root: Directory that relative model artifact paths resolve under.
        cache_rows: Whether cache checkpoints materialize transformed rows.
    """

    seed: int = DEFAULT_RANDOM_SEED
    model_root: Path = DEFAULT_MODEL_ROOT
    cache_rows: bool = True

    @classmethod
    def from_env(cls) -> "TabflowConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TabflowConfigError: If environment values are invalid.
        """
        seed_value = os.getenv("TABFLOW_SEED", str(DEFAULT_RANDOM_SEED))
        model_root_value = os.getenv("TABFLOW_MODEL_ROOT", str(DEFAULT_MODEL_ROOT))
        cache_rows_value = os.getenv("TABFLOW_CACHE_ROWS", "true")
        return cls(
            seed=_parse_seed(seed_value),
            model_root=Path(model_root_value).expanduser().resolve(),
            cache_rows=_parse_flag(cache_rows_value, "TABFLOW_CACHE_ROWS"),
        )

    def resolve_model_path(self, model_path: str | Path) -> Path:
        """Resolve an artifact path, anchoring relative paths at model_root."""
        candidate = Path(model_path).expanduser()
        if candidate.is_absolute():
            return candidate
        return (self.model_root / candidate).resolve()


def _parse_seed(raw_value: str) -> int:
    """Parse the random seed environment value.

    Raises:
        TabflowConfigError: If value cannot be parsed into int.
    """
    try:
        return int(raw_value)
    except ValueError as error:
        raise TabflowConfigError(
            "Invalid TABFLOW_SEED value: "
            f"expected integer, got '{raw_value}'. "
            "Set TABFLOW_SEED to a numeric value."
        ) from error


def _parse_flag(raw_value: str, variable_name: str) -> bool:
    normalized = raw_value.strip().lower()
    if normalized in TRUE_TOKENS:
        return True
    if normalized in FALSE_TOKENS:
        return False
    raise TabflowConfigError(
        f"Invalid {variable_name} value: expected one of "
        f"{', '.join(TRUE_TOKENS + FALSE_TOKENS)}, got '{raw_value}'."
    )
