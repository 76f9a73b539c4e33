"""Transform stage contracts.

A ``TransformStage`` is an untrained, immutable column operation. Fitting
it on a source captures whatever the stage learns (vocabularies, term
statistics) into a ``FittedStage``, whose row mapping is then a pure
function with no further learning.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import asdict, is_dataclass
from typing import Any, Callable, ClassVar, Mapping

from core.config import TabflowConfig
from core.schema import Row, Schema
from ingest.tabular_source import TabularSource

RowMapper = Callable[[Row], Row]


class FittedStage(ABC):
    """Frozen, learned column operation."""

    kind: ClassVar[str]

    @abstractmethod
    def output_schema(self, schema: Schema) -> Schema:
        """Return the schema produced from ``schema``."""

    @abstractmethod
    def bind(self, schema: Schema) -> RowMapper:
        """Return a row mapper for rows laid out by ``schema``."""

    @abstractmethod
    def to_state(self) -> dict[str, Any]:
        """Return the learned parameters for persistence."""

    @classmethod
    @abstractmethod
    def from_state(cls, state: Mapping[str, Any]) -> "FittedStage":
        """Rebuild a fitted stage from persisted parameters."""


class TransformStage(ABC):
    """Untrained column operation with a fit step."""

    kind: ClassVar[str]

    @property
    @abstractmethod
    def input_columns(self) -> tuple[str, ...]:
        """Columns read by the stage."""

    @property
    @abstractmethod
    def output_columns(self) -> tuple[str, ...]:
        """Columns written by the stage."""

    @property
    def name(self) -> str:
        return f"{self.kind}:{','.join(self.output_columns) or '-'}"

    @abstractmethod
    def output_schema(self, schema: Schema) -> Schema:
        """Validate inputs against ``schema`` and return the output schema.

        Raises:
            SchemaError: If a required input column is absent or mistyped.
        """

    @abstractmethod
    def fit(self, source: TabularSource, config: TabflowConfig) -> FittedStage:
        """Learn stage parameters from one pass over ``source``."""

    def describe(self) -> dict[str, object]:
        """Return a JSON-friendly description used for pipeline fingerprints."""
        payload: dict[str, object] = {"kind": self.kind}
        if is_dataclass(self):
            payload.update(asdict(self))
        return payload


def is_missing(value: object) -> bool:
    """Return whether a cell holds no value (None or a float NaN)."""
    return value is None or (isinstance(value, float) and math.isnan(value))
