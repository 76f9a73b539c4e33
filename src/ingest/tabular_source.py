"""Lazy, re-iterable tabular row sources.

A source binds a schema to a row factory. Every iteration calls the
factory again, so a source can be read once to fit and again to evaluate
without any pass seeing rows mutated by another.
"""

from __future__ import annotations

import random
from typing import Callable, Iterable, Iterator, Sequence

from core.constants import MIN_TEST_FRACTION
from core.errors import SchemaError
from core.logging_config import get_logger
from core.records import record_schema, record_to_row
from core.schema import Row, Schema

_LOGGER = get_logger(__name__)

RowFactory = Callable[[], Iterable[Row]]


class TabularSource:
    """Schema-bound, restartable row sequence."""

    def __init__(self, schema: Schema, row_factory: RowFactory, origin: str) -> None:
        """Initialize a source.

        Args:
            schema: Column layout of every produced row.
            row_factory: Callable returning a fresh row iterable per pass.
            origin: Human-readable description used in logs and errors.
        """
        self._schema = schema
        self._row_factory = row_factory
        self._origin = origin

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def origin(self) -> str:
        return self._origin

    def __iter__(self) -> Iterator[Row]:
        return iter(self._row_factory())

    def rows(self) -> list[Row]:
        """Read one full pass into a list."""
        return list(self)

    def count(self) -> int:
        return sum(1 for _ in self)

    def cached(self) -> "TabularSource":
        """Materialize one pass and serve every later pass from memory."""
        materialized = tuple(self)
        return TabularSource(self._schema, lambda: materialized, f"cached({self._origin})")

    def map_rows(
        self,
        schema: Schema,
        row_mapper: Callable[[Row], Row],
        origin: str,
    ) -> "TabularSource":
        """Return a lazy source applying ``row_mapper`` to every row."""
        parent = self

        def produce() -> Iterator[Row]:
            for row in parent:
                yield row_mapper(row)

        return TabularSource(schema, produce, origin)


def from_rows(schema: Schema, rows: Iterable[Row], origin: str = "memory") -> TabularSource:
    """Wrap already laid-out rows without I/O."""
    materialized = tuple(tuple(row) for row in rows)
    return TabularSource(schema, lambda: materialized, origin)


def from_records(
    records: Iterable[object],
    record_type: type | None = None,
    schema: Schema | None = None,
) -> TabularSource:
    """Wrap an in-memory collection of typed records.

    Args:
        records: Dataclass instances or column-name mappings.
        record_type: Record dataclass; inferred from the first record when omitted.
        schema: Explicit schema, required for mapping records without a type.

    Returns:
        In-memory tabular source.

    Raises:
        SchemaError: If no schema can be derived.
    """
    materialized = tuple(records)
    resolved_schema = schema or _infer_schema(materialized, record_type)
    rows = tuple(record_to_row(record, resolved_schema) for record in materialized)
    origin = f"records({record_type.__name__ if record_type else len(rows)})"
    return TabularSource(resolved_schema, lambda: rows, origin)


def split(
    source: TabularSource,
    test_fraction: float,
    seed: int,
) -> tuple[TabularSource, TabularSource]:
    """Partition a source into reproducible train and test subsets.

    Args:
        source: Source to partition.
        test_fraction: Target test share, clamped into the open interval (0, 1).
        seed: Seed for row selection.

    Returns:
        ``(train, test)`` sources that re-read the origin on every pass and
        keep the origin's row order.
    """
    fraction = min(max(test_fraction, MIN_TEST_FRACTION), 1 - MIN_TEST_FRACTION)
    row_count = source.count()
    test_count = min(max(round(row_count * fraction), 0), row_count)
    randomizer = random.Random(seed)
    test_indexes = frozenset(randomizer.sample(range(row_count), test_count))
    _LOGGER.info(
        "source_split",
        origin=source.origin,
        row_count=row_count,
        test_count=test_count,
        seed=seed,
    )
    train = _subset(source, test_indexes, keep_selected=False, label="train")
    test = _subset(source, test_indexes, keep_selected=True, label="test")
    return train, test


def _subset(
    source: TabularSource,
    selected: frozenset[int],
    keep_selected: bool,
    label: str,
) -> TabularSource:
    def produce() -> Iterator[Row]:
        for index, row in enumerate(source):
            if (index in selected) == keep_selected:
                yield row

    return TabularSource(source.schema, produce, f"{label}({source.origin})")


def _infer_schema(records: Sequence[object], record_type: type | None) -> Schema:
    if record_type is not None:
        return record_schema(record_type)
    if records and not isinstance(records[0], dict):
        return record_schema(type(records[0]))
    raise SchemaError(
        "Cannot infer a schema for these records. "
        "Pass record_type for empty collections or schema for mapping records."
    )
