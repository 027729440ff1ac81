"""
Module: sources

Purpose: The grouped data source interface and two concrete sources.

Key Functions:
- GroupedDataSource: Protocol every layer and cap wraps (``all`` and ``top``)
- StaticGroup: In-memory records with a stable descending ranking
- DataFrameGroup: pandas ``groupby`` aggregate over a DataFrame

Architecture Notes:
- Sources are recomputed on every call; charts never cache their output
- ``top(n)`` ranks descending and breaks ties by the source's own order
"""

import heapq
import logging
from typing import Any, Callable, Iterable, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from chartmix.core.records import Record
from chartmix.exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)


@runtime_checkable
class GroupedDataSource(Protocol):
    """An already-aggregated key/value grouping."""

    def all(self) -> list[Any]:
        """Every record, in the source's own order."""
        ...

    def top(self, n: int) -> list[Any]:
        """The ``n`` highest-ranked records, descending."""
        ...


def _python_scalar(value: Any) -> Any:
    """Convert numpy scalars so records compare and serialize as plain values."""
    if isinstance(value, np.generic):
        return value.item()
    return value


# =============================================================================
# IN-MEMORY SOURCE
# =============================================================================


class StaticGroup:
    """A fixed list of records.

    Example:
        >>> group = StaticGroup.from_pairs([("A", 10), ("B", 7)])
        >>> [r.key for r in group.top(1)]
        ['A']
    """

    def __init__(
        self,
        records: Iterable[Any],
        *,
        order: Callable[[Any], Any] | None = None,
    ) -> None:
        self._records = list(records)
        self._order = order or (lambda record: record.value)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[Any, Any]], **kwargs: Any) -> "StaticGroup":
        """Build a group from ``(key, value)`` tuples."""
        return cls([Record(key=k, value=v) for k, v in pairs], **kwargs)

    @classmethod
    def from_mapping(cls, mapping: dict[Any, Any], **kwargs: Any) -> "StaticGroup":
        """Build a group from a ``{key: value}`` dict, keeping insertion order."""
        return cls.from_pairs(mapping.items(), **kwargs)

    def all(self) -> list[Any]:
        return list(self._records)

    def top(self, n: int) -> list[Any]:
        if n <= 0:
            return []
        # nlargest is stable: equal ranks keep their stored order
        return heapq.nlargest(n, self._records, key=self._order)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"StaticGroup(n_records={len(self._records)})"


# =============================================================================
# PANDAS SOURCE
# =============================================================================


class DataFrameGroup:
    """Aggregate one column of a DataFrame by another.

    Args:
        frame: Source rows; re-read on every call so later edits are visible
        key: Column to group by
        value: Column to aggregate
        agg: Any aggregation accepted by ``SeriesGroupBy.agg`` ("sum", "mean", ...)
        dropna: Whether rows with a missing key are dropped
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        *,
        key: str,
        value: str,
        agg: str | Callable[[pd.Series], Any] = "sum",
        dropna: bool = True,
    ) -> None:
        missing = [col for col in (key, value) if col not in frame.columns]
        if missing:
            raise InvalidConfigurationError(
                f"DataFrame is missing columns: {missing}",
                setting="columns",
                value=missing,
                context={"available": list(frame.columns)},
            )
        self.frame = frame
        self.key = key
        self.value = value
        self.agg = agg
        self.dropna = dropna

    def _aggregate(self) -> pd.Series:
        grouped = self.frame.groupby(self.key, sort=True, dropna=self.dropna)[self.value]
        return grouped.agg(self.agg)

    def all(self) -> list[Any]:
        series = self._aggregate()
        return [
            Record(key=_python_scalar(k), value=_python_scalar(v))
            for k, v in series.items()
        ]

    def top(self, n: int) -> list[Any]:
        if n <= 0:
            return []
        series = self._aggregate().nlargest(n, keep="first")
        return [
            Record(key=_python_scalar(k), value=_python_scalar(v))
            for k, v in series.items()
        ]

    def __repr__(self) -> str:
        return f"DataFrameGroup(key={self.key!r}, value={self.value!r}, agg={self.agg!r})"
