"""
Module: cap

Purpose: Keep the top ranked rows of a group and fold the rest into "Others".

Key Functions:
- CapMixin: Behavior layer adding cap settings and wrapping accessors
- CappedGroup: Grouped source view returning ``top(cap)`` plus an others row

Architecture Notes:
- Requires ``group``, ``key_accessor``, ``value_accessor``, ``data_accessor``,
  ``client_data_accessor`` and ``on_click`` to be installed by a lower layer
- Accessors answer for an OthersRecord themselves and delegate everything
  else, so stacking may sit above or below this layer
- Clicking an others row filters on the absorbed keys, never on the label
"""

import logging
import math
import numbers
from typing import Any, Callable

import numpy as np

from chartmix.core.filters import MultiKeyFilter
from chartmix.core.override import Operation, override
from chartmix.core.records import OthersRecord, is_others
from chartmix.exceptions import InvalidConfigurationError
from chartmix.settings import get_settings

logger = logging.getLogger(__name__)

OthersGrouper = Callable[[list[Any]], OthersRecord | None]

CAP_LABEL = "cap"


def _identity(data: Any) -> Any:
    return data


def validate_cap(value: Any) -> int | None:
    """Normalize a cap value; None and infinity both mean unbounded.

    Raises:
        InvalidConfigurationError: For negative, fractional or non-numeric caps
    """
    if value is None:
        return None
    if isinstance(value, float) and math.isinf(value) and value > 0:
        return None
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Integral):
        raise InvalidConfigurationError(
            f"cap must be a non-negative integer or None, got {value!r}",
            setting="cap",
            value=value,
        )
    if value < 0:
        raise InvalidConfigurationError(
            f"cap must be non-negative, got {value}",
            setting="cap",
            value=value,
        )
    return int(value)


class CappedGroup:
    """A view of ``inner`` limited to the chart's cap."""

    def __init__(self, chart: "CapMixin", inner: Any) -> None:
        self.chart = chart
        self.inner = inner

    def all(self) -> list[Any]:
        cap = self.chart.cap
        if cap is None:
            return list(self.inner.all())

        top = list(self.inner.top(cap))
        get_key = self.chart.key_accessor()
        top_keys = {get_key(record) for record in top}
        others = [record for record in self.inner.all() if get_key(record) not in top_keys]

        grouper = self.chart.others_grouper
        if others and grouper is not None:
            others_record = grouper(others)
            if others_record is not None:
                if not is_others(others_record):
                    raise InvalidConfigurationError(
                        "others_grouper must return an OthersRecord or None",
                        setting="others_grouper",
                        value=type(others_record).__name__,
                    )
                top.append(others_record)
        logger.debug(f"Capped group to {len(top)} rows ({len(others)} folded into others)")
        return top

    def top(self, n: int) -> list[Any]:
        """Ranked rows only; the others row never takes part in ranking."""
        cap = self.chart.cap
        return list(self.inner.top(n if cap is None else min(n, cap)))


class CapMixin:
    """Cap a chart's group to its top rows plus one "Others" row."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        override(self, "group", self._cap_wrap_group, label=CAP_LABEL)
        override(self, "key_accessor", self._cap_wrap_key_accessor, label=CAP_LABEL)
        override(self, "value_accessor", self._cap_wrap_value_accessor, label=CAP_LABEL)
        override(self, "data_accessor", self._cap_wrap_data_accessor, label=CAP_LABEL)
        override(self, "client_data_accessor", self._cap_wrap_data_accessor, label=CAP_LABEL)
        override(self, "on_click", self._cap_wrap_on_click, label=CAP_LABEL)

        settings = getattr(self, "settings", None) or get_settings()
        self._cap = validate_cap(settings.cap)
        self._others_label: Any = settings.others_label
        self._others_grouper: OthersGrouper | None = self.default_others_grouper
        self._others_out: Callable[[list[Any]], Any] = _identity

    # =========================================================================
    # SETTINGS
    # =========================================================================

    @property
    def cap(self) -> int | None:
        """Number of ranked rows kept; None keeps everything."""
        return self._cap

    @cap.setter
    def cap(self, value: int | None) -> None:
        self._cap = validate_cap(value)

    @property
    def others_label(self) -> Any:
        """Key given to the others row."""
        return self._others_label

    @others_label.setter
    def others_label(self, value: Any) -> None:
        if not isinstance(value, str) or not value:
            raise InvalidConfigurationError(
                "others_label must be a non-empty string",
                setting="others_label",
                value=value,
            )
        self._others_label = value

    @property
    def others_grouper(self) -> OthersGrouper | None:
        """Builds the others row from the excluded records; None disables it."""
        return self._others_grouper

    @others_grouper.setter
    def others_grouper(self, fn: OthersGrouper | None) -> None:
        if fn is not None and not callable(fn):
            raise InvalidConfigurationError(
                "others_grouper must be callable or None",
                setting="others_grouper",
                value=fn,
            )
        self._others_grouper = fn

    @property
    def others_out(self) -> Callable[[list[Any]], Any]:
        """Turns the excluded records' raw data into the others row's data."""
        return self._others_out

    @others_out.setter
    def others_out(self, fn: Callable[[list[Any]], Any]) -> None:
        if not callable(fn):
            raise InvalidConfigurationError(
                "others_out must be callable",
                setting="others_out",
                value=fn,
            )
        self._others_out = fn

    def default_others_grouper(self, others: list[Any]) -> OthersRecord:
        """Sum the excluded values and remember their keys."""
        get_key = self.key_accessor()
        get_data = self.data_accessor()
        return OthersRecord(
            key=self._others_label,
            value=self.aggregate(others),
            members=tuple(get_key(record) for record in others),
            data=self._others_out([get_data(record) for record in others]),
        )

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    def _cap_wrap_group(self, previous: Operation) -> Operation:
        def capped_group() -> CappedGroup | None:
            inner = previous()
            if inner is None:
                return None
            return CappedGroup(self, inner)

        return capped_group

    def _cap_wrap_key_accessor(self, previous: Operation) -> Operation:
        def key_accessor(record: Any) -> Any:
            if is_others(record):
                return record.key
            return previous(record)

        return key_accessor

    def _cap_wrap_value_accessor(self, previous: Operation) -> Operation:
        def value_accessor(record: Any) -> Any:
            if is_others(record):
                return record.value
            return previous(record)

        return value_accessor

    def _cap_wrap_data_accessor(self, previous: Operation) -> Operation:
        def data_accessor(record: Any) -> Any:
            if is_others(record):
                return record.data
            return previous(record)

        return data_accessor

    def _cap_wrap_on_click(self, previous: Operation) -> Operation:
        def on_click(record: Any) -> None:
            if is_others(record):
                self.filter(MultiKeyFilter.of(record.members))
                return
            previous(record)

        return on_click
