"""
Module: base

Purpose: The operation slots every chart starts from.

Key Functions:
- Composable: Root class owning the OperationRegistry
- BaseChart: Installs the base slots, filter state, colors and listeners

Architecture Notes:
- Behavior layers (CapMixin, StackMixin) are mixin classes placed before
  BaseChart in the bases list. Each calls ``super().__init__()`` first and then
  wraps slots, so the MRO fixes the wrap order at construction time.
- Slots hold plain functions with a domain signature (``record -> key``); the
  ``set_*`` methods replace only the innermost implementation.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Hashable

import seaborn as sns

from chartmix.core.filters import filter_matches
from chartmix.core.override import OperationRegistry
from chartmix.core.sources import GroupedDataSource
from chartmix.exceptions import InvalidConfigurationError
from chartmix.settings import ChartSettings, get_settings

logger = logging.getLogger(__name__)

EVENTS = ("filtered", "redraw")


def _require_callable(setting: str, fn: Any) -> None:
    if not callable(fn):
        raise InvalidConfigurationError(
            f"{setting} must be callable, got {type(fn).__name__}",
            setting=setting,
            value=fn,
        )


class Composable:
    """Root of every chart: owns the named operation slots."""

    def __init__(self) -> None:
        self.operations = OperationRegistry()


class BaseChart(Composable):
    """A chart bound to one grouped data source.

    Installed slots: ``group``, ``data``, ``key_accessor``, ``value_accessor``,
    ``data_accessor``, ``client_data_accessor``, ``color_accessor``,
    ``aggregate``, ``on_click`` and ``title``.
    """

    def __init__(self, *, settings: ChartSettings | None = None) -> None:
        super().__init__()
        self.settings = settings or get_settings()

        self._group: GroupedDataSource | None = None
        self._group_name: str | None = None
        self._filters: list[Any] = []
        self._filter_handler: Callable[[list[Any]], None] | None = None
        self._listeners: dict[str, list[Callable[..., None]]] = defaultdict(list)

        self._palette_name = ""
        self._palette: list[str] = []
        self._color_domain: dict[Hashable, int] = {}
        self.set_palette(self.settings.palette, size=self.settings.palette_size)

        self.x_axis_padding = self.settings.x_axis_padding
        self.y_axis_padding = self.settings.y_axis_padding

        self._install_base_operations()

    def _install_base_operations(self) -> None:
        ops = self.operations
        ops.install("group", lambda: self._group)
        ops.install("data", self._base_data)
        ops.install("key_accessor", lambda record: record.key)
        ops.install("value_accessor", lambda record: record.value)
        ops.install("data_accessor", lambda record: record)
        ops.install("client_data_accessor", lambda record: record)
        ops.install("color_accessor", self._base_color_accessor)
        ops.install("aggregate", self._base_aggregate)
        ops.install("on_click", self._base_on_click)
        ops.install("title", self._base_title)

    # =========================================================================
    # BASE IMPLEMENTATIONS
    # =========================================================================

    def _base_data(self) -> list[Any]:
        group = self.group()
        if group is None:
            raise InvalidConfigurationError(
                f"{type(self).__name__} has no group; call set_group() first",
                setting="group",
            )
        return list(group.all())

    def _base_color_accessor(self, record: Any, layer: str | None = None) -> Hashable:
        if record is None:
            return layer
        return self.key_accessor()(record)

    def _base_aggregate(self, records: list[Any]) -> Any:
        """Sum the active value accessor over ``records``, skipping None."""
        get_value = self.value_accessor()
        total = 0
        for record in records:
            value = get_value(record)
            if value is not None:
                total += value
        return total

    def _base_on_click(self, record: Any) -> None:
        self.filter(self.key_accessor()(record))

    def _base_title(self, record: Any) -> str:
        return f"{self.key_accessor()(record)}: {self.value_accessor()(record)}"

    # =========================================================================
    # GROUP AND DATA
    # =========================================================================

    def group(self) -> GroupedDataSource | None:
        """The effective grouped source after every behavior layer."""
        return self.operations.call("group")

    def set_group(self, source: GroupedDataSource, name: str | None = None) -> "BaseChart":
        """Bind the chart to a grouped data source."""
        if not isinstance(source, GroupedDataSource):
            raise InvalidConfigurationError(
                "group must provide all() and top(n)",
                setting="group",
                value=type(source).__name__,
            )
        self._group = source
        self._group_name = name
        return self

    @property
    def group_name(self) -> str | None:
        return self._group_name

    def data(self) -> list[Any]:
        """Compute the chart's data from scratch."""
        return self.operations.call("data")

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    def key_accessor(self) -> Callable[[Any], Any]:
        return self.operations.resolve("key_accessor")

    def set_key_accessor(self, fn: Callable[[Any], Any]) -> "BaseChart":
        _require_callable("key_accessor", fn)
        self.operations.replace("key_accessor", fn)
        return self

    def value_accessor(self) -> Callable[[Any], Any]:
        return self.operations.resolve("value_accessor")

    def set_value_accessor(self, fn: Callable[[Any], Any]) -> "BaseChart":
        _require_callable("value_accessor", fn)
        self.operations.replace("value_accessor", fn)
        return self

    def data_accessor(self) -> Callable[[Any], Any]:
        """Raw data behind a record, as used for aggregation and ordering."""
        return self.operations.resolve("data_accessor")

    def client_data_accessor(self) -> Callable[[Any], Any]:
        """Data handed to user callbacks such as titles."""
        return self.operations.resolve("client_data_accessor")

    def color_accessor(self) -> Callable[..., Hashable]:
        return self.operations.resolve("color_accessor")

    def set_color_accessor(self, fn: Callable[..., Hashable]) -> "BaseChart":
        _require_callable("color_accessor", fn)
        self.operations.replace("color_accessor", fn)
        return self

    def aggregate(self, records: list[Any]) -> Any:
        """Fold several records into a single value."""
        return self.operations.call("aggregate", records)

    def set_aggregate(self, fn: Callable[[list[Any]], Any]) -> "BaseChart":
        _require_callable("aggregate", fn)
        self.operations.replace("aggregate", fn)
        return self

    def title(self) -> Callable[[Any], str]:
        return self.operations.resolve("title")

    def set_title(self, fn: Callable[[Any], str]) -> "BaseChart":
        _require_callable("title", fn)
        self.operations.replace("title", fn)
        return self

    # =========================================================================
    # FILTERING
    # =========================================================================

    def on_click(self, record: Any) -> None:
        """Apply the filter a click on ``record`` stands for."""
        self.operations.call("on_click", record)

    def filter(self, value: Any) -> "BaseChart":
        """Toggle ``value`` in the active filters and notify listeners."""
        if value in self._filters:
            self._filters.remove(value)
        else:
            self._filters.append(value)
        logger.debug(f"Filter toggled for {value!r}; {len(self._filters)} active")

        if self._filter_handler is not None:
            self._filter_handler(list(self._filters))
        self._notify("filtered", value)
        return self

    def filters(self) -> list[Any]:
        return list(self._filters)

    def has_filter(self, key: Any = None) -> bool:
        """Check for any active filter, or for one selecting ``key``."""
        if key is None:
            return bool(self._filters)
        return any(filter_matches(active, key) for active in self._filters)

    def filter_all(self) -> "BaseChart":
        """Clear every active filter."""
        self._filters = []
        if self._filter_handler is not None:
            self._filter_handler([])
        self._notify("filtered", None)
        return self

    def set_filter_handler(self, fn: Callable[[list[Any]], None] | None) -> "BaseChart":
        """Set the function that applies the active filters to the dimension."""
        if fn is not None:
            _require_callable("filter_handler", fn)
        self._filter_handler = fn
        return self

    # =========================================================================
    # COLORS
    # =========================================================================

    def set_palette(self, name: str, *, size: int | None = None) -> "BaseChart":
        """Choose the seaborn palette colors are drawn from."""
        try:
            colors = sns.color_palette(name, size or self.settings.palette_size).as_hex()
        except ValueError as e:
            raise InvalidConfigurationError(
                f"Unknown color palette: {name}",
                setting="palette",
                value=name,
            ) from e
        self._palette_name = name
        self._palette = list(colors)
        self._color_domain = {}
        return self

    @property
    def palette(self) -> list[str]:
        return list(self._palette)

    def get_color(self, record: Any, layer: str | None = None) -> str:
        """Map a record (or a layer name) to a hex color.

        Colors are assigned to color keys in first-seen order and cycle once the
        palette is exhausted.
        """
        color_key = self.color_accessor()(record, layer)
        index = self._color_domain.setdefault(color_key, len(self._color_domain))
        return self._palette[index % len(self._palette)]

    def color_of(self, color_key: Hashable, *, default_index: int = 0) -> str:
        """Color already assigned to ``color_key``, without assigning a new one."""
        index = self._color_domain.get(color_key, default_index)
        return self._palette[index % len(self._palette)]

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def on(self, event: str, fn: Callable[..., None]) -> "BaseChart":
        """Register a listener for "filtered" or "redraw"."""
        if event not in EVENTS:
            raise InvalidConfigurationError(
                f"Unknown chart event: {event}",
                setting="event",
                value=event,
                context={"supported": list(EVENTS)},
            )
        _require_callable("listener", fn)
        self._listeners[event].append(fn)
        return self

    def redraw(self) -> "BaseChart":
        """Ask the chart shell to redraw from freshly computed data."""
        self._notify("redraw", None)
        return self

    def _notify(self, event: str, payload: Any) -> None:
        for listener in self._listeners[event]:
            listener(self, payload)

    def is_ordinal(self) -> bool:
        return False
