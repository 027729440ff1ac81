"""
Module: stack

Purpose: Align several grouped sources by key and lay them out as stacked
(or overlaid) series.

Key Functions:
- StackMixin: Behavior layer owning the layer list and the stacked ``data()``
- StackedGroup: Grouped source view merging visible layers into LayeredRecords
- Layer: One stacked source with its name, value accessor and hidden flag

Architecture Notes:
- Requires every slot installed by BaseChart
- ``group`` and ``data`` are fully replaced; the accessor slots delegate for
  anything that is not a LayeredRecord
- Merging is a single pass over every visible layer's records with a dict
  keyed by record key; first-seen order decides row order
- Nothing is cached: every ``data()`` call merges and lays out from scratch
"""

import heapq
import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any, Callable

from chartmix.core.override import Operation, override
from chartmix.core.records import (
    LayeredRecord,
    LayerSeries,
    Legendable,
    StackedPoint,
    is_layered,
    is_others,
)
from chartmix.core.sources import GroupedDataSource
from chartmix.exceptions import InvalidConfigurationError
from chartmix.mixins.layouts import cumulative_layout, resolve_layout
from chartmix.settings import get_settings

logger = logging.getLogger(__name__)

STACK_LABEL = "stack"


# =============================================================================
# LAYERS
# =============================================================================


@dataclass(eq=False)
class Layer:
    """One stacked source. Layers compare by identity."""

    source: GroupedDataSource
    name: str | None = None
    value_accessor: Callable[[Any], Any] | None = None
    hidden: bool = False


class _InnerGroup:
    """Late-bound view of the group installed below the stacking layer."""

    def __init__(self, chart: "StackMixin") -> None:
        self.chart = chart

    def _resolve(self) -> GroupedDataSource | None:
        return self.chart.operations.resolve("group", below=STACK_LABEL)()

    def all(self) -> list[Any]:
        group = self._resolve()
        return [] if group is None else list(group.all())

    def top(self, n: int) -> list[Any]:
        group = self._resolve()
        return [] if group is None else list(group.top(n))


def _sum_present(values: Sequence[Any]) -> float:
    return sum(v for v in values if v is not None)


class StackedGroup:
    """Visible layers merged by key."""

    def __init__(self, chart: "StackMixin") -> None:
        self.chart = chart

    def all(self) -> list[LayeredRecord]:
        return self.chart.compute_rows()

    def top(self, n: int) -> list[LayeredRecord]:
        """Rows with the largest sum across layers, descending."""
        if n <= 0:
            return []
        get_value = self.chart.value_accessor()
        return heapq.nlargest(n, self.all(), key=lambda row: _sum_present(get_value(row)))


# =============================================================================
# MIXIN
# =============================================================================


class StackMixin:
    """Stack several grouped sources into one chart."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        override(self, "group", self._stack_wrap_group, label=STACK_LABEL)
        override(self, "data", self._stack_wrap_data, label=STACK_LABEL)
        override(self, "value_accessor", self._stack_wrap_value_accessor, label=STACK_LABEL)
        override(self, "data_accessor", self._stack_wrap_data_accessor, label=STACK_LABEL)
        override(self, "client_data_accessor", self._stack_wrap_client_data_accessor, label=STACK_LABEL)
        override(self, "aggregate", self._stack_wrap_aggregate, label=STACK_LABEL)
        override(self, "color_accessor", self._stack_wrap_color_accessor, label=STACK_LABEL)
        override(self, "on_click", self._stack_wrap_on_click, label=STACK_LABEL)

        settings = getattr(self, "settings", None) or get_settings()
        self._layers: list[Layer] = []
        self._titles: dict[str, Callable[[Any], str]] = {}
        self._stacked = settings.stacked
        self._full_stack_data = settings.full_stack_data
        self._hidable_stacks = settings.hidable_stacks
        self._stacked_color = True
        self._stack_layout: Callable[..., list[LayerSeries]] = cumulative_layout
        self._x_domain: tuple[Any, Any] | None = None

    # =========================================================================
    # LAYER LIST
    # =========================================================================

    def stack(
        self,
        source: GroupedDataSource,
        name: str | None = None,
        value_accessor: Callable[[Any], Any] | None = None,
    ) -> "StackMixin":
        """Add a layer on top of the existing ones.

        Args:
            source: Grouped source for the layer
            name: Legend label; defaults to the layer's position
            value_accessor: Per-layer value accessor; defaults to the chart's
        """
        if not isinstance(source, GroupedDataSource):
            raise InvalidConfigurationError(
                "stacked source must provide all() and top(n)",
                setting="stack",
                value=type(source).__name__,
            )
        if name is not None and not isinstance(name, str):
            raise InvalidConfigurationError(
                "stack name must be a string",
                setting="stack",
                value=name,
            )
        if value_accessor is not None and not callable(value_accessor):
            raise InvalidConfigurationError(
                "stack value_accessor must be callable",
                setting="stack",
                value=value_accessor,
            )

        self._layers.append(Layer(source=source, name=name, value_accessor=value_accessor))
        if len(self._layers) > 1:
            self._stacked_color = True
        return self

    def set_group(
        self,
        source: GroupedDataSource,
        name: str | None = None,
        value_accessor: Callable[[Any], Any] | None = None,
    ) -> "StackMixin":
        """Bind the base group and reset the layers to just that group."""
        super().set_group(source, name)
        self._layers = []
        self._titles = {}
        self.stack(_InnerGroup(self), name)
        if value_accessor is not None:
            self.set_value_accessor(value_accessor)
        return self

    def stacks(self) -> tuple[Layer, ...]:
        """Copies of the declared layers, in declaration order."""
        return tuple(replace(layer) for layer in self._layers)

    def layer_names(self) -> list[str]:
        """Names of the declared layers, hidden ones included."""
        return [self.layer_name(layer) for layer in self._layers]

    def layer_name(self, layer: Layer) -> str:
        """Declared name, or the layer's declaration index."""
        if layer.name is not None:
            return layer.name
        return str(self._layers.index(layer))

    def _visible_layers(self) -> list[Layer]:
        return [layer for layer in self._layers if not layer.hidden]

    def _set_hidden(self, stack_name: str, hidden: bool) -> "StackMixin":
        matched = [layer for layer in self._layers if self.layer_name(layer) == stack_name]
        if not matched:
            logger.warning(f"No stack named {stack_name!r}; nothing to {'hide' if hidden else 'show'}")
            return self
        for layer in matched:
            layer.hidden = hidden
        return self

    def hide_stack(self, stack_name: str) -> "StackMixin":
        """Hide every layer with this name from the next computation."""
        return self._set_hidden(stack_name, True)

    def show_stack(self, stack_name: str) -> "StackMixin":
        """Show every layer with this name again."""
        return self._set_hidden(stack_name, False)

    def value_accessor_for(self, index: int) -> Callable[[Any], Any]:
        """The value accessor used for the layer at a declaration index."""
        return self._layers[index].value_accessor or self.operations.resolve(
            "value_accessor", below=STACK_LABEL
        )

    # =========================================================================
    # SETTINGS
    # =========================================================================

    @property
    def stacked(self) -> bool:
        """True stacks layers; False overlays them on a zero baseline."""
        return self._stacked

    @stacked.setter
    def stacked(self, value: bool) -> None:
        self._stacked = bool(value)

    @property
    def full_stack_data(self) -> bool:
        """Hand every layer's record to client callbacks instead of the first."""
        return self._full_stack_data

    @full_stack_data.setter
    def full_stack_data(self, value: bool) -> None:
        self._full_stack_data = bool(value)

    @property
    def hidable_stacks(self) -> bool:
        """Allow legend clicks to hide and show named layers."""
        return self._hidable_stacks

    @hidable_stacks.setter
    def hidable_stacks(self, value: bool) -> None:
        self._hidable_stacks = bool(value)

    @property
    def stacked_color(self) -> bool:
        """Color points by layer name rather than by key."""
        return self._stacked_color

    @stacked_color.setter
    def stacked_color(self, value: bool) -> None:
        self._stacked_color = bool(value)

    @property
    def stack_layout(self) -> Callable[..., list[LayerSeries]]:
        return self._stack_layout

    @stack_layout.setter
    def stack_layout(self, layout: str | Callable[..., list[LayerSeries]]) -> None:
        self._stack_layout = resolve_layout(layout)

    @property
    def x_domain(self) -> tuple[Any, Any] | None:
        """Inclusive x range kept by ``data()`` on non-ordinal charts."""
        return self._x_domain

    @x_domain.setter
    def x_domain(self, domain: tuple[Any, Any] | None) -> None:
        if domain is not None and len(domain) != 2:
            raise InvalidConfigurationError(
                "x_domain must be a (low, high) pair or None",
                setting="x_domain",
                value=domain,
            )
        self._x_domain = None if domain is None else (domain[0], domain[1])

    # =========================================================================
    # MERGE AND LAYOUT
    # =========================================================================

    def compute_rows(self) -> list[LayeredRecord]:
        """Merge the visible layers into one LayeredRecord per distinct key."""
        visible = self._visible_layers()
        get_key = self.key_accessor()
        rows: dict[Any, list[Any]] = {}
        n_records = 0
        for i, layer in enumerate(visible):
            for record in layer.source.all():
                key = get_key(record)
                slots = rows.get(key)
                if slots is None:
                    slots = [None] * len(visible)
                    rows[key] = slots
                slots[i] = record
                n_records += 1

        logger.debug(f"Merged {n_records} records from {len(visible)} layers into {len(rows)} rows")
        return [LayeredRecord(key=key, values=tuple(slots)) for key, slots in rows.items()]

    def _in_domain(self) -> Callable[[StackedPoint], bool]:
        if self._x_domain is None or self.is_ordinal():
            return lambda point: True
        low, high = self._x_domain
        return lambda point: low <= point.x <= high

    def _stack_data(self, rows: list[Any]) -> list[LayerSeries]:
        names = [self.layer_name(layer) for layer in self._visible_layers()]
        if not names:
            return []

        get_key = self.key_accessor()
        get_value = self.value_accessor()
        in_domain = self._in_domain()
        points: list[list[StackedPoint]] = [[] for _ in names]
        for row in rows:
            x = get_key(row)
            values = get_value(row)
            if not isinstance(values, Sequence) or isinstance(values, str):
                values = (values,)
            for i, name in enumerate(names):
                value = values[i] if i < len(values) else None
                point = StackedPoint(
                    x=x,
                    y=0.0 if value is None else value,
                    layer=name,
                    data=row,
                    missing=value is None,
                )
                if in_domain(point):
                    points[i].append(point)

        layers = [LayerSeries(name=name, values=tuple(pts)) for name, pts in zip(names, points)]
        return self._stack_layout(layers, stacked=self._stacked)

    # =========================================================================
    # AXES
    # =========================================================================

    def stacked_y(self, point: StackedPoint) -> float:
        """Upper edge of a point on the value axis."""
        return point.y + point.y0 if self._stacked else point.y

    def _flatten(self) -> list[StackedPoint]:
        return [point for series in self.data() for point in series.values]

    def y_axis_min(self) -> float | None:
        """Lowest value-axis extent, minus padding; None without data."""
        points = self._flatten()
        if not points:
            return None
        return min(min(p.y + p.y0, p.y0) for p in points) - self.y_axis_padding

    def y_axis_max(self) -> float | None:
        """Highest value-axis extent, plus padding; None without data."""
        points = self._flatten()
        if not points:
            return None
        return max(self.stacked_y(p) for p in points) + self.y_axis_padding

    def x_axis_min(self) -> Any:
        points = self._flatten()
        if not points:
            return None
        low = min(p.x for p in points)
        return low - self.x_axis_padding if self.x_axis_padding else low

    def x_axis_max(self) -> Any:
        points = self._flatten()
        if not points:
            return None
        high = max(p.x for p in points)
        return high + self.x_axis_padding if self.x_axis_padding else high

    def ordinal_x_domain(self) -> list[Any]:
        """Distinct x values in row order."""
        return list(dict.fromkeys(p.x for p in self._flatten()))

    # =========================================================================
    # TITLES AND LEGEND
    # =========================================================================

    def title(self, stack_name: str | None = None) -> Callable[[Any], str]:
        """Title function for a named stack, falling back to the chart's."""
        if stack_name is not None and stack_name in self._titles:
            return self._titles[stack_name]
        return super().title()

    def set_title(self, fn: Callable[[Any], str], stack_name: str | None = None) -> "StackMixin":
        if stack_name is None or stack_name == self.group_name:
            super().set_title(fn)
            return self
        if not callable(fn):
            raise InvalidConfigurationError(
                "title must be callable",
                setting="title",
                value=fn,
            )
        self._titles[stack_name] = fn
        return self

    def legendables(self) -> list[Legendable]:
        """One legend entry per declared layer, hidden ones included."""
        get_color_key = self.color_accessor()
        entries = []
        for i, layer in enumerate(self._layers):
            name = self.layer_name(layer)
            color = self.color_of(get_color_key(None, name), default_index=i)
            entries.append(Legendable(name=name, hidden=layer.hidden, color=color))
        return entries

    def is_legendable_hidden(self, stack_name: str) -> bool:
        for layer in self._layers:
            if self.layer_name(layer) == stack_name:
                return layer.hidden
        return False

    def legend_toggle(self, legendable: Legendable | str) -> "StackMixin":
        """Flip a layer's visibility from the legend, then request a redraw."""
        name = legendable if isinstance(legendable, str) else legendable.name
        if not self._hidable_stacks:
            logger.debug(f"Ignoring legend toggle for {name!r}; hidable_stacks is off")
            return self
        if self.is_legendable_hidden(name):
            self.show_stack(name)
        else:
            self.hide_stack(name)
        self.redraw()
        return self

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    def _layer_accessors(self, fallback: Operation) -> list[Operation]:
        return [layer.value_accessor or fallback for layer in self._visible_layers()]

    def _stack_wrap_group(self, previous: Operation) -> Operation:
        # Layer 0 reaches the group below through _InnerGroup
        return lambda: StackedGroup(self)

    def _stack_wrap_data(self, previous: Operation) -> Operation:
        def data() -> list[LayerSeries]:
            return self._stack_data(previous())

        return data

    def _stack_wrap_value_accessor(self, previous: Operation) -> Operation:
        def value_accessor(record: Any) -> Any:
            if is_layered(record):
                return tuple(
                    None if value is None else accessor(value)
                    for accessor, value in zip(self._layer_accessors(previous), record.values)
                )
            return previous(record)

        return value_accessor

    def _stack_wrap_data_accessor(self, previous: Operation) -> Operation:
        def data_accessor(record: Any) -> Any:
            if is_layered(record):
                return tuple(None if value is None else previous(value) for value in record.values)
            return previous(record)

        return data_accessor

    def _stack_wrap_client_data_accessor(self, previous: Operation) -> Operation:
        def client_data_accessor(record: Any) -> Any:
            if is_layered(record):
                if self._full_stack_data:
                    return self.data_accessor()(record)
                first = record.values[0] if record.values else None
                return None if first is None else previous(first)
            return previous(record)

        return client_data_accessor

    def _stack_wrap_aggregate(self, previous: Operation) -> Operation:
        def aggregate(records: list[Any]) -> Any:
            if not records or not all(is_layered(record) for record in records):
                return previous(records)
            accessors = self._layer_accessors(self.operations.resolve("value_accessor", below=STACK_LABEL))
            sums = []
            for i, accessor in enumerate(accessors):
                total = 0
                for record in records:
                    value = record.values[i] if i < len(record.values) else None
                    if value is not None:
                        total += accessor(value)
                sums.append(total)
            return tuple(sums)

        return aggregate

    def _stack_wrap_color_accessor(self, previous: Operation) -> Operation:
        def color_accessor(record: Any, layer: str | None = None) -> Any:
            if self._stacked_color and layer is not None:
                return layer
            return previous(record, layer)

        return color_accessor

    def _stack_wrap_on_click(self, previous: Operation) -> Operation:
        def on_click(record: Any) -> None:
            if is_layered(record):
                others = next((value for value in record.values if is_others(value)), None)
                if others is not None:
                    previous(others)
                    return
            previous(record)

        return on_click
