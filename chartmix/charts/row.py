"""
Module: row

Purpose: Row chart shell composing capping over stacking.

Key Functions:
- RowChart: Capped, stackable horizontal bar chart
- RowGeometry: Position and size of one drawn row

Architecture Notes:
- Cap is the outermost layer, so the merged stacked rows are what gets capped
- Geometry is returned as plain numbers; drawing lives in reporting.visuals
- Coloring is per key by default and switches to per layer once a second
  layer is stacked
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from chartmix.charts.base import BaseChart
from chartmix.core.filters import MultiKeyFilter
from chartmix.core.records import StackedPoint, is_others
from chartmix.exceptions import InvalidConfigurationError
from chartmix.mixins.cap import CapMixin
from chartmix.mixins.stack import StackMixin
from chartmix.settings import ChartSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowGeometry:
    """Where one point is drawn, in pixels from the plot area's top left."""

    point: StackedPoint
    index: int
    offset: float  # vertical position of the row
    height: float
    x: float
    width: float
    color: str
    selected: bool
    deselected: bool


class RowChart(CapMixin, StackMixin, BaseChart):
    """Horizontal bars, one row per key, optionally capped and stacked."""

    def __init__(self, *, settings: ChartSettings | None = None) -> None:
        super().__init__(settings=settings)
        self.stacked_color = False
        self.elastic_x = True
        self._gap = self.settings.gap
        self._label: Callable[[StackedPoint], str] = lambda point: str(point.x)
        self._x_domain_cache: tuple[float, float] | None = None

    def is_ordinal(self) -> bool:
        return True

    @property
    def rows_cap(self) -> int | None:
        """Alias of ``cap``."""
        return self.cap

    @rows_cap.setter
    def rows_cap(self, value: int | None) -> None:
        self.cap = value

    @property
    def gap(self) -> float:
        """Vertical space between rows, in pixels."""
        return self._gap

    @gap.setter
    def gap(self, value: float) -> None:
        if value < 0:
            raise InvalidConfigurationError(
                f"gap must be non-negative, got {value}",
                setting="gap",
                value=value,
            )
        self._gap = value

    def label(self) -> Callable[[StackedPoint], str]:
        return self._label

    def set_label(self, fn: Callable[[StackedPoint], str]) -> "RowChart":
        if not callable(fn):
            raise InvalidConfigurationError("label must be callable", setting="label", value=fn)
        self._label = fn
        return self

    def point_title(self, point: StackedPoint) -> str:
        """Tooltip text for a point, using its layer's title function.

        An others row is titled from the record itself, since its client data
        is the list of absorbed records.
        """
        if is_others(point.data):
            return self.title(point.layer)(point.data)
        return self.title(point.layer)(self.client_data_accessor()(point.data))

    def click(self, point: StackedPoint) -> None:
        """Handle a click on a drawn row."""
        self.on_click(point.data)

    def is_selected_row(self, point: StackedPoint) -> bool:
        if self.has_filter(point.x):
            return True
        row = point.data
        return is_others(row) and MultiKeyFilter.of(row.members) in self.filters()

    def x_scale_domain(self) -> tuple[float, float]:
        """Value-axis domain, ``(0, max)``; kept fixed unless ``elastic_x``."""
        if self._x_domain_cache is None or self.elastic_x:
            self._x_domain_cache = (0.0, self.y_axis_max() or 0.0)
        return self._x_domain_cache

    def row_geometry(self, width: float, height: float) -> list[list[RowGeometry]]:
        """Lay out every point of every layer inside a ``width`` x ``height`` area.

        Returns:
            One list per layer, each holding one RowGeometry per row
        """
        low, high = self.x_scale_domain()
        span = high - low

        def scale(value: float) -> float:
            return 0.0 if span == 0 else (value - low) / span * width

        has_filter = self.has_filter()
        layers = []
        for series in self.data():
            n = len(series.values)
            row_height = (height - (n + 1) * self._gap) / n if n else 0.0
            rows = []
            for i, point in enumerate(series.values):
                selected = has_filter and self.is_selected_row(point)
                rows.append(
                    RowGeometry(
                        point=point,
                        index=i,
                        offset=(i + 1) * self._gap + i * row_height,
                        height=row_height,
                        x=scale(point.y0),
                        width=abs(scale(0.0) - scale(point.y)),
                        color=self.get_color(point.data, point.layer),
                        selected=selected,
                        deselected=has_filter and not selected,
                    )
                )
            layers.append(rows)
        logger.debug(f"Laid out {sum(len(rows) for rows in layers)} rows in {len(layers)} layers")
        return layers

    def describe(self) -> dict[str, Any]:
        """Summary of the chart's configuration."""
        return {
            "cap": self.cap,
            "others_label": self.others_label,
            "stacked": self.stacked,
            "layers": self.layer_names(),
            "filters": self.filters(),
        }
