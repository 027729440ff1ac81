"""
Module: layouts

Purpose: Assign baselines (``y0``) to the points of stacked layers.

Key Functions:
- cumulative_layout: Each layer sits on the sum of the layers below it
- normalized_layout: Same, with every x scaled so its layers sum to 1
- resolve_layout: Look a layout up by name

Architecture Notes:
- Baselines are tracked per x value, so layers need not share key sets
- With ``stacked=False`` every baseline is 0 (overlay mode)
- Layouts return new series and never modify their input
"""

from collections import defaultdict
from typing import Any, Callable, Hashable, Protocol

from chartmix.core.records import LayerSeries
from chartmix.exceptions import InvalidConfigurationError


class StackLayout(Protocol):
    def __call__(self, layers: list[LayerSeries], *, stacked: bool = True) -> list[LayerSeries]: ...


def _overlay(layers: list[LayerSeries]) -> list[LayerSeries]:
    return [
        LayerSeries(
            name=layer.name,
            values=tuple(point.model_copy(update={"y0": 0.0}) for point in layer.values),
        )
        for layer in layers
    ]


def cumulative_layout(layers: list[LayerSeries], *, stacked: bool = True) -> list[LayerSeries]:
    """Stack layers in order, each point's ``y0`` being the sum below it.

    Args:
        layers: Series in bottom-to-top order
        stacked: False forces every ``y0`` to 0

    Returns:
        New series with baselines assigned
    """
    if not stacked:
        return _overlay(layers)

    baselines: dict[Hashable, float] = defaultdict(float)
    result = []
    for layer in layers:
        points = []
        for point in layer.values:
            points.append(point.model_copy(update={"y0": baselines[point.x]}))
            baselines[point.x] += point.y
        result.append(LayerSeries(name=layer.name, values=tuple(points)))
    return result


def normalized_layout(layers: list[LayerSeries], *, stacked: bool = True) -> list[LayerSeries]:
    """Stack layers as shares of each x's total (a 100% stacked chart).

    An x whose layers sum to 0 keeps all its points at 0.
    """
    totals: dict[Hashable, float] = defaultdict(float)
    for layer in layers:
        for point in layer.values:
            totals[point.x] += point.y

    def share(point: Any) -> float:
        total = totals[point.x]
        return point.y / total if total else 0.0

    scaled = [
        LayerSeries(
            name=layer.name,
            values=tuple(point.model_copy(update={"y": share(point)}) for point in layer.values),
        )
        for layer in layers
    ]
    return cumulative_layout(scaled, stacked=stacked)


STACK_LAYOUTS: dict[str, Callable[..., list[LayerSeries]]] = {
    "zero": cumulative_layout,
    "expand": normalized_layout,
}


def resolve_layout(layout: str | Callable[..., list[LayerSeries]]) -> Callable[..., list[LayerSeries]]:
    """Accept a layout function or the name of a built-in one.

    Raises:
        InvalidConfigurationError: For unknown names and non-callables
    """
    if isinstance(layout, str):
        try:
            return STACK_LAYOUTS[layout]
        except KeyError:
            raise InvalidConfigurationError(
                f"Unknown stack layout: {layout}",
                setting="stack_layout",
                value=layout,
                context={"supported": sorted(STACK_LAYOUTS)},
            ) from None
    if not callable(layout):
        raise InvalidConfigurationError(
            "stack_layout must be a layout name or callable",
            setting="stack_layout",
            value=layout,
        )
    return layout
