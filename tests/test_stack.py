"""
Tests for merging layers by key and laying out stacked series.
"""

import logging

import pytest

from chartmix.charts.base import BaseChart
from chartmix.core.records import LayeredRecord, Record
from chartmix.core.sources import StaticGroup
from chartmix.exceptions import InvalidConfigurationError
from chartmix.mixins.stack import StackMixin
from chartmix.settings import ChartSettings


class StackChart(StackMixin, BaseChart):
    """A chart with only the stacking layer."""


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def first() -> StaticGroup:
    return StaticGroup.from_pairs([(1, 5)])


@pytest.fixture
def second() -> StaticGroup:
    return StaticGroup.from_pairs([(1, 3), (2, 4)])


@pytest.fixture
def chart(first: StaticGroup, second: StaticGroup) -> StackChart:
    return StackChart().set_group(first, "first").stack(second, "second")


def points_by_layer(series: list) -> dict:
    """Map layer name to ``{x: (y0, y, missing)}``."""
    return {
        layer.name: {p.x: (p.y0, p.y, p.missing) for p in layer.values}
        for layer in series
    }


# =============================================================================
# MERGE TESTS
# =============================================================================


class TestComputeRows:
    """Tests for key alignment across layers."""

    def test_rows_align_by_key(self, chart: StackChart) -> None:
        """Each key appears once with one slot per visible layer."""
        rows = chart.compute_rows()

        assert [row.key for row in rows] == [1, 2]
        assert all(len(row.values) == 2 for row in rows)
        assert chart.value_accessor()(rows[0]) == (5, 3)
        assert chart.value_accessor()(rows[1]) == (None, 4)

    def test_first_seen_order(self) -> None:
        """Row order follows first appearance across layers."""
        chart = StackChart()
        chart.stack(StaticGroup.from_pairs([("b", 1), ("a", 1)]), "one")
        chart.stack(StaticGroup.from_pairs([("c", 1), ("a", 1)]), "two")
        assert [row.key for row in chart.compute_rows()] == ["b", "a", "c"]

    def test_rows_are_layered_records(self, chart: StackChart) -> None:
        """Merged rows carry each layer's own record."""
        row = chart.compute_rows()[1]
        assert isinstance(row, LayeredRecord)
        assert row.values[0] is None
        assert row.values[1] == Record(key=2, value=4)

    def test_empty_layer_contributes_no_keys(self, chart: StackChart) -> None:
        """A layer without records only adds missing slots."""
        chart.stack(StaticGroup([]), "empty")
        rows = chart.compute_rows()
        assert [row.key for row in rows] == [1, 2]
        assert all(row.values[2] is None for row in rows)

    def test_group_top_ranks_by_total(self) -> None:
        """The stacked group ranks rows by their summed layers."""
        chart = StackChart()
        chart.set_group(StaticGroup.from_pairs([("a", 1), ("b", 5), ("c", 2)]))
        chart.stack(StaticGroup.from_pairs([("a", 9), ("c", 2)]))
        assert [row.key for row in chart.group().top(2)] == ["a", "b"]


# =============================================================================
# LAYOUT TESTS
# =============================================================================


class TestStackLayout:
    """Tests for stacked and overlaid baselines."""

    def test_stacked_offsets(self, chart: StackChart) -> None:
        """Upper layers sit on the sum of the layers below."""
        layers = points_by_layer(chart.data())

        assert layers["first"] == {1: (0.0, 5.0, False), 2: (0.0, 0.0, True)}
        assert layers["second"] == {1: (5.0, 3.0, False), 2: (0.0, 4.0, False)}

    def test_overlay_mode(self, chart: StackChart) -> None:
        """Overlay mode keeps every baseline at zero."""
        chart.stacked = False
        for layer in chart.data():
            assert all(p.y0 == 0 for p in layer.values)

    def test_top_layer_reaches_total(self) -> None:
        """The top layer's y + y0 equals the sum over all layers."""
        chart = StackChart()
        values = [[("a", 1), ("b", 2)], [("a", 3)], [("a", -2), ("b", 6)]]
        for i, pairs in enumerate(values):
            chart.stack(StaticGroup.from_pairs(pairs), f"l{i}")

        top = {p.x: p.top for p in chart.data()[-1].values}
        assert top == {"a": 2.0, "b": 8.0}

    def test_series_names_and_order(self, chart: StackChart) -> None:
        """Series follow declaration order."""
        assert [layer.name for layer in chart.data()] == ["first", "second"]

    def test_default_layer_names(self) -> None:
        """Unnamed layers are named by position."""
        chart = StackChart().set_group(StaticGroup.from_pairs([("a", 1)]))
        chart.stack(StaticGroup.from_pairs([("a", 2)]))
        assert chart.layer_names() == ["0", "1"]
        assert [layer.name for layer in chart.data()] == ["0", "1"]

    def test_point_data_is_merged_row(self, chart: StackChart) -> None:
        """Points keep the merged row for tooltips and clicks."""
        point = chart.data()[1].values[0]
        assert isinstance(point.data, LayeredRecord)
        assert point.layer == "second"

    def test_expand_layout(self, chart: StackChart) -> None:
        """The expand layout stacks shares of each key's total."""
        chart.stack_layout = "expand"
        layers = points_by_layer(chart.data())
        assert layers["first"][1][1] == pytest.approx(5 / 8)
        assert layers["second"][1][0] == pytest.approx(5 / 8)
        assert layers["second"][2][1] == pytest.approx(1.0)

    def test_unknown_layout(self, chart: StackChart) -> None:
        """Unknown layout names are rejected."""
        with pytest.raises(InvalidConfigurationError):
            chart.stack_layout = "silhouette"

    def test_repeated_calls_identical(self, chart: StackChart) -> None:
        """data() is a pure function of sources and settings."""
        assert chart.data() == chart.data()


# =============================================================================
# EDGE CASE TESTS
# =============================================================================


class TestStackEdgeCases:
    """Tests for empty and hidden layers."""

    def test_no_layers(self) -> None:
        """No layers yields empty data, not an error."""
        chart = StackChart()
        assert chart.data() == []
        assert chart.group().all() == []
        assert chart.y_axis_max() is None

    def test_hide_layer(self, chart: StackChart) -> None:
        """Hidden layers drop out of the next computation."""
        chart.hide_stack("first")
        layers = points_by_layer(chart.data())

        assert list(layers) == ["second"]
        assert layers["second"] == {1: (0.0, 3.0, False), 2: (0.0, 4.0, False)}

    def test_hide_does_not_touch_previous_output(self, chart: StackChart) -> None:
        """Already returned series stay as they were."""
        before = chart.data()
        chart.hide_stack("first")
        assert [layer.name for layer in before] == ["first", "second"]
        assert before[1].values[0].y0 == 5.0

    def test_hidden_layer_leaves_extents(self, chart: StackChart) -> None:
        """Extents are computed from the visible layers only."""
        chart.hide_stack("first")
        assert chart.y_axis_max() == 4.0
        assert chart.y_axis_min() == 0.0
        chart.show_stack("first")
        assert chart.y_axis_max() == 8.0

    def test_show_layer(self, chart: StackChart) -> None:
        """Showing a layer restores it."""
        chart.hide_stack("first").show_stack("first")
        assert len(chart.data()) == 2

    def test_hide_is_idempotent(self, chart: StackChart) -> None:
        """Hiding twice equals hiding once."""
        chart.hide_stack("second").hide_stack("second")
        assert [layer.name for layer in chart.data()] == ["first"]

    def test_hide_all_layers(self, chart: StackChart) -> None:
        """Hiding everything gives no rows and no series."""
        chart.hide_stack("first").hide_stack("second")
        assert chart.compute_rows() == []
        assert chart.data() == []

    def test_unknown_name_is_noop(self, chart: StackChart, caplog: pytest.LogCaptureFixture) -> None:
        """Unknown names are ignored with a warning."""
        with caplog.at_level(logging.WARNING, logger="chartmix.mixins.stack"):
            chart.hide_stack("nope").show_stack("nope")
        assert len(chart.data()) == 2
        assert "nope" in caplog.text

    def test_set_group_resets_layers(self, chart: StackChart) -> None:
        """Binding a new group starts a fresh layer list."""
        chart.set_group(StaticGroup.from_pairs([("z", 1)]), "only")
        assert chart.layer_names() == ["only"]
        assert [p.x for p in chart.data()[0].values] == ["z"]

    def test_stacks_are_copies(self, chart: StackChart) -> None:
        """The layer list cannot be changed from outside."""
        chart.stacks()[0].hidden = True
        assert len(chart.data()) == 2

    def test_invalid_stack_arguments(self, chart: StackChart) -> None:
        """Bad layer declarations fail at setup."""
        with pytest.raises(InvalidConfigurationError):
            chart.stack([("a", 1)])  # type: ignore[arg-type]
        with pytest.raises(InvalidConfigurationError):
            chart.stack(StaticGroup([]), name=3)  # type: ignore[arg-type]
        with pytest.raises(InvalidConfigurationError):
            chart.stack(StaticGroup([]), "x", value_accessor="value")  # type: ignore[arg-type]


# =============================================================================
# ACCESSOR TESTS
# =============================================================================


class TestStackAccessors:
    """Tests for per-layer accessors and client data."""

    def test_per_layer_value_accessor(self) -> None:
        """Each layer may read its own value out of the record."""
        records = [Record(key="a", value={"sold": 2, "returned": 1})]
        chart = StackChart()
        chart.set_group(StaticGroup(records), "sold", value_accessor=lambda r: r.value["sold"])
        chart.stack(StaticGroup(records), "returned", lambda r: r.value["returned"])

        layers = points_by_layer(chart.data())
        assert layers["sold"]["a"] == (0.0, 2.0, False)
        assert layers["returned"]["a"] == (2.0, 1.0, False)

    def test_value_accessor_for(self, chart: StackChart) -> None:
        """Layers without their own accessor use the chart's."""
        custom = lambda r: r.value * 2  # noqa: E731
        chart.stack(StaticGroup([]), "third", custom)
        assert chart.value_accessor_for(2) is custom
        assert chart.value_accessor_for(0)(Record(key=1, value=5)) == 5

    def test_data_accessor(self, chart: StackChart) -> None:
        """The raw-data accessor exposes every layer's record."""
        row = chart.compute_rows()[0]
        assert chart.data_accessor()(row) == (Record(key=1, value=5), Record(key=1, value=3))

    def test_client_data_first_layer_only(self, chart: StackChart) -> None:
        """Client callbacks see the first layer's record by default."""
        rows = chart.compute_rows()
        assert chart.client_data_accessor()(rows[0]) == Record(key=1, value=5)
        assert chart.client_data_accessor()(rows[1]) is None

    def test_full_stack_data(self, chart: StackChart) -> None:
        """With full_stack_data every layer's record is passed on."""
        chart.full_stack_data = True
        row = chart.compute_rows()[1]
        assert chart.client_data_accessor()(row) == (None, Record(key=2, value=4))

    def test_aggregate_per_layer(self, chart: StackChart) -> None:
        """Aggregating merged rows sums each layer separately."""
        assert chart.aggregate(chart.compute_rows()) == (5, 7)

    def test_stack_titles(self, chart: StackChart) -> None:
        """Titles can be set per stack and fall back to the chart's."""
        chart.set_title(lambda d: f"second {d.key}", stack_name="second")
        record = Record(key=1, value=3)
        assert chart.title("second")(record) == "second 1"
        assert chart.title("first")(record) == "1: 3"
        assert chart.title()(record) == "1: 3"


# =============================================================================
# AXIS AND LEGEND TESTS
# =============================================================================


class TestStackAxes:
    """Tests for extent queries."""

    def test_y_extents_stacked(self, chart: StackChart) -> None:
        """Stacked extents use the top of each stack."""
        assert chart.y_axis_min() == 0.0
        assert chart.y_axis_max() == 8.0

    def test_y_extents_overlay(self, chart: StackChart) -> None:
        """Overlay extents use the largest single value."""
        chart.stacked = False
        assert chart.y_axis_max() == 5.0

    def test_negative_values(self) -> None:
        """Negative stacks bound the minimum."""
        chart = StackChart()
        chart.stack(StaticGroup.from_pairs([("a", -3)]), "neg")
        chart.stack(StaticGroup.from_pairs([("a", -2)]), "more")
        assert chart.y_axis_min() == -5.0
        assert chart.y_axis_max() == -3.0

    def test_padding(self, chart: StackChart) -> None:
        """Padding widens both ends."""
        chart.y_axis_padding = 1
        chart.x_axis_padding = 1
        assert chart.y_axis_min() == -1.0
        assert chart.y_axis_max() == 9.0
        assert chart.x_axis_min() == 0
        assert chart.x_axis_max() == 3

    def test_x_domain_limits_points(self, chart: StackChart) -> None:
        """Points outside the x domain are dropped on linear charts."""
        chart.x_domain = (2, 10)
        assert [[p.x for p in layer.values] for layer in chart.data()] == [[2], [2]]

    def test_ordinal_domain(self, chart: StackChart) -> None:
        """The ordinal domain lists each x once."""
        assert chart.ordinal_x_domain() == [1, 2]

    def test_stacked_y(self, chart: StackChart) -> None:
        """stacked_y honors the stacking mode."""
        point = chart.data()[1].values[0]
        assert chart.stacked_y(point) == 8.0
        chart.stacked = False
        assert chart.stacked_y(point) == 3.0


class TestStackLegend:
    """Tests for colors and legend entries."""

    def test_legendables(self, chart: StackChart) -> None:
        """One entry per declared layer, in order."""
        chart.hide_stack("second")
        entries = chart.legendables()
        assert [(e.name, e.hidden) for e in entries] == [("first", False), ("second", True)]
        assert entries[0].color != entries[1].color

    def test_legend_does_not_shift_key_colors(self, chart: StackChart) -> None:
        """Building the legend assigns no colors."""
        chart.stacked_color = False
        chart.legendables()

        row = chart.compute_rows()[0]
        assert chart.get_color(row, "first") == chart.palette[0]

    def test_legend_matches_drawn_layers(self, chart: StackChart) -> None:
        """Legend colors match the colors already used for each layer."""
        chart.get_color(None, "second")
        entries = {e.name: e.color for e in chart.legendables()}
        assert entries["second"] == chart.palette[0]

    def test_color_by_layer(self, chart: StackChart) -> None:
        """Points of the same layer share a color."""
        series = chart.data()[1]
        colors = {chart.get_color(p.data, p.layer) for p in series.values}
        assert len(colors) == 1

    def test_color_by_key_when_disabled(self, chart: StackChart) -> None:
        """Without stacked coloring each key gets its own color."""
        chart.stacked_color = False
        series = chart.data()[1]
        colors = [chart.get_color(p.data, p.layer) for p in series.values]
        assert colors[0] != colors[1]

    def test_legend_toggle_requires_hidable(self, chart: StackChart) -> None:
        """Legend toggles are ignored unless hidable_stacks is on."""
        chart.legend_toggle("first")
        assert not chart.is_legendable_hidden("first")

    def test_legend_toggle(self, chart: StackChart) -> None:
        """Toggling flips visibility and requests a redraw."""
        redraws = []
        chart.on("redraw", lambda c, _: redraws.append(c))
        chart.hidable_stacks = True

        chart.legend_toggle(chart.legendables()[0])
        assert chart.is_legendable_hidden("first")
        chart.legend_toggle("first")
        assert not chart.is_legendable_hidden("first")
        assert redraws == [chart, chart]

    def test_settings_defaults(self) -> None:
        """Stacking flags start from settings."""
        chart = StackChart(settings=ChartSettings(stacked=False, full_stack_data=True, hidable_stacks=True))
        assert chart.stacked is False
        assert chart.full_stack_data is True
        assert chart.hidable_stacks is True
