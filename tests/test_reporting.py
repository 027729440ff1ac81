"""
Tests for matplotlib rendering.
"""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from chartmix.charts.row import RowChart
from chartmix.core.sources import StaticGroup
from chartmix.reporting.visuals import close_figure, plot_row_chart, save_figure, set_style
from chartmix.settings import ChartSettings


@pytest.fixture
def chart() -> RowChart:
    chart = RowChart()
    chart.set_group(StaticGroup.from_pairs([("A", 10), ("B", 7), ("C", 5), ("D", 1)]), "sales")
    chart.stack(StaticGroup.from_pairs([("A", 2), ("B", 1)]), "returns")
    chart.cap = 2
    return chart


class TestPlotRowChart:
    """Tests for drawing row charts."""

    def test_bars_and_ticks(self, chart: RowChart) -> None:
        fig = plot_row_chart(chart, title="Sales")
        ax = fig.axes[0]

        # three rows per layer; the returns of Others sum to zero but are drawn
        assert len(ax.patches) == 6
        assert [t.get_text() for t in ax.get_yticklabels()] == ["A", "B", "Others"]
        assert ax.get_title() == "Sales"
        assert ax.get_legend() is not None
        close_figure(fig)

    def test_overlay(self, chart: RowChart) -> None:
        chart.stacked = False
        fig = plot_row_chart(chart, show_values=True)
        assert all(patch.get_alpha() == 0.6 for patch in fig.axes[0].patches)
        close_figure(fig)

    def test_single_layer_has_no_legend(self) -> None:
        chart = RowChart().set_group(StaticGroup.from_pairs([("A", 1)]))
        fig = plot_row_chart(chart)
        assert fig.axes[0].get_legend() is None
        close_figure(fig)

    def test_empty_chart(self) -> None:
        chart = RowChart().set_group(StaticGroup([]))
        fig = plot_row_chart(chart)
        assert len(fig.axes[0].patches) == 0
        close_figure(fig)

    def test_save(self, chart: RowChart, tmp_path: Path) -> None:
        path = tmp_path / "rows.png"
        fig = plot_row_chart(chart)
        save_figure(fig, str(path))
        close_figure(fig)
        assert path.exists()

    def test_save_creates_directories(self, chart: RowChart, tmp_path: Path) -> None:
        fig = plot_row_chart(chart)
        path = save_figure(fig, tmp_path / "charts" / "rows.svg")
        close_figure(fig)
        assert path == tmp_path / "charts" / "rows.svg"
        assert path.exists()

    def test_close_all(self, chart: RowChart) -> None:
        plot_row_chart(chart)
        plot_row_chart(chart)
        close_figure()
        assert plt.get_fignums() == []


class TestSetStyle:
    """Tests for the plotting theme."""

    def test_uses_settings_palette(self) -> None:
        with matplotlib.rc_context():
            set_style(ChartSettings(palette="Set2"))
            cycle = plt.rcParams["axes.prop_cycle"].by_key()["color"]
        assert len(cycle) == 8
