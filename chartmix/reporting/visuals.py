"""
Module: visuals

Purpose: Draw composed charts with matplotlib.

Key Functions:
- plot_row_chart: Draw a RowChart's stacked series as horizontal bars
- plot_legend: Add one legend entry per declared layer
- set_style: seaborn theme using the configured palette
- save_figure / close_figure: Writing and releasing figures

Architecture Notes:
- Only ``chart.data()`` and the chart's accessors are read; nothing here
  knows whether capping or stacking produced the series
- Returns figure objects for notebook integration
"""

import logging
from pathlib import Path
from typing import Any

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from chartmix.charts.row import RowChart
from chartmix.settings import ChartSettings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================


def set_style(settings: ChartSettings | None = None, *, style: str = "whitegrid") -> None:
    """Apply a seaborn style and the chart palette to new figures."""
    settings = settings or get_settings()
    sns.set_theme(style=style, palette=settings.palette, rc={"font.size": 10})
    logger.debug(f"Plot style {style!r} with palette {settings.palette!r}")


# =============================================================================
# ROW CHARTS
# =============================================================================


def plot_row_chart(
    chart: RowChart,
    *,
    ax: Axes | None = None,
    title: str | None = None,
    figsize: tuple[int, int] = (10, 6),
    show_values: bool = False,
) -> Figure:
    """
    Plot a row chart, one horizontal bar segment per visible point.

    Args:
        chart: Configured RowChart
        ax: Existing axes to draw into; a new figure is created when omitted
        title: Optional chart title
        figsize: Figure size for a new figure
        show_values: Annotate each bar with its title text

    Returns:
        matplotlib Figure
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    series = chart.data()
    rows = chart.ordinal_x_domain()
    positions = {x: i for i, x in enumerate(rows)}
    overlay_alpha = 1.0 if chart.stacked or len(series) < 2 else 0.6

    for layer in series:
        points = [p for p in layer.values if not p.missing]
        if not points:
            continue
        ax.barh(
            [positions[p.x] for p in points],
            [p.y for p in points],
            left=[p.y0 for p in points],
            color=[chart.get_color(p.data, p.layer) for p in points],
            alpha=overlay_alpha,
        )
        if show_values:
            for p in points:
                ax.text(p.y0 + p.y, positions[p.x], f" {chart.point_title(p)}", va="center", fontsize=9)

    ax.set_yticks(np.arange(len(rows)))
    ax.set_yticklabels([str(x) for x in rows])
    ax.invert_yaxis()

    low, high = chart.x_scale_domain()
    if high > low:
        ax.set_xlim(low, high)
    if title:
        ax.set_title(title)

    if len(chart.layer_names()) > 1:
        plot_legend(chart, ax=ax)

    fig.tight_layout()
    return fig


def plot_legend(chart: Any, *, ax: Axes, loc: str = "lower right") -> None:
    """Add one legend entry per declared layer; hidden layers are greyed out."""
    handles = [
        Patch(
            facecolor=entry.color,
            alpha=0.3 if entry.hidden else 1.0,
            label=f"{entry.name} (hidden)" if entry.hidden else entry.name,
        )
        for entry in chart.legendables()
    ]
    ax.legend(handles=handles, loc=loc)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def save_figure(fig: Figure, path: Path | str, *, dpi: int = 150) -> Path:
    """Write a rendered chart, creating missing parent directories.

    The format follows the file suffix (``.png``, ``.svg``, ``.pdf``).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    logger.info(f"Saved chart to {path}")
    return path


def close_figure(fig: Figure | None = None) -> None:
    """Release a chart figure, or every open figure when none is given."""
    plt.close(fig if fig is not None else "all")
