"""
Reporting module for chartmix.

Contains matplotlib rendering for composed charts.
"""

from chartmix.reporting.visuals import (
    close_figure,
    plot_legend,
    plot_row_chart,
    save_figure,
    set_style,
)

__all__ = [
    "close_figure",
    "plot_legend",
    "plot_row_chart",
    "save_figure",
    "set_style",
]
