#!/usr/bin/env python3
"""
Render a capped, stacked row chart from a CSV file.

Each value column becomes one stacked layer, aggregated by the key column.

Usage:
    python scripts/render_row_chart.py CSV --key KEY --value COL [--value COL ...]
        [--cap N] [--overlay] [--config FILE] [--output FILE] [--verbose]

Example:
    python scripts/render_row_chart.py data/orders.csv --key region \\
        --value revenue --value refunds --cap 5 --output rows.png
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import matplotlib

matplotlib.use("Agg")

import pandas as pd

from chartmix import ChartMixError, DataFrameGroup, RowChart, get_settings, load_settings
from chartmix.reporting import close_figure, plot_row_chart, save_figure, set_style

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Render a capped, stacked row chart from a CSV file"
    )
    parser.add_argument("csv", type=str, help="Input CSV file")
    parser.add_argument("--key", required=True, help="Column to group rows by")
    parser.add_argument(
        "--value",
        action="append",
        required=True,
        help="Column to sum per key; repeat to stack several columns",
    )
    parser.add_argument(
        "--cap",
        type=int,
        default=None,
        help="Keep the top N rows and fold the rest into Others",
    )
    parser.add_argument(
        "--overlay",
        action="store_true",
        help="Overlay layers instead of stacking them",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML settings file (see config/chart.yaml)",
    )
    parser.add_argument(
        "--title",
        type=str,
        help="Chart title (default: the key column)",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default="row_chart.png",
        help="Output image (default: row_chart.png)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print verbose output",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    csv_path = Path(args.csv)
    if not csv_path.exists():
        print(f"Error: CSV file not found: {csv_path}")
        sys.exit(1)

    try:
        settings = load_settings(args.config) if args.config else get_settings()
        frame = pd.read_csv(csv_path)
        logger.info(f"Loaded {len(frame):,} rows from {csv_path}")

        chart = RowChart(settings=settings)
        first, *rest = args.value
        chart.set_group(DataFrameGroup(frame, key=args.key, value=first), first)
        for column in rest:
            chart.stack(DataFrameGroup(frame, key=args.key, value=column), column)
        if args.cap is not None:
            chart.cap = args.cap
        if args.overlay:
            chart.stacked = False

        set_style(settings)
        fig = plot_row_chart(chart, title=args.title or args.key, show_values=args.verbose)
        save_figure(fig, args.output)
        close_figure(fig)
    except ChartMixError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("=" * 60)
    print("ROW CHART")
    print("=" * 60)
    for key, value in chart.describe().items():
        print(f"  {key}: {value}")
    print(f"\nSaved chart to {args.output}")


if __name__ == "__main__":
    main()
