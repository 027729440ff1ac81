#!/usr/bin/env python3
"""Quick start example for chartmix.

Builds a capped, stacked row chart from two small grouped sources and prints
what each behavior layer contributes.

Usage:
    python examples/quick_start.py
"""

from chartmix import RowChart, StaticGroup


def main() -> None:
    """Run a quick capped stacked chart demo."""
    print("=" * 60)
    print("chartmix - Quick Start Demo")
    print("=" * 60)

    sales = StaticGroup.from_mapping({"north": 120, "south": 80, "east": 45, "west": 30, "central": 12})
    returns = StaticGroup.from_mapping({"north": 10, "east": 25, "islands": 5})

    chart = RowChart()
    chart.set_group(sales, "sales")
    chart.stack(returns, "returns")
    chart.cap = 3

    # Merged, capped rows
    print("\nRows (top 3 by total, the rest folded into Others):")
    get_key = chart.key_accessor()
    get_value = chart.value_accessor()
    for row in chart.group().all():
        print(f"  {get_key(row):<10} {get_value(row)}")

    # Stacked layout
    print("\n" + "=" * 60)
    print("STACKED SERIES")
    print("=" * 60)

    for series in chart.data():
        print(f"\n{series.name}")
        print("-" * 40)
        for point in series.values:
            marker = " (missing)" if point.missing else ""
            print(f"  {point.x:<10} y0={point.y0:>6.1f}  y={point.y:>6.1f}{marker}")

    # Clicking the others row
    print("\n" + "=" * 60)
    print("FILTERING")
    print("=" * 60)

    others = chart.data()[0].values[-1]
    chart.click(others)
    print(f"\nClicked {others.x!r}; active filters: {chart.filters()}")
    print(f"Chart summary: {chart.describe()}")


if __name__ == "__main__":
    main()
