#!/usr/bin/env python3
"""
Add a chart dashboard to the workbook written by export_stats.py.

Usage:
    python stats_dashboard.py [messenger_stats.xlsx] [output.xlsx]
"""

import sys
from pathlib import Path
from typing import List, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.chart import BarChart, Reference

SOURCE_XLSX = "messenger_stats.xlsx"
OUTPUT_XLSX = "messenger_stats_dashboard.xlsx"

# (title, data sheet, category column, value column, anchor, colour)
CHARTS = (
    ("Messages per day", "Messages_daily", 1, 2, "A3", "4472C4"),
    ("Chats by member count", "Chat_size_hist", 1, 2, "M3", "70AD47"),
    ("Messages per chat", "Messages_per_chat", 1, 2, "A18", "4472C4"),
    ("Top authors", "Top_authors", 2, 3, "M18", "9E480E"),
)


def add_bar_chart(
    sheet,
    title,
    data_sheet,
    cat_col,
    val_col,
    pos,
    color="4472C4",
):
    """
    Anchor a single-series bar chart on `sheet` at `pos`.

    Values come from `val_col` (header in row 1), categories from `cat_col`.
    Axis tick labels are forced visible.
    """
    max_row = data_sheet.max_row

    data_ref = Reference(data_sheet, min_col=val_col, min_row=1, max_row=max_row)
    cat_ref = Reference(data_sheet, min_col=cat_col, min_row=2, max_row=max_row)

    chart = BarChart()
    chart.title = title
    chart.add_data(data_ref, titles_from_data=True)
    chart.set_categories(cat_ref)
    chart.legend = None
    chart.varyColors = False

    chart.x_axis.tickLblPos = "nextTo"
    chart.y_axis.tickLblPos = "nextTo"
    chart.x_axis.delete = False
    chart.y_axis.delete = False
    chart.x_axis.majorTickMark = "out"
    chart.y_axis.majorTickMark = "out"

    if chart.series:
        s = chart.series[0]
        s.graphicalProperties.solidFill = color
        s.graphicalProperties.line.solidFill = color

    sheet.add_chart(chart, pos)
    return chart


def build_dashboard(src_path, out_path) -> List[str]:
    """
    Write a copy of the stats workbook with a "Dashboard" sheet of charts.

    Sheets with no data rows are skipped. Returns the titles of the charts
    that were added.
    """
    wb = load_workbook(src_path)

    if "Dashboard" in wb.sheetnames:
        dash = wb["Dashboard"]
    else:
        dash = wb.create_sheet("Dashboard")
    dash["A1"] = "Messenger dataset"

    added = []
    for title, sheet_name, cat_col, val_col, pos, color in CHARTS:
        if sheet_name not in wb.sheetnames:
            continue
        data_sheet = wb[sheet_name]
        if data_sheet.max_row < 2:
            continue
        add_bar_chart(dash, title, data_sheet, cat_col, val_col, pos, color=color)
        added.append(title)

    wb.save(out_path)
    return added


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    src_path = Path(args[0]) if args else Path.cwd() / SOURCE_XLSX
    out_path = Path(args[1]) if len(args) > 1 else Path.cwd() / OUTPUT_XLSX

    charts = build_dashboard(src_path, out_path)
    print(f"Added {len(charts)} chart(s)")
    print("Saved:", out_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
