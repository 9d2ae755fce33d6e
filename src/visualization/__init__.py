"""Visualization module for Halvcycle charts and reports."""

from visualization.charts import (
    create_cycle_comparison_chart,
    create_cycle_report_html,
    create_price_chart,
    format_percentage,
    format_price,
    generate_all_charts,
    summarize_cycle,
)

__all__ = [
    "create_price_chart",
    "create_cycle_comparison_chart",
    "create_cycle_report_html",
    "format_price",
    "format_percentage",
    "generate_all_charts",
    "summarize_cycle",
]
