"""Reporting package: aggregation, live report building, export."""

from expense_tracker.reports.aggregation import (
    category_label,
    compute_report,
    date_window,
    local_date,
    period_label,
    window_bounds_ms,
)
from expense_tracker.reports.builder import ReportBuilder, ReportWindow
from expense_tracker.reports.formatter import (
    CSV_HEADER,
    ReportExporter,
    ReportFormatter,
)

__all__ = [
    "CSV_HEADER",
    "ReportBuilder",
    "ReportExporter",
    "ReportFormatter",
    "ReportWindow",
    "category_label",
    "compute_report",
    "date_window",
    "local_date",
    "period_label",
    "window_bounds_ms",
]
