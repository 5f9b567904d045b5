"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    CATEGORY_SUGGESTIONS,
    UNKNOWN_CATEGORY,
    ExpenseRecord,
    ValidationIssue,
    ValidationResult,
    from_epoch_ms,
    to_epoch_ms,
)
from expense_tracker.models.report import (
    CategoryTotal,
    DailyTotal,
    ExportFormat,
    ExportResult,
    ReportData,
    ShareContent,
)

__all__ = [
    # Expense models
    "CATEGORY_SUGGESTIONS",
    "UNKNOWN_CATEGORY",
    "ExpenseRecord",
    "ValidationIssue",
    "ValidationResult",
    "from_epoch_ms",
    "to_epoch_ms",
    # Report models
    "CategoryTotal",
    "DailyTotal",
    "ExportFormat",
    "ExportResult",
    "ReportData",
    "ShareContent",
]
