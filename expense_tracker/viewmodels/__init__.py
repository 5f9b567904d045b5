"""View-models: screen state and actions, independent of the UI toolkit."""

from expense_tracker.viewmodels.expense_entry import (
    AmountChanged,
    CategoryChanged,
    DateChanged,
    ExpenseEntryState,
    ExpenseEntryViewModel,
    ExpenseSaved,
    NotesChanged,
    ReceiptPicked,
    ShowToast,
    Submit,
    TitleChanged,
    reduce_entry,
)
from expense_tracker.viewmodels.expense_list import (
    ExpenseListState,
    ExpenseListViewModel,
    FilterType,
    GroupBy,
)
from expense_tracker.viewmodels.report import (
    ChangePeriod,
    DismissShareDialog,
    ExportCompleted,
    ExportToCsv,
    ExportToPdf,
    LoadReport,
    Refresh,
    ReportState,
    ReportViewModel,
    ShareContentReady,
    ShareReport,
    ShowError,
    reduce_report,
)

__all__ = [
    # Entry
    "AmountChanged",
    "CategoryChanged",
    "DateChanged",
    "ExpenseEntryState",
    "ExpenseEntryViewModel",
    "ExpenseSaved",
    "NotesChanged",
    "ReceiptPicked",
    "ShowToast",
    "Submit",
    "TitleChanged",
    "reduce_entry",
    # Listing
    "ExpenseListState",
    "ExpenseListViewModel",
    "FilterType",
    "GroupBy",
    # Report
    "ChangePeriod",
    "DismissShareDialog",
    "ExportCompleted",
    "ExportToCsv",
    "ExportToPdf",
    "LoadReport",
    "Refresh",
    "ReportState",
    "ReportViewModel",
    "ShareContentReady",
    "ShareReport",
    "ShowError",
    "reduce_report",
]
