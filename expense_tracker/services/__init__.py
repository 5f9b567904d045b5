"""Services package."""

from expense_tracker.services.export import (
    DataAccessError,
    ExportSinkInterface,
    LocalExportSink,
)
from expense_tracker.services.storage import (
    ConnectionError,
    DuplicateError,
    ExpenseStoreInterface,
    InMemoryExpenseStore,
    ObservableExpenseStore,
    SQLiteExpenseStore,
    StoreError,
    Subscription,
)

__all__ = [
    # Export sinks
    "DataAccessError",
    "ExportSinkInterface",
    "LocalExportSink",
    # Storage services
    "ConnectionError",
    "DuplicateError",
    "ExpenseStoreInterface",
    "InMemoryExpenseStore",
    "ObservableExpenseStore",
    "SQLiteExpenseStore",
    "StoreError",
    "Subscription",
]
