"""
Storage Services Package

Provides the abstract record store interface and its implementations:
SQLite (default), Google Sheets (optional) and in-memory (tests).
"""

from expense_tracker.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    ExpenseStoreInterface,
    StoreError,
)
from expense_tracker.services.storage.subscription import Subscription
from expense_tracker.services.storage.base import ObservableExpenseStore
from expense_tracker.services.storage.memory import InMemoryExpenseStore
from expense_tracker.services.storage.sqlite import SQLiteExpenseStore

__all__ = [
    # Interfaces
    "ExpenseStoreInterface",
    "ObservableExpenseStore",
    "Subscription",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "StoreError",
    # Implementations
    "InMemoryExpenseStore",
    "SQLiteExpenseStore",
]
