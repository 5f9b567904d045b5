"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep a local SQLite database as the default store
2. Swap in Google Sheets for users who want to see rows in a sheet
3. Use in-memory storage for testing
4. Keep reporting decoupled from storage implementation

Queries come in two flavours: one-shot coroutines, and live
"observe_*" variants that emit the current result immediately and
again after every committed write, until cancelled.

Timestamps are epoch milliseconds. Ranges are [start, end).
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Optional

from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.services.storage.subscription import (
    ErrorListener,
    Subscription,
)


class ExpenseStoreInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (SQLite, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert_expense(self, record: ExpenseRecord) -> None:
        """
        Persist a new expense.

        Raises:
            DuplicateError: If a record with the same id exists
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, record: ExpenseRecord) -> bool:
        """
        Delete an expense.

        Deleting a record that is not stored is a no-op.

        Returns:
            True if a row was removed
        """
        pass

    @abstractmethod
    async def get_expenses_by_date_range(
        self,
        start_ms: int,
        end_ms: int,
    ) -> list[ExpenseRecord]:
        """
        Expenses with start_ms <= date < end_ms, newest first.

        Raises:
            StoreError: If the query fails
        """
        pass

    @abstractmethod
    async def get_all_expenses(self) -> list[ExpenseRecord]:
        """All expenses, newest first."""
        pass

    @abstractmethod
    async def get_expenses_grouped_by_category(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> dict[Optional[str], list[ExpenseRecord]]:
        """
        Expenses grouped by their raw category value.

        Groups are ordered by category (missing category first), and
        each group is newest first. No category substitution happens.
        """
        pass

    @abstractmethod
    async def count_duplicates(
        self,
        timestamp_ms: int,
        title: str,
        category: str,
    ) -> int:
        """
        Count stored expenses that look like the given entry.

        Title and category compare case-insensitively; the timestamp
        must match exactly (same millisecond, not same day).
        """
        pass

    @abstractmethod
    async def get_count_and_sum(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> tuple[int, Decimal]:
        """
        Count and total amount, over a range or over everything.

        Returns:
            (count, sum) with sum 0 when nothing matches
        """
        pass

    # -------------------------------------------------------------------------
    # Live queries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def observe_expenses_by_date_range(
        self,
        start_ms: int,
        end_ms: int,
        on_change: Callable[[list[ExpenseRecord]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """Live version of get_expenses_by_date_range."""
        pass

    @abstractmethod
    async def observe_all_expenses(
        self,
        on_change: Callable[[list[ExpenseRecord]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """Live version of get_all_expenses."""
        pass

    @abstractmethod
    async def observe_duplicate_count(
        self,
        timestamp_ms: int,
        title: str,
        category: str,
        on_change: Callable[[int], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        """Live version of count_duplicates."""
        pass


class StoreError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StoreError):
    """Attempted to insert a record whose id already exists."""
    pass


class ConnectionError(StoreError):
    """Could not connect to storage backend."""
    pass
