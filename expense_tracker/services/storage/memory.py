"""
In-Memory Storage Implementation

Keeps records in a dict (insertion ordered). Used by the test
suite and by STORAGE_BACKEND=memory for throwaway sessions.
"""

from typing import Optional

from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.services.storage.base import MAX_SUBSCRIPTIONS, ObservableExpenseStore
from expense_tracker.services.storage.interface import DuplicateError, StoreError


class InMemoryExpenseStore(ObservableExpenseStore):
    """Dict-backed expense store."""

    def __init__(
        self,
        records: Optional[list[ExpenseRecord]] = None,
        max_subscriptions: int = MAX_SUBSCRIPTIONS,
    ):
        super().__init__(max_subscriptions)
        self._records: dict[str, ExpenseRecord] = {}
        # Set to an exception to make every read fail (for tests)
        self.fail_reads_with: Optional[Exception] = None
        for record in records or []:
            self._records[record.id] = record

    async def _insert(self, record: ExpenseRecord) -> None:
        if record.id in self._records:
            raise DuplicateError(f"Expense already exists: {record.id}")
        self._records[record.id] = record

    async def _delete(self, record: ExpenseRecord) -> bool:
        return self._records.pop(record.id, None) is not None

    async def _load_all(self) -> list[ExpenseRecord]:
        if self.fail_reads_with is not None:
            raise StoreError(f"Failed to read expenses: {self.fail_reads_with}")
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)
