"""
Observable Store Base

Implements the live-query half of ExpenseStoreInterface once, so
backends only deal with raw persistence.

Backends implement:
- _insert(record)          write one row
- _delete(record) -> bool  remove one row
- _load_all() -> list      every stored record, in insertion order

Everything else (range filtering, sorting, grouping, duplicate
counting, sums) has a Python default here that works on _load_all().
Backends with a real query engine override what they can do better.
"""

from decimal import Decimal
from typing import Callable, Optional

from expense_tracker.log import get_logger
from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.services.storage.interface import ExpenseStoreInterface, StoreError
from expense_tracker.services.storage.subscription import (
    ErrorListener,
    Subscription,
)

# Upper bound on live queries attached to one store
MAX_SUBSCRIPTIONS = 64


def newest_first(records: list[ExpenseRecord]) -> list[ExpenseRecord]:
    """Sort by date descending; equal timestamps keep insertion order."""
    return sorted(records, key=lambda r: r.timestamp_ms, reverse=True)


def group_by_category(
    records: list[ExpenseRecord],
) -> dict[Optional[str], list[ExpenseRecord]]:
    """Group newest-first records by raw category, missing category first."""
    groups: dict[Optional[str], list[ExpenseRecord]] = {}
    for record in records:
        groups.setdefault(record.category, []).append(record)
    ordered_keys = sorted(groups, key=lambda c: (c is not None, c or ""))
    return {key: groups[key] for key in ordered_keys}


class ObservableExpenseStore(ExpenseStoreInterface):
    """Base class handling subscriptions and change notification."""

    def __init__(self, max_subscriptions: int = MAX_SUBSCRIPTIONS):
        self._subscriptions: list[Subscription] = []
        self._max_subscriptions = max_subscriptions
        self._logger = get_logger(type(self).__module__)

    # -------------------------------------------------------------------------
    # Raw persistence (backend specific)
    # -------------------------------------------------------------------------

    async def _insert(self, record: ExpenseRecord) -> None:
        raise NotImplementedError

    async def _delete(self, record: ExpenseRecord) -> bool:
        raise NotImplementedError

    async def _load_all(self) -> list[ExpenseRecord]:
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def insert_expense(self, record: ExpenseRecord) -> None:
        """Persist a new expense and notify live queries."""
        await self._insert(record)
        self._logger.info(
            "expense_inserted",
            expense_id=record.id,
            amount=str(record.amount),
            category=record.category,
        )
        await self._notify_changed()

    async def delete_expense(self, record: ExpenseRecord) -> bool:
        """Delete an expense; a missing record is a no-op."""
        removed = await self._delete(record)
        if removed:
            self._logger.info("expense_deleted", expense_id=record.id)
            await self._notify_changed()
        else:
            self._logger.debug("expense_delete_noop", expense_id=record.id)
        return removed

    # -------------------------------------------------------------------------
    # One-shot queries (Python defaults)
    # -------------------------------------------------------------------------

    async def get_expenses_by_date_range(
        self,
        start_ms: int,
        end_ms: int,
    ) -> list[ExpenseRecord]:
        records = await self._load_all()
        return newest_first(
            [r for r in records if start_ms <= r.timestamp_ms < end_ms]
        )

    async def get_all_expenses(self) -> list[ExpenseRecord]:
        return newest_first(await self._load_all())

    async def get_expenses_grouped_by_category(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> dict[Optional[str], list[ExpenseRecord]]:
        if start_ms is None or end_ms is None:
            records = await self.get_all_expenses()
        else:
            records = await self.get_expenses_by_date_range(start_ms, end_ms)
        return group_by_category(records)

    async def count_duplicates(
        self,
        timestamp_ms: int,
        title: str,
        category: str,
    ) -> int:
        title_key = title.lower()
        category_key = category.lower()
        return sum(
            1
            for r in await self._load_all()
            if r.timestamp_ms == timestamp_ms
            and r.title.lower() == title_key
            and (r.category or "").lower() == category_key
        )

    async def get_count_and_sum(
        self,
        start_ms: Optional[int] = None,
        end_ms: Optional[int] = None,
    ) -> tuple[int, Decimal]:
        if start_ms is None or end_ms is None:
            records = await self._load_all()
        else:
            records = await self.get_expenses_by_date_range(start_ms, end_ms)
        return len(records), sum((r.amount for r in records), Decimal("0"))

    # -------------------------------------------------------------------------
    # Live queries
    # -------------------------------------------------------------------------

    async def observe_expenses_by_date_range(
        self,
        start_ms: int,
        end_ms: int,
        on_change: Callable[[list[ExpenseRecord]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        return await self._subscribe(
            f"range[{start_ms},{end_ms})",
            lambda: self.get_expenses_by_date_range(start_ms, end_ms),
            on_change,
            on_error,
        )

    async def observe_all_expenses(
        self,
        on_change: Callable[[list[ExpenseRecord]], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        return await self._subscribe(
            "all",
            self.get_all_expenses,
            on_change,
            on_error,
        )

    async def observe_duplicate_count(
        self,
        timestamp_ms: int,
        title: str,
        category: str,
        on_change: Callable[[int], None],
        on_error: Optional[ErrorListener] = None,
    ) -> Subscription:
        return await self._subscribe(
            f"duplicates[{timestamp_ms}]",
            lambda: self.count_duplicates(timestamp_ms, title, category),
            on_change,
            on_error,
        )

    @property
    def subscription_count(self) -> int:
        """Number of live queries currently attached."""
        return len(self._subscriptions)

    async def _subscribe(self, name, query, on_change, on_error) -> Subscription:
        if len(self._subscriptions) >= self._max_subscriptions:
            self._logger.error(
                "subscription_limit_reached",
                subscription=name,
                limit=self._max_subscriptions,
            )
            raise StoreError(
                f"Too many live queries open (limit {self._max_subscriptions})"
            )
        subscription = Subscription(
            name=name,
            query=query,
            on_change=on_change,
            on_error=on_error,
            on_cancel=self._subscriptions.remove,
        )
        self._subscriptions.append(subscription)
        self._logger.debug("subscription_opened", subscription=name)

        # Initial emission with the current data
        await subscription.refresh()
        return subscription

    async def _notify_changed(self) -> None:
        """Re-run every live query after a committed write."""
        for subscription in list(self._subscriptions):
            try:
                await subscription.refresh()
            except Exception:
                # A failing listener must not undo or fail the write
                self._logger.error(
                    "subscription_listener_failed",
                    subscription=subscription.name,
                    exc_info=True,
                )
