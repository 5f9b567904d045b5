"""
Expense Listing View-Model

Lists expenses for today, one chosen day, or all time, either flat
(newest first) or grouped by category. Grouping uses the RAW stored
category; the "Unknown" bucket is a reporting concept only.
"""

from datetime import date, datetime, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.config.settings import resolve_timezone
from expense_tracker.log import get_logger
from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.reports.aggregation import window_bounds_ms
from expense_tracker.services.storage import ExpenseStoreInterface, StoreError

logger = get_logger(__name__)


class FilterType(str, Enum):
    TODAY = "today"
    CUSTOM_DATE = "custom_date"
    ALL_TIME = "all_time"


class GroupBy(str, Enum):
    NONE = "none"
    CATEGORY = "category"


class ExpenseListState(BaseModel):
    """What the listing screen shows."""
    model_config = ConfigDict(frozen=True)

    filter_type: FilterType = FilterType.TODAY
    selected_date: Optional[date] = None
    group_by: GroupBy = GroupBy.NONE
    expenses: list[ExpenseRecord] = Field(default_factory=list)
    grouped_expenses: dict[Optional[str], list[ExpenseRecord]] = Field(default_factory=dict)
    total_count: int = 0
    total_amount: Decimal = Decimal("0")
    is_loading: bool = False
    error: Optional[str] = None


class ExpenseListViewModel:
    """Loads and deletes expenses for the listing screen."""

    def __init__(
        self,
        store: ExpenseStoreInterface,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._tz = tz or resolve_timezone()
        self._clock = clock or (lambda: datetime.now(self._tz))
        self._state = ExpenseListState()

    @property
    def state(self) -> ExpenseListState:
        return self._state

    def today(self) -> date:
        return self._clock().astimezone(self._tz).date()

    def _day_range(self, filter_type: FilterType, selected: Optional[date]) -> Optional[tuple[int, int]]:
        """Epoch-ms bounds for the filter, None for all time."""
        if filter_type == FilterType.ALL_TIME:
            return None
        day = self.today() if filter_type == FilterType.TODAY else (selected or self.today())
        return window_bounds_ms(day, day, self._tz)

    async def load(
        self,
        filter_type: Optional[FilterType] = None,
        selected_date: Optional[date] = None,
        group_by: Optional[GroupBy] = None,
    ) -> ExpenseListState:
        """
        Load the listing. Arguments left as None keep the current choice.

        A store failure keeps the previous lists and sets `error`.
        """
        filter_type = filter_type or self._state.filter_type
        group_by = group_by or self._state.group_by
        if filter_type == FilterType.TODAY:
            selected_date = self.today()
        elif filter_type == FilterType.CUSTOM_DATE:
            selected_date = selected_date or self._state.selected_date or self.today()
        else:
            selected_date = None

        self._state = self._state.model_copy(update={
            "filter_type": filter_type,
            "selected_date": selected_date,
            "group_by": group_by,
            "is_loading": True,
            "error": None,
        })

        bounds = self._day_range(filter_type, selected_date)
        start_ms, end_ms = bounds if bounds else (None, None)

        try:
            if group_by == GroupBy.CATEGORY:
                grouped = await self._store.get_expenses_grouped_by_category(start_ms, end_ms)
                expenses = []
            elif bounds:
                grouped = {}
                expenses = await self._store.get_expenses_by_date_range(start_ms, end_ms)
            else:
                grouped = {}
                expenses = await self._store.get_all_expenses()
            count, amount = await self._store.get_count_and_sum(start_ms, end_ms)
        except StoreError as e:
            logger.error("expense_list_load_failed", filter=filter_type.value, error=str(e))
            self._state = self._state.model_copy(update={"is_loading": False, "error": str(e)})
            return self._state

        self._state = self._state.model_copy(update={
            "expenses": expenses,
            "grouped_expenses": grouped,
            "total_count": count,
            "total_amount": amount,
            "is_loading": False,
        })
        logger.debug(
            "expense_list_loaded",
            filter=filter_type.value,
            group_by=group_by.value,
            total_count=count,
        )
        return self._state

    async def refresh(self) -> ExpenseListState:
        """Reload with the current filter and grouping."""
        return await self.load()

    async def delete(self, record: ExpenseRecord) -> ExpenseListState:
        """Delete an expense and reload. Deleting a missing record is a no-op."""
        try:
            await self._store.delete_expense(record)
        except StoreError as e:
            logger.error("expense_delete_failed", expense_id=record.id, error=str(e))
            self._state = self._state.model_copy(update={"error": str(e)})
            return self._state
        return await self.refresh()
