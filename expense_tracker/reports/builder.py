"""
Report Builder

Turns "last N days" into a date window, asks the record store for
that window, and runs the aggregation engine on the result.

Two ways to get a report:
1. build_report()   one range query, one ReportData
2. observe_report() a live subscription that recomputes the whole
                    report from the latest snapshot on every store
                    change (no incremental updates)

Store failures are raised (or delivered) as DataAccessError. The
builder never retries and never resubscribes on its own.
"""

import asyncio
from datetime import date, datetime, tzinfo
from typing import AsyncIterator, Callable, Optional

from expense_tracker.config.settings import resolve_timezone
from expense_tracker.log import get_logger
from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.models.report import ReportData
from expense_tracker.reports.aggregation import (
    compute_report,
    date_window,
    period_label,
    window_bounds_ms,
)
from expense_tracker.services.export.interface import DataAccessError
from expense_tracker.services.storage import (
    ExpenseStoreInterface,
    StoreError,
    Subscription,
)

logger = get_logger(__name__)


class ReportWindow:
    """A resolved report window: calendar days, epoch bounds and label."""

    def __init__(self, period_days: int, today: date, tz: tzinfo):
        self.period_days = period_days
        self.start, self.end = date_window(period_days, today)
        self.start_ms, self.end_ms = window_bounds_ms(self.start, self.end, tz)
        self.label = period_label(period_days, self.start, self.end)

    def __repr__(self) -> str:
        return f"<ReportWindow {self.start}..{self.end}>"


class ReportBuilder:
    """
    Builds one-shot and live reports from a record store.

    GUARANTEES:
    - One store query (or one store subscription) per request
    - Every report is a full recompute from a single snapshot
    - No emission reaches a listener after its subscription is cancelled
    """

    def __init__(
        self,
        store: ExpenseStoreInterface,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._tz = tz or resolve_timezone()
        self._clock = clock or (lambda: datetime.now(self._tz))

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def today(self) -> date:
        """Today's calendar date in the builder's timezone."""
        return self._clock().astimezone(self._tz).date()

    def window(self, period_days: int) -> ReportWindow:
        """Resolve the window for the last period_days days, ending today."""
        return ReportWindow(period_days, self.today(), self._tz)

    def _compute(self, records: list[ExpenseRecord], window: ReportWindow) -> ReportData:
        return compute_report(
            records,
            window.start,
            window.end,
            window.label,
            tz=self._tz,
        )

    async def build_report(self, period_days: int) -> ReportData:
        """
        Compute a report for the last period_days days.

        Raises:
            ValueError: If period_days is less than 1
            DataAccessError: If the store query fails
        """
        window = self.window(period_days)
        try:
            records = await self._store.get_expenses_by_date_range(
                window.start_ms, window.end_ms
            )
        except StoreError as e:
            logger.error("report_build_failed", period_days=period_days, error=str(e))
            raise DataAccessError(f"Failed to load report: {e}") from e

        report = self._compute(records, window)
        logger.info(
            "report_built",
            period_days=period_days,
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            total_expenses=report.total_expenses,
        )
        return report

    async def observe_report(
        self,
        period_days: int,
        on_report: Callable[[ReportData], None],
        on_error: Optional[Callable[[DataAccessError], None]] = None,
    ) -> Subscription:
        """
        Subscribe to a live report for the last period_days days.

        on_report is called immediately with the current report and
        again after every store change. The window is fixed when the
        subscription opens; use a new subscription for a new period.

        A store failure is delivered once to on_error and ends the
        subscription. Cancel the returned Subscription to stop.
        """
        window = self.window(period_days)

        def handle_records(records: list[ExpenseRecord]) -> None:
            on_report(self._compute(records, window))

        def handle_error(error: Exception) -> None:
            wrapped = DataAccessError(f"Failed to load report: {error}")
            wrapped.__cause__ = error
            if on_error is not None:
                on_error(wrapped)

        subscription = await self._store.observe_expenses_by_date_range(
            window.start_ms,
            window.end_ms,
            handle_records,
            handle_error,
        )
        logger.info(
            "report_subscription_opened",
            period_days=period_days,
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
        )
        return subscription

    async def report_updates(self, period_days: int) -> AsyncIterator[ReportData]:
        """
        Live report as an async iterator.

        Closing the iterator (or leaving an `async for` early) cancels
        the underlying store subscription. A store failure is raised
        from the iterator as DataAccessError.
        """
        queue: asyncio.Queue = asyncio.Queue()
        subscription = await self.observe_report(
            period_days,
            queue.put_nowait,
            queue.put_nowait,
        )
        try:
            while True:
                item = await queue.get()
                if isinstance(item, DataAccessError):
                    raise item
                yield item
        finally:
            subscription.cancel()
