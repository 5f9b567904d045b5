"""Tests for the report builder (one-shot and live reports)."""

import pytest
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from expense_tracker.reports import ReportBuilder
from expense_tracker.services.export import DataAccessError
from expense_tracker.services.storage import InMemoryExpenseStore, StoreError

from conftest import NEW_YORK, TODAY, UTC, fixed_clock, make_expense


@pytest.fixture
def builder(store) -> ReportBuilder:
    return ReportBuilder(store, tz=UTC, clock=fixed_clock())


class TestWindow:
    """Window resolution."""

    def test_window_ends_today(self, builder):
        """Test a 7-day window ending on the fixed today."""
        window = builder.window(7)
        assert window.start == date(2025, 1, 1)
        assert window.end == TODAY
        assert window.label == "Last 7 days (2025-01-01 to 2025-01-07)"

    def test_today_uses_builder_timezone(self, store):
        """Test that 'today' is computed in the builder's timezone."""
        # 23:30 UTC on Jan 7 is already Jan 8 at UTC+2
        builder = ReportBuilder(
            store,
            tz=timezone(timedelta(hours=2)),
            clock=fixed_clock(TODAY, time(23, 30)),
        )
        assert builder.today() == date(2025, 1, 8)


class TestBuildReport:
    """One-shot report generation."""

    @pytest.mark.asyncio
    async def test_only_window_records_included(self, store, builder):
        """Test that records outside the window are not fetched."""
        await store.insert_expense(make_expense(date(2024, 12, 31), "999"))
        await store.insert_expense(make_expense(date(2025, 1, 1), "100", "Food"))
        await store.insert_expense(make_expense(TODAY, "50", "Travel"))
        await store.insert_expense(make_expense(date(2025, 1, 8), "999"))

        report = await builder.build_report(7)

        assert report.total_amount == Decimal("150")
        assert report.total_expenses == 2
        assert len(report.daily_totals) == 7
        assert report.daily_totals[0].total_amount == Decimal("100")
        assert report.daily_totals[-1].total_amount == Decimal("50")
        assert report.report_period == "Last 7 days (2025-01-01 to 2025-01-07)"

    @pytest.mark.asyncio
    async def test_single_day_window(self, store, builder):
        """Test a one-day report."""
        await store.insert_expense(make_expense(TODAY, "12"))
        report = await builder.build_report(1)
        assert [d.date for d in report.daily_totals] == [TODAY]
        assert report.total_amount == Decimal("12")

    @pytest.mark.asyncio
    async def test_invalid_period(self, builder):
        """Test that a period below one day is rejected."""
        with pytest.raises(ValueError):
            await builder.build_report(0)

    @pytest.mark.asyncio
    async def test_store_failure_raised_as_data_access_error(self, store, builder):
        """Test that store failures surface without retry."""
        store.fail_reads_with = RuntimeError("locked")
        with pytest.raises(DataAccessError) as exc_info:
            await builder.build_report(7)
        assert isinstance(exc_info.value.__cause__, StoreError)

    @pytest.mark.asyncio
    async def test_window_across_dst_change(self, store):
        """Test local-midnight window edges on both sides of a DST change."""
        def local(day, hour, minute=0):
            return datetime.combine(day, time(hour, minute), tzinfo=NEW_YORK)

        mar_8, mar_10 = date(2025, 3, 8), date(2025, 3, 10)
        inside = [
            make_expense(mar_8, "1").model_copy(update={"date": local(mar_8, 0, 30)}),
            make_expense(mar_10, "2").model_copy(update={"date": local(mar_10, 23, 30)}),
        ]
        outside = make_expense(mar_8, "99").model_copy(
            update={"date": local(date(2025, 3, 7), 23, 30)}
        )
        for record in [*inside, outside]:
            await store.insert_expense(record)

        builder = ReportBuilder(
            store,
            tz=NEW_YORK,
            clock=lambda: local(mar_10, 12),
        )
        report = await builder.build_report(3)

        assert [d.date for d in report.daily_totals] == [mar_8, date(2025, 3, 9), mar_10]
        assert [d.total_amount for d in report.daily_totals] == [
            Decimal("1"), Decimal("0"), Decimal("2"),
        ]
        assert report.total_amount == Decimal("3")


class TestObserveReport:
    """Live reports."""

    @pytest.mark.asyncio
    async def test_recomputes_on_every_change(self, store, builder):
        """Test a full report per store change."""
        reports = []
        subscription = await builder.observe_report(7, reports.append)

        await store.insert_expense(make_expense(TODAY, "10"))
        await store.insert_expense(make_expense(TODAY, "15"))

        assert [r.total_amount for r in reports] == [Decimal("0"), Decimal("10"), Decimal("25")]
        assert all(len(r.daily_totals) == 7 for r in reports)
        subscription.cancel()

    @pytest.mark.asyncio
    async def test_no_emission_after_cancel(self, store, builder):
        """Test that cancelling stops emissions even if the store changes."""
        reports = []
        subscription = await builder.observe_report(7, reports.append)
        subscription.cancel()

        await store.insert_expense(make_expense(TODAY, "10"))

        assert len(reports) == 1
        assert store.subscription_count == 0

    @pytest.mark.asyncio
    async def test_error_delivered_once(self, store, builder):
        """Test that a store error ends the live report."""
        reports, errors = [], []
        subscription = await builder.observe_report(7, reports.append, errors.append)

        store.fail_reads_with = RuntimeError("corrupt")
        await store.insert_expense(make_expense(TODAY, "10"))
        await store.insert_expense(make_expense(TODAY, "20"))

        assert len(reports) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], DataAccessError)
        assert isinstance(errors[0].__cause__, StoreError)
        assert subscription.active is False


class TestReportUpdates:
    """Async iterator form of the live report."""

    @pytest.mark.asyncio
    async def test_iterator_yields_and_cancels_on_close(self, store, builder):
        """Test that closing the iterator detaches from the store."""
        updates = builder.report_updates(7)

        first = await updates.__anext__()
        assert first.total_expenses == 0
        assert store.subscription_count == 1

        await store.insert_expense(make_expense(TODAY, "40"))
        second = await updates.__anext__()
        assert second.total_amount == Decimal("40")

        await updates.aclose()
        assert store.subscription_count == 0

    @pytest.mark.asyncio
    async def test_iterator_raises_store_error(self):
        """Test that a failure is raised from the iterator."""
        store = InMemoryExpenseStore()
        store.fail_reads_with = RuntimeError("gone")
        builder = ReportBuilder(store, tz=UTC, clock=fixed_clock())

        with pytest.raises(DataAccessError):
            async for _ in builder.report_updates(7):
                pass
        assert store.subscription_count == 0
