"""
Report Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and PURE.
compute_report() takes a record snapshot and a date window and
returns a ReportData. No I/O, no clock reads (except the optional
generated_at default), no dependence on hash ordering.

Both breakdowns are computed from the same snapshot in one call,
so the daily series and the category table always agree on the
grand total and the record count.
"""

from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from typing import Iterable, Optional

from expense_tracker.config.settings import resolve_timezone
from expense_tracker.models.expense import UNKNOWN_CATEGORY, ExpenseRecord, to_epoch_ms
from expense_tracker.models.report import CategoryTotal, DailyTotal, ReportData

ZERO = Decimal("0")


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of a point in time, as seen in tz."""
    return moment.astimezone(tz).date()


def date_window(period_days: int, today: date) -> tuple[date, date]:
    """
    Inclusive window of period_days calendar days ending today.

    Raises:
        ValueError: If period_days is less than 1
    """
    if period_days < 1:
        raise ValueError(f"Report period must be at least 1 day, got {period_days}")
    return today - timedelta(days=period_days - 1), today


def window_bounds_ms(start: date, end: date, tz: tzinfo) -> tuple[int, int]:
    """
    Epoch-millisecond bounds covering [start, end] in tz.

    Returns (start of start day, start of the day after end), i.e. a
    half-open range suitable for a store range query.
    """
    start_of_window = datetime.combine(start, time.min, tzinfo=tz)
    end_exclusive = datetime.combine(end + timedelta(days=1), time.min, tzinfo=tz)
    return to_epoch_ms(start_of_window), to_epoch_ms(end_exclusive)


def period_label(period_days: int, start: date, end: date) -> str:
    """Human-readable label, e.g. 'Last 7 days (2025-01-01 to 2025-01-07)'."""
    return f"Last {period_days} days ({start.isoformat()} to {end.isoformat()})"


def category_label(category: Optional[str]) -> str:
    """Reporting label for a raw category value."""
    if category is None or not category.strip():
        return UNKNOWN_CATEGORY
    return category


def compute_daily_totals(
    records: Iterable[ExpenseRecord],
    window_start: date,
    window_end: date,
    tz: tzinfo,
) -> list[DailyTotal]:
    """One DailyTotal per calendar day of the window, ascending, no gaps."""
    buckets: dict[date, list[Decimal]] = {}
    for record in records:
        buckets.setdefault(local_date(record.date, tz), []).append(record.amount)

    totals = []
    current = window_start
    while current <= window_end:
        amounts = buckets.get(current, [])
        totals.append(DailyTotal(
            date=current,
            total_amount=sum(amounts, ZERO),
            expense_count=len(amounts),
        ))
        current += timedelta(days=1)
    return totals


def compute_category_totals(
    records: Iterable[ExpenseRecord],
    grand_total: Decimal,
) -> list[CategoryTotal]:
    """
    Per-category totals, largest first.

    Ties keep the order in which categories were first seen.
    """
    groups: dict[str, list[Decimal]] = {}
    for record in records:
        groups.setdefault(category_label(record.category), []).append(record.amount)

    result = []
    for category, amounts in groups.items():
        amount = sum(amounts, ZERO)
        if grand_total != 0:
            percentage = float(amount / grand_total * 100)
        else:
            percentage = 0.0
        result.append(CategoryTotal(
            category=category,
            total_amount=amount,
            expense_count=len(amounts),
            percentage=percentage,
        ))

    # sorted() is stable, including with reverse=True
    return sorted(result, key=lambda c: c.total_amount, reverse=True)


def compute_report(
    records: Iterable[ExpenseRecord],
    window_start: date,
    window_end: date,
    period: str,
    tz: Optional[tzinfo] = None,
    generated_at: Optional[datetime] = None,
) -> ReportData:
    """
    Aggregate a record snapshot into a ReportData.

    Records are expected to be pre-filtered to the window by the
    caller; they are not filtered again here. Malformed values are
    tolerated: negative amounts pass through and a missing category
    is reported under UNKNOWN_CATEGORY.

    Args:
        records: Expense snapshot for the window
        window_start: First calendar day (inclusive)
        window_end: Last calendar day (inclusive)
        period: Human-readable period label
        tz: Timezone for calendar-day bucketing (default: system local)
        generated_at: Report timestamp (default: now)
    """
    tz = tz or resolve_timezone()
    snapshot = list(records)

    grand_total = sum((r.amount for r in snapshot), ZERO)

    extra = {}
    if generated_at is not None:
        extra["generated_at"] = generated_at

    return ReportData(
        daily_totals=compute_daily_totals(snapshot, window_start, window_end, tz),
        category_totals=compute_category_totals(snapshot, grand_total),
        total_amount=grand_total,
        total_expenses=len(snapshot),
        report_period=period,
        window_start=window_start,
        window_end=window_end,
        expenses=snapshot,
        **extra,
    )
