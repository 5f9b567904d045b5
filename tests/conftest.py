"""
Shared fixtures.

Tests run in UTC with a fixed "today" so calendar-day bucketing
and report windows are deterministic. Daylight-saving tests use
NEW_YORK, either passed explicitly or as the local zone.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

import pytest
import tzlocal

from expense_tracker.models.expense import ExpenseRecord
from expense_tracker.services.export import ExportSinkInterface
from expense_tracker.services.storage import InMemoryExpenseStore

UTC = timezone.utc
# Clocks go forward on 2025-03-09 at 02:00 local time
NEW_YORK = ZoneInfo("America/New_York")
TODAY = date(2025, 1, 7)


def make_expense(
    day: date,
    amount: str,
    category: Optional[str] = "Food",
    title: str = "Expense",
    at: time = time(12, 0),
    **fields,
) -> ExpenseRecord:
    """Build an expense on a UTC calendar day."""
    return ExpenseRecord(
        title=title,
        amount=Decimal(amount),
        category=category,
        date=datetime.combine(day, at, tzinfo=UTC),
        **fields,
    )


def fixed_clock(day: date = TODAY, at: time = time(9, 30)):
    """Clock callable pinned to one instant."""
    moment = datetime.combine(day, at, tzinfo=UTC)
    return lambda: moment


@pytest.fixture
def store() -> InMemoryExpenseStore:
    return InMemoryExpenseStore()


class RecordingSink(ExportSinkInterface):
    """Export sink double that keeps everything in memory."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.blobs: dict[str, tuple[str, bytes]] = {}
        self.shared: list[tuple[str, str]] = []

    def save_blob(self, name: str, mime_type: str, data: bytes) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.blobs[name] = (mime_type, data)
        return f"memory://{name}"

    def share_text(self, content: str, subject: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.shared.append((subject, content))
        return f"memory://shared/{len(self.shared)}"


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def new_york_local(monkeypatch):
    """Make America/New_York the machine's local zone for one test."""
    monkeypatch.setenv("TZ", "America/New_York")
    tzlocal.reload_localzone()
    yield NEW_YORK
    monkeypatch.undo()
    tzlocal.reload_localzone()
