"""
Report Models

Derived, never persisted. A ReportData is the full picture of one
date window: a gap-free daily series, a category breakdown and the
record snapshot both were computed from.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.expense import ExpenseRecord


class DailyTotal(BaseModel):
    """Total spent on one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: date
    total_amount: Decimal = Decimal("0")
    expense_count: int = Field(default=0, ge=0)


class CategoryTotal(BaseModel):
    """Total spent in one category over the report window."""
    model_config = ConfigDict(frozen=True)

    category: str
    total_amount: Decimal
    expense_count: int = Field(ge=0)
    percentage: float = Field(
        ...,
        description="Share of the window total, 0 when the total is 0"
    )


class ReportData(BaseModel):
    """
    Aggregate report over an inclusive date window.

    daily_totals has exactly one entry per calendar day of the window,
    ascending. category_totals only lists categories that have at least
    one record, largest total first.
    """
    model_config = ConfigDict(frozen=True)

    daily_totals: list[DailyTotal]
    category_totals: list[CategoryTotal]
    total_amount: Decimal
    total_expenses: int = Field(ge=0)
    report_period: str = Field(
        ...,
        description="Human-readable window label"
    )
    window_start: date
    window_end: date

    # Snapshot the aggregates were computed from (needed for CSV export)
    expenses: list[ExpenseRecord] = Field(default_factory=list)

    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the report was computed (informational only)"
    )

    @property
    def period_days(self) -> int:
        return (self.window_end - self.window_start).days + 1


# =============================================================================
# EXPORT / SHARE
# =============================================================================

class ExportFormat(str, Enum):
    """Document formats a report can be exported to."""
    CSV = "csv"
    TEXT = "text"
    SHARE = "share"


class ExportResult(BaseModel):
    """
    Terminal outcome of one export or share request.

    Exactly one of these is produced per request: either success with
    an artifact name, or failure with a readable message.
    """

    format: ExportFormat
    success: bool
    artifact_name: Optional[str] = Field(
        default=None,
        description="Generated file name (success only)"
    )
    locator: Optional[str] = Field(
        default=None,
        description="Where the sink put the artifact (success only)"
    )
    mime_type: Optional[str] = None
    error_message: Optional[str] = None
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class ShareContent(BaseModel):
    """Plain-text summary ready to hand to a share target."""
    model_config = ConfigDict(frozen=True)

    content: str
    subject: str
