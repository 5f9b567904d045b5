"""
Core Data Models for Expense Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Be serializable for storage and logging
3. Stay lenient where reporting must tolerate odd data

DESIGN DECISION: ExpenseRecord only enforces what storage needs
(id, title, date). Business rules such as "amount must be positive"
live in the entry validator, so rows that slipped past it (or were
written by another tool) still load and still show up in reports.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# CATEGORIES
# =============================================================================

# Suggestions offered by the entry form. Storage accepts any text.
CATEGORY_SUGGESTIONS: tuple[str, ...] = (
    "Staff",
    "Travel",
    "Food",
    "Utility",
    "Office Supplies",
    "Marketing",
    "Other",
)

# Reporting-only bucket for records without a category.
UNKNOWN_CATEGORY = "Unknown"

TITLE_MAX_LENGTH = 200
CATEGORY_MAX_LENGTH = 100

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# =============================================================================
# EXPENSE RECORD
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single recorded expense.

    Records are created once by the entry flow and never updated;
    the only other lifecycle step is deletion.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Identity
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Opaque unique identifier"
    )

    title: str = Field(
        ...,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="What the money was spent on"
    )
    amount: Decimal = Field(
        ...,
        description="Amount spent (currency-agnostic)"
    )
    category: Optional[str] = Field(
        default=None,
        max_length=CATEGORY_MAX_LENGTH,
        description="Category label, usually one of CATEGORY_SUGGESTIONS"
    )
    notes: Optional[str] = Field(
        default=None,
        description="Free-form notes"
    )
    receipt_uri: Optional[str] = Field(
        default=None,
        description="Opaque reference to a receipt image"
    )
    date: datetime = Field(
        ...,
        description="When the expense happened (timezone-aware)"
    )

    @field_validator('date')
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Naive datetimes are taken to be in the machine's local timezone."""
        if v.tzinfo is None:
            return v.astimezone()
        return v

    @property
    def timestamp_ms(self) -> int:
        """Epoch milliseconds, the unit the record store indexes on."""
        return to_epoch_ms(self.date)

    @classmethod
    def from_timestamp_ms(cls, timestamp_ms: int, **fields) -> "ExpenseRecord":
        """Build a record from an epoch-millisecond timestamp."""
        return cls(date=from_epoch_ms(timestamp_ms), **fields)


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    if value.tzinfo is None:
        value = value.astimezone()
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return _EPOCH + timedelta(milliseconds=timestamp_ms)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating one entry-form submission."""

    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    # Parsed amount when the amount text was usable
    amount: Optional[Decimal] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[str]:
        """Message of the first error, as shown in a toast."""
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None
