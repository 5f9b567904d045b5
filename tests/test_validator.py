"""Tests for entry validation."""

import pytest
from datetime import date
from decimal import Decimal

from expense_tracker.models import ValidationIssue, ValidationResult
from expense_tracker.validation import (
    DUPLICATE_MESSAGE,
    REQUIRED_MESSAGE,
    ExpenseValidationError,
    ExpenseValidator,
    parse_amount,
    sanitize_amount_input,
)

from conftest import make_expense

JAN_1 = date(2025, 1, 1)


class TestAmountInput:
    """Amount keystroke filter and parsing."""

    @pytest.mark.parametrize("text", ["", "12", "12.5", "0.99", "1.2.3"])
    def test_digits_and_dots_accepted(self, text):
        """Test that the filter only looks at characters."""
        assert sanitize_amount_input(text) == text

    @pytest.mark.parametrize("text", ["-5", "1e3", "12,50", "₹10", " 1"])
    def test_other_characters_rejected(self, text):
        """Test that anything else is dropped."""
        assert sanitize_amount_input(text) is None

    def test_parse_amount(self):
        """Test Decimal parsing."""
        assert parse_amount("12.50") == Decimal("12.50")
        assert parse_amount("1.2.3") is None
        assert parse_amount("NaN") is None


class TestFieldValidation:
    """Stage 1: field checks without storage."""

    @pytest.fixture
    def validator(self) -> ExpenseValidator:
        return ExpenseValidator(store=None, notes_max_length=100)

    @pytest.mark.asyncio
    async def test_valid_entry(self, validator):
        """Test a clean entry passes with the parsed amount."""
        result = await validator.validate("Lunch", "250.50", "Food", "", 0)
        assert result.is_valid is True
        assert result.amount == Decimal("250.50")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title,amount", [("", "10"), ("   ", "10"), ("Lunch", ""), ("", "")])
    async def test_title_and_amount_required(self, validator, title, amount):
        """Test the required-fields message."""
        result = await validator.validate(title, amount, "Food", None, 0)
        assert result.is_valid is False
        assert result.first_error == REQUIRED_MESSAGE

    @pytest.mark.asyncio
    async def test_non_numeric_amount(self, validator):
        """Test an unparseable amount."""
        result = await validator.validate("Lunch", "1.2.3", "Food", None, 0)
        assert result.is_valid is False
        assert result.issues[0].issue_type == "invalid_format"
        assert result.amount is None

    @pytest.mark.asyncio
    async def test_zero_amount(self, validator):
        """Test that the amount must be positive."""
        result = await validator.validate("Lunch", "0", "Food", None, 0)
        assert result.is_valid is False
        assert result.issues[0].issue_type == "invalid_value"

    @pytest.mark.asyncio
    async def test_notes_too_long(self, validator):
        """Test the notes length cap."""
        result = await validator.validate("Lunch", "10", "Food", "x" * 101, 0)
        assert result.is_valid is False
        assert result.issues[0].field == "notes"

    @pytest.mark.asyncio
    async def test_title_and_category_length(self, validator):
        """Test the stored-field limits are checked before saving."""
        result = await validator.validate("x" * 201, "10", "c" * 101, None, 0)
        assert result.is_valid is False
        assert [i.field for i in result.issues] == ["title", "category"]

        result = await validator.validate("x" * 200, "10", "c" * 100, None, 0)
        assert result.is_valid is True

    def test_summary(self, validator):
        """Test the user-facing summary."""
        ok = ValidationResult(is_valid=True)
        assert validator.get_user_friendly_summary(ok) == "✅ Ready to save."


class TestDuplicateDetection:
    """Stage 2: duplicate lookup against the store."""

    @pytest.mark.asyncio
    async def test_duplicate_found(self, store):
        """Test same title/category at the same instant is rejected."""
        existing = make_expense(JAN_1, "10", "Food", title="Lunch")
        await store.insert_expense(existing)
        validator = ExpenseValidator(store)

        result = await validator.validate("lunch", "10", "FOOD", None, existing.timestamp_ms)

        assert result.is_valid is False
        assert result.first_error == DUPLICATE_MESSAGE
        assert "Duplicate entry found" in validator.get_user_friendly_summary(result)

    @pytest.mark.asyncio
    async def test_different_instant_is_not_duplicate(self, store):
        """Test that duplicates need the exact timestamp."""
        existing = make_expense(JAN_1, "10", "Food", title="Lunch")
        await store.insert_expense(existing)
        validator = ExpenseValidator(store)

        result = await validator.validate("Lunch", "10", "Food", None, existing.timestamp_ms + 1)
        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_skip_duplicate_check(self, store):
        """Test that stage 2 can be turned off."""
        existing = make_expense(JAN_1, "10", "Food", title="Lunch")
        await store.insert_expense(existing)
        validator = ExpenseValidator(store)

        result = await validator.validate(
            "Lunch", "10", "Food", None, existing.timestamp_ms, check_duplicates=False
        )
        assert result.is_valid is True

    @pytest.mark.asyncio
    async def test_store_failure_does_not_block(self, store):
        """Test that a failed lookup is logged and skipped."""
        store.fail_reads_with = RuntimeError("locked")
        validator = ExpenseValidator(store)

        result = await validator.validate("Lunch", "10", "Food", None, 0)
        assert result.is_valid is True


class TestValidationError:
    """Exception carrying a result."""

    def test_message_is_first_error(self):
        """Test the exception message."""
        result = ValidationResult(
            is_valid=False,
            issues=[ValidationIssue(
                field="title", issue_type="missing", message=REQUIRED_MESSAGE, severity="error",
            )],
        )
        error = ExpenseValidationError(result)
        assert str(error) == REQUIRED_MESSAGE
        assert error.result is result
