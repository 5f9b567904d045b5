"""Entry validation package."""

from expense_tracker.validation.validator import (
    DUPLICATE_MESSAGE,
    REQUIRED_MESSAGE,
    ExpenseValidationError,
    ExpenseValidator,
    parse_amount,
    sanitize_amount_input,
)

__all__ = [
    "DUPLICATE_MESSAGE",
    "REQUIRED_MESSAGE",
    "ExpenseValidationError",
    "ExpenseValidator",
    "parse_amount",
    "sanitize_amount_input",
]
