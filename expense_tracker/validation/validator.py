"""
Expense Entry Validation

Validation happens in two stages:

STAGE 1 - FIELD VALIDATION:
- Title and amount present
- Amount parses and is positive
- Notes within the length cap

STAGE 2 - DUPLICATE DETECTION:
- Same title and category (case-insensitive) at the exact same
  timestamp already stored
- Needs storage access, so it only runs when stage 1 passes

Validation NEVER fixes input. It reports issues for the form to show.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from expense_tracker.log import get_logger
from expense_tracker.models.expense import (
    CATEGORY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.services.storage import ExpenseStoreInterface, StoreError

logger = get_logger(__name__)

REQUIRED_MESSAGE = "Title and Amount are required"
DUPLICATE_MESSAGE = "Duplicate entry found"


def sanitize_amount_input(text: str) -> Optional[str]:
    """
    Keystroke filter for the amount field.

    Returns the text if it only holds digits and dots, else None
    (the form keeps its previous value).
    """
    if all(c.isdigit() or c == "." for c in text):
        return text
    return None


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse amount text to a Decimal, None if unusable."""
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite():
        return None
    return value


class ExpenseValidationError(Exception):
    """Entry input was rejected; carries the full ValidationResult."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.first_error or "Invalid expense")


class ExpenseValidator:
    """
    Validates entry-form input before an expense is created.

    Stage 1 runs without storage; stage 2 needs the store.
    """

    def __init__(
        self,
        store: Optional[ExpenseStoreInterface] = None,
        notes_max_length: int = 100,
    ):
        """
        Initialize validator.

        Args:
            store: Record store for duplicate checking.
                   If None, duplicate checking is skipped.
            notes_max_length: Maximum accepted notes length
        """
        self._store = store
        self._notes_max_length = notes_max_length

    def _validate_fields(
        self,
        title: str,
        amount: str,
        category: Optional[str],
        notes: Optional[str],
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        """Stage 1. Returns (parsed_amount, issues)."""
        issues = []

        if not title.strip() or not amount.strip():
            issues.append(ValidationIssue(
                field="title" if not title.strip() else "amount",
                issue_type="missing",
                message=REQUIRED_MESSAGE,
                severity="error",
            ))
            return None, issues

        parsed = parse_amount(amount)
        if parsed is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message=f"Amount '{amount}' is not a number",
                severity="error",
                suggested_fix="Use digits and an optional decimal point",
            ))
        elif parsed <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        if len(title.strip()) > TITLE_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="title",
                issue_type="too_long",
                message=f"Title must be at most {TITLE_MAX_LENGTH} characters",
                severity="error",
            ))

        if category and len(category.strip()) > CATEGORY_MAX_LENGTH:
            issues.append(ValidationIssue(
                field="category",
                issue_type="too_long",
                message=f"Category must be at most {CATEGORY_MAX_LENGTH} characters",
                severity="error",
            ))

        if notes and len(notes) > self._notes_max_length:
            issues.append(ValidationIssue(
                field="notes",
                issue_type="too_long",
                message=f"Notes must be at most {self._notes_max_length} characters",
                severity="error",
            ))

        return parsed, issues

    async def _check_duplicates(
        self,
        title: str,
        category: str,
        timestamp_ms: int,
    ) -> list[ValidationIssue]:
        """Stage 2. Requires storage access."""
        if self._store is None:
            return []

        try:
            count = await self._store.count_duplicates(
                timestamp_ms, title.strip(), category
            )
        except StoreError as e:
            # Don't block entry because the duplicate lookup failed
            logger.warning("duplicate_check_failed", error=str(e))
            return []

        if count > 0:
            return [ValidationIssue(
                field="duplicate",
                issue_type="duplicate",
                message=DUPLICATE_MESSAGE,
                severity="error",
                suggested_fix="Change the title or category, or discard this entry",
            )]
        return []

    async def validate(
        self,
        title: str,
        amount: str,
        category: str,
        notes: Optional[str],
        timestamp_ms: int,
        check_duplicates: bool = True,
    ) -> ValidationResult:
        """
        Run the full validation pipeline.

        Args:
            title: Title text as typed
            amount: Amount text as typed
            category: Chosen category
            notes: Notes text, may be empty
            timestamp_ms: Timestamp the expense will be stored with
            check_duplicates: Whether to run stage 2

        Returns:
            ValidationResult with all issues found
        """
        parsed, issues = self._validate_fields(title, amount, category, notes)

        if not issues and check_duplicates:
            issues.extend(await self._check_duplicates(title, category, timestamp_ms))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            amount=parsed if is_valid else None,
        )

    async def require_valid(
        self,
        title: str,
        amount: str,
        category: str,
        notes: Optional[str],
        timestamp_ms: int,
    ) -> Decimal:
        """
        Validate and return the parsed amount.

        Raises:
            ExpenseValidationError: If any error-level issue was found
        """
        result = await self.validate(title, amount, category, notes, timestamp_ms)
        if not result.is_valid:
            raise ExpenseValidationError(result)
        return result.amount

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Summary of validation results for display under the form."""
        if result.is_valid:
            return "✅ Ready to save."

        lines = ["❌ Please fix the following:"]
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
