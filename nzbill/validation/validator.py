"""
Form Input Validation

DESIGN DECISION: Raw form input is checked here before any model is
built. Pydantic still enforces the schema, but its messages are not
something we show to users. This layer:
- Collects every problem at once instead of stopping at the first
- Phrases each problem for a non-technical user
- Suggests a fix where one is obvious

IMPORTANT: Validation NEVER silently fixes issues (no rounding, no
truncation). It reports them and the user corrects the form.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from nzbill.config import get_settings
from nzbill.models.bill import (
    BillCategory,
    BillCreate,
    RecurringExpenseCreate,
    ValidationIssue,
    ValidationResult,
)


AmountInput = Union[str, int, float, Decimal, None]
DateInput = Union[date, str, None]


class InputValidationError(ValueError):
    """Raised by the build helpers when the input has errors."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.first_error or "Invalid input")


class BillInputValidator:
    """
    Validates what the user typed into the bill and template forms.

    Thresholds (name length, amount ceiling, decimal places) come from
    AppSettings.
    """

    def __init__(self):
        self._settings = get_settings().app

    # =========================================================================
    # FIELD CHECKS
    # =========================================================================

    def _check_name(self, name: Optional[str]) -> list[ValidationIssue]:
        if name is None or not name.strip():
            return [ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
                severity="error",
                suggested_fix="Enter a name such as the provider or card",
            )]

        limit = self._settings.max_name_length
        if len(name.strip()) > limit:
            return [ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Name must be at most {limit} characters",
                severity="error",
                suggested_fix="Use a shorter name",
            )]

        return []

    def _parse_amount(
        self,
        amount: AmountInput,
    ) -> tuple[Optional[Decimal], list[ValidationIssue]]:
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            return None, [ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            )]

        try:
            # Thousands separators are allowed in typed input
            value = Decimal(str(amount).replace(",", "").strip())
        except InvalidOperation:
            value = None

        if value is None or not value.is_finite():
            return None, [ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount must be a number",
                severity="error",
                suggested_fix="Enter digits only, e.g. 1500.50",
            )]

        symbol = self._settings.currency_symbol
        issues = []

        if value <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        ceiling = self._settings.max_bill_amount
        if value > ceiling:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="too_large",
                message=f"Amount must not exceed {symbol}{ceiling:,}",
                severity="error",
                suggested_fix="Check for an extra digit",
            ))

        places = self._settings.max_decimal_places
        exponent = value.normalize().as_tuple().exponent
        if isinstance(exponent, int) and -exponent > places:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="too_precise",
                message=f"Amount can have at most {places} decimal places",
                severity="error",
                suggested_fix=f"Round to {places} decimal places",
            ))

        return value, issues

    def _parse_due_day(
        self,
        due_day: Union[int, str, None],
    ) -> tuple[Optional[int], list[ValidationIssue]]:
        if due_day is None or (isinstance(due_day, str) and not due_day.strip()):
            return None, [ValidationIssue(
                field="due_day",
                issue_type="missing",
                message="Due day is required",
                severity="error",
            )]

        try:
            day = int(due_day)
        except (TypeError, ValueError):
            day = None

        if day is None or not 1 <= day <= 31:
            return None, [ValidationIssue(
                field="due_day",
                issue_type="out_of_range",
                message="Due day must be between 1 and 31",
                severity="error",
                suggested_fix="Months with fewer days use their last day",
            )]

        return day, []

    def _parse_due_date(
        self,
        due_date: DateInput,
        today: date,
    ) -> tuple[Optional[date], list[ValidationIssue]]:
        if due_date is None or (isinstance(due_date, str) and not due_date.strip()):
            return None, [ValidationIssue(
                field="due_date",
                issue_type="missing",
                message="Due date is required",
                severity="error",
            )]

        if isinstance(due_date, str):
            try:
                parsed = date.fromisoformat(due_date.strip()[:10])
            except ValueError:
                return None, [ValidationIssue(
                    field="due_date",
                    issue_type="invalid_format",
                    message="Due date is not a valid date",
                    severity="error",
                    suggested_fix="Use the format YYYY-MM-DD",
                )]
        else:
            parsed = due_date

        if parsed < today:
            # Allowed: the bill is simply shown as overdue
            return parsed, [ValidationIssue(
                field="due_date",
                issue_type="past_date",
                message=f"Due date ({parsed.isoformat()}) is in the past",
                severity="warning",
                suggested_fix="The bill will be shown as overdue",
            )]

        return parsed, []

    # =========================================================================
    # VALIDATION ENTRY POINTS
    # =========================================================================

    def validate_bill(
        self,
        name: Optional[str],
        amount: AmountInput,
        due_date: DateInput,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Validate the one-off bill form."""
        issues = self._check_name(name)
        issues.extend(self._parse_amount(amount)[1])
        issues.extend(self._parse_due_date(due_date, today or date.today())[1])
        return _result(issues)

    def validate_recurring_expense(
        self,
        name: Optional[str],
        amount: AmountInput,
        due_day: Union[int, str, None],
    ) -> ValidationResult:
        """Validate the recurring expense form."""
        issues = self._check_name(name)
        issues.extend(self._parse_amount(amount)[1])
        issues.extend(self._parse_due_day(due_day)[1])
        return _result(issues)

    def build_bill(
        self,
        name: Optional[str],
        amount: AmountInput,
        due_date: DateInput,
        category: BillCategory = BillCategory.OTHER,
        notes: Optional[str] = None,
        today: Optional[date] = None,
    ) -> BillCreate:
        """
        Validate and build a one-off bill.

        Raises:
            InputValidationError: If any error-level issue was found
        """
        result = self.validate_bill(name, amount, due_date, today)
        if result.has_errors:
            raise InputValidationError(result)

        value, _ = self._parse_amount(amount)
        parsed_date, _ = self._parse_due_date(due_date, today or date.today())
        return BillCreate(
            name=name.strip(),
            amount=value,
            due_date=parsed_date,
            category=category,
            reminder_days_before=self._settings.default_reminder_days,
            notes=notes,
        )

    def build_recurring_expense(
        self,
        name: Optional[str],
        amount: AmountInput,
        due_day: Union[int, str, None],
        category: BillCategory = BillCategory.OTHER,
        is_installment: bool = False,
    ) -> RecurringExpenseCreate:
        """
        Validate and build a recurring expense template.

        Raises:
            InputValidationError: If any error-level issue was found
        """
        result = self.validate_recurring_expense(name, amount, due_day)
        if result.has_errors:
            raise InputValidationError(result)

        value, _ = self._parse_amount(amount)
        day, _ = self._parse_due_day(due_day)
        return RecurringExpenseCreate(
            name=name.strip(),
            amount=value,
            due_day=day,
            category=category,
            is_installment=is_installment,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the form.
        """
        warnings = [issue for issue in result.issues if issue.severity == "warning"]

        if result.is_valid and not warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)


def _result(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
    )
