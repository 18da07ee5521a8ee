"""
Core Data Models for NzBill

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Support the audit trail

Two entity families live here:
- RecurringExpense: a template from which monthly bills are materialized
- Bill: a single billing-period obligation with its own paid/unpaid state
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BillCategory(str, Enum):
    """
    Supported bill categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent categorization and enables reliable grouping in analytics.
    """
    ELECTRICITY = "electricity"
    WATER = "water"
    INTERNET = "internet"
    CREDIT_CARD = "credit_card"
    PHONE = "phone"
    RENT = "rent"
    INSURANCE = "insurance"
    SUBSCRIPTION = "subscription"
    LOAN = "loan"
    OTHER = "other"


class BillStatus(str, Enum):
    """
    Display status of a bill.

    `is_paid` is the only source of truth; status is derived from it
    and from the due date.
    """
    PAID = "paid"
    UNPAID = "unpaid"
    OVERDUE = "overdue"


def derive_status(
    is_paid: bool,
    due_date: date,
    today: Optional[date] = None,
) -> BillStatus:
    """Paid wins; otherwise a bill due strictly before today is overdue."""
    if is_paid:
        return BillStatus.PAID
    today = today or date.today()
    if due_date < today:
        return BillStatus.OVERDUE
    return BillStatus.UNPAID


# =============================================================================
# RECURRING EXPENSE (TEMPLATE)
# =============================================================================

class RecurringExpenseCreate(BaseModel):
    """
    Fields a user supplies when creating a recurring expense.

    The persistence layer assigns `id` and timestamps.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount in the configured currency"
    )
    due_day: int = Field(
        ...,
        ge=1,
        le=31,
        description="Nominal day of month the expense is due"
    )
    category: BillCategory = Field(
        default=BillCategory.OTHER,
        description="Expense category"
    )
    active: bool = Field(
        default=True,
        description="Inactive templates never generate bills"
    )
    is_installment: bool = Field(
        default=False,
        description="Marks generated bill names as installments"
    )
    # Not enforced by generation, see DESIGN.md
    total_terms: Optional[int] = Field(default=None, ge=1)
    current_term: Optional[int] = Field(default=None, ge=0)


class RecurringExpense(RecurringExpenseCreate):
    """A stored recurring expense template."""

    id: str = Field(
        ...,
        min_length=1,
        description="Identifier assigned by the persistence layer"
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class RecurringExpenseUpdate(BaseModel):
    """Partial update for a template. Only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    category: Optional[BillCategory] = None
    active: Optional[bool] = None
    is_installment: Optional[bool] = None
    total_terms: Optional[int] = Field(default=None, ge=1)
    current_term: Optional[int] = Field(default=None, ge=0)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# BILL (INSTANCE)
# =============================================================================

class BillCreate(BaseModel):
    """
    Fields needed to persist a bill.

    Used both for manually entered one-off bills and for bills
    materialized by the recurring bill generator.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=250,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount in the configured currency"
    )
    due_date: date = Field(
        ...,
        description="Due date for this billing period"
    )
    category: BillCategory = Field(default=BillCategory.OTHER)
    is_paid: bool = Field(default=False)
    is_recurring: bool = Field(default=False)
    recurring_expense_id: Optional[str] = Field(
        default=None,
        description="Originating template, absent for one-off bills"
    )
    recurring_day: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Template due day at generation time"
    )
    reminder_days_before: int = Field(default=3, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)


class Bill(BillCreate):
    """
    A stored bill instance.

    Amount and category are copied from the template at generation time;
    later template edits do not change existing bills.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Identifier assigned by the persistence layer"
    )
    status: BillStatus = Field(default=BillStatus.UNPAID)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode='after')
    def sync_status_with_paid_flag(self) -> 'Bill':
        """Keep status consistent with `is_paid`."""
        if self.is_paid:
            self.status = BillStatus.PAID
        elif self.status == BillStatus.PAID:
            self.status = BillStatus.UNPAID
        return self

    def with_status(self, today: Optional[date] = None) -> 'Bill':
        """Return a copy whose status is recomputed against `today`."""
        return self.model_copy(
            update={"status": derive_status(self.is_paid, self.due_date, today)}
        )

    def to_create(self) -> BillCreate:
        """Strip identity and timestamps so the bill can be persisted."""
        return BillCreate(**self.model_dump(include=set(BillCreate.model_fields)))

    def falls_in(self, month: int, year: int) -> bool:
        """Is this bill due in the given calendar month?"""
        return self.due_date.month == month and self.due_date.year == year


class BillUpdate(BaseModel):
    """Partial update for a bill. Only fields that are set are applied."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=250)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    due_date: Optional[date] = None
    category: Optional[BillCategory] = None
    is_paid: Optional[bool] = None
    is_recurring: Optional[bool] = None
    reminder_days_before: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class OperationResult(BaseModel):
    """
    Outcome of a manager operation.

    Managers never raise storage failures to the caller; they report
    them here and keep a human-readable message for the UI.
    """

    success: bool
    error_message: Optional[str] = None
    rolled_back: bool = Field(
        default=False,
        description="Was an optimistic local change reverted?"
    )

    @classmethod
    def ok(cls) -> 'OperationResult':
        return cls(success=True)

    @classmethod
    def failed(cls, message: str, rolled_back: bool = False) -> 'OperationResult':
        return cls(success=False, error_message=message, rolled_back=rolled_back)


class GenerationResult(BaseModel):
    """Output of the recurring bill generator."""

    new_bills: list[Bill] = Field(default_factory=list)
    # Kept for interface stability; installment terms are never advanced
    updated_expenses: list[RecurringExpense] = Field(default_factory=list)


class GenerationState(str, Enum):
    """Lifecycle of the once-per-session bill auto-generation."""
    IDLE = "idle"
    WAITING = "waiting"
    GENERATING = "generating"
    DONE = "done"


class GenerationReport(BaseModel):
    """What one call to the auto-generation orchestrator did."""

    state: GenerationState
    ran: bool = Field(
        default=False,
        description="Did this call perform a generation pass?"
    )
    skipped_reason: Optional[str] = Field(
        default=None,
        description="Why no pass ran (loading, no_templates, already_done, in_flight)"
    )
    created: list[Bill] = Field(default_factory=list)
    duplicates_skipped: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)


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
        description="Type of issue (e.g., 'missing', 'invalid_format', 'too_large')"
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
    """Result of validating user input at a form boundary."""

    validated_at: datetime = Field(default_factory=_utcnow)
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)

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
        """Message of the first error, which is what a form shows."""
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None
