"""
Data Models Package

This package contains all Pydantic models used in NzBill.
All data flowing through the system must conform to these schemas.
"""

from nzbill.models.bill import (
    Bill,
    BillCategory,
    BillCreate,
    BillStatus,
    BillUpdate,
    GenerationReport,
    GenerationResult,
    GenerationState,
    OperationResult,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
    ValidationIssue,
    ValidationResult,
    derive_status,
)
from nzbill.models.labels import (
    Language,
    category_label,
    installment_name,
    month_abbreviation,
)
from nzbill.models.profile import UserProfile, UserSession
from nzbill.models.analytics import (
    CategoryTotal,
    FinancialHealth,
    FinancialSummary,
    MonthlyStats,
    TrendPoint,
)
from nzbill.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bill models
    "Bill",
    "BillCategory",
    "BillCreate",
    "BillStatus",
    "BillUpdate",
    "GenerationReport",
    "GenerationResult",
    "GenerationState",
    "OperationResult",
    "RecurringExpense",
    "RecurringExpenseCreate",
    "RecurringExpenseUpdate",
    "ValidationIssue",
    "ValidationResult",
    "derive_status",
    # Labels
    "Language",
    "category_label",
    "installment_name",
    "month_abbreviation",
    # Profile models
    "UserProfile",
    "UserSession",
    # Analytics models
    "CategoryTotal",
    "FinancialHealth",
    "FinancialSummary",
    "MonthlyStats",
    "TrendPoint",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
