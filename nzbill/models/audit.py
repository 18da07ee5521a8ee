"""
Audit Models for NzBill

Every mutation of bills, templates and profiles is logged, as well as
each rollback and each auto-generation pass. This provides:
1. Traceability of what the user (or the generator) changed
2. Debugging information when the backend rejects a write
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Bills
    BILL_CREATED = "bill_created"
    BILL_UPDATED = "bill_updated"
    BILL_DELETED = "bill_deleted"
    BILL_MARKED_PAID = "bill_marked_paid"
    BILL_MARKED_UNPAID = "bill_marked_unpaid"
    STALE_BILLS_REMOVED = "stale_bills_removed"

    # Recurring expense templates
    RECURRING_CREATED = "recurring_created"
    RECURRING_UPDATED = "recurring_updated"
    RECURRING_DELETED = "recurring_deleted"

    # Profile
    PROFILE_UPDATED = "profile_updated"

    # Generation
    GENERATION_STARTED = "generation_started"
    GENERATION_COMPLETED = "generation_completed"

    # Failures
    OPTIMISTIC_ROLLBACK = "optimistic_rollback"
    FETCH_FAILED = "fetch_failed"
    SAVE_FAILED = "save_failed"
    VALIDATION_FAILED = "validation_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'bill', 'recurring_expense', 'profile')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[str] = None

    # Correlation - for tracking related events (e.g. one generation pass)
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.bill_created(bill_id, name, amount, user_id)
        event = AuditEventBuilder.rollback("bill", bill_id, "mark_as_paid", error)
    """

    @staticmethod
    def bill_created(
        bill_id: str,
        name: str,
        amount: str,
        user_id: Optional[str],
        is_recurring: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_CREATED,
            entity_type="bill",
            entity_id=bill_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Bill created: {name} - {amount}",
            details={
                "name": name,
                "amount": amount,
                "is_recurring": is_recurring,
            },
            is_user_action=not is_recurring,
        )

    @staticmethod
    def bill_changed(
        event_type: AuditEventType,
        bill_id: str,
        user_id: Optional[str],
        changes: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="bill",
            entity_id=bill_id,
            user_id=user_id,
            description=f"Bill {event_type.value.removeprefix('bill_').replace('_', ' ')}",
            details={"changes": changes or {}},
            is_user_action=True,
        )

    @staticmethod
    def stale_bills_removed(
        bill_ids: list[str],
        failed_ids: list[str],
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_BILLS_REMOVED,
            severity=AuditSeverity.WARNING if failed_ids else AuditSeverity.INFO,
            entity_type="bill",
            user_id=user_id,
            description=f"Removed {len(bill_ids)} paid bills from previous months",
            details={
                "removed": bill_ids,
                "failed": failed_ids,
            },
        )

    @staticmethod
    def recurring_changed(
        event_type: AuditEventType,
        expense_id: str,
        user_id: Optional[str],
        changes: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="recurring_expense",
            entity_id=expense_id,
            user_id=user_id,
            description=f"Recurring expense {event_type.value.removeprefix('recurring_')}",
            details={"changes": changes or {}},
            is_user_action=True,
        )

    @staticmethod
    def profile_updated(
        user_id: str,
        changes: dict,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="profile",
            entity_id=user_id,
            user_id=user_id,
            description="Profile updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def generation_started(
        user_id: Optional[str],
        month: int,
        year: int,
        template_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATION_STARTED,
            entity_type="generation",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Generating bills for {year}-{month:02d}",
            details={
                "month": month,
                "year": year,
                "template_count": template_count,
            },
        )

    @staticmethod
    def generation_completed(
        user_id: Optional[str],
        created: int,
        duplicates_skipped: int,
        failed: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GENERATION_COMPLETED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            entity_type="generation",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Generation completed: {created} bills created",
            details={
                "created": created,
                "duplicates_skipped": duplicates_skipped,
                "failed": failed,
            },
        )

    @staticmethod
    def rollback(
        entity_type: str,
        entity_id: str,
        operation: str,
        error_message: str,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPTIMISTIC_ROLLBACK,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"Rolled back {operation} on {entity_type}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def storage_failed(
        event_type: AuditEventType,
        entity_type: str,
        error_message: str,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            user_id=user_id,
            description=f"Storage {event_type.value.replace('_', ' ')} for {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def validation_failed(
        entity_type: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Input validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
