"""
Audit Logger

DESIGN DECISION: Every mutation in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability when the backend rejects writes
3. User can see history of their bills

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

from nzbill.config.logging import get_logger
from nzbill.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from nzbill.services.storage import AuditStorageInterface, StorageError


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_bill_created(
        self,
        bill_id: str,
        name: str,
        amount: str,
        user_id: Optional[str],
        is_recurring: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log bill creation."""
        await self.log(AuditEventBuilder.bill_created(
            bill_id=bill_id,
            name=name,
            amount=amount,
            user_id=user_id,
            is_recurring=is_recurring,
            correlation_id=correlation_id,
        ))

    async def log_bill_changed(
        self,
        event_type: AuditEventType,
        bill_id: str,
        user_id: Optional[str],
        changes: Optional[dict] = None,
    ) -> None:
        """Log an update, deletion or paid/unpaid toggle."""
        await self.log(AuditEventBuilder.bill_changed(
            event_type=event_type,
            bill_id=bill_id,
            user_id=user_id,
            changes=changes,
        ))

    async def log_stale_bills_removed(
        self,
        bill_ids: list[str],
        failed_ids: list[str],
        user_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.stale_bills_removed(
            bill_ids=bill_ids,
            failed_ids=failed_ids,
            user_id=user_id,
        ))

    async def log_recurring_changed(
        self,
        event_type: AuditEventType,
        expense_id: str,
        user_id: Optional[str],
        changes: Optional[dict] = None,
    ) -> None:
        """Log a template creation, update or deletion."""
        await self.log(AuditEventBuilder.recurring_changed(
            event_type=event_type,
            expense_id=expense_id,
            user_id=user_id,
            changes=changes,
        ))

    async def log_profile_updated(self, user_id: str, changes: dict) -> None:
        await self.log(AuditEventBuilder.profile_updated(
            user_id=user_id,
            changes=changes,
        ))

    async def log_generation_started(
        self,
        user_id: Optional[str],
        month: int,
        year: int,
        template_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.generation_started(
            user_id=user_id,
            month=month,
            year=year,
            template_count=template_count,
            correlation_id=correlation_id,
        ))

    async def log_generation_completed(
        self,
        user_id: Optional[str],
        created: int,
        duplicates_skipped: int,
        failed: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.generation_completed(
            user_id=user_id,
            created=created,
            duplicates_skipped=duplicates_skipped,
            failed=failed,
            correlation_id=correlation_id,
        ))

    async def log_rollback(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        error_message: str,
        user_id: Optional[str],
    ) -> None:
        """Log that an optimistic change was reverted."""
        await self.log(AuditEventBuilder.rollback(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            error_message=error_message,
            user_id=user_id,
        ))

    async def log_storage_failed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        error_message: str,
        user_id: Optional[str],
    ) -> None:
        """Log a failed fetch or save that had no local change to revert."""
        await self.log(AuditEventBuilder.storage_failed(
            event_type=event_type,
            entity_type=entity_type,
            error_message=error_message,
            user_id=user_id,
        ))

    async def log_validation_failed(
        self,
        entity_type: str,
        issues: list[dict],
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            entity_type=entity_type,
            issues=issues,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g., a generation pass).
    Pass it through all subsequent operations.
    """
    return uuid4()
