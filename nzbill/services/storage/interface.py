"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a hosted database later
2. Use in-memory storage for testing
3. Keep the managers decoupled from storage implementation

Every operation is scoped to a user id supplied by the session.
Implementations must raise StorageError (or a subclass) on failure;
the managers catch it and roll back their optimistic changes.
"""

from abc import ABC, abstractmethod
from typing import Optional

from nzbill.models.audit import AuditEvent
from nzbill.models.bill import (
    Bill,
    BillCreate,
    BillUpdate,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
)
from nzbill.models.profile import UserProfile


class BillStorageInterface(ABC):
    """
    Abstract interface for bill storage operations.

    Any storage implementation (Google Sheets, a hosted database, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def fetch_bills(self, user_id: str) -> list[Bill]:
        """
        Load all bills for a user, ordered by due date ascending.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def insert_bill(self, user_id: str, data: BillCreate) -> Bill:
        """
        Persist a new bill.

        Returns:
            The stored bill with its backend-assigned id and timestamps

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_bill(
        self,
        user_id: str,
        bill_id: str,
        changes: BillUpdate,
    ) -> None:
        """
        Apply a partial update to a bill.

        Raises:
            StorageError: If update fails
            NotFoundError: If bill doesn't exist
        """
        pass

    @abstractmethod
    async def delete_bill(self, user_id: str, bill_id: str) -> None:
        """
        Delete a bill by ID.

        Raises:
            StorageError: If delete fails
        """
        pass


class RecurringExpenseStorageInterface(ABC):
    """Abstract interface for recurring expense template storage."""

    @abstractmethod
    async def fetch_expenses(self, user_id: str) -> list[RecurringExpense]:
        """Load all templates for a user, newest first."""
        pass

    @abstractmethod
    async def insert_expense(
        self,
        user_id: str,
        data: RecurringExpenseCreate,
    ) -> RecurringExpense:
        """Persist a new template and return it with id and timestamps."""
        pass

    @abstractmethod
    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        changes: RecurringExpenseUpdate,
    ) -> None:
        """Apply a partial update to a template."""
        pass

    @abstractmethod
    async def delete_expense(self, user_id: str, expense_id: str) -> None:
        """Delete a template by ID."""
        pass


class ProfileStorageInterface(ABC):
    """Abstract interface for user profile storage."""

    @abstractmethod
    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        """Load a profile, or None if the user has none yet."""
        pass

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
