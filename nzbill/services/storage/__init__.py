"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests
and offline use.
"""

from nzbill.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    NotFoundError,
    ProfileStorageInterface,
    RecurringExpenseStorageInterface,
    StorageError,
)
from nzbill.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryProfileStorage,
    InMemoryRecurringExpenseStorage,
)
from nzbill.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsProfileStorage,
    GoogleSheetsRecurringExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BillStorageInterface",
    "ProfileStorageInterface",
    "RecurringExpenseStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "InMemoryProfileStorage",
    "InMemoryRecurringExpenseStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "GoogleSheetsProfileStorage",
    "GoogleSheetsRecurringExpenseStorage",
]
