"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted backend because:
1. Users can view and fix their data directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No uniqueness constraints (the generator's idempotence check and
  sequential writes cover this)
- No transactions (the managers roll back their local state instead)
- Limited query capabilities (we filter in Python)

Data writes are never retried here: a retried append could create a
duplicate bill. Only the connection handshake is retried.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from nzbill.config import get_settings
from nzbill.models.audit import AuditEvent, AuditEventType, AuditSeverity
from nzbill.models.bill import (
    Bill,
    BillCategory,
    BillCreate,
    BillUpdate,
    RecurringExpense,
    RecurringExpenseCreate,
    RecurringExpenseUpdate,
    derive_status,
)
from nzbill.models.labels import Language
from nzbill.models.profile import UserProfile
from nzbill.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ConnectionError,
    NotFoundError,
    ProfileStorageInterface,
    RecurringExpenseStorageInterface,
    StorageError,
)
from nzbill.utils.dates import current_timestamp


# Column mappings for Bills sheet
BILL_COLUMNS = [
    "id",
    "user_id",
    "name",
    "amount",
    "due_date",
    "category",
    "is_paid",
    "is_recurring",
    "recurring_expense_id",
    "recurring_day",
    "reminder_days_before",
    "notes",
    "created_at",
    "updated_at",
]

# Column mappings for RecurringExpenses sheet
RECURRING_COLUMNS = [
    "id",
    "user_id",
    "name",
    "amount",
    "due_day",
    "category",
    "active",
    "is_installment",
    "total_terms",
    "current_term",
    "created_at",
    "updated_at",
]

# Column mappings for Profiles sheet
PROFILE_COLUMNS = [
    "user_id",
    "balance",
    "level",
    "language",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _flag(value: str) -> bool:
    return value.strip().lower() == "true"


def _optional_int(value: str) -> Optional[int]:
    return int(value) if value else None


def _column_letter(index: int) -> str:
    """1-based column index to A1 letter(s)."""
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for the connection.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_bills_sheet(self) -> gspread.Worksheet:
        """Get or create the Bills worksheet."""
        return self._get_or_create_sheet(self._settings.bills_sheet_name, BILL_COLUMNS)

    def get_recurring_sheet(self) -> gspread.Worksheet:
        """Get or create the RecurringExpenses worksheet."""
        return self._get_or_create_sheet(
            self._settings.recurring_sheet_name, RECURRING_COLUMNS
        )

    def get_profiles_sheet(self) -> gspread.Worksheet:
        """Get or create the Profiles worksheet."""
        return self._get_or_create_sheet(
            self._settings.profiles_sheet_name, PROFILE_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class _SheetTable:
    """
    Row lookup helpers shared by the per-entity storages.

    The first column holds the entity id and the second the owning user id.
    """

    def __init__(self, get_sheet: Callable[[], gspread.Worksheet]):
        self._get_sheet = get_sheet

    def rows_for_user(self, user_id: str) -> list[list]:
        all_rows = self._get_sheet().get_all_values()[1:]  # Skip header
        return [row for row in all_rows if len(row) > 1 and row[1] == user_id]

    def find_row_index(self, sheet: gspread.Worksheet, entity_id: str, user_id: str) -> Optional[int]:
        """Sheet row number (1-based, header is row 1) of an entity."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if len(row) > 1 and row[0] == entity_id and row[1] == user_id:
                return idx
        return None

    def replace_row(self, sheet: gspread.Worksheet, index: int, row: list) -> None:
        end = _column_letter(len(row))
        sheet.update(
            range_name=f"A{index}:{end}{index}",
            values=[row],
            value_input_option="RAW",
        )


class GoogleSheetsBillStorage(BillStorageInterface):
    """
    Google Sheets implementation of bill storage.

    Bills are stored as rows in a worksheet with one bill per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(self._client.get_bills_sheet)

    def _bill_to_row(self, user_id: str, bill: Bill) -> list:
        """Convert a Bill to a spreadsheet row."""
        return [
            bill.id,
            user_id,
            bill.name,
            str(bill.amount),
            bill.due_date.isoformat(),
            bill.category.value,
            str(bill.is_paid),
            str(bill.is_recurring),
            bill.recurring_expense_id or "",
            str(bill.recurring_day) if bill.recurring_day else "",
            str(bill.reminder_days_before),
            bill.notes or "",
            bill.created_at.isoformat(),
            bill.updated_at.isoformat(),
        ]

    def _row_to_bill(self, row: list) -> Bill:
        """Convert a spreadsheet row to a Bill."""
        is_paid = _flag(_cell(row, 6))
        due_date = date.fromisoformat(_cell(row, 4)[:10])
        return Bill(
            id=_cell(row, 0),
            name=_cell(row, 2),
            amount=Decimal(_cell(row, 3)),
            due_date=due_date,
            category=BillCategory(_cell(row, 5, BillCategory.OTHER.value)),
            is_paid=is_paid,
            status=derive_status(is_paid, due_date),
            is_recurring=_flag(_cell(row, 7)),
            recurring_expense_id=_cell(row, 8) or None,
            recurring_day=_optional_int(_cell(row, 9)),
            reminder_days_before=int(_cell(row, 10, "3")),
            notes=_cell(row, 11) or None,
            created_at=datetime.fromisoformat(_cell(row, 12)),
            updated_at=datetime.fromisoformat(_cell(row, 13)),
        )

    async def fetch_bills(self, user_id: str) -> list[Bill]:
        """Load a user's bills ordered by due date."""
        try:
            bills = []
            for row in self._table.rows_for_user(user_id):
                if not row[0]:
                    continue
                bills.append(self._row_to_bill(row))
            bills.sort(key=lambda b: b.due_date)
            return bills
        except Exception as e:
            raise StorageError(f"Failed to fetch bills: {e}")

    async def insert_bill(self, user_id: str, data: BillCreate) -> Bill:
        """Append a bill row and return the stored bill."""
        try:
            now = current_timestamp()
            bill = Bill(
                **data.model_dump(),
                id=str(uuid4()),
                status=derive_status(data.is_paid, data.due_date),
                created_at=now,
                updated_at=now,
            )
            sheet = self._client.get_bills_sheet()
            sheet.append_row(self._bill_to_row(user_id, bill), value_input_option="RAW")
            return bill
        except Exception as e:
            raise StorageError(f"Failed to save bill: {e}")

    async def update_bill(
        self,
        user_id: str,
        bill_id: str,
        changes: BillUpdate,
    ) -> None:
        """Apply a partial update to a bill row."""
        try:
            sheet = self._client.get_bills_sheet()
            index = self._table.find_row_index(sheet, bill_id, user_id)
            if index is None:
                raise NotFoundError(f"Bill not found: {bill_id}")

            current = self._row_to_bill(sheet.row_values(index))
            updated = Bill.model_validate({
                **current.model_dump(),
                **changes.changes(),
                "updated_at": current_timestamp(),
            })
            self._table.replace_row(sheet, index, self._bill_to_row(user_id, updated))
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bill: {e}")

    async def delete_bill(self, user_id: str, bill_id: str) -> None:
        """Delete a bill row by ID."""
        try:
            sheet = self._client.get_bills_sheet()
            index = self._table.find_row_index(sheet, bill_id, user_id)
            if index is not None:
                sheet.delete_rows(index)
        except Exception as e:
            raise StorageError(f"Failed to delete bill: {e}")


class GoogleSheetsRecurringExpenseStorage(RecurringExpenseStorageInterface):
    """Google Sheets implementation of recurring expense storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(self._client.get_recurring_sheet)

    def _expense_to_row(self, user_id: str, expense: RecurringExpense) -> list:
        """Convert a RecurringExpense to a spreadsheet row."""
        return [
            expense.id,
            user_id,
            expense.name,
            str(expense.amount),
            str(expense.due_day),
            expense.category.value,
            str(expense.active),
            str(expense.is_installment),
            str(expense.total_terms) if expense.total_terms else "",
            str(expense.current_term) if expense.current_term is not None else "",
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> RecurringExpense:
        """Convert a spreadsheet row to a RecurringExpense."""
        return RecurringExpense(
            id=_cell(row, 0),
            name=_cell(row, 2),
            amount=Decimal(_cell(row, 3)),
            due_day=int(_cell(row, 4)),
            category=BillCategory(_cell(row, 5, BillCategory.OTHER.value)),
            active=_flag(_cell(row, 6, "True")),
            is_installment=_flag(_cell(row, 7)),
            total_terms=_optional_int(_cell(row, 8)),
            current_term=_optional_int(_cell(row, 9)),
            created_at=datetime.fromisoformat(_cell(row, 10)),
            updated_at=datetime.fromisoformat(_cell(row, 11)),
        )

    async def fetch_expenses(self, user_id: str) -> list[RecurringExpense]:
        """Load a user's templates, newest first."""
        try:
            expenses = [
                self._row_to_expense(row)
                for row in self._table.rows_for_user(user_id)
                if row[0]
            ]
            expenses.sort(key=lambda e: e.created_at, reverse=True)
            return expenses
        except Exception as e:
            raise StorageError(f"Failed to fetch recurring expenses: {e}")

    async def insert_expense(
        self,
        user_id: str,
        data: RecurringExpenseCreate,
    ) -> RecurringExpense:
        try:
            now = current_timestamp()
            expense = RecurringExpense(
                **data.model_dump(),
                id=str(uuid4()),
                created_at=now,
                updated_at=now,
            )
            sheet = self._client.get_recurring_sheet()
            sheet.append_row(
                self._expense_to_row(user_id, expense),
                value_input_option="RAW",
            )
            return expense
        except Exception as e:
            raise StorageError(f"Failed to save recurring expense: {e}")

    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        changes: RecurringExpenseUpdate,
    ) -> None:
        try:
            sheet = self._client.get_recurring_sheet()
            index = self._table.find_row_index(sheet, expense_id, user_id)
            if index is None:
                raise NotFoundError(f"Recurring expense not found: {expense_id}")

            current = self._row_to_expense(sheet.row_values(index))
            updated = RecurringExpense.model_validate({
                **current.model_dump(),
                **changes.changes(),
                "updated_at": current_timestamp(),
            })
            self._table.replace_row(
                sheet, index, self._expense_to_row(user_id, updated)
            )
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update recurring expense: {e}")

    async def delete_expense(self, user_id: str, expense_id: str) -> None:
        try:
            sheet = self._client.get_recurring_sheet()
            index = self._table.find_row_index(sheet, expense_id, user_id)
            if index is not None:
                sheet.delete_rows(index)
        except Exception as e:
            raise StorageError(f"Failed to delete recurring expense: {e}")


class GoogleSheetsProfileStorage(ProfileStorageInterface):
    """Google Sheets implementation of profile storage. One row per user."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _profile_to_row(self, profile: UserProfile) -> list:
        return [
            profile.user_id,
            str(profile.balance),
            str(profile.level),
            profile.language.value,
            profile.updated_at.isoformat(),
        ]

    def _row_to_profile(self, row: list) -> UserProfile:
        return UserProfile(
            user_id=_cell(row, 0),
            balance=Decimal(_cell(row, 1, "0")),
            level=int(_cell(row, 2, "1")),
            language=Language(_cell(row, 3, Language.TH.value)),
            updated_at=datetime.fromisoformat(_cell(row, 4)),
        )

    def _find(self, sheet: gspread.Worksheet, user_id: str) -> tuple[Optional[int], Optional[list]]:
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == user_id:
                return idx, row
        return None, None

    async def fetch_profile(self, user_id: str) -> Optional[UserProfile]:
        try:
            sheet = self._client.get_profiles_sheet()
            _, row = self._find(sheet, user_id)
            return self._row_to_profile(row) if row else None
        except Exception as e:
            raise StorageError(f"Failed to fetch profile: {e}")

    async def save_profile(self, profile: UserProfile) -> None:
        try:
            sheet = self._client.get_profiles_sheet()
            stored = profile.model_copy(update={"updated_at": current_timestamp()})
            row = self._profile_to_row(stored)
            index, _ = self._find(sheet, profile.user_id)
            if index is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{index}:{_column_letter(len(row))}{index}",
                    values=[row],
                    value_input_option="RAW",
                )
        except Exception as e:
            raise StorageError(f"Failed to save profile: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=_cell(row, 5) or None,
            user_id=_cell(row, 6) or None,
            correlation_id=UUID(_cell(row, 7)) if _cell(row, 7) else None,
            description=_cell(row, 8),
            details=json.loads(_cell(row, 9)) if _cell(row, 9) else {},
            error_message=_cell(row, 10) or None,
            is_user_action=_flag(_cell(row, 11)),
        )

    def _parse_rows(self, rows: list[list], keep: Callable[[list], bool]) -> list[AuditEvent]:
        events = []
        for row in rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
            events = self._parse_rows(
                all_rows,
                lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id,
            )
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
            events = self._parse_rows(all_rows, lambda row: True)
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
