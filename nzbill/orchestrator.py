"""
Session Orchestration for NzBill

This module ties together all the components and defines the
end-to-end flows for:
1. Session start (fetch bills, templates, profile → auto-generate)
2. Monthly bill auto-generation (templates → new bills → persist)
3. Form submission (raw input → validate → persist)

DESIGN DECISION: The orchestrator enforces the boundaries:
- At most one bill per template per month, even across reloads
- At most one generation pass per session
- Generated bills are written one at a time, in template order
- Every step is audited
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from nzbill.analytics import SpendingAnalytics
from nzbill.audit import AuditLogger, create_correlation_id
from nzbill.billing import generate_monthly_bills, generation_key
from nzbill.billing.generator import GenerationKey
from nzbill.config import get_settings
from nzbill.config.logging import configure_logging, get_logger
from nzbill.managers import BillManager, ProfileManager, RecurringExpenseManager
from nzbill.models.analytics import FinancialSummary
from nzbill.models.bill import (
    Bill,
    BillCategory,
    GenerationReport,
    GenerationState,
    RecurringExpense,
)
from nzbill.models.labels import Language
from nzbill.models.profile import UserSession
from nzbill.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsProfileStorage,
    GoogleSheetsRecurringExpenseStorage,
    InMemoryBillStorage,
    InMemoryProfileStorage,
    InMemoryRecurringExpenseStorage,
    StorageError,
)
from nzbill.validation import BillInputValidator, InputValidationError


logger = get_logger(__name__)


class BillAutoGenerator:
    """
    Materializes this month's recurring bills once per session.

    States:
    IDLE → start() → WAITING → run_if_ready() → GENERATING → DONE

    While WAITING, run_if_ready() does nothing until both managers have
    finished loading and at least one template exists. Templates added
    after the pass has run wait for the next session.

    The in-flight flag is set before the first await, so a second call
    made while a pass is running is rejected rather than racing it.
    """

    def __init__(
        self,
        bill_manager: BillManager,
        recurring_manager: RecurringExpenseManager,
        audit_logger: Optional[AuditLogger] = None,
        language: Optional[Language] = None,
    ):
        self._bills = bill_manager
        self._recurring = recurring_manager
        self._audit = audit_logger or AuditLogger()
        self.language = language
        self.state = GenerationState.IDLE
        self._in_flight = False
        self._generated_keys: set[GenerationKey] = set()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        if self.state == GenerationState.IDLE:
            self.state = GenerationState.WAITING

    def _skip(self, reason: str) -> GenerationReport:
        logger.debug("generation_skipped", reason=reason, state=self.state.value)
        return GenerationReport(state=self.state, skipped_reason=reason)

    async def run_if_ready(
        self,
        reference_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> GenerationReport:
        """
        Run the generation pass if the session is ready for it.

        Args:
            reference_date: Any date in the month to generate for
            today: Date used for overdue status

        Returns:
            GenerationReport; `ran` is False and `skipped_reason` is set
            when nothing was done.
        """
        if self._in_flight:
            return self._skip("in_flight")

        if self.state == GenerationState.DONE:
            return self._skip("already_done")

        self.start()

        if self._bills.loading or self._recurring.loading:
            return self._skip("loading")

        templates = self._recurring.expenses
        if not templates:
            return self._skip("no_templates")

        # Claimed before the first await
        self._in_flight = True
        self.state = GenerationState.GENERATING
        try:
            report = await self._generate(
                templates,
                reference_date or date.today(),
                today or date.today(),
            )
            self.state = GenerationState.DONE
            report.state = self.state
            return report
        finally:
            self._in_flight = False
            if self.state == GenerationState.GENERATING:
                self.state = GenerationState.WAITING

    async def _generate(
        self,
        templates: list[RecurringExpense],
        reference_date: date,
        today: date,
    ) -> GenerationReport:
        month, year = reference_date.month, reference_date.year
        correlation_id = create_correlation_id()
        user_id = self._bills.user_id

        await self._audit.log_generation_started(
            user_id=user_id,
            month=month,
            year=year,
            template_count=len(templates),
            correlation_id=correlation_id,
        )

        existing = self._bills.bills
        for bill in existing:
            if bill.recurring_expense_id and bill.falls_in(month, year):
                self._generated_keys.add(
                    generation_key(bill.recurring_expense_id, month, year)
                )

        language = self.language or Language(get_settings().app.default_language)
        result = generate_monthly_bills(
            templates,
            existing,
            reference_date=reference_date,
            today=today,
            language=language,
        )

        created: list[Bill] = []
        duplicates = 0
        failed = 0

        # One write at a time, in template order
        for bill in result.new_bills:
            key = generation_key(bill.recurring_expense_id, month, year)
            if key in self._generated_keys:
                duplicates += 1
                logger.debug(
                    "generation_duplicate_skipped",
                    recurring_expense_id=bill.recurring_expense_id,
                    month=month,
                    year=year,
                )
                continue
            self._generated_keys.add(key)

            stored = await self._bills.add_bill(
                bill.to_create(),
                correlation_id=correlation_id,
                today=today,
            )
            if stored is None:
                failed += 1
                logger.warning(
                    "generated_bill_not_saved",
                    recurring_expense_id=bill.recurring_expense_id,
                    error=self._bills.error,
                )
            else:
                created.append(stored)

        await self._audit.log_generation_completed(
            user_id=user_id,
            created=len(created),
            duplicates_skipped=duplicates,
            failed=failed,
            correlation_id=correlation_id,
        )

        return GenerationReport(
            state=GenerationState.GENERATING,
            ran=True,
            created=created,
            duplicates_skipped=duplicates,
            failed=failed,
        )


class AppSession:
    """
    Everything one signed-in user works with.

    Managers and the auto-generator are per session; starting a new
    session (e.g. after sign-in) starts a fresh generation cycle.
    """

    def __init__(
        self,
        session: UserSession,
        bill_manager: BillManager,
        recurring_manager: RecurringExpenseManager,
        profile_manager: ProfileManager,
        audit_logger: AuditLogger,
        validator: Optional[BillInputValidator] = None,
    ):
        self.session = session
        self.bills = bill_manager
        self.recurring = recurring_manager
        self.profile = profile_manager
        self.audit_logger = audit_logger
        self.validator = validator or BillInputValidator()
        self.generator = BillAutoGenerator(
            bill_manager,
            recurring_manager,
            audit_logger=audit_logger,
        )

    async def start(
        self,
        reference_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> GenerationReport:
        """
        Load the session's data, then run the monthly generation.

        Fetches run one after another so storage sees a single
        in-flight request per session.
        """
        self.generator.start()
        await self.bills.fetch()
        await self.recurring.fetch()
        await self.profile.fetch()

        # Generated names follow the user's language
        self.generator.language = self.profile.language

        report = await self.generator.run_if_ready(reference_date, today)
        logger.info(
            "session_started",
            user_id=self.session.user_id,
            bill_count=len(self.bills.bills),
            template_count=len(self.recurring.expenses),
            generation_ran=report.ran,
            skipped_reason=report.skipped_reason,
        )
        return report

    async def add_bill_from_input(
        self,
        name: Optional[str],
        amount,
        due_date,
        category: BillCategory = BillCategory.OTHER,
        notes: Optional[str] = None,
    ) -> Optional[Bill]:
        """
        Validate raw form input and persist it as a one-off bill.

        Raises:
            InputValidationError: If the form has errors
        """
        try:
            data = self.validator.build_bill(name, amount, due_date, category, notes)
        except InputValidationError as e:
            await self.audit_logger.log_validation_failed(
                entity_type="bill",
                issues=[issue.model_dump() for issue in e.result.issues],
            )
            raise
        return await self.bills.add_bill(data)

    async def add_recurring_from_input(
        self,
        name: Optional[str],
        amount,
        due_day,
        category: BillCategory = BillCategory.OTHER,
        is_installment: bool = False,
    ) -> Optional[RecurringExpense]:
        """
        Validate raw form input and persist it as a template.

        Raises:
            InputValidationError: If the form has errors
        """
        try:
            data = self.validator.build_recurring_expense(
                name, amount, due_day, category, is_installment
            )
        except InputValidationError as e:
            await self.audit_logger.log_validation_failed(
                entity_type="recurring_expense",
                issues=[issue.model_dump() for issue in e.result.issues],
            )
            raise
        return await self.recurring.add_expense(data)

    def analytics(self) -> SpendingAnalytics:
        return SpendingAnalytics(self.bills.bills)

    def financial_summary(self, today: Optional[date] = None) -> FinancialSummary:
        """Planner figures based on the profile balance."""
        if self.profile.profile is not None:
            cash = self.profile.profile.balance
        else:
            cash = Decimal("0")
        return self.analytics().financial_summary(cash, today)


def create_session(
    user_id: Optional[str],
    use_storage: bool = True,
) -> AppSession:
    """
    Factory function to create all components for one user session.

    Args:
        user_id: Signed-in user, or None when nobody is signed in
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to keep
                    data in memory.

    Returns:
        AppSession ready for `await session.start()`
    """
    configure_logging()
    session = UserSession(user_id=user_id)

    bill_storage = None
    recurring_storage = None
    profile_storage = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            bill_storage = GoogleSheetsBillStorage(sheets_client)
            recurring_storage = GoogleSheetsRecurringExpenseStorage(sheets_client)
            profile_storage = GoogleSheetsProfileStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except (StorageError, ValueError) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            bill_storage = None

    if bill_storage is None:
        bill_storage = InMemoryBillStorage()
        recurring_storage = InMemoryRecurringExpenseStorage()
        profile_storage = InMemoryProfileStorage()
        audit_logger = AuditLogger()  # Local-only logging

    return AppSession(
        session=session,
        bill_manager=BillManager(bill_storage, session, audit_logger),
        recurring_manager=RecurringExpenseManager(recurring_storage, session, audit_logger),
        profile_manager=ProfileManager(profile_storage, session, audit_logger),
        audit_logger=audit_logger,
    )
