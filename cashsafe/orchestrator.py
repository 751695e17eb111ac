"""
Main Orchestrator for Cash Safe Reconciler

This module ties together all the components behind one facade per
account:
1. Daily entries (submit → reconcile → approve / edit / delete)
2. Back safe (transfers, withdrawals, ledger checks)
3. Month close and reports

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every store is scoped to one account, chosen at construction
- No operation writes before its validation has passed
- Every step is audited

Callers (a UI, a script) talk to CashOffice only; they never touch the
record store directly.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from cashsafe.audit import AuditLogger, configure_logging
from cashsafe.config import get_settings
from cashsafe.config.settings import AppSettings
from cashsafe.core import (
    BackSafeLedger,
    BalanceDeriver,
    LedgerIssue,
    MonthCloser,
    ReconciliationEngine,
)
from cashsafe.models.cash import (
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    EntryUpdate,
    MonthlyArchive,
    MonthSummary,
    SafeBalances,
)
from cashsafe.queries import RECENT_ENTRY_LIMIT, ReportExecutor
from cashsafe.services.storage import (
    CashRecordStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsCashStore,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBackend,
    InMemoryCashStore,
)
from cashsafe.validation import CashValidator


logger = structlog.get_logger(__name__)


class CashOffice:
    """
    Facade over the cash reconciliation core for one account.

    All components share one store, one balance deriver and one audit
    logger, so they see the same records.
    """

    def __init__(
        self,
        store: CashRecordStore,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        validator = CashValidator(settings)

        self._balances = BalanceDeriver(store)
        self._engine = ReconciliationEngine(
            store,
            validator=validator,
            deriver=self._balances,
            audit_logger=audit_logger,
        )
        self._ledger = BackSafeLedger(
            store,
            validator=validator,
            deriver=self._balances,
            audit_logger=audit_logger,
        )
        self._closer = MonthCloser(
            store,
            deriver=self._balances,
            audit_logger=audit_logger,
            settings=settings,
        )
        self._reports = ReportExecutor(store)

    @property
    def account_id(self) -> str:
        return self._store.account_id

    @property
    def store(self) -> CashRecordStore:
        return self._store

    @property
    def audit_logger(self) -> Optional[AuditLogger]:
        return self._audit_logger

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    async def get_front_safe_balance(self) -> Decimal:
        return await self._balances.get_front_safe_balance()

    async def get_back_safe_balance(self) -> Decimal:
        return await self._balances.get_back_safe_balance()

    async def get_balances(self) -> SafeBalances:
        return await self._balances.get_balances()

    async def balances_as_of(self, day: date) -> SafeBalances:
        return await self._balances.balances_as_of(day)

    # -------------------------------------------------------------------------
    # Daily entries
    # -------------------------------------------------------------------------

    async def submit_entry(
        self,
        entry_date: date,
        cash_in,
        deposited,
        to_back_safe,
        actual_left_in_front,
        notes: Optional[str] = None,
    ) -> DailyEntry:
        return await self._engine.submit_entry(
            entry_date=entry_date,
            cash_in=cash_in,
            deposited=deposited,
            to_back_safe=to_back_safe,
            actual_left_in_front=actual_left_in_front,
            notes=notes,
        )

    async def edit_entry(self, entry_id: UUID, update: EntryUpdate) -> DailyEntry:
        return await self._engine.edit_entry(entry_id, update)

    async def approve(self, entry_id: UUID, note: str) -> DailyEntry:
        return await self._engine.approve(entry_id, note)

    async def remove_approval(self, entry_id: UUID) -> DailyEntry:
        return await self._engine.remove_approval(entry_id)

    async def delete_entry(self, entry_id: UUID) -> DailyEntry:
        return await self._engine.delete_entry(entry_id)

    async def get_entry(self, entry_id: UUID) -> Optional[DailyEntry]:
        return await self._engine.get_entry(entry_id)

    async def list_entries(self, month: Optional[str] = None) -> list[DailyEntry]:
        return await self._engine.list_entries(month)

    async def unresolved_entries(self, month: Optional[str] = None) -> list[DailyEntry]:
        return await self._engine.unresolved_entries(month)

    # -------------------------------------------------------------------------
    # Back safe
    # -------------------------------------------------------------------------

    async def record_withdrawal(
        self,
        amount,
        reason: str,
        withdrawal_date: Optional[date] = None,
    ) -> BackSafeWithdrawal:
        return await self._ledger.record_withdrawal(amount, reason, withdrawal_date)

    async def edit_withdrawal(
        self,
        withdrawal_id: UUID,
        new_amount,
        new_reason: str,
        new_date: Optional[date] = None,
    ) -> BackSafeWithdrawal:
        return await self._ledger.edit_withdrawal(
            withdrawal_id, new_amount, new_reason, new_date
        )

    async def delete_withdrawal(self, withdrawal_id: UUID) -> BackSafeWithdrawal:
        return await self._ledger.delete_withdrawal(withdrawal_id)

    async def list_withdrawals(self, month: Optional[str] = None) -> list[BackSafeWithdrawal]:
        return await self._ledger.list_withdrawals(month)

    async def list_transactions(self, month: Optional[str] = None) -> list[BackSafeTransaction]:
        return await self._ledger.list_transactions(month)

    async def verify_ledger(self) -> list[LedgerIssue]:
        return await self._ledger.verify_links()

    # -------------------------------------------------------------------------
    # Month close
    # -------------------------------------------------------------------------

    async def close_month(
        self,
        month: str,
        as_of_period_end: Optional[bool] = None,
    ) -> MonthlyArchive:
        return await self._closer.close_month(month, as_of_period_end)

    async def get_month_starting_balances(self, month: str) -> SafeBalances:
        return await self._closer.get_month_starting_balances(month)

    async def is_month_closed(self, month: str) -> bool:
        return await self._closer.is_month_closed(month)

    async def get_archive(self, month: str) -> Optional[MonthlyArchive]:
        return await self._closer.get_archive(month)

    async def list_archives(self) -> list[MonthlyArchive]:
        return await self._closer.list_archives()

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def month_summary(self, month: str) -> MonthSummary:
        return await self._reports.month_summary(month)

    async def available_months(self) -> list[str]:
        return await self._reports.available_months()

    async def recent_entries(self, limit: int = RECENT_ENTRY_LIMIT) -> list[DailyEntry]:
        return await self._reports.recent_entries(limit)


def create_app_components(
    account_id: Optional[str] = None,
    use_storage: bool = True,
    backend: Optional[InMemoryBackend] = None,
) -> CashOffice:
    """
    Factory function to create a CashOffice.

    Args:
        account_id: Account to operate on. Defaults to the ACCOUNT_ID setting.
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.
        backend: In-memory backend to share between accounts when
                 Google Sheets is not used.

    Returns:
        A CashOffice for the account
    """
    settings = get_settings().app
    configure_logging(settings.log_level)
    account_id = account_id or settings.account_id

    if use_storage and settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            # Fail here rather than on the first operation
            sheets_client.get_spreadsheet()
            store = GoogleSheetsCashStore(account_id, sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client), account_id)
            return CashOffice(store, audit_logger, settings)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning(
                "storage_not_configured",
                error=str(e),
                fallback="memory",
                account_id=account_id,
            )

    store = InMemoryCashStore(account_id, backend)
    audit_logger = AuditLogger(InMemoryAuditStorage(), account_id)
    return CashOffice(store, audit_logger, settings)
