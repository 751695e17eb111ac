"""
In-Memory Storage Implementation

Used by the test-suite and as the fallback store when Google Sheets is not
configured. All accounts live in one InMemoryBackend; each
InMemoryCashStore only ever sees the slice for its own account.

Every write happens under a single lock acquisition, so the
entity + linked-transaction operations are atomic.
"""

import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Optional
from uuid import UUID

from cashsafe.models.cash import (
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    MonthlyArchive,
)
from cashsafe.models.audit import AuditEvent
from cashsafe.services.storage.interface import (
    AuditStorageInterface,
    CashRecordStore,
    DuplicateError,
    NotFoundError,
)


@dataclass
class _AccountRecords:
    entries: dict[UUID, DailyEntry] = field(default_factory=dict)
    withdrawals: dict[UUID, BackSafeWithdrawal] = field(default_factory=dict)
    transactions: dict[UUID, BackSafeTransaction] = field(default_factory=dict)
    archives: dict[str, MonthlyArchive] = field(default_factory=dict)


class InMemoryBackend:
    """Process-local record storage shared by all account-scoped stores."""

    def __init__(self):
        self._accounts: dict[str, _AccountRecords] = {}
        self.lock = threading.RLock()

    def records(self, account_id: str) -> _AccountRecords:
        with self.lock:
            return self._accounts.setdefault(account_id, _AccountRecords())


class InMemoryCashStore(CashRecordStore):
    """
    In-memory implementation of the cash record store.

    Stored models are copied on the way in and on the way out so callers
    can never mutate stored state behind the store's back.
    """

    def __init__(self, account_id: str, backend: Optional[InMemoryBackend] = None):
        if not account_id:
            raise ValueError("account_id is required")
        self._account_id = account_id
        self._backend = backend or InMemoryBackend()

    @property
    def account_id(self) -> str:
        return self._account_id

    @property
    def _records(self) -> _AccountRecords:
        return self._backend.records(self._account_id)

    # -------------------------------------------------------------------------
    # Daily entries
    # -------------------------------------------------------------------------

    async def list_entries(self) -> list[DailyEntry]:
        with self._backend.lock:
            entries = [e.model_copy(deep=True) for e in self._records.entries.values()]
        entries.sort(key=lambda e: e.entry_date, reverse=True)
        return entries

    async def get_entry(self, entry_id: UUID) -> Optional[DailyEntry]:
        with self._backend.lock:
            entry = self._records.entries.get(entry_id)
            return entry.model_copy(deep=True) if entry else None

    async def get_entry_by_date(self, entry_date: date) -> Optional[DailyEntry]:
        with self._backend.lock:
            for entry in self._records.entries.values():
                if entry.entry_date == entry_date:
                    return entry.model_copy(deep=True)
        return None

    def _check_date_free(self, entry: DailyEntry) -> None:
        for other in self._records.entries.values():
            if other.entry_date == entry.entry_date and other.id != entry.id:
                raise DuplicateError(
                    f"Entry already exists for {entry.entry_date.isoformat()}"
                )

    def _drop_linked(self, entry_id: Optional[UUID] = None, withdrawal_id: Optional[UUID] = None) -> list[BackSafeTransaction]:
        records = self._records
        linked = [
            t for t in records.transactions.values()
            if (entry_id and t.entry_id == entry_id)
            or (withdrawal_id and t.withdrawal_id == withdrawal_id)
        ]
        for transaction in linked:
            del records.transactions[transaction.id]
        return linked

    async def create_entry(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction] = None,
    ) -> DailyEntry:
        with self._backend.lock:
            records = self._records
            if entry.id in records.entries:
                raise DuplicateError(f"Entry already exists: {entry.id}")
            self._check_date_free(entry)
            records.entries[entry.id] = entry.model_copy(deep=True)
            if transfer is not None:
                records.transactions[transfer.id] = transfer
        return entry

    async def update_entry(self, entry: DailyEntry) -> DailyEntry:
        with self._backend.lock:
            records = self._records
            if entry.id not in records.entries:
                raise NotFoundError(f"Entry not found: {entry.id}")
            self._check_date_free(entry)
            records.entries[entry.id] = entry.model_copy(deep=True)
        return entry

    async def update_entry_with_transfer(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction],
    ) -> DailyEntry:
        with self._backend.lock:
            records = self._records
            if entry.id not in records.entries:
                raise NotFoundError(f"Entry not found: {entry.id}")
            self._check_date_free(entry)
            self._drop_linked(entry_id=entry.id)
            records.entries[entry.id] = entry.model_copy(deep=True)
            if transfer is not None:
                records.transactions[transfer.id] = transfer
        return entry

    async def delete_entry(self, entry_id: UUID) -> DailyEntry:
        with self._backend.lock:
            records = self._records
            entry = records.entries.pop(entry_id, None)
            if entry is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            self._drop_linked(entry_id=entry_id)
        return entry

    # -------------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------------

    async def list_withdrawals(self) -> list[BackSafeWithdrawal]:
        with self._backend.lock:
            withdrawals = [w.model_copy(deep=True) for w in self._records.withdrawals.values()]
        withdrawals.sort(key=lambda w: (w.withdrawal_date, w.created_at), reverse=True)
        return withdrawals

    async def get_withdrawal(self, withdrawal_id: UUID) -> Optional[BackSafeWithdrawal]:
        with self._backend.lock:
            withdrawal = self._records.withdrawals.get(withdrawal_id)
            return withdrawal.model_copy(deep=True) if withdrawal else None

    async def create_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        with self._backend.lock:
            records = self._records
            if withdrawal.id in records.withdrawals:
                raise DuplicateError(f"Withdrawal already exists: {withdrawal.id}")
            records.withdrawals[withdrawal.id] = withdrawal.model_copy(deep=True)
            records.transactions[transaction.id] = transaction
        return withdrawal

    async def update_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        with self._backend.lock:
            records = self._records
            if withdrawal.id not in records.withdrawals:
                raise NotFoundError(f"Withdrawal not found: {withdrawal.id}")
            self._drop_linked(withdrawal_id=withdrawal.id)
            records.withdrawals[withdrawal.id] = withdrawal.model_copy(deep=True)
            records.transactions[transaction.id] = transaction
        return withdrawal

    async def delete_withdrawal(self, withdrawal_id: UUID) -> BackSafeWithdrawal:
        with self._backend.lock:
            records = self._records
            withdrawal = records.withdrawals.pop(withdrawal_id, None)
            if withdrawal is None:
                raise NotFoundError(f"Withdrawal not found: {withdrawal_id}")
            self._drop_linked(withdrawal_id=withdrawal_id)
        return withdrawal

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[BackSafeTransaction]:
        with self._backend.lock:
            transactions = list(self._records.transactions.values())
        transactions.sort(key=lambda t: (t.transaction_date, t.created_at), reverse=True)
        return transactions

    async def get_linked_transaction(
        self,
        entry_id: Optional[UUID] = None,
        withdrawal_id: Optional[UUID] = None,
    ) -> Optional[BackSafeTransaction]:
        if entry_id is None and withdrawal_id is None:
            raise ValueError("entry_id or withdrawal_id is required")
        with self._backend.lock:
            for transaction in self._records.transactions.values():
                if entry_id and transaction.entry_id == entry_id:
                    return transaction
                if withdrawal_id and transaction.withdrawal_id == withdrawal_id:
                    return transaction
        return None

    # -------------------------------------------------------------------------
    # Monthly archives
    # -------------------------------------------------------------------------

    async def list_archives(self) -> list[MonthlyArchive]:
        with self._backend.lock:
            archives = [a.model_copy(deep=True) for a in self._records.archives.values()]
        archives.sort(key=lambda a: a.month, reverse=True)
        return archives

    async def get_archive(self, month: str) -> Optional[MonthlyArchive]:
        with self._backend.lock:
            archive = self._records.archives.get(month)
            return archive.model_copy(deep=True) if archive else None

    async def save_archive(self, archive: MonthlyArchive) -> MonthlyArchive:
        stored = archive.model_copy(update={"entries": [], "withdrawals": []})
        with self._backend.lock:
            self._records.archives[archive.month] = stored
        return archive


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == str(entity_id)
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
