"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation
4. Test the core without any authentication subsystem

Every store instance is scoped to ONE account. The account is chosen when
the store is constructed and no method can read or write another
account's rows.

An entity and its linked back safe transaction are always written and
deleted by a single call, so the ledger never holds a row whose source
is gone (or a transfer without its row).
"""

from abc import ABC, abstractmethod
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


class CashRecordStore(ABC):
    """
    Abstract, account-scoped interface for the four cash record collections.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @property
    @abstractmethod
    def account_id(self) -> str:
        """Account this store reads and writes."""
        pass

    # -------------------------------------------------------------------------
    # Daily entries
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_entries(self) -> list[DailyEntry]:
        """
        All entries of the account, newest date first.
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[DailyEntry]:
        """
        Retrieve an entry by its ID.

        Returns:
            The entry if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_entry_by_date(self, entry_date: date) -> Optional[DailyEntry]:
        """Retrieve the entry for a calendar day, if any."""
        pass

    @abstractmethod
    async def create_entry(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction] = None,
    ) -> DailyEntry:
        """
        Persist a new entry together with its back safe deposit.

        Args:
            entry: The entry to save
            transfer: Deposit linked to the entry, if it moved cash to the back safe

        Raises:
            DuplicateError: If the account already has an entry for that date
            StoreUnavailableError: If the backend fails
        """
        pass

    @abstractmethod
    async def update_entry(self, entry: DailyEntry) -> DailyEntry:
        """
        Replace the stored entry fields. The linked deposit is not touched.

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        pass

    @abstractmethod
    async def update_entry_with_transfer(
        self,
        entry: DailyEntry,
        transfer: Optional[BackSafeTransaction],
    ) -> DailyEntry:
        """
        Replace the entry and its linked deposit in one operation.

        Passing transfer=None removes the linked deposit.

        Raises:
            NotFoundError: If the entry doesn't exist
            DuplicateError: If the entry moved onto a date that is taken
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID) -> DailyEntry:
        """
        Delete an entry and its linked deposit.

        Returns:
            The deleted entry

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_withdrawals(self) -> list[BackSafeWithdrawal]:
        """All withdrawals of the account, newest date first."""
        pass

    @abstractmethod
    async def get_withdrawal(self, withdrawal_id: UUID) -> Optional[BackSafeWithdrawal]:
        """Retrieve a withdrawal by its ID."""
        pass

    @abstractmethod
    async def create_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        """Persist a withdrawal together with its ledger debit."""
        pass

    @abstractmethod
    async def update_withdrawal(
        self,
        withdrawal: BackSafeWithdrawal,
        transaction: BackSafeTransaction,
    ) -> BackSafeWithdrawal:
        """
        Replace a withdrawal and its ledger debit in one operation.

        Raises:
            NotFoundError: If the withdrawal doesn't exist
        """
        pass

    @abstractmethod
    async def delete_withdrawal(self, withdrawal_id: UUID) -> BackSafeWithdrawal:
        """
        Delete a withdrawal and its ledger debit.

        Raises:
            NotFoundError: If the withdrawal doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[BackSafeTransaction]:
        """All ledger rows of the account, newest date first."""
        pass

    @abstractmethod
    async def get_linked_transaction(
        self,
        entry_id: Optional[UUID] = None,
        withdrawal_id: Optional[UUID] = None,
    ) -> Optional[BackSafeTransaction]:
        """Ledger row linked to an entry or a withdrawal, if any."""
        pass

    # -------------------------------------------------------------------------
    # Monthly archives
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_archives(self) -> list[MonthlyArchive]:
        """All archives of the account, newest month first."""
        pass

    @abstractmethod
    async def get_archive(self, month: str) -> Optional[MonthlyArchive]:
        """Retrieve the archive for a "YYYY-MM" month, if any."""
        pass

    @abstractmethod
    async def save_archive(self, archive: MonthlyArchive) -> MonthlyArchive:
        """
        Insert or overwrite the archive for archive.month.

        Attached entries/withdrawals are reporting data and are not stored.
        """
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
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one entry submission).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'entry', 'withdrawal')
            entity_id: The entity's ID (or month for archives)

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StoreUnavailableError(StorageError):
    """The storage backend failed or could not be reached."""
    pass
