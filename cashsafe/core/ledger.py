"""
Back Safe Ledger

The back safe balance is the signed sum of its ledger. A ledger row is
only ever written or removed together with its source:

- a DEPOSIT row per daily entry with to_back_safe > 0
- a WITHDRAWAL row per BackSafeWithdrawal

Withdrawals are checked against the current balance before anything is
written, so a rejected withdrawal leaves the balance untouched.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from cashsafe.audit import AuditLogger, create_correlation_id
from cashsafe.core.balances import BalanceDeriver
from cashsafe.core.base import AuditedComponent
from cashsafe.core.periods import validate_month
from cashsafe.exceptions import InsufficientFundsError
from cashsafe.models.cash import (
    ZERO,
    BackSafeTransaction,
    BackSafeWithdrawal,
    DailyEntry,
    TransactionType,
)
from cashsafe.services.storage import CashRecordStore, NotFoundError
from cashsafe.validation import CashValidator


def transfer_reason(entry_date: date) -> str:
    return f"Transfer from daily entry {entry_date.isoformat()}"


def build_transfer(
    entry: DailyEntry,
    existing: Optional[BackSafeTransaction] = None,
) -> Optional[BackSafeTransaction]:
    """
    The deposit that must be linked to an entry.

    Returns None when the entry moved nothing to the back safe. When the
    entry already has a deposit, its id and created_at are kept so the
    row is replaced in place.
    """
    if entry.to_back_safe <= ZERO:
        return None

    fields = dict(
        transaction_date=entry.entry_date,
        transaction_type=TransactionType.DEPOSIT,
        amount=entry.to_back_safe,
        reason=transfer_reason(entry.entry_date),
        entry_id=entry.id,
    )
    if existing is not None:
        fields.update(id=existing.id, created_at=existing.created_at)
    return BackSafeTransaction(**fields)


class LedgerIssue(BaseModel):
    """A broken link between the ledger and its sources."""

    kind: str
    entity_type: str
    entity_id: UUID
    message: str


class BackSafeLedger(AuditedComponent):
    """Withdrawals and the back safe transaction ledger of one account."""

    def __init__(
        self,
        store: CashRecordStore,
        validator: Optional[CashValidator] = None,
        deriver: Optional[BalanceDeriver] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._store = store
        self._validator = validator or CashValidator()
        self._deriver = deriver or BalanceDeriver(store)

    async def record_withdrawal(
        self,
        amount,
        reason: str,
        withdrawal_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BackSafeWithdrawal:
        """
        Take cash out of the back safe.

        Args:
            amount: Amount withdrawn (zero is allowed)
            reason: Why the cash was taken, required
            withdrawal_date: Defaults to today

        Raises:
            ValidationError: Blank reason or malformed amount
            InsufficientFundsError: amount exceeds the back safe balance
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("record_withdrawal", correlation_id):
            withdrawal_date = (
                self._validator.parse_date(withdrawal_date, "withdrawal_date")
                if withdrawal_date is not None
                else date.today()
            )
            amount, reason, result = self._validator.check_withdrawal(
                amount, reason, withdrawal_date
            )

            available = await self._deriver.get_back_safe_balance()
            if amount > available:
                raise InsufficientFundsError(amount, available)

            withdrawal = BackSafeWithdrawal(
                withdrawal_date=withdrawal_date,
                amount=amount,
                reason=reason,
            )
            transaction = BackSafeTransaction(
                transaction_date=withdrawal_date,
                transaction_type=TransactionType.WITHDRAWAL,
                amount=amount,
                reason=reason,
                withdrawal_id=withdrawal.id,
            )
            await self._store.create_withdrawal(withdrawal, transaction)

        if self._audit_logger:
            await self._audit_logger.log_validation_warnings(
                "withdrawal", result.warnings, correlation_id
            )
            await self._audit_logger.log_withdrawal_recorded(
                withdrawal_id=withdrawal.id,
                amount=amount,
                reason=reason,
                correlation_id=correlation_id,
            )

        return withdrawal

    async def edit_withdrawal(
        self,
        withdrawal_id: UUID,
        new_amount,
        new_reason: str,
        new_date: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BackSafeWithdrawal:
        """
        Change a withdrawal and its ledger row together.

        Only the increase over the original amount has to be covered by
        the current balance.

        Raises:
            NotFoundError: Unknown withdrawal
            ValidationError: Blank reason or malformed amount
            InsufficientFundsError: The increase exceeds the back safe balance
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("edit_withdrawal", correlation_id):
            original = await self._store.get_withdrawal(withdrawal_id)
            if original is None:
                raise NotFoundError(f"Withdrawal not found: {withdrawal_id}")

            withdrawal_date = (
                self._validator.parse_date(new_date, "withdrawal_date")
                if new_date is not None
                else original.withdrawal_date
            )
            amount, reason, result = self._validator.check_withdrawal(
                new_amount,
                new_reason,
                withdrawal_date if new_date is not None else None,
            )

            delta = amount - original.amount
            available = await self._deriver.get_back_safe_balance()
            if delta > available:
                raise InsufficientFundsError(delta, available)

            updated = original.model_copy(update={
                "amount": amount,
                "reason": reason,
                "withdrawal_date": withdrawal_date,
                "updated_at": datetime.utcnow(),
            })
            existing = await self._store.get_linked_transaction(withdrawal_id=withdrawal_id)
            fields = dict(
                transaction_date=withdrawal_date,
                transaction_type=TransactionType.WITHDRAWAL,
                amount=amount,
                reason=reason,
                withdrawal_id=withdrawal_id,
            )
            if existing is not None:
                fields.update(id=existing.id, created_at=existing.created_at)
            await self._store.update_withdrawal(updated, BackSafeTransaction(**fields))

        if self._audit_logger:
            await self._audit_logger.log_validation_warnings(
                "withdrawal", result.warnings, correlation_id
            )
            await self._audit_logger.log_withdrawal_updated(
                withdrawal_id=withdrawal_id,
                old_amount=original.amount,
                new_amount=amount,
                correlation_id=correlation_id,
            )

        return updated

    async def delete_withdrawal(
        self,
        withdrawal_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> BackSafeWithdrawal:
        """
        Remove a withdrawal and its ledger row; the amount returns to the back safe.

        Raises:
            NotFoundError: Unknown withdrawal
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._audited("delete_withdrawal", correlation_id):
            deleted = await self._store.delete_withdrawal(withdrawal_id)

        if self._audit_logger:
            await self._audit_logger.log_withdrawal_deleted(
                withdrawal_id=withdrawal_id,
                amount=deleted.amount,
                correlation_id=correlation_id,
            )
        return deleted

    async def list_withdrawals(self, month: Optional[str] = None) -> list[BackSafeWithdrawal]:
        withdrawals = await self._store.list_withdrawals()
        if month is not None:
            month = validate_month(month)
            withdrawals = [w for w in withdrawals if w.month == month]
        return withdrawals

    async def list_transactions(self, month: Optional[str] = None) -> list[BackSafeTransaction]:
        transactions = await self._store.list_transactions()
        if month is not None:
            month = validate_month(month)
            transactions = [t for t in transactions if t.month == month]
        return transactions

    async def verify_links(self) -> list[LedgerIssue]:
        """
        Check that every ledger row has its source and vice versa.

        Returns an empty list for a consistent ledger.
        """
        entries = {e.id: e for e in await self._store.list_entries()}
        withdrawals = {w.id: w for w in await self._store.list_withdrawals()}
        transactions = await self._store.list_transactions()

        by_entry: dict[UUID, list[BackSafeTransaction]] = {}
        by_withdrawal: dict[UUID, list[BackSafeTransaction]] = {}
        issues: list[LedgerIssue] = []

        for transaction in transactions:
            if transaction.entry_id:
                if transaction.entry_id not in entries:
                    issues.append(LedgerIssue(
                        kind="orphaned_transaction",
                        entity_type="transaction",
                        entity_id=transaction.id,
                        message=f"Deposit points at missing entry {transaction.entry_id}",
                    ))
                    continue
                by_entry.setdefault(transaction.entry_id, []).append(transaction)
            elif transaction.withdrawal_id:
                if transaction.withdrawal_id not in withdrawals:
                    issues.append(LedgerIssue(
                        kind="orphaned_transaction",
                        entity_type="transaction",
                        entity_id=transaction.id,
                        message=f"Debit points at missing withdrawal {transaction.withdrawal_id}",
                    ))
                    continue
                by_withdrawal.setdefault(transaction.withdrawal_id, []).append(transaction)

        for entry in entries.values():
            linked = by_entry.get(entry.id, [])
            if entry.to_back_safe <= ZERO and not linked:
                continue
            if len(linked) != 1:
                issues.append(LedgerIssue(
                    kind="missing_transfer" if not linked else "duplicate_link",
                    entity_type="entry",
                    entity_id=entry.id,
                    message=f"Entry {entry.entry_date.isoformat()} has {len(linked)} deposits",
                ))
            elif linked[0].amount != entry.to_back_safe or linked[0].transaction_date != entry.entry_date:
                issues.append(LedgerIssue(
                    kind="transfer_mismatch",
                    entity_type="entry",
                    entity_id=entry.id,
                    message=(
                        f"Deposit of {linked[0].amount:.2f} does not match "
                        f"transfer of {entry.to_back_safe:.2f}"
                    ),
                ))

        for withdrawal in withdrawals.values():
            linked = by_withdrawal.get(withdrawal.id, [])
            if len(linked) != 1:
                issues.append(LedgerIssue(
                    kind="missing_debit" if not linked else "duplicate_link",
                    entity_type="withdrawal",
                    entity_id=withdrawal.id,
                    message=f"Withdrawal has {len(linked)} ledger rows",
                ))
            elif linked[0].amount != withdrawal.amount:
                issues.append(LedgerIssue(
                    kind="debit_mismatch",
                    entity_type="withdrawal",
                    entity_id=withdrawal.id,
                    message=(
                        f"Debit of {linked[0].amount:.2f} does not match "
                        f"withdrawal of {withdrawal.amount:.2f}"
                    ),
                ))

        return issues
