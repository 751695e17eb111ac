"""
Balance Derivation

DESIGN DECISION: Neither safe balance is ever stored.

- Front safe: the actual_left_in_front of the most recent daily entry.
  A count replaces whatever came before; it is NEVER summed.
- Back safe: 0 + deposits - withdrawals over the whole ledger.

Every call reads the store, so a balance can't go stale after an edit.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from cashsafe.models.cash import (
    ZERO,
    BackSafeTransaction,
    DailyEntry,
    SafeBalances,
)
from cashsafe.services.storage import CashRecordStore


def latest_counted(
    entries: Iterable[DailyEntry],
    before: Optional[date] = None,
    on_or_before: Optional[date] = None,
    exclude_id: Optional[UUID] = None,
) -> Decimal:
    """
    Front safe balance from a set of entries.

    Args:
        before: Only consider entries strictly before this date
        on_or_before: Only consider entries on or before this date
        exclude_id: Ignore this entry (used when it is being edited)

    Returns:
        actual_left_in_front of the latest qualifying entry, 0 if none
    """
    latest: Optional[DailyEntry] = None
    for entry in entries:
        if exclude_id is not None and entry.id == exclude_id:
            continue
        if before is not None and entry.entry_date >= before:
            continue
        if on_or_before is not None and entry.entry_date > on_or_before:
            continue
        if latest is None or entry.entry_date > latest.entry_date:
            latest = entry
    return latest.actual_left_in_front if latest else ZERO


def fold_back_safe(
    transactions: Iterable[BackSafeTransaction],
    on_or_before: Optional[date] = None,
) -> Decimal:
    """Signed sum of the ledger, optionally only up to a given day."""
    balance = ZERO
    for transaction in transactions:
        if on_or_before is not None and transaction.transaction_date > on_or_before:
            continue
        balance += transaction.signed_amount
    return balance


class BalanceDeriver:
    """Derives both safe balances from one account's record store."""

    def __init__(self, store: CashRecordStore):
        self._store = store

    async def get_front_safe_balance(self) -> Decimal:
        return latest_counted(await self._store.list_entries())

    async def get_back_safe_balance(self) -> Decimal:
        return fold_back_safe(await self._store.list_transactions())

    async def get_balances(self) -> SafeBalances:
        return SafeBalances(
            front_safe=await self.get_front_safe_balance(),
            back_safe=await self.get_back_safe_balance(),
            last_updated=datetime.utcnow(),
        )

    async def previous_front_safe_balance(
        self,
        entry_date: date,
        exclude_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Opening front safe balance for a day.

        This is the chronological predecessor (latest entry dated strictly
        before entry_date), not the most recently created entry, so a
        backdated entry reconciles against the day before it.
        """
        return latest_counted(
            await self._store.list_entries(),
            before=entry_date,
            exclude_id=exclude_id,
        )

    async def balances_as_of(self, day: date) -> SafeBalances:
        """Both balances replayed up to and including day."""
        entries = await self._store.list_entries()
        transactions = await self._store.list_transactions()
        return SafeBalances(
            front_safe=latest_counted(entries, on_or_before=day),
            back_safe=fold_back_safe(transactions, on_or_before=day),
            last_updated=datetime.utcnow(),
        )
