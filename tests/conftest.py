"""
Shared fixtures.

Everything runs against the in-memory store; no network, no credentials.
Async operations are driven with asyncio.run through the `run` fixture.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from cashsafe.audit import AuditLogger
from cashsafe.config.settings import AppSettings
from cashsafe.orchestrator import CashOffice
from cashsafe.services.storage import (
    InMemoryAuditStorage,
    InMemoryBackend,
    InMemoryCashStore,
)


ACCOUNT = "shop-1"


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run


@pytest.fixture
def app_settings():
    return AppSettings(
        storage_backend="memory",
        account_id=ACCOUNT,
        future_date_tolerance_days=1,
        max_daily_amount=Decimal("100000.00"),
        close_with_period_end_balances=False,
    )


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend):
    return InMemoryCashStore(ACCOUNT, backend)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage, ACCOUNT)


@pytest.fixture
def office(store, audit_logger, app_settings):
    return CashOffice(store, audit_logger, app_settings)


@pytest.fixture
def submit(office, run):
    """Submit an entry with short keyword arguments (amounts as strings)."""

    def _submit(day: date, cash_in="0", deposited="0", to_back="0", actual="0", notes=None):
        return run(office.submit_entry(
            entry_date=day,
            cash_in=Decimal(cash_in),
            deposited=Decimal(deposited),
            to_back_safe=Decimal(to_back),
            actual_left_in_front=Decimal(actual),
            notes=notes,
        ))

    return _submit
