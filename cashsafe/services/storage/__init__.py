"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory store backs tests
and runs without credentials.
"""

from cashsafe.services.storage.interface import (
    AuditStorageInterface,
    CashRecordStore,
    DuplicateError,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)
from cashsafe.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCashStore,
    GoogleSheetsClient,
)
from cashsafe.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBackend,
    InMemoryCashStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CashRecordStore",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCashStore",
    "GoogleSheetsClient",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBackend",
    "InMemoryCashStore",
]
