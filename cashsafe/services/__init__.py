"""Services package."""

from cashsafe.services.storage import (
    AuditStorageInterface,
    CashRecordStore,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCashStore,
    GoogleSheetsClient,
    InMemoryAuditStorage,
    InMemoryBackend,
    InMemoryCashStore,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "CashRecordStore",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCashStore",
    "GoogleSheetsClient",
    "InMemoryAuditStorage",
    "InMemoryBackend",
    "InMemoryCashStore",
    "NotFoundError",
    "StorageError",
    "StoreUnavailableError",
]
