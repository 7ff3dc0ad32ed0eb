"""Services package."""

from ledgervault.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PreferencesStorageInterface,
    StorageError,
    close_default_storage,
    get_default_storage,
)

__all__ = [
    # Storage interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "NotificationStorageInterface",
    "PreferencesStorageInterface",
    # Storage exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory storage
    "InMemoryLedgerStorage",
    "close_default_storage",
    "get_default_storage",
]
