"""
Storage Services Package

Provides abstract interfaces and an in-memory implementation for the
encrypted ledger documents, notifications, preferences and audit trail.
Designed so a document database backend can be swapped in.
"""

from ledgervault.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PreferencesStorageInterface,
    StorageError,
)
from ledgervault.services.storage.memory import (
    InMemoryLedgerStorage,
    close_default_storage,
    get_default_storage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "NotificationStorageInterface",
    "PreferencesStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryLedgerStorage",
    "close_default_storage",
    "get_default_storage",
]
