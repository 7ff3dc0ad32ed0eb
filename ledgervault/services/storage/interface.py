"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the document database without touching the ledger core
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Ledger storage only ever sees AT-REST documents: ledger fields arrive
already encrypted by the record codec, and come back out the same way.

IMPORTANT: ``save_loan`` is a compare-and-set on the loan version. Two
concurrent payments on the same loan must never overwrite one another.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from ledgervault.models.audit import AuditEvent
from ledgervault.models.records import UserPreferences


class LedgerStorageInterface(ABC):
    """
    Abstract interface for encrypted ledger documents.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def insert_entry(self, document: dict[str, Any]) -> bool:
        """
        Insert an at-rest expense or income document.

        Raises:
            DuplicateError: An entry with the same id exists
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[dict[str, Any]]:
        """
        Retrieve an entry document by id.

        Returns:
            The document if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_entries(self, user_id: str) -> list[dict[str, Any]]:
        """List the entry documents owned by user_id, oldest first."""
        pass

    @abstractmethod
    async def save_loan(
        self,
        document: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Insert or replace an at-rest loan document.

        Args:
            document: The encrypted loan
            expected_version: None to insert a new loan. Otherwise the version
                the caller read; the write only succeeds if the stored loan
                still carries it.

        Raises:
            DuplicateError: Inserting a loan whose id exists
            NotFoundError: Replacing a loan that does not exist
            ConcurrentModification: The stored version moved on
        """
        pass

    @abstractmethod
    async def get_loan(self, loan_id: UUID) -> Optional[dict[str, Any]]:
        pass

    @abstractmethod
    async def list_loans(self, user_id: str) -> list[dict[str, Any]]:
        """
        List loan documents user_id is lender, borrower or collaborator on.
        """
        pass


class NotificationStorageInterface(ABC):
    """Persists notification documents produced from domain events."""

    @abstractmethod
    async def save_notification(self, notification: dict[str, Any]) -> bool:
        """
        Raises:
            StorageError: If the write fails (callers may retry)
        """
        pass

    @abstractmethod
    async def list_notifications(self, user_id: str) -> list[dict[str, Any]]:
        pass


class PreferencesStorageInterface(ABC):

    @abstractmethod
    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        pass

    @abstractmethod
    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> bool:
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
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'loan', 'payment')
            entity_id: The entity's ID

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
