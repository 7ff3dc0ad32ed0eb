"""
In-Memory Storage Implementation

Implements every storage interface with plain dicts. Used by the test
suite and for local runs without a document database.

Documents are deep-copied on the way in and out, so callers can never
mutate stored state through a reference they hold.

DESIGN DECISION: The process-wide default instance is lazily created
under a lock and has an explicit teardown, mirroring how a cached
database handle would be managed by a real backend.
"""

import asyncio
import copy
import threading
from typing import Any, Optional
from uuid import UUID

import structlog

from ledgervault.errors import ConcurrentModification
from ledgervault.models.audit import AuditEvent
from ledgervault.models.records import UserPreferences
from ledgervault.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PreferencesStorageInterface,
)


logger = structlog.get_logger(__name__)


class InMemoryLedgerStorage(
    LedgerStorageInterface,
    NotificationStorageInterface,
    PreferencesStorageInterface,
    AuditStorageInterface,
):
    """Dict-backed storage. Safe for concurrent tasks on one event loop."""

    def __init__(self):
        self._entries: dict[str, dict[str, Any]] = {}
        self._loans: dict[str, dict[str, Any]] = {}
        self._notifications: list[dict[str, Any]] = []
        self._preferences: dict[str, UserPreferences] = {}
        self._audit_events: list[AuditEvent] = []
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # Ledger documents
    # -------------------------------------------------------------------------

    async def insert_entry(self, document: dict[str, Any]) -> bool:
        entry_id = str(document["id"])
        async with self._lock:
            if entry_id in self._entries:
                raise DuplicateError(f"Entry {entry_id} already exists")
            self._entries[entry_id] = copy.deepcopy(document)
        return True

    async def get_entry(self, entry_id: UUID) -> Optional[dict[str, Any]]:
        document = self._entries.get(str(entry_id))
        return copy.deepcopy(document) if document is not None else None

    async def list_entries(self, user_id: str) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(document)
            for document in self._entries.values()
            if document.get("userId") == user_id
        ]

    async def save_loan(
        self,
        document: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> bool:
        loan_id = str(document["id"])
        async with self._lock:
            stored = self._loans.get(loan_id)
            if expected_version is None:
                if stored is not None:
                    raise DuplicateError(f"Loan {loan_id} already exists")
            else:
                if stored is None:
                    raise NotFoundError(f"Loan {loan_id} not found")
                if stored.get("version", 1) != expected_version:
                    logger.warning(
                        "loan_version_conflict",
                        loan_id=loan_id,
                        expected_version=expected_version,
                        actual_version=stored.get("version", 1),
                    )
                    raise ConcurrentModification(expected_version, stored.get("version", 1))
            self._loans[loan_id] = copy.deepcopy(document)
        return True

    async def get_loan(self, loan_id: UUID) -> Optional[dict[str, Any]]:
        document = self._loans.get(str(loan_id))
        return copy.deepcopy(document) if document is not None else None

    async def list_loans(self, user_id: str) -> list[dict[str, Any]]:
        loans = []
        for document in self._loans.values():
            collaborators = {c.get("userId") for c in document.get("collaborators") or []}
            if user_id in (document.get("lenderId"), document.get("borrowerId")) or user_id in collaborators:
                loans.append(copy.deepcopy(document))
        return loans

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def save_notification(self, notification: dict[str, Any]) -> bool:
        async with self._lock:
            self._notifications.append(copy.deepcopy(notification))
        return True

    async def list_notifications(self, user_id: str) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(n) for n in self._notifications if n.get("userId") == user_id
        ]

    # -------------------------------------------------------------------------
    # Preferences
    # -------------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> Optional[UserPreferences]:
        return self._preferences.get(user_id)

    async def save_preferences(self, user_id: str, preferences: UserPreferences) -> bool:
        # Preferences are frozen models, no copy needed
        self._preferences[user_id] = preferences
        return True

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        async with self._lock:
            self._audit_events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._audit_events
            if e.entity_type.value == entity_type and e.entity_id == str(entity_id)
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._audit_events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def clear(self) -> None:
        self._entries.clear()
        self._loans.clear()
        self._notifications.clear()
        self._preferences.clear()
        self._audit_events.clear()


# =============================================================================
# PROCESS-WIDE DEFAULT
# =============================================================================

_default_storage: Optional[InMemoryLedgerStorage] = None
_default_storage_lock = threading.Lock()


def get_default_storage() -> InMemoryLedgerStorage:
    """Return the shared storage instance, creating it on first use."""
    global _default_storage
    if _default_storage is None:
        with _default_storage_lock:
            if _default_storage is None:
                _default_storage = InMemoryLedgerStorage()
                logger.info("default_storage_created")
    return _default_storage


def close_default_storage() -> None:
    """Drop the shared instance. The next get_default_storage() starts empty."""
    global _default_storage
    with _default_storage_lock:
        if _default_storage is not None:
            _default_storage.clear()
            _default_storage = None
            logger.info("default_storage_closed")
