"""
Notification Dispatcher

Persists domain events as notifications for their target users.

DESIGN DECISION: Dispatch is BEST-EFFORT.
- Transient storage errors are retried with exponential backoff (tenacity)
- A notification that still cannot be stored is logged and dropped
- ``dispatch`` never raises, so a delivery failure can never roll back or
  block the ledger mutation that produced the event
"""

from typing import Iterable, Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledgervault.config import LedgerSettings, get_settings
from ledgervault.models.events import DomainEvent, DomainEventKind
from ledgervault.models.records import UserPreferences
from ledgervault.services.storage import (
    NotificationStorageInterface,
    PreferencesStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Preference category controlling each event kind; None means always delivered
PREFERENCE_CATEGORIES: dict[DomainEventKind, Optional[str]] = {
    DomainEventKind.LOAN_INVITE: "invitations",
    DomainEventKind.APPROVAL_REQUEST: "approvals",
    DomainEventKind.LOAN_APPROVED: "approvals",
    DomainEventKind.PAYMENT_ADDED: "payments",
    DomainEventKind.LOAN_CLOSED: "payments",
    DomainEventKind.COMMENT_ADDED: None,
}


class NotificationDispatcher:
    """
    Stores in-app notifications for domain events.

    Usage:
        dispatcher = NotificationDispatcher(storage, preferences=storage)
        delivered = await dispatcher.dispatch(event)
    """

    def __init__(
        self,
        storage: NotificationStorageInterface,
        preferences: Optional[PreferencesStorageInterface] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._preferences = preferences
        self._settings = settings or get_settings()

        self._store = retry(
            retry=retry_if_exception_type(StorageError),
            stop=stop_after_attempt(self._settings.notification_retry_attempts),
            wait=wait_exponential(multiplier=1, min=0, max=self._settings.notification_retry_max_wait),
            reraise=True,
        )(self._save)

    async def _save(self, event: DomainEvent) -> bool:
        return await self._storage.save_notification(event.to_notification_dict())

    async def _wants(self, event: DomainEvent) -> bool:
        """Check the target's in-app preferences. Unknown users get defaults."""
        category = PREFERENCE_CATEGORIES.get(event.kind)
        if category is None or self._preferences is None:
            return True
        try:
            preferences = await self._preferences.get_preferences(event.target_user_id)
        except StorageError as e:
            logger.warning(
                "notification_preferences_unavailable",
                error=str(e),
                **event.to_log_dict(),
            )
            preferences = None
        preferences = preferences or UserPreferences()
        return getattr(preferences.notifications.in_app, category)

    async def dispatch(self, event: DomainEvent) -> bool:
        """
        Persist one event as a notification.

        Returns:
            True if the notification was stored. False if the target opted
            out of this kind, or storage failed after every retry.
        """
        try:
            if not await self._wants(event):
                logger.info("notification_suppressed", **event.to_log_dict())
                return False
            stored = await self._store(event)
        except Exception as e:
            # Best-effort: never propagate
            logger.error(
                "notification_dispatch_failed",
                error=str(e),
                error_type=type(e).__name__,
                **event.to_log_dict(),
            )
            return False

        logger.info("notification_dispatched", **event.to_log_dict())
        return bool(stored)

    async def dispatch_all(self, events: Iterable[DomainEvent]) -> int:
        """Dispatch events in order. Returns how many were stored."""
        delivered = 0
        for event in events:
            if await self.dispatch(event):
                delivered += 1
        return delivered
