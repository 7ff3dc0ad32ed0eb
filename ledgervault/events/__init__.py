"""Domain event emission and best-effort notification dispatch."""

from ledgervault.events.dispatcher import PREFERENCE_CATEGORIES, NotificationDispatcher
from ledgervault.events.emitter import emit, emit_all, transitions_for_payment

__all__ = [
    "NotificationDispatcher",
    "PREFERENCE_CATEGORIES",
    "emit",
    "emit_all",
    "transitions_for_payment",
]
