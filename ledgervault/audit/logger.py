"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of who changed which record
2. Debugging capability
3. A history users can review per loan

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (a failed audit write never undoes a
  committed ledger mutation)
- Never sees plaintext ledger fields; events arrive already redacted
"""

import logging
from typing import Optional

import structlog

from ledgervault.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from ledgervault.models.records import LoanPayment, LoanRecord, Record
from ledgervault.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at log_level."""
    logging.basicConfig(format="%(message)s", level=log_level)
    logging.getLogger().setLevel(log_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and per-record history)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("ledgervault.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(self, record: Record, user_id: str) -> None:
        await self.log(AuditEventBuilder.record_created(record, user_id))

    async def log_payment_added(
        self,
        loan: LoanRecord,
        payment: LoanPayment,
        user_id: str,
        previous_status: str,
    ) -> None:
        """Log a payment append (and the settlement it may have caused)."""
        await self.log(AuditEventBuilder.payment_added(loan, payment, user_id, previous_status))

    async def log_status_changed(
        self,
        loan: LoanRecord,
        user_id: str,
        previous_status: str,
        reason: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.status_changed(loan, user_id, previous_status, reason))

    async def log_collaborator_invited(
        self,
        loan: LoanRecord,
        user_id: str,
        invitee_id: str,
    ) -> None:
        await self.log(AuditEventBuilder.collaborator_invited(loan, user_id, invitee_id))

    async def log_invitation_answered(self, loan: LoanRecord, user_id: str) -> None:
        await self.log(AuditEventBuilder.invitation_answered(loan, user_id))

    async def log_comment_added(self, loan: LoanRecord, user_id: str) -> None:
        await self.log(AuditEventBuilder.comment_added(loan, user_id))

    async def log_preferences_updated(self, user_id: str, changed_fields: list[str]) -> None:
        await self.log(AuditEventBuilder.preferences_updated(user_id, changed_fields))
