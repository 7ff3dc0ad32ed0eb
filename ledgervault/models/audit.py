"""
Audit Models for ledgervault

Every ledger mutation is recorded as an audit event so the history of a
record can be reconstructed.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Values of encrypted ledger fields are redacted: the audit trail records that
an amount changed, never what it changed to.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ledgervault.models.records import LoanPayment, LoanRecord, Record


REDACTED = "[encrypted]"

# Attributes whose values never leave the record in plaintext
LEDGER_FIELDS = frozenset({
    "amount",
    "principal",
    "description",
    "note",
    "message",
    "external_party",
    "remaining_amount",
})


class AuditEntityType(str, Enum):
    ENTRY = "entry"
    LOAN = "loan"
    PAYMENT = "payment"
    USER = "user"


class AuditAction(str, Enum):
    CREATED = "created"
    PAYMENT_ADDED = "payment_added"
    STATUS_CHANGED = "status_changed"
    COLLABORATOR_INVITED = "collaborator_invited"
    INVITATION_ANSWERED = "invitation_answered"
    COMMENT_ADDED = "comment_added"
    PREFERENCES_UPDATED = "preferences_updated"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditChange(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


def redacted_change(field: str, old_value: Any, new_value: Any) -> AuditChange:
    """Build a change entry, hiding the values of ledger fields."""
    if field in LEDGER_FIELDS:
        return AuditChange(
            field=field,
            old_value=REDACTED if old_value is not None else None,
            new_value=REDACTED if new_value is not None else None,
        )
    return AuditChange(field=field, old_value=old_value, new_value=new_value)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: AuditEntityType
    entity_id: str = Field(..., min_length=1)
    action: AuditAction
    user_id: str = Field(
        ...,
        min_length=1,
        description="User who performed the action"
    )

    changes: list[AuditChange] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "action": self.action.value,
            "user_id": self.user_id,
            "changes": [change.model_dump() for change in self.changes],
            "metadata": self.metadata,
        }


def _entity_type_for(record: Record) -> AuditEntityType:
    if isinstance(record, LoanRecord):
        return AuditEntityType.LOAN
    return AuditEntityType.ENTRY


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created(record, user_id)
        event = AuditEventBuilder.payment_added(loan, payment, user_id)
    """

    @staticmethod
    def record_created(record: Record, user_id: str) -> AuditEvent:
        return AuditEvent(
            entity_type=_entity_type_for(record),
            entity_id=str(record.id),
            action=AuditAction.CREATED,
            user_id=user_id,
            changes=[
                redacted_change("amount", None, REDACTED),
                redacted_change("currency", None, record.currency),
                redacted_change("status", None, record.status.value),
            ],
            metadata={"kind": record.kind.value},
        )

    @staticmethod
    def payment_added(
        loan: LoanRecord,
        payment: LoanPayment,
        user_id: str,
        previous_status: str,
    ) -> AuditEvent:
        changes = [redacted_change("remaining_amount", REDACTED, REDACTED)]
        if previous_status != loan.status.value:
            changes.append(redacted_change("status", previous_status, loan.status.value))
        return AuditEvent(
            entity_type=AuditEntityType.PAYMENT,
            entity_id=str(payment.id),
            action=AuditAction.PAYMENT_ADDED,
            user_id=user_id,
            changes=changes,
            metadata={"loan_id": str(loan.id), "version": loan.version},
        )

    @staticmethod
    def status_changed(
        loan: LoanRecord,
        user_id: str,
        previous_status: str,
        reason: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            entity_type=AuditEntityType.LOAN,
            entity_id=str(loan.id),
            action=AuditAction.STATUS_CHANGED,
            user_id=user_id,
            changes=[redacted_change("status", previous_status, loan.status.value)],
            metadata={"reason": reason or "unspecified", "version": loan.version},
        )

    @staticmethod
    def collaborator_invited(loan: LoanRecord, user_id: str, invitee_id: str) -> AuditEvent:
        return AuditEvent(
            entity_type=AuditEntityType.LOAN,
            entity_id=str(loan.id),
            action=AuditAction.COLLABORATOR_INVITED,
            user_id=user_id,
            changes=[redacted_change("collaborators", None, invitee_id)],
            metadata={"version": loan.version},
        )

    @staticmethod
    def invitation_answered(loan: LoanRecord, user_id: str) -> AuditEvent:
        """The invitee accepted or declined; the new status is read from the loan."""
        collaborator = loan.collaborator(user_id)
        return AuditEvent(
            entity_type=AuditEntityType.LOAN,
            entity_id=str(loan.id),
            action=AuditAction.INVITATION_ANSWERED,
            user_id=user_id,
            changes=[
                redacted_change("collaborator_status", "pending", collaborator.status.value)
            ],
            metadata={"version": loan.version},
        )

    @staticmethod
    def comment_added(loan: LoanRecord, user_id: str) -> AuditEvent:
        return AuditEvent(
            entity_type=AuditEntityType.LOAN,
            entity_id=str(loan.id),
            action=AuditAction.COMMENT_ADDED,
            user_id=user_id,
            changes=[redacted_change("message", None, REDACTED)],
            metadata={"version": loan.version},
        )

    @staticmethod
    def preferences_updated(user_id: str, changed_fields: list[str]) -> AuditEvent:
        return AuditEvent(
            entity_type=AuditEntityType.USER,
            entity_id=user_id,
            action=AuditAction.PREFERENCES_UPDATED,
            user_id=user_id,
            changes=[AuditChange(field=name) for name in changed_fields],
        )
