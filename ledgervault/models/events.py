"""
Domain Event Models

Notification-worthy events derived from ledger state transitions.

DESIGN DECISION: Events are plain values. Producing one has no side
effects; persisting and delivering it is the notification collaborator's
job, and a delivery failure never rolls back the ledger mutation that
caused it.
"""

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ledgervault.models.records import LoanPayment, LoanRecord, LoanStatus


class DomainEventKind(str, Enum):
    """The fixed set of events the ledger can produce."""
    LOAN_INVITE = "loan_invite"
    PAYMENT_ADDED = "payment_added"
    LOAN_CLOSED = "loan_closed"
    APPROVAL_REQUEST = "approval_request"
    LOAN_APPROVED = "loan_approved"
    COMMENT_ADDED = "comment_added"


class RelatedRecordKind(str, Enum):
    LOAN = "loan"


class TransitionKind(str, Enum):
    """State changes the emitter knows how to describe."""
    LOAN_REQUESTED = "loan_requested"
    COLLABORATOR_INVITED = "collaborator_invited"
    PAYMENT_APPENDED = "payment_appended"
    STATUS_CHANGED = "status_changed"
    COMMENT_ADDED = "comment_added"


class DomainEvent(BaseModel):
    """A single event addressed to one user."""
    model_config = ConfigDict(frozen=True)

    kind: DomainEventKind
    target_user_id: str = Field(..., min_length=1)
    message: str = Field(
        ...,
        max_length=500,
        description="Human-readable message shown to the target user"
    )
    related_record_id: UUID
    related_record_kind: RelatedRecordKind = RelatedRecordKind.LOAN

    def to_notification_dict(self) -> dict:
        """Document shape handed to the notification store."""
        return {
            "userId": self.target_user_id,
            "type": self.kind.value,
            "message": self.message,
            "relatedId": str(self.related_record_id),
            "relatedType": self.related_record_kind.value,
            "read": False,
        }

    def to_log_dict(self) -> dict:
        """Structured-log form. The message is omitted because it may carry amounts."""
        return {
            "kind": self.kind.value,
            "target_user_id": self.target_user_id,
            "related_record_id": str(self.related_record_id),
            "related_record_kind": self.related_record_kind.value,
        }


class LedgerTransition(BaseModel):
    """
    Description of one state change on a loan.

    ``loan`` is the state after the change.
    """
    model_config = ConfigDict(frozen=True)

    kind: TransitionKind
    loan: LoanRecord
    actor_id: str = Field(..., min_length=1)
    actor_name: Optional[str] = None
    previous_status: Optional[LoanStatus] = None
    payment: Optional[LoanPayment] = None
    invitee_id: Optional[str] = None

    @property
    def actor_label(self) -> str:
        return self.actor_name or "Someone"


class DomainEventBuilder:
    """
    Helper class to build domain events with consistent wording.

    Usage:
        event = DomainEventBuilder.payment_added(loan, payment, target, "Ali")
    """

    @staticmethod
    def loan_invite(loan: LoanRecord, target_user_id: str, actor: str) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.LOAN_INVITE,
            target_user_id=target_user_id,
            message=f"{actor} invited you to collaborate on a {loan.currency} loan",
            related_record_id=loan.id,
        )

    @staticmethod
    def approval_request(loan: LoanRecord, target_user_id: str, actor: str) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.APPROVAL_REQUEST,
            target_user_id=target_user_id,
            message=f"{actor} recorded a loan of {loan.currency} {loan.principal} with you and needs your approval",
            related_record_id=loan.id,
        )

    @staticmethod
    def loan_approved(loan: LoanRecord, target_user_id: str, actor: str) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.LOAN_APPROVED,
            target_user_id=target_user_id,
            message=f"{actor} accepted your loan request for {loan.currency} {loan.principal}",
            related_record_id=loan.id,
        )

    @staticmethod
    def payment_added(
        loan: LoanRecord,
        payment: LoanPayment,
        target_user_id: str,
        actor: str,
    ) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.PAYMENT_ADDED,
            target_user_id=target_user_id,
            message=f"{actor} added a payment of {loan.currency} {payment.amount}",
            related_record_id=loan.id,
        )

    @staticmethod
    def loan_closed(loan: LoanRecord, target_user_id: str) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.LOAN_CLOSED,
            target_user_id=target_user_id,
            message=f"A loan of {loan.currency} {loan.principal} has been settled",
            related_record_id=loan.id,
        )

    @staticmethod
    def comment_added(loan: LoanRecord, target_user_id: str, actor: str) -> DomainEvent:
        return DomainEvent(
            kind=DomainEventKind.COMMENT_ADDED,
            target_user_id=target_user_id,
            message=f"{actor} commented on a loan",
            related_record_id=loan.id,
        )
