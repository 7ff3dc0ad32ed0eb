"""
Domain Event Emitter

Turns a described ledger state change into zero or one notification event.

DESIGN DECISION: Emission is pure. It decides WHO should hear about a
change and WHAT they are told; it never persists or delivers anything.
Rules that hold for every transition:
- An event is never addressed to the actor who caused it
- The external side of a loan has no account, so it never receives events
- A transition with nobody to tell produces no event
"""

from typing import Iterable, Optional

from ledgervault.models.events import (
    DomainEvent,
    DomainEventBuilder,
    LedgerTransition,
    TransitionKind,
)
from ledgervault.models.records import (
    EXTERNAL_PARTY_ID,
    LoanPayment,
    LoanRecord,
    LoanStatus,
)


def _recipient(loan: LoanRecord, actor_id: str) -> Optional[str]:
    """
    The account holder who should hear about an action on the loan.

    A lender or borrower acting notifies the other side. Anyone else
    (a collaborator) notifies the lender.
    """
    if actor_id in (loan.lender_id, loan.borrower_id):
        target = loan.counterparty_of(actor_id)
    else:
        target = loan.lender_id

    if not target or target == actor_id or target == EXTERNAL_PARTY_ID:
        return None
    return target


def emit(transition: LedgerTransition) -> Optional[DomainEvent]:
    """Return the event describing the transition, or None."""
    loan = transition.loan
    actor = transition.actor_label

    if transition.kind == TransitionKind.LOAN_REQUESTED:
        if loan.status != LoanStatus.PENDING:
            return None
        target = loan.counterparty_of(transition.actor_id)
        if target is None:
            return None
        return DomainEventBuilder.approval_request(loan, target, actor)

    if transition.kind == TransitionKind.COLLABORATOR_INVITED:
        target = transition.invitee_id
        if not target or target == transition.actor_id:
            return None
        return DomainEventBuilder.loan_invite(loan, target, actor)

    if transition.kind == TransitionKind.PAYMENT_APPENDED:
        if transition.payment is None:
            return None
        target = _recipient(loan, transition.actor_id)
        if target is None:
            return None
        return DomainEventBuilder.payment_added(loan, transition.payment, target, actor)

    if transition.kind == TransitionKind.STATUS_CHANGED:
        target = _recipient(loan, transition.actor_id)
        if target is None:
            return None
        if transition.previous_status == LoanStatus.PENDING and loan.status == LoanStatus.ACTIVE:
            return DomainEventBuilder.loan_approved(loan, target, actor)
        if loan.status == LoanStatus.SETTLED and transition.previous_status != LoanStatus.SETTLED:
            return DomainEventBuilder.loan_closed(loan, target)
        return None

    if transition.kind == TransitionKind.COMMENT_ADDED:
        target = _recipient(loan, transition.actor_id)
        if target is None:
            return None
        return DomainEventBuilder.comment_added(loan, target, actor)

    return None


def emit_all(transitions: Iterable[LedgerTransition]) -> list[DomainEvent]:
    events = []
    for transition in transitions:
        event = emit(transition)
        if event is not None:
            events.append(event)
    return events


def transitions_for_payment(
    before: LoanRecord,
    after: LoanRecord,
    actor_id: str,
    payment: LoanPayment,
    actor_name: Optional[str] = None,
) -> list[LedgerTransition]:
    """
    Describe a payment append, plus the settlement it may have caused.
    """
    transitions = [
        LedgerTransition(
            kind=TransitionKind.PAYMENT_APPENDED,
            loan=after,
            actor_id=actor_id,
            actor_name=actor_name,
            previous_status=before.status,
            payment=payment,
        )
    ]
    if before.status != after.status:
        transitions.append(
            LedgerTransition(
                kind=TransitionKind.STATUS_CHANGED,
                loan=after,
                actor_id=actor_id,
                actor_name=actor_name,
                previous_status=before.status,
            )
        )
    return transitions
