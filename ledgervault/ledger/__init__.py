"""Ledger record operations package."""

from ledgervault.ledger.operations import (
    activate_loan,
    add_comment,
    apply_payment,
    create_payment,
    create_record,
    invite_collaborator,
    is_authorized,
    respond_to_invitation,
    settle_loan,
    update_preferences,
)

__all__ = [
    "activate_loan",
    "add_comment",
    "apply_payment",
    "create_payment",
    "create_record",
    "invite_collaborator",
    "is_authorized",
    "respond_to_invitation",
    "settle_loan",
    "update_preferences",
]
