"""
Ledger Record Operations

Pure functions that create and mutate ledger records.

Every function takes record values and returns new record values; nothing
here touches storage, configuration or the network. "Saving" is an explicit
call made by the storage collaborator afterwards.

IMPORTANT: Mutating operations accept an ``expected_version``. Callers that
read a record, change it and write it back must pass the version they read,
so two concurrent payments on the same loan can never silently overwrite one
another.
"""

from typing import Any, Mapping, Optional, Type, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ledgervault.errors import ConcurrentModification, InvalidState, ValidationError
from ledgervault.models.money import ZERO, remaining_balance
from ledgervault.models.records import (
    CollaboratorRole,
    CollaboratorStatus,
    EXTERNAL_PARTY_ID,
    ExpenseRecord,
    IncomeRecord,
    LoanCollaborator,
    LoanComment,
    LoanPayment,
    LoanRecord,
    LoanStatus,
    Record,
    RecordKind,
    UserPreferences,
)


logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_RECORD_MODELS: dict[RecordKind, Type[BaseModel]] = {
    RecordKind.EXPENSE: ExpenseRecord,
    RecordKind.INCOME: IncomeRecord,
    RecordKind.LOAN: LoanRecord,
}

_NOTIFICATION_CHANNELS = ("email", "in_app")


def _build(model: Type[ModelT], fields: Mapping[str, Any]) -> ModelT:
    """Validate fields into a model, reporting the first offending field."""
    try:
        return model.model_validate(dict(fields))
    except SchemaValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or model.__name__
        message = error["msg"].removeprefix("Value error, ")
        raise ValidationError(field, message) from None


def _check_version(record: Union[Record, LoanRecord], expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != record.version:
        raise ConcurrentModification(expected_version, record.version)


# =============================================================================
# CREATION
# =============================================================================

def create_record(kind: Union[RecordKind, str], fields: Mapping[str, Any]) -> Record:
    """
    Create a new expense, income or loan record.

    New loans start pending when the counterparty has an account (they must
    accept it) and active when the counterparty is an external party.

    Raises:
        ValidationError: Naming the first field that violates an invariant.
    """
    try:
        kind = RecordKind(kind)
    except ValueError:
        raise ValidationError("kind", f"Unsupported record kind: {kind}") from None

    data = dict(fields)
    if kind == RecordKind.LOAN:
        default_status = LoanStatus.ACTIVE if data.get("external_party") else LoanStatus.PENDING
        data.setdefault("status", default_status)

    record = _build(_RECORD_MODELS[kind], data)
    if isinstance(record, LoanRecord) and record.status == LoanStatus.SETTLED:
        raise ValidationError("status", "A new loan cannot start settled")
    return record


def create_payment(fields: Mapping[str, Any]) -> LoanPayment:
    return _build(LoanPayment, fields)


# =============================================================================
# LOAN MUTATIONS
# =============================================================================

def apply_payment(
    loan: LoanRecord,
    payment: Union[LoanPayment, Mapping[str, Any]],
    expected_version: Optional[int] = None,
) -> LoanRecord:
    """
    Append a payment to an active loan.

    The remaining amount is re-derived from the full payment ledger; when it
    reaches zero the loan transitions to settled.

    Raises:
        ConcurrentModification: ``expected_version`` is stale.
        InvalidState: The loan is settled, or still pending.
        ValidationError: The payment amount is not positive.
    """
    _check_version(loan, expected_version)

    if loan.status == LoanStatus.SETTLED:
        raise InvalidState(loan.status.value, "Loan is settled and accepts no further payments")
    if loan.status == LoanStatus.PENDING:
        raise InvalidState(loan.status.value, "Loan must be accepted before payments are recorded")

    if not isinstance(payment, LoanPayment):
        payment = create_payment(payment)
    if payment.amount <= ZERO:
        raise ValidationError("amount", "Payment amount must be positive")
    if any(existing.id == payment.id for existing in loan.payments):
        raise ValidationError("id", "Payment has already been recorded")

    payments = loan.payments + (payment,)
    remaining = remaining_balance(loan.principal, (p.amount for p in payments))
    status = LoanStatus.SETTLED if remaining == ZERO else loan.status

    logger.debug(
        "payment_applied",
        loan_id=str(loan.id),
        version=loan.version + 1,
        settled=status == LoanStatus.SETTLED,
    )
    return loan.model_copy(update={
        "payments": payments,
        "status": status,
        "version": loan.version + 1,
    })


def activate_loan(loan: LoanRecord, expected_version: Optional[int] = None) -> LoanRecord:
    """Counterparty accepted the loan: pending -> active."""
    _check_version(loan, expected_version)
    if loan.status != LoanStatus.PENDING:
        raise InvalidState(loan.status.value, f"Loan is already {loan.status.value}")
    return loan.model_copy(update={"status": LoanStatus.ACTIVE, "version": loan.version + 1})


def settle_loan(loan: LoanRecord, expected_version: Optional[int] = None) -> LoanRecord:
    """Manual settlement: active -> settled, whatever the remaining amount."""
    _check_version(loan, expected_version)
    if loan.status != LoanStatus.ACTIVE:
        raise InvalidState(loan.status.value, f"Only active loans can be settled, loan is {loan.status.value}")
    return loan.model_copy(update={"status": LoanStatus.SETTLED, "version": loan.version + 1})


def invite_collaborator(
    loan: LoanRecord,
    user_id: str,
    invited_by: str,
    role: Union[CollaboratorRole, str] = CollaboratorRole.VIEWER,
    expected_version: Optional[int] = None,
) -> LoanRecord:
    _check_version(loan, expected_version)
    if loan.status == LoanStatus.SETTLED:
        raise InvalidState(loan.status.value, "Settled loans cannot gain collaborators")
    if user_id in (loan.lender_id, loan.borrower_id):
        raise ValidationError("user_id", "User is already a party to this loan")
    if loan.collaborator(user_id) is not None:
        raise ValidationError("user_id", "User has already been invited")

    collaborator = _build(LoanCollaborator, {
        "user_id": user_id,
        "role": role,
        "invited_by": invited_by,
    })
    return loan.model_copy(update={
        "collaborators": loan.collaborators + (collaborator,),
        "version": loan.version + 1,
    })


def respond_to_invitation(
    loan: LoanRecord,
    user_id: str,
    accept: bool,
    expected_version: Optional[int] = None,
) -> LoanRecord:
    _check_version(loan, expected_version)
    invitation = loan.collaborator(user_id)
    if invitation is None:
        raise ValidationError("user_id", "User has not been invited to this loan")
    if invitation.status != CollaboratorStatus.PENDING:
        raise InvalidState(invitation.status.value, "Invitation has already been answered")

    answered = invitation.model_copy(update={
        "status": CollaboratorStatus.ACCEPTED if accept else CollaboratorStatus.DECLINED,
    })
    collaborators = tuple(
        answered if c.user_id == user_id else c for c in loan.collaborators
    )
    return loan.model_copy(update={"collaborators": collaborators, "version": loan.version + 1})


def add_comment(
    loan: LoanRecord,
    author_id: str,
    message: str,
    expected_version: Optional[int] = None,
) -> LoanRecord:
    _check_version(loan, expected_version)
    comment = _build(LoanComment, {"author_id": author_id, "message": message})
    return loan.model_copy(update={
        "comments": loan.comments + (comment,),
        "version": loan.version + 1,
    })


# =============================================================================
# PREFERENCES
# =============================================================================

def _merge_channels(current: dict, changes: Any) -> dict:
    if not isinstance(changes, Mapping):
        raise ValidationError("notifications", "Notification preferences must be a mapping")

    merged = {channel: dict(values) for channel, values in current.items()}
    for channel, values in changes.items():
        if channel not in _NOTIFICATION_CHANNELS:
            raise ValidationError(f"notifications.{channel}", "Unknown notification channel")
        if values is None:
            continue
        if not isinstance(values, Mapping):
            raise ValidationError(f"notifications.{channel}", "Channel preferences must be a mapping")
        for category, enabled in values.items():
            if category not in merged[channel]:
                raise ValidationError(f"notifications.{channel}.{category}", "Unknown notification category")
            if enabled is not None:
                merged[channel][category] = enabled
    return merged


def update_preferences(preferences: UserPreferences, changes: Mapping[str, Any]) -> UserPreferences:
    """
    Apply a partial update.

    Only explicitly supplied fields change; absent fields and fields given
    as None keep their current value rather than resetting to defaults.
    """
    data = preferences.model_dump()
    for field, value in changes.items():
        if field not in UserPreferences.model_fields:
            raise ValidationError(field, "Unknown preference")
        if value is None:
            continue
        if field == "notifications":
            data["notifications"] = _merge_channels(data["notifications"], value)
        else:
            data[field] = value
    return _build(UserPreferences, data)


# =============================================================================
# OWNERSHIP
# =============================================================================

def is_authorized(record: Record, user_id: Optional[str]) -> bool:
    """
    True iff user_id owns the record, is a party to the loan, or is an
    accepted collaborator on it.

    This predicate is consumed by the routing layer; the core never enforces it.
    """
    if not user_id or user_id == EXTERNAL_PARTY_ID:
        return False
    if isinstance(record, LoanRecord):
        if user_id in (record.lender_id, record.borrower_id):
            return True
        collaborator = record.collaborator(user_id)
        return collaborator is not None and collaborator.status == CollaboratorStatus.ACCEPTED
    return record.user_id == user_id
