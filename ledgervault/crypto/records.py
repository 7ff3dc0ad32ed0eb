"""
Record Codec

Converts between plaintext ledger records and their at-rest documents.

At-rest documents are JSON-like dicts with camelCase keys. Ledger fields
(amounts, descriptions, notes, external-party details, comment messages)
appear only as base64 envelopes under ``encrypted*`` keys; everything else
(ids, currency, category, status, dates) stays plaintext so the storage
collaborator can index it.

DESIGN DECISION: The loan remaining amount is written for readers
(``encryptedRemainingAmount``) but never read back as truth. Decryption
re-derives it from the payment ledger and only logs a mismatch.
"""

from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from ledgervault.crypto.codec import FieldCodec
from ledgervault.errors import CorruptField, ValidationError
from ledgervault.models.records import (
    ExpenseRecord,
    IncomeRecord,
    LedgerEntry,
    LoanRecord,
    Record,
    RecordKind,
)


logger = structlog.get_logger(__name__)

ENTRY_KEYS = frozenset({
    "id", "type", "userId", "encryptedAmount", "currency", "category",
    "encryptedDescription", "status", "createdAt", "version",
})
LOAN_KEYS = frozenset({
    "id", "type", "lenderId", "borrowerId", "encryptedAmount", "currency",
    "encryptedDescription", "status", "createdAt", "dueDate", "externalParty",
    "createdBy", "payments", "collaborators", "comments", "encryptedRemainingAmount",
    "version",
})
PAYMENT_KEYS = frozenset({"id", "encryptedAmount", "date", "encryptedNote", "paidBy"})
PARTY_KEYS = frozenset({"encryptedName", "encryptedEmail"})
COLLABORATOR_KEYS = frozenset({"userId", "role", "status", "invitedBy", "invitedAt"})
COMMENT_KEYS = frozenset({"id", "authorId", "encryptedMessage", "createdAt"})

_ENTRY_MODELS = {
    RecordKind.EXPENSE: ExpenseRecord,
    RecordKind.INCOME: IncomeRecord,
}


def _require(document: Mapping[str, Any], key: str) -> Any:
    if key not in document or document[key] is None:
        raise CorruptField(key, "Missing field")
    return document[key]


def _reject_unknown(document: Mapping[str, Any], allowed: frozenset, where: str) -> None:
    unknown = sorted(set(document) - allowed)
    if unknown:
        raise CorruptField(f"{where}.{unknown[0]}", "Unexpected field")


def _rebuild(model: type, data: dict) -> BaseModel:
    """Validate decrypted data; stored data that breaks an invariant is corrupt."""
    try:
        return model.model_validate(data)
    except SchemaValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or model.__name__
        raise CorruptField(field, "Stored value violates the record schema") from None
    except ValidationError as e:
        raise CorruptField(e.field, "Stored value violates a record invariant") from None


class RecordCodec:
    """
    Encrypts whole records for storage and decrypts stored documents.

    Stateless apart from the field codec it wraps.
    """

    def __init__(self, fields: FieldCodec):
        self._fields = fields

    @classmethod
    def from_key(cls, key: bytes) -> "RecordCodec":
        return cls(FieldCodec(key))

    # -------------------------------------------------------------------------
    # encrypt
    # -------------------------------------------------------------------------

    def encrypt_record(self, record: Record) -> dict:
        if isinstance(record, LoanRecord):
            return self._encrypt_loan(record)
        if isinstance(record, LedgerEntry):
            return self._encrypt_entry(record)
        raise TypeError(f"Unsupported record type: {type(record).__name__}")

    def _encrypt_entry(self, entry: LedgerEntry) -> dict:
        return {
            "id": str(entry.id),
            "type": entry.kind.value,
            "userId": entry.user_id,
            "encryptedAmount": self._fields.encode_amount(entry.amount),
            "currency": entry.currency,
            "category": entry.category.value,
            "encryptedDescription": self._fields.encode_text(entry.description),
            "status": entry.status.value,
            "createdAt": entry.created_at.isoformat(),
            "version": entry.version,
        }

    def _encrypt_loan(self, loan: LoanRecord) -> dict:
        encode_text = self._fields.encode_text
        encode_amount = self._fields.encode_amount

        document: dict[str, Any] = {
            "id": str(loan.id),
            "type": RecordKind.LOAN.value,
            "lenderId": loan.lender_id,
            "borrowerId": loan.borrower_id,
            "encryptedAmount": encode_amount(loan.principal),
            "currency": loan.currency,
            "encryptedDescription": encode_text(loan.description),
            "status": loan.status.value,
            "createdAt": loan.created_at.isoformat(),
            "dueDate": loan.due_date.isoformat() if loan.due_date else None,
            "externalParty": None,
            "createdBy": loan.created_by,
            "payments": [],
            "collaborators": [],
            "comments": [],
            "encryptedRemainingAmount": encode_amount(loan.remaining_amount),
            "version": loan.version,
        }

        if loan.external_party is not None:
            party: dict[str, Any] = {"encryptedName": encode_text(loan.external_party.name)}
            if loan.external_party.email:
                party["encryptedEmail"] = encode_text(loan.external_party.email)
            document["externalParty"] = party

        for payment in loan.payments:
            stored: dict[str, Any] = {
                "id": str(payment.id),
                "encryptedAmount": encode_amount(payment.amount),
                "date": payment.paid_on.isoformat(),
            }
            if payment.note is not None:
                stored["encryptedNote"] = encode_text(payment.note)
            if payment.paid_by is not None:
                stored["paidBy"] = payment.paid_by
            document["payments"].append(stored)

        for collaborator in loan.collaborators:
            document["collaborators"].append({
                "userId": collaborator.user_id,
                "role": collaborator.role.value,
                "status": collaborator.status.value,
                "invitedBy": collaborator.invited_by,
                "invitedAt": collaborator.invited_at.isoformat(),
            })

        for comment in loan.comments:
            document["comments"].append({
                "id": str(comment.id),
                "authorId": comment.author_id,
                "encryptedMessage": encode_text(comment.message),
                "createdAt": comment.created_at.isoformat(),
            })

        return document

    # -------------------------------------------------------------------------
    # decrypt
    # -------------------------------------------------------------------------

    def decrypt_record(
        self,
        document: Mapping[str, Any],
        kind: Optional[Union[RecordKind, str]] = None,
    ) -> Record:
        """
        Decrypt a stored document into a plaintext record.

        Raises:
            AuthenticationFailure: Any envelope fails authentication.
            CorruptField: A field is missing, unexpected, or its plaintext
                does not satisfy the record schema.
        """
        raw_kind = kind if kind is not None else _require(document, "type")
        try:
            record_kind = RecordKind(raw_kind)
        except ValueError:
            raise CorruptField("type", "Unknown record type") from None

        if record_kind == RecordKind.LOAN:
            return self._decrypt_loan(document)
        return self._decrypt_entry(document, record_kind)

    def _decrypt_entry(self, document: Mapping[str, Any], kind: RecordKind) -> LedgerEntry:
        _reject_unknown(document, ENTRY_KEYS, kind.value)
        data = {
            "id": _require(document, "id"),
            "user_id": _require(document, "userId"),
            "amount": self._fields.decode_amount(_require(document, "encryptedAmount"), "amount"),
            "currency": _require(document, "currency"),
            "category": _require(document, "category"),
            "description": self._fields.decode_text(
                _require(document, "encryptedDescription"), "description"
            ),
            "created_at": _require(document, "createdAt"),
        }
        for key, field in (("status", "status"), ("version", "version")):
            if document.get(key) is not None:
                data[field] = document[key]
        return _rebuild(_ENTRY_MODELS[kind], data)

    def _decrypt_loan(self, document: Mapping[str, Any]) -> LoanRecord:
        _reject_unknown(document, LOAN_KEYS, "loan")
        decode_text = self._fields.decode_text
        decode_amount = self._fields.decode_amount

        data: dict[str, Any] = {
            "id": _require(document, "id"),
            "lender_id": _require(document, "lenderId"),
            "borrower_id": _require(document, "borrowerId"),
            "principal": decode_amount(_require(document, "encryptedAmount"), "principal"),
            "currency": _require(document, "currency"),
            "description": decode_text(_require(document, "encryptedDescription"), "description"),
            "status": _require(document, "status"),
            "created_at": _require(document, "createdAt"),
            "due_date": document.get("dueDate"),
            "created_by": document.get("createdBy"),
        }
        if document.get("version") is not None:
            data["version"] = document["version"]

        party = document.get("externalParty")
        if party:
            _reject_unknown(party, PARTY_KEYS, "externalParty")
            data["external_party"] = {
                "name": decode_text(_require(party, "encryptedName"), "externalParty.name"),
                "email": (
                    decode_text(party["encryptedEmail"], "externalParty.email")
                    if party.get("encryptedEmail") else None
                ),
            }

        data["payments"] = [
            self._decrypt_payment(stored, index)
            for index, stored in enumerate(document.get("payments") or [])
        ]
        data["collaborators"] = [
            self._decrypt_collaborator(stored)
            for stored in document.get("collaborators") or []
        ]
        data["comments"] = [
            self._decrypt_comment(stored, index)
            for index, stored in enumerate(document.get("comments") or [])
        ]

        loan = _rebuild(LoanRecord, data)

        stored_remaining = document.get("encryptedRemainingAmount")
        if stored_remaining:
            remaining = decode_amount(stored_remaining, "remainingAmount")
            if remaining != loan.remaining_amount:
                logger.warning(
                    "stored_remaining_amount_mismatch",
                    loan_id=str(loan.id),
                    version=loan.version,
                )
        return loan

    def _decrypt_payment(self, stored: Mapping[str, Any], index: int) -> dict:
        _reject_unknown(stored, PAYMENT_KEYS, f"payments.{index}")
        payment = {
            "id": _require(stored, "id"),
            "amount": self._fields.decode_amount(
                _require(stored, "encryptedAmount"), f"payments.{index}.amount"
            ),
            "paid_on": _require(stored, "date"),
        }
        if stored.get("encryptedNote"):
            payment["note"] = self._fields.decode_text(
                stored["encryptedNote"], f"payments.{index}.note"
            )
        if stored.get("paidBy"):
            payment["paid_by"] = stored["paidBy"]
        return payment

    def _decrypt_collaborator(self, stored: Mapping[str, Any]) -> dict:
        _reject_unknown(stored, COLLABORATOR_KEYS, "collaborators")
        return {
            "user_id": _require(stored, "userId"),
            "role": _require(stored, "role"),
            "status": _require(stored, "status"),
            "invited_by": _require(stored, "invitedBy"),
            "invited_at": _require(stored, "invitedAt"),
        }

    def _decrypt_comment(self, stored: Mapping[str, Any], index: int) -> dict:
        _reject_unknown(stored, COMMENT_KEYS, f"comments.{index}")
        return {
            "id": _require(stored, "id"),
            "author_id": _require(stored, "authorId"),
            "message": self._fields.decode_text(
                _require(stored, "encryptedMessage"), f"comments.{index}.message"
            ),
            "created_at": _require(stored, "createdAt"),
        }
