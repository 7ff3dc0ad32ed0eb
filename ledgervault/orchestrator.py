"""
Main Orchestrator for ledgervault

This module ties together all the components and defines the
end-to-end flows for:
1. Writes (plaintext mutation → validate → encrypt → save → audit → notify)
2. Reads (load → decrypt → ownership check)
3. Dashboard (load → decrypt → aggregate)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Storage only ever receives encrypted documents
- Every mutation is audited
- Notifications are sent AFTER the mutation is saved and can never undo it
- Loan writes are version-checked, so concurrent payments cannot be lost

Authorization policy beyond the ownership predicate belongs to the caller;
the orchestrator only refuses users the predicate rejects.
"""

from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from ledgervault.aggregation import summarize
from ledgervault.audit import AuditLogger, configure_logging
from ledgervault.config import LedgerSettings, get_settings, load_key
from ledgervault.crypto import RecordCodec
from ledgervault.errors import LedgerError, ValidationError
from ledgervault.events import NotificationDispatcher, emit_all, transitions_for_payment
from ledgervault import ledger
from ledgervault.models import (
    CollaboratorRole,
    DashboardSummary,
    Entry,
    LedgerTransition,
    LoanRecord,
    RecordKind,
    TransitionKind,
    UserPreferences,
)
from ledgervault.services.storage import (
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    PreferencesStorageInterface,
    get_default_storage,
)


logger = structlog.get_logger(__name__)


class NotAuthorizedError(LedgerError):
    """The user is not the owner, a party, or an accepted collaborator."""

    def __init__(self, user_id: str, record_id: Union[UUID, str]):
        self.user_id = user_id
        self.record_id = str(record_id)
        super().__init__("User is not authorized for this record")


class LedgerService:
    """
    Orchestrates ledger reads and writes for authenticated users.

    ``user_id`` arguments are the stable ids produced by the identity
    collaborator; they are trusted as given.
    """

    def __init__(
        self,
        codec: RecordCodec,
        ledger_storage: LedgerStorageInterface,
        preferences_storage: Optional[PreferencesStorageInterface] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._codec = codec
        self._storage = ledger_storage
        self._preferences = preferences_storage
        self._dispatcher = dispatcher
        self._audit_logger = audit_logger or AuditLogger()

    # =========================================================================
    # Internal helpers
    # =========================================================================

    async def _load_loan(self, user_id: str, loan_id: UUID) -> LoanRecord:
        document = await self._storage.get_loan(loan_id)
        if document is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        loan = self._codec.decrypt_record(document, RecordKind.LOAN)
        if not ledger.is_authorized(loan, user_id):
            logger.warning("loan_access_denied", loan_id=str(loan_id), user_id=user_id)
            raise NotAuthorizedError(user_id, loan_id)
        return loan

    async def _save_loan(self, before: LoanRecord, after: LoanRecord) -> None:
        await self._storage.save_loan(
            self._codec.encrypt_record(after),
            expected_version=before.version,
        )

    async def _notify(self, transitions: list[LedgerTransition]) -> int:
        if self._dispatcher is None:
            return 0
        return await self._dispatcher.dispatch_all(emit_all(transitions))

    def _require_party(self, loan: LoanRecord, user_id: str) -> None:
        if user_id not in (loan.lender_id, loan.borrower_id):
            raise NotAuthorizedError(user_id, loan.id)

    # =========================================================================
    # Entries
    # =========================================================================

    async def record_entry(
        self,
        user_id: str,
        kind: Union[RecordKind, str],
        fields: Mapping[str, Any],
    ) -> Entry:
        """Create and store an expense or income entry owned by user_id."""
        if kind not in (RecordKind.EXPENSE, RecordKind.INCOME):
            raise ValidationError("kind", "Entries must be expense or income")

        entry = ledger.create_record(kind, {**fields, "user_id": user_id})
        await self._storage.insert_entry(self._codec.encrypt_record(entry))
        await self._audit_logger.log_record_created(entry, user_id)
        return entry

    async def get_entry(self, user_id: str, entry_id: UUID) -> Entry:
        document = await self._storage.get_entry(entry_id)
        if document is None:
            raise NotFoundError(f"Entry {entry_id} not found")
        entry = self._codec.decrypt_record(document)
        if not ledger.is_authorized(entry, user_id):
            raise NotAuthorizedError(user_id, entry_id)
        return entry

    # =========================================================================
    # Loans
    # =========================================================================

    async def create_loan(
        self,
        user_id: str,
        fields: Mapping[str, Any],
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        """
        Record a loan user_id is a party to.

        A loan with an account-holding counterparty starts pending and asks
        them for approval; a loan with an external party starts active.
        """
        loan = ledger.create_record(RecordKind.LOAN, fields)
        self._require_party(loan, user_id)
        loan = loan.model_copy(update={"created_by": user_id})

        await self._storage.save_loan(self._codec.encrypt_record(loan))
        await self._audit_logger.log_record_created(loan, user_id)
        await self._notify([
            LedgerTransition(
                kind=TransitionKind.LOAN_REQUESTED,
                loan=loan,
                actor_id=user_id,
                actor_name=actor_name,
            )
        ])
        return loan

    async def get_loan(self, user_id: str, loan_id: UUID) -> LoanRecord:
        return await self._load_loan(user_id, loan_id)

    async def accept_loan(
        self,
        user_id: str,
        loan_id: UUID,
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        """The party who did not record a pending loan approves it."""
        loan = await self._load_loan(user_id, loan_id)
        self._require_party(loan, user_id)
        if loan.created_by is not None and user_id == loan.created_by:
            logger.warning("loan_self_approval_denied", loan_id=str(loan_id), user_id=user_id)
            raise NotAuthorizedError(user_id, loan_id)

        accepted = ledger.activate_loan(loan, expected_version=loan.version)
        await self._save_loan(loan, accepted)
        await self._audit_logger.log_status_changed(
            accepted, user_id, loan.status.value, reason="accepted"
        )
        await self._notify([
            LedgerTransition(
                kind=TransitionKind.STATUS_CHANGED,
                loan=accepted,
                actor_id=user_id,
                actor_name=actor_name,
                previous_status=loan.status,
            )
        ])
        return accepted

    async def add_payment(
        self,
        user_id: str,
        loan_id: UUID,
        payment_fields: Mapping[str, Any],
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        """
        Append a payment to a loan.

        Raises:
            InvalidState: The loan is pending or settled
            ValidationError: The payment is invalid
            ConcurrentModification: Someone else changed the loan meanwhile
        """
        loan = await self._load_loan(user_id, loan_id)
        payment = ledger.create_payment({"paid_by": user_id, **payment_fields})

        updated = ledger.apply_payment(loan, payment, expected_version=loan.version)
        await self._save_loan(loan, updated)
        await self._audit_logger.log_payment_added(updated, payment, user_id, loan.status.value)
        await self._notify(
            transitions_for_payment(loan, updated, user_id, payment, actor_name)
        )
        return updated

    async def settle_loan(
        self,
        user_id: str,
        loan_id: UUID,
        reason: Optional[str] = None,
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        """Mark an active loan settled regardless of its remaining amount."""
        loan = await self._load_loan(user_id, loan_id)
        self._require_party(loan, user_id)

        settled = ledger.settle_loan(loan, expected_version=loan.version)
        await self._save_loan(loan, settled)
        await self._audit_logger.log_status_changed(
            settled, user_id, loan.status.value, reason=reason or "manual"
        )
        await self._notify([
            LedgerTransition(
                kind=TransitionKind.STATUS_CHANGED,
                loan=settled,
                actor_id=user_id,
                actor_name=actor_name,
                previous_status=loan.status,
            )
        ])
        return settled

    async def invite_collaborator(
        self,
        user_id: str,
        loan_id: UUID,
        invitee_id: str,
        role: Union[CollaboratorRole, str] = CollaboratorRole.VIEWER,
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        """Only the lender or borrower may invite collaborators."""
        loan = await self._load_loan(user_id, loan_id)
        self._require_party(loan, user_id)

        updated = ledger.invite_collaborator(
            loan, invitee_id, invited_by=user_id, role=role, expected_version=loan.version
        )
        await self._save_loan(loan, updated)
        await self._audit_logger.log_collaborator_invited(updated, user_id, invitee_id)
        await self._notify([
            LedgerTransition(
                kind=TransitionKind.COLLABORATOR_INVITED,
                loan=updated,
                actor_id=user_id,
                actor_name=actor_name,
                invitee_id=invitee_id,
            )
        ])
        return updated

    async def respond_to_invitation(
        self,
        user_id: str,
        loan_id: UUID,
        accept: bool,
    ) -> LoanRecord:
        # Invitees are not authorized until they accept, so load without the check
        document = await self._storage.get_loan(loan_id)
        if document is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        loan = self._codec.decrypt_record(document, RecordKind.LOAN)

        updated = ledger.respond_to_invitation(loan, user_id, accept, expected_version=loan.version)
        await self._save_loan(loan, updated)
        await self._audit_logger.log_invitation_answered(updated, user_id)
        return updated

    async def add_comment(
        self,
        user_id: str,
        loan_id: UUID,
        message: str,
        actor_name: Optional[str] = None,
    ) -> LoanRecord:
        loan = await self._load_loan(user_id, loan_id)

        updated = ledger.add_comment(loan, user_id, message, expected_version=loan.version)
        await self._save_loan(loan, updated)
        await self._audit_logger.log_comment_added(updated, user_id)
        await self._notify([
            LedgerTransition(
                kind=TransitionKind.COMMENT_ADDED,
                loan=updated,
                actor_id=user_id,
                actor_name=actor_name,
            )
        ])
        return updated

    # =========================================================================
    # Preferences
    # =========================================================================

    async def get_preferences(self, user_id: str) -> UserPreferences:
        if self._preferences is None:
            return UserPreferences()
        return await self._preferences.get_preferences(user_id) or UserPreferences()

    async def update_preferences(
        self,
        user_id: str,
        changes: Mapping[str, Any],
    ) -> UserPreferences:
        """Apply a partial preferences update and store the result."""
        if self._preferences is None:
            raise ValidationError("preferences", "Preferences storage is not configured")

        current = await self.get_preferences(user_id)
        updated = ledger.update_preferences(current, changes)
        await self._preferences.save_preferences(user_id, updated)

        changed = [
            name for name in UserPreferences.model_fields
            if getattr(current, name) != getattr(updated, name)
        ]
        await self._audit_logger.log_preferences_updated(user_id, changed)
        return updated

    # =========================================================================
    # Dashboard
    # =========================================================================

    async def dashboard(self, user_id: str) -> DashboardSummary:
        """
        Totals for user_id over everything they own or are a party to.

        Fails closed: one document that does not authenticate fails the
        whole dashboard rather than silently dropping it from the totals.
        """
        entries = [
            self._codec.decrypt_record(document)
            for document in await self._storage.list_entries(user_id)
        ]
        loans = [
            self._codec.decrypt_record(document, RecordKind.LOAN)
            for document in await self._storage.list_loans(user_id)
        ]
        return summarize(entries, loans, user_id)


def create_ledger_service(
    settings: Optional[LedgerSettings] = None,
    storage: Optional[InMemoryLedgerStorage] = None,
) -> LedgerService:
    """
    Factory function to create a fully wired ledger service.

    Args:
        settings: Loaded settings. Defaults to get_settings().
        storage: Storage backend. Defaults to the process-wide in-memory one.
    """
    settings = settings or get_settings()
    storage = storage or get_default_storage()
    configure_logging(settings.log_level)

    return LedgerService(
        codec=RecordCodec.from_key(load_key(settings)),
        ledger_storage=storage,
        preferences_storage=storage,
        dispatcher=NotificationDispatcher(storage, preferences=storage, settings=settings),
        audit_logger=AuditLogger(storage),
    )
