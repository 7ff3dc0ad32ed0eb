"""
Data Models Package

Pydantic models for ledger records, derived summaries, domain events and
the audit trail. Every record flowing through the core conforms to these
schemas.
"""

from ledgervault.models.records import (
    SUPPORTED_CURRENCIES,
    EXTERNAL_PARTY_ID,
    ChannelPreferences,
    CollaboratorRole,
    CollaboratorStatus,
    Entry,
    EntryStatus,
    ExpenseCategory,
    ExpenseRecord,
    ExternalParty,
    IncomeCategory,
    IncomeRecord,
    LedgerEntry,
    LoanCollaborator,
    LoanComment,
    LoanPayment,
    LoanRecord,
    LoanStatus,
    NotificationPreferences,
    Record,
    RecordKind,
    UserPreferences,
)
from ledgervault.models.summary import DashboardSummary
from ledgervault.models.events import (
    DomainEvent,
    DomainEventBuilder,
    DomainEventKind,
    LedgerTransition,
    RelatedRecordKind,
    TransitionKind,
)
from ledgervault.models.audit import (
    AuditAction,
    AuditChange,
    AuditEntityType,
    AuditEvent,
    AuditEventBuilder,
    AuditSeverity,
)

__all__ = [
    # Record models
    "SUPPORTED_CURRENCIES",
    "EXTERNAL_PARTY_ID",
    "ChannelPreferences",
    "CollaboratorRole",
    "CollaboratorStatus",
    "Entry",
    "EntryStatus",
    "ExpenseCategory",
    "ExpenseRecord",
    "ExternalParty",
    "IncomeCategory",
    "IncomeRecord",
    "LedgerEntry",
    "LoanCollaborator",
    "LoanComment",
    "LoanPayment",
    "LoanRecord",
    "LoanStatus",
    "NotificationPreferences",
    "Record",
    "RecordKind",
    "UserPreferences",
    # Derived views
    "DashboardSummary",
    # Domain events
    "DomainEvent",
    "DomainEventBuilder",
    "DomainEventKind",
    "LedgerTransition",
    "RelatedRecordKind",
    "TransitionKind",
    # Audit models
    "AuditAction",
    "AuditChange",
    "AuditEntityType",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditSeverity",
]
