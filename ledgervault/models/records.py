"""
Ledger Record Models

Plaintext, in-memory forms of the three record kinds (expense, income,
loan) plus the loan sub-ledgers (payments, collaborators, comments) and
user preferences.

These models are designed to:
1. Enforce field-level invariants at construction time
2. Be immutable values: every mutation returns a new record
3. Reject any field outside the enumerated set

DESIGN DECISION: Records are frozen Pydantic v2 models.
There are no save hooks or instance methods that touch storage. The
encrypted at-rest form is produced separately by the record codec.
"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ledgervault.errors import ValidationError
from ledgervault.models.money import ZERO, remaining_balance


SUPPORTED_CURRENCIES = frozenset({
    "PKR", "USD", "EUR", "GBP", "JPY", "CNY", "INR", "AUD", "CAD", "CHF",
    "NZD", "SEK", "NOK", "DKK", "SGD", "HKD", "KRW", "MXN", "BRL", "ZAR",
    "RUB", "KWD", "AED", "SAR",
})

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Stands in for the lender or borrower id when that side is an external party
EXTERNAL_PARTY_ID = "external"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_currency(value: str) -> str:
    code = value.strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(f"Unsupported currency: {value}")
    return code


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """The three ledger record kinds."""
    EXPENSE = "expense"
    INCOME = "income"
    LOAN = "loan"


class ExpenseCategory(str, Enum):
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    EDUCATION = "Education"
    OTHER = "Other"


class IncomeCategory(str, Enum):
    SALARY = "Salary"
    FREELANCE = "Freelance"
    INVESTMENT = "Investment"
    BUSINESS = "Business"
    GIFT = "Gift"
    OTHER = "Other"


class EntryStatus(str, Enum):
    """Only active entries count towards dashboard totals."""
    ACTIVE = "active"
    CANCELLED = "cancelled"


class LoanStatus(str, Enum):
    """
    Loan lifecycle.

    CRITICAL: pending -> active -> settled only. Settled is terminal and is
    never reopened automatically.
    """
    PENDING = "pending"    # Awaiting the counterparty's acceptance
    ACTIVE = "active"      # Accepting payments
    SETTLED = "settled"    # Fully repaid or settled manually


class CollaboratorRole(str, Enum):
    OWNER = "owner"
    COLLABORATOR = "collaborator"
    VIEWER = "viewer"


class CollaboratorStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


_RECORD_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    str_strip_whitespace=True,
)


# =============================================================================
# INCOME / EXPENSE ENTRIES
# =============================================================================

class LedgerEntry(BaseModel):
    """Fields shared by expense and income entries."""
    model_config = _RECORD_CONFIG

    kind: ClassVar[RecordKind]

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Owning user"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Ledger field: encrypted at rest"
    )
    currency: str = Field(
        default="USD",
        description="Three-letter currency code (plaintext at rest)"
    )
    description: str = Field(
        default="",
        max_length=500,
        description="Ledger field: encrypted at rest"
    )
    status: EntryStatus = EntryStatus.ACTIVE
    created_at: datetime = Field(default_factory=utcnow)
    version: int = Field(default=1, ge=1)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return check_currency(v)


class ExpenseRecord(LedgerEntry):
    kind: ClassVar[RecordKind] = RecordKind.EXPENSE

    category: ExpenseCategory


class IncomeRecord(LedgerEntry):
    kind: ClassVar[RecordKind] = RecordKind.INCOME

    category: IncomeCategory


# =============================================================================
# LOAN SUB-LEDGERS
# =============================================================================

class LoanPayment(BaseModel):
    """
    One repayment against a loan.

    Owned by its loan and immutable once created. Corrections are new
    payments, never edits.
    """
    model_config = _RECORD_CONFIG

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Ledger field: encrypted at rest"
    )
    paid_on: date = Field(
        default_factory=lambda: utcnow().date(),
        description="Payment date"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Ledger field: encrypted at rest"
    )
    paid_by: Optional[str] = Field(
        default=None,
        max_length=128,
        description="User who recorded the payment"
    )


class ExternalParty(BaseModel):
    """Counterparty without an account. Both fields are encrypted at rest."""
    model_config = _RECORD_CONFIG

    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, max_length=254)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v.lower()


class LoanCollaborator(BaseModel):
    """A user invited to see or help manage a loan."""
    model_config = _RECORD_CONFIG

    user_id: str = Field(..., min_length=1, max_length=128)
    role: CollaboratorRole = CollaboratorRole.VIEWER
    status: CollaboratorStatus = CollaboratorStatus.PENDING
    invited_by: str = Field(..., min_length=1, max_length=128)
    invited_at: datetime = Field(default_factory=utcnow)


class LoanComment(BaseModel):
    """Append-only discussion entry. The message is encrypted at rest."""
    model_config = _RECORD_CONFIG

    id: UUID = Field(default_factory=uuid4)
    author_id: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# LOAN RECORD
# =============================================================================

class LoanRecord(BaseModel):
    """
    A loan between a lender and a borrower.

    The remaining amount is never stored on the plaintext record; it is
    always re-derived from the payment ledger.
    """
    model_config = _RECORD_CONFIG

    kind: ClassVar[RecordKind] = RecordKind.LOAN

    id: UUID = Field(default_factory=uuid4)
    lender_id: str = Field(..., min_length=1, max_length=128)
    borrower_id: str = Field(..., min_length=1, max_length=128)
    principal: Decimal = Field(
        ...,
        gt=0,
        description="Ledger field: encrypted at rest"
    )
    currency: str = Field(default="USD")
    description: str = Field(default="", max_length=500)
    status: LoanStatus = LoanStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    due_date: Optional[date] = None
    external_party: Optional[ExternalParty] = None
    created_by: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Party who recorded the loan; the other party approves it"
    )

    # Insertion order is kept for audit display
    payments: tuple[LoanPayment, ...] = ()
    collaborators: tuple[LoanCollaborator, ...] = ()
    comments: tuple[LoanComment, ...] = ()

    version: int = Field(default=1, ge=1)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return check_currency(v)

    @model_validator(mode='after')
    def validate_loan(self) -> 'LoanRecord':
        """Validate cross-field loan invariants."""
        if self.lender_id == self.borrower_id:
            raise ValidationError("borrower_id", "Lender and borrower must differ")

        external_side = EXTERNAL_PARTY_ID in (self.lender_id, self.borrower_id)
        if self.external_party is None and external_side:
            raise ValidationError("external_party", "External party details are required")
        if self.external_party is not None and not external_side:
            raise ValidationError("external_party", "The external side must use the external party id")

        if self.created_by is not None and (
            self.created_by == EXTERNAL_PARTY_ID
            or self.created_by not in (self.lender_id, self.borrower_id)
        ):
            raise ValidationError("created_by", "A loan must be recorded by its lender or borrower")

        if self.due_date and self.due_date < self.created_at.date():
            raise ValidationError("due_date", "Due date cannot be before the loan was created")

        if self.payments and self.status == LoanStatus.PENDING:
            raise ValidationError("payments", "A pending loan cannot carry payments")

        if self.remaining_amount == ZERO and self.status != LoanStatus.SETTLED:
            raise ValidationError("status", "A fully repaid loan must be settled")

        return self

    @property
    def total_paid(self) -> Decimal:
        return sum((payment.amount for payment in self.payments), ZERO)

    @property
    def remaining_amount(self) -> Decimal:
        return remaining_balance(self.principal, (p.amount for p in self.payments))

    @property
    def has_external_counterparty(self) -> bool:
        return self.external_party is not None

    def counterparty_of(self, user_id: str) -> Optional[str]:
        """
        Return the account holder on the other side of the loan from user_id.

        None when the other side is an external party, or when user_id is
        neither lender nor borrower.
        """
        if user_id == self.lender_id:
            other = self.borrower_id
        elif user_id == self.borrower_id:
            other = self.lender_id
        else:
            return None
        return None if other == EXTERNAL_PARTY_ID else other

    def collaborator(self, user_id: str) -> Optional[LoanCollaborator]:
        for collaborator in self.collaborators:
            if collaborator.user_id == user_id:
                return collaborator
        return None


Record = Union[ExpenseRecord, IncomeRecord, LoanRecord]
Entry = Union[ExpenseRecord, IncomeRecord]


# =============================================================================
# USER PREFERENCES
# =============================================================================

class ChannelPreferences(BaseModel):
    """Which notification categories a delivery channel accepts."""
    model_config = _RECORD_CONFIG

    invitations: bool = True
    approvals: bool = True
    reminders: bool = True
    payments: bool = True


class NotificationPreferences(BaseModel):
    model_config = _RECORD_CONFIG

    email: ChannelPreferences = Field(default_factory=ChannelPreferences)
    in_app: ChannelPreferences = Field(default_factory=ChannelPreferences)


class UserPreferences(BaseModel):
    model_config = _RECORD_CONFIG

    dark_mode: bool = False
    currency: str = "USD"
    timezone: str = Field(default="UTC", min_length=1, max_length=64)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return check_currency(v)
