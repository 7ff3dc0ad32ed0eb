"""
Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and side-effect free.
It works on decrypted record values handed in by the caller, never
retains them, and recomputes everything on every call. Concurrent callers
aggregating the same snapshot always get identical results.

The loan remaining amount is always re-derived from the payment ledger;
a stored remaining amount is never trusted.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from ledgervault.models.money import ZERO, remaining_balance
from ledgervault.models.records import (
    Entry,
    EntryStatus,
    ExpenseRecord,
    IncomeRecord,
    LoanRecord,
    LoanStatus,
)
from ledgervault.models.summary import DashboardSummary


def total_paid(loan: LoanRecord) -> Decimal:
    return sum((payment.amount for payment in loan.payments), ZERO)


def remaining_amount(loan: LoanRecord) -> Decimal:
    """max(0, principal - sum of payments). Independent of payment order."""
    return remaining_balance(loan.principal, (payment.amount for payment in loan.payments))


def summarize(
    entries: Iterable[Entry],
    loans: Iterable[LoanRecord],
    user_id: str,
) -> DashboardSummary:
    """
    Compute the dashboard totals for user_id.

    Only active entries and loans count. Loans are classified by direction:
    lent when the user is the lender, borrowed when the user is the borrower.
    Loans the user only collaborates on are excluded. A loan with an
    external party counts on the account holder's side.
    """
    total_income = ZERO
    total_expense = ZERO
    for entry in entries:
        if entry.status != EntryStatus.ACTIVE:
            continue
        if isinstance(entry, IncomeRecord):
            total_income += entry.amount
        elif isinstance(entry, ExpenseRecord):
            total_expense += entry.amount

    total_loaned = ZERO
    total_borrowed = ZERO
    for loan in loans:
        if loan.status != LoanStatus.ACTIVE:
            continue
        if user_id == loan.lender_id:
            total_loaned += remaining_amount(loan)
        elif user_id == loan.borrower_id:
            total_borrowed += remaining_amount(loan)

    return DashboardSummary(
        total_income=total_income,
        total_expense=total_expense,
        total_loaned=total_loaned,
        total_borrowed=total_borrowed,
    )


def summarize_by_currency(
    entries: Iterable[Entry],
    loans: Iterable[LoanRecord],
    user_id: str,
) -> dict[str, DashboardSummary]:
    """
    Summaries keyed by currency code.

    No conversion is attempted; each currency is totalled on its own.
    """
    entries_by_currency: dict[str, list[Entry]] = defaultdict(list)
    loans_by_currency: dict[str, list[LoanRecord]] = defaultdict(list)
    for entry in entries:
        entries_by_currency[entry.currency].append(entry)
    for loan in loans:
        loans_by_currency[loan.currency].append(loan)

    currencies = sorted(set(entries_by_currency) | set(loans_by_currency))
    return {
        currency: summarize(
            entries_by_currency.get(currency, []),
            loans_by_currency.get(currency, []),
            user_id,
        )
        for currency in currencies
    }
