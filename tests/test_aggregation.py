"""
Tests for the aggregation engine: remaining amounts and dashboard totals.
"""

import itertools
from decimal import Decimal

import pytest

from ledgervault.aggregation import (
    remaining_amount,
    summarize,
    summarize_by_currency,
    total_paid,
)
from ledgervault.ledger import create_record, invite_collaborator, respond_to_invitation
from ledgervault.models import (
    EXTERNAL_PARTY_ID,
    DashboardSummary,
    EntryStatus,
    ExternalParty,
    LoanPayment,
    LoanStatus,
)


def entry(kind: str, amount: str, user_id: str = "alice", **overrides):
    fields = {
        "user_id": user_id,
        "amount": Decimal(amount),
        "category": "Salary" if kind == "income" else "Food",
    }
    fields.update(overrides)
    return create_record(kind, fields)


def payments(*amounts: str) -> tuple:
    return tuple(LoanPayment(amount=Decimal(a)) for a in amounts)


class TestRemainingAmount:
    """Tests for re-deriving a loan's remaining amount."""

    def test_scenario_partial_payments(self, make_loan):
        """Test principal 1000 with [300, 250] gives 450."""
        loan = make_loan("1000", payments=payments("300", "250"))
        assert remaining_amount(loan) == Decimal("450")
        assert total_paid(loan) == Decimal("550")

    def test_no_payments(self, make_loan):
        assert remaining_amount(make_loan("1000")) == Decimal("1000")

    def test_never_negative(self, make_loan):
        loan = make_loan("100", status=LoanStatus.SETTLED, payments=payments("60", "60"))
        assert remaining_amount(loan) == Decimal("0")

    def test_independent_of_payment_order(self, make_loan):
        amounts = ("100.10", "200.20", "0.05")
        results = {
            remaining_amount(make_loan("1000", payments=payments(*order)))
            for order in itertools.permutations(amounts)
        }
        assert results == {Decimal("699.65")}


class TestSummarize:
    """Tests for dashboard totals."""

    def test_empty_input_is_all_zero(self):
        """Test entries = [], loans = [] gives zeros and no error."""
        summary = summarize([], [], "alice")
        assert summary == DashboardSummary()
        assert summary.is_empty
        assert summary.balance == Decimal("0")
        assert summary.net_loan == Decimal("0")
        assert summary.net_worth == Decimal("0")

    def test_income_and_expense_totals(self):
        entries = [
            entry("income", "5000"),
            entry("income", "250.50"),
            entry("expense", "1200"),
            entry("expense", "80.25"),
        ]
        summary = summarize(entries, [], "alice")
        assert summary.total_income == Decimal("5250.50")
        assert summary.total_expense == Decimal("1280.25")
        assert summary.balance == Decimal("3970.25")

    def test_cancelled_entries_are_excluded(self):
        entries = [
            entry("income", "100"),
            entry("income", "900", status=EntryStatus.CANCELLED),
        ]
        assert summarize(entries, [], "alice").total_income == Decimal("100")

    def test_loans_classified_by_direction(self, make_loan):
        loan = make_loan("1000", payments=payments("300"))
        lender_view = summarize([], [loan], "alice")
        borrower_view = summarize([], [loan], "bob")

        assert lender_view.total_loaned == Decimal("700")
        assert lender_view.total_borrowed == Decimal("0")
        assert borrower_view.total_borrowed == Decimal("700")
        assert borrower_view.total_loaned == Decimal("0")
        assert lender_view.net_loan == Decimal("700")
        assert borrower_view.net_loan == Decimal("-700")

    def test_only_active_loans_count(self, make_loan):
        loans = [
            make_loan("100", status=LoanStatus.PENDING),
            make_loan("200", status=LoanStatus.SETTLED),
            make_loan("300"),
        ]
        assert summarize([], loans, "alice").total_loaned == Decimal("300")

    def test_collaborator_loans_are_excluded(self, make_loan):
        """Test that seeing a loan does not put it in your own totals."""
        loan = invite_collaborator(make_loan("500"), "carol", invited_by="alice")
        loan = respond_to_invitation(loan, "carol", accept=True)
        assert summarize([], [loan], "carol").is_empty

    def test_other_users_records_do_not_leak(self, make_loan):
        entries = [entry("income", "100", user_id="alice")]
        loans = [make_loan("100")]
        assert summarize(entries, loans, "dave").total_loaned == Decimal("0")

    def test_external_party_loan_counts_for_account_holder(self, make_loan):
        loan = make_loan(
            "400",
            borrower_id=EXTERNAL_PARTY_ID,
            external_party=ExternalParty(name="Corner shop"),
        )
        assert summarize([], [loan], "alice").total_loaned == Decimal("400")

    def test_external_party_loan_counts_by_direction(self, make_loan):
        loan = make_loan(
            "400",
            lender_id=EXTERNAL_PARTY_ID,
            borrower_id="alice",
            external_party=ExternalParty(name="Corner shop"),
        )
        summary = summarize([], [loan], "alice")
        assert summary.total_loaned == Decimal("0")
        assert summary.total_borrowed == Decimal("400")

    def test_net_worth_is_balance_plus_net_loan(self, make_loan):
        entries = [entry("income", "1000"), entry("expense", "400")]
        loans = [
            make_loan("300"),
            make_loan("100", lender_id="bob", borrower_id="alice"),
        ]
        summary = summarize(entries, loans, "alice")
        assert summary.balance == Decimal("600")
        assert summary.net_loan == Decimal("200")
        assert summary.net_worth == Decimal("800")

    def test_summary_is_additive_over_partitions(self, make_loan):
        """Test summarize(A ∪ B) == summarize(A) + summarize(B) for disjoint A, B."""
        entries = [
            entry("income", "1000"),
            entry("expense", "150.75"),
            entry("income", "42.42"),
            entry("expense", "9.99", status=EntryStatus.CANCELLED),
        ]
        loans = [
            make_loan("500", payments=payments("125")),
            make_loan("250", lender_id="bob", borrower_id="alice"),
            make_loan("75", status=LoanStatus.PENDING),
        ]
        whole = summarize(entries, loans, "alice")

        for split in range(len(entries) + 1):
            for loan_split in range(len(loans) + 1):
                left = summarize(entries[:split], loans[:loan_split], "alice")
                right = summarize(entries[split:], loans[loan_split:], "alice")
                assert left + right == whole

    def test_repeated_calls_are_identical(self, make_loan):
        entries = [entry("income", "10")]
        loans = [make_loan("20")]
        assert summarize(entries, loans, "alice") == summarize(entries, loans, "alice")

    def test_inputs_are_not_mutated(self, make_loan):
        loan = make_loan("20", payments=payments("5"))
        loans = [loan]
        summarize([], loans, "alice")
        assert loans == [loan]
        assert loan.total_paid == Decimal("5")

    def test_summary_serializes_derived_fields(self):
        dumped = DashboardSummary(total_income=Decimal("10")).model_dump()
        assert dumped["balance"] == Decimal("10")
        assert "net_worth" in dumped


class TestSummarizeByCurrency:
    """Tests for per-currency dashboard totals."""

    def test_groups_by_currency_without_conversion(self, make_loan):
        entries = [
            entry("income", "100", currency="USD"),
            entry("income", "50", currency="EUR"),
        ]
        loans = [make_loan("30", currency="EUR")]
        by_currency = summarize_by_currency(entries, loans, "alice")

        assert set(by_currency) == {"EUR", "USD"}
        assert by_currency["USD"].total_income == Decimal("100")
        assert by_currency["EUR"].total_income == Decimal("50")
        assert by_currency["EUR"].total_loaned == Decimal("30")

    def test_empty_input(self):
        assert summarize_by_currency([], [], "alice") == {}

    @pytest.mark.parametrize("user_id", ["alice", "bob"])
    def test_currency_totals_add_up_to_overall(self, make_loan, user_id):
        entries = [entry("income", "100", currency="USD"), entry("expense", "5", currency="PKR")]
        loans = [make_loan("30", currency="EUR"), make_loan("70")]
        by_currency = summarize_by_currency(entries, loans, user_id)
        total = DashboardSummary()
        for summary in by_currency.values():
            total = total + summary
        assert total == summarize(entries, loans, user_id)
