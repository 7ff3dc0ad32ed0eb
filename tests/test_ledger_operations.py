"""
Tests for the pure ledger operations: payments, loan lifecycle,
collaborators, comments, preferences and the ownership predicate.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledgervault.errors import ConcurrentModification, InvalidState, ValidationError
from ledgervault.ledger import (
    activate_loan,
    add_comment,
    apply_payment,
    create_record,
    invite_collaborator,
    is_authorized,
    respond_to_invitation,
    settle_loan,
    update_preferences,
)
from ledgervault.models import (
    EXTERNAL_PARTY_ID,
    CollaboratorRole,
    CollaboratorStatus,
    ExternalParty,
    LoanPayment,
    LoanStatus,
    UserPreferences,
)


def pay(amount: str) -> dict:
    return {"amount": Decimal(amount)}


class TestApplyPayment:
    """Tests for appending payments to loans."""

    def test_partial_payments_keep_loan_active(self, make_loan):
        """Test 1000 with payments [300, 250] leaves 450 and stays active."""
        loan = make_loan("1000")
        loan = apply_payment(loan, pay("300"))
        loan = apply_payment(loan, pay("250"))
        assert loan.remaining_amount == Decimal("450")
        assert loan.status == LoanStatus.ACTIVE
        assert loan.version == 3

    def test_full_payment_settles_loan(self, make_loan):
        """Test 1000 with payment [1000] reaches zero and settles."""
        loan = apply_payment(make_loan("1000"), pay("1000"))
        assert loan.remaining_amount == Decimal("0")
        assert loan.status == LoanStatus.SETTLED

    def test_payment_on_settled_loan_is_rejected(self, make_loan):
        """Test that a settled loan refuses a payment of 50."""
        settled = apply_payment(make_loan("1000"), pay("1000"))
        with pytest.raises(InvalidState) as exc_info:
            apply_payment(settled, pay("50"))
        assert exc_info.value.status == "settled"

    def test_payment_on_pending_loan_is_rejected(self, make_loan):
        with pytest.raises(InvalidState):
            apply_payment(make_loan(status=LoanStatus.PENDING), pay("50"))

    def test_overpayment_clamps_to_zero_and_settles(self, make_loan):
        loan = apply_payment(make_loan("1000"), pay("1200"))
        assert loan.remaining_amount == Decimal("0")
        assert loan.total_paid == Decimal("1200")
        assert loan.status == LoanStatus.SETTLED

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_payment_is_rejected(self, make_loan, amount):
        with pytest.raises(ValidationError) as exc_info:
            apply_payment(make_loan(), pay(amount))
        assert exc_info.value.field == "amount"

    def test_same_payment_cannot_be_applied_twice(self, make_loan):
        payment = LoanPayment(amount=Decimal("100"))
        loan = apply_payment(make_loan(), payment)
        with pytest.raises(ValidationError) as exc_info:
            apply_payment(loan, payment)
        assert exc_info.value.field == "id"

    def test_stale_version_is_rejected(self, make_loan):
        """Test that a payment against a stale version never overwrites."""
        loan = make_loan()
        updated = apply_payment(loan, pay("100"), expected_version=1)
        with pytest.raises(ConcurrentModification) as exc_info:
            apply_payment(updated, pay("100"), expected_version=1)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    def test_input_loan_is_not_mutated(self, make_loan):
        loan = make_loan()
        apply_payment(loan, pay("100"))
        assert loan.payments == ()
        assert loan.version == 1

    def test_payment_history_keeps_insertion_order(self, make_loan):
        loan = make_loan()
        for amount in ("10", "30", "20"):
            loan = apply_payment(loan, pay(amount))
        assert [p.amount for p in loan.payments] == [Decimal("10"), Decimal("30"), Decimal("20")]


class TestLoanLifecycle:
    """Tests for activation and manual settlement."""

    def test_activate_pending_loan(self, make_loan):
        loan = activate_loan(make_loan(status=LoanStatus.PENDING))
        assert loan.status == LoanStatus.ACTIVE
        assert loan.version == 2

    def test_activate_active_loan_is_rejected(self, make_loan):
        with pytest.raises(InvalidState):
            activate_loan(make_loan())

    def test_settle_active_loan_with_balance(self, make_loan):
        """Test that manual settlement does not require a zero balance."""
        loan = settle_loan(make_loan())
        assert loan.status == LoanStatus.SETTLED
        assert loan.remaining_amount == Decimal("1000")

    def test_settle_pending_loan_is_rejected(self, make_loan):
        with pytest.raises(InvalidState):
            settle_loan(make_loan(status=LoanStatus.PENDING))

    def test_settle_with_stale_version(self, make_loan):
        with pytest.raises(ConcurrentModification):
            settle_loan(make_loan(), expected_version=5)


class TestCollaborators:
    """Tests for inviting and answering collaborators."""

    def test_invite_adds_pending_viewer(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        invite = loan.collaborator("carol")
        assert invite.role == CollaboratorRole.VIEWER
        assert invite.status == CollaboratorStatus.PENDING
        assert invite.invited_by == "alice"
        assert loan.version == 2

    def test_invite_with_role(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice", role="collaborator")
        assert loan.collaborator("carol").role == CollaboratorRole.COLLABORATOR

    def test_party_cannot_be_invited(self, make_loan):
        with pytest.raises(ValidationError):
            invite_collaborator(make_loan(), "bob", invited_by="alice")

    def test_duplicate_invite_is_rejected(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        with pytest.raises(ValidationError):
            invite_collaborator(loan, "carol", invited_by="alice")

    def test_settled_loan_cannot_gain_collaborators(self, make_loan):
        with pytest.raises(InvalidState):
            invite_collaborator(settle_loan(make_loan()), "carol", invited_by="alice")

    def test_accept_invitation(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        loan = respond_to_invitation(loan, "carol", accept=True)
        assert loan.collaborator("carol").status == CollaboratorStatus.ACCEPTED

    def test_decline_invitation(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        loan = respond_to_invitation(loan, "carol", accept=False)
        assert loan.collaborator("carol").status == CollaboratorStatus.DECLINED

    def test_invitation_is_answered_once(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        loan = respond_to_invitation(loan, "carol", accept=True)
        with pytest.raises(InvalidState):
            respond_to_invitation(loan, "carol", accept=False)

    def test_uninvited_user_cannot_respond(self, make_loan):
        with pytest.raises(ValidationError):
            respond_to_invitation(make_loan(), "mallory", accept=True)


class TestComments:
    """Tests for loan discussion comments."""

    def test_add_comment(self, make_loan):
        loan = add_comment(make_loan(), "bob", "Paying the rest next week")
        assert len(loan.comments) == 1
        assert loan.comments[0].author_id == "bob"
        assert loan.version == 2

    def test_empty_comment_is_rejected(self, make_loan):
        with pytest.raises(ValidationError) as exc_info:
            add_comment(make_loan(), "bob", "")
        assert exc_info.value.field == "message"


class TestUpdatePreferences:
    """Tests for partial preference updates."""

    def test_only_supplied_fields_change(self):
        """Test that absent fields keep their values instead of resetting."""
        current = UserPreferences(dark_mode=True, currency="EUR", timezone="Asia/Karachi")
        updated = update_preferences(current, {"currency": "gbp"})
        assert updated.currency == "GBP"
        assert updated.dark_mode is True
        assert updated.timezone == "Asia/Karachi"

    def test_none_leaves_field_untouched(self):
        current = UserPreferences(dark_mode=True)
        updated = update_preferences(current, {"dark_mode": None})
        assert updated.dark_mode is True

    def test_nested_channels_are_merged(self):
        current = UserPreferences()
        updated = update_preferences(current, {"notifications": {"email": {"payments": False}}})
        assert updated.notifications.email.payments is False
        assert updated.notifications.email.invitations is True
        assert updated.notifications.in_app.payments is True

    def test_unknown_preference_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            update_preferences(UserPreferences(), {"language": "ur"})
        assert exc_info.value.field == "language"

    def test_unknown_channel_is_rejected(self):
        with pytest.raises(ValidationError):
            update_preferences(UserPreferences(), {"notifications": {"sms": {"payments": True}}})

    def test_unknown_category_is_rejected(self):
        with pytest.raises(ValidationError):
            update_preferences(UserPreferences(), {"notifications": {"email": {"marketing": True}}})

    def test_invalid_currency_names_field(self):
        with pytest.raises(ValidationError) as exc_info:
            update_preferences(UserPreferences(), {"currency": "XYZ"})
        assert exc_info.value.field == "currency"

    def test_empty_update_returns_equal_preferences(self):
        current = UserPreferences(dark_mode=True)
        assert update_preferences(current, {}) == current


class TestIsAuthorized:
    """Tests for the ownership predicate."""

    def test_entry_owner(self):
        entry = create_record("expense", {
            "user_id": "alice",
            "amount": Decimal("5"),
            "category": "Food",
        })
        assert is_authorized(entry, "alice")
        assert not is_authorized(entry, "bob")

    def test_loan_parties(self, make_loan):
        loan = make_loan()
        assert is_authorized(loan, "alice")
        assert is_authorized(loan, "bob")
        assert not is_authorized(loan, "carol")

    def test_only_accepted_collaborators(self, make_loan):
        loan = invite_collaborator(make_loan(), "carol", invited_by="alice")
        assert not is_authorized(loan, "carol")
        loan = respond_to_invitation(loan, "carol", accept=True)
        assert is_authorized(loan, "carol")

    def test_external_sentinel_and_blank_ids(self, make_loan):
        loan = make_loan(
            borrower_id=EXTERNAL_PARTY_ID,
            external_party=ExternalParty(name="Corner shop"),
        )
        assert not is_authorized(loan, EXTERNAL_PARTY_ID)
        assert not is_authorized(loan, "")
        assert not is_authorized(loan, None)

    def test_random_id(self, make_loan):
        assert not is_authorized(make_loan(), str(uuid4()))
