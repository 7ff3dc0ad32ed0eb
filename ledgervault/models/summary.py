"""
Dashboard Summary

A derived view over a user's decrypted records. Never persisted and never
cached beyond a single aggregation call.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, computed_field

from ledgervault.models.money import ZERO


class DashboardSummary(BaseModel):
    """
    Totals for one user.

    Summaries add field-wise, so the summary of a record set equals the sum
    of the summaries of any partition of it.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    total_loaned: Decimal = ZERO      # Others owe the user
    total_borrowed: Decimal = ZERO    # The user owes others

    @computed_field
    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expense

    @computed_field
    @property
    def net_loan(self) -> Decimal:
        """Positive means others owe the user."""
        return self.total_loaned - self.total_borrowed

    @computed_field
    @property
    def net_worth(self) -> Decimal:
        return self.balance + self.net_loan

    def __add__(self, other: "DashboardSummary") -> "DashboardSummary":
        if not isinstance(other, DashboardSummary):
            return NotImplemented
        return DashboardSummary(
            total_income=self.total_income + other.total_income,
            total_expense=self.total_expense + other.total_expense,
            total_loaned=self.total_loaned + other.total_loaned,
            total_borrowed=self.total_borrowed + other.total_borrowed,
        )

    @property
    def is_empty(self) -> bool:
        return (
            self.total_income == ZERO
            and self.total_expense == ZERO
            and self.total_loaned == ZERO
            and self.total_borrowed == ZERO
        )
