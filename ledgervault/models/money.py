"""Decimal helpers shared by the record model and the aggregation engine."""

from decimal import Decimal
from typing import Iterable

ZERO = Decimal("0")


def remaining_balance(principal: Decimal, payment_amounts: Iterable[Decimal]) -> Decimal:
    """Principal minus cumulative payments, floored at zero."""
    outstanding = principal - sum(payment_amounts, ZERO)
    return max(ZERO, outstanding)
