"""Aggregation package: derived totals over decrypted records."""

from ledgervault.aggregation.engine import (
    remaining_amount,
    summarize,
    summarize_by_currency,
    total_paid,
)

__all__ = [
    "remaining_amount",
    "summarize",
    "summarize_by_currency",
    "total_paid",
]
