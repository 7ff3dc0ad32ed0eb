"""
ledgervault - Encrypted Ledger Core

Field-level authenticated encryption and derived aggregates for a
personal and shared finance ledger (expenses, income, loans).

DESIGN PRINCIPLES:
1. Ledger fields never reach storage in plaintext
2. Fail closed: a value that does not authenticate is never trusted
3. Derived amounts are recomputed, never read back from storage
4. Records are immutable values; saving is an explicit call
5. Every mutation is auditable
"""

__version__ = "1.0.0"
