"""
Ledger Error Taxonomy

Every failure the ledger core can report is one of these five types.
They are raised to the immediate caller and never swallowed inside the core.

IMPORTANT: Messages are safe to show to a routing layer. They never contain
key material, envelope text or decrypted amounts.
"""

from typing import Optional


class LedgerError(Exception):
    """Base class for all ledger core errors."""
    pass


class AuthenticationFailure(LedgerError):
    """
    Ciphertext did not authenticate under the current key.

    Raised for tampered envelopes, envelopes sealed under a different key and
    envelopes too short to hold a nonce and tag. Never fall back to treating
    the stored value as plaintext.
    """

    def __init__(self, message: str = "Envelope failed authentication"):
        super().__init__(message)


class CorruptField(LedgerError):
    """Envelope authenticated but its plaintext is semantically invalid."""

    def __init__(self, field: Optional[str] = None, message: str = "Field plaintext is invalid"):
        self.field = field
        text = f"{field}: {message}" if field else message
        super().__init__(text)


class ValidationError(LedgerError):
    """A caller-supplied value violates a domain invariant."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class InvalidState(LedgerError):
    """Operation is not allowed for the record's current status."""

    def __init__(self, status: str, message: str):
        self.status = status
        super().__init__(message)


class ConcurrentModification(LedgerError):
    """A mutation was requested against a stale record version."""

    def __init__(self, expected_version: int, actual_version: int):
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Record changed concurrently (expected version {expected_version}, "
            f"found {actual_version})"
        )
