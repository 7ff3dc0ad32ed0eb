"""
Crypto Package

Authenticated encryption of ledger fields and whole records.
The key is always passed in explicitly; nothing here reads configuration.
"""

from ledgervault.crypto.cipher import (
    KEY_LENGTH,
    MIN_ENVELOPE_LENGTH,
    NONCE_LENGTH,
    TAG_LENGTH,
    decrypt,
    derive_key,
    encrypt,
)
from ledgervault.crypto.codec import FieldCodec, canonical_amount
from ledgervault.crypto.records import RecordCodec

__all__ = [
    # Cipher engine
    "KEY_LENGTH",
    "MIN_ENVELOPE_LENGTH",
    "NONCE_LENGTH",
    "TAG_LENGTH",
    "decrypt",
    "derive_key",
    "encrypt",
    # Codecs
    "FieldCodec",
    "RecordCodec",
    "canonical_amount",
]
