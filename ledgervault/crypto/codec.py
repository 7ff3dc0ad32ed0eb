"""
Field Codec

Maps typed ledger field values to and from base64 envelope text.

Amounts are serialised as canonical fixed-point text before encryption,
so ``decode_amount(encode_amount(x)) == x`` holds exactly, trailing zeros
included. Float text is never used.
"""

import base64
import binascii
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from ledgervault.crypto import cipher
from ledgervault.errors import AuthenticationFailure, CorruptField, ValidationError


AmountLike = Union[Decimal, int, str]


def to_envelope_text(envelope: bytes) -> str:
    return base64.b64encode(envelope).decode("ascii")


def from_envelope_text(text: str) -> bytes:
    """Decode base64 envelope text; malformed text fails authentication."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise AuthenticationFailure("Envelope is not valid base64") from None


def canonical_amount(value: AmountLike, field: str = "amount") -> str:
    """Return the fixed-point text an amount is encrypted as."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(field, "Amounts must be Decimal, int or numeric text")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field, "Amount is not a number") from None
    if not amount.is_finite():
        raise ValidationError(field, "Amount must be finite")
    return format(amount, "f")


class FieldCodec:
    """
    Encrypts and decrypts individual ledger fields under one key.

    Holds no state besides the key, so one instance can be shared freely.
    """

    def __init__(self, key: bytes):
        if len(key) != cipher.KEY_LENGTH:
            raise ValueError(f"Key must be exactly {cipher.KEY_LENGTH} bytes")
        self._key = key

    def encode_text(self, value: str) -> str:
        return to_envelope_text(cipher.encrypt(value.encode("utf-8"), self._key))

    def decode_text(self, envelope: str, field: Optional[str] = None) -> str:
        plaintext = cipher.decrypt(from_envelope_text(envelope), self._key)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise CorruptField(field, "Plaintext is not valid UTF-8") from None

    def encode_amount(self, value: AmountLike, field: str = "amount") -> str:
        return self.encode_text(canonical_amount(value, field))

    def decode_amount(self, envelope: str, field: Optional[str] = "amount") -> Decimal:
        """
        Decrypt an amount envelope.

        AuthenticationFailure propagates unchanged; plaintext that is not a
        finite decimal raises CorruptField.
        """
        text = self.decode_text(envelope, field)
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise CorruptField(field, "Plaintext is not a number") from None
        if not amount.is_finite():
            raise CorruptField(field, "Plaintext is not a finite number")
        return amount
