"""
Cipher Engine

Authenticated encryption of opaque byte strings under a single 32-byte key.
This module knows nothing about ledgers, amounts or records.

Envelope layout (fixed):
    nonce (12 bytes) || tag (16 bytes) || ciphertext (variable)

Encryption Technology:
    - Algorithm: AES-256-GCM (confidentiality + integrity in one primitive)
    - Nonce: 96 bits from os.urandom, fresh for every call
    - Tag: 128 bits
    - Associated data: unused

DESIGN DECISION: The key is always an explicit argument.
Nothing here reads configuration, so the engine can be exercised with fixed
test keys and is safe to call from any number of threads.
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ledgervault.errors import AuthenticationFailure


KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16
MIN_ENVELOPE_LENGTH = NONCE_LENGTH + TAG_LENGTH


def derive_key(secret: str) -> bytes:
    """
    Derive the 32-byte key from an environment-supplied secret.

    If the secret is valid base64 that decodes to exactly 32 bytes, the
    decoded bytes are used verbatim. Otherwise the secret's UTF-8 bytes are
    right-padded with zero bytes, or truncated, to 32 bytes.
    """
    normalized = secret.strip()
    if not normalized:
        raise ValueError("Encryption secret must not be empty")

    try:
        decoded = base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError):
        decoded = None
    if decoded is not None and len(decoded) == KEY_LENGTH:
        return decoded

    raw = normalized.encode("utf-8")
    if len(raw) < KEY_LENGTH:
        return raw + bytes(KEY_LENGTH - len(raw))
    return raw[:KEY_LENGTH]


def _check_key(key: bytes) -> None:
    if len(key) != KEY_LENGTH:
        raise ValueError(f"Key must be exactly {KEY_LENGTH} bytes")


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """Seal plaintext into a fresh envelope."""
    _check_key(key)
    nonce = os.urandom(NONCE_LENGTH)
    # AESGCM appends the tag to the ciphertext
    sealed = AESGCM(key).encrypt(nonce, plaintext, None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return nonce + tag + ciphertext


def decrypt(envelope: bytes, key: bytes) -> bytes:
    """
    Open an envelope produced by ``encrypt``.

    Raises:
        AuthenticationFailure: If the envelope is too short to hold a nonce
            and tag, or the tag does not verify under ``key``.
    """
    _check_key(key)
    if len(envelope) < MIN_ENVELOPE_LENGTH:
        raise AuthenticationFailure("Envelope is too short")

    nonce = envelope[:NONCE_LENGTH]
    tag = envelope[NONCE_LENGTH:MIN_ENVELOPE_LENGTH]
    ciphertext = envelope[MIN_ENVELOPE_LENGTH:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag:
        raise AuthenticationFailure() from None
