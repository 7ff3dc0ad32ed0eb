"""
Tests for the cipher engine: key derivation, envelope layout, and
fail-closed decryption.
"""

import base64

import pytest

from ledgervault.crypto import cipher
from ledgervault.errors import AuthenticationFailure


class TestDeriveKey:
    """Tests for deriving the 32-byte key from a secret string."""

    def test_base64_secret_of_32_bytes_is_decoded(self):
        """Test that a base64 secret decoding to 32 bytes is used verbatim."""
        raw = bytes(range(32))
        secret = base64.b64encode(raw).decode("ascii")
        assert cipher.derive_key(secret) == raw

    def test_surrounding_whitespace_is_stripped(self):
        """Test that whitespace around the secret is ignored."""
        raw = bytes(range(32))
        secret = "  " + base64.b64encode(raw).decode("ascii") + "\n"
        assert cipher.derive_key(secret) == raw

    def test_short_secret_is_zero_padded(self):
        """Test that a short plain secret is right-padded with zero bytes."""
        key = cipher.derive_key("hunter2")
        assert len(key) == 32
        assert key == b"hunter2" + bytes(25)

    def test_long_secret_is_truncated(self):
        """Test that a long plain secret is truncated to 32 bytes."""
        secret = "x" * 50
        assert cipher.derive_key(secret) == b"x" * 32

    def test_base64_of_wrong_length_falls_back_to_raw_bytes(self):
        """Test that base64 decoding to fewer than 32 bytes is not used."""
        # "AAAA" is valid base64 for 3 zero bytes
        assert cipher.derive_key("AAAA") == b"AAAA" + bytes(28)

    def test_empty_secret_is_rejected(self):
        """Test that an empty or blank secret raises."""
        with pytest.raises(ValueError):
            cipher.derive_key("")
        with pytest.raises(ValueError):
            cipher.derive_key("   ")


class TestEncryptDecrypt:
    """Tests for sealing and opening envelopes."""

    def test_round_trip(self, key):
        """Test that decrypt reverses encrypt."""
        envelope = cipher.encrypt(b"Salary", key)
        assert cipher.decrypt(envelope, key) == b"Salary"

    def test_envelope_layout(self, key):
        """Test nonce(12) + tag(16) + ciphertext layout."""
        envelope = cipher.encrypt(b"Salary", key)
        assert len(envelope) == cipher.NONCE_LENGTH + cipher.TAG_LENGTH + len(b"Salary")

    def test_same_plaintext_gives_different_envelopes(self, key):
        """Test that encrypting 'Salary' twice yields distinct envelopes."""
        first = cipher.encrypt(b"Salary", key)
        second = cipher.encrypt(b"Salary", key)
        assert first != second
        assert first[:cipher.NONCE_LENGTH] != second[:cipher.NONCE_LENGTH]
        assert cipher.decrypt(first, key) == b"Salary"
        assert cipher.decrypt(second, key) == b"Salary"

    def test_empty_plaintext(self, key):
        """Test that an empty plaintext still produces a valid envelope."""
        envelope = cipher.encrypt(b"", key)
        assert len(envelope) == cipher.MIN_ENVELOPE_LENGTH
        assert cipher.decrypt(envelope, key) == b""

    def test_every_single_byte_flip_is_detected(self, key):
        """Test that flipping any byte fails authentication."""
        envelope = cipher.encrypt(b"Salary", key)
        for index in range(len(envelope)):
            tampered = bytearray(envelope)
            tampered[index] ^= 0x01
            with pytest.raises(AuthenticationFailure):
                cipher.decrypt(bytes(tampered), key)

    def test_wrong_key_fails_authentication(self, key):
        """Test that an envelope does not open under a different key."""
        envelope = cipher.encrypt(b"Salary", key)
        other_key = bytes([1]) * 32
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(envelope, other_key)

    def test_short_envelope_fails_authentication(self, key):
        """Test that envelopes shorter than nonce + tag are rejected."""
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(bytes(cipher.MIN_ENVELOPE_LENGTH - 1), key)

    def test_truncated_envelope_fails_authentication(self, key):
        """Test that dropping ciphertext bytes is detected."""
        envelope = cipher.encrypt(b"Salary", key)
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(envelope[:-1], key)

    def test_key_of_wrong_length_is_a_programming_error(self):
        """Test that a non-32-byte key raises ValueError."""
        with pytest.raises(ValueError):
            cipher.encrypt(b"Salary", bytes(16))
        with pytest.raises(ValueError):
            cipher.decrypt(bytes(40), bytes(16))

    def test_error_message_does_not_leak_envelope(self, key):
        """Test that the failure message never echoes envelope bytes."""
        envelope = cipher.encrypt(b"Salary", key)
        tampered = envelope[:-1] + bytes([envelope[-1] ^ 0xFF])
        with pytest.raises(AuthenticationFailure) as exc_info:
            cipher.decrypt(tampered, key)
        assert base64.b64encode(tampered).decode("ascii") not in str(exc_info.value)
