"""
Shared fixtures.

Every test runs under the fixed all-zero test key; nothing reads the real
environment's DATA_ENCRYPTION_KEY.
"""

import base64
from decimal import Decimal

import pytest

from ledgervault.config import LedgerSettings
from ledgervault.crypto import FieldCodec, RecordCodec
from ledgervault.models import LoanRecord, LoanStatus


TEST_KEY = bytes(32)


@pytest.fixture
def key() -> bytes:
    return TEST_KEY


@pytest.fixture
def codec(key) -> FieldCodec:
    return FieldCodec(key)


@pytest.fixture
def record_codec(codec) -> RecordCodec:
    return RecordCodec(codec)


@pytest.fixture
def settings() -> LedgerSettings:
    return LedgerSettings(
        _env_file=None,
        data_encryption_key=base64.b64encode(TEST_KEY).decode("ascii"),
        notification_retry_attempts=3,
        notification_retry_max_wait=0,
    )


@pytest.fixture
def make_loan():
    """Factory for alice -> bob loans; keyword overrides replace fields."""
    def _make(principal: str = "1000", status: LoanStatus = LoanStatus.ACTIVE, **overrides) -> LoanRecord:
        fields = {
            "lender_id": "alice",
            "borrower_id": "bob",
            "principal": Decimal(principal),
            "currency": "USD",
            "description": "Rent share",
            "status": status,
        }
        fields.update(overrides)
        return LoanRecord(**fields)
    return _make
