"""Configuration package."""

from ledgervault.config.settings import (
    LedgerSettings,
    get_settings,
    load_key,
)

__all__ = [
    "LedgerSettings",
    "get_settings",
    "load_key",
]
