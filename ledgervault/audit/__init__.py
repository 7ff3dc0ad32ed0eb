"""Audit logging package."""

from ledgervault.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
