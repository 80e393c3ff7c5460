"""Audit logging package."""

from bookkeeper.audit.logger import AuditLogger, configure_logging

__all__ = ["AuditLogger", "configure_logging"]
