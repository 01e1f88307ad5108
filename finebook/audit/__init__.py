"""Audit logging package."""

from finebook.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
