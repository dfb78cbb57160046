"""Audit trail for the contract compliance engine."""

from .audit_logger import AuditLogger, RULE_SNAPSHOT_ENTITY
from .database import DatabaseManager, get_database_url
from .models import (
    AuditEventModel,
    VersionHistoryModel,
    Base,
)

__all__ = [
    "AuditLogger",
    "RULE_SNAPSHOT_ENTITY",
    "DatabaseManager",
    "get_database_url",
    "AuditEventModel",
    "VersionHistoryModel",
    "Base",
]
