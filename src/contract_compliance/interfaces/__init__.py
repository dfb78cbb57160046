"""Abstract interfaces for pluggable engine collaborators."""

from .audit import AuditEvent, AuditEventType, IAuditLogger
from .providers import IRewriteProvider, ISimilaritySearchProvider, RewriteResult

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "IRewriteProvider",
    "ISimilaritySearchProvider",
    "RewriteResult",
]
