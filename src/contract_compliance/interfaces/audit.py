"""Audit logger interface for the Contract Compliance Engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AuditEventType(Enum):
    """Types of audit events tracked by the engine."""
    ANALYSIS_COMPLETED = "analysis_completed"
    FRAMEWORK_SKIPPED = "framework_skipped"
    RULE_COMPILATION_FAILED = "rule_compilation_failed"
    RULE_SNAPSHOT_PUBLISHED = "rule_snapshot_published"
    ANALYTICS_COMPUTED = "analytics_computed"
    SUGGESTIONS_GENERATED = "suggestions_generated"
    PROVIDER_FALLBACK = "provider_fallback"
    SUGGESTION_REVIEWED = "suggestion_reviewed"
    VIOLATION_RESOLVED = "violation_resolved"


@dataclass
class AuditEvent:
    """
    Audit event record.

    Represents a single auditable event, tied to a contract when one is
    involved.
    """
    id: str
    event_type: AuditEventType
    timestamp: datetime
    contract_id: Optional[str] = None
    client_id: Optional[str] = None
    user_id: Optional[str] = None
    details: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}
        if self.metadata is None:
            self.metadata = {}


class IAuditLogger(ABC):
    """
    Abstract interface for audit logging.

    Implementations record and query audit events for traceability.
    """

    @abstractmethod
    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event.

        Args:
            event: The audit event to record.
        """
        pass

    @abstractmethod
    def get_events(
        self,
        contract_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        """
        Query audit events with optional filters.

        Args:
            contract_id: Filter by contract ID.
            event_type: Filter by event type.
            start_time: Filter events after this time.
            end_time: Filter events before this time.

        Returns:
            List of matching audit events.
        """
        pass

    @abstractmethod
    def export_log(
        self,
        contract_id: str,
        format: str = "json",
    ) -> str:
        """
        Export the audit log of a contract.

        Args:
            contract_id: The contract ID to export logs for.
            format: Export format ("json" or "csv").

        Returns:
            Exported log content as a string.

        Raises:
            ValueError: If format is not supported.
        """
        pass
