"""Audit logger implementation for the contract compliance engine."""

import csv
import io
import json
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select

from ..interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from .database import DatabaseManager
from .models import AuditEventModel, VersionHistoryModel


RULE_SNAPSHOT_ENTITY = "rule_snapshot"


class AuditLogger(IAuditLogger):
    """
    Audit logger implementation with a SQLAlchemy backend.

    Records analyses, rule publications, suggestion runs and review actions
    for traceability, and supports querying and exporting audit logs.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            db_manager: Optional DatabaseManager instance. If not provided,
                       a new one will be created.
            database_url: Database URL for creating a new DatabaseManager.
        """
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True

    def _to_model(self, event: AuditEvent) -> AuditEventModel:
        """Convert AuditEvent dataclass to SQLAlchemy model."""
        return AuditEventModel(
            id=uuid.UUID(event.id) if isinstance(event.id, str) else event.id,
            event_type=event.event_type.value if isinstance(event.event_type, AuditEventType) else event.event_type,
            timestamp=event.timestamp,
            contract_id=event.contract_id,
            client_id=event.client_id,
            user_id=event.user_id,
            details=event.details or {},
            metadata_=event.metadata or {},
        )

    def _from_model(self, model: AuditEventModel) -> AuditEvent:
        """Convert SQLAlchemy model to AuditEvent dataclass."""
        return AuditEvent(
            id=str(model.id),
            event_type=AuditEventType(model.event_type),
            timestamp=model.timestamp,
            contract_id=model.contract_id,
            client_id=model.client_id,
            user_id=model.user_id,
            details=model.details or {},
            metadata=model.metadata_ or {},
        )

    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event to the database.

        Args:
            event: The audit event to record.
        """
        model = self._to_model(event)
        with self._db_manager.get_session() as session:
            session.add(model)

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
            List of matching audit events, newest first.
        """
        with self._db_manager.get_session() as session:
            query = select(AuditEventModel)

            conditions = []
            if contract_id:
                conditions.append(AuditEventModel.contract_id == contract_id)
            if event_type:
                event_type_value = event_type.value if isinstance(event_type, AuditEventType) else event_type
                conditions.append(AuditEventModel.event_type == event_type_value)
            if start_time:
                conditions.append(AuditEventModel.timestamp >= start_time)
            if end_time:
                conditions.append(AuditEventModel.timestamp <= end_time)

            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(AuditEventModel.timestamp.desc())

            result = session.execute(query)
            models = result.scalars().all()

            return [self._from_model(m) for m in models]

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
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}. Use 'json' or 'csv'.")

        events = self.get_events(contract_id=contract_id)

        if format == "json":
            return self._export_json(contract_id, events)
        else:
            return self._export_csv(events)

    def _export_json(self, contract_id: str, events: List[AuditEvent]) -> str:
        """Export events to JSON with a compliance score history and review summary."""
        score_history = []
        for e in events:
            if self._type_value(e) == AuditEventType.ANALYSIS_COMPLETED.value:
                score_history.append({
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                    "overall_score": e.details.get("overall_score"),
                    "risk_level": e.details.get("risk_level"),
                    "issue_count": e.details.get("issue_count"),
                    "rule_snapshot_version": e.details.get("rule_snapshot_version"),
                })

        review_actions = Counter(
            e.details.get("action")
            for e in events
            if self._type_value(e) == AuditEventType.SUGGESTION_REVIEWED.value
        )

        data = {
            "export_timestamp": datetime.utcnow().isoformat(),
            "contract_id": contract_id,
            "event_count": len(events),
            "event_counts": dict(Counter(self._type_value(e) for e in events)),
            "score_history": score_history,
            "review_summary": dict(review_actions),
            "events": [
                {
                    "id": e.id,
                    "event_type": self._type_value(e),
                    "timestamp": e.timestamp.isoformat() if e.timestamp else None,
                    "contract_id": e.contract_id,
                    "client_id": e.client_id,
                    "user_id": e.user_id,
                    "details": e.details,
                    "metadata": e.metadata,
                }
                for e in events
            ],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_csv(self, events: List[AuditEvent]) -> str:
        """Export events to CSV format."""
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([
            "id", "event_type", "timestamp", "contract_id",
            "client_id", "user_id", "details", "metadata"
        ])

        for e in events:
            writer.writerow([
                e.id,
                self._type_value(e),
                e.timestamp.isoformat() if e.timestamp else "",
                e.contract_id or "",
                e.client_id or "",
                e.user_id or "",
                json.dumps(e.details, ensure_ascii=False),
                json.dumps(e.metadata, ensure_ascii=False),
            ])

        return output.getvalue()

    @staticmethod
    def _type_value(event: AuditEvent) -> str:
        return event.event_type.value if isinstance(event.event_type, AuditEventType) else event.event_type

    # ========== Version History Methods ==========

    def save_version(
        self,
        entity_type: str,
        entity_id: str,
        snapshot: Dict[str, Any],
    ) -> int:
        """
        Save a version snapshot for an entity.

        Args:
            entity_type: Type of entity (e.g., 'rule_snapshot', 'configuration').
            entity_id: ID of the entity.
            snapshot: JSON-serializable snapshot of the entity state.

        Returns:
            The version number assigned to this snapshot.
        """
        with self._db_manager.get_session() as session:
            query = select(VersionHistoryModel.version).where(
                and_(
                    VersionHistoryModel.entity_type == entity_type,
                    VersionHistoryModel.entity_id == entity_id,
                )
            ).order_by(VersionHistoryModel.version.desc()).limit(1)

            result = session.execute(query)
            latest = result.scalar()
            new_version = (latest or 0) + 1

            session.add(VersionHistoryModel(
                entity_type=entity_type,
                entity_id=entity_id,
                version=new_version,
                snapshot=snapshot,
            ))

            return new_version

    def get_version(
        self,
        entity_type: str,
        entity_id: str,
        version: Optional[int] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Get a version snapshot for an entity.

        Args:
            entity_type: Type of entity.
            entity_id: ID of the entity.
            version: Specific version to retrieve. If None, returns latest.

        Returns:
            The snapshot data, or None if not found.
        """
        with self._db_manager.get_session() as session:
            query = select(VersionHistoryModel).where(
                and_(
                    VersionHistoryModel.entity_type == entity_type,
                    VersionHistoryModel.entity_id == entity_id,
                )
            )

            if version is not None:
                query = query.where(VersionHistoryModel.version == version)
            else:
                query = query.order_by(VersionHistoryModel.version.desc())

            query = query.limit(1)

            result = session.execute(query)
            record = result.scalar()

            return record.snapshot if record else None

    def get_version_history(
        self,
        entity_type: str,
        entity_id: str,
    ) -> List[Dict[str, Any]]:
        """
        Get all version snapshots for an entity.

        Args:
            entity_type: Type of entity.
            entity_id: ID of the entity.

        Returns:
            List of version records with version number and snapshot.
        """
        with self._db_manager.get_session() as session:
            query = select(VersionHistoryModel).where(
                and_(
                    VersionHistoryModel.entity_type == entity_type,
                    VersionHistoryModel.entity_id == entity_id,
                )
            ).order_by(VersionHistoryModel.version.asc())

            result = session.execute(query)
            records = result.scalars().all()

            return [
                {
                    "version": r.version,
                    "snapshot": r.snapshot,
                    "created_at": r.created_at.isoformat() if r.created_at else None,
                }
                for r in records
            ]

    # ========== Convenience Logging Methods ==========

    def _log(
        self,
        event_type: AuditEventType,
        details: Dict[str, Any],
        contract_id: Optional[str] = None,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        self.log_event(AuditEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.utcnow(),
            contract_id=contract_id,
            client_id=client_id,
            user_id=user_id,
            details=details,
        ))

    def log_analysis_completed(
        self,
        contract_id: str,
        overall_score: int,
        risk_level: str,
        issue_count: int,
        frameworks: List[str],
        rule_snapshot_version: int,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a completed contract analysis."""
        self._log(
            AuditEventType.ANALYSIS_COMPLETED,
            {
                "overall_score": overall_score,
                "risk_level": risk_level,
                "issue_count": issue_count,
                "frameworks": frameworks,
                "rule_snapshot_version": rule_snapshot_version,
            },
            contract_id=contract_id,
            client_id=client_id,
            user_id=user_id,
        )

    def log_framework_skipped(
        self,
        contract_id: str,
        framework: str,
        reason: str,
        client_id: Optional[str] = None,
    ) -> None:
        """Log a framework skipped because no rules were configured for it."""
        self._log(
            AuditEventType.FRAMEWORK_SKIPPED,
            {"framework": framework, "reason": reason},
            contract_id=contract_id,
            client_id=client_id,
        )

    def log_rule_compilation_failed(
        self,
        rule_id: str,
        pattern: Optional[str],
        message: str,
        contract_id: Optional[str] = None,
    ) -> None:
        """Log a rule skipped because one of its patterns does not compile."""
        self._log(
            AuditEventType.RULE_COMPILATION_FAILED,
            {"rule_id": rule_id, "pattern": pattern, "message": message},
            contract_id=contract_id,
        )

    def log_rule_snapshot_published(
        self,
        version: int,
        rule_count: int,
        frameworks: List[str],
        snapshot: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a rule snapshot publication, keeping its content in the version history."""
        self._log(
            AuditEventType.RULE_SNAPSHOT_PUBLISHED,
            {"version": version, "rule_count": rule_count, "frameworks": frameworks},
            user_id=user_id,
        )
        if snapshot is not None:
            self.save_version(RULE_SNAPSHOT_ENTITY, "rules", snapshot)

    def log_analytics_computed(
        self,
        period: str,
        total_contracts: int,
        average_risk_score: float,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a portfolio risk analytics computation."""
        self._log(
            AuditEventType.ANALYTICS_COMPUTED,
            {
                "period": period,
                "total_contracts": total_contracts,
                "average_risk_score": average_risk_score,
            },
            user_id=user_id,
        )

    def log_suggestions_generated(
        self,
        suggestion_count: int,
        suggestion_types: List[str],
        fallback_count: int,
        contract_id: Optional[str] = None,
        client_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a suggestion run."""
        self._log(
            AuditEventType.SUGGESTIONS_GENERATED,
            {
                "suggestion_count": suggestion_count,
                "suggestion_types": suggestion_types,
                "fallback_count": fallback_count,
            },
            contract_id=contract_id,
            client_id=client_id,
            user_id=user_id,
        )

    def log_provider_fallback(
        self,
        provider: str,
        suggestion_type: str,
        error_type: str,
        message: str,
        contract_id: Optional[str] = None,
    ) -> None:
        """Log a provider timeout or failure that triggered rule-based suggestions."""
        self._log(
            AuditEventType.PROVIDER_FALLBACK,
            {
                "provider": provider,
                "suggestion_type": suggestion_type,
                "error_type": error_type,
                "message": message,
            },
            contract_id=contract_id,
        )

    def log_suggestion_reviewed(
        self,
        suggestion_id: str,
        action: str,
        user_id: str,
        confidence: Optional[float] = None,
        reason: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> None:
        """Log a user accepting or rejecting a suggestion."""
        self._log(
            AuditEventType.SUGGESTION_REVIEWED,
            {
                "suggestion_id": suggestion_id,
                "action": action,
                "confidence": confidence,
                "reason": reason,
            },
            contract_id=contract_id,
            user_id=user_id,
        )

    def log_violation_resolved(
        self,
        violation_id: str,
        rule_id: str,
        user_id: str,
        contract_id: Optional[str] = None,
    ) -> None:
        """Log a violation being marked resolved."""
        self._log(
            AuditEventType.VIOLATION_RESOLVED,
            {"violation_id": violation_id, "rule_id": rule_id},
            contract_id=contract_id,
            user_id=user_id,
        )

    def close(self) -> None:
        """Close the audit logger and release resources."""
        if self._owns_db_manager:
            self._db_manager.close()
