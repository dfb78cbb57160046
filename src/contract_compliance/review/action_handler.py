"""Review actions on suggestions and violations."""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from ..audit.audit_logger import AuditLogger
from ..models.compliance import ComplianceViolation
from ..models.enums import SuggestionStatus
from ..models.suggestion import ClauseSuggestion


logger = logging.getLogger(__name__)


class ReviewActionHandler:
    """
    Applies user decisions to suggestions and violations.

    A suggestion moves from PENDING to ACCEPTED or REJECTED exactly once;
    both are terminal. A violation can be resolved once. Every action is
    kept in the action history and recorded in the audit log when one is
    configured.
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        """
        Initialize the action handler.

        Args:
            audit_logger: Optional audit logger for tracking actions.
        """
        self.audit_logger = audit_logger
        self.action_history: List[Dict] = []

    def accept_suggestion(
        self,
        suggestion: ClauseSuggestion,
        user_id: str,
        contract_id: Optional[str] = None,
    ) -> ClauseSuggestion:
        """
        Accept a pending suggestion.

        Args:
            suggestion: The suggestion to accept.
            user_id: User accepting the suggestion.
            contract_id: Contract the suggestion belongs to, for the audit log.

        Returns:
            The updated suggestion.

        Raises:
            ValueError: If the suggestion was already accepted or rejected.
        """
        self._ensure_pending(suggestion)
        suggestion.status = SuggestionStatus.ACCEPTED
        suggestion.accepted_by = user_id
        suggestion.accepted_at = datetime.utcnow()

        self._log_action(suggestion, "accept", user_id, contract_id=contract_id)
        return suggestion

    def reject_suggestion(
        self,
        suggestion: ClauseSuggestion,
        user_id: str,
        reason: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> ClauseSuggestion:
        """
        Reject a pending suggestion.

        Raises:
            ValueError: If the suggestion was already accepted or rejected.
        """
        self._ensure_pending(suggestion)
        suggestion.status = SuggestionStatus.REJECTED
        suggestion.rejection_reason = reason

        self._log_action(suggestion, "reject", user_id, reason=reason, contract_id=contract_id)
        return suggestion

    def batch_accept(
        self,
        suggestions: List[ClauseSuggestion],
        user_id: str,
        contract_id: Optional[str] = None,
    ) -> List[ClauseSuggestion]:
        """
        Accept every pending suggestion in the list.

        Suggestions that are no longer pending are left untouched.

        Returns:
            The suggestions that were accepted.
        """
        accepted = [
            self.accept_suggestion(s, user_id, contract_id=contract_id)
            for s in suggestions
            if s.is_pending
        ]
        self.action_history.append({
            'suggestion_ids': [s.id for s in accepted],
            'action': 'batch_accept',
            'user_id': user_id,
            'count': len(accepted),
            'timestamp': datetime.utcnow().isoformat(),
        })
        return accepted

    def accept_all_high_confidence(
        self,
        suggestions: List[ClauseSuggestion],
        user_id: str,
        threshold: float = 0.8,
        contract_id: Optional[str] = None,
    ) -> List[ClauseSuggestion]:
        """
        Accept all pending suggestions at or above a confidence threshold.

        Args:
            suggestions: Candidate suggestions.
            user_id: User accepting the suggestions.
            threshold: Confidence threshold (0.0 to 1.0).
            contract_id: Contract the suggestions belong to.

        Returns:
            The suggestions that were accepted.
        """
        high_confidence = [
            s for s in suggestions
            if s.confidence >= threshold and s.is_pending
        ]
        return self.batch_accept(high_confidence, user_id, contract_id=contract_id)

    def resolve_violation(
        self,
        violation: ComplianceViolation,
        user_id: str,
        contract_id: Optional[str] = None,
    ) -> ComplianceViolation:
        """
        Mark a violation resolved.

        Raises:
            ValueError: If the violation is already resolved.
        """
        if violation.is_resolved:
            raise ValueError(f"Violation '{violation.id}' is already resolved")
        violation.is_resolved = True
        violation.resolved_at = datetime.utcnow()
        violation.resolved_by = user_id

        self.action_history.append({
            'violation_id': violation.id,
            'rule_id': violation.rule_id,
            'action': 'resolve',
            'user_id': user_id,
            'timestamp': violation.resolved_at.isoformat(),
        })
        if self.audit_logger:
            self.audit_logger.log_violation_resolved(
                violation_id=violation.id,
                rule_id=violation.rule_id,
                user_id=user_id,
                contract_id=contract_id,
            )
        return violation

    def get_review_statistics(self, suggestions: List[ClauseSuggestion]) -> Dict:
        """
        Get statistics about review progress.

        Args:
            suggestions: Suggestions under review.

        Returns:
            Dictionary with review statistics.
        """
        total = len(suggestions)
        pending = len([s for s in suggestions if s.status == SuggestionStatus.PENDING])
        accepted = len([s for s in suggestions if s.status == SuggestionStatus.ACCEPTED])
        rejected = len([s for s in suggestions if s.status == SuggestionStatus.REJECTED])

        return {
            'total': total,
            'pending': pending,
            'accepted': accepted,
            'rejected': rejected,
            'completed': accepted + rejected,
            'completion_rate': (accepted + rejected) / total if total > 0 else 0,
            'acceptance_rate': accepted / (accepted + rejected) if accepted + rejected > 0 else 0,
        }

    def get_action_history(self) -> List[Dict]:
        """Get the history of all actions."""
        return self.action_history.copy()

    @staticmethod
    def _ensure_pending(suggestion: ClauseSuggestion) -> None:
        if not suggestion.is_pending:
            raise ValueError(
                f"Suggestion '{suggestion.id}' is already {suggestion.status.value}"
            )

    def _log_action(
        self,
        suggestion: ClauseSuggestion,
        action: str,
        user_id: str,
        reason: Optional[str] = None,
        contract_id: Optional[str] = None,
    ) -> None:
        """Log a review action."""
        self.action_history.append({
            'suggestion_id': suggestion.id,
            'action': action,
            'user_id': user_id,
            'reason': reason,
            'timestamp': datetime.utcnow().isoformat(),
        })
        logger.debug(f"Suggestion {suggestion.id} {action}ed by {user_id}")

        if self.audit_logger:
            self.audit_logger.log_suggestion_reviewed(
                suggestion_id=suggestion.id,
                action=action,
                user_id=user_id,
                confidence=suggestion.confidence,
                reason=reason,
                contract_id=contract_id,
            )
