"""
Status Workflow Engine - static transition tables for reports and emergencies.

RULES:
- Only transitions listed in the tables are allowed
- Same-status updates and unknown statuses are rejected
- resolved / rejected reports and resolved emergencies are terminal
- Every accepted transition produces one status_history entry
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type
import logging

from app.core.errors import InvalidTransitionError
from app.models.report import StatusHistoryEntry

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    """
    Report lifecycle:
    submitted → in_progress → resolved
         ↘           ↘
          rejected    rejected
    """
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class EmergencyStatus(str, Enum):
    """Emergency lifecycle is strictly linear: reported → received → dispatched → resolved."""
    REPORTED = "reported"
    RECEIVED = "received"
    DISPATCHED = "dispatched"
    RESOLVED = "resolved"


class StatusWorkflowEngine:
    """
    Validates status changes and builds the audit entries that go with them.

    All methods are classmethods; the engine holds no state.
    """

    # {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.SUBMITTED: [ReportStatus.IN_PROGRESS, ReportStatus.REJECTED],
        ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED, ReportStatus.REJECTED],
        ReportStatus.RESOLVED: [],
        ReportStatus.REJECTED: [],
    }

    EMERGENCY_TRANSITIONS: Dict[EmergencyStatus, List[EmergencyStatus]] = {
        EmergencyStatus.REPORTED: [EmergencyStatus.RECEIVED],
        EmergencyStatus.RECEIVED: [EmergencyStatus.DISPATCHED],
        EmergencyStatus.DISPATCHED: [EmergencyStatus.RESOLVED],
        EmergencyStatus.RESOLVED: [],
    }

    @staticmethod
    def _check(table: Dict, enum_cls: Type[Enum], from_status: str, to_status: str) -> bool:
        try:
            from_enum = enum_cls(from_status)
            to_enum = enum_cls(to_status)
        except ValueError:
            return False
        return to_enum in table.get(from_enum, [])

    @staticmethod
    def _allowed(table: Dict, enum_cls: Type[Enum], current_status: str) -> List[str]:
        try:
            return [s.value for s in table.get(enum_cls(current_status), [])]
        except ValueError:
            return []

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a report status transition is allowed.

        Same-status "transitions" are not in the table and therefore denied.
        """
        return cls._check(cls.ALLOWED_TRANSITIONS, ReportStatus, from_status, to_status)

    @classmethod
    def is_valid_emergency_transition(cls, from_status: str, to_status: str) -> bool:
        return cls._check(cls.EMERGENCY_TRANSITIONS, EmergencyStatus, from_status, to_status)

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        """Next report statuses reachable from current_status (empty for terminal/unknown)."""
        return cls._allowed(cls.ALLOWED_TRANSITIONS, ReportStatus, current_status)

    @classmethod
    def get_allowed_emergency_transitions(cls, current_status: str) -> List[str]:
        return cls._allowed(cls.EMERGENCY_TRANSITIONS, EmergencyStatus, current_status)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in (ReportStatus.RESOLVED.value, ReportStatus.REJECTED.value)

    @classmethod
    def is_terminal_emergency(cls, status: str) -> bool:
        return status == EmergencyStatus.RESOLVED.value

    @classmethod
    def create_status_history_entry(
        cls,
        status: str,
        changed_by: Optional[str],
        remarks: Optional[str] = None
    ) -> Dict:
        """
        Create a status history entry for the audit trail.

        changed_at is a concrete timestamp: Firestore does not accept
        SERVER_TIMESTAMP inside array elements.
        """
        return StatusHistoryEntry(
            status=status,
            changed_by=changed_by,
            changed_at=datetime.now(timezone.utc),
            remarks=remarks,
        ).model_dump()

    @classmethod
    def validate_and_transition(
        cls,
        current_status: str,
        new_status: str,
        changed_by: str,
        remarks: Optional[str] = None
    ) -> Dict:
        """
        Validate a report transition and return its history entry.

        Raises:
            InvalidTransitionError: If the transition is not in the table
        """
        if not cls.is_valid_transition(current_status, new_status):
            allowed = cls.get_allowed_transitions(current_status)
            logger.warning(
                f"Rejected report transition {current_status} -> {new_status} "
                f"(allowed: {allowed})"
            )
            raise InvalidTransitionError(current_status, new_status, allowed)

        return cls.create_status_history_entry(new_status, changed_by, remarks)

    @classmethod
    def validate_emergency_transition(
        cls,
        current_status: str,
        new_status: str,
        changed_by: str,
        remarks: Optional[str] = None
    ) -> Dict:
        """Emergency counterpart of validate_and_transition."""
        if not cls.is_valid_emergency_transition(current_status, new_status):
            allowed = cls.get_allowed_emergency_transitions(current_status)
            logger.warning(
                f"Rejected emergency transition {current_status} -> {new_status} "
                f"(allowed: {allowed})"
            )
            raise InvalidTransitionError(current_status, new_status, allowed)

        return cls.create_status_history_entry(new_status, changed_by, remarks)
