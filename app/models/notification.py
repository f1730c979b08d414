"""
Notification models.
"""

from enum import Enum


class NotificationType(str, Enum):
    REPORT_STATUS_UPDATE = "report_status_update"
    REPORT_ASSIGNED = "report_assigned"
    REPORT_REJECTED = "report_rejected"
    REPORT_RESOLVED = "report_resolved"
    EMERGENCY_CREATED = "emergency_created"
    EMERGENCY_STATUS_UPDATE = "emergency_status_update"
    OFFICER_ASSIGNED = "officer_assigned"
    DEPARTMENT_ASSIGNED = "department_assigned"
    ACCOUNT_STATUS_CHANGE = "account_status_change"
    GENERAL = "general"


class EntityType(str, Enum):
    REPORT = "report"
    EMERGENCY = "emergency"
    USER = "user"
    DEPARTMENT = "department"
    NONE = "none"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
