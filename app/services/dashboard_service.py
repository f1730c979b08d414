"""
Dashboard Service - per-role summary counts.

All counting happens in Python over equality-filtered Firestore queries.
"""

from app.config.firebase import get_db
from app.models.report import report_to_response
from app.models.user import UserRole
from app.services.emergency_service import get_emergency_service
from app.services.status_workflow import ReportStatus
from app.utils.firestore_helpers import count_where, snapshot_to_dict, sort_documents, where_filter
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

RECENT_LIMIT = 5


def _live(docs) -> List[Dict]:
    items = [snapshot_to_dict(doc) for doc in docs]
    return [item for item in items if not item.get("is_deleted")]


def _status_counts(reports: List[Dict]) -> Dict[str, int]:
    counts = {s.value: 0 for s in ReportStatus}
    for report in reports:
        status = report.get("status")
        counts[status] = counts.get(status, 0) + 1
    return counts


def _recent(reports: List[Dict]) -> List[Dict]:
    return [
        {
            "id": r["id"],
            "report_id": r.get("report_id"),
            "title": r.get("title"),
            "status": r.get("status"),
            "created_at": r.get("created_at"),
        }
        for r in sort_documents(reports, "created_at")[:RECENT_LIMIT]
    ]


class DashboardService:
    """
    Dashboards for citizens, officers (per selected department) and admins.
    """

    def __init__(self):
        self.db = get_db()

    def citizen_dashboard(self, citizen_id: str) -> Dict:
        reports = _live(where_filter(self.db.collection("reports"), "citizen_id", "==", citizen_id).stream())
        emergencies = _live(where_filter(self.db.collection("emergencies"), "reported_by", "==", citizen_id).stream())

        by_status = _status_counts(reports)
        return {
            "stats": {
                "total_reports": len(reports),
                "submitted_reports": by_status[ReportStatus.SUBMITTED.value],
                "in_progress_reports": by_status[ReportStatus.IN_PROGRESS.value],
                "resolved_reports": by_status[ReportStatus.RESOLVED.value],
                "rejected_reports": by_status[ReportStatus.REJECTED.value],
                "total_emergencies": len(emergencies),
            },
            "recent_reports": [report_to_response(r) for r in sort_documents(reports, "created_at")[:RECENT_LIMIT]],
        }

    def officer_dashboard(self, officer_id: str, department: Dict) -> Dict:
        """Counts for the officer's currently selected department."""
        reports = _live(where_filter(self.db.collection("reports"), "department_id", "==", department["id"]).stream())

        by_status = _status_counts(reports)
        return {
            "stats": {
                "total_reports": len(reports),
                "submitted_reports": by_status[ReportStatus.SUBMITTED.value],
                "in_progress_reports": by_status[ReportStatus.IN_PROGRESS.value],
                "resolved_reports": by_status[ReportStatus.RESOLVED.value],
                "rejected_reports": by_status[ReportStatus.REJECTED.value],
                "my_handled_reports": count_where(reports, lambda r: r.get("assigned_officer_id") == officer_id),
                "active_emergencies": get_emergency_service().count_active(),
            },
            "recent_reports": _recent(reports),
            "department": {"id": department["id"], "name": department.get("name"), "code": department.get("code")},
        }

    def admin_dashboard(self) -> Dict:
        users = _live(self.db.collection("users").stream())
        departments = _live(self.db.collection("departments").stream())
        reports = _live(self.db.collection("reports").stream())

        users_by_role = {role.value: count_where(users, lambda u, r=role.value: u.get("role") == r) for role in UserRole}
        return {
            "users": {"total": len(users), "by_role": users_by_role},
            "departments": {
                "total": len(departments),
                "active": count_where(departments, lambda d: d.get("is_active", True)),
            },
            "reports": {"total": len(reports), "by_status": _status_counts(reports)},
            "emergencies": {"active": get_emergency_service().count_active()},
            "recent_reports": _recent(reports),
        }


_dashboard_service_instance: Optional[DashboardService] = None


def get_dashboard_service() -> DashboardService:
    global _dashboard_service_instance
    if _dashboard_service_instance is None:
        _dashboard_service_instance = DashboardService()
    return _dashboard_service_instance
