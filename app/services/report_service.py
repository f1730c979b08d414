"""
Report Service - citizen reports, officer status changes and report queries.

Mutation flow for every status change:
1. Load the report (missing / soft-deleted -> 404)
2. Check the caller may manage it (officer assigned to its department, or admin)
3. Validate the transition with StatusWorkflowEngine (terminal states refuse everything)
4. Persist status + appended history entry + derived fields in ONE document.update()
5. Adjust department stats (best-effort)
6. Notify the citizen (best-effort)

There are no transactions: concurrent updates to the same report are last-write-wins.
"""

from firebase_admin import firestore
from app.config.firebase import get_db
from app.core.errors import ErrorMessages, NotFoundError, RateLimitError, ValidationFailedError
from app.core.settings import settings
from app.models.notification import EntityType, NotificationPriority, NotificationType
from app.models.report import PRIORITY_RANK, ReportCreate, media_from_urls, report_to_response
from app.models.user import OfficerPrincipal
from app.services import access_scope
from app.services.department_service import get_department_service
from app.services.geocoding.resolver import reverse_geocode_address
from app.services.notification_service import get_notification_dispatcher
from app.services.status_workflow import ReportStatus, StatusWorkflowEngine
from app.utils.firestore_helpers import (
    paginate,
    snapshot_to_dict,
    sort_documents,
    text_matches,
    utc_now,
    where_filter,
)
from app.utils.geo import haversine_distance, location_lat_lng, validate_coordinates
from datetime import timedelta
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

COLLECTION = "reports"

REJECTION_REASON_MIN = 10
REJECTION_REASON_MAX = 500

NEARBY_DEFAULT_RADIUS_M = 5000
NEARBY_MAX_RESULTS = 50

SORTABLE_FIELDS = ("created_at", "updated_at", "status", "priority", "title", "report_id")

# Notification sent to the citizen when an officer moves their report to a status.
STATUS_NOTIFICATIONS = {
    ReportStatus.IN_PROGRESS.value: (
        NotificationType.REPORT_STATUS_UPDATE,
        "Report in progress",
        "Your report {report_id} is now being worked on.",
        NotificationPriority.MEDIUM,
    ),
    ReportStatus.RESOLVED.value: (
        NotificationType.REPORT_RESOLVED,
        "Report resolved",
        "Your report {report_id} has been resolved.",
        NotificationPriority.HIGH,
    ),
}


class ReportService:
    """
    Service for report lifecycle and role-scoped report queries.
    """

    def __init__(self):
        self.db = get_db()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def _next_report_id(self) -> str:
        """RPT-YYYYMMDD-NNNN with a per-day sequence."""
        prefix = f"RPT-{utc_now().strftime('%Y%m%d')}-"
        query = where_filter(self.db.collection(COLLECTION), "report_id", ">=", prefix)
        query = where_filter(query, "report_id", "<", prefix + "\uf8ff")

        highest = 0
        for doc in query.stream():
            suffix = (doc.to_dict() or {}).get("report_id", "")[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:04d}"

    def check_rate_limit(self, citizen_id: str) -> None:
        """
        Raises RateLimitError when the citizen filed REPORT_RATE_LIMIT_PER_HOUR
        reports in the last hour.
        """
        hour_threshold = utc_now() - timedelta(hours=1)
        query = where_filter(self.db.collection(COLLECTION), "citizen_id", "==", citizen_id)
        query = where_filter(query, "created_at", ">=", hour_threshold)

        recent_count = len(list(query.stream()))
        if recent_count >= settings.REPORT_RATE_LIMIT_PER_HOUR:
            logger.warning(f"Rate limit exceeded for citizen {citizen_id} ({recent_count} reports in last hour)")
            raise RateLimitError(ErrorMessages.REPORT_RATE_LIMITED)

    def create_report(self, principal, data: ReportCreate) -> Dict:
        """
        File a new report for a citizen.

        Raises:
            ValidationFailedError: no image, or invalid coordinates
            NotFoundError / PermissionDeniedError: unknown or inactive department
            RateLimitError: too many reports in the last hour
        """
        if not [url for url in data.media.images if url and url.strip()]:
            raise ValidationFailedError(ErrorMessages.MEDIA_REQUIRED)
        latitude, longitude = validate_coordinates(data.location.coordinates)

        department_service = get_department_service()
        department = department_service.get_active_department(data.department_id)
        self.check_rate_limit(principal.id)

        address = (data.location.address or "").strip() or None
        if address is None:
            address = reverse_geocode_address(latitude, longitude)

        now = utc_now()
        report_id = self._next_report_id()
        report_data = {
            "report_id": report_id,
            "title": data.title.strip(),
            "description": data.description.strip(),
            "status": ReportStatus.SUBMITTED.value,
            "department_id": department["id"],
            "citizen_id": principal.id,
            "assigned_officer_id": None,
            "status_history": [
                StatusWorkflowEngine.create_status_history_entry(
                    ReportStatus.SUBMITTED.value, principal.id, "Report submitted"
                )
            ],
            "media": media_from_urls(data.media, now),
            "location": {
                "type": "Point",
                "coordinates": [longitude, latitude],
                "address": address,
                "landmark": data.location.landmark,
            },
            "priority": data.priority.value,
            "rejection_reason": None,
            "rejected_by": None,
            "rejected_at": None,
            "resolved_at": None,
            "resolution_notes": None,
            "is_deleted": False,
            "created_at": now,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }

        ref = self.db.collection(COLLECTION).document()
        ref.set(report_data)
        logger.info(f"Report {report_id} ({ref.id}) created by citizen {principal.id} for department {department['id']}")

        department_service.adjust_stats(department["id"], total_reports=1, active_reports=1)
        return report_to_response(snapshot_to_dict(ref.get()))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _load(self, report_id: str) -> Dict:
        report = snapshot_to_dict(self.db.collection(COLLECTION).document(report_id).get()) if report_id else None
        if report is None or report.get("is_deleted"):
            raise NotFoundError(ErrorMessages.REPORT_NOT_FOUND)
        return report

    def _scoped_reports(self, principal, department_id: Optional[str] = None) -> List[Dict]:
        filters = access_scope.report_filters(principal, department_id)
        if filters is None:
            return []
        query = access_scope.apply_filters(self.db.collection(COLLECTION), filters)
        reports = [snapshot_to_dict(doc) for doc in query.stream()]
        return [
            r for r in reports
            if not r.get("is_deleted") and access_scope.can_access_report(principal, r)
        ]

    def list_reports(
        self,
        principal,
        department_id: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict:
        """Paginated reports visible to principal, filtered/searched/sorted in Python."""
        reports = self._scoped_reports(principal, department_id)
        if status:
            reports = [r for r in reports if r.get("status") == status]
        if priority:
            reports = [r for r in reports if r.get("priority") == priority]
        reports = [r for r in reports if text_matches(r, search, ("report_id", "title", "description"))]

        sort_field = sort_by if sort_by in SORTABLE_FIELDS else "created_at"
        descending = (sort_order or "desc").lower() != "asc"
        if sort_field == "priority":
            reports = sort_documents(reports, "created_at")
            reports.sort(key=lambda r: PRIORITY_RANK.get(r.get("priority"), -1), reverse=descending)
        else:
            reports = sort_documents(reports, sort_field, descending=descending)

        result = paginate(reports, page, limit)
        result["items"] = [report_to_response(r) for r in result["items"]]
        return result

    def get_report(self, principal, report_id: str) -> Dict:
        report = self._load(report_id)
        access_scope.ensure_report_access(principal, report)
        return report_to_response(report)

    def get_statistics(self, principal, department_id: Optional[str] = None) -> Dict:
        """Totals by status and by department (sorted by count, descending)."""
        reports = self._scoped_reports(principal, department_id)

        by_status = {s.value: 0 for s in ReportStatus}
        by_department: Dict[str, int] = {}
        for report in reports:
            by_status[report.get("status")] = by_status.get(report.get("status"), 0) + 1
            dept = report.get("department_id")
            by_department[dept] = by_department.get(dept, 0) + 1

        department_service = get_department_service()
        departments = []
        for dept_id, count in sorted(by_department.items(), key=lambda item: item[1], reverse=True):
            try:
                department = department_service.get_department(dept_id)
                name, code = department.get("name"), department.get("code")
            except NotFoundError:
                name, code = None, None
            departments.append({"department_id": dept_id, "name": name, "code": code, "count": count})

        return {"total": len(reports), "by_status": by_status, "by_department": departments}

    def find_nearby(
        self,
        principal,
        latitude: float,
        longitude: float,
        radius: int = NEARBY_DEFAULT_RADIUS_M,
    ) -> List[Dict]:
        """
        Reports within radius meters, nearest first, at most NEARBY_MAX_RESULTS.

        Officers only see their departments; everyone gets a public summary
        without citizen identity or history.
        """
        validate_coordinates([longitude, latitude])
        if radius <= 0:
            raise ValidationFailedError("Radius must be a positive number of meters")

        if isinstance(principal, OfficerPrincipal):
            candidates = self._scoped_reports(principal)
        else:
            query = where_filter(self.db.collection(COLLECTION), "is_deleted", "==", False)
            candidates = [snapshot_to_dict(doc) for doc in query.stream()]

        nearby = []
        for report in candidates:
            point = location_lat_lng(report.get("location"))
            if point is None:
                continue
            distance = haversine_distance(latitude, longitude, point[0], point[1])
            if distance <= radius:
                nearby.append((distance, report))

        nearby.sort(key=lambda item: item[0])
        return [
            {
                "id": report["id"],
                "report_id": report.get("report_id"),
                "title": report.get("title"),
                "status": report.get("status"),
                "priority": report.get("priority"),
                "department_id": report.get("department_id"),
                "location": report.get("location"),
                "created_at": report.get("created_at"),
                "distance_meters": round(distance, 1),
            }
            for distance, report in nearby[:NEARBY_MAX_RESULTS]
        ]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update_report_status(
        self,
        principal,
        report_id: str,
        new_status: str,
        remarks: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> Dict:
        """
        Move a report along the transition table (submitted -> in_progress -> resolved).

        Rejection goes through reject_report() because it needs a reason.
        """
        report = self._load(report_id)
        access_scope.ensure_report_manager(principal, report)

        if new_status == ReportStatus.REJECTED.value:
            return self.reject_report(principal, report_id, remarks)

        old_status = report.get("status")
        entry = StatusWorkflowEngine.validate_and_transition(old_status, new_status, principal.id, remarks)

        now = utc_now()
        update_data = {
            "status": new_status,
            "status_history": firestore.ArrayUnion([entry]),
            "updated_at": now,
        }
        if not report.get("assigned_officer_id"):
            update_data["assigned_officer_id"] = principal.id
        if new_status == ReportStatus.RESOLVED.value:
            update_data["resolved_at"] = now
            if resolution_notes:
                update_data["resolution_notes"] = resolution_notes

        self.db.collection(COLLECTION).document(report_id).update(update_data)
        logger.info(
            f"Report {report.get('report_id')} status updated from {old_status} to {new_status} by {principal.id}"
        )

        if new_status == ReportStatus.RESOLVED.value:
            get_department_service().adjust_stats(report.get("department_id"), active_reports=-1, resolved_reports=1)

        notification = STATUS_NOTIFICATIONS.get(new_status)
        if notification:
            notification_type, title, message, priority = notification
            get_notification_dispatcher().dispatch(
                user_id=report.get("citizen_id"),
                notification_type=notification_type,
                title=title,
                message=message.format(report_id=report.get("report_id")),
                entity_type=EntityType.REPORT,
                entity_id=report_id,
                priority=priority,
                action_url=f"/citizen/reports/{report_id}",
                metadata={"old_status": old_status, "new_status": new_status},
            )

        return report_to_response(self._load(report_id))

    def reject_report(self, principal, report_id: str, reason: Optional[str]) -> Dict:
        """
        Reject a report with a reason (10-500 characters after trimming).
        Rejection is terminal.
        """
        report = self._load(report_id)
        access_scope.ensure_report_manager(principal, report)

        reason = (reason or "").strip()
        if not (REJECTION_REASON_MIN <= len(reason) <= REJECTION_REASON_MAX):
            raise ValidationFailedError(
                f"{ErrorMessages.REJECTION_REASON_REQUIRED} "
                f"({REJECTION_REASON_MIN}-{REJECTION_REASON_MAX} characters)"
            )

        old_status = report.get("status")
        entry = StatusWorkflowEngine.validate_and_transition(
            old_status, ReportStatus.REJECTED.value, principal.id, reason
        )

        now = utc_now()
        update_data = {
            "status": ReportStatus.REJECTED.value,
            "status_history": firestore.ArrayUnion([entry]),
            "rejection_reason": reason,
            "rejected_by": principal.id,
            "rejected_at": now,
            "updated_at": now,
        }
        if not report.get("assigned_officer_id"):
            update_data["assigned_officer_id"] = principal.id

        self.db.collection(COLLECTION).document(report_id).update(update_data)
        logger.info(f"Report {report.get('report_id')} rejected by {principal.id}: {reason}")

        get_department_service().adjust_stats(report.get("department_id"), active_reports=-1)
        get_notification_dispatcher().dispatch(
            user_id=report.get("citizen_id"),
            notification_type=NotificationType.REPORT_REJECTED,
            title="Report rejected",
            message=f"Your report {report.get('report_id')} was rejected: {reason}",
            entity_type=EntityType.REPORT,
            entity_id=report_id,
            priority=NotificationPriority.HIGH,
            action_url=f"/citizen/reports/{report_id}",
            metadata={"old_status": old_status, "new_status": ReportStatus.REJECTED.value},
        )

        return report_to_response(self._load(report_id))


_report_service_instance: Optional[ReportService] = None


def get_report_service() -> ReportService:
    """Get singleton report service instance."""
    global _report_service_instance
    if _report_service_instance is None:
        _report_service_instance = ReportService()
    return _report_service_instance
