"""
Emergency Service - citizen emergencies and their linear response lifecycle.

reported -> received -> dispatched -> resolved

The first officer/admin to move an emergency becomes its responder. Each
status is timestamped the first time it is entered (received_at,
dispatched_at, resolved_at) so response and resolution times can be derived.
"""

from firebase_admin import firestore
from app.config.firebase import get_db
from app.core.errors import ErrorMessages, NotFoundError
from app.models.emergency import EmergencyCreate, emergency_to_response
from app.models.notification import EntityType, NotificationPriority, NotificationType
from app.models.report import PRIORITY_RANK, media_from_urls
from app.services import access_scope
from app.services.geocoding.resolver import reverse_geocode_address
from app.services.notification_service import get_notification_dispatcher
from app.services.status_workflow import EmergencyStatus, StatusWorkflowEngine
from app.utils.firestore_helpers import paginate, snapshot_to_dict, sort_documents, utc_now, where_filter
from app.utils.geo import validate_coordinates
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

COLLECTION = "emergencies"

# Field stamped the first time an emergency enters each status.
STATUS_TIMESTAMPS = {
    EmergencyStatus.RECEIVED.value: "received_at",
    EmergencyStatus.DISPATCHED.value: "dispatched_at",
    EmergencyStatus.RESOLVED.value: "resolved_at",
}


class EmergencyService:
    """
    Service for emergency creation, status changes and queries.
    """

    def __init__(self):
        self.db = get_db()

    def _next_emergency_id(self, emergency_type: str) -> str:
        """EMR-<TYP>-YYYYMMDD-NNNN; the sequence counts all emergencies filed today."""
        now = utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        query = where_filter(self.db.collection(COLLECTION), "created_at", ">=", start_of_day)
        count = len(list(query.stream()))
        return f"EMR-{emergency_type[:3].upper()}-{now.strftime('%Y%m%d')}-{count + 1:04d}"

    def _load(self, emergency_id: str) -> Dict:
        emergency = snapshot_to_dict(self.db.collection(COLLECTION).document(emergency_id).get()) if emergency_id else None
        if emergency is None or emergency.get("is_deleted"):
            raise NotFoundError(ErrorMessages.EMERGENCY_NOT_FOUND)
        return emergency

    def create_emergency(self, principal, data: EmergencyCreate) -> Dict:
        latitude, longitude = validate_coordinates(data.location.coordinates)

        address = (data.location.address or "").strip() or None
        if address is None:
            address = reverse_geocode_address(latitude, longitude)

        now = utc_now()
        emergency_id = self._next_emergency_id(data.type.value)
        emergency_data = {
            "emergency_id": emergency_id,
            "type": data.type.value,
            "title": data.title.strip(),
            "description": data.description.strip(),
            "contact_number": data.contact_number,
            "status": EmergencyStatus.REPORTED.value,
            "reported_by": principal.id,
            "responded_by": None,
            "status_history": [
                StatusWorkflowEngine.create_status_history_entry(
                    EmergencyStatus.REPORTED.value, principal.id, "Emergency reported"
                )
            ],
            "media": media_from_urls(data.media, now),
            "location": {
                "type": "Point",
                "coordinates": [longitude, latitude],
                "address": address,
                "landmark": data.location.landmark,
            },
            "priority": "high",
            "severity_level": data.severity_level.value,
            "received_at": None,
            "dispatched_at": None,
            "resolved_at": None,
            "resolution_notes": None,
            "is_deleted": False,
            "created_at": now,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }

        ref = self.db.collection(COLLECTION).document()
        ref.set(emergency_data)
        logger.info(f"Emergency {emergency_id} ({data.type.value}) created by citizen {principal.id}")

        get_notification_dispatcher().dispatch(
            user_id=principal.id,
            notification_type=NotificationType.EMERGENCY_CREATED,
            title="Emergency reported",
            message=f"Your emergency {emergency_id} has been reported. Help is being arranged.",
            entity_type=EntityType.EMERGENCY,
            entity_id=ref.id,
            priority=NotificationPriority.URGENT,
            action_url=f"/emergency/{ref.id}",
        )
        return emergency_to_response(snapshot_to_dict(ref.get()))

    def list_for_principal(
        self,
        principal,
        status: Optional[str] = None,
        emergency_type: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Dict:
        """Citizens get their own emergencies; officers and admins get all of them."""
        query = access_scope.apply_filters(
            self.db.collection(COLLECTION), access_scope.emergency_filters(principal)
        )
        emergencies = [snapshot_to_dict(doc) for doc in query.stream()]
        emergencies = [
            e for e in emergencies
            if not e.get("is_deleted")
            and (not status or e.get("status") == status)
            and (not emergency_type or e.get("type") == emergency_type)
        ]
        result = paginate(sort_documents(emergencies, "created_at"), page, limit)
        result["items"] = [emergency_to_response(e) for e in result["items"]]
        return result

    def list_active(self) -> List[Dict]:
        """Unresolved emergencies, highest priority first, then newest first."""
        active_statuses = [s.value for s in EmergencyStatus if s != EmergencyStatus.RESOLVED]
        query = where_filter(self.db.collection(COLLECTION), "status", "in", active_statuses)
        emergencies = [snapshot_to_dict(doc) for doc in query.stream()]
        emergencies = sort_documents([e for e in emergencies if not e.get("is_deleted")], "created_at")
        emergencies.sort(key=lambda e: PRIORITY_RANK.get(e.get("priority"), 0), reverse=True)
        return [emergency_to_response(e) for e in emergencies]

    def count_active(self) -> int:
        return len(self.list_active())

    def get_emergency(self, principal, emergency_id: str) -> Dict:
        emergency = self._load(emergency_id)
        access_scope.ensure_emergency_access(principal, emergency)
        return emergency_to_response(emergency)

    def update_emergency_status(
        self,
        principal,
        emergency_id: str,
        new_status: str,
        remarks: Optional[str] = None,
        resolution_notes: Optional[str] = None,
    ) -> Dict:
        """Advance one step along the emergency lifecycle; one document write."""
        emergency = self._load(emergency_id)
        old_status = emergency.get("status")
        entry = StatusWorkflowEngine.validate_emergency_transition(old_status, new_status, principal.id, remarks)

        now = utc_now()
        update_data = {
            "status": new_status,
            "status_history": firestore.ArrayUnion([entry]),
            "updated_at": now,
        }
        if not emergency.get("responded_by"):
            update_data["responded_by"] = principal.id
        timestamp_field = STATUS_TIMESTAMPS.get(new_status)
        if timestamp_field and not emergency.get(timestamp_field):
            update_data[timestamp_field] = now
        if new_status == EmergencyStatus.RESOLVED.value and resolution_notes:
            update_data["resolution_notes"] = resolution_notes

        self.db.collection(COLLECTION).document(emergency_id).update(update_data)
        logger.info(
            f"Emergency {emergency.get('emergency_id')} status updated from {old_status} to {new_status} by {principal.id}"
        )

        get_notification_dispatcher().dispatch(
            user_id=emergency.get("reported_by"),
            notification_type=NotificationType.EMERGENCY_STATUS_UPDATE,
            title="Emergency update",
            message=f"Your emergency {emergency.get('emergency_id')} is now {new_status.replace('_', ' ')}.",
            entity_type=EntityType.EMERGENCY,
            entity_id=emergency_id,
            priority=NotificationPriority.URGENT if new_status != EmergencyStatus.RESOLVED.value else NotificationPriority.HIGH,
            action_url=f"/emergency/{emergency_id}",
            metadata={"old_status": old_status, "new_status": new_status},
        )

        return emergency_to_response(self._load(emergency_id))


_emergency_service_instance: Optional[EmergencyService] = None


def get_emergency_service() -> EmergencyService:
    """Get singleton emergency service instance."""
    global _emergency_service_instance
    if _emergency_service_instance is None:
        _emergency_service_instance = EmergencyService()
    return _emergency_service_instance
