"""
Department Service - manage departments and their counters in Firestore.

Department stats are maintained with firestore.Increment as separate,
best-effort writes after the primary write has succeeded.
"""

from firebase_admin import firestore
from app.config.firebase import get_db
from app.core.errors import ConflictError, ErrorMessages, NotFoundError, PermissionDeniedError
from app.models.department import DepartmentCreate, DepartmentUpdate
from app.utils.firestore_helpers import (
    get_live_document,
    paginate,
    snapshot_to_dict,
    sort_documents,
    text_matches,
    where_filter,
)
from typing import Dict, List, Optional
import logging
import re

logger = logging.getLogger(__name__)

COLLECTION = "departments"

EMPTY_STATS = {
    "total_reports": 0,
    "active_reports": 0,
    "resolved_reports": 0,
    "assigned_officers": 0,
}


def derive_department_code(name: str) -> str:
    """
    "Roads & Transport" -> "ROADS_TRANSPORT"

    Upper-case, drop anything outside [A-Z0-9 ], collapse spaces to "_",
    truncate to 30 characters.
    """
    cleaned = re.sub(r"[^A-Z0-9 ]", "", (name or "").upper())
    return re.sub(r"\s+", "_", cleaned.strip())[:30]


class DepartmentService:
    """
    Service for department CRUD and stats.
    """

    def __init__(self):
        self.db = get_db()

    def _all_live(self) -> List[Dict]:
        query = where_filter(self.db.collection(COLLECTION), "is_deleted", "==", False)
        return [snapshot_to_dict(doc) for doc in query.stream()]

    def _find_by_name(self, name: str) -> Optional[Dict]:
        query = where_filter(self.db.collection(COLLECTION), "name_lower", "==", name.strip().lower())
        for doc in query.stream():
            department = snapshot_to_dict(doc)
            if not department.get("is_deleted"):
                return department
        return None

    def get_department(self, department_id: str) -> Dict:
        department = get_live_document(COLLECTION, department_id)
        if department is None:
            raise NotFoundError(ErrorMessages.DEPARTMENT_NOT_FOUND)
        return department

    def get_active_department(self, department_id: str) -> Dict:
        """Department that can receive reports / be selected by an officer."""
        department = self.get_department(department_id)
        if not department.get("is_active", True):
            raise PermissionDeniedError(ErrorMessages.DEPARTMENT_INACTIVE)
        return department

    def resolve_for_officer(self, officer, department_id: str) -> Dict:
        """
        Department an officer is working in: must exist, be active and be
        one of the officer's assignments.
        """
        department = self.get_active_department(department_id)
        if not officer.is_assigned_to(department_id):
            logger.warning(f"Officer {officer.id} attempted to access unassigned department {department_id}")
            raise PermissionDeniedError(ErrorMessages.DEPARTMENT_NOT_ASSIGNED)
        return department

    def create_department(self, data: DepartmentCreate, created_by: str) -> Dict:
        name = data.name.strip()
        if self._find_by_name(name):
            raise ConflictError(ErrorMessages.DEPARTMENT_ALREADY_EXISTS)

        ref = self.db.collection(COLLECTION).document()
        ref.set({
            "name": name,
            "name_lower": name.lower(),
            "code": derive_department_code(name),
            "description": data.description,
            "icon": data.icon,
            "contact_email": data.contact_email,
            "contact_phone": data.contact_phone,
            "is_active": True,
            "is_deleted": False,
            "stats": dict(EMPTY_STATS),
            "created_by": created_by,
            "updated_by": None,
            "created_at": firestore.SERVER_TIMESTAMP,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Department created: {name} ({ref.id}) by {created_by}")
        return snapshot_to_dict(ref.get())

    def list_departments(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Dict:
        departments = self._all_live()
        if is_active is not None:
            departments = [d for d in departments if bool(d.get("is_active", True)) == is_active]
        departments = [d for d in departments if text_matches(d, search, ("name", "code"))]
        return paginate(sort_documents(departments, "name", descending=False), page, limit)

    def list_active_departments(self) -> List[Dict]:
        """Short id/name/code/icon list for pickers."""
        active = [d for d in self._all_live() if d.get("is_active", True)]
        return [
            {"id": d["id"], "name": d.get("name"), "code": d.get("code"), "icon": d.get("icon")}
            for d in sort_documents(active, "name", descending=False)
        ]

    def update_department(self, department_id: str, data: DepartmentUpdate, updated_by: str) -> Dict:
        department = self.get_department(department_id)
        changes = data.model_dump(exclude_unset=True)

        update_data: Dict = {}
        new_name = changes.pop("name", None)
        if new_name and new_name.strip().lower() != department.get("name_lower"):
            existing = self._find_by_name(new_name)
            if existing and existing["id"] != department_id:
                raise ConflictError(ErrorMessages.DEPARTMENT_ALREADY_EXISTS)
            update_data.update({
                "name": new_name.strip(),
                "name_lower": new_name.strip().lower(),
                "code": derive_department_code(new_name),
            })

        update_data.update(changes)
        update_data["updated_by"] = updated_by
        update_data["updated_at"] = firestore.SERVER_TIMESTAMP

        ref = self.db.collection(COLLECTION).document(department_id)
        ref.update(update_data)
        logger.info(f"Department {department_id} updated by {updated_by}: {sorted(update_data)}")
        return snapshot_to_dict(ref.get())

    def delete_department(self, department_id: str, deleted_by: str) -> None:
        """Soft delete; reports keep pointing at the department id."""
        self.get_department(department_id)
        self.db.collection(COLLECTION).document(department_id).update({
            "is_deleted": True,
            "is_active": False,
            "updated_by": deleted_by,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Department {department_id} deleted by {deleted_by}")

    def toggle_status(self, department_id: str, updated_by: str) -> Dict:
        department = self.get_department(department_id)
        new_state = not department.get("is_active", True)
        ref = self.db.collection(COLLECTION).document(department_id)
        ref.update({
            "is_active": new_state,
            "updated_by": updated_by,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Department {department_id} {'activated' if new_state else 'deactivated'} by {updated_by}")
        return snapshot_to_dict(ref.get())

    def get_stats(self, department_id: str) -> Dict:
        department = self.get_department(department_id)
        return {
            "department": {"id": department["id"], "name": department.get("name"), "code": department.get("code")},
            "stats": {**EMPTY_STATS, **(department.get("stats") or {})},
        }

    def adjust_stats(self, department_id: Optional[str], **deltas: int) -> None:
        """
        Apply counter deltas, e.g. adjust_stats(dept_id, active_reports=-1, resolved_reports=1).

        Best-effort: a failure here is logged and never undoes the caller's write.
        """
        if not department_id:
            return
        updates = {f"stats.{field}": firestore.Increment(delta) for field, delta in deltas.items() if delta}
        if not updates:
            return
        try:
            self.db.collection(COLLECTION).document(department_id).update(updates)
        except Exception as e:
            logger.warning(f"Failed to update stats for department {department_id} {deltas}: {e}")


_department_service_instance: Optional[DepartmentService] = None


def get_department_service() -> DepartmentService:
    """Get singleton department service instance."""
    global _department_service_instance
    if _department_service_instance is None:
        _department_service_instance = DepartmentService()
    return _department_service_instance
