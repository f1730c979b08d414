"""
User Service - accounts, profiles and officer management in Firestore.
"""

from firebase_admin import firestore
from app.config.firebase import get_db
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    ErrorMessages,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    ValidationFailedError,
)
from app.core.settings import settings
from app.models.notification import EntityType, NotificationPriority, NotificationType
from app.models.user import (
    AccountStatus,
    OfficerCreateRequest,
    OfficerUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserRole,
    sanitize_user,
)
from app.services.department_service import get_department_service
from app.services.notification_service import get_notification_dispatcher
from app.utils.firestore_helpers import (
    get_live_document,
    paginate,
    snapshot_to_dict,
    sort_documents,
    text_matches,
    utc_now,
    where_filter,
)
from app.utils.security import hash_password, verify_password
from datetime import timedelta
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

COLLECTION = "users"
AUTH_ATTEMPTS_COLLECTION = "auth_attempts"


class UserService:
    """
    Service for user management in Firestore.
    """

    def __init__(self):
        self.db = get_db()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[Dict]:
        """Live (not soft-deleted) user document or None."""
        return get_live_document(COLLECTION, user_id)

    def get_user_by_email(self, email: str) -> Optional[Dict]:
        query = where_filter(self.db.collection(COLLECTION), "email", "==", email.strip().lower())
        for doc in query.stream():
            user = snapshot_to_dict(doc)
            if not user.get("is_deleted"):
                return user
        return None

    def _require_user(self, user_id: str) -> Dict:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(ErrorMessages.USER_NOT_FOUND)
        return user

    def _require_officer(self, officer_id: str) -> Dict:
        officer = self.get_user(officer_id)
        if officer is None or officer.get("role") != UserRole.OFFICER.value:
            raise NotFoundError(ErrorMessages.OFFICER_NOT_FOUND)
        return officer

    def _reload(self, user_id: str) -> Dict:
        return snapshot_to_dict(self.db.collection(COLLECTION).document(user_id).get())

    def to_response(self, user: Dict) -> Dict:
        """Sanitized user with a {id, name, code} summary of assigned departments."""
        response = sanitize_user(user)
        if user.get("role") == UserRole.OFFICER.value:
            response["departments"] = self._department_summaries(user.get("assigned_departments") or [])
        return response

    def _department_summaries(self, department_ids: List[str]) -> List[Dict]:
        summaries = []
        for department_id in department_ids:
            department = get_live_document("departments", department_id)
            if department is not None:
                summaries.append({"id": department_id, "name": department.get("name"), "code": department.get("code")})
        return summaries

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def _create_user(
        self,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        phone_number: Optional[str] = None,
        assigned_departments: Optional[List[str]] = None,
    ) -> Dict:
        normalized_email = email.strip().lower()
        if self.get_user_by_email(normalized_email):
            raise ConflictError(ErrorMessages.USER_ALREADY_EXISTS)

        user_data = {
            "email": normalized_email,
            "password_hash": hash_password(password),
            "full_name": full_name.strip(),
            "phone_number": phone_number,
            "profile_image": None,
            "address": None,
            "role": role.value,
            "account_status": AccountStatus.ACTIVE.value,
            "is_deleted": False,
            "last_login_at": None,
            "created_at": firestore.SERVER_TIMESTAMP,
            "updated_at": firestore.SERVER_TIMESTAMP,
        }
        if role == UserRole.OFFICER:
            user_data["assigned_departments"] = list(assigned_departments or [])

        user_ref = self.db.collection(COLLECTION).document()
        user_ref.set(user_data)
        logger.info(f"User created: {user_ref.id} ({normalized_email}, role={role.value})")
        return self._reload(user_ref.id)

    def check_auth_rate_limit(self, client_key: str) -> None:
        """
        Raises RateLimitError when the client failed AUTH_RATE_LIMIT_ATTEMPTS
        logins or registrations inside the window. Successful attempts are not recorded.
        """
        window_start = utc_now() - timedelta(minutes=settings.AUTH_RATE_LIMIT_WINDOW_MINUTES)
        query = where_filter(self.db.collection(AUTH_ATTEMPTS_COLLECTION), "client_key", "==", client_key)
        query = where_filter(query, "created_at", ">=", window_start)

        failed_count = len(list(query.stream()))
        if failed_count >= settings.AUTH_RATE_LIMIT_ATTEMPTS:
            logger.warning(f"Auth rate limit exceeded for client {client_key} ({failed_count} failed attempts)")
            raise RateLimitError(ErrorMessages.AUTH_RATE_LIMITED)

    def record_failed_auth(self, client_key: str, action: str, email: str) -> None:
        self.db.collection(AUTH_ATTEMPTS_COLLECTION).document().set({
            "client_key": client_key,
            "action": action,
            "email": email.strip().lower(),
            "created_at": utc_now(),
        })

    def register_citizen(self, request: RegisterRequest, client_key: Optional[str] = None) -> Dict:
        """
        Raises:
            RateLimitError: too many failed attempts from this client
            ConflictError: e-mail already registered
        """
        if client_key:
            self.check_auth_rate_limit(client_key)

        try:
            return self._create_user(
                email=request.email,
                password=request.password,
                full_name=request.full_name,
                role=UserRole.CITIZEN,
                phone_number=request.phone_number,
            )
        except ConflictError:
            if client_key:
                self.record_failed_auth(client_key, "register", request.email)
            raise

    def authenticate(self, email: str, password: str, client_key: Optional[str] = None) -> Dict:
        """
        Verify credentials and stamp last_login_at.

        Raises:
            RateLimitError: too many failed attempts from this client
            AuthenticationError: unknown e-mail or wrong password
            PermissionDeniedError: account is inactive or suspended
        """
        if client_key:
            self.check_auth_rate_limit(client_key)

        try:
            return self._verify_login(email, password)
        except (AuthenticationError, PermissionDeniedError):
            if client_key:
                self.record_failed_auth(client_key, "login", email)
            raise

    def _verify_login(self, email: str, password: str) -> Dict:
        user = self.get_user_by_email(email)
        if user is None or not verify_password(password, user.get("password_hash")):
            logger.warning(f"Failed login attempt for {email.strip().lower()}")
            raise AuthenticationError(ErrorMessages.INVALID_CREDENTIALS)

        if user.get("account_status", AccountStatus.ACTIVE.value) != AccountStatus.ACTIVE.value:
            logger.warning(f"Login refused for {user['id']}: account {user.get('account_status')}")
            raise PermissionDeniedError(ErrorMessages.USER_INACTIVE)

        self.db.collection(COLLECTION).document(user["id"]).update({"last_login_at": firestore.SERVER_TIMESTAMP})
        logger.info(f"User authenticated: {user['id']} ({user['email']})")
        return self._reload(user["id"])

    def update_profile(self, user_id: str, request: ProfileUpdateRequest) -> Dict:
        """Partial update; address fields merge with the stored address."""
        user = self._require_user(user_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)

        address_changes = changes.pop("address", None)
        if address_changes:
            changes["address"] = {**(user.get("address") or {}), **address_changes}

        if not changes:
            return user

        changes["updated_at"] = firestore.SERVER_TIMESTAMP
        self.db.collection(COLLECTION).document(user_id).update(changes)
        logger.info(f"Profile updated for user {user_id}: {sorted(changes)}")
        return self._reload(user_id)

    def ensure_admin(self, email: str, password: str, full_name: str = "Administrator") -> Optional[Dict]:
        """Create an admin account unless one with this e-mail exists. Returns the new admin or None."""
        if self.get_user_by_email(email):
            return None
        admin = self._create_user(email=email, password=password, full_name=full_name, role=UserRole.ADMIN)
        logger.info(f"Bootstrap admin created: {admin['email']}")
        return admin

    # ------------------------------------------------------------------
    # Officers (admin only)
    # ------------------------------------------------------------------

    def create_officer(self, request: OfficerCreateRequest, created_by: str) -> Dict:
        department_service = get_department_service()
        department_ids = list(dict.fromkeys(request.assigned_departments))
        departments = [department_service.get_department(department_id) for department_id in department_ids]

        officer = self._create_user(
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            role=UserRole.OFFICER,
            phone_number=request.phone_number,
            assigned_departments=department_ids,
        )

        for department in departments:
            department_service.adjust_stats(department["id"], assigned_officers=1)
            self._notify_department_assigned(officer["id"], department)

        logger.info(f"Officer {officer['id']} created by {created_by} with departments {department_ids}")
        return officer

    def list_officers(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        account_status: Optional[str] = None,
        department_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict:
        query = where_filter(self.db.collection(COLLECTION), "role", "==", UserRole.OFFICER.value)
        if account_status:
            query = where_filter(query, "account_status", "==", account_status)
        if department_id:
            query = where_filter(query, "assigned_departments", "array_contains", department_id)

        officers = [snapshot_to_dict(doc) for doc in query.stream()]
        officers = [
            o for o in officers
            if not o.get("is_deleted") and text_matches(o, search, ("full_name", "email"))
        ]
        return paginate(sort_documents(officers, "created_at"), page, limit)

    def get_officer(self, officer_id: str) -> Dict:
        return self._require_officer(officer_id)

    def update_officer(self, officer_id: str, request: OfficerUpdateRequest, updated_by: str) -> Dict:
        self._require_officer(officer_id)
        officer = self.update_profile(officer_id, ProfileUpdateRequest(**request.model_dump(exclude_unset=True)))
        logger.info(f"Officer {officer_id} updated by {updated_by}")
        return officer

    def update_officer_status(
        self,
        officer_id: str,
        account_status: AccountStatus,
        updated_by: str,
        reason: Optional[str] = None,
    ) -> Dict:
        officer = self._require_officer(officer_id)
        previous = officer.get("account_status", AccountStatus.ACTIVE.value)

        self.db.collection(COLLECTION).document(officer_id).update({
            "account_status": account_status.value,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Officer {officer_id} account status {previous} -> {account_status.value} by {updated_by}")

        get_notification_dispatcher().dispatch(
            user_id=officer_id,
            notification_type=NotificationType.ACCOUNT_STATUS_CHANGE,
            title="Account status changed",
            message=f"Your account is now {account_status.value}." + (f" Reason: {reason}" if reason else ""),
            entity_type=EntityType.USER,
            entity_id=officer_id,
            priority=NotificationPriority.HIGH,
            metadata={"previous_status": previous, "new_status": account_status.value},
        )
        return self._reload(officer_id)

    def assign_department(self, officer_id: str, department_id: str, assigned_by: str) -> Dict:
        officer = self._require_officer(officer_id)
        department_service = get_department_service()
        department = department_service.get_department(department_id)

        if department_id in (officer.get("assigned_departments") or []):
            raise ConflictError(ErrorMessages.DEPARTMENT_ALREADY_ASSIGNED)

        self.db.collection(COLLECTION).document(officer_id).update({
            "assigned_departments": firestore.ArrayUnion([department_id]),
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Department {department_id} assigned to officer {officer_id} by {assigned_by}")

        department_service.adjust_stats(department_id, assigned_officers=1)
        self._notify_department_assigned(officer_id, department)
        return self._reload(officer_id)

    def remove_department(self, officer_id: str, department_id: str, removed_by: str) -> Dict:
        officer = self._require_officer(officer_id)
        assigned = officer.get("assigned_departments") or []
        if department_id not in assigned:
            raise ValidationFailedError(ErrorMessages.DEPARTMENT_NOT_ASSIGNED)

        self.db.collection(COLLECTION).document(officer_id).update({
            "assigned_departments": [d for d in assigned if d != department_id],
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        logger.info(f"Department {department_id} removed from officer {officer_id} by {removed_by}")

        get_department_service().adjust_stats(department_id, assigned_officers=-1)
        return self._reload(officer_id)

    def delete_officer(self, officer_id: str, deleted_by: str) -> None:
        """Soft delete; the officer can no longer log in or be listed."""
        officer = self._require_officer(officer_id)
        self.db.collection(COLLECTION).document(officer_id).update({
            "is_deleted": True,
            "account_status": AccountStatus.INACTIVE.value,
            "updated_at": firestore.SERVER_TIMESTAMP,
        })
        department_service = get_department_service()
        for department_id in officer.get("assigned_departments") or []:
            department_service.adjust_stats(department_id, assigned_officers=-1)
        logger.info(f"Officer {officer_id} deleted by {deleted_by}")

    def _notify_department_assigned(self, officer_id: str, department: Dict) -> None:
        get_notification_dispatcher().dispatch(
            user_id=officer_id,
            notification_type=NotificationType.DEPARTMENT_ASSIGNED,
            title="New department assignment",
            message=f"You have been assigned to the {department.get('name')} department.",
            entity_type=EntityType.DEPARTMENT,
            entity_id=department["id"],
            action_url="/officer/select-department",
        )


_user_service_instance: Optional[UserService] = None


def get_user_service() -> UserService:
    """Get singleton user service instance."""
    global _user_service_instance
    if _user_service_instance is None:
        _user_service_instance = UserService()
    return _user_service_instance
