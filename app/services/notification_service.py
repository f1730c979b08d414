"""
Notification Service - in-app notifications for citizens and officers.

NotificationDispatcher.dispatch() is called after status-affecting writes.
It is best-effort: any failure is logged at WARNING and swallowed so the
caller's write is never rolled back.

Expiry:
- Every notification gets expires_at = created_at + NOTIFICATION_TTL_DAYS
- The Firestore TTL policy on `expires_at` deletes them eventually
- Until then, expired notifications are filtered out of every read
"""

from firebase_admin import firestore
from app.config.firebase import get_db
from app.core.errors import ErrorMessages, NotFoundError
from app.core.settings import settings
from app.models.notification import EntityType, NotificationPriority, NotificationType
from app.utils.firestore_helpers import (
    paginate,
    snapshot_to_dict,
    sort_documents,
    to_datetime,
    utc_now,
    where_filter,
)
from datetime import timedelta
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

COLLECTION = "notifications"


def _is_expired(notification: Dict) -> bool:
    expires_at = to_datetime(notification.get("expires_at"))
    return expires_at is not None and expires_at <= utc_now()


class NotificationDispatcher:
    """Creates notification documents for the user affected by an action."""

    def __init__(self):
        self.db = get_db()

    def _write(self, notification: Dict) -> str:
        ref = self.db.collection(COLLECTION).document()
        ref.set(notification)
        return ref.id

    def dispatch(
        self,
        user_id: Optional[str],
        notification_type: NotificationType,
        title: str,
        message: str,
        entity_type: EntityType = EntityType.NONE,
        entity_id: Optional[str] = None,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        action_url: Optional[str] = None,
        metadata: Optional[Dict] = None,
    ) -> Optional[str]:
        """
        Create a notification for user_id.

        Returns:
            The notification id, or None when nothing was written
        """
        if not user_id:
            logger.warning(f"Notification '{notification_type.value}' skipped: no recipient")
            return None

        now = utc_now()
        notification = {
            "user_id": user_id,
            "type": notification_type.value,
            "title": title,
            "message": message,
            "related_entity": {"entity_type": entity_type.value, "entity_id": entity_id},
            "is_read": False,
            "read_at": None,
            "priority": priority.value,
            "action_url": action_url,
            "metadata": metadata or {},
            "is_deleted": False,
            "created_at": now,
            "expires_at": now + timedelta(days=settings.NOTIFICATION_TTL_DAYS),
        }

        try:
            notification_id = self._write(notification)
        except Exception as e:
            logger.warning(
                f"Failed to dispatch '{notification_type.value}' notification to user {user_id}: {e}"
            )
            return None

        logger.info(f"Notification {notification_id} ({notification_type.value}) sent to user {user_id}")
        return notification_id


class NotificationService:
    """Read side of notifications: every operation is scoped to the owner."""

    def __init__(self):
        self.db = get_db()

    def _visible_for_user(self, user_id: str) -> List[Dict]:
        query = where_filter(self.db.collection(COLLECTION), "user_id", "==", user_id)
        notifications = [snapshot_to_dict(doc) for doc in query.stream()]
        return [n for n in notifications if not n.get("is_deleted") and not _is_expired(n)]

    def _get_owned(self, user_id: str, notification_id: str) -> Dict:
        doc = self.db.collection(COLLECTION).document(notification_id).get()
        notification = snapshot_to_dict(doc)
        if (
            notification is None
            or notification.get("user_id") != user_id
            or notification.get("is_deleted")
            or _is_expired(notification)
        ):
            raise NotFoundError(ErrorMessages.NOTIFICATION_NOT_FOUND)
        return notification

    def list_notifications(
        self,
        user_id: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None,
    ) -> Dict:
        notifications = self._visible_for_user(user_id)
        if is_read is not None:
            notifications = [n for n in notifications if bool(n.get("is_read")) == is_read]
        if notification_type:
            notifications = [n for n in notifications if n.get("type") == notification_type]

        result = paginate(sort_documents(notifications, "created_at"), page, limit)
        result["unread_count"] = sum(1 for n in self._visible_for_user(user_id) if not n.get("is_read"))
        return result

    def get_unread_count(self, user_id: str) -> int:
        return sum(1 for n in self._visible_for_user(user_id) if not n.get("is_read"))

    def mark_as_read(self, user_id: str, notification_id: str) -> Dict:
        notification = self._get_owned(user_id, notification_id)
        if not notification.get("is_read"):
            self.db.collection(COLLECTION).document(notification_id).update(
                {"is_read": True, "read_at": utc_now()}
            )
        return snapshot_to_dict(self.db.collection(COLLECTION).document(notification_id).get())

    def mark_as_unread(self, user_id: str, notification_id: str) -> Dict:
        self._get_owned(user_id, notification_id)
        self.db.collection(COLLECTION).document(notification_id).update(
            {"is_read": False, "read_at": None}
        )
        return snapshot_to_dict(self.db.collection(COLLECTION).document(notification_id).get())

    def mark_all_as_read(self, user_id: str) -> int:
        """Returns the number of notifications that changed."""
        now = utc_now()
        unread = [n for n in self._visible_for_user(user_id) if not n.get("is_read")]
        for notification in unread:
            self.db.collection(COLLECTION).document(notification["id"]).update(
                {"is_read": True, "read_at": now}
            )
        logger.info(f"Marked {len(unread)} notifications as read for user {user_id}")
        return len(unread)

    def delete_notification(self, user_id: str, notification_id: str) -> None:
        """Soft delete; the document stays until its TTL expires."""
        self._get_owned(user_id, notification_id)
        self.db.collection(COLLECTION).document(notification_id).update(
            {"is_deleted": True, "deleted_at": firestore.SERVER_TIMESTAMP}
        )
        logger.info(f"Notification {notification_id} deleted by user {user_id}")


_dispatcher_instance: Optional[NotificationDispatcher] = None
_notification_service_instance: Optional[NotificationService] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    global _dispatcher_instance
    if _dispatcher_instance is None:
        _dispatcher_instance = NotificationDispatcher()
    return _dispatcher_instance


def get_notification_service() -> NotificationService:
    global _notification_service_instance
    if _notification_service_instance is None:
        _notification_service_instance = NotificationService()
    return _notification_service_instance
