"""
Notification endpoints. Users only ever see and change their own notifications.
"""

from fastapi import APIRouter, Depends, Query
from app.core.dependencies import RequestContext, get_request_context
from app.models.base import api_response
from app.models.notification import NotificationType
from app.services.notification_service import get_notification_service
from typing import Optional

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    is_read: Optional[bool] = Query(None),
    notification_type: Optional[NotificationType] = Query(None, alias="type"),
    ctx: RequestContext = Depends(get_request_context),
):
    result = get_notification_service().list_notifications(
        ctx.user_id,
        page=page,
        limit=limit,
        is_read=is_read,
        notification_type=notification_type.value if notification_type else None,
    )
    return api_response({
        "notifications": result["items"],
        "pagination": result["pagination"],
        "unread_count": result["unread_count"],
    })


@router.get("/unread-count")
async def unread_count(ctx: RequestContext = Depends(get_request_context)):
    return api_response({"unread_count": get_notification_service().get_unread_count(ctx.user_id)})


@router.patch("/read-all")
async def mark_all_read(ctx: RequestContext = Depends(get_request_context)):
    updated = get_notification_service().mark_all_as_read(ctx.user_id)
    return api_response({"updated": updated}, message="All notifications marked as read")


@router.patch("/{notification_id}/read")
async def mark_read(notification_id: str, ctx: RequestContext = Depends(get_request_context)):
    notification = get_notification_service().mark_as_read(ctx.user_id, notification_id)
    return api_response({"notification": notification}, message="Notification marked as read")


@router.patch("/{notification_id}/unread")
async def mark_unread(notification_id: str, ctx: RequestContext = Depends(get_request_context)):
    notification = get_notification_service().mark_as_unread(ctx.user_id, notification_id)
    return api_response({"notification": notification}, message="Notification marked as unread")


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, ctx: RequestContext = Depends(get_request_context)):
    get_notification_service().delete_notification(ctx.user_id, notification_id)
    return api_response(message="Notification deleted")
