"""
Emergency endpoints.

Citizens file and track emergencies; officers and admins see the active
queue and move emergencies through reported -> received -> dispatched -> resolved.
"""

from fastapi import APIRouter, Depends, Query, status
from app.core.dependencies import RequestContext, get_request_context, require_citizen, require_staff
from app.models.base import api_response
from app.models.emergency import EmergencyCreate, EmergencyStatusUpdate
from app.services.emergency_service import get_emergency_service
from typing import Optional

router = APIRouter(prefix="/emergency", tags=["Emergency"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_emergency(request: EmergencyCreate, ctx: RequestContext = Depends(require_citizen)):
    emergency = get_emergency_service().create_emergency(ctx.principal, request)
    return api_response({"emergency": emergency}, message="Emergency reported successfully")


@router.get("/my-emergencies")
async def list_my_emergencies(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    emergency_type: Optional[str] = Query(None, alias="type"),
    ctx: RequestContext = Depends(require_citizen),
):
    result = get_emergency_service().list_for_principal(
        ctx.principal, status=status_filter, emergency_type=emergency_type, page=page, limit=limit
    )
    return api_response({"emergencies": result["items"], "pagination": result["pagination"]})


@router.get("/active")
async def list_active_emergencies(ctx: RequestContext = Depends(require_staff)):
    emergencies = get_emergency_service().list_active()
    return api_response({"emergencies": emergencies, "count": len(emergencies)})


@router.get("/{emergency_id}")
async def get_emergency(emergency_id: str, ctx: RequestContext = Depends(get_request_context)):
    """Citizens may only open their own emergencies."""
    return api_response({"emergency": get_emergency_service().get_emergency(ctx.principal, emergency_id)})


@router.patch("/{emergency_id}/status")
async def update_emergency_status(
    emergency_id: str,
    request: EmergencyStatusUpdate,
    ctx: RequestContext = Depends(require_staff),
):
    emergency = get_emergency_service().update_emergency_status(
        ctx.principal,
        emergency_id,
        request.status,
        remarks=request.remarks,
        resolution_notes=request.resolution_notes,
    )
    return api_response({"emergency": emergency}, message="Emergency status updated successfully")
