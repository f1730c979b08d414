"""
Shared report endpoints for every authenticated role.

Results are always scoped to the caller: citizens see their own reports,
officers the reports of their assigned departments, admins everything.
"""

from fastapi import APIRouter, Depends, Query
from app.core.dependencies import RequestContext, get_request_context, require_staff
from app.models.base import api_response
from app.services.report_service import NEARBY_DEFAULT_RADIUS_M, get_report_service
from typing import Optional

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("")
async def list_reports(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    department_id: Optional[str] = Query(None, alias="department"),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ctx: RequestContext = Depends(get_request_context),
):
    """
    List reports visible to the caller.

    An officer asking for a department outside their assignments gets 403;
    an officer without assignments gets an empty page.
    """
    result = get_report_service().list_reports(
        ctx.principal,
        department_id=department_id,
        status=status_filter,
        priority=priority,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return api_response({"reports": result["items"], "pagination": result["pagination"]})


@router.get("/statistics")
async def report_statistics(
    department_id: Optional[str] = Query(None, alias="department"),
    ctx: RequestContext = Depends(require_staff),
):
    return api_response(get_report_service().get_statistics(ctx.principal, department_id))


@router.get("/nearby")
async def nearby_reports(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: int = Query(NEARBY_DEFAULT_RADIUS_M, description="Search radius in meters"),
    ctx: RequestContext = Depends(get_request_context),
):
    reports = get_report_service().find_nearby(ctx.principal, lat, lng, radius)
    return api_response({"reports": reports, "count": len(reports)})


@router.get("/{report_id}")
async def get_report(report_id: str, ctx: RequestContext = Depends(get_request_context)):
    return api_response({"report": get_report_service().get_report(ctx.principal, report_id)})
