"""
Citizen endpoints - filing reports and tracking them.
"""

from fastapi import APIRouter, Depends, Query, status
from app.core.dependencies import RequestContext, require_citizen
from app.models.base import api_response
from app.models.report import ReportCreate
from app.models.user import ProfileUpdateRequest
from app.services.dashboard_service import get_dashboard_service
from app.services.report_service import get_report_service
from app.services.user_service import get_user_service
from typing import Optional

router = APIRouter(prefix="/citizen", tags=["Citizen"])


@router.get("/dashboard")
async def citizen_dashboard(ctx: RequestContext = Depends(require_citizen)):
    return api_response(get_dashboard_service().citizen_dashboard(ctx.user_id))


@router.post("/reports", status_code=status.HTTP_201_CREATED)
async def create_report(request: ReportCreate, ctx: RequestContext = Depends(require_citizen)):
    """
    File a report.

    - At least one image URL is required
    - The department must exist and be active
    - An empty address is filled in by reverse geocoding (best-effort)
    """
    report = get_report_service().create_report(ctx.principal, request)
    return api_response({"report": report}, message="Report submitted successfully")


@router.get("/reports")
async def list_my_reports(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    department_id: Optional[str] = Query(None, alias="department"),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ctx: RequestContext = Depends(require_citizen),
):
    result = get_report_service().list_reports(
        ctx.principal,
        department_id=department_id,
        status=status_filter,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return api_response({"reports": result["items"], "pagination": result["pagination"]})


@router.get("/reports/{report_id}")
async def get_my_report(report_id: str, ctx: RequestContext = Depends(require_citizen)):
    return api_response({"report": get_report_service().get_report(ctx.principal, report_id)})


@router.get("/profile")
async def get_profile(ctx: RequestContext = Depends(require_citizen)):
    user_service = get_user_service()
    user = user_service.get_user(ctx.user_id)
    return api_response({"user": user_service.to_response(user)})


@router.put("/profile")
async def update_profile(request: ProfileUpdateRequest, ctx: RequestContext = Depends(require_citizen)):
    user_service = get_user_service()
    user = user_service.update_profile(ctx.user_id, request)
    return api_response({"user": user_service.to_response(user)}, message="Profile updated successfully")
