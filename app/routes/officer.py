"""
Officer endpoints.

An officer works inside one department at a time: the client calls
/select-department once, then sends the chosen id as X-Department-Id on
department-specific requests (dashboard, report listing).
"""

from fastapi import APIRouter, Depends, Query
from app.core.dependencies import RequestContext, require_officer, require_selected_department
from app.models.base import api_response
from app.models.report import RejectRequest, StatusUpdateRequest
from app.models.user import ProfileUpdateRequest, SelectDepartmentRequest
from app.services.dashboard_service import get_dashboard_service
from app.services.department_service import get_department_service
from app.services.emergency_service import get_emergency_service
from app.services.report_service import get_report_service
from app.services.user_service import get_user_service
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/officer", tags=["Officer"])


@router.post("/select-department")
async def select_department(request: SelectDepartmentRequest, ctx: RequestContext = Depends(require_officer)):
    """
    Validate that the department exists, is active and is assigned to the officer.
    """
    department = get_department_service().resolve_for_officer(ctx.principal, request.department_id)
    logger.info(f"Officer {ctx.user_id} selected department {department['id']}")
    return api_response(
        {"department": {
            "id": department["id"],
            "name": department.get("name"),
            "code": department.get("code"),
            "icon": department.get("icon"),
        }},
        message="Department selected successfully",
    )


@router.get("/dashboard")
async def officer_dashboard(ctx: RequestContext = Depends(require_selected_department)):
    return api_response(get_dashboard_service().officer_dashboard(ctx.user_id, ctx.selected_department))


@router.get("/reports")
async def list_department_reports(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ctx: RequestContext = Depends(require_selected_department),
):
    """Reports of the selected department."""
    result = get_report_service().list_reports(
        ctx.principal,
        department_id=ctx.selected_department["id"],
        status=status_filter,
        priority=priority,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return api_response({"reports": result["items"], "pagination": result["pagination"]})


@router.get("/reports/{report_id}")
async def get_report(report_id: str, ctx: RequestContext = Depends(require_officer)):
    return api_response({"report": get_report_service().get_report(ctx.principal, report_id)})


@router.patch("/reports/{report_id}/status")
async def update_report_status(
    report_id: str,
    request: StatusUpdateRequest,
    ctx: RequestContext = Depends(require_officer),
):
    """
    Move a report to its next status.

    400 for transitions outside the table, 403 when the report belongs to a
    department the officer is not assigned to.
    """
    report = get_report_service().update_report_status(
        ctx.principal,
        report_id,
        request.status,
        remarks=request.remarks,
        resolution_notes=request.resolution_notes,
    )
    return api_response({"report": report}, message="Report status updated successfully")


@router.post("/reports/{report_id}/reject")
async def reject_report(report_id: str, request: RejectRequest, ctx: RequestContext = Depends(require_officer)):
    report = get_report_service().reject_report(ctx.principal, report_id, request.reason)
    return api_response({"report": report}, message="Report rejected successfully")


@router.get("/emergencies")
async def list_emergencies(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    emergency_type: Optional[str] = Query(None, alias="type"),
    ctx: RequestContext = Depends(require_officer),
):
    """Emergencies are not department-bound; officers see all of them."""
    result = get_emergency_service().list_for_principal(
        ctx.principal, status=status_filter, emergency_type=emergency_type, page=page, limit=limit
    )
    return api_response({"emergencies": result["items"], "pagination": result["pagination"]})


@router.get("/profile")
async def get_profile(ctx: RequestContext = Depends(require_officer)):
    user_service = get_user_service()
    return api_response({"officer": user_service.to_response(user_service.get_officer(ctx.user_id))})


@router.put("/profile")
async def update_profile(request: ProfileUpdateRequest, ctx: RequestContext = Depends(require_officer)):
    user_service = get_user_service()
    officer = user_service.update_profile(ctx.user_id, request)
    return api_response({"officer": user_service.to_response(officer)}, message="Profile updated successfully")
