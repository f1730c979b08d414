"""
Admin endpoints - officer management and platform-wide audit views.

Every endpoint here requires the admin role.
"""

from fastapi import APIRouter, Depends, Query, status
from app.core.dependencies import RequestContext, require_admin
from app.models.base import api_response
from app.models.user import (
    AccountStatus,
    AccountStatusRequest,
    DepartmentAssignmentRequest,
    OfficerCreateRequest,
    OfficerUpdateRequest,
)
from app.services.dashboard_service import get_dashboard_service
from app.services.emergency_service import get_emergency_service
from app.services.report_service import get_report_service
from app.services.user_service import get_user_service
from typing import Optional

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/officers", status_code=status.HTTP_201_CREATED)
async def create_officer(request: OfficerCreateRequest, ctx: RequestContext = Depends(require_admin)):
    """
    Create an officer account, optionally assigned to departments.

    Each assigned department's assigned_officers counter is incremented and
    the officer is notified of the assignment.
    """
    user_service = get_user_service()
    officer = user_service.create_officer(request, ctx.user_id)
    return api_response({"officer": user_service.to_response(officer)}, message="Officer created successfully")


@router.get("/officers")
async def list_officers(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    account_status: Optional[AccountStatus] = Query(None),
    department_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    ctx: RequestContext = Depends(require_admin),
):
    user_service = get_user_service()
    result = user_service.list_officers(
        page=page,
        limit=limit,
        account_status=account_status.value if account_status else None,
        department_id=department_id,
        search=search,
    )
    return api_response({
        "officers": [user_service.to_response(o) for o in result["items"]],
        "pagination": result["pagination"],
    })


@router.get("/officers/{officer_id}")
async def get_officer(officer_id: str, ctx: RequestContext = Depends(require_admin)):
    user_service = get_user_service()
    return api_response({"officer": user_service.to_response(user_service.get_officer(officer_id))})


@router.put("/officers/{officer_id}")
async def update_officer(
    officer_id: str,
    request: OfficerUpdateRequest,
    ctx: RequestContext = Depends(require_admin),
):
    user_service = get_user_service()
    officer = user_service.update_officer(officer_id, request, ctx.user_id)
    return api_response({"officer": user_service.to_response(officer)}, message="Officer updated successfully")


@router.delete("/officers/{officer_id}")
async def delete_officer(officer_id: str, ctx: RequestContext = Depends(require_admin)):
    get_user_service().delete_officer(officer_id, ctx.user_id)
    return api_response(message="Officer deleted successfully")


@router.patch("/officers/{officer_id}/status")
async def update_officer_status(
    officer_id: str,
    request: AccountStatusRequest,
    ctx: RequestContext = Depends(require_admin),
):
    user_service = get_user_service()
    officer = user_service.update_officer_status(officer_id, request.account_status, ctx.user_id, request.reason)
    return api_response(
        {"officer": user_service.to_response(officer)},
        message=f"Officer account {request.account_status.value}",
    )


@router.post("/officers/{officer_id}/departments")
async def assign_department(
    officer_id: str,
    request: DepartmentAssignmentRequest,
    ctx: RequestContext = Depends(require_admin),
):
    user_service = get_user_service()
    officer = user_service.assign_department(officer_id, request.department_id, ctx.user_id)
    return api_response({"officer": user_service.to_response(officer)}, message="Department assigned successfully")


@router.delete("/officers/{officer_id}/departments/{department_id}")
async def remove_department(officer_id: str, department_id: str, ctx: RequestContext = Depends(require_admin)):
    user_service = get_user_service()
    officer = user_service.remove_department(officer_id, department_id, ctx.user_id)
    return api_response({"officer": user_service.to_response(officer)}, message="Department removed successfully")


@router.get("/dashboard")
async def admin_dashboard(ctx: RequestContext = Depends(require_admin)):
    return api_response(get_dashboard_service().admin_dashboard())


@router.get("/reports")
async def list_all_reports(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    department_id: Optional[str] = Query(None, alias="department"),
    search: Optional[str] = Query(None, max_length=100),
    ctx: RequestContext = Depends(require_admin),
):
    """Audit view over every report."""
    result = get_report_service().list_reports(
        ctx.principal,
        department_id=department_id,
        status=status_filter,
        search=search,
        page=page,
        limit=limit,
    )
    return api_response({"reports": result["items"], "pagination": result["pagination"]})


@router.get("/emergencies")
async def list_all_emergencies(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status_filter: Optional[str] = Query(None, alias="status"),
    emergency_type: Optional[str] = Query(None, alias="type"),
    ctx: RequestContext = Depends(require_admin),
):
    result = get_emergency_service().list_for_principal(
        ctx.principal, status=status_filter, emergency_type=emergency_type, page=page, limit=limit
    )
    return api_response({"emergencies": result["items"], "pagination": result["pagination"]})
