"""
Department endpoints.

Reads are public so citizens can pick a department when filing a report;
writes are admin-only.
"""

from fastapi import APIRouter, Depends, Query, status
from app.core.dependencies import RequestContext, require_admin
from app.models.base import api_response
from app.models.department import DepartmentCreate, DepartmentUpdate
from app.services.department_service import get_department_service
from typing import Optional

router = APIRouter(prefix="/departments", tags=["Departments"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_department(request: DepartmentCreate, ctx: RequestContext = Depends(require_admin)):
    department = get_department_service().create_department(request, ctx.user_id)
    return api_response({"department": department}, message="Department created successfully")


@router.get("")
async def list_departments(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
):
    """All non-deleted departments sorted by name, with search over name and code."""
    result = get_department_service().list_departments(page=page, limit=limit, is_active=is_active, search=search)
    return api_response({"departments": result["items"], "pagination": result["pagination"]})


@router.get("/active")
async def list_active_departments():
    return api_response({"departments": get_department_service().list_active_departments()})


@router.get("/{department_id}")
async def get_department(department_id: str):
    return api_response({"department": get_department_service().get_department(department_id)})


@router.put("/{department_id}")
async def update_department(
    department_id: str,
    request: DepartmentUpdate,
    ctx: RequestContext = Depends(require_admin),
):
    department = get_department_service().update_department(department_id, request, ctx.user_id)
    return api_response({"department": department}, message="Department updated successfully")


@router.delete("/{department_id}")
async def delete_department(department_id: str, ctx: RequestContext = Depends(require_admin)):
    """Soft delete. Existing reports keep their department reference."""
    get_department_service().delete_department(department_id, ctx.user_id)
    return api_response(message="Department deleted successfully")


@router.patch("/{department_id}/toggle-status")
async def toggle_department_status(department_id: str, ctx: RequestContext = Depends(require_admin)):
    department = get_department_service().toggle_status(department_id, ctx.user_id)
    state = "activated" if department.get("is_active") else "deactivated"
    return api_response({"department": department}, message=f"Department {state} successfully")


@router.get("/{department_id}/stats")
async def get_department_stats(department_id: str, ctx: RequestContext = Depends(require_admin)):
    return api_response(get_department_service().get_stats(department_id))
