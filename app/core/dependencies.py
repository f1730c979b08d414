"""
FastAPI dependencies that build the per-request context.

RequestContext carries the authenticated principal and, for officers, the raw
X-Department-Id header. Only require_selected_department resolves it, so a
stale header does not block endpoints that never read it. Nothing about the caller
is kept in module or global state.
"""

import logging
from typing import Callable, Dict, Optional, Union

from fastapi import Depends, Header
from pydantic import BaseModel, ValidationError

from app.core.errors import (
    AuthenticationError,
    ErrorMessages,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from app.models.user import (
    AccountStatus,
    AdminPrincipal,
    CitizenPrincipal,
    OfficerPrincipal,
    UserRole,
    principal_from_user,
)
from app.services.department_service import get_department_service
from app.services.user_service import get_user_service
from app.utils.security import decode_access_token

logger = logging.getLogger(__name__)


class RequestContext(BaseModel):
    principal: Union[CitizenPrincipal, OfficerPrincipal, AdminPrincipal]
    department_header: Optional[str] = None
    selected_department: Optional[Dict] = None

    @property
    def user_id(self) -> str:
        return self.principal.id

    @property
    def role(self) -> str:
        return self.principal.role


def get_current_user(authorization: Optional[str] = Header(None)) -> Dict:
    """
    Resolve the `Authorization: Bearer <token>` header to a live, active user document.

    Raises:
        AuthenticationError: token missing, invalid or expired
        NotFoundError: the user no longer exists
        PermissionDeniedError: the account is inactive or suspended
    """
    if not authorization or not authorization.strip():
        raise AuthenticationError(ErrorMessages.TOKEN_REQUIRED)

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)

    claims = decode_access_token(token.strip())
    if claims is None:
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)

    user = get_user_service().get_user(claims["sub"])
    if user is None:
        raise NotFoundError(ErrorMessages.USER_NOT_FOUND)

    if user.get("account_status", AccountStatus.ACTIVE.value) != AccountStatus.ACTIVE.value:
        logger.warning(f"Request refused for {user['id']}: account {user.get('account_status')}")
        raise PermissionDeniedError(ErrorMessages.USER_INACTIVE)

    return user


def get_request_context(
    user: Dict = Depends(get_current_user),
    x_department_id: Optional[str] = Header(None),
) -> RequestContext:
    try:
        principal = principal_from_user(user)
    except ValidationError:
        logger.error(f"User {user.get('id')} has unknown role {user.get('role')!r}")
        raise AuthenticationError(ErrorMessages.INVALID_TOKEN)

    department_header = None
    if isinstance(principal, OfficerPrincipal) and x_department_id and x_department_id.strip():
        department_header = x_department_id.strip()

    return RequestContext(principal=principal, department_header=department_header)


def require_roles(*roles: UserRole) -> Callable[..., RequestContext]:
    """
    Dependency factory restricting an endpoint to some roles.

    Usage:
        @router.get("/officers")
        async def list_officers(ctx: RequestContext = Depends(require_roles(UserRole.ADMIN))):
    """
    allowed = {role.value for role in roles}

    def dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if ctx.role not in allowed:
            logger.warning(f"User {ctx.user_id} ({ctx.role}) denied: requires {sorted(allowed)}")
            raise PermissionDeniedError(ErrorMessages.FORBIDDEN)
        return ctx

    return dependency


require_citizen = require_roles(UserRole.CITIZEN)
require_officer = require_roles(UserRole.OFFICER)
require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.OFFICER, UserRole.ADMIN)


def require_selected_department(ctx: RequestContext = Depends(require_officer)) -> RequestContext:
    """Officer endpoints that work on one department need a valid X-Department-Id."""
    if ctx.department_header is None:
        raise ValidationFailedError(ErrorMessages.DEPARTMENT_SELECTION_REQUIRED)
    ctx.selected_department = get_department_service().resolve_for_officer(ctx.principal, ctx.department_header)
    return ctx
