"""
Authentication endpoints - e-mail + password, bearer JWT sessions.
"""

from fastapi import APIRouter, Depends, Request, status
from app.core.dependencies import RequestContext, get_current_user, get_request_context
from app.models.base import api_response
from app.models.user import LoginRequest, RegisterRequest
from app.services.user_service import get_user_service
from app.utils.security import create_access_token
from typing import Dict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def client_key(http_request: Request) -> str:
    return http_request.client.host if http_request.client else "unknown"


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, http_request: Request):
    """
    Register a citizen account and return a session token.

    Officers and admins are created by admins, never through this endpoint.
    """
    user_service = get_user_service()
    user = user_service.register_citizen(request, client_key=client_key(http_request))
    token = create_access_token(user["id"], user["role"])
    return api_response(
        {"token": token, "user": user_service.to_response(user)},
        message="Registration successful",
    )


@router.post("/login")
async def login(request: LoginRequest, http_request: Request):
    """
    Log in with e-mail and password.

    Returns 401 for wrong credentials, 403 for inactive/suspended accounts and
    429 after too many failed attempts from the same client.
    """
    user_service = get_user_service()
    user = user_service.authenticate(request.email, request.password, client_key=client_key(http_request))
    token = create_access_token(user["id"], user["role"])
    return api_response(
        {"token": token, "user": user_service.to_response(user)},
        message="Login successful",
    )


@router.get("/me")
async def get_me(user: Dict = Depends(get_current_user)):
    """Current user profile (officers include their department summaries)."""
    return api_response({"user": get_user_service().to_response(user)})


@router.post("/logout")
async def logout(ctx: RequestContext = Depends(get_request_context)):
    """
    Tokens are stateless; the client discards its token.
    """
    logger.info(f"User {ctx.user_id} logged out")
    return api_response(message="Logout successful")


@router.post("/refresh")
async def refresh_token(ctx: RequestContext = Depends(get_request_context)):
    """Issue a fresh token for a still-valid session."""
    return api_response({"token": create_access_token(ctx.user_id, ctx.role)}, message="Token refreshed")
