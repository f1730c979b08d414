"""
Health check endpoints for deployment readiness probes.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from app.config.firebase import get_db
from app.core.settings import settings
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Returns 200 while the process is serving requests."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
async def database_health():
    """
    Database connectivity check: lists collections on the configured store.
    Answers 503 when Firestore is unreachable or misconfigured.
    """
    backend = "mock" if settings.USE_MOCK_DB else "firestore"
    try:
        collections = list(get_db().collections())
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"success": False, "message": "Database connection failed", "database": backend},
        )

    return {
        "status": "healthy",
        "database": backend,
        "connected": True,
        "collections_count": len(collections),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
