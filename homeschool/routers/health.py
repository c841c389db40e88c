"""Health check endpoints."""
from fastapi import APIRouter
import logging

from ..core.config import settings
from ..core.database import health_check_db
from ..core.exceptions import ServiceUnavailableError
from ..models.base import utc_now
from ..utils.responses import success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
async def health_check():
    """Basic liveness check"""
    return success_response({
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": utc_now().isoformat(),
    })

@router.get("/db")
async def database_health():
    """Database connectivity check; 503 when the database is unreachable"""
    if not await health_check_db():
        raise ServiceUnavailableError("Database is unreachable")
    return success_response({"status": "healthy", "database": "connected"})
