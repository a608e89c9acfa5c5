"""
Health check endpoints.

Provides service health information for monitoring.
"""

from fastapi import APIRouter
import structlog

from belief_chat.core.config import settings
from belief_chat.persistence.json_store import check_storage_health

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Service health status including data directory readiness.
    """
    storage_health = check_storage_health(settings.data_dir)

    overall_status = "healthy" if storage_health["status"] == "healthy" else "unhealthy"

    return {
        "status": overall_status,
        "version": "0.1.0",
        "debug": settings.debug,
        "components": {"storage": storage_health},
    }


@router.get("/health/live")
async def liveness():
    """
    Liveness probe.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}
