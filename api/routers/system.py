"""
System / health API router.

Handles the root endpoint, health checks and land mask status.
"""

import logging

from fastapi import APIRouter, HTTPException

from api.middleware import get_request_id
from hexroute import __version__

router = APIRouter(tags=["System"])

logger = logging.getLogger(__name__)


@router.get("/")
async def root():
    """
    API root endpoint.

    Returns basic API information and available endpoints.
    """
    return {
        "name": "HEXROUTE API",
        "version": __version__,
        "status": "operational",
        "docs": "/api/docs",
        "endpoints": {
            "health": "/api/health",
            "route": "/api/route",
        },
    }


@router.get("/api/health")
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Returns:
        - status: Overall health status (healthy/degraded/unhealthy)
        - timestamp: Current UTC timestamp
        - version: API version
        - components: Individual component health status
    """
    from api.health import perform_full_health_check
    result = await perform_full_health_check()
    result["request_id"] = get_request_id()
    return result


@router.get("/api/health/live")
async def liveness_check():
    """Liveness probe: the process is up."""
    from api.health import perform_liveness_check
    return await perform_liveness_check()


@router.get("/api/health/ready")
async def readiness_check():
    """
    Readiness probe: a land mask is loaded and routes can be served.
    """
    from api.health import perform_readiness_check
    result = await perform_readiness_check()

    # Return 503 if not ready
    if result.get("status") != "ready":
        raise HTTPException(status_code=503, detail="Service not ready")

    return result
