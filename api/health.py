"""
Health check module for the HEXROUTE API.

The only hard dependency of the service is the land mask: without it no
route can be computed. The H3 binding is probed as well since every
routing operation goes through it.
"""
import logging
import time
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from dataclasses import dataclass

import h3

from hexroute import __version__
from hexroute.data.land_mask import probe_cells

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""
    name: str
    status: HealthStatus
    latency_ms: Optional[float] = None
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def check_land_mask_health() -> ComponentHealth:
    """
    Check that a land mask is loaded and answers the calibration probes.

    Returns:
        ComponentHealth with land mask status
    """
    from api.state import get_app_state

    state = get_app_state()
    status = state.health_check()["land_mask"]
    mask = state.land_mask

    if mask is None:
        return ComponentHealth(
            name="land_mask",
            status=HealthStatus.UNHEALTHY,
            message=status.get("error") or "Land mask not loaded",
            details=status,
        )

    start = time.perf_counter()
    interior, ocean = probe_cells(mask.resolution if mask.resolution is not None else 5)
    interior_hit = interior in mask
    ocean_hit = ocean in mask
    latency_ms = (time.perf_counter() - start) * 1000

    details = {**status, "interior_probe_hit": interior_hit, "ocean_probe_hit": ocean_hit}
    if interior_hit == ocean_hit:
        return ComponentHealth(
            name="land_mask",
            status=HealthStatus.DEGRADED,
            latency_ms=round(latency_ms, 2),
            message="Calibration probes ambiguous",
            details=details,
        )
    return ComponentHealth(
        name="land_mask",
        status=HealthStatus.HEALTHY,
        latency_ms=round(latency_ms, 2),
        message=f"{mask.kind} from {mask.source}",
        details=details,
    )


def check_grid_health() -> ComponentHealth:
    """Check the H3 binding answers a cell lookup."""
    try:
        h3.latlng_to_cell(0.0, 0.0, 5)
    except h3.H3BaseException as e:
        logger.error(f"H3 health check failed: {e}")
        return ComponentHealth(
            name="h3",
            status=HealthStatus.UNHEALTHY,
            message=f"Lookup failed: {type(e).__name__}",
        )
    return ComponentHealth(
        name="h3",
        status=HealthStatus.HEALTHY,
        message=f"h3 {h3.__version__}",
    )


async def perform_full_health_check() -> Dict[str, Any]:
    """
    Perform health check of all components.

    Returns:
        Dict with overall status and component details
    """
    start = time.perf_counter()

    components = [check_land_mask_health(), check_grid_health()]

    # Determine overall status
    unhealthy_count = sum(1 for c in components if c.status == HealthStatus.UNHEALTHY)
    degraded_count = sum(1 for c in components if c.status == HealthStatus.DEGRADED)

    if unhealthy_count > 0:
        overall_status = HealthStatus.UNHEALTHY
    elif degraded_count > 0:
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    total_time_ms = (time.perf_counter() - start) * 1000

    return {
        "status": overall_status.value,
        "timestamp": _now_iso(),
        "version": __version__,
        "check_duration_ms": round(total_time_ms, 2),
        "components": {
            c.name: {
                "status": c.status.value,
                "latency_ms": c.latency_ms,
                "message": c.message,
                **({"details": c.details} if c.details else {}),
            }
            for c in components
        },
    }


async def perform_liveness_check() -> Dict[str, Any]:
    """
    Simple liveness check.

    Returns:
        Dict with basic status
    """
    return {
        "status": "alive",
        "timestamp": _now_iso(),
    }


async def perform_readiness_check() -> Dict[str, Any]:
    """
    Readiness check: the service can route once a land mask is loaded.

    Returns:
        Dict with readiness status
    """
    mask_health = check_land_mask_health()
    is_ready = mask_health.status != HealthStatus.UNHEALTHY

    return {
        "status": "ready" if is_ready else "not_ready",
        "timestamp": _now_iso(),
        "land_mask": mask_health.status.value,
    }
