"""
Water routing API router.

Computes water-only routes through ordered waypoints. The search runs on
a worker thread under a deadline so the event loop keeps serving other
requests while a route is being planned.
"""

import logging

from fastapi import APIRouter, HTTPException

from api.config import settings
from api.schemas import RouteRequest, RouteResponse
from api.state import get_app_state
from hexroute.routing import (
    InvalidInput,
    MaskNotReady,
    NoPathFound,
    RouteOptions,
    RouteTimeout,
    plan_route_async,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["routing"])


@router.post("/route", response_model=RouteResponse)
async def compute_route(request: RouteRequest):
    """
    Compute a water-only route through the given waypoints.

    Waypoints on land are snapped to the nearest water and joined to the
    route by a short dock leg. Returns a GeoJSON LineString feature with
    the tier that solved each leg.

    Errors:
    - 400: malformed waypoints or options
    - 422: no water route exists for some leg
    - 503: land mask not loaded
    - 504: computation exceeded its deadline
    """
    if len(request.waypoints) > settings.max_waypoints:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_waypoints} waypoints allowed",
        )

    state = get_app_state()
    mask = state.land_mask
    if mask is None:
        raise HTTPException(status_code=503, detail="Land mask not loaded")

    overrides = request.options.model_dump(exclude_none=True) if request.options else {}
    overrides["timeout_s"] = min(
        overrides.get("timeout_s", settings.route_timeout_s), settings.route_timeout_s
    )

    try:
        options = RouteOptions.from_settings(**overrides).validate()
        route = await plan_route_async(
            [wp.as_point() for wp in request.waypoints],
            mask,
            grid=state.grid,
            options=options,
        )
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NoPathFound as e:
        logger.info(f"No route: {e}")
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(e),
                "leg_index": e.leg_index,
                "tiers_tried": e.tiers_tried,
            },
        )
    except MaskNotReady as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RouteTimeout as e:
        logger.warning(f"Route request timed out: {e}")
        raise HTTPException(status_code=504, detail=str(e))

    return route.to_geojson()
