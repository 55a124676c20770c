"""
HEXROUTE API Pydantic schemas.

Re-exports all schema classes:
    from api.schemas import Position, RouteRequest, ...
"""

# Common
from .common import Position, LineStringGeometry  # noqa: F401

# Routing
from .route import (  # noqa: F401
    RouteOptionsModel,
    RouteRequest,
    RouteLegModel,
    RouteProperties,
    RouteResponse,
)
