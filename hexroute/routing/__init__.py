"""Route planning tiers for water-only routing over a hexagonal grid."""

from .errors import (
    RoutingError,
    MaskNotReady,
    InvalidInput,
    NoPathFound,
    NoWaterNodeNear,
    SearchBudgetExceeded,
    RouteTimeout,
)
from .hexgrid import H3Grid, HexGrid
from .land_oracle import LandOracle, Mode
from .planner import Route, RouteOptions, plan_route, plan_route_async

__all__ = [
    "RoutingError",
    "MaskNotReady",
    "InvalidInput",
    "NoPathFound",
    "NoWaterNodeNear",
    "SearchBudgetExceeded",
    "RouteTimeout",
    "H3Grid",
    "HexGrid",
    "LandOracle",
    "Mode",
    "Route",
    "RouteOptions",
    "plan_route",
    "plan_route_async",
]
