"""
Endpoint snapping.

A waypoint clicked on land is moved to open water:
(a) step outward along a hint bearing (toward the neighbouring waypoint);
(b) otherwise spiral ring by ring to the nearest unblocked cell, walk
    toward its centre, binary-search the shoreline crossing and move a
    safety distance further into water.

When the waypoint was genuinely on land a dock leg joins the literal
click location to the snapped point, so the user's input stays anchored.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import NoWaterNodeNear
from .geo import Point, bearing_deg, destination, haversine_m
from .land_oracle import LandOracle
from .options import RouteOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapResult:
    """A waypoint resolved to water."""
    point: Point
    original: Point
    dock_leg: Optional[Tuple[Point, Point]] = None
    method: str = "none"  # "none", "hint" or "spiral"
    shore: Optional[Point] = None  # first water point found by the spiral's binary search

    @property
    def snapped(self) -> bool:
        return self.dock_leg is not None


def snap_endpoint(
    oracle: LandOracle,
    point: Point,
    hint_bearing: Optional[float],
    opts: RouteOptions,
) -> SnapResult:
    """
    Resolve ``point`` to a point in an unblocked cell.

    Raises:
        NoWaterNodeNear: no unblocked cell within ``snap_max_rings``
    """
    if not oracle.is_point_blocked(point):
        return SnapResult(point=point, original=point)

    if hint_bearing is not None and opts.snap_step_m > 0:
        dist = opts.snap_step_m
        while dist <= opts.snap_max_m:
            oracle.budget.tick()
            p = destination(point, dist, hint_bearing)
            if not oracle.is_point_blocked(p):
                logger.info(f"Snapped waypoint {point} {dist:.0f} m along hint bearing")
                return SnapResult(point=p, original=point, dock_leg=(point, p), method="hint")
            dist += opts.snap_step_m
        logger.warning(
            f"Waypoint {point}: no water within {opts.snap_max_m:.0f} m along hint bearing, "
            f"spiralling outward"
        )

    cell = oracle.nearest_unblocked_cell(point, max_rings=opts.snap_max_rings)
    if cell is None:
        raise NoWaterNodeNear(
            f"No water cell within {opts.snap_max_rings} rings of waypoint {point}"
        )

    target = oracle.grid.center(cell)
    brg = bearing_deg(point, target)
    lo, hi = 0.0, haversine_m(point, target)
    while hi - lo > opts.snap_tolerance_m:
        oracle.budget.tick()
        mid = (lo + hi) / 2
        if oracle.is_point_blocked(destination(point, mid, brg)):
            lo = mid
        else:
            hi = mid

    shore = destination(point, hi, brg)
    snapped = destination(point, hi + opts.snap_safety_m, brg)
    if oracle.is_point_blocked(snapped):
        snapped = shore if not oracle.is_point_blocked(shore) else target

    logger.info(f"Snapped waypoint {point} to {snapped} via cell {cell}")
    return SnapResult(
        point=snapped, original=point, dock_leg=(point, snapped), method="spiral", shore=shore,
    )
