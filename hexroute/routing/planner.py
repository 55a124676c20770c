"""
Multi-tier route planner.

Public entry point. For each consecutive waypoint pair (a leg):
1. Resolve both endpoints to water (snapping, with dock legs)
2. Try the tiers in order: direct -> fine A* -> macro skeleton -> detour
3. Validate, smooth and densify the first tier result that is clear
4. Concatenate legs, dropping the duplicate joint points

If any leg exhausts every tier the whole request fails with
``NoPathFound``; partial routes are never returned.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Container, Dict, List, Optional, Sequence, Tuple

from .astar import fine_route
from .budget import RouteBudget
from .collision import chord_blocked
from .detour import detour_route
from .errors import (
    InvalidInput,
    MaskNotReady,
    NoPathFound,
    NoWaterNodeNear,
    RouteTimeout,
    SearchBudgetExceeded,
)
from .geo import Point, bearing_deg, densify, normalize_lng, path_length_m, points_close
from .hexgrid import H3Grid, HexGrid
from .land_oracle import LandOracle
from .macro import macro_route
from .march import march_route
from .options import RouteOptions
from .smoothing import dedupe, path_is_clear, smooth_path
from .snapping import SnapResult, snap_endpoint

logger = logging.getLogger(__name__)

__all__ = [
    "LegResult",
    "Route",
    "RouteOptions",
    "RoutePlanner",
    "parse_waypoints",
    "plan_route",
    "plan_route_async",
]


@dataclass(frozen=True)
class LegResult:
    """Route between two consecutive waypoints."""
    index: int
    tier: str
    points: Tuple[Point, ...]
    start_snap: SnapResult
    end_snap: SnapResult

    @property
    def distance_m(self) -> float:
        return path_length_m(self.points)


@dataclass(frozen=True)
class Route:
    """A complete water route through every waypoint."""
    coordinates: Tuple[Point, ...]
    legs: Tuple[LegResult, ...]

    @property
    def distance_m(self) -> float:
        return path_length_m(self.coordinates)

    @property
    def tiers(self) -> List[str]:
        return [leg.tier for leg in self.legs]

    def to_geojson(self) -> Dict[str, Any]:
        """GeoJSON LineString feature, tagged so map layers can tell it apart."""
        return {
            "type": "Feature",
            "properties": {
                "kind": "autoroute",
                "distance_m": round(self.distance_m, 1),
                "legs": [
                    {
                        "index": leg.index,
                        "tier": leg.tier,
                        "points": len(leg.points),
                        "snapped_start": leg.start_snap.snapped,
                        "snapped_end": leg.end_snap.snapped,
                    }
                    for leg in self.legs
                ],
            },
            "geometry": {
                "type": "LineString",
                "coordinates": [[lng, lat] for lng, lat in self.coordinates],
            },
        }


def _coerce_point(raw: Any, index: int) -> Point:
    if isinstance(raw, dict):
        lng = raw.get("lng", raw.get("lon"))
        lat = raw.get("lat")
    else:
        try:
            lng, lat = raw
        except (TypeError, ValueError):
            raise InvalidInput(f"Waypoint {index} must be a [lng, lat] pair, got {raw!r}")
    try:
        lng, lat = float(lng), float(lat)
    except (TypeError, ValueError):
        raise InvalidInput(f"Waypoint {index} has non-numeric coordinates: {raw!r}")
    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise InvalidInput(f"Waypoint {index} has non-finite coordinates: {raw!r}")
    if not -90.0 <= lat <= 90.0:
        raise InvalidInput(f"Waypoint {index} latitude {lat} outside [-90, 90]")
    return (normalize_lng(lng), lat)


def parse_waypoints(waypoints: Sequence[Any], eps_deg: float = 1e-9) -> List[Point]:
    """
    Validate waypoints into (lng, lat) points.

    Accepts [lng, lat] pairs or {"lng"/"lon", "lat"} mappings. Consecutive
    duplicates are dropped; at least two distinct points must remain.
    """
    if waypoints is None or len(waypoints) < 2:
        raise InvalidInput("At least two waypoints are required")
    points = dedupe([_coerce_point(w, i) for i, w in enumerate(waypoints)], eps_deg)
    if len(points) < 2:
        raise InvalidInput("At least two distinct waypoints are required")
    return points


class RoutePlanner:
    """
    Plans one request against a read-only land mask.

    A planner owns its oracles and their memo tables: create one per
    request (``plan_route`` does) and let it go afterwards.
    """

    def __init__(
        self,
        mask: Optional[Container[str]],
        grid: Optional[HexGrid] = None,
        options: Optional[RouteOptions] = None,
        budget: Optional[RouteBudget] = None,
    ):
        self.mask = mask
        self.grid = grid or H3Grid()
        self.options = options or RouteOptions()
        self.budget = budget or RouteBudget(self.options.timeout_s, self.options.yield_every)
        self._tiers: Dict[str, Callable[[LandOracle, Point, Point], Optional[List[Point]]]] = {
            "direct": self._direct,
            "fine": lambda o, a, b: fine_route(o, a, b, self.options),
            "macro": lambda o, a, b: macro_route(o, a, b, self.options),
            "detour": lambda o, a, b: detour_route(o, a, b, self.options),
            "march": lambda o, a, b: march_route(o, a, b, self.options),
        }

    def _oracle(self) -> LandOracle:
        opts = self.options
        return LandOracle(
            mask=self.mask,
            grid=self.grid,
            resolution=opts.h3_res,
            dilate_k_rings=opts.dilate_k_rings,
            min_land_neighbors=opts.min_land_neighbors,
            land_overrides=opts.land_overrides,
            budget=self.budget,
        )

    def plan(self, waypoints: Sequence[Any]) -> Route:
        """
        Route through every waypoint in order.

        Raises:
            InvalidInput: malformed waypoints or options
            MaskNotReady: no land mask loaded
            NoPathFound: some leg exhausted every tier
            RouteTimeout: deadline passed or request cancelled
        """
        opts = self.options.validate()
        points = parse_waypoints(waypoints, opts.point_eps_deg)
        if self.mask is None:
            raise MaskNotReady()

        oracle = self._oracle()
        calibration = oracle.calibrate()

        try:
            return self._plan_with(oracle, points)
        except NoPathFound as e:
            if not (opts.retry_flipped_mode and calibration.ambiguous):
                raise
            flipped = oracle.mode.flipped()
            logger.warning(f"{e}; retrying with mask polarity flipped to {flipped.value}")
            return self._plan_with(oracle.with_mode(flipped), points)

    def _plan_with(self, oracle: LandOracle, points: List[Point]) -> Route:
        legs: List[LegResult] = []
        coords: List[Point] = []
        eps = self.options.point_eps_deg

        for i in range(len(points) - 1):
            leg = self._route_leg(oracle, i, points[i], points[i + 1])
            legs.append(leg)
            pts = list(leg.points)
            if coords and points_close(coords[-1], pts[0], eps):
                pts = pts[1:]
            coords.extend(pts)

        route = Route(coordinates=tuple(coords), legs=tuple(legs))
        logger.info(
            f"Route: {len(legs)} legs, {len(coords)} points, "
            f"{route.distance_m / 1852:.1f} nm, tiers={route.tiers}"
        )
        return route

    def _snap(self, oracle: LandOracle, index: int, point: Point, toward: Point) -> SnapResult:
        try:
            return snap_endpoint(oracle, point, bearing_deg(point, toward), self.options)
        except NoWaterNodeNear as e:
            raise NoWaterNodeNear(str(e), leg_index=index) from e

    def _direct(self, oracle: LandOracle, a: Point, b: Point) -> Optional[List[Point]]:
        if chord_blocked(oracle, a, b, self.options.sample_meters):
            return None
        return [a, b]

    def _route_leg(self, oracle: LandOracle, index: int, a: Point, b: Point) -> LegResult:
        opts = self.options
        start_snap = self._snap(oracle, index, a, b)
        end_snap = self._snap(oracle, index, b, a)
        sa, sb = start_snap.point, end_snap.point

        if points_close(sa, sb, opts.point_eps_deg):
            path = [sa, sb]
            tier = "direct"
        else:
            path, tier = self._run_tiers(oracle, index, sa, sb)

        path = densify(path, opts.densify_m)
        if start_snap.snapped:
            path = [a] + path
        if end_snap.snapped:
            path = path + [b]

        logger.info(f"Leg {index}: {tier} tier, {len(path)} points")
        return LegResult(
            index=index,
            tier=tier,
            points=tuple(path),
            start_snap=start_snap,
            end_snap=end_snap,
        )

    def _run_tiers(self, oracle: LandOracle, index: int, a: Point, b: Point) -> Tuple[List[Point], str]:
        opts = self.options
        tried: List[str] = []

        for tier in opts.tier_order:
            tried.append(tier)
            oracle.budget.check()
            try:
                path = self._tiers[tier](oracle, a, b)
            except SearchBudgetExceeded as e:
                logger.info(f"Leg {index}: {e}, falling through")
                continue

            if path is None or len(path) < 2:
                logger.info(f"Leg {index}: {tier} tier found no path")
                continue

            if tier != "direct":
                path = smooth_path(oracle, path, opts.sample_meters)
            if not path_is_clear(oracle, path, opts.sample_meters):
                logger.warning(f"Leg {index}: {tier} tier produced a path crossing land, discarded")
                continue
            return path, tier

        raise NoPathFound(
            f"No water route for leg {index} after tiers {tried}",
            leg_index=index,
            tiers_tried=tried,
        )


def plan_route(
    waypoints: Sequence[Any],
    mask: Optional[Container[str]],
    grid: Optional[HexGrid] = None,
    options: Optional[RouteOptions] = None,
    budget: Optional[RouteBudget] = None,
) -> Route:
    """Plan a water route through ``waypoints``. See ``RoutePlanner.plan``."""
    return RoutePlanner(mask, grid=grid, options=options, budget=budget).plan(waypoints)


async def plan_route_async(
    waypoints: Sequence[Any],
    mask: Optional[Container[str]],
    grid: Optional[HexGrid] = None,
    options: Optional[RouteOptions] = None,
) -> Route:
    """
    Plan on a worker thread so the event loop stays responsive.

    On timeout the worker is cancelled at its next checkpoint and
    ``RouteTimeout`` is raised to the caller.
    """
    opts = options or RouteOptions()
    budget = RouteBudget(opts.timeout_s, opts.yield_every)
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(plan_route, waypoints, mask, grid, opts, budget),
            timeout=opts.timeout_s,
        )
    except asyncio.TimeoutError:
        budget.cancel()
        raise RouteTimeout(f"Route computation exceeded {opts.timeout_s:.1f}s")
    except asyncio.CancelledError:
        budget.cancel()
        raise
