"""
Recursive detour fallback.

Last-resort strategy that always terminates. Around the first blocked
sample of the direct chord, search a fan of bearings perpendicular to
the leg at geometrically growing radii for a via-point reachable from
both ends. When no via-point exists at any radius, split the leg at its
midpoint and solve both halves, down to a fixed recursion depth.
"""

import logging
from typing import Iterable, List, Optional

from .collision import chord_blocked, first_blocked_sample
from .geo import Point, angle_fan, bearing_deg, destination, midpoint, norm360
from .land_oracle import LandOracle
from .options import RouteOptions

logger = logging.getLogger(__name__)


def _usable_via(oracle: LandOracle, a: Point, b: Point, via: Point, spacing_m: float) -> bool:
    if oracle.is_point_blocked(via):
        return False
    if chord_blocked(oracle, a, via, spacing_m):
        return False
    return not chord_blocked(oracle, via, b, spacing_m)


def _unique_bearings(bearings: Iterable[float], seen: set) -> List[float]:
    out = []
    for brg in bearings:
        key = round(norm360(brg), 6)
        if key in seen:
            continue
        seen.add(key)
        out.append(key)
    return out


def find_via(
    oracle: LandOracle,
    a: Point,
    b: Point,
    opts: RouteOptions,
    spacing_m: Optional[float] = None,
) -> Optional[Point]:
    """
    Via-point C with C unblocked and both A->C and C->B clear, or None.

    At each radius the perpendicular fan (biased to +/-90 deg off the leg
    bearing) is tried first, then a full sweep around the ring. After the
    largest radius, a left/right two-hop guess at 1.5x the start radius.
    """
    spacing_m = spacing_m or opts.sample_meters
    hit = first_blocked_sample(oracle, a, b, spacing_m)
    if hit is None:
        hit = midpoint(a, b)

    base = bearing_deg(a, b)
    preferred = [base + d for d in angle_fan(90.0, opts.detour_ang_step) + angle_fan(-90.0, opts.detour_ang_step)]

    radius_m = opts.detour_start_km * 1000.0
    end_m = opts.detour_end_km * 1000.0
    while radius_m <= end_m:
        oracle.budget.tick()
        seen: set = set()
        sweep = []
        ang = 0.0
        while ang < 360.0:
            sweep.append(ang)
            ang += opts.detour_ang_step

        for brg in _unique_bearings(preferred, seen) + _unique_bearings(sweep, seen):
            via = destination(hit, radius_m, brg)
            if _usable_via(oracle, a, b, via, spacing_m):
                logger.debug(f"Detour via found at {radius_m / 1000:.1f} km, bearing {brg:.0f}")
                return via
        radius_m *= opts.detour_grow

    guess_m = opts.detour_start_km * 1500.0
    for brg in (base + 90.0, base - 90.0):
        via = destination(hit, guess_m, brg)
        if _usable_via(oracle, a, b, via, spacing_m):
            return via

    return None


def detour_route(
    oracle: LandOracle,
    a: Point,
    b: Point,
    opts: RouteOptions,
    depth: int = 0,
) -> Optional[List[Point]]:
    """
    Detour tier. Returns [A, ..., B] or None once ``detour_max_depth`` is exhausted.

    If either half of a midpoint split fails, the whole call fails.
    """
    oracle.budget.tick()
    if not chord_blocked(oracle, a, b, opts.sample_meters):
        return [a, b]

    via = find_via(oracle, a, b, opts)
    if via is not None:
        return [a, via, b]

    if depth >= opts.detour_max_depth:
        logger.debug(f"Detour: depth {depth} exhausted")
        return None

    mid = midpoint(a, b)
    left = detour_route(oracle, a, mid, opts, depth + 1)
    if left is None:
        return None
    right = detour_route(oracle, mid, b, opts, depth + 1)
    if right is None:
        return None
    return left + right[1:]
