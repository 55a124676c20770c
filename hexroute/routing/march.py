"""
Marching tier.

Greedy stepping toward the target: long steps in open water, short ones
near the coast. A blocked step is shortened by binary search; when even
a short step is impossible a detour via-point is taken instead.
"""

import logging
from typing import List, Optional

from .collision import chord_blocked
from .detour import find_via
from .geo import Point, bearing_deg, destination, haversine_m
from .land_oracle import LandOracle
from .options import RouteOptions

logger = logging.getLogger(__name__)

COAST_PROBE_BEARINGS = (0.0, 60.0, 120.0, 180.0, 240.0, 300.0)
TIGHTEN_ITERATIONS = 14
MIN_PROGRESS_M = 300.0


def is_near_coast(oracle: LandOracle, p: Point, radius_m: float) -> bool:
    """Any of six probes at ``radius_m`` around ``p`` lands in a blocked cell."""
    return any(
        oracle.is_point_blocked(destination(p, radius_m, brg))
        for brg in COAST_PROBE_BEARINGS
    )


def straight_tighten(
    oracle: LandOracle,
    cur: Point,
    bearing: float,
    step_m: float,
    spacing_m: float,
) -> Optional[Point]:
    """Farthest clear point along ``bearing`` within ``step_m``, by binary search."""
    lo, hi = 0.0, step_m
    ok = None
    for _ in range(TIGHTEN_ITERATIONS):
        oracle.budget.tick()
        mid = (lo + hi) / 2
        test = destination(cur, mid, bearing)
        if chord_blocked(oracle, cur, test, spacing_m):
            hi = mid
        else:
            ok, lo = test, mid
        if hi - lo < max(MIN_PROGRESS_M, step_m / 250):
            break
    if ok is None or haversine_m(cur, ok) < MIN_PROGRESS_M:
        return None
    return ok


def march_route(oracle: LandOracle, a: Point, b: Point, opts: RouteOptions) -> Optional[List[Point]]:
    """March from ``a`` to ``b``; None if the final hop into ``b`` is not clear."""
    out = [a]
    cur = a
    steps = 0

    while haversine_m(cur, b) > opts.march_step_near_m and steps < opts.march_max_steps:
        steps += 1
        oracle.budget.tick()

        to_b = bearing_deg(cur, b)
        near = is_near_coast(oracle, cur, opts.march_coast_near_m)
        step_m = opts.march_step_near_m if near else opts.march_step_far_m
        step_m = min(step_m, haversine_m(cur, b))
        spacing_m = opts.sample_meters if near else max(opts.sample_meters * 3, 3000.0)

        nxt = destination(cur, step_m, to_b)
        if not chord_blocked(oracle, cur, nxt, spacing_m):
            out.append(nxt)
            cur = nxt
            continue

        ok = straight_tighten(oracle, cur, to_b, step_m, spacing_m)
        if ok is not None:
            out.append(ok)
            cur = ok
            continue

        via = find_via(oracle, cur, b, opts, spacing_m)
        if via is not None:
            out.append(via)
            cur = via
            continue

        logger.debug(f"March: stuck after {steps} steps")
        break

    if chord_blocked(oracle, cur, b, opts.sample_meters):
        return None
    out.append(b)
    return out
