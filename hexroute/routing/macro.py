"""
Macro skeleton planner.

When fine search fails or is too expensive, a beam search at a coarser
resolution produces a low-detail skeleton of waypoints. Each consecutive
skeleton pair is then refined by a fresh fine search.

Beam scoring per candidate cell (metres):
    distance to goal
  + large penalty if the chord from the expanding cell crosses land
  + turn penalty relative to the incoming bearing (discourages zig-zag)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .astar import fine_route
from .collision import chord_blocked
from .errors import SearchBudgetExceeded
from .geo import Point, bearing_deg, haversine_m, turn_angle
from .land_oracle import LandOracle
from .options import RouteOptions
from .smoothing import dedupe, smooth_path

logger = logging.getLogger(__name__)


@dataclass
class BeamEntry:
    """One frontier cell with the path that reached it."""
    score: float
    cell: str
    path: Tuple[str, ...]
    bearing_in: Optional[float] = None


def beam_search(
    macro: LandOracle,
    start: str,
    goal: str,
    opts: RouteOptions,
) -> Optional[List[str]]:
    """
    Bounded-width frontier search at the macro oracle's resolution.

    Returns the macro cell path from ``start`` to a cell within
    ``beam_goal_steps`` hex-steps of ``goal``, or None on a dead end.

    Raises:
        SearchBudgetExceeded: ``beam_max_steps`` reached
    """
    grid = macro.grid
    goal_center = grid.center(goal)
    edge_m = grid.edge_length_m(macro.resolution)
    spacing_m = max(opts.sample_meters, edge_m / 3)
    turn_scale = opts.beam_turn_weight * edge_m

    frontier = [BeamEntry(score=0.0, cell=start, path=(start,))]
    visited = {start}

    for step in range(opts.beam_max_steps):
        macro.budget.tick()

        for entry in frontier:
            if grid.approx_distance(entry.cell, goal) <= opts.beam_goal_steps:
                logger.debug(f"Beam reached goal after {step} steps ({len(entry.path)} cells)")
                return list(entry.path)

        candidates = {}
        for entry in frontier:
            cur_center = grid.center(entry.cell)
            for n in grid.neighbors(entry.cell):
                if n in visited or macro.is_blocked(n):
                    continue
                n_center = grid.center(n)
                score = haversine_m(n_center, goal_center)
                if chord_blocked(macro, cur_center, n_center, spacing_m):
                    score += opts.beam_land_penalty_m
                brg = bearing_deg(cur_center, n_center)
                if entry.bearing_in is not None:
                    score += turn_scale * turn_angle(entry.bearing_in, brg) / 90.0

                best = candidates.get(n)
                if best is None or score < best.score:
                    candidates[n] = BeamEntry(
                        score=score, cell=n, path=entry.path + (n,), bearing_in=brg,
                    )

        if not candidates:
            logger.debug(f"Beam dead end after {step} steps")
            return None

        frontier = sorted(candidates.values(), key=lambda e: (e.score, e.cell))[:opts.beam_width]
        visited.update(e.cell for e in frontier)

    raise SearchBudgetExceeded("macro", opts.beam_max_steps)


def macro_skeleton(oracle: LandOracle, a: Point, b: Point, opts: RouteOptions) -> Optional[List[Point]]:
    """Coarse ordered waypoints from ``a`` to ``b`` (both included), or None."""
    macro = oracle.at_resolution(opts.macro_res)
    grid = macro.grid

    start = macro.cell_of(a)
    if macro.is_blocked(start):
        start = macro.nearest_unblocked_cell(a, max_rings=3)
        if start is None:
            logger.debug("Macro: no unblocked coarse cell near leg start")
            return None
    goal = macro.cell_of(b)

    cells = beam_search(macro, start, goal, opts)
    if cells is None:
        return None

    centers = [grid.center(c) for c in cells]
    if cells[0] == macro.cell_of(a):
        centers = centers[1:]
    skeleton = dedupe([a] + centers + [b], opts.point_eps_deg)

    spacing_m = max(opts.sample_meters, grid.edge_length_m(macro.resolution) / 3)
    skeleton = smooth_path(macro, skeleton, spacing_m)
    logger.info(f"Macro skeleton: {len(skeleton)} points from {len(cells)} r{macro.resolution} cells")
    return skeleton


def _water_anchor(oracle: LandOracle, p: Point, opts: RouteOptions) -> Optional[Point]:
    """``p`` itself if its fine cell is unblocked, else the nearest unblocked cell centre."""
    if not oracle.is_point_blocked(p):
        return p
    cell = oracle.nearest_unblocked_cell(p, max_rings=opts.snap_max_rings)
    return oracle.grid.center(cell) if cell is not None else None


def refine_skeleton(
    oracle: LandOracle,
    skeleton: List[Point],
    opts: RouteOptions,
) -> Optional[List[Point]]:
    """Fine route between each consecutive skeleton pair, joined end to end."""
    anchors = [skeleton[0]]
    for p in skeleton[1:-1]:
        anchor = _water_anchor(oracle, p, opts)
        if anchor is not None:
            anchors.append(anchor)
    anchors.append(skeleton[-1])
    anchors = dedupe(anchors, opts.point_eps_deg)

    out: List[Point] = []
    for i in range(len(anchors) - 1):
        seg = fine_route(oracle, anchors[i], anchors[i + 1], opts, allow_unconstrained=False)
        if seg is None or len(seg) < 2:
            logger.info(f"Macro: refinement of skeleton pair {i} failed")
            return None
        out.extend(seg if not out else seg[1:])
    return out


def macro_route(oracle: LandOracle, a: Point, b: Point, opts: RouteOptions) -> Optional[List[Point]]:
    """Macro tier: coarse skeleton, then per-pair fine refinement."""
    skeleton = macro_skeleton(oracle, a, b, opts)
    if skeleton is None:
        return None
    return refine_skeleton(oracle, skeleton, opts)
