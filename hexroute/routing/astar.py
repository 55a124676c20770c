"""
Fine-resolution A* over hex cells.

States are cells at the route's operating resolution. An edge joins a
cell to each immediate neighbour that is inside the active corridor,
unblocked, and reachable by a clear chord between the two cell centres
(a hex edge between two water cells can still graze a thin land spit).

Edge cost and heuristic are both great-circle distance between centres,
so the heuristic is admissible and consistent.
"""

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from .collision import chord_blocked
from .corridor import build_corridor
from .errors import SearchBudgetExceeded
from .geo import Point, haversine_m
from .land_oracle import LandOracle
from .options import RouteOptions
from .smoothing import dedupe

logger = logging.getLogger(__name__)


@dataclass(order=True)
class SearchNode:
    """Node in A* search priority queue."""
    f_score: float  # g + h (total estimated cost)
    seq: int        # insertion order, breaks f ties deterministically
    cell: str = field(compare=False)
    g_score: float = field(compare=False)  # Cost from start
    parent: Optional['SearchNode'] = field(compare=False, default=None)


def astar_cells(
    oracle: LandOracle,
    start: str,
    goal: str,
    spacing_m: float,
    corridor: Optional[FrozenSet[str]] = None,
    max_expansions: int = 100_000,
) -> Optional[List[str]]:
    """
    A* search from ``start`` to ``goal`` cell.

    Args:
        oracle: land oracle at the search resolution
        start, goal: cells at the oracle's resolution
        spacing_m: chord sample spacing for edge verification
        corridor: allowed cells; None searches the whole grid
        max_expansions: hard cap on expanded cells

    Returns:
        Cell path from start to goal, or None when the reachable space
        is exhausted without meeting the goal.

    Raises:
        SearchBudgetExceeded: the expansion cap was hit
    """
    if oracle.is_blocked(start) or oracle.is_blocked(goal):
        return None

    grid = oracle.grid
    goal_center = grid.center(goal)

    def heuristic(cell: str) -> float:
        return haversine_m(grid.center(cell), goal_center)

    def allowed(cell: str) -> bool:
        if corridor is not None and cell not in corridor and cell != goal:
            return False
        return not oracle.is_blocked(cell)

    seq = 0
    open_set: List[SearchNode] = []
    heapq.heappush(open_set, SearchNode(
        f_score=heuristic(start), seq=seq, cell=start, g_score=0.0, parent=None,
    ))

    # Best g_score for each cell
    g_scores: Dict[str, float] = {start: 0.0}

    # Cells already fully explored
    closed_set: Set[str] = set()

    expanded = 0
    while open_set:
        current = heapq.heappop(open_set)

        # Skip if already explored with better score
        if current.cell in closed_set:
            continue

        if expanded >= max_expansions:
            logger.debug(f"A*: cap of {max_expansions} expansions reached")
            raise SearchBudgetExceeded("fine", max_expansions)

        closed_set.add(current.cell)
        expanded += 1
        oracle.budget.tick()

        if current.cell == goal:
            path = []
            node = current
            while node is not None:
                path.append(node.cell)
                node = node.parent
            path.reverse()
            logger.debug(f"A*: path of {len(path)} cells after {expanded} expansions")
            return path

        cur_center = grid.center(current.cell)
        for neighbor in grid.neighbors(current.cell):
            if neighbor in closed_set or not allowed(neighbor):
                continue

            nb_center = grid.center(neighbor)
            tentative_g = current.g_score + haversine_m(cur_center, nb_center)
            if tentative_g >= g_scores.get(neighbor, float('inf')):
                continue

            if chord_blocked(oracle, cur_center, nb_center, spacing_m):
                continue

            g_scores[neighbor] = tentative_g
            seq += 1
            heapq.heappush(open_set, SearchNode(
                f_score=tentative_g + heuristic(neighbor),
                seq=seq,
                cell=neighbor,
                g_score=tentative_g,
                parent=current,
            ))

    logger.debug(f"A*: search space exhausted after {expanded} expansions")
    return None


def cells_to_points(oracle: LandOracle, a: Point, b: Point, cells: List[str], eps_deg: float) -> List[Point]:
    """Cell path -> points, with the literal leg endpoints at both ends."""
    centers = [oracle.grid.center(c) for c in cells]
    return dedupe([a] + centers + [b], eps_deg)


def fine_route(
    oracle: LandOracle,
    a: Point,
    b: Point,
    opts: RouteOptions,
    allow_unconstrained: bool = True,
) -> Optional[List[Point]]:
    """
    Fine tier: A* with successively wider corridors.

    Attempts, each a clean-slate search:
    1. corridor padded by ``corridor_pad_rings`` rings
    2. corridor three times wider in both degrees and rings
    3. unconstrained search over the whole grid, skipped when
       ``allow_unconstrained`` is False
    """
    start = oracle.cell_of(a)
    goal = oracle.cell_of(b)
    attempts = [
        (opts.pad_deg, opts.corridor_pad_rings),
        (opts.pad_deg * 3, max(1, opts.corridor_pad_rings) * 3),
    ]
    if allow_unconstrained:
        attempts.append(None)

    for attempt in attempts:
        if attempt is None:
            corridor = None
            label = "unconstrained"
        else:
            pad_deg, pad_rings = attempt
            corridor = build_corridor(
                oracle, a, b,
                pad_deg=pad_deg,
                step_deg=opts.corridor_step_deg,
                pad_rings=pad_rings,
                method=opts.corridor_method,
            )
            label = f"corridor pad={pad_deg:g} deg rings={pad_rings} ({len(corridor)} cells)"

        try:
            cells = astar_cells(
                oracle, start, goal,
                spacing_m=opts.sample_meters,
                corridor=corridor,
                max_expansions=opts.max_expansions,
            )
        except SearchBudgetExceeded as e:
            logger.info(f"Fine search [{label}]: {e}")
            continue

        if cells is not None:
            logger.debug(f"Fine search [{label}]: {len(cells)} cells")
            return cells_to_points(oracle, a, b, cells, opts.point_eps_deg)
        logger.debug(f"Fine search [{label}]: no path")

    return None
