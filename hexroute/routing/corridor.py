"""
Corridor builder for one routing leg.

The corridor is the bounded universe of cells a fine search may visit.
Cells are enumerated either by scanning the padded bounding box of the
leg in fixed angular steps, or by sampling the great circle between the
endpoints with perpendicular offsets. Only unblocked cells are kept, and
the set is then grown by k neighbour rings: sparse samples at large step
sizes otherwise leave holes that disconnect the corridor graph.
"""

import logging
import math
from typing import FrozenSet, Iterator

from .geo import Point, destination, bearing_deg, great_circle_samples, haversine_m
from .land_oracle import LandOracle

logger = logging.getLogger(__name__)

METERS_PER_DEG = 111_320.0
MAX_SCAN_POINTS = 250_000


def _bbox_points(a: Point, b: Point, pad_deg: float, step_deg: float) -> Iterator[Point]:
    """Scan the padded bounding box of ``a``-``b`` on a regular lat/lng lattice."""
    lat_min = max(min(a[1], b[1]) - pad_deg, -85)
    lat_max = min(max(a[1], b[1]) + pad_deg, 85)
    lng_min = min(a[0], b[0]) - pad_deg
    lng_max = max(a[0], b[0]) + pad_deg

    # Handle antimeridian crossing
    if lng_max - lng_min > 180:
        lng_min, lng_max = -180, 180

    n_lat = (lat_max - lat_min) / step_deg + 1
    n_lng = (lng_max - lng_min) / step_deg + 1
    if n_lat * n_lng > MAX_SCAN_POINTS:
        coarser = step_deg * math.sqrt(n_lat * n_lng / MAX_SCAN_POINTS)
        logger.info(f"Corridor scan step {step_deg:.3f} deg too fine, using {coarser:.3f} deg")
        step_deg = coarser

    lat = lat_min
    while lat <= lat_max:
        lng = lng_min
        while lng <= lng_max:
            yield (((lng + 180.0) % 360.0) - 180.0, lat)
            lng += step_deg
        lat += step_deg


def _great_circle_points(a: Point, b: Point, pad_deg: float, step_deg: float) -> Iterator[Point]:
    """Sample the great circle and step sideways up to ``pad_deg`` on both sides."""
    step_m = step_deg * METERS_PER_DEG
    pad_m = pad_deg * METERS_PER_DEG
    n = max(1, int(math.ceil(haversine_m(a, b) / step_m)))
    offsets = int(math.floor(pad_m / step_m))

    for lng, lat in great_circle_samples(a, b, [i / n for i in range(n + 1)]):
        p = (float(lng), float(lat))
        yield p
        brg = bearing_deg(p, b) if haversine_m(p, b) > 1.0 else bearing_deg(a, p)
        for j in range(1, offsets + 1):
            yield destination(p, j * step_m, brg + 90.0)
            yield destination(p, j * step_m, brg - 90.0)


def build_corridor(
    oracle: LandOracle,
    a: Point,
    b: Point,
    pad_deg: float,
    step_deg: float,
    pad_rings: int = 1,
    method: str = "bbox",
) -> FrozenSet[str]:
    """
    Unblocked cells between ``a`` and ``b`` at the oracle's resolution.

    Args:
        oracle: land oracle (fixes resolution and dilation)
        a, b: leg endpoints
        pad_deg: margin around the leg in degrees
        step_deg: sampling step in degrees
        pad_rings: neighbour rings added around every kept cell
        method: "bbox" or "great_circle"

    Returns:
        Frozen set of cell ids
    """
    if method == "bbox":
        points = _bbox_points(a, b, pad_deg, step_deg)
    elif method == "great_circle":
        points = _great_circle_points(a, b, pad_deg, step_deg)
    else:
        raise ValueError(f"Unknown corridor method: {method}")

    seeds = set()
    for p in points:
        oracle.budget.tick()
        seeds.add(oracle.cell_of(p))
    seeds.add(oracle.cell_of(a))
    seeds.add(oracle.cell_of(b))

    cells = {c for c in seeds if not oracle.is_blocked(c)}
    if pad_rings > 0:
        padded = set(cells)
        for cell in cells:
            oracle.budget.tick()
            for n in oracle.grid.disk(cell, pad_rings):
                if n not in padded and not oracle.is_blocked(n):
                    padded.add(n)
        cells = padded

    logger.debug(
        f"Corridor ({method}, pad {pad_deg} deg, +{pad_rings} rings): "
        f"{len(cells)} unblocked cells from {len(seeds)} samples"
    )
    return frozenset(cells)
