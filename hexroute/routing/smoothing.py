"""
Path smoothing and validation.

Grid paths zig-zag between cell centres. Line-of-sight simplification
keeps an anchor vertex and skips every following vertex still visible
from it over water; the simplified path never introduces a land crossing.
"""

from typing import List, Sequence

from .collision import chord_blocked
from .geo import Point, points_close
from .land_oracle import LandOracle


def dedupe(points: Sequence[Point], eps_deg: float = 1e-9) -> List[Point]:
    """Drop consecutive points equal within ``eps_deg``."""
    out: List[Point] = []
    for p in points:
        if out and points_close(out[-1], p, eps_deg):
            continue
        out.append(p)
    return out


def smooth_path(oracle: LandOracle, points: Sequence[Point], spacing_m: float) -> List[Point]:
    """
    Line-of-sight simplification.

    Assumes every consecutive pair of ``points`` already has a clear chord.
    """
    if len(points) <= 2:
        return list(points)

    out = [points[0]]
    anchor = points[0]
    prev = points[1]
    for p in points[2:]:
        if chord_blocked(oracle, anchor, p, spacing_m):
            out.append(prev)
            anchor = prev
        prev = p
    out.append(points[-1])
    return out


def path_is_clear(oracle: LandOracle, points: Sequence[Point], spacing_m: float) -> bool:
    """True when every segment of ``points`` has a clear chord."""
    return all(
        not chord_blocked(oracle, points[i], points[i + 1], spacing_m)
        for i in range(len(points) - 1)
    )
