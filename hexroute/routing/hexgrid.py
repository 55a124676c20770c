"""
Hexagonal grid adapter.

The routing tiers only see the ``HexGrid`` interface: point -> cell at a
resolution, cell -> centre point, k-rings, and hex-step distance.
``H3Grid`` implements it on top of Uber's H3 (v4 API).
"""

import logging
import math
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import List, Optional

import h3

from .geo import Point, haversine_m

logger = logging.getLogger(__name__)


class HexGrid(ABC):
    """Cell <-> coordinate conversions and neighbourhoods of a hex tiling."""

    @abstractmethod
    def cell(self, point: Point, res: int) -> str:
        """Cell containing ``point`` at resolution ``res``."""

    @abstractmethod
    def center(self, cell: str) -> Point:
        """Centre of ``cell`` as ``(lng, lat)``."""

    @abstractmethod
    def disk(self, cell: str, k: int) -> List[str]:
        """All cells within ``k`` hex-steps of ``cell`` (including it)."""

    @abstractmethod
    def distance(self, a: str, b: str) -> Optional[int]:
        """Hex-steps between two cells, or None when the grid can't tell."""

    @abstractmethod
    def resolution(self, cell: str) -> int:
        ...

    @abstractmethod
    def to_resolution(self, cell: str, res: int) -> str:
        """Re-express ``cell`` at ``res`` (parent when coarser, centre child when finer)."""

    @abstractmethod
    def edge_length_m(self, res: int) -> float:
        ...

    def neighbors(self, cell: str) -> List[str]:
        """The 6 (5 at pentagons) immediate neighbours of ``cell``."""
        return [c for c in self.disk(cell, 1) if c != cell]

    def approx_distance(self, a: str, b: str) -> int:
        """Hex-steps between cells, estimated from centre distance when the grid can't compute it."""
        steps = self.distance(a, b)
        if steps is not None:
            return steps
        spacing = self.edge_length_m(self.resolution(a)) * math.sqrt(3)
        return int(math.ceil(haversine_m(self.center(a), self.center(b)) / spacing))


# Cached H3 primitives: cells are immutable, so results never go stale.

@lru_cache(maxsize=500_000)
def _cell_center(cell: str) -> Point:
    lat, lng = h3.cell_to_latlng(cell)
    return (lng, lat)


@lru_cache(maxsize=200_000)
def _grid_disk(cell: str, k: int) -> tuple:
    return tuple(sorted(h3.grid_disk(cell, k)))


class H3Grid(HexGrid):
    """``HexGrid`` backed by the ``h3`` package."""

    def cell(self, point: Point, res: int) -> str:
        lng, lat = point
        return h3.latlng_to_cell(lat, lng, res)

    def center(self, cell: str) -> Point:
        return _cell_center(cell)

    def disk(self, cell: str, k: int) -> List[str]:
        return list(_grid_disk(cell, k))

    def distance(self, a: str, b: str) -> Optional[int]:
        try:
            return h3.grid_distance(a, b)
        except h3.H3BaseException:
            # Cells too far apart or separated by a pentagon
            return None

    def resolution(self, cell: str) -> int:
        return h3.get_resolution(cell)

    def to_resolution(self, cell: str, res: int) -> str:
        cur = h3.get_resolution(cell)
        if res == cur:
            return cell
        if res < cur:
            return h3.cell_to_parent(cell, res)
        return h3.cell_to_center_child(cell, res)

    def edge_length_m(self, res: int) -> float:
        return h3.average_hexagon_edge_length(res, unit="m")

