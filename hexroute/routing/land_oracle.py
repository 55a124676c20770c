"""
Land membership oracle.

Wraps a probabilistic land set with:
- polarity calibration (is a mask hit land, or was the mask built inverted?)
- a neighbour-majority noise filter that suppresses isolated false positives
- k-ring dilation for a safety margin off the coast
- caller-supplied land overrides

One oracle belongs to one request: its memo tables are never shared
across requests. The mask itself is read-only and may be shared freely.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Container, Dict, FrozenSet, Iterable, Optional, Set

from hexroute.data.land_mask import INTERIOR_PROBE, OCEAN_PROBE

from .budget import RouteBudget
from .errors import MaskNotReady
from .geo import Point, haversine_m
from .hexgrid import HexGrid

logger = logging.getLogger(__name__)


class Mode(Enum):
    """What a mask hit means."""
    LAND = "land"    # hits are land
    WATER = "water"  # mask built inverted: hits are water

    def flipped(self) -> "Mode":
        return Mode.WATER if self is Mode.LAND else Mode.LAND


@dataclass(frozen=True)
class Calibration:
    """Outcome of probing the mask at one resolution."""
    resolution: int
    mode: Mode
    interior_hit: bool
    ocean_hit: bool

    @property
    def ambiguous(self) -> bool:
        """Both probes agree, so the polarity could not be told apart."""
        return self.interior_hit == self.ocean_hit


class LandOracle:
    """
    ``is_blocked(cell)`` for one mask + resolution + dilation configuration.

    Args:
        mask: land cell set (``LandMask`` or any container of cell ids);
            None means the mask has not been loaded yet
        grid: hex grid adapter
        resolution: operating resolution of the cells this oracle answers for
        dilate_k_rings: blocked if any land cell lies within this many rings
        min_land_neighbors: neighbours that must also test as land for a
            mask hit to count as land
        land_overrides: cells treated as land regardless of the mask
        mode: force a polarity instead of calibrating
        budget: request budget ticked by the long-running helpers
    """

    def __init__(
        self,
        mask: Optional[Container[str]],
        grid: HexGrid,
        resolution: int,
        dilate_k_rings: int = 0,
        min_land_neighbors: int = 3,
        land_overrides: Iterable[str] = (),
        mode: Optional[Mode] = None,
        budget: Optional[RouteBudget] = None,
        _calibrations: Optional[Dict[int, Calibration]] = None,
    ):
        self.mask = mask
        self.grid = grid
        self.resolution = resolution
        self.dilate_k_rings = max(0, int(dilate_k_rings))
        self.min_land_neighbors = min_land_neighbors
        self.budget = budget or RouteBudget()
        self._raw_overrides = frozenset(land_overrides)
        # Finer overrides mark their parent; coarser ones cover all their
        # descendants and are matched through the queried cell's ancestor.
        by_res: Dict[int, Set[str]] = {}
        for c in self._raw_overrides:
            res = min(grid.resolution(c), resolution)
            by_res.setdefault(res, set()).add(grid.to_resolution(c, res))
        self.land_overrides: Dict[int, FrozenSet[str]] = {r: frozenset(cs) for r, cs in by_res.items()}
        self._forced_mode = mode
        self._calibrations = _calibrations if _calibrations is not None else {}

        # Request-scoped memo tables
        self._hits: Dict[str, bool] = {}
        self._land: Dict[str, bool] = {}
        self._blocked: Dict[str, bool] = {}

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------

    def _require_mask(self):
        if self.mask is None:
            raise MaskNotReady()

    def calibrate(self) -> Calibration:
        """
        Resolve the mask polarity at this oracle's resolution.

        Probes a continental-interior and a mid-ocean cell. Interior hit
        only -> LAND; ocean hit only -> WATER. When both or neither hit the
        result is ambiguous: LAND is used and a warning is logged. The
        result is cached per resolution and never changes afterwards.
        """
        self._require_mask()
        cached = self._calibrations.get(self.resolution)
        if cached is not None:
            return cached

        interior = self.grid.cell(INTERIOR_PROBE, self.resolution)
        ocean = self.grid.cell(OCEAN_PROBE, self.resolution)
        interior_hit = interior in self.mask
        ocean_hit = ocean in self.mask

        if interior_hit and not ocean_hit:
            mode = Mode.LAND
        elif ocean_hit and not interior_hit:
            mode = Mode.WATER
        else:
            mode = Mode.LAND

        result = Calibration(
            resolution=self.resolution,
            mode=mode,
            interior_hit=interior_hit,
            ocean_hit=ocean_hit,
        )
        if result.ambiguous:
            logger.warning(
                f"Land mask calibration ambiguous at r{self.resolution} "
                f"(interior hit={interior_hit}, ocean hit={ocean_hit}); assuming {mode.value} mode"
            )
        else:
            logger.info(f"Land mask calibrated at r{self.resolution}: {mode.value} mode")

        self._calibrations[self.resolution] = result
        return result

    @property
    def mode(self) -> Mode:
        if self._forced_mode is not None:
            return self._forced_mode
        return self.calibrate().mode

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def _hit(self, cell: str) -> bool:
        hit = self._hits.get(cell)
        if hit is None:
            hit = cell in self.mask
            self._hits[cell] = hit
        return hit

    def is_override(self, cell: str) -> bool:
        """True when ``cell`` or one of its ancestors is a land override."""
        return any(
            self.grid.to_resolution(cell, res) in cells
            for res, cells in self.land_overrides.items()
        )

    def _base_land(self, cell: str) -> bool:
        if self.is_override(cell):
            return True
        hit = self._hit(cell)
        return hit if self.mode is Mode.LAND else not hit

    def is_land(self, cell: str) -> bool:
        """Noise-filtered land test: the cell and enough of its neighbours are land."""
        self._require_mask()
        land = self._land.get(cell)
        if land is not None:
            return land

        if self.is_override(cell):
            land = True
        elif not self._base_land(cell):
            land = False
        else:
            neighbors = self.grid.neighbors(cell)
            needed = min(self.min_land_neighbors, len(neighbors))
            count = 0
            for n in neighbors:
                if self._base_land(n):
                    count += 1
                    if count >= needed:
                        break
            land = count >= needed

        self._land[cell] = land
        return land

    def is_blocked(self, cell: str) -> bool:
        """True when ``cell`` or any cell within the dilation rings is land."""
        self._require_mask()
        blocked = self._blocked.get(cell)
        if blocked is not None:
            return blocked

        if self.dilate_k_rings == 0:
            blocked = self.is_land(cell)
        else:
            blocked = any(self.is_land(c) for c in self.grid.disk(cell, self.dilate_k_rings))

        self._blocked[cell] = blocked
        return blocked

    def cell_of(self, point: Point) -> str:
        return self.grid.cell(point, self.resolution)

    def is_point_blocked(self, point: Point) -> bool:
        return self.is_blocked(self.cell_of(point))

    def nearest_unblocked_cell(self, point: Point, max_rings: int) -> Optional[str]:
        """
        Closest unblocked cell to ``point``, searching ring by ring outward.

        Within the first ring that has any unblocked cell, the one whose
        centre is nearest the point wins (ties broken by cell id), so
        repeated calls return the same cell.
        """
        origin = self.cell_of(point)
        if not self.is_blocked(origin):
            return origin

        seen = {origin}
        for k in range(1, max_rings + 1):
            self.budget.tick()
            ring = [c for c in self.grid.disk(origin, k) if c not in seen]
            seen.update(ring)
            free = [c for c in ring if not self.is_blocked(c)]
            if free:
                return min(free, key=lambda c: (haversine_m(point, self.grid.center(c)), c))
        return None

    # ------------------------------------------------------------------
    # Siblings
    # ------------------------------------------------------------------

    def at_resolution(self, resolution: int) -> "LandOracle":
        """Oracle for the same mask and policy at another resolution."""
        if resolution == self.resolution:
            return self
        return LandOracle(
            mask=self.mask,
            grid=self.grid,
            resolution=resolution,
            dilate_k_rings=self.dilate_k_rings,
            min_land_neighbors=self.min_land_neighbors,
            land_overrides=self._raw_overrides,
            mode=self._forced_mode,
            budget=self.budget,
            _calibrations=self._calibrations,
        )

    def with_mode(self, mode: Mode) -> "LandOracle":
        """Oracle with a forced polarity and fresh memo tables."""
        return LandOracle(
            mask=self.mask,
            grid=self.grid,
            resolution=self.resolution,
            dilate_k_rings=self.dilate_k_rings,
            min_land_neighbors=self.min_land_neighbors,
            land_overrides=self._raw_overrides,
            mode=mode,
            budget=self.budget,
            _calibrations=self._calibrations,
        )

    @property
    def cache_size(self) -> int:
        return len(self._blocked)
