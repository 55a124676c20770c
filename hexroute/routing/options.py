"""Per-request routing options."""

import math
from dataclasses import dataclass, field, fields, replace
from typing import List, Optional

import h3

from hexroute.config import KNOWN_TIERS, Settings, get_settings

from .errors import InvalidInput


@dataclass
class RouteOptions:
    """Everything one route computation needs besides the waypoints, mask and grid."""

    # Grid and land membership
    h3_res: int = 5
    macro_res: int = 3
    dilate_k_rings: int = 1
    min_land_neighbors: int = 3
    land_overrides: List[str] = field(default_factory=list)

    # Corridor and chord sampling
    pad_deg: float = 1.0
    sample_meters: float = 1200.0
    corridor_step_deg: float = 0.1
    corridor_method: str = "bbox"  # "bbox" or "great_circle"
    corridor_pad_rings: int = 2

    # Fine A*
    max_expansions: int = 100_000

    # Macro beam search
    beam_width: int = 6
    beam_max_steps: int = 4000
    beam_goal_steps: int = 2
    beam_land_penalty_m: float = 1.0e7
    beam_turn_weight: float = 0.5  # fraction of a macro cell edge per 90 deg of turn

    # Recursive detour
    detour_start_km: float = 6.0
    detour_end_km: float = 600.0
    detour_grow: float = 1.6
    detour_ang_step: float = 10.0
    detour_max_depth: int = 5

    # Greedy marching
    march_step_near_m: float = 6000.0
    march_step_far_m: float = 45000.0
    march_coast_near_m: float = 30000.0
    march_max_steps: int = 20000

    # Endpoint snapping
    snap_step_m: float = 2000.0
    snap_max_m: float = 30000.0
    snap_max_rings: int = 25
    snap_tolerance_m: float = 50.0
    snap_safety_m: float = 500.0

    # Output and control
    densify_m: float = 50_000.0
    point_eps_deg: float = 1e-9
    tier_order: List[str] = field(default_factory=lambda: ["direct", "fine", "macro", "detour"])
    retry_flipped_mode: bool = False
    timeout_s: Optional[float] = 60.0
    yield_every: int = 256

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "RouteOptions":
        """Options seeded from environment settings, with caller overrides on top."""
        s = settings or get_settings()
        opts = cls(
            h3_res=s.h3_res,
            macro_res=s.macro_res,
            dilate_k_rings=s.dilate_k_rings,
            min_land_neighbors=s.min_land_neighbors,
            pad_deg=s.pad_deg,
            sample_meters=s.sample_meters,
            corridor_step_deg=s.corridor_step_deg,
            max_expansions=s.max_expansions,
            beam_width=s.beam_width,
            tier_order=list(s.tier_order),
            timeout_s=s.timeout_s,
        )
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise InvalidInput(f"Unknown route options: {sorted(unknown)}")
        return replace(opts, **{k: v for k, v in overrides.items() if v is not None})

    def validate(self) -> "RouteOptions":
        """Reject options no tier can work with."""
        if not 0 <= self.h3_res <= 15:
            raise InvalidInput(f"h3_res must be in [0, 15], got {self.h3_res}")
        if not 0 <= self.macro_res <= self.h3_res:
            raise InvalidInput(f"macro_res must be in [0, h3_res], got {self.macro_res}")
        if self.dilate_k_rings < 0:
            raise InvalidInput(f"dilate_k_rings must be >= 0, got {self.dilate_k_rings}")
        for name in ("sample_meters", "corridor_step_deg", "detour_grow", "detour_ang_step"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidInput(f"{name} must be a positive number, got {value}")
        if self.detour_grow <= 1.0:
            raise InvalidInput(f"detour_grow must be > 1, got {self.detour_grow}")
        if self.pad_deg < 0 or not math.isfinite(self.pad_deg):
            raise InvalidInput(f"pad_deg must be >= 0, got {self.pad_deg}")
        if self.corridor_method not in ("bbox", "great_circle"):
            raise InvalidInput(f"Unknown corridor method: {self.corridor_method}")
        if not self.tier_order:
            raise InvalidInput("tier_order must name at least one tier")
        unknown = [t for t in self.tier_order if t not in KNOWN_TIERS]
        if unknown:
            raise InvalidInput(f"Unknown routing tiers: {unknown}")
        for cell in self.land_overrides:
            if not isinstance(cell, str) or not h3.is_valid_cell(cell):
                raise InvalidInput(f"Invalid land override cell: {cell!r}")
        return self
