"""Water routing API schemas."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from hexroute.config import KNOWN_TIERS

from .common import LineStringGeometry, Position


class RouteOptionsModel(BaseModel):
    """Per-request overrides of the routing defaults. Unset fields use server settings."""
    h3_res: Optional[int] = Field(None, ge=0, le=15, description="Fine search H3 resolution")
    macro_res: Optional[int] = Field(None, ge=0, le=15, description="Macro skeleton H3 resolution")
    dilate_k_rings: Optional[int] = Field(None, ge=0, le=5, description="Coastal safety margin in rings")
    pad_deg: Optional[float] = Field(None, ge=0.0, le=20.0, description="Corridor padding in degrees")
    sample_meters: Optional[float] = Field(None, gt=0, le=100_000, description="Chord sample spacing")
    corridor_step_deg: Optional[float] = Field(None, gt=0, le=5.0, description="Corridor scan step")
    max_expansions: Optional[int] = Field(None, gt=0, le=2_000_000)
    land_overrides: Optional[List[str]] = Field(None, max_length=10_000, description="H3 cells forced to land")
    tier_order: Optional[List[str]] = Field(None, min_length=1, max_length=len(KNOWN_TIERS))
    retry_flipped_mode: Optional[bool] = None
    densify_m: Optional[float] = Field(None, ge=0)
    timeout_s: Optional[float] = Field(None, gt=0, description="Capped by the server's ROUTE_TIMEOUT_S")

    @field_validator("tier_order")
    @classmethod
    def validate_tiers(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is not None:
            for tier in v:
                if tier not in KNOWN_TIERS:
                    raise ValueError(f"Invalid tier '{tier}'. Must be one of: {list(KNOWN_TIERS)}")
        return v


class RouteRequest(BaseModel):
    """Request for a water-only route through ordered waypoints."""
    waypoints: List[Position] = Field(..., min_length=2, description="Ordered waypoints, at least two")
    options: Optional[RouteOptionsModel] = None


class RouteLegModel(BaseModel):
    """How one leg was solved."""
    index: int
    tier: str
    points: int
    snapped_start: bool
    snapped_end: bool


class RouteProperties(BaseModel):
    kind: Literal["autoroute"] = "autoroute"
    distance_m: float
    legs: List[RouteLegModel]


class RouteResponse(BaseModel):
    """GeoJSON LineString feature."""
    type: Literal["Feature"] = "Feature"
    properties: RouteProperties
    geometry: LineStringGeometry
