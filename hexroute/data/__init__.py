"""Land mask sources for hex routing."""

from .land_mask import (
    LandMask,
    BloomCellSet,
    PointLandSet,
    GlobeLandSet,
    PolygonLandSet,
    load_land_mask,
    get_land_mask_status,
)

__all__ = [
    'LandMask',
    'BloomCellSet',
    'PointLandSet',
    'GlobeLandSet',
    'PolygonLandSet',
    'load_land_mask',
    'get_land_mask_status',
]
