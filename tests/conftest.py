"""
Shared pytest fixtures for HEXROUTE tests.

Masks are synthetic land predicates answered at cell centres
(``PointLandSet``) over the real H3 grid, so every search runs against
genuine hex topology without shipping a land data file. Every world
includes a "Kansas" block so mask calibration resolves to land mode.
"""

import math
import os

import pytest

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY api.* imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("PRELOAD_LAND_MASK", "false")

from hexroute.data.land_mask import LandMask, PointLandSet  # noqa: E402
from hexroute.routing.geo import haversine_m  # noqa: E402
from hexroute.routing.hexgrid import H3Grid  # noqa: E402
from hexroute.routing.land_oracle import LandOracle  # noqa: E402
from hexroute.routing.options import RouteOptions  # noqa: E402

# ---------------------------------------------------------------------------
# Section 2: Land predicates, (lat, lng) -> bool
# ---------------------------------------------------------------------------


def kansas(lat, lng):
    """Continental block around the interior calibration probe."""
    return 30.0 <= lat <= 46.0 and -110.0 <= lng <= -90.0


def box(lat_min, lat_max, lng_min, lng_max):
    def inside(lat, lng):
        return lat_min <= lat <= lat_max and lng_min <= lng <= lng_max
    return inside


def disc(center, radius_m):
    """Land within ``radius_m`` of ``center`` (lng, lat)."""
    def inside(lat, lng):
        return haversine_m(center, (lng, lat)) <= radius_m
    return inside


def world(*parts):
    """Land wherever Kansas or any of ``parts`` says land."""
    def is_land(lat, lng):
        return kansas(lat, lng) or any(p(lat, lng) for p in parts)
    return is_land


def make_mask(is_land, source="synthetic"):
    return LandMask(PointLandSet(is_land), source=source)


# Wall from the equator region far south; passage only around its north tip.
WALL = box(-40.0, 8.0, -3.0, 3.0)

# Square island astride the equator.
ISLAND = box(-3.0, 3.0, -3.0, 3.0)

# Round island in the North Pacific, ~550 km radius.
BLOB_CENTER = (-150.0, 10.0)
BLOB = disc(BLOB_CENTER, 550_000.0)


# ---------------------------------------------------------------------------
# Section 3: Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def grid():
    return H3Grid()


@pytest.fixture
def open_mask():
    """Only the calibration continent: everywhere else is open sea."""
    return make_mask(world(), source="open")


@pytest.fixture
def wall_mask():
    return make_mask(world(WALL), source="wall")


@pytest.fixture
def island_mask():
    return make_mask(world(ISLAND), source="island")


@pytest.fixture
def blob_mask():
    return make_mask(world(BLOB), source="blob")


@pytest.fixture
def all_land_mask():
    return make_mask(lambda lat, lng: True, source="all-land")


@pytest.fixture
def two_lakes_mask():
    """Land everywhere except two disconnected lakes."""
    lake_a = disc((20.0, 10.0), 450_000.0)
    lake_b = disc((60.0, -10.0), 450_000.0)
    return make_mask(lambda lat, lng: not (lake_a(lat, lng) or lake_b(lat, lng)), source="lakes")


@pytest.fixture
def options():
    """Coarse, fast options: r3 fine grid, r2 macro grid."""
    return RouteOptions(
        h3_res=3,
        macro_res=2,
        dilate_k_rings=0,
        min_land_neighbors=0,
        sample_meters=5000.0,
        corridor_step_deg=0.5,
        max_expansions=20_000,
        detour_end_km=1500.0,
        snap_step_m=10_000.0,
        snap_max_m=400_000.0,
        timeout_s=None,
    )


def make_oracle(mask, options, grid=None, **kwargs):
    params = dict(
        mask=mask,
        grid=grid or H3Grid(),
        resolution=options.h3_res,
        dilate_k_rings=options.dilate_k_rings,
        min_land_neighbors=options.min_land_neighbors,
    )
    params.update(kwargs)
    return LandOracle(**params)


@pytest.fixture
def oracle_factory(options):
    def factory(mask, **kwargs):
        return make_oracle(mask, options, **kwargs)
    return factory


def bearing_close(a, b, tol=1e-6):
    return abs(((a - b) + 180.0) % 360.0 - 180.0) <= tol


def is_finite_point(p):
    return math.isfinite(p[0]) and math.isfinite(p[1])
