"""
End-to-end routing scenarios.

Each scenario plans a full route against a synthetic world and checks
the guarantees a caller relies on: the route starts and ends at the
literal waypoints, never crosses land, respects the densify spacing,
and fails as a whole (never partially) when any leg is impossible.
"""

import asyncio
import time
from dataclasses import replace

import pytest

from conftest import box, make_mask, make_oracle, world
from hexroute.routing import errors
from hexroute.routing.budget import RouteBudget
from hexroute.routing.geo import haversine_m
from hexroute.routing.planner import Route, parse_waypoints, plan_route, plan_route_async
from hexroute.routing.smoothing import path_is_clear

OPEN_A, OPEN_B = (-130.0, -30.0), (-120.0, -35.0)
WEST, EAST = (-15.0, 0.0), (15.0, 0.0)


def _clear_between_docks(route, oracle, spacing_m):
    """Every leg is clear of land, ignoring dock legs onto snapped waypoints."""
    for leg in route.legs:
        pts = list(leg.points)
        if leg.start_snap.snapped:
            pts = pts[1:]
        if leg.end_snap.snapped:
            pts = pts[:-1]
        if not path_is_clear(oracle, pts, spacing_m):
            return False
    return True


# ============================================================================
# Open water
# ============================================================================

class TestOpenWater:
    """Routes that need no land avoidance at all."""

    def test_direct_leg(self, open_mask, options):
        route = plan_route([OPEN_A, OPEN_B], open_mask, options=options)

        assert isinstance(route, Route)
        assert route.tiers == ["direct"]
        assert route.coordinates[0] == OPEN_A
        assert route.coordinates[-1] == OPEN_B
        for p, q in zip(route.coordinates, route.coordinates[1:]):
            assert haversine_m(p, q) <= options.densify_m + 1.0
        assert route.distance_m == pytest.approx(haversine_m(OPEN_A, OPEN_B), rel=1e-6)

    def test_geojson(self, open_mask, options):
        feature = plan_route([OPEN_A, OPEN_B], open_mask, options=options).to_geojson()

        assert feature["type"] == "Feature"
        assert feature["geometry"]["type"] == "LineString"
        assert feature["geometry"]["coordinates"][0] == list(OPEN_A)
        assert feature["properties"]["kind"] == "autoroute"
        assert feature["properties"]["legs"][0]["tier"] == "direct"
        assert feature["properties"]["legs"][0]["snapped_start"] is False

    def test_multi_leg_joints(self, open_mask, options):
        waypoints = [(-140.0, -20.0), (-135.0, -22.0), (-130.0, -20.0)]
        route = plan_route(waypoints, open_mask, options=options)

        assert len(route.legs) == 2
        for wp in waypoints:
            assert wp in route.coordinates
        for p, q in zip(route.coordinates, route.coordinates[1:]):
            assert p != q

    def test_antimeridian(self, open_mask, options):
        route = plan_route([(175.0, 0.0), (-175.0, 0.0)], open_mask, options=options)
        assert route.coordinates[0] == (175.0, 0.0)
        assert route.coordinates[-1] == (-175.0, 0.0)
        assert route.distance_m < 1_200_000.0

    def test_march_tier(self, open_mask, options):
        opts = replace(options, tier_order=["march"])
        route = plan_route([(-140.0, -20.0), (-130.0, -25.0)], open_mask, options=opts)
        assert route.tiers == ["march"]
        assert route.coordinates[-1] == (-130.0, -25.0)

    def test_dict_waypoints(self, open_mask, options):
        route = plan_route(
            [{"lng": OPEN_A[0], "lat": OPEN_A[1]}, {"lon": OPEN_B[0], "lat": OPEN_B[1]}],
            open_mask, options=options,
        )
        assert route.coordinates[-1] == OPEN_B


# ============================================================================
# Obstacles
# ============================================================================

class TestObstacles:
    """Each fallback tier solving the leg it is designed for."""

    def test_wall_uses_fine_tier(self, wall_mask, options):
        route = plan_route([WEST, EAST], wall_mask, options=options)
        oracle = make_oracle(wall_mask, options)

        assert route.tiers == ["fine"]
        assert route.coordinates[0] == WEST and route.coordinates[-1] == EAST
        assert _clear_between_docks(route, oracle, options.sample_meters)

    def test_macro_only(self, wall_mask, options):
        opts = replace(options, tier_order=["macro"])
        route = plan_route([WEST, EAST], wall_mask, options=opts)

        assert route.tiers == ["macro"]
        assert _clear_between_docks(route, make_oracle(wall_mask, options), options.sample_meters)

    def test_detour_only(self, island_mask, options):
        opts = replace(options, tier_order=["detour"])
        route = plan_route([WEST, EAST], island_mask, options=opts)

        assert route.tiers == ["detour"]
        assert _clear_between_docks(route, make_oracle(island_mask, options), options.sample_meters)

    def test_tier_fall_through(self, island_mask, options):
        """Direct fails on the island and the next tier in order takes over."""
        opts = replace(options, tier_order=["direct", "detour"])
        route = plan_route([WEST, EAST], island_mask, options=opts)
        assert route.tiers == ["detour"]

    def test_snapped_waypoint_has_dock_leg(self, blob_mask, options):
        on_land = (-150.0, 13.0)
        route = plan_route([on_land, (-140.0, 13.0)], blob_mask, options=options)
        leg = route.legs[0]

        assert leg.start_snap.snapped
        assert not leg.end_snap.snapped
        assert route.coordinates[0] == on_land
        assert route.coordinates[1] == leg.start_snap.point
        assert route.to_geojson()["properties"]["legs"][0]["snapped_start"] is True
        assert _clear_between_docks(route, make_oracle(blob_mask, options), options.sample_meters)

    def test_deterministic(self, island_mask, options):
        opts = replace(options, tier_order=["detour"])
        first = plan_route([WEST, EAST], island_mask, options=opts)
        second = plan_route([WEST, EAST], island_mask, options=opts)
        assert first.coordinates == second.coordinates


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    """Impossible legs abort the whole request with a typed error."""

    @pytest.mark.slow
    def test_disconnected_lakes(self, two_lakes_mask, options):
        with pytest.raises(errors.NoPathFound) as exc_info:
            plan_route([(20.0, 10.0), (60.0, -10.0)], two_lakes_mask, options=options)

        assert exc_info.value.leg_index == 0
        assert exc_info.value.tiers_tried == ["direct", "fine", "macro", "detour"]

    @pytest.mark.slow
    def test_second_leg_failure_reports_index(self, two_lakes_mask, options):
        waypoints = [(19.0, 10.0), (21.0, 10.0), (60.0, -10.0)]
        with pytest.raises(errors.NoPathFound) as exc_info:
            plan_route(waypoints, two_lakes_mask, options=options)
        assert exc_info.value.leg_index == 1

    def test_all_land(self, all_land_mask, options):
        opts = replace(options, snap_max_rings=3, snap_max_m=30_000.0)
        with pytest.raises(errors.NoWaterNodeNear) as exc_info:
            plan_route([(0.0, 0.0), (10.0, 0.0)], all_land_mask, options=opts)
        assert exc_info.value.leg_index == 0

    def test_flipped_mode_retry(self, all_land_mask, options):
        """An ambiguous mask gets one retry with its polarity flipped."""
        opts = replace(options, snap_max_rings=3, snap_max_m=30_000.0, retry_flipped_mode=True)
        route = plan_route([(0.0, 0.0), (10.0, 0.0)], all_land_mask, options=opts)
        assert route.tiers == ["direct"]

    def test_no_retry_when_calibrated(self, options):
        """A cleanly calibrated mask is never retried with flipped polarity."""
        opts = replace(options, retry_flipped_mode=True, tier_order=["direct"])
        with pytest.raises(errors.NoPathFound) as exc_info:
            plan_route([WEST, EAST], make_mask(world(box(-3.0, 3.0, -3.0, 3.0))), options=opts)
        assert exc_info.value.tiers_tried == ["direct"]

    def test_mask_not_ready(self, options):
        with pytest.raises(errors.MaskNotReady):
            plan_route([OPEN_A, OPEN_B], None, options=options)

    @pytest.mark.parametrize("waypoints", [
        [],
        [(0.0, 0.0)],
        [(0.0, 95.0), (1.0, 0.0)],
        [(float("nan"), 0.0), (1.0, 0.0)],
        [(0.0, 0.0), (0.0, 0.0)],
        [(0.0, 0.0), "north"],
        [(0.0, 0.0), {"lat": 1.0}],
    ])
    def test_invalid_waypoints(self, open_mask, options, waypoints):
        with pytest.raises(errors.InvalidInput):
            plan_route(waypoints, open_mask, options=options)

    def test_invalid_options(self, open_mask, options):
        opts = replace(options, tier_order=["teleport"])
        with pytest.raises(errors.InvalidInput):
            plan_route([OPEN_A, OPEN_B], open_mask, options=opts)

    def test_parse_waypoints_normalizes(self):
        assert parse_waypoints([(190.0, 1.0), (0.0, 0.0), (0.0, 0.0), (5.0, 5.0)]) == [
            (-170.0, 1.0), (0.0, 0.0), (5.0, 5.0),
        ]


# ============================================================================
# Timeouts and cancellation
# ============================================================================

def _slow_open_mask(delay_s):
    base = world()

    def is_land(lat, lng):
        time.sleep(delay_s)
        return base(lat, lng)
    return make_mask(is_land, source="slow")


class TestTimeouts:
    """Deadlines and cancellation end the computation with RouteTimeout."""

    def test_cancelled_budget(self, open_mask, options):
        budget = RouteBudget(yield_every=1)
        budget.cancel()
        with pytest.raises(errors.RouteTimeout):
            plan_route([OPEN_A, OPEN_B], open_mask, options=options, budget=budget)

    def test_async_success(self, open_mask, options):
        opts = replace(options, timeout_s=30.0)
        route = asyncio.run(plan_route_async([OPEN_A, OPEN_B], open_mask, options=opts))
        assert route.tiers == ["direct"]

    def test_async_timeout(self, options):
        opts = replace(options, timeout_s=0.1, yield_every=1)
        mask = _slow_open_mask(0.05)
        with pytest.raises(errors.RouteTimeout):
            asyncio.run(plan_route_async([(-140.0, -20.0), (-60.0, -20.0)], mask, options=opts))
