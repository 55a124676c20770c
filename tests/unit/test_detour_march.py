"""
Unit tests for the detour and marching fallbacks.

Both strategies work on points rather than cells, so the checks here
are geometric: every vertex sits in an unblocked cell and the path
starts and ends at the leg endpoints.
"""

from dataclasses import replace

import pytest

from hexroute.routing.collision import chord_blocked
from hexroute.routing.detour import detour_route, find_via
from hexroute.routing.march import is_near_coast, march_route, straight_tighten
from hexroute.routing.smoothing import path_is_clear

A, B = (-15.0, 0.0), (15.0, 0.0)
OPEN_A, OPEN_B = (-140.0, -20.0), (-130.0, -25.0)


# ---------------------------------------------------------------------------
# §1 – Via-point search
# ---------------------------------------------------------------------------
class TestFindVia:
    """A via-point reachable from both ends of a blocked leg."""

    def test_via_around_island(self, island_mask, oracle_factory, options):
        oracle = oracle_factory(island_mask)
        via = find_via(oracle, A, B, options)

        assert via is not None
        assert not oracle.is_point_blocked(via)
        assert not chord_blocked(oracle, A, via, options.sample_meters)
        assert not chord_blocked(oracle, via, B, options.sample_meters)

    def test_deterministic(self, island_mask, oracle_factory, options):
        first = find_via(oracle_factory(island_mask), A, B, options)
        second = find_via(oracle_factory(island_mask), A, B, options)
        assert first == second

    def test_none_between_lakes(self, two_lakes_mask, oracle_factory, options):
        oracle = oracle_factory(two_lakes_mask)
        assert find_via(oracle, (20.0, 10.0), (60.0, -10.0), options) is None


# ---------------------------------------------------------------------------
# §2 – Detour tier
# ---------------------------------------------------------------------------
class TestDetourRoute:
    """Via-point or midpoint split, bounded by depth."""

    def test_clear_leg_is_direct(self, open_mask, oracle_factory, options):
        oracle = oracle_factory(open_mask)
        assert detour_route(oracle, OPEN_A, OPEN_B, options) == [OPEN_A, OPEN_B]

    def test_island_single_via(self, island_mask, oracle_factory, options):
        oracle = oracle_factory(island_mask)
        points = detour_route(oracle, A, B, options)

        assert points is not None
        assert len(points) == 3
        assert points[0] == A and points[-1] == B
        assert path_is_clear(oracle, points, options.sample_meters)

    def test_depth_exhausted(self, two_lakes_mask, oracle_factory, options):
        oracle = oracle_factory(two_lakes_mask)
        opts = replace(options, detour_max_depth=1)
        assert detour_route(oracle, (20.0, 10.0), (60.0, -10.0), opts) is None


# ---------------------------------------------------------------------------
# §3 – Marching
# ---------------------------------------------------------------------------
class TestMarch:
    """Greedy stepping with tightening and via-point escapes."""

    @pytest.mark.parametrize("point,radius_m,expected", [
        ((-4.0, 0.0), 200_000.0, True),
        ((-140.0, -20.0), 30_000.0, False),
    ])
    def test_is_near_coast(self, island_mask, oracle_factory, point, radius_m, expected):
        oracle = oracle_factory(island_mask)
        assert is_near_coast(oracle, point, radius_m) is expected

    def test_tighten_stops_short_of_land(self, island_mask, oracle_factory):
        oracle = oracle_factory(island_mask)
        ok = straight_tighten(oracle, (-10.0, 0.0), 90.0, 1_000_000.0, 5000.0)

        assert ok is not None
        assert -10.0 < ok[0] < -3.0
        assert not chord_blocked(oracle, (-10.0, 0.0), ok, 5000.0)

    def test_tighten_from_land(self, island_mask, oracle_factory):
        oracle = oracle_factory(island_mask)
        assert straight_tighten(oracle, (0.0, 0.0), 90.0, 100_000.0, 5000.0) is None

    def test_open_water(self, open_mask, oracle_factory, options):
        oracle = oracle_factory(open_mask)
        points = march_route(oracle, OPEN_A, OPEN_B, options)

        assert points is not None
        assert points[0] == OPEN_A and points[-1] == OPEN_B
        assert len(points) > 2
        assert path_is_clear(oracle, points, options.sample_meters)

    def test_around_island(self, island_mask, oracle_factory, options):
        oracle = oracle_factory(island_mask)
        points = march_route(oracle, A, B, options)

        assert points is not None
        assert points[0] == A and points[-1] == B
        assert not any(oracle.is_point_blocked(p) for p in points)
