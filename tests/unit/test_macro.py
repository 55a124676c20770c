"""
Unit tests for the macro skeleton planner.
"""

from dataclasses import replace

import pytest

from hexroute.routing import macro
from hexroute.routing.astar import fine_route
from hexroute.routing.errors import SearchBudgetExceeded
from hexroute.routing.macro import beam_search, macro_route, macro_skeleton, refine_skeleton
from hexroute.routing.smoothing import path_is_clear

A, B = (-15.0, 0.0), (15.0, 0.0)


@pytest.fixture
def wall_oracle(wall_mask, oracle_factory):
    return oracle_factory(wall_mask)


class TestBeamSearch:
    """Bounded-width frontier search at the coarse resolution."""

    def test_reaches_goal_around_wall(self, wall_oracle, options):
        macro = wall_oracle.at_resolution(options.macro_res)
        start, goal = macro.cell_of(A), macro.cell_of(B)
        cells = beam_search(macro, start, goal, options)

        assert cells is not None
        assert cells[0] == start
        assert macro.grid.approx_distance(cells[-1], goal) <= options.beam_goal_steps
        assert not any(macro.is_blocked(c) for c in cells)
        assert len(set(cells)) == len(cells)

    def test_step_cap(self, wall_oracle, options):
        macro = wall_oracle.at_resolution(options.macro_res)
        opts = replace(options, beam_max_steps=1)
        with pytest.raises(SearchBudgetExceeded) as exc_info:
            beam_search(macro, macro.cell_of(A), macro.cell_of(B), opts)
        assert exc_info.value.tier == "macro"

    def test_dead_end(self, two_lakes_mask, oracle_factory, options):
        """Frontier trapped in a lake runs out of candidates."""
        macro = oracle_factory(two_lakes_mask).at_resolution(options.macro_res)
        start, goal = macro.cell_of((20.0, 10.0)), macro.cell_of((60.0, -10.0))
        assert beam_search(macro, start, goal, options) is None

    def test_macro_oracle_shares_budget(self, wall_oracle, options):
        macro = wall_oracle.at_resolution(options.macro_res)
        assert macro.budget is wall_oracle.budget
        assert macro.resolution == options.macro_res


class TestMacroRoute:
    """Skeleton plus per-pair fine refinement."""

    def test_skeleton_endpoints(self, wall_oracle, options):
        skeleton = macro_skeleton(wall_oracle, A, B, options)
        assert skeleton is not None
        assert skeleton[0] == A
        assert skeleton[-1] == B

    def test_route_around_wall(self, wall_oracle, options):
        points = macro_route(wall_oracle, A, B, options)

        assert points is not None
        assert points[0] == A
        assert points[-1] == B
        assert path_is_clear(wall_oracle, points, options.sample_meters)
        assert max(lat for _, lat in points) > 7.0

    def test_unreachable(self, two_lakes_mask, oracle_factory, options):
        oracle = oracle_factory(two_lakes_mask)
        assert macro_route(oracle, (20.0, 10.0), (60.0, -10.0), options) is None

    def test_refinement_stays_in_corridors(self, wall_oracle, options, monkeypatch):
        """A skeleton pair the corridors cannot join fails the tier outright."""
        opts = replace(options, pad_deg=0.1, corridor_pad_rings=0)

        assert fine_route(wall_oracle, A, B, opts) is not None
        assert fine_route(wall_oracle, A, B, opts, allow_unconstrained=False) is None
        assert refine_skeleton(wall_oracle, [A, B], opts) is None

        monkeypatch.setattr(macro, "macro_skeleton", lambda *args: [A, B])
        assert macro_route(wall_oracle, A, B, opts) is None

    def test_refinement_never_unconstrained(self, wall_oracle, options, monkeypatch):
        calls = []

        def recording_fine_route(*args, **kwargs):
            calls.append(kwargs.get("allow_unconstrained", True))
            return fine_route(*args, **kwargs)

        monkeypatch.setattr(macro, "fine_route", recording_fine_route)
        assert macro_route(wall_oracle, A, B, options) is not None
        assert calls and not any(calls)
