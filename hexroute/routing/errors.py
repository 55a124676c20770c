"""
Routing error kinds.

Tier failures (``SearchBudgetExceeded``, a search returning no path) are
recovered inside the planner by falling through to the next tier. Only
exhaustion of every tier for a leg surfaces as ``NoPathFound``.
"""

from typing import List, Optional


class RoutingError(RuntimeError):
    """Base class for every routing failure."""


class MaskNotReady(RoutingError):
    """Land membership was queried before a land mask was loaded."""

    def __init__(self, message: str = "Land mask not loaded"):
        super().__init__(message)


class InvalidInput(RoutingError, ValueError):
    """Waypoints or options rejected before any search begins."""


class NoPathFound(RoutingError):
    """Every tier failed for a leg; the whole request is aborted."""

    def __init__(
        self,
        message: str,
        leg_index: Optional[int] = None,
        tiers_tried: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.leg_index = leg_index
        self.tiers_tried = list(tiers_tried or [])


class NoWaterNodeNear(NoPathFound):
    """A leg endpoint could not be resolved to any unblocked cell."""


class SearchBudgetExceeded(RoutingError):
    """A tier hit its expansion or step cap."""

    def __init__(self, tier: str, limit: int):
        super().__init__(f"{tier}: search budget of {limit} exhausted")
        self.tier = tier
        self.limit = limit


class RouteTimeout(RoutingError):
    """The request deadline passed or the request was cancelled."""
