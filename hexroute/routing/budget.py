"""
Cooperative scheduling and cancellation for one route request.

Every inner loop of the routing tiers calls ``RouteBudget.tick()``.
Periodically the budget releases the interpreter so other threads (the
event loop serving HTTP, other requests) make progress, and checks the
deadline and the cancellation flag.
"""

import logging
import threading
import time
from typing import Optional

from .errors import RouteTimeout

logger = logging.getLogger(__name__)


class RouteBudget:
    """Deadline, cancellation flag and yield cadence owned by one request."""

    def __init__(self, timeout_s: Optional[float] = None, yield_every: int = 256):
        self.timeout_s = timeout_s
        self.yield_every = max(1, int(yield_every))
        self._deadline = (
            time.monotonic() + timeout_s if timeout_s is not None and timeout_s > 0 else None
        )
        self._cancelled = threading.Event()
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next checkpoint."""
        self._cancelled.set()

    def remaining_s(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def tick(self) -> None:
        """Count one unit of work; yield and check limits every ``yield_every`` units."""
        self._ticks += 1
        if self._ticks % self.yield_every == 0:
            time.sleep(0)
            self.check()

    def check(self) -> None:
        """Raise ``RouteTimeout`` if the request is cancelled or overdue."""
        if self._cancelled.is_set():
            raise RouteTimeout("Route computation cancelled")
        if self._deadline is not None and time.monotonic() > self._deadline:
            logger.warning(f"Route computation exceeded {self.timeout_s:.1f}s after {self._ticks} ticks")
            raise RouteTimeout(f"Route computation exceeded {self.timeout_s:.1f}s")
