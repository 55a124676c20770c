"""
Thread-safe state management for the HEXROUTE API.

The land mask is large and read-only: it is loaded once per process and
shared by every request. Everything mutable (oracle memo tables, search
state) lives in the per-request planner, never here.
"""
import threading
import logging
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from hexroute.data.land_mask import LandMask, get_land_mask_status, load_land_mask
from hexroute.routing.hexgrid import H3Grid

logger = logging.getLogger(__name__)


class ApplicationState:
    """
    Singleton application state manager.

    Centralizes all shared state with proper thread safety.
    Use get_app_state() to access the singleton instance.
    """

    _instance: Optional['ApplicationState'] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            with cls._lock:
                # Double-check locking
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize application state (only once)."""
        if self._initialized:
            return

        self._initialized = True
        self._mask_lock = threading.RLock()
        self._land_mask: Optional[LandMask] = None
        self._mask_error: Optional[str] = None
        self._grid = H3Grid()
        self._startup_time = datetime.now(timezone.utc)

        logger.info("Application state initialized")

    @property
    def grid(self) -> H3Grid:
        return self._grid

    @property
    def land_mask(self) -> Optional[LandMask]:
        """Get the loaded land mask (thread-safe read); None until loaded."""
        with self._mask_lock:
            return self._land_mask

    def load_land_mask(self, path: Optional[str] = None) -> LandMask:
        """
        Load the land mask from ``path`` (or the configured default).

        Failures are recorded for the health endpoint and re-raised.
        """
        from api.config import settings

        path = path or settings.land_mask_path
        with self._mask_lock:
            try:
                mask = load_land_mask(path)
            except (OSError, ValueError) as e:
                self._mask_error = f"{type(e).__name__}: {e}"
                logger.error(f"Failed to load land mask from {path or 'globe'}: {e}")
                raise
            self._land_mask = mask
            self._mask_error = None
            return mask

    def set_land_mask(self, mask: Optional[LandMask]) -> None:
        """Replace the shared mask atomically (tests, hot reload)."""
        with self._mask_lock:
            self._land_mask = mask
            self._mask_error = None

    @property
    def uptime_seconds(self) -> float:
        """Get application uptime in seconds."""
        return (datetime.now(timezone.utc) - self._startup_time).total_seconds()

    def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on all components.

        Returns:
            Dict with health status of each component
        """
        with self._mask_lock:
            mask_status = get_land_mask_status(self._land_mask)
            mask_status["error"] = self._mask_error
        return {
            'land_mask': mask_status,
            'uptime_seconds': self.uptime_seconds,
        }


def get_app_state() -> ApplicationState:
    """
    Get the application state singleton.

    This is the preferred way to access shared state throughout the application.

    Returns:
        ApplicationState: The singleton application state instance
    """
    return ApplicationState()
