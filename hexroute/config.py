"""
HEXROUTE Configuration Module.

Centralized configuration management using environment variables.
Supports .env files for local development.

Usage:
    from hexroute.config import settings

    print(settings.h3_res)
    print(settings.tier_order)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env file if present
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


KNOWN_TIERS = ("direct", "fine", "macro", "detour", "march")


def get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_list(key: str, default: str = "") -> List[str]:
    """Get list from comma-separated environment variable."""
    value = os.getenv(key, default)
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Routing defaults loaded from environment."""

    # Grid
    h3_res: int = field(default_factory=lambda: get_int("HEXROUTE_H3_RES", 5))
    macro_res: int = field(default_factory=lambda: get_int("HEXROUTE_MACRO_RES", 3))

    # Land membership
    dilate_k_rings: int = field(default_factory=lambda: get_int("HEXROUTE_DILATE_K_RINGS", 1))
    min_land_neighbors: int = field(default_factory=lambda: get_int("HEXROUTE_MIN_LAND_NEIGHBORS", 3))
    land_mask_path: Optional[str] = field(default_factory=lambda: os.getenv("HEXROUTE_LAND_MASK_PATH"))

    # Corridor / collision sampling
    pad_deg: float = field(default_factory=lambda: get_float("HEXROUTE_PAD_DEG", 1.0))
    sample_meters: float = field(default_factory=lambda: get_float("HEXROUTE_SAMPLE_METERS", 1200.0))
    corridor_step_deg: float = field(default_factory=lambda: get_float("HEXROUTE_CORRIDOR_STEP_DEG", 0.1))

    # Search budgets
    max_expansions: int = field(default_factory=lambda: get_int("HEXROUTE_MAX_EXPANSIONS", 100_000))
    beam_width: int = field(default_factory=lambda: get_int("HEXROUTE_BEAM_WIDTH", 6))
    timeout_s: float = field(default_factory=lambda: get_float("HEXROUTE_TIMEOUT_S", 60.0))
    tier_order: List[str] = field(
        default_factory=lambda: get_list("HEXROUTE_TIER_ORDER", "direct,fine,macro,detour")
    )

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.getenv(
            "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    )

    def __post_init__(self):
        """Validate settings after initialization."""
        if not 0 <= self.h3_res <= 15:
            logging.warning(f"H3 resolution {self.h3_res} outside [0, 15], using 5")
            self.h3_res = 5

        if not 0 <= self.macro_res < self.h3_res:
            fallback = max(self.h3_res - 2, 0)
            logging.warning(
                f"Macro resolution {self.macro_res} must be coarser than {self.h3_res}, "
                f"using {fallback}"
            )
            self.macro_res = fallback

        if self.dilate_k_rings < 0:
            logging.warning(f"Negative dilation {self.dilate_k_rings}, using 0")
            self.dilate_k_rings = 0

        if not 0 <= self.min_land_neighbors <= 6:
            logging.warning(
                f"min_land_neighbors {self.min_land_neighbors} outside [0, 6], using 3"
            )
            self.min_land_neighbors = 3

        unknown = [t for t in self.tier_order if t not in KNOWN_TIERS]
        if unknown or not self.tier_order:
            logging.warning(
                f"Unknown routing tiers {unknown} in tier order, using default order"
            )
            self.tier_order = ["direct", "fine", "macro", "detour"]

    def configure_logging(self):
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logging.basicConfig(level=level, format=self.log_format)


# Singleton instance
settings = Settings()


# Convenience function for testing
def get_settings() -> Settings:
    """Get the settings instance (useful for dependency injection)."""
    return settings
