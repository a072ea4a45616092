# swiftdispatch/config.py
"""
Configuration parameters for the SwiftShip dispatch engine.

This module centralizes all tunable parameters, making it easy to:
- Adjust the distance approximation used for candidate ranking
- Tune the driver performance formulas
- Toggle operational policies from the dashboard

All parameters are documented with their purpose and typical value ranges.
"""

from pathlib import Path
from typing import Final

# =============================================================================
# DISTANCE ESTIMATION
# =============================================================================

KM_PER_DEGREE: Final[float] = 111.0
"""
Approximate kilometers per degree at the equator.
Planar distance in degrees is scaled by this factor. Only accurate for
short, regional spans.
"""

# =============================================================================
# PERFORMANCE SCORING
# =============================================================================
# performance_score = round(rating * RATING_SCORE_WEIGHT + total / VOLUME_SCORE_DIVISOR)

RATING_SCORE_WEIGHT: Final[float] = 20.0
"""Multiplier applied to the 0-5 rating. A 5-star driver earns 100 points."""

VOLUME_SCORE_DIVISOR: Final[float] = 10.0
"""Lifetime deliveries per bonus point."""

EFFICIENCY_SATURATION_DELIVERIES: Final[int] = 1000
"""Lifetime deliveries needed to reach 100% efficiency."""

DELIVERIES_PER_DAY_WINDOW: Final[int] = 30
"""Fixed normalization window (days), regardless of the driver's tenure."""

# =============================================================================
# RATING BANDS
# =============================================================================

RATING_EXCELLENT: Final[float] = 4.5
"""Ratings at or above this are 'excellent'."""

RATING_GOOD: Final[float] = 4.0
"""Ratings in [RATING_GOOD, RATING_EXCELLENT) are 'good'."""

RATING_AVERAGE: Final[float] = 3.5
"""Ratings in [RATING_AVERAGE, RATING_GOOD) are 'average'. Below is 'needs_improvement'."""

# =============================================================================
# RECORD DEFAULTS
# =============================================================================

DEFAULT_DRIVER_RATING: Final[float] = 5.0
"""Rating given to a newly onboarded driver."""

DEFAULT_ETA_MINUTES: int = 60
"""Estimated time to delivery assigned at booking."""

TRACKING_PREFIX: Final[str] = "SW"
"""Prefix for generated tracking ids (followed by 6 digits)."""

DEPOT_LAT: float = 40.7128
DEPOT_LNG: float = -74.0060
"""Depot position. New drivers without a location start near it."""

DEPOT_JITTER_DEG: float = 0.1
"""Spread (degrees) of the random offset applied around the depot."""

# =============================================================================
# OPERATIONAL POLICIES
# =============================================================================
# The dashboard sidebar toggles these at runtime.

ALLOW_CANCELLATIONS: bool = True
"""When False, cancel() is rejected for every delivery."""

REQUIRE_SIGNATURE: bool = False
"""When True, advancing into 'delivered' requires a signature in the proof."""

AUTO_ASSIGNMENT: bool = True
"""Enables the 'auto-assign' actions in the dashboard."""

# =============================================================================
# REPORTING
# =============================================================================

TOP_DRIVERS_LIMIT: int = 5
"""Number of drivers shown in the volume leaderboard."""

VOLUME_WINDOW_DAYS: int = 7
"""Days covered by the daily volume chart."""

DATA_DIR: Path = Path(__file__).resolve().parent.parent / "data"
"""Directory holding the bundled sample data (deliveries.json, drivers.json)."""
