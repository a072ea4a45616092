# swiftdispatch/utils.py
"""
Utility functions for the SwiftShip dispatch engine.

Provides the geographic distance approximation used for candidate ranking
and a few id/time formatting helpers.
"""

from __future__ import annotations

import math
import time as _time
from datetime import datetime, timedelta
from typing import Optional, Union

from . import config
from .models import Coordinate


def planar_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Approximate the distance between two points in kilometers.

    Treats (lat, lng) as a flat plane and scales the Euclidean distance by
    ``config.KM_PER_DEGREE``. This ignores the Earth's curvature and the
    shrinking of longitude degrees away from the equator, so it is only
    meaningful for relative comparisons over short, regional spans.

    Args:
        lat1: Latitude of point 1 in decimal degrees
        lng1: Longitude of point 1 in decimal degrees
        lat2: Latitude of point 2 in decimal degrees
        lng2: Longitude of point 2 in decimal degrees

    Returns:
        Non-negative approximate distance in kilometers

    Example:
        >>> planar_distance(40.71, -74.00, 40.81, -74.10)
        15.698  # ~15.7 km
    """
    return math.hypot(lat2 - lat1, lng2 - lng1) * config.KM_PER_DEGREE


def distance(a: Coordinate, b: Coordinate) -> float:
    """Planar distance in km between two coordinates. Symmetric, zero for identical points."""
    return planar_distance(a.lat, a.lng, b.lat, b.lng)


def format_distance(distance_km: float) -> str:
    """Format a distance for display, e.g. ``"1.2 km"``."""
    return f"{distance_km:.1f} km"


def generate_tracking_id(now_ms: Optional[int] = None) -> str:
    """
    Build a tracking id from the current epoch milliseconds.

    The id is the configured prefix followed by the last 6 digits of the
    timestamp, e.g. ``SW482913``. Uniqueness is enforced by the store.
    """
    if now_ms is None:
        now_ms = int(_time.time() * 1000)
    return f"{config.TRACKING_PREFIX}{str(now_ms)[-6:].zfill(6)}"


def add_minutes(base: datetime, minutes_to_add: Union[int, float]) -> datetime:
    """Add a number of minutes (can be negative) to a datetime."""
    return base + timedelta(minutes=minutes_to_add)


def format_time_duration(minutes: float) -> str:
    """
    Format a duration in minutes as a human-readable string.

    Args:
        minutes: Duration in minutes

    Returns:
        Formatted string like "1h 23m" or "45m"
    """
    if minutes < 60:
        return f"{minutes:.0f}m"
    hours = int(minutes // 60)
    mins = int(minutes % 60)
    return f"{hours}h {mins}m"


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp as found in the sample data.

    Accepts a trailing ``Z``. Timezone info is dropped so all stamps compare as naive.
    """
    if value is None or isinstance(value, datetime):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    # Sample data mixes naive and UTC stamps; compare everything as naive.
    return parsed.replace(tzinfo=None)
