# swiftdispatch/performance.py
"""
Driver performance metrics.

All functions are pure: they read driver records and never modify them.
Formulas:

    performance_score  = round(rating * 20 + total_deliveries / 10)
    efficiency         = min(100, total_deliveries / 1000 * 100)
    deliveries_per_day = round(total_deliveries / 30)

The score is dominated by rating (5 stars = 100) with a volume bonus, so it
can exceed 100. Halves round up (2.5 -> 3), not to even.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from typing import Dict, List, Optional, Sequence

import pandas as pd

from . import config
from .models import Driver

BAND_EXCELLENT = "excellent"
BAND_GOOD = "good"
BAND_AVERAGE = "average"
BAND_NEEDS_IMPROVEMENT = "needs_improvement"

RATING_BANDS = (BAND_EXCELLENT, BAND_GOOD, BAND_AVERAGE, BAND_NEEDS_IMPROVEMENT)


def round_half_up(value: float) -> int:
    """Nearest integer, .5 rounding towards +infinity (builtin ``round`` goes to even)."""
    return math.floor(value + 0.5)


def performance_score(rating: float, total_deliveries: int) -> int:
    """
    Weighted blend of rating and volume.

    Example:
        >>> performance_score(4.8, 120)
        108  # round(96 + 12)
    """
    return round_half_up(rating * config.RATING_SCORE_WEIGHT + total_deliveries / config.VOLUME_SCORE_DIVISOR)


def efficiency(total_deliveries: int) -> float:
    """Saturating volume metric in percent; 100 from EFFICIENCY_SATURATION_DELIVERIES on."""
    return min(100.0, total_deliveries / config.EFFICIENCY_SATURATION_DELIVERIES * 100)


def deliveries_per_day(total_deliveries: int) -> int:
    return round_half_up(total_deliveries / config.DELIVERIES_PER_DAY_WINDOW)


def rating_band(rating: float) -> str:
    if rating >= config.RATING_EXCELLENT:
        return BAND_EXCELLENT
    if rating >= config.RATING_GOOD:
        return BAND_GOOD
    if rating >= config.RATING_AVERAGE:
        return BAND_AVERAGE
    return BAND_NEEDS_IMPROVEMENT


@dataclass(frozen=True)
class DriverMetrics:
    driver_id: str
    name: str
    rating: float
    total_deliveries: int
    performance_score: int
    efficiency: float
    deliveries_per_day: int
    rating_band: str


def metrics_for(driver: Driver) -> DriverMetrics:
    return DriverMetrics(
        driver_id=driver.id,
        name=driver.name,
        rating=driver.rating,
        total_deliveries=driver.total_deliveries,
        performance_score=performance_score(driver.rating, driver.total_deliveries),
        efficiency=efficiency(driver.total_deliveries),
        deliveries_per_day=deliveries_per_day(driver.total_deliveries),
        rating_band=rating_band(driver.rating),
    )


def fleet_efficiency(drivers: Sequence[Driver]) -> List[DriverMetrics]:
    """Metrics for every driver, highest performance score first (ties keep input order)."""
    metrics = [metrics_for(d) for d in drivers]
    return sorted(metrics, key=lambda m: m.performance_score, reverse=True)


def rating_distribution(drivers: Sequence[Driver]) -> Dict[str, List[str]]:
    """Driver ids per rating band. Every band is present, possibly empty."""
    bands: Dict[str, List[str]] = {band: [] for band in RATING_BANDS}
    for driver in drivers:
        bands[rating_band(driver.rating)].append(driver.id)
    return bands


def top_performer(drivers: Sequence[Driver]) -> Optional[Driver]:
    """
    Driver with the most lifetime deliveries.

    This is a volume ranking, distinct from the performance-score
    leaderboard. The first driver wins a tie; an empty fleet gives None.
    """
    best: Optional[Driver] = None
    for driver in drivers:
        if best is None or driver.total_deliveries > best.total_deliveries:
            best = driver
    return best


@dataclass(frozen=True)
class PerformanceSummary:
    """Fleet-wide comparison used by the analytics view."""
    leaderboard: List[DriverMetrics]
    bands: Dict[str, List[str]]
    top_performer: Optional[DriverMetrics]
    average_rating: float
    average_score: float

    @property
    def band_counts(self) -> Dict[str, int]:
        return {band: len(ids) for band, ids in self.bands.items()}


def performance_comparison(drivers: Sequence[Driver]) -> PerformanceSummary:
    leaderboard = fleet_efficiency(drivers)
    top = top_performer(drivers)
    count = len(leaderboard)
    return PerformanceSummary(
        leaderboard=leaderboard,
        bands=rating_distribution(drivers),
        top_performer=metrics_for(top) if top is not None else None,
        average_rating=round(sum(m.rating for m in leaderboard) / count, 2) if count else 0.0,
        average_score=round(sum(m.performance_score for m in leaderboard) / count, 2) if count else 0.0,
    )


def metrics_frame(metrics: Sequence[DriverMetrics]) -> pd.DataFrame:
    """Tabular view of driver metrics, one row per driver, in the given order."""
    columns = [f.name for f in fields(DriverMetrics)]
    return pd.DataFrame([asdict(m) for m in metrics], columns=columns)
