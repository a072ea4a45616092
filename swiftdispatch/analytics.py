# swiftdispatch/analytics.py
"""
Operations reporting for the dashboard and analytics views.

Everything here is a read-only aggregation over delivery/driver snapshots
(see ``DispatchEngine.snapshot``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

import pandas as pd

from . import config
from .models import ACTIVE_STATUSES, Delivery, DeliveryStatus, Driver, DriverStatus, VehicleType


@dataclass(frozen=True)
class DashboardStats:
    active_deliveries: int
    completed: int
    pending: int
    available_drivers: int
    busy_drivers: int
    offline_drivers: int


@dataclass(frozen=True)
class OperationsSummary:
    """
    Headline KPIs.

    Attributes:
        completion_rate: Delivered share of all deliveries, percent (1 decimal)
        cancel_rate: Cancelled share of all deliveries, percent (1 decimal)
        average_driver_rating: Mean fleet rating (1 decimal)
        total_revenue: Sum of declared package values
    """
    total: int
    completed: int
    cancelled: int
    completion_rate: float
    cancel_rate: float
    average_driver_rating: float
    total_revenue: float


def status_counts(deliveries: Sequence[Delivery]) -> Dict[DeliveryStatus, int]:
    """Deliveries per status; every status is present."""
    counts = {status: 0 for status in DeliveryStatus}
    for delivery in deliveries:
        counts[delivery.status] += 1
    return counts


def dashboard_stats(deliveries: Sequence[Delivery], drivers: Sequence[Driver]) -> DashboardStats:
    counts = status_counts(deliveries)
    return DashboardStats(
        active_deliveries=sum(counts[s] for s in ACTIVE_STATUSES),
        completed=counts[DeliveryStatus.DELIVERED],
        pending=counts[DeliveryStatus.PENDING],
        available_drivers=sum(1 for d in drivers if d.status == DriverStatus.AVAILABLE),
        busy_drivers=sum(1 for d in drivers if d.status == DriverStatus.BUSY),
        offline_drivers=sum(1 for d in drivers if d.status == DriverStatus.OFFLINE),
    )


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole > 0 else 0.0


def operations_summary(deliveries: Sequence[Delivery], drivers: Sequence[Driver]) -> OperationsSummary:
    counts = status_counts(deliveries)
    total = len(deliveries)
    completed = counts[DeliveryStatus.DELIVERED]
    cancelled = counts[DeliveryStatus.CANCELLED]
    avg_rating = round(sum(d.rating for d in drivers) / len(drivers), 1) if drivers else 0.0
    return OperationsSummary(
        total=total,
        completed=completed,
        cancelled=cancelled,
        completion_rate=_percent(completed, total),
        cancel_rate=_percent(cancelled, total),
        average_driver_rating=avg_rating,
        total_revenue=sum(d.package_details.value for d in deliveries),
    )


def daily_volume(
    deliveries: Sequence[Delivery],
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> pd.Series:
    """
    Deliveries created per day over the last ``days`` days, oldest first.

    Args:
        deliveries: Deliveries to count (by ``created_at``)
        days: Window length (default ``config.VOLUME_WINDOW_DAYS``)
        today: Last day of the window (default: today)

    Returns:
        Series indexed by date with integer counts, zero-filled
    """
    days = days or config.VOLUME_WINDOW_DAYS
    today = today or datetime.now().date()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    counts = {day: 0 for day in window}
    for delivery in deliveries:
        day = delivery.created_at.date()
        if day in counts:
            counts[day] += 1
    return pd.Series(counts, name="deliveries", dtype="int64")


def top_drivers_by_volume(drivers: Sequence[Driver], limit: Optional[int] = None) -> List[Driver]:
    """Drivers with the most lifetime deliveries, descending (stable for ties)."""
    limit = limit or config.TOP_DRIVERS_LIMIT
    return sorted(drivers, key=lambda d: d.total_deliveries, reverse=True)[:limit]


def search_deliveries(
    deliveries: Sequence[Delivery],
    term: str = "",
    status: Optional[DeliveryStatus] = None,
) -> List[Delivery]:
    """Filter by status and a case-insensitive match on tracking id, customer or addresses."""
    needle = term.strip().lower()
    matches = []
    for delivery in deliveries:
        if status is not None and delivery.status != status:
            continue
        if needle:
            haystack = " ".join([
                delivery.tracking_id,
                delivery.customer_name,
                delivery.pickup_address.street,
                delivery.pickup_address.city,
                delivery.delivery_address.street,
                delivery.delivery_address.city,
            ]).lower()
            if needle not in haystack:
                continue
        matches.append(delivery)
    return matches


def search_drivers(
    drivers: Sequence[Driver],
    term: str = "",
    status: Optional[DriverStatus] = None,
    vehicle_type: Optional[VehicleType] = None,
) -> List[Driver]:
    """Filter by status, vehicle type and a case-insensitive match on name, email or plate."""
    needle = term.strip().lower()
    matches = []
    for driver in drivers:
        if status is not None and driver.status != status:
            continue
        if vehicle_type is not None and driver.vehicle_type != vehicle_type:
            continue
        if needle:
            plate = str(driver.vehicle_info.get("licensePlate", ""))
            if not any(needle in field.lower() for field in (driver.name, driver.email, plate)):
                continue
        matches.append(driver)
    return matches
