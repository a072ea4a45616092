# swiftdispatch/models.py
"""
Core domain models for the SwiftShip dispatch engine.

This module defines the fundamental data structures used throughout the engine:
- Coordinate / Address: where things are
- PackageDetails: what is being moved
- Delivery: a booking moving from pickup to dropoff through its status lifecycle
- Driver: a courier with vehicle, rating history and current workload
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set


class DeliveryStatus(Enum):
    """Lifecycle states for a delivery."""
    PENDING = "pending"        # Booked, awaiting a driver
    ASSIGNED = "assigned"      # Bound to a driver, not yet collected
    PICKUP = "pickup"          # Driver is at/heading to the pickup
    IN_TRANSIT = "in_transit"  # Package collected, on the way
    DELIVERED = "delivered"    # Terminal: handed over
    CANCELLED = "cancelled"    # Terminal: abandoned

    @property
    def is_terminal(self) -> bool:
        return self in (DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED)

    @property
    def carries_driver(self) -> bool:
        """Whether a delivery in this state must reference a driver."""
        return self in DRIVER_BOUND_STATUSES


DRIVER_BOUND_STATUSES = frozenset({
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKUP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
})

ACTIVE_STATUSES = frozenset({
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKUP,
    DeliveryStatus.IN_TRANSIT,
})


class DriverStatus(Enum):
    """
    Availability of a driver.

    - AVAILABLE: idle, holds no active deliveries, eligible for assignment
    - BUSY: holds at least one active delivery
    - OFFLINE: off shift, never eligible
    """
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(Enum):
    VAN = "van"
    CAR = "car"
    MOTORCYCLE = "motorcycle"
    BICYCLE = "bicycle"


@dataclass(frozen=True)
class Coordinate:
    """A (lat, lng) pair in decimal degrees."""
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Coordinate:
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class Address:
    street: str
    city: str
    postal_code: str
    coordinates: Coordinate

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Address:
        return cls(
            street=data.get("street", ""),
            city=data.get("city", ""),
            postal_code=str(data.get("postalCode", data.get("postal_code", ""))),
            coordinates=Coordinate.from_dict(data["coordinates"]),
        )


@dataclass
class PackageDetails:
    """
    What is being shipped.

    Attributes:
        type: Free-form category ('document', 'electronics', 'medical', ...)
        weight: Weight in kg, must be >= 0
        value: Declared value, must be >= 0
        dimensions: Free-form size description
        instructions: Handling notes for the driver
    """
    type: str = "other"
    weight: float = 0.0
    value: float = 0.0
    dimensions: str = ""
    instructions: str = ""

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"Package weight must be non-negative, got {self.weight}")
        if self.value < 0:
            raise ValueError(f"Package value must be non-negative, got {self.value}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PackageDetails:
        return cls(
            type=data.get("type", "other"),
            weight=float(data.get("weight", 0.0)),
            value=float(data.get("value", 0.0)),
            dimensions=str(data.get("dimensions", "")),
            instructions=data.get("instructions", ""),
        )


@dataclass
class ProofOfDelivery:
    """Optional handover evidence. Stored as given, never validated."""
    signature: Optional[str] = None
    photo: Optional[str] = None


@dataclass
class Delivery:
    """
    A delivery booking.

    Invariant: ``driver_id`` is set if and only if ``status`` is one of
    assigned, pickup, in_transit or delivered.
    """
    id: str
    tracking_id: str
    pickup_address: Address
    delivery_address: Address
    package_details: PackageDetails = field(default_factory=PackageDetails)
    status: DeliveryStatus = DeliveryStatus.PENDING
    driver_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    estimated_time: Optional[datetime] = None
    proof: Optional[ProofOfDelivery] = None
    customer_name: str = ""
    customer_phone: str = ""
    priority: str = "standard"

    @property
    def pickup_loc(self) -> Coordinate:
        return self.pickup_address.coordinates

    @property
    def dropoff_loc(self) -> Coordinate:
        return self.delivery_address.coordinates

    def __repr__(self) -> str:
        return f"Delivery({self.id}, {self.status.value}, driver={self.driver_id})"


@dataclass
class Driver:
    """
    A courier in the delivery fleet.

    Attributes:
        id: Unique identifier
        name: Display name
        vehicle_type: One of van, car, motorcycle, bicycle
        status: available, busy or offline
        location: Last reported position (telemetry, independent of assignment)
        rating: Customer rating in [0, 5]
        total_deliveries: Lifetime completed deliveries

    Dynamic State:
        active_deliveries: Ids of deliveries currently owned by this driver.
            Must be empty while the driver is available.
    """
    id: str
    name: str
    vehicle_type: VehicleType
    location: Coordinate
    status: DriverStatus = DriverStatus.AVAILABLE
    rating: float = 5.0
    total_deliveries: int = 0
    active_deliveries: Set[str] = field(default_factory=set)
    email: str = ""
    phone: str = ""
    vehicle_info: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.rating <= 5.0:
            raise ValueError(f"Driver rating must be within [0, 5], got {self.rating}")
        if self.total_deliveries < 0:
            raise ValueError(f"total_deliveries must be non-negative, got {self.total_deliveries}")

    @property
    def is_available(self) -> bool:
        return self.status == DriverStatus.AVAILABLE

    def __repr__(self) -> str:
        return f"Driver({self.id}, {self.status.value}, active={len(self.active_deliveries)})"
