# swiftdispatch/store.py
"""
Keyed record stores for deliveries and drivers.

The dispatch engine only talks to the ``DeliveryStore`` / ``DriverStore``
interfaces; the in-memory implementations here hold everything in process
memory (no durability) and are what the dashboard, the CLI and the tests use.

Stores hand out deep copies. Mutating a returned record never changes the
stored one; all writes go through ``update``.
"""

from __future__ import annotations

import copy
import json
import logging
import random
import threading
import time
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from . import config, utils
from .errors import NotFoundError
from .models import (
    Address,
    Coordinate,
    Delivery,
    DeliveryStatus,
    Driver,
    DriverStatus,
    PackageDetails,
    ProofOfDelivery,
    VehicleType,
)

logger = logging.getLogger(__name__)


class DeliveryStore(Protocol):
    def get_all(self) -> List[Delivery]: ...

    def get_by_id(self, delivery_id: str) -> Optional[Delivery]: ...

    def create(self, data: Dict[str, Any]) -> Delivery: ...

    def update(self, delivery_id: str, **changes: Any) -> Delivery: ...

    def delete(self, delivery_id: str) -> bool: ...


class DriverStore(Protocol):
    def get_all(self) -> List[Driver]: ...

    def get_by_id(self, driver_id: str) -> Optional[Driver]: ...

    def get_available(self) -> List[Driver]: ...

    def create(self, data: Dict[str, Any]) -> Driver: ...

    def update(self, driver_id: str, **changes: Any) -> Driver: ...

    def update_location(self, driver_id: str, location: Coordinate) -> Driver: ...

    def delete(self, driver_id: str) -> bool: ...


def _new_id(existing: Dict[str, Any]) -> str:
    """Epoch-millisecond id, bumped until it is unused."""
    candidate = int(time.time() * 1000)
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


def _coerce_address(value: Union[Address, Dict[str, Any]]) -> Address:
    return value if isinstance(value, Address) else Address.from_dict(value)


def _coerce_package(value: Union[PackageDetails, Dict[str, Any], None]) -> PackageDetails:
    if value is None:
        return PackageDetails()
    return value if isinstance(value, PackageDetails) else PackageDetails.from_dict(value)


def _coerce_location(value: Union[Coordinate, Dict[str, Any]]) -> Coordinate:
    return value if isinstance(value, Coordinate) else Coordinate.from_dict(value)


class InMemoryDeliveryStore:
    """
    Delivery records keyed by id, kept in insertion order.

    Insertion order is the pending queue order used by batch assignment:
    new bookings go to the back (FIFO). The dashboard this engine replaces
    pushed new bookings to the front of its list instead.
    """

    def __init__(self, deliveries: Optional[List[Delivery]] = None) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, Delivery] = {}
        for delivery in deliveries or []:
            self._records[delivery.id] = copy.deepcopy(delivery)

    def __len__(self) -> int:
        return len(self._records)

    def get_all(self) -> List[Delivery]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._records.values()]

    def get_by_id(self, delivery_id: str) -> Optional[Delivery]:
        with self._lock:
            delivery = self._records.get(delivery_id)
            return copy.deepcopy(delivery) if delivery is not None else None

    def create(self, data: Dict[str, Any]) -> Delivery:
        """
        Book a new delivery.

        The store assigns the id and tracking id, forces ``pending`` with no
        driver, stamps ``created_at`` and sets the ETA ``DEFAULT_ETA_MINUTES``
        ahead. Any id/status/driver supplied by the caller is ignored.

        Args:
            data: Must contain ``pickup_address`` and ``delivery_address``
                (``Address`` or dict); may contain ``package_details``,
                ``customer_name``, ``customer_phone`` and ``priority``.

        Raises:
            KeyError: If either address is missing
            ValueError: If the package details are invalid
        """
        with self._lock:
            delivery_id = _new_id(self._records)
            tracking_id = utils.generate_tracking_id(int(delivery_id))
            taken = {d.tracking_id for d in self._records.values()}
            while tracking_id in taken:
                tracking_id = utils.generate_tracking_id(int(tracking_id[len(config.TRACKING_PREFIX):]) + 1)

            now = utils.parse_timestamp(data.get("created_at")) or datetime.now()
            delivery = Delivery(
                id=delivery_id,
                tracking_id=tracking_id,
                pickup_address=_coerce_address(data["pickup_address"]),
                delivery_address=_coerce_address(data["delivery_address"]),
                package_details=_coerce_package(data.get("package_details")),
                status=DeliveryStatus.PENDING,
                driver_id=None,
                created_at=now,
                estimated_time=utils.add_minutes(now, config.DEFAULT_ETA_MINUTES),
                customer_name=data.get("customer_name", ""),
                customer_phone=data.get("customer_phone", ""),
                priority=data.get("priority", "standard"),
            )
            self._records[delivery.id] = delivery
            logger.info(f"Booked delivery {delivery.id} ({delivery.tracking_id})")
            return copy.deepcopy(delivery)

    def update(self, delivery_id: str, **changes: Any) -> Delivery:
        with self._lock:
            current = self._records.get(delivery_id)
            if current is None:
                raise NotFoundError(f"Delivery {delivery_id} not found", delivery_id)
            if changes.get("id", delivery_id) != delivery_id:
                raise ValueError("Record ids are immutable")
            updated = replace(current, **changes)
            self._records[delivery_id] = copy.deepcopy(updated)
            return updated

    def delete(self, delivery_id: str) -> bool:
        with self._lock:
            if delivery_id not in self._records:
                raise NotFoundError(f"Delivery {delivery_id} not found", delivery_id)
            del self._records[delivery_id]
            return True


class InMemoryDriverStore:
    """Driver records keyed by id."""

    def __init__(
        self,
        drivers: Optional[List[Driver]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._lock = threading.RLock()
        self._records: Dict[str, Driver] = {}
        self._rng = rng or random.Random()
        for driver in drivers or []:
            self._records[driver.id] = copy.deepcopy(driver)

    def __len__(self) -> int:
        return len(self._records)

    def get_all(self) -> List[Driver]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._records.values()]

    def get_by_id(self, driver_id: str) -> Optional[Driver]:
        with self._lock:
            driver = self._records.get(driver_id)
            return copy.deepcopy(driver) if driver is not None else None

    def get_available(self) -> List[Driver]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._records.values() if d.is_available]

    def create(self, data: Dict[str, Any]) -> Driver:
        """
        Onboard a driver: status available, no active deliveries, rating 5.0.

        Without an explicit ``location`` the driver is placed at a random
        offset of up to ``DEPOT_JITTER_DEG / 2`` around the depot.
        """
        with self._lock:
            if "location" in data:
                location = _coerce_location(data["location"])
            else:
                half = config.DEPOT_JITTER_DEG / 2
                location = Coordinate(
                    lat=config.DEPOT_LAT + self._rng.uniform(-half, half),
                    lng=config.DEPOT_LNG + self._rng.uniform(-half, half),
                )
            driver = Driver(
                id=_new_id(self._records),
                name=data["name"],
                vehicle_type=VehicleType(data.get("vehicle_type", VehicleType.CAR.value)),
                location=location,
                status=DriverStatus.AVAILABLE,
                rating=config.DEFAULT_DRIVER_RATING,
                total_deliveries=0,
                active_deliveries=set(),
                email=data.get("email", ""),
                phone=data.get("phone", ""),
                vehicle_info=dict(data.get("vehicle_info", {})),
            )
            self._records[driver.id] = driver
            logger.info(f"Onboarded driver {driver.id} ({driver.name})")
            return copy.deepcopy(driver)

    def update(self, driver_id: str, **changes: Any) -> Driver:
        with self._lock:
            current = self._records.get(driver_id)
            if current is None:
                raise NotFoundError(f"Driver {driver_id} not found", driver_id)
            if changes.get("id", driver_id) != driver_id:
                raise ValueError("Record ids are immutable")
            updated = replace(current, **changes)
            self._records[driver_id] = copy.deepcopy(updated)
            return updated

    def update_location(self, driver_id: str, location: Coordinate) -> Driver:
        return self.update(driver_id, location=location)

    def delete(self, driver_id: str) -> bool:
        with self._lock:
            if driver_id not in self._records:
                raise NotFoundError(f"Driver {driver_id} not found", driver_id)
            del self._records[driver_id]
            return True


# =============================================================================
# SAMPLE DATA LOADING
# =============================================================================

def delivery_from_record(row: Dict[str, Any]) -> Delivery:
    """Build a Delivery from a camelCase JSON record as shipped in data/."""
    proof = None
    if row.get("signature") or row.get("proofPhoto"):
        proof = ProofOfDelivery(signature=row.get("signature"), photo=row.get("proofPhoto"))
    customer = row.get("customer", {})
    return Delivery(
        id=str(row["id"]),
        tracking_id=row["trackingId"],
        status=DeliveryStatus(row.get("status", "pending")),
        pickup_address=Address.from_dict(row["pickupAddress"]),
        delivery_address=Address.from_dict(row["deliveryAddress"]),
        package_details=PackageDetails.from_dict(row.get("packageDetails", {})),
        driver_id=row.get("driverId") or None,
        created_at=utils.parse_timestamp(row.get("createdAt")) or datetime.now(),
        estimated_time=utils.parse_timestamp(row.get("estimatedTime")),
        proof=proof,
        customer_name=customer.get("name", ""),
        customer_phone=customer.get("phone", ""),
        priority=row.get("priority", "standard"),
    )


def driver_from_record(row: Dict[str, Any]) -> Driver:
    """Build a Driver from a camelCase JSON record as shipped in data/."""
    return Driver(
        id=str(row["id"]),
        name=row["name"],
        vehicle_type=VehicleType(row["vehicleType"]),
        location=Coordinate.from_dict(row["location"]),
        status=DriverStatus(row.get("status", "available")),
        rating=float(row.get("rating", config.DEFAULT_DRIVER_RATING)),
        total_deliveries=int(row.get("totalDeliveries", 0)),
        active_deliveries=set(str(i) for i in row.get("activeDeliveries", [])),
        email=row.get("email", ""),
        phone=row.get("phone", ""),
        vehicle_info=dict(row.get("vehicleInfo", {})),
    )


def load_sample_data(
    data_dir: Union[str, Path, None] = None,
) -> Tuple[InMemoryDeliveryStore, InMemoryDriverStore]:
    """
    Load the bundled sample deliveries and drivers into fresh in-memory stores.

    Args:
        data_dir: Directory containing deliveries.json and drivers.json
            (default: ``config.DATA_DIR``)

    Returns:
        Tuple of (delivery_store, driver_store)

    Raises:
        FileNotFoundError: If either file is missing
        ValueError: If a record is malformed
    """
    base = Path(data_dir) if data_dir is not None else config.DATA_DIR
    delivery_file = base / "deliveries.json"
    driver_file = base / "drivers.json"
    if not delivery_file.exists():
        raise FileNotFoundError(f"Delivery file not found: {delivery_file}")
    if not driver_file.exists():
        raise FileNotFoundError(f"Driver file not found: {driver_file}")

    with open(delivery_file, "r", encoding="utf-8") as f:
        delivery_rows = json.load(f)
    with open(driver_file, "r", encoding="utf-8") as f:
        driver_rows = json.load(f)

    try:
        deliveries = [delivery_from_record(row) for row in delivery_rows]
    except (KeyError, ValueError) as e:
        raise ValueError(f"Invalid delivery data in {delivery_file}: {e}")
    try:
        drivers = [driver_from_record(row) for row in driver_rows]
    except (KeyError, ValueError) as e:
        raise ValueError(f"Invalid driver data in {driver_file}: {e}")

    logger.info(f"Loaded {len(deliveries)} deliveries and {len(drivers)} drivers from {base}")
    return InMemoryDeliveryStore(deliveries), InMemoryDriverStore(drivers)
