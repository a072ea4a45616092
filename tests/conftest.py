import logging
from datetime import datetime
from typing import Iterable, Optional

import pytest

from swiftdispatch import config
from swiftdispatch.dispatch import DispatchEngine
from swiftdispatch.models import (
    Address,
    Coordinate,
    Delivery,
    DeliveryStatus,
    Driver,
    DriverStatus,
    PackageDetails,
    VehicleType,
)
from swiftdispatch.store import InMemoryDeliveryStore, InMemoryDriverStore, load_sample_data


def make_address(lat: float, lng: float, street: str = "1 Test St") -> Address:
    return Address(street=street, city="New York", postal_code="10001", coordinates=Coordinate(lat, lng))


def make_delivery(
    delivery_id: str,
    lat: float = 40.72,
    lng: float = -74.01,
    status: DeliveryStatus = DeliveryStatus.PENDING,
    driver_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    value: float = 10.0,
) -> Delivery:
    return Delivery(
        id=delivery_id,
        tracking_id=f"SW{delivery_id.zfill(6)}",
        pickup_address=make_address(lat, lng),
        delivery_address=make_address(lat + 0.02, lng + 0.02, street="2 Drop Rd"),
        package_details=PackageDetails(type="document", weight=1.0, value=value),
        status=status,
        driver_id=driver_id,
        created_at=created_at or datetime(2024, 6, 10, 9, 0),
        customer_name=f"Customer {delivery_id}",
    )


def make_driver(
    driver_id: str,
    lat: float = 40.71,
    lng: float = -74.00,
    status: DriverStatus = DriverStatus.AVAILABLE,
    rating: float = 4.5,
    total: int = 0,
    active: Iterable[str] = (),
    name: Optional[str] = None,
) -> Driver:
    return Driver(
        id=driver_id,
        name=name or f"Driver {driver_id}",
        vehicle_type=VehicleType.CAR,
        location=Coordinate(lat, lng),
        status=status,
        rating=rating,
        total_deliveries=total,
        active_deliveries=set(active),
        email=f"driver{driver_id}@swiftship.com",
    )


def build_engine(deliveries, drivers, driver_store_cls=InMemoryDriverStore) -> DispatchEngine:
    return DispatchEngine(InMemoryDeliveryStore(list(deliveries)), driver_store_cls(list(drivers)))


def assert_consistent(engine: DispatchEngine) -> None:
    """Cross-record invariants that must hold after every engine operation."""
    deliveries, drivers = engine.snapshot()
    by_id = {d.id: d for d in drivers}
    for delivery in deliveries:
        assert (delivery.driver_id is not None) == delivery.status.carries_driver, delivery
        if delivery.status in (DeliveryStatus.ASSIGNED, DeliveryStatus.PICKUP, DeliveryStatus.IN_TRANSIT):
            assert delivery.id in by_id[delivery.driver_id].active_deliveries
    for driver in drivers:
        if driver.status == DriverStatus.AVAILABLE:
            assert not driver.active_deliveries, driver


@pytest.fixture(autouse=True)
def restore_config():
    """Tests flip the operational toggles; put them back afterwards."""
    saved = (config.ALLOW_CANCELLATIONS, config.REQUIRE_SIGNATURE, config.AUTO_ASSIGNMENT)
    yield
    config.ALLOW_CANCELLATIONS, config.REQUIRE_SIGNATURE, config.AUTO_ASSIGNMENT = saved


@pytest.fixture
def sample_stores():
    """Fresh stores loaded from the bundled data/ directory."""
    return load_sample_data()


@pytest.fixture
def sample_engine(sample_stores):
    deliveries, drivers = sample_stores
    return DispatchEngine(deliveries, drivers)


@pytest.fixture
def two_driver_engine():
    """One pending delivery near driver A; driver B further away."""
    return build_engine(
        [make_delivery("d1", lat=40.72, lng=-74.01)],
        [make_driver("A", lat=40.71, lng=-74.00), make_driver("B", lat=40.81, lng=-74.10)],
    )


@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO, logger="swiftdispatch")
    return caplog
