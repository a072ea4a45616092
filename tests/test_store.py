import json
import random
from datetime import timedelta

import pytest

from swiftdispatch import config
from swiftdispatch.errors import NotFoundError
from swiftdispatch.models import DeliveryStatus, DriverStatus, VehicleType
from swiftdispatch.store import InMemoryDeliveryStore, InMemoryDriverStore, load_sample_data
from tests.conftest import make_address, make_delivery, make_driver


def booking(**extra):
    data = {
        "pickup_address": make_address(40.75, -73.99),
        "delivery_address": {
            "street": "9 Elm St",
            "city": "New York",
            "postalCode": "10002",
            "coordinates": {"lat": 40.71, "lng": -73.99},
        },
        "package_details": {"type": "document", "weight": 0.4, "value": 25},
        "customer_name": "Jo Park",
    }
    data.update(extra)
    return data


class TestDeliveryStore:
    def test_create_forces_pending(self):
        store = InMemoryDeliveryStore()
        delivery = store.create(booking(status="delivered", driver_id="7"))

        assert delivery.status == DeliveryStatus.PENDING
        assert delivery.driver_id is None
        assert delivery.tracking_id.startswith(config.TRACKING_PREFIX)
        assert delivery.estimated_time - delivery.created_at == timedelta(minutes=config.DEFAULT_ETA_MINUTES)
        assert delivery.delivery_address.postal_code == "10002"
        assert delivery.package_details.value == 25.0

    def test_create_gives_unique_ids(self):
        store = InMemoryDeliveryStore()
        created = [store.create(booking()) for _ in range(20)]
        assert len({d.id for d in created}) == 20
        assert len({d.tracking_id for d in created}) == 20
        assert [d.id for d in store.get_all()] == [d.id for d in created]

    def test_create_rejects_negative_weight(self):
        with pytest.raises(ValueError):
            InMemoryDeliveryStore().create(booking(package_details={"weight": -1}))

    def test_create_requires_addresses(self):
        with pytest.raises(KeyError):
            InMemoryDeliveryStore().create({"customer_name": "x"})

    def test_reads_are_copies(self):
        store = InMemoryDeliveryStore([make_delivery("d1")])
        copy = store.get_by_id("d1")
        copy.status = DeliveryStatus.CANCELLED
        store.get_all()[0].customer_name = "changed"

        stored = store.get_by_id("d1")
        assert stored.status == DeliveryStatus.PENDING
        assert stored.customer_name == "Customer d1"

    def test_update(self):
        store = InMemoryDeliveryStore([make_delivery("d1")])
        updated = store.update("d1", priority="express")
        assert updated.priority == "express"
        assert store.get_by_id("d1").priority == "express"

    def test_update_errors(self):
        store = InMemoryDeliveryStore([make_delivery("d1")])
        with pytest.raises(NotFoundError):
            store.update("missing", priority="express")
        with pytest.raises(ValueError, match="immutable"):
            store.update("d1", id="d2")

    def test_delete(self):
        store = InMemoryDeliveryStore([make_delivery("d1")])
        assert store.delete("d1") is True
        assert store.get_by_id("d1") is None
        with pytest.raises(NotFoundError):
            store.delete("d1")


class TestDriverStore:
    def test_create_defaults(self):
        store = InMemoryDriverStore(rng=random.Random(7))
        driver = store.create({"name": "Kim Lee", "vehicle_type": "bicycle"})

        assert driver.status == DriverStatus.AVAILABLE
        assert driver.rating == config.DEFAULT_DRIVER_RATING
        assert driver.total_deliveries == 0
        assert driver.active_deliveries == set()
        assert driver.vehicle_type == VehicleType.BICYCLE
        half = config.DEPOT_JITTER_DEG / 2
        assert abs(driver.location.lat - config.DEPOT_LAT) <= half
        assert abs(driver.location.lng - config.DEPOT_LNG) <= half

    def test_create_with_location(self):
        driver = InMemoryDriverStore().create({"name": "Al", "location": {"lat": 40.7, "lng": -74.0}})
        assert (driver.location.lat, driver.location.lng) == (40.7, -74.0)
        assert driver.vehicle_type == VehicleType.CAR

    def test_get_available(self):
        store = InMemoryDriverStore([
            make_driver("a"),
            make_driver("b", status=DriverStatus.OFFLINE),
            make_driver("c", status=DriverStatus.BUSY, active=["x"]),
        ])
        assert [d.id for d in store.get_available()] == ["a"]

    def test_active_set_is_copied(self):
        store = InMemoryDriverStore([make_driver("a")])
        store.get_by_id("a").active_deliveries.add("leak")
        assert store.get_by_id("a").active_deliveries == set()

    def test_invalid_rating(self):
        with pytest.raises(ValueError):
            make_driver("a", rating=5.5)
        store = InMemoryDriverStore([make_driver("a")])
        with pytest.raises(ValueError):
            store.update("a", rating=-1.0)


class TestSampleData:
    def test_loads_bundled_files(self, sample_stores):
        deliveries, drivers = sample_stores
        assert len(deliveries) == 8
        assert len(drivers) == 6
        assert deliveries.get_by_id("1005").proof.signature == "E. Davis"
        assert drivers.get_by_id("1").active_deliveries == {"1002"}

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_sample_data(tmp_path)

    def test_malformed_record(self, tmp_path):
        (tmp_path / "deliveries.json").write_text(json.dumps([{"id": "1"}]))
        (tmp_path / "drivers.json").write_text("[]")
        with pytest.raises(ValueError, match="Invalid delivery data"):
            load_sample_data(tmp_path)
