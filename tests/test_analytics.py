from datetime import date, datetime

import pytest

from swiftdispatch import analytics
from swiftdispatch.models import DeliveryStatus, DriverStatus, VehicleType
from tests.conftest import make_delivery


class TestDashboard:
    def test_sample_stats(self, sample_engine):
        deliveries, drivers = sample_engine.snapshot()
        stats = analytics.dashboard_stats(deliveries, drivers)

        assert stats.active_deliveries == 2
        assert stats.completed == 1
        assert stats.pending == 4
        assert (stats.available_drivers, stats.busy_drivers, stats.offline_drivers) == (3, 2, 1)

    def test_status_counts_cover_every_status(self):
        counts = analytics.status_counts([make_delivery("a"), make_delivery("b")])
        assert counts[DeliveryStatus.PENDING] == 2
        assert set(counts) == set(DeliveryStatus)
        assert counts[DeliveryStatus.DELIVERED] == 0

    def test_operations_summary(self, sample_engine):
        summary = analytics.operations_summary(*sample_engine.snapshot())
        assert summary.total == 8
        assert summary.completion_rate == 12.5
        assert summary.cancel_rate == 12.5
        assert summary.average_driver_rating == 4.3
        assert summary.total_revenue == pytest.approx(2738.5)

    def test_operations_summary_empty(self):
        summary = analytics.operations_summary([], [])
        assert summary.completion_rate == 0.0
        assert summary.average_driver_rating == 0.0


class TestVolume:
    def test_daily_volume_window(self):
        deliveries = [
            make_delivery("a", created_at=datetime(2024, 6, 10, 9, 0)),
            make_delivery("b", created_at=datetime(2024, 6, 10, 17, 0)),
            make_delivery("c", created_at=datetime(2024, 6, 8, 12, 0)),
            make_delivery("old", created_at=datetime(2024, 5, 1, 12, 0)),
        ]
        series = analytics.daily_volume(deliveries, days=3, today=date(2024, 6, 10))

        assert list(series.index) == [date(2024, 6, 8), date(2024, 6, 9), date(2024, 6, 10)]
        assert list(series) == [1, 0, 2]
        assert series.name == "deliveries"

    def test_top_drivers_by_volume(self, sample_engine):
        _, drivers = sample_engine.snapshot()
        top = analytics.top_drivers_by_volume(drivers, limit=3)
        assert [d.name for d in top] == ["James Okafor", "Marcus Johnson", "Sarah Chen"]


class TestSearch:
    def test_search_drivers_by_plate(self, sample_engine):
        _, drivers = sample_engine.snapshot()
        assert [d.id for d in analytics.search_drivers(drivers, "nyc-7733")] == ["2"]

    def test_search_drivers_filters(self, sample_engine):
        _, drivers = sample_engine.snapshot()
        available = analytics.search_drivers(drivers, status=DriverStatus.AVAILABLE)
        assert [d.id for d in available] == ["2", "3", "6"]
        vans = analytics.search_drivers(drivers, vehicle_type=VehicleType.VAN)
        assert [d.id for d in vans] == ["1", "5"]

    def test_search_deliveries(self, sample_engine):
        deliveries, _ = sample_engine.snapshot()
        assert [d.id for d in analytics.search_deliveries(deliveries, "brooklyn")] == ["1008"]
        assert [d.id for d in analytics.search_deliveries(deliveries, "SW100105")] == ["1005"]
        pending = analytics.search_deliveries(deliveries, status=DeliveryStatus.PENDING)
        assert [d.id for d in pending] == ["1001", "1004", "1007", "1008"]
