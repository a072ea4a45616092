from datetime import datetime

import pytest

from swiftdispatch import utils
from swiftdispatch.models import Coordinate


class TestDistance:
    def test_known_offset(self):
        assert utils.planar_distance(40.71, -74.00, 40.81, -74.10) == pytest.approx(15.698, abs=1e-3)

    def test_zero_for_identical_points(self):
        assert utils.planar_distance(40.7, -74.0, 40.7, -74.0) == 0.0

    def test_symmetric(self):
        a = Coordinate(40.7484, -73.9857)
        b = Coordinate(40.6782, -73.9442)
        assert utils.distance(a, b) == utils.distance(b, a)

    def test_non_negative(self):
        assert utils.planar_distance(41.0, -73.0, 40.0, -74.0) > 0

    def test_format_distance(self):
        assert utils.format_distance(1.234) == "1.2 km"


class TestHelpers:
    def test_tracking_id_uses_last_six_digits(self):
        assert utils.generate_tracking_id(1718000123456) == "SW123456"

    def test_tracking_id_pads_short_stamps(self):
        assert utils.generate_tracking_id(42) == "SW000042"

    def test_add_minutes(self):
        assert utils.add_minutes(datetime(2024, 6, 10, 9, 30), 60) == datetime(2024, 6, 10, 10, 30)
        assert utils.add_minutes(datetime(2024, 6, 10, 9, 30), -30) == datetime(2024, 6, 10, 9, 0)

    def test_format_time_duration(self):
        assert utils.format_time_duration(45) == "45m"
        assert utils.format_time_duration(83) == "1h 23m"

    def test_parse_timestamp(self):
        assert utils.parse_timestamp("2024-06-10T09:15:00Z") == datetime(2024, 6, 10, 9, 15)
        assert utils.parse_timestamp("2024-06-10T09:15:00") == datetime(2024, 6, 10, 9, 15)
        assert utils.parse_timestamp(None) is None

    def test_parse_timestamp_rejects_garbage(self):
        with pytest.raises(ValueError):
            utils.parse_timestamp("yesterday")
