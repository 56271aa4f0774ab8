"""Unit tests for the station context."""

import pytest

from airfeed.services.station_context import StationContext


class TestStationContext:
    """Tests for URL joining and station podcast detection."""

    @pytest.mark.parametrize(
        ("station_url", "path"),
        [
            ("http://radio.test/", "rest/media"),
            ("http://radio.test", "rest/media"),
            ("http://radio.test/", "/rest/media"),
            ("http://radio.test//", "/rest/media"),
        ],
    )
    def test_absolute_url_has_one_slash(self, station_url: str, path: str) -> None:
        station = StationContext(station_url, "key", 1)
        assert station.absolute_url(path) == "http://radio.test/rest/media"

    def test_is_station_podcast(self) -> None:
        station = StationContext("http://radio.test/", "key", 3)
        assert station.is_station_podcast(3) is True
        assert station.is_station_podcast(1) is False
