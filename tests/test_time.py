"""
Tests for utils.time module - UTC timestamp utilities.

This module tests:
- All timestamps are timezone-aware (UTC)
- Format matches ISO 8601 with 'Z' suffix
- Deterministic behavior with time mocking (freezegun)
"""

from datetime import UTC, datetime

from freezegun import freeze_time

from txmigrate.utils.time import utc_now, utc_timestamp


class TestUtcNow:
    """Test utc_now() function."""

    def test_returns_timezone_aware_datetime(self):
        result = utc_now()
        assert isinstance(result, datetime)
        assert result.tzinfo == UTC

    @freeze_time("2025-11-02 08:30:45")
    def test_frozen_time_returns_expected_datetime(self):
        """utc_now() should return frozen time when using freezegun."""
        assert utc_now() == datetime(2025, 11, 2, 8, 30, 45, tzinfo=UTC)


class TestUtcTimestamp:
    """Test utc_timestamp() function."""

    @freeze_time("2025-11-02 08:30:45.123456")
    def test_format_is_iso8601_with_z_suffix(self):
        """Microseconds are dropped; the suffix marks UTC."""
        assert utc_timestamp() == "2025-11-02T08:30:45Z"

    def test_length_is_fixed(self):
        assert len(utc_timestamp()) == len("YYYY-MM-DDTHH:MM:SSZ")
