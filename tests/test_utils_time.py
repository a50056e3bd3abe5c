"""
Tests for utils.time module - UTC timestamp utilities.

This module tests all time utility functions to ensure:
- All timestamps are timezone-aware (UTC)
- Formats use ISO 8601 with a 'Z' suffix
- Run ids are filesystem-safe (hyphens instead of colons)
- Naive datetimes are rejected
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from llm_visibility.utils.time import run_id_from_timestamp, utc_now, utc_timestamp


class TestUtcNow:
    """Test utc_now() function."""

    def test_returns_timezone_aware_utc(self):
        now = utc_now()

        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    @freeze_time("2026-03-02 08:30:45")
    def test_frozen(self):
        assert utc_now() == datetime(2026, 3, 2, 8, 30, 45, tzinfo=UTC)


class TestUtcTimestamp:
    """Test utc_timestamp() function."""

    @freeze_time("2026-03-02 08:30:45.123456")
    def test_format(self):
        assert utc_timestamp() == "2026-03-02T08:30:45Z"


class TestRunIdFromTimestamp:
    """Test run_id_from_timestamp() function."""

    def test_explicit_datetime(self):
        dt = datetime(2026, 3, 2, 8, 30, 45, tzinfo=UTC)

        assert run_id_from_timestamp(dt) == "2026-03-02T08-30-45Z"

    @freeze_time("2026-03-02 08:30:45")
    def test_defaults_to_now(self):
        assert run_id_from_timestamp() == "2026-03-02T08-30-45Z"

    def test_no_colons(self):
        assert ":" not in run_id_from_timestamp()

    def test_naive_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            run_id_from_timestamp(datetime(2026, 3, 2, 8, 30, 45))

    def test_other_timezone_formatted_as_is(self):
        dt = datetime(2026, 3, 2, 8, 30, 45, tzinfo=timezone(timedelta(hours=2)))

        assert run_id_from_timestamp(dt.astimezone(UTC)) == "2026-03-02T06-30-45Z"
