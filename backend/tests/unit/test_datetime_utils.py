"""
Unit tests for datetime utilities.

Tests UTC normalization, ISO-8601 parsing and formatting.
"""

import pytest
from datetime import datetime, timezone, timedelta

from utils.datetime_utils import (
    ensure_utc, format_datetime, format_iso_utc,
    parse_datetime_string_to_utc, parse_datetime_to_utc, utc_now
)


class TestUtcNow:

    def test_returns_aware_utc(self):
        now = utc_now()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)


class TestEnsureUtc:

    def test_naive_is_treated_as_utc(self):
        result = ensure_utc(datetime(2025, 1, 1, 10, 0))
        assert result == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_converts_other_offsets(self):
        plus_two = timezone(timedelta(hours=2))
        result = ensure_utc(datetime(2025, 1, 1, 12, 0, tzinfo=plus_two))
        assert result == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc

    def test_none_passthrough(self):
        assert ensure_utc(None) is None


class TestParsing:

    def test_parses_trailing_z(self):
        assert parse_datetime_string_to_utc("2025-10-25T10:00:00Z") == datetime(2025, 10, 25, 10, 0, tzinfo=timezone.utc)

    def test_parses_milliseconds_with_z(self):
        result = parse_datetime_string_to_utc("2025-10-25T10:00:00.000Z")
        assert result == datetime(2025, 10, 25, 10, 0, tzinfo=timezone.utc)

    def test_parses_offset(self):
        result = parse_datetime_string_to_utc("2025-10-25T12:00:00+02:00")
        assert result == datetime(2025, 10, 25, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["", "   ", "not-a-date", "2025-13-01T00:00:00Z"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            parse_datetime_string_to_utc(value)

    def test_parse_datetime_to_utc_accepts_datetime(self):
        dt = datetime(2025, 1, 1, 9, 0)
        assert parse_datetime_to_utc(dt) == datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


class TestFormatting:

    def test_format_iso_utc(self):
        plus_two = timezone(timedelta(hours=2))
        assert format_iso_utc(datetime(2025, 10, 25, 12, 0, tzinfo=plus_two)) == "2025-10-25T10:00:00Z"

    def test_format_iso_utc_none(self):
        assert format_iso_utc(None) is None

    def test_format_datetime(self):
        result = format_datetime(datetime(2025, 10, 25, 14, 5, tzinfo=timezone.utc))
        assert result == "Sat, Oct 25 2025 at 2:05 PM UTC"
