"""
Unit tests for date parsing and date-range filtering.
"""

from datetime import datetime, timedelta, timezone

import pytest

from usage_insights.core.dates import (
    filter_by_date_range,
    format_date_for_display,
    parse_date,
    parse_rfc3339,
)


class TestParseRfc3339:
    """Test strict RFC3339 parsing."""

    def test_zulu(self):
        assert parse_rfc3339("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_offset_is_kept(self):
        parsed = parse_rfc3339("2024-01-01T23:30:00-05:00")

        assert parsed.hour == 23
        assert parsed.utcoffset() == timedelta(hours=-5)

    def test_fractional_seconds(self):
        parsed = parse_rfc3339("2024-01-01T10:00:00.123456789+02:00")
        assert parsed.microsecond == 123456

    def test_lowercase_and_space_separator(self):
        assert parse_rfc3339("2024-01-01t10:00:00z") is not None
        assert parse_rfc3339("2024-01-01 10:00:00Z") is not None

    @pytest.mark.parametrize("text", [
        "",
        "invalid-date",
        "2024-01-01",
        "2024-01-01T10:00:00",
        "2024-13-01T10:00:00Z",
        "2024-02-30T10:00:00Z",
        "2024-01-01T10:00:00+25:00",
    ])
    def test_rejects_non_rfc3339(self, text):
        assert parse_rfc3339(text) is None


class TestParseDate:
    """Test the lenient UTC date parser."""

    def test_rfc3339_is_converted_to_utc(self):
        assert parse_date("2024-01-01T23:30:00-05:00") == datetime(2024, 1, 2, 4, 30, tzinfo=timezone.utc)

    def test_naive_format_assumed_utc(self):
        assert parse_date("2024-01-01 12:34:56") == datetime(2024, 1, 1, 12, 34, 56, tzinfo=timezone.utc)

    def test_unparseable_raises(self):
        with pytest.raises(ValueError, match="Unable to parse date: nope"):
            parse_date("nope")


class TestFormatDate:

    def test_format_for_display(self):
        dt = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_date_for_display(dt) == "2024-01-01 10:00:00 UTC"


class TestFilterByDateRange:
    """Test inclusive calendar-day filtering."""

    @pytest.fixture
    def records(self, make_record):
        return [
            make_record(date="2024-01-01T10:00:00Z"),
            make_record(date="2024-01-02T10:00:00Z"),
            make_record(date="2024-01-03T10:00:00Z"),
            make_record(date="unparseable"),
        ]

    def test_no_bounds_returns_everything(self, records):
        result = filter_by_date_range(records)

        assert result == records
        assert result is not records

    def test_inclusive_bounds(self, records):
        result = filter_by_date_range(records, "2024-01-02", "2024-01-03")
        assert [r.date[:10] for r in result] == ["2024-01-02", "2024-01-03"]

    def test_start_only(self, records):
        result = filter_by_date_range(records, start_date="2024-01-03")
        assert [r.date[:10] for r in result] == ["2024-01-03"]

    def test_end_only(self, records):
        result = filter_by_date_range(records, end_date="2024-01-01")
        assert [r.date[:10] for r in result] == ["2024-01-01"]

    def test_unparseable_bound_is_ignored_but_drops_bad_dates(self, records):
        result = filter_by_date_range(records, start_date="not-a-date")
        assert len(result) == 3

    def test_empty_range(self, records):
        assert filter_by_date_range(records, "2025-01-01", "2025-12-31") == []
