"""Tests for skillminer.core.timestamps module."""

from datetime import datetime, timedelta, timezone

from skillminer.core.timestamps import format_timestamp, parse_timestamp


class TestParseTimestamp:
    """Test parse_timestamp function."""

    def test_parse_timestamp_epoch_int(self):
        """Parse integer epoch timestamp."""
        # 2024-01-01 00:00:00 UTC
        result = parse_timestamp(1704067200)
        assert result == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_parse_timestamp_epoch_string_with_decimal(self):
        """Parse epoch timestamp as string with decimal."""
        result = parse_timestamp("1704067200.5")
        assert result is not None
        assert result.microsecond == 500000

    def test_parse_timestamp_session_format(self):
        """Claude Code writes millisecond ISO strings with a Z suffix."""
        result = parse_timestamp("2025-05-31T22:15:03.120Z")
        assert result == datetime(2025, 5, 31, 22, 15, 3, 120000, tzinfo=timezone.utc)

    def test_parse_timestamp_offset_converted_to_utc(self):
        """Non-UTC offsets are normalised to UTC."""
        result = parse_timestamp("2025-06-01T09:00:00+09:00")
        assert result == datetime(2025, 6, 1, 0, 0, tzinfo=timezone.utc)
        assert result.utcoffset() == timedelta(0)

    def test_parse_timestamp_naive_assumed_utc(self):
        """Naive ISO strings are taken as UTC."""
        result = parse_timestamp("2024-01-01T00:00:00")
        assert result is not None
        assert result.tzinfo is not None

    def test_parse_timestamp_none(self):
        assert parse_timestamp(None) is None

    def test_parse_timestamp_garbage(self):
        """Unparseable input returns None rather than raising."""
        assert parse_timestamp("yesterday-ish") is None
        assert parse_timestamp("") is None

    def test_parse_timestamp_bool_rejected(self):
        """Booleans are ints in Python but never timestamps."""
        assert parse_timestamp(True) is None

    def test_parse_timestamp_overflow(self):
        assert parse_timestamp(10**20) is None


class TestFormatTimestamp:
    """Test format_timestamp function."""

    def test_format_aware_datetime(self):
        ts = datetime(2025, 6, 1, 21, 0, tzinfo=timezone(timedelta(hours=9)))
        assert format_timestamp(ts) == "2025-06-01T12:00:00+00:00"

    def test_format_naive_datetime(self):
        assert format_timestamp(datetime(2025, 6, 1, 12, 0)) == "2025-06-01T12:00:00+00:00"
