"""Timestamp parsing and formatting.

Session records carry ISO 8601 strings with a trailing ``Z``; older exports
occasionally carry epoch seconds. Everything is normalised to aware UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone


def parse_timestamp(value: str | int | float | None) -> datetime | None:
    """Parse a timestamp from epoch seconds or an ISO string.

    Returns:
        UTC-aware datetime, or None when the value is missing or unparseable
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(float(value), tz=timezone.utc)

        if isinstance(value, str):
            if value.replace(".", "", 1).isdigit():
                return datetime.fromtimestamp(float(value), tz=timezone.utc)
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)
    except (ValueError, OSError, OverflowError):
        # OSError/OverflowError come from out-of-range epochs
        pass

    return None


def format_timestamp(ts: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC; naive values are taken as UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    else:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat(timespec="seconds")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["parse_timestamp", "format_timestamp", "utcnow"]
