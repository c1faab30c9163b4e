"""Timestamp normalisation and per-record timestamp resolution."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Optional, Union

__all__ = ["format_timestamp", "parse_timestamp", "resolve_timestamp"]

TimestampLike = Union[datetime, date, str]


def parse_timestamp(value: TimestampLike) -> datetime:
    """Convert a datetime, date or ISO-8601 string to an aware UTC datetime.

    Naive values are taken as UTC.

    Raises:
        ValueError: If a string is not ISO-8601
        TypeError: For any other input type
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot interpret {type(value).__name__} as a timestamp")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: TimestampLike) -> str:
    """Render a timestamp as ISO-8601 UTC with a ``Z`` suffix.

    Example:
        >>> format_timestamp(datetime(2024, 1, 1, tzinfo=timezone.utc))
        '2024-01-01T00:00:00Z'
    """
    parsed = parse_timestamp(value)
    # DatetimeWithNanoseconds and friends format differently; normalise first
    plain = datetime(
        parsed.year,
        parsed.month,
        parsed.day,
        parsed.hour,
        parsed.minute,
        parsed.second,
        parsed.microsecond,
        tzinfo=timezone.utc,
    )
    return plain.isoformat().replace("+00:00", "Z")


def resolve_timestamp(
    data: Mapping[str, Any],
    timestamp_field: Optional[str],
    import_timestamp: TimestampLike,
    update_time: Optional[TimestampLike] = None,
    create_time: Optional[TimestampLike] = None,
) -> str:
    """Pick the authoritative event timestamp for one record.

    First available wins:
        1. the schema's timestamp field, when the record has a value for it
        2. the document's update time
        3. the document's create time
        4. the run's import timestamp

    Args:
        data: Coerced field data for the record
        timestamp_field: Designated timestamp field name, if any
        import_timestamp: Timestamp captured once at the start of the run
        update_time: Document update-time metadata
        create_time: Document create-time metadata

    Returns:
        ISO-8601 UTC timestamp string
    """
    if timestamp_field:
        value = data.get(timestamp_field)
        if value is not None:
            return format_timestamp(value)
    if update_time is not None:
        return format_timestamp(update_time)
    if create_time is not None:
        return format_timestamp(create_time)
    return format_timestamp(import_timestamp)
