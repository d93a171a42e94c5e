"""Shared utility functions: clock, timezone normalisation, date parsing.

utcnow:            single clock used by the HTTP layer for engine ``now`` values
as_utc:            naive datetimes read back from SQLite are interpreted as UTC
start_of_day_utc:  report_date at 00:00 UTC
hours_between:     whole hours, truncated toward zero
parse_date_input:  raises ValueError on bad input
"""
from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value):
    """Normalise a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite drops tzinfo on
    round-trip). ``None`` passes through.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day_utc(day: date) -> datetime:
    """Return ``day`` at 00:00 UTC."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def hours_between(start, end) -> int:
    """Whole hours from ``start`` to ``end``, truncated toward zero.

    2024-01-01T00:00Z → 2024-01-03T10:00Z is 58.
    """
    delta = as_utc(end) - as_utc(start)
    return int(delta.total_seconds() / 3600)


def parse_date_input(value):
    """Parse a date string, raising ValueError on bad input.

    Used where the caller turns a bad date into a 400 response.

    Supports: YYYY-MM-DD, DD.MM.YYYY, date objects.
    """
    if not value:
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (ValueError, TypeError):
        try:
            return datetime.strptime(str(value), "%d.%m.%Y").date()
        except ValueError as exc:
            raise ValueError(
                "Invalid date format. Use YYYY-MM-DD or DD.MM.YYYY."
            ) from exc
