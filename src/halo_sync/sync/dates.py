"""Date helpers for metadata ``date`` values.

Front matter dates arrive in whatever shape the YAML loader produced:
strings, ``date``/``datetime`` objects, or bare epoch numbers.  All of
them are normalised to timezone-aware UTC instants.  Naive values are
taken to be UTC.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from dateutil import parser as date_parser

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: Any) -> datetime | None:
    """Parse a metadata date value into an aware UTC ``datetime``.

    Args:
        value: A string, ``datetime``, ``date``, epoch milliseconds, or
            ``None``.

    Returns:
        The parsed instant, or ``None`` when the value is absent or not a
        valid date.
    """
    match value:
        case None | "":
            return None
        case bool():
            return None
        case datetime():
            return _as_utc(value)
        case date():
            return datetime(
                value.year, value.month, value.day, tzinfo=timezone.utc
            )
        case int() | float():
            try:
                return EPOCH + timedelta(milliseconds=value)
            except OverflowError:
                return None
        case str():
            text = value.strip()
            if not text:
                return None
            try:
                return _as_utc(date_parser.isoparse(text))
            except (ValueError, OverflowError, TypeError):
                pass
            try:
                return _as_utc(date_parser.parse(text))
            except (ValueError, OverflowError, TypeError):
                return None
        case _:
            return None


def now_utc() -> datetime:
    """Return the current instant in UTC."""
    return datetime.now(timezone.utc)


def epoch_millis(instant: datetime) -> int:
    """Milliseconds between the Unix epoch and *instant*."""
    return (_as_utc(instant) - EPOCH) // timedelta(milliseconds=1)


def format_instant(instant: datetime) -> str:
    """Format an instant as ISO 8601 UTC with millisecond precision.

    Example: ``2024-05-01T08:30:00.000Z``.
    """
    return (
        _as_utc(instant)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
