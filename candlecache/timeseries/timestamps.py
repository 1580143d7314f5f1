"""Canonical timestamp keys and expected-timestamp grids."""
from datetime import datetime, timedelta
from typing import Iterator, List

from candlecache.timeseries.errors import MalformedResponse
from candlecache.timeseries.intervals import resolve_interval

STORAGE_KEY_FORMAT = "%Y-%m-%d %H:%M:%S"

# Formats the provider may use for a row's datetime, most precise first.
WIRE_DATETIME_FORMATS = (STORAGE_KEY_FORMAT, "%Y-%m-%d %H:%M", "%Y-%m-%d")

ONE_TICK = timedelta(microseconds=1)


def to_storage_key(value: datetime) -> str:
    """Format ``value`` as ``YYYY-MM-DD HH:MM:SS`` (sub-second part dropped)."""
    return value.strftime(STORAGE_KEY_FORMAT)


def parse_storage_key(key: str) -> datetime:
    """Strict inverse of :func:`to_storage_key`. Raises ValueError otherwise."""
    return datetime.strptime(key, STORAGE_KEY_FORMAT)


def parse_wire_datetime(text: str) -> datetime:
    """Parse a provider datetime, tolerating missing seconds or time of day."""
    if text is None:
        raise MalformedResponse("Missing datetime.")
    if not isinstance(text, str):
        raise MalformedResponse(f"Invalid datetime: {text!r}")
    value = text.strip()
    for fmt in WIRE_DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise MalformedResponse(f"Invalid datetime: {text!r}")


def iter_expected_timestamps(
    start: datetime,
    end: datetime,
    step: timedelta,
) -> Iterator[datetime]:
    """
    Yield the complete bars between ``start`` and ``end``.

    A bar starting at ``t`` is yielded only while ``t + step < end``; the walk
    stops at the first bar that would reach ``end`` unless ``t`` is ``end``
    itself. So ``start == end`` yields ``start`` alone, a range shorter than
    one step yields nothing, and a bar ending exactly on ``end`` is excluded.
    """
    current = start
    while current <= end:
        if current + step >= end and current != end:
            break
        yield current
        current += step


def build_expected_timestamps(
    start: datetime,
    end: datetime,
    interval: str,
) -> List[datetime]:
    """List form of :func:`iter_expected_timestamps` for an interval name."""
    return list(iter_expected_timestamps(start, end, resolve_interval(interval)))
