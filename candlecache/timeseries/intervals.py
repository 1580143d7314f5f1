"""Interval name -> fixed duration resolution."""
from datetime import timedelta

from candlecache.timeseries.errors import UnsupportedInterval

# Month is excluded: its duration is not fixed.
INTERVAL_DURATIONS = {
    "1min": timedelta(minutes=1),
    "5min": timedelta(minutes=5),
    "15min": timedelta(minutes=15),
    "30min": timedelta(minutes=30),
    "45min": timedelta(minutes=45),
    "1h": timedelta(hours=1),
    "2h": timedelta(hours=2),
    "4h": timedelta(hours=4),
    "5h": timedelta(hours=5),
    "1day": timedelta(days=1),
    "1week": timedelta(weeks=1),
}

SUPPORTED_INTERVALS = tuple(INTERVAL_DURATIONS)


def resolve_interval(interval: str) -> timedelta:
    """Return the bucket duration for ``interval`` (exact, case-sensitive match)."""
    try:
        return INTERVAL_DURATIONS[interval]
    except (KeyError, TypeError):
        raise UnsupportedInterval(interval)
