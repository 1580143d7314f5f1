"""Forward-fill of grid timestamps the provider could not supply."""
from datetime import datetime
from typing import Sequence

from candlecache.timeseries.models import IntervalBucket
from candlecache.timeseries.timestamps import to_storage_key


def fill_gaps(expected: Sequence[datetime], bucket: IntervalBucket) -> int:
    """
    Insert a synthetic candle for every grid timestamp absent from ``bucket``.

    Each placeholder copies the nearest preceding grid candle (real or already
    filled). Timestamps before the first known grid candle copy that first
    candle instead. Returns the number of candles inserted.
    """
    keys = [to_storage_key(ts) for ts in expected]
    first_known = next((bucket[key] for key in keys if key in bucket), None)
    if first_known is None:
        return 0

    filled = 0
    last_known = first_known
    for timestamp, key in zip(expected, keys):
        candle = bucket.get(key)
        if candle is None:
            candle = last_known.as_synthetic(timestamp)
            bucket[key] = candle
            filled += 1
        last_known = candle
    return filled
