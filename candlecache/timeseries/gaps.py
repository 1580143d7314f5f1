"""Gap detection between an expected grid and a cached bucket."""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, NamedTuple

from candlecache.timeseries.models import IntervalBucket
from candlecache.timeseries.timestamps import build_expected_timestamps, to_storage_key

logger = logging.getLogger(__name__)


class MissingRange(NamedTuple):
    """Inclusive span of grid timestamps absent from the cache."""

    start: datetime
    end: datetime


def build_missing_ranges(
    expected: Iterable[datetime],
    bucket: IntervalBucket,
) -> List[MissingRange]:
    """
    Group the expected timestamps missing from ``bucket`` into ranges.

    The reference step is the distance between the first two missing
    timestamps; a new range starts whenever the distance between consecutive
    missing timestamps differs from it. Irregular patterns can therefore be
    merged when a later distance happens to match the first one again.
    """
    missing = [ts for ts in expected if to_storage_key(ts) not in bucket]
    if not missing:
        return []

    step = missing[1] - missing[0] if len(missing) > 1 else timedelta(0)

    ranges: List[MissingRange] = []
    range_start = missing[0]
    previous = missing[0]
    for current in missing[1:]:
        if current - previous != step:
            ranges.append(MissingRange(range_start, previous))
            range_start = current
        previous = current
    ranges.append(MissingRange(range_start, previous))
    return ranges


def check_integrity(
    bucket: IntervalBucket,
    start: datetime,
    end: datetime,
    interval: str,
) -> Dict[str, Any]:
    """
    Summarize how well ``bucket`` covers the grid of ``[start, end]``.

    Returns:
        Dict with expected_count, actual_count, synthetic_count, missing_count,
        missing_ranges (list of (start, end) key pairs, both inclusive),
        earliest/latest cached keys in range and is_complete.
    """
    expected = build_expected_timestamps(start, end, interval)
    ranges = build_missing_ranges(expected, bucket)
    missing_count = sum(1 for ts in expected if to_storage_key(ts) not in bucket)

    in_range = list(bucket.irange(to_storage_key(start), to_storage_key(end)))
    synthetic_count = sum(1 for key in in_range if bucket[key].is_synthetic)

    result = {
        "interval": interval,
        "earliest": in_range[0] if in_range else None,
        "latest": in_range[-1] if in_range else None,
        "expected_count": len(expected),
        "actual_count": len(in_range),
        "synthetic_count": synthetic_count,
        "missing_count": missing_count,
        "missing_ranges": [(to_storage_key(r.start), to_storage_key(r.end)) for r in ranges],
        "is_complete": missing_count == 0,
    }
    logger.info(
        "Integrity check %s: expected=%d, actual=%d, synthetic=%d, missing=%d",
        interval,
        result["expected_count"],
        result["actual_count"],
        synthetic_count,
        missing_count,
    )
    return result
