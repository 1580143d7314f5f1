"""Helpers that strip synthetic candles from the ends of a series."""
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

from candlecache.timeseries.errors import ArgumentError
from candlecache.timeseries.models import Candle

Series = Dict[datetime, Candle]


def _ordered(candles: Optional[Mapping[datetime, Candle]]) -> List[Tuple[datetime, Candle]]:
    if candles is None:
        raise ArgumentError("candles is required")
    return sorted(candles.items(), key=lambda item: item[0])


def _real_bounds(ordered: List[Tuple[datetime, Candle]]) -> Optional[Tuple[int, int]]:
    real = [i for i, (_, candle) in enumerate(ordered) if not candle.is_synthetic]
    if not real:
        return None
    return real[0], real[-1]


def trim_leading_filled(candles: Mapping[datetime, Candle]) -> Series:
    """Drop the synthetic prefix; interior placeholders are kept."""
    ordered = _ordered(candles)
    bounds = _real_bounds(ordered)
    if bounds is None:
        return {}
    return dict(ordered[bounds[0]:])


def trim_trailing_filled(candles: Mapping[datetime, Candle]) -> Series:
    """Drop the synthetic suffix; interior placeholders are kept."""
    ordered = _ordered(candles)
    bounds = _real_bounds(ordered)
    if bounds is None:
        return {}
    return dict(ordered[:bounds[1] + 1])


def trim_filled(candles: Mapping[datetime, Candle]) -> Series:
    """Drop synthetic candles at both ends."""
    ordered = _ordered(candles)
    bounds = _real_bounds(ordered)
    if bounds is None:
        return {}
    first, last = bounds
    return dict(ordered[first:last + 1])


TRIMMERS = {
    "leading": trim_leading_filled,
    "trailing": trim_trailing_filled,
    "both": trim_filled,
}
