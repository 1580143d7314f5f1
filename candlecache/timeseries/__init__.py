"""Time-series cache synchronization package."""
from candlecache.timeseries.errors import (
    ArgumentError,
    CandleCacheError,
    MalformedResponse,
    UnsupportedInterval,
)
from candlecache.timeseries.models import CacheDocument, Candle, QueryDescriptor, WireFormat
from candlecache.timeseries.store import CacheStore, JsonFileCacheStore
from candlecache.timeseries.sync import SeriesSynchronizer
from candlecache.timeseries.trim import trim_filled, trim_leading_filled, trim_trailing_filled

__all__ = [
    "ArgumentError",
    "CandleCacheError",
    "MalformedResponse",
    "UnsupportedInterval",
    "CacheDocument",
    "Candle",
    "QueryDescriptor",
    "WireFormat",
    "CacheStore",
    "JsonFileCacheStore",
    "SeriesSynchronizer",
    "trim_filled",
    "trim_leading_filled",
    "trim_trailing_filled",
]
