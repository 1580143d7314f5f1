"""Domain models for cached candle series."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Dict

from sortedcontainers import SortedDict

from candlecache.timeseries.errors import ArgumentError


class WireFormat(str, enum.Enum):
    """Response formats accepted from the remote provider."""

    JSON = "json"
    CSV = "csv"


@dataclass(frozen=True)
class Candle:
    """One OHLC record. Synthetic candles are gap-fill placeholders."""

    timestamp: datetime
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    is_synthetic: bool = False

    def as_synthetic(self, timestamp: datetime) -> "Candle":
        """Copy the prices of this candle to ``timestamp`` as a placeholder."""
        return replace(self, timestamp=timestamp, is_synthetic=True)


# Ordered storage-key -> Candle mapping for one (symbol, interval) pair.
IntervalBucket = SortedDict


def new_bucket() -> IntervalBucket:
    return SortedDict()


@dataclass
class CacheDocument:
    """All cached buckets for a single symbol, persisted under the symbol."""

    symbol: str
    intervals: Dict[str, IntervalBucket] = field(default_factory=dict)

    def bucket(self, interval: str) -> IntervalBucket:
        """Return the bucket for ``interval``, creating it if absent."""
        bucket = self.intervals.get(interval)
        if bucket is None:
            bucket = new_bucket()
            self.intervals[interval] = bucket
        return bucket


@dataclass(frozen=True)
class QueryDescriptor:
    """One logical series request. Bounds are inclusive."""

    symbol: str
    start: datetime
    end: datetime
    interval: str = "4h"
    output_size: int = 5000
    format: WireFormat = WireFormat.JSON

    def __post_init__(self) -> None:
        if not self.symbol or not self.symbol.strip():
            raise ArgumentError("symbol is required")
        if not self.interval or not self.interval.strip():
            raise ArgumentError("interval is required")
        if self.start is None or self.end is None:
            raise ArgumentError("start and end are required")
        if self.start.microsecond:
            # Grid timestamps derive from start and must survive the storage key.
            object.__setattr__(self, "start", self.start.replace(microsecond=0))
        if self.start > self.end:
            raise ArgumentError(
                f"start ({self.start}) must be <= end ({self.end})"
            )
        if self.output_size <= 0:
            raise ArgumentError(f"output_size must be positive, got {self.output_size}")
        if not isinstance(self.format, WireFormat):
            # Accept the plain string values, e.g. from config or query params.
            try:
                object.__setattr__(self, "format", WireFormat(self.format))
            except ValueError:
                raise ArgumentError(f"Unknown format: {self.format!r}")

    def narrowed(self, start: datetime, end: datetime) -> "QueryDescriptor":
        """Same request with different bounds."""
        return replace(self, start=start, end=end)
