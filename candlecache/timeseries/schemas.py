"""Pydantic schemas for cache documents and the series API."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from candlecache.timeseries.models import CacheDocument, Candle, new_bucket
from candlecache.timeseries.timestamps import parse_storage_key, to_storage_key


class CandleSchema(BaseModel):
    """Candle as persisted and as returned by the API."""

    datetime: str = Field(..., description="Candle open time, YYYY-MM-DD HH:MM:SS")
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    is_filled: bool = False

    @classmethod
    def from_candle(cls, candle: Candle) -> "CandleSchema":
        return cls(
            datetime=to_storage_key(candle.timestamp),
            open=candle.open,
            high=candle.high,
            low=candle.low,
            close=candle.close,
            is_filled=candle.is_synthetic,
        )

    def to_candle(self) -> Candle:
        return Candle(
            timestamp=parse_storage_key(self.datetime),
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            is_synthetic=self.is_filled,
        )


class CacheDocumentSchema(BaseModel):
    """Persisted shape of a CacheDocument: interval -> storage key -> candle."""

    symbol: str
    intervals: Dict[str, Dict[str, CandleSchema]] = Field(default_factory=dict)


def document_to_schema(document: CacheDocument) -> CacheDocumentSchema:
    return CacheDocumentSchema(
        symbol=document.symbol,
        intervals={
            interval: {key: CandleSchema.from_candle(candle) for key, candle in bucket.items()}
            for interval, bucket in document.intervals.items()
        },
    )


def schema_to_document(schema: CacheDocumentSchema) -> CacheDocument:
    document = CacheDocument(symbol=schema.symbol)
    for interval, entries in schema.intervals.items():
        bucket = new_bucket()
        for key, entry in entries.items():
            candle = entry.to_candle()
            # Re-key through the canonical format so keys always round-trip.
            bucket[to_storage_key(candle.timestamp)] = candle
        document.intervals[interval] = bucket
    return document


class SeriesSchema(BaseModel):
    """Series returned by the synchronization endpoints."""

    symbol: str
    interval: str
    start: datetime
    end: datetime
    count: int
    filled_count: int
    candles: List[CandleSchema]
    earliest: Optional[str] = None
    latest: Optional[str] = None


class IntegrityCheckSchema(BaseModel):
    """Cache coverage of a range."""

    symbol: str
    interval: str
    earliest: Optional[str] = None
    latest: Optional[str] = None
    expected_count: int
    actual_count: int
    synthetic_count: int
    missing_count: int
    missing_ranges: List[tuple[str, str]] = Field(default_factory=list)
    is_complete: bool


TrimMode = Literal["none", "leading", "trailing", "both"]

