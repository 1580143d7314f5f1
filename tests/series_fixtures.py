"""Shared builders and fakes for series tests."""
from collections import deque
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

import httpx

from candlecache.timeseries.models import CacheDocument, Candle, QueryDescriptor, WireFormat, new_bucket
from candlecache.timeseries.provider_twelvedata import TwelveDataProvider
from candlecache.timeseries.schemas import CacheDocumentSchema, document_to_schema, schema_to_document
from candlecache.timeseries.timestamps import to_storage_key

BASE_URL = "https://api.twelvedata.com/"
NO_DATA_JSON = '{"status":"error","code":400,"message":"No data is available on the specified dates."}'


def real_candle(dt: datetime, open="1900", high="1950", low="1880", close="1920") -> Candle:
    return Candle(dt, Decimal(open), Decimal(high), Decimal(low), Decimal(close), is_synthetic=False)


def filled_candle(dt: datetime, open="1900", high="1950", low="1880", close="1920") -> Candle:
    return Candle(dt, Decimal(open), Decimal(high), Decimal(low), Decimal(close), is_synthetic=True)


def make_bucket(*candles: Candle):
    bucket = new_bucket()
    for candle in candles:
        bucket[to_storage_key(candle.timestamp)] = candle
    return bucket


def make_document(symbol: str, interval: str, *candles: Candle) -> CacheDocument:
    return CacheDocument(symbol=symbol, intervals={interval: make_bucket(*candles)})


def json_payload(*rows) -> str:
    entries = ",\n".join(
        f'{{"datetime":"{dt}","open":"{o}","high":"{h}","low":"{l}","close":"{c}"}}'
        for dt, o, h, l, c in rows
    )
    return '{"values":[\n' + entries + "\n]}"


def csv_payload(*rows) -> str:
    lines = ["datetime,open,high,low,close"]
    lines.extend(f"{dt},{o},{h},{l},{c}" for dt, o, h, l, c in rows)
    return "\n".join(lines) + "\n"


class FakeTwelveData:
    """Queued HTTP responses behind an httpx.MockTransport; records requests."""

    def __init__(self) -> None:
        self.responses = deque()
        self.requests: List[httpx.Request] = []
        self.client = httpx.AsyncClient(
            base_url=BASE_URL,
            transport=httpx.MockTransport(self._handle),
        )

    def enqueue(self, status_code: int, content: str, media_type: str = "application/json") -> None:
        self.responses.append(
            httpx.Response(status_code, content=content.encode("utf-8"), headers={"content-type": media_type})
        )

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("No more queued responses. Enqueue a response before making a request.")
        return self.responses.popleft()

    def provider(self, api_key: str = "test-key") -> TwelveDataProvider:
        return TwelveDataProvider(self.client, api_key)


class MemoryStore:
    """In-memory cache store that round-trips documents through the schema."""

    def __init__(self, document: Optional[CacheDocument] = None) -> None:
        self.documents: Dict[str, CacheDocumentSchema] = {}
        self.gets: List[str] = []
        self.saves: List[str] = []
        if document is not None:
            self.documents[document.symbol] = document_to_schema(document)

    async def get(self, key: str) -> Optional[CacheDocument]:
        self.gets.append(key)
        schema = self.documents.get(key)
        return schema_to_document(schema) if schema is not None else None

    async def save(self, key: str, document: CacheDocument) -> None:
        self.saves.append(key)
        self.documents[key] = document_to_schema(document)

    async def load(self, key: str) -> Optional[CacheDocument]:
        """Read without recording a get."""
        schema = self.documents.get(key)
        return schema_to_document(schema) if schema is not None else None


def descriptor(
    start: datetime,
    end: datetime,
    symbol: str = "AAPL",
    interval: str = "4h",
    output_size: int = 5000,
    format: WireFormat = WireFormat.JSON,
) -> QueryDescriptor:
    return QueryDescriptor(
        symbol=symbol,
        start=start,
        end=end,
        interval=interval,
        output_size=output_size,
        format=format,
    )
