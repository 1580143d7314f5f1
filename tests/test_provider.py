"""Tests for the Twelve Data provider and the deterministic mock provider."""
from datetime import datetime, timedelta
from decimal import Decimal

import httpx
import pytest

from candlecache.timeseries.errors import ArgumentError, MalformedResponse
from candlecache.timeseries.models import WireFormat
from candlecache.timeseries.provider_mock import MockProvider
from candlecache.timeseries.provider_twelvedata import TwelveDataProvider, build_http_client

from series_fixtures import NO_DATA_JSON, FakeTwelveData, csv_payload, descriptor, json_payload

START = datetime(2024, 1, 1, 0, 0, 0)
END = datetime(2024, 1, 2, 0, 0, 0)


# ==== TwelveDataProvider ====

@pytest.mark.asyncio
async def test_fetch_page_sends_expected_query():
    fake = FakeTwelveData()
    fake.enqueue(200, json_payload(("2024-01-01 04:00:00", "1", "2", "0.5", "1.5")))
    provider = fake.provider("secret")

    candles = await provider.fetch_page(descriptor(START, END, symbol="XAU/USD", output_size=250))

    assert list(candles) == [datetime(2024, 1, 1, 4)]
    assert len(fake.requests) == 1
    request = fake.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/time_series"
    params = request.url.params
    assert params["apikey"] == "secret"
    assert params["interval"] == "4h"
    assert params["symbol"] == "XAU/USD"
    assert params["start_date"] == "2024-01-01 00:00:00"
    assert params["end_date"] == "2024-01-02 00:00:00"
    assert params["format"] == "json"
    assert params["outputsize"] == "250"


@pytest.mark.asyncio
async def test_fetch_page_csv_format():
    fake = FakeTwelveData()
    fake.enqueue(200, csv_payload(("2024-01-01 00:00:00", "1", "2", "0.5", "1.5")), "text/csv")
    provider = fake.provider()

    candles = await provider.fetch_page(descriptor(START, END, format=WireFormat.CSV))

    assert candles[START].close == Decimal("1.5")
    assert fake.requests[0].url.params["format"] == "csv"


@pytest.mark.asyncio
async def test_fetch_page_no_data_is_empty():
    fake = FakeTwelveData()
    fake.enqueue(200, NO_DATA_JSON)
    assert await fake.provider().fetch_page(descriptor(START, END)) == {}


@pytest.mark.asyncio
async def test_fetch_page_http_error_propagates():
    fake = FakeTwelveData()
    fake.enqueue(500, "boom", "text/plain")
    with pytest.raises(httpx.HTTPStatusError):
        await fake.provider().fetch_page(descriptor(START, END))


@pytest.mark.asyncio
async def test_fetch_page_malformed_body():
    fake = FakeTwelveData()
    fake.enqueue(200, '{"unexpected": true}')
    with pytest.raises(MalformedResponse):
        await fake.provider().fetch_page(descriptor(START, END))


def test_provider_requires_api_key_and_client():
    fake = FakeTwelveData()
    with pytest.raises(ArgumentError):
        TwelveDataProvider(fake.client, "")
    with pytest.raises(ArgumentError):
        TwelveDataProvider(fake.client, "   ")
    with pytest.raises(ArgumentError):
        TwelveDataProvider(None, "key")


@pytest.mark.asyncio
async def test_build_http_client_adds_trailing_slash():
    client = build_http_client("https://api.twelvedata.com", timeout_seconds=5)
    try:
        assert str(client.base_url) == "https://api.twelvedata.com/"
        assert client.timeout.read == 5
    finally:
        await client.aclose()


# ==== MockProvider ====

@pytest.mark.asyncio
async def test_mock_provider_is_deterministic():
    provider = MockProvider()
    first = await provider.fetch_page(descriptor(START, END, symbol="XAU/USD"))
    second = await provider.fetch_page(descriptor(START, END, symbol="XAU/USD"))
    assert first == second
    assert len(provider.requests) == 2


@pytest.mark.asyncio
async def test_mock_provider_aligns_and_keeps_newest_page():
    provider = MockProvider()
    start = START + timedelta(minutes=30)
    candles = await provider.fetch_page(descriptor(start, END, output_size=3))

    assert list(candles) == [END, END - timedelta(hours=4), END - timedelta(hours=8)]
    for candle in candles.values():
        assert candle.low <= min(candle.open, candle.close)
        assert candle.high >= max(candle.open, candle.close)


@pytest.mark.asyncio
async def test_mock_provider_respects_history_bounds():
    provider = MockProvider(history_start=START + timedelta(hours=8), history_end=START + timedelta(hours=12))
    candles = await provider.fetch_page(descriptor(START, END))
    assert sorted(candles) == [START + timedelta(hours=8), START + timedelta(hours=12)]

    before = await provider.fetch_page(descriptor(START, START + timedelta(hours=4)))
    assert before == {}
