"""Twelve Data ``/time_series`` provider."""
import logging
from datetime import datetime
from typing import Dict

import httpx

from candlecache.timeseries.errors import ArgumentError
from candlecache.timeseries.models import Candle, QueryDescriptor
from candlecache.timeseries.parsing import parse_payload
from candlecache.timeseries.timestamps import to_storage_key

logger = logging.getLogger(__name__)

TIME_SERIES_PATH = "time_series"


class TwelveDataProvider:
    """Fetches candle pages over an ``httpx.AsyncClient`` with a base URL."""

    def __init__(self, client: httpx.AsyncClient, api_key: str) -> None:
        if client is None:
            raise ArgumentError("client is required")
        if not str(client.base_url):
            raise ArgumentError("client.base_url must be set")
        if not api_key or not api_key.strip():
            raise ArgumentError("API key is required")
        self.client = client
        self.api_key = api_key

    def build_params(self, descriptor: QueryDescriptor) -> Dict[str, str]:
        """Query parameters for one page request."""
        return {
            "apikey": self.api_key,
            "interval": descriptor.interval,
            "symbol": descriptor.symbol,
            "start_date": to_storage_key(descriptor.start),
            "end_date": to_storage_key(descriptor.end),
            "format": descriptor.format.value,
            "outputsize": str(descriptor.output_size),
        }

    async def fetch_page(self, descriptor: QueryDescriptor) -> Dict[datetime, Candle]:
        """
        Perform exactly one request for ``descriptor``.

        Non-success statuses raise ``httpx.HTTPStatusError`` unchanged.
        """
        if descriptor is None:
            raise ArgumentError("descriptor is required")

        logger.debug(
            "Requesting %s/%s %s -> %s (%s, outputsize=%d)",
            descriptor.symbol,
            descriptor.interval,
            to_storage_key(descriptor.start),
            to_storage_key(descriptor.end),
            descriptor.format.value,
            descriptor.output_size,
        )
        response = await self.client.get(TIME_SERIES_PATH, params=self.build_params(descriptor))
        response.raise_for_status()

        candles = parse_payload(response.text, descriptor.format)
        logger.debug("Provider returned %d candles", len(candles))
        return candles


def build_http_client(base_url: str, timeout_seconds: float = 60.0) -> httpx.AsyncClient:
    """Create the shared client used for Twelve Data requests."""
    if not base_url.endswith("/"):
        base_url = base_url + "/"
    return httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds)
