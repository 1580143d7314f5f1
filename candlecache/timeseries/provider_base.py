"""Time-series provider abstraction."""
from datetime import datetime
from typing import Dict, Protocol

from candlecache.timeseries.models import Candle, QueryDescriptor


class SeriesProvider(Protocol):
    """Protocol for remote time-series providers."""

    async def fetch_page(self, descriptor: QueryDescriptor) -> Dict[datetime, Candle]:
        """
        Fetch one page of candles for ``[descriptor.start, descriptor.end]``.

        Args:
            descriptor: Symbol, interval, inclusive bounds, page size and format

        Returns:
            Mapping of timestamp -> Candle, all with is_synthetic=False.
            An empty mapping means the provider has no data for the range.
            Pages hold at most ``descriptor.output_size`` candles, newest first
            when the range holds more.
        """
        ...
