"""Deterministic mock time-series provider."""
import hashlib
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from candlecache.timeseries.intervals import resolve_interval
from candlecache.timeseries.models import Candle, QueryDescriptor

logger = logging.getLogger(__name__)

EPOCH = datetime(2000, 1, 1)


class MockProvider:
    """Deterministic mock provider - same inputs produce same outputs.

    Pages are newest first and capped at ``output_size``, like the real API.
    Nothing is returned before ``history_start`` or after ``history_end``.
    """

    def __init__(
        self,
        history_start: Optional[datetime] = None,
        history_end: Optional[datetime] = None,
    ) -> None:
        self.history_start = history_start
        self.history_end = history_end
        self.requests: List[QueryDescriptor] = []
        logger.info("MockProvider initialized (deterministic)")

    async def fetch_page(self, descriptor: QueryDescriptor) -> Dict[datetime, Candle]:
        """
        Generate candles aligned to the interval for one page.

        Ensures:
        - Same symbol/interval/range => same output
        - Timestamps aligned to interval boundaries from EPOCH
        - At most output_size candles, keeping the newest
        """
        self.requests.append(descriptor)
        step = resolve_interval(descriptor.interval)

        start = descriptor.start
        if self.history_start is not None and start < self.history_start:
            start = self.history_start
        end = descriptor.end
        if self.history_end is not None and end > self.history_end:
            end = self.history_end
        if start > end:
            return {}

        # Align start to interval boundary (ceil)
        steps_since_epoch = -((EPOCH - start) // step)
        current = EPOCH + steps_since_epoch * step

        timestamps = []
        while current <= end:
            timestamps.append(current)
            current += step

        page = timestamps[-descriptor.output_size:]
        candles = {
            ts: self._generate_candle(descriptor.symbol, descriptor.interval, ts)
            for ts in reversed(page)
        }
        logger.debug(
            "MockProvider generated %d candles for %s %s (%s to %s)",
            len(candles),
            descriptor.symbol,
            descriptor.interval,
            descriptor.start,
            descriptor.end,
        )
        return candles

    def _generate_candle(self, symbol: str, interval: str, timestamp: datetime) -> Candle:
        """Generate single deterministic candle."""
        seed_str = f"{symbol}:{interval}:{timestamp.isoformat()}"
        seed = int(hashlib.md5(seed_str.encode()).hexdigest(), 16)

        base_price = Decimal("1900") if symbol.startswith("XAU") else Decimal("100")

        open_price = base_price + Decimal(seed % 1000 - 500) / 100
        high_price = open_price + Decimal((seed // 1000) % 500) / 100
        low_price = open_price - Decimal((seed // 1000000) % 500) / 100
        close_price = open_price + Decimal((seed // 1000000000) % 1000 - 500) / 100

        # Ensure OHLC constraints
        high_price = max(high_price, open_price, close_price)
        low_price = min(low_price, open_price, close_price)

        return Candle(
            timestamp=timestamp,
            open=open_price,
            high=high_price,
            low=low_price,
            close=close_price,
        )
