"""Backward pagination over a range larger than one provider page."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from candlecache.timeseries.gaps import MissingRange
from candlecache.timeseries.models import IntervalBucket, QueryDescriptor
from candlecache.timeseries.provider_base import SeriesProvider
from candlecache.timeseries.timestamps import ONE_TICK, to_storage_key

logger = logging.getLogger(__name__)


@dataclass
class PageWalkResult:
    pages: int = 0
    candles: int = 0


async def fetch_range(
    provider: SeriesProvider,
    descriptor: QueryDescriptor,
    span: MissingRange,
    bucket: IntervalBucket,
    log: Optional[logging.Logger] = None,
) -> PageWalkResult:
    """
    Fetch ``span`` page by page, newest first, merging into ``bucket``.

    Each request covers ``[span.start, current_end]``. The walk stops when a
    page is empty, when the oldest returned candle reaches ``span.start``, or
    when the oldest candle did not move back since the previous page.
    Otherwise the next page ends just before the oldest candle received.
    """
    log = log or logger
    result = PageWalkResult()
    current_end = span.end
    previous_oldest: Optional[datetime] = None

    while True:
        page = await provider.fetch_page(descriptor.narrowed(span.start, current_end))
        result.pages += 1

        for timestamp, candle in page.items():
            bucket[to_storage_key(timestamp)] = candle
        result.candles += len(page)

        if not page:
            log.debug("Empty page for %s -> %s, stopping", span.start, current_end)
            break

        oldest = min(page)
        if oldest <= span.start:
            break
        if previous_oldest is not None and oldest >= previous_oldest:
            log.warning(
                "Provider made no backward progress for %s (oldest=%s), stopping",
                descriptor.symbol,
                to_storage_key(oldest),
            )
            break

        previous_oldest = oldest
        current_end = oldest - ONE_TICK
        log.debug("Paging %s back to %s", descriptor.symbol, to_storage_key(current_end))

    return result
