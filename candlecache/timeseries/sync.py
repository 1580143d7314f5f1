"""Cache synchronization: fetch only what is missing, fill the rest, persist."""
import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, List, Mapping, Optional

from candlecache.timeseries.errors import ArgumentError
from candlecache.timeseries.fill import fill_gaps
from candlecache.timeseries.gaps import MissingRange, build_missing_ranges
from candlecache.timeseries.intervals import resolve_interval
from candlecache.timeseries.models import CacheDocument, Candle, IntervalBucket, QueryDescriptor
from candlecache.timeseries.pagination import fetch_range
from candlecache.timeseries.provider_base import SeriesProvider
from candlecache.timeseries.store import CacheStore
from candlecache.timeseries.timestamps import (
    ONE_TICK,
    iter_expected_timestamps,
    to_storage_key,
)


Series = Dict[datetime, Candle]


def slice_bucket(bucket: IntervalBucket, start: datetime, end: datetime) -> Series:
    """Candles of ``bucket`` with ``start <= timestamp <= end``, oldest first."""
    result: Series = {}
    for key in bucket.irange(to_storage_key(start), to_storage_key(end)):
        candle = bucket[key]
        if start <= candle.timestamp <= end:
            result[candle.timestamp] = candle
    return result


class SeriesSynchronizer:
    """
    Serves candle series from the cache, fetching only what is missing.

    Calls for the same symbol are serialized per instance, so one
    synchronizer is the single writer of each symbol's document within a
    process. Documents are saved only when a call changed them and ran to
    completion; a cancelled or failed call leaves the stored document as it
    was.
    """

    def __init__(
        self,
        provider: SeriesProvider,
        store: CacheStore,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if provider is None:
            raise ArgumentError("provider is required")
        if store is None:
            raise ArgumentError("store is required")
        self.provider = provider
        self.store = store
        self.log = logger or logging.getLogger(__name__)
        # Per-symbol locks live only while some call holds or awaits them.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def _symbol_lock(self, symbol: str) -> AsyncIterator[None]:
        lock = self._locks.get(symbol)
        if lock is None:
            lock = self._locks[symbol] = asyncio.Lock()
        self._lock_users[symbol] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[symbol] -= 1
            if not self._lock_users[symbol]:
                del self._lock_users[symbol]
                del self._locks[symbol]

    # ==== PUBLIC OPERATIONS ====

    async def get_series(self, descriptor: QueryDescriptor) -> Series:
        """Return ``[start, end]`` from the cache after filling what is missing."""
        if descriptor is None:
            raise ArgumentError("descriptor is required")
        async with self._symbol_lock(descriptor.symbol):
            return await self._get_series(descriptor)

    async def get_next_series(
        self,
        descriptor: QueryDescriptor,
        current_batch: Mapping[datetime, Candle],
    ) -> Series:
        """Return the series just before the oldest candle of ``current_batch``."""
        if descriptor is None:
            raise ArgumentError("descriptor is required")
        if current_batch is None:
            raise ArgumentError("current_batch is required")
        async with self._symbol_lock(descriptor.symbol):
            return await self._get_next_series(descriptor, current_batch)

    async def get_all_series(self, descriptor: QueryDescriptor) -> Series:
        """Walk backwards through ``[start, end]`` until no earlier data comes back."""
        if descriptor is None:
            raise ArgumentError("descriptor is required")
        async with self._symbol_lock(descriptor.symbol):
            return await self._get_all_series(descriptor)

    async def refresh_series(
        self,
        descriptor: QueryDescriptor,
        now: Optional[datetime] = None,
    ) -> Series:
        """
        Extend coverage forward to ``now`` and backward to ``descriptor.start``.

        Placeholders after the latest real candle are re-fetched, since the
        provider may have published them since they were filled; the span
        before the earliest real candle is requested once more as well.
        """
        if descriptor is None:
            raise ArgumentError("descriptor is required")
        now = (now or datetime.now()).replace(microsecond=0)
        target = descriptor.narrowed(descriptor.start, max(now, descriptor.end))

        async with self._symbol_lock(descriptor.symbol):
            resolve_interval(target.interval)
            document = await self._load_document(target.symbol)
            bucket = document.bucket(target.interval)

            real = [key for key, candle in bucket.items() if not candle.is_synthetic]
            if not real:
                self.log.info(
                    "No real candles cached for %s/%s, running full history walk",
                    target.symbol,
                    target.interval,
                )
                return await self._get_all_series(target)

            earliest_real = bucket[real[0]].timestamp
            latest_real = bucket[real[-1]].timestamp
            edges: List[MissingRange] = []
            if latest_real < target.end:
                edges.append(MissingRange(latest_real, target.end))
            if target.start < earliest_real:
                edges.append(MissingRange(target.start, earliest_real - ONE_TICK))

            self.log.info(
                "Refreshing %s/%s around real data %s -> %s",
                target.symbol,
                target.interval,
                real[0],
                real[-1],
            )
            return await self._synchronize(target, document, edges)

    # ==== INTERNALS (caller holds the symbol lock) ====

    async def _get_series(self, descriptor: QueryDescriptor) -> Series:
        resolve_interval(descriptor.interval)
        document = await self._load_document(descriptor.symbol)
        return await self._synchronize(descriptor, document)

    async def _get_next_series(
        self,
        descriptor: QueryDescriptor,
        current_batch: Mapping[datetime, Candle],
    ) -> Series:
        if not current_batch:
            return {}
        oldest = min(current_batch)
        if oldest <= descriptor.start:
            return {}
        return await self._get_series(descriptor.narrowed(descriptor.start, oldest - ONE_TICK))

    async def _get_all_series(self, descriptor: QueryDescriptor) -> Series:
        batch = await self._get_series(descriptor)
        collected: Series = dict(batch)
        batches = 1

        while batch:
            previous_oldest = min(batch)
            batch = await self._get_next_series(descriptor, batch)
            if not batch:
                break
            if min(batch) >= previous_oldest:
                self.log.warning(
                    "No backward progress for %s at %s, stopping history walk",
                    descriptor.symbol,
                    to_storage_key(previous_oldest),
                )
                break
            collected.update(batch)
            batches += 1

        self.log.info(
            "History walk for %s/%s collected %d candles in %d batches",
            descriptor.symbol,
            descriptor.interval,
            len(collected),
            batches,
        )
        return dict(sorted(collected.items()))

    async def _load_document(self, symbol: str) -> CacheDocument:
        document = await self.store.get(symbol)
        if document is None:
            self.log.debug("No cache document for %s, starting empty", symbol)
            document = CacheDocument(symbol=symbol)
        return document

    async def _synchronize(
        self,
        descriptor: QueryDescriptor,
        document: CacheDocument,
        edges: Optional[List[MissingRange]] = None,
    ) -> Series:
        """
        Fetch ``edges`` and then every missing grid range, fill, and persist.

        Strategy:
        1. Walk each explicitly requested edge span
        2. Build the expected grid and diff it against the bucket
        3. Walk each missing range, newest page first
        4. Fill grid timestamps the provider could not supply
        5. Save the document if anything was fetched or filled
        6. Return the bucket restricted to [start, end]
        """
        step = resolve_interval(descriptor.interval)
        bucket = document.bucket(descriptor.interval)
        fetched_spans = 0

        for span in edges or []:
            walk = await fetch_range(self.provider, descriptor, span, bucket, self.log)
            fetched_spans += 1
            self.log.debug(
                "Edge span %s -> %s: %d pages, %d candles",
                span.start,
                span.end,
                walk.pages,
                walk.candles,
            )

        expected = list(iter_expected_timestamps(descriptor.start, descriptor.end, step))
        missing = build_missing_ranges(expected, bucket)
        self.log.info(
            "Syncing %s/%s %s -> %s: %d expected, %d missing ranges",
            descriptor.symbol,
            descriptor.interval,
            to_storage_key(descriptor.start),
            to_storage_key(descriptor.end),
            len(expected),
            len(missing),
        )

        for span in missing:
            walk = await fetch_range(self.provider, descriptor, span, bucket, self.log)
            fetched_spans += 1
            self.log.debug(
                "Missing range %s -> %s: %d pages, %d candles",
                span.start,
                span.end,
                walk.pages,
                walk.candles,
            )

        filled = fill_gaps(expected, bucket)
        if filled:
            self.log.info("Filled %d candles for %s/%s", filled, descriptor.symbol, descriptor.interval)

        if fetched_spans or filled:
            await self.store.save(descriptor.symbol, document)
            self.log.debug("Saved cache document for %s", descriptor.symbol)

        return slice_bucket(bucket, descriptor.start, descriptor.end)
