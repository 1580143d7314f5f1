"""FastAPI routes for cached series endpoints."""
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from candlecache.config import Config
from candlecache.timeseries.errors import ArgumentError, MalformedResponse, UnsupportedInterval
from candlecache.timeseries.gaps import check_integrity
from candlecache.timeseries.models import CacheDocument, QueryDescriptor, WireFormat
from candlecache.timeseries.schemas import CandleSchema, IntegrityCheckSchema, SeriesSchema, TrimMode
from candlecache.timeseries.sync import Series, SeriesSynchronizer
from candlecache.timeseries.trim import TRIMMERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/series", tags=["series"])


def get_synchronizer(request: Request) -> SeriesSynchronizer:
    """Synchronizer wired at startup (see candlecache.main)."""
    synchronizer = getattr(request.app.state, "synchronizer", None)
    if synchronizer is None:
        raise HTTPException(status_code=503, detail="Series synchronizer not initialized")
    return synchronizer


def _parse_datetime(value: str, name: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {name} datetime format (use YYYY-MM-DD HH:MM:SS or ISO-8601)"
        )
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _descriptor(
    symbol: str,
    interval: str,
    start: str,
    end: Optional[str],
    wire_format: WireFormat,
    output_size: int,
) -> QueryDescriptor:
    start_dt = _parse_datetime(start, "start")
    end_dt = _parse_datetime(end, "end") if end else start_dt
    try:
        return QueryDescriptor(
            symbol=symbol,
            start=start_dt,
            end=end_dt,
            interval=interval,
            output_size=output_size,
            format=wire_format,
        )
    except ArgumentError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _to_schema(descriptor: QueryDescriptor, series: Series, trim: TrimMode) -> SeriesSchema:
    if trim != "none":
        series = TRIMMERS[trim](series)
    candles = [CandleSchema.from_candle(c) for c in series.values()]
    return SeriesSchema(
        symbol=descriptor.symbol,
        interval=descriptor.interval,
        start=descriptor.start,
        end=descriptor.end,
        count=len(candles),
        filled_count=sum(1 for c in candles if c.is_filled),
        candles=candles,
        earliest=candles[0].datetime if candles else None,
        latest=candles[-1].datetime if candles else None,
    )


async def _run(operation, descriptor: QueryDescriptor, *args) -> Series:
    try:
        return await operation(descriptor, *args)
    except (ArgumentError, UnsupportedInterval) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MalformedResponse as e:
        logger.error(f"Provider returned malformed data: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Malformed provider response: {e}")
    except httpx.HTTPError as e:
        logger.error(f"Provider request failed: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=f"Provider request failed: {e}")


# ==== PUBLIC ENDPOINTS ====

@router.get("", response_model=SeriesSchema)
async def get_series(
    symbol: str = Query(Config.DEFAULT_SYMBOL),
    interval: str = Query(Config.DEFAULT_INTERVAL),
    start: str = Query(..., description="Start time (inclusive)"),
    end: str = Query(..., description="End time (inclusive)"),
    format: WireFormat = Query(WireFormat(Config.DEFAULT_FORMAT)),
    output_size: int = Query(Config.DEFAULT_OUTPUT_SIZE, ge=1, le=5000),
    trim: TrimMode = Query("none"),
    synchronizer: SeriesSynchronizer = Depends(get_synchronizer),
) -> SeriesSchema:
    """
    Get candles for ``[start, end]``, fetching and filling missing ones.

    - Only ranges absent from the cache are requested from the provider
    - Gaps the provider cannot supply are filled (is_filled=true)
    - trim drops filled candles at the ends of the result
    """
    descriptor = _descriptor(symbol, interval, start, end, format, output_size)
    series = await _run(synchronizer.get_series, descriptor)
    return _to_schema(descriptor, series, trim)


@router.get("/history", response_model=SeriesSchema)
async def get_history(
    symbol: str = Query(Config.DEFAULT_SYMBOL),
    interval: str = Query(Config.DEFAULT_INTERVAL),
    start: str = Query(..., description="Start time (inclusive)"),
    end: str = Query(..., description="End time (inclusive)"),
    format: WireFormat = Query(WireFormat(Config.DEFAULT_FORMAT)),
    output_size: int = Query(Config.DEFAULT_OUTPUT_SIZE, ge=1, le=5000),
    trim: TrimMode = Query("none"),
    synchronizer: SeriesSynchronizer = Depends(get_synchronizer),
) -> SeriesSchema:
    """Walk the full available history backwards from ``end``."""
    descriptor = _descriptor(symbol, interval, start, end, format, output_size)
    series = await _run(synchronizer.get_all_series, descriptor)
    return _to_schema(descriptor, series, trim)


@router.get("/integrity", response_model=IntegrityCheckSchema)
async def get_integrity(
    symbol: str = Query(Config.DEFAULT_SYMBOL),
    interval: str = Query(Config.DEFAULT_INTERVAL),
    start: str = Query(..., description="Start time (inclusive)"),
    end: str = Query(..., description="End time (inclusive)"),
    synchronizer: SeriesSynchronizer = Depends(get_synchronizer),
) -> IntegrityCheckSchema:
    """Report cache coverage of a range without contacting the provider."""
    descriptor = _descriptor(symbol, interval, start, end, WireFormat.JSON, 1)
    document = await synchronizer.store.get(symbol) or CacheDocument(symbol=symbol)
    try:
        integrity = check_integrity(
            document.bucket(interval), descriptor.start, descriptor.end, interval
        )
    except UnsupportedInterval as e:
        raise HTTPException(status_code=400, detail=str(e))
    return IntegrityCheckSchema(symbol=symbol, **integrity)


# ==== ADMIN ENDPOINTS ====

@router.post("/refresh", response_model=SeriesSchema)
async def refresh_series(
    symbol: str = Query(Config.DEFAULT_SYMBOL),
    interval: str = Query(Config.DEFAULT_INTERVAL),
    start: str = Query(..., description="Start time (inclusive)"),
    end: Optional[str] = Query(None, description="End time (defaults to start, extended to now)"),
    format: WireFormat = Query(WireFormat(Config.DEFAULT_FORMAT)),
    output_size: int = Query(Config.DEFAULT_OUTPUT_SIZE, ge=1, le=5000),
    trim: TrimMode = Query("none"),
    synchronizer: SeriesSynchronizer = Depends(get_synchronizer),
) -> SeriesSchema:
    """
    Extend cached coverage to now and back to ``start``.

    - Re-fetches filled candles after the latest real one
    - Re-requests the span before the earliest real one
    """
    descriptor = _descriptor(symbol, interval, start, end, format, output_size)
    series = await _run(synchronizer.refresh_series, descriptor)
    refreshed = descriptor
    if series:
        refreshed = descriptor.narrowed(descriptor.start, max(descriptor.end, max(series)))
    return _to_schema(refreshed, series, trim)
