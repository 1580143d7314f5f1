"""
One-shot importer: synchronize a symbol's cached series from the command line.

Examples:
  python -m candlecache.importer --symbol XAU/USD --start 1992-10-01 --end 2025-11-01
  python -m candlecache.importer --symbol AAPL --start "2024-01-01 00:00:00" --end 2024-03-01 --interval 1h --all
"""
import argparse
import asyncio
import logging
import sys
from datetime import datetime

from candlecache.config import Config
from candlecache.timeseries.db import SqlCacheStore, close_db, init_db
from candlecache.timeseries.models import QueryDescriptor, WireFormat
from candlecache.timeseries.provider_mock import MockProvider
from candlecache.timeseries.provider_twelvedata import TwelveDataProvider, build_http_client
from candlecache.timeseries.store import JsonFileCacheStore
from candlecache.timeseries.sync import SeriesSynchronizer
from candlecache.timeseries.trim import trim_filled

logger = logging.getLogger("candlecache.importer")


def _datetime_arg(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid datetime: {value!r}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fetch missing candles for a symbol into the local cache.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--symbol", default=Config.DEFAULT_SYMBOL, help="Symbol (e.g., XAU/USD)")
    parser.add_argument("--start", required=True, type=_datetime_arg, help="Start (YYYY-MM-DD[ HH:MM:SS])")
    parser.add_argument("--end", required=True, type=_datetime_arg, help="End (YYYY-MM-DD[ HH:MM:SS])")
    parser.add_argument("--interval", default=Config.DEFAULT_INTERVAL, help="Interval (e.g., 4h, 1day)")
    parser.add_argument(
        "--format",
        default=Config.DEFAULT_FORMAT,
        choices=[f.value for f in WireFormat],
        help="Wire format requested from the provider",
    )
    parser.add_argument("--output-size", type=int, default=Config.DEFAULT_OUTPUT_SIZE, help="Page size")
    parser.add_argument("--all", action="store_true", help="Walk the full history backwards")
    parser.add_argument("--trim", action="store_true", help="Count without filled candles at the ends")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    """Run one synchronization and return the number of candles obtained."""
    descriptor = QueryDescriptor(
        symbol=args.symbol,
        start=args.start,
        end=args.end,
        interval=args.interval,
        output_size=args.output_size,
        format=WireFormat(args.format),
    )

    http_client = None
    if Config.MARKET_DATA_PROVIDER == "mock":
        provider = MockProvider()
    else:
        http_client = build_http_client(Config.TWELVEDATA_BASE_URL, Config.HTTP_TIMEOUT_SECONDS)
        provider = TwelveDataProvider(http_client, Config.TWELVEDATA_API_KEY)

    if Config.CACHE_BACKEND == "db":
        await init_db()
        store = SqlCacheStore()
    else:
        store = JsonFileCacheStore(Config.CACHE_DIR)

    synchronizer = SeriesSynchronizer(provider, store)
    try:
        if args.all:
            candles = await synchronizer.get_all_series(descriptor)
        else:
            candles = await synchronizer.get_series(descriptor)
    finally:
        if http_client is not None:
            await http_client.aclose()
        if Config.CACHE_BACKEND == "db":
            await close_db()

    if args.trim:
        candles = trim_filled(candles)
    return len(candles)


def main(argv=None) -> None:
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    args = parse_args(argv)

    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    count = asyncio.run(run(args))
    print(f"Candles fetched: {count}")


if __name__ == "__main__":
    main()
