"""FastAPI application entrypoint."""
import logging
import sys

from fastapi import FastAPI
from pydantic import BaseModel

from candlecache import __version__
from candlecache.config import Config
from candlecache.timeseries.db import SqlCacheStore, close_db, init_db
from candlecache.timeseries.provider_mock import MockProvider
from candlecache.timeseries.provider_twelvedata import TwelveDataProvider, build_http_client
from candlecache.timeseries.router import router as series_router
from candlecache.timeseries.store import JsonFileCacheStore
from candlecache.timeseries.sync import SeriesSynchronizer

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Validate config on startup
try:
    Config.validate()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    sys.exit(1)

app = FastAPI(title="Candle Cache", version=__version__)


class MessageResponse(BaseModel):
    """Standard response model."""
    message: str


app.include_router(series_router)


@app.on_event("startup")
async def startup_event() -> None:
    """Wire provider, cache store and synchronizer."""
    logger.info("Initializing series synchronizer...")
    http_client = None
    if Config.MARKET_DATA_PROVIDER == "mock":
        provider = MockProvider()
    else:
        http_client = build_http_client(Config.TWELVEDATA_BASE_URL, Config.HTTP_TIMEOUT_SECONDS)
        provider = TwelveDataProvider(http_client, Config.TWELVEDATA_API_KEY)

    if Config.CACHE_BACKEND == "db":
        try:
            await init_db()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=True)
            raise
        store = SqlCacheStore()
    else:
        store = JsonFileCacheStore(Config.CACHE_DIR)

    app.state.http_client = http_client
    app.state.synchronizer = SeriesSynchronizer(provider, store)
    logger.info(
        f"Series synchronizer ready (provider={Config.MARKET_DATA_PROVIDER}, cache={Config.CACHE_BACKEND})"
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Cleanup on shutdown."""
    logger.info("Shutting down...")

    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        await http_client.aclose()

    if Config.CACHE_BACKEND == "db":
        logger.info("Closing database connections...")
        try:
            await close_db()
        except Exception as e:
            logger.warning(f"Error closing database: {e}")


@app.get("/health")
async def health_check() -> MessageResponse:
    """Health check endpoint."""
    return MessageResponse(message="OK")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Candle Cache v{__version__} on 0.0.0.0:8000")
    logger.info(f"Market Data Provider: {Config.MARKET_DATA_PROVIDER}")

    uvicorn.run(
        "candlecache.main:app",
        host="0.0.0.0",
        port=8000,
        reload=False
    )
