"""Configuration management for the candle cache."""
import os
from dotenv import load_dotenv


load_dotenv()


class Config:
    """Load and validate environment configuration."""

    # Remote provider
    TWELVEDATA_API_KEY: str = os.getenv("TWELVEDATA_API_KEY", "")
    TWELVEDATA_BASE_URL: str = os.getenv("TWELVEDATA_BASE_URL", "https://api.twelvedata.com/")
    HTTP_TIMEOUT_SECONDS: float = 60.0
    MARKET_DATA_PROVIDER: str = os.getenv("MARKET_DATA_PROVIDER", "twelvedata")

    # Cache storage
    CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "file")
    CACHE_DIR: str = os.getenv("CACHE_DIR", "./Cache")
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./candlecache.db"
    )

    # Request defaults
    DEFAULT_SYMBOL: str = os.getenv("DEFAULT_SYMBOL", "XAU/USD")
    DEFAULT_INTERVAL: str = os.getenv("DEFAULT_INTERVAL", "4h")
    DEFAULT_OUTPUT_SIZE: int = 5000
    DEFAULT_FORMAT: str = os.getenv("DEFAULT_FORMAT", "json")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration, re-reading numeric values from the environment."""
        try:
            timeout = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))
            if timeout <= 0:
                raise ValueError("HTTP_TIMEOUT_SECONDS must be a positive number")
            cls.HTTP_TIMEOUT_SECONDS = timeout
        except ValueError as e:
            raise ValueError(f"Invalid HTTP_TIMEOUT_SECONDS: {e}")

        try:
            output_size = int(os.getenv("DEFAULT_OUTPUT_SIZE", "5000"))
            if output_size <= 0:
                raise ValueError("DEFAULT_OUTPUT_SIZE must be a positive integer")
            cls.DEFAULT_OUTPUT_SIZE = output_size
        except ValueError as e:
            raise ValueError(f"Invalid DEFAULT_OUTPUT_SIZE: {e}")

        if cls.MARKET_DATA_PROVIDER not in ("twelvedata", "mock"):
            raise ValueError(f"Invalid MARKET_DATA_PROVIDER: {cls.MARKET_DATA_PROVIDER}")

        if cls.MARKET_DATA_PROVIDER == "twelvedata":
            if not cls.TWELVEDATA_API_KEY.strip():
                raise ValueError("TWELVEDATA_API_KEY environment variable is required")
            if not cls.TWELVEDATA_BASE_URL.strip():
                raise ValueError("TWELVEDATA_BASE_URL is required")

        if cls.CACHE_BACKEND not in ("file", "db"):
            raise ValueError(f"Invalid CACHE_BACKEND: {cls.CACHE_BACKEND}")

        if cls.CACHE_BACKEND == "db" and not cls.DATABASE_URL.startswith(("postgresql", "sqlite")):
            raise ValueError("DATABASE_URL must be postgresql or sqlite")

        if cls.DEFAULT_FORMAT not in ("json", "csv"):
            raise ValueError(f"Invalid DEFAULT_FORMAT: {cls.DEFAULT_FORMAT}")
