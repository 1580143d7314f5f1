"""Incremental candle cache synchronization against a paginated time-series API."""

__version__ = "1.0.0"
