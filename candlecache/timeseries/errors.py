"""Error taxonomy for the time-series cache."""


class CandleCacheError(Exception):
    """Base class for all candle cache errors."""


class ArgumentError(CandleCacheError, ValueError):
    """A required input is absent or invalid (caller bug, never retried)."""


class UnsupportedInterval(CandleCacheError, ValueError):
    """Interval name is not one of the fixed-duration intervals."""

    def __init__(self, interval: str) -> None:
        self.interval = interval
        super().__init__(f"Unsupported interval: {interval!r}")


class MalformedResponse(CandleCacheError, ValueError):
    """Remote payload is missing required structure or fields."""
