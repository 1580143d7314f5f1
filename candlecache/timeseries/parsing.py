"""Parsers for the two time-series wire formats (JSON and CSV)."""
import json
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict

from candlecache.timeseries.errors import MalformedResponse
from candlecache.timeseries.models import Candle, WireFormat
from candlecache.timeseries.timestamps import parse_wire_datetime

logger = logging.getLogger(__name__)

NO_DATA_CODE = 400
NO_DATA_MESSAGE = "No data is available on the specified dates"
PRICE_FIELDS = ("open", "high", "low", "close")
MIN_CSV_FIELDS = 5


def parse_price(raw: Any, field_name: str) -> Decimal:
    """Parse a price with the invariant convention ('.' decimal point)."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise MalformedResponse(f"Missing '{field_name}'.")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise MalformedResponse(f"Invalid '{field_name}': {raw!r}")
    if not value.is_finite():
        raise MalformedResponse(f"Invalid '{field_name}': {raw!r}")
    return value


def is_no_data_response(payload: Dict[str, Any]) -> bool:
    """True for the provider's 'no data on the specified dates' envelope."""
    return (
        payload.get("status") == "error"
        and payload.get("code") == NO_DATA_CODE
        and NO_DATA_MESSAGE in str(payload.get("message", ""))
    )


def parse_json(text: str) -> Dict[datetime, Candle]:
    """
    Parse a structured response: ``{"values": [{datetime, open, ...}, ...]}``.

    The "no data available" error envelope is a valid empty result. Any other
    payload without a ``values`` array raises MalformedResponse.
    """
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedResponse(f"Unexpected JSON response: {e}")

    if not isinstance(payload, dict):
        raise MalformedResponse("Unexpected JSON response: expected an object.")

    if is_no_data_response(payload):
        logger.debug("Provider reported no data for the requested dates")
        return {}

    values = payload.get("values")
    if not isinstance(values, list):
        raise MalformedResponse("Unexpected JSON response: missing 'values' array.")

    result: Dict[datetime, Candle] = {}
    for item in values:
        if not isinstance(item, dict):
            raise MalformedResponse(f"Unexpected entry in 'values': {item!r}")
        dt = parse_wire_datetime(item.get("datetime"))
        result[dt] = Candle(
            timestamp=dt,
            open=parse_price(item.get("open"), "open"),
            high=parse_price(item.get("high"), "high"),
            low=parse_price(item.get("low"), "low"),
            close=parse_price(item.get("close"), "close"),
        )
    return result


def parse_csv(text: str) -> Dict[datetime, Candle]:
    """
    Parse a tabular response: header row, then ``datetime,open,high,low,close``.

    Blank lines are ignored and rows with fewer than five fields are skipped.
    """
    lines = [line for line in text.replace("\r", "\n").split("\n") if line]
    result: Dict[datetime, Candle] = {}
    if len(lines) <= 1:
        return result

    for line in lines[1:]:
        parts = line.split(",")
        if len(parts) < MIN_CSV_FIELDS:
            continue
        dt = parse_wire_datetime(parts[0])
        result[dt] = Candle(
            timestamp=dt,
            open=parse_price(parts[1], "open"),
            high=parse_price(parts[2], "high"),
            low=parse_price(parts[3], "low"),
            close=parse_price(parts[4], "close"),
        )
    return result


PARSERS: Dict[WireFormat, Callable[[str], Dict[datetime, Candle]]] = {
    WireFormat.JSON: parse_json,
    WireFormat.CSV: parse_csv,
}


def parse_payload(text: str, wire_format: WireFormat) -> Dict[datetime, Candle]:
    """Dispatch ``text`` to the parser for ``wire_format``."""
    return PARSERS[WireFormat(wire_format)](text)
