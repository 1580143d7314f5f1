"""Tests for trimming synthetic candles from series edges."""
from datetime import datetime, timedelta

import pytest

from candlecache.timeseries.errors import ArgumentError
from candlecache.timeseries.trim import TRIMMERS, trim_filled, trim_leading_filled, trim_trailing_filled

from series_fixtures import filled_candle, real_candle

T = [datetime(2024, 1, 1) + timedelta(hours=4 * i) for i in range(6)]


def series(*pattern):
    """Build a series from a pattern like ("F", "R", "F") in time order."""
    factory = {"R": real_candle, "F": filled_candle}
    return {T[i]: factory[kind](T[i]) for i, kind in enumerate(pattern)}


def test_trim_leading_drops_synthetic_prefix_only():
    candles = series("F", "F", "R", "F", "R", "F")
    assert list(trim_leading_filled(candles)) == T[2:6]


def test_trim_trailing_drops_synthetic_suffix_only():
    candles = series("F", "R", "F", "R", "F", "F")
    assert list(trim_trailing_filled(candles)) == T[0:4]


def test_trim_both_keeps_interior_placeholders():
    candles = series("F", "R", "F", "R", "F")
    result = trim_filled(candles)
    assert list(result) == T[1:4]
    assert result[T[2]].is_synthetic is True


def test_trim_all_synthetic_is_empty():
    candles = series("F", "F", "F")
    assert trim_leading_filled(candles) == {}
    assert trim_trailing_filled(candles) == {}
    assert trim_filled(candles) == {}


def test_trim_empty_input():
    assert trim_filled({}) == {}


def test_trim_all_real_is_unchanged():
    candles = series("R", "R", "R")
    assert trim_filled(candles) == candles


def test_trim_accepts_unordered_input_and_returns_ordered():
    candles = series("F", "R", "R", "F")
    shuffled = dict(reversed(list(candles.items())))
    assert list(trim_filled(shuffled)) == T[1:3]


def test_trim_both_equals_leading_then_trailing():
    for pattern in (("F", "R", "F"), ("R", "F", "F", "R"), ("F", "F"), ("F", "R", "F", "R", "F", "F")):
        candles = series(*pattern)
        assert trim_filled(candles) == trim_trailing_filled(trim_leading_filled(candles))
        assert trim_filled(candles) == trim_leading_filled(trim_trailing_filled(candles))


def test_trim_rejects_none():
    with pytest.raises(ArgumentError):
        trim_filled(None)
    with pytest.raises(ArgumentError):
        trim_leading_filled(None)


def test_trimmers_registry():
    assert set(TRIMMERS) == {"leading", "trailing", "both"}
    assert TRIMMERS["both"] is trim_filled
