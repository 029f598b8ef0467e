"""
Candle model and per-candle geometry helpers.
"""

from dataclasses import dataclass
from typing import List, Sequence

from .calculations import InvalidInputError


@dataclass(frozen=True)
class Candle:
    """OHLCV candle. Timestamp is milliseconds since the epoch."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


def create_candle(
    timestamp: int, o: float, h: float, l: float, c: float, v: float = 1000.0
) -> Candle:
    """Helper to create a candle."""
    return Candle(timestamp=timestamp, open=o, high=h, low=l, close=c, volume=v)


# ===== GEOMETRY =====


def body_size(candle: Candle) -> float:
    return abs(candle.close - candle.open)


def upper_wick(candle: Candle) -> float:
    return candle.high - max(candle.open, candle.close)


def lower_wick(candle: Candle) -> float:
    return min(candle.open, candle.close) - candle.low


def candle_range(candle: Candle) -> float:
    return candle.high - candle.low


def is_bullish(candle: Candle) -> bool:
    return candle.close > candle.open


def is_bearish(candle: Candle) -> bool:
    return candle.close < candle.open


# ===== SERIES =====


def average_body(candles: Sequence[Candle]) -> float:
    if not candles:
        return 0.0
    return sum(body_size(c) for c in candles) / len(candles)


def highest_high(candles: Sequence[Candle]) -> float:
    if not candles:
        raise InvalidInputError("highest high of an empty candle series")
    return max(c.high for c in candles)


def lowest_low(candles: Sequence[Candle]) -> float:
    if not candles:
        raise InvalidInputError("lowest low of an empty candle series")
    return min(c.low for c in candles)


def is_time_ordered(candles: Sequence[Candle]) -> bool:
    return all(candles[i - 1].timestamp <= candles[i].timestamp for i in range(1, len(candles)))


def close_prices(candles: Sequence[Candle]) -> List[float]:
    return [c.close for c in candles]


def high_prices(candles: Sequence[Candle]) -> List[float]:
    return [c.high for c in candles]


def low_prices(candles: Sequence[Candle]) -> List[float]:
    return [c.low for c in candles]


def candle_volumes(candles: Sequence[Candle]) -> List[float]:
    return [c.volume for c in candles]
