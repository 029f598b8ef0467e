"""
Shared math utilities for the analysis engines.

Series helpers (``calculate_sma``/``calculate_ema``) return aligned lists the
way the indicator code consumes them; ``ema_last`` returns the final value of
an EMA that is seeded from whatever is available.
"""

import math
from typing import List, Sequence

from .analysis_config import EPSILON


# ===== CUSTOM EXCEPTIONS =====


class InvalidInputError(ValueError):
    """Raised when a calculation is given structurally invalid input.

    Distinguishes corrupt input (empty series where a statistic needs data,
    a zero reference price) from the neutral "no signal" defaults the
    analyzers return on sparse history.
    """


# ===== AVERAGES =====


def average_last(values: Sequence[float], window: int, default: float = 0.0) -> float:
    """Return the average of the last window values (or all values if shorter)."""
    if not values or window <= 0:
        return default
    slice_vals = values[-window:]
    return sum(slice_vals) / len(slice_vals)


def calculate_sma(prices: Sequence[float], period: int) -> List[float]:
    """Calculate Simple Moving Average."""
    if len(prices) < period or period <= 0:
        return []
    window_sum = sum(prices[:period])
    sma = [window_sum / period]
    for i in range(period, len(prices)):
        window_sum += prices[i] - prices[i - period]
        sma.append(window_sum / period)
    return sma


def sma_last(prices: Sequence[float], period: int) -> float:
    """SMA of the trailing period values; all values when fewer; 0 when empty."""
    return average_last(prices, period, default=0.0)


def calculate_ema(prices: Sequence[float], period: int) -> List[float]:
    """Calculate Exponential Moving Average.

    The first value is the SMA of the first ``period`` prices; entry ``k`` of
    the result lines up with ``prices[period - 1 + k]``.
    """
    if len(prices) < period or period <= 0:
        return []

    multiplier = 2 / (period + 1)
    ema = [sum(prices[:period]) / period]

    for price in prices[period:]:
        ema.append((price - ema[-1]) * multiplier + ema[-1])

    return ema


def ema_last(prices: Sequence[float], period: int) -> float:
    """Final EMA value, degrading to the mean when fewer than period values."""
    if not prices:
        return 0.0
    if len(prices) < period:
        return sum(prices) / len(prices)
    return calculate_ema(prices, period)[-1]


# ===== DISPERSION / TREND =====


def calculate_std_dev(values: Sequence[float]) -> float:
    """Population standard deviation.

    Raises:
        InvalidInputError: if values is empty
    """
    if not values:
        raise InvalidInputError("standard deviation requires at least one value")
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def calculate_slope(values: Sequence[float]) -> float:
    """Least-squares slope against the index; 0 for fewer than two points."""
    n = len(values)
    if n < 2:
        return 0.0
    sum_x = n * (n - 1) / 2
    sum_y = sum(values)
    sum_xy = sum(i * v for i, v in enumerate(values))
    sum_x2 = sum(i * i for i in range(n))
    denominator = n * sum_x2 - sum_x * sum_x
    return (n * sum_xy - sum_x * sum_y) / denominator


def calculate_percentage_change(old_value: float, new_value: float) -> float:
    """Percentage change from old_value to new_value.

    Raises:
        InvalidInputError: if old_value is zero
    """
    if abs(old_value) <= EPSILON:
        raise InvalidInputError("percentage change from a zero base is undefined")
    return (new_value - old_value) / old_value * 100


def price_distance(price: float, reference: float) -> float:
    """Relative distance of price from reference, as a fraction.

    Raises:
        InvalidInputError: if reference is zero
    """
    if abs(reference) <= EPSILON:
        raise InvalidInputError("relative distance from a zero reference is undefined")
    return abs(price - reference) / abs(reference)


def approximately_equal(a: float, b: float, tolerance: float) -> bool:
    """Relative equality: |a - b| / max(|a|, |b|) <= tolerance."""
    scale = max(abs(a), abs(b))
    if scale <= EPSILON:
        return True
    return abs(a - b) / scale <= tolerance + EPSILON


# ===== SCALING =====


def normalize(value: float, minimum: float, maximum: float) -> float:
    """Map value into 0-100 within [minimum, maximum]; 50 for a degenerate range."""
    if maximum - minimum <= EPSILON:
        return 50.0
    return clamp((value - minimum) / (maximum - minimum) * 100, 0.0, 100.0)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
