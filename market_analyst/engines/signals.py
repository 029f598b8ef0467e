"""Shared enums and helpers to avoid stringly-typed directions."""

from enum import Enum
from typing import Optional, Union


class Trend(Enum):
    """Structural trend of one timeframe."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    RANGE = "range"
    CHOPPY = "choppy"

    def __str__(self) -> str:
        return self.value

    @property
    def is_directional(self) -> bool:
        return self in (Trend.BULLISH, Trend.BEARISH)


class Polarity(Enum):
    """Bullish/bearish reading of a zone, oscillator or divergence."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value


class Bias(Enum):
    """Trade direction, with NEUTRAL meaning no side."""
    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value


BiasLike = Union[Bias, str]

# Trend and polarity that agree with each trade side
BIAS_TREND = {Bias.LONG: Trend.BULLISH, Bias.SHORT: Trend.BEARISH}
BIAS_POLARITY = {Bias.LONG: Polarity.BULLISH, Bias.SHORT: Polarity.BEARISH}


def coerce_bias(bias: BiasLike, default: Bias = Bias.NEUTRAL) -> Bias:
    """Convert a string to Bias, falling back to default for unknown values."""
    if isinstance(bias, Bias):
        return bias
    try:
        return Bias(str(bias).lower())
    except ValueError:
        return default


def polarity_for_bias(bias: Bias) -> Optional[Polarity]:
    return BIAS_POLARITY.get(bias)


def trend_for_bias(bias: Bias) -> Optional[Trend]:
    return BIAS_TREND.get(bias)
