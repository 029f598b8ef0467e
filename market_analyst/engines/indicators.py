"""
Technical Indicators Module
Implements the oscillator and volatility calculations used by momentum analysis.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .analysis_config import EPSILON, exceeds, falls_below
from .calculations import calculate_ema, calculate_std_dev, ema_last, sma_last
from .candles import Candle, candle_volumes, high_prices, highest_high, low_prices, lowest_low
from .signals import Polarity


@dataclass
class MACDResult:
    """MACD line, signal line and histogram."""

    value: float
    signal: float
    histogram: float


@dataclass
class StochasticResult:
    k: float
    d: float


@dataclass
class BollingerBands:
    upper: float
    middle: float
    lower: float


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


class MomentumIndicators:
    """Momentum indicators: RSI, MACD, Stochastic, ROC, MFI."""

    @staticmethod
    def calculate_rsi_series(closes: Sequence[float], period: int = 14) -> List[float]:
        """
        RSI of every prefix, aligned with closes.

        Uses Wilder smoothing seeded by the simple average of the first
        ``period`` changes. Prefixes shorter than ``period + 1`` read 50, and a
        prefix whose average loss is exactly zero reads 100.
        """
        n = len(closes)
        series = [50.0] * n
        if n < period + 1:
            return series

        gains = [max(closes[i] - closes[i - 1], 0.0) for i in range(1, n)]
        losses = [max(closes[i - 1] - closes[i], 0.0) for i in range(1, n)]

        avg_gain = sum(gains[:period]) / period
        avg_loss = sum(losses[:period]) / period
        series[period] = MomentumIndicators._rsi_from_averages(avg_gain, avg_loss)

        for i in range(period, n - 1):
            avg_gain = (avg_gain * (period - 1) + gains[i]) / period
            avg_loss = (avg_loss * (period - 1) + losses[i]) / period
            series[i + 1] = MomentumIndicators._rsi_from_averages(avg_gain, avg_loss)

        return series

    @staticmethod
    def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
        if avg_loss == 0:
            return 100.0
        rs = avg_gain / avg_loss
        return 100 - (100 / (1 + rs))

    @staticmethod
    def calculate_rsi(closes: Sequence[float], period: int = 14) -> float:
        """Current RSI (50 on insufficient history)."""
        if len(closes) < period + 1:
            return 50.0
        return MomentumIndicators.calculate_rsi_series(closes, period)[-1]

    @staticmethod
    def calculate_macd(
        closes: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9
    ) -> MACDResult:
        """
        MACD = EMA(fast) - EMA(slow); signal = EMA(signal) of the MACD line.

        The MACD line is evaluated at every prefix length from ``slow`` up to
        the full series. Each prefix EMA is the running EMA of the full series
        at that index, so one pass per EMA yields the whole MACD line.

        With fewer than ``slow`` closes the slow EMA falls back to the mean of
        what is available and the signal line is 0.
        """
        if not closes:
            return MACDResult(0.0, 0.0, 0.0)

        macd_value = ema_last(closes, fast) - ema_last(closes, slow)

        macd_line: List[float] = []
        if len(closes) >= slow:
            fast_ema = calculate_ema(closes, fast)
            slow_ema = calculate_ema(closes, slow)
            macd_line = [
                fast_ema[i - (fast - 1)] - slow_ema[i - (slow - 1)] for i in range(slow - 1, len(closes))
            ]

        signal_value = ema_last(macd_line, signal)
        return MACDResult(value=macd_value, signal=signal_value, histogram=macd_value - signal_value)

    @staticmethod
    def calculate_stochastic(
        candles: Sequence[Candle], period: int = 14, smooth_d: int = 3
    ) -> StochasticResult:
        """%K of the latest close within the period range; %D is the SMA of recent %K."""
        if len(candles) < period:
            return StochasticResult(k=50.0, d=50.0)

        k_values = []
        for i in range(period - 1, len(candles)):
            window = candles[i - period + 1 : i + 1]
            low = lowest_low(window)
            high = highest_high(window)
            if high - low > EPSILON:
                k_values.append((candles[i].close - low) / (high - low) * 100)
            else:
                k_values.append(50.0)

        return StochasticResult(k=k_values[-1], d=sma_last(k_values, smooth_d))

    @staticmethod
    def calculate_roc(closes: Sequence[float], period: int = 12) -> float:
        """Percent rate of change over period; 0 on short history or zero base."""
        if len(closes) < period + 1:
            return 0.0
        previous = closes[-1 - period]
        if abs(previous) <= EPSILON:
            return 0.0
        return (closes[-1] - previous) / previous * 100

    @staticmethod
    def calculate_mfi(candles: Sequence[Candle], period: int = 14) -> float:
        """Money Flow Index; 50 on short history, 100 without negative flow."""
        if len(candles) < period + 1:
            return 50.0

        typical = [(c.high + c.low + c.close) / 3 for c in candles]
        positive_flow = 0.0
        negative_flow = 0.0
        for i in range(len(candles) - period, len(candles)):
            flow = typical[i] * candles[i].volume
            if typical[i] > typical[i - 1]:
                positive_flow += flow
            else:
                negative_flow += flow

        if negative_flow == 0:
            return 100.0
        return 100 - (100 / (1 + positive_flow / negative_flow))


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


class VolatilityIndicators:
    """Volatility indicators: ATR, Bollinger Bands."""

    @staticmethod
    def true_ranges(candles: Sequence[Candle]) -> List[float]:
        return [
            max(
                candles[i].high - candles[i].low,
                abs(candles[i].high - candles[i - 1].close),
                abs(candles[i].low - candles[i - 1].close),
            )
            for i in range(1, len(candles))
        ]

    @staticmethod
    def calculate_atr(candles: Sequence[Candle], period: int = 14) -> float:
        """Simple average of the last ``period`` true ranges; 0 below two candles."""
        if len(candles) < 2:
            return 0.0
        return sma_last(VolatilityIndicators.true_ranges(candles), period)

    @staticmethod
    def calculate_bollinger_bands(
        closes: Sequence[float], period: int = 20, std_multiplier: float = 2.0
    ) -> Optional[BollingerBands]:
        if not closes:
            return None
        window = closes[-period:]
        middle = sum(window) / len(window)
        std = calculate_std_dev(window)
        return BollingerBands(
            upper=middle + std * std_multiplier,
            middle=middle,
            lower=middle - std * std_multiplier,
        )


# =============================================================================
# VOLUME
# =============================================================================


class VolumeIndicators:
    @staticmethod
    def calculate_volume_ma(candles: Sequence[Candle], period: int = 20) -> float:
        return sma_last(candle_volumes(candles), period)

    @staticmethod
    def is_volume_confirmed(candles: Sequence[Candle], period: int = 20) -> bool:
        """Last candle's volume above the average of the trailing period."""
        if len(candles) < 2:
            return False
        return exceeds(candles[-1].volume, VolumeIndicators.calculate_volume_ma(candles, period))


# =============================================================================
# DIVERGENCE
# =============================================================================


def detect_rsi_divergence(
    candles: Sequence[Candle],
    rsi_values: Sequence[float],
    min_values: int = 10,
    width: int = 3,
) -> Optional[Polarity]:
    """
    Compare the last ``width`` bars against the ``width`` bars before them.

    Bullish: price low falls while the RSI low rises.
    Bearish: price high rises while the RSI high falls.
    """
    if len(candles) < min_values or len(rsi_values) < min_values:
        return None

    recent = candles[-min_values:]
    recent_rsi = rsi_values[-min_values:]

    lows = low_prices(recent)
    last_low = min(lows[-width:])
    prev_low = min(lows[-2 * width : -width])
    last_rsi_low = min(recent_rsi[-width:])
    prev_rsi_low = min(recent_rsi[-2 * width : -width])
    if falls_below(last_low, prev_low) and exceeds(last_rsi_low, prev_rsi_low):
        return Polarity.BULLISH

    highs = high_prices(recent)
    last_high = max(highs[-width:])
    prev_high = max(highs[-2 * width : -width])
    last_rsi_high = max(recent_rsi[-width:])
    prev_rsi_high = max(recent_rsi[-2 * width : -width])
    if exceeds(last_high, prev_high) and falls_below(last_rsi_high, prev_rsi_high):
        return Polarity.BEARISH

    return None
