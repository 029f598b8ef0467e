"""
Momentum Analysis

Bundles RSI, MACD, ATR and Stochastic readings for one timeframe and derives
an oscillator zone, a MACD trend label and RSI divergence.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, MomentumThresholds
from .candles import Candle, close_prices
from .indicators import (
    MACDResult,
    MomentumIndicators,
    StochasticResult,
    VolatilityIndicators,
    detect_rsi_divergence,
)
from .signals import Bias, Polarity

logger = logging.getLogger(__name__)


class RSIZone(Enum):
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


@dataclass
class MomentumAnalysis:
    """Momentum state of one timeframe."""

    rsi: float
    rsi_signal: RSIZone
    macd: MACDResult
    trend: Polarity
    volatility: float  # ATR
    divergence: Optional[Polarity] = None
    stochastic: StochasticResult = field(default_factory=lambda: StochasticResult(k=50.0, d=50.0))


def neutral_momentum() -> MomentumAnalysis:
    """Momentum record used when a timeframe has no candles."""
    return MomentumAnalysis(
        rsi=50.0,
        rsi_signal=RSIZone.NEUTRAL,
        macd=MACDResult(0.0, 0.0, 0.0),
        trend=Polarity.NEUTRAL,
        volatility=0.0,
    )


class MomentumAnalyzer:
    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: MomentumThresholds = self.config.momentum

    def rsi_zone(self, rsi: float) -> RSIZone:
        if rsi >= self.thresholds.rsi_overbought:
            return RSIZone.OVERBOUGHT
        if rsi <= self.thresholds.rsi_oversold:
            return RSIZone.OVERSOLD
        return RSIZone.NEUTRAL

    @staticmethod
    def macd_trend(macd: MACDResult) -> Polarity:
        if macd.histogram > 0 and macd.value > macd.signal:
            return Polarity.BULLISH
        if macd.histogram < 0 and macd.value < macd.signal:
            return Polarity.BEARISH
        return Polarity.NEUTRAL

    def analyze(self, candles: Sequence[Candle]) -> MomentumAnalysis:
        t = self.thresholds
        if not candles:
            return neutral_momentum()

        closes = close_prices(candles)
        rsi_series = MomentumIndicators.calculate_rsi_series(closes, t.rsi_period)
        rsi = rsi_series[-1]
        macd = MomentumIndicators.calculate_macd(closes, t.macd_fast, t.macd_slow, t.macd_signal)

        divergence = detect_rsi_divergence(
            candles[-t.divergence_window:],
            rsi_series[-t.divergence_window:],
            min_values=t.divergence_min_values,
            width=t.divergence_swing_width,
        )

        analysis = MomentumAnalysis(
            rsi=rsi,
            rsi_signal=self.rsi_zone(rsi),
            macd=macd,
            trend=self.macd_trend(macd),
            volatility=VolatilityIndicators.calculate_atr(candles, t.atr_period),
            divergence=divergence,
            stochastic=MomentumIndicators.calculate_stochastic(candles, t.stochastic_k, t.stochastic_d),
        )
        logger.debug(
            "momentum: rsi=%.1f macd_hist=%.4f trend=%s divergence=%s",
            rsi,
            macd.histogram,
            analysis.trend.value,
            divergence.value if divergence else None,
        )
        return analysis


def analyze_momentum(candles: Sequence[Candle], config: Optional[AnalysisConfig] = None) -> MomentumAnalysis:
    return MomentumAnalyzer(config).analyze(candles)


def does_momentum_confirm(momentum: MomentumAnalysis, direction: Bias) -> bool:
    """
    MACD trend agrees, RSI is not at the opposing extreme, and any divergence
    points the same way.
    """
    if direction == Bias.LONG:
        return (
            momentum.trend == Polarity.BULLISH
            and momentum.rsi_signal != RSIZone.OVERBOUGHT
            and momentum.divergence in (None, Polarity.BULLISH)
        )
    if direction == Bias.SHORT:
        return (
            momentum.trend == Polarity.BEARISH
            and momentum.rsi_signal != RSIZone.OVERSOLD
            and momentum.divergence in (None, Polarity.BEARISH)
        )
    return False


def calculate_momentum_strength(momentum: MomentumAnalysis) -> float:
    """0-100 where above 50 leans bullish and below 50 leans bearish."""
    strength = 50.0

    if momentum.rsi_signal == RSIZone.OVERSOLD:
        strength += 15
    elif momentum.rsi_signal == RSIZone.OVERBOUGHT:
        strength -= 15

    if momentum.trend == Polarity.BULLISH:
        strength += 20
    elif momentum.trend == Polarity.BEARISH:
        strength -= 20

    if momentum.divergence == Polarity.BULLISH:
        strength += 15
    elif momentum.divergence == Polarity.BEARISH:
        strength -= 15

    if abs(momentum.macd.histogram) > 10:
        strength += 10

    return max(0.0, min(100.0, strength))
