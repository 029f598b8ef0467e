"""
Tests for momentum indicators and momentum analysis.

Tests:
- RSI bounds and edge cases
- MACD line/signal computed incrementally
- ATR, stochastic, ROC, MFI, Bollinger bands
- RSI divergence
- Momentum confirmation helpers
"""

import math

import pytest

from market_analyst.engines.calculations import ema_last
from market_analyst.engines.indicators import (
    MACDResult,
    MomentumIndicators,
    VolatilityIndicators,
    VolumeIndicators,
    detect_rsi_divergence,
)
from market_analyst.engines.momentum import (
    MomentumAnalysis,
    RSIZone,
    analyze_momentum,
    calculate_momentum_strength,
    does_momentum_confirm,
    neutral_momentum,
)
from market_analyst.engines.signals import Bias, Polarity

from .conftest import candles_from_path, create_candle


def wave(n: int):
    return [100 + 5 * math.sin(i / 3) + 0.1 * i for i in range(n)]


# =============================================================================
# RSI
# =============================================================================


class TestRSI:
    def test_strictly_rising_is_100(self, rising_closes):
        assert MomentumIndicators.calculate_rsi(rising_closes) == 100.0

    def test_short_history_is_50(self):
        assert MomentumIndicators.calculate_rsi([1, 2, 3]) == 50.0

    def test_single_loss_below_100(self):
        closes = [float(i) for i in range(1, 20)] + [18.5]
        assert MomentumIndicators.calculate_rsi(closes) < 100.0

    def test_strictly_falling_is_0(self):
        closes = [float(50 - i) for i in range(20)]
        assert MomentumIndicators.calculate_rsi(closes) == 0.0

    def test_series_bounded(self):
        series = MomentumIndicators.calculate_rsi_series(wave(80))
        assert len(series) == 80
        assert all(0.0 <= value <= 100.0 for value in series)

    def test_series_last_matches_scalar(self):
        closes = wave(50)
        assert MomentumIndicators.calculate_rsi_series(closes)[-1] == MomentumIndicators.calculate_rsi(closes)


# =============================================================================
# MACD
# =============================================================================


class TestMACD:
    def test_matches_prefix_recomputation(self):
        closes = wave(60)

        result = MomentumIndicators.calculate_macd(closes)

        line = [ema_last(closes[:n], 12) - ema_last(closes[:n], 26) for n in range(26, len(closes) + 1)]
        assert result.value == line[-1]
        assert result.signal == ema_last(line, 9)
        assert result.histogram == result.value - result.signal

    def test_short_history_uses_partial_emas(self, rising_closes):
        result = MomentumIndicators.calculate_macd(rising_closes)

        # EMA12 of 1..20 is 14.5, mean of all 20 is 10.5; no signal line yet
        assert result.value == pytest.approx(4.0)
        assert result.signal == 0.0
        assert result.histogram > 0

    def test_empty(self):
        assert MomentumIndicators.calculate_macd([]) == MACDResult(0.0, 0.0, 0.0)


# =============================================================================
# VOLATILITY / OSCILLATORS
# =============================================================================


class TestVolatility:
    def test_atr_constant_range(self):
        candles = [create_candle(i, 100, 101, 99, 100) for i in range(20)]
        assert VolatilityIndicators.calculate_atr(candles) == pytest.approx(2.0)

    def test_atr_single_candle(self):
        assert VolatilityIndicators.calculate_atr([create_candle(0, 1, 2, 0, 1)]) == 0.0

    def test_stochastic_at_range_high(self):
        candles = candles_from_path([float(i) for i in range(100, 120)])
        result = MomentumIndicators.calculate_stochastic(candles)
        assert 90.0 < result.k <= 100.0

    def test_stochastic_short_history(self):
        result = MomentumIndicators.calculate_stochastic([create_candle(0, 1, 2, 0, 1)])
        assert (result.k, result.d) == (50.0, 50.0)

    def test_volume_confirmation(self):
        candles = [create_candle(i, 100, 101, 99, 100, v=1000.0) for i in range(20)]
        candles.append(create_candle(20, 100, 101, 99, 100, v=3000.0))
        assert VolumeIndicators.is_volume_confirmed(candles)
        assert not VolumeIndicators.is_volume_confirmed(candles[:20])


class TestRateOfChange:
    def test_percent_change_over_period(self):
        closes = [100.0] + [105.0] * 11 + [110.0]
        assert MomentumIndicators.calculate_roc(closes) == pytest.approx(10.0)

    def test_zero_base(self):
        closes = [0.0] + [5.0] * 12
        assert MomentumIndicators.calculate_roc(closes) == 0.0

    def test_short_history(self):
        assert MomentumIndicators.calculate_roc([1.0, 2.0, 3.0]) == 0.0


class TestMoneyFlow:
    def test_short_history(self):
        candles = [create_candle(i, 100, 101, 99, 100) for i in range(10)]
        assert MomentumIndicators.calculate_mfi(candles) == 50.0

    def test_no_negative_flow(self):
        candles = [create_candle(i, 100 + i, 101 + i, 99 + i, 100 + i) for i in range(15)]
        assert MomentumIndicators.calculate_mfi(candles) == 100.0

    def test_no_positive_flow(self):
        candles = [create_candle(i, 100 - i, 101 - i, 99 - i, 100 - i) for i in range(15)]
        assert MomentumIndicators.calculate_mfi(candles) == pytest.approx(0.0)


class TestBollingerBands:
    def test_constant_series_collapses_to_mean(self):
        bands = VolatilityIndicators.calculate_bollinger_bands([100.0] * 25)
        assert (bands.upper, bands.middle, bands.lower) == (100.0, 100.0, 100.0)

    def test_uses_trailing_window(self):
        closes = [0.0] * 5 + [10.0, 20.0] * 10
        bands = VolatilityIndicators.calculate_bollinger_bands(closes)
        assert bands.middle == pytest.approx(15.0)
        assert bands.upper == pytest.approx(25.0)
        assert bands.lower == pytest.approx(5.0)

    def test_empty_input(self):
        assert VolatilityIndicators.calculate_bollinger_bands([]) is None


class TestDivergence:
    def _candles(self, lows, highs):
        return [create_candle(i, (l + h) / 2, h, l, (l + h) / 2) for i, (l, h) in enumerate(zip(lows, highs))]

    def test_bullish_divergence(self):
        lows = [105, 105, 105, 105, 100, 101, 102, 99, 100, 101]
        highs = [low + 2 for low in lows]
        rsi = [50, 50, 50, 50, 30, 32, 34, 35, 36, 37]

        assert detect_rsi_divergence(self._candles(lows, highs), rsi) == Polarity.BULLISH

    def test_bearish_divergence(self):
        highs = [100, 100, 100, 100, 110, 109, 108, 111, 110, 109]
        lows = [h - 2 for h in highs]
        rsi = [50, 50, 50, 50, 75, 72, 70, 68, 66, 65]

        assert detect_rsi_divergence(self._candles(lows, highs), rsi) == Polarity.BEARISH

    def test_not_enough_values(self):
        candles = [create_candle(i, 1, 2, 0, 1) for i in range(5)]
        assert detect_rsi_divergence(candles, [50.0] * 5) is None


# =============================================================================
# ANALYSIS
# =============================================================================


class TestMomentumAnalysis:
    def test_strictly_rising_closes(self, rising_closes):
        candles = candles_from_path(rising_closes)

        momentum = analyze_momentum(candles)

        assert momentum.rsi == 100.0
        assert momentum.rsi_signal == RSIZone.OVERBOUGHT
        assert momentum.trend == Polarity.BULLISH

    def test_empty_candles_neutral(self):
        momentum = analyze_momentum([])
        assert momentum.rsi == 50.0
        assert momentum.trend == Polarity.NEUTRAL

    def test_confirmation(self):
        momentum = MomentumAnalysis(
            rsi=55.0,
            rsi_signal=RSIZone.NEUTRAL,
            macd=MACDResult(1.0, 0.5, 0.5),
            trend=Polarity.BULLISH,
            volatility=1.0,
        )
        assert does_momentum_confirm(momentum, Bias.LONG)
        assert not does_momentum_confirm(momentum, Bias.SHORT)
        assert not does_momentum_confirm(momentum, Bias.NEUTRAL)

    def test_overbought_blocks_long_confirmation(self):
        momentum = MomentumAnalysis(
            rsi=80.0,
            rsi_signal=RSIZone.OVERBOUGHT,
            macd=MACDResult(1.0, 0.5, 0.5),
            trend=Polarity.BULLISH,
            volatility=1.0,
        )
        assert not does_momentum_confirm(momentum, Bias.LONG)

    def test_strength_bounds(self):
        assert calculate_momentum_strength(neutral_momentum()) == 50.0
        bullish = MomentumAnalysis(
            rsi=20.0,
            rsi_signal=RSIZone.OVERSOLD,
            macd=MACDResult(30.0, 5.0, 25.0),
            trend=Polarity.BULLISH,
            volatility=1.0,
            divergence=Polarity.BULLISH,
        )
        assert calculate_momentum_strength(bullish) == 100.0
