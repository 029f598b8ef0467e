"""
Tests for signal generation.

Tests:
- Long signal from the nearest order block
- Short signal from the fallback band
- Stop beyond the entry zone actually used
- Signals only in the global bias direction
- Reported risk/reward constant
"""

import dataclasses

import pytest

from market_analyst.engines.analysis_config import AnalysisConfig, SignalThresholds
from market_analyst.engines.confluence import MultiTimeframeSummary
from market_analyst.engines.indicators import MACDResult
from market_analyst.engines.market_structure import BreakType, StructureBreak
from market_analyst.engines.momentum import MomentumAnalysis, RSIZone
from market_analyst.engines.order_blocks import OrderBlock
from market_analyst.engines.signal_generator import SignalGenerator, generate_signals, primary_signal_timeframe
from market_analyst.engines.signals import Bias, Polarity, Trend

from .conftest import make_timeframe


@pytest.fixture
def bearish_primary():
    momentum = MomentumAnalysis(
        rsi=45.0,
        rsi_signal=RSIZone.NEUTRAL,
        macd=MACDResult(-1.0, -0.5, -0.5),
        trend=Polarity.BEARISH,
        volatility=1.0,
    )
    return make_timeframe(
        "1h",
        Trend.BEARISH,
        strength=90.0,
        momentum=momentum,
        last_swing_high=200.0,
        last_swing_low=180.0,
        recent_break=StructureBreak(BreakType.BOS, "down", 179.0, 0),
        is_near_key_swing=True,
        last_price=198.0,
        volume_confirmed=True,
    )


def mtf(bias, score=100.0):
    return MultiTimeframeSummary(global_bias=bias, aligned_timeframes=["4h", "1h"], confluence_score=score)


class TestLongSignal:
    def test_entry_from_nearest_order_block(self, bullish_primary, long_mtf):
        signals = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf, timestamp=1_000)

        assert len(signals) == 1
        signal = signals[0]
        assert signal.direction == Bias.LONG
        assert signal.confidence == 100.0
        assert signal.timestamp == 1_000
        assert signal.originating_timeframe == "1h"
        assert signal.entry_zone.price_from == 99.0
        assert signal.entry_zone.price_to == 99.8
        assert signal.stop_loss == pytest.approx(96.04)
        assert signal.targets.tp1 == pytest.approx(105.44)
        assert signal.targets.tp2 == pytest.approx(109.2)
        assert signal.targets.tp3 == pytest.approx(114.84)
        assert signal.risk_reward == 2.5
        assert signal.invalidation_price == signal.stop_loss
        assert "order_block" in signal.tags
        assert "liquidity_sweep" in signal.tags
        assert signal.aligned_timeframes == ("1h",)

    def test_targets_ordered(self, bullish_primary, long_mtf):
        signal = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf)[0]
        assert signal.stop_loss < signal.entry_zone.price_from <= signal.entry_zone.price_to
        assert signal.entry_zone.price_to < signal.targets.tp1 < signal.targets.tp2 < signal.targets.tp3

    def test_signal_is_immutable(self, bullish_primary, long_mtf):
        signal = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf)[0]
        with pytest.raises(dataclasses.FrozenInstanceError):
            signal.confidence = 10.0


class TestShortSignal:
    def test_fallback_band_below_swing_high(self, bearish_primary):
        signals = generate_signals("ETHUSDT", {"1h": bearish_primary}, mtf(Bias.SHORT))

        assert len(signals) == 1
        signal = signals[0]
        assert signal.direction == Bias.SHORT
        assert signal.entry_zone.price_from == pytest.approx(196.0)
        assert signal.entry_zone.price_to == 200.0
        assert signal.stop_loss == pytest.approx(204.0)
        assert signal.targets.tp1 == pytest.approx(184.0)
        assert signal.targets.tp2 == pytest.approx(176.0)
        assert signal.targets.tp3 == pytest.approx(164.0)
        assert "resistance" in signal.tags


def make_block(direction, price_from, price_to):
    return OrderBlock(
        id=f"1h-ob-{direction.value}-0",
        direction=direction,
        timeframe="1h",
        price_from=price_from,
        price_to=price_to,
        timestamp=0,
        strength=70.0,
        volume=2500.0,
        broke_structure=True,
        cleared_liquidity=False,
    )


def with_block(record, block, **swings):
    """Replace the order blocks and move the last swings."""
    structure = dataclasses.replace(record.structure, **swings)
    return dataclasses.replace(record, order_blocks=[block], structure=structure)


class TestStopPlacement:
    def test_long_block_below_swing_low(self, bullish_primary, long_mtf):
        block = make_block(Polarity.BULLISH, 90.0, 92.0)
        record = with_block(bullish_primary, block, last_swing_low=100.0)

        signal = generate_signals("BTCUSDT", {"1h": record}, long_mtf)[0]

        assert signal.entry_zone.price_from == 90.0
        assert signal.entry_zone.price_to == 92.0
        assert signal.stop_loss == pytest.approx(88.2)
        assert signal.targets.tp1 == pytest.approx(97.7)
        assert signal.targets.tp2 == pytest.approx(101.5)
        assert signal.targets.tp3 == pytest.approx(107.2)
        assert signal.stop_loss < signal.entry_zone.price_from < signal.entry_zone.price_to
        assert signal.entry_zone.price_to < signal.targets.tp1 < signal.targets.tp2 < signal.targets.tp3

    def test_short_block_above_swing_high(self, bearish_primary):
        block = make_block(Polarity.BEARISH, 210.0, 212.0)
        record = with_block(bearish_primary, block, last_swing_high=200.0)

        signal = generate_signals("ETHUSDT", {"1h": record}, mtf(Bias.SHORT))[0]

        assert signal.entry_zone.price_from == 210.0
        assert signal.stop_loss == pytest.approx(216.24)
        assert signal.targets.tp1 == pytest.approx(200.64)
        assert signal.targets.tp3 == pytest.approx(185.04)
        assert signal.stop_loss > signal.entry_zone.price_to > signal.entry_zone.price_from
        assert signal.entry_zone.price_from > signal.targets.tp1 > signal.targets.tp2 > signal.targets.tp3

    def test_short_fallback_targets_ordered(self, bearish_primary):
        signal = generate_signals("ETHUSDT", {"1h": bearish_primary}, mtf(Bias.SHORT))[0]
        assert signal.stop_loss > signal.entry_zone.price_to >= signal.entry_zone.price_from
        assert signal.entry_zone.price_from > signal.targets.tp1 > signal.targets.tp2 > signal.targets.tp3


class TestGating:
    def test_neutral_bias_emits_nothing(self, bullish_primary):
        assert generate_signals("BTCUSDT", {"1h": bullish_primary}, mtf(Bias.NEUTRAL)) == []

    def test_only_global_bias_direction(self, bullish_primary, long_mtf):
        # The short side also clears 65 here but the bias is long
        signals = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf)
        assert [s.direction for s in signals] == [Bias.LONG]

    def test_low_confidence_emits_nothing(self, long_mtf):
        data = {"1h": make_timeframe("1h", Trend.BULLISH, strength=50.0)}
        assert generate_signals("BTCUSDT", data, long_mtf) == []

    def test_no_timeframes(self, long_mtf):
        assert generate_signals("BTCUSDT", {}, long_mtf) == []

    def test_primary_prefers_4h_after_1h(self, bullish_primary, long_mtf):
        four_hour = dataclasses.replace(bullish_primary, timeframe="4h")
        daily = dataclasses.replace(bullish_primary, timeframe="1d")
        signals = generate_signals("BTCUSDT", {"1d": daily, "4h": four_hour}, long_mtf)
        assert signals[0].originating_timeframe == "4h"

    def test_primary_falls_back_to_first_timeframe(self, bullish_primary):
        daily = dataclasses.replace(bullish_primary, timeframe="1d")
        weekly = dataclasses.replace(bullish_primary, timeframe="1w")
        assert primary_signal_timeframe({"1d": daily, "1w": weekly}) is daily
        assert primary_signal_timeframe({}) is None


class TestRiskReward:
    def test_reported_constant_regardless_of_geometry(self):
        # entry 100, stop 98, tp1 103 is geometrically 1.5
        assert SignalGenerator().risk_reward(100.0, 98.0, 103.0) == 2.5

    def test_derived_when_enabled(self):
        config = AnalysisConfig(signals=SignalThresholds(derive_risk_reward=True))
        assert SignalGenerator(config).risk_reward(100.0, 98.0, 103.0) == pytest.approx(1.5)
