"""
Tests for narratives and text summaries.
"""

from market_analyst.engines.confluence import MarketCondition, MultiTimeframeSummary
from market_analyst.engines.indicators import MACDResult
from market_analyst.engines.momentum import MomentumAnalysis, RSIZone
from market_analyst.engines.narratives import (
    generate_narrative,
    generate_overview,
    generate_text_summary,
    generate_warnings,
)
from market_analyst.engines.signal_generator import generate_signals
from market_analyst.engines.signals import Bias, Polarity, Trend

from .conftest import make_timeframe


class TestTextSummary:
    def test_long_summary(self, bullish_primary, long_mtf):
        signal = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf)[0]

        lines = generate_text_summary(signal).splitlines()

        assert lines[0] == "BUY signal - BTCUSDT (1h)"
        assert "Confidence: 100%" in lines
        assert "Entry: 99.00 - 99.80" in lines
        assert "Risk/Reward: 1:2.5" in lines
        assert lines[-1] == signal.main_scenario


class TestNarrative:
    def test_overview(self):
        text = generate_overview(Bias.SHORT, MarketCondition.TRENDING, 72.4)
        assert text == "Overall bias is bearish with a clear trend. Confidence: 72%"

    def test_overbought_warning_for_long(self):
        momentum = MomentumAnalysis(
            rsi=80.0,
            rsi_signal=RSIZone.OVERBOUGHT,
            macd=MACDResult(1.0, 0.5, 0.5),
            trend=Polarity.BULLISH,
            volatility=1.0,
            divergence=Polarity.BEARISH,
        )
        data = {"4h": make_timeframe("4h", Trend.BULLISH, momentum=momentum)}

        warnings = generate_warnings(Bias.LONG, data)

        assert warnings == ["RSI overbought on 4h", "Bearish RSI divergence on 4h"]
        assert generate_warnings(Bias.SHORT, data) == []

    def test_neutral_narrative_without_signals(self):
        mtf = MultiTimeframeSummary(global_bias=Bias.NEUTRAL, conflicting_timeframes=["1d", "1h"])

        narrative = generate_narrative(Bias.NEUTRAL, MarketCondition.CHOPPY, 0.0, mtf, {}, [])

        assert narrative.strength_points == ["No clear strength points at the moment"]
        assert "Market is choppy with no clear direction" in narrative.weak_points
        assert "No global bias across timeframes" in narrative.weak_points
        assert narrative.warnings == []

    def test_signal_factors_become_strength_points(self, bullish_primary, long_mtf):
        signals = generate_signals("BTCUSDT", {"1h": bullish_primary}, long_mtf)

        narrative = generate_narrative(
            Bias.LONG, MarketCondition.TRENDING, signals[0].confidence, long_mtf, {"1h": bullish_primary}, signals
        )

        assert "Strong agreement across timeframes" in narrative.strength_points
        assert "Liquidity swept" in narrative.strength_points
