"""
Tests for market structure analysis.

Tests:
- Flat input yields no swings and a range trend
- Swing classification on zigzag data
- Trend classification (bullish, bearish, sparse)
- BOS / CHOCH detection
- Swing classification is stable as candles are appended
"""

from market_analyst.engines.market_structure import (
    BreakType,
    StructureAnalyzer,
    SwingType,
    analyze_market_structure,
    is_trend_aligned,
)
from market_analyst.engines.signals import Trend

from .conftest import create_candle, zigzag_candles


class TestSwingDetection:
    def test_flat_candles_have_no_swings(self, flat_candles):
        summary = analyze_market_structure(flat_candles, "1h")

        assert summary.swing_points == []
        assert summary.trend == Trend.RANGE
        assert summary.recent_break is None

    def test_constant_range_candles_have_no_swings(self):
        candles = [create_candle(i, 100, 101, 99, 100) for i in range(30)]
        assert StructureAnalyzer().detect_swing_points(candles) == []

    def test_bullish_zigzag_classification(self, bullish_zigzag):
        points = StructureAnalyzer().detect_swing_points(bullish_zigzag)

        assert [(p.type, p.is_high) for p in points] == [
            (SwingType.HH, True),  # 110, first high
            (SwingType.LL, False),  # 105, first low
            (SwingType.HH, True),  # 115
            (SwingType.HL, False),  # 108
            (SwingType.HH, True),  # 120
        ]
        assert [p.candle_index for p in points] == [6, 12, 18, 24, 30]
        assert points[-1].price == 120.5

    def test_points_ordered_by_timestamp(self, bearish_zigzag):
        points = StructureAnalyzer().detect_swing_points(bearish_zigzag)
        timestamps = [p.timestamp for p in points]
        assert timestamps == sorted(timestamps)

    def test_short_input_has_no_swings(self):
        candles = zigzag_candles([100, 110])
        assert StructureAnalyzer().detect_swing_points(candles[:10]) == []

    def test_classification_stable_when_appending(self):
        full = zigzag_candles([100, 110, 105, 115, 108, 120, 112, 125, 118])
        analyzer = StructureAnalyzer()
        right = analyzer.thresholds.right_bars
        full_points = analyzer.detect_swing_points(full)

        for length in range(20, len(full)):
            prefix_points = analyzer.detect_swing_points(full[:length])
            confirmed = [p for p in prefix_points if p.candle_index + right < length]
            expected = [p for p in full_points if p.candle_index + right < length]
            assert [(p.candle_index, p.type) for p in confirmed] == [
                (p.candle_index, p.type) for p in expected
            ]


class TestTrend:
    def test_bullish_trend(self, bullish_zigzag):
        summary = analyze_market_structure(bullish_zigzag, "1h")

        assert summary.trend == Trend.BULLISH
        # 4 confirming HH/HL swings
        assert summary.structure_strength == 90.0
        assert summary.last_swing_high == 120.5
        assert summary.last_swing_low == 107.5
        assert is_trend_aligned(summary, "long")
        assert not is_trend_aligned(summary, "short")

    def test_bearish_trend(self, bearish_zigzag):
        summary = analyze_market_structure(bearish_zigzag, "4h")

        assert summary.trend == Trend.BEARISH
        assert summary.structure_strength == 90.0
        assert summary.timeframe == "4h"

    def test_few_swings_is_range(self):
        analyzer = StructureAnalyzer()
        points = analyzer.detect_swing_points(zigzag_candles([100, 110, 105, 115]))
        assert len(points) < 4
        assert analyzer.determine_trend(points) == Trend.RANGE

    def test_empty_candles(self):
        summary = analyze_market_structure([], "1h")
        assert summary.trend == Trend.RANGE
        assert summary.structure_strength == 30.0
        assert summary.last_swing_high == 0.0


class TestStructureBreaks:
    def test_no_break_inside_range(self, bullish_zigzag):
        summary = analyze_market_structure(bullish_zigzag, "1h")
        assert summary.recent_break is None

    def test_bos_up(self):
        candles = zigzag_candles([100, 110, 105, 115, 108, 120, 112, 125])
        summary = analyze_market_structure(candles, "1h")

        assert summary.recent_break is not None
        assert summary.recent_break.type == BreakType.BOS
        assert summary.recent_break.direction == "up"
        assert summary.recent_break.timestamp == candles[-1].timestamp

    def test_bos_down(self):
        candles = zigzag_candles([120, 110, 115, 105, 112, 100, 108, 95])
        summary = analyze_market_structure(candles, "1h")

        assert summary.recent_break is not None
        assert summary.recent_break.type == BreakType.BOS
        assert summary.recent_break.direction == "down"

    def test_bullish_choch(self):
        # Last low is LL at 100, last high LH at 112; rally to 114 clears it
        candles = zigzag_candles([120, 110, 115, 105, 112, 100, 114])
        summary = analyze_market_structure(candles, "1h")

        assert summary.recent_break is not None
        assert summary.recent_break.type == BreakType.CHOCH
        assert summary.recent_break.direction == "up"
