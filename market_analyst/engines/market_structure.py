"""
Market Structure Analysis - swing points, trend and structure breaks.

Components:
1. Swing Highs/Lows (pivot window, classified HH/HL/LH/LL)
2. Trend classification from the most recent swings
3. Break of Structure (BOS) - continuation
4. Change of Character (CHOCH) - reversal
5. Structure strength and proximity to key swings

Architecture:
    CANDLES
        ↓
    SWING DETECTION (pivot window)
        ↓
    CLASSIFICATION (vs prior same-side swing)
        ↓
    TREND  ──→  BOS / CHOCH
        ↓
    STRUCTURE SUMMARY
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, StructureThresholds, exceeds, falls_below
from .candles import Candle, high_prices, low_prices
from .signals import Trend

logger = logging.getLogger(__name__)


class SwingType(Enum):
    """Swing classification relative to the prior same-side swing."""

    HH = "HH"  # Higher high
    HL = "HL"  # Higher low
    LH = "LH"  # Lower high
    LL = "LL"  # Lower low

    def __str__(self) -> str:
        return self.value


class BreakType(Enum):
    """Structure break events."""

    BOS = "BOS"  # Break of Structure (continuation)
    CHOCH = "CHOCH"  # Change of Character (reversal)


@dataclass
class SwingPoint:
    """A classified swing high or swing low."""

    type: SwingType
    price: float
    timestamp: int
    candle_index: int
    is_high: bool


@dataclass
class StructureBreak:
    """Most recent BOS/CHOCH triggered by the current close."""

    type: BreakType
    direction: str  # "up" or "down"
    price: float
    timestamp: int


@dataclass
class StructureSummary:
    """Complete structure state of one timeframe."""

    timeframe: str
    trend: Trend
    last_swing_high: float
    last_swing_low: float
    swing_points: List[SwingPoint] = field(default_factory=list)
    recent_break: Optional[StructureBreak] = None
    is_near_key_swing: bool = False
    structure_strength: float = 0.0

    @property
    def swing_highs(self) -> List[SwingPoint]:
        return [p for p in self.swing_points if p.is_high]

    @property
    def swing_lows(self) -> List[SwingPoint]:
        return [p for p in self.swing_points if not p.is_high]


class StructureAnalyzer:
    """
    Detects market structure from a candle window.

    Stateless: every call recomputes from the candles it is given.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: StructureThresholds = self.config.structure

    # ------------------------------------------------------------------
    # Swing detection
    # ------------------------------------------------------------------

    def _is_pivot(self, values: Sequence[float], i: int, high: bool) -> bool:
        """
        Pivot test over the left/right window.

        A swing high is >= every neighbour high and strictly above at least
        one of them (swing lows mirror this), so flat stretches yield no pivots.
        """
        left, right = self.thresholds.left_bars, self.thresholds.right_bars
        pivot = values[i]
        strictly_beyond = False
        for j in range(i - left, i + right + 1):
            if j == i:
                continue
            if high:
                if exceeds(values[j], pivot):
                    return False
                if exceeds(pivot, values[j]):
                    strictly_beyond = True
            else:
                if falls_below(values[j], pivot):
                    return False
                if falls_below(pivot, values[j]):
                    strictly_beyond = True
        return strictly_beyond

    def detect_swing_points(self, candles: Sequence[Candle]) -> List[SwingPoint]:
        """
        Detect and classify swing points.

        Each swing is classified only against the previous swing on the same
        side: a higher price gives HH/HL, otherwise LH/LL. The first swing of
        each side has nothing to compare to and is labelled HH (highs) or LL
        (lows).

        Returns:
            Swing points ordered by timestamp
        """
        left, right = self.thresholds.left_bars, self.thresholds.right_bars
        n = len(candles)
        if n <= left + right:
            return []

        highs = high_prices(candles)
        lows = low_prices(candles)

        swing_highs: List[SwingPoint] = []
        swing_lows: List[SwingPoint] = []

        for i in range(left, n - right):
            if self._is_pivot(highs, i, high=True):
                swing_type = SwingType.HH
                if swing_highs and not exceeds(highs[i], swing_highs[-1].price):
                    swing_type = SwingType.LH
                swing_highs.append(
                    SwingPoint(
                        type=swing_type,
                        price=highs[i],
                        timestamp=candles[i].timestamp,
                        candle_index=i,
                        is_high=True,
                    )
                )

            if self._is_pivot(lows, i, high=False):
                swing_type = SwingType.LL
                if swing_lows and exceeds(lows[i], swing_lows[-1].price):
                    swing_type = SwingType.HL
                swing_lows.append(
                    SwingPoint(
                        type=swing_type,
                        price=lows[i],
                        timestamp=candles[i].timestamp,
                        candle_index=i,
                        is_high=False,
                    )
                )

        # Stable sort keeps the high before the low on an outside bar
        return sorted(swing_highs + swing_lows, key=lambda p: (p.timestamp, p.candle_index))

    # ------------------------------------------------------------------
    # Trend
    # ------------------------------------------------------------------

    def determine_trend(self, swing_points: Sequence[SwingPoint]) -> Trend:
        """
        Classify trend from the last few swings.

        Bullish: HH/HL counts dominate
        Bearish: LH/LL counts dominate
        Choppy: not enough highs or lows in the window to tell
        Range: everything else, including fewer than four swings
        """
        t = self.thresholds
        if len(swing_points) < t.min_points_for_trend:
            return Trend.RANGE

        recent = swing_points[-t.trend_lookback_points:]
        highs = [p for p in recent if p.is_high]
        lows = [p for p in recent if not p.is_high]

        if len(highs) < t.min_points_per_side or len(lows) < t.min_points_per_side:
            return Trend.CHOPPY

        hh = sum(1 for p in highs if p.type == SwingType.HH)
        lh = sum(1 for p in highs if p.type == SwingType.LH)
        hl = sum(1 for p in lows if p.type == SwingType.HL)
        ll = sum(1 for p in lows if p.type == SwingType.LL)

        if hh >= lh and hl >= ll:
            return Trend.BULLISH
        if lh >= hh and ll >= hl:
            return Trend.BEARISH
        return Trend.RANGE

    # ------------------------------------------------------------------
    # Breaks
    # ------------------------------------------------------------------

    def detect_bos(
        self, candles: Sequence[Candle], swing_points: Sequence[SwingPoint]
    ) -> Optional[StructureBreak]:
        """Close beyond the most recent HH (up) or LL (down)."""
        t = self.thresholds
        if len(swing_points) < t.min_points_for_bos or len(candles) < t.min_candles_for_break:
            return None

        current = candles[-1]
        highs = [p for p in swing_points if p.is_high]
        lows = [p for p in swing_points if not p.is_high]
        last_high = highs[-1] if highs else None
        last_low = lows[-1] if lows else None

        if last_high and last_high.type == SwingType.HH and exceeds(current.close, last_high.price):
            return StructureBreak(BreakType.BOS, "up", current.close, current.timestamp)
        if last_low and last_low.type == SwingType.LL and falls_below(current.close, last_low.price):
            return StructureBreak(BreakType.BOS, "down", current.close, current.timestamp)
        return None

    def detect_choch(
        self, candles: Sequence[Candle], swing_points: Sequence[SwingPoint]
    ) -> Optional[StructureBreak]:
        """
        Reversal pattern within the last four swings.

        Bullish: last low is LL, last high is LH and the close clears that LH.
        Bearish: last high is HH, last low is HL and the close loses that HL.
        """
        t = self.thresholds
        if len(swing_points) < t.min_points_for_choch or len(candles) < t.min_candles_for_break:
            return None

        recent = swing_points[-t.min_points_for_choch:]
        highs = [p for p in recent if p.is_high]
        lows = [p for p in recent if not p.is_high]
        if len(highs) < 2 or len(lows) < 2:
            return None

        current = candles[-1]
        last_high, last_low = highs[-1], lows[-1]

        if (
            last_low.type == SwingType.LL
            and last_high.type == SwingType.LH
            and exceeds(current.close, last_high.price)
        ):
            return StructureBreak(BreakType.CHOCH, "up", current.close, current.timestamp)

        if (
            last_high.type == SwingType.HH
            and last_low.type == SwingType.HL
            and falls_below(current.close, last_low.price)
        ):
            return StructureBreak(BreakType.CHOCH, "down", current.close, current.timestamp)

        return None

    # ------------------------------------------------------------------
    # Strength
    # ------------------------------------------------------------------

    def calculate_strength(self, swing_points: Sequence[SwingPoint], trend: Trend) -> float:
        """50 plus 10 per confirming swing in the last six, capped at 100."""
        t = self.thresholds
        if len(swing_points) < t.min_points_for_strength:
            return t.sparse_strength

        recent = swing_points[-t.trend_lookback_points:]
        if trend == Trend.BULLISH:
            confirming = sum(1 for p in recent if p.type in (SwingType.HH, SwingType.HL))
        elif trend == Trend.BEARISH:
            confirming = sum(1 for p in recent if p.type in (SwingType.LH, SwingType.LL))
        else:
            return t.base_strength

        return min(100.0, t.trend_strength_base + confirming * t.strength_per_confirming_point)

    def _is_near(self, price: float, level: float) -> bool:
        if level <= 0:
            return False
        return abs(price - level) / level < self.thresholds.near_swing_pct

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------

    def analyze(self, candles: Sequence[Candle], timeframe: str) -> StructureSummary:
        """
        Complete structure analysis of one timeframe.

        Returns:
            StructureSummary; sparse input degrades to an empty range summary
        """
        if not candles:
            return StructureSummary(
                timeframe=timeframe,
                trend=Trend.RANGE,
                last_swing_high=0.0,
                last_swing_low=0.0,
                structure_strength=self.thresholds.sparse_strength,
            )

        swing_points = self.detect_swing_points(candles)
        trend = self.determine_trend(swing_points)
        recent_break = self.detect_bos(candles, swing_points) or self.detect_choch(
            candles, swing_points
        )

        highs = [p for p in swing_points if p.is_high]
        lows = [p for p in swing_points if not p.is_high]
        last_swing_high = highs[-1].price if highs else candles[-1].high
        last_swing_low = lows[-1].price if lows else candles[-1].low

        current_close = candles[-1].close
        is_near_key_swing = self._is_near(current_close, last_swing_high) or self._is_near(
            current_close, last_swing_low
        )

        summary = StructureSummary(
            timeframe=timeframe,
            trend=trend,
            last_swing_high=last_swing_high,
            last_swing_low=last_swing_low,
            swing_points=swing_points,
            recent_break=recent_break,
            is_near_key_swing=is_near_key_swing,
            structure_strength=self.calculate_strength(swing_points, trend),
        )

        logger.debug(
            "structure %s: %d swings, trend=%s, break=%s, strength=%.0f",
            timeframe,
            len(swing_points),
            trend.value,
            recent_break.type.value if recent_break else None,
            summary.structure_strength,
        )
        return summary


# Convenience functions


def analyze_market_structure(
    candles: Sequence[Candle], timeframe: str, config: Optional[AnalysisConfig] = None
) -> StructureSummary:
    """Run the structure analyzer with the given (or default) config."""
    return StructureAnalyzer(config).analyze(candles, timeframe)


def is_trend_aligned(structure: StructureSummary, direction: str) -> bool:
    """Whether the structural trend agrees with a "long"/"short" direction."""
    if direction == "long":
        return structure.trend == Trend.BULLISH
    if direction == "short":
        return structure.trend == Trend.BEARISH
    return False
