"""
Fakeout Detection

A fakeout is a wick that pierces a key level and closes back across it,
with the piercing wick dominating the candle. Checked against raw key levels
and against liquidity zones; zone fakeouts inherit the zone's sweep state.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Sequence

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, FakeoutThresholds, exceeds, falls_below
from .candles import Candle, body_size, candle_range, is_bearish, is_bullish, lower_wick, upper_wick
from .liquidity import LiquidityZone
from .signals import Bias

logger = logging.getLogger(__name__)


class FakeoutType(Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"
    HIGH = "high"
    LOW = "low"

    @property
    def is_upside(self) -> bool:
        """Rejected from above (resistance/high)."""
        return self in (FakeoutType.RESISTANCE, FakeoutType.HIGH)


@dataclass
class Fakeout:
    type: FakeoutType
    price: float
    timestamp: int
    timeframe: str
    wick_size: float
    body_size: float
    reversal: bool
    liquidity_swept: bool
    confidence: float


class FakeoutDetector:
    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: FakeoutThresholds = self.config.fakeouts

    def _is_rejection(self, wick: float, candle: Candle) -> bool:
        t = self.thresholds
        rng = candle_range(candle)
        if rng <= 0:
            return False
        return wick > body_size(candle) * t.min_wick_body_ratio and wick / rng > t.min_wick_range_ratio

    def detect_at_resistance(
        self, candles: Sequence[Candle], level: float, timeframe: str, fakeout_type: FakeoutType = FakeoutType.RESISTANCE
    ) -> Optional[Fakeout]:
        """First of the recent candles wicking above level and closing below it."""
        for candle in candles[-self.thresholds.recent_candles:]:
            if not (exceeds(candle.high, level) and falls_below(candle.close, level)):
                continue
            wick = upper_wick(candle)
            if self._is_rejection(wick, candle):
                return Fakeout(
                    type=fakeout_type,
                    price=level,
                    timestamp=candle.timestamp,
                    timeframe=timeframe,
                    wick_size=wick,
                    body_size=body_size(candle),
                    reversal=is_bearish(candle),
                    liquidity_swept=True,
                    confidence=self.thresholds.key_level_confidence,
                )
        return None

    def detect_at_support(
        self, candles: Sequence[Candle], level: float, timeframe: str, fakeout_type: FakeoutType = FakeoutType.SUPPORT
    ) -> Optional[Fakeout]:
        """First of the recent candles wicking below level and closing above it."""
        for candle in candles[-self.thresholds.recent_candles:]:
            if not (falls_below(candle.low, level) and exceeds(candle.close, level)):
                continue
            wick = lower_wick(candle)
            if self._is_rejection(wick, candle):
                return Fakeout(
                    type=fakeout_type,
                    price=level,
                    timestamp=candle.timestamp,
                    timeframe=timeframe,
                    wick_size=wick,
                    body_size=body_size(candle),
                    reversal=is_bullish(candle),
                    liquidity_swept=True,
                    confidence=self.thresholds.key_level_confidence,
                )
        return None

    def dedupe(self, fakeouts: Sequence[Fakeout]) -> List[Fakeout]:
        """
        Highest confidence first, then drop any fakeout within the proximity
        band of one already kept.
        """
        kept: List[Fakeout] = []
        for fakeout in sorted(fakeouts, key=lambda f: f.confidence, reverse=True):
            band = abs(fakeout.price) * self.thresholds.dedupe_pct
            if any(abs(k.price - fakeout.price) < band for k in kept):
                continue
            kept.append(fakeout)
        return kept

    def detect(
        self,
        candles: Sequence[Candle],
        key_levels: Sequence[float],
        liquidity_zones: Sequence[LiquidityZone],
        timeframe: str,
    ) -> List[Fakeout]:
        """
        Returns:
            Up to three fakeouts, highest confidence first
        """
        t = self.thresholds
        if len(candles) < t.min_candles:
            return []

        current_price = candles[-1].close
        found: List[Fakeout] = []

        for level in key_levels:
            if level > current_price:
                fakeout = self.detect_at_resistance(candles, level, timeframe)
            else:
                fakeout = self.detect_at_support(candles, level, timeframe)
            if fakeout:
                found.append(fakeout)

        for zone in liquidity_zones:
            if zone.type.is_high:
                fakeout = self.detect_at_resistance(candles, zone.price, timeframe, FakeoutType.HIGH)
            else:
                fakeout = self.detect_at_support(candles, zone.price, timeframe, FakeoutType.LOW)
            if fakeout:
                found.append(
                    replace(
                        fakeout,
                        liquidity_swept=zone.swept,
                        confidence=t.swept_zone_confidence if zone.swept else t.zone_confidence,
                    )
                )

        result = self.dedupe(found)[: t.max_fakeouts]
        if result:
            logger.debug("fakeouts %s: %s", timeframe, [(f.type.value, round(f.price, 4)) for f in result])
        return result


def detect_fakeouts(
    candles: Sequence[Candle],
    key_levels: Sequence[float],
    liquidity_zones: Sequence[LiquidityZone],
    timeframe: str,
    config: Optional[AnalysisConfig] = None,
) -> List[Fakeout]:
    return FakeoutDetector(config).detect(candles, key_levels, liquidity_zones, timeframe)


def fakeout_matches(fakeout: Fakeout, direction: Bias) -> bool:
    """Reversal fakeout on the side that favours direction."""
    if not fakeout.reversal:
        return False
    if direction == Bias.LONG:
        return not fakeout.type.is_upside
    if direction == Bias.SHORT:
        return fakeout.type.is_upside
    return False


def does_fakeout_support(fakeouts: Sequence[Fakeout], direction: Bias) -> bool:
    """Whether the highest-confidence fakeout supports direction."""
    if not fakeouts:
        return False
    return fakeout_matches(fakeouts[0], direction)
