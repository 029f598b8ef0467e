"""
Liquidity Zone Detection

Stop orders cluster around equal highs/lows and recent swing extremes.
This module finds those levels and flags the ones recently swept
(pierced by a wick that closed back on the origin side).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, LiquidityThresholds, exceeds, falls_below
from .calculations import approximately_equal
from .candles import Candle
from .market_structure import StructureSummary, SwingPoint, SwingType

logger = logging.getLogger(__name__)


class LiquidityType(Enum):
    EQUAL_HIGHS = "equal_highs"
    EQUAL_LOWS = "equal_lows"
    SWING_HIGH = "swing_high"
    SWING_LOW = "swing_low"

    @property
    def is_high(self) -> bool:
        return self in (LiquidityType.EQUAL_HIGHS, LiquidityType.SWING_HIGH)


class Significance(Enum):
    MAJOR = "major"
    MODERATE = "moderate"
    MINOR = "minor"


@dataclass
class LiquidityZone:
    """A price level where resting liquidity is expected."""

    id: str
    type: LiquidityType
    price: float
    timeframe: str
    timestamp: int
    strength: float  # 0-100
    touched: int  # >= 2 for equal zones, 1 for swing zones
    swept: bool
    significance: Significance


class LiquidityDetector:
    """Detects equal highs/lows and swing liquidity for one timeframe."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: LiquidityThresholds = self.config.liquidity

    def group_equal_prices(self, points: Sequence[SwingPoint]) -> List[List[SwingPoint]]:
        """
        Greedy first-match clustering.

        Each point joins the first existing group whose first member is within
        the relative tolerance, otherwise it starts a new group.
        """
        groups: List[List[SwingPoint]] = []
        tolerance = self.thresholds.equal_price_tolerance
        for point in points:
            for group in groups:
                if approximately_equal(point.price, group[0].price, tolerance):
                    group.append(point)
                    break
            else:
                groups.append([point])
        return groups

    def equal_zone_strength(self, touched: int) -> float:
        """25 per touch, capped at 90."""
        t = self.thresholds
        return min(t.strength_per_touch * touched, t.max_equal_strength)

    def _equal_zones(
        self, points: Sequence[SwingPoint], zone_type: LiquidityType, timeframe: str
    ) -> List[LiquidityZone]:
        zones = []
        for group in self.group_equal_prices(points):
            if len(group) < 2:
                continue
            touched = len(group)
            significance = (
                Significance.MAJOR
                if touched >= self.thresholds.major_touch_count
                else Significance.MODERATE
            )
            zones.append(
                LiquidityZone(
                    id=f"{timeframe}-{zone_type.value}-{group[0].timestamp}",
                    type=zone_type,
                    price=sum(p.price for p in group) / touched,
                    timeframe=timeframe,
                    timestamp=group[-1].timestamp,
                    strength=self.equal_zone_strength(touched),
                    touched=touched,
                    swept=False,
                    significance=significance,
                )
            )
        return zones

    def detect_equal_highs(self, structure: StructureSummary) -> List[LiquidityZone]:
        return self._equal_zones(structure.swing_highs, LiquidityType.EQUAL_HIGHS, structure.timeframe)

    def detect_equal_lows(self, structure: StructureSummary) -> List[LiquidityZone]:
        return self._equal_zones(structure.swing_lows, LiquidityType.EQUAL_LOWS, structure.timeframe)

    def detect_swing_liquidity(self, structure: StructureSummary) -> List[LiquidityZone]:
        """The last few swing highs and lows, one zone each."""
        t = self.thresholds
        zones = []
        sides = (
            (structure.swing_highs, LiquidityType.SWING_HIGH, SwingType.HH),
            (structure.swing_lows, LiquidityType.SWING_LOW, SwingType.LL),
        )
        for points, zone_type, major_type in sides:
            for point in points[-t.swing_zone_count:]:
                is_major = point.type == major_type
                zones.append(
                    LiquidityZone(
                        id=f"{structure.timeframe}-{zone_type.value}-{point.timestamp}",
                        type=zone_type,
                        price=point.price,
                        timeframe=structure.timeframe,
                        timestamp=point.timestamp,
                        strength=t.major_swing_strength if is_major else t.minor_swing_strength,
                        touched=1,
                        swept=False,
                        significance=Significance.MAJOR if is_major else Significance.MINOR,
                    )
                )
        return zones

    def is_swept(self, zone: LiquidityZone, candles: Sequence[Candle]) -> bool:
        """A recent wick pierced the level and the candle closed back on the origin side."""
        lookback = self.thresholds.sweep_lookback
        if len(candles) < lookback:
            return False
        for candle in candles[-lookback:]:
            if zone.type.is_high:
                if exceeds(candle.high, zone.price) and falls_below(candle.close, zone.price):
                    return True
            elif falls_below(candle.low, zone.price) and exceeds(candle.close, zone.price):
                return True
        return False

    def detect(self, candles: Sequence[Candle], structure: StructureSummary) -> List[LiquidityZone]:
        """
        All liquidity zones of one timeframe.

        Returns:
            Zones sorted by strength, strongest first
        """
        zones = (
            self.detect_equal_highs(structure)
            + self.detect_equal_lows(structure)
            + self.detect_swing_liquidity(structure)
        )
        for zone in zones:
            zone.swept = self.is_swept(zone, candles)

        zones.sort(key=lambda z: z.strength, reverse=True)
        logger.debug(
            "liquidity %s: %d zones (%d swept)",
            structure.timeframe,
            len(zones),
            sum(1 for z in zones if z.swept),
        )
        return zones


def detect_liquidity_zones(
    candles: Sequence[Candle], structure: StructureSummary, config: Optional[AnalysisConfig] = None
) -> List[LiquidityZone]:
    return LiquidityDetector(config).detect(candles, structure)


def has_swept_liquidity(zones: Sequence[LiquidityZone], zone_type: Optional[LiquidityType] = None) -> bool:
    """Any swept zone, optionally restricted to one type."""
    return any(z.swept and (zone_type is None or z.type == zone_type) for z in zones)
