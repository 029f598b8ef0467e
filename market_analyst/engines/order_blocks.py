"""
Order Block Detection

An order block is the last opposing candle (or run of candles) before an
impulsive move that breaks away from a swing. The candle body becomes a
demand (bullish) or supply (bearish) zone.

Lifecycle:
    VALID  ──(range overlaps later)──→  TESTED
      └────(close through zone)─────→  BROKEN (discarded)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Set, Tuple

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, OrderBlockThresholds, falls_below, exceeds
from .candles import Candle, average_body, is_bearish, is_bullish
from .liquidity import LiquidityType, LiquidityZone, has_swept_liquidity
from .market_structure import StructureSummary
from .signals import Polarity

logger = logging.getLogger(__name__)


class OrderBlockStatus(Enum):
    VALID = "valid"
    TESTED = "tested"
    BROKEN = "broken"


@dataclass
class OrderBlock:
    """Supply or demand zone. Invariant: price_from <= price_to."""

    id: str
    direction: Polarity  # BULLISH (demand) or BEARISH (supply)
    timeframe: str
    price_from: float
    price_to: float
    timestamp: int
    strength: float  # 0-100
    volume: float
    broke_structure: bool
    cleared_liquidity: bool
    tested: int = 0
    status: OrderBlockStatus = OrderBlockStatus.VALID

    @property
    def mid_price(self) -> float:
        return (self.price_from + self.price_to) / 2

    @property
    def is_broken(self) -> bool:
        return self.status == OrderBlockStatus.BROKEN

    def distance_to(self, price: float) -> float:
        """Absolute distance from price to the zone; 0 inside it."""
        if price < self.price_from:
            return self.price_from - price
        if price > self.price_to:
            return price - self.price_to
        return 0.0


class OrderBlockDetector:
    """Finds order blocks around swing points of one timeframe."""

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: OrderBlockThresholds = self.config.order_blocks

    # ------------------------------------------------------------------
    # Break / origin search
    # ------------------------------------------------------------------

    def find_break_index(self, candles: Sequence[Candle], swing_index: int, bullish: bool) -> Optional[int]:
        """First candle within the scan window closing 2% beyond the swing."""
        t = self.thresholds
        swing = candles[swing_index]
        end = min(swing_index + t.break_scan_bars, len(candles))
        for i in range(swing_index + 1, end):
            if bullish and candles[i].close >= swing.low * (1 + t.break_move_pct):
                return i
            if not bullish and candles[i].close <= swing.high * (1 - t.break_move_pct):
                return i
        return None

    def find_origin_index(self, candles: Sequence[Candle], break_index: int, bullish: bool) -> int:
        """Walk back from the candle before the break over same-direction candles."""
        ob_index = break_index - 1
        same_direction = is_bullish if bullish else is_bearish
        while ob_index > 0 and same_direction(candles[ob_index]):
            ob_index -= 1
        return ob_index

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def build_order_block(
        self,
        candles: Sequence[Candle],
        break_index: int,
        bullish: bool,
        structure: StructureSummary,
        liquidity_zones: Sequence[LiquidityZone],
        average_volume: float,
    ) -> Optional[OrderBlock]:
        """
        Validate the impulse and score the resulting block.

        The move from the block to the break candle must exceed twice the
        average body of the preceding candles, otherwise None.
        """
        t = self.thresholds
        if break_index < t.min_break_index:
            return None

        ob_index = self.find_origin_index(candles, break_index, bullish)
        ob_candle = candles[ob_index]
        break_candle = candles[break_index]

        if bullish:
            move_size = break_candle.high - ob_candle.low
        else:
            move_size = ob_candle.high - break_candle.low

        preceding = candles[max(0, ob_index - t.body_lookback):ob_index]
        if move_size <= average_body(preceding) * t.min_move_body_multiple:
            return None

        price_from = min(ob_candle.open, ob_candle.close)
        price_to = max(ob_candle.open, ob_candle.close)

        broke_structure = structure.recent_break is not None
        swept_side = LiquidityType.EQUAL_LOWS if bullish else LiquidityType.EQUAL_HIGHS
        cleared_liquidity = has_swept_liquidity(liquidity_zones, swept_side)

        strength = self.calculate_strength(
            ob_candle, price_from, price_to, average_volume, broke_structure, cleared_liquidity
        )
        direction = Polarity.BULLISH if bullish else Polarity.BEARISH

        return OrderBlock(
            id=f"{structure.timeframe}-ob-{direction.value}-{ob_candle.timestamp}",
            direction=direction,
            timeframe=structure.timeframe,
            price_from=price_from,
            price_to=price_to,
            timestamp=ob_candle.timestamp,
            strength=strength,
            volume=ob_candle.volume,
            broke_structure=broke_structure,
            cleared_liquidity=cleared_liquidity,
        )

    def calculate_strength(
        self,
        ob_candle: Candle,
        price_from: float,
        price_to: float,
        average_volume: float,
        broke_structure: bool,
        cleared_liquidity: bool,
    ) -> float:
        t = self.thresholds
        strength = t.base_strength

        if average_volume > 0:
            if ob_candle.volume > average_volume * t.high_volume_ratio:
                strength += t.high_volume_bonus
            if ob_candle.volume > average_volume * t.very_high_volume_ratio:
                strength += t.very_high_volume_bonus

        if broke_structure:
            strength += t.structure_break_bonus
        if cleared_liquidity:
            strength += t.liquidity_bonus

        mid = (price_from + price_to) / 2
        if mid > 0 and (price_to - price_from) / mid < t.tight_zone_pct:
            strength += t.tight_zone_bonus

        return min(strength, t.max_strength)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def update_status(self, block: OrderBlock, candles: Sequence[Candle]) -> None:
        """Mark the block broken or tested from later candles in the window."""
        t = self.thresholds
        later_broken = [c for c in candles[-t.broken_lookback:] if c.timestamp > block.timestamp]
        for candle in later_broken:
            if block.direction == Polarity.BULLISH and falls_below(candle.close, block.price_from):
                block.status = OrderBlockStatus.BROKEN
                return
            if block.direction == Polarity.BEARISH and exceeds(candle.close, block.price_to):
                block.status = OrderBlockStatus.BROKEN
                return

        later_tested = [c for c in candles[-t.tested_lookback:] if c.timestamp > block.timestamp]
        for candle in later_tested:
            if candle.low <= block.price_to and candle.high >= block.price_from:
                block.status = OrderBlockStatus.TESTED
                block.tested += 1
                return

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------

    def detect(
        self,
        candles: Sequence[Candle],
        structure: StructureSummary,
        liquidity_zones: Sequence[LiquidityZone],
    ) -> List[OrderBlock]:
        """
        Order blocks of one timeframe.

        Returns:
            Up to five non-broken blocks, strongest first
        """
        t = self.thresholds
        if len(candles) < t.min_candles:
            return []

        average_volume = sum(c.volume for c in candles) / len(candles)
        blocks: List[OrderBlock] = []
        seen: Set[Tuple[Polarity, int]] = set()

        for point in structure.swing_points:
            bullish = not point.is_high
            break_index = self.find_break_index(candles, point.candle_index, bullish)
            if break_index is None:
                continue

            block = self.build_order_block(
                candles[: break_index + 1],
                break_index,
                bullish,
                structure,
                liquidity_zones,
                average_volume,
            )
            if block is None:
                continue

            key = (block.direction, block.timestamp)
            if key in seen:
                continue
            seen.add(key)

            self.update_status(block, candles)
            blocks.append(block)

        valid = [b for b in blocks if not b.is_broken]
        valid.sort(key=lambda b: b.strength, reverse=True)

        logger.debug(
            "order blocks %s: %d found, %d kept", structure.timeframe, len(blocks), len(valid[: t.max_blocks])
        )
        return valid[: t.max_blocks]


def detect_order_blocks(
    candles: Sequence[Candle],
    structure: StructureSummary,
    liquidity_zones: Sequence[LiquidityZone],
    config: Optional[AnalysisConfig] = None,
) -> List[OrderBlock]:
    return OrderBlockDetector(config).detect(candles, structure, liquidity_zones)


def nearest_order_block(
    blocks: Sequence[OrderBlock], direction: Polarity, price: float
) -> Optional[OrderBlock]:
    """Closest non-broken block of a direction; ties keep the stronger (earlier) block."""
    candidates = [b for b in blocks if b.direction == direction and not b.is_broken]
    if not candidates:
        return None
    return min(candidates, key=lambda b: b.distance_to(price))
