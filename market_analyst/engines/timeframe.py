"""
Per-timeframe aggregation.

Runs structure → liquidity → order blocks → momentum → fakeouts over one
candle window. The result depends only on that window, so timeframes can be
analyzed in parallel.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig
from .candles import Candle
from .fakeouts import Fakeout, FakeoutDetector
from .indicators import VolumeIndicators
from .liquidity import LiquidityDetector, LiquidityZone
from .market_structure import StructureAnalyzer, StructureSummary
from .momentum import MomentumAnalysis, MomentumAnalyzer
from .order_blocks import OrderBlock, OrderBlockDetector

logger = logging.getLogger(__name__)


@dataclass
class TimeframeAnalysis:
    """Everything the aggregation stage needs from one timeframe."""

    timeframe: str
    structure: StructureSummary
    momentum: MomentumAnalysis
    order_blocks: List[OrderBlock] = field(default_factory=list)
    liquidity_zones: List[LiquidityZone] = field(default_factory=list)
    fakeouts: List[Fakeout] = field(default_factory=list)
    last_price: float = 0.0
    volume_confirmed: bool = False
    candle_count: int = 0


def analyze_timeframe(
    timeframe: str, candles: Sequence[Candle], config: Optional[AnalysisConfig] = None
) -> TimeframeAnalysis:
    """Analyze the most recent ``max_lookback_candles`` of one timeframe."""
    cfg = config or DEFAULT_CONFIG
    window = list(candles[-cfg.max_lookback_candles:]) if cfg.max_lookback_candles > 0 else list(candles)

    structure = StructureAnalyzer(cfg).analyze(window, timeframe)

    liquidity_zones: List[LiquidityZone] = []
    if cfg.enable_liquidity_zones:
        liquidity_zones = LiquidityDetector(cfg).detect(window, structure)

    order_blocks: List[OrderBlock] = []
    if cfg.enable_order_blocks:
        order_blocks = OrderBlockDetector(cfg).detect(window, structure, liquidity_zones)

    momentum = MomentumAnalyzer(cfg).analyze(window)

    key_levels = [z.price for z in liquidity_zones]
    if window:
        key_levels += [structure.last_swing_high, structure.last_swing_low]
    fakeouts = FakeoutDetector(cfg).detect(window, key_levels, liquidity_zones, timeframe)

    analysis = TimeframeAnalysis(
        timeframe=timeframe,
        structure=structure,
        momentum=momentum,
        order_blocks=order_blocks,
        liquidity_zones=liquidity_zones,
        fakeouts=fakeouts,
        last_price=window[-1].close if window else 0.0,
        volume_confirmed=VolumeIndicators.is_volume_confirmed(window, cfg.momentum.volume_ma_period),
        candle_count=len(window),
    )
    logger.debug(
        "timeframe %s analyzed: %d candles, trend=%s, %d zones, %d order blocks, %d fakeouts",
        timeframe,
        len(window),
        structure.trend.value,
        len(liquidity_zones),
        len(order_blocks),
        len(fakeouts),
    )
    return analysis
