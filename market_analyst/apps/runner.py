"""
Analysis orchestration for one symbol.

Contains analyze_symbol, which runs every timeframe through the per-timeframe
pipeline and then aggregates: confluence → signals → key levels → narrative.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

from market_analyst.engines.analysis_config import DEFAULT_CONFIG, AnalysisConfig
from market_analyst.engines.candles import Candle
from market_analyst.engines.confluence import (
    ConfluenceAnalyzer,
    MarketCondition,
    MultiTimeframeSummary,
    determine_market_condition,
)
from market_analyst.engines.narratives import (
    NO_SIGNAL_SUMMARY,
    Narrative,
    generate_narrative,
    generate_text_summary,
)
from market_analyst.engines.signal_generator import SignalGenerator, TradeSignal
from market_analyst.engines.signals import Bias
from market_analyst.engines.timeframe import TimeframeAnalysis, analyze_timeframe

logger = logging.getLogger(__name__)


class KeyLevelType(Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"
    LIQUIDITY = "liquidity"
    ORDER_BLOCK = "order_block"


@dataclass
class KeyLevel:
    type: KeyLevelType
    price: float
    timeframe: str
    strength: float


@dataclass
class AnalysisResult:
    symbol: str
    generated_at: int
    bias: Bias
    confidence: float
    market_condition: MarketCondition
    timeframe_analysis: Dict[str, TimeframeAnalysis]
    multi_timeframe: MultiTimeframeSummary
    key_levels: List[KeyLevel] = field(default_factory=list)
    signals: List[TradeSignal] = field(default_factory=list)
    narrative: Optional[Narrative] = None
    text_summary: str = NO_SIGNAL_SUMMARY


def extract_key_levels(data: Mapping[str, TimeframeAnalysis], limit: int = 10) -> List[KeyLevel]:
    """Liquidity zones and order blocks across timeframes, strongest first."""
    levels: List[KeyLevel] = []
    for tf, analysis in data.items():
        for zone in analysis.liquidity_zones:
            levels.append(KeyLevel(KeyLevelType.LIQUIDITY, zone.price, tf, zone.strength))
        for block in analysis.order_blocks:
            levels.append(KeyLevel(KeyLevelType.ORDER_BLOCK, block.mid_price, tf, block.strength))
    levels.sort(key=lambda level: level.strength, reverse=True)
    return levels[:limit]


def aggregate(
    symbol: str,
    timeframe_analysis: Dict[str, TimeframeAnalysis],
    config: Optional[AnalysisConfig] = None,
    generated_at: Optional[int] = None,
) -> AnalysisResult:
    """Fan-in stage: needs every requested timeframe to be analyzed first."""
    cfg = config or DEFAULT_CONFIG
    now = generated_at if generated_at is not None else int(time.time() * 1000)

    multi_timeframe = ConfluenceAnalyzer(cfg).analyze(timeframe_analysis)
    signals = SignalGenerator(cfg).generate(symbol, timeframe_analysis, multi_timeframe, timestamp=now)
    condition = determine_market_condition(timeframe_analysis)
    confidence = signals[0].confidence if signals else 0.0

    result = AnalysisResult(
        symbol=symbol,
        generated_at=now,
        bias=multi_timeframe.global_bias,
        confidence=confidence,
        market_condition=condition,
        timeframe_analysis=timeframe_analysis,
        multi_timeframe=multi_timeframe,
        key_levels=extract_key_levels(timeframe_analysis, cfg.max_key_levels),
        signals=signals,
    )
    result.narrative = generate_narrative(
        result.bias, condition, confidence, multi_timeframe, timeframe_analysis, signals
    )
    result.text_summary = generate_text_summary(signals[0]) if signals else NO_SIGNAL_SUMMARY

    logger.info(
        "%s analyzed over %s: bias=%s condition=%s signals=%d confidence=%.0f",
        symbol,
        list(timeframe_analysis),
        result.bias.value,
        condition.value,
        len(signals),
        confidence,
    )
    return result


def analyze_symbol(
    symbol: str,
    candles_by_timeframe: Mapping[str, Sequence[Candle]],
    config: Optional[AnalysisConfig] = None,
    generated_at: Optional[int] = None,
) -> AnalysisResult:
    """
    Analyze a symbol across timeframes.

    Args:
        symbol: Trading symbol, e.g. "BTCUSDT"
        candles_by_timeframe: timeframe id → ascending candles
        config: Analysis configuration (defaults to DEFAULT_CONFIG)
        generated_at: Override for the result/signal timestamp (ms)
    """
    cfg = config or DEFAULT_CONFIG
    timeframe_analysis = {
        tf: analyze_timeframe(tf, candles, cfg) for tf, candles in candles_by_timeframe.items()
    }
    return aggregate(symbol, timeframe_analysis, cfg, generated_at)


async def analyze_symbol_async(
    symbol: str,
    candles_by_timeframe: Mapping[str, Sequence[Candle]],
    config: Optional[AnalysisConfig] = None,
    generated_at: Optional[int] = None,
) -> AnalysisResult:
    """
    Same as analyze_symbol, with timeframes analyzed concurrently in worker
    threads. Timeframe order of the result follows the input mapping.
    """
    cfg = config or DEFAULT_CONFIG
    timeframes = list(candles_by_timeframe)
    tasks = [
        asyncio.to_thread(analyze_timeframe, tf, candles_by_timeframe[tf], cfg) for tf in timeframes
    ]
    results = await asyncio.gather(*tasks)
    return aggregate(symbol, dict(zip(timeframes, results)), cfg, generated_at)
