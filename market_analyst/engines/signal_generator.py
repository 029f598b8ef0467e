"""
Signal Generation

Creates trade signals with an entry zone, stop loss and a three-target
ladder. A direction is only emitted when its confidence clears the minimum
AND it matches the multi-timeframe global bias.

Long geometry (short mirrors it around the last swing high):
    entry  = nearest bullish order block, else [swing_low, swing_low × 1.02]
    stop   = min(swing_low, entry.from) × 0.98
    risk   = entry.to - stop
    TPn    = entry.to + risk × (1.5, 2.5, 4.0)
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, safe_divide
from .confluence import MultiTimeframeSummary
from .order_blocks import OrderBlock, nearest_order_block
from .scoring import ScoringFactors, build_scoring_factors, calculate_confidence_score, is_sufficient_confidence
from .signals import Bias, Polarity
from .timeframe import TimeframeAnalysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryZone:
    price_from: float
    price_to: float

    @property
    def mid_price(self) -> float:
        return (self.price_from + self.price_to) / 2


@dataclass(frozen=True)
class Targets:
    tp1: float
    tp2: float
    tp3: float


@dataclass(frozen=True)
class TradeSignal:
    """
    Immutable trade idea.

    Status changes after creation (active/completed/cancelled) belong to
    whatever persists the signal, not to this object.
    """

    id: str
    symbol: str
    direction: Bias
    confidence: float
    timestamp: int
    entry_zone: EntryZone
    stop_loss: float
    targets: Targets
    risk_reward: float
    originating_timeframe: str
    aligned_timeframes: Tuple[str, ...] = ()
    conflicting_timeframes: Tuple[str, ...] = ()
    supporting_factors: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    main_scenario: str = ""
    alternative_scenario: str = ""
    invalidation_price: float = 0.0
    invalidation_reason: str = ""


def primary_signal_timeframe(data: Mapping[str, TimeframeAnalysis]) -> Optional[TimeframeAnalysis]:
    """1h, then 4h, then the first timeframe supplied."""
    for timeframe in ("1h", "4h"):
        if timeframe in data:
            return data[timeframe]
    return next(iter(data.values()), None)


def describe_factors(direction: Bias, factors: ScoringFactors) -> List[str]:
    side = "bullish" if direction == Bias.LONG else "bearish"
    described = []
    if factors.multi_timeframe_alignment >= 60:
        described.append(f"Timeframes aligned ({factors.multi_timeframe_alignment:.0f}%)")
    if factors.order_block_presence:
        described.append(f"Strong {side} order block")
    if factors.liquidity_sweep:
        described.append("Liquidity swept")
    if factors.momentum_confirmation:
        described.append(f"Momentum confirms {side} move")
    if factors.structure_break:
        described.append("Recent structure break")
    if factors.volume_confirmation:
        described.append("Volume above average")
    if factors.near_key_level:
        described.append("Price near key swing")
    if factors.fakeout_detected:
        described.append("Fakeout rejection")
    if factors.rsi_confirmation:
        described.append("RSI in healthy range")
    if not described:
        described.append(f"{side.capitalize()} higher-timeframe bias")
    return described


class SignalGenerator:
    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds = self.config.signals

    def risk_reward(self, entry: float, stop: float, tp1: float) -> float:
        if not self.thresholds.derive_risk_reward:
            return self.thresholds.reported_risk_reward
        return safe_divide(abs(tp1 - entry), abs(entry - stop))

    def _entry_zone(self, block: Optional[OrderBlock], fallback: EntryZone) -> EntryZone:
        if block is None:
            return fallback
        return EntryZone(block.price_from, block.price_to)

    def build_signal(
        self,
        symbol: str,
        direction: Bias,
        primary: TimeframeAnalysis,
        mtf: MultiTimeframeSummary,
        confidence: float,
        factors: ScoringFactors,
        timestamp: Optional[int] = None,
    ) -> TradeSignal:
        t = self.thresholds
        structure = primary.structure
        long = direction == Bias.LONG
        polarity = Polarity.BULLISH if long else Polarity.BEARISH
        block = nearest_order_block(primary.order_blocks, polarity, primary.last_price)
        m1, m2, m3 = t.target_multiples

        if long:
            swing = structure.last_swing_low
            entry = self._entry_zone(block, EntryZone(swing, swing * (1 + t.fallback_band_pct)))
            stop = min(swing, entry.price_from) * (1 - t.stop_buffer_pct)
            anchor = entry.price_to
            risk = anchor - stop
            targets = Targets(anchor + risk * m1, anchor + risk * m2, anchor + risk * m3)
        else:
            swing = structure.last_swing_high
            entry = self._entry_zone(block, EntryZone(swing * (1 - t.fallback_band_pct), swing))
            stop = max(swing, entry.price_to) * (1 + t.stop_buffer_pct)
            anchor = entry.price_from
            risk = stop - anchor
            targets = Targets(anchor - risk * m1, anchor - risk * m2, anchor - risk * m3)

        tags = ["trend_follow", "order_block" if block else ("support" if long else "resistance")]
        if factors.liquidity_sweep:
            tags.append("liquidity_sweep")
        if factors.fakeout_detected:
            tags.append("fakeout")

        if long:
            main = "Price is in a demand zone with a bullish trend on the higher timeframes"
            alternative = "Price may retest the recent low before moving higher"
            reason = "A close below the last swing low invalidates the bullish scenario"
        else:
            main = "Price is in a supply zone with a bearish trend on the higher timeframes"
            alternative = "Price may retest the recent high before moving lower"
            reason = "A close above the last swing high invalidates the bearish scenario"

        return TradeSignal(
            id=uuid.uuid4().hex,
            symbol=symbol,
            direction=direction,
            confidence=confidence,
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            entry_zone=entry,
            stop_loss=stop,
            targets=targets,
            risk_reward=self.risk_reward(anchor, stop, targets.tp1),
            originating_timeframe=primary.timeframe,
            aligned_timeframes=tuple(mtf.aligned_timeframes),
            conflicting_timeframes=tuple(mtf.conflicting_timeframes),
            supporting_factors=tuple(describe_factors(direction, factors)),
            tags=tuple(tags),
            main_scenario=main,
            alternative_scenario=alternative,
            invalidation_price=stop,
            invalidation_reason=reason,
        )

    def generate(
        self,
        symbol: str,
        data: Mapping[str, TimeframeAnalysis],
        mtf: MultiTimeframeSummary,
        timestamp: Optional[int] = None,
    ) -> List[TradeSignal]:
        """
        Returns:
            At most one signal, in the direction of the global bias
        """
        signals: List[TradeSignal] = []
        primary = primary_signal_timeframe(data)
        if primary is None:
            return signals

        for direction in (Bias.LONG, Bias.SHORT):
            factors = build_scoring_factors(direction, data, mtf, self.config)
            confidence = calculate_confidence_score(factors, self.config.scoring)
            logger.debug("%s %s confidence=%.1f bias=%s", symbol, direction.value, confidence, mtf.global_bias.value)

            if is_sufficient_confidence(confidence, self.thresholds.min_confidence) and mtf.global_bias == direction:
                signals.append(self.build_signal(symbol, direction, primary, mtf, confidence, factors, timestamp))

        return signals


def generate_signals(
    symbol: str,
    data: Mapping[str, TimeframeAnalysis],
    mtf: MultiTimeframeSummary,
    config: Optional[AnalysisConfig] = None,
    timestamp: Optional[int] = None,
) -> List[TradeSignal]:
    return SignalGenerator(config).generate(symbol, data, mtf, timestamp)
