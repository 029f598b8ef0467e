"""
Confidence Scoring

Turns the primary timeframe's readings plus the confluence summary into a
0-100 confidence for one trade direction.

Score = alignment×0.25 + flags + trend_strength×0.10, clipped to [0, 100]
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, ScoringWeights
from .confluence import MultiTimeframeSummary
from .fakeouts import fakeout_matches
from .momentum import RSIZone
from .signals import Bias, Polarity, polarity_for_bias
from .timeframe import TimeframeAnalysis


def clip(value: float, lower: float = 0.0, upper: float = 100.0) -> float:
    return max(lower, min(upper, value))


@dataclass
class ScoringFactors:
    """Inputs to the confidence score. Percentages are 0-100."""

    multi_timeframe_alignment: float = 0.0
    order_block_presence: bool = False
    liquidity_sweep: bool = False
    momentum_confirmation: bool = False
    structure_break: bool = False
    volume_confirmation: bool = False
    near_key_level: bool = False
    fakeout_detected: bool = False
    trend_strength: float = 0.0
    rsi_confirmation: bool = False


def calculate_confidence_score(factors: ScoringFactors, weights: Optional[ScoringWeights] = None) -> float:
    """Weighted sum of the factors, clipped to [0, 100]."""
    w = weights or DEFAULT_CONFIG.scoring
    score = factors.multi_timeframe_alignment * w.alignment_weight

    if factors.order_block_presence:
        score += w.order_block_presence
    if factors.liquidity_sweep:
        score += w.liquidity_sweep
    if factors.momentum_confirmation:
        score += w.momentum_confirmation
    if factors.structure_break:
        score += w.structure_break
    if factors.volume_confirmation:
        score += w.volume_confirmation
    if factors.near_key_level:
        score += w.near_key_level
    if factors.fakeout_detected:
        score += w.fakeout_detected

    score += factors.trend_strength * w.trend_strength_weight

    if factors.rsi_confirmation:
        score += w.rsi_confirmation

    return clip(score)


def primary_scoring_timeframe(data: Mapping[str, TimeframeAnalysis]) -> Optional[TimeframeAnalysis]:
    """1h, falling back to 4h."""
    return data.get("1h") or data.get("4h")


def build_scoring_factors(
    direction: Bias,
    data: Mapping[str, TimeframeAnalysis],
    mtf: MultiTimeframeSummary,
    config: Optional[AnalysisConfig] = None,
) -> ScoringFactors:
    """
    Read the scoring factors for direction from the primary timeframe.

    Without a 1h or 4h record every factor is zero/false.
    """
    cfg = config or DEFAULT_CONFIG
    w = cfg.scoring
    primary = primary_scoring_timeframe(data)
    polarity = polarity_for_bias(direction)
    if primary is None or polarity is None:
        return ScoringFactors()

    same_side = [b for b in primary.order_blocks if b.direction == polarity and not b.is_broken]
    order_block_presence = bool(same_side) and same_side[0].strength >= w.min_order_block_strength

    momentum = primary.momentum
    if direction == Bias.LONG:
        momentum_confirmation = momentum.trend == Polarity.BULLISH and momentum.rsi_signal != RSIZone.OVERBOUGHT
        low, high = w.long_rsi_band
    else:
        momentum_confirmation = momentum.trend == Polarity.BEARISH and momentum.rsi_signal != RSIZone.OVERSOLD
        low, high = w.short_rsi_band

    return ScoringFactors(
        multi_timeframe_alignment=mtf.confluence_score,
        order_block_presence=order_block_presence,
        liquidity_sweep=any(z.swept for z in primary.liquidity_zones),
        momentum_confirmation=momentum_confirmation,
        structure_break=primary.structure.recent_break is not None,
        volume_confirmation=primary.volume_confirmed,
        near_key_level=primary.structure.is_near_key_swing,
        fakeout_detected=any(fakeout_matches(f, direction) for f in primary.fakeouts),
        trend_strength=primary.structure.structure_strength,
        rsi_confirmation=low < momentum.rsi < high,
    )


def get_confidence_level(score: float, weights: Optional[ScoringWeights] = None) -> str:
    w = weights or DEFAULT_CONFIG.scoring
    if score >= w.very_high_level:
        return "very high"
    if score >= w.good_level:
        return "good"
    if score >= w.medium_level:
        return "medium"
    return "weak"


def is_sufficient_confidence(score: float, min_threshold: float = 65.0) -> bool:
    return score >= min_threshold
