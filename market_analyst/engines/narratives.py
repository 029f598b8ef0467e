"""
Narrative Generation

Templated plain-English explanation of an analysis and a compact text
summary of a signal for notification channels.
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Sequence

from .confluence import MarketCondition, MultiTimeframeSummary
from .momentum import RSIZone
from .signal_generator import TradeSignal
from .signals import Bias, Polarity
from .timeframe import TimeframeAnalysis

NO_SIGNAL_SUMMARY = "No clear signals at the moment."

_BIAS_TEXT = {Bias.LONG: "bullish", Bias.SHORT: "bearish", Bias.NEUTRAL: "neutral"}
_CONDITION_TEXT = {
    MarketCondition.TRENDING: "a clear trend",
    MarketCondition.RANGING: "sideways ranging",
    MarketCondition.CHOPPY: "choppy price action",
}


@dataclass
class Narrative:
    overview: str
    strength_points: List[str] = field(default_factory=list)
    weak_points: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def generate_overview(bias: Bias, condition: MarketCondition, confidence: float) -> str:
    return (
        f"Overall bias is {_BIAS_TEXT[bias]} with {_CONDITION_TEXT[condition]}. "
        f"Confidence: {confidence:.0f}%"
    )


def generate_strength_points(
    mtf: MultiTimeframeSummary, signals: Sequence[TradeSignal]
) -> List[str]:
    points = []
    if mtf.confluence_score > 70:
        points.append("Strong agreement across timeframes")
    if mtf.aligned_timeframes:
        points.append(f"Aligned timeframes: {', '.join(mtf.aligned_timeframes)}")
    if signals:
        points.extend(signals[0].supporting_factors)
    return points or ["No clear strength points at the moment"]


def generate_weak_points(
    condition: MarketCondition, mtf: MultiTimeframeSummary
) -> List[str]:
    points = []
    if condition == MarketCondition.CHOPPY:
        points.append("Market is choppy with no clear direction")
    if mtf.conflicting_timeframes:
        points.append(f"Conflicting timeframes: {', '.join(mtf.conflicting_timeframes)}")
    if mtf.global_bias == Bias.NEUTRAL:
        points.append("No global bias across timeframes")
    return points


def generate_warnings(bias: Bias, data: Mapping[str, TimeframeAnalysis]) -> List[str]:
    warnings = []
    for tf, analysis in data.items():
        momentum = analysis.momentum
        if bias == Bias.LONG and momentum.rsi_signal == RSIZone.OVERBOUGHT:
            warnings.append(f"RSI overbought on {tf}")
        elif bias == Bias.SHORT and momentum.rsi_signal == RSIZone.OVERSOLD:
            warnings.append(f"RSI oversold on {tf}")

        if bias == Bias.LONG and momentum.divergence == Polarity.BEARISH:
            warnings.append(f"Bearish RSI divergence on {tf}")
        elif bias == Bias.SHORT and momentum.divergence == Polarity.BULLISH:
            warnings.append(f"Bullish RSI divergence on {tf}")
    return warnings


def generate_narrative(
    bias: Bias,
    condition: MarketCondition,
    confidence: float,
    mtf: MultiTimeframeSummary,
    data: Mapping[str, TimeframeAnalysis],
    signals: Sequence[TradeSignal],
) -> Narrative:
    return Narrative(
        overview=generate_overview(bias, condition, confidence),
        strength_points=generate_strength_points(mtf, signals),
        weak_points=generate_weak_points(condition, mtf),
        warnings=generate_warnings(bias, data),
    )


def generate_text_summary(signal: TradeSignal) -> str:
    """Multi-line plain-text summary of one signal."""
    action = "BUY" if signal.direction == Bias.LONG else "SELL"
    lines = [
        f"{action} signal - {signal.symbol} ({signal.originating_timeframe})",
        f"Confidence: {signal.confidence:.0f}%",
        f"Entry: {signal.entry_zone.price_from:.2f} - {signal.entry_zone.price_to:.2f}",
        f"Stop loss: {signal.stop_loss:.2f}",
        "Targets:",
        f"   TP1: {signal.targets.tp1:.2f}",
        f"   TP2: {signal.targets.tp2:.2f}",
        f"   TP3: {signal.targets.tp3:.2f}",
        f"Risk/Reward: 1:{signal.risk_reward:.1f}",
        "",
        signal.main_scenario,
    ]
    return "\n".join(lines)
