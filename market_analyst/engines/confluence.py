"""
Multi-Timeframe Confluence

Weights each timeframe's structural trend (higher timeframes count more),
derives a global bias, and measures how much the timeframes agree.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from .analysis_config import DEFAULT_CONFIG, AnalysisConfig, ConfluenceThresholds
from .signals import Bias, Trend, trend_for_bias
from .timeframe import TimeframeAnalysis

logger = logging.getLogger(__name__)


@dataclass
class MultiTimeframeSummary:
    global_bias: Bias
    aligned_timeframes: List[str] = field(default_factory=list)
    conflicting_timeframes: List[str] = field(default_factory=list)
    dominant_timeframe: str = "1h"
    confluence_score: float = 50.0  # 0-100
    comment: str = ""
    bullish_score: float = 0.0
    bearish_score: float = 0.0


class ConfluenceAnalyzer:
    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self.thresholds: ConfluenceThresholds = self.config.confluence

    def weight_for(self, timeframe: str) -> float:
        return self.thresholds.timeframe_weights.get(timeframe, self.thresholds.default_weight)

    def weighted_scores(self, data: Mapping[str, TimeframeAnalysis]) -> Dict[Trend, float]:
        scores = {Trend.BULLISH: 0.0, Trend.BEARISH: 0.0}
        for tf, analysis in data.items():
            trend = analysis.structure.trend
            if trend in scores:
                scores[trend] += self.weight_for(tf)
        return scores

    def determine_global_bias(self, bullish_score: float, bearish_score: float) -> Bias:
        """
        A side wins only with a strictly larger weighted score that also
        reaches the bias floor.
        """
        floor = self.thresholds.bias_floor
        if bullish_score > bearish_score and bullish_score >= floor:
            return Bias.LONG
        if bearish_score > bullish_score and bearish_score >= floor:
            return Bias.SHORT
        return Bias.NEUTRAL

    def alignment_score(self, data: Mapping[str, TimeframeAnalysis]) -> float:
        """Share of timeframe pairs that agree on the same directional trend."""
        trends = [a.structure.trend for a in data.values()]
        if len(trends) < 2:
            return self.thresholds.single_timeframe_score

        aligned = 0
        total = 0
        for i in range(len(trends) - 1):
            for j in range(i + 1, len(trends)):
                total += 1
                if trends[i] == trends[j] and trends[i].is_directional:
                    aligned += 1
        return aligned / total * 100

    def dominant_timeframe(self, data: Mapping[str, TimeframeAnalysis]) -> str:
        dominant = self.thresholds.default_dominant_timeframe
        max_strength = 0.0
        for tf, analysis in data.items():
            if analysis.structure.structure_strength > max_strength:
                max_strength = analysis.structure.structure_strength
                dominant = tf
        return dominant

    @staticmethod
    def build_comment(bias: Bias, aligned: List[str], conflicting: List[str]) -> str:
        if bias == Bias.NEUTRAL:
            return "Timeframes disagree with no clear direction. Better to wait for a cleaner setup."

        direction = "bullish" if bias == Bias.LONG else "bearish"
        if not conflicting:
            return f"All timeframes agree on a strong {direction} direction. Very strong setup."
        if len(aligned) > len(conflicting) * 2:
            return (
                f"Most timeframes point {direction}, with some disagreement on lower timeframes. "
                "Good setup."
            )
        return (
            f"Higher timeframes point {direction} but lower timeframes conflict. "
            "Moderate caution."
        )

    def analyze(self, data: Mapping[str, TimeframeAnalysis]) -> MultiTimeframeSummary:
        scores = self.weighted_scores(data)
        bias = self.determine_global_bias(scores[Trend.BULLISH], scores[Trend.BEARISH])

        aligned: List[str] = []
        conflicting: List[str] = []
        for tf, analysis in data.items():
            trend = analysis.structure.trend
            if trend == trend_for_bias(bias):
                aligned.append(tf)
            elif trend.is_directional:
                conflicting.append(tf)

        summary = MultiTimeframeSummary(
            global_bias=bias,
            aligned_timeframes=aligned,
            conflicting_timeframes=conflicting,
            dominant_timeframe=self.dominant_timeframe(data),
            confluence_score=self.alignment_score(data),
            comment=self.build_comment(bias, aligned, conflicting),
            bullish_score=scores[Trend.BULLISH],
            bearish_score=scores[Trend.BEARISH],
        )
        logger.debug(
            "confluence: bias=%s bull=%.1f bear=%.1f score=%.1f aligned=%s conflicting=%s",
            bias.value,
            summary.bullish_score,
            summary.bearish_score,
            summary.confluence_score,
            aligned,
            conflicting,
        )
        return summary


def analyze_multi_timeframe(
    data: Mapping[str, TimeframeAnalysis], config: Optional[AnalysisConfig] = None
) -> MultiTimeframeSummary:
    return ConfluenceAnalyzer(config).analyze(data)


class MarketCondition(Enum):
    TRENDING = "trending"
    RANGING = "ranging"
    CHOPPY = "choppy"


def determine_market_condition(data: Mapping[str, TimeframeAnalysis]) -> MarketCondition:
    """
    Trending when at least 70% of timeframes are directional, choppy when
    more than half are choppy, ranging otherwise (including no timeframes).
    """
    trends = [a.structure.trend for a in data.values()]
    if not trends:
        return MarketCondition.RANGING
    directional = sum(1 for t in trends if t.is_directional)
    if directional >= len(trends) * 0.7:
        return MarketCondition.TRENDING
    if sum(1 for t in trends if t == Trend.CHOPPY) > len(trends) / 2:
        return MarketCondition.CHOPPY
    return MarketCondition.RANGING


def does_mtf_support(
    summary: MultiTimeframeSummary, direction: Bias, config: Optional[AnalysisConfig] = None
) -> bool:
    """Global bias matches direction and the timeframes mostly agree."""
    min_score = (config or DEFAULT_CONFIG).confluence.support_min_score
    return direction != Bias.NEUTRAL and summary.global_bias == direction and summary.confluence_score >= min_score
