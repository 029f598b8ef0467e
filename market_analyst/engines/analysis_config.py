"""
Analysis Configuration Module
Centralizes all magic numbers and thresholds for the analysis engines.

Every detector reads its windows, tolerances and score weights from here so
that a risk profile can be tuned in one place.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

# Shared tolerance for every floating-point comparison across the engines
EPSILON = 1e-9

# Weighted score a side must reach before it can set the global bias
GLOBAL_BIAS_MIN_WEIGHT = 7.0

# TP1/TP2/TP3 as multiples of the entry-to-stop distance
TARGET_MULTIPLES: Tuple[float, float, float] = (1.5, 2.5, 4.0)

# Reported on every signal regardless of geometry
REPORTED_RISK_REWARD = 2.5


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is near zero.

    Args:
        numerator: The numerator
        denominator: The denominator
        default: Value to return if division is unsafe (default: 0.0)

    Returns:
        numerator / denominator if safe, otherwise default
    """
    return numerator / denominator if abs(denominator) > EPSILON else default


def exceeds(value: float, level: float) -> bool:
    """True when value is strictly above level beyond EPSILON."""
    return value - level > EPSILON


def falls_below(value: float, level: float) -> bool:
    """True when value is strictly below level beyond EPSILON."""
    return level - value > EPSILON


@dataclass
class StructureThresholds:
    """Swing detection and trend classification."""

    left_bars: int = 5
    right_bars: int = 5

    # Trend classification
    trend_lookback_points: int = 6
    min_points_for_trend: int = 4
    min_points_per_side: int = 2

    # Break detection
    min_points_for_bos: int = 3
    min_points_for_choch: int = 4
    min_candles_for_break: int = 10

    # Strength scoring
    sparse_strength: float = 30.0
    base_strength: float = 50.0
    trend_strength_base: float = 50.0
    strength_per_confirming_point: float = 10.0
    min_points_for_strength: int = 3

    # Price within this fraction of a swing counts as "near"
    near_swing_pct: float = 0.01


@dataclass
class LiquidityThresholds:
    """Equal highs/lows clustering and sweep detection."""

    equal_price_tolerance: float = 0.002  # 0.2% relative distance
    strength_per_touch: float = 25.0
    max_equal_strength: float = 90.0
    major_touch_count: int = 3

    swing_zone_count: int = 5
    major_swing_strength: float = 75.0
    minor_swing_strength: float = 60.0

    sweep_lookback: int = 5


@dataclass
class OrderBlockThresholds:
    """Order block detection and scoring."""

    min_candles: int = 30
    break_scan_bars: int = 10
    break_move_pct: float = 0.02  # close >= low * 1.02
    min_break_index: int = 5

    body_lookback: int = 20
    min_move_body_multiple: float = 2.0

    base_strength: float = 50.0
    high_volume_ratio: float = 1.5
    very_high_volume_ratio: float = 2.0
    high_volume_bonus: float = 15.0
    very_high_volume_bonus: float = 10.0
    structure_break_bonus: float = 20.0
    liquidity_bonus: float = 15.0
    tight_zone_pct: float = 0.005
    tight_zone_bonus: float = 10.0
    max_strength: float = 100.0

    broken_lookback: int = 10
    tested_lookback: int = 20
    max_blocks: int = 5


@dataclass
class MomentumThresholds:
    """Oscillator periods and zones."""

    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    atr_period: int = 14

    stochastic_k: int = 14
    stochastic_d: int = 3

    # Divergence
    divergence_window: int = 20
    divergence_min_values: int = 10
    divergence_swing_width: int = 3

    volume_ma_period: int = 20


@dataclass
class FakeoutThresholds:
    """Wick rejection through key levels."""

    min_candles: int = 10
    recent_candles: int = 3
    min_wick_body_ratio: float = 2.0
    min_wick_range_ratio: float = 0.6

    key_level_confidence: float = 75.0
    swept_zone_confidence: float = 85.0
    zone_confidence: float = 70.0

    dedupe_pct: float = 0.001
    max_fakeouts: int = 3


@dataclass
class ConfluenceThresholds:
    """Multi-timeframe weighting."""

    timeframe_weights: Dict[str, float] = field(
        default_factory=lambda: {"1d": 5.0, "4h": 4.0, "1h": 3.0, "15m": 2.0}
    )
    default_weight: float = 1.0

    bias_floor: float = GLOBAL_BIAS_MIN_WEIGHT

    default_dominant_timeframe: str = "1h"
    single_timeframe_score: float = 50.0
    support_min_score: float = 60.0


@dataclass
class ScoringWeights:
    """Points contributed by each confidence factor."""

    alignment_weight: float = 0.25
    order_block_presence: float = 15.0
    liquidity_sweep: float = 15.0
    momentum_confirmation: float = 10.0
    structure_break: float = 10.0
    volume_confirmation: float = 10.0
    near_key_level: float = 5.0
    fakeout_detected: float = 10.0
    trend_strength_weight: float = 0.10
    rsi_confirmation: float = 5.0

    min_order_block_strength: float = 65.0

    # RSI bands (exclusive bounds)
    long_rsi_band: Tuple[float, float] = (40.0, 70.0)
    short_rsi_band: Tuple[float, float] = (30.0, 60.0)

    # Confidence labels
    very_high_level: float = 80.0
    good_level: float = 65.0
    medium_level: float = 50.0


@dataclass
class SignalThresholds:
    """Entry, stop and target construction."""

    min_confidence: float = 65.0

    # Fallback entry band width and stop buffer around the last swing extreme
    fallback_band_pct: float = 0.02
    stop_buffer_pct: float = 0.02

    target_multiples: Tuple[float, float, float] = TARGET_MULTIPLES

    reported_risk_reward: float = REPORTED_RISK_REWARD
    derive_risk_reward: bool = False


@dataclass
class AnalysisConfig:
    """
    Master configuration for all analysis thresholds.

    Usage:
        config = AnalysisConfig()
        # Use defaults

        # Or customize:
        config = AnalysisConfig(
            signals=SignalThresholds(min_confidence=75),
            liquidity=LiquidityThresholds(equal_price_tolerance=0.001),
        )
    """

    risk_profile: str = "balanced"
    max_lookback_candles: int = 500
    enable_order_blocks: bool = True
    enable_liquidity_zones: bool = True
    max_key_levels: int = 10

    structure: StructureThresholds = field(default_factory=StructureThresholds)
    liquidity: LiquidityThresholds = field(default_factory=LiquidityThresholds)
    order_blocks: OrderBlockThresholds = field(default_factory=OrderBlockThresholds)
    momentum: MomentumThresholds = field(default_factory=MomentumThresholds)
    fakeouts: FakeoutThresholds = field(default_factory=FakeoutThresholds)
    confluence: ConfluenceThresholds = field(default_factory=ConfluenceThresholds)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    signals: SignalThresholds = field(default_factory=SignalThresholds)


# Global default config instance
DEFAULT_CONFIG = AnalysisConfig()


def get_config() -> AnalysisConfig:
    """Get the default configuration."""
    return DEFAULT_CONFIG


def create_aggressive_config() -> AnalysisConfig:
    """
    Create a more aggressive configuration with lower thresholds.
    Useful for intraday setups where more, weaker signals are acceptable.
    """
    return AnalysisConfig(
        risk_profile="aggressive",
        signals=SignalThresholds(min_confidence=55.0),
        scoring=ScoringWeights(min_order_block_strength=55.0),
        confluence=ConfluenceThresholds(bias_floor=5.0),
    )


def create_conservative_config() -> AnalysisConfig:
    """
    Create a more conservative configuration with higher thresholds.
    Useful for swing trading where only high-conviction setups matter.
    """
    return AnalysisConfig(
        risk_profile="conservative",
        signals=SignalThresholds(min_confidence=75.0),
        scoring=ScoringWeights(min_order_block_strength=75.0),
        confluence=ConfluenceThresholds(bias_floor=9.0),
    )


def config_for_risk_profile(profile: str) -> AnalysisConfig:
    """Map a risk profile name (conservative/balanced/aggressive) to a config."""
    if profile == "aggressive":
        return create_aggressive_config()
    if profile == "conservative":
        return create_conservative_config()
    if profile == "balanced":
        return AnalysisConfig()
    raise ValueError(f"Unknown risk profile: {profile!r}")
