import os
import sys
from typing import List, Optional, Sequence

import pytest


TESTS_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(TESTS_DIR, "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from market_analyst.engines.candles import Candle  # noqa: E402
from market_analyst.engines.confluence import MultiTimeframeSummary  # noqa: E402
from market_analyst.engines.indicators import MACDResult  # noqa: E402
from market_analyst.engines.liquidity import LiquidityType, LiquidityZone, Significance  # noqa: E402
from market_analyst.engines.market_structure import BreakType, StructureBreak, StructureSummary  # noqa: E402
from market_analyst.engines.momentum import MomentumAnalysis, RSIZone, neutral_momentum  # noqa: E402
from market_analyst.engines.order_blocks import OrderBlock  # noqa: E402
from market_analyst.engines.signals import Bias, Polarity, Trend  # noqa: E402
from market_analyst.engines.timeframe import TimeframeAnalysis  # noqa: E402


HOUR_MS = 3_600_000
# 2024-01-01T00:00:00Z
BASE_TS = 1_704_067_200_000


def create_candle(
    index: int, o: float, h: float, l: float, c: float, v: float = 1000.0, step: int = HOUR_MS
) -> Candle:
    """Helper to create a candle at BASE_TS + index * step."""
    return Candle(timestamp=BASE_TS + index * step, open=o, high=h, low=l, close=c, volume=v)


def price_path(pivots: Sequence[float], bars_per_leg: int = 6) -> List[float]:
    """Linear interpolation between pivot prices; pivot j lands on index j * bars_per_leg."""
    path = [float(pivots[0])]
    for start, end in zip(pivots, pivots[1:]):
        step = (end - start) / bars_per_leg
        path.extend(start + step * k for k in range(1, bars_per_leg))
        path.append(float(end))
    return path


def candles_from_path(path: Sequence[float], wick: float = 0.5, body: float = 0.1) -> List[Candle]:
    """
    One candle per price. High/low sit ``wick`` away from the price so swing
    extremes are unique; the small body follows the direction of travel.
    """
    candles = []
    for i, price in enumerate(path):
        rising = i == 0 or price >= path[i - 1]
        o, c = (price - body, price + body) if rising else (price + body, price - body)
        candles.append(create_candle(i, o, price + wick, price - wick, c))
    return candles


def zigzag_candles(pivots: Sequence[float], bars_per_leg: int = 6) -> List[Candle]:
    return candles_from_path(price_path(pivots, bars_per_leg))


def make_timeframe(
    timeframe: str,
    trend: Trend = Trend.RANGE,
    strength: float = 50.0,
    momentum: Optional[MomentumAnalysis] = None,
    last_swing_high: float = 110.0,
    last_swing_low: float = 100.0,
    **fields,
) -> TimeframeAnalysis:
    """TimeframeAnalysis with a hand-set structure; extra fields pass through."""
    structure = StructureSummary(
        timeframe=timeframe,
        trend=trend,
        last_swing_high=last_swing_high,
        last_swing_low=last_swing_low,
        structure_strength=strength,
        recent_break=fields.pop("recent_break", None),
        is_near_key_swing=fields.pop("is_near_key_swing", False),
    )
    return TimeframeAnalysis(
        timeframe=timeframe,
        structure=structure,
        momentum=momentum or neutral_momentum(),
        **fields,
    )


@pytest.fixture
def bullish_zigzag() -> List[Candle]:
    """Swings: H110 L105 H115 L108 H120, ending at 112 (no break)."""
    return zigzag_candles([100, 110, 105, 115, 108, 120, 112])


@pytest.fixture
def bearish_zigzag() -> List[Candle]:
    """Swings: L110 H115 L105 H112 L100, ending at 108 (no break)."""
    return zigzag_candles([120, 110, 115, 105, 112, 100, 108])


@pytest.fixture
def bullish_primary() -> TimeframeAnalysis:
    """1h record where every long factor except a fakeout is present."""
    momentum = MomentumAnalysis(
        rsi=55.0,
        rsi_signal=RSIZone.NEUTRAL,
        macd=MACDResult(1.0, 0.5, 0.5),
        trend=Polarity.BULLISH,
        volatility=1.0,
    )
    block = OrderBlock(
        id="1h-ob-bullish-0",
        direction=Polarity.BULLISH,
        timeframe="1h",
        price_from=99.0,
        price_to=99.8,
        timestamp=0,
        strength=70.0,
        volume=2500.0,
        broke_structure=True,
        cleared_liquidity=False,
    )
    zone = LiquidityZone(
        id="1h-equal_lows-0",
        type=LiquidityType.EQUAL_LOWS,
        price=98.1,
        timeframe="1h",
        timestamp=0,
        strength=50.0,
        touched=2,
        swept=True,
        significance=Significance.MODERATE,
    )
    return make_timeframe(
        "1h",
        Trend.BULLISH,
        strength=90.0,
        momentum=momentum,
        last_swing_low=98.0,
        recent_break=StructureBreak(BreakType.BOS, "up", 111.0, 0),
        is_near_key_swing=True,
        order_blocks=[block],
        liquidity_zones=[zone],
        last_price=101.0,
        volume_confirmed=True,
    )


@pytest.fixture
def long_mtf() -> MultiTimeframeSummary:
    return MultiTimeframeSummary(global_bias=Bias.LONG, aligned_timeframes=["1h"], confluence_score=100.0)


@pytest.fixture
def flat_candles() -> List[Candle]:
    return [create_candle(i, 100.0, 100.0, 100.0, 100.0) for i in range(30)]


@pytest.fixture
def rising_closes() -> List[float]:
    """Strictly increasing closes."""
    return [float(i) for i in range(1, 21)]
