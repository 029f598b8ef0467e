"""Market Analyst - market structure analysis and signal backtesting.

Public symbols are exposed lazily so importing `market_analyst` does not
eagerly import numpy/pytz through the backtest module.
"""

from __future__ import annotations

import importlib
from typing import Dict, List, Optional, Tuple


__all__ = [
    # Configuration
    "AnalysisConfig",
    "DEFAULT_CONFIG",
    "EPSILON",
    "get_config",
    "create_aggressive_config",
    "create_conservative_config",
    "config_for_risk_profile",
    # Exceptions
    "InvalidInputError",
    "NoHistoricalDataError",
    # Candles / enums
    "Candle",
    "create_candle",
    "Trend",
    "Bias",
    "Polarity",
    # Structure
    "StructureAnalyzer",
    "StructureSummary",
    "SwingPoint",
    "SwingType",
    "analyze_market_structure",
    # Liquidity
    "LiquidityDetector",
    "LiquidityZone",
    "LiquidityType",
    "detect_liquidity_zones",
    # Order blocks
    "OrderBlockDetector",
    "OrderBlock",
    "OrderBlockStatus",
    "detect_order_blocks",
    # Momentum
    "MomentumAnalyzer",
    "MomentumAnalysis",
    "MomentumIndicators",
    "VolatilityIndicators",
    "analyze_momentum",
    "does_momentum_confirm",
    "calculate_momentum_strength",
    # Fakeouts
    "FakeoutDetector",
    "Fakeout",
    "detect_fakeouts",
    "does_fakeout_support",
    # Aggregation
    "TimeframeAnalysis",
    "analyze_timeframe",
    "MultiTimeframeSummary",
    "MarketCondition",
    "analyze_multi_timeframe",
    "does_mtf_support",
    "ScoringFactors",
    "build_scoring_factors",
    "calculate_confidence_score",
    "get_confidence_level",
    "TradeSignal",
    "SignalGenerator",
    "generate_signals",
    "Narrative",
    "generate_text_summary",
    # Orchestration
    "AnalysisResult",
    "KeyLevel",
    "analyze_symbol",
    "analyze_symbol_async",
    # Backtesting
    "BacktestConfig",
    "BacktestSignal",
    "BacktestTrade",
    "BacktestMetrics",
    "BacktestRun",
    "BacktestSimulator",
    "BacktestRunner",
    "BacktestDataSource",
    "BacktestStore",
    "InMemoryDataSource",
    "InMemoryBacktestStore",
    "RunStatus",
    "StrategyType",
    "calculate_metrics",
    # Logging
    "setup_logging",
    "get_logger",
]


_EXPORT_TO_SOURCE: Dict[str, Tuple[str, str]] = {}


def _register(module: str, names: List[str], aliases: Optional[Dict[str, str]] = None) -> None:
    for name in names:
        _EXPORT_TO_SOURCE[name] = (module, name)
    if aliases:
        for public_name, source_name in aliases.items():
            _EXPORT_TO_SOURCE[public_name] = (module, source_name)


_register(
    ".engines.analysis_config",
    [
        "AnalysisConfig",
        "DEFAULT_CONFIG",
        "EPSILON",
        "get_config",
        "create_aggressive_config",
        "create_conservative_config",
        "config_for_risk_profile",
    ],
)

_register(".engines.calculations", ["InvalidInputError"])

_register(".engines.candles", ["Candle", "create_candle"])

_register(".engines.signals", ["Trend", "Bias", "Polarity"])

_register(
    ".engines.market_structure",
    [
        "StructureAnalyzer",
        "StructureSummary",
        "SwingPoint",
        "SwingType",
        "analyze_market_structure",
    ],
)

_register(
    ".engines.liquidity",
    ["LiquidityDetector", "LiquidityZone", "LiquidityType", "detect_liquidity_zones"],
)

_register(
    ".engines.order_blocks",
    ["OrderBlockDetector", "OrderBlock", "OrderBlockStatus", "detect_order_blocks"],
)

_register(
    ".engines.momentum",
    [
        "MomentumAnalyzer",
        "MomentumAnalysis",
        "analyze_momentum",
        "does_momentum_confirm",
        "calculate_momentum_strength",
    ],
)

_register(".engines.indicators", ["MomentumIndicators", "VolatilityIndicators"])

_register(
    ".engines.fakeouts",
    ["FakeoutDetector", "Fakeout", "detect_fakeouts", "does_fakeout_support"],
)

_register(".engines.timeframe", ["TimeframeAnalysis", "analyze_timeframe"])

_register(
    ".engines.confluence",
    ["MultiTimeframeSummary", "MarketCondition", "analyze_multi_timeframe", "does_mtf_support"],
)

_register(
    ".engines.scoring",
    [
        "ScoringFactors",
        "build_scoring_factors",
        "calculate_confidence_score",
        "get_confidence_level",
    ],
)

_register(".engines.signal_generator", ["TradeSignal", "SignalGenerator", "generate_signals"])

_register(".engines.narratives", ["Narrative", "generate_text_summary"])

_register(
    ".apps.runner",
    ["AnalysisResult", "KeyLevel", "analyze_symbol", "analyze_symbol_async"],
)

_register(
    ".engines.backtest",
    [
        "NoHistoricalDataError",
        "BacktestConfig",
        "BacktestSignal",
        "BacktestTrade",
        "BacktestMetrics",
        "BacktestRun",
        "BacktestSimulator",
        "BacktestRunner",
        "BacktestDataSource",
        "BacktestStore",
        "InMemoryDataSource",
        "InMemoryBacktestStore",
        "RunStatus",
        "StrategyType",
        "calculate_metrics",
    ],
)

_register(".logging_config", ["setup_logging", "get_logger"])


_missing_exports = [name for name in __all__ if name not in _EXPORT_TO_SOURCE]
if _missing_exports:
    raise RuntimeError(f"Lazy export map incomplete: {_missing_exports}")


def __getattr__(name: str):
    if name not in _EXPORT_TO_SOURCE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, symbol_name = _EXPORT_TO_SOURCE[name]
    module = importlib.import_module(module_name, __name__)
    value = getattr(module, symbol_name)

    # Cache resolved symbol on module globals for subsequent fast access.
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
