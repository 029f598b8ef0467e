"""
Signal Backtesting

Replays signals against historical candles with fixed-percentage risk
sizing and reports performance metrics.

Per trade:
    OPEN ──(stop touched)──→ STOPPED_OUT
      └───(target touched)─→ TARGET_HIT
      └───(data ends)──────→ stays OPEN (kept out of metrics)

Capital, peak capital and the per-day trade counter are running state, so a
run processes signals strictly in time order. Separate runs share nothing.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytz

from ..logging_config import log_exception
from .analysis_config import EPSILON
from .calculations import InvalidInputError
from .candles import Candle, is_time_ordered
from .signal_generator import TradeSignal
from .signals import Bias, coerce_bias

logger = logging.getLogger(__name__)


# ===== CUSTOM EXCEPTIONS =====


class NoHistoricalDataError(Exception):
    """Raised when the requested symbol/timeframe/date range has no candles."""

    def __init__(self, symbol: str, timeframe: str, message: str = "No historical data available for the selected period"):
        self.symbol = symbol
        self.timeframe = timeframe
        super().__init__(f"{message} ({symbol} {timeframe})")


# ===== ENUMS =====


class StrategyType(Enum):
    SIGNALS = "signals"
    PATTERNS = "patterns"
    INDICATORS = "indicators"


class RunStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TradeStatus(Enum):
    OPEN = "open"
    STOPPED_OUT = "stopped_out"
    TARGET_HIT = "target_hit"


class ExitReason(Enum):
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT_1 = "take_profit_1"
    TAKE_PROFIT_2 = "take_profit_2"
    TAKE_PROFIT_3 = "take_profit_3"


# ===== DATA MODEL =====


@dataclass
class BacktestConfig:
    """
    Run parameters.

    risk_per_trade is a percentage of current capital. Dates are epoch ms.
    Calendar days for the daily cap are taken in ``timezone``.
    """

    name: str
    symbol: str
    timeframe: str
    start_date: int
    end_date: int
    strategy_type: StrategyType = StrategyType.SIGNALS
    initial_capital: float = 10000.0
    risk_per_trade: float = 1.0
    max_trades_per_day: int = 3
    timezone: str = "UTC"

    def __post_init__(self):
        if not isinstance(self.strategy_type, StrategyType):
            self.strategy_type = StrategyType(self.strategy_type)

    def validate(self) -> None:
        """
        Raises:
            InvalidInputError: on values the simulation cannot run with
        """
        if self.initial_capital <= 0:
            raise InvalidInputError(f"initial_capital must be positive, got {self.initial_capital}")
        if self.risk_per_trade <= 0:
            raise InvalidInputError(f"risk_per_trade must be positive, got {self.risk_per_trade}")
        if self.max_trades_per_day < 1:
            raise InvalidInputError(f"max_trades_per_day must be at least 1, got {self.max_trades_per_day}")
        if self.end_date < self.start_date:
            raise InvalidInputError("end_date is before start_date")
        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as e:
            raise InvalidInputError(f"unknown timezone {self.timezone!r}") from e


@dataclass
class BacktestSignal:
    """A persisted signal row as replayed by the simulator."""

    id: str
    symbol: str
    direction: Bias
    entry_from: float
    entry_to: float
    stop_loss: float
    tp1: float
    tp2: float
    tp3: float
    confidence: float
    created_at: int  # epoch ms

    def __post_init__(self):
        self.direction = coerce_bias(self.direction)
        if self.direction == Bias.NEUTRAL:
            raise InvalidInputError(f"signal {self.id} has no trade direction")
        if self.direction == Bias.LONG:
            wrong_side = self.stop_loss > self.entry_price
        else:
            wrong_side = self.stop_loss < self.entry_price
        if wrong_side:
            raise InvalidInputError(
                f"signal {self.id} has its stop {self.stop_loss} on the wrong side of entry {self.entry_price}"
            )

    @property
    def entry_price(self) -> float:
        return (self.entry_from + self.entry_to) / 2

    @classmethod
    def from_trade_signal(cls, signal: TradeSignal) -> "BacktestSignal":
        return cls(
            id=signal.id,
            symbol=signal.symbol,
            direction=signal.direction,
            entry_from=signal.entry_zone.price_from,
            entry_to=signal.entry_zone.price_to,
            stop_loss=signal.stop_loss,
            tp1=signal.targets.tp1,
            tp2=signal.targets.tp2,
            tp3=signal.targets.tp3,
            confidence=signal.confidence,
            created_at=signal.timestamp,
        )


@dataclass
class BacktestTrade:
    run_id: str
    signal_id: str
    symbol: str
    direction: Bias
    entry_time: int
    entry_price: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float
    position_size: float
    risk_amount: float
    confidence: float
    status: TradeStatus = TradeStatus.OPEN
    exit_time: Optional[int] = None
    exit_price: Optional[float] = None
    exit_reason: Optional[ExitReason] = None
    profit_loss: float = 0.0
    profit_loss_percentage: float = 0.0

    @property
    def is_closed(self) -> bool:
        return self.status != TradeStatus.OPEN


@dataclass
class BacktestMetrics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_profit: float = 0.0
    total_loss: float = 0.0
    net_profit: float = 0.0
    net_profit_percentage: float = 0.0
    avg_profit: float = 0.0
    avg_loss: float = 0.0
    largest_profit: float = 0.0
    largest_loss: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_percentage: float = 0.0
    sharpe_ratio: float = 0.0
    final_capital: float = 0.0
    execution_time_ms: float = 0.0

    def to_record(self) -> Dict[str, float]:
        """Persistence row, money and ratios rounded to 2 decimals."""
        record: Dict[str, float] = {}
        for name, value in self.__dict__.items():
            record[name] = value if isinstance(value, int) else round(value, 2)
        return record


@dataclass
class SimulationResult:
    trades: List[BacktestTrade]  # closed trades, in processing order
    open_trades: List[BacktestTrade]
    skipped: List[Tuple[str, str]]  # (signal id, reason)
    metrics: BacktestMetrics
    final_capital: float


@dataclass
class BacktestRun:
    config: BacktestConfig
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: RunStatus = RunStatus.PENDING
    metrics: Optional[BacktestMetrics] = None
    error_message: Optional[str] = None
    execution_time_ms: float = 0.0
    completed_at: Optional[datetime] = None


# ===== METRICS =====


def calculate_metrics(
    trades: Sequence[BacktestTrade],
    initial_capital: float,
    final_capital: float,
    max_drawdown: float = 0.0,
    max_drawdown_percentage: float = 0.0,
    execution_time_ms: float = 0.0,
) -> BacktestMetrics:
    """
    Aggregate closed-trade metrics.

    Profit factor is 0 when there are no losing trades. The Sharpe-like
    ratio is mean / population std of per-trade returns, without
    annualization; a zero deviation divides by 1.
    """
    pnls = [t.profit_loss for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    total_trades = len(pnls)
    total_profit = sum(wins)
    total_loss = abs(sum(losses))
    net_profit = final_capital - initial_capital

    sharpe = 0.0
    if trades:
        returns = np.array([t.profit_loss_percentage for t in trades], dtype=float)
        std = float(np.std(returns))
        sharpe = float(np.mean(returns)) / (std if std > EPSILON else 1.0)

    return BacktestMetrics(
        total_trades=total_trades,
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / total_trades * 100 if total_trades > 0 else 0.0,
        total_profit=total_profit,
        total_loss=total_loss,
        net_profit=net_profit,
        net_profit_percentage=net_profit / initial_capital * 100,
        avg_profit=total_profit / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
        largest_profit=max(pnls) if pnls else 0.0,
        largest_loss=min(pnls) if pnls else 0.0,
        profit_factor=total_profit / total_loss if total_loss > 0 else 0.0,
        max_drawdown=max_drawdown,
        max_drawdown_percentage=max_drawdown_percentage,
        sharpe_ratio=sharpe,
        final_capital=final_capital,
        execution_time_ms=execution_time_ms,
    )


# ===== SIMULATOR =====


class BacktestSimulator:
    """
    Sequential trade replay for one run.

    Exit precedence inside a single candle is fixed: stop loss, then TP3,
    TP2, TP1. No intrabar path is reconstructed.
    """

    def __init__(self, config: BacktestConfig, run_id: Optional[str] = None):
        config.validate()
        self.config = config
        self.run_id = run_id or uuid.uuid4().hex
        self._tz = pytz.timezone(config.timezone)

    def day_key(self, timestamp_ms: int) -> str:
        return datetime.fromtimestamp(timestamp_ms / 1000, tz=self._tz).date().isoformat()

    @staticmethod
    def find_entry_index(candles: Sequence[Candle], timestamp_ms: int, start: int = 0) -> Optional[int]:
        for i in range(start, len(candles)):
            if candles[i].timestamp >= timestamp_ms:
                return i
        return None

    @staticmethod
    def find_exit(
        signal: BacktestSignal, candles: Sequence[Candle], entry_index: int
    ) -> Optional[Tuple[int, float, ExitReason]]:
        """First candle after entry touching the stop or a target."""
        long = signal.direction == Bias.LONG
        ladder = (
            (signal.tp3, ExitReason.TAKE_PROFIT_3),
            (signal.tp2, ExitReason.TAKE_PROFIT_2),
            (signal.tp1, ExitReason.TAKE_PROFIT_1),
        )
        for i in range(entry_index + 1, len(candles)):
            candle = candles[i]
            if (long and candle.low <= signal.stop_loss) or (not long and candle.high >= signal.stop_loss):
                return i, signal.stop_loss, ExitReason.STOP_LOSS
            for target, reason in ladder:
                if (long and candle.high >= target) or (not long and candle.low <= target):
                    return i, target, reason
        return None

    def run(self, candles: Sequence[Candle], signals: Sequence[BacktestSignal]) -> SimulationResult:
        """
        Replay signals over candles.

        Raises:
            NoHistoricalDataError: if candles is empty
            InvalidInputError: if candles are not in ascending time order
        """
        cfg = self.config
        started = time.perf_counter()

        if not candles:
            raise NoHistoricalDataError(cfg.symbol, cfg.timeframe)
        if not is_time_ordered(candles):
            raise InvalidInputError("candles must be in ascending timestamp order")

        ordered_signals = sorted(signals, key=lambda s: s.created_at)

        capital = cfg.initial_capital
        peak_capital = capital
        max_drawdown = 0.0
        max_drawdown_pct = 0.0

        closed: List[BacktestTrade] = []
        still_open: List[BacktestTrade] = []
        skipped: List[Tuple[str, str]] = []
        daily_trades: Dict[str, int] = {}
        search_from = 0

        for signal in ordered_signals:
            day = self.day_key(signal.created_at)
            if daily_trades.get(day, 0) >= cfg.max_trades_per_day:
                logger.debug("max trades reached for %s, skipping signal %s", day, signal.id)
                skipped.append((signal.id, "daily_limit"))
                continue

            entry_index = self.find_entry_index(candles, signal.created_at, search_from)
            if entry_index is None:
                skipped.append((signal.id, "no_entry_candle"))
                continue
            search_from = entry_index

            entry_price = signal.entry_price
            stop_distance = abs(entry_price - signal.stop_loss)
            if stop_distance <= EPSILON:
                logger.warning("signal %s has zero stop distance, not simulated", signal.id)
                skipped.append((signal.id, "zero_stop_distance"))
                continue

            risk_amount = capital * cfg.risk_per_trade / 100
            trade = BacktestTrade(
                run_id=self.run_id,
                signal_id=signal.id,
                symbol=signal.symbol,
                direction=signal.direction,
                entry_time=candles[entry_index].timestamp,
                entry_price=entry_price,
                stop_loss=signal.stop_loss,
                take_profit_1=signal.tp1,
                take_profit_2=signal.tp2,
                take_profit_3=signal.tp3,
                position_size=risk_amount / stop_distance,
                risk_amount=risk_amount,
                confidence=signal.confidence,
            )
            daily_trades[day] = daily_trades.get(day, 0) + 1

            exit_info = self.find_exit(signal, candles, entry_index)
            if exit_info is None:
                still_open.append(trade)
                continue

            exit_index, exit_price, reason = exit_info
            price_diff = exit_price - entry_price if signal.direction == Bias.LONG else entry_price - exit_price
            pnl = price_diff * trade.position_size

            trade.exit_time = candles[exit_index].timestamp
            trade.exit_price = exit_price
            trade.exit_reason = reason
            trade.status = TradeStatus.STOPPED_OUT if reason == ExitReason.STOP_LOSS else TradeStatus.TARGET_HIT
            trade.profit_loss = pnl
            trade.profit_loss_percentage = pnl / capital * 100

            capital += pnl
            peak_capital = max(peak_capital, capital)
            drawdown = peak_capital - capital
            max_drawdown = max(max_drawdown, drawdown)
            max_drawdown_pct = max(max_drawdown_pct, drawdown / peak_capital * 100 if peak_capital > 0 else 0.0)

            closed.append(trade)

        execution_ms = (time.perf_counter() - started) * 1000
        metrics = calculate_metrics(
            closed, cfg.initial_capital, capital, max_drawdown, max_drawdown_pct, execution_ms
        )
        logger.info(
            "backtest %s %s %s: %d closed, %d open, %d skipped, net=%.2f",
            cfg.name,
            cfg.symbol,
            cfg.timeframe,
            len(closed),
            len(still_open),
            len(skipped),
            metrics.net_profit,
        )
        return SimulationResult(
            trades=closed,
            open_trades=still_open,
            skipped=skipped,
            metrics=metrics,
            final_capital=capital,
        )


# ===== RUN LIFECYCLE =====


class BacktestDataSource(ABC):
    """Supplies the candle and signal series for a run's window."""

    @abstractmethod
    def fetch_candles(self, config: BacktestConfig) -> List[Candle]:
        """Ascending candles for symbol/timeframe within [start_date, end_date]."""

    @abstractmethod
    def fetch_signals(self, config: BacktestConfig) -> List[BacktestSignal]:
        """Signals for symbol created within [start_date, end_date]."""


class BacktestStore(ABC):
    """Persists runs and their closed trades."""

    @abstractmethod
    def save_run(self, run: BacktestRun) -> None:
        ...

    @abstractmethod
    def save_trades(self, run_id: str, trades: Sequence[BacktestTrade]) -> None:
        ...


class InMemoryDataSource(BacktestDataSource):
    """Serves preloaded series, filtered to the run window."""

    def __init__(self, candles: Dict[Tuple[str, str], List[Candle]], signals: Sequence[BacktestSignal] = ()):
        self._candles = candles
        self._signals = list(signals)

    def fetch_candles(self, config: BacktestConfig) -> List[Candle]:
        series = self._candles.get((config.symbol, config.timeframe), [])
        return sorted(
            (c for c in series if config.start_date <= c.timestamp <= config.end_date),
            key=lambda c: c.timestamp,
        )

    def fetch_signals(self, config: BacktestConfig) -> List[BacktestSignal]:
        return sorted(
            (
                s
                for s in self._signals
                if s.symbol == config.symbol and config.start_date <= s.created_at <= config.end_date
            ),
            key=lambda s: s.created_at,
        )


class InMemoryBacktestStore(BacktestStore):
    def __init__(self):
        self.runs: Dict[str, BacktestRun] = {}
        self.trades: Dict[str, List[BacktestTrade]] = {}

    def save_run(self, run: BacktestRun) -> None:
        self.runs[run.id] = run

    def save_trades(self, run_id: str, trades: Sequence[BacktestTrade]) -> None:
        self.trades.setdefault(run_id, []).extend(trades)


class BacktestRunner:
    """
    Drives one run from pending to a terminal status.

    The run is persisted once it is running and once more in its terminal
    state (completed or failed).
    """

    def __init__(self, source: BacktestDataSource, store: BacktestStore):
        self.source = source
        self.store = store

    def _fail(self, run: BacktestRun, message: str, started: float) -> None:
        run.status = RunStatus.FAILED
        run.error_message = message
        run.execution_time_ms = (time.perf_counter() - started) * 1000
        run.completed_at = datetime.now(pytz.utc)
        self.store.save_run(run)

    def run(self, config: BacktestConfig) -> BacktestRun:
        """
        Execute a backtest run.

        Raises:
            NoHistoricalDataError: no candles in the window (run stored as failed)
        """
        started = time.perf_counter()
        run = BacktestRun(config=config)
        logger.info("starting backtest %s (%s %s)", config.name, config.symbol, config.timeframe)

        try:
            config.validate()
            run.status = RunStatus.RUNNING
            self.store.save_run(run)

            candles = self.source.fetch_candles(config)
            if not candles:
                raise NoHistoricalDataError(config.symbol, config.timeframe)
            logger.info("fetched %d candles for run %s", len(candles), run.id)

            signals: List[BacktestSignal] = []
            if config.strategy_type == StrategyType.SIGNALS:
                signals = self.source.fetch_signals(config)
            logger.info("fetched %d signals for run %s", len(signals), run.id)

            result = BacktestSimulator(config, run_id=run.id).run(candles, signals)
        except NoHistoricalDataError as e:
            logger.warning("backtest %s failed: %s", run.id, e)
            self._fail(run, "No historical data available for the selected period", started)
            raise
        except Exception as e:
            log_exception(logger, e, f"Backtest {run.id} failed")
            self._fail(run, str(e), started)
            raise

        if result.trades:
            self.store.save_trades(run.id, result.trades)

        run.metrics = result.metrics
        run.execution_time_ms = (time.perf_counter() - started) * 1000
        run.metrics.execution_time_ms = run.execution_time_ms
        run.status = RunStatus.COMPLETED
        run.completed_at = datetime.now(pytz.utc)
        self.store.save_run(run)

        logger.info("backtest %s completed: %s", run.id, run.metrics.to_record())
        return run
