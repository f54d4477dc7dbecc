"""Backtesting engine."""

from enum import Enum
from typing import List, Optional, Sequence

from tradebot.backtest.result import BacktestResult, BacktestTrade
from tradebot.core.bot import TradingBot
from tradebot.core.exceptions import BacktestError
from tradebot.core.logger import get_logger
from tradebot.core.models import Candle, Decision, StrategyAnalysis, TradingDecisionLog
from tradebot.strategies.base import StrategyBase, possible_profit


MAX_WINDOW_SIZE = 100


class SimulationState(str, Enum):
    """Lifecycle of a single backtest run."""
    IDLE = "idle"
    RUNNING = "running"
    CLOSED = "closed"
    FINISHED = "finished"


class BacktestEngine:
    """Replays candles through a strategy and simulates long-only trades.

    Each candle's decision depends on the position left by the previous
    one, so candles are processed strictly in order.
    """

    def __init__(
        self,
        initial_capital: float = 10000.0,
        trading_fees: float = 0.0,
        minimum_profit_threshold: float = 0.0,
        trade_amount: float = 0.0,
        symbol: str = "BACKTEST",
        currency: str = "USDT",
        window_size: int = MAX_WINDOW_SIZE,
        record_decisions: bool = False,
    ):
        """Initialize backtest engine.

        Args:
            initial_capital: Starting capital in quote currency
            trading_fees: Fee in percent charged on entry and exit
            minimum_profit_threshold: Profit in percent required before a signal exit
            trade_amount: Fixed amount per trade; 0 invests all available capital
            symbol: Trading symbol reported in the result
            currency: Quote currency
            window_size: Maximum number of candles handed to the strategy
            record_decisions: Keep a TradingDecisionLog for every evaluated candle
        """
        if initial_capital <= 0:
            raise BacktestError("initial capital must be positive")
        if trading_fees < 0 or trade_amount < 0:
            raise BacktestError("trading fees and trade amount cannot be negative")
        if window_size <= 0:
            raise BacktestError("window size must be positive")

        self.logger = get_logger("backtest.engine")
        self.initial_capital = initial_capital
        self.trading_fees = trading_fees
        self.minimum_profit_threshold = minimum_profit_threshold
        self.trade_amount = trade_amount
        self.symbol = symbol
        self.currency = currency
        self.window_size = min(window_size, MAX_WINDOW_SIZE)
        self.record_decisions = record_decisions

        self.state = SimulationState.IDLE
        self.bot: Optional[TradingBot] = None
        self.is_positioned = False
        self.open_trade: Optional[BacktestTrade] = None
        self.result: Optional[BacktestResult] = None

    @staticmethod
    def _check_candles(candles: Sequence[Candle]) -> None:
        if not candles:
            raise BacktestError("no candles to backtest")
        for earlier, later in zip(candles, candles[1:]):
            if later.close_time <= earlier.close_time:
                raise BacktestError(
                    f"candles must be in ascending close time order: "
                    f"{later.close_time} follows {earlier.close_time}"
                )

    def _reset(self, strategy: StrategyBase, candles: Sequence[Candle]) -> None:
        self.bot = TradingBot(
            symbol=self.symbol,
            strategy_name=strategy.name,
            initial_capital=self.initial_capital,
            trade_amount=self.trade_amount,
            currency=self.currency,
            trading_fees=self.trading_fees,
            minimum_profit_threshold=self.minimum_profit_threshold,
            strategy_params=strategy.get_params(),
        )
        self.is_positioned = False
        self.open_trade = None
        self.result = BacktestResult(
            strategy_name=strategy.name,
            symbol=self.symbol,
            initial_capital=self.initial_capital,
            currency=self.currency,
            start_date=candles[0].close_datetime,
            end_date=candles[-1].close_datetime,
            trading_fees=self.trading_fees,
        )

    def run(self, strategy: StrategyBase, candles: Sequence[Candle]) -> BacktestResult:
        """Run backtest on strategy.

        Args:
            strategy: Trading strategy
            candles: Historical candles in ascending close time order

        Returns:
            Finalized BacktestResult
        """
        if self.state not in (SimulationState.IDLE, SimulationState.FINISHED):
            raise BacktestError(f"backtest already in progress ({self.state.value})")
        self._check_candles(candles)
        self._reset(strategy, candles)

        min_periods = max(strategy.get_min_periods(), 1)
        self.logger.info(
            f"Starting backtest of {strategy.name} on {self.symbol}: "
            f"{len(candles)} candles, warm-up {min_periods}"
        )
        self.logger.info(f"Initial capital: {self.initial_capital:,.2f} {self.currency}")

        self.state = SimulationState.RUNNING
        try:
            for index in range(min_periods - 1, len(candles)):
                start = max(0, index - self.window_size + 1)
                self._process_candle(strategy, candles[start:index + 1])

            self.state = SimulationState.CLOSED
            if self.open_trade is not None:
                last = candles[-1]
                self._close_trade(last.close, last, "end_of_backtest")

            self.result.finalize(candles[-1].close_datetime)
        except Exception:
            self.logger.error(f"Backtest of {strategy.name} on {self.symbol} aborted")
            self.state = SimulationState.IDLE
            raise
        self.state = SimulationState.FINISHED

        for line in self.result.summary():
            self.logger.info(line)
        return self.result

    def sync_position_states(self) -> None:
        """Bring the bot's position in line with the simulator's flag."""
        if self.is_positioned and not self.bot.is_positioned:
            self.bot.get_into_position(self.open_trade.entry_price, self.open_trade.quantity)
        elif not self.is_positioned and self.bot.is_positioned:
            self.bot.get_out_of_position()

    def _process_candle(self, strategy: StrategyBase, window: List[Candle]) -> None:
        candle = window[-1]
        self.sync_position_states()

        analysis = strategy.decide(window, self.bot.view())
        self.logger.debug(
            f"{candle.close_datetime.isoformat()} {analysis.decision.value} "
            f"@ {candle.close} ({analysis.reason})"
        )
        if self.record_decisions:
            self._record(strategy, analysis, window)

        if analysis.decision == Decision.BUY and not self.is_positioned:
            self._open_trade(candle, analysis.reason)
        elif analysis.decision == Decision.SELL and self.is_positioned:
            exit_price = candle.close * (1 - self.trading_fees / 100)
            self._close_trade(exit_price, candle, analysis.reason)

    def _open_trade(self, candle: Candle, reason: str) -> None:
        available = self.result.final_capital
        if self.trade_amount > 0:
            if available < self.trade_amount:
                self.logger.warning(
                    f"Insufficient capital for trade: {available:.2f} < {self.trade_amount:.2f}"
                )
                return
            amount = self.trade_amount
        else:
            amount = available

        if amount <= 0:
            self.logger.warning(f"No capital left to trade ({available:.2f})")
            return

        quantity = amount / (candle.close * (1 + self.trading_fees / 100))
        self.open_trade = BacktestTrade(
            symbol=self.symbol,
            side=Decision.BUY,
            entry_price=candle.close,
            quantity=quantity,
            entry_time=candle.close_datetime,
            reason=reason,
        )
        self.is_positioned = True
        self.logger.info(
            f"Opened BUY: {quantity:.6f} {self.symbol} @ {candle.close:.8f} ({reason})"
        )

    def _close_trade(self, exit_price: float, candle: Candle, reason: str) -> None:
        trade = self.open_trade
        pnl = trade.close(exit_price, candle.close_datetime, reason)
        self.result.add_trade(trade)
        self.open_trade = None
        self.is_positioned = False
        self.logger.info(
            f"Closed BUY: {trade.quantity:.6f} {self.symbol} @ {exit_price:.8f}, "
            f"P&L: {pnl:+.2f} {self.currency} ({reason})"
        )

    def _record(self, strategy: StrategyBase, analysis: StrategyAnalysis, window: List[Candle]) -> None:
        candle = window[-1]
        profit = possible_profit(self.bot.entry_price, candle.close) if self.bot.is_positioned else 0.0
        self.result.decisions.append(TradingDecisionLog(
            strategy_name=strategy.name,
            decision=analysis.decision,
            analysis_data=analysis.analysis_data,
            current_price=candle.close,
            possible_profit=profit,
            timestamp=candle.close_datetime,
            bot_id=self.bot.id,
        ))


def run_backtest(
    strategy: StrategyBase,
    candles: Sequence[Candle],
    initial_capital: float = 10000.0,
    trading_fees: float = 0.0,
    minimum_profit_threshold: float = 0.0,
    trade_amount: float = 0.0,
    symbol: str = "BACKTEST",
    record_decisions: bool = False,
) -> BacktestResult:
    """Run a single backtest with a fresh engine."""
    engine = BacktestEngine(
        initial_capital=initial_capital,
        trading_fees=trading_fees,
        minimum_profit_threshold=minimum_profit_threshold,
        trade_amount=trade_amount,
        symbol=symbol,
        record_decisions=record_decisions,
    )
    return engine.run(strategy, candles)
