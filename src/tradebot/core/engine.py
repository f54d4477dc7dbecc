"""Main trading engine."""

import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from tradebot.connectors.base import MarketDataSource, OrderGateway
from tradebot.core.bot import TradingBot
from tradebot.core.exceptions import ConnectorError, OrderError, StateManagementError, TradingBotError
from tradebot.core.logger import get_logger
from tradebot.core.models import BotStatus, Decision, StrategyAnalysis, TradingDecisionLog
from tradebot.exchange.order_validator import OrderValidator
from tradebot.strategies.base import StrategyBase, possible_profit


MARKET_DATA_LIMIT = 100


class TradingEngine:
    """Polling loop for a single bot.

    Every cycle fetches the latest candles, asks the strategy for a decision
    and, for BUY/SELL, sends a validated market order.
    """

    def __init__(
        self,
        bot: TradingBot,
        strategy: StrategyBase,
        market_data: MarketDataSource,
        validator: OrderValidator,
        order_gateway: OrderGateway,
        interval: str = "1h",
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize trading engine.

        Args:
            bot: Bot whose position the engine manages
            strategy: Strategy deciding each cycle
            market_data: Candle source
            validator: Exchange constraint validator
            order_gateway: Where accepted orders are sent
            interval: Candle interval requested from the market data source
            sleep: Called with the polling interval between cycles
        """
        self.bot = bot
        self.strategy = strategy
        self.market_data = market_data
        self.validator = validator
        self.order_gateway = order_gateway
        self.interval = interval
        self._sleep = sleep
        self.logger = get_logger("core.engine")

        self.decision_logs: List[TradingDecisionLog] = []
        self.cycles = 0

    def run_cycle(self) -> Optional[TradingDecisionLog]:
        """Run one decision cycle.

        Returns:
            The recorded decision, or None when no market data was available
        """
        if self.bot.status != BotStatus.RUNNING:
            raise StateManagementError(
                f"bot must be running to trade, current status: {self.bot.status.value}"
            )
        self.cycles += 1

        try:
            candles = self.market_data.get_market_data(self.bot.symbol, self.interval, MARKET_DATA_LIMIT)
        except ConnectorError as e:
            self.logger.error(f"Failed to fetch market data for {self.bot.symbol}: {e}")
            return None

        if not candles:
            self.logger.warning(f"No market data for {self.bot.symbol}")
            return None

        current_price = candles[-1].close
        analysis = self.strategy.decide(candles, self.bot.view())
        profit = possible_profit(self.bot.entry_price, current_price) if self.bot.is_positioned else 0.0

        self.logger.info(
            f"[{self.bot.symbol}] {analysis.decision.value} @ {current_price:.8f} "
            f"({analysis.reason}, profit {profit:.2f}%)"
        )
        self.logger.debug(f"[{self.bot.symbol}] analysis: {analysis.analysis_data}")

        decision_log = TradingDecisionLog(
            strategy_name=self.strategy.name,
            decision=analysis.decision,
            analysis_data=analysis.analysis_data,
            current_price=current_price,
            possible_profit=profit,
            timestamp=datetime.now(timezone.utc),
            bot_id=self.bot.id,
            market_data=list(candles),
        )
        self.decision_logs.append(decision_log)

        self.execute(analysis, current_price)
        return decision_log

    def execute(self, analysis: StrategyAnalysis, price: float) -> bool:
        """Act on a decision. Returns True when an order was filled."""
        if analysis.decision == Decision.BUY and not self.bot.is_positioned:
            return self._buy(price)
        if analysis.decision == Decision.SELL and self.bot.is_positioned:
            return self._sell(price)
        return False

    def _buy_quantity(self, price: float) -> float:
        if self.bot.use_fixed_quantity:
            return self.bot.quantity
        return self.bot.trade_amount / price

    def _buy(self, price: float) -> bool:
        quantity = self._buy_quantity(price)
        fill = self._place_order(Decision.BUY, quantity, price)
        if fill is None:
            return False

        held = fill.quantity * (1.0 - self.bot.trading_fees / 100.0)
        self.bot.get_into_position(price, held)
        self.logger.info(
            f"[{self.bot.symbol}] Entered position @ {price:.8f}, holding {held:.8f} "
            f"(fees {self.bot.trading_fees}%)"
        )
        return True

    def _sell(self, price: float) -> bool:
        quantity = self.bot.calculate_quantity_for_sell()
        entry_price = self.bot.entry_price
        fill = self._place_order(Decision.SELL, quantity, price)
        if fill is None:
            return False

        self.bot.get_out_of_position()
        self.logger.info(
            f"[{self.bot.symbol}] Exited position @ {price:.8f}, "
            f"P&L {(price - entry_price) * fill.quantity:+.2f} {self.bot.currency}"
        )
        return True

    def _place_order(self, side: Decision, quantity: float, price: float):
        symbol = self.bot.symbol
        _, formatted, proceed, messages = self.validator.validate_before_placement(symbol, quantity, price)
        if not proceed:
            self.logger.error(
                f"[{symbol}] {side.value} order skipped this cycle: " + "; ".join(messages)
            )
            return None

        try:
            return self.order_gateway.place_market_order(symbol, side, formatted, price)
        except OrderError as e:
            self.logger.error(f"[{symbol}] {side.value} order failed: {e}")
            return None

    def run(self, max_cycles: Optional[int] = None) -> None:
        """Poll until the bot stops or ``max_cycles`` cycles have run."""
        self.logger.info(
            f"Starting trading loop for {self.bot.symbol} with {self.strategy.name} "
            f"every {self.bot.interval_seconds}s"
        )
        cycles = 0
        while self.bot.status == BotStatus.RUNNING:
            try:
                self.run_cycle()
            except TradingBotError as e:
                self.logger.error(f"Trading loop for {self.bot.symbol} failed: {e}")
                self.bot.mark_error()
                raise
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._sleep(self.bot.interval_seconds)
        self.logger.info(f"Trading loop for {self.bot.symbol} finished after {cycles} cycles")
