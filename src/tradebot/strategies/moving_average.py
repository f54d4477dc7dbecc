"""Moving-average crossover strategy with spread and profit gates."""

from typing import Sequence

from pydantic import Field, model_validator

from tradebot.core.bot import PositionView
from tradebot.core.logger import get_logger
from tradebot.core.models import Candle, Decision, StrategyAnalysis
from tradebot.core.registry import strategy_registry
from tradebot.indicators.moving_average import SimpleMovingAverage, spread_percentage
from tradebot.strategies.base import StrategyBase, StrategyParams, parse_params, possible_profit


DEFAULT_MINIMUM_SPREAD = 0.1


class MovingAverageParams(StrategyParams):
    fast_window: int = Field(default=7, gt=0, alias='FastWindow')
    slow_window: int = Field(default=40, gt=0, alias='SlowWindow')
    minimum_spread: float = Field(default=DEFAULT_MINIMUM_SPREAD, ge=0, le=100, alias='MinimumSpread')

    @model_validator(mode='after')
    def check_windows(self) -> 'MovingAverageParams':
        if self.fast_window >= self.slow_window:
            raise ValueError(
                f'FastWindow ({self.fast_window}) must be less than SlowWindow ({self.slow_window})'
            )
        return self


@strategy_registry.register("MovingAverage")
class MovingAverageStrategy(StrategyBase):
    """Buy the dip when the fast average sits below the slow one, sell the
    rebound once the position clears the bot's minimum profit.

    The spread filter keeps the strategy out of flat markets where the two
    averages cross back and forth.

    HOLD reasons are prefixed with the crossover state, e.g.
    ``fast_below_slow_insufficient_spread_wait``. Consumers that only care
    about the hold condition should match on the suffix:
    ``insufficient_spread_wait``, ``insufficient_profit``, ``wait_for_dip``,
    ``positioned_holding`` or ``neutral``.
    """

    name = "MovingAverage"
    params_model = MovingAverageParams

    def __init__(
        self,
        fast_window: int = 7,
        slow_window: int = 40,
        minimum_spread: float = DEFAULT_MINIMUM_SPREAD,
        stoploss_threshold: float = 0.0,
    ):
        super().__init__(parse_params(MovingAverageParams, {
            'fast_window': fast_window,
            'slow_window': slow_window,
            'minimum_spread': minimum_spread,
            'stoploss_threshold': stoploss_threshold,
        }))
        self.fast_window = self.params.fast_window
        self.slow_window = self.params.slow_window
        self.minimum_spread = self.params.minimum_spread
        self._fast = SimpleMovingAverage(self.fast_window)
        self._slow = SimpleMovingAverage(self.slow_window)
        self.logger = get_logger("strategies.moving_average")

    def get_min_periods(self) -> int:
        return self.slow_window

    def has_sufficient_spread(self, fast: float, slow: float) -> bool:
        if slow == 0:
            return False
        return spread_percentage(fast, slow) >= self.minimum_spread

    def decide(self, window: Sequence[Candle], position: PositionView) -> StrategyAnalysis:
        if len(window) < self.slow_window:
            return self.hold("insufficient_data", fast=0.0, slow=0.0)

        fast = self._fast.calculate(window)
        slow = self._slow.calculate(window)
        current_price = window[-1].close
        sufficient_spread = self.has_sufficient_spread(fast, slow)
        profit = possible_profit(position.entry_price, current_price)
        positioned = position.is_positioned

        data = {
            "fast": fast,
            "slow": slow,
            "currentPrice": current_price,
            "isPositioned": positioned,
            "hasSufficientSpread": sufficient_spread,
            "minimumSpread": self.minimum_spread,
            "actualSpread": spread_percentage(fast, slow),
            "entryPrice": position.entry_price,
            "possibleProfit": profit,
            "minimumProfitThreshold": position.minimum_profit_threshold,
            "stoplossThreshold": self.stoploss_threshold,
        }

        if self.stoploss_triggered(position, profit):
            self.logger.warning(
                f"Stoploss triggered for {position.symbol or 'position'}: price {current_price:.8f}, "
                f"entry {position.entry_price:.8f}, loss {profit:.2f}% "
                f"(threshold {self.stoploss_threshold:.2f}%)"
            )
            data["reason"] = "stoploss_triggered"
            return StrategyAnalysis(Decision.SELL, data)

        if fast < slow and not positioned:
            if sufficient_spread:
                decision, reason = Decision.BUY, "fast_below_slow_buy_low"
            else:
                decision, reason = Decision.HOLD, "fast_below_slow_insufficient_spread_wait"
        elif fast > slow and positioned:
            if profit >= position.minimum_profit_threshold:
                decision, reason = Decision.SELL, "fast_above_slow_sell_high_with_profit"
            else:
                decision, reason = Decision.HOLD, "fast_above_slow_hold_insufficient_profit"
        elif fast > slow:
            decision, reason = Decision.HOLD, "fast_above_slow_wait_for_dip"
        elif fast < slow:
            decision, reason = Decision.HOLD, "fast_below_slow_positioned_holding"
        else:
            decision, reason = Decision.HOLD, "fast_equals_slow_neutral"

        data["reason"] = reason
        return StrategyAnalysis(decision, data)
