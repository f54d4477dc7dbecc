"""Channel breakout strategy."""

from typing import Sequence

from pydantic import Field

from tradebot.core.bot import PositionView
from tradebot.core.models import Candle, Decision, StrategyAnalysis
from tradebot.core.registry import strategy_registry
from tradebot.indicators.channel import PriceChannel
from tradebot.strategies.base import StrategyBase, StrategyParams, parse_params, possible_profit


class BreakoutParams(StrategyParams):
    lookback: int = Field(default=20, gt=0, alias='Lookback')


@strategy_registry.register("Breakout")
class BreakoutStrategy(StrategyBase):
    """Enter when the close clears the recent range, exit on a breakdown."""

    name = "Breakout"
    params_model = BreakoutParams

    def __init__(self, lookback: int = 20, stoploss_threshold: float = 0.0):
        super().__init__(parse_params(BreakoutParams, {
            'lookback': lookback,
            'stoploss_threshold': stoploss_threshold,
        }))
        self.lookback = self.params.lookback
        self._channel = PriceChannel(self.lookback)

    def get_min_periods(self) -> int:
        return self.lookback + 1

    def decide(self, window: Sequence[Candle], position: PositionView) -> StrategyAnalysis:
        if len(window) < self.lookback + 1:
            return self.hold("insufficient_data", highestHigh=0.0, lowestLow=0.0)

        highest_high, lowest_low = self._channel.calculate(window)
        current_price = window[-1].close
        profit = possible_profit(position.entry_price, current_price)
        positioned = position.is_positioned

        data = {
            "highestHigh": highest_high,
            "lowestLow": lowest_low,
            "lookback": self.lookback,
            "currentPrice": current_price,
            "isPositioned": positioned,
            "entryPrice": position.entry_price,
            "possibleProfit": profit,
            "minimumProfitThreshold": position.minimum_profit_threshold,
            "stoplossThreshold": self.stoploss_threshold,
        }

        if self.stoploss_triggered(position, profit):
            data["reason"] = "stoploss_triggered"
            return StrategyAnalysis(Decision.SELL, data)

        decision = Decision.HOLD
        if current_price > highest_high:
            if positioned:
                reason = "breakout_above_range_positioned_holding"
            else:
                decision, reason = Decision.BUY, "breakout_above_range_buy"
        elif current_price < lowest_low:
            if not positioned:
                reason = "breakdown_below_range_wait"
            elif profit >= position.minimum_profit_threshold:
                decision, reason = Decision.SELL, "breakdown_below_range_sell"
            else:
                reason = "breakdown_hold_insufficient_profit"
        elif positioned:
            reason = "inside_range_positioned_holding"
        else:
            reason = "inside_range_wait_for_breakout"

        data["reason"] = reason
        return StrategyAnalysis(decision, data)
