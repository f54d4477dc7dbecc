"""RSI mean-reversion strategy."""

from typing import Sequence

from pydantic import Field, model_validator

from tradebot.core.bot import PositionView
from tradebot.core.logger import get_logger
from tradebot.core.models import Candle, Decision, StrategyAnalysis
from tradebot.core.registry import strategy_registry
from tradebot.indicators.rsi import RelativeStrengthIndex, RSISignal
from tradebot.strategies.base import StrategyBase, StrategyParams, parse_params, possible_profit


class RSIParams(StrategyParams):
    period: int = Field(default=14, gt=0, alias='Period')
    oversold_threshold: float = Field(default=30.0, ge=0, le=100, alias='OversoldThreshold')
    overbought_threshold: float = Field(default=70.0, ge=0, le=100, alias='OverboughtThreshold')

    @model_validator(mode='after')
    def check_thresholds(self) -> 'RSIParams':
        if self.oversold_threshold >= self.overbought_threshold:
            raise ValueError(
                f'OversoldThreshold ({self.oversold_threshold}) must be less than '
                f'OverboughtThreshold ({self.overbought_threshold})'
            )
        return self


@strategy_registry.register("RSI")
class RSIStrategy(StrategyBase):
    """Buy oversold, sell overbought once the minimum profit is reached."""

    name = "RSI"
    params_model = RSIParams

    def __init__(
        self,
        period: int = 14,
        oversold_threshold: float = 30.0,
        overbought_threshold: float = 70.0,
        stoploss_threshold: float = 0.0,
    ):
        super().__init__(parse_params(RSIParams, {
            'period': period,
            'oversold_threshold': oversold_threshold,
            'overbought_threshold': overbought_threshold,
            'stoploss_threshold': stoploss_threshold,
        }))
        self.period = self.params.period
        self.oversold_threshold = self.params.oversold_threshold
        self.overbought_threshold = self.params.overbought_threshold
        self._rsi = RelativeStrengthIndex(
            self.period, self.oversold_threshold, self.overbought_threshold
        )
        self.logger = get_logger("strategies.rsi")

    def get_min_periods(self) -> int:
        return self.period + 1

    def decide(self, window: Sequence[Candle], position: PositionView) -> StrategyAnalysis:
        if len(window) < self.period + 1:
            return self.hold("insufficient_data", rsi=0.0, signal=RSISignal.NEUTRAL.value)

        result = self._rsi.calculate(window)
        current_price = window[-1].close
        profit = possible_profit(position.entry_price, current_price)
        positioned = position.is_positioned

        data = {
            "rsi": result.value if result is not None else 0.0,
            "signal": (result.signal if result is not None else RSISignal.NEUTRAL).value,
            "period": self.period,
            "currentPrice": current_price,
            "isPositioned": positioned,
            "oversoldThreshold": self.oversold_threshold,
            "overboughtThreshold": self.overbought_threshold,
            "entryPrice": position.entry_price,
            "possibleProfit": profit,
            "minimumProfitThreshold": position.minimum_profit_threshold,
            "stoplossThreshold": self.stoploss_threshold,
        }

        # stoploss applies even when the window carries no usable RSI
        if self.stoploss_triggered(position, profit):
            self.logger.warning(
                f"Stoploss triggered for {position.symbol or 'position'}: price {current_price:.8f}, "
                f"entry {position.entry_price:.8f}, loss {profit:.2f}%"
            )
            data["reason"] = "stoploss_triggered"
            return StrategyAnalysis(Decision.SELL, data)

        if result is None:
            data["reason"] = "calculation_error"
            data["error"] = "no price changes detected in the data"
            return StrategyAnalysis(Decision.HOLD, data)

        decision = Decision.HOLD
        if result.is_oversold:
            if positioned:
                reason = "rsi_oversold_positioned_holding"
            else:
                decision, reason = Decision.BUY, "rsi_oversold_buy_signal"
        elif result.is_overbought:
            if not positioned:
                reason = "rsi_overbought_wait_for_dip"
            elif profit >= position.minimum_profit_threshold:
                decision, reason = Decision.SELL, "rsi_overbought_sell_with_profit"
            else:
                reason = "rsi_overbought_hold_insufficient_profit"
        elif positioned:
            reason = "rsi_neutral_positioned_holding"
        else:
            reason = "rsi_neutral_wait_for_signal"

        data["reason"] = reason
        return StrategyAnalysis(decision, data)
