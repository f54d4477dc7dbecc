"""Simple moving average."""

from typing import Sequence

from tradebot.core.models import Candle
from tradebot.indicators.base import IndicatorBase


class SimpleMovingAverage(IndicatorBase):
    """Arithmetic mean of the last ``window`` closes."""

    def __init__(self, window: int):
        self.window = window
        super().__init__(window=window)

    def validate_parameters(self) -> bool:
        return isinstance(self.window, int) and self.window > 0

    def get_min_periods(self) -> int:
        return self.window

    def calculate(self, data: Sequence[Candle]) -> float:
        if len(data) < self.window:
            raise ValueError(
                f"insufficient data: need {self.window} candles, got {len(data)}"
            )
        total = 0.0
        for candle in data[len(data) - self.window:]:
            total += candle.close
        return total / self.window


def spread_percentage(fast: float, slow: float) -> float:
    """Absolute gap between two averages as a percentage of the slow one."""
    if slow == 0:
        return 0.0
    return abs((fast - slow) / slow) * 100
