"""Price channel (highest high / lowest low) over a lookback."""

from typing import Sequence, Tuple

from tradebot.core.models import Candle
from tradebot.indicators.base import IndicatorBase


class PriceChannel(IndicatorBase):
    """Range of the ``lookback`` candles that precede the last one."""

    def __init__(self, lookback: int = 20):
        self.lookback = lookback
        super().__init__(lookback=lookback)

    def validate_parameters(self) -> bool:
        return isinstance(self.lookback, int) and self.lookback > 0

    def get_min_periods(self) -> int:
        return self.lookback + 1

    def calculate(self, data: Sequence[Candle]) -> Tuple[float, float]:
        """Return ``(highest_high, lowest_low)`` excluding the last candle."""
        if len(data) < self.get_min_periods():
            raise ValueError(
                f"insufficient data: need {self.get_min_periods()} candles, got {len(data)}"
            )
        df = self.to_dataframe(data).iloc[-(self.lookback + 1):-1]
        return float(df['high'].max()), float(df['low'].min())
