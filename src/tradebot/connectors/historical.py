"""Market data replayed from a pre-loaded candle sequence."""

from typing import List, Sequence

from tradebot.connectors.base import MarketDataSource
from tradebot.core.exceptions import ConnectorError
from tradebot.core.models import Candle


class HistoricalMarketDataSource(MarketDataSource):
    """Serves a sliding window that ends at a cursor over historical candles.

    The interval argument is ignored; the data is already at its interval.
    """

    def __init__(self, candles: Sequence[Candle], window_size: int = 100):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self._candles = list(candles)
        self.window_size = window_size
        self.current_index = 0

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def current_candle(self) -> Candle:
        return self._candles[self.current_index]

    def get_market_data(self, symbol: str, interval: str = "1h", limit: int = 0) -> List[Candle]:
        if self.current_index >= len(self._candles):
            raise ConnectorError("no more historical data available")
        size = min(limit, self.window_size) if limit else self.window_size
        start = max(0, self.current_index - size + 1)
        return self._candles[start:self.current_index + 1]

    def seek(self, index: int) -> None:
        if not 0 <= index < len(self._candles):
            raise IndexError(f"index {index} outside 0..{len(self._candles) - 1}")
        self.current_index = index

    def has_more_data(self) -> bool:
        return self.current_index < len(self._candles) - 1

    def advance(self) -> bool:
        """Move to the next candle; False at the end of the data."""
        if self.has_more_data():
            self.current_index += 1
            return True
        return False
