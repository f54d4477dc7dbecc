"""Interfaces to the exchange-facing collaborators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List

from tradebot.core.models import Candle, Decision, SymbolFilter


class MarketDataSource(ABC):
    """Source of candles in ascending close-time order."""

    @abstractmethod
    def get_market_data(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        """Get the most recent candles.

        Args:
            symbol: Trading symbol
            interval: Candle interval (e.g., '1m', '1h', '1d')
            limit: Maximum number of candles

        Returns:
            Candles, oldest first
        """
        pass

    def validate_candles(self, candles: List[Candle]) -> bool:
        """Check ordering of a candle sequence.

        Gaps are tolerated; only strictly increasing close times are required.
        """
        return all(
            earlier.close_time < later.close_time
            for earlier, later in zip(candles, candles[1:])
        )


class ExchangeInfoSource(ABC):
    """Source of per-symbol trading rules."""

    @abstractmethod
    def get_symbol_filter(self, symbol: str) -> Optional[SymbolFilter]:
        """Get the filter for a symbol, or None when the exchange has none.

        Raises:
            ConnectorError: metadata could not be retrieved
        """
        pass


@dataclass
class OrderFill:
    """Executed market order."""
    order_id: str
    symbol: str
    side: Decision
    quantity: float
    price: float
    commission: float = 0.0
    timestamp: datetime = field(default_factory=datetime.utcnow)

    @property
    def value(self) -> float:
        return self.quantity * self.price


class OrderGateway(ABC):
    """Places orders on the exchange."""

    @abstractmethod
    def place_market_order(self, symbol: str, side: Decision, quantity: str, price: float) -> OrderFill:
        """Place a market order.

        Args:
            symbol: Trading symbol
            side: BUY or SELL
            quantity: Quantity formatted for the exchange
            price: Reference price at decision time

        Raises:
            OrderError: the order was not accepted
        """
        pass
