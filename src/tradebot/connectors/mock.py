"""Mock connector and paper order gateway for dry runs and demos."""

import random
import time
import uuid
from typing import Dict, List, Optional

from tradebot.connectors.base import MarketDataSource, OrderFill, OrderGateway
from tradebot.core.exceptions import OrderError
from tradebot.core.logger import get_logger
from tradebot.core.models import Candle, Decision


INTERVAL_MS = {
    "1m": 60_000,
    "5m": 300_000,
    "15m": 900_000,
    "30m": 1_800_000,
    "1h": 3_600_000,
    "4h": 14_400_000,
    "1d": 86_400_000,
}


def interval_to_ms(interval: str) -> int:
    try:
        return INTERVAL_MS[interval]
    except KeyError:
        raise ValueError(f"unsupported interval: {interval}") from None


class MockConnector(MarketDataSource):
    """Random-walk candles, reproducible for a given seed."""

    def __init__(
        self,
        prices: Optional[Dict[str, float]] = None,
        seed: Optional[int] = None,
        volatility: float = 0.01,
    ):
        self.logger = get_logger("connectors.mock")
        self._prices: Dict[str, float] = dict(prices or {
            "BTCUSDT": 45000.0,
            "ETHUSDT": 2500.0,
            "SOLBRL": 800.0,
        })
        self._random = random.Random(seed)
        self.volatility = volatility

    def generate(
        self,
        symbol: str,
        count: int,
        interval: str = "1h",
        end_time_ms: Optional[int] = None,
    ) -> List[Candle]:
        """Generate ``count`` consecutive candles ending at ``end_time_ms``."""
        step = interval_to_ms(interval)
        if end_time_ms is None:
            end_time_ms = int(time.time() * 1000)

        price = self._prices.get(symbol, 1000.0)
        candles = []
        for i in range(count):
            open_price = price
            close_price = max(open_price * (1 + self._random.gauss(0, self.volatility)), 0.01)
            high = max(open_price, close_price) * (1 + abs(self._random.gauss(0, self.volatility / 2)))
            low = min(open_price, close_price) * (1 - abs(self._random.gauss(0, self.volatility / 2)))
            candles.append(Candle(
                open=round(open_price, 2),
                close=round(close_price, 2),
                high=round(high, 2),
                low=round(max(low, 0.0), 2),
                volume=round(self._random.uniform(100, 10000), 2),
                close_time=end_time_ms - (count - 1 - i) * step,
            ))
            price = close_price

        self._prices[symbol] = price
        return candles

    def get_market_data(self, symbol: str, interval: str = "1h", limit: int = 100) -> List[Candle]:
        return self.generate(symbol, limit, interval)


class PaperOrderGateway(OrderGateway):
    """Fills every market order at the reference price, charging a fee."""

    def __init__(self, fee_rate: float = 0.0):
        """
        Args:
            fee_rate: Fee in percent of the order value
        """
        self.fee_rate = fee_rate
        self.fills: List[OrderFill] = []
        self.logger = get_logger("connectors.paper")

    def place_market_order(self, symbol: str, side: Decision, quantity: str, price: float) -> OrderFill:
        if side not in (Decision.BUY, Decision.SELL):
            raise OrderError(f"cannot place a {side.value} order")
        try:
            qty = float(quantity)
        except ValueError:
            raise OrderError(f"invalid quantity: {quantity!r}") from None
        if qty <= 0 or price <= 0:
            raise OrderError(f"invalid order {side.value} {quantity} {symbol} @ {price}")

        fill = OrderFill(
            order_id=str(uuid.uuid4()),
            symbol=symbol,
            side=side,
            quantity=qty,
            price=price,
            commission=qty * price * self.fee_rate / 100,
        )
        self.fills.append(fill)
        self.logger.info(f"Paper {side.value} {quantity} {symbol} @ {price:.8f}")
        return fill
