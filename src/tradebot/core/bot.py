"""Trading bot position and lifecycle state."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any, Optional

from tradebot.core.exceptions import StateManagementError
from tradebot.core.models import BotStatus


@dataclass(frozen=True)
class PositionView:
    """Read-only snapshot of the position state handed to strategies."""
    symbol: str
    is_positioned: bool
    entry_price: float
    minimum_profit_threshold: float
    trading_fees: float = 0.0

    @classmethod
    def flat(cls, symbol: str = "", minimum_profit_threshold: float = 0.0) -> "PositionView":
        return cls(symbol=symbol, is_positioned=False, entry_price=0.0,
                   minimum_profit_threshold=minimum_profit_threshold)

    @classmethod
    def positioned(
        cls,
        entry_price: float,
        symbol: str = "",
        minimum_profit_threshold: float = 0.0
    ) -> "PositionView":
        return cls(symbol=symbol, is_positioned=True, entry_price=entry_price,
                   minimum_profit_threshold=minimum_profit_threshold)


class TradingBot:
    """A single-symbol bot.

    State only changes through the transition methods; strategies see it via
    :meth:`view`.
    """

    def __init__(
        self,
        symbol: str,
        quantity: float = 0.0,
        strategy_name: str = "",
        interval_seconds: int = 60,
        initial_capital: float = 0.0,
        trade_amount: float = 0.0,
        currency: str = "USDT",
        trading_fees: float = 0.0,
        minimum_profit_threshold: float = 0.0,
        use_fixed_quantity: bool = False,
        bot_id: Optional[str] = None,
        strategy_params: Optional[Dict[str, Any]] = None,
    ):
        self.id = bot_id or str(uuid.uuid4())
        self.symbol = symbol
        self.quantity = quantity
        self.strategy_name = strategy_name
        self.strategy_params = dict(strategy_params or {})
        self.interval_seconds = interval_seconds
        self.initial_capital = initial_capital
        self.trade_amount = trade_amount
        self.currency = currency
        self.trading_fees = trading_fees
        self.minimum_profit_threshold = minimum_profit_threshold
        self.use_fixed_quantity = use_fixed_quantity
        self.created_at = datetime.utcnow()

        self._status = BotStatus.STOPPED
        self._is_positioned = False
        self._entry_price = 0.0
        self._actual_quantity_held = 0.0

    @property
    def status(self) -> BotStatus:
        return self._status

    @property
    def is_positioned(self) -> bool:
        return self._is_positioned

    @property
    def entry_price(self) -> float:
        return self._entry_price

    @property
    def actual_quantity_held(self) -> float:
        return self._actual_quantity_held

    def start(self) -> None:
        if self._status != BotStatus.STOPPED:
            raise StateManagementError(
                f"bot is not in stopped status, current status: {self._status.value}"
            )
        self._status = BotStatus.RUNNING

    def stop(self) -> None:
        if self._status == BotStatus.STOPPED:
            raise StateManagementError("bot is already stopped")
        self._status = BotStatus.STOPPED

    def mark_error(self) -> None:
        self._status = BotStatus.ERROR

    def get_into_position(self, entry_price: float, quantity_held: float = 0.0) -> None:
        if self._is_positioned:
            raise StateManagementError(f"bot is already positioned for {self.symbol}")
        if entry_price <= 0:
            raise StateManagementError(f"entry price must be positive, got {entry_price}")
        self._is_positioned = True
        self._entry_price = entry_price
        self._actual_quantity_held = quantity_held

    def get_out_of_position(self) -> None:
        if not self._is_positioned:
            raise StateManagementError(f"this bot has no open position for {self.symbol}")
        self._is_positioned = False
        self._entry_price = 0.0
        self._actual_quantity_held = 0.0

    def calculate_quantity_for_sell(self) -> float:
        """Quantity available to sell once buy fees are taken into account."""
        if self._actual_quantity_held > 0:
            return self._actual_quantity_held
        return self.quantity * (1.0 - self.trading_fees / 100.0)

    def view(self) -> PositionView:
        return PositionView(
            symbol=self.symbol,
            is_positioned=self._is_positioned,
            entry_price=self._entry_price,
            minimum_profit_threshold=self.minimum_profit_threshold,
            trading_fees=self.trading_fees,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "quantity": self.quantity,
            "strategy": self.strategy_name,
            "strategy_params": dict(self.strategy_params),
            "status": self._status.value,
            "is_positioned": self._is_positioned,
            "entry_price": self._entry_price if self._entry_price > 0 else None,
            "actual_quantity_held": self._actual_quantity_held,
            "interval_seconds": self.interval_seconds,
            "initial_capital": self.initial_capital,
            "trade_amount": self.trade_amount,
            "currency": self.currency,
            "trading_fees": self.trading_fees,
            "minimum_profit_threshold": self.minimum_profit_threshold,
            "use_fixed_quantity": self.use_fixed_quantity,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self) -> str:
        return (f"TradingBot(symbol={self.symbol!r}, status={self._status.value}, "
                f"positioned={self._is_positioned}, entry={self._entry_price})")
