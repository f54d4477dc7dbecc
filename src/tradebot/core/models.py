"""Data models for trading bot."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from enum import Enum
from typing import Optional, Dict, Any, List, Mapping

from tradebot.core.exceptions import DataValidationError


# Tolerance for step/tick multiple checks
STEP_TOLERANCE = 1e-8

# Upper bound on quantity decimals accepted by the exchange
MAX_QUANTITY_DECIMALS = 8


class Decision(str, Enum):
    """Trading decision."""
    HOLD = "HOLD"
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def parse(cls, value: str) -> "Decision":
        """Parse a decision name, case-insensitive."""
        try:
            return cls(value.strip().upper())
        except (ValueError, AttributeError):
            raise ValueError(f"invalid trading decision: {value}")


class BotStatus(str, Enum):
    """Bot lifecycle status."""
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Candle:
    """OHLCV bar. ``close_time`` is a millisecond epoch timestamp."""
    open: float
    close: float
    high: float
    low: float
    volume: float
    close_time: int

    def __post_init__(self):
        for name in ("open", "close", "high", "low", "volume"):
            if getattr(self, name) < 0:
                raise DataValidationError(f"{name} cannot be negative")
        if self.close_time <= 0:
            raise DataValidationError("close_time must be positive")
        if self.high < self.open or self.high < self.close or self.high < self.low:
            raise DataValidationError("high must be >= open, close and low")
        if self.low > self.open or self.low > self.close:
            raise DataValidationError("low must be <= open, close and high")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candle":
        """Build a candle from a mapping with camelCase or snake_case keys."""
        close_time = data.get("close_time", data.get("closeTime"))
        if close_time is None:
            raise DataValidationError("close_time is required")
        try:
            return cls(
                open=float(data["open"]),
                close=float(data["close"]),
                high=float(data["high"]),
                low=float(data["low"]),
                volume=float(data.get("volume", 0.0)),
                close_time=int(close_time),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataValidationError(f"malformed candle row: {e}") from e

    @property
    def close_datetime(self) -> datetime:
        """Close time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.close_time / 1000, tz=timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "open": self.open,
            "close": self.close,
            "high": self.high,
            "low": self.low,
            "volume": self.volume,
            "closeTime": self.close_time,
        }


@dataclass
class StrategyAnalysis:
    """Strategy decision with its diagnostic payload."""
    decision: Decision
    analysis_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def reason(self) -> str:
        return self.analysis_data.get("reason", "unknown")


def _decimal_places(step: float) -> int:
    """Number of significant decimals in a step size, capped at 8."""
    if step >= 1.0:
        return 0
    text = f"{step:.{MAX_QUANTITY_DECIMALS}f}".rstrip("0")
    if "." not in text:
        return 0
    return len(text.split(".", 1)[1])


def _is_step_multiple(value: float, step: Optional[float]) -> bool:
    if not step:
        return True
    steps = value / step
    return abs(steps - round(steps)) <= STEP_TOLERANCE


@dataclass(frozen=True)
class SymbolFilter:
    """Exchange trading rules for one symbol.

    ``step_size`` / ``tick_size`` of ``None`` mean the exchange imposes no
    increment on quantity / price. A ``min_notional`` of 0 disables the
    notional check.
    """
    symbol: str
    min_quantity: float = 0.0
    max_quantity: float = math.inf
    step_size: Optional[float] = None
    min_price: float = 0.0
    max_price: float = math.inf
    tick_size: Optional[float] = None
    min_notional: float = 0.0

    def __post_init__(self):
        if not self.symbol:
            raise DataValidationError("symbol cannot be empty")
        if self.min_quantity < 0 or self.max_quantity < 0:
            raise DataValidationError(f"invalid quantity constraints for {self.symbol}")
        if self.step_size is not None and self.step_size <= 0:
            raise DataValidationError(f"step size must be positive for {self.symbol}")
        if self.min_quantity > self.max_quantity:
            raise DataValidationError(
                f"min quantity cannot be greater than max quantity for {self.symbol}"
            )
        if self.min_price < 0 or self.max_price < 0:
            raise DataValidationError(f"invalid price constraints for {self.symbol}")
        if self.tick_size is not None and self.tick_size <= 0:
            raise DataValidationError(f"tick size must be positive for {self.symbol}")
        if self.min_price > self.max_price:
            raise DataValidationError(
                f"min price cannot be greater than max price for {self.symbol}"
            )
        if self.min_notional < 0:
            raise DataValidationError(f"invalid notional constraint for {self.symbol}")

    @classmethod
    def from_exchange_info(cls, symbol_info: Mapping[str, Any]) -> "SymbolFilter":
        """Build from a Binance ``exchangeInfo`` symbol entry.

        Missing filters, and zero step/tick/max values, are read as
        "no restriction".
        """
        symbol = symbol_info.get("symbol", "")
        filters = {f.get("filterType"): f for f in symbol_info.get("filters", [])}

        def _num(section: Optional[Mapping[str, Any]], key: str, default: float) -> float:
            if not section or section.get(key) in (None, ""):
                return default
            return float(section[key])

        lot = filters.get("LOT_SIZE")
        price = filters.get("PRICE_FILTER")
        notional = filters.get("MIN_NOTIONAL") or filters.get("NOTIONAL")

        step = _num(lot, "stepSize", 0.0)
        tick = _num(price, "tickSize", 0.0)
        max_qty = _num(lot, "maxQty", 0.0)
        max_price = _num(price, "maxPrice", 0.0)

        return cls(
            symbol=symbol,
            min_quantity=_num(lot, "minQty", 0.0),
            max_quantity=max_qty if max_qty > 0 else math.inf,
            step_size=step if step > 0 else None,
            min_price=_num(price, "minPrice", 0.0),
            max_price=max_price if max_price > 0 else math.inf,
            tick_size=tick if tick > 0 else None,
            min_notional=_num(notional, "minNotional", 0.0),
        )

    @property
    def quantity_decimals(self) -> int:
        if self.step_size is None:
            return 6
        return min(_decimal_places(self.step_size), MAX_QUANTITY_DECIMALS)

    def validate_quantity(self, quantity: float) -> Optional[str]:
        """Return an error message, or None when the quantity is acceptable."""
        if quantity < self.min_quantity:
            return (f"quantity {quantity:.8f} is below minimum "
                    f"{self.min_quantity:.8f} for {self.symbol}")
        if quantity > self.max_quantity:
            return (f"quantity {quantity:.8f} exceeds maximum "
                    f"{self.max_quantity:.8f} for {self.symbol}")
        if not _is_step_multiple(quantity, self.step_size):
            return (f"quantity {quantity:.8f} does not comply with step size "
                    f"{self.step_size:.8f} for {self.symbol}")
        return None

    def validate_price(self, price: float) -> Optional[str]:
        if price < self.min_price:
            return f"price {price:.8f} is below minimum {self.min_price:.8f} for {self.symbol}"
        if price > self.max_price:
            return f"price {price:.8f} exceeds maximum {self.max_price:.8f} for {self.symbol}"
        if not _is_step_multiple(price, self.tick_size):
            return (f"price {price:.8f} does not comply with tick size "
                    f"{self.tick_size:.8f} for {self.symbol}")
        return None

    def validate_notional(self, quantity: float, price: float) -> Optional[str]:
        if self.min_notional <= 0:
            return None
        notional = quantity * price
        if notional < self.min_notional:
            return (f"notional value {notional:.2f} is below minimum "
                    f"{self.min_notional:.2f} for {self.symbol}")
        return None

    def _to_steps(self, quantity: float, rounding: str) -> float:
        step = Decimal(str(self.step_size))
        steps = (Decimal(str(quantity)) / step).to_integral_value(rounding=rounding)
        return float((steps * step).quantize(Decimal(1).scaleb(-self.quantity_decimals)))

    def adjust_quantity_to_step_size(self, quantity: float) -> float:
        """Round down to the step, up if that falls below the minimum,
        and fall back to the minimum when neither fits the bounds."""
        if self.step_size is None:
            adjusted = quantity
        else:
            adjusted = self._to_steps(quantity, ROUND_FLOOR)
            if adjusted < self.min_quantity:
                adjusted = self._to_steps(quantity, ROUND_CEILING)
                if adjusted < self.min_quantity or adjusted > self.max_quantity:
                    adjusted = self.min_quantity

        if adjusted > self.max_quantity:
            if self.step_size is None:
                adjusted = self.max_quantity
            else:
                adjusted = self._to_steps(self.max_quantity, ROUND_FLOOR)

        return adjusted

    def format_quantity(self, quantity: float) -> str:
        """Format a quantity with the precision the exchange accepts."""
        return f"{quantity:.{self.quantity_decimals}f}"

    def __str__(self) -> str:
        return (
            f"SymbolFilter{{{self.symbol}: qty[{self.min_quantity:.8f}-{self.max_quantity:.8f}"
            f"/{self.step_size}], price[{self.min_price:.8f}-{self.max_price:.8f}"
            f"/{self.tick_size}], notional:{self.min_notional:.2f}}}"
        )


@dataclass
class TradingDecisionLog:
    """One evaluated decision, kept for auditing."""
    strategy_name: str
    decision: Decision
    analysis_data: Dict[str, Any]
    current_price: float
    possible_profit: float
    timestamp: datetime
    bot_id: Optional[str] = None
    market_data: List[Candle] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bot_id": self.bot_id,
            "strategy": self.strategy_name,
            "decision": self.decision.value,
            "analysis_data": dict(self.analysis_data),
            "current_price": self.current_price,
            "possible_profit": self.possible_profit,
            "timestamp": self.timestamp.isoformat(),
        }
