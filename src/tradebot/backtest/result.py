"""Backtest trades and aggregated results."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from tradebot.core.exceptions import BacktestError
from tradebot.core.models import Decision, TradingDecisionLog


# Drawdown risk bands, in percent
LOW_DRAWDOWN = 10.0
ACCEPTABLE_DRAWDOWN = 20.0
HIGH_DRAWDOWN = 30.0


class BacktestTrade:
    """A simulated trade: opened once, closed exactly once."""

    def __init__(
        self,
        symbol: str,
        side: Decision,
        entry_price: float,
        quantity: float,
        entry_time: datetime,
        reason: str = "unknown",
    ):
        if side not in (Decision.BUY, Decision.SELL):
            raise BacktestError(f"trade side must be BUY or SELL, got {side.value}")
        self.id = str(uuid.uuid4())
        self.symbol = symbol
        self.side = side
        self.entry_price = entry_price
        self.quantity = quantity
        self.entry_time = entry_time
        self.reason = reason
        self.exit_price: Optional[float] = None
        self.exit_time: Optional[datetime] = None
        self.exit_reason: Optional[str] = None
        self.profit_loss: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.profit_loss is None

    @property
    def is_winning(self) -> bool:
        return self.profit_loss is not None and self.profit_loss > 0

    @property
    def is_losing(self) -> bool:
        return self.profit_loss is not None and self.profit_loss < 0

    @property
    def pnl_percentage(self) -> Optional[float]:
        if self.profit_loss is None or self.entry_price == 0 or self.quantity == 0:
            return None
        return self.profit_loss / (self.entry_price * self.quantity) * 100

    def close(self, exit_price: float, exit_time: datetime, reason: Optional[str] = None) -> float:
        """Close the trade and return its realized P&L."""
        if not self.is_open:
            raise BacktestError(f"trade {self.id} is already closed")

        if self.side == Decision.BUY:
            pnl = (exit_price - self.entry_price) * self.quantity
        else:
            pnl = (self.entry_price - exit_price) * self.quantity

        self.exit_price = exit_price
        self.exit_time = exit_time
        self.exit_reason = reason
        self.profit_loss = pnl
        return pnl

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "entry_time": self.entry_time.isoformat(),
            "exit_price": self.exit_price,
            "exit_time": self.exit_time.isoformat() if self.exit_time else None,
            "quantity": self.quantity,
            "profit_loss": self.profit_loss,
            "pnl_percentage": self.pnl_percentage,
            "is_open": self.is_open,
            "reason": self.reason,
            "exit_reason": self.exit_reason,
        }

    def __repr__(self) -> str:
        state = "open" if self.is_open else f"pnl={self.profit_loss:.2f}"
        return f"BacktestTrade({self.side.value} {self.quantity:.6f} {self.symbol} @ {self.entry_price}, {state})"


@dataclass(frozen=True)
class Drawdown:
    """Peak-to-trough decline, in percent, lasting ``duration`` trades."""
    value: float = 0.0
    peak: float = 0.0
    trough: float = 0.0
    duration: int = 0

    @classmethod
    def from_capital_history(cls, history: Sequence[float]) -> "Drawdown":
        """Largest decline across the whole history."""
        if len(history) < 2:
            return cls()

        peak = history[0]
        worst = cls()
        duration = 0
        for capital in history:
            if capital > peak:
                peak = capital
                duration = 0
            elif capital < peak:
                duration += 1
                value = (peak - capital) / peak * 100 if peak > 0 else 0.0
                if value > worst.value:
                    worst = cls(value=value, peak=peak, trough=capital, duration=duration)
        return worst

    @property
    def is_acceptable(self) -> bool:
        return self.value <= ACCEPTABLE_DRAWDOWN

    @property
    def is_low(self) -> bool:
        return self.value <= LOW_DRAWDOWN

    @property
    def is_high(self) -> bool:
        return self.value >= HIGH_DRAWDOWN

    def __str__(self) -> str:
        return f"{self.value:.2f}% ({self.peak:.2f} -> {self.trough:.2f} over {self.duration} trades)"


class BacktestResult:
    """Aggregates closed trades into P&L, win rate and drawdown.

    Statistics are updated once per trade as it is added; a finalized
    result accepts no further trades.
    """

    def __init__(
        self,
        strategy_name: str,
        symbol: str,
        initial_capital: float,
        currency: str = "USDT",
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        trading_fees: float = 0.0,
    ):
        if initial_capital <= 0:
            raise BacktestError("initial capital must be positive")
        self.id = str(uuid.uuid4())
        self.strategy_name = strategy_name
        self.symbol = symbol
        self.currency = currency
        self.start_date = start_date
        self.end_date = end_date
        self.initial_capital = initial_capital
        self.trading_fees = trading_fees
        self.created_at = datetime.utcnow()

        self.total_profit_loss = 0.0
        self.winning_trades = 0
        self.losing_trades = 0
        self.win_rate = 0.0
        self.max_drawdown = Drawdown()
        self.trades: List[BacktestTrade] = []
        self.capital_history: List[float] = [initial_capital]
        self.decisions: List[TradingDecisionLog] = []
        self._finalized = False

    @property
    def final_capital(self) -> float:
        return self.capital_history[-1]

    @property
    def total_trades(self) -> int:
        return len(self.trades)

    @property
    def roi(self) -> float:
        """Return on initial capital, in percent."""
        return (self.final_capital - self.initial_capital) / self.initial_capital * 100

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def add_trade(self, trade: BacktestTrade) -> None:
        if self._finalized:
            raise BacktestError("cannot add trades to a finalized backtest result")
        if trade.is_open:
            raise BacktestError("cannot add open trade to backtest result")

        self.trades.append(trade)
        self.total_profit_loss += trade.profit_loss
        self.capital_history.append(self.initial_capital + self.total_profit_loss)

        if trade.is_winning:
            self.winning_trades += 1
        elif trade.is_losing:
            self.losing_trades += 1

        self.win_rate = self.winning_trades / self.total_trades
        self.max_drawdown = Drawdown.from_capital_history(self.capital_history)

    def finalize(self, end_date: Optional[datetime] = None) -> None:
        if end_date is not None:
            self.end_date = end_date
        self._finalized = True

    def trades_dataframe(self) -> pd.DataFrame:
        """Closed trades as a DataFrame, one row per trade."""
        columns = ["entry_time", "exit_time", "entry_price", "exit_price",
                   "quantity", "profit_loss", "pnl_percentage", "reason", "exit_reason"]
        if not self.trades:
            return pd.DataFrame(columns=columns)
        df = pd.DataFrame([trade.to_dict() for trade in self.trades])
        df["capital"] = self.capital_history[1:]
        return df[columns + ["capital"]]

    def summary(self) -> List[str]:
        return [
            f"Strategy:        {self.strategy_name} on {self.symbol}",
            f"Initial Capital: {self.initial_capital:,.2f} {self.currency}",
            f"Final Capital:   {self.final_capital:,.2f} {self.currency}",
            f"Total P&L:       {self.total_profit_loss:+,.2f} {self.currency}",
            f"ROI:             {self.roi:.2f}%",
            f"Total Trades:    {self.total_trades}",
            f"Winning Trades:  {self.winning_trades}",
            f"Losing Trades:   {self.losing_trades}",
            f"Win Rate:        {self.win_rate:.2%}",
            f"Max Drawdown:    {self.max_drawdown}",
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "strategy": self.strategy_name,
            "symbol": self.symbol,
            "currency": self.currency,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "initial_capital": self.initial_capital,
            "final_capital": self.final_capital,
            "total_profit_loss": self.total_profit_loss,
            "roi": self.roi,
            "trading_fees": self.trading_fees,
            "total_trades": self.total_trades,
            "winning_trades": self.winning_trades,
            "losing_trades": self.losing_trades,
            "win_rate": self.win_rate,
            "max_drawdown": {
                "value": self.max_drawdown.value,
                "peak": self.max_drawdown.peak,
                "trough": self.max_drawdown.trough,
                "duration": self.max_drawdown.duration,
            },
            "capital_history": list(self.capital_history),
            "trades": [trade.to_dict() for trade in self.trades],
            "decisions": [decision.to_dict() for decision in self.decisions],
        }
