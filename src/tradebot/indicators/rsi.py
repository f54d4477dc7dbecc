"""Relative Strength Index with Wilder's smoothing."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import numpy as np

from tradebot.core.models import Candle
from tradebot.indicators.base import IndicatorBase


class RSISignal(str, Enum):
    """RSI zone."""
    OVERSOLD = "OVERSOLD"
    OVERBOUGHT = "OVERBOUGHT"
    NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class RSIResult:
    """RSI value at the last candle of a window."""
    value: float
    period: int
    close_time: int
    signal: RSISignal

    @property
    def is_oversold(self) -> bool:
        return self.signal == RSISignal.OVERSOLD

    @property
    def is_overbought(self) -> bool:
        return self.signal == RSISignal.OVERBOUGHT

    @property
    def is_neutral(self) -> bool:
        return self.signal == RSISignal.NEUTRAL


def wilder_rsi(closes: Sequence[float], period: int) -> Optional[float]:
    """RSI of the last close.

    Averages are seeded with the simple mean of the first ``period`` changes
    and smoothed with ``(avg * (period - 1) + value) / period`` afterwards.
    Returns None when the closes never move.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got: {period}")
    if len(closes) < period + 1:
        raise ValueError(
            f"insufficient data: need at least {period + 1} closes, got {len(closes)}"
        )

    changes = np.diff(np.asarray(closes, dtype=float))
    gains = np.clip(changes, 0.0, None)
    losses = np.clip(-changes, 0.0, None)

    avg_gain = float(gains[:period].mean())
    avg_loss = float(losses[:period].mean())
    if avg_gain == 0 and avg_loss == 0 and not changes[period:].any():
        return None

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + float(gain)) / period
        avg_loss = (avg_loss * (period - 1) + float(loss)) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    rsi = 100.0 - (100.0 / (1.0 + rs))
    return max(0.0, min(100.0, rsi))


class RelativeStrengthIndex(IndicatorBase):
    """RSI indicator classified against oversold/overbought thresholds."""

    def __init__(self, period: int = 14, oversold: float = 30.0, overbought: float = 70.0):
        self.period = period
        self.oversold = oversold
        self.overbought = overbought
        super().__init__(period=period, oversold=oversold, overbought=overbought)

    def validate_parameters(self) -> bool:
        return (
            isinstance(self.period, int)
            and self.period > 0
            and 0 <= self.oversold < self.overbought <= 100
        )

    def get_min_periods(self) -> int:
        return self.period + 1

    def classify(self, value: float) -> RSISignal:
        if value < self.oversold:
            return RSISignal.OVERSOLD
        if value > self.overbought:
            return RSISignal.OVERBOUGHT
        return RSISignal.NEUTRAL

    def calculate(self, data: Sequence[Candle]) -> Optional[RSIResult]:
        value = wilder_rsi(self.closes(data), self.period)
        if value is None:
            return None
        return RSIResult(
            value=value,
            period=self.period,
            close_time=data[-1].close_time,
            signal=self.classify(value),
        )
