"""Shared fixtures."""

from typing import List, Sequence

import pytest

from tradebot.core.models import Candle


START_MS = 1_700_000_000_000
HOUR_MS = 3_600_000


def candles_from_closes(closes: Sequence[float], start_ms: int = START_MS, step_ms: int = HOUR_MS) -> List[Candle]:
    """Flat candles (open = high = low = close) at a fixed interval."""
    return [
        Candle(open=c, close=c, high=c, low=c, volume=1.0, close_time=start_ms + i * step_ms)
        for i, c in enumerate(closes)
    ]


@pytest.fixture
def make_candles():
    return candles_from_closes
