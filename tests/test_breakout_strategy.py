import pytest

from tradebot.core.bot import PositionView
from tradebot.core.models import Candle, Decision
from tradebot.indicators.channel import PriceChannel
from tradebot.strategies.breakout import BreakoutStrategy


def test_channel_excludes_last_candle(make_candles):
    candles = make_candles([10, 12, 11, 20])
    assert PriceChannel(3).calculate(candles) == (12.0, 10.0)


def test_channel_uses_highs_and_lows():
    candles = [
        Candle(open=10, close=10, high=13, low=8, volume=1, close_time=1),
        Candle(open=10, close=11, high=12, low=9, volume=1, close_time=2),
        Candle(open=11, close=11, high=11, low=11, volume=1, close_time=3),
    ]
    assert PriceChannel(2).calculate(candles) == (13.0, 8.0)


def test_breakout_buys_when_flat(make_candles):
    analysis = BreakoutStrategy(lookback=3).decide(make_candles([10, 12, 11, 13]), PositionView.flat())
    assert analysis.decision == Decision.BUY
    assert analysis.reason == "breakout_above_range_buy"
    assert analysis.analysis_data["highestHigh"] == 12.0


def test_breakout_positioned_holds(make_candles):
    analysis = BreakoutStrategy(lookback=3).decide(
        make_candles([10, 12, 11, 13]), PositionView.positioned(entry_price=11.0)
    )
    assert analysis.reason == "breakout_above_range_positioned_holding"


def test_breakdown_sells_with_profit(make_candles):
    position = PositionView.positioned(entry_price=5.0, minimum_profit_threshold=10.0)
    analysis = BreakoutStrategy(lookback=3).decide(make_candles([10, 12, 11, 9]), position)
    assert analysis.decision == Decision.SELL
    assert analysis.reason == "breakdown_below_range_sell"


def test_breakdown_without_profit_holds(make_candles):
    position = PositionView.positioned(entry_price=11.0, minimum_profit_threshold=1.0)
    analysis = BreakoutStrategy(lookback=3).decide(make_candles([10, 12, 11, 9]), position)
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "breakdown_hold_insufficient_profit"


@pytest.mark.parametrize("closes,position,reason", [
    ([10, 12, 11, 9], PositionView.flat(), "breakdown_below_range_wait"),
    ([10, 12, 11, 11], PositionView.flat(), "inside_range_wait_for_breakout"),
    ([10, 12, 11, 11], PositionView.positioned(entry_price=10.0), "inside_range_positioned_holding"),
    ([10, 12, 11], PositionView.flat(), "insufficient_data"),
])
def test_hold_reasons(make_candles, closes, position, reason):
    analysis = BreakoutStrategy(lookback=3).decide(make_candles(closes), position)
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == reason


def test_stoploss_first(make_candles):
    strategy = BreakoutStrategy(lookback=3, stoploss_threshold=5)
    analysis = strategy.decide(make_candles([10, 12, 11, 13]), PositionView.positioned(entry_price=20.0))
    assert analysis.decision == Decision.SELL
    assert analysis.reason == "stoploss_triggered"
