import pytest

from tradebot.core.bot import PositionView
from tradebot.core.exceptions import StrategyError
from tradebot.core.models import Decision
from tradebot.strategies.moving_average import MovingAverageStrategy


def test_buys_the_dip_when_flat(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, minimum_spread=0.1)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), PositionView.flat())

    assert analysis.decision == Decision.BUY
    assert analysis.reason == "fast_below_slow_buy_low"
    assert analysis.analysis_data["fast"] == pytest.approx(8.0)
    assert analysis.analysis_data["slow"] == pytest.approx(8.6)
    assert analysis.analysis_data["hasSufficientSpread"] is True


def test_sells_the_rebound_with_profit(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, minimum_spread=0.1)
    position = PositionView.positioned(entry_price=8.0, minimum_profit_threshold=1.0)
    analysis = strategy.decide(make_candles([8, 9, 10, 10, 10]), position)

    assert analysis.decision == Decision.SELL
    assert analysis.reason == "fast_above_slow_sell_high_with_profit"
    assert analysis.analysis_data["possibleProfit"] == pytest.approx(25.0)


def test_insufficient_data_holds(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    analysis = strategy.decide(make_candles([10, 9, 8, 8]), PositionView.flat())
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "insufficient_data"


def test_insufficient_spread_waits(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, minimum_spread=10.0)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), PositionView.flat())
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "fast_below_slow_insufficient_spread_wait"


def test_positioned_below_slow_keeps_holding(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), PositionView.positioned(entry_price=8.0))
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "fast_below_slow_positioned_holding"


def test_holds_until_minimum_profit(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    position = PositionView.positioned(entry_price=9.9, minimum_profit_threshold=5.0)
    analysis = strategy.decide(make_candles([8, 9, 10, 10, 10]), position)
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "fast_above_slow_hold_insufficient_profit"


def test_flat_above_slow_waits_for_dip(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    analysis = strategy.decide(make_candles([8, 9, 10, 10, 10]), PositionView.flat())
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "fast_above_slow_wait_for_dip"


def test_equal_averages_are_neutral(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    analysis = strategy.decide(make_candles([10] * 5), PositionView.flat())
    assert analysis.decision == Decision.HOLD
    assert analysis.reason == "fast_equals_slow_neutral"
    assert analysis.analysis_data["hasSufficientSpread"] is False


@pytest.mark.parametrize("closes,position,suffix", [
    ([10, 9, 8, 8, 8], PositionView.flat(), "insufficient_spread_wait"),
    ([8, 9, 10, 10, 10], PositionView.positioned(entry_price=9.9, minimum_profit_threshold=5.0), "insufficient_profit"),
    ([8, 9, 10, 10, 10], PositionView.flat(), "wait_for_dip"),
    ([10, 9, 8, 8, 8], PositionView.positioned(entry_price=8.0), "positioned_holding"),
    ([10] * 5, PositionView.flat(), "neutral"),
])
def test_hold_reasons_end_with_hold_condition(make_candles, closes, position, suffix):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, minimum_spread=10.0)
    analysis = strategy.decide(make_candles(closes), position)
    assert analysis.decision == Decision.HOLD
    assert analysis.reason.endswith(suffix)


def test_stoploss_overrides_everything(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, stoploss_threshold=5.0)
    # fast < slow would otherwise keep holding
    position = PositionView.positioned(entry_price=10.0, minimum_profit_threshold=50.0)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), position)
    assert analysis.decision == Decision.SELL
    assert analysis.reason == "stoploss_triggered"
    assert analysis.analysis_data["possibleProfit"] == pytest.approx(-20.0)


def test_stoploss_not_triggered_above_threshold(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5, stoploss_threshold=25.0)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), PositionView.positioned(entry_price=10.0))
    assert analysis.reason == "fast_below_slow_positioned_holding"


def test_decide_does_not_mutate_position(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    position = PositionView.flat(minimum_profit_threshold=1.0)
    strategy.decide(make_candles([10, 9, 8, 8, 8]), position)
    assert position == PositionView.flat(minimum_profit_threshold=1.0)


def test_diagnostics_keys(make_candles):
    strategy = MovingAverageStrategy(fast_window=3, slow_window=5)
    analysis = strategy.decide(make_candles([10, 9, 8, 8, 8]), PositionView.flat())
    assert set(analysis.analysis_data) == {
        "fast", "slow", "currentPrice", "isPositioned", "hasSufficientSpread",
        "minimumSpread", "actualSpread", "entryPrice", "possibleProfit",
        "minimumProfitThreshold", "stoplossThreshold", "reason",
    }


@pytest.mark.parametrize("kwargs", [
    {"fast_window": 5, "slow_window": 5},
    {"fast_window": 10, "slow_window": 5},
    {"fast_window": 0, "slow_window": 5},
    {"fast_window": 3, "slow_window": 5, "minimum_spread": 101},
    {"fast_window": 3, "slow_window": 5, "minimum_spread": -1},
    {"fast_window": 3, "slow_window": 5, "stoploss_threshold": -1},
])
def test_invalid_parameters_rejected_at_construction(kwargs):
    with pytest.raises(StrategyError):
        MovingAverageStrategy(**kwargs)


def test_params_accept_pascal_case_keys():
    strategy = MovingAverageStrategy.from_params({"FastWindow": 7, "SlowWindow": 40, "MinimumSpread": 0.5})
    assert strategy.fast_window == 7
    assert strategy.get_min_periods() == 40
    assert strategy.get_params() == {
        "FastWindow": 7, "SlowWindow": 40, "MinimumSpread": 0.5, "StoplossThreshold": 0.0,
    }
