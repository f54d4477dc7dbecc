import pytest

from tradebot.core.bot import PositionView, TradingBot
from tradebot.core.exceptions import StateManagementError
from tradebot.core.models import BotStatus


def make_bot(**kwargs):
    defaults = dict(symbol="BTCUSDT", quantity=0.5, trading_fees=0.1, minimum_profit_threshold=2.0)
    defaults.update(kwargs)
    return TradingBot(**defaults)


def test_new_bot_is_stopped_and_flat():
    bot = make_bot()
    assert bot.status == BotStatus.STOPPED
    assert not bot.is_positioned
    assert bot.entry_price == 0.0


def test_start_stop_transitions():
    bot = make_bot()
    bot.start()
    assert bot.status == BotStatus.RUNNING
    with pytest.raises(StateManagementError):
        bot.start()
    bot.stop()
    assert bot.status == BotStatus.STOPPED
    with pytest.raises(StateManagementError):
        bot.stop()


def test_position_transitions():
    bot = make_bot()
    bot.get_into_position(100.0, 0.4995)
    assert bot.is_positioned
    assert bot.entry_price == 100.0
    assert bot.actual_quantity_held == pytest.approx(0.4995)

    with pytest.raises(StateManagementError):
        bot.get_into_position(101.0)

    bot.get_out_of_position()
    assert not bot.is_positioned
    assert bot.entry_price == 0.0
    assert bot.actual_quantity_held == 0.0

    with pytest.raises(StateManagementError):
        bot.get_out_of_position()


def test_entry_price_must_be_positive():
    with pytest.raises(StateManagementError):
        make_bot().get_into_position(0.0)


def test_quantity_for_sell_accounts_for_fees():
    bot = make_bot(quantity=1.0, trading_fees=0.1)
    assert bot.calculate_quantity_for_sell() == pytest.approx(0.999)
    bot.get_into_position(50.0, 0.75)
    assert bot.calculate_quantity_for_sell() == pytest.approx(0.75)


def test_view_is_a_read_only_snapshot():
    bot = make_bot()
    bot.get_into_position(100.0)
    view = bot.view()
    assert view == PositionView(
        symbol="BTCUSDT", is_positioned=True, entry_price=100.0,
        minimum_profit_threshold=2.0, trading_fees=0.1,
    )
    with pytest.raises(AttributeError):
        view.is_positioned = False

    bot.get_out_of_position()
    assert view.is_positioned


def test_to_dict_omits_entry_price_when_flat():
    data = make_bot(strategy_params={"FastWindow": 7}).to_dict()
    assert data["entry_price"] is None
    assert data["status"] == "STOPPED"
    assert data["strategy_params"] == {"FastWindow": 7}
