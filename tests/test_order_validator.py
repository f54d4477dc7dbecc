import pytest

from tradebot.connectors.base import ExchangeInfoSource
from tradebot.connectors.exchange_info import StaticExchangeInfo
from tradebot.core.exceptions import ConnectorError
from tradebot.core.models import SymbolFilter
from tradebot.exchange.order_validator import OrderValidator, validate_order


@pytest.fixture
def btc_filter():
    return SymbolFilter(
        symbol="BTCUSDT",
        min_quantity=0.00001,
        max_quantity=9000,
        step_size=0.00001,
        min_price=0.01,
        max_price=1_000_000,
        tick_size=0.01,
        min_notional=5.0,
    )


def test_step_size_rounding_down_with_warning():
    symbol_filter = SymbolFilter(symbol="SOLBRL", step_size=0.1)
    result = validate_order(symbol_filter, 10.121457, 800.0)

    assert result.is_valid
    assert result.adjusted_quantity == pytest.approx(10.1)
    assert result.formatted_quantity == "10.1"
    assert result.was_adjusted
    assert len(result.warnings) == 1
    assert "step size" in result.warnings[0]


def test_quantity_on_step_is_unchanged(btc_filter):
    result = validate_order(btc_filter, 0.00123, 45000.0)
    assert result.is_valid
    assert result.adjusted_quantity == 0.00123
    assert not result.was_adjusted
    assert result.warnings == []
    assert result.formatted_quantity == "0.00123"


def test_revalidating_adjusted_quantity_is_idempotent(btc_filter):
    first = validate_order(btc_filter, 0.0123456789, 45000.0)
    second = validate_order(btc_filter, first.adjusted_quantity, 45000.0)
    assert second.is_valid
    assert second.adjusted_quantity == first.adjusted_quantity
    assert second.warnings == []


def test_below_minimum_rounds_up_to_minimum(btc_filter):
    symbol_filter = SymbolFilter(symbol="X", min_quantity=0.5, max_quantity=100, step_size=0.1)
    result = validate_order(symbol_filter, 0.42, 100.0)
    assert result.is_valid
    assert result.adjusted_quantity == pytest.approx(0.5)
    assert result.warnings


def test_notional_shortfall_is_rejected(btc_filter):
    result = validate_order(btc_filter, 0.0001, 45000.0)
    assert not result.is_valid
    assert any("notional" in error for error in result.validation_errors)


def test_notional_shortfall_after_adjustment_is_not_corrected(btc_filter):
    result = validate_order(btc_filter, 0.000101, 45000.0)
    assert not result.is_valid
    assert result.adjusted_quantity == pytest.approx(0.0001)
    assert any(error.startswith("Adjusted quantity notional error") for error in result.validation_errors)
    assert result.warnings == []


def test_quantity_over_maximum_is_clamped_to_step():
    symbol_filter = SymbolFilter(symbol="X", max_quantity=10.05, step_size=0.1)
    result = validate_order(symbol_filter, 12.0, 1.0)
    assert result.is_valid
    assert result.adjusted_quantity == pytest.approx(10.0)


def test_price_is_checked_but_never_corrected(btc_filter):
    result = validate_order(btc_filter, 0.001, 45000.005)
    assert not result.is_valid
    assert any("tick size" in error for error in result.validation_errors)
    assert result.adjusted_quantity == 0.001

    result = validate_order(btc_filter, 0.001, 2_000_000.0)
    assert any("exceeds maximum" in error for error in result.validation_errors)


def test_no_step_formats_with_six_decimals():
    result = validate_order(SymbolFilter(symbol="X"), 1.23456789, 1.0)
    assert result.is_valid
    assert result.formatted_quantity == "1.234568"


class BrokenExchangeInfo(ExchangeInfoSource):
    def get_symbol_filter(self, symbol):
        raise ConnectorError("exchange unreachable")


def test_validator_reports_missing_metadata():
    validator = OrderValidator(StaticExchangeInfo())
    result = validator.validate("DOGEUSDT", 12.5, 0.1)
    assert not result.is_valid
    assert result.formatted_quantity == "12.500000"
    assert "No exchange info" in result.validation_errors[0]


def test_validator_reports_lookup_failure():
    result = OrderValidator(BrokenExchangeInfo()).validate("BTCUSDT", 1.0, 1.0)
    assert not result.is_valid
    assert "exchange unreachable" in result.validation_errors[0]


def test_validate_before_placement(btc_filter):
    validator = OrderValidator(StaticExchangeInfo([btc_filter]))

    quantity, formatted, proceed, messages = validator.validate_before_placement("btcusdt", 0.0123456, 45000.0)
    assert proceed
    assert quantity == pytest.approx(0.01234)
    assert formatted == "0.01234"
    assert len(messages) == 1

    quantity, formatted, proceed, messages = validator.validate_before_placement("BTCUSDT", 0.00001, 45000.0)
    assert not proceed
    assert messages
