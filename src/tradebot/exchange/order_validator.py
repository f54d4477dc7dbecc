"""Order validation against exchange symbol filters.

The checks here are pure: they work on a :class:`SymbolFilter` that has
already been fetched, so the same code serves live trading, dry runs and
tests. :class:`OrderValidator` adds the lookup through an exchange-info
source and turns missing metadata into a validation error.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from tradebot.connectors.base import ExchangeInfoSource
from tradebot.core.exceptions import ConnectorError
from tradebot.core.logger import get_logger
from tradebot.core.models import SymbolFilter


FALLBACK_QUANTITY_FORMAT = "{:.6f}"


@dataclass
class OrderValidationResult:
    """Outcome of validating one order."""
    is_valid: bool
    original_quantity: float
    adjusted_quantity: float
    formatted_quantity: str
    validation_errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    symbol_filter: Optional[SymbolFilter] = None

    @property
    def was_adjusted(self) -> bool:
        return self.adjusted_quantity != self.original_quantity


def validate_order(symbol_filter: SymbolFilter, quantity: float, price: float) -> OrderValidationResult:
    """Validate quantity and price, correcting the quantity where possible.

    A quantity off the step size is rounded down (up when that would fall
    under the minimum, or clamped to the minimum) and the change is reported
    as a warning. Price is never corrected. Notional shortfalls after
    adjustment are rejected outright.
    """
    errors: List[str] = []
    warnings: List[str] = []
    adjusted = quantity

    quantity_error = symbol_filter.validate_quantity(quantity)
    price_error = symbol_filter.validate_price(price)
    notional_error = symbol_filter.validate_notional(quantity, price)

    if quantity_error:
        adjusted = symbol_filter.adjust_quantity_to_step_size(quantity)
        adjusted_error = symbol_filter.validate_quantity(adjusted)
        adjusted_notional_error = symbol_filter.validate_notional(adjusted, price)

        if adjusted_error is None and adjusted_notional_error is None:
            if symbol_filter.step_size is not None:
                warnings.append(
                    f"Quantity adjusted from {quantity:.8f} to {adjusted:.8f} "
                    f"to comply with step size {symbol_filter.step_size:.8f}"
                )
            else:
                warnings.append(
                    f"Quantity adjusted from {quantity:.8f} to {adjusted:.8f} "
                    f"to comply with quantity limits"
                )
        else:
            errors.append(quantity_error)
            if adjusted_error:
                errors.append(f"Even after adjustment: {adjusted_error}")
            if adjusted_notional_error:
                errors.append(f"Adjusted quantity notional error: {adjusted_notional_error}")
    elif notional_error:
        errors.append(notional_error)

    if price_error:
        errors.append(price_error)

    return OrderValidationResult(
        is_valid=not errors,
        original_quantity=quantity,
        adjusted_quantity=adjusted,
        formatted_quantity=symbol_filter.format_quantity(adjusted),
        validation_errors=errors,
        warnings=warnings,
        symbol_filter=symbol_filter,
    )


class OrderValidator:
    """Validates orders using filters from an exchange-info source."""

    def __init__(self, exchange_info: ExchangeInfoSource):
        self.exchange_info = exchange_info
        self.logger = get_logger("exchange.order_validator")

    def validate(self, symbol: str, quantity: float, price: float) -> OrderValidationResult:
        try:
            symbol_filter = self.exchange_info.get_symbol_filter(symbol)
        except ConnectorError as e:
            return self._unavailable(quantity, f"Failed to get exchange info for {symbol}: {e}")

        if symbol_filter is None:
            return self._unavailable(quantity, f"No exchange info available for {symbol}")

        return validate_order(symbol_filter, quantity, price)

    def validate_before_placement(
        self,
        symbol: str,
        quantity: float,
        price: float
    ) -> Tuple[float, str, bool, List[str]]:
        """Validate and log.

        Returns:
            (quantity to send, formatted quantity, should proceed, messages)
        """
        result = self.validate(symbol, quantity, price)

        if not result.is_valid:
            self.logger.error(
                f"Order validation failed for {symbol}: " + "; ".join(result.validation_errors)
            )
            return quantity, FALLBACK_QUANTITY_FORMAT.format(quantity), False, result.validation_errors

        for warning in result.warnings:
            self.logger.warning(f"Order adjustment for {symbol}: {warning}")

        if result.was_adjusted:
            self.logger.info(
                f"Quantity adjusted for {symbol}: {result.original_quantity:.8f} -> "
                f"{result.adjusted_quantity:.8f} (formatted: {result.formatted_quantity})"
            )

        return result.adjusted_quantity, result.formatted_quantity, True, result.warnings

    @staticmethod
    def _unavailable(quantity: float, message: str) -> OrderValidationResult:
        return OrderValidationResult(
            is_valid=False,
            original_quantity=quantity,
            adjusted_quantity=quantity,
            formatted_quantity=FALLBACK_QUANTITY_FORMAT.format(quantity),
            validation_errors=[message],
        )
